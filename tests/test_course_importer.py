"""
End-to-end tests for importing and re-importing a course spreadsheet.

Workbook used throughout (today = 19.10.2026):
- Lektion 1 on 06.01.2025 14:00-16:00 with a continuation row
- Lektion 2 on 08.01.2025 and Lektion 3 on 13.01.2025, 14:00-15:30
- Lektion 4 planned for 05.11.2026 without times or teacher
"""

import unittest
from datetime import date

from models import ABSENT, COMPLETED, ONGOING, PRESENT, SICK
from services.course_importer import find_existing_course, import_course
from tests.helpers import GREEN, RED, TempStoreMixin, header_row, workbook_bytes
from utils.exceptions import MergeNoOpError, SessionIntegrityError, ValidationFailed

TODAY = date(2026, 10, 19)
FILENAME = "G7 A1.1 Online.xlsx"
STUDENTS = ["Anna Nguyen", "Peter Schmidt"]
ANNA, PETER = 10, 11


def _rows(last_session=None, teacher="José Müller"):
    return [
        header_row(STUDENTS),
        ["Lektion 1", "Begrüßung", "", "06.01.2025", "14:00", "16:00", teacher],
        ["", "Alphabet", "Seite 4"],
        ["Lektion 2", "Zahlen", "", "08.01.2025", "14:00", "15:30", "Jose Muller", "", "", "", "krank"],
        ["Lektion 3", "Farben", "", "13.01.2025", "14:00", "15:30", teacher],
        last_session or ["Lektion 4", "Familie", "", "05.11.2026"],
    ]


def _workbook(last_session=None, fills=None):
    fills = fills or {
        (1, ANNA): GREEN, (1, PETER): RED,
        (3, PETER): GREEN,
        (4, ANNA): GREEN, (4, PETER): GREEN,
    }
    comments = {(1, PETER): "krank gemeldet"}
    return workbook_bytes(_rows(last_session), fills=fills, comments=comments, merges=["A2:A3"])


class TestNewCourse(TempStoreMixin, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.result = import_course(self.store, _workbook(), FILENAME, today=TODAY)
        self.course = self.result["course"]
        self.sessions = sorted(
            self.store.query_by_field("sessions", "course_id", self.course["id"]),
            key=lambda s: s["session_order"],
        )
        self.students = {s["name"]: s for s in self.store.get_all_records("students")}

    def test_course_record(self) -> None:
        self.assertEqual(self.result["action"], "created")
        self.assertEqual(self.course["name"], "G7 A1.1")
        self.assertEqual(self.course["mode"], "Online")
        self.assertEqual(self.course["status"], ONGOING)
        self.assertEqual(self.course["start_date"], "06.01.2025")
        self.assertEqual(self.course["end_date"], "13.01.2025")
        self.assertEqual(len(self.course["session_ids"]), 4)
        self.assertEqual(len(self.course["student_ids"]), 2)

        group = self.store.query_by_field("groups", "name", "G7")[0]
        self.assertEqual(group["course_ids"], [self.course["id"]])

    def test_sessions(self) -> None:
        self.assertEqual([s["title"] for s in self.sessions], ["Lektion 1", "Lektion 2", "Lektion 3", "Lektion 4"])
        first = self.sessions[0]
        self.assertEqual(first["content"], "Begrüßung")
        self.assertEqual(first["content_items"], [{"content": "Alphabet", "notes": "Seite 4"}])
        self.assertEqual(first["duration"], 2.0)
        self.assertTrue(first["is_long_session"])
        self.assertEqual(first["status"], COMPLETED)
        self.assertEqual(first["month_id"], "2025-01")
        self.assertEqual(self.sessions[1]["duration"], 1.5)

        planned = self.sessions[3]
        self.assertEqual(planned["date"], "")
        self.assertEqual(planned["status"], ONGOING)
        self.assertIsNone(planned["month_id"])

    def test_single_teacher_for_accent_variants(self) -> None:
        teachers = self.store.get_all_records("teachers")
        self.assertEqual(len(teachers), 1)
        self.assertEqual(self.course["teacher_ids"], [teachers[0]["id"]])
        self.assertEqual(teachers[0]["course_ids"], [self.course["id"]])

    def test_attendance(self) -> None:
        anna = self.students["Anna Nguyen"]["id"]
        peter = self.students["Peter Schmidt"]["id"]
        first, second = self.sessions[0]["attendance"], self.sessions[1]["attendance"]
        self.assertEqual(first[anna], {"status": PRESENT, "comment": ""})
        self.assertEqual(first[peter], {"status": ABSENT, "comment": "krank gemeldet"})
        self.assertEqual(second[anna], {"status": SICK, "comment": "krank"})
        self.assertEqual(self.students["Anna Nguyen"]["join_dates"], {self.course["id"]: "06.01.2025"})

    def test_month_rollup(self) -> None:
        month = self.store.get_record_by_id("months", "2025-01")
        self.assertEqual(month["session_count"], 3)
        self.assertEqual(month["course_ids"], [self.course["id"]])
        self.assertEqual(month["teacher_ids"], self.course["teacher_ids"])

    def test_find_existing_course(self) -> None:
        course, latest = find_existing_course(self.store, "G7", "A1.1")
        self.assertEqual(course["id"], self.course["id"])
        self.assertEqual(latest, "13.01.2025")
        self.assertEqual(find_existing_course(self.store, "G7", "A1.2"), (None, ""))


class TestReimport(TempStoreMixin, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.course = import_course(self.store, _workbook(), FILENAME, today=TODAY)["course"]

    def test_unchanged_file_is_a_failure(self) -> None:
        with self.assertRaises(MergeNoOpError) as ctx:
            import_course(self.store, _workbook(), FILENAME, today=TODAY)
        self.assertIn("G7 A1.1", str(ctx.exception))
        self.assertIn("13.01.2025", str(ctx.exception))

    def test_completed_session_is_merged(self) -> None:
        revised = _workbook(["Lektion 4", "Familie", "", "15.01.2025", "14:00", "15:30", "Maria Rossi"])
        result = import_course(self.store, revised, FILENAME, today=TODAY)

        self.assertEqual(result["action"], "merged")
        self.assertEqual(result["updated_sessions"], 1)
        session = self.store.query_by_field("sessions", "title", "Lektion 4")[0]
        self.assertEqual(session["date"], "15.01.2025")
        self.assertEqual(session["status"], COMPLETED)
        self.assertEqual(session["month_id"], "2025-01")

        course = self.store.get_record_by_id("courses", self.course["id"])
        self.assertEqual(course["status"], COMPLETED)
        self.assertEqual(course["end_date"], "15.01.2025")
        self.assertEqual(len(course["teacher_ids"]), 2)
        self.assertEqual(self.store.get_record_by_id("months", "2025-01")["session_count"], 4)
        self.assertEqual(len(self.store.get_all_records("courses")), 1)

    def test_planned_session_with_time_value_as_teacher_stays_open(self) -> None:
        # 0.5 is a time value, not a teacher name
        revised = _workbook(["Lektion 4", "Familie", "", "15.01.2025", "14:00", "15:30", 0.5])
        with self.assertRaises(MergeNoOpError):
            import_course(self.store, revised, FILENAME, today=TODAY)
        session = self.store.query_by_field("sessions", "title", "Lektion 4")[0]
        self.assertEqual(session["status"], ONGOING)
        self.assertEqual(session["teacher_id"], "")

    def test_completed_session_with_invalid_teacher_name(self) -> None:
        revised = _workbook(["Lektion 4", "Familie", "", "15.01.2025", "14:00", "15:30", "12"])
        with self.assertRaises(SessionIntegrityError):
            import_course(self.store, revised, FILENAME, today=TODAY)
        session = self.store.query_by_field("sessions", "title", "Lektion 4")[0]
        self.assertNotEqual(session["status"], COMPLETED)


class TestContinuationRowAttendance(TempStoreMixin, unittest.TestCase):
    """Anna's mark for Lektion 1 sits on the continuation row only"""

    FILLS = {(2, ANNA): GREEN, (1, PETER): RED, (3, PETER): GREEN}

    def setUp(self):
        super().setUp()
        import_course(self.store, _workbook(fills=self.FILLS), FILENAME, today=TODAY)
        self.anna = self.store.query_by_field("students", "name", "Anna Nguyen")[0]["id"]

    def _first_session(self):
        return self.store.query_by_field("sessions", "title", "Lektion 1")[0]

    def test_reimport_keeps_continuation_row_attendance(self) -> None:
        self.assertEqual(self._first_session()["attendance"][self.anna]["status"], PRESENT)

        revised = _workbook(["Lektion 4", "Familie", "", "15.01.2025", "14:00", "15:30", "Maria Rossi"], fills=self.FILLS)
        result = import_course(self.store, revised, FILENAME, today=TODAY)
        self.assertEqual(result["updated_sessions"], 1)
        self.assertEqual(self._first_session()["attendance"][self.anna], {"status": PRESENT, "comment": ""})


class TestSessionDuration(TempStoreMixin, unittest.TestCase):
    def test_first_timed_session_gets_long_first_duration(self) -> None:
        rows = [
            header_row(STUDENTS),
            ["Lektion 1", "", "", "01.10.2026", "", "", "Maria Rossi"],
            ["Lektion 2", "", "", "05.10.2026", "14:00", "16:00", "Maria Rossi"],
            ["Lektion 3", "", "", "07.10.2026", "14:00", "16:00", "Maria Rossi"],
        ]
        course = import_course(self.store, workbook_bytes(rows), FILENAME, today=TODAY)["course"]
        sessions = sorted(
            self.store.query_by_field("sessions", "course_id", course["id"]),
            key=lambda s: s["session_order"],
        )
        self.assertEqual([s["duration"] for s in sessions], [1.5, 2.0, 1.5])


class TestImportFailures(TempStoreMixin, unittest.TestCase):
    def test_validation_errors_write_nothing(self) -> None:
        rows = [header_row(STUDENTS), ["Lektion 1", "", "", "06.01.2025", "14:00", "15:30", ""]]
        with self.assertRaises(ValidationFailed) as ctx:
            import_course(self.store, workbook_bytes(rows), FILENAME, today=TODAY)
        self.assertFalse(ctx.exception.result.has_only_time_errors)
        self.assertEqual(self.store.get_all_records("courses"), [])

    def test_missing_time_columns_override(self) -> None:
        rows = [
            header_row(STUDENTS, without=("von", "bis")),
            ["Lektion 1", "", "", "06.01.2025", "", "", "Maria Rossi"],
        ]
        data = workbook_bytes(rows)
        with self.assertRaises(ValidationFailed) as ctx:
            import_course(self.store, data, FILENAME, today=TODAY)
        self.assertTrue(ctx.exception.result.has_only_time_errors)

        result = import_course(self.store, data, FILENAME, ignore_missing_time_columns=True, today=TODAY)
        session = self.store.get_record_by_id("sessions", result["course"]["session_ids"][0])
        self.assertEqual((session["start_time"], session["end_time"]), ("", ""))
        self.assertEqual(session["status"], COMPLETED)

    def test_completed_session_without_teacher(self) -> None:
        # current-month rows pass validation without a teacher
        rows = [header_row(STUDENTS), ["Lektion 1", "", "", "01.10.2026", "14:00", "15:30", ""]]
        with self.assertRaises(SessionIntegrityError):
            import_course(self.store, workbook_bytes(rows), FILENAME, today=TODAY)

    def test_not_started_sheet_is_skipped(self) -> None:
        rows = [header_row([]), ["Lektion 1", "", "", "05.11.2026"]]
        metadata = {"groupName": "G9", "level": "B1", "mode": "Online", "sheetIndex": 2}
        result = import_course(self.store, workbook_bytes(rows), "sheet.xlsx", metadata=metadata, today=TODAY)
        self.assertEqual(result["action"], "skipped")
        self.assertEqual(self.store.get_all_records("courses"), [])


if __name__ == "__main__":
    unittest.main()
