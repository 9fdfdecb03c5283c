"""
Unit tests for the pre-flight validation.

today is fixed at 19.10.2026: 2025 dates are past sessions, October 2026 is
the current month and later dates are planned sessions.
"""

import unittest
from datetime import date

from models import ImportMetadata
from services.validator import validate_sheet
from services.workbook_loader import load_sheet
from tests.helpers import header_row, workbook_bytes

TODAY = date(2026, 10, 19)
STUDENTS = ["Anna Nguyen", "Peter Schmidt"]


def _sheet(rows, **kwargs):
    return load_sheet(workbook_bytes(rows, **kwargs))


def _session(title, day, start="14:00", end="15:30", teacher="Maria Rossi", content=""):
    return [title, content, "", day, start, end, teacher]


class TestValidateSheet(unittest.TestCase):
    def test_clean_sheet(self) -> None:
        sheet = _sheet([
            header_row(STUDENTS),
            _session("Lektion 1", "06.01.2025"),
            _session("Lektion 2", "08.01.2025"),
            _session("Lektion 3", "05.11.2026", start="", end="", teacher=""),
        ])
        result = validate_sheet(sheet, today=TODAY)
        self.assertTrue(result.is_valid, result.errors)
        self.assertFalse(result.has_only_time_errors)

    def test_missing_time_columns_only(self) -> None:
        sheet = _sheet([
            header_row(STUDENTS, without=("von", "bis")),
            _session("Lektion 1", "06.01.2025", start="", end=""),
        ])
        result = validate_sheet(sheet, today=TODAY)
        self.assertTrue(result.missing_time_columns)
        self.assertTrue(result.has_only_time_errors)
        self.assertEqual(len(result.errors), 2)

    def test_missing_teacher_is_hard_error(self) -> None:
        sheet = _sheet([
            header_row(STUDENTS, without=("von", "bis")),
            _session("Lektion 1", "06.01.2025", start="", end="", teacher=""),
        ])
        result = validate_sheet(sheet, today=TODAY)
        self.assertTrue(result.missing_time_columns)
        self.assertFalse(result.has_only_time_errors)
        self.assertTrue(any("Lehrer" in e for e in result.errors))

    def test_missing_times_on_past_session(self) -> None:
        sheet = _sheet([header_row(STUDENTS), _session("Lektion 1", "06.01.2025", start="")])
        result = validate_sheet(sheet, today=TODAY)
        self.assertEqual([i.kind for i in result.issues], ["missing_time"])
        self.assertFalse(result.has_only_time_errors)

    def test_current_month_tolerates_incomplete_rows(self) -> None:
        sheet = _sheet([header_row(STUDENTS), _session("Lektion 1", "01.10.2026", start="", end="", teacher="")])
        self.assertTrue(validate_sheet(sheet, today=TODAY).is_valid)

    def test_no_header(self) -> None:
        result = validate_sheet(_sheet([["Datum", "von"]]), today=TODAY)
        self.assertEqual([i.kind for i in result.issues], ["structure"])

    def test_malformed_date(self) -> None:
        sheet = _sheet([header_row(STUDENTS), _session("Lektion 1", "6.1.25")])
        result = validate_sheet(sheet, today=TODAY)
        self.assertTrue(any("invalid date format" in e for e in result.errors))

    def test_date_before_2020(self) -> None:
        sheet = _sheet([header_row(STUDENTS), _session("Lektion 1", "06.01.2019")])
        result = validate_sheet(sheet, today=TODAY)
        self.assertTrue(any("before 2020" in e for e in result.errors))

    def test_missing_title_on_data_row(self) -> None:
        sheet = _sheet([
            header_row(STUDENTS),
            _session("Lektion 1", "06.01.2025"),
            _session("", "08.01.2025"),
        ])
        result = validate_sheet(sheet, today=TODAY)
        self.assertIn("title", [i.kind for i in result.issues])

    def test_merged_title_covers_continuation_row(self) -> None:
        sheet = _sheet(
            [
                header_row(STUDENTS),
                _session("Lektion 1", "06.01.2025", content="Begrüßung"),
                ["", "Alphabet"],
            ],
            merges=["A2:A3"],
        )
        self.assertTrue(validate_sheet(sheet, today=TODAY).is_valid)

    def test_no_students(self) -> None:
        sheet = _sheet([header_row([]), _session("Lektion 1", "06.01.2025")])
        result = validate_sheet(sheet, today=TODAY)
        self.assertEqual([i.kind for i in result.issues], ["roster"])

    def test_later_sheet_not_started(self) -> None:
        sheet = _sheet([header_row([]), _session("Lektion 1", "05.11.2026", start="", end="", teacher="")])
        metadata = ImportMetadata(group_name="G1", level="B1", mode="Online", sheet_index=1)
        result = validate_sheet(sheet, metadata, today=TODAY)
        self.assertTrue(result.appears_not_started)
        self.assertTrue(result.is_valid)
        self.assertEqual(len(result.warnings), 1)


if __name__ == "__main__":
    unittest.main()
