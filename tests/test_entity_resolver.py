"""
Unit tests for teacher, month and group resolution.
"""

import unittest

from models import CellValue
from services.entity_resolver import (
    add_session_to_month,
    get_or_create_group,
    get_or_create_month,
    next_color,
    normalize_teacher_name,
    remove_session_from_month,
    resolve_teacher,
)
from tests.helpers import TempStoreMixin


class TestNormalize(unittest.TestCase):
    def test_accents_case_and_spaces(self) -> None:
        self.assertEqual(normalize_teacher_name("  José   Müller "), "jose muller")
        self.assertEqual(normalize_teacher_name(None), "")


class TestTeachers(TempStoreMixin, unittest.TestCase):
    def test_reuse_by_normalized_name(self) -> None:
        first = resolve_teacher(self.store, CellValue.text("José Müller"))
        second = resolve_teacher(self.store, "jose  muller")
        self.assertEqual(first["id"], second["id"])
        self.assertEqual(first["country"], "")
        self.assertEqual(len(self.store.get_all_records("teachers")), 1)

    def test_numeric_cells_are_not_names(self) -> None:
        self.assertIsNone(resolve_teacher(self.store, CellValue.number(0.5833)))
        self.assertIsNone(resolve_teacher(self.store, CellValue.date_serial(45721)))
        self.assertIsNone(resolve_teacher(self.store, CellValue.text("123")))
        self.assertIsNone(resolve_teacher(self.store, CellValue.empty()))
        self.assertEqual(self.store.get_all_records("teachers"), [])


class TestMonths(TempStoreMixin, unittest.TestCase):
    def test_create_once(self) -> None:
        month = get_or_create_month(self.store, "05.03.2025")
        self.assertEqual(month["id"], "2025-03")
        self.assertEqual(month["name"], "March 2025")
        self.assertEqual(month["session_count"], 0)
        self.assertEqual(get_or_create_month(self.store, "31.03.2025")["id"], "2025-03")
        self.assertEqual(len(self.store.get_all_records("months")), 1)

    def test_invalid_date(self) -> None:
        self.assertIsNone(get_or_create_month(self.store, ""))

    def test_counters(self) -> None:
        get_or_create_month(self.store, "05.03.2025")
        add_session_to_month(self.store, "2025-03", "c1")
        month = add_session_to_month(self.store, "2025-03", "c1")
        self.assertEqual(month["session_count"], 2)
        self.assertEqual(month["course_ids"], ["c1"])

        remove_session_from_month(self.store, "2025-03")
        remove_session_from_month(self.store, "2025-03")
        month = remove_session_from_month(self.store, "2025-03")
        self.assertEqual(month["session_count"], 0)


class TestGroups(TempStoreMixin, unittest.TestCase):
    def test_group_type_and_reuse(self) -> None:
        group = get_or_create_group(self.store, "M4", "Online")
        self.assertEqual(group["type"], "M")
        self.assertEqual(group["mode"], "Online")
        self.assertEqual(get_or_create_group(self.store, "M4", "Online")["id"], group["id"])

    def test_empty_name(self) -> None:
        with self.assertRaises(ValueError):
            get_or_create_group(self.store, " ")

    def test_least_used_color(self) -> None:
        records = [{"color": "#111111"}, {"color": "#111111"}, {"color": "#222222"}]
        self.assertEqual(next_color(records, ["#111111", "#222222", "#333333"]), "#333333")


if __name__ == "__main__":
    unittest.main()
