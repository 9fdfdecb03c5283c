"""
Unit tests for date and time handling.

Accepted encodings:
- "DD.MM.YYYY" text
- spreadsheet serial day numbers (epoch 1899-12-30)
Anything outside 2020-2030 or malformed formats to an empty string.
"""

import unittest
from datetime import date

from models import COMPLETED, ONGOING, CellValue
from services.date_utils import (
    date_to_excel_serial,
    excel_serial_to_date,
    format_date,
    format_time,
    is_current_month,
    is_future_date,
    session_status,
    time_to_minutes,
)


class TestFormatDate(unittest.TestCase):
    def test_text_date_is_kept(self) -> None:
        self.assertEqual(format_date("05.03.2025"), "05.03.2025")

    def test_serial_number(self) -> None:
        self.assertEqual(format_date(45721), "05.03.2025")
        self.assertEqual(format_date(CellValue.date_serial(45721)), "05.03.2025")

    def test_serial_roundtrip_through_date(self) -> None:
        serial = date_to_excel_serial(date(2028, 2, 29))
        self.assertEqual(format_date(serial), "29.02.2028")

    def test_out_of_range_years_are_empty(self) -> None:
        self.assertEqual(format_date("31.12.2019"), "")
        self.assertEqual(format_date("01.01.2031"), "")

    def test_malformed_values_are_empty(self) -> None:
        for value in ("31.02.2025", "2025-03-05", "abc", "", None, CellValue.empty()):
            self.assertEqual(format_date(value), "", value)

    def test_serial_bounds(self) -> None:
        self.assertIsNone(excel_serial_to_date(0))
        self.assertIsNone(excel_serial_to_date(3_000_000))
        self.assertEqual(excel_serial_to_date(1), date(1899, 12, 31))


class TestFormatTime(unittest.TestCase):
    def test_text_times_are_padded(self) -> None:
        self.assertEqual(format_time("9:05"), "09:05")
        self.assertEqual(format_time("14:00:00"), "14:00")

    def test_day_fraction(self) -> None:
        self.assertEqual(format_time(14 / 24), "14:00")
        self.assertEqual(format_time(CellValue.number(0.75)), "18:00")

    def test_empty(self) -> None:
        self.assertEqual(format_time(None), "")
        self.assertEqual(format_time(CellValue.empty()), "")

    def test_time_to_minutes(self) -> None:
        self.assertEqual(time_to_minutes("01:30"), 90)
        self.assertIsNone(time_to_minutes(""))
        self.assertIsNone(time_to_minutes("later"))


class TestStatus(unittest.TestCase):
    today = date(2026, 10, 19)

    def test_today_counts_as_completed(self) -> None:
        self.assertEqual(session_status("19.10.2026", self.today), COMPLETED)
        self.assertEqual(session_status("01.01.2025", self.today), COMPLETED)

    def test_future_and_undated_are_ongoing(self) -> None:
        self.assertEqual(session_status("20.10.2026", self.today), ONGOING)
        self.assertEqual(session_status("", self.today), ONGOING)

    def test_future_and_current_month(self) -> None:
        self.assertTrue(is_future_date("20.10.2026", self.today))
        self.assertFalse(is_future_date("19.10.2026", self.today))
        self.assertTrue(is_current_month("01.10.2026", self.today))
        self.assertFalse(is_current_month("30.09.2026", self.today))


if __name__ == "__main__":
    unittest.main()
