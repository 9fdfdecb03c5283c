"""
Attendance decoder - cell fill color first, cell text as fallback
"""
import logging
from dataclasses import dataclass

from models import (
    ABSENT, PRESENT, SICK, TECHNICAL_ISSUES, UNKNOWN,
    AttendanceEntry, CellValue,
)

logger = logging.getLogger(__name__)

GREEN_CODES = frozenset({
    'FF00FF00',  # Pure green
    'FF92D050',  # Light green
    'FF00B050',  # Medium green
    'FF00B640',
    'FFD9EAD3',  # Light green (Google Sheets)
    'FF9BBB59',  # Olive green
    'FF00B800',  # Bright green
    'FF70AD47',  # Dark green
})

PRESENT_WORDS = {'true', 'anwesend', 'present'}
ABSENT_WORDS = {'false', 'abwesend', 'absent'}
SICK_MARKERS = ('krank', 'sick')
TECHNICAL_MARKERS = ('kamera aus', 'mic aus')


def _channels(code):
    """ARGB code -> (r, g, b)"""
    try:
        return int(code[2:4], 16), int(code[4:6], 16), int(code[6:8], 16)
    except (ValueError, TypeError):
        return None


@dataclass(frozen=True)
class ColorPolicy:
    """Maps fill colors to attendance statuses"""
    green_codes: frozenset = GREEN_CODES
    red_margin: int = 20
    pink_floor: int = 200
    green_themes: frozenset = frozenset({3, 4, 6})
    red_themes: frozenset = frozenset({2, 5})

    def is_green(self, code):
        return bool(code) and code.upper() in self.green_codes

    def is_red(self, code):
        rgb = _channels(code) if code else None
        if rgb is None:
            return False
        r, g, b = rgb
        if r > g + self.red_margin and r > b + self.red_margin:
            return True
        # pink: high red and blue, low green
        return r > self.pink_floor and b > self.pink_floor and g + self.red_margin < r

    def classify(self, fmt):
        """CellFormat -> status, UNKNOWN when the fill is inconclusive"""
        if fmt.fill_color:
            if self.is_green(fmt.fill_color):
                return PRESENT
            if self.is_red(fmt.fill_color):
                return ABSENT
        if fmt.fill_theme is not None:
            if fmt.fill_theme in self.green_themes:
                return PRESENT
            if fmt.fill_theme in self.red_themes:
                return ABSENT
        return UNKNOWN


DEFAULT_POLICY = ColorPolicy()


def status_from_text(text):
    """Attendance status written into the cell, UNKNOWN if none"""
    lowered = (text or '').strip().lower()
    if not lowered:
        return UNKNOWN
    if lowered in PRESENT_WORDS:
        return PRESENT
    if lowered in ABSENT_WORDS:
        return ABSENT
    if any(marker in lowered for marker in SICK_MARKERS):
        return SICK
    if any(marker in lowered for marker in TECHNICAL_MARKERS):
        return TECHNICAL_ISSUES
    return UNKNOWN


def decode_cell(value, fmt, policy=DEFAULT_POLICY):
    """One attendance cell -> AttendanceEntry, or None when it carries nothing"""
    status = policy.classify(fmt)
    text = value.as_text() if value.kind == CellValue.TEXT else ''
    if status == UNKNOWN and not value.is_empty:
        status = status_from_text(value.as_text())

    comment = fmt.note or text
    if status == UNKNOWN and not comment:
        return None
    return AttendanceEntry(status=status, comment=comment)


def decode_row(sheet, row_index, roster, policy=DEFAULT_POLICY):
    """Attendance entries of every roster student on one row: student_id -> AttendanceEntry"""
    entries = {}
    for student in roster:
        entry = decode_cell(
            sheet.value(row_index, student.column_index),
            sheet.format(row_index, student.column_index),
            policy,
        )
        if entry is not None:
            entries[student.id] = entry
            logger.debug(f"Row {row_index + 1}: {student.name} -> {entry.status}")
    return entries
