"""
Validation engine - structural and business-rule checks before any write
"""
import logging

from config import Config
from models import CellValue, ValidationResult
from services.column_resolver import find_header_row, resolve_columns
from services.date_utils import (
    DATE_RE,
    excel_serial_to_date,
    is_before_min_year,
    is_current_month,
    is_future_date,
    parse_date,
    today_utc,
)

logger = logging.getLogger(__name__)


def roster_names(header_row):
    """(column index, name) pairs of the enrolled students in the header row"""
    names = []
    for j in range(Config.STUDENT_COLUMN_OFFSET, len(header_row)):
        cell = header_row[j]
        if cell.kind != CellValue.TEXT or cell.is_empty:
            continue
        name = cell.as_text()
        if name == Config.ROSTER_SENTINELS[0] or any(s in name for s in Config.ROSTER_SENTINELS[1:]):
            continue
        names.append((j, name))
    return names


def _session_rows(sheet, header_index, columns):
    """Row indices below the header that open a session (title cell filled)"""
    if columns.title == -1:
        return []
    return [
        i for i in range(header_index + 1, len(sheet.rows))
        if not sheet.value(i, columns.title).is_empty
    ]


def _has_past_session(sheet, session_rows, columns, today):
    if columns.date == -1:
        return False
    for i in session_rows:
        parsed = parse_date(sheet.value(i, columns.date))
        if parsed is not None and parsed <= today:
            return True
    return False


def _check_date_cell(result, row_number, title, cell):
    """Append an error for a malformed date cell; returns True if the cell holds a date"""
    if cell.kind == CellValue.TEXT:
        text = cell.as_text()
        if DATE_RE.match(text) and parse_date(text) is not None:
            return True
        result.add(
            'date',
            f'Row {row_number}: Session "{title}" has an invalid date format "{text}". '
            'Expected format: DD.MM.YYYY in the "Datum/Unterrichtstag" column',
        )
        return False
    if cell.is_numeric:
        if excel_serial_to_date(cell.value) is not None:
            return True
        result.add('date', f'Row {row_number}: Session "{title}" has an invalid numeric date value "{cell.as_text()}".')
    return False


def validate_sheet(sheet, metadata=None, today=None):
    """Run every pre-flight check; never raises for bad content"""
    today = today or today_utc()
    result = ValidationResult()

    header_index = find_header_row(sheet)
    if header_index == -1:
        result.add(
            'structure',
            "Could not find header row with 'Folien' column. The Excel file structure appears to be invalid.",
        )
        return result

    header_row = sheet.rows[header_index]
    columns = resolve_columns(header_row)
    session_rows = _session_rows(sheet, header_index, columns)
    students = roster_names(header_row)

    # A later sheet of a multi-sheet import may simply not have started yet
    is_later_sheet = metadata is not None and (metadata.sheet_index or 0) > 0
    if not students and is_later_sheet and not _has_past_session(sheet, session_rows, columns, today):
        result.appears_not_started = True
        result.warnings.append(
            "This sheet appears to have not started yet (no student names and no past sessions). Skipping import."
        )
        return result

    if columns.start_time == -1 or columns.end_time == -1:
        result.missing_time_columns = True
        if columns.start_time == -1:
            result.add('time_column', "Missing time column: von/from not found in the header row.")
        if columns.end_time == -1:
            result.add('time_column', "Missing time column: bis/to not found in the header row.")

    for index, label in (
        (columns.title, "Folien or Canva"),
        (columns.date, "Unterrichtstag or Datum or Tag or Date or Day"),
        (columns.teacher, "Lehrer or Teacher"),
    ):
        if index == -1:
            result.add('column', f"Required column '{label}' not found in the header row.")

    _check_titles(sheet, header_index, columns, result, today)

    if not students:
        result.add('roster', "No student names found in the header row (columns K and beyond).")

    _check_sessions(sheet, session_rows, columns, result, today)
    _check_min_year(sheet, header_index, columns, result)

    if columns.title != -1 and not session_rows:
        result.add('no_sessions', "No sessions found in the Excel file. The Folien column should contain session titles.")

    logger.info(
        f"Validation of '{sheet.name}': {len(result.issues)} errors, "
        f"missing time columns: {result.missing_time_columns}"
    )
    return result


def _check_titles(sheet, header_index, columns, result, today):
    """Rows carrying data need a title, directly or through a merged title cell"""
    if columns.title == -1:
        return
    for i in range(header_index + 1, len(sheet.rows)):
        row = sheet.rows[i]
        has_other_data = any(not cell.is_empty for j, cell in enumerate(row) if j != columns.title)
        if not has_other_data:
            continue
        if columns.date != -1 and is_future_date(sheet.value(i, columns.date), today):
            continue
        if sheet.master_value(i, columns.title).is_empty:
            result.add('title', f"Row {i + 1}: Empty cell in Folien column. All session rows must have a title.")


def _check_sessions(sheet, session_rows, columns, result, today):
    """Dates must be readable; past sessions outside the current month need times and a teacher"""
    if columns.date == -1:
        return

    # Rows after the last filled session (date + teacher) are treated as planned ones
    last_filled = -1
    for i in session_rows:
        if not sheet.value(i, columns.date).is_empty and not sheet.value(i, columns.teacher).is_empty:
            last_filled = i
    has_planned_tail = last_filled != -1 and any(i > last_filled for i in session_rows)

    last_known_date = None
    for i in session_rows:
        title = sheet.value(i, columns.title).as_text()
        date_cell = sheet.value(i, columns.date)
        might_be_planned = has_planned_tail and i > last_filled

        if date_cell.is_empty:
            if last_known_date is None and not might_be_planned:
                result.add('date', f'Row {i + 1}: Session "{title}" is missing a date and no previous date is available.')
            continue

        if not _check_date_cell(result, i + 1, title, date_cell):
            continue
        last_known_date = parse_date(date_cell)

        if might_be_planned:
            continue
        if is_future_date(date_cell, today) or is_current_month(date_cell, today):
            continue

        if columns.start_time != -1 and sheet.value(i, columns.start_time).is_empty:
            result.add('missing_time', f'Row {i + 1}: Session "{title}" is missing a start time in the "von" column.')
        if columns.end_time != -1 and sheet.value(i, columns.end_time).is_empty:
            result.add('missing_time', f'Row {i + 1}: Session "{title}" is missing an end time in the "bis" column.')
        if columns.teacher != -1 and sheet.value(i, columns.teacher).is_empty:
            result.add(
                'teacher',
                f'Row {i + 1}: Session "{title}" is missing teacher information in the "Lehrer" column. '
                'All completed sessions must have a teacher assigned.',
            )


def _check_min_year(sheet, header_index, columns, result):
    if columns.date == -1:
        return
    for i in range(header_index + 1, len(sheet.rows)):
        cell = sheet.value(i, columns.date)
        if not cell.is_empty and is_before_min_year(cell):
            title = sheet.value(i, columns.title).as_text() or f"Row {i + 1}"
            result.add(
                'date',
                f'Row {i + 1}: Session "{title}" has a date before {Config.MIN_SESSION_YEAR}. '
                f'All dates must be {Config.MIN_SESSION_YEAR} or later.',
            )
