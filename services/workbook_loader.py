"""
Workbook loader - bytes -> value grid + format view of one worksheet
"""
import io
import logging
import zipfile
from datetime import date, datetime, time, timedelta

import openpyxl
from openpyxl.styles.colors import COLOR_INDEX
from openpyxl.utils.exceptions import InvalidFileException

from models import CellFormat, CellValue, SheetData
from services.date_utils import date_to_excel_serial
from utils.exceptions import WorkbookParseError

logger = logging.getLogger(__name__)

# Default "no color" values openpyxl reports for unfilled cells
NO_FILL_CODES = {'00000000', 'FFFFFFFF'}


def _open_workbook(data):
    try:
        return openpyxl.load_workbook(io.BytesIO(data), data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise WorkbookParseError(f"The file could not be read as an Excel workbook: {e}") from e


def get_sheet_names(data):
    """Worksheet names in workbook order"""
    wb = _open_workbook(data)
    names = list(wb.sheetnames)
    wb.close()
    return names


def to_cell_value(raw):
    """Raw openpyxl value -> CellValue"""
    if raw is None:
        return CellValue.empty()
    if isinstance(raw, bool):
        return CellValue.text('true' if raw else 'false')
    if isinstance(raw, (datetime, date)):
        return CellValue.date_serial(date_to_excel_serial(raw))
    if isinstance(raw, time):
        return CellValue.number((raw.hour * 3600 + raw.minute * 60 + raw.second) / 86400)
    if isinstance(raw, timedelta):
        return CellValue.number(raw.total_seconds() / 86400)
    if isinstance(raw, (int, float)):
        return CellValue.number(raw)
    return CellValue.text(raw)


def normalize_color(color):
    """openpyxl Color -> (ARGB code or None, theme index or None)"""
    if color is None:
        return None, None
    if color.type == 'rgb' and isinstance(color.rgb, str):
        code = color.rgb.upper()
        if len(code) == 6:
            code = 'FF' + code
        return (None if code in NO_FILL_CODES else code), None
    if color.type == 'indexed' and isinstance(color.indexed, int):
        if 0 <= color.indexed < len(COLOR_INDEX):
            code = 'FF' + COLOR_INDEX[color.indexed][2:].upper()
            return (None if code in NO_FILL_CODES else code), None
        return None, None
    if color.type == 'theme' and isinstance(color.theme, int):
        return None, color.theme
    return None, None


def _cell_format(cell):
    fill_color, fill_theme = None, None
    fill = cell.fill
    if fill is not None and getattr(fill, 'fill_type', None):
        fill_color, fill_theme = normalize_color(fill.fgColor)
    note = cell.comment.text.strip() if cell.comment is not None and cell.comment.text else ''
    return fill_color, fill_theme, note


def load_sheet(data, sheet_name=None, sheet_index=None):
    """Parse workbook bytes; returns SheetData for the named (or indexed) sheet, else the first one"""
    wb = _open_workbook(data)
    if sheet_name and sheet_name in wb.sheetnames:
        ws = wb[sheet_name]
    elif not sheet_name and sheet_index is not None and 0 <= sheet_index < len(wb.worksheets):
        ws = wb.worksheets[sheet_index]
    else:
        if sheet_name:
            logger.warning(f"Sheet '{sheet_name}' not found, using the first sheet")
        ws = wb.worksheets[0]

    merge_masters = {}
    for merged in ws.merged_cells.ranges:
        master = (merged.min_row - 1, merged.min_col - 1)
        for r in range(merged.min_row, merged.max_row + 1):
            for c in range(merged.min_col, merged.max_col + 1):
                merge_masters[(r - 1, c - 1)] = master

    rows = []
    formats = {}
    for r_idx, row in enumerate(ws.iter_rows()):
        values = []
        for c_idx, cell in enumerate(row):
            values.append(to_cell_value(cell.value))
            fill_color, fill_theme, note = _cell_format(cell)
            master = merge_masters.get((r_idx, c_idx))
            if fill_color or fill_theme is not None or note or master:
                formats[(r_idx, c_idx)] = CellFormat(
                    fill_color=fill_color,
                    fill_theme=fill_theme,
                    note=note,
                    merge_master=master,
                )
        rows.append(values)

    sheet = SheetData(name=ws.title, rows=rows, formats=formats)
    wb.close()
    logger.info(f"Sheet '{sheet.name}' loaded: {len(rows)} rows, {len(merge_masters)} merged cells")
    return sheet
