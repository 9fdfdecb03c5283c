"""
Header locator and column resolver
"""
import logging

from config import Config
from models import ColumnMap
from utils.exceptions import StructureError

logger = logging.getLogger(__name__)

# Date column: exact labels only, fuzzy matching produced false positives
DATE_COLUMN_LABELS = ('Datum', 'Date', 'Unterrichtstag', 'Tag', 'Day')
DATE_COLUMN_TRIGGERS = {'Datum', 'Date', 'Unterrichtstag'}

# Substring variations per logical column
COLUMN_VARIATIONS = {
    'folien': ['folien', 'canva', 'slides'],
    'canva': ['folien', 'canva', 'slides'],
    'von': ['von', 'from', 'start'],
    'bis': ['bis', 'to', 'end'],
    'lehrer': ['lehrer', 'teacher'],
    'inhalt': ['inhalt', 'content'],
    'notizen': ['notizen', 'notes'],
    'nachrichten': ['nachrichten', 'messages'],
}

# Logical column -> accepted header names
TITLE_NAMES = ['Folien', 'Canva']
CONTENT_NAMES = ['Inhalt']
NOTES_NAMES = ['Notizen']
DATE_NAMES = ['Unterrichtstag', 'Datum', 'Tag', 'Date', 'Day']
START_TIME_NAMES = ['von']
END_TIME_NAMES = ['bis']
TEACHER_NAMES = ['Lehrer']
MESSAGE_NAMES = ['Nachrichten']


def _header_text(cell):
    """Header cell (CellValue or raw) -> stripped text"""
    if cell is None:
        return ''
    if hasattr(cell, 'as_text'):
        return cell.as_text()
    return str(cell).strip()


def find_header_row(sheet):
    """Index of the first row whose column 0 holds an anchor token, -1 if none"""
    limit = min(len(sheet.rows), Config.HEADER_SCAN_ROWS)
    for i in range(limit):
        if _header_text(sheet.value(i, 0)) in Config.HEADER_ANCHORS:
            logger.debug(f"Header row found at index {i}")
            return i
    return -1


def require_header_row(sheet):
    index = find_header_row(sheet)
    if index == -1:
        raise StructureError(
            "Could not find header row with 'Folien' column. "
            "The Excel file structure appears to be invalid."
        )
    return index


def find_column_index(header_row, column_names):
    """Physical index of a logical column in the header row, -1 if absent"""
    names = column_names if isinstance(column_names, (list, tuple)) else [column_names]
    texts = [_header_text(cell) for cell in header_row]

    if any(name in DATE_COLUMN_TRIGGERS for name in names):
        for i, text in enumerate(texts):
            if text in DATE_COLUMN_LABELS:
                return i
        return -1

    lowered = [name.lower() for name in names]
    for i, text in enumerate(texts):
        if text and text.lower() in lowered:
            return i

    # substring pass stays inside the metadata block so roster names cannot match
    for i, text in enumerate(texts[:Config.STUDENT_COLUMN_OFFSET]):
        if not text:
            continue
        cell_text = text.lower()
        for name in lowered:
            if any(v in cell_text for v in COLUMN_VARIATIONS.get(name, [])):
                return i

    return -1


def resolve_columns(header_row):
    """Build the ColumnMap for a header row"""
    columns = ColumnMap(
        title=find_column_index(header_row, TITLE_NAMES),
        content=find_column_index(header_row, CONTENT_NAMES),
        notes=find_column_index(header_row, NOTES_NAMES),
        date=find_column_index(header_row, DATE_NAMES),
        start_time=find_column_index(header_row, START_TIME_NAMES),
        end_time=find_column_index(header_row, END_TIME_NAMES),
        teacher=find_column_index(header_row, TEACHER_NAMES),
        message=find_column_index(header_row, MESSAGE_NAMES),
    )
    logger.debug(f"Resolved columns: {columns.to_dict()}")
    return columns
