"""
Shared fixtures: in-memory workbooks and a temporary record store
"""
import io
import os
import tempfile

from openpyxl import Workbook
from openpyxl.comments import Comment
from openpyxl.styles import Color, PatternFill

from services.record_store import LocalJsonStorage

GREEN = 'FF00B050'
RED = 'FFFF0000'

HEADER = ['Folien', 'Inhalt', 'Notizen', 'Datum', 'von', 'bis', 'Lehrer', '', '', '']


def header_row(students, without=()):
    """Standard header: metadata block in A-J, students from K"""
    cells = ['' if name in without else name for name in HEADER]
    return cells + list(students)


def workbook_bytes(rows, fills=None, comments=None, merges=(), title='Kurs'):
    """Build an xlsx in memory; fills/comments are keyed by 0-based (row, col)

    A fill is an ARGB string, or an int for a theme colour index.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for r, row in enumerate(rows, start=1):
        for c, value in enumerate(row, start=1):
            if value not in ('', None):
                ws.cell(row=r, column=c, value=value)
    for (r, c), code in (fills or {}).items():
        color = Color(theme=code) if isinstance(code, int) else code
        ws.cell(row=r + 1, column=c + 1).fill = PatternFill(fill_type='solid', fgColor=color)
    for (r, c), text in (comments or {}).items():
        ws.cell(row=r + 1, column=c + 1).comment = Comment(text, 'tester')
    for cell_range in merges:
        ws.merge_cells(cell_range)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


class TempStoreMixin:
    """setUp/tearDown for a LocalJsonStorage in a temporary directory"""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = LocalJsonStorage(os.path.join(self._tmp.name, 'records.json'))

    def tearDown(self):
        self._tmp.cleanup()
