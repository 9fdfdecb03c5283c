"""
Course Import - data model
"""
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, FrozenSet, List, Optional, Tuple

# Session/course status
ONGOING = 'ongoing'
COMPLETED = 'completed'

# Attendance status
PRESENT = 'present'
ABSENT = 'absent'
SICK = 'sick'
TECHNICAL_ISSUES = 'technical_issues'
UNKNOWN = 'unknown'


# ===== Spreadsheet cells =====

@dataclass(frozen=True)
class CellValue:
    """Cell value resolved once at load time: empty, text, number or date serial"""
    kind: str = 'empty'
    value: object = None

    EMPTY = 'empty'
    TEXT = 'text'
    NUMBER = 'number'
    DATE_SERIAL = 'date_serial'

    @classmethod
    def empty(cls):
        return cls(cls.EMPTY, None)

    @classmethod
    def text(cls, value):
        return cls(cls.TEXT, str(value))

    @classmethod
    def number(cls, value):
        return cls(cls.NUMBER, float(value))

    @classmethod
    def date_serial(cls, value):
        return cls(cls.DATE_SERIAL, float(value))

    @property
    def is_empty(self):
        if self.kind == self.EMPTY:
            return True
        return self.kind == self.TEXT and not self.value.strip()

    @property
    def is_numeric(self):
        return self.kind in (self.NUMBER, self.DATE_SERIAL)

    def as_text(self):
        """Display text; integral numbers lose their trailing .0"""
        if self.kind == self.EMPTY:
            return ''
        if self.kind == self.TEXT:
            return self.value.strip()
        if float(self.value).is_integer():
            return str(int(self.value))
        return str(self.value)


@dataclass(frozen=True)
class CellFormat:
    """Formatting of one cell"""
    fill_color: Optional[str] = None            # normalized ARGB, e.g. "FF00B050"
    fill_theme: Optional[int] = None            # theme index when the fill is a theme color
    note: str = ''
    merge_master: Optional[Tuple[int, int]] = None  # (row, col) of the merge anchor, 0-based


@dataclass
class SheetData:
    """Value grid and format view of one worksheet, sharing 0-based indices"""
    name: str
    rows: List[List[CellValue]]
    formats: Dict[Tuple[int, int], CellFormat] = field(default_factory=dict)

    def value(self, row, col):
        if row < 0 or col < 0 or row >= len(self.rows):
            return CellValue.empty()
        cells = self.rows[row]
        if col >= len(cells):
            return CellValue.empty()
        return cells[col]

    def format(self, row, col):
        return self.formats.get((row, col), CellFormat())

    def master_value(self, row, col):
        """Value of the cell, or of its merge anchor when the cell is merged"""
        fmt = self.format(row, col)
        if fmt.merge_master is not None:
            return self.value(*fmt.merge_master)
        return self.value(row, col)


# ===== Ephemeral import structures =====

@dataclass
class ColumnMap:
    """Logical column -> physical column index (-1 when absent)"""
    title: int = -1
    content: int = -1
    notes: int = -1
    date: int = -1
    start_time: int = -1
    end_time: int = -1
    teacher: int = -1
    message: int = -1

    def to_dict(self):
        return {
            "title": self.title,
            "content": self.content,
            "notes": self.notes,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "teacher": self.teacher,
            "message": self.message,
        }


@dataclass(frozen=True)
class ValidationIssue:
    """One validation failure"""
    kind: str       # structure, column, time_column, missing_time, title, roster, date, teacher, no_sessions
    message: str


TIME_ISSUE_KINDS = frozenset({'time_column', 'missing_time'})


@dataclass
class ValidationResult:
    """Outcome of the pre-flight checks"""
    issues: List[ValidationIssue] = field(default_factory=list)
    missing_time_columns: bool = False
    warnings: List[str] = field(default_factory=list)
    appears_not_started: bool = False

    def add(self, kind, message):
        self.issues.append(ValidationIssue(kind, message))

    @property
    def errors(self):
        return [issue.message for issue in self.issues]

    @property
    def has_only_time_errors(self):
        return self.missing_time_columns and all(
            issue.kind in TIME_ISSUE_KINDS for issue in self.issues
        )

    @property
    def is_valid(self):
        return not self.issues

    def to_dict(self):
        return {
            "errors": self.errors,
            "missing_time_columns": self.missing_time_columns,
            "has_only_time_errors": self.has_only_time_errors,
            "warnings": list(self.warnings),
            "appears_not_started": self.appears_not_started,
        }


@dataclass(frozen=True)
class ImportMetadata:
    """Caller-supplied course data for programmatic imports"""
    group_name: str = ''
    level: str = ''
    mode: str = ''
    language: str = 'DE'
    source_url: str = ''
    sheet_name: str = ''
    sheet_index: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        if not data:
            return None
        sheet_index = data.get('sheet_index', data.get('sheetIndex'))
        return cls(
            group_name=str(data.get('group_name', data.get('groupName', '')) or ''),
            level=str(data.get('level', '') or ''),
            mode=str(data.get('mode', '') or ''),
            language=str(data.get('language', 'DE') or 'DE'),
            source_url=str(data.get('source_url', data.get('sourceUrl', '')) or ''),
            sheet_name=str(data.get('sheet_name', data.get('sheetName', '')) or ''),
            sheet_index=int(sheet_index) if sheet_index is not None else None,
        )


@dataclass(frozen=True)
class CourseInfo:
    """Group, level and delivery mode of a course"""
    group_name: str
    level: str
    mode: str
    course_type: str
    language: str = 'DE'
    source_url: str = ''
    sheet_name: str = ''

    @property
    def course_name(self):
        return f"{self.group_name} {self.level}" if self.level else self.group_name


@dataclass(frozen=True)
class RosterStudent:
    """Enrolled student bound to its attendance column"""
    id: str
    name: str
    column_index: int


@dataclass(frozen=True)
class ImportContext:
    """Accumulated results of one segmenter pass; every step returns a new context"""
    session_ids: Tuple[str, ...] = ()
    sessions: Tuple[dict, ...] = ()
    teacher_ids: FrozenSet[str] = frozenset()
    month_ids: FrozenSet[str] = frozenset()
    first_date: Optional[date] = None
    last_date: Optional[date] = None
    join_dates: Tuple[Tuple[str, date], ...] = ()

    def with_session(self, session):
        return replace(
            self,
            session_ids=self.session_ids + (session['id'],),
            sessions=self.sessions + (session,),
        )

    def with_teacher(self, teacher_id):
        return replace(self, teacher_ids=self.teacher_ids | {teacher_id})

    def with_month(self, month_id):
        return replace(self, month_ids=self.month_ids | {month_id})

    def with_date(self, session_date):
        first = session_date if self.first_date is None else min(self.first_date, session_date)
        last = session_date if self.last_date is None else max(self.last_date, session_date)
        return replace(self, first_date=first, last_date=last)

    def with_join_date(self, student_id, session_date):
        """Keep the earliest sighting per student"""
        current = dict(self.join_dates)
        if student_id in current and current[student_id] <= session_date:
            return self
        current[student_id] = session_date
        return replace(self, join_dates=tuple(current.items()))

    def join_date_map(self):
        return dict(self.join_dates)


# ===== Persisted records =====

@dataclass
class ContentItem:
    content: str
    notes: str = ''

    def to_dict(self):
        return {"content": self.content, "notes": self.notes}


@dataclass
class AttendanceEntry:
    status: str = UNKNOWN
    comment: str = ''

    def to_dict(self):
        return {"status": self.status, "comment": self.comment}


@dataclass
class Session:
    """Single lesson of a course"""
    course_id: str
    title: str
    date: str = ''                 # "DD.MM.YYYY", empty until known
    start_time: str = ''           # "HH:MM"
    end_time: str = ''
    teacher_id: str = ''
    content: str = ''
    notes: str = ''
    content_items: List[ContentItem] = field(default_factory=list)
    attendance: Dict[str, AttendanceEntry] = field(default_factory=dict)
    month_id: Optional[str] = None
    session_order: int = 0
    duration: float = 0.0
    status: str = ONGOING
    is_long_session: bool = False

    def to_dict(self):
        return {
            "course_id": self.course_id,
            "title": self.title,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "teacher_id": self.teacher_id,
            "content": self.content,
            "notes": self.notes,
            "content_items": [item.to_dict() for item in self.content_items],
            "attendance": {sid: entry.to_dict() for sid, entry in self.attendance.items()},
            "month_id": self.month_id,
            "session_order": self.session_order,
            "duration": self.duration,
            "status": self.status,
            "is_long_session": self.is_long_session,
        }


@dataclass
class Course:
    """Level-specific offering of a group"""
    name: str
    level: str
    group_id: str
    mode: str
    color: str = '#911DD2'
    language: str = 'DE'
    status: str = ONGOING
    start_date: str = ''
    end_date: str = ''
    session_ids: List[str] = field(default_factory=list)
    student_ids: List[str] = field(default_factory=list)
    teacher_ids: List[str] = field(default_factory=list)
    month_ids: List[str] = field(default_factory=list)
    weekdays: dict = field(default_factory=dict)
    source_url: str = ''
    sheet_name: str = ''
    last_updated: str = ''

    def to_dict(self):
        return {
            "name": self.name,
            "level": self.level,
            "group_id": self.group_id,
            "mode": self.mode,
            "color": self.color,
            "language": self.language,
            "status": self.status,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "session_ids": list(self.session_ids),
            "student_ids": list(self.student_ids),
            "teacher_ids": list(self.teacher_ids),
            "month_ids": list(self.month_ids),
            "weekdays": dict(self.weekdays),
            "source_url": self.source_url,
            "sheet_name": self.sheet_name,
            "last_updated": self.last_updated,
        }


@dataclass
class Student:
    name: str
    info: str = ''
    notes: str = ''
    course_ids: List[str] = field(default_factory=list)
    join_dates: Dict[str, str] = field(default_factory=dict)  # course_id -> "DD.MM.YYYY"

    def to_dict(self):
        return {
            "name": self.name,
            "info": self.info,
            "notes": self.notes,
            "course_ids": list(self.course_ids),
            "join_dates": dict(self.join_dates),
        }


@dataclass
class Teacher:
    name: str
    country: str = ''
    course_ids: List[str] = field(default_factory=list)

    def to_dict(self):
        return {"name": self.name, "country": self.country, "course_ids": list(self.course_ids)}


@dataclass
class Month:
    """Calendar month rollup; id is "YYYY-MM" """
    id: str
    name: str
    year: int
    month: int
    session_count: int = 0
    course_ids: List[str] = field(default_factory=list)
    teacher_ids: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "year": self.year,
            "month": self.month,
            "session_count": self.session_count,
            "course_ids": list(self.course_ids),
            "teacher_ids": list(self.teacher_ids),
        }


@dataclass
class Group:
    """Cohort sharing a code such as G1"""
    name: str
    type: str = 'G'
    mode: str = ''
    color: str = '#911DD2'
    course_ids: List[str] = field(default_factory=list)
    created_at: str = ''

    def to_dict(self):
        return {
            "name": self.name,
            "type": self.type,
            "mode": self.mode,
            "color": self.color,
            "course_ids": list(self.course_ids),
            "created_at": self.created_at,
        }
