"""
Session segmenter - turns sheet rows into persisted sessions
"""
import logging

from models import COMPLETED, ONGOING, ContentItem, ImportContext, Session
from services.attendance import DEFAULT_POLICY, decode_row
from services.date_utils import format_date, format_time, parse_date, session_status, today_utc
from services.entity_resolver import add_session_to_month, get_or_create_month, resolve_teacher
from services.session_utils import calculate_session_duration, is_long_session
from utils.exceptions import SessionIntegrityError

logger = logging.getLogger(__name__)


def read_session_fields(store, sheet, row_index, columns, today, ignore_missing_time_columns=False,
                        resolve=True):
    """Date, times and teacher of a session row

    A future date blanks the date and both times; the planned teacher is kept.
    With resolve=False the raw teacher cell is returned instead of a teacher id.
    """
    date_cell = sheet.value(row_index, columns.date)
    session_date = format_date(date_cell)
    parsed = parse_date(session_date)
    is_future = parsed is not None and parsed > today

    start_time = format_time(sheet.value(row_index, columns.start_time))
    end_time = format_time(sheet.value(row_index, columns.end_time))
    if ignore_missing_time_columns and (columns.start_time == -1 or columns.end_time == -1):
        start_time = end_time = ''
    if is_future:
        session_date, parsed = '', None
        start_time = end_time = ''

    teacher_cell = sheet.value(row_index, columns.teacher)
    teacher = teacher_cell
    if resolve:
        record = resolve_teacher(store, teacher_cell) if columns.teacher != -1 else None
        teacher = record['id'] if record else ''

    return {
        "date": session_date,
        "parsed_date": parsed,
        "start_time": start_time,
        "end_time": end_time,
        "teacher": teacher,
        "is_future": is_future,
    }


def _open_session(store, sheet, row_index, columns, title, today, ignore_missing_time_columns):
    fields = read_session_fields(store, sheet, row_index, columns, today, ignore_missing_time_columns)
    return {
        "row_index": row_index,
        "title": title,
        "content": sheet.value(row_index, columns.content).as_text(),
        "notes": sheet.value(row_index, columns.notes).as_text(),
        "content_items": [],
        "attendance": {},
        **fields,
    }


def _persist(store, draft, order, course_id, course_info, context, today, is_first=False):
    """Write one session and fold its effects into the context

    is_first marks the first session of the course that has both times.
    """
    status = session_status(draft["date"], today) if draft["date"] else ONGOING
    if status == COMPLETED and not draft["teacher"]:
        raise SessionIntegrityError(
            f'Row {draft["row_index"] + 1}: Session "{draft["title"]}" on {draft["date"]} '
            'is completed but has no teacher assigned.'
        )

    month_id = None
    if draft["date"]:
        month = get_or_create_month(store, draft["date"])
        month_id = month["id"] if month else None

    session = Session(
        course_id=course_id,
        title=draft["title"],
        date=draft["date"],
        start_time=draft["start_time"],
        end_time=draft["end_time"],
        teacher_id=draft["teacher"],
        content=draft["content"],
        notes=draft["notes"],
        content_items=draft["content_items"],
        attendance=draft["attendance"],
        month_id=month_id,
        session_order=order,
        duration=calculate_session_duration(
            course_info.course_type, course_info.mode, is_first,
            draft["start_time"], draft["end_time"],
        ),
        status=status,
        is_long_session=is_long_session(draft["start_time"], draft["end_time"]),
    )
    record = store.create_record('sessions', session.to_dict())
    if month_id:
        add_session_to_month(store, month_id, course_id)

    context = context.with_session(record)
    if draft["teacher"]:
        context = context.with_teacher(draft["teacher"])
    if month_id:
        context = context.with_month(month_id)
    if draft["parsed_date"] is not None:
        context = context.with_date(draft["parsed_date"])
        for student_id in draft["attendance"]:
            context = context.with_join_date(student_id, draft["parsed_date"])
    logger.debug(f'Session saved: "{record["title"]}" {record["date"]} ({status})')
    return context


def _is_first_timed(draft, timed_seen):
    return not timed_seen and bool(draft["start_time"] and draft["end_time"])


def segment_sessions(store, sheet, header_index, columns, course_id, course_info, roster,
                     today=None, ignore_missing_time_columns=False, policy=DEFAULT_POLICY):
    """Walk the rows below the header and persist one session per title change

    Rows with an empty (or repeated) title extend the open session: their
    content becomes a content item and their attendance cells are read as
    well. Returns the ImportContext of the pass.
    """
    today = today or today_utc()
    context = ImportContext()
    draft = None
    order = 0
    timed_seen = False

    for i in range(header_index + 1, len(sheet.rows)):
        title = sheet.value(i, columns.title).as_text()
        if title and (draft is None or title != draft["title"]):
            if draft is not None:
                is_first = _is_first_timed(draft, timed_seen)
                context = _persist(store, draft, order, course_id, course_info, context, today, is_first)
                timed_seen = timed_seen or is_first
                order += 1
            draft = _open_session(store, sheet, i, columns, title, today, ignore_missing_time_columns)
        elif draft is None:
            continue
        else:
            content = sheet.value(i, columns.content).as_text()
            if content:
                draft["content_items"].append(
                    ContentItem(content=content, notes=sheet.value(i, columns.notes).as_text())
                )

        for student_id, entry in decode_row(sheet, i, roster, policy).items():
            draft["attendance"].setdefault(student_id, entry)

    if draft is not None:
        is_first = _is_first_timed(draft, timed_seen)
        context = _persist(store, draft, order, course_id, course_info, context, today, is_first)

    logger.info(
        f"Segmented {len(context.session_ids)} sessions for course {course_id}: "
        f"{len(context.teacher_ids)} teachers, {len(context.month_ids)} months"
    )
    return context
