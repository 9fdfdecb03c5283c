"""
Incremental merge - applies a revised spreadsheet to an already imported course
"""
import logging
from datetime import datetime

from models import COMPLETED, ONGOING, ImportContext, RosterStudent
from services.attendance import DEFAULT_POLICY, decode_row
from services.date_utils import parse_date, session_status, today_utc
from services.entity_resolver import (
    add_course_to_teachers,
    add_session_to_month,
    add_teachers_to_months,
    get_or_create_month,
    remove_session_from_month,
    resolve_teacher,
    teacher_name_from_cell,
)
from services.session_segmenter import read_session_fields
from services.session_utils import detect_weekday_pattern, is_long_session
from services.student_service import apply_join_dates, find_student
from services.validator import roster_names
from utils.exceptions import MergeNoOpError, SessionIntegrityError

logger = logging.getLogger(__name__)


def collect_candidates(sheet, header_index, columns, today, ignore_missing_time_columns=False):
    """Session descriptors of the sheet keyed by title; nothing is written"""
    candidates = {}
    current = None
    rows = None
    for i in range(header_index + 1, len(sheet.rows)):
        title = sheet.value(i, columns.title).as_text()
        if not title or title == current:
            # continuation rows belong to the open session, if it is kept
            if rows is not None:
                rows.append(i)
            continue
        current = title
        if title in candidates:
            logger.warning(f'Duplicate session title "{title}" at row {i + 1}, keeping the first one')
            rows = None
            continue
        fields = read_session_fields(
            None, sheet, i, columns, today, ignore_missing_time_columns, resolve=False
        )
        rows = [i]
        fields["row_index"] = i
        fields["row_indices"] = rows
        fields["title"] = title
        fields["is_complete"] = bool(
            fields["date"] and fields["start_time"] and fields["end_time"]
            and teacher_name_from_cell(fields["teacher"])
        )
        candidates[title] = fields
    return candidates


def decode_session_attendance(sheet, row_indices, roster, policy=DEFAULT_POLICY):
    """Attendance over all rows of a session; the first decoded cell per student wins"""
    attendance = {}
    for i in row_indices:
        for student_id, entry in decode_row(sheet, i, roster, policy).items():
            attendance.setdefault(student_id, entry)
    return attendance


def course_roster(store, course, header_row):
    """Header-row students bound to the course's existing student records"""
    students = [s for s in (store.get_record_by_id('students', sid) for sid in course.get('student_ids') or []) if s]
    roster = []
    for column_index, name in roster_names(header_row):
        student = find_student(name, students)
        if student:
            roster.append(RosterStudent(id=student['id'], name=name, column_index=column_index))
        else:
            logger.warning(f'Student "{name}" is not enrolled in {course.get("name")}, attendance skipped')
    return roster


def _session_updates(store, session, candidate, today):
    """Minimal set of changed fields for one matched session"""
    needs_update = (
        session.get('status') != COMPLETED
        or not session.get('teacher_id')
        or not session.get('start_time')
        or not session.get('end_time')
        or session.get('date') != candidate["date"]
    )
    if not candidate["is_complete"] or not needs_update:
        return {}

    updates = {}
    for key in ('date', 'start_time', 'end_time'):
        if session.get(key) != candidate[key]:
            updates[key] = candidate[key]

    status = session_status(candidate["date"], today)
    teacher = resolve_teacher(store, candidate["teacher"])
    if teacher is None and status == COMPLETED and not session.get('teacher_id'):
        raise SessionIntegrityError(
            f'Row {candidate["row_index"] + 1}: Session "{candidate["title"]}" on {candidate["date"]} '
            'is completed but has no teacher assigned.'
        )
    if teacher and teacher['id'] != session.get('teacher_id'):
        updates["teacher_id"] = teacher['id']

    if status != session.get('status'):
        updates["status"] = status

    long_session = is_long_session(candidate["start_time"], candidate["end_time"])
    if long_session != session.get('is_long_session'):
        updates["is_long_session"] = long_session
    return updates


def _move_month(store, session, new_date, course_id):
    """Shift the session's month aggregation to the month of new_date"""
    month = get_or_create_month(store, new_date)
    new_month_id = month["id"] if month else None
    old_month_id = session.get('month_id')
    if new_month_id == old_month_id:
        return old_month_id
    if old_month_id:
        remove_session_from_month(store, old_month_id)
    if new_month_id:
        add_session_to_month(store, new_month_id, course_id)
    return new_month_id


def merge_course(store, course, sheet, header_index, columns, latest_session_date='',
                 today=None, ignore_missing_time_columns=False, policy=DEFAULT_POLICY):
    """Update the course's sessions from the sheet; raises MergeNoOpError if nothing changed"""
    today = today or today_utc()
    course_id = course['id']
    candidates = collect_candidates(sheet, header_index, columns, today, ignore_missing_time_columns)
    roster = course_roster(store, course, sheet.rows[header_index])
    sessions = store.query_by_field('sessions', 'course_id', course_id)

    context = ImportContext()
    updated = 0
    matched = set()
    for session in sessions:
        candidate = candidates.get(session.get('title'))
        if candidate is None:
            logger.info(f'Session "{session.get("title")}" has no counterpart in the sheet, left unchanged')
            context = context.with_session(session)
            continue
        matched.add(candidate["title"])

        updates = _session_updates(store, session, candidate, today)
        if "date" in updates:
            updates["month_id"] = _move_month(store, session, updates["date"], course_id)

        session_date = parse_date(updates.get("date", session.get('date')))
        if session_date is not None:
            attendance = decode_session_attendance(sheet, candidate["row_indices"], roster, policy)
            updates_attendance = {sid: entry.to_dict() for sid, entry in attendance.items()}
            for student_id in attendance:
                context = context.with_join_date(student_id, session_date)
        else:
            updates_attendance = None

        if updates:
            updated += 1
            logger.info(f'Session "{session.get("title")}" updated: {sorted(updates)}')
        if updates_attendance is not None:
            updates["attendance"] = updates_attendance
        if updates:
            session = store.update_record('sessions', session['id'], updates) or {**session, **updates}

        if session.get('teacher_id'):
            context = context.with_teacher(session['teacher_id'])
        if session.get('month_id'):
            context = context.with_month(session['month_id'])
        context = context.with_session(session)

    for title in candidates:
        if title not in matched:
            logger.info(f'Sheet session "{title}" does not match an existing session, not imported')

    if updated == 0:
        raise MergeNoOpError(
            f"No sessions were updated for course {course.get('name')}. "
            f"The latest session recorded is on {latest_session_date or 'an unknown date'}."
        )

    all_sessions = context.sessions
    course_status = COMPLETED if all_sessions and all(
        s.get('date') and s.get('status') == COMPLETED for s in all_sessions
    ) else ONGOING
    dates = sorted(d for d in (parse_date(s.get('date')) for s in all_sessions) if d is not None)

    teacher_ids = list(course.get('teacher_ids') or [])
    teacher_ids.extend(t for t in sorted(context.teacher_ids) if t not in teacher_ids)
    month_ids = list(course.get('month_ids') or [])
    month_ids.extend(m for m in sorted(context.month_ids) if m not in month_ids)

    course_updates = {
        "status": course_status,
        "teacher_ids": teacher_ids,
        "month_ids": month_ids,
        "weekdays": detect_weekday_pattern(all_sessions),
        "last_updated": datetime.now().isoformat(),
    }
    if dates:
        course_updates["start_date"] = dates[0].strftime('%d.%m.%Y')
        course_updates["end_date"] = dates[-1].strftime('%d.%m.%Y')
    merged = store.update_record('courses', course_id, course_updates)

    add_course_to_teachers(store, context.teacher_ids, course_id)
    add_teachers_to_months(store, sorted(context.month_ids), context.teacher_ids)
    apply_join_dates(store, course_id, context.join_date_map())

    logger.info(f"Course {course.get('name')} merged: {updated} of {len(sessions)} sessions updated")
    return {"course": merged, "updated_sessions": updated, "total_sessions": len(sessions)}
