"""
Course importer - runs one spreadsheet through the whole pipeline
"""
import logging
from datetime import datetime

from config import Config
from models import COMPLETED, ONGOING, Course, ImportMetadata
from services.attendance import DEFAULT_POLICY
from services.column_resolver import require_header_row, resolve_columns
from services.course_info import extract_course_info
from services.date_utils import parse_date, today_utc
from services.entity_resolver import (
    add_course_to_group,
    add_course_to_teachers,
    add_teachers_to_months,
    get_or_create_group,
    next_color,
)
from services.merge_engine import merge_course
from services.session_segmenter import segment_sessions
from services.session_utils import detect_weekday_pattern
from services.student_service import apply_join_dates, resolve_roster
from services.validator import validate_sheet
from services.workbook_loader import load_sheet
from utils.exceptions import ValidationFailed

logger = logging.getLogger(__name__)


def find_existing_course(store, group_name, level):
    """(course, latest session date) for a group/level pair, (None, '') when new"""
    for group in store.query_by_field('groups', 'name', group_name):
        for course in store.query_by_field('courses', 'group_id', group['id']):
            if (course.get('level') or '') != (level or ''):
                continue
            dates = [
                d for d in (parse_date(s.get('date'))
                            for s in store.query_by_field('sessions', 'course_id', course['id']))
                if d is not None
            ]
            latest = max(dates).strftime('%d.%m.%Y') if dates else ''
            return course, latest
    return None, ''


def _check_validation(validation, ignore_missing_time_columns):
    if validation.is_valid:
        return
    if ignore_missing_time_columns and validation.has_only_time_errors:
        logger.warning(f"Continuing without time columns: {'; '.join(validation.errors)}")
        return
    raise ValidationFailed(validation)


def _create_course(store, course_info, group):
    course = Course(
        name=course_info.course_name,
        level=course_info.level,
        group_id=group['id'],
        mode=course_info.mode,
        color=next_color(store.get_all_records('courses'), Config.COURSE_COLORS),
        language=course_info.language,
        source_url=course_info.source_url,
        sheet_name=course_info.sheet_name,
        last_updated=datetime.now().isoformat(),
    )
    record = store.create_record('courses', course.to_dict())
    add_course_to_group(store, group, record['id'])
    logger.info(f"Course created: {record['name']} ({record['id']})")
    return record


def _finalize_course(store, course_id, context, roster):
    """Write the pass results onto the course and its back-references"""
    sessions = context.sessions
    completed = bool(sessions) and all(s.get('date') and s.get('status') == COMPLETED for s in sessions)
    teacher_ids = sorted(context.teacher_ids)
    month_ids = sorted(context.month_ids)

    course = store.update_record('courses', course_id, {
        "session_ids": list(context.session_ids),
        "student_ids": list(dict.fromkeys(s.id for s in roster)),
        "teacher_ids": teacher_ids,
        "month_ids": month_ids,
        "start_date": context.first_date.strftime('%d.%m.%Y') if context.first_date else '',
        "end_date": context.last_date.strftime('%d.%m.%Y') if context.last_date else '',
        "status": COMPLETED if completed else ONGOING,
        "weekdays": detect_weekday_pattern(sessions),
        "last_updated": datetime.now().isoformat(),
    })
    add_course_to_teachers(store, teacher_ids, course_id)
    add_teachers_to_months(store, month_ids, teacher_ids)
    apply_join_dates(store, course_id, context.join_date_map())
    return course


def import_course(store, data, filename, metadata=None, ignore_missing_time_columns=False,
                  today=None, policy=DEFAULT_POLICY):
    """Import or merge one spreadsheet

    Returns a dict whose "action" is "created", "merged" or "skipped".
    Validation problems raise ValidationFailed before anything is written;
    the caller may retry with ignore_missing_time_columns when the result
    reports has_only_time_errors.
    """
    today = today or today_utc()
    if isinstance(metadata, dict):
        metadata = ImportMetadata.from_dict(metadata)

    if metadata:
        sheet = load_sheet(data, metadata.sheet_name, metadata.sheet_index)
    else:
        sheet = load_sheet(data)
    validation = validate_sheet(sheet, metadata, today)
    if validation.appears_not_started:
        logger.info(f"Skipping '{filename}' / '{sheet.name}': {validation.warnings[0]}")
        return {"action": "skipped", "filename": filename, "validation": validation.to_dict()}
    _check_validation(validation, ignore_missing_time_columns)

    course_info = extract_course_info(filename, sheet.name, metadata)
    header_index = require_header_row(sheet)
    columns = resolve_columns(sheet.rows[header_index])

    existing, latest = find_existing_course(store, course_info.group_name, course_info.level)
    if existing:
        logger.info(f"Existing course {existing['name']} found, merging '{filename}'")
        merged = merge_course(
            store, existing, sheet, header_index, columns,
            latest_session_date=latest,
            today=today,
            ignore_missing_time_columns=ignore_missing_time_columns,
            policy=policy,
        )
        return {"action": "merged", "filename": filename, "validation": validation.to_dict(), **merged}

    group = get_or_create_group(store, course_info.group_name, course_info.mode)
    course = _create_course(store, course_info, group)
    roster = resolve_roster(store, sheet.rows[header_index], course['id'])
    context = segment_sessions(
        store, sheet, header_index, columns, course['id'], course_info, roster,
        today=today,
        ignore_missing_time_columns=ignore_missing_time_columns,
        policy=policy,
    )
    course = _finalize_course(store, course['id'], context, roster)

    logger.info(
        f"Import of '{filename}' finished: {len(context.session_ids)} sessions, {len(roster)} students"
    )
    return {
        "action": "created",
        "filename": filename,
        "course": course,
        "session_count": len(context.session_ids),
        "student_count": len(roster),
        "validation": validation.to_dict(),
    }
