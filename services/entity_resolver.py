"""
Entity resolver - teachers, months and groups
"""
import re
import random
import logging
import unicodedata
from datetime import datetime

from config import Config
from models import CellValue, Group, Month, Teacher
from services.date_utils import parse_date

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

GROUP_TYPES = {
    'G': 'group class',
    'A': 'pronunciation training',
    'M': 'one-on-one',
    'P': 'exam preparation',
}


def normalize_teacher_name(name):
    """Comparison key: trimmed, lowercase, accents stripped, single spaces"""
    text = unicodedata.normalize('NFD', str(name or '').strip().lower())
    text = ''.join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r'\s+', ' ', text).strip()


def teacher_name_from_cell(value):
    """Teacher cell -> usable name, or '' when the cell holds no name"""
    if isinstance(value, CellValue):
        if value.is_empty:
            return ''
        if value.is_numeric:
            number = value.value
            if 0 < number < 1:
                logger.warning(f"Ignoring time value {number} in teacher column")
                return ''
            if 40000 < number < 50000:
                logger.warning(f"Ignoring date value {number} in teacher column")
                return ''
        return value.as_text()
    return str(value or '').strip()


def resolve_teacher(store, raw_name):
    """Reuse the teacher with the same normalized name or create one; None for blank names"""
    name = teacher_name_from_cell(raw_name)
    key = normalize_teacher_name(name)
    if not key or re.fullmatch(r'\d+(\.\d+)?', key):
        if name:
            logger.warning(f'Rejected invalid teacher name "{name}"')
        return None

    for teacher in store.get_all_records('teachers'):
        if normalize_teacher_name(teacher.get('name')) == key:
            return teacher

    cleaned = re.sub(r'\s+', ' ', name.strip())
    teacher = store.create_record('teachers', Teacher(name=cleaned).to_dict())
    logger.info(f"Teacher created: {cleaned}")
    return teacher


def month_id_for(date_string):
    parsed = parse_date(date_string)
    if parsed is None:
        return None
    return f"{parsed.year}-{parsed.month:02d}"


def get_or_create_month(store, date_string):
    """Month record of a session date, created with zero counters on first use"""
    month_id = month_id_for(date_string)
    if month_id is None:
        return None
    existing = store.get_record_by_id('months', month_id)
    if existing:
        return existing

    parsed = parse_date(date_string)
    month = Month(
        id=month_id,
        name=f"{MONTH_NAMES[parsed.month - 1]} {parsed.year}",
        year=parsed.year,
        month=parsed.month,
    )
    logger.info(f"Month created: {month_id}")
    return store.set_record('months', month_id, month.to_dict())


def add_session_to_month(store, month_id, course_id):
    """Count one more session in the month and link the course"""
    month = store.get_record_by_id('months', month_id)
    if not month:
        return None
    course_ids = list(month.get('course_ids') or [])
    if course_id not in course_ids:
        course_ids.append(course_id)
    return store.update_record('months', month_id, {
        "course_ids": course_ids,
        "session_count": (month.get('session_count') or 0) + 1,
    })


def remove_session_from_month(store, month_id):
    month = store.get_record_by_id('months', month_id)
    if not month:
        return None
    return store.update_record('months', month_id, {
        "session_count": max(0, (month.get('session_count') or 0) - 1),
    })


def add_teachers_to_months(store, month_ids, teacher_ids):
    for month_id in month_ids:
        month = store.get_record_by_id('months', month_id)
        if not month:
            continue
        merged = list(month.get('teacher_ids') or [])
        merged.extend(t for t in sorted(teacher_ids) if t not in merged)
        store.update_record('months', month_id, {"teacher_ids": merged})


def add_course_to_teachers(store, teacher_ids, course_id):
    for teacher_id in teacher_ids:
        teacher = store.get_record_by_id('teachers', teacher_id)
        if not teacher:
            continue
        course_ids = list(teacher.get('course_ids') or [])
        if course_id not in course_ids:
            course_ids.append(course_id)
            store.update_record('teachers', teacher_id, {"course_ids": course_ids})


def next_color(records, palette):
    """Random pick among the least-used palette colors"""
    usage = {color: 0 for color in palette}
    for record in records:
        color = record.get('color')
        if color in usage:
            usage[color] += 1
    least = min(usage.values())
    return random.choice([c for c in palette if usage[c] == least])


def get_or_create_group(store, group_name, mode=''):
    """Group record for a code such as G1"""
    name = (group_name or '').strip()
    if not name:
        raise ValueError(
            "Group name is empty. Import cannot proceed without a valid group name (e.g., G1, A2)."
        )
    for group in store.query_by_field('groups', 'name', name):
        return group

    group_type = name[0].upper() if name[0].upper() in GROUP_TYPES else 'G'
    group = Group(
        name=name,
        type=group_type,
        mode=mode,
        color=next_color(store.get_all_records('groups'), Config.GROUP_COLORS),
        created_at=datetime.now().isoformat(),
    )
    logger.info(f"Group created: {name} ({GROUP_TYPES[group_type]}, {mode})")
    return store.create_record('groups', group.to_dict())


def add_course_to_group(store, group, course_id):
    course_ids = list(group.get('course_ids') or [])
    if course_id not in course_ids:
        course_ids.append(course_id)
        store.update_record('groups', group['id'], {"course_ids": course_ids})
