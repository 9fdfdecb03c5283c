"""
Student roster - matching, enrolment, join dates and duplicate merging
"""
import re
import logging

from models import RosterStudent, Student
from services.date_utils import parse_date
from services.validator import roster_names
from utils.exceptions import RecordNotFoundError

logger = logging.getLogger(__name__)

NAME_SEPARATOR_RE = re.compile(r'[-|]')


def base_name(name):
    """Part of a name before a "-" or "|" annotation, lowercased"""
    return NAME_SEPARATOR_RE.split(name or '', maxsplit=1)[0].strip().lower()


def find_student(name, students):
    """Existing student for a roster name: exact name first, then base-name containment"""
    for student in students:
        if student.get('name') == name:
            return student

    incoming = base_name(name)
    if not incoming:
        return None
    for student in students:
        existing = base_name(student.get('name'))
        if existing and (existing in incoming or incoming in existing):
            return student
    return None


def resolve_roster(store, header_row, course_id):
    """Enrol every header-row student in the course, creating unknown ones"""
    roster = []
    students = store.get_all_records('students')
    for column_index, name in roster_names(header_row):
        student = find_student(name, students)
        if student:
            course_ids = list(student.get('course_ids') or [])
            if course_id not in course_ids:
                course_ids.append(course_id)
                student = store.update_record('students', student['id'], {"course_ids": course_ids}) or student
            logger.info(f'Student "{name}" matched existing "{student.get("name")}"')
        else:
            student = store.create_record('students', Student(name=name, course_ids=[course_id]).to_dict())
            students.append(student)
            logger.info(f"Student created: {name}")
        roster.append(RosterStudent(id=student['id'], name=name, column_index=column_index))
    return roster


def apply_join_dates(store, course_id, join_date_map):
    """Persist first-attendance dates per student; an earlier stored date is kept"""
    updated = 0
    for student_id, first_seen in join_date_map.items():
        student = store.get_record_by_id('students', student_id)
        if not student:
            continue
        join_dates = dict(student.get('join_dates') or {})
        stored = parse_date(join_dates.get(course_id))
        if stored is not None and stored <= first_seen:
            continue
        join_dates[course_id] = first_seen.strftime('%d.%m.%Y')
        store.update_record('students', student_id, {"join_dates": join_dates})
        updated += 1
    if updated:
        logger.info(f"Join dates updated for {updated} students in course {course_id}")
    return updated


def _earliest(first, second):
    a, b = parse_date(first), parse_date(second)
    if a is None:
        return second
    if b is None:
        return first
    return first if a <= b else second


def merge_students(store, primary_id, secondary_id):
    """Fold a duplicate student into the primary one and delete the duplicate"""
    if primary_id == secondary_id:
        raise ValueError("Cannot merge a student with itself")
    primary = store.get_record_by_id('students', primary_id)
    secondary = store.get_record_by_id('students', secondary_id)
    if not primary or not secondary:
        raise RecordNotFoundError(f"Student not found: {primary_id if not primary else secondary_id}")

    course_ids = list(primary.get('course_ids') or [])
    course_ids.extend(c for c in secondary.get('course_ids') or [] if c not in course_ids)

    join_dates = dict(primary.get('join_dates') or {})
    for course_id, value in (secondary.get('join_dates') or {}).items():
        join_dates[course_id] = _earliest(join_dates[course_id], value) if course_id in join_dates else value

    notes = '\n'.join(n for n in (primary.get('notes'), secondary.get('notes')) if n)

    for session in store.get_all_records('sessions'):
        attendance = dict(session.get('attendance') or {})
        if secondary_id not in attendance:
            continue
        entry = attendance.pop(secondary_id)
        attendance.setdefault(primary_id, entry)
        store.update_record('sessions', session['id'], {"attendance": attendance})

    for course_id in course_ids:
        course = store.get_record_by_id('courses', course_id)
        if not course:
            continue
        student_ids = [primary_id if s == secondary_id else s for s in course.get('student_ids') or []]
        student_ids = list(dict.fromkeys(student_ids))
        store.update_record('courses', course_id, {"student_ids": student_ids})

    merged = store.update_record('students', primary_id, {
        "course_ids": course_ids,
        "join_dates": join_dates,
        "notes": notes,
    })
    store.delete_record('students', secondary_id)
    logger.info(f"Student {secondary_id} merged into {primary_id}")
    return merged
