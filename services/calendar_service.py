"""
FullCalendar event formatting and course statistics
"""
from collections import defaultdict

from models import ABSENT, COMPLETED, PRESENT, SICK, TECHNICAL_ISSUES
from services.date_utils import date_sort_key, parse_date


def _iso_date(date_string):
    parsed = parse_date(date_string)
    return parsed.isoformat() if parsed else ''


def format_events(courses, sessions, teachers=None, course_id_filter=None):
    """Dated sessions -> FullCalendar event JSON"""
    teacher_names = {t['id']: t.get('name', '') for t in teachers or []}
    course_map = {c['id']: c for c in courses}
    events = []

    for session in sessions:
        cid = session.get('course_id', '')
        if course_id_filter and cid != course_id_filter:
            continue
        course = course_map.get(cid)
        day = _iso_date(session.get('date'))
        if course is None or not day:
            continue

        teacher = teacher_names.get(session.get('teacher_id'), '')
        title = f"({teacher}) {session.get('title', '')}" if teacher else session.get('title', '')
        event = {
            "id": session.get('id'),
            "title": title,
            "color": course.get('color', '#911DD2'),
            "textColor": "#ffffff",
            "extendedProps": {
                "course_id": cid,
                "course_name": course.get('name', ''),
                "teacher": teacher,
                "hours": session.get('duration', 0),
                "status": session.get('status'),
                "is_long_session": session.get('is_long_session', False),
            },
        }
        start_time = session.get('start_time')
        end_time = session.get('end_time')
        if start_time and end_time:
            event["start"] = f"{day}T{start_time}:00"
            event["end"] = f"{day}T{end_time}:00"
        else:
            # time unknown
            event["start"] = day
            event["allDay"] = True
        events.append(event)

    return events


def get_course_stats(courses, sessions, teachers=None):
    """Per-course statistics"""
    teacher_names = {t['id']: t.get('name', '') for t in teachers or []}
    by_course = defaultdict(list)
    for session in sessions:
        by_course[session.get('course_id')].append(session)

    stats = []
    for course in courses:
        course_sessions = by_course.get(course.get('id'), [])
        completed = [s for s in course_sessions if s.get('status') == COMPLETED]
        total_hours = sum(s.get('duration', 0) for s in completed)

        # sessions per teacher
        teacher_counts = defaultdict(int)
        for s in course_sessions:
            name = teacher_names.get(s.get('teacher_id'), '')
            if name:
                teacher_counts[name] += 1

        # attendance rate over decided entries
        status_counts = defaultdict(int)
        for s in completed:
            for entry in (s.get('attendance') or {}).values():
                status_counts[entry.get('status')] += 1
        decided = sum(status_counts[k] for k in (PRESENT, ABSENT, SICK, TECHNICAL_ISSUES))
        rate = round(status_counts[PRESENT] / decided * 100, 1) if decided else None

        dates = sorted((s.get('date') for s in course_sessions if s.get('date')), key=date_sort_key)
        date_range = f"{dates[0]} ~ {dates[-1]}" if dates else ""

        stats.append({
            "course_id": course.get('id'),
            "course_name": course.get('name'),
            "color": course.get('color'),
            "status": course.get('status'),
            "total_sessions": len(course_sessions),
            "completed_sessions": len(completed),
            "total_hours": total_hours,
            "attendance_rate": rate,
            "date_range": date_range,
            "teachers": dict(teacher_counts),
            "students": len(course.get('student_ids') or []),
        })

    return stats
