"""
Session duration rules and weekday pattern analysis
"""
import logging
from collections import Counter
from datetime import timedelta

from config import Config
from services.date_utils import parse_date, time_to_minutes

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

# Billable hours per group type (and mode where it matters)
GROUP_ONLINE_HOURS = 1.5
GROUP_ONLINE_LONG_FIRST_HOURS = 2.0
MODE_HOURS = {
    ('G', 'Offline'): 2.5,
}
TYPE_HOURS = {
    'A': 1.5,
    'P': 1.5,
    'M': 1.25,
}
DEFAULT_HOURS = 1.5


def session_minutes(start_time, end_time):
    """Wall-clock minutes between two "HH:MM" values, wrapping past midnight"""
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    if start is None or end is None:
        return None
    minutes = end - start
    if minutes < 0:
        minutes += 24 * 60
    return minutes


def is_long_session(start_time, end_time):
    """At least 1h50m"""
    minutes = session_minutes(start_time, end_time)
    return minutes is not None and minutes >= Config.LONG_SESSION_MINUTES


def count_long_sessions(sessions):
    if not sessions:
        return 0
    return sum(1 for s in sessions if is_long_session(s.get('start_time'), s.get('end_time')))


def calculate_session_duration(group_type, mode, is_first_session, start_time, end_time):
    """Billable hours of one session"""
    group_type = (group_type or '').upper()
    if group_type == 'G' and mode == 'Online':
        if is_first_session and is_long_session(start_time, end_time):
            return GROUP_ONLINE_LONG_FIRST_HOURS
        return GROUP_ONLINE_HOURS
    if (group_type, mode) in MODE_HOURS:
        return MODE_HOURS[(group_type, mode)]
    return TYPE_HOURS.get(group_type, DEFAULT_HOURS)


def detect_weekday_pattern(sessions):
    """Recurring weekdays, off-pattern sessions and expected days without a session

    A weekday belongs to the pattern when it occurs in at least
    PATTERN_MIN_RATE of the weeks the course spans and at least
    PATTERN_MIN_OCCURRENCES times. Without a pattern every dated session is
    an outlier and no missing days are inferred.
    """
    dated = []
    for session in sessions:
        parsed = parse_date(session.get('date'))
        if parsed is not None:
            dated.append((session, parsed))

    result = {"pattern": [], "outliers": [], "missing_days": []}
    if not dated:
        return result

    counts = Counter(d.weekday() for _, d in dated)
    first = min(d for _, d in dated)
    last = max(d for _, d in dated)
    total_weeks = (last - first).days // 7 + 1

    pattern_days = sorted(
        day for day, count in counts.items()
        if count >= Config.PATTERN_MIN_OCCURRENCES and count / total_weeks >= Config.PATTERN_MIN_RATE
    )
    result["pattern"] = [WEEKDAY_NAMES[day] for day in pattern_days]
    for session, d in dated:
        if d.weekday() not in pattern_days:
            result["outliers"].append({
                "id": session.get('id', ''),
                "title": session.get('title', ''),
                "date": d.strftime('%d.%m.%Y'),
                "weekday": WEEKDAY_NAMES[d.weekday()],
            })
    if not pattern_days:
        logger.debug("No recurring weekday found")
        return result

    session_dates = {d for _, d in dated}
    day = first
    while day <= last:
        if day.weekday() in pattern_days and day not in session_dates:
            result["missing_days"].append({
                "date": day.strftime('%d.%m.%Y'),
                "weekday": WEEKDAY_NAMES[day.weekday()],
            })
        day += timedelta(days=1)

    logger.debug(
        f"Weekday pattern {result['pattern']}: "
        f"{len(result['outliers'])} outliers, {len(result['missing_days'])} missing days"
    )
    return result
