"""
Course info extractor - group code, level and delivery mode
"""
import re
import logging

from models import CourseInfo
from utils.exceptions import CourseInfoError

logger = logging.getLogger(__name__)

# G = group class, A = pronunciation training, M = one-on-one, P = exam preparation
GROUP_RE = re.compile(r'([GAMP])\s*(\d+)', re.IGNORECASE)
DETAILED_LEVEL_RE = re.compile(r'[AB][0-9]\.[0-9]', re.IGNORECASE)
COARSE_LEVEL_RE = re.compile(r'[AB][0-9]', re.IGNORECASE)

NO_LEVEL_TYPES = {'A'}
MODES = {'online': 'Online', 'offline': 'Offline'}


def extract_group_name(*texts):
    """First group code found in the given texts, e.g. "G 42" -> "G42" """
    for text in texts:
        if not text:
            continue
        m = GROUP_RE.search(text)
        if m:
            return f"{m.group(1).upper()}{m.group(2)}"
    return ''


def extract_level(*texts):
    """Detailed level (A1.2) preferred over coarse level (A1)"""
    for pattern in (DETAILED_LEVEL_RE, COARSE_LEVEL_RE):
        for text in texts:
            if not text:
                continue
            m = pattern.search(text)
            if m:
                return m.group(0).upper()
    return ''


def extract_mode(*texts):
    for text in texts:
        lowered = (text or '').lower()
        if 'online' in lowered:
            return 'Online'
        if 'offline' in lowered:
            return 'Offline'
    return ''


def _strip_group(text, group_name):
    if not text:
        return ''
    return GROUP_RE.sub(' ', text, count=1) if group_name else text


def _check_required(group_name, level, mode):
    if not group_name:
        raise CourseInfoError(
            "Group name (e.g., G1, A2, M3, P4) not found in the filename or sheet. "
            "Please rename your file to include a valid group code."
        )
    course_type = group_name[0].upper()
    if course_type not in NO_LEVEL_TYPES and not level:
        raise CourseInfoError(
            f"Level information (e.g., A1, B2.1) not found for {group_name}. "
            "Please include level information in the filename."
        )
    if not mode:
        raise CourseInfoError(
            f"Course mode (Online/Offline) not specified for {group_name}. "
            "Please include 'Online' or 'Offline' in the filename."
        )
    return course_type


def extract_course_info(filename, sheet_name='', metadata=None):
    """Derive CourseInfo from caller metadata, or from filename and sheet name"""
    if metadata is not None:
        group_name = re.sub(r'\s+', '', metadata.group_name or '').upper()
        level = (metadata.level or '').strip().upper()
        mode = MODES.get((metadata.mode or '').strip().lower(), '')
        course_type = _check_required(group_name, level, mode)
        if course_type in NO_LEVEL_TYPES:
            level = ''
        logger.info(f"Course info from metadata: {group_name} {level} {mode}")
        return CourseInfo(
            group_name=group_name,
            level=level,
            mode=mode,
            course_type=course_type,
            language=metadata.language or 'DE',
            source_url=metadata.source_url,
            sheet_name=metadata.sheet_name or sheet_name,
        )

    group_name = extract_group_name(filename, sheet_name)
    level = ''
    if group_name and group_name[0] not in NO_LEVEL_TYPES:
        level = extract_level(_strip_group(filename, group_name), _strip_group(sheet_name, group_name))
    mode = extract_mode(filename, sheet_name)
    course_type = _check_required(group_name, level, mode)

    logger.info(f"Course info from '{filename}': {group_name} {level} {mode}")
    return CourseInfo(
        group_name=group_name,
        level=level,
        mode=mode,
        course_type=course_type,
        sheet_name=sheet_name or '',
    )
