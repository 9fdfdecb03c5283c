"""
Date and time helpers for spreadsheet values

Spreadsheet dates arrive either as "DD.MM.YYYY" text or as serial day
numbers. Serials count from 1899-12-30, which absorbs the phantom
29.02.1900 of the 1900 date system.
"""
import re
import logging
from datetime import date, datetime, timedelta, timezone

from config import Config
from models import CellValue, COMPLETED, ONGOING

logger = logging.getLogger(__name__)

EXCEL_EPOCH = date(1899, 12, 30)
MAX_EXCEL_SERIAL = 2958465  # 31.12.9999

DATE_RE = re.compile(r'^\d{2}\.\d{2}\.\d{4}$')
TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})(?::\d{2})?$')


def today_utc():
    """Today's date at UTC midnight"""
    return datetime.now(timezone.utc).date()


def excel_serial_to_date(serial):
    """Serial day number -> date, None when out of range"""
    try:
        serial = float(serial)
    except (TypeError, ValueError):
        return None
    if serial < 1 or serial > MAX_EXCEL_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(days=int(serial))


def date_to_excel_serial(value):
    """date/datetime -> serial number (time of day kept as fraction)"""
    if isinstance(value, datetime):
        delta = value - datetime(EXCEL_EPOCH.year, EXCEL_EPOCH.month, EXCEL_EPOCH.day)
        return delta.days + delta.seconds / 86400
    return float((value - EXCEL_EPOCH).days)


def _parse_text_date(text):
    text = text.strip()
    if not DATE_RE.match(text):
        return None
    day, month, year = (int(part) for part in text.split('.'))
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value):
    """"DD.MM.YYYY" text, serial number, CellValue or date -> date (None if not a date)"""
    if value is None:
        return None
    if isinstance(value, CellValue):
        if value.kind == CellValue.TEXT:
            return _parse_text_date(value.value)
        if value.is_numeric:
            return excel_serial_to_date(value.value)
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return excel_serial_to_date(value)
    if isinstance(value, str):
        return _parse_text_date(value)
    return None


def format_date(value):
    """Any supported date encoding -> "DD.MM.YYYY"; empty string outside 2020-2030 or when malformed"""
    parsed = parse_date(value)
    if parsed is None:
        return ''
    if parsed.year < Config.MIN_SESSION_YEAR or parsed.year > Config.MAX_SESSION_YEAR:
        logger.debug(f"Date outside accepted years: {parsed.isoformat()}")
        return ''
    return parsed.strftime('%d.%m.%Y')


def format_time(value):
    """Time text, day fraction or CellValue -> "HH:MM" (empty string if unknown)"""
    if isinstance(value, CellValue):
        if value.is_empty:
            return ''
        value = value.value
    if value is None or value == '':
        return ''
    if isinstance(value, bool):
        return ''
    if isinstance(value, (int, float)):
        fraction = float(value) % 1 if value >= 1 else float(value)
        total_minutes = int(round(fraction * 24 * 60)) % (24 * 60)
        return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"
    if isinstance(value, str):
        m = TIME_RE.match(value.strip())
        if not m:
            return value.strip() if ':' in value else ''
        hours, minutes = int(m.group(1)), int(m.group(2))
        return f"{hours:02d}:{minutes:02d}"
    return ''


def time_to_minutes(value):
    """"HH:MM" -> minutes since midnight, None when unparseable"""
    if not value:
        return None
    m = TIME_RE.match(str(value).strip())
    if not m:
        return None
    return int(m.group(1)) * 60 + int(m.group(2))


def is_future_date(value, today=None):
    parsed = parse_date(value)
    if parsed is None:
        return False
    return parsed > (today or today_utc())


def is_current_month(value, today=None):
    parsed = parse_date(value)
    if parsed is None:
        return False
    today = today or today_utc()
    return parsed.year == today.year and parsed.month == today.month


def is_before_min_year(value):
    parsed = parse_date(value)
    return parsed is not None and parsed.year < Config.MIN_SESSION_YEAR


def session_status(date_string, today=None):
    """Completed once the session date is today or earlier"""
    parsed = parse_date(date_string)
    if parsed is None:
        return ONGOING
    return COMPLETED if parsed <= (today or today_utc()) else ONGOING


def date_sort_key(date_string):
    """Sort key for "DD.MM.YYYY" strings; undated values sort last"""
    parsed = parse_date(date_string)
    return parsed or date.max
