#!/usr/bin/env python3
"""
Tolerant value parsing shared by every annexure processor.
None of these functions raise: malformed numbers become 0 and unparseable dates become "now".
"""

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)

SPREADSHEET_EPOCH = datetime(1899, 12, 30)

_NUMBER_STRIP = re.compile(r'[^\d.\-]')
_SERIAL_PATTERN = re.compile(r'^\d+(\.\d+)?$')
_WHITESPACE = re.compile(r'\s+')


def is_blank(value: Any) -> bool:
    """True for None, NaN and empty/whitespace-only strings"""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def normalize_text(value: Any) -> str:
    """Lower-cased, trimmed, whitespace-collapsed projection used for all matching"""
    if is_blank(value):
        return ""
    return _WHITESPACE.sub(' ', str(value).strip().lower())


def parse_number(value: Any) -> float:
    """Strip everything except digits, '.' and '-' and parse as float; 0 on failure"""
    if is_blank(value) or isinstance(value, (datetime, date)):
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0

    cleaned = _NUMBER_STRIP.sub('', str(value))
    try:
        number = float(cleaned)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_percentage(value: Any) -> float:
    """Values <= 1 are fractions and get scaled to percent; larger values are already percent"""
    number = parse_number(value)
    return number * 100 if number <= 1 else number


def serial_to_datetime(serial: float) -> datetime:
    """Convert a spreadsheet date serial (days since 1899-12-30) to a datetime"""
    return SPREADSHEET_EPOCH + timedelta(days=serial)


def parse_date(value: Any) -> datetime:
    """Parse a date-like cell value, falling back to now for anything unrecognisable"""
    parsed = parse_optional_date(value)
    if parsed is None:
        logger.warning(f"Unparseable date value {value!r}, defaulting to now")
        return datetime.now()
    return parsed


def parse_optional_date(value: Any) -> Optional[datetime]:
    """Like parse_date but returns None instead of defaulting"""
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _serial_or_none(float(value))

    text = str(value).strip()
    if _SERIAL_PATTERN.match(text):
        return _serial_or_none(float(text))

    parsed = pd.to_datetime(text, errors='coerce', dayfirst=False)
    if pd.isna(parsed):
        parsed = pd.to_datetime(text, errors='coerce', dayfirst=True)
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime().replace(tzinfo=None)


def _serial_or_none(serial: float) -> Optional[datetime]:
    try:
        return serial_to_datetime(serial)
    except OverflowError:
        return None
