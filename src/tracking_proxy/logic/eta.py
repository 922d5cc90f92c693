"""
ETA normalization.

Upstream reports estimated delivery times as epoch seconds, epoch
milliseconds, ISO-8601 strings with or without an offset, or space separated
``YYYY-MM-DD HH:MM:SS`` strings. Everything is converted to ISO-8601 UTC with
millisecond precision (``2023-11-14T22:13:20.000Z``). Values that cannot be
read become ``None`` so a bad ETA never fails a lookup.
"""

import math
import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

# Epoch values below this are seconds, at or above it milliseconds
MILLISECONDS_THRESHOLD = 10**12

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

SPACE_SEPARATED = re.compile(r'^(\d{4}-\d{2}-\d{2}) (\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)')
NAIVE_DATETIME = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?$')
FRACTION = re.compile(r'\.(\d+)')


def format_instant(moment: datetime) -> str:
    """Render an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    moment = moment.astimezone(timezone.utc)
    return f'{moment.year:04d}-{moment:%m-%dT%H:%M:%S}.{moment.microsecond // 1000:03d}Z'


def from_epoch(value: float) -> Optional[str]:
    """Convert epoch seconds or milliseconds to ISO-8601 UTC."""
    if not math.isfinite(value):
        return None

    milliseconds = value * 1000 if value < MILLISECONDS_THRESHOLD else value
    try:
        return format_instant(EPOCH + timedelta(milliseconds=int(milliseconds)))
    except OverflowError:
        return None


def _parse_iso(text: str) -> Optional[datetime]:
    """Parse ISO-8601, treating ``Z`` as UTC and naive results as UTC."""
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    # fromisoformat accepts at most microsecond precision
    text = FRACTION.sub(lambda m: '.' + m.group(1)[:6].ljust(3, '0'), text, count=1)
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _parse_rfc2822(text: str) -> Optional[datetime]:
    try:
        moment = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def from_string(value: str) -> Optional[str]:
    """Convert a loosely formatted date-time string to ISO-8601 UTC."""
    text = value.strip()
    if not text:
        return None

    text = SPACE_SEPARATED.sub(r'\1T\2', text, count=1)
    if NAIVE_DATETIME.match(text):
        text += 'Z'

    moment = _parse_iso(text) or _parse_rfc2822(text)
    if moment is None:
        return None
    try:
        return format_instant(moment)
    except (OverflowError, ValueError):
        return None


def normalize_eta(value: Any) -> Optional[str]:
    """
    Normalize a raw ETA value.

    Args:
        value: Number (epoch seconds or milliseconds), string, or anything else

    Returns:
        ISO-8601 UTC string, or ``None`` when the value is missing or unreadable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return from_epoch(value)
    if isinstance(value, str):
        return from_string(value)
    return None
