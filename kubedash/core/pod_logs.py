"""
Pod Log Paging

The kubelet prefixes every line with an RFC 3339 timestamp when logs are
requested with timestamps=true:

    2024-05-01T12:00:00.123456789Z GET /healthz 200

Lines are split into LogEntry objects and paged by time. Lines that carry no
parseable timestamp are skipped rather than failing the page.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from kubedash.core.bucketing import as_utc
from kubedash.models.logs import LogEntry, LogPage

_LINE_PATTERN = re.compile(
    r'^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2}) ?(.*)$',
    re.ASCII,
)


def parse_log_timestamp(base: str, fraction: Optional[str], zone: str) -> Optional[datetime]:
    """Aware UTC datetime from the matched parts; nanoseconds are truncated to microseconds."""
    try:
        ts = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        return None
    if fraction:
        ts = ts.replace(microsecond=int(fraction[:6].ljust(6, "0")))
    if zone == "Z":
        return ts.replace(tzinfo=timezone.utc)

    sign = 1 if zone[0] == "+" else -1
    hours, minutes = int(zone[1:3]), int(zone[4:6])
    if hours > 23 or minutes > 59:
        return None
    offset = timezone(sign * timedelta(hours=hours, minutes=minutes))
    try:
        return ts.replace(tzinfo=offset).astimezone(timezone.utc)
    except OverflowError:
        return None


def parse_log_line(line: str) -> Optional[LogEntry]:
    """Split a timestamped line, or None when it has no usable timestamp."""
    match = _LINE_PATTERN.match(line.rstrip("\r\n"))
    if not match:
        return None
    base, fraction, zone, content = match.groups()
    timestamp = parse_log_timestamp(base, fraction, zone)
    if timestamp is None:
        return None
    return LogEntry(timestamp=timestamp, content=content)


def paginate_log_lines(
    lines: Iterable[str],
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    max_lines: int = 100,
) -> LogPage:
    """
    Collect entries in [start_time, end_time) up to max_lines.

    The first entry that does not fit, because it is at or past end_time or
    the page is full, becomes next_start_time with has_more=True.

    Raises:
        ValueError: If max_lines is not positive
    """
    if max_lines <= 0:
        raise ValueError("max_lines must be positive")
    start_time = as_utc(start_time) if start_time is not None else None
    end_time = as_utc(end_time) if end_time is not None else None

    entries: List[LogEntry] = []
    for line in lines:
        entry = parse_log_line(line)
        if entry is None:
            continue
        if start_time is not None and entry.timestamp < start_time:
            continue
        if len(entries) >= max_lines or (end_time is not None and entry.timestamp >= end_time):
            return LogPage(logs=entries, next_start_time=entry.timestamp, has_more=True)
        entries.append(entry)
    return LogPage(logs=entries)
