import asyncio
import math
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pandas as pd

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def get_timestamp_for_filename(now: Optional[datetime] = None) -> str:
    """
    Returns a sortable UTC timestamp safe for filenames, e.g. '2026-10-18T12-30-45'.
    """
    now = now or datetime.now(timezone.utc)
    return re.sub(r"[:.]", "-", now.isoformat()[:19])


def get_batch_stamp(now: Optional[datetime] = None) -> str:
    """Returns a compact UTC timestamp used as the prefix of imported ids."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d%H%M%S%f")


def is_blank(value: Any) -> bool:
    """True for absent cells: None, NaN/NaT, or an empty string. Spaces are content."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def text_or_default(value: Any, default: str) -> str:
    return default if is_blank(value) else str(value)


def is_plain_filename(name: Any) -> bool:
    """True when name is a single path component, with no directory part."""
    if not isinstance(name, str) or name in ("", ".", ".."):
        return False
    return "/" not in name and "\\" not in name and Path(name).name == name


def parse_int(value: Any) -> Optional[int]:
    """
    Lenient integer parse. Floats truncate and strings use their leading
    integer ('12 bottles' -> 12). Returns None when nothing can be read.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parses a spreadsheet cell into an aware datetime.
    Naive values are taken as UTC. Returns None for blank or unparsable cells.
    """
    if is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        parsed = value.to_pydatetime()
    elif isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        timestamp = pd.to_datetime(value.strip(), errors="coerce")
        if pd.isna(timestamp):
            return None
        parsed = timestamp.to_pydatetime()
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_date(value: Optional[datetime], date_format: str) -> str:
    return value.strftime(date_format) if value else ""


async def delay(seconds: float) -> None:
    """Yields control to the event loop so a host UI can redraw."""
    await asyncio.sleep(seconds)
