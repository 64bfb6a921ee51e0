"""Normalization functions for telescope schedule CSV ingestion.

Value-level rules only: no database access and no knowledge of the header
layout.  Times are interpreted as local wall-clock time throughout.
"""

from __future__ import annotations

import html
import re
from datetime import date, datetime, time, timedelta

_DATE_RE = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(?:hr)?$", re.IGNORECASE)
_SEMESTER_RE = re.compile(r"^\d{4}[AB]$")

DAY_BOUNDARY_HOUR = 6


# ---------------------------------------------------------------------------
# Rule 1: trim
# ---------------------------------------------------------------------------

def trim(value: str | None) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 2: parse_flag
# ---------------------------------------------------------------------------

def parse_flag(value: str | None) -> int:
    """Return 1 when the cell holds an 'X' marker (any case), else 0."""
    return 1 if (trim(value) or "").upper() == "X" else 0


# ---------------------------------------------------------------------------
# Rule 3: extract_program_id
# ---------------------------------------------------------------------------

def extract_program_id(program: str | None) -> int:
    """Read the 3-digit program number at positions 6-8 of a program code.

    '2024A004' -> 4, '2024A950' -> 950.  An empty or all-zero number
    yields 0, the "no program" sentinel.
    """
    digits = (program or "").strip()[5:8].lstrip("0")
    if not digits:
        return 0
    if not digits.isdigit():
        raise ValueError(f"invalid program number in {program!r}")
    return int(digits)


# ---------------------------------------------------------------------------
# Rule 4: local wall-clock timestamps
# ---------------------------------------------------------------------------

def parse_schedule_date(value: str | None) -> date:
    """Parse 'YYYY/MM/DD'.  Raises ValueError on anything else."""
    v = trim(value) or ""
    m = _DATE_RE.match(v)
    if not m:
        raise ValueError(f"unparseable date {value!r} (expected YYYY/MM/DD)")
    return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def parse_schedule_time(value: str | None) -> time:
    """Parse 'HH:MMhr' (the 'hr' suffix is optional)."""
    v = trim(value) or ""
    m = _TIME_RE.match(v)
    if not m:
        raise ValueError(f"unparseable time {value!r} (expected HH:MMhr)")
    return time(int(m.group(1)), int(m.group(2)))


def local_timestamp(moment: datetime) -> int:
    """Unix timestamp of a naive datetime read as local time."""
    return int(moment.timestamp())


def calculate_unix_time(date_value: str | None, time_value: str | None) -> int:
    return local_timestamp(
        datetime.combine(parse_schedule_date(date_value), parse_schedule_time(time_value))
    )


def midnight_timestamp(day: date) -> int:
    """Unix timestamp of local midnight starting ``day``."""
    return local_timestamp(datetime.combine(day, time.min))


# ---------------------------------------------------------------------------
# Rule 5: calculate_log_id
# ---------------------------------------------------------------------------

def calculate_log_id(start_time: int, boundary_hour: int = DAY_BOUNDARY_HOUR) -> int:
    """Return the observing-night identifier for a start timestamp.

    A run starting at or before ``boundary_hour`` on its calendar day
    belongs to the previous night; anything later belongs to the night
    of the same calendar day.  The identifier is that night's local
    midnight.
    """
    start = datetime.fromtimestamp(start_time)
    cutoff = datetime.combine(start.date(), time(boundary_hour))
    if start <= cutoff:
        return midnight_timestamp(start.date() - timedelta(days=1))
    return midnight_timestamp(start.date())


# ---------------------------------------------------------------------------
# Rule 6: semesters
# ---------------------------------------------------------------------------

def semester_for_date(month: int, day: int, year: int) -> str:
    """Return the semester tag containing a calendar date.

    'A' runs Feb 1 - Jul 31 and 'B' runs Aug 1 - Dec 31 of the same year.
    Anything before Feb 1 falls through to the previous year's 'B'.
    """
    moment = date(year, month, day)
    if date(year, 2, 1) <= moment < date(year, 8, 1):
        return f"{year}A"
    if date(year, 8, 1) <= moment < date(year + 1, 1, 1):
        return f"{year}B"
    return f"{year - 1}B"


def semester_from_program(program: str | None) -> str | None:
    """Return the 'YYYYA'/'YYYYB' prefix of a program code, or None."""
    prefix = (trim(program) or "")[:5].upper()
    return prefix if _SEMESTER_RE.match(prefix) else None


def split_semester(semester: str) -> tuple[int, str]:
    """'2024B' -> (2024, 'B')."""
    return int(semester[:4]), semester[4:5]


# ---------------------------------------------------------------------------
# Rule 7: code lists
# ---------------------------------------------------------------------------

def split_codes(value: str | None, separator: str) -> tuple[str, ...]:
    """Split a multi-valued cell, keeping order and empty slots.

    Empty slots are kept so that a position in the list still means the
    same thing (instrument rank, primary operator) after splitting.
    """
    return tuple(part.strip() for part in (value or "").split(separator))


# ---------------------------------------------------------------------------
# Rule 8: escape_text
# ---------------------------------------------------------------------------

def escape_text(value: str | None) -> str:
    """HTML-escape free text the way the web front end stores it."""
    return html.escape(value or "", quote=True).replace("&#x27;", "&#039;")
