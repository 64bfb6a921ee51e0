"""schedule_etl.csv_tokenizer

Turns an uploaded schedule file into a header row and ordered data rows.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from pathlib import Path

from schedule_etl.shared import ScheduleParseError


@dataclass(frozen=True)
class ScheduleCsv:
    header: list[str]
    lines: list[list[str]]


def tokenize_schedule_csv(source: Path | bytes | str) -> ScheduleCsv:
    """Read a schedule CSV from a path or raw upload bytes.

    Blank lines are dropped; a file without a header or without data rows
    is rejected.
    """
    if isinstance(source, bytes):
        text = source.decode("utf-8-sig")
    else:
        text = Path(source).read_text(encoding="utf-8-sig")

    rows = [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]
    if not rows:
        raise ScheduleParseError("uploaded file is empty")
    header = [cell.strip() for cell in rows[0]]
    lines = rows[1:]
    if not lines:
        raise ScheduleParseError("uploaded file has a header but no schedule rows")
    return ScheduleCsv(header=header, lines=lines)
