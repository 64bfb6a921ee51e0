"""schedule_etl.shared

Shared pieces used across the schedule upload stages: exceptions, the run
counters, the canned schedule comments and the run report writer.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ScheduleParseError(ValueError):
    """Raised when the uploaded CSV cannot be turned into schedule rows."""

    def __init__(self, message: str, row_number: int | None = None) -> None:
        self.row_number = row_number
        if row_number is not None:
            message = f"row {row_number}: {message}"
        super().__init__(message)


class ReferenceLookupError(Exception):
    """Raised when instrument, operator or program data cannot be fetched."""


class ResolutionWarning(UserWarning):
    """An instrument or operator code in a row has no active match."""


class PipelineError(Exception):
    """Raised by the orchestrator when a stage fails; names the stage."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Service Obs is in the list but usually entered by hand by the scheduler.
COMMENT_TEMPLATES: tuple[str, ...] = (
    "Daylight Obs",
    "First Night",
    "Service Obs",
    "facility open",
    "facility close",
    "inst. change",
    "Facility",
    "Facility Shutdown",
    "Christmas Eve",
    "Christmas",
    "New Year's Eve",
)

FACILITY_PI_INDEX = 6

LOAD_TYPES = ("partial", "full")
ACCESS_SCOPES = ("public", "private")


# ---------------------------------------------------------------------------
# RunCounters
# ---------------------------------------------------------------------------

@dataclass
class RunCounters:
    rows_read: int = 0
    rows_skipped_partial: int = 0
    programs_built: int = 0
    eng_programs_built: int = 0
    schedule_built: int = 0
    instruments_built: int = 0
    operators_built: int = 0
    duplicates_skipped: int = 0
    instruments_unresolved: int = 0
    instruments_defaulted_tbd: int = 0
    operators_unresolved: int = 0
    bulk_files_written: int = 0
    bulk_write_failures: int = 0
    rows_deleted: int = 0
    rows_inserted: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_read": self.rows_read,
            "rows_skipped_partial": self.rows_skipped_partial,
            "programs_built": self.programs_built,
            "eng_programs_built": self.eng_programs_built,
            "schedule_built": self.schedule_built,
            "instruments_built": self.instruments_built,
            "operators_built": self.operators_built,
            "duplicates_skipped": self.duplicates_skipped,
            "instruments_unresolved": self.instruments_unresolved,
            "instruments_defaulted_tbd": self.instruments_defaulted_tbd,
            "operators_unresolved": self.operators_unresolved,
            "bulk_files_written": self.bulk_files_written,
            "bulk_write_failures": self.bulk_write_failures,
            "rows_deleted": self.rows_deleted,
            "rows_inserted": self.rows_inserted,
            "warnings": self.warnings,
        }


# ---------------------------------------------------------------------------
# Report writer
# ---------------------------------------------------------------------------

def write_run_report(
    run_id: str,
    started_at: str,
    reports_dir: Path,
    dry_run: bool,
    request: dict[str, Any],
    state: str,
    counters: RunCounters,
    messages: list[str],
    error: str | None = None,
) -> Path:
    report = {
        "run_id": run_id,
        "started_at": started_at,
        "finished_at": datetime.utcnow().isoformat(),
        "dry_run": dry_run,
        **request,
        "state": state,
        "error": error,
        "messages": messages,
        "counters": counters.to_dict(),
    }
    report_path = reports_dir / f"{run_id}.json"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str))
    return report_path
