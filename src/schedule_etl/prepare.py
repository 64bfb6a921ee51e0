"""schedule_etl.prepare

Preparation stage: everything computed once per upload and shared by every
row: the cutoff timestamp, the semester, the header map and the reference
data snapshots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from schedule_etl.normalize import (
    DAY_BOUNDARY_HOUR,
    midnight_timestamp,
    parse_schedule_date,
    semester_for_date,
    semester_from_program,
    split_semester,
)
from schedule_etl.reference_data import (
    InstrumentList,
    OperatorList,
    ProgramInfo,
    ReferenceGateway,
)
from schedule_etl.shared import (
    ACCESS_SCOPES,
    COMMENT_TEMPLATES,
    LOAD_TYPES,
    ReferenceLookupError,
    ScheduleParseError,
)

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Column contracts
# ---------------------------------------------------------------------------

# Canonical CSV column -> ParsedRow field it feeds.
CANONICAL_COLUMNS: dict[str, str] = {
    "Program": "program_id",
    "PI": "project_pi",
    "Instrument": "instrument_codes",
    "Start Date": "start_time",
    "Start Time": "start_time",
    "Finish Date": "end_time",
    "Finish Time": "end_time",
    "DayTime": "daytime_obs",
    "Remote": "remote_obs",
    "Facility Open": "facility_open",
    "Facility Close": "facility_close",
    "Instrument Change": "instrument_change",
    "Shutdown": "facility_shutdown",
    "TO": "operator_codes",
    "SA": "support_astronomer_id",
    "FirstNight": "first_time",
    "Comments": "comments",
}

# Fields filled in by the pipeline rather than read from the file.
DERIVED_FIELDS: dict[str, str] = {
    "logID": "log_id",
    "semesterID": "semester_id",
    "PIEmail": "pi_email",
    "PIName": "pi_name",
    "otherInfo": "other_info",
    "projectMembers": "project_members",
}


@dataclass(frozen=True)
class HeaderField:
    csv_index: int | None
    db_field: str


HeaderMap = dict[str, HeaderField]


def build_header_map(header: list[str]) -> HeaderMap:
    """Map each canonical column to its position in the uploaded header.

    Raises ScheduleParseError listing every canonical column that is absent.
    """
    positions: dict[str, int] = {}
    for idx, name in enumerate(header):
        positions.setdefault(name.strip(), idx)

    missing = [name for name in CANONICAL_COLUMNS if name not in positions]
    if missing:
        raise ScheduleParseError(f"missing required columns: {missing}")

    header_map: HeaderMap = {
        name: HeaderField(positions[name], db_field)
        for name, db_field in CANONICAL_COLUMNS.items()
    }
    for name, db_field in DERIVED_FIELDS.items():
        header_map[name] = HeaderField(None, db_field)
    return header_map


# ---------------------------------------------------------------------------
# PreparationContext
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PreparationContext:
    file_load_mode: bool
    load_type: str
    access: str
    cutoff_timestamp: int
    semester: str
    comment_templates: tuple[str, ...]
    header_map: HeaderMap
    instruments: InstrumentList
    operators: OperatorList
    programs: dict[int, ProgramInfo]
    day_boundary_hour: int = DAY_BOUNDARY_HOUR

    @property
    def is_partial(self) -> bool:
        return self.load_type == "partial"


def derive_semester(program: str, header_map: HeaderMap, first_row: list[str]) -> str:
    """Semester tag from the program code, else from the first Start Date."""
    semester = semester_from_program(program)
    if semester is not None:
        return semester
    start_idx = header_map["Start Date"].csv_index
    try:
        start = parse_schedule_date(first_row[start_idx])
    except (IndexError, ValueError) as exc:
        raise ScheduleParseError(
            f"cannot derive semester from program {program!r}: {exc}", row_number=1
        ) from exc
    semester = semester_for_date(start.month, start.day, start.year)
    log.warning(
        "Program %r has no semester prefix; using %s from start date %s",
        program, semester, start.isoformat(),
    )
    return semester


def prepare_context(
    header: list[str],
    first_row: list[str],
    load_type: str,
    access: str,
    file_load_mode: bool,
    today: date,
    gateway: ReferenceGateway,
    day_boundary_hour: int = DAY_BOUNDARY_HOUR,
) -> PreparationContext:
    """Build the run-wide context from the header and the first data row."""
    load_type = load_type.lower()
    access = access.lower()
    if load_type not in LOAD_TYPES:
        raise ValueError(f"load_type must be one of {LOAD_TYPES}, got {load_type!r}")
    if access not in ACCESS_SCOPES:
        raise ValueError(f"access must be one of {ACCESS_SCOPES}, got {access!r}")

    header_map = build_header_map(header)
    program_idx = header_map["Program"].csv_index
    if program_idx >= len(first_row):
        raise ScheduleParseError("first row has no Program value", row_number=1)
    semester = derive_semester(first_row[program_idx], header_map, first_row)
    year, semester_code = split_semester(semester)

    try:
        instruments = gateway.fetch_instruments()
        operators = gateway.fetch_operators()
        programs = gateway.fetch_programs(year, semester_code)
    except ReferenceLookupError:
        raise
    except Exception as exc:
        raise ReferenceLookupError(f"reference data unavailable: {exc}") from exc

    return PreparationContext(
        file_load_mode=file_load_mode,
        load_type=load_type,
        access=access,
        cutoff_timestamp=midnight_timestamp(today),
        semester=semester,
        comment_templates=COMMENT_TEMPLATES,
        header_map=header_map,
        instruments=instruments,
        operators=operators,
        programs=programs,
        day_boundary_hour=day_boundary_hour,
    )
