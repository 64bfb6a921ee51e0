"""schedule_etl.schedule_rows

Row normalizer: turns one raw CSV row into a typed ``ParsedRow`` using the
shared preparation context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from schedule_etl.normalize import (
    DAY_BOUNDARY_HOUR,
    calculate_log_id,
    calculate_unix_time,
    escape_text,
    extract_program_id,
    parse_flag,
    split_codes,
)
from schedule_etl.prepare import HeaderMap, PreparationContext
from schedule_etl.reference_data import ProgramInfo
from schedule_etl.shared import FACILITY_PI_INDEX, ScheduleParseError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedRow:
    log_id: int
    start_time: int
    end_time: int
    program_id: int
    semester_id: str
    remote_obs: int
    daytime_obs: int
    first_time: int
    facility_open: int
    facility_close: int
    instrument_change: int
    facility_shutdown: int
    support_astronomer_id: str
    project_pi: str
    instrument_codes: tuple[str, ...]
    operator_codes: tuple[str, ...]
    comments: str
    project_members: str = ""
    other_info: str = ""
    pi_name: str = ""
    pi_email: str = ""


def parse_row(
    row: list[str],
    header_map: HeaderMap,
    programs: dict[int, ProgramInfo],
    semester: str,
    comment_templates: tuple[str, ...],
    row_number: int | None = None,
    day_boundary_hour: int = DAY_BOUNDARY_HOUR,
) -> ParsedRow:
    """Parse one data row.  Raises ScheduleParseError on malformed input."""
    width = max(f.csv_index for f in header_map.values() if f.csv_index is not None) + 1
    if len(row) < width:
        # Trailing empty cells are commonly trimmed by spreadsheet exports.
        row = list(row) + [""] * (width - len(row))

    def cell(name: str) -> str:
        return row[header_map[name].csv_index]

    try:
        program_id = extract_program_id(cell("Program"))
        start_time = calculate_unix_time(cell("Start Date"), cell("Start Time"))
        end_time = calculate_unix_time(cell("Finish Date"), cell("Finish Time"))
    except ValueError as exc:
        raise ScheduleParseError(str(exc), row_number=row_number) from exc

    facility_open = parse_flag(cell("Facility Open"))
    facility_close = parse_flag(cell("Facility Close"))
    instrument_change = parse_flag(cell("Instrument Change"))
    facility_shutdown = parse_flag(cell("Shutdown"))

    project_pi = escape_text(cell("PI").strip())
    if facility_open or facility_close or instrument_change or facility_shutdown:
        project_pi = comment_templates[FACILITY_PI_INDEX]

    info = programs.get(program_id)
    if info is None and program_id:
        log.debug("Program %d not in %s program directory", program_id, semester)

    return ParsedRow(
        log_id=calculate_log_id(start_time, day_boundary_hour),
        start_time=start_time,
        end_time=end_time,
        program_id=program_id,
        semester_id=semester,
        remote_obs=parse_flag(cell("Remote")),
        daytime_obs=parse_flag(cell("DayTime")),
        first_time=parse_flag(cell("FirstNight")),
        facility_open=facility_open,
        facility_close=facility_close,
        instrument_change=instrument_change,
        facility_shutdown=facility_shutdown,
        support_astronomer_id=cell("SA").strip(),
        project_pi=project_pi,
        instrument_codes=split_codes(cell("Instrument"), "/"),
        operator_codes=split_codes(cell("TO"), ","),
        comments=cell("Comments").strip(),
        project_members=info.project_members if info else "",
        other_info=info.other_info if info else "",
        pi_name=info.pi_name if info else "",
        pi_email=info.pi_email if info else "",
    )


def parse_rows(lines: list[list[str]], prep: PreparationContext) -> list[ParsedRow]:
    """Parse every data row in file order; the first bad row aborts."""
    return [
        parse_row(
            line,
            prep.header_map,
            prep.programs,
            prep.semester,
            prep.comment_templates,
            row_number=idx,
            day_boundary_hour=prep.day_boundary_hour,
        )
        for idx, line in enumerate(lines, start=1)
    ]
