"""schedule_etl.build_inserts

SQL/record builder: turns parsed rows into the five insert collections
(program, eng_program, schedule, instrument, operator).

Per row, in order:
  1. program record (always, first occurrence of a programID wins)
  2. eng_program record for programIDs 900-999
  3. partial loads stop here for nights before the cutoff
  4. schedule record
  5. instrument records (rank = position, unknown codes fall back to TBD)
  6. operator records (first = primary, the rest overlap)
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field

from schedule_etl.prepare import PreparationContext
from schedule_etl.records import (
    EngProgramRecord,
    InsertArtifact,
    InstrumentRecord,
    LogicalRecord,
    OperatorRecord,
    ProgramRecord,
    RecordFormat,
    ScheduleRecord,
    record_format,
)
from schedule_etl.reference_data import InstrumentList, OperatorList
from schedule_etl.schedule_rows import ParsedRow
from schedule_etl.shared import ResolutionWarning, RunCounters

log = logging.getLogger(__name__)

ENG_PROGRAM_RANGE = range(900, 1000)
OPERATOR_UNSET_TIME = -1


# ---------------------------------------------------------------------------
# InsertSet
# ---------------------------------------------------------------------------

@dataclass
class InsertSet:
    program: dict[int, InsertArtifact] = field(default_factory=dict)
    eng_program: dict[int, InsertArtifact] = field(default_factory=dict)
    schedule: list[InsertArtifact] = field(default_factory=list)
    instrument: list[InsertArtifact] = field(default_factory=list)
    operator: list[InsertArtifact] = field(default_factory=list)

    def family(self, name: str) -> list[InsertArtifact]:
        """Artifacts of one family as a list, in load order."""
        value = getattr(self, name)
        return list(value.values()) if isinstance(value, dict) else list(value)


class _UniqueRecords:
    """Ordered collection that drops exact duplicates by value."""

    def __init__(self, family: str, counters: RunCounters) -> None:
        self._family = family
        self._counters = counters
        self._seen: set[LogicalRecord] = set()
        self.records: list[LogicalRecord] = []

    def add(self, record: LogicalRecord) -> bool:
        if record in self._seen:
            log.debug("Duplicate %s record skipped: %s", self._family, record)
            self._counters.duplicates_skipped += 1
            return False
        self._seen.add(record)
        self.records.append(record)
        return True


def _warn(counters: RunCounters, message: str) -> None:
    """Record an unresolved code and issue it as a ResolutionWarning."""
    counters.warnings.append(message)
    warnings.warn(ResolutionWarning(message), stacklevel=3)


# ---------------------------------------------------------------------------
# Per-family builders
# ---------------------------------------------------------------------------

def is_eng_program(program_id: int) -> bool:
    return program_id in ENG_PROGRAM_RANGE


def build_program_records(
    row: ParsedRow,
    programs: dict[int, ProgramRecord],
    eng_programs: dict[int, EngProgramRecord],
) -> bool:
    """Add the row's program (and engineering program) if not yet seen."""
    if row.program_id in programs:
        log.debug("Program ID %d already built -- skipping.", row.program_id)
        return False
    programs[row.program_id] = ProgramRecord(
        program_id=row.program_id,
        semester_id=row.semester_id,
        project_pi=row.project_pi,
        project_members=row.project_members,
        other_info=row.other_info,
        pi_name=row.pi_name,
        pi_email=row.pi_email,
    )
    if is_eng_program(row.program_id):
        eng_programs[row.program_id] = EngProgramRecord(
            program_id=row.program_id,
            semester_id=row.semester_id,
            project_pi=row.project_pi,
        )
    return True


def build_schedule_record(row: ParsedRow) -> ScheduleRecord:
    return ScheduleRecord(
        log_id=row.log_id,
        start_time=row.start_time,
        semester_id=row.semester_id,
        end_time=row.end_time,
        remote_obs=row.remote_obs,
        daytime_obs=row.daytime_obs,
        first_time=row.first_time,
        facility_open=row.facility_open,
        facility_close=row.facility_close,
        instrument_change=row.instrument_change,
        facility_shutdown=row.facility_shutdown,
        support_astronomer_id=row.support_astronomer_id,
        program_id=row.program_id,
        comments=row.comments,
    )


def build_instrument_records(
    row: ParsedRow,
    instruments: InstrumentList,
    counters: RunCounters,
) -> list[InstrumentRecord]:
    records = []
    for rank, code in enumerate(row.instrument_codes):
        hardware_id = instruments.find(code)
        if hardware_id is None:
            hardware_id = instruments.tbd_hardware_id
            if hardware_id is None:
                counters.instruments_unresolved += 1
                _warn(
                    counters,
                    f"instrument {code!r} not in active list and no TBD entry "
                    f"(program {row.program_id}, logID {row.log_id}) -- skipped",
                )
                continue
            counters.instruments_defaulted_tbd += 1
            log.debug("Instrument %r not found; using TBD (%s)", code, hardware_id)
        records.append(
            InstrumentRecord(
                log_id=row.log_id,
                start_time=row.start_time,
                semester_id=row.semester_id,
                program_id=row.program_id,
                hardware_id=hardware_id,
                rank=rank,
            )
        )
    return records


def build_operator_records(
    row: ParsedRow,
    operators: OperatorList,
    counters: RunCounters,
) -> list[OperatorRecord]:
    records = []
    for position, code in enumerate(row.operator_codes):
        if not code:
            continue
        operator_id = operators.find(code)
        if operator_id is None:
            counters.operators_unresolved += 1
            _warn(
                counters,
                f"operator {code!r} not in operator list "
                f"(program {row.program_id}, logID {row.log_id}) -- skipped",
            )
            continue
        records.append(
            OperatorRecord(
                log_id=row.log_id,
                start_time=row.start_time,
                semester_id=row.semester_id,
                program_id=row.program_id,
                operator_id=operator_id,
                arrive=OPERATOR_UNSET_TIME,
                depart=OPERATOR_UNSET_TIME,
                overlap=0 if position == 0 else 1,
            )
        )
    return records


def skip_row(row: ParsedRow, prep: PreparationContext) -> bool:
    """Partial loads leave nights before the cutoff untouched."""
    return prep.is_partial and row.log_id < prep.cutoff_timestamp


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_inserts(
    rows: list[ParsedRow],
    prep: PreparationContext,
    counters: RunCounters | None = None,
    fmt: RecordFormat | None = None,
) -> InsertSet:
    counters = counters if counters is not None else RunCounters()
    fmt = fmt or record_format(prep.file_load_mode)

    programs: dict[int, ProgramRecord] = {}
    eng_programs: dict[int, EngProgramRecord] = {}
    schedule = _UniqueRecords("schedule", counters)
    instrument = _UniqueRecords("instrument", counters)
    operator = _UniqueRecords("operator", counters)

    for row in rows:
        build_program_records(row, programs, eng_programs)
        if skip_row(row, prep):
            counters.rows_skipped_partial += 1
            continue
        schedule.add(build_schedule_record(row))
        for record in build_instrument_records(row, prep.instruments, counters):
            instrument.add(record)
        for record in build_operator_records(row, prep.operators, counters):
            operator.add(record)

    counters.programs_built += len(programs)
    counters.eng_programs_built += len(eng_programs)
    counters.schedule_built += len(schedule.records)
    counters.instruments_built += len(instrument.records)
    counters.operators_built += len(operator.records)

    return InsertSet(
        program={pid: fmt.render(programs[pid]) for pid in sorted(programs)},
        eng_program={pid: fmt.render(eng_programs[pid]) for pid in sorted(eng_programs)},
        schedule=[fmt.render(r) for r in schedule.records],
        instrument=[fmt.render(r) for r in instrument.records],
        operator=[fmt.render(r) for r in sorted(operator.records)],
    )
