"""schedule_etl.records

Logical insert records and their two artifact representations.

Each logical record is a frozen dataclass whose field order is the column
order of its target table, so a record is hashable and compares by value
regardless of how it is later rendered.  A ``RecordFormat`` chosen once per
run renders records either as ``PositionalRecord`` rows for bulk files or
as ``LiteralStatement`` parameterized INSERTs for direct execution.
"""

from __future__ import annotations

from dataclasses import astuple, dataclass, fields
from typing import Any, ClassVar, Protocol, Union


# ---------------------------------------------------------------------------
# Logical records
# ---------------------------------------------------------------------------

@dataclass(frozen=True, order=True)
class ProgramRecord:
    family: ClassVar[str] = "program"
    table: ClassVar[str] = "program"
    nullable: ClassVar[frozenset[str]] = frozenset(
        {"project_members", "other_info", "pi_name", "pi_email"}
    )

    program_id: int
    semester_id: str
    project_pi: str
    project_members: str
    other_info: str
    pi_name: str
    pi_email: str


@dataclass(frozen=True, order=True)
class EngProgramRecord:
    family: ClassVar[str] = "eng_program"
    table: ClassVar[str] = "eng_program"
    nullable: ClassVar[frozenset[str]] = frozenset()

    program_id: int
    semester_id: str
    project_pi: str


@dataclass(frozen=True, order=True)
class ScheduleRecord:
    family: ClassVar[str] = "schedule"
    table: ClassVar[str] = "schedule_obs"
    nullable: ClassVar[frozenset[str]] = frozenset({"comments"})

    log_id: int
    start_time: int
    semester_id: str
    end_time: int
    remote_obs: int
    daytime_obs: int
    first_time: int
    facility_open: int
    facility_close: int
    instrument_change: int
    facility_shutdown: int
    support_astronomer_id: str
    program_id: int
    comments: str


@dataclass(frozen=True, order=True)
class InstrumentRecord:
    family: ClassVar[str] = "instrument"
    table: ClassVar[str] = "daily_instrument"
    nullable: ClassVar[frozenset[str]] = frozenset()

    log_id: int
    start_time: int
    semester_id: str
    program_id: int
    hardware_id: str
    rank: int


@dataclass(frozen=True, order=True)
class OperatorRecord:
    family: ClassVar[str] = "operator"
    table: ClassVar[str] = "daily_operator"
    nullable: ClassVar[frozenset[str]] = frozenset()

    log_id: int
    start_time: int
    semester_id: str
    program_id: int
    operator_id: str
    arrive: int
    depart: int
    overlap: int


LogicalRecord = Union[
    ProgramRecord, EngProgramRecord, ScheduleRecord, InstrumentRecord, OperatorRecord
]

RECORD_TYPES: dict[str, type] = {
    cls.family: cls
    for cls in (ProgramRecord, EngProgramRecord, ScheduleRecord, InstrumentRecord, OperatorRecord)
}

ENG_PROGRAM_UPSERT = (
    "INSERT INTO eng_program (program_id, semester_id, project_pi) "
    "VALUES (%s, %s, %s) "
    "ON CONFLICT (program_id, semester_id) DO UPDATE SET project_pi = EXCLUDED.project_pi"
)


def field_names(record_type: type) -> tuple[str, ...]:
    """Column order of a record type's target table."""
    return tuple(f.name for f in fields(record_type))


def insert_query(record_type: type) -> str:
    if record_type is EngProgramRecord:
        return ENG_PROGRAM_UPSERT
    columns = field_names(record_type)
    placeholders = ", ".join(["%s"] * len(columns))
    return f"INSERT INTO {record_type.table} ({', '.join(columns)}) VALUES ({placeholders})"


# ---------------------------------------------------------------------------
# Artifact representations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PositionalRecord:
    """One bulk-file line: values in table column order."""

    table: str
    fields: tuple[str, ...]
    values: tuple[Any, ...]


@dataclass(frozen=True)
class LiteralStatement:
    """One parameterized statement ready for ``conn.execute(query, params)``."""

    table: str
    query: str
    params: tuple[Any, ...] = ()


InsertArtifact = Union[PositionalRecord, LiteralStatement]


class RecordFormat(Protocol):
    file_load_mode: bool

    def render(self, record: LogicalRecord) -> InsertArtifact: ...


class PositionalFormat:
    """Bulk-file rendering: empty nullable text stays an empty string."""

    file_load_mode = True

    def render(self, record: LogicalRecord) -> PositionalRecord:
        return PositionalRecord(record.table, field_names(type(record)), astuple(record))


class LiteralFormat:
    """Direct-SQL rendering: empty nullable text is bound as NULL."""

    file_load_mode = False

    def render(self, record: LogicalRecord) -> LiteralStatement:
        params = tuple(
            None if f.name in record.nullable and not value else value
            for f, value in zip(fields(record), astuple(record))
        )
        return LiteralStatement(record.table, insert_query(type(record)), params)


def record_format(file_load_mode: bool) -> RecordFormat:
    return PositionalFormat() if file_load_mode else LiteralFormat()
