"""schedule_etl.delete_plan

Deletes that must run before a semester's schedule is re-inserted.

Full loads clear the whole semester.  Partial loads only clear nights from
the cutoff onward; the program table is always cleared for the whole
semester because every upload regenerates all of its programs.
"""

from __future__ import annotations

from dataclasses import dataclass

from schedule_etl.records import (
    InstrumentRecord,
    LiteralStatement,
    OperatorRecord,
    ProgramRecord,
    ScheduleRecord,
)

NIGHTLY_TABLES = {
    "schedule": ScheduleRecord.table,
    "instrument": InstrumentRecord.table,
    "operator": OperatorRecord.table,
}


@dataclass(frozen=True)
class DeleteStatementSet:
    schedule: LiteralStatement
    instrument: LiteralStatement
    operator: LiteralStatement
    program: LiteralStatement

    def items(self) -> list[tuple[str, LiteralStatement]]:
        return [
            ("schedule", self.schedule),
            ("instrument", self.instrument),
            ("operator", self.operator),
            ("program", self.program),
        ]


def plan_deletes(load_type: str, semester: str, cutoff_timestamp: int) -> DeleteStatementSet:
    full = load_type.lower() == "full"
    nightly = {}
    for family, table in NIGHTLY_TABLES.items():
        if full:
            nightly[family] = LiteralStatement(
                table, f"DELETE FROM {table} WHERE semester_id = %s", (semester,)
            )
        else:
            nightly[family] = LiteralStatement(
                table,
                f"DELETE FROM {table} WHERE semester_id = %s AND log_id >= %s",
                (semester, cutoff_timestamp),
            )
    program = LiteralStatement(
        ProgramRecord.table,
        f"DELETE FROM {ProgramRecord.table} WHERE semester_id = %s",
        (semester,),
    )
    return DeleteStatementSet(program=program, **nightly)
