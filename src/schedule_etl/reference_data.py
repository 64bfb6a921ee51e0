"""schedule_etl.reference_data

Read-only reference data needed to resolve a schedule upload: the active
instrument list, the operator list and the semester's program directory.

The processing stages only see the ``ReferenceGateway`` protocol; the
PostgreSQL implementation below is what the CLI wires in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import psycopg

from schedule_etl.normalize import escape_text, trim
from schedule_etl.shared import ReferenceLookupError

log = logging.getLogger(__name__)

TBD_INSTRUMENT = "TBD"


# ---------------------------------------------------------------------------
# Snapshot types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Instrument:
    hardware_id: str
    item_name: str
    type: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class InstrumentList:
    entries: tuple[Instrument, ...]

    def find(self, code: str | None) -> str | None:
        """Return the hardware_id whose item name matches ``code`` (any case)."""
        wanted = (code or "").strip().upper()
        for entry in self.entries:
            if entry.item_name.upper() == wanted:
                return entry.hardware_id
        return None

    @property
    def tbd_hardware_id(self) -> str | None:
        return self.find(TBD_INSTRUMENT)


@dataclass(frozen=True)
class Operator:
    operator_id: str
    last_name: str | None = None
    first_name: str | None = None
    operator_code: str | None = None


@dataclass(frozen=True)
class OperatorList:
    entries: tuple[Operator, ...]

    def find(self, code: str | None) -> str | None:
        wanted = (code or "").strip()
        for entry in self.entries:
            if entry.operator_id == wanted:
                return entry.operator_id
        return None


@dataclass(frozen=True)
class ProgramInfo:
    program_id: int
    semester_id: str
    project_pi: str = ""
    project_members: str = ""
    other_info: str = ""
    pi_name: str = ""
    pi_email: str = ""


# ---------------------------------------------------------------------------
# Gateway protocol
# ---------------------------------------------------------------------------

class ReferenceGateway(Protocol):
    def fetch_instruments(self) -> InstrumentList: ...

    def fetch_operators(self) -> OperatorList: ...

    def fetch_programs(self, year: int, semester_code: str) -> dict[int, ProgramInfo]: ...


def format_program_members(row: dict) -> str:
    """Join investigator names 1-5 and the additional co-investigators."""
    members = []
    for i in range(1, 7):
        name = trim(row.get(f"project_members{i}"))
        if name:
            members.append(escape_text(name))
    return ", ".join(members)


# ---------------------------------------------------------------------------
# PostgreSQL implementation
# ---------------------------------------------------------------------------

class PostgresReferenceGateway:
    """Reads reference data through an open psycopg connection."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def fetch_instruments(self) -> InstrumentList:
        rows = self._fetch(
            """
            SELECT hardware_id, item_name, type, notes
            FROM hardware
            WHERE NOT obsolete
            ORDER BY hardware_id ASC
            """,
            (),
            "instrument list",
        )
        return InstrumentList(
            tuple(Instrument(str(r[0]), str(r[1]).upper(), r[2], r[3]) for r in rows)
        )

    def fetch_operators(self) -> OperatorList:
        rows = self._fetch(
            """
            SELECT operator_id, last_name, first_name, operator_code
            FROM operator
            ORDER BY operator_id ASC
            """,
            (),
            "operator list",
        )
        return OperatorList(tuple(Operator(str(r[0]), r[1], r[2], r[3]) for r in rows))

    def fetch_programs(self, year: int, semester_code: str) -> dict[int, ProgramInfo]:
        rows = self._fetch(
            """
            SELECT
              program_number,
              semester_year::text || semester_code AS semester_id,
              inv_last_name1 AS project_pi,
              concat_ws(' ', inv_first_name1, inv_last_name1) AS project_members1,
              concat_ws(' ', inv_first_name2, inv_last_name2) AS project_members2,
              concat_ws(' ', inv_first_name3, inv_last_name3) AS project_members3,
              concat_ws(' ', inv_first_name4, inv_last_name4) AS project_members4,
              concat_ws(' ', inv_first_name5, inv_last_name5) AS project_members5,
              additional_co_invs AS project_members6,
              other_info,
              pi_email,
              pi_name
            FROM obs_app
            WHERE semester_year = %s
              AND semester_code = %s
              AND program_number > 0
            ORDER BY program_number ASC
            """,
            (year, semester_code),
            f"program list for {year}{semester_code}",
        )
        columns = [
            "program_number", "semester_id", "project_pi",
            "project_members1", "project_members2", "project_members3",
            "project_members4", "project_members5", "project_members6", "other_info",
            "pi_email", "pi_name",
        ]
        programs: dict[int, ProgramInfo] = {}
        for values in rows:
            row = dict(zip(columns, values))
            program_id = int(row["program_number"])
            programs[program_id] = ProgramInfo(
                program_id=program_id,
                semester_id=row["semester_id"],
                project_pi=escape_text(row["project_pi"]),
                project_members=format_program_members(row),
                other_info=escape_text(row["other_info"]),
                pi_name=escape_text(row["pi_name"]),
                pi_email=row["pi_email"] or "",
            )
        log.debug("Loaded %d programs for %s%s", len(programs), year, semester_code)
        return programs

    def _fetch(self, query: str, params: tuple, what: str) -> list[tuple]:
        try:
            return self._conn.execute(query, params).fetchall()
        except psycopg.Error as exc:
            raise ReferenceLookupError(f"could not fetch {what}: {exc}") from exc
