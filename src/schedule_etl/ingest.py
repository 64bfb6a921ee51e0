"""schedule_etl.ingest

Applies a processed schedule to PostgreSQL: every delete, then every
insert, inside one transaction.  Bulk mode streams the materialized files
through COPY; direct mode executes the parameterized statements.
"""

from __future__ import annotations

import logging

import psycopg

from schedule_etl.process_schedule import ProcessedSchedule
from schedule_etl.records import (
    ENG_PROGRAM_UPSERT,
    EngProgramRecord,
    LiteralStatement,
    PositionalRecord,
)
from schedule_etl.shared import RunCounters

log = logging.getLogger(__name__)

TABLE_ORDER = ("schedule", "instrument", "operator", "program")
COPY_BLOCK_SIZE = 64 * 1024


def _result_message(count: int, verb: str, table: str) -> str:
    preposition = "from" if verb == "deleted" else "into"
    if count == 1:
        return f"1 record was {verb} {preposition} {table} table."
    return f"{count} records were {verb} {preposition} {table} table."


def _execute_statements(conn: psycopg.Connection, statements: list[LiteralStatement]) -> int:
    total = 0
    for statement in statements:
        cur = conn.execute(statement.query, statement.params)
        total += max(cur.rowcount, 0)
    return total


def _copy_file(conn: psycopg.Connection, statement: str, path) -> int:
    with conn.cursor() as cur:
        with cur.copy(statement) as copy:
            with open(path, "rb") as fh:
                for chunk in iter(lambda: fh.read(COPY_BLOCK_SIZE), b""):
                    copy.write(chunk)
        return max(cur.rowcount, 0)


def _upsert_eng_programs(conn: psycopg.Connection, processed: ProcessedSchedule) -> int:
    artifacts = processed.inserts.family("eng_program")
    if not artifacts:
        return 0
    if isinstance(artifacts[0], PositionalRecord):
        with conn.cursor() as cur:
            cur.executemany(ENG_PROGRAM_UPSERT, [a.values for a in artifacts])
        return len(artifacts)
    return _execute_statements(conn, artifacts)


def ingest_schedule(
    conn: psycopg.Connection,
    processed: ProcessedSchedule,
    counters: RunCounters | None = None,
    dry_run: bool = False,
) -> list[str]:
    """Apply deletes then inserts; return one message per table operation.

    Raises ValueError before touching the database when a bulk family has
    no materialized file.
    """
    counters = counters if counters is not None else RunCounters()
    missing = processed.missing_bulk_families()
    if missing:
        raise ValueError(f"bulk files missing for: {missing}")

    deleted: dict[str, int] = {}
    inserted: dict[str, int] = {}
    deletes = dict(processed.deletes.items())

    with conn.transaction(force_rollback=dry_run):
        for family in TABLE_ORDER:
            deleted[family] = _execute_statements(conn, [deletes[family]])

        for family in TABLE_ORDER:
            if processed.file_load_mode:
                load = processed.bulk_loads[family]
                inserted[family] = _copy_file(conn, load.statement, load.path)
            else:
                inserted[family] = _execute_statements(conn, processed.inserts.family(family))

        eng_count = _upsert_eng_programs(conn, processed)

    messages = []
    for family in TABLE_ORDER:
        table = deletes[family].table
        messages.append(_result_message(deleted[family], "deleted", table))
        messages.append(_result_message(inserted[family], "inserted", table))
        counters.rows_deleted += deleted[family]
        counters.rows_inserted += inserted[family]
    messages.append(_result_message(eng_count, "upserted", EngProgramRecord.table))
    counters.rows_inserted += eng_count

    if dry_run:
        messages.append("Dry run: all changes rolled back.")
    for message in messages:
        log.info(message)
    return messages
