"""schedule_etl.bulk_files

Bulk-file materializer.  Writes one delimited file per record family and
pairs it with the COPY statement that loads it:

  - fields separated by ';'
  - text enclosed in '"'
  - lines terminated by '\\n'
  - a header line, skipped on load
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any

from schedule_etl.build_inserts import InsertSet
from schedule_etl.records import RECORD_TYPES, PositionalRecord, field_names
from schedule_etl.shared import RunCounters

log = logging.getLogger(__name__)

BULK_FAMILIES = ("program", "schedule", "instrument", "operator")
FIELD_DELIMITER = ";"
QUOTE_CHAR = '"'
LINE_TERMINATOR = "\n"


@dataclass(frozen=True)
class BulkLoad:
    family: str
    table: str
    path: Path
    fields: tuple[str, ...]
    statement: str
    stats: dict[str, Any] = field(default_factory=dict, compare=False)


def bulk_file_path(infile_dir: Path, family: str) -> Path:
    return infile_dir / f"infile.{family}.sql.csv"


def copy_statement(table: str, columns: tuple[str, ...]) -> str:
    return (
        f"COPY {table} ({', '.join(columns)}) FROM STDIN "
        f"WITH (FORMAT csv, DELIMITER '{FIELD_DELIMITER}', QUOTE '{QUOTE_CHAR}', HEADER true)"
    )


def write_bulk_file(path: Path, columns: tuple[str, ...], records: list[PositionalRecord]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(
            fh,
            delimiter=FIELD_DELIMITER,
            quotechar=QUOTE_CHAR,
            quoting=csv.QUOTE_NONNUMERIC,
            lineterminator=LINE_TERMINATOR,
        )
        writer.writerow(columns)
        for record in records:
            writer.writerow(record.values)


def read_bulk_file(path: Path, family: str) -> list[tuple[Any, ...]]:
    """Re-read a bulk file into typed value tuples in file-column order."""
    record_type = RECORD_TYPES[family]
    int_columns = [f.type in ("int", int) for f in fields(record_type)]
    with path.open(newline="", encoding="utf-8") as fh:
        reader = csv.reader(fh, delimiter=FIELD_DELIMITER, quotechar=QUOTE_CHAR)
        header = next(reader, None)
        if header is None or tuple(header) != field_names(record_type):
            raise ValueError(f"{path}: header does not match {family} field order")
        return [
            tuple(int(v) if is_int else v for v, is_int in zip(line, int_columns))
            for line in reader
        ]


def file_stats(path: Path, rows: int | None = None) -> dict[str, Any]:
    st = path.stat()
    return {
        "file": str(path),
        "size": st.st_size,
        "modified": datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M:%S"),
        "created": datetime.fromtimestamp(st.st_ctime).strftime("%Y-%m-%d %H:%M:%S"),
        "owner": st.st_uid,
        "group": st.st_gid,
        "permissions": oct(st.st_mode & 0o7777)[2:].zfill(4),
        "rows": rows,
    }


def materialize(
    inserts: InsertSet,
    infile_dir: Path,
    counters: RunCounters | None = None,
) -> dict[str, BulkLoad]:
    """Write the four bulk files; a family whose write fails is left out."""
    counters = counters if counters is not None else RunCounters()
    loads: dict[str, BulkLoad] = {}
    for family in BULK_FAMILIES:
        record_type = RECORD_TYPES[family]
        columns = field_names(record_type)
        records = inserts.family(family)
        path = bulk_file_path(infile_dir, family)
        try:
            write_bulk_file(path, columns, records)
            stats = file_stats(path, rows=len(read_bulk_file(path, family)))
        except OSError as exc:
            counters.bulk_write_failures += 1
            message = f"bulk file for {family} could not be written at {path}: {exc}"
            log.warning(message)
            counters.warnings.append(message)
            continue
        if stats["rows"] != len(records):
            counters.bulk_write_failures += 1
            message = f"bulk file {path} holds {stats['rows']} rows, expected {len(records)}"
            log.warning(message)
            counters.warnings.append(message)
            continue
        counters.bulk_files_written += 1
        log.debug("Bulk file written: %s", stats)
        loads[family] = BulkLoad(
            family=family,
            table=record_type.table,
            path=path,
            fields=columns,
            statement=copy_statement(record_type.table, columns),
            stats=stats,
        )
    return loads
