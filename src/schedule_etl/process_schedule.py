"""schedule_etl.process_schedule

Processor: turns tokenized CSV rows into the delete and insert plan that
the ingester applies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from schedule_etl.build_inserts import InsertSet, build_inserts
from schedule_etl.bulk_files import BULK_FAMILIES, BulkLoad, materialize
from schedule_etl.csv_tokenizer import ScheduleCsv
from schedule_etl.delete_plan import DeleteStatementSet, plan_deletes
from schedule_etl.prepare import prepare_context
from schedule_etl.reference_data import ReferenceGateway
from schedule_etl.schedule_rows import parse_rows
from schedule_etl.shared import RunCounters
from schedule_etl.upload_config import UploadConfig

log = logging.getLogger(__name__)


@dataclass
class ProcessedSchedule:
    file_load_mode: bool
    load_type: str
    access: str
    semester: str
    cutoff_timestamp: int
    deletes: DeleteStatementSet
    inserts: InsertSet
    bulk_loads: dict[str, BulkLoad] = field(default_factory=dict)

    def missing_bulk_families(self) -> list[str]:
        if not self.file_load_mode:
            return []
        return [family for family in BULK_FAMILIES if family not in self.bulk_loads]


def process_schedule(
    schedule_csv: ScheduleCsv,
    load_type: str,
    access: str,
    use_bulk_file: bool,
    today: date,
    gateway: ReferenceGateway,
    config: UploadConfig | None = None,
    counters: RunCounters | None = None,
) -> ProcessedSchedule:
    config = config or UploadConfig()
    counters = counters if counters is not None else RunCounters()

    # Step 1: run-wide context from the header and the first row
    prep = prepare_context(
        schedule_csv.header,
        schedule_csv.lines[0],
        load_type,
        access,
        use_bulk_file,
        today,
        gateway,
        day_boundary_hour=config.day_boundary_hour,
    )
    log.info(
        "Prepared %s %s load for %s (cutoff %d, %d programs)",
        prep.load_type, prep.access, prep.semester,
        prep.cutoff_timestamp, len(prep.programs),
    )

    # Step 2: parse every row
    rows = parse_rows(schedule_csv.lines, prep)
    counters.rows_read += len(rows)

    # Step 3: deletes
    deletes = plan_deletes(prep.load_type, prep.semester, prep.cutoff_timestamp)

    # Step 4: inserts
    inserts = build_inserts(rows, prep, counters)

    # Step 5: bulk files
    bulk_loads = materialize(inserts, Path(config.infile_dir), counters) if prep.file_load_mode else {}

    return ProcessedSchedule(
        file_load_mode=prep.file_load_mode,
        load_type=prep.load_type,
        access=prep.access,
        semester=prep.semester,
        cutoff_timestamp=prep.cutoff_timestamp,
        deletes=deletes,
        inserts=inserts,
        bulk_loads=bulk_loads,
    )
