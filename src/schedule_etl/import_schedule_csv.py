"""schedule_etl.import_schedule_csv

CLI entrypoint for telescope schedule uploads.

Usage (partial update, direct statements):
    python -m schedule_etl.import_schedule_csv \\
        --db-dsn "$SCHEDULE_DB_DSN" \\
        --csv-path "uploads/2025A_schedule.csv" \\
        --load-type partial \\
        --access private

Usage (full semester replace through bulk files):
    python -m schedule_etl.import_schedule_csv \\
        --db-dsn "$SCHEDULE_DB_DSN" \\
        --csv-path "uploads/2025A_schedule.csv" \\
        --load-type full \\
        --bulk-file \\
        --config config/schedule_upload.yml
"""

from __future__ import annotations

import logging
import sys
import uuid
from datetime import date, datetime
from pathlib import Path

import click
import psycopg

from schedule_etl.csv_tokenizer import tokenize_schedule_csv
from schedule_etl.ingest import ingest_schedule
from schedule_etl.process_schedule import process_schedule
from schedule_etl.reference_data import PostgresReferenceGateway
from schedule_etl.shared import (
    ACCESS_SCOPES,
    LOAD_TYPES,
    PipelineError,
    RunCounters,
    write_run_report,
)
from schedule_etl.upload_config import (
    UploadConfig,
    UploadConfigValidationError,
    load_upload_config,
)
from schedule_etl.upload_pipeline import ScheduleUploadPipeline, UploadRequest


def build_pipeline(
    conn: psycopg.Connection,
    today: date,
    config: UploadConfig,
    counters: RunCounters,
    dry_run: bool,
) -> ScheduleUploadPipeline:
    gateway = PostgresReferenceGateway(conn)

    def processor(schedule_csv, request: UploadRequest):
        return process_schedule(
            schedule_csv,
            request.load_type,
            request.access,
            request.use_bulk_file,
            today,
            gateway,
            config,
            counters,
        )

    def ingester(processed):
        return ingest_schedule(conn, processed, counters, dry_run=dry_run)

    return ScheduleUploadPipeline(tokenize_schedule_csv, processor, ingester)


@click.command()
@click.option("--db-dsn", required=True, envvar="SCHEDULE_DB_DSN", help="PostgreSQL DSN")
@click.option("--csv-path", required=True, type=click.Path(exists=True, dir_okay=False), help="Schedule CSV to upload")
@click.option(
    "--load-type",
    default="partial",
    type=click.Choice(list(LOAD_TYPES), case_sensitive=False),
    show_default=True,
    help="partial replaces tonight onward; full replaces the whole semester",
)
@click.option(
    "--access",
    default="private",
    type=click.Choice(list(ACCESS_SCOPES), case_sensitive=False),
    show_default=True,
)
@click.option(
    "--bulk-file/--no-bulk-file",
    default=False,
    show_default=True,
    help="Load through delimited files and COPY instead of row statements",
)
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False), help="YAML upload config")
@click.option("--infile-dir", default=None, type=click.Path(file_okay=False), help="Directory for bulk files (overrides config)")
@click.option(
    "--today",
    default=None,
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Day whose midnight is the partial-load cutoff (defaults to the current date)",
)
@click.option("--dry-run", is_flag=True, default=False)
@click.option("--run-id", default=None, help="Override UUID for log correlation")
@click.option("--verbose", is_flag=True, default=False, help="Log diagnostics at DEBUG level")
def main(
    db_dsn: str,
    csv_path: str,
    load_type: str,
    access: str,
    bulk_file: bool,
    config_path: str | None,
    infile_dir: str | None,
    today: datetime | None,
    dry_run: bool,
    run_id: str | None,
    verbose: bool,
) -> None:
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.utcnow().isoformat()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=f"[{run_id}] %(levelname)s %(name)s: %(message)s",
    )
    logging.captureWarnings(True)
    cutoff_day = today.date() if today else date.today()

    try:
        config = load_upload_config(Path(config_path) if config_path else None)
    except UploadConfigValidationError as exc:
        click.echo(f"[{run_id}] FATAL: invalid config {config_path}: {exc}", err=True)
        sys.exit(1)
    config = config.with_infile_dir(infile_dir)

    request = UploadRequest(
        source=Path(csv_path),
        load_type=load_type,
        access=access,
        use_bulk_file=bulk_file,
    )
    request_info = {
        "csv_path": csv_path,
        "load_type": request.load_type,
        "access": request.access,
        "bulk_file": request.use_bulk_file,
        "cutoff_day": cutoff_day.isoformat(),
        "config_path": config_path,
        "config_hash": config.yaml_hash,
    }
    counters = RunCounters()

    click.echo(
        f"[{run_id}] Uploading {csv_path}: {request.load_type} load, "
        f"{request.access}, {'bulk files' if bulk_file else 'direct statements'}"
        f"{' [dry-run]' if dry_run else ''}"
    )

    try:
        conn = psycopg.connect(db_dsn, autocommit=True)
    except psycopg.Error as exc:
        click.echo(f"[{run_id}] FATAL: cannot connect to database: {exc}", err=True)
        sys.exit(1)

    pipeline = build_pipeline(conn, cutoff_day, config, counters, dry_run)
    try:
        result = pipeline.run(request)
    except PipelineError as exc:
        report_path = write_run_report(
            run_id, started_at, config.reports_dir, dry_run, request_info,
            pipeline.state, counters, [], error=str(exc),
        )
        click.echo(f"[{run_id}] FATAL: {exc}", err=True)
        click.echo(f"[{run_id}] Report: {report_path}", err=True)
        sys.exit(1)
    finally:
        conn.close()

    for message in result.messages:
        click.echo(f"[{run_id}] {message}")
    for warning in counters.warnings:
        click.echo(f"[{run_id}] WARNING: {warning}", err=True)
    click.echo(
        f"[{run_id}] Semester {result.processed.semester}: {counters.rows_read} rows read, "
        f"{counters.rows_skipped_partial} before cutoff, "
        f"{counters.duplicates_skipped} duplicates skipped"
    )
    report_path = write_run_report(
        run_id, started_at, config.reports_dir, dry_run, request_info,
        result.state, counters, result.messages,
    )
    click.echo(f"[{run_id}] Report: {report_path}")


if __name__ == "__main__":
    main()
