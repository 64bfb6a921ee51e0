"""schedule_etl.upload_pipeline

Orchestrates one schedule upload: tokenize -> process -> ingest.

States:
  pending -> parsed -> processed -> ingested -> done
  any stage -> failed (terminal)

Each transition calls exactly one collaborator.  The first error stops the
run and is re-raised as PipelineError naming the failed stage; nothing
produced by a failed stage is handed to the next one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from schedule_etl.csv_tokenizer import ScheduleCsv
from schedule_etl.process_schedule import ProcessedSchedule
from schedule_etl.shared import ACCESS_SCOPES, LOAD_TYPES, PipelineError

log = logging.getLogger(__name__)

STATE_PENDING = "pending"
STATE_PARSED = "parsed"
STATE_PROCESSED = "processed"
STATE_INGESTED = "ingested"
STATE_DONE = "done"
STATE_FAILED = "failed"

_NEXT_STATE = {
    STATE_PENDING: STATE_PARSED,
    STATE_PARSED: STATE_PROCESSED,
    STATE_PROCESSED: STATE_INGESTED,
    STATE_INGESTED: STATE_DONE,
}


@dataclass(frozen=True)
class UploadRequest:
    source: Path | bytes
    load_type: str = "partial"
    access: str = "private"
    use_bulk_file: bool = False

    def __post_init__(self) -> None:
        load_type = self.load_type.lower()
        access = self.access.lower()
        if load_type not in LOAD_TYPES:
            raise ValueError(f"load_type must be one of {LOAD_TYPES}, got {self.load_type!r}")
        if access not in ACCESS_SCOPES:
            raise ValueError(f"access must be one of {ACCESS_SCOPES}, got {self.access!r}")
        object.__setattr__(self, "load_type", load_type)
        object.__setattr__(self, "access", access)


@dataclass
class UploadResult:
    state: str
    processed: ProcessedSchedule | None = None
    messages: list[str] = field(default_factory=list)


Tokenizer = Callable[[Path | bytes], ScheduleCsv]
Processor = Callable[[ScheduleCsv, UploadRequest], ProcessedSchedule]
Ingester = Callable[[ProcessedSchedule], list[str]]


class ScheduleUploadPipeline:
    def __init__(self, tokenizer: Tokenizer, processor: Processor, ingester: Ingester) -> None:
        self._tokenizer = tokenizer
        self._processor = processor
        self._ingester = ingester
        self.state = STATE_PENDING
        self.history: list[str] = [STATE_PENDING]

    def _advance(self, expected: str) -> None:
        nxt = _NEXT_STATE.get(self.state)
        if nxt != expected:
            raise RuntimeError(f"illegal transition {self.state} -> {expected}")
        self.state = nxt
        self.history.append(nxt)

    def _fail(self, stage: str, description: str, exc: Exception) -> PipelineError:
        self.state = STATE_FAILED
        self.history.append(STATE_FAILED)
        log.error("Upload failed during %s: %s", stage, exc)
        return PipelineError(stage, f"{description}: {exc}")

    def run(self, request: UploadRequest) -> UploadResult:
        if self.state != STATE_PENDING:
            raise RuntimeError("pipeline instances run exactly once")

        # Step 1: tokenize the uploaded file
        try:
            schedule_csv = self._tokenizer(request.source)
        except Exception as exc:
            raise self._fail("parse", "Error parsing the uploaded file", exc) from exc
        self._advance(STATE_PARSED)

        # Step 2: build deletes and inserts
        try:
            processed = self._processor(schedule_csv, request)
        except Exception as exc:
            raise self._fail("process", "Error processing the schedule data", exc) from exc
        missing = processed.missing_bulk_families()
        if missing:
            exc = ValueError(f"bulk files were not written for {missing}")
            raise self._fail("process", "Error processing the schedule data", exc)
        self._advance(STATE_PROCESSED)

        # Step 3: write to the database
        try:
            messages = self._ingester(processed)
        except Exception as exc:
            raise self._fail("ingest", "Error ingesting the schedule data", exc) from exc
        self._advance(STATE_INGESTED)

        self._advance(STATE_DONE)
        return UploadResult(state=self.state, processed=processed, messages=messages)
