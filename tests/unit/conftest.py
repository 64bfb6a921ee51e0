"""Unit test fixtures: an in-memory reference gateway and CSV row builders."""

from __future__ import annotations

from datetime import date

import pytest

from schedule_etl.prepare import CANONICAL_COLUMNS, prepare_context
from schedule_etl.reference_data import (
    Instrument,
    InstrumentList,
    Operator,
    OperatorList,
    ProgramInfo,
)

HEADER = list(CANONICAL_COLUMNS)

DEFAULT_ROW = {
    "Program": "2025A004",
    "PI": "Smith",
    "Instrument": "SpeX/iSHELL",
    "Start Date": "2025/03/10",
    "Start Time": "18:00hr",
    "Finish Date": "2025/03/11",
    "Finish Time": "06:00hr",
    "DayTime": "",
    "Remote": "X",
    "Facility Open": "",
    "Facility Close": "",
    "Instrument Change": "",
    "Shutdown": "",
    "TO": "op1,op2",
    "SA": "sa1",
    "FirstNight": "",
    "Comments": "",
}


class StubGateway:
    """ReferenceGateway backed by plain lists; records program lookups."""

    def __init__(self, instruments=None, operators=None, programs=None, fail_with=None):
        self.instruments = InstrumentList(tuple(instruments or (
            Instrument("10", "SPEX"),
            Instrument("11", "ISHELL"),
            Instrument("99", "TBD"),
        )))
        self.operators = OperatorList(tuple(operators or (
            Operator("op1", "Lopez", "Ana"),
            Operator("op2", "Kim", "Jae"),
        )))
        self.programs = programs if programs is not None else {
            4: ProgramInfo(4, "2025A", "Smith", "Ann Smith, Bo Lee", "Long-term monitoring", "Ann Smith", "ann@example.org"),
        }
        self.fail_with = fail_with
        self.program_requests: list[tuple[int, str]] = []

    def fetch_instruments(self):
        if self.fail_with:
            raise self.fail_with
        return self.instruments

    def fetch_operators(self):
        return self.operators

    def fetch_programs(self, year, semester_code):
        self.program_requests.append((year, semester_code))
        return self.programs


def build_row(overrides: dict | None = None, header: list[str] | None = None) -> list[str]:
    values = dict(DEFAULT_ROW)
    values.update(overrides or {})
    return [values[name] for name in (header or HEADER)]


@pytest.fixture
def header():
    return list(HEADER)


@pytest.fixture
def make_row():
    return build_row


@pytest.fixture
def gateway_cls():
    return StubGateway


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def make_prep(gateway):
    """Factory for a PreparationContext over the stub gateway."""

    def _make(load_type="full", file_load_mode=False, today=date(2025, 3, 10), first_row=None, gw=None):
        return prepare_context(
            list(HEADER),
            first_row or build_row(),
            load_type,
            "private",
            file_load_mode,
            today,
            gw or gateway,
        )

    return _make
