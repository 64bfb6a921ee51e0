"""Unit tests for schedule_etl.prepare."""

from datetime import date, datetime

import pytest

from schedule_etl.prepare import (
    CANONICAL_COLUMNS,
    DERIVED_FIELDS,
    build_header_map,
    prepare_context,
)
from schedule_etl.shared import COMMENT_TEMPLATES, ReferenceLookupError, ScheduleParseError


# ---------------------------------------------------------------------------
# build_header_map
# ---------------------------------------------------------------------------

class TestBuildHeaderMap:
    def test_maps_every_canonical_column(self, header):
        header_map = build_header_map(header)
        for idx, name in enumerate(header):
            assert header_map[name].csv_index == idx
            assert header_map[name].db_field == CANONICAL_COLUMNS[name]

    def test_reordered_columns(self, header):
        reordered = list(reversed(header))
        header_map = build_header_map(reordered)
        assert header_map["Program"].csv_index == len(header) - 1
        assert header_map["Comments"].csv_index == 0

    def test_derived_fields_have_no_index(self, header):
        header_map = build_header_map(header)
        for name in DERIVED_FIELDS:
            assert header_map[name].csv_index is None

    def test_header_cells_are_stripped(self, header):
        padded = [f" {name} " for name in header]
        assert build_header_map(padded)["PI"].csv_index == 1

    def test_extra_columns_ignored(self, header):
        header_map = build_header_map(header + ["Notes"])
        assert "Notes" not in header_map

    def test_missing_columns_listed(self, header):
        header.remove("SA")
        header.remove("TO")
        with pytest.raises(ScheduleParseError) as exc_info:
            build_header_map(header)
        assert "TO" in str(exc_info.value)
        assert "SA" in str(exc_info.value)


# ---------------------------------------------------------------------------
# prepare_context
# ---------------------------------------------------------------------------

class TestPrepareContext:
    def test_cutoff_is_local_midnight_of_today(self, make_prep):
        prep = make_prep(today=date(2025, 3, 12))
        assert prep.cutoff_timestamp == int(datetime(2025, 3, 12).timestamp())

    def test_semester_from_program_prefix(self, make_prep, gateway):
        prep = make_prep()
        assert prep.semester == "2025A"
        assert gateway.program_requests == [(2025, "A")]

    def test_semester_falls_back_to_start_date(self, make_prep, make_row, gateway):
        first_row = make_row({"Program": "ENG950", "Start Date": "2025/01/15"})
        prep = make_prep(first_row=first_row)
        assert prep.semester == "2024B"
        assert gateway.program_requests == [(2024, "B")]

    def test_fallback_with_bad_date_raises(self, make_prep, make_row):
        with pytest.raises(ScheduleParseError, match="row 1"):
            make_prep(first_row=make_row({"Program": "ENG950", "Start Date": "soon"}))

    def test_mode_flags(self, make_prep):
        prep = make_prep(load_type="PARTIAL", file_load_mode=True)
        assert prep.load_type == "partial"
        assert prep.is_partial
        assert prep.file_load_mode

    def test_comment_templates_attached(self, make_prep):
        assert make_prep().comment_templates == COMMENT_TEMPLATES

    def test_unknown_load_type(self, make_prep):
        with pytest.raises(ValueError, match="load_type"):
            make_prep(load_type="incremental")

    def test_unknown_access(self, header, make_row, gateway):
        with pytest.raises(ValueError, match="access"):
            prepare_context(header, make_row(), "full", "team", False, date(2025, 3, 10), gateway)

    def test_gateway_failure_wrapped(self, make_prep, gateway_cls):
        gw = gateway_cls(fail_with=RuntimeError("connection reset"))
        with pytest.raises(ReferenceLookupError, match="connection reset"):
            make_prep(gw=gw)

    def test_lookup_error_passes_through(self, make_prep, gateway_cls):
        gw = gateway_cls(fail_with=ReferenceLookupError("no hardware table"))
        with pytest.raises(ReferenceLookupError, match="no hardware table"):
            make_prep(gw=gw)
