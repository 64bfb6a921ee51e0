"""Unit tests for schedule_etl.normalize."""

import pytest
from datetime import date, datetime

from schedule_etl.normalize import (
    calculate_log_id,
    calculate_unix_time,
    escape_text,
    extract_program_id,
    midnight_timestamp,
    parse_flag,
    parse_schedule_date,
    parse_schedule_time,
    semester_for_date,
    semester_from_program,
    split_codes,
    split_semester,
    trim,
)


def ts(*args) -> int:
    return int(datetime(*args).timestamp())


# ---------------------------------------------------------------------------
# trim / parse_flag
# ---------------------------------------------------------------------------

class TestTrim:
    def test_strips_whitespace(self):
        assert trim("  SpeX  ") == "SpeX"

    def test_empty_string_returns_none(self):
        assert trim("") is None

    def test_none_returns_none(self):
        assert trim(None) is None


class TestParseFlag:
    def test_upper_x(self):
        assert parse_flag("X") == 1

    def test_lower_x(self):
        assert parse_flag("x") == 1

    def test_padded_x(self):
        assert parse_flag(" X ") == 1

    def test_blank(self):
        assert parse_flag("") == 0

    def test_other_marker(self):
        assert parse_flag("Y") == 0

    def test_none(self):
        assert parse_flag(None) == 0


# ---------------------------------------------------------------------------
# extract_program_id
# ---------------------------------------------------------------------------

class TestExtractProgramId:
    def test_leading_zeros_dropped(self):
        assert extract_program_id("2024A004") == 4

    def test_engineering_number(self):
        assert extract_program_id("2024B950") == 950

    def test_all_zero_is_sentinel(self):
        assert extract_program_id("2024A000") == 0

    def test_blank_is_sentinel(self):
        assert extract_program_id("") == 0

    def test_non_digits_raise(self):
        with pytest.raises(ValueError):
            extract_program_id("2024AX12")


# ---------------------------------------------------------------------------
# Date / time parsing
# ---------------------------------------------------------------------------

class TestParseScheduleDate:
    def test_slash_format(self):
        assert parse_schedule_date("2025/03/10") == date(2025, 3, 10)

    def test_single_digit_parts(self):
        assert parse_schedule_date("2025/3/1") == date(2025, 3, 1)

    def test_dash_format_rejected(self):
        with pytest.raises(ValueError, match="YYYY/MM/DD"):
            parse_schedule_date("2025-03-10")

    def test_blank_rejected(self):
        with pytest.raises(ValueError):
            parse_schedule_date("")


class TestParseScheduleTime:
    def test_hr_suffix(self):
        assert parse_schedule_time("18:30hr").hour == 18

    def test_without_suffix(self):
        t = parse_schedule_time("06:05")
        assert (t.hour, t.minute) == (6, 5)

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_schedule_time("evening")


class TestCalculateUnixTime:
    def test_matches_local_wall_clock(self):
        assert calculate_unix_time("2025/03/10", "18:00hr") == ts(2025, 3, 10, 18, 0)

    def test_midnight_timestamp(self):
        assert midnight_timestamp(date(2025, 3, 10)) == ts(2025, 3, 10)


# ---------------------------------------------------------------------------
# calculate_log_id
# ---------------------------------------------------------------------------

class TestCalculateLogId:
    def test_early_morning_belongs_to_previous_night(self):
        assert calculate_log_id(ts(2025, 3, 10, 2, 0)) == ts(2025, 3, 9)

    def test_after_boundary_belongs_to_same_day(self):
        assert calculate_log_id(ts(2025, 3, 10, 8, 0)) == ts(2025, 3, 10)

    def test_exactly_at_boundary_is_previous_night(self):
        assert calculate_log_id(ts(2025, 3, 10, 6, 0)) == ts(2025, 3, 9)

    def test_evening_start(self):
        assert calculate_log_id(ts(2025, 3, 10, 19, 30)) == ts(2025, 3, 10)

    def test_custom_boundary(self):
        assert calculate_log_id(ts(2025, 3, 10, 8, 0), boundary_hour=9) == ts(2025, 3, 9)

    def test_crosses_month(self):
        assert calculate_log_id(ts(2025, 3, 1, 1, 0)) == ts(2025, 2, 28)


# ---------------------------------------------------------------------------
# Semesters
# ---------------------------------------------------------------------------

class TestSemesterForDate:
    def test_january_is_previous_b(self):
        assert semester_for_date(1, 31, 2024) == "2023B"

    def test_february_first_starts_a(self):
        assert semester_for_date(2, 1, 2024) == "2024A"

    def test_july_end_is_a(self):
        assert semester_for_date(7, 31, 2024) == "2024A"

    def test_august_first_starts_b(self):
        assert semester_for_date(8, 1, 2024) == "2024B"

    def test_december_is_b(self):
        assert semester_for_date(12, 31, 2024) == "2024B"


class TestSemesterFromProgram:
    def test_prefix(self):
        assert semester_from_program("2025A004") == "2025A"

    def test_lowercase_code(self):
        assert semester_from_program("2025b004") == "2025B"

    def test_no_prefix(self):
        assert semester_from_program("ENG") is None

    def test_split(self):
        assert split_semester("2024B") == (2024, "B")


# ---------------------------------------------------------------------------
# Code lists and text
# ---------------------------------------------------------------------------

class TestSplitCodes:
    def test_instrument_list(self):
        assert split_codes("SpeX / iSHELL", "/") == ("SpeX", "iSHELL")

    def test_keeps_empty_slot(self):
        assert split_codes("op1,,op3", ",") == ("op1", "", "op3")

    def test_none(self):
        assert split_codes(None, ",") == ("",)


class TestEscapeText:
    def test_escapes_markup(self):
        assert escape_text("O'Neil & <Co>") == "O&#039;Neil &amp; &lt;Co&gt;"

    def test_apostrophe_uses_decimal_entity(self):
        assert escape_text("D'Angelo") == "D&#039;Angelo"

    def test_double_quote(self):
        assert escape_text('"Moon" run') == "&quot;Moon&quot; run"

    def test_none(self):
        assert escape_text(None) == ""
