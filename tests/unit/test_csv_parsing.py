"""
Unit tests for CSV line parsing and source decoding.
"""

import io

import pytest

from adaptive_review.core.errors import CsvParseError
from adaptive_review.ml.curator import parse_csv_line, read_csv_text

VALID_LINE = "u1,7,2.1,6,4,1.5,75.0,1.2,3,false,96.5"


class TestParseCsvLine:
    """Tests for one data line."""

    def test_valid_line(self):
        row = parse_csv_line(VALID_LINE, 2)

        assert row.user_id == "u1"
        assert row.flashcard_id == 7
        assert row.ease_factor == 2.1
        assert row.interval == 6
        assert row.repetitions == 4
        assert row.days_since_last_review == 1.5
        assert row.user_retention_rate == 75.0
        assert row.user_forgetting_speed == 1.2
        assert row.correct_after_break == 3.0
        assert row.is_mastered is False
        assert row.optimal_review_hours == 96.5

    @pytest.mark.parametrize("text", ["TRUE", "True", " true "])
    def test_boolean_is_case_insensitive(self, text):
        line = VALID_LINE.replace("false", text)
        assert parse_csv_line(line, 2).is_mastered is True

    def test_user_id_is_trimmed(self):
        row = parse_csv_line(" u9 " + VALID_LINE[2:], 2)
        assert row.user_id == "u9"

    def test_too_few_fields(self):
        with pytest.raises(CsvParseError) as exc_info:
            parse_csv_line("u1,7,2.1,6,4,1.5,75.0,1.2,3,false", 5)

        assert exc_info.value.line_number == 5
        assert str(exc_info.value) == "line 5: expected 11 fields, got 10"

    def test_too_many_fields(self):
        with pytest.raises(CsvParseError):
            parse_csv_line(VALID_LINE + ",extra", 3)

    def test_unparseable_number(self):
        with pytest.raises(CsvParseError) as exc_info:
            parse_csv_line(VALID_LINE.replace(",7,", ",seven,"), 4)
        assert str(exc_info.value).startswith("line 4: ")

    def test_bad_boolean(self):
        with pytest.raises(CsvParseError):
            parse_csv_line(VALID_LINE.replace("false", "yes"), 2)

    def test_out_of_range_value(self):
        with pytest.raises(CsvParseError) as exc_info:
            parse_csv_line(VALID_LINE.replace(",2.1,", ",3.0,"), 6)
        assert "ease_factor" in str(exc_info.value)

    def test_decimal_comma_rejected(self):
        # "2,1" splits into an extra field
        with pytest.raises(CsvParseError):
            parse_csv_line(VALID_LINE.replace("2.1", "2,1"), 2)


class TestReadCsvText:
    """Tests for decoding the supported source kinds."""

    def test_bytes_with_bom(self):
        assert read_csv_text("\ufeffheader\n".encode("utf-8")) == "header\n"

    def test_str_is_content(self):
        assert read_csv_text("header\nrow\n") == "header\nrow\n"

    def test_str_with_bom(self):
        assert read_csv_text("\ufeffheader") == "header"

    def test_binary_stream(self):
        assert read_csv_text(io.BytesIO(b"header\nrow")) == "header\nrow"

    def test_text_stream(self):
        assert read_csv_text(io.StringIO("header")) == "header"

    def test_path(self, tmp_path):
        path = tmp_path / "rows.csv"
        path.write_bytes("\ufeffheader\nrow\n".encode("utf-8"))
        assert read_csv_text(path) == "header\nrow\n"
