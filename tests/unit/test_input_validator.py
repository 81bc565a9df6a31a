"""Unit tests for InputValidator."""

from datetime import date, datetime

import pytest

from questlog.core.validation.input_validator import InputValidator
from questlog.modules.shared.exceptions import ValidationError

pytestmark = pytest.mark.unit


class TestIntegers:
    @pytest.mark.parametrize("value,expected", [(5, 5), ("7", 7), (3.0, 3), (" 12 ", 12)])
    def test_accepts_integral_values(self, value, expected):
        assert InputValidator.validate_integer(value, "count") == expected

    @pytest.mark.parametrize("value", [None, True, 2.5, "abc", [1], "--3", "²", "1_000"])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_integer(value, "count")

        assert exc_info.value.field == "count"

    def test_bounds(self):
        with pytest.raises(ValidationError):
            InputValidator.validate_positive_integer(0, "limit")
        with pytest.raises(ValidationError):
            InputValidator.validate_positive_integer(11, "limit", max_value=10)
        assert InputValidator.validate_non_negative_integer(0, "offset") == 0


class TestStrings:
    def test_strips_whitespace(self):
        assert InputValidator.validate_string("  Leg Day ", "name") == "Leg Day"

    def test_blank_is_missing(self):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_string("   ", "name")

        assert exc_info.value.validation_message == "Value is required"

    def test_max_length(self):
        with pytest.raises(ValidationError):
            InputValidator.validate_string("abcdef", "name", max_length=5)

    def test_identifier_length(self):
        assert InputValidator.validate_identifier("u" * 64, "user_id") == "u" * 64
        with pytest.raises(ValidationError):
            InputValidator.validate_identifier("u" * 65, "user_id")


class TestChoices:
    def test_case_insensitive(self):
        assert InputValidator.validate_choice(" Hard ", "difficulty", ["easy", "hard"]) == "hard"

    def test_rejects_unknown(self):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_choice("legendary", "difficulty", ["easy", "hard"])

        assert "easy, hard" in exc_info.value.validation_message


class TestCalendar:
    def test_days_sorted_and_unique(self):
        assert InputValidator.validate_days_of_week([6, 0, 6, 3]) == [0, 3, 6]

    def test_days_optional_unless_required(self):
        assert InputValidator.validate_days_of_week(None) == []
        with pytest.raises(ValidationError):
            InputValidator.validate_days_of_week([], required=True)

    def test_day_out_of_range(self):
        with pytest.raises(ValidationError):
            InputValidator.validate_days_of_week([-1])

    def test_dates(self):
        assert InputValidator.validate_date("2024-02-29", "start_date") == date(2024, 2, 29)
        assert InputValidator.validate_date(datetime(2024, 1, 1, 9, 30), "start_date") == date(
            2024, 1, 1
        )
        with pytest.raises(ValidationError):
            InputValidator.validate_date("2023-02-29", "start_date")
