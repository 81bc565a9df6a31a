"""
Input validation layer for questlog.

Purpose
-------
Single source of truth for low-level input rules: type conversion, bounds,
string length, allowed choices, day-of-week sets and dates. Services call
these before touching the store so a malformed request never writes
partial state.

Non-Responsibilities
--------------------
- Business rules that need more than one field (services own those)
- Persistence constraints (the store owns those)

Observability
-------------
Every failure is logged at debug level with the field name, the raw value
(repr) and the reason, then raised as ``ValidationError``.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Iterable, List, NoReturn, Optional, Sequence

from questlog.core.logging.logger import get_logger
from questlog.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)

_INTEGER_TEXT = re.compile(r"[-+]?\d+", re.ASCII)


def _raise_validation_error(field_name: str, value: Any, message: str) -> NoReturn:
    """Log and raise a ValidationError for ``field_name``."""
    logger.debug(
        "Input validation failed",
        extra={
            "field_name": field_name,
            "raw_value": repr(value),
            "reason": message,
        },
    )
    raise ValidationError(field_name, message)


class InputValidator:
    """
    Stateless validators. Each returns the validated (and normalized) value
    or raises ``ValidationError``.
    """

    # =========================================================================
    # INTEGER VALIDATION
    # =========================================================================

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> int:
        """
        Validate an integer (or an integral string) with optional bounds.

        Booleans and non-integral floats are rejected rather than coerced.
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        if isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a whole number")

        if isinstance(value, int):
            int_value = value
        elif isinstance(value, float) and value.is_integer():
            int_value = int(value)
        elif isinstance(value, str) and _INTEGER_TEXT.fullmatch(value.strip()):
            int_value = int(value.strip())
        else:
            _raise_validation_error(
                field_name, value, f"Must be a whole number, got '{value}'"
            )

        if min_value is not None and int_value < min_value:
            _raise_validation_error(
                field_name, int_value, f"Must be at least {min_value}, got {int_value}"
            )

        if max_value is not None and int_value > max_value:
            _raise_validation_error(
                field_name, int_value, f"Cannot exceed {max_value}, got {int_value}"
            )

        return int_value

    @staticmethod
    def validate_positive_integer(
        value: Any,
        field_name: str,
        max_value: Optional[int] = None,
    ) -> int:
        """Validate that value is a strictly positive integer (>= 1)."""
        return InputValidator.validate_integer(value, field_name, 1, max_value)

    @staticmethod
    def validate_non_negative_integer(
        value: Any,
        field_name: str,
        max_value: Optional[int] = None,
    ) -> int:
        """Validate that value is a non-negative integer (>= 0)."""
        return InputValidator.validate_integer(value, field_name, 0, max_value)

    # =========================================================================
    # STRING VALIDATION
    # =========================================================================

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        min_length: Optional[int] = 1,
        max_length: Optional[int] = None,
    ) -> str:
        """
        Validate a stripped string with optional length constraints.

        The default ``min_length=1`` makes blank strings count as missing.
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")
        if not isinstance(value, str):
            _raise_validation_error(field_name, value, "Must be a string")

        str_value = value.strip()

        if min_length is not None and len(str_value) < min_length:
            message = (
                "Value is required"
                if min_length == 1
                else f"Must be at least {min_length} characters"
            )
            _raise_validation_error(field_name, value, message)

        if max_length is not None and len(str_value) > max_length:
            _raise_validation_error(
                field_name, str_value, f"Cannot exceed {max_length} characters"
            )

        return str_value

    @staticmethod
    def validate_identifier(value: Any, field_name: str) -> str:
        """Opaque identifiers (user ids, template ids): non-blank, at most 64 chars."""
        return InputValidator.validate_string(value, field_name, 1, 64)

    # =========================================================================
    # CHOICE VALIDATION
    # =========================================================================

    @staticmethod
    def validate_choice(
        value: Any,
        field_name: str,
        valid_choices: Iterable[str],
    ) -> str:
        """
        Validate that value is one of the allowed choices (case-insensitive).

        Returns the lowercased choice.
        """
        choices = sorted({choice.lower() for choice in valid_choices})
        if not isinstance(value, str) or value.lower().strip() not in choices:
            _raise_validation_error(
                field_name,
                value,
                f"Invalid choice '{value}'. Must be one of: {', '.join(choices)}",
            )
        return value.lower().strip()

    # =========================================================================
    # CALENDAR VALIDATION
    # =========================================================================

    @staticmethod
    def validate_days_of_week(
        values: Optional[Sequence[Any]],
        field_name: str = "days_of_week",
        required: bool = False,
    ) -> List[int]:
        """
        Validate a set of weekday numbers (0=Sunday .. 6=Saturday).

        Returns a sorted, de-duplicated list. An empty or missing set fails
        only when ``required``.
        """
        if values is None or len(values) == 0:
            if required:
                _raise_validation_error(
                    field_name, values, "At least one day of the week is required"
                )
            return []

        days = {
            InputValidator.validate_integer(value, field_name, 0, 6) for value in values
        }
        return sorted(days)

    @staticmethod
    def validate_date(value: Any, field_name: str) -> date:
        """Accept a ``date`` or an ISO ``YYYY-MM-DD`` string; datetimes are truncated."""
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                pass
        _raise_validation_error(field_name, value, "Must be a date (YYYY-MM-DD)")
