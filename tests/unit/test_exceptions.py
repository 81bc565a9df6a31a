"""Unit tests for the exception hierarchy."""

import pytest

from questlog.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    QuestlogError,
    QuestlogInfrastructureException,
    StoreUnavailableError,
)
from questlog.modules.shared.exceptions import (
    ConflictError,
    QuestlogDomainException,
    ValidationError,
)

pytestmark = pytest.mark.unit


def test_validation_error_names_field():
    exc = ValidationError("days_of_week", "Day 7 is out of range")

    assert isinstance(exc, QuestlogDomainException)
    assert exc.field == "days_of_week"
    assert exc.error_code == "VALIDATION_DAYS_OF_WEEK"
    assert exc.severity is ErrorSeverity.INFO
    assert exc.retryable is False


def test_conflict_is_retryable_warning():
    exc = ConflictError("profile", "last_activity_at changed", identifier="u1")

    assert exc.retryable is True
    assert exc.severity is ErrorSeverity.WARNING
    assert exc.to_dict()["details"] == {"identifier": "u1"}


def test_store_unavailable_serializes():
    exc = StoreUnavailableError("read_profile", "connection refused")

    assert isinstance(exc, QuestlogInfrastructureException)
    assert exc.to_dict() == {
        "error_code": "STORE_UNAVAILABLE",
        "error_type": "StoreUnavailableError",
        "message": "Store unavailable during read_profile: connection refused",
        "severity": "error",
        "retryable": True,
        "details": {"operation": "read_profile", "reason": "connection refused"},
    }


def test_configuration_error_is_critical():
    exc = ConfigurationError("gamification.levels.max_level", "must be >= 1")

    assert isinstance(exc, QuestlogError)
    assert exc.severity is ErrorSeverity.CRITICAL
    assert str(exc) == "gamification.levels.max_level: must be >= 1"


def test_store_unavailable_user_message_is_generic():
    exc = StoreUnavailableError("append_transaction", "timeout after 30000ms")

    assert "timeout" not in exc.user_message
    assert "try again" in exc.user_message
