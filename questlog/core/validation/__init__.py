"""Input validation helpers."""

from questlog.core.validation.input_validator import InputValidator

__all__ = ["InputValidator"]
