"""
questlog shared module

Domain-level foundations used by every module: domain exceptions, fixed
constants, and pure formulas.

``BaseService`` and ``BaseRepository`` are imported from their own modules
(``questlog.modules.shared.base_service`` / ``.base_repository``) so that
the value types in ``questlog.domain`` can depend on the exceptions here
without pulling in SQLAlchemy or the config layer.
"""

from __future__ import annotations

from .exceptions import (
    ConflictError,
    QuestlogDomainException,
    ValidationError,
)
from .formulas import (
    build_level_starts,
    calculate_level_from_starts,
    calculate_progress_fraction,
    calculate_xp_award,
    start_of_week,
    sunday_weekday,
)

__all__ = [
    # Exceptions
    "QuestlogDomainException",
    "ValidationError",
    "ConflictError",
    # Formulas
    "calculate_xp_award",
    "build_level_starts",
    "calculate_level_from_starts",
    "calculate_progress_fraction",
    "sunday_weekday",
    "start_of_week",
]
