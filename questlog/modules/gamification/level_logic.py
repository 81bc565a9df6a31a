"""
Level curve: total XP to level and progress.

The curve is a table of cumulative XP thresholds (level 2, level 3, ...)
extended past its end up to ``max_level``. It is pure and deterministic; the
store uses the same instance to keep a profile's cached level in step with
its XP.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from questlog.core.exceptions import ConfigurationError
from questlog.domain.models import LevelInfo
from questlog.modules.shared.constants import MIN_LEVEL
from questlog.modules.shared.exceptions import ValidationError
from questlog.modules.shared.formulas import (
    build_level_starts,
    calculate_level_from_starts,
    calculate_progress_fraction,
)

if TYPE_CHECKING:
    from questlog.core.config.manager import ConfigManager


class LevelCurve:
    """
    Monotonic mapping from total XP to level.

    Example:
        >>> curve = LevelCurve([100, 250, 500], max_level=4)
        >>> curve.level_for(0).level
        1
        >>> curve.level_for(260).level
        3
        >>> curve.level_for(10_000).xp_for_next_level is None
        True
    """

    def __init__(self, thresholds: Sequence[int], max_level: int) -> None:
        if max_level < MIN_LEVEL:
            raise ConfigurationError(
                "gamification.levels.max_level", f"must be >= {MIN_LEVEL}, got {max_level}"
            )
        previous = 0
        for threshold in thresholds:
            if isinstance(threshold, bool) or not isinstance(threshold, int):
                raise ConfigurationError(
                    "gamification.levels.thresholds",
                    f"thresholds must be integers, got {threshold!r}",
                )
            if threshold <= previous:
                raise ConfigurationError(
                    "gamification.levels.thresholds",
                    "thresholds must be positive and strictly increasing",
                )
            previous = threshold

        self._max_level = max_level
        self._starts: List[int] = build_level_starts(thresholds, max_level)

    @classmethod
    def from_config(cls, config_manager: ConfigManager) -> "LevelCurve":
        return cls(
            thresholds=config_manager.require("gamification.levels.thresholds"),
            max_level=int(config_manager.require("gamification.levels.max_level")),
        )

    @property
    def max_level(self) -> int:
        return self._max_level

    def xp_required_for(self, level: int) -> int:
        """Cumulative XP at which ``level`` starts."""
        if level < MIN_LEVEL or level > self._max_level:
            raise ValidationError(
                "level", f"must be between {MIN_LEVEL} and {self._max_level}, got {level}"
            )
        return self._starts[level - 1]

    def level_number(self, total_xp: int) -> int:
        self._check_xp(total_xp)
        return calculate_level_from_starts(total_xp, self._starts)

    def level_for(self, total_xp: int) -> LevelInfo:
        """
        Level and progress for ``total_xp``.

        Raises:
            ValidationError: If ``total_xp`` is negative or not an integer
        """
        level = self.level_number(total_xp)
        current_start = self._starts[level - 1]
        next_start: Optional[int] = (
            self._starts[level] if level < self._max_level else None
        )
        return LevelInfo(
            level=level,
            progress_to_next=calculate_progress_fraction(
                total_xp, current_start, next_start
            ),
            total_xp=total_xp,
            xp_for_current_level=current_start,
            xp_for_next_level=next_start,
        )

    @staticmethod
    def _check_xp(total_xp: int) -> None:
        if isinstance(total_xp, bool) or not isinstance(total_xp, int):
            raise ValidationError("total_xp", f"must be an integer, got {total_xp!r}")
        if total_xp < 0:
            raise ValidationError("total_xp", f"cannot be negative, got {total_xp}")
