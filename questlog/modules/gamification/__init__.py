"""
Gamification module.

- **level_logic.py**: LevelCurve (XP to level)
- **streak_logic.py**: StreakTracker, Clock
- **achievement_logic.py**: AchievementEvaluator
- **service.py**: ActionProcessor orchestrating the above against the Store
"""

from questlog.modules.gamification.achievement_logic import AchievementEvaluator
from questlog.modules.gamification.level_logic import LevelCurve
from questlog.modules.gamification.service import ActionProcessor
from questlog.modules.gamification.streak_logic import Clock, StreakTracker, SystemClock

__all__ = [
    "AchievementEvaluator",
    "ActionProcessor",
    "Clock",
    "LevelCurve",
    "StreakTracker",
    "SystemClock",
]
