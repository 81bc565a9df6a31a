"""
Schedule module.

- **recurrence_logic.py**: RecurringScheduleGenerator, COMMON_PATTERNS
- **service.py**: ScheduleMaterializer
"""

from questlog.modules.schedule.recurrence_logic import (
    COMMON_PATTERNS,
    RecurringScheduleGenerator,
    format_occurrence_title,
)
from questlog.modules.schedule.service import ScheduleMaterializer

__all__ = [
    "COMMON_PATTERNS",
    "RecurringScheduleGenerator",
    "ScheduleMaterializer",
    "format_occurrence_title",
]
