"""
questlog: gamification and recurring-schedule core for a goal tracker.

The package turns user actions into XP, levels, streaks and achievement
unlocks, ranks users on leaderboards, and expands recurring workout patterns
into concrete scheduled occurrences. Transport, UI and authentication live
outside this package and talk to it through the services wired by
``questlog.core.container.ServiceContainer``.
"""

__version__ = "1.0.0"
