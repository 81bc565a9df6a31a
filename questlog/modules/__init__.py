"""Domain services, grouped by area."""
