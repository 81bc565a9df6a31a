"""Infrastructure layer: configuration, logging, database, events, validation."""
