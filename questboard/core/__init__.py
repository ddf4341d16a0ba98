"""Infrastructure layer: configuration, logging, database and events."""
