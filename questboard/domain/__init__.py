"""Domain layer: value objects and aggregates for user progression."""
