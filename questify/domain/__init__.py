"""Pure domain layer: aggregates, value objects and enums."""
