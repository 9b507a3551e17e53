"""Domain value objects and record types."""
