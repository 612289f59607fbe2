"""Infrastructure layer: configuration, database access, logging."""
