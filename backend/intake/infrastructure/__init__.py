"""Infrastructure layer: database and logging."""
