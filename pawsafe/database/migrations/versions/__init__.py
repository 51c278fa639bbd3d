"""Schema versions, applied in order by the migration runner."""
