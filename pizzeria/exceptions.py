class ValidationError(ValueError):
    """Malformed input: empty required string, non-positive number or missing entity."""
