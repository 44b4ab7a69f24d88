class InvalidArgument(ValueError):
    """Malformed identifier or an unusable candidate list."""


class NotFound(LookupError):
    """A referenced course or student does not exist in the store."""
