"""Exceptions raised by the projection engine."""


class InvalidArgumentError(ValueError):
    """Raised when a projection call receives a non-finite or malformed argument."""
    pass
