"""Errors raised by the review engine."""


class ValidationError(ValueError):
    """A record is malformed and was rejected before any change was made."""


class NotFoundError(LookupError):
    """An operation referenced a word the engine does not know about."""


class PersistenceError(RuntimeError):
    """A durable read or write of a stored document failed."""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key
