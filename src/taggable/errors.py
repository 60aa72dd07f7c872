"""Exceptions raised by the taggable cache library.

Store failures (``redis.exceptions.RedisError`` and friends) are never
wrapped; they reach the caller unchanged.
"""


class TaggableError(Exception):
    """Base class for errors raised by this library."""


class LockError(TaggableError):
    """A distributed lock could not be acquired within its retry budget."""

    def __init__(self, resource: str, attempts: int) -> None:
        super().__init__(
            f"Could not acquire lock {resource!r} after {attempts} attempt(s)"
        )
        self.resource = resource
        self.attempts = attempts


__all__ = ["LockError", "TaggableError"]
