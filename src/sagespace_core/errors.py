"""Shared error types for sagespace_core."""


class TransientError(RuntimeError):
    """Retry-safe provider failure such as a timeout, 5xx or rate limit."""
