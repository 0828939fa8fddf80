"""
Error taxonomy for a collection cycle.

Every error here ends its cycle and goes back to the caller. Nothing in
the core retries; that belongs to whoever schedules collect().
"""

from __future__ import annotations


class StatsError(Exception):
    """Base class for everything bindstat raises."""


class DecodeError(StatsError):
    """The statistics document could not be turned into a NormalizedTree."""


class UnsupportedVersion(DecodeError):

    def __init__(self, found: str):
        self.found = found
        super().__init__(f"Unsupported statistics schema version: {found!r}")


class MalformedDocument(DecodeError):

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"Unable to decode XML document: {cause}")


class FetchError(StatsError):
    """A collection cycle against one target failed."""

    def __init__(self, target: str, message: str):
        self.target = target
        super().__init__(message)


class BadStatus(FetchError):

    def __init__(self, code: int, target: str):
        self.code = code
        super().__init__(target, f"{target} returned HTTP status: {code}")


class TransportFailure(FetchError):

    def __init__(self, target: str, cause: Exception):
        self.cause = cause
        super().__init__(target, f"Request to {target} failed: {cause}")


class DocumentDecodeFailed(FetchError):

    def __init__(self, target: str, inner: DecodeError):
        self.inner = inner
        super().__init__(target, f"{target}: {inner}")
