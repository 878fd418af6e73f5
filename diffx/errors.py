"""
DiffX Errors - Structured, position-anchored parse failures.

Every failure carries the absolute byte offset where it was detected and
whether the parser had already consumed input on that path ("committed").
Callers that try alternatives only retry on uncommitted failures.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of parse failure. The value is the stable, user-facing name."""

    EMPTY_TOKEN = "EmptyToken"
    MISSING_SEPARATOR = "MissingSeparator"
    DEPTH_MISMATCH = "DepthMismatch"
    UNKNOWN_ENCODING = "UnknownEncoding"
    INVALID_CONTENT_LENGTH = "InvalidContentLength"
    UTF8_DECODE_ERROR = "Utf8DecodeError"
    MISSING_CONTENT = "MissingContent"
    UNEXPECTED_TRAILING_INPUT = "UnexpectedTrailingInput"
    TRUNCATED_CONTENT = "TruncatedContent"
    NESTING_TOO_DEEP = "NestingTooDeep"


class DiffXParseError(ValueError):
    """A single first-failure from the DiffX parser."""

    def __init__(
        self,
        kind: ErrorKind,
        offset: int,
        message: str = "",
        *,
        committed: bool = True,
        expected: int | None = None,
        found: int | None = None,
    ) -> None:
        self.kind = kind
        self.offset = offset
        self.message = message or kind.value
        self.committed = committed
        self.expected = expected
        self.found = found
        super().__init__(f"{kind.value} at offset {offset}: {self.message}")

    def __repr__(self) -> str:
        return (
            f"DiffXParseError(kind={self.kind.value}, offset={self.offset}, "
            f"committed={self.committed})"
        )
