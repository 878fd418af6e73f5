"""
DiffX Reader - Load DiffX files from disk or memory.

The whole buffer must be available before parsing starts; the parser works
on an in-memory byte string. Line endings are never normalized: payloads
are length-delimited, so rewriting CRLF would corrupt them.

Safety features:
  - File size limit checked before reading (prevents OOM from huge inputs)
  - Magic prefix check in the first 64 bytes (instant file identification)
"""

from __future__ import annotations

import logging
from pathlib import Path

from diffx.document import DiffXDocument
from diffx.parser import parse_document
from diffx.spec import MAGIC, MAX_FILE_SIZE, MAX_MAGIC_SCAN_BYTES

logger = logging.getLogger(__name__)


class DiffXReader:
    """
    DiffX file reader.

    Usage:
        doc = DiffXReader.read("change.diffx")
        doc = DiffXReader.parse(data, strict=True)
    """

    @staticmethod
    def is_diffx(path: str | Path) -> bool:
        """Fast check if a file is DiffX. Reads only the first 64 bytes."""
        with open(path, "rb") as f:
            head = f.read(MAX_MAGIC_SCAN_BYTES)
        return DiffXReader.is_diffx_bytes(head)

    @staticmethod
    def is_diffx_bytes(data: bytes) -> bool:
        """Fast check if bytes start with a DiffX root header."""
        return data.startswith(MAGIC.encode("ascii"))

    @classmethod
    def read(
        cls, path: str | Path, max_size: int = MAX_FILE_SIZE, strict: bool = False,
    ) -> DiffXDocument:
        """Fully parse a DiffX file."""
        path = Path(path)
        file_size = path.stat().st_size
        if file_size > max_size:
            raise ValueError(
                f"File size {file_size} exceeds maximum {max_size} bytes. "
                f"Pass max_size= to override."
            )
        logger.debug("reading %s (%d bytes)", path, file_size)
        with open(path, "rb") as f:
            data = f.read()
        return cls.parse(data, max_size=max_size, strict=strict)

    @classmethod
    def parse(
        cls, data: bytes, max_size: int = MAX_FILE_SIZE, strict: bool = False,
    ) -> DiffXDocument:
        """Parse bytes into a DiffXDocument."""
        if len(data) > max_size:
            raise ValueError(
                f"Input size {len(data)} exceeds maximum {max_size} bytes. "
                f"Pass max_size= to override."
            )
        doc = parse_document(data, strict=strict)
        if doc.remainder:
            logger.debug("ignoring %d trailing bytes after root section", len(doc.remainder))
        return doc
