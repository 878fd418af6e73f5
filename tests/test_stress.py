"""
DiffX Stress Tests
==================
Deep nesting, wide trees, and large payloads.
"""

from __future__ import annotations

import os
import time

import pytest

from diffx.document import DiffXDocument, Encoding, Section
from diffx.errors import DiffXParseError, ErrorKind
from diffx.parser import parse_document
from diffx.spec import MAX_NESTING_DEPTH


def _chain(depth: int) -> bytes:
    """A single path of containers ending in a one-byte leaf at ``depth``."""
    lines = [b"#" + b"." * d + b"s:\n" for d in range(depth)]
    lines.append(b"#" + b"." * depth + b"leaf: content-length=1\nx\n")
    return b"".join(lines)


class TestDepth:

    def test_deep_chain(self):
        doc = parse_document(_chain(150))
        path = ".".join(["s"] * 149 + ["leaf"])
        assert doc.get(path).content == b"x"

    def test_max_depth_allowed(self):
        doc = parse_document(_chain(MAX_NESTING_DEPTH))
        assert sum(1 for _ in doc.walk()) == MAX_NESTING_DEPTH + 1

    def test_too_deep(self):
        with pytest.raises(DiffXParseError) as exc:
            parse_document(_chain(MAX_NESTING_DEPTH + 1))
        assert exc.value.kind is ErrorKind.NESTING_TOO_DEEP


class TestWidth:

    def test_many_siblings(self):
        # Titles are letters only, so spell the index out in a-j
        def title(i: int) -> str:
            return "s" + "".join("abcdefghij"[int(c)] for c in str(i))

        children = {title(i): Section.from_text(str(i)) for i in range(5000)}
        doc = DiffXDocument(title="diffx", root=Section.container(children))
        parsed = parse_document(doc.to_bytes())
        assert len(parsed.root.children) == 5000
        assert parsed.get(title(4321)).text == "4321"


class TestLargePayloads:

    def test_large_binary_payload(self):
        blob = os.urandom(5 * 1024 * 1024)
        doc = DiffXDocument(
            title="diffx",
            root=Section.container({"blob": Section.from_bytes(blob, encoding=Encoding.BINARY)}),
        )
        start = time.perf_counter()
        parsed = parse_document(doc.to_bytes())
        elapsed = time.perf_counter() - start
        assert parsed.get("blob").data == blob
        # Payloads are sliced in one step, not scanned byte by byte
        assert elapsed < 5.0

    def test_large_text_payload(self):
        text = "línea de diff\n" * 100_000
        doc = DiffXDocument(title="diffx", root=Section.from_text(text))
        assert parse_document(doc.to_bytes()).root.text == text
