"""
DiffX Writer - Serializes a DiffXDocument back to DiffX bytes.

Single pass, depth-first:
  1. Emit the header line ("#" + dots + title + ":" + options + "\n")
  2. Leaf: emit payload + "\n", with content-length rewritten to match
  3. Container: recurse into children in insertion order

A section whose encoding differs from its parent's gets an explicit
``encoding`` option, so the tree reads back with the same encodings.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

from diffx.document import Encoding
from diffx.spec import CONTENT_LENGTH_OPTION, ENCODING_OPTION, is_option_token, is_title

if TYPE_CHECKING:
    from diffx.document import DiffXDocument, Section


class DiffXWriter:

    @staticmethod
    def serialize(doc: DiffXDocument) -> bytes:
        """Serialize a DiffXDocument to bytes. The remainder is not written."""
        out = io.BytesIO()
        DiffXWriter._write_section(out, doc.title, doc.root, 0, Encoding.BINARY)
        return out.getvalue()

    @staticmethod
    def serialize_section(
        title: str, section: Section, depth: int = 0, inherited: Encoding = Encoding.BINARY,
    ) -> bytes:
        """Serialize one section (and its subtree) at the given depth.

        ``inherited`` is the encoding of the parent it will be read under.
        """
        out = io.BytesIO()
        DiffXWriter._write_section(out, title, section, depth, inherited)
        return out.getvalue()

    @staticmethod
    def _encoding_options(
        title: str, section: Section, inherited: Encoding,
    ) -> dict[str, str]:
        """Section options with an ``encoding`` entry added where needed."""
        options = dict(section.options)
        if isinstance(section.content, str) and section.encoding is not Encoding.UTF8:
            raise ValueError(f"Section {title!r} holds text but is {section.encoding.value}")
        if isinstance(section.content, bytes) and section.encoding is not Encoding.BINARY:
            raise ValueError(f"Section {title!r} holds raw bytes but is {section.encoding.value}")

        declared = options.get(ENCODING_OPTION)
        if declared is not None:
            if Encoding.from_option(declared) is not section.encoding:
                raise ValueError(
                    f"Section {title!r} declares encoding={declared} "
                    f"but is {section.encoding.value}"
                )
        elif section.encoding is not inherited:
            options = {ENCODING_OPTION: section.encoding.value, **options}
        return options

    @staticmethod
    def _write_section(
        out: io.BytesIO, title: str, section: Section, depth: int, inherited: Encoding,
    ) -> None:
        if not is_title(title):
            raise ValueError(
                f"Invalid section title: {title!r}. Only letters and hyphens allowed."
            )

        payload = section.payload
        options = DiffXWriter._encoding_options(title, section, inherited)
        if payload is not None:
            # Keeps the key's original position when it is already present
            options[CONTENT_LENGTH_OPTION] = str(len(payload))
        else:
            options.pop(CONTENT_LENGTH_OPTION, None)
            if not section.children:
                raise ValueError(f"Section {title!r} has no payload and no children")

        out.write(DiffXWriter.header_line(title, depth, options))
        if payload is not None:
            out.write(payload)
            out.write(b"\n")
            return
        for child_title, child in section.children.items():
            DiffXWriter._write_section(out, child_title, child, depth + 1, section.encoding)

    @staticmethod
    def header_line(title: str, depth: int, options: dict[str, str]) -> bytes:
        """Build a single header line."""
        for key, val in options.items():
            if not is_option_token(key) or not is_option_token(val):
                raise ValueError(f"Invalid option {key!r}={val!r} in section {title!r}")
        line = "#" + "." * depth + title + ":"
        if options:
            line += " " + ",".join(f"{k}={v}" for k, v in options.items())
        return (line + "\n").encode("ascii")

    @staticmethod
    def write(doc: DiffXDocument, path: str, mode: int = 0o644) -> int:
        """Write a DiffXDocument to a file atomically. Returns bytes written."""
        import os
        import tempfile
        data = DiffXWriter.serialize(doc)
        # Atomic write: write to temp file, then rename over target.
        dir_name = os.path.dirname(os.path.abspath(path)) or "."
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".diffx.tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        return len(data)
