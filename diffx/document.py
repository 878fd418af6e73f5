"""
DiffX Document - In-memory tree of parsed sections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping, Union

from diffx.spec import (
    CONTENT_LENGTH_OPTION,
    ENCODING_BINARY,
    ENCODING_OPTION,
    ENCODING_UTF8,
    VERSION_OPTION,
    is_option_token,
    is_title,
)


class Encoding(str, Enum):
    """Payload encoding of a section. Resolved for every section."""

    BINARY = ENCODING_BINARY
    UTF8 = ENCODING_UTF8

    @classmethod
    def from_option(cls, value: str) -> Encoding | None:
        """Map an ``encoding`` option value to a member. None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


class ContentKind(str, Enum):
    """Which of the three content forms a section holds."""

    CHILDREN = "children"
    ENCODED = "encoded"
    RAW = "raw"


@dataclass(frozen=True)
class SectionHeader:
    """A parsed header line. Transient: the section parser consumes it."""
    depth: int
    title: str
    options: dict[str, str] = field(default_factory=dict)
    offset: int = 0                                                   # offset of the '#'
    value_offsets: dict[str, int] = field(default_factory=dict, compare=False)  # option key -> value offset


# Children (title -> Section), UTF-8 text, or raw bytes
SectionContent = Union[dict[str, "Section"], str, bytes]


@dataclass(frozen=True)
class Section:
    """
    One node of a DiffX tree.

    Usage:
        leaf = Section.from_text("hello\\n")
        blob = Section.from_bytes(b"\\x00\\x01", encoding=Encoding.BINARY)
        root = Section.container({"meta": leaf, "blob": blob}, options={"version": "1.0"})
    """
    encoding: Encoding
    options: dict[str, str]
    content: SectionContent

    @property
    def kind(self) -> ContentKind:
        if isinstance(self.content, dict):
            return ContentKind.CHILDREN
        if isinstance(self.content, str):
            return ContentKind.ENCODED
        return ContentKind.RAW

    @property
    def children(self) -> dict[str, Section]:
        """Child sections by title. Empty for leaf sections."""
        if isinstance(self.content, dict):
            return self.content
        return {}

    @property
    def text(self) -> str | None:
        """Decoded payload of a UTF-8 leaf, else None."""
        return self.content if isinstance(self.content, str) else None

    @property
    def data(self) -> bytes | None:
        """Raw payload of a binary leaf, else None."""
        return self.content if isinstance(self.content, bytes) else None

    @property
    def is_leaf(self) -> bool:
        return not isinstance(self.content, dict)

    @property
    def payload(self) -> bytes | None:
        """Leaf payload as bytes, regardless of encoding."""
        if isinstance(self.content, str):
            return self.content.encode("utf-8")
        if isinstance(self.content, bytes):
            return self.content
        return None

    @property
    def content_length(self) -> int | None:
        payload = self.payload
        return len(payload) if payload is not None else None

    # -- builders ---------------------------------------------------------

    @classmethod
    def from_text(
        cls, text: str, options: Mapping[str, str] | None = None, explicit_encoding: bool = True,
    ) -> Section:
        """Build a UTF-8 leaf. ``content-length`` is filled in from the text."""
        opts = _checked_options(options)
        if explicit_encoding:
            opts.setdefault(ENCODING_OPTION, ENCODING_UTF8)
        opts[CONTENT_LENGTH_OPTION] = str(len(text.encode("utf-8")))
        return cls(encoding=Encoding.UTF8, options=opts, content=text)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        options: Mapping[str, str] | None = None,
        encoding: Encoding | None = None,
    ) -> Section:
        """Build a raw leaf. Raw leaves are always binary.

        With ``encoding`` given, an ``encoding=binary`` option is stored on
        the leaf. Without it the writer adds one only when the parent is not
        binary.
        """
        opts = _checked_options(options)
        if encoding is not None:
            opts[ENCODING_OPTION] = Encoding(encoding).value
        if ENCODING_OPTION in opts and opts[ENCODING_OPTION] != ENCODING_BINARY:
            raise ValueError(
                f"Raw leaves must be binary, got encoding={opts[ENCODING_OPTION]!r}"
            )
        opts[CONTENT_LENGTH_OPTION] = str(len(data))
        return cls(encoding=Encoding.BINARY, options=opts, content=bytes(data))

    @classmethod
    def container(
        cls,
        children: Mapping[str, Section],
        options: Mapping[str, str] | None = None,
        encoding: Encoding = Encoding.BINARY,
    ) -> Section:
        """Build a section that holds other sections.

        An ``encoding`` option in ``options`` takes precedence over
        ``encoding``. The writer declares the encoding in the header when it
        differs from the parent's.
        """
        if not children:
            raise ValueError("A container section needs at least one child")
        for title in children:
            if not is_title(title):
                raise ValueError(
                    f"Invalid section title: {title!r}. Only letters and hyphens allowed."
                )
        opts = _checked_options(options)
        opts.pop(CONTENT_LENGTH_OPTION, None)
        if ENCODING_OPTION in opts:
            encoding = _encoding_from_options(opts)
        return cls(encoding=Encoding(encoding), options=opts, content=dict(children))


def _checked_options(options: Mapping[str, str] | None) -> dict[str, str]:
    opts = dict(options or {})
    for key, val in opts.items():
        if not is_option_token(key) or not is_option_token(val):
            raise ValueError(
                f"Invalid option {key!r}={val!r}. "
                f"Keys and values must be non-empty runs of [A-Za-z0-9._-]."
            )
    if ENCODING_OPTION in opts:
        _encoding_from_options(opts)
    return opts


def _encoding_from_options(opts: Mapping[str, str]) -> Encoding:
    encoding = Encoding.from_option(opts[ENCODING_OPTION])
    if encoding is None:
        raise ValueError(f"Unknown encoding: {opts[ENCODING_OPTION]!r}")
    return encoding


@dataclass(frozen=True)
class DiffXDocument:
    """
    A parsed DiffX file: the root section plus anything left after it.

    Usage:
        doc = parse_document(data)
        doc.get("change.file.diff").text
        for path, depth, section in doc.walk():
            ...
    """
    title: str
    root: Section
    remainder: bytes = b""

    @property
    def version(self) -> str:
        return self.root.options.get(VERSION_OPTION, "")

    @property
    def encoding(self) -> Encoding:
        return self.root.encoding

    @property
    def options(self) -> dict[str, str]:
        return self.root.options

    def get(self, path: str) -> Section | None:
        """Look up a section by dotted title path below the root.

        ``""`` returns the root itself. Returns None if any step is missing.
        """
        section = self.root
        if not path:
            return section
        for title in path.split("."):
            section = section.children.get(title)
            if section is None:
                return None
        return section

    def walk(self) -> Iterator[tuple[str, int, Section]]:
        """Yield (dotted path, depth, section) in document order, root first."""
        stack: list[tuple[str, int, Section]] = [("", 0, self.root)]
        while stack:
            path, depth, section = stack.pop()
            yield path, depth, section
            # Reversed so siblings come out in insertion order
            for title, child in reversed(list(section.children.items())):
                child_path = f"{path}.{title}" if path else title
                stack.append((child_path, depth + 1, child))

    def to_bytes(self) -> bytes:
        """Serialize this document back to DiffX bytes."""
        from diffx.writer import DiffXWriter
        return DiffXWriter.serialize(self)

    def write(self, path: str) -> int:
        """Write this document to a file. Returns bytes written.

        Raises ValueError if path contains '..' (path traversal prevention).
        """
        from pathlib import Path as _Path
        if ".." in _Path(path).parts:
            raise ValueError("Output path must not contain '..' (path traversal)")
        from diffx.writer import DiffXWriter
        return DiffXWriter.write(self, path)

    def __repr__(self) -> str:
        return (
            f"DiffXDocument(title={self.title!r}, version={self.version!r}, "
            f"sections={list(self.root.children)})"
        )
