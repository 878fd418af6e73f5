"""
DiffX Parser - Recursive section parser over a byte buffer.

Layers (leaf first):
  - option token      [A-Za-z0-9._-]+
  - option            key "=" value
  - option list       option ("," option)*, last duplicate key wins
  - section header    "#" dots title ":" [spaces option_list] spaces "\\n"
  - section           header, then a content-length payload or child sections

Every failure is a DiffXParseError with the byte offset where it was
detected. The only failure that is not propagated is the one that ends a
run of child sections: the next bytes do not start a header, or they start
a header for a shallower level (a sibling or ancestor).
"""

from __future__ import annotations

import logging

from diffx.document import DiffXDocument, Encoding, Section, SectionHeader
from diffx.errors import DiffXParseError, ErrorKind
from diffx.scanner import Scanner
from diffx.spec import (
    CONTENT_LENGTH_OPTION,
    DEPTH_MARKER,
    DIGITS,
    ENCODING_OPTION,
    HEADER_PREFIX,
    KEY_VALUE_SEPARATOR,
    MAX_NESTING_DEPTH,
    NEWLINE,
    OPTION_CHARS,
    OPTION_SEPARATOR,
    SPACE,
    TITLE_CHARS,
    TITLE_TERMINATOR,
)

logger = logging.getLogger(__name__)

_SPACES = frozenset((SPACE,))
_WHITESPACE = frozenset(b" \t\r\n")


def parse_option_str(scanner: Scanner) -> str:
    """Parse an option key or value."""
    # The alphabet is a strict ASCII subset, so this decode cannot fail
    return scanner.take_while1(OPTION_CHARS, "option key or value").decode("ascii")


def parse_option(scanner: Scanner) -> tuple[str, str]:
    """Parse one ``key=value`` pair."""
    with scanner.committing():
        key = parse_option_str(scanner)
        scanner.expect(KEY_VALUE_SEPARATOR)
        value = parse_option_str(scanner)
    return key, value


def _parse_options(scanner: Scanner) -> tuple[dict[str, str], dict[str, int]]:
    """Parse an option list, also recording where each value starts."""
    options: dict[str, str] = {}
    value_offsets: dict[str, int] = {}
    if scanner.peek() not in OPTION_CHARS:
        return options, value_offsets

    with scanner.committing():
        while True:
            key, value = parse_option(scanner)
            options[key] = value
            value_offsets[key] = scanner.pos - len(value)
            if scanner.peek() != OPTION_SEPARATOR:
                break
            scanner.expect(OPTION_SEPARATOR)
    return options, value_offsets


def parse_option_list(scanner: Scanner) -> dict[str, str]:
    """Parse zero or more comma-separated options into a mapping.

    An empty list is legal. On duplicate keys the later value wins.
    """
    options, _ = _parse_options(scanner)
    return options


def parse_section_header(scanner: Scanner) -> SectionHeader:
    """Parse a header line into a SectionHeader.

    Fails uncommitted if the input does not start with ``#``; any later
    failure is committed.
    """
    with scanner.committing() as start:
        scanner.expect(HEADER_PREFIX)
        depth = scanner.count(DEPTH_MARKER)
        title = scanner.take_while(TITLE_CHARS).decode("ascii")
        scanner.expect(TITLE_TERMINATOR)

        options: dict[str, str] = {}
        value_offsets: dict[str, int] = {}
        if scanner.take_while(_SPACES):
            options, value_offsets = _parse_options(scanner)
        scanner.take_while(_SPACES)
        scanner.expect(NEWLINE)

    return SectionHeader(
        depth=depth,
        title=title,
        options=options,
        offset=start,
        value_offsets=value_offsets,
    )


def _resolve_encoding(header: SectionHeader, inherited: Encoding) -> Encoding:
    value = header.options.get(ENCODING_OPTION)
    if value is None:
        return inherited
    encoding = Encoding.from_option(value)
    if encoding is None:
        raise DiffXParseError(
            ErrorKind.UNKNOWN_ENCODING,
            header.value_offsets.get(ENCODING_OPTION, header.offset),
            f"unknown encoding {value!r} (expected 'utf-8' or 'binary')",
        )
    return encoding


def _resolve_content_length(header: SectionHeader) -> int | None:
    value = header.options.get(CONTENT_LENGTH_OPTION)
    if value is None:
        return None
    # int() would also accept "-1", "1_000" and unicode digits
    if not all(ord(c) in DIGITS for c in value):
        raise DiffXParseError(
            ErrorKind.INVALID_CONTENT_LENGTH,
            header.value_offsets.get(CONTENT_LENGTH_OPTION, header.offset),
            f"content-length must be a non-negative integer, got {value!r}",
        )
    return int(value)


def _parse_payload(scanner: Scanner, length: int, encoding: Encoding) -> str | bytes:
    start = scanner.pos
    raw = scanner.take(length)
    if scanner.peek() != NEWLINE:
        raise DiffXParseError(
            ErrorKind.MISSING_SEPARATOR,
            scanner.pos,
            f"expected a newline after {length} bytes of payload",
        )
    scanner.expect(NEWLINE)
    logger.debug("consumed %d payload bytes at offset %d", length, start)

    if encoding is Encoding.BINARY:
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DiffXParseError(
            ErrorKind.UTF8_DECODE_ERROR,
            start + e.start,
            f"payload is not valid UTF-8: {e.reason}",
        ) from e


def _parse_children(
    scanner: Scanner, depth: int, encoding: Encoding, after_header: int,
) -> dict[str, Section]:
    children: dict[str, Section] = {}
    while True:
        mark = scanner.pos
        try:
            title, section = parse_section(scanner, depth, encoding)
        except DiffXParseError as e:
            shallower = (
                e.kind is ErrorKind.DEPTH_MISMATCH
                and e.found is not None
                and e.found < depth
            )
            if e.committed and not shallower:
                raise
            scanner.reset(mark)
            logger.debug("no more depth-%d sections at offset %d", depth, mark)
            break
        children[title] = section

    if not children:
        raise DiffXParseError(
            ErrorKind.MISSING_CONTENT,
            after_header,
            "section has neither a content-length nor any child sections",
        )
    return children


def parse_section(
    scanner: Scanner, depth: int, encoding: Encoding = Encoding.BINARY,
) -> tuple[str, Section]:
    """Parse one section (and everything nested in it) at the given depth.

    ``encoding`` is the parent's resolved encoding, used when the header
    does not set its own.
    """
    if depth > MAX_NESTING_DEPTH:
        raise DiffXParseError(
            ErrorKind.NESTING_TOO_DEEP,
            scanner.pos,
            f"sections nested deeper than {MAX_NESTING_DEPTH}",
        )

    # Once the header is consumed every failure below is committed
    with scanner.committing():
        header = parse_section_header(scanner)
        if header.depth != depth:
            raise DiffXParseError(
                ErrorKind.DEPTH_MISMATCH,
                header.offset,
                f"expected depth {depth}, found depth {header.depth}",
                expected=depth,
                found=header.depth,
            )

        resolved = _resolve_encoding(header, encoding)
        length = _resolve_content_length(header)
        logger.debug(
            "section %r at offset %d: depth=%d encoding=%s content-length=%s",
            header.title, header.offset, depth, resolved.value, length,
        )

        if length is not None:
            content = _parse_payload(scanner, length, resolved)
        else:
            content = _parse_children(scanner, depth + 1, resolved, scanner.pos)

    return header.title, Section(encoding=resolved, options=header.options, content=content)


def parse_document(data: bytes, *, strict: bool = False) -> DiffXDocument:
    """Parse a complete DiffX buffer.

    The root is parsed at depth 0 with a binary default encoding. Bytes
    after the root are kept as ``remainder``; with ``strict=True`` anything
    other than whitespace there is an UnexpectedTrailingInput error.
    """
    scanner = Scanner(data)
    title, root = parse_section(scanner, 0, Encoding.BINARY)
    remainder = scanner.rest()
    if strict and any(b not in _WHITESPACE for b in remainder):
        raise DiffXParseError(
            ErrorKind.UNEXPECTED_TRAILING_INPUT,
            scanner.pos,
            f"{len(remainder)} unexpected bytes after the root section",
        )
    return DiffXDocument(title=title, root=root, remainder=remainder)
