"""
DiffX Format Specification
==========================

Layout:
    #diffx: version=1.0,encoding=utf-8      <- Root section header (depth 0)
    #.meta: content-length=27               <- Child section (depth 1)
    <27 bytes of payload>                   <- Literal payload, then "\n"
    #.change:                               <- Container section (no content-length)
    #..file: encoding=binary                <- Grandchild (depth 2), overrides encoding
    #...diff: content-length=120            <- Depth 3 leaf, inherits binary
    <120 bytes of payload>

Grammar:
    header       = "#" depthdots title ":" [ws+ option_list] ws* "\\n"
    depthdots    = "."*                     ; count = depth
    title        = [A-Za-z-]*
    option_list  = option ("," option)*
    option       = key "=" value
    key, value   = [A-Za-z0-9._-]+
    content(cl)  = cl RAW BYTES "\\n"
    children     = section(depth+1, inherited_encoding)+

Design Decisions:
    - Depth is the dot count in the header, nothing else
    - A section holds either a content-length payload or one or more children
    - Encoding flows from parent to child unless the child sets its own
    - The root section defaults to binary
    - Payloads are length-delimited, so they may contain anything (even "#")
    - Later options and later sibling titles overwrite earlier ones
"""

# Every DiffX file starts with the root header
MAGIC = "#diffx:"

# Alphabets (ASCII only, so accepted bytes are always valid UTF-8)
OPTION_CHARS = frozenset(
    b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_."
)
TITLE_CHARS = frozenset(b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ-")
DIGITS = frozenset(b"0123456789")

# Structural bytes
HEADER_PREFIX = ord("#")
DEPTH_MARKER = ord(".")
TITLE_TERMINATOR = ord(":")
OPTION_SEPARATOR = ord(",")
KEY_VALUE_SEPARATOR = ord("=")
SPACE = ord(" ")
NEWLINE = ord("\n")

# Recognised options (unknown options are preserved verbatim)
ENCODING_OPTION = "encoding"
CONTENT_LENGTH_OPTION = "content-length"
VERSION_OPTION = "version"

ENCODING_UTF8 = "utf-8"
ENCODING_BINARY = "binary"

# Format version written by the tooling
FORMAT_VERSION = "1.0"

# Safety limits
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB max input for the reader
MAX_NESTING_DEPTH = 200            # Keeps recursion well under the interpreter limit

# Max bytes read when sniffing a file for the magic prefix
MAX_MAGIC_SCAN_BYTES = 64

# File extension
EXTENSION = ".diffx"


def is_option_token(value: str) -> bool:
    """True if value is a non-empty run of option characters."""
    return bool(value) and value.isascii() and all(ord(c) in OPTION_CHARS for c in value)


def is_title(value: str) -> bool:
    """True if value only uses title characters. Empty titles are legal."""
    return value.isascii() and all(ord(c) in TITLE_CHARS for c in value)
