"""
DiffX - Hierarchical, length-delimited document format.

Sections nest by depth, carry key=value options, inherit their encoding
from their parent, and hold either child sections or a literal payload.
"""

__version__ = "0.1.0"
__format_version__ = "1.0"

from diffx.spec import MAGIC, FORMAT_VERSION
from diffx.errors import DiffXParseError, ErrorKind
from diffx.document import ContentKind, DiffXDocument, Encoding, Section, SectionHeader
from diffx.parser import parse_document, parse_section
from diffx.reader import DiffXReader
from diffx.writer import DiffXWriter
