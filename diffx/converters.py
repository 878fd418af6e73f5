"""
DiffX Converters - Convert to/from JSON, and to a plain-text outline.

  - to_json / from_json   (lossless; raw payloads are base64)
  - to_txt                (human-readable outline, one way)
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from diffx.document import DiffXDocument, Encoding, Section
from diffx.spec import CONTENT_LENGTH_OPTION, ENCODING_OPTION, is_option_token, is_title


# =============================================================================
# JSON
# =============================================================================

def _section_to_dict(title: str, section: Section) -> dict[str, Any]:
    content: Any
    if section.text is not None:
        content = section.text
    elif section.data is not None:
        content = {"base64": base64.b64encode(section.data).decode("ascii")}
    else:
        content = [
            _section_to_dict(child_title, child)
            for child_title, child in section.children.items()
        ]
    return {
        "title": title,
        "encoding": section.encoding.value,
        "options": dict(section.options),
        "content": content,
    }


def to_json(doc: DiffXDocument, indent: int = 2) -> str:
    """Convert a DiffX document to a JSON string."""
    data = {"diffx": _section_to_dict(doc.title, doc.root)}
    return json.dumps(data, indent=indent, ensure_ascii=False)


def _section_from_dict(data: Any) -> tuple[str, Section]:
    if not isinstance(data, dict):
        raise ValueError("Invalid DiffX JSON: each section must be a JSON object")

    title = data.get("title", "")
    if not isinstance(title, str) or not is_title(title):
        raise ValueError(f"Invalid DiffX JSON: bad section title {title!r}")

    options = data.get("options", {})
    if not isinstance(options, dict):
        raise ValueError("Invalid DiffX JSON: 'options' must be a JSON object")
    for key, val in options.items():
        if not isinstance(val, str) or not is_option_token(key) or not is_option_token(val):
            raise ValueError(f"Invalid DiffX JSON: bad option {key!r}={val!r}")

    encoding = Encoding.from_option(data.get("encoding", ""))
    if encoding is None:
        raise ValueError(f"Invalid DiffX JSON: bad encoding {data.get('encoding')!r}")
    declared = options.get(ENCODING_OPTION)
    if declared is not None and declared != encoding.value:
        raise ValueError(
            f"Invalid DiffX JSON: section {title!r} has encoding {encoding.value} "
            f"but declares encoding={declared}"
        )

    content = data.get("content")
    if isinstance(content, str):
        if encoding is not Encoding.UTF8:
            raise ValueError(f"Invalid DiffX JSON: text content in {encoding.value} section {title!r}")
        options[CONTENT_LENGTH_OPTION] = str(len(content.encode("utf-8")))
        return title, Section(encoding=encoding, options=options, content=content)

    if isinstance(content, dict):
        try:
            raw = base64.b64decode(content.get("base64", ""), validate=True)
        except (binascii.Error, TypeError) as e:
            raise ValueError(f"Invalid DiffX JSON: bad base64 payload in {title!r}") from e
        if encoding is not Encoding.BINARY:
            raise ValueError(f"Invalid DiffX JSON: raw content in {encoding.value} section {title!r}")
        options[CONTENT_LENGTH_OPTION] = str(len(raw))
        return title, Section(encoding=encoding, options=options, content=raw)

    if isinstance(content, list) and content:
        children: dict[str, Section] = {}
        for child in content:
            child_title, child_section = _section_from_dict(child)
            children[child_title] = child_section
        options.pop(CONTENT_LENGTH_OPTION, None)
        return title, Section(encoding=encoding, options=options, content=children)

    raise ValueError(f"Invalid DiffX JSON: section {title!r} has no content")


def from_json(json_str: str) -> DiffXDocument:
    """Create a DiffX document from a JSON string produced by to_json()."""
    data = json.loads(json_str)
    if not isinstance(data, dict) or "diffx" not in data:
        raise ValueError("Invalid DiffX JSON: expected an object with a 'diffx' key")
    title, root = _section_from_dict(data["diffx"])
    return DiffXDocument(title=title, root=root)


# =============================================================================
# Plain-text outline
# =============================================================================

def to_txt(doc: DiffXDocument) -> str:
    """Render an indented outline of the section tree."""
    lines = []
    for path, depth, section in doc.walk():
        title = path.rsplit(".", 1)[-1] if path else doc.title
        indent = "  " * depth
        if section.is_leaf:
            desc = f"{section.kind.value}, {section.content_length} bytes"
        else:
            desc = f"{len(section.children)} sections"
        lines.append(f"{indent}{title or '(untitled)'} [{section.encoding.value}] ({desc})")
        extra = {k: v for k, v in section.options.items() if k != CONTENT_LENGTH_OPTION}
        if extra:
            opts = ", ".join(f"{k}={v}" for k, v in extra.items())
            lines.append(f"{indent}  options: {opts}")
    return "\n".join(lines) + "\n"


# =============================================================================
# Dispatch
# =============================================================================

def convert_to(doc: DiffXDocument, fmt: str) -> str:
    """Convert a DiffX document to the given format."""
    converters = {
        "json": to_json,
        "txt": to_txt,
    }
    fn = converters.get(fmt.lower())
    if fn is None:
        raise ValueError(f"Unknown format: {fmt}. Supported: {', '.join(converters)}")
    return fn(doc)


def convert_from(data: str, fmt: str) -> DiffXDocument:
    """Convert from the given format to a DiffX document."""
    converters = {
        "json": from_json,
    }
    fn = converters.get(fmt.lower())
    if fn is None:
        raise ValueError(f"Unknown format: {fmt}. Supported: {', '.join(converters)}")
    return fn(data)
