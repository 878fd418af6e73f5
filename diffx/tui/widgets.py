"""DiffX TUI Widgets - Custom panels for the DiffX viewer."""

from __future__ import annotations

from rich.syntax import Syntax
from textual.app import ComposeResult
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Label, Static, Tree

from diffx.document import DiffXDocument, Section

HEX_PREVIEW_BYTES = 512


def hex_preview(data: bytes, limit: int = HEX_PREVIEW_BYTES) -> str:
    """Classic offset / hex / ASCII dump of the first ``limit`` bytes."""
    lines = []
    for offset in range(0, min(len(data), limit), 16):
        chunk = data[offset:offset + 16]
        hex_part = " ".join(f"{b:02x}" for b in chunk)
        text_part = "".join(chr(b) if 32 <= b < 127 else "." for b in chunk)
        lines.append(f"{offset:08x}  {hex_part:<47}  {text_part}")
    if len(data) > limit:
        lines.append(f"... {len(data) - limit} more bytes")
    return "\n".join(lines)


def render_payload(title: str, section: Section) -> str | Syntax:
    """Pick a renderable for a leaf section's payload."""
    if section.text is not None:
        if title == "diff":
            return Syntax(section.text, "diff", theme="monokai", line_numbers=True)
        if title == "meta" or section.options.get("format") == "json":
            return Syntax(section.text, "json", theme="monokai", line_numbers=False)
        return section.text
    if section.data is not None:
        return hex_preview(section.data)
    return f"{len(section.children)} child sections"


class SectionTree(Tree):
    """Tree of sections, keyed by dotted path."""

    DEFAULT_CSS = """
    SectionTree {
        width: 36;
        border: solid $accent;
    }
    """

    class SectionSelected(Message):
        """Fired when a section is highlighted or selected."""

        def __init__(self, path: str) -> None:
            self.path = path
            super().__init__()

    def __init__(self, doc: DiffXDocument, **kwargs) -> None:
        super().__init__(doc.title or "(untitled)", data="", **kwargs)
        self._document = doc

    def on_mount(self) -> None:
        nodes = {"": self.root}
        for path, _, section in self._document.walk():
            if not path:
                continue
            parent_path, _, title = path.rpartition(".")
            parent = nodes[parent_path]
            label = f"{title or '(untitled)'} [{section.encoding.value}]"
            if section.is_leaf:
                parent.add_leaf(label, data=path)
            else:
                nodes[path] = parent.add(label, data=path, expand=True)
        self.root.expand()

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        if event.node.data is not None:
            self.post_message(self.SectionSelected(event.node.data))

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        if event.node.data is not None:
            self.post_message(self.SectionSelected(event.node.data))


class OptionsPanel(Static):
    """Sidebar panel showing the selected section's options and encoding."""

    DEFAULT_CSS = """
    OptionsPanel {
        width: 32;
        border: solid $accent;
        padding: 1;
        overflow-y: auto;
    }
    OptionsPanel .options-title {
        text-style: bold;
        margin-bottom: 1;
    }
    OptionsPanel .option-key {
        color: $text-muted;
    }
    """

    def compose(self) -> ComposeResult:
        yield Label("Options", classes="options-title")
        yield Static("", id="options-body")

    def show_options(self, section: Section) -> None:
        lines = [f"encoding: {section.encoding.value}", f"kind: {section.kind.value}", ""]
        for key, val in section.options.items():
            display = val if len(val) <= 24 else val[:21] + "..."
            lines.append(f"{key}:")
            lines.append(f"  {display}")
        self.query_one("#options-body", Static).update("\n".join(lines))


class ContentPanel(Static):
    """Main content viewer with syntax highlighting for diff payloads."""

    DEFAULT_CSS = """
    ContentPanel {
        border: solid $accent;
        padding: 1;
        overflow: auto;
    }
    ContentPanel .content-title {
        text-style: bold;
        color: $accent;
        margin-bottom: 1;
    }
    """

    current_section = reactive("")

    def compose(self) -> ComposeResult:
        yield Label("Select a section", classes="content-title", id="content-title")
        yield Static("", id="content-body")

    def show_content(self, path: str, section: Section) -> None:
        self.current_section = path
        title = path.rsplit(".", 1)[-1]
        self.query_one("#content-title", Label).update(f"--- {path or '(root)'} ---")
        self.query_one("#content-body", Static).update(render_payload(title, section))
        self.scroll_home()
