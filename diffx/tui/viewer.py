"""DiffX TUI Viewer - Main Textual app with 3-panel layout."""

from __future__ import annotations

import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header

from diffx.document import DiffXDocument
from diffx.errors import DiffXParseError
from diffx.reader import DiffXReader
from diffx.tui.widgets import ContentPanel, OptionsPanel, SectionTree


class DiffXViewerApp(App):
    """TUI viewer for DiffX files. Tree, options and content panels."""

    TITLE = "DiffX Viewer"
    CSS = """
    Screen {
        layout: vertical;
    }
    #main-area {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
    ]

    def __init__(self, doc: DiffXDocument, file_name: str = "", **kwargs) -> None:
        super().__init__(**kwargs)
        self._document = doc
        self._file_name = file_name

    def compose(self) -> ComposeResult:
        self.title = f"DiffX Viewer - {self._file_name}" if self._file_name else "DiffX Viewer"
        yield Header()
        with Horizontal(id="main-area"):
            yield SectionTree(self._document, id="sections")
            yield OptionsPanel(id="options")
            yield ContentPanel(id="content")
        yield Footer()

    def on_mount(self) -> None:
        self._show("")
        self.query_one("#sections", SectionTree).focus()

    def on_section_tree_section_selected(self, event: SectionTree.SectionSelected) -> None:
        self._show(event.path)

    def _show(self, path: str) -> None:
        section = self._document.get(path)
        if section is None:
            return
        self.query_one("#options", OptionsPanel).show_options(section)
        self.query_one("#content", ContentPanel).show_content(path, section)


def run_viewer(path: str | Path) -> None:
    """Launch the DiffX TUI viewer."""
    path = Path(path)
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    try:
        doc = DiffXReader.read(path)
    except DiffXParseError as e:
        print(f"Error: Not a valid DiffX file: {path}: {e}", file=sys.stderr)
        sys.exit(1)

    DiffXViewerApp(doc, file_name=path.name).run()
