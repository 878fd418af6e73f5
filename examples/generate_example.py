"""Generate an example .diffx file to see what the format looks like."""

import sys
sys.path.insert(0, str(__import__("pathlib").Path(__file__).parent.parent))

from diffx.document import DiffXDocument, Encoding, Section

diff = """--- README
+++ README
@@ -1 +1 @@
-Hello, world!
+Hello, DiffX!
"""

doc = DiffXDocument(
    title="diffx",
    root=Section.container(
        {
            "meta": Section.from_text('{"repository": "example"}\n', {"format": "json"}),
            "change": Section.container(
                {
                    "file": Section.container(
                        {
                            "meta": Section.from_text('{"path": "README"}\n', {"format": "json"}),
                            "diff": Section.from_text(diff),
                        },
                        encoding=Encoding.UTF8,
                    ),
                    "logo": Section.from_bytes(b"\x89PNG\r\n\x1a\n\x00\x00", encoding=Encoding.BINARY),
                },
            ),
        },
        options={"version": "1.0", "encoding": "utf-8"},
    ),
)

# Write the example
output = str(__import__("pathlib").Path(__file__).parent / "hello.diffx")
nbytes = doc.write(output)
print(f"Generated {output} ({nbytes} bytes)")

# Also print the raw content so you can see the format
print()
print("=" * 60)
print("RAW .diffx FILE CONTENTS:")
print("=" * 60)
print()
print(doc.to_bytes().decode("utf-8", errors="replace"))
