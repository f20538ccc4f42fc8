"""Text loading for source and documentation files.

Only text is indexed. Files are read up to a byte budget, sniffed for
binary content and decoded as UTF-8 (BOM tolerated) with a latin-1 last
resort, which never fails.
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

SNIFF_BYTES = 8192
ENCODINGS = ("utf-8-sig", "latin-1")

# Control bytes that show up in real text files (tab, newlines, form feed, escape...).
_TEXT_CONTROL = {7, 8, 9, 10, 12, 13, 27}
_NON_TEXT = bytes(b for b in range(0x20) if b not in _TEXT_CONTROL)


def is_probably_binary(data: bytes) -> bool:
    """True if the head of `data` has a NUL byte or >30% control bytes."""
    head = data[:SNIFF_BYTES]
    if not head:
        return False
    if b"\x00" in head:
        return True
    control = len(head) - len(head.translate(None, _NON_TEXT))
    return control / len(head) > 0.30


def read_text_file(path: Path, max_bytes: int) -> Tuple[str, str]:
    """Read and decode a text file.

    Args:
        path: File to read.
        max_bytes: Bytes read at most; the rest of the file is ignored.

    Returns:
        (content, encoding)

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file looks binary.
    """
    with path.open("rb") as fh:
        raw = fh.read(max_bytes)
    if is_probably_binary(raw):
        raise ValueError(f"Binary file detected: {path}")

    for enc in ENCODINGS:
        try:
            return raw.decode(enc), "utf-8" if enc == "utf-8-sig" else enc
        except UnicodeDecodeError:
            continue
    raise ValueError(f"Could not decode {path}")  # latin-1 decodes any byte string
