"""Output truncation: bound all tool output before it reaches the engine."""

from __future__ import annotations

import re

MAX_LINES = 2000
MAX_BYTES = 50 * 1024  # 50KB

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")


def truncate_output(
    text: str,
    max_lines: int = MAX_LINES,
    max_bytes: int = MAX_BYTES,
) -> str:
    """Keep the tail of ``text`` within ``max_lines`` and ``max_bytes``.

    The tail is kept because command runners and HTTP error bodies put the
    useful part last. A one-line notice says how much was dropped.
    """
    if not text:
        return text

    lines = text.split("\n")
    byte_count = len(text.encode("utf-8", errors="replace"))
    if len(lines) <= max_lines and byte_count <= max_bytes:
        return text

    skipped_lines = max(len(lines) - max_lines, 0)
    result = "\n".join(lines[skipped_lines:])

    encoded = result.encode("utf-8", errors="replace")
    skipped_bytes = 0
    if len(encoded) > max_bytes:
        skipped_bytes = len(encoded) - max_bytes
        result = encoded[-max_bytes:].decode("utf-8", errors="ignore")

    dropped = []
    if skipped_lines:
        dropped.append(f"{skipped_lines} lines")
    if skipped_bytes:
        dropped.append(f"{skipped_bytes} bytes")
    notice = (
        f"[Output truncated: dropped first {' and '.join(dropped)}. "
        f"Total: {len(lines)} lines, {byte_count} bytes]"
    )
    return f"{notice}\n{result}"


def strip_ansi(text: str) -> str:
    """Strip ANSI escape sequences from text."""
    return _ANSI_RE.sub("", text)
