"""
Reading-speed (CPS) checks and the compression marker used by phantom sync.
"""

import re
from typing import Optional

SYNC_MARKER_TEMPLATE = '[PS Sync: Compressed from "{original}" for readability.]'
_SYNC_MARKER_RE = re.compile(r"\s*\[PS Sync: (.*)\]\s*$")


def chars_per_second(text: str, duration_seconds: float) -> float:
    """Reading speed of ``text`` over ``duration_seconds``.

    Zero-length cues (including those whose timestamps could not be parsed)
    report 0.0 so they are never flagged.
    """
    if duration_seconds <= 0:
        return 0.0
    return len(text.strip()) / duration_seconds


def exceeds_threshold(text: str, duration_seconds: float, threshold: float) -> bool:
    return chars_per_second(text, duration_seconds) > threshold


def max_chars_for(duration_seconds: float, threshold: float) -> int:
    return max(1, int(duration_seconds * threshold))


def add_sync_marker(compressed: str, original: str) -> str:
    original = original.replace('"', "'")
    return f"{compressed.strip()} {SYNC_MARKER_TEMPLATE.format(original=original)}"


def split_sync_marker(text: str) -> tuple[str, Optional[str]]:
    """Split a synced line into its display text and marker body (if any)."""
    m = _SYNC_MARKER_RE.search(text)
    if not m:
        return text, None
    return text[: m.start()].rstrip(), m.group(1).strip()
