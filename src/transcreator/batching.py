"""
Fixed-size batching of subtitle lines and the rolling context carried between
consecutive batches.
"""

from collections.abc import Sequence

from .decoding import split_lines
from .models import SubtitleLine

START_CONTEXT = "This is the first batch; there is no previous context."


def partition(lines: Sequence[SubtitleLine], window_size: int) -> list[list[SubtitleLine]]:
    """Split ``lines`` into contiguous, ordered windows of ``window_size``.

    The last window may be shorter. Every line appears in exactly one window.
    """
    if window_size < 1:
        raise ValueError("window_size must be >= 1")
    return [list(lines[i : i + window_size]) for i in range(0, len(lines), window_size)]


def build_rolling_context(
    batch: Sequence[SubtitleLine],
    approved_text: str,
    *,
    max_lines: int = 3,
    max_chars: int = 600,
) -> str:
    """Summarize a finished batch as its last ``max_lines`` approved lines.

    Each entry pairs the source with its approved translation. The result is
    trimmed from the front to at most ``max_chars`` characters.
    """
    if max_lines <= 0 or max_chars <= 0:
        return ""
    translated = split_lines(approved_text)
    pairs = list(zip(batch, translated))[-max_lines:]
    context = "\n".join(f"{line.sequence} | {line.text} => {text}" for line, text in pairs)
    if len(context) > max_chars:
        context = context[-max_chars:]
    return context
