"""
SRT parsing, writing, and prompt formatting utilities.
"""

import logging
import math
import re
from pathlib import Path
from typing import Optional, Sequence

from .errors import SubtitleParseError
from .models import SubtitleLine

logger = logging.getLogger("transcreator")

_TIMING_RE = re.compile(r"^\s*(\S+)\s+-->\s+(\S+)")
_TS_RE = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})[,.](\d{1,3})$")
_TAG_RE = re.compile(r"<[^>]*>")


def parse_timestamp(ts: str) -> float:
    """Convert an ``HH:MM:SS,mmm`` timestamp to seconds (NaN if malformed)."""
    m = _TS_RE.match(ts.strip())
    if not m:
        return math.nan
    h, mm, s, ms = m.groups()
    return int(h) * 3600 + int(mm) * 60 + int(s) + int(ms.ljust(3, "0")) / 1000.0


def strip_tags(text: str) -> str:
    return _TAG_RE.sub("", text)


def parse_srt_text(raw: str) -> list[SubtitleLine]:
    """Parse raw SRT content into subtitle lines.

    Multi-line cues are joined with a single space and HTML tags are removed.
    Timestamps are kept verbatim; a cue whose duration cannot be computed gets
    a duration of 0.
    """
    content = raw.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")
    if not content.strip():
        raise SubtitleParseError("Subtitle content is empty")

    blocks = re.split(r"\n\s*\n", content.strip(), flags=re.M)
    out: list[SubtitleLine] = []
    prev_seq = 0
    for idx, b in enumerate(blocks, 1):
        lines = [ln for ln in b.splitlines() if ln.strip()]
        if not lines:
            continue
        if re.match(r"^\d+$", lines[0].strip()):
            seq = int(lines[0].strip())
            lines = lines[1:]
        else:
            seq = prev_seq + 1
        if not lines:
            raise SubtitleParseError(f"Block {idx}: missing timing line")
        m = _TIMING_RE.match(lines[0])
        if not m:
            raise SubtitleParseError(f"Block {idx}: invalid timing line {lines[0]!r}")
        if seq <= prev_seq:
            raise SubtitleParseError(
                f"Block {idx}: sequence {seq} does not follow {prev_seq}"
            )
        start, end = m.group(1), m.group(2)
        duration = parse_timestamp(end) - parse_timestamp(start)
        if math.isnan(duration) or duration < 0:
            logger.debug(f"Cue {seq}: cannot compute duration from {start} --> {end}, using 0")
            duration = 0.0
        text = " ".join(strip_tags(ln).strip() for ln in lines[1:]).strip()
        out.append(
            SubtitleLine(
                sequence=seq,
                start_time=start,
                end_time=end,
                duration_seconds=duration,
                text=text,
            )
        )
        prev_seq = seq

    if not out:
        raise SubtitleParseError("No subtitle cues found")
    return out


def serialize_srt(lines: Sequence[SubtitleLine], texts: Optional[Sequence[str]] = None) -> str:
    """Render lines back to SRT, optionally replacing each cue's text."""
    if texts is not None and len(texts) != len(lines):
        raise ValueError(f"Got {len(texts)} texts for {len(lines)} lines")
    blocks = []
    for i, line in enumerate(lines):
        text = line.text if texts is None else texts[i]
        blocks.append(f"{line.sequence}\n{line.start_time} --> {line.end_time}\n{text}\n")
    return "\n".join(blocks)


def to_prompt_format(batch: Sequence[SubtitleLine]) -> str:
    """Format a batch as ``sequence | text`` lines for a prompt."""
    return "\n".join(f"{line.sequence} | {line.text}" for line in batch)


def write_srt(content: str, path: str) -> None:
    """Write SRT content to a file."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
