"""
Tests for batching and rolling context.
"""

import math

import pytest

from transcreator.batching import build_rolling_context, partition
from transcreator.models import SubtitleLine


def _lines(n):
    return [
        SubtitleLine(i, "00:00:00,000", "00:00:01,000", 1.0, f"line {i}") for i in range(1, n + 1)
    ]


def test_partition_sizes_and_coverage():
    """ceil(n/w) windows, all full except the last, covering every line once in order."""
    for n in (0, 1, 5, 10, 11):
        for w in (1, 3, 10):
            lines = _lines(n)
            batches = partition(lines, w)

            assert len(batches) == math.ceil(n / w)
            assert all(len(b) == w for b in batches[:-1])
            assert [ln for b in batches for ln in b] == lines


def test_partition_rejects_zero_window():
    with pytest.raises(ValueError):
        partition(_lines(3), 0)


def test_rolling_context_uses_last_lines():
    batch = _lines(5)
    approved = "\n".join(f"t{i}" for i in range(1, 6))

    context = build_rolling_context(batch, approved, max_lines=2)

    assert context == "4 | line 4 => t4\n5 | line 5 => t5"


def test_rolling_context_is_bounded():
    batch = _lines(3)
    approved = "\n".join("x" * 100 for _ in range(3))

    assert len(build_rolling_context(batch, approved, max_lines=3, max_chars=50)) == 50
    assert build_rolling_context(batch, approved, max_lines=0) == ""
