"""
SRT Transcreator - Blueprint-first subtitle translation with LLM agents.

A two-phase pipeline for:
- Extracting keywords and grounding candidate translations
- Assembling a reviewable translation blueprint (summary, personas, glossary)
- Transcreating, editing and reviewing subtitles batch by batch
- Compressing lines whose reading speed is too fast for their duration
"""

__version__ = "0.1.0"
