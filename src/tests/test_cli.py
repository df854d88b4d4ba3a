"""
Tests for the command-line interface.
"""

import asyncio
import json

from transcreator.cli import main_async
from transcreator.models import TranslationSettings
from transcreator.repository import JsonJobRepository


def test_status_unknown_job(tmp_path):
    code = asyncio.run(main_async(["--store-dir", str(tmp_path), "status", "deadbeef"]))

    assert code == 4


def test_status_prints_job(tmp_path, capsys):
    job_id = JsonJobRepository(tmp_path).create_job("raw", TranslationSettings(tone="Casual"))

    code = asyncio.run(main_async(["--store-dir", str(tmp_path), "status", job_id]))

    assert code == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["id"] == job_id
    assert printed["status"] == "processing_blueprint"


def test_blueprint_requires_api_key(tmp_path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")
    srt = tmp_path / "in.srt"
    srt.write_text("1\n00:00:00,000 --> 00:00:01,000\nHi\n", encoding="utf-8")

    code = asyncio.run(
        main_async(["--store-dir", str(tmp_path), "blueprint", str(srt), "--tone", "Casual"])
    )

    assert code == 2
