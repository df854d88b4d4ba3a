"""
Command-line interface for the subtitle translation pipeline.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .agents import AgentSet
from .config import AppConfig
from .errors import InputError, JobNotFoundError, TranscreatorError, user_message
from .gateway import ModelGateway, build_openai_client
from .glossary_index import NullGlossaryIndex, OpenAIGlossaryIndex
from .models import TranslationSettings
from .orchestrator import TranslationOrchestrator
from .repository import JsonJobRepository
from .srt_utils import write_srt

logger = logging.getLogger("transcreator")


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    """Setup logging configuration."""
    resolved = logging.DEBUG if verbose else getattr(logging, level, logging.INFO)
    logging.basicConfig(level=resolved, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Blueprint-first subtitle translation")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    ap.add_argument("--store-dir", default=None, help="Job store directory (overrides TRANSCREATOR_STORE_DIR)")
    ap.add_argument("--no-progress", action="store_true", help="Hide the batch progress bar")
    sub = ap.add_subparsers(dest="command", required=True)

    bp = sub.add_parser("blueprint", help="Phase 1: analyze an SRT file and produce a blueprint")
    bp.add_argument("input_srt")
    bp.add_argument("--tone", required=True, help='Requested tone, e.g. "Professional"')
    bp.add_argument("--target-language", default=None)
    bp.add_argument("--out", default=None, help="Write the blueprint JSON here")
    bp.add_argument("--no-glossary-index", action="store_true", help="Skip glossary embeddings")

    ex = sub.add_parser("execute", help="Phase 2: translate a job with its confirmed blueprint")
    ex.add_argument("job_id")
    ex.add_argument("--blueprint", default=None, help="Edited blueprint JSON (default: stored blueprint)")
    ex.add_argument("--tone", default=None, help="Override the tone given at blueprint time")
    ex.add_argument("--target-language", default=None)
    ex.add_argument("--out", required=True, help="Output SRT path")
    ex.add_argument("--suggestions", default=None, help="Write sync suggestions JSON here")

    st = sub.add_parser("status", help="Show a job")
    st.add_argument("job_id")

    return ap.parse_args(argv)


def _load_json(path: str) -> dict:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise InputError(f"Cannot read JSON from {path}: {e}") from e


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise InputError(f"Cannot read {path}: {e}") from e


async def _run_blueprint(args, orchestrator: TranslationOrchestrator) -> None:
    settings = TranslationSettings(tone=args.tone, target_language=args.target_language)
    draft = await orchestrator.generate_blueprint(_read_text(args.input_srt), settings)
    payload = {"jobId": draft.job_id, "blueprint": draft.blueprint.to_json_dict()}
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        logger.info(f"Saved blueprint -> {args.out}")
    print(text)


async def _run_execute(args, orchestrator: TranslationOrchestrator) -> None:
    job = orchestrator.get_job(args.job_id)
    if args.blueprint:
        data = _load_json(args.blueprint)
        blueprint = data.get("blueprint", data)
    elif job.blueprint is not None:
        blueprint = job.blueprint
    else:
        raise InputError(f"Job {args.job_id} has no blueprint; pass --blueprint")

    settings = TranslationSettings(
        tone=args.tone or job.settings.tone,
        target_language=args.target_language or job.settings.target_language,
    )
    result = await orchestrator.execute_translation(args.job_id, blueprint, settings)
    write_srt(result.final_text, args.out)
    logger.info(f"Saved SRT -> {args.out}")
    suggestions = result.to_dict()["syncSuggestions"]
    if args.suggestions:
        Path(args.suggestions).write_text(
            json.dumps(suggestions, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        logger.info(f"Saved {len(suggestions)} sync suggestions -> {args.suggestions}")


async def main_async(argv: Optional[list[str]] = None) -> int:
    """Main async CLI entry point. Returns the process exit code."""
    project_root = Path(__file__).parent.parent.parent
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()

    args = parse_args(argv)
    config = None
    try:
        config = AppConfig.from_env()
        setup_logging(args.verbose, config.log_level)
        if args.store_dir:
            config.store_dir = Path(args.store_dir)
        if args.no_progress:
            config.show_progress = False
        repository = JsonJobRepository(config.store_dir)

        if args.command == "status":
            job = repository.get_job(args.job_id)
            if job is None:
                raise JobNotFoundError(args.job_id)
            print(json.dumps(job.to_dict(), ensure_ascii=False, indent=2))
            return 0

        client = build_openai_client(config)
        gateway = ModelGateway.from_config(config, client)
        agents = AgentSet.from_config(gateway, config)
        if args.command == "blueprint" and not args.no_glossary_index:
            glossary_index = OpenAIGlossaryIndex(client, config.store_dir, config.embedding_model)
        else:
            glossary_index = NullGlossaryIndex()
        orchestrator = TranslationOrchestrator.from_config(agents, repository, glossary_index, config)
        try:
            if args.command == "blueprint":
                await _run_blueprint(args, orchestrator)
            else:
                await _run_execute(args, orchestrator)
        finally:
            await orchestrator.drain()
            await client.close()
        return 0

    except TranscreatorError as e:
        production = config.is_production if config else False
        logger.error(user_message(e, production=production, operation=args.command))
        return e.exit_code


def main() -> None:
    """Main CLI entry point."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
