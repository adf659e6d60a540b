"""
ScriptScope Main Entry Point

    python -m scriptscope analyze pilot.fountain --types breakdown plot
    python -m scriptscope types
    python -m scriptscope clear pilot.fountain
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from scriptscope.core.config import ProviderConfig, load_config, DEFAULT_CONFIG_PATH
from scriptscope.core.constants import ProviderKind
from scriptscope.core.exceptions import ScriptScopeError
from scriptscope.core.logging_config import setup_logging, get_logger, run_log_path, LogLevel
from scriptscope.analysis.catalog import default_catalog
from scriptscope.analysis.models import Document
from scriptscope.llm.http_provider import create_provider
from scriptscope.pipelines.analysis_run import AnalysisRunCoordinator
from scriptscope.pipelines.events import ProgressEvent
from scriptscope.storage.checkpoint_manager import AnalysisCheckpointManager
from scriptscope.storage.kv_store import JsonFileStore
from scriptscope.utils.file_utils import read_script, write_json

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scriptscope",
        description="ScriptScope - Multi-pass AI analysis for screenplays"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze a screenplay")
    analyze.add_argument("script", type=str, help="Path to the screenplay text")
    analyze.add_argument(
        "--types", "-t",
        nargs="+",
        help="Analysis type ids to run (default: all)"
    )
    analyze.add_argument("--force", action="store_true", help="Ignore cached results and checkpoints")
    analyze.add_argument("--language", "-l", type=str, help="Output language")
    analyze.add_argument(
        "--provider",
        choices=[kind.value for kind in ProviderKind],
        help="Override the configured provider"
    )
    analyze.add_argument("--model", "-m", type=str, help="Override the configured model")
    analyze.add_argument("--output", "-o", type=str, help="Write the analysis JSON to this file")
    analyze.add_argument("--log-dir", type=str, help="Also write a detailed log of this run into DIR")

    subparsers.add_parser("types", help="List available analysis types")

    clear = subparsers.add_parser("clear", help="Delete stored analyses for a screenplay")
    clear.add_argument("script", type=str, help="Path to the screenplay text")

    return parser


def _print_progress(event: ProgressEvent) -> None:
    print(f"[{event.progress_percent:5.1f}%] {event.message}")


async def run_analyze(args, config, log_level: LogLevel) -> int:
    logger = get_logger("main")
    script_path = Path(args.script)
    document = Document(text=read_script(script_path), name=script_path.name)

    if args.log_dir:
        log_file = run_log_path(Path(args.log_dir), document.name)
        setup_logging(level=log_level, log_file=log_file, verbose=args.debug)
        print(f"Logging to {log_file}")

    if args.provider or args.model:
        provider_config = config.provider
        kind = ProviderKind(args.provider) if args.provider else provider_config.kind
        config.provider = ProviderConfig(
            kind=kind,
            model=args.model or (provider_config.model if kind is provider_config.kind else ""),
            temperature=provider_config.temperature,
            max_output_tokens=provider_config.max_output_tokens,
            timeout=provider_config.timeout,
        )

    catalog = default_catalog()
    type_ids = args.types or catalog.ids()
    provider = create_provider(config.provider)
    coordinator = AnalysisRunCoordinator(
        provider,
        JsonFileStore(config.cache.storage_dir),
        catalog=catalog,
        config=config,
    )
    coordinator.channel.subscribe(_print_progress)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, coordinator.cancel_run)
    except NotImplementedError:
        logger.debug("Signal handlers unavailable; Ctrl-C will abort instead of cancelling")

    try:
        analysis = await coordinator.start_run(
            document,
            type_ids,
            force_refresh=args.force,
            language=args.language,
        )
    finally:
        await provider.aclose()

    if args.output:
        write_json(args.output, analysis.to_dict())
        print(f"Saved analysis to {args.output}")

    print()
    for type_id, result in analysis.results.items():
        marker = "ok" if result.succeeded else f"FAILED ({result.error})"
        print(f"  {result.name:<24} {marker}")
    if analysis.pending:
        print(f"  Pending: {', '.join(analysis.pending)} (run again to resume)")
    if analysis.from_cache:
        print("  (loaded from cache; use --force to re-run)")

    return EXIT_CANCELLED if analysis.cancelled else EXIT_OK


def run_types() -> int:
    for spec in default_catalog():
        chunking = "" if spec.chunkable else "  [whole document]"
        print(f"  {spec.id:<12} {spec.name:<24} {spec.output_format.value}{chunking}")
    return EXIT_OK


async def run_clear(args, config) -> int:
    script_path = Path(args.script)
    document = Document(text=read_script(script_path), name=script_path.name)
    manager = AnalysisCheckpointManager(JsonFileStore(config.cache.storage_dir))
    removed = await manager.clear_document(document.content_hash, document.name)
    print(f"Removed {removed} stored entries for {document.name}")
    return EXIT_OK


def main(argv=None) -> int:
    """Main entry point for the ScriptScope command line."""
    args = build_parser().parse_args(argv)
    logger = get_logger("main")

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ScriptScopeError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.debug:
        log_level = LogLevel.DEBUG
    elif config.verbose_logging:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel.WARNING
    setup_logging(level=log_level, verbose=args.debug)

    try:
        if args.command == "types":
            return run_types()
        if args.command == "clear":
            return asyncio.run(run_clear(args, config))
        if args.language:
            config.output_language = args.language
        return asyncio.run(run_analyze(args, config, log_level))
    except ScriptScopeError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
