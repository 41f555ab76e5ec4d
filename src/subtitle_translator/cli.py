"""Command-line interface for the subtitle translator."""

from __future__ import annotations

import asyncio
import argparse
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import List

from tqdm import tqdm

from .config import OUTPUT_LAYOUTS, TranslatorConfig
from .errors import ConfigurationError, UserCancelled
from .language import resolve_source_language
from .progress import Progress
from .srt import SrtEntry, compose_bilingual, parse_srt, save_srt, validate_srt_file
from .text_utils import estimate_tokens
from .translator import BatchTranslator

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2
EXIT_CANCELLED = 130


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )
    # SDK 的 HTTP 日志太吵
    for name in ("httpx", "openai", "anthropic", "google_genai"):
        logging.getLogger(name).setLevel(logging.WARNING)


def parse_arguments(argv: List[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Batched, concurrent AI subtitle translator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s video.srt --target-lang Chinese          # Translate with default provider
  %(prog)s video.srt out.srt --provider anthropic   # Pick provider, output path
  %(prog)s video.srt --layout translation-only      # Drop the original text
  %(prog)s video.srt --estimate                     # Token estimate, no API calls
  %(prog)s video.srt -s auto                        # Detect the source language
  %(prog)s --list-providers                         # Show configured providers
        """
    )

    # Positional arguments
    parser.add_argument("input_path", nargs='?', help="Input SRT file path")
    parser.add_argument("output_path", nargs='?', default=None, help="Output SRT file path")

    # Languages
    parser.add_argument(
        "-s", "--source-lang", dest="source_language", default="English",
        help="Source language, or \"auto\" to detect it from the subtitles",
    )
    parser.add_argument("-t", "--target-lang", dest="target_language", default="Chinese")

    # Provider options
    parser.add_argument("-c", "--config", dest="config_path", help="JSON config file")
    parser.add_argument("-p", "--provider", help="Provider id (openai, anthropic, google, ...)")
    parser.add_argument("-m", "--model", dest="model_name", help="Model name")
    parser.add_argument("--api-key", help="API key for the selected provider")
    parser.add_argument("--base-url", help="Base URL for the selected provider")

    # Performance
    parser.add_argument("--concurrency", type=int, help="Max concurrent batches (1-100)")
    parser.add_argument("--batch-size", type=int, help="Subtitles per request")
    parser.add_argument("--max-retries", type=int, help="Retries per failed batch")

    # Output
    parser.add_argument("--layout", choices=OUTPUT_LAYOUTS, help="Bilingual output layout")

    # Utility modes
    parser.add_argument("--estimate", action="store_true", help="Print a token estimate and exit")
    parser.add_argument("--test-connection", action="store_true", help="Check provider access and exit")
    parser.add_argument("--list-providers", action="store_true", help="List providers and exit")

    # Misc
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    args = parser.parse_args(argv)
    if not args.input_path and not (args.list_providers or args.test_connection):
        parser.error("input_path is required")
    return args


class ProgressBar:
    """Feeds Progress snapshots into a tqdm bar."""

    def __init__(self, total: int) -> None:
        self.bar = tqdm(total=total, desc="Translating", unit="sub")
        self._shown = 0

    def __call__(self, progress: Progress) -> None:
        delta = progress.completed - self._shown
        if delta > 0:
            self.bar.update(delta)
            self._shown = progress.completed
        postfix = f"failed={progress.failed}"
        if progress.current:
            postfix += f" | {progress.current}"
        self.bar.set_postfix_str(postfix, refresh=False)

    def close(self) -> None:
        self.bar.close()


def list_providers(config: TranslatorConfig) -> None:
    available = set(config.available_providers())
    for provider_id, provider in config.providers.items():
        status = "configured" if provider_id in available else "no api key"
        models = ", ".join(provider.models) or "-"
        print(f"{provider_id:<14} {provider.name:<16} [{status}]  {models}")


async def main_async(args: argparse.Namespace) -> int:
    """Main async workflow."""
    logger = logging.getLogger(__name__)

    config_path = Path(args.config_path).expanduser() if args.config_path else None
    config = TranslatorConfig.load(config_path).apply_args(args)

    if args.list_providers:
        list_providers(config)
        return EXIT_OK

    translator = BatchTranslator(config)
    provider_id = config.default_provider
    model_name = args.model_name or config.get_provider(provider_id).active_model

    if args.test_connection:
        ok, error = await translator.test_connection(provider_id, model_name or "")
        if ok:
            logger.info(f"Connection OK: {provider_id} / {model_name}")
            return EXIT_OK
        logger.error(f"Connection failed: {error}")
        return EXIT_ERROR

    in_path = Path(args.input_path).expanduser().resolve()
    error = validate_srt_file(in_path)
    if error:
        logger.error(error)
        return EXIT_ERROR

    logger.info(f"Reading: {in_path}")
    entries = parse_srt(in_path.read_text(encoding="utf-8-sig"))
    if not entries:
        logger.error("No valid subtitle entries found")
        return EXIT_ERROR

    texts = [e.text for e in entries]
    logger.info(f"Parsed {len(entries)} subtitle entries")

    if args.estimate:
        print(f"Estimated tokens: {estimate_tokens(texts):,} ({len(texts)} entries)")
        return EXIT_OK

    try:
        source_language = resolve_source_language(args.source_language, texts)
    except ConfigurationError as e:
        logger.error(str(e))
        return EXIT_ERROR

    error = config.validate()
    if error:
        logger.error(error)
        return EXIT_ERROR

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, translator.cancel)
        handles_sigint = True
    except (NotImplementedError, RuntimeError):
        handles_sigint = False

    bar = ProgressBar(len(texts))
    try:
        units = await translator.translate_all(
            texts,
            source_language,
            args.target_language,
            provider_id,
            model_name,
            on_progress=bar,
        )
    finally:
        bar.close()
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)

    # 失败的条目保留原文
    final_entries: List[SrtEntry] = [
        replace(entry, text=compose_bilingual(
            entry.text, unit.translated_text if unit.ok else None, config.output_layout
        ))
        for entry, unit in zip(entries, units)
    ]

    if args.output_path:
        out_path = Path(args.output_path)
    else:
        out_path = in_path.with_name(f"{config.output_prefix}{in_path.name}")

    save_srt(final_entries, out_path)

    progress = translator.last_progress
    succeeded = sum(1 for u in units if u.ok)
    logger.info(f"Done! {succeeded}/{len(units)} translated. Saved to {out_path}")

    if progress and progress.cancelled:
        logger.warning("Translation was cancelled; untranslated entries kept their original text")
        return EXIT_CANCELLED
    if progress and progress.failed:
        numbers = ", ".join(str(entries[i].index) for i in sorted(progress.failed_indices))
        logger.warning(f"{progress.failed} entries failed (#{numbers}); re-run to retry them")
        return EXIT_PARTIAL
    return EXIT_OK


def main(argv: List[str] | None = None) -> None:
    """CLI entry point."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        sys.exit(EXIT_CANCELLED)
    except UserCancelled as e:
        logging.error(str(e))
        sys.exit(EXIT_CANCELLED)
    except ConfigurationError as e:
        logging.error(f"Configuration error: {e}")
        sys.exit(EXIT_ERROR)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    main()
