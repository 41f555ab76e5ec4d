"""Core translation logic: batched, concurrent, retrying translation runs."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterator, List, Optional, Sequence, Tuple

from .cancellation import CancellationController, CancellationToken
from .config import TranslatorConfig
from .errors import ConfigurationError, UserCancelled
from .models import (
    CANCELLED_MARKER,
    Batch,
    RetryState,
    TranslationUnit,
    failure_marker,
    make_batches,
    missing_item_marker,
)
from .progress import Progress, ProgressCallback, ProgressReporter
from .prompts import build_prompt
from .providers import TextGenerator, resolve_model
from .text_utils import parse_translation_response, truncate_text

logger = logging.getLogger(__name__)

MAX_CONCURRENCY = 100


class BatchTranslator:
    """
    Translates ordered fragment lists through one provider/model.

    Each ``translate_all`` call partitions the input into batches, runs a
    bounded pool of workers over them, retries failed batches with
    exponential backoff, and always returns one unit per input fragment in
    input order. Failures become marker strings, not exceptions.
    """

    def __init__(
        self,
        config: Optional[TranslatorConfig] = None,
        generator: Optional[TextGenerator] = None,
    ) -> None:
        """
        Args:
            config: Configuration snapshot (defaults + environment if omitted)
            generator: Pre-built capability; skips model resolution when given
        """
        self.config = config or TranslatorConfig()
        self.generator = generator
        self._controller: Optional[CancellationController] = None
        self._last_progress: Optional[Progress] = None

    @property
    def last_progress(self) -> Optional[Progress]:
        """Final progress snapshot of the most recent run."""
        return self._last_progress

    def cancel(self) -> None:
        """Cancel the run in flight, if any."""
        if self._controller is not None:
            self._controller.cancel()

    def resolve(self, provider_id: str, model_name: str) -> TextGenerator:
        """Return the injected generator or build one from the config."""
        if self.generator is not None:
            return self.generator
        provider = self.config.get_provider(provider_id)
        return resolve_model(
            provider_id, provider, model_name, timeout=self.config.request_timeout
        )

    def supported_models(self, provider_id: str) -> List[str]:
        return self.config.provider_models(provider_id)

    def _check_settings(self, batch_size: int, concurrency: int, max_retries: int) -> None:
        if batch_size < 1:
            raise ConfigurationError(f"Batch size must be >= 1, got {batch_size}")
        if concurrency < 1 or concurrency > MAX_CONCURRENCY:
            raise ConfigurationError(f"Concurrency must be 1-{MAX_CONCURRENCY}, got {concurrency}")
        if max_retries < 0:
            raise ConfigurationError(f"Max retries must be >= 0, got {max_retries}")

    async def translate_all(
        self,
        texts: Sequence[str],
        source_language: str,
        target_language: str,
        provider_id: Optional[str] = None,
        model_name: Optional[str] = None,
        *,
        batch_size: Optional[int] = None,
        concurrency: Optional[int] = None,
        max_retries: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[TranslationUnit]:
        """
        Translate ``texts`` and return one TranslationUnit per text, in order.

        Args:
            texts: Ordered fragment texts
            source_language: Source language name or code
            target_language: Target language name or code
            provider_id: Provider key (defaults to the configured default)
            model_name: Model (defaults to the provider's selected model)
            batch_size: Fragments per model call
            concurrency: Maximum concurrent batches (1-100)
            max_retries: Retries per batch after the first attempt
            on_progress: Called synchronously after every state change
            cancel_token: External token; a fresh one is created otherwise

        Returns:
            List with ``len(texts)`` units; failed or cancelled fragments carry
            marker strings

        Raises:
            ConfigurationError: Invalid settings, unknown provider or missing
                credentials (before any batch is scheduled)
            UserCancelled: If ``cancel_token`` is already triggered on entry
        """
        cfg = self.config
        batch_size = cfg.batch_size if batch_size is None else batch_size
        concurrency = cfg.concurrency if concurrency is None else concurrency
        max_retries = cfg.max_retries if max_retries is None else max_retries
        self._check_settings(batch_size, concurrency, max_retries)

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        provider_id = provider_id or cfg.default_provider
        if model_name is None and self.generator is None:
            model_name = cfg.get_provider(provider_id).active_model
        generator = self.resolve(provider_id, model_name or "")

        controller = CancellationController(cancel_token)
        self._controller = controller
        reporter = ProgressReporter(len(texts), on_progress)
        results: List[Optional[TranslationUnit]] = [None] * len(texts)

        batches = make_batches(texts, batch_size)
        worker_count = min(concurrency, len(batches))
        logger.info(
            f"Translating {len(texts)} fragments in {len(batches)} batches "
            f"({worker_count} workers, {generator!r})"
        )
        reporter.report()

        # 所有 worker 共享同一个迭代器，取批次在两次 await 之间完成，天然原子
        pending = iter(batches)
        run = _Run(
            generator=generator,
            source_language=source_language,
            target_language=target_language,
            max_retries=max_retries,
            backoff_base=cfg.backoff_base,
            temperature=cfg.temperature,
            max_tokens=cfg.max_tokens,
            token=controller.token,
            reporter=reporter,
            results=results,
        )

        workers = [asyncio.create_task(run.worker(pending)) for _ in range(worker_count)]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        finally:
            self._controller = None
            self._last_progress = reporter.snapshot()

        if reporter.failed:
            logger.warning(
                f"{reporter.failed} fragments failed after {max_retries} retries"
                + (" (run cancelled)" if reporter.cancelled else "")
            )
        logger.info(f"Finished: {reporter.completed - reporter.failed}/{len(texts)} translated")

        return results  # type: ignore[return-value]  # every slot is filled by now

    async def translate_text(
        self,
        text: str,
        source_language: str,
        target_language: str,
        provider_id: Optional[str] = None,
        model_name: Optional[str] = None,
    ) -> TranslationUnit:
        """Translate a single text through the same pipeline (no retries)."""
        units = await self.translate_all(
            [text], source_language, target_language, provider_id, model_name,
            batch_size=1, concurrency=1, max_retries=0,
        )
        return units[0]

    async def test_connection(
        self, provider_id: str, model_name: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Send a tiny translation to check credentials and model.

        Returns:
            (success, error message)
        """
        try:
            generator = self.resolve(provider_id, model_name)
            prompt = build_prompt(["Hello, world!"], "eng", "spa")
            await generator.generate(
                prompt, temperature=self.config.temperature, max_tokens=200
            )
        except Exception as e:
            logger.debug(f"Connection test failed: {e}")
            return False, str(e)
        return True, None

    def validate_request(
        self,
        text: str,
        source_language: str,
        target_language: str,
        provider_id: str,
        model_name: str,
    ) -> Optional[str]:
        """
        Validate a single translation request.

        Returns:
            Error message if invalid, None if valid
        """
        if not text or not text.strip():
            return "Text is required"
        if not source_language:
            return "Source language is required"
        if not target_language:
            return "Target language is required"
        if source_language == target_language:
            return "Source and target languages cannot be the same"
        if not provider_id:
            return "Provider is required"
        if not model_name:
            return "Model is required"
        if provider_id not in self.config.providers:
            return "Invalid provider"
        if not self.config.is_provider_configured(provider_id):
            return "Provider is not configured"
        return None


class _Run:
    """Shared state of one translate_all invocation."""

    def __init__(
        self,
        generator: TextGenerator,
        source_language: str,
        target_language: str,
        max_retries: int,
        backoff_base: float,
        temperature: float,
        max_tokens: int,
        token: CancellationToken,
        reporter: ProgressReporter,
        results: List[Optional[TranslationUnit]],
    ) -> None:
        self.generator = generator
        self.source_language = source_language
        self.target_language = target_language
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.token = token
        self.reporter = reporter
        self.results = results

    def _unit(self, original: str, translated: str) -> TranslationUnit:
        return TranslationUnit(
            original_text=original,
            translated_text=translated,
            source_language=self.source_language,
            target_language=self.target_language,
        )

    def _write(self, batch: Batch, translations: Sequence[str]) -> None:
        for fragment, translated in zip(batch.fragments, translations):
            self.results[fragment.index] = self._unit(fragment.text, translated)

    def _cancel(self, batch: Batch) -> None:
        self._write(batch, [CANCELLED_MARKER] * len(batch))
        self.reporter.cancel(batch)

    async def worker(self, pending: Iterator[Batch]) -> None:
        """Pull batches until none are left."""
        for batch in pending:
            if self.token.cancelled:
                self._cancel(batch)
                continue
            await self.process(batch)

    async def _attempt(self, batch: Batch) -> List[str]:
        prompt = build_prompt(batch.texts, self.source_language, self.target_language)
        raw = await self.generator.generate(
            prompt,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            cancel_token=self.token,
        )
        parsed = parse_translation_response(raw, len(batch))
        return [text or missing_item_marker(i) for i, text in enumerate(parsed, 1)]

    async def process(self, batch: Batch) -> None:
        """Drive one batch to a terminal state, retrying on failure."""
        state = RetryState(batch)
        while True:
            self.reporter.start(batch)
            try:
                translations = await self._attempt(batch)
            except UserCancelled:
                logger.debug(f"{batch.label}: cancelled")
                self._cancel(batch)
                return
            except Exception as e:
                if state.attempt < self.max_retries:
                    delay = self.backoff_base * (2 ** state.attempt)
                    logger.warning(
                        f"{batch.label} failed: {e}. "
                        f"Retry {state.attempt + 1}/{self.max_retries} in {delay:g}s..."
                    )
                    try:
                        await self.token.sleep(delay)
                    except UserCancelled:
                        self._cancel(batch)
                        return
                    state.attempt += 1
                    continue

                logger.error(f"{batch.label} failed after {state.attempt + 1} attempts: {e}")
                marker = failure_marker(truncate_text(str(e) or type(e).__name__, 200))
                self._write(batch, [marker] * len(batch))
                self.reporter.fail(batch)
                return

            self._write(batch, translations)
            self.reporter.succeed(batch)
            logger.debug(f"{batch.label} translated")
            return


async def translate_all(
    texts: Sequence[str],
    source_language: str,
    target_language: str,
    provider_id: Optional[str] = None,
    model_name: Optional[str] = None,
    *,
    config: Optional[TranslatorConfig] = None,
    **kwargs,
) -> List[TranslationUnit]:
    """Convenience wrapper around ``BatchTranslator(config).translate_all``."""
    translator = BatchTranslator(config)
    return await translator.translate_all(
        texts, source_language, target_language, provider_id, model_name, **kwargs
    )
