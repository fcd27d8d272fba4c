"""
Translation Orchestrator

Turns a raw document into its translation: cache lookup, structural parsing,
provider calls for translatable units under a shared permit pool, ordered
reassembly, and cache write-back.

A document either translates completely or fails; partially translated
output is never returned or cached.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from skill_translator.core.exceptions import (
    CacheUnavailableError,
    ProviderFailureError,
    ProviderTransientError,
    TranslationServiceError,
    TranslationTimeoutError,
)
from skill_translator.core.logging import DocumentLogContext, get_logger
from skill_translator.services.ai_providers.base import BaseAIProvider
from skill_translator.services.cache_store import CacheEntry, CacheStore, TranslationIdentity
from skill_translator.services.encoding import compute_content_hash, validate_content_hash
from skill_translator.services.markdown_parser import (
    MarkdownParser,
    PlaceholderMismatchError,
    SegmentKind,
    TranslationUnit,
    wrap_whitespace,
)
from skill_translator.services.prompts import (
    DOCUMENT_TRANSLATION_SYSTEM_PROMPT,
    build_translation_prompt,
    extract_translation_from_response,
    missing_protected_terms,
)

logger = get_logger(__name__)


@dataclass
class TranslationOptions:
    """Per-request translation options."""

    source_language: str = "en"
    target_language: str = "zh-CN"
    preserve_frontmatter: bool = True
    preserve_code_blocks: bool = True
    translate_code_comments: bool = False


@dataclass
class TranslationResult:
    """A translated document plus everything the API reports about it."""

    content: str
    content_hash: str
    translated_hash: str
    cached: bool
    metadata: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def _has_words(text: str) -> bool:
    return any(ch.isalpha() for ch in text)


class DocumentAbortedError(ProviderFailureError):
    """Raised for units skipped after a sibling unit of the same document failed."""


class TranslationOrchestrator:
    """
    Coordinates parsing, provider calls and caching for single documents.

    All provider calls made through one orchestrator share a single permit
    pool, whatever document or batch they belong to.
    """

    def __init__(
        self,
        provider: BaseAIProvider,
        cache: CacheStore,
        *,
        model: str,
        translator_version: str,
        protected_terms: list[str] | None = None,
        max_concurrent_translations: int = 5,
        call_timeout_seconds: float = 600,
        document_timeout_seconds: float = 1800,
        max_tokens: int | None = None,
        temperature: float = 0.3,
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
        parser: MarkdownParser | None = None,
    ):
        self.provider = provider
        self.cache = cache
        self.model = model
        self.translator_version = translator_version
        self.protected_terms = list(protected_terms or [])
        self.call_timeout_seconds = call_timeout_seconds
        self.document_timeout_seconds = document_timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.parser = parser or MarkdownParser()
        self._permits = asyncio.Semaphore(max_concurrent_translations)

    # =========================================================================
    # Identity & cache access
    # =========================================================================

    def resolve_content_hash(self, raw: bytes, content_hash: str | None = None) -> str:
        """Validate a supplied content hash, or compute one."""
        if content_hash:
            return validate_content_hash(content_hash, raw)
        return compute_content_hash(raw)

    def identity_for(
        self, document_path: str, content_hash: str, target_language: str
    ) -> TranslationIdentity:
        return TranslationIdentity(
            document_path=document_path,
            content_hash=content_hash,
            target_language=target_language,
            translator_version=self.translator_version,
        )

    async def lookup_cached(
        self, identity: TranslationIdentity, warnings: list[str]
    ) -> CacheEntry | None:
        """Cache lookup that treats storage failure as a miss."""
        try:
            return await self.cache.lookup(identity)
        except CacheUnavailableError as e:
            logger.warning(f"Cache lookup failed, treating as miss: {e.message}")
            warnings.append(f"{e.kind.value}: cache lookup failed, translated without cache")
            return None

    def result_from_cache(
        self, entry: CacheEntry, started: float, warnings: list[str] | None = None
    ) -> TranslationResult:
        metadata = dict(entry.metadata)
        metadata["processing_time_ms"] = round((time.perf_counter() - started) * 1000, 2)
        return TranslationResult(
            content=entry.translated_document,
            content_hash=entry.identity.content_hash,
            translated_hash=entry.translated_hash,
            cached=True,
            metadata=metadata,
            warnings=list(warnings or []),
        )

    # =========================================================================
    # Document translation
    # =========================================================================

    async def translate(
        self,
        raw: bytes,
        document_path: str,
        options: TranslationOptions,
        content_hash: str | None = None,
        force: bool = False,
    ) -> TranslationResult:
        """
        Translate one document, using the cache when possible.

        Args:
            raw: Source document bytes
            document_path: Document path, part of the cache identity
            options: Languages and preservation options
            content_hash: Client-supplied ``sha256:<hex>`` of ``raw`` (optional)
            force: Skip the cache lookup and overwrite any cached entry

        Returns:
            TranslationResult: The translated document

        Raises:
            InvalidInputError: Bad hash or undecodable content
            ProviderFailureError: A unit could not be translated (including
                exhausted retries and timeouts)
        """
        started = time.perf_counter()
        warnings: list[str] = []
        content_hash = self.resolve_content_hash(raw, content_hash)
        identity = self.identity_for(document_path, content_hash, options.target_language)

        with DocumentLogContext(document_path):
            if not force:
                entry = await self.lookup_cached(identity, warnings)
                if entry is not None:
                    return self.result_from_cache(entry, started, warnings)

            if options.translate_code_comments:
                logger.debug("Code comment translation is not supported, code fences stay verbatim")

            try:
                translated, dropped_lines = await asyncio.wait_for(
                    self._translate_document(raw, options),
                    timeout=self.document_timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                logger.error(f"Document translation exceeded {self.document_timeout_seconds}s")
                raise TranslationTimeoutError(
                    f"Document translation timed out after {self.document_timeout_seconds}s",
                    self.document_timeout_seconds,
                ) from e

            translated_hash = compute_content_hash(translated.encode("utf-8"))
            metadata = {
                "original_chars": len(raw.decode("utf-8")),
                "translated_chars": len(translated),
                "processing_time_ms": round((time.perf_counter() - started) * 1000, 2),
                "translator_version": self.translator_version,
                "model": self.model,
                "source_language": options.source_language,
                "target_language": options.target_language,
                "dropped_lines": dropped_lines,
            }

            try:
                await self.cache.store(identity, translated, translated_hash, metadata)
            except CacheUnavailableError as e:
                logger.warning(f"Translated but not cached: {e.message}")
                warnings.append(f"{e.kind.value}: translation was not cached")

            logger.info(
                f"Translated document ({metadata['original_chars']} -> "
                f"{metadata['translated_chars']} chars, {metadata['processing_time_ms']}ms)"
            )
            return TranslationResult(
                content=translated,
                content_hash=content_hash,
                translated_hash=translated_hash,
                cached=False,
                metadata=metadata,
                warnings=warnings,
            )

    async def _translate_document(
        self, raw: bytes, options: TranslationOptions
    ) -> tuple[str, int]:
        document = self.parser.parse(raw)
        aborted = asyncio.Event()
        failures: list[Exception] = []

        async def run(unit: TranslationUnit) -> str:
            try:
                return await self._translate_unit(unit, options, aborted)
            except Exception as e:
                if not aborted.is_set():
                    failures.append(e)
                    aborted.set()
                raise

        # Calls already in flight finish; units still waiting for a permit are skipped
        results = await asyncio.gather(
            *(run(unit) for unit in document.units()),
            return_exceptions=True,
        )

        if failures:
            error = failures[0]
            logger.error(f"Unit translation failed, failing document: {error}")
            if isinstance(error, TranslationServiceError):
                raise error
            raise ProviderFailureError(f"Unexpected translation error: {error}") from error

        return "".join(results), document.dropped_lines

    async def _translate_unit(
        self, unit: TranslationUnit, options: TranslationOptions, aborted: asyncio.Event
    ) -> str:
        if not unit.translatable:
            return unit.raw_text

        if unit.is_front_matter:
            source = unit.source_text()
            if not _has_words(source):
                return unit.raw_text
            translated = await self.translate_text(
                source, options, field_name=unit.segments[0].name, aborted=aborted
            )
            return unit.render(translated)

        if not any(
            s.kind is SegmentKind.PROSE and _has_words(s.raw_text) for s in unit.segments
        ):
            return unit.raw_text

        translated = await self.translate_text(unit.source_text(), options, aborted=aborted)
        try:
            return unit.render(translated)
        except PlaceholderMismatchError as e:
            logger.warning(f"{e}; translating chunk segments individually")
            return await self._translate_segments(unit, options, aborted)

    async def _translate_segments(
        self, unit: TranslationUnit, options: TranslationOptions, aborted: asyncio.Event
    ) -> str:
        async def translate_segment(segment) -> str:
            if segment.kind is not SegmentKind.PROSE or not _has_words(segment.raw_text):
                return segment.raw_text
            translated = await self.translate_text(
                segment.raw_text.strip(), options, aborted=aborted
            )
            return wrap_whitespace(segment.raw_text, translated.strip())

        parts = await asyncio.gather(*(translate_segment(s) for s in unit.segments))
        return "".join(parts)

    # =========================================================================
    # Provider calls
    # =========================================================================

    async def translate_text(
        self,
        text: str,
        options: TranslationOptions,
        field_name: str | None = None,
        aborted: asyncio.Event | None = None,
    ) -> str:
        """
        Translate one piece of text through the provider.

        Transient errors are retried with exponential backoff; once retries
        are exhausted they escalate to ProviderFailureError.
        """
        prompt = build_translation_prompt(
            options.source_language,
            options.target_language,
            text,
            protected_terms=self.protected_terms,
            field_name=field_name,
        )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=self.retry_base_delay, max=60),
                retry=retry_if_exception_type(ProviderTransientError),
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    raw_answer = await self._call_provider(prompt, aborted)
        except ProviderTransientError as e:
            raise ProviderFailureError(
                f"Provider still failing after {self.max_retries} attempts: {e.message}"
            ) from e

        translated = extract_translation_from_response(raw_answer, text)
        if not translated:
            raise ProviderFailureError("Provider returned an empty translation")

        missing = missing_protected_terms(text, translated, self.protected_terms)
        if missing:
            logger.warning(f"Protected terms missing from translation: {', '.join(missing)}")
        return translated

    async def _call_provider(self, prompt: str, aborted: asyncio.Event | None = None) -> str:
        async with self._permits:
            if aborted is not None and aborted.is_set():
                raise DocumentAbortedError("Skipped, another part of the document failed")
            try:
                response = await asyncio.wait_for(
                    self.provider.generate(
                        model=self.model,
                        prompt=prompt,
                        system=DOCUMENT_TRANSLATION_SYSTEM_PROMPT,
                        temperature=self.temperature,
                        max_tokens=self.max_tokens,
                    ),
                    timeout=self.call_timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                raise TranslationTimeoutError(
                    f"Provider call timed out after {self.call_timeout_seconds}s",
                    self.call_timeout_seconds,
                ) from e
        return response.text

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"Transient provider error (attempt {retry_state.attempt_number}/"
            f"{self.max_retries}), retrying: {error}"
        )
