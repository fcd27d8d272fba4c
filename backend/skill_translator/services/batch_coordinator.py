"""
Batch Coordinator

Translates many documents in one request. Cache hits resolve immediately;
misses go through the orchestrator with bounded per-batch parallelism and
the orchestrator's shared provider permits. The batch itself never fails:
every input file gets exactly one result, in input order.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum

from skill_translator.core.exceptions import ErrorKind, TranslationServiceError
from skill_translator.core.logging import DocumentLogContext, get_logger
from skill_translator.services.encoding import decode_content
from skill_translator.services.translation_orchestrator import (
    TranslationOptions,
    TranslationOrchestrator,
    TranslationResult,
)

logger = get_logger(__name__)


class BatchItemState(str, Enum):
    PENDING = "pending"
    CACHE_HIT = "cache_hit"
    TRANSLATING = "translating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BatchFile:
    """One requested file: path, base64 content and optional content hash."""

    path: str
    content: str
    content_hash: str | None = None


@dataclass
class BatchItem:
    """Per-file state within a batch."""

    path: str
    state: BatchItemState = BatchItemState.PENDING
    result: TranslationResult | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    history: list[BatchItemState] = field(default_factory=lambda: [BatchItemState.PENDING])

    def transition(self, state: BatchItemState) -> None:
        self.state = state
        self.history.append(state)

    def fail(self, kind: ErrorKind, message: str) -> None:
        self.error_kind = kind
        self.error = message
        self.transition(BatchItemState.FAILED)

    @property
    def cached(self) -> bool:
        return BatchItemState.CACHE_HIT in self.history


@dataclass
class BatchOutcome:
    items: list[BatchItem]
    processing_time_ms: float

    @property
    def successful(self) -> int:
        return sum(1 for item in self.items if item.state is BatchItemState.DONE)

    @property
    def cached_count(self) -> int:
        return sum(1 for item in self.items if item.cached)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if item.state is BatchItemState.FAILED)


class BatchCoordinator:
    """Runs a set of documents through the orchestrator and reports per-item outcomes."""

    def __init__(self, orchestrator: TranslationOrchestrator, max_parallel_documents: int = 5):
        self.orchestrator = orchestrator
        self.max_parallel_documents = max_parallel_documents

    async def translate_batch(
        self,
        files: list[BatchFile],
        options: TranslationOptions,
        skip_cached: bool = True,
    ) -> BatchOutcome:
        """
        Translate every file, never raising for individual failures.

        Args:
            files: Files to translate
            options: Options applied to every file
            skip_cached: Return cached translations without re-translating;
                when False every file is re-translated and its cache entry
                overwritten

        Returns:
            BatchOutcome: One item per input file, in input order
        """
        started = time.perf_counter()
        gate = asyncio.Semaphore(self.max_parallel_documents)
        items = [BatchItem(path=f.path) for f in files]

        await asyncio.gather(
            *(
                self._process(item, file, options, skip_cached, gate)
                for item, file in zip(items, files)
            )
        )

        outcome = BatchOutcome(
            items=items,
            processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        logger.info(
            f"Batch finished: {len(items)} files, {outcome.successful} successful "
            f"({outcome.cached_count} cached), {outcome.failed} failed"
        )
        return outcome

    async def _process(
        self,
        item: BatchItem,
        file: BatchFile,
        options: TranslationOptions,
        skip_cached: bool,
        gate: asyncio.Semaphore,
    ) -> None:
        started = time.perf_counter()
        with DocumentLogContext(file.path):
            try:
                raw = decode_content(file.content)
                content_hash = self.orchestrator.resolve_content_hash(raw, file.content_hash)

                if skip_cached:
                    warnings: list[str] = []
                    identity = self.orchestrator.identity_for(
                        file.path, content_hash, options.target_language
                    )
                    entry = await self.orchestrator.lookup_cached(identity, warnings)
                    if entry is not None:
                        item.transition(BatchItemState.CACHE_HIT)
                        item.result = self.orchestrator.result_from_cache(entry, started, warnings)
                        item.transition(BatchItemState.DONE)
                        return

                async with gate:
                    item.transition(BatchItemState.TRANSLATING)
                    # The lookup already happened above (or is deliberately skipped)
                    item.result = await self.orchestrator.translate(
                        raw, file.path, options, content_hash=content_hash, force=True
                    )
                item.transition(BatchItemState.DONE)

            except TranslationServiceError as e:
                logger.error(f"Batch item failed ({e.kind.value}): {e.message}")
                item.fail(e.kind, e.message)
            except Exception as e:
                logger.error(f"Unexpected error translating batch item: {e}", exc_info=True)
                item.fail(ErrorKind.INTERNAL, str(e))
