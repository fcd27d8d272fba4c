"""
Document translation endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from skill_translator.api.deps import get_services, require_bearer
from skill_translator.core.config import Settings
from skill_translator.core.logging import get_logger
from skill_translator.schemas.translate import (
    BatchFileResult,
    BatchTranslateRequest,
    BatchTranslateResponse,
    TranslateOptions,
    TranslateRequest,
    TranslateResponse,
    TranslationMetadata,
)
from skill_translator.services.batch_coordinator import BatchFile, BatchItem, BatchItemState
from skill_translator.services.container import ServiceContainer
from skill_translator.services.encoding import decode_content, encode_content
from skill_translator.services.translation_orchestrator import (
    TranslationOptions,
    TranslationResult,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/translate", tags=["Translation"], dependencies=[Depends(require_bearer)])


def resolve_options(options: TranslateOptions, settings: Settings) -> TranslationOptions:
    """Fill unset languages from the configured defaults."""
    return TranslationOptions(
        source_language=options.source_language or settings.source_language,
        target_language=options.target_language or settings.target_language,
        preserve_frontmatter=options.preserve_frontmatter,
        preserve_code_blocks=options.preserve_code_blocks,
        translate_code_comments=options.translate_code_comments,
    )


def _to_response(result: TranslationResult) -> TranslateResponse:
    return TranslateResponse(
        content=encode_content(result.content),
        content_hash=result.content_hash,
        translated_hash=result.translated_hash,
        cached=result.cached,
        metadata=TranslationMetadata(**result.metadata),
        warnings=result.warnings,
    )


def _to_batch_result(item: BatchItem) -> BatchFileResult:
    if item.state is BatchItemState.DONE and item.result is not None:
        return BatchFileResult(
            path=item.path,
            success=True,
            status=item.state.value,
            cached=item.result.cached,
            content=encode_content(item.result.content),
            content_hash=item.result.content_hash,
            translated_hash=item.result.translated_hash,
            metadata=TranslationMetadata(**item.result.metadata),
            warnings=item.result.warnings,
        )
    return BatchFileResult(
        path=item.path,
        success=False,
        status=item.state.value,
        error=item.error,
        error_kind=item.error_kind,
    )


@router.post(
    "",
    response_model=TranslateResponse,
    summary="Translate a single document",
)
async def translate_document(
    request: TranslateRequest,
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> TranslateResponse:
    """
    Translate one SKILL.md document.

    Front-matter fields other than description, code fences and inline code
    are returned byte-for-byte unchanged. Unchanged documents are served from
    the cache without calling the provider.
    """
    raw = decode_content(request.content)
    options = resolve_options(request.options, services.settings)

    result = await services.orchestrator.translate(
        raw, request.path, options, content_hash=request.content_hash
    )
    return _to_response(result)


@router.post(
    "/batch",
    response_model=BatchTranslateResponse,
    summary="Translate multiple documents",
)
async def translate_batch(
    request: BatchTranslateRequest,
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> BatchTranslateResponse:
    """
    Translate several documents in one request.

    Always answers 200 with one result per file; failed files carry an
    error kind and message.
    """
    options = resolve_options(request.options, services.settings)
    files = [
        BatchFile(path=f.path, content=f.content, content_hash=f.content_hash)
        for f in request.files
    ]

    outcome = await services.batch.translate_batch(files, options, skip_cached=request.skip_cached)

    return BatchTranslateResponse(
        results=[_to_batch_result(item) for item in outcome.items],
        total_files=len(outcome.items),
        successful=outcome.successful,
        cached_count=outcome.cached_count,
        failed=outcome.failed,
        processing_time_ms=outcome.processing_time_ms,
    )
