"""
Pydantic schemas for translation requests and responses.
"""

from pydantic import BaseModel, Field

from skill_translator.core.exceptions import ErrorKind


class TranslateOptions(BaseModel):
    """Translation options; unset languages fall back to the configured defaults."""

    source_language: str | None = Field(default=None, description="Source language code")
    target_language: str | None = Field(default=None, description="Target language code")
    preserve_frontmatter: bool = Field(
        default=True, description="Keep front-matter fields other than description verbatim"
    )
    preserve_code_blocks: bool = Field(default=True, description="Keep fenced code verbatim")
    translate_code_comments: bool = Field(
        default=False, description="Translate code comments (not supported, ignored)"
    )


class TranslateRequest(BaseModel):
    """Single-document translation request."""

    content: str = Field(..., description="Base64-encoded UTF-8 document")
    path: str = Field(..., min_length=1, description="Document path, part of the cache key")
    content_hash: str | None = Field(
        default=None, description="sha256:<hex> of the decoded content"
    )
    options: TranslateOptions = Field(default_factory=TranslateOptions)


class TranslationMetadata(BaseModel):
    """Statistics about a translation."""

    original_chars: int = Field(..., description="Characters in the source document")
    translated_chars: int = Field(..., description="Characters in the translated document")
    processing_time_ms: float = Field(..., description="Time spent serving this document")
    translator_version: str = Field(..., description="Translator version tag")
    model: str = Field(..., description="Model that produced the translation")
    source_language: str = Field(..., description="Source language code")
    target_language: str = Field(..., description="Target language code")
    dropped_lines: int = Field(default=0, description="Over-long lines removed from the output")


class TranslateResponse(BaseModel):
    """Single-document translation response."""

    content: str = Field(..., description="Base64-encoded translated document")
    content_hash: str = Field(..., description="sha256 of the source content")
    translated_hash: str = Field(..., description="sha256 of the translated content")
    cached: bool = Field(..., description="Whether the result came from the cache")
    metadata: TranslationMetadata
    warnings: list[str] = Field(default_factory=list, description="Non-fatal issues")


class BatchFileRequest(BaseModel):
    """One file of a batch request."""

    path: str = Field(..., min_length=1, description="Document path")
    content: str = Field(..., description="Base64-encoded UTF-8 document")
    content_hash: str | None = Field(default=None, description="sha256:<hex> of the content")


class BatchTranslateRequest(BaseModel):
    """Batch translation request."""

    files: list[BatchFileRequest] = Field(..., description="Files to translate")
    options: TranslateOptions = Field(default_factory=TranslateOptions)
    skip_cached: bool = Field(
        default=True,
        description="Return cached translations; false re-translates and overwrites the cache",
    )


class BatchFileResult(BaseModel):
    """Outcome for one file of a batch."""

    path: str = Field(..., description="Document path")
    success: bool = Field(..., description="Whether the file was translated")
    status: str = Field(..., description="Final item state: done | failed")
    cached: bool = Field(default=False, description="Whether the result came from the cache")
    content: str | None = Field(default=None, description="Base64-encoded translated document")
    content_hash: str | None = Field(default=None, description="sha256 of the source content")
    translated_hash: str | None = Field(default=None, description="sha256 of the translation")
    metadata: TranslationMetadata | None = None
    warnings: list[str] = Field(default_factory=list)
    error: str | None = Field(default=None, description="Error message for failed items")
    error_kind: ErrorKind | None = Field(default=None, description="Machine-readable error kind")


class BatchTranslateResponse(BaseModel):
    """Batch translation response; always one result per requested file."""

    results: list[BatchFileResult]
    total_files: int
    successful: int
    cached_count: int
    failed: int
    processing_time_ms: float
