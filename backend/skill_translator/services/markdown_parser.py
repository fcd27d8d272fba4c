"""
Structural parser for SKILL.md documents.

Splits a document into an ordered list of typed segments so that only prose
and the front-matter ``description`` field are ever sent for translation.
Concatenating every segment's ``raw_text`` in order reproduces the input
exactly, minus any line longer than the configured maximum.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

import yaml

from skill_translator.core.exceptions import InvalidInputError
from skill_translator.core.logging import get_logger

logger = get_logger(__name__)


DEFAULT_MAX_LINE_LENGTH = 5000
DEFAULT_MAX_CHUNK_CHARS = 6000

TRANSLATABLE_FIELDS = frozenset({"description"})

FRONT_MATTER_DELIMITER = "---"
_BOM = "﻿"

_LINE_PATTERN = re.compile(r"[^\n]*\n|[^\n]+")
_FIELD_KEY_PATTERN = re.compile(r"^(?P<name>[A-Za-z0-9_][\w .-]*?)[ \t]*:(?=[ \t]|\r?$)")
# Fences may sit under any indentation (list items) or blockquote markers
_FENCE_PREFIX = r"(?:[ \t]*>)*[ \t]*"
_FENCE_OPEN_PATTERN = re.compile(rf"^(?P<prefix>{_FENCE_PREFIX})(?P<fence>`{{3,}}|~{{3,}})(?P<info>.*)$")
_INLINE_CODE_PATTERN = re.compile(r"(?<!`)(?P<ticks>`+)(?!`)(?P<code>.+?)(?<!`)(?P=ticks)(?!`)")
_BLOCK_SCALAR_PATTERN = re.compile(r"^[>|][+-]?[0-9]?$")

# Characters that force a plain YAML scalar to be quoted
_PLAIN_UNSAFE_START = tuple("!&*[]{}|>'\"%@`#,?:-")


class SegmentKind(str, Enum):
    """Structural role of a segment."""

    FRONT_MATTER_DELIMITER = "front_matter_delimiter"
    FRONT_MATTER_FIELD = "front_matter_field"
    CODE_FENCE = "code_fence"
    INLINE_CODE = "inline_code"
    PROSE = "prose"


@dataclass(frozen=True)
class Segment:
    """
    A typed, contiguous slice of a document.

    Attributes:
        kind: Structural role
        raw_text: Exact original text
        name: Field name for front-matter fields
        language_tag: Info-string language for code fences ("" when absent)
        chunk: Prose chunk index shared by the prose and inline-code segments
            of one translation chunk
    """

    kind: SegmentKind
    raw_text: str
    name: str | None = None
    language_tag: str | None = None
    chunk: int | None = None

    @property
    def translatable(self) -> bool:
        if self.kind is SegmentKind.PROSE:
            return True
        return self.kind is SegmentKind.FRONT_MATTER_FIELD and self.name in TRANSLATABLE_FIELDS


@dataclass
class ParsedDocument:
    """Result of parsing: ordered segments plus parse statistics."""

    segments: list[Segment] = field(default_factory=list)
    dropped_lines: int = 0

    def reassemble(self) -> str:
        """Concatenate the raw text of all segments in order."""
        return "".join(segment.raw_text for segment in self.segments)

    def units(self) -> list["TranslationUnit"]:
        """Group segments into translation units, preserving order."""
        return group_units(self.segments)


# =============================================================================
# Decoding and line handling
# =============================================================================


def decode_document(raw: bytes) -> str:
    """
    Decode raw document bytes as UTF-8.

    Raises:
        InvalidInputError: If the bytes are not valid UTF-8
    """
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidInputError(f"Invalid UTF-8 content: {e}") from e


def split_lines(text: str) -> list[str]:
    """Split text into lines, keeping each line's terminator."""
    return _LINE_PATTERN.findall(text)


def _line_content(line: str) -> str:
    return line.rstrip("\r\n")


def _line_ending(line: str) -> str:
    return line[len(_line_content(line)):]


def drop_long_lines(lines: list[str], max_line_length: int) -> tuple[list[str], int]:
    """
    Remove lines longer than ``max_line_length`` characters.

    Returns:
        tuple: (kept lines, number of dropped lines)
    """
    kept = [line for line in lines if len(_line_content(line)) <= max_line_length]
    return kept, len(lines) - len(kept)


# =============================================================================
# Parser
# =============================================================================


class MarkdownParser:
    """
    Parser for SKILL.md files with special handling for front matter and code.

    The parser is total: malformed structure degrades to prose instead of
    failing, and only undecodable bytes are rejected.
    """

    def __init__(
        self,
        max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
        max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS,
    ):
        self.max_line_length = max_line_length
        self.max_chunk_chars = max_chunk_chars

    def parse(self, raw: bytes | str) -> ParsedDocument:
        """
        Parse a document into ordered segments.

        Args:
            raw: Document bytes (UTF-8) or already-decoded text

        Returns:
            ParsedDocument: Segments and the number of dropped over-long lines

        Raises:
            InvalidInputError: If bytes are not valid UTF-8
        """
        text = decode_document(raw) if isinstance(raw, bytes) else raw
        lines, dropped = drop_long_lines(split_lines(text), self.max_line_length)

        if dropped:
            logger.info(
                f"Removed {dropped} lines exceeding {self.max_line_length} characters"
            )

        document = ParsedDocument(dropped_lines=dropped)
        body_start = self._parse_front_matter(lines, document.segments)
        self._parse_body(lines[body_start:], document.segments)
        return document

    # -------------------------------------------------------------------------
    # Front matter
    # -------------------------------------------------------------------------

    def _parse_front_matter(self, lines: list[str], segments: list[Segment]) -> int:
        """Emit front-matter segments and return the index of the first body line."""
        if not lines or _line_content(lines[0]).lstrip(_BOM).rstrip() != FRONT_MATTER_DELIMITER:
            return 0

        closing = next(
            (
                i
                for i in range(1, len(lines))
                if _line_content(lines[i]).rstrip() == FRONT_MATTER_DELIMITER
            ),
            None,
        )
        if closing is None:
            logger.debug("Unterminated front matter, treating it as prose")
            return 0

        # Lines before the first key (comments, blanks) travel with the opening delimiter
        opening = [lines[0]]
        fields: list[tuple[str, list[str]]] = []
        for line in lines[1:closing]:
            match = _FIELD_KEY_PATTERN.match(line)
            if match:
                fields.append((match.group("name"), [line]))
            elif fields:
                fields[-1][1].append(line)
            else:
                opening.append(line)

        segments.append(Segment(SegmentKind.FRONT_MATTER_DELIMITER, "".join(opening)))
        for name, field_lines in fields:
            segments.append(
                Segment(SegmentKind.FRONT_MATTER_FIELD, "".join(field_lines), name=name)
            )
        segments.append(Segment(SegmentKind.FRONT_MATTER_DELIMITER, lines[closing]))
        return closing + 1

    # -------------------------------------------------------------------------
    # Body
    # -------------------------------------------------------------------------

    def _parse_body(self, lines: list[str], segments: list[Segment]) -> None:
        prose: list[str] = []
        chunk_counter = _ChunkCounter(
            next((s.chunk for s in reversed(segments) if s.chunk is not None), -1) + 1
        )

        i = 0
        while i < len(lines):
            fence = _match_fence_open(lines[i])
            if fence is not None:
                fence_chars, language_tag = fence
                end = _find_fence_close(lines, i + 1, fence_chars)
                if end is not None:
                    self._emit_prose(prose, segments, chunk_counter)
                    prose = []
                    segments.append(
                        Segment(
                            SegmentKind.CODE_FENCE,
                            "".join(lines[i : end + 1]),
                            language_tag=language_tag,
                        )
                    )
                    i = end + 1
                    continue
                logger.debug("Unterminated code fence, treating it as prose")
            prose.append(lines[i])
            i += 1

        self._emit_prose(prose, segments, chunk_counter)

    def _emit_prose(
        self, lines: list[str], segments: list[Segment], counter: "_ChunkCounter"
    ) -> None:
        for chunk_text in chunk_paragraphs(lines, self.max_chunk_chars):
            chunk = counter.next()
            segments.extend(split_inline_code(chunk_text, chunk))


class _ChunkCounter:
    def __init__(self, start: int = 0):
        self._value = start

    def next(self) -> int:
        value = self._value
        self._value += 1
        return value


def _match_fence_open(line: str) -> tuple[str, str] | None:
    match = _FENCE_OPEN_PATTERN.match(_line_content(line))
    if not match:
        return None
    fence, info = match.group("fence"), match.group("info")
    # A backtick fence's info string may not contain backticks (that is inline code)
    if fence[0] == "`" and "`" in info:
        return None
    language_tag = info.strip().split(maxsplit=1)[0] if info.strip() else ""
    return fence, language_tag


def _find_fence_close(lines: list[str], start: int, fence: str) -> int | None:
    closing = re.compile(rf"^{_FENCE_PREFIX}{re.escape(fence[0])}{{{len(fence)},}}[ \t]*$")
    for i in range(start, len(lines)):
        if closing.match(_line_content(lines[i])):
            return i
    return None


def chunk_paragraphs(lines: list[str], max_chars: int) -> list[str]:
    """
    Group prose lines into chunks of at most ``max_chars`` characters.

    Chunks break on paragraph boundaries (a paragraph keeps its trailing blank
    lines). A paragraph larger than the budget is split on line boundaries; a
    single line larger than the budget becomes its own chunk.
    """
    paragraphs: list[str] = []
    current: list[str] = []
    for line in lines:
        if current and line.strip() and not current[-1].strip():
            paragraphs.append("".join(current))
            current = []
        current.append(line)
    if current:
        paragraphs.append("".join(current))

    chunks: list[str] = []
    buffer = ""
    for paragraph in paragraphs:
        pieces = [paragraph] if len(paragraph) <= max_chars else split_lines(paragraph)
        for piece in pieces:
            if buffer and len(buffer) + len(piece) > max_chars:
                chunks.append(buffer)
                buffer = ""
            buffer += piece
    if buffer:
        chunks.append(buffer)
    return chunks


def split_inline_code(text: str, chunk: int) -> list[Segment]:
    """Split a prose chunk into prose and inline-code segments."""
    segments: list[Segment] = []
    position = 0
    for match in _INLINE_CODE_PATTERN.finditer(text):
        if match.start() > position:
            segments.append(Segment(SegmentKind.PROSE, text[position : match.start()], chunk=chunk))
        segments.append(Segment(SegmentKind.INLINE_CODE, match.group(0), chunk=chunk))
        position = match.end()
    if position < len(text):
        segments.append(Segment(SegmentKind.PROSE, text[position:], chunk=chunk))
    return segments


# =============================================================================
# Front-matter field values
# =============================================================================


def front_matter_value(segment: Segment) -> str:
    """
    Extract the scalar string value of a front-matter field.

    Uses a YAML parser for the field on its own and falls back to the text
    after the colon when the field is not standalone-valid YAML. Returns ""
    for non-string values.
    """
    try:
        data = yaml.safe_load(segment.raw_text)
    except yaml.YAMLError:
        data = None

    if isinstance(data, dict) and segment.name in data:
        value = data[segment.name]
        return value.strip() if isinstance(value, str) else ""

    first_line = _line_content(split_lines(segment.raw_text)[0])
    value = first_line.split(":", 1)[1].strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return "" if _BLOCK_SCALAR_PATTERN.match(value) else value


def render_front_matter_field(segment: Segment, translated: str) -> str:
    """
    Rewrite a front-matter field with a translated value.

    Keeps the original key text, quoting style and line endings. Multi-line
    values are written as an indented block scalar with empty lines removed,
    since a blank line would end the block early. Trailing blank and comment
    lines of the field are preserved verbatim.
    """
    lines = split_lines(segment.raw_text)
    body_end = len(lines)
    while body_end > 1 and (
        not lines[body_end - 1].strip() or lines[body_end - 1].startswith("#")
    ):
        body_end -= 1
    tail = "".join(lines[body_end:])

    first_line = lines[0]
    newline = _line_ending(lines[body_end - 1]) or _line_ending(first_line)
    key, _, original_value = _line_content(first_line).partition(":")
    original_value = original_value.strip()

    value_lines = [line.strip() for line in translated.splitlines() if line.strip()]
    if not value_lines:
        return segment.raw_text

    if len(value_lines) == 1:
        value = value_lines[0]
        if original_value.startswith('"'):
            rendered = f'{key}: "{_escape_double_quoted(value)}"'
        elif original_value.startswith("'"):
            rendered = f"{key}: '{_escape_single_quoted(value)}'"
        elif _is_plain_safe(value):
            rendered = f"{key}: {value}"
        else:
            rendered = f'{key}: "{_escape_double_quoted(value)}"'
        return rendered + newline + tail

    indicator = original_value if _BLOCK_SCALAR_PATTERN.match(original_value) else ">"
    eol = newline or "\n"
    block = [f"{key}: {indicator}"] + [f"  {line}" for line in value_lines]
    return eol.join(block) + newline + tail


def _escape_double_quoted(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _escape_single_quoted(value: str) -> str:
    return value.replace("'", "''")


def _is_plain_safe(value: str) -> bool:
    if value.startswith(_PLAIN_UNSAFE_START) or value != value.strip():
        return False
    return ": " not in value and " #" not in value and not value.endswith(":")


# =============================================================================
# Translation units
# =============================================================================


PLACEHOLDER_TEMPLATE = "___INLINE_CODE_{index}___"


class PlaceholderMismatchError(ValueError):
    """A translated chunk lost, duplicated or invented an inline-code placeholder."""


@dataclass(frozen=True)
class TranslationUnit:
    """
    One provider request's worth of document.

    A unit is either a single non-prose segment, a front-matter field, or all
    prose and inline-code segments of one chunk. Inline code inside a chunk is
    swapped for placeholders before translation and restored afterwards.
    """

    segments: tuple[Segment, ...]

    @property
    def translatable(self) -> bool:
        return any(segment.translatable for segment in self.segments)

    @property
    def is_front_matter(self) -> bool:
        return self.segments[0].kind is SegmentKind.FRONT_MATTER_FIELD

    @property
    def raw_text(self) -> str:
        return "".join(segment.raw_text for segment in self.segments)

    def source_text(self) -> str:
        """Text to send to the provider, stripped of surrounding whitespace."""
        if self.is_front_matter:
            return front_matter_value(self.segments[0])
        parts = []
        code_index = 0
        for segment in self.segments:
            if segment.kind is SegmentKind.INLINE_CODE:
                parts.append(PLACEHOLDER_TEMPLATE.format(index=code_index))
                code_index += 1
            else:
                parts.append(segment.raw_text)
        return "".join(parts).strip()

    def render(self, translated: str) -> str:
        """
        Rebuild the unit's text from a translation of ``source_text()``.

        Raises:
            PlaceholderMismatchError: If inline-code placeholders did not survive
        """
        if self.is_front_matter:
            return render_front_matter_field(self.segments[0], translated)

        restored = translated.strip()
        codes = [s.raw_text for s in self.segments if s.kind is SegmentKind.INLINE_CODE]
        for index, code in enumerate(codes):
            placeholder = PLACEHOLDER_TEMPLATE.format(index=index)
            if restored.count(placeholder) != 1:
                raise PlaceholderMismatchError(f"Placeholder {placeholder} not preserved")
            restored = restored.replace(placeholder, code)
        if PLACEHOLDER_TEMPLATE.format(index=len(codes)) in restored:
            raise PlaceholderMismatchError("Translation introduced an unknown placeholder")

        return wrap_whitespace(self.raw_text, restored)


def wrap_whitespace(original: str, translated: str) -> str:
    """Re-attach the leading and trailing whitespace of ``original``."""
    stripped = original.strip()
    if not stripped:
        return original
    start = original.index(stripped[0])
    end = start + len(stripped)
    return original[:start] + translated + original[end:]


def group_units(segments: list[Segment]) -> list[TranslationUnit]:
    """Group consecutive segments of the same prose chunk into one unit."""
    units: list[TranslationUnit] = []
    run: list[Segment] = []
    for segment in segments:
        if run and (segment.chunk is None or segment.chunk != run[-1].chunk):
            units.append(TranslationUnit(tuple(run)))
            run = []
        if segment.chunk is None:
            units.append(TranslationUnit((segment,)))
        else:
            run.append(segment)
    if run:
        units.append(TranslationUnit(tuple(run)))
    return units
