"""
Translation prompt templates for LLM-based document translation.

Provides system and user prompts for accurate, format-preserving translation
of SKILL.md prose and front-matter descriptions.
"""

import re

from skill_translator.services.markdown_parser import PLACEHOLDER_TEMPLATE

# =============================================================================
# System Prompts
# =============================================================================

DOCUMENT_TRANSLATION_SYSTEM_PROMPT = """You are a professional technical translator specializing in software documentation.

**OUTPUT FORMAT - CRITICAL:**
- Output ONLY the translated text
- NO explanations, NO "Here's the translation:", NO commentary
- Do NOT wrap the answer in a code block

**Translation Rules:**
1. Translate naturally while preserving technical accuracy
2. Preserve Markdown inline formatting exactly (headings, lists, emphasis, links, tables)
3. Keep URLs, file paths and command names unchanged
4. Keep the listed protected terms exactly as written, never translate them
5. Keep placeholders like ___INLINE_CODE_0___ exactly as they are, each one exactly once
6. Do not add or remove sections, list items or lines
7. If the text is already in the target language, output it unchanged"""


# =============================================================================
# Language-Specific Adjustments
# =============================================================================

LANGUAGE_SPECIFIC_INSTRUCTIONS = {
    "zh-CN": "**CRITICAL: Must use ONLY Simplified Chinese (简体中文). Absolutely NO Traditional Chinese characters. Use mainland China punctuation (，。！？) in prose.**",
    "zh-TW": "Use traditional Chinese characters and Taiwan punctuation.",
    "ja": "Use a polite, neutral documentation register (です/ます).",
    "ko": "Use a formal documentation register (합니다).",
    "fr": "Use French punctuation rules (guillemets, spacing before punctuation).",
    "de": "Capitalize all nouns as per German grammar rules.",
}


def get_language_instruction(lang_code: str) -> str | None:
    """
    Get language-specific instruction for a target language.

    Args:
        lang_code: Language code (e.g., "zh-CN", "ja")

    Returns:
        Optional[str]: Language-specific instruction or None
    """
    return LANGUAGE_SPECIFIC_INSTRUCTIONS.get(lang_code)


# =============================================================================
# User Prompt Templates
# =============================================================================


def build_translation_prompt(
    source_lang: str,
    target_lang: str,
    text: str,
    protected_terms: list[str] | None = None,
    field_name: str | None = None,
) -> str:
    """
    Build a user prompt for translating one document chunk.

    Args:
        source_lang: Source language code (e.g., "en")
        target_lang: Target language code (e.g., "zh-CN")
        text: Text to translate
        protected_terms: Proper nouns that must appear unchanged
        field_name: Front-matter field name when translating a metadata value

    Returns:
        str: Formatted user prompt
    """
    prompt_parts = []

    if field_name:
        prompt_parts.append(
            f"Translate the following '{field_name}' metadata value from {source_lang} "
            f"to {target_lang}. Output plain text without Markdown."
        )
    else:
        prompt_parts.append(
            f"Translate the following Markdown from {source_lang} to {target_lang}."
        )

    lang_instruction = get_language_instruction(target_lang)
    if lang_instruction:
        prompt_parts.append(f"\n{lang_instruction}")

    if protected_terms:
        prompt_parts.append(f"\nProtected terms (keep unchanged): {', '.join(protected_terms)}")

    if PLACEHOLDER_TEMPLATE.format(index=0) in text:
        prompt_parts.append(
            "\nInline code has been replaced by placeholders such as "
            f"{PLACEHOLDER_TEMPLATE.format(index=0)}. Keep every placeholder exactly once."
        )

    prompt_parts.append(f"\nSource text:\n{text}")

    return "\n".join(prompt_parts)


# =============================================================================
# Response Clean-up
# =============================================================================

_WRAPPING_FENCE = re.compile(r"^```[\w-]*[ \t]*\n(?P<body>.*)\n```[ \t]*$", re.DOTALL)


def extract_translation_from_response(response: str, source_text: str = "") -> str:
    """
    Extract the translation from a model answer.

    Removes a code fence wrapped around the whole answer, unless the source
    itself was a fenced block.

    Args:
        response: Raw response from AI model
        source_text: The text that was sent for translation

    Returns:
        str: Extracted translation text
    """
    if not response:
        return ""

    response = response.strip()
    if source_text.lstrip().startswith("```"):
        return response

    match = _WRAPPING_FENCE.match(response)
    if match:
        return match.group("body").strip()
    return response


def missing_protected_terms(source: str, translated: str, protected_terms: list[str]) -> list[str]:
    """Return the protected terms present in ``source`` but absent from ``translated``."""
    return [term for term in protected_terms if term in source and term not in translated]
