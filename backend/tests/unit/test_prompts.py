"""
Unit tests for prompt construction and response clean-up.
"""

from skill_translator.services.prompts import (
    build_translation_prompt,
    extract_translation_from_response,
    missing_protected_terms,
)


class TestBuildPrompt:
    def test_source_text_comes_last(self):
        prompt = build_translation_prompt("en", "zh-CN", "Hello world")

        assert "from en to zh-CN" in prompt
        assert prompt.endswith("Source text:\nHello world")

    def test_protected_terms_listed(self):
        prompt = build_translation_prompt("en", "ja", "Use GitHub", protected_terms=["GitHub", "CLI"])

        assert "Protected terms (keep unchanged): GitHub, CLI" in prompt

    def test_placeholder_note_only_when_needed(self):
        plain = build_translation_prompt("en", "zh-CN", "No code here")
        with_code = build_translation_prompt("en", "zh-CN", "Run ___INLINE_CODE_0___ now")

        assert "placeholder" not in plain
        assert "Keep every placeholder exactly once" in with_code

    def test_metadata_field_prompt(self):
        prompt = build_translation_prompt("en", "zh-CN", "A tool", field_name="description")

        assert "'description' metadata value" in prompt


class TestExtractTranslation:
    def test_strips_wrapping_fence(self):
        assert extract_translation_from_response("```markdown\n你好\n```") == "你好"

    def test_keeps_fence_when_source_was_fenced(self):
        answer = "```\ncode\n```"
        assert extract_translation_from_response(answer, source_text="```\ncode\n```") == answer

    def test_empty_answer(self):
        assert extract_translation_from_response("") == ""


def test_missing_protected_terms():
    missing = missing_protected_terms("Use GitHub and the CLI", "使用 GitHub 和命令行", ["GitHub", "CLI", "MCP"])

    assert missing == ["CLI"]
