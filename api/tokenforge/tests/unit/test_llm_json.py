"""Unit tests for fence stripping and model JSON parsing."""

from tokenforge.services.llm_json import EMPTY_COMPLETION, parse_model_json, strip_code_fence


class TestStripCodeFence:

    def test_json_fence_removed(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence_removed(self):
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_on_one_line(self):
        assert strip_code_fence('```{"a": 1}```') == '{"a": 1}'

    def test_unfenced_text_is_only_trimmed(self):
        assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'

    def test_backticks_inside_values_are_kept(self):
        raw = '{"note": "use ``` for code"}'
        assert strip_code_fence(raw) == raw


class TestParseModelJson:

    def test_fenced_object(self):
        result = parse_model_json('```json\n{"style": "Minimal"}\n```')
        assert result.ok
        assert result.value == {"style": "Minimal"}

    def test_unfenced_object(self):
        result = parse_model_json('{"style": "Bold"}')
        assert result.ok
        assert result.value == {"style": "Bold"}

    def test_malformed_json_is_a_failure_not_an_exception(self):
        result = parse_model_json('```json\n{"style": "Bold",}\n```')
        assert not result.ok
        assert result.value is None
        assert result.error.startswith("Invalid JSON at line 1")
        assert result.text == '{"style": "Bold",}'

    def test_prose_is_a_failure(self):
        result = parse_model_json("Sure! Here are your tokens.")
        assert not result.ok

    def test_empty_completion_reads_as_empty_object(self):
        for raw in (None, "", "   ", "```json\n```"):
            result = parse_model_json(raw)
            assert result.ok
            assert result.value == {}
            assert result.text == EMPTY_COMPLETION
