"""
Unit tests for talent_match/common/json_utils.py
"""

import pytest

from talent_match.common.json_utils import parse_llm_json, strip_code_fences


class TestStripCodeFences:

    def test_json_fence(self):
        assert strip_code_fences('```json\n["a"]\n```') == '["a"]'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestParseLlmJson:

    def test_valid_array(self):
        assert parse_llm_json('["Add a README"]') == ["Add a README"]

    def test_valid_object(self):
        assert parse_llm_json('{"suggestions": []}') == {"suggestions": []}

    def test_fenced(self):
        assert parse_llm_json('```json\n["Add a README"]\n```') == ["Add a README"]

    def test_surrounding_prose(self):
        text = 'Here you go:\n{"suggestions": ["Deploy it"]}\nGood luck!'
        assert parse_llm_json(text) == {"suggestions": ["Deploy it"]}

    def test_repairs_trailing_comma_and_single_quotes(self):
        assert parse_llm_json("{'suggestions': ['Deploy it',]}") == {"suggestions": ["Deploy it"]}

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_input(self, text):
        with pytest.raises(ValueError, match="Empty input"):
            parse_llm_json(text)

    def test_no_json(self):
        with pytest.raises(ValueError, match="No JSON found"):
            parse_llm_json("just some prose")
