"""Tests for JSON extraction from model replies."""

import pytest

from ats_tailor.utils.json_parser import extract_json, extract_json_object


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json('{"title": "DBA"}') == {"title": "DBA"}

    def test_fenced_reply(self):
        text = '```json\n{"keywords": ["T-SQL", "SSIS"]}\n```'
        assert extract_json(text) == {"keywords": ["T-SQL", "SSIS"]}

    def test_chatter_around_object(self):
        text = 'Sure, here is the analysis: {"matchScore": 72, "gaps": []} Let me know!'
        assert extract_json(text) == {"matchScore": 72, "gaps": []}

    def test_bare_array(self):
        assert extract_json('Result: ["a", "b"]') == ["a", "b"]

    def test_truncated_object_repaired(self):
        text = '{"summary": "DBA", "skills": ["SQL Server", "T-SQL", "Power'
        assert extract_json(text) == {"summary": "DBA", "skills": ["SQL Server", "T-SQL"]}

    def test_multiline_with_unicode(self):
        text = """Output:
```json
{
  "contact": {"name": "José Núñez"},
  "summary": "Résumé summary"
}
```"""
        result = extract_json(text)
        assert result["contact"]["name"] == "José Núñez"

    @pytest.mark.parametrize("text", ["", "   ", "no json here at all", None])
    def test_unparsable_raises(self, text):
        with pytest.raises(ValueError):
            extract_json(text)


class TestExtractJsonObject:
    def test_object_returned(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_array_rejected(self):
        with pytest.raises(ValueError, match="Expected a JSON object"):
            extract_json_object("[1, 2]")
