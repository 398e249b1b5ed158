# tests/test_json_parser.py
"""
Tests for the robust JSON parser.

Every extractor reply goes through it; if it fails, the turn fails.
"""

from utils.json_parser import _attempt_json_repair, extract_json_array, safe_parse_json, strip_markdown


class TestSafeParseJson:

    def test_valid_json_simple(self, valid_json_simple):
        result = safe_parse_json(valid_json_simple)

        assert result["namespace"] == "ns-a1"
        assert result["resource"] == "pods"

    def test_json_with_surrounding_text(self):
        result = safe_parse_json('Result: {"resource": "devbox"} hope that helps')
        assert result == {"resource": "devbox"}

    def test_trailing_comma_is_repaired(self):
        result = safe_parse_json('{"resource": "pods", "identifier": "hzh",}')
        assert result["identifier"] == "hzh"

    def test_empty_input_returns_default(self):
        assert safe_parse_json("") == {}
        assert safe_parse_json(None) == {}
        assert safe_parse_json("   ") == {}

    def test_garbage_returns_custom_default(self):
        assert safe_parse_json("not json at all", default={"fallback": True}) == {"fallback": True}


class TestExtractJsonArray:

    def test_array_in_markdown_fence(self, json_in_markdown):
        items = extract_json_array(json_in_markdown)

        assert len(items) == 2
        assert items[0]["resource"] == "devbox"
        assert items[1]["resource"] == "cluster"

    def test_array_with_surrounding_text(self, json_with_text):
        items = extract_json_array(json_with_text)
        assert items == [{"namespace": "ns-a1", "resource": "pods", "identifier": "bja"}]

    def test_trailing_commas_in_array(self, broken_json_trailing_comma):
        items = extract_json_array(broken_json_trailing_comma)
        assert items == [{"namespace": "ns-a1", "resource": "pods", "identifier": "hzh"}]

    def test_single_object_is_wrapped(self):
        items = extract_json_array('{"namespace": "ns-a1", "resource": "pods"}')
        assert items == [{"namespace": "ns-a1", "resource": "pods"}]

    def test_nothing_parseable_returns_none(self):
        assert extract_json_array("I could not find any resources.") is None
        assert extract_json_array("") is None
        assert extract_json_array(None) is None


class TestHelpers:

    def test_strip_markdown_removes_fences_and_emphasis(self):
        raw = "```json\n[{\"resource\": \"**pods**\"}]\n```"
        assert strip_markdown(raw) == '[{"resource": "pods"}]'

    def test_repair_python_literals(self):
        repaired = _attempt_json_repair("{'ok': True, 'value': None}", "{", "}")
        assert repaired == '{"ok": true, "value": null}'

    def test_repair_without_brackets(self):
        assert _attempt_json_repair("no brackets", "[", "]") is None
