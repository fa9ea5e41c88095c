import json
import unittest

import pytest

from commitsmith.errors import ResponseParseError
from commitsmith.llm.fallback import FALLBACK_CONFIDENCE, GENERIC_FALLBACK_MESSAGE
from commitsmith.llm.response_parser import (
    FileMapResponse,
    SuggestionListResponse,
    decode_response,
    extract_document,
    parse_batch_response,
    parse_single_response,
    parse_text_response,
    validate_suggestions,
)
from commitsmith.models import SanitizedDiff, Suggestion


GOOD_MESSAGE = "Implemented token bucket rate limiting for the public search endpoint"


def sanitized(path, additions=5, deletions=1, **flags):
    return SanitizedDiff(path=path, additions=additions, deletions=deletions, changes="+x\n", **flags)


class TestValidateSuggestions(unittest.TestCase):
    def test_valid_message_is_kept(self) -> None:
        [result] = validate_suggestions([Suggestion(GOOD_MESSAGE, confidence=0.9)])
        self.assertEqual(result.message, GOOD_MESSAGE)
        self.assertAlmostEqual(result.confidence, 0.9)

    def test_short_message_loses_confidence_but_keeps_text(self) -> None:
        [result] = validate_suggestions([Suggestion("Fixed parser bug", confidence=0.9)])
        self.assertEqual(result.message, "Fixed parser bug")
        self.assertAlmostEqual(result.confidence, 0.5)

    def test_short_message_confidence_floor(self) -> None:
        [result] = validate_suggestions([Suggestion("Fixed bug", confidence=0.5)])
        self.assertAlmostEqual(result.confidence, 0.3)

    def test_long_message_is_truncated_to_25_words(self) -> None:
        message = " ".join(f"w{i}" for i in range(30))
        [result] = validate_suggestions([Suggestion(message, confidence=0.9)])
        self.assertEqual(len(result.message.split()), 25)
        self.assertEqual(result.message.split()[-1], "w24")
        self.assertAlmostEqual(result.confidence, 0.8)

    def test_long_message_confidence_floor(self) -> None:
        message = " ".join(["word"] * 30)
        [result] = validate_suggestions([Suggestion(message, confidence=0.65)])
        self.assertAlmostEqual(result.confidence, 0.6)

    def test_character_cap_appends_ellipsis(self) -> None:
        message = " ".join(["internationalization"] * 8)
        [result] = validate_suggestions([Suggestion(message, confidence=0.9)])
        self.assertEqual(len(result.message), 123)
        self.assertTrue(result.message.endswith("..."))

    def test_invalid_suggestions_are_dropped(self) -> None:
        suggestions = [
            Suggestion("", confidence=0.9),
            Suggestion("x" * 201, confidence=0.9),
            Suggestion(GOOD_MESSAGE, confidence=1.5),
            Suggestion("Added <script>alert(1)</script> to the landing page template", confidence=0.9),
            Suggestion(GOOD_MESSAGE, confidence=0.7),
        ]
        result = validate_suggestions(suggestions)
        self.assertEqual(len(result), 1)
        self.assertAlmostEqual(result[0].confidence, 0.7)


class TestDecodeResponse(unittest.TestCase):
    def test_extract_document_ignores_surrounding_text(self) -> None:
        text = 'Sure! ```json\n{"kind": "suggestions", "suggestions": []}\n``` Hope it helps.'
        self.assertEqual(extract_document(text)["kind"], "suggestions")

    def test_extract_document_without_json(self) -> None:
        with self.assertRaises(ResponseParseError):
            extract_document("no json here")

    def test_decode_by_explicit_tag(self) -> None:
        document = {"kind": "files", "files": {"a.py": {"message": GOOD_MESSAGE, "confidence": 0.9}}}
        parsed = decode_response(document, "suggestions")
        self.assertIsInstance(parsed, FileMapResponse)
        self.assertEqual(parsed.files["a.py"][0].message, GOOD_MESSAGE)

    def test_missing_tag_uses_requested_kind(self) -> None:
        parsed = decode_response({"suggestions": [{"message": GOOD_MESSAGE}]}, "suggestions")
        self.assertIsInstance(parsed, SuggestionListResponse)
        self.assertAlmostEqual(parsed.suggestions[0].confidence, 0.8)

    def test_payload_not_matching_tag_is_rejected(self) -> None:
        with self.assertRaises(ResponseParseError):
            decode_response({"kind": "files", "suggestions": []}, "files")
        with self.assertRaises(ResponseParseError):
            decode_response({"kind": "mystery"}, "files")


def test_parse_single_json_response():
    text = json.dumps({"kind": "suggestions", "suggestions": [{"message": GOOD_MESSAGE, "confidence": 0.95}]})
    [result] = parse_single_response(text)
    assert result.message == GOOD_MESSAGE
    assert result.confidence == pytest.approx(0.95)


def test_parse_single_falls_back_to_numbered_lines():
    text = "Here are some options:\n1. " + GOOD_MESSAGE + "\n2. Added caching layer for repeated search queries in the API\n"
    results = parse_single_response(text)
    assert [r.message for r in results][0] == GOOD_MESSAGE
    assert len(results) == 2


def test_parse_single_malformed_response_uses_generic_fallback():
    [result] = parse_single_response("{ this is not json")
    assert result.message == GENERIC_FALLBACK_MESSAGE
    assert result.confidence == pytest.approx(FALLBACK_CONFIDENCE)


def test_parse_text_response_limits_to_three():
    text = "\n".join(f"{i}. Added feature number {i} to the module" for i in range(1, 6))
    assert len(parse_text_response(text)) == 3


def test_parse_batch_matches_files_by_name_and_fills_missing():
    diffs = {
        "/abs/repo/src/a.py": sanitized("src/a.py"),
        "/abs/repo/src/b.py": sanitized("src/b.py", additions=50, deletions=1),
    }
    text = json.dumps({"kind": "files", "files": {"src/a.py": {"message": GOOD_MESSAGE, "confidence": 0.9}}})
    results = parse_batch_response(text, diffs)
    assert set(results) == set(diffs)
    assert results["/abs/repo/src/a.py"][0].message == GOOD_MESSAGE
    fallback = results["/abs/repo/src/b.py"][0]
    assert fallback.message == "Added new functionality to b.py file"
    assert fallback.confidence == pytest.approx(FALLBACK_CONFIDENCE)


def test_parse_batch_unparseable_response_falls_back_for_every_file():
    diffs = {"a.py": sanitized("a.py", is_new=True), "b.py": sanitized("b.py", is_deleted=True)}
    results = parse_batch_response("The model rambled without JSON.", diffs)
    assert results["a.py"][0].message == "Created new a.py file with initial implementation"
    assert results["b.py"][0].message == "Removed b.py file as it is no longer needed"
    assert all(r[0].confidence == pytest.approx(FALLBACK_CONFIDENCE) for r in results.values())


def test_parse_batch_suggestion_list_applies_to_all_files():
    diffs = {"a.py": sanitized("a.py"), "b.py": sanitized("b.py")}
    text = json.dumps({"kind": "suggestions", "suggestions": [{"message": GOOD_MESSAGE, "confidence": 0.9}]})
    results = parse_batch_response(text, diffs)
    assert results["a.py"][0].message == GOOD_MESSAGE
    assert results["b.py"][0].message == GOOD_MESSAGE
    assert results["a.py"] is not results["b.py"]


if __name__ == "__main__":
    unittest.main()
