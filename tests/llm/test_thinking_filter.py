"""Tests for filtering reasoning blocks from model responses."""

import unittest
from unittest.mock import Mock, patch

from commitsmith.llm.ollama_client import OllamaClient, strip_thinking_tags


class TestThinkingFilter(unittest.TestCase):
    """Reasoning tags and their content are removed; the answer is kept."""

    def test_strip_each_tag_kind(self):
        for tag in ("think", "thinking", "thought", "reasoning"):
            with self.subTest(tag=tag):
                text = f"<{tag}>I should mention the cache\nacross lines</{tag}>\n\n{{\"kind\": \"files\"}}"
                self.assertEqual(strip_thinking_tags(text), '{"kind": "files"}')

    def test_tags_are_case_insensitive(self):
        self.assertEqual(strip_thinking_tags("<THINK>hmm</THINK>Answer"), "Answer")

    def test_text_without_tags_is_only_trimmed(self):
        self.assertEqual(strip_thinking_tags("  plain answer \n"), "plain answer")

    def test_client_filters_response(self):
        client = OllamaClient(base_url="http://localhost", port=11434, model="test-model")
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.json.return_value = {
            "response": '<think>Let me analyze this code...</think>{"kind": "suggestions", "suggestions": []}'
        }
        with patch("requests.post", return_value=mock_response):
            result = client.generate("test prompt")
        self.assertNotIn("Let me analyze", result)
        self.assertTrue(result.startswith('{"kind"'))


if __name__ == "__main__":
    unittest.main()
