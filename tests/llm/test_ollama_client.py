import json
import unittest
from types import SimpleNamespace
from unittest.mock import patch

import requests

from commitsmith.errors import LLMError
from commitsmith.llm.ollama_client import OllamaClient


class DummyResponse(SimpleNamespace):
    def json(self):
        return json.loads(self.text)


class TestOllamaClient(unittest.TestCase):
    def test_generate_success(self) -> None:
        captured = {}

        def fake_post(url, *_args, **kwargs):
            captured["url"] = url
            captured.update(kwargs)
            return DummyResponse(status_code=200, text=json.dumps({"response": '{"kind": "suggestions"}'}))

        with patch("requests.post", fake_post):
            client = OllamaClient("http://localhost", 11434, "llama3", max_tokens=256)
            resp = client.generate("prompt", timeout=42.0)
        self.assertEqual(resp, '{"kind": "suggestions"}')
        self.assertEqual(captured["url"], "http://localhost:11434/api/generate")
        self.assertEqual(captured["timeout"], 42.0)
        self.assertEqual(captured["json"]["model"], "llama3")
        self.assertEqual(captured["json"]["options"], {"num_predict": 256})
        self.assertNotIn("Authorization", captured["headers"])

    def test_api_key_sent_as_bearer_token(self) -> None:
        captured = {}

        def fake_post(url, *_args, **kwargs):
            captured.update(kwargs)
            return DummyResponse(status_code=200, text=json.dumps({"response": "ok"}))

        with patch("requests.post", fake_post):
            OllamaClient("http://localhost", 11434, "m", api_key="s3cret").generate("prompt")
        self.assertEqual(captured["headers"]["Authorization"], "Bearer s3cret")
        self.assertEqual(captured["timeout"], 60.0)

    def test_chat_style_message_body(self) -> None:
        body = json.dumps({"message": {"role": "assistant", "content": "Answer"}})
        with patch("requests.post", return_value=DummyResponse(status_code=200, text=body)):
            self.assertEqual(OllamaClient("http://localhost", 1, "m").generate("p"), "Answer")

    def test_generate_error_status_is_not_recoverable(self) -> None:
        with patch("requests.post", return_value=DummyResponse(status_code=500, text="Internal error")):
            client = OllamaClient("http://localhost", 11434, "model")
            with self.assertRaises(LLMError) as ctx:
                client.generate("prompt")
        self.assertFalse(ctx.exception.recoverable)

    def test_generate_invalid_json(self) -> None:
        with patch("requests.post", return_value=DummyResponse(status_code=200, text="not json")):
            client = OllamaClient("http://localhost", 11434, "model")
            with self.assertRaises(LLMError) as ctx:
                client.generate("prompt")
        self.assertFalse(ctx.exception.recoverable)

    def test_unexpected_structure(self) -> None:
        with patch("requests.post", return_value=DummyResponse(status_code=200, text=json.dumps({"foo": 1}))):
            with self.assertRaises(LLMError):
                OllamaClient("http://localhost", 11434, "model").generate("prompt")

    def test_timeout_and_connection_errors_are_recoverable(self) -> None:
        for exc in (requests.Timeout("slow"), requests.ConnectionError("refused")):
            with self.subTest(exc=type(exc).__name__):
                with patch("requests.post", side_effect=exc):
                    with self.assertRaises(LLMError) as ctx:
                        OllamaClient("http://localhost", 11434, "model").generate("prompt")
                self.assertTrue(ctx.exception.recoverable)


if __name__ == "__main__":
    unittest.main()
