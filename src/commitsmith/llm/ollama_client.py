"""
Client for an Ollama-compatible text-generation server.

This client wraps HTTP requests to the ``/api/generate`` endpoint. Timeouts
and connection failures raise a recoverable :class:`LLMError` so the
caller's retry policy may try again; HTTP errors and malformed bodies raise
a non-recoverable one.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from commitsmith.errors import LLMError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


THINKING_PATTERNS = (
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<thinking>.*?</thinking>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<thought>.*?</thought>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
)


def strip_thinking_tags(text: str) -> str:
    """Remove reasoning blocks that some models emit before their answer.

    Examples
    --------
    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    """
    for pattern in THINKING_PATTERNS:
        text = pattern.sub("", text)
    return text.strip()


@dataclass
class OllamaClient:
    """Client for an Ollama server.

    Parameters
    ----------
    base_url : str
        Base URL of the server, e.g. ``"http://localhost"``.
    port : int
        Port number of the server, e.g. ``11434``.
    model : str
        Name of the model to use for generation.
    request_timeout : float, optional
        Default timeout in seconds when :meth:`generate` is not given one.
    max_tokens : int, optional
        Maximum number of tokens to generate, sent as ``num_predict``.
    api_key : str, optional
        Sent as a bearer token for servers behind an authenticating proxy.
    """

    base_url: str
    port: int
    model: str
    request_timeout: float = 60.0
    max_tokens: Optional[int] = None
    api_key: Optional[str] = None

    def _endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}:{self.port}/api/generate"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        """Generate a completion for ``prompt``.

        Parameters
        ----------
        prompt : str
            The prompt to send to the model.
        timeout : float, optional
            Per-request timeout in seconds; defaults to ``request_timeout``.

        Returns
        -------
        str
            The generated text with reasoning blocks removed.

        Raises
        ------
        LLMError
            If the request fails or the server returns an error.
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
        }
        if self.max_tokens is not None:
            payload["options"] = {"num_predict": self.max_tokens}
        url = self._endpoint()
        effective_timeout = timeout if timeout is not None else self.request_timeout
        logger.debug(
            "Sending %d-character prompt to %s (timeout %.1fs)", len(prompt), url, effective_timeout
        )
        try:
            response = requests.post(
                url,
                json=payload,
                headers=self._headers(),
                timeout=effective_timeout,
            )
        except requests.Timeout as exc:
            logger.error("Request to LLM timed out after %.1fs", effective_timeout)
            raise LLMError(f"Request timed out after {effective_timeout:.1f}s", recoverable=True) from exc
        except requests.ConnectionError as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise LLMError(f"Failed to connect to LLM: {exc}", recoverable=True) from exc
        except requests.RequestException as exc:
            logger.error("LLM request failed: %s", exc)
            raise LLMError(str(exc)) from exc
        if response.status_code != 200:
            logger.error(
                "LLM returned non-200 status %s: %s", response.status_code, response.text
            )
            raise LLMError(f"LLM returned status {response.status_code}: {response.text}")
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise LLMError("Failed to parse LLM response") from exc
        if not isinstance(data, dict):
            raise LLMError("Unexpected response structure from LLM")
        # /api/generate answers with 'response'; /api/chat-style proxies with 'message'.
        if isinstance(data.get("response"), str):
            return strip_thinking_tags(data["response"])
        message = data.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return strip_thinking_tags(message["content"])
        raise LLMError("Unexpected response structure from LLM")
