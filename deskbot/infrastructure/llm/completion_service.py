"""
Completion Service - LLM Text Completion for AI Replies
========================================================

ARCHITECTURAL DECISION:
- Uses OpenRouter's OpenAI-compatible chat completions API
- One operation: complete(prompt) -> str
- Every failure is raised as BackendError; the router decides what the
  customer sees (a fixed apology)

EXTENSIBILITY:
- To use a different model: set LLM_MODEL
- To use OpenAI or a local server: change api_url in settings
"""

import logging
from typing import Optional

import requests

from ...domain.errors import BackendError
from ..config import LLMSettings, get_settings

logger = logging.getLogger(__name__)


class CompletionService:
    """
    USAGE:
        service = CompletionService()
        answer = service.complete("Kamu adalah asisten customer service. ...")
    """

    def __init__(self, settings: Optional[LLMSettings] = None, session: Optional[requests.Session] = None):
        """Initialize completion service with settings."""
        settings = settings or get_settings().llm
        self._api_key = settings.api_key
        self._api_url = settings.api_url
        self._model = settings.model
        self._temperature = settings.temperature
        self._max_tokens = settings.max_tokens
        self._timeout = settings.timeout_seconds
        self._http = session or requests.Session()

        if not self._api_key:
            logger.warning(
                "No OPENROUTER_API_KEY set. "
                "AI replies will fail and customers will get the apology message."
            )

    def is_available(self) -> bool:
        return bool(self._api_key)

    def complete(self, prompt: str) -> str:
        """
        Send one prompt, return the model's text.

        Raises:
            BackendError: missing key, HTTP/timeout error, or empty answer.
        """
        if not self._api_key:
            raise BackendError("OPENROUTER_API_KEY is not configured")

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": "https://github.com/deskbot",  # Required by OpenRouter
        }

        payload = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }

        try:
            response = self._http.post(
                self._api_url,
                headers=headers,
                json=payload,
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()

        except requests.Timeout as e:
            raise BackendError(f"LLM API timeout after {self._timeout}s") from e

        except requests.RequestException as e:
            raise BackendError(f"LLM API error: {e}") from e

        except ValueError as e:
            raise BackendError(f"LLM API returned invalid JSON: {e}") from e

        content = self._extract_response_content(data)
        if not content:
            raise BackendError("LLM API returned an empty answer")

        logger.debug(f"LLM answered with {len(content)} characters")
        return content

    def _extract_response_content(self, data: dict) -> str:
        """Extract text content from API response."""
        try:
            choices = data.get("choices", [])
            if choices:
                message = choices[0].get("message", {})
                return (message.get("content") or "").strip()
        except (AttributeError, KeyError, IndexError, TypeError):
            pass
        return ""
