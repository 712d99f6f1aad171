"""Narration service client — HTTP connection to a chat-completion backend.

The pipeline injects an LLM callable matching the protocol:

    async def __call__(self, stage: str, messages: list[ChatMessage],
                       *, json_output: bool = False) -> str: ...

`stage` identifies which pipeline stage is calling ("parse_intent",
"narrative", "extract_delta"). HttpLLM uses it to pick per-stage sampling
options and for logging. `json_output` asks the backend to constrain its reply
to a single JSON object.

Production code constructs an HttpLLM from config and passes it to
resolve_turn(). Tests use a scripted stub (defined in the test helpers).
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol, TypedDict

import httpx

logger = logging.getLogger(__name__)


class ChatMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(
        self, stage: str, messages: list[ChatMessage], *, json_output: bool = False
    ) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM: connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["openai", "koboldcpp"]


class HttpLLM:
    """Async HTTP client for chat-completion backends.

    Supported formats:
      "openai"     — POST /v1/chat/completions  {"model": ..., "messages": [...]}
                     Response: {"choices": [{"message": {"content": "..."}}]}
      "koboldcpp"  — POST /api/v1/generate      {"prompt": ...}
                     Messages are flattened into a single prompt.
                     Response: {"results": [{"text": "..."}]}

    Args:
        provider_url:    Base URL of the backend, e.g. "https://api.openai.com".
        api_key:         Bearer token, or empty string if not required.
        provider_format: Wire format to use. Defaults to "openai".
        model:           Model identifier, used only by the openai format.
        timeout:         HTTP timeout in seconds. Defaults to 60.
        stage_options:   Per-stage sampling options, e.g.
                         {"narrative": {"temperature": 0.8, "max_tokens": 700}}.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "openai",
        model: str = "",
        timeout: float = 60.0,
        stage_options: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout
        self._stage_options = stage_options or {}

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(
        self, stage: str, messages: list[ChatMessage], json_output: bool
    ) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        options = self._stage_options.get(stage, {})

        if self._format == "koboldcpp":
            url = f"{self._base_url}/api/v1/generate"
            body: dict[str, Any] = {"prompt": flatten_messages(messages)}
            if "temperature" in options:
                body["temperature"] = options["temperature"]
            if "max_tokens" in options:
                body["max_length"] = options["max_tokens"]
            return url, body

        # openai (default)
        url = f"{self._base_url}/v1/chat/completions"
        body = {"messages": list(messages)}
        if self._model:
            body["model"] = self._model
        if "temperature" in options:
            body["temperature"] = options["temperature"]
        if "max_tokens" in options:
            body["max_tokens"] = options["max_tokens"]
        if json_output:
            body["response_format"] = {"type": "json_object"}
        return url, body

    def _parse_response(self, data: Any) -> str:
        """Extract the completion text from the response body."""
        if self._format == "koboldcpp":
            results = data.get("results") if isinstance(data, dict) else None
            first = results[0] if isinstance(results, list) and results else None
            if not isinstance(first, dict) or not isinstance(first.get("text"), str):
                raise LLMError("Unexpected response format from KoboldCpp backend")
            return first["text"]

        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        if not isinstance(first, dict):
            raise LLMError("Unexpected response format from OpenAI-compatible backend")
        message = first.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if content is None:
            raise LLMError("OpenAI-compatible backend returned no message content")
        if not isinstance(content, str):
            raise LLMError(
                f"OpenAI-compatible backend returned {type(content).__name__} content, expected text"
            )
        return content

    async def __call__(
        self, stage: str, messages: list[ChatMessage], *, json_output: bool = False
    ) -> str:
        url, body = self._build_request(stage, messages, json_output)
        logger.debug(
            "llm call stage=%s url=%s messages=%d json=%s",
            stage, url, len(messages), json_output,
        )

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to narration backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"Narration backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"Narration backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"Narration backend request failed: {type(e).__name__}: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("Narration backend returned a non-JSON body") from e
        text = self._parse_response(data)
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


def flatten_messages(messages: list[ChatMessage]) -> str:
    """Render chat messages as one text-completion prompt."""
    labels = {"system": "", "user": "Player: ", "assistant": "Narrator: "}
    parts = [f"{labels[m['role']]}{m['content']}" for m in messages]
    return "\n\n".join(parts) + "\n\nNarrator:"


# ---------------------------------------------------------------------------
# LLMError: raised for all narration-service failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the narration backend fails or returns unusable output."""
