"""External triage client: bounded calls to the Anthropic Messages API.

Every call resolves to a :data:`TriageResult`.  Transport failures, timeouts
and unusable responses are returned as :class:`TriageFailure` values instead
of being raised, so callers can always fall back to a safe decision.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

import anthropic
import httpx

from vibesafu.guard.models import TriageError, TriageFailure, TriageResult, TriageSuccess
from vibesafu.logging import get_logger

log = get_logger("vibesafu.guard.triage")

_CONNECT_TIMEOUT = 5.0
_MAX_PROMPT_COMMAND_CHARS = 4000
_FENCE_TAG = re.compile(r"<\s*/?\s*command\s*>", re.IGNORECASE)


def extract_json_from_text(text: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in *text*.

    Models often wrap JSON in prose or Markdown code fences; everything
    around the object is ignored.
    """
    decoder = json.JSONDecoder()
    index = text.find("{")
    while index != -1:
        try:
            obj, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict):
            return obj
        index = text.find("{", index + 1)
    return None


def sanitize_for_prompt(command: str, max_length: int = _MAX_PROMPT_COMMAND_CHARS) -> str:
    """Prepare untrusted command text for embedding between ``<command>`` tags."""
    cleaned = _FENCE_TAG.sub("[tag removed]", command)
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + f"\n[truncated {len(command) - max_length} chars]"
    return cleaned


class TriageClient:
    """Thin wrapper around ``anthropic.AsyncAnthropic`` with typed results."""

    def __init__(
        self,
        api_key: str,
        *,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        # No SDK retries: retry policy belongs to the caller
        self._client = client or anthropic.AsyncAnthropic(
            api_key=api_key,
            max_retries=0,
            timeout=httpx.Timeout(60.0, connect=_CONNECT_TIMEOUT),
        )

    async def call_triage(
        self,
        prompt: str,
        *,
        model: str,
        max_tokens: int,
        timeout: float,
        system_prompt: str = "",
    ) -> TriageResult:
        """Send *prompt* to *model* and parse a JSON object from the reply.

        Args:
            prompt: User message content.
            model: Anthropic model name.
            max_tokens: Output token limit.
            timeout: Hard limit in seconds; the request is cancelled after it.
            system_prompt: Optional system prompt.

        Returns:
            :class:`TriageSuccess` with the parsed object, or
            :class:`TriageFailure` describing what went wrong.
        """
        request: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            request["system"] = system_prompt

        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**request),
                timeout=timeout,
            )
        except (TimeoutError, anthropic.APITimeoutError):
            log.warning("triage_timeout", model=model, timeout=timeout)
            return TriageFailure(TriageError.TIMEOUT, f"API timeout after {timeout}s")
        except anthropic.APIError as e:
            log.warning("triage_api_error", model=model, error=str(e), error_type=type(e).__name__)
            return TriageFailure(TriageError.API_ERROR, str(e) or type(e).__name__)
        except Exception as e:
            log.error("triage_unexpected_error", model=model, error=str(e))
            return TriageFailure(TriageError.API_ERROR, str(e) or type(e).__name__)

        text = _response_text(response)
        if not text:
            return TriageFailure(TriageError.EMPTY_RESPONSE, "Empty response from LLM")

        data = extract_json_from_text(text)
        if data is None:
            log.warning("triage_parse_error", model=model, preview=text[:200])
            return TriageFailure(TriageError.PARSE_ERROR, "Could not parse JSON response")

        return TriageSuccess(data)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()


def _response_text(response: Any) -> str:  # noqa: ANN401
    """Concatenate the text blocks of a Messages API response."""
    parts = [
        block.text
        for block in getattr(response, "content", None) or []
        if getattr(block, "type", None) == "text" and isinstance(getattr(block, "text", None), str)
    ]
    return "".join(parts).strip()
