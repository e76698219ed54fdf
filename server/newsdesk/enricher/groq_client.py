"""
Groq API Client

Thin async wrapper around the Groq Python SDK. Enforces a hard timeout,
retries once on timeouts and 5xx, requests JSON mode and parses the reply.

Errors are split in two: EnrichmentUnavailableError for conditions that
should pause the service (rate limit, quota, timeout, connection, 5xx) and
EnrichmentError for a single bad response.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

from groq import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncGroq,
    RateLimitError,
)

from newsdesk.core.types import EnrichmentError, EnrichmentUnavailableError

logger = logging.getLogger(__name__)

MODEL = "llama-3.1-8b-instant"
MAX_RETRIES = 1
TIMEOUT_S = 15.0
TEMPERATURE = 0.2
MAX_TOKENS = 500


class GroqClient:
    """
    Async Groq chat-completion client for article enrichment.

    Create once at startup and reuse across calls.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = MODEL,
        timeout_seconds: float = TIMEOUT_S,
        max_retries: int = MAX_RETRIES,
        client: Optional[AsyncGroq] = None,
    ) -> None:
        # SDK-level retries are disabled; retry policy lives here
        self._client = client or AsyncGroq(api_key=api_key, max_retries=0)
        self._model = model
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries

    @property
    def model(self) -> str:
        return self._model

    async def close(self) -> None:
        await self._client.close()

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
    ) -> dict[str, Any]:
        """
        Send a chat completion in JSON mode and return the decoded object.

        Raises:
            EnrichmentUnavailableError: rate limit, quota, timeout, connection or 5xx
            EnrichmentError: 4xx, empty reply or invalid JSON
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        last_error: Exception | None = None

        for attempt in range(1 + self._max_retries):
            try:
                t0 = time.monotonic()

                completion = await self._client.chat.completions.create(
                    model=self._model,
                    messages=messages,
                    temperature=TEMPERATURE,
                    max_completion_tokens=MAX_TOKENS,
                    response_format={"type": "json_object"},
                    stream=False,
                    timeout=self._timeout_seconds,
                )

                elapsed_ms = (time.monotonic() - t0) * 1000
                raw = completion.choices[0].message.content if completion.choices else None

                if not raw:
                    raise EnrichmentError("Empty response from Groq")

                parsed = json.loads(raw)
                if not isinstance(parsed, dict):
                    raise EnrichmentError(
                        "Groq returned a non-object JSON payload",
                        context={"type": type(parsed).__name__},
                    )

                logger.debug(
                    "Groq completion",
                    extra={"model": self._model, "latency_ms": round(elapsed_ms, 1)},
                )
                return parsed

            except RateLimitError as e:
                raise EnrichmentUnavailableError(
                    f"Groq rate limit or quota exceeded: {e}",
                    context={"status": e.status_code},
                ) from e
            except APITimeoutError as e:
                last_error = e
                if attempt < self._max_retries:
                    logger.warning(f"Groq timeout (attempt {attempt + 1}), retrying")
                    continue
            except APIConnectionError as e:
                raise EnrichmentUnavailableError(f"Groq connection failed: {e}") from e
            except APIStatusError as e:
                if e.status_code >= 500:
                    last_error = e
                    if attempt < self._max_retries:
                        logger.warning(
                            f"Groq {e.status_code} error (attempt {attempt + 1}), retrying: {e}"
                        )
                        continue
                    break
                raise EnrichmentError(
                    f"Groq API error {e.status_code}: {e}",
                    context={"status": e.status_code},
                ) from e
            except json.JSONDecodeError as e:
                raise EnrichmentError(f"Groq returned invalid JSON: {e}") from e

        raise EnrichmentUnavailableError(
            f"Groq failed after {1 + self._max_retries} attempts: {last_error}"
        ) from last_error
