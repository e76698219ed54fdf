"""
News Enricher

Derives headline, summary, tickers, sectors and tags for a raw item. Tries
Groq first and falls back to the rule-based path in fallback.py.

Degradation policy:
- Transient or quota failures put the enricher into a cooldown window.
  While it lasts every call goes straight to the fallback without touching
  the service; the first call after the window tries Groq again.
- A single bad response (4xx, malformed JSON) falls back for that item only.
- Without a client (no API key, or --no-ai) the enricher is fallback-only.

enrich() never raises.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from newsdesk.config import EnrichmentConfig
from newsdesk.core.types import EnrichmentError, EnrichmentUnavailableError
from newsdesk.enricher.fallback import DEFAULT_TICKER_CAP, fallback_enrichment, synthesize_summary
from newsdesk.enricher.groq_client import GroqClient
from newsdesk.enricher.prompts import SYSTEM_PROMPT, build_user_prompt
from newsdesk.enricher.schemas import validate_enrichment
from newsdesk.models.news import EnrichmentResult

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_S = 30 * 60


@dataclass
class EnricherStats:
    """Statistics for the enricher."""

    ai_successes: int = 0
    fallbacks: int = 0
    failures: int = 0
    cooldown_skips: int = 0
    cooldowns_entered: int = 0


class NewsEnricher:
    """
    AI-or-fallback enrichment with a cooldown on service failure.

    Usage:
        enricher = NewsEnricher(GroqClient(api_key))
        result = await enricher.enrich(title, description)
    """

    def __init__(
        self,
        client: Optional[GroqClient] = None,
        *,
        cooldown_seconds: float = DEFAULT_COOLDOWN_S,
        ticker_cap: int = DEFAULT_TICKER_CAP,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._cooldown_seconds = cooldown_seconds
        self._ticker_cap = ticker_cap
        self._clock = clock
        self._cooldown_until: Optional[float] = None
        self._stats = EnricherStats()

    @classmethod
    def from_config(cls, config: EnrichmentConfig, *, ai_enabled: bool = True) -> NewsEnricher:
        """Build an enricher, with a Groq client only when a key is set and AI is enabled."""
        client = None
        if ai_enabled and config.ai_enabled:
            client = GroqClient(
                config.groq_api_key,
                model=config.model,
                timeout_seconds=config.timeout_seconds,
            )
        else:
            logger.info("Enrichment running in fallback-only mode")
        return cls(
            client,
            cooldown_seconds=config.cooldown_seconds,
            ticker_cap=config.fallback_ticker_cap,
        )

    @property
    def stats(self) -> EnricherStats:
        return self._stats

    @property
    def ai_enabled(self) -> bool:
        return self._client is not None

    @property
    def in_cooldown(self) -> bool:
        if self._cooldown_until is None:
            return False
        if self._clock() >= self._cooldown_until:
            self._cooldown_until = None
            logger.info("Enrichment cooldown over, resuming Groq calls")
            return False
        return True

    def cooldown_remaining(self) -> float:
        """Seconds left in the current cooldown, 0 when not cooling down."""
        if not self.in_cooldown:
            return 0.0
        return max(0.0, self._cooldown_until - self._clock())

    def _enter_cooldown(self, error: Exception) -> None:
        self._cooldown_until = self._clock() + self._cooldown_seconds
        self._stats.cooldowns_entered += 1
        logger.warning(
            "Enrichment service unavailable, using fallback during cooldown",
            extra={"cooldown_s": self._cooldown_seconds, "error": str(error)},
        )

    def _fallback(self, title: str, description: str) -> EnrichmentResult:
        self._stats.fallbacks += 1
        return fallback_enrichment(title, description, ticker_cap=self._ticker_cap)

    async def enrich(self, title: str, description: str) -> EnrichmentResult:
        """Enrich one item. Returns is_ai=True only when Groq produced the result."""
        if self._client is None:
            return self._fallback(title, description)

        if self.in_cooldown:
            self._stats.cooldown_skips += 1
            return self._fallback(title, description)

        try:
            raw = await self._client.complete_json(
                SYSTEM_PROMPT,
                build_user_prompt(title, description),
            )
            result = validate_enrichment(
                raw,
                title=title,
                fallback_summary=synthesize_summary(title, description),
            )
        except EnrichmentUnavailableError as e:
            self._stats.failures += 1
            self._enter_cooldown(e)
            return self._fallback(title, description)
        except EnrichmentError as e:
            self._stats.failures += 1
            logger.warning("Enrichment failed, using fallback", extra={"error": str(e)})
            return self._fallback(title, description)
        except Exception as e:
            self._stats.failures += 1
            logger.error(
                "Unexpected enrichment error, using fallback",
                extra={"error": str(e)},
                exc_info=True,
            )
            return self._fallback(title, description)

        self._stats.ai_successes += 1
        return result

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
