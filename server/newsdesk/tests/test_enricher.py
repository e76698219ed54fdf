"""
Tests for newsdesk.enricher.enricher

GroqClient is replaced with AsyncMock; the cooldown is driven by FakeClock.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from newsdesk.config import EnrichmentConfig
from newsdesk.core.types import EnrichmentError, EnrichmentUnavailableError
from newsdesk.enricher.enricher import NewsEnricher

TITLE = "Infosys Q3 results beat estimates"
DESCRIPTION = "Infosys reported a 12% rise in net profit for the December quarter."

AI_PAYLOAD = {
    "headline": "Infosys beats Q3 estimates",
    "summary": "Infosys posted higher profit.",
    "tickers": ["INFY"],
    "sectors": ["IT Services"],
    "tags": ["Earnings"],
}


@pytest.fixture
def groq():
    client = MagicMock()
    client.complete_json = AsyncMock(return_value=AI_PAYLOAD)
    client.close = AsyncMock()
    return client


@pytest.fixture
def enricher(groq, clock):
    return NewsEnricher(groq, cooldown_seconds=1800, clock=clock)


# ── AI path ──────────────────────────────────────────────────────────────────

async def test_ai_result(enricher, groq):
    result = await enricher.enrich(TITLE, DESCRIPTION)

    assert result.is_ai is True
    assert result.headline == "Infosys beats Q3 estimates"
    assert result.tickers == ("INFY",)
    assert enricher.stats.ai_successes == 1
    assert enricher.stats.fallbacks == 0

    system_prompt, user_prompt = groq.complete_json.call_args.args
    assert "JSON" in system_prompt
    assert TITLE in user_prompt


async def test_malformed_ai_payload_is_still_ai(enricher, groq):
    groq.complete_json.return_value = {"headline": 7, "tickers": "INFY"}

    result = await enricher.enrich(TITLE, DESCRIPTION)

    assert result.is_ai is True
    assert result.headline == TITLE
    assert result.summary
    assert result.tickers == ()


# ── Fallback ─────────────────────────────────────────────────────────────────

async def test_no_client_uses_fallback():
    enricher = NewsEnricher(None)

    result = await enricher.enrich(TITLE, DESCRIPTION)

    assert enricher.ai_enabled is False
    assert result.is_ai is False
    assert result.tickers == ("INFY",)
    assert enricher.stats.fallbacks == 1


async def test_bad_response_falls_back_without_cooldown(enricher, groq):
    groq.complete_json.side_effect = EnrichmentError("invalid JSON")

    result = await enricher.enrich(TITLE, DESCRIPTION)

    assert result.is_ai is False
    assert enricher.in_cooldown is False
    assert enricher.stats.failures == 1

    groq.complete_json.side_effect = None
    assert (await enricher.enrich(TITLE, DESCRIPTION)).is_ai is True


async def test_unexpected_error_falls_back(enricher, groq):
    groq.complete_json.side_effect = RuntimeError("boom")

    result = await enricher.enrich(TITLE, DESCRIPTION)

    assert result.is_ai is False
    assert enricher.stats.failures == 1


async def test_fallback_respects_ticker_cap():
    enricher = NewsEnricher(None, ticker_cap=2)
    result = await enricher.enrich("TCS INFY WIPRO ITC", "")
    assert result.tickers == ("TCS", "INFY")


# ── Cooldown ─────────────────────────────────────────────────────────────────

async def test_unavailable_enters_cooldown(enricher, groq):
    groq.complete_json.side_effect = EnrichmentUnavailableError("rate limit")

    result = await enricher.enrich(TITLE, DESCRIPTION)

    assert result.is_ai is False
    assert enricher.in_cooldown is True
    assert enricher.cooldown_remaining() == pytest.approx(1800)
    assert enricher.stats.cooldowns_entered == 1


async def test_no_calls_during_cooldown(enricher, groq, clock):
    groq.complete_json.side_effect = EnrichmentUnavailableError("quota")
    await enricher.enrich(TITLE, DESCRIPTION)
    groq.complete_json.side_effect = None
    groq.complete_json.reset_mock()

    clock.advance(1799)
    for _ in range(5):
        result = await enricher.enrich(TITLE, DESCRIPTION)
        assert result.is_ai is False

    groq.complete_json.assert_not_called()
    assert enricher.stats.cooldown_skips == 5
    assert enricher.cooldown_remaining() == pytest.approx(1)


async def test_resumes_after_cooldown(enricher, groq, clock):
    groq.complete_json.side_effect = EnrichmentUnavailableError("timeout")
    await enricher.enrich(TITLE, DESCRIPTION)
    groq.complete_json.side_effect = None

    clock.advance(1800)

    assert enricher.in_cooldown is False
    result = await enricher.enrich(TITLE, DESCRIPTION)
    assert result.is_ai is True
    assert groq.complete_json.await_count == 2


async def test_cooldown_restarts_on_next_failure(enricher, groq, clock):
    groq.complete_json.side_effect = EnrichmentUnavailableError("timeout")
    await enricher.enrich(TITLE, DESCRIPTION)
    clock.advance(1800)

    await enricher.enrich(TITLE, DESCRIPTION)

    assert enricher.in_cooldown is True
    assert enricher.stats.cooldowns_entered == 2


# ── Construction ─────────────────────────────────────────────────────────────

def test_from_config_without_key_is_fallback_only():
    enricher = NewsEnricher.from_config(EnrichmentConfig(groq_api_key=""))
    assert enricher.ai_enabled is False


def test_from_config_with_key_builds_client():
    config = EnrichmentConfig(groq_api_key="gsk_test", model="m", timeout_seconds=3.0)

    with patch("newsdesk.enricher.enricher.GroqClient") as mock_cls:
        enricher = NewsEnricher.from_config(config)

    mock_cls.assert_called_once_with("gsk_test", model="m", timeout_seconds=3.0)
    assert enricher.ai_enabled is True


def test_from_config_ai_disabled_by_flag():
    config = EnrichmentConfig(groq_api_key="gsk_test")
    with patch("newsdesk.enricher.enricher.GroqClient") as mock_cls:
        enricher = NewsEnricher.from_config(config, ai_enabled=False)

    mock_cls.assert_not_called()
    assert enricher.ai_enabled is False


async def test_close_closes_client(enricher, groq):
    await enricher.close()
    groq.close.assert_awaited_once()
