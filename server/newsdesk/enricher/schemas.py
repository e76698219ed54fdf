"""
Enrichment Response Validation

The model is asked for a fixed JSON shape but nothing guarantees it. Every
field is checked here and replaced with a safe default when it has the wrong
type, so malformed output never reaches the store.
"""
from __future__ import annotations

import logging
from typing import Any

from newsdesk.enricher.prompts import MAX_HEADLINE_CHARS
from newsdesk.feeds.sanitizer import clean
from newsdesk.models.news import EnrichmentResult

logger = logging.getLogger(__name__)

MAX_LIST_ITEMS = 10


def _string_field(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str):
        if value is not None:
            logger.debug("Discarding non-string field", extra={"field": key})
        return ""
    return clean(value)


def _string_list(raw: dict[str, Any], key: str, *, upper: bool = False) -> tuple[str, ...]:
    """Keep string members only, cleaned and deduplicated in order."""
    value = raw.get(key)
    if not isinstance(value, list):
        if value is not None:
            logger.debug("Discarding non-list field", extra={"field": key})
        return ()

    seen: set[str] = set()
    result: list[str] = []
    for member in value:
        if not isinstance(member, str):
            continue
        text = clean(member)
        if upper:
            text = text.upper()
        if not text or text.casefold() in seen:
            continue
        seen.add(text.casefold())
        result.append(text)
    return tuple(result[:MAX_LIST_ITEMS])


def truncate_headline(headline: str) -> str:
    """Cut a headline to MAX_HEADLINE_CHARS, preferring a word boundary."""
    if len(headline) <= MAX_HEADLINE_CHARS:
        return headline
    cut = headline[:MAX_HEADLINE_CHARS]
    space = cut.rfind(" ")
    if space > MAX_HEADLINE_CHARS // 2:
        cut = cut[:space]
    return cut.rstrip(" ,;:-")


def validate_enrichment(
    raw: Any,
    *,
    title: str,
    fallback_summary: str,
) -> EnrichmentResult:
    """
    Coerce a decoded model response into an EnrichmentResult.

    Args:
        raw: Parsed JSON from the model (any shape)
        title: Original article title, used when the headline is unusable
        fallback_summary: Used when the summary is unusable

    Returns:
        EnrichmentResult with is_ai=True
    """
    if not isinstance(raw, dict):
        logger.debug("Enrichment payload is not an object", extra={"type": type(raw).__name__})
        raw = {}

    headline = _string_field(raw, "headline") or clean(title) or "Market Update"
    summary = _string_field(raw, "summary") or fallback_summary

    return EnrichmentResult(
        headline=truncate_headline(headline),
        summary=summary,
        tickers=_string_list(raw, "tickers", upper=True),
        sectors=_string_list(raw, "sectors"),
        tags=_string_list(raw, "tags"),
        is_ai=True,
    )
