"""
Entity Enricher

Groq-backed enrichment of raw news items with a deterministic keyword
fallback and a cooldown when the service is unavailable.

Re-exports:
    - NewsEnricher: AI-or-fallback enrichment entry point
    - EnricherStats: Enricher statistics
    - GroqClient: Groq JSON-mode chat client
    - fallback_enrichment: Rule-based enrichment
"""
from newsdesk.enricher.enricher import EnricherStats, NewsEnricher
from newsdesk.enricher.fallback import extract_sectors, extract_tickers, fallback_enrichment
from newsdesk.enricher.groq_client import GroqClient
from newsdesk.enricher.schemas import validate_enrichment

__all__ = [
    "EnricherStats",
    "GroqClient",
    "NewsEnricher",
    "extract_sectors",
    "extract_tickers",
    "fallback_enrichment",
    "validate_enrichment",
]
