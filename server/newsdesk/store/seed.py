"""
Demonstration Articles

Loaded into an empty store at startup so the UI has content before the
first ingestion run completes.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from newsdesk.store.memory import ArticleStore

logger = logging.getLogger(__name__)

SEED_ARTICLES: tuple[dict[str, Any], ...] = (
    {
        "headline": "Reliance Industries Reports Record Q3 Profit, Beats Estimates",
        "summary": (
            "RIL posted net profit of ₹18,951 crore for Q3 FY24, up 8.5% YoY, driven by "
            "strong performance in retail and digital segments. Revenue jumped 12% to "
            "₹2.35 lakh crore, surpassing analyst expectations."
        ),
        "source_url": "https://economictimes.indiatimes.com/reliance-q3-results",
        "image_url": "https://images.unsplash.com/photo-1516880711640-ef7db81be3e1?w=400&h=300&fit=crop",
        "source": "Economic Times",
        "tickers": ("RELIANCE",),
        "sectors": ("Energy", "Retail"),
        "tags": ("Earnings", "Q3 Results", "Revenue Growth"),
    },
    {
        "headline": "RBI Maintains Repo Rate at 6.50%, Stance Remains Neutral",
        "summary": (
            "Reserve Bank keeps policy rates unchanged for fourth consecutive review. "
            "Governor emphasizes inflation targeting while supporting growth. Banking "
            "stocks surge on stable monetary policy outlook."
        ),
        "source_url": "https://www.moneycontrol.com/rbi-monetary-policy",
        "image_url": "https://images.unsplash.com/photo-1590283603385-17ffb3a7f29f?w=400&h=300&fit=crop",
        "source": "Moneycontrol",
        "tickers": ("HDFCBANK", "SBIN", "ICICIBANK"),
        "sectors": ("Banking", "Financial Services"),
        "tags": ("Monetary Policy", "RBI", "Interest Rates"),
    },
    {
        "headline": "TCS Wins $2.1 Billion Multi-Year Deal from UK Banking Giant",
        "summary": (
            "Tata Consultancy Services secures largest-ever European contract for digital "
            "transformation services. Deal spans 15 years covering cloud migration, AI "
            "implementation, and cybersecurity enhancement across retail banking operations."
        ),
        "source_url": "https://www.business-standard.com/tcs-uk-deal",
        "image_url": "https://images.unsplash.com/photo-1497366216548-37526070297c?w=400&h=300&fit=crop",
        "source": "Business Standard",
        "tickers": ("TCS",),
        "sectors": ("IT Services", "Technology"),
        "tags": ("Global Deal", "Digital Transformation", "Contract Win"),
    },
)


def seed_articles(store: ArticleStore, now: Optional[datetime] = None) -> int:
    """
    Load SEED_ARTICLES into an empty store.

    Returns the number of articles added; 0 when the store already has data.
    Timestamps are staggered a minute apart so the listing order is stable.
    """
    if store.count() > 0:
        return 0

    now = now or datetime.now(timezone.utc)
    for offset, article in enumerate(SEED_ARTICLES):
        store.create_article(
            timestamp=now - timedelta(minutes=offset),
            is_processed=True,
            **article,
        )

    logger.info("Seeded demonstration articles", extra={"count": len(SEED_ARTICLES)})
    return len(SEED_ARTICLES)
