"""
Redis Channel Definitions

Channel naming scheme:
  news:articles         every newly stored article
  news:ticker:{TICKER}  articles mentioning a ticker, e.g. news:ticker:TCS
  market:updates        every broadcast market snapshot
"""
from __future__ import annotations

from newsdesk.models.news import NewsArticle

ARTICLES = "news:articles"
MARKET_UPDATES = "market:updates"

TICKER_PREFIX = "news:ticker:"


def ticker_channel(ticker: str) -> str:
    return f"{TICKER_PREFIX}{ticker.upper()}"


def channels_for_article(article: NewsArticle) -> list[str]:
    """news:articles plus one channel per ticker."""
    return [ARTICLES, *(ticker_channel(t) for t in article.tickers)]
