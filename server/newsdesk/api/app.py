"""
REST API

FastAPI application serving the article store, manual ingestion and the
market summary. Every error body has the shape {"message": ...}; unexpected
failures are logged with a traceback and answered with a generic 500.

Components are built once by the entry point and handed over in a
ServiceContainer stored on app.state.services.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from newsdesk import __version__
from newsdesk.core.types import ValidationError
from newsdesk.ingest.orchestrator import IngestionOrchestrator
from newsdesk.market.cache import MarketDataCache
from newsdesk.serializer import article_to_dict, snapshot_to_dict, watchlist_item_to_dict
from newsdesk.store.memory import ArticleStore
from newsdesk.ws_server.server import MarketWebSocketServer

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
TRENDING_LIMIT = 5


@dataclass
class ServiceContainer:
    """Long-lived components shared by the request handlers."""

    store: ArticleStore
    orchestrator: IngestionOrchestrator
    market_cache: MarketDataCache
    ws_server: Optional[MarketWebSocketServer] = None


class WatchlistAdd(BaseModel):
    ticker: str = Field(..., min_length=1)
    userId: Optional[str] = None


def _services(request: Request) -> ServiceContainer:
    return request.app.state.services


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _int_param(value: Optional[str], default: int) -> int:
    """Lenient integer query parsing: missing, invalid or zero → default."""
    try:
        parsed = int(value) if value is not None else 0
    except ValueError:
        return default
    return parsed or default


router = APIRouter()


@router.get("/healthz")
async def healthz(request: Request) -> dict[str, Any]:
    services = _services(request)
    return {
        "status": "ok",
        "version": __version__,
        "articles": services.store.count(),
        "subscribers": services.ws_server.client_count if services.ws_server else 0,
    }


@router.get("/api/news")
async def list_news(request: Request, limit: Optional[str] = None, offset: Optional[str] = None):
    try:
        page_size = min(max(_int_param(limit, DEFAULT_LIMIT), 1), MAX_LIMIT)
        start = max(_int_param(offset, 0), 0)
        articles = _services(request).store.list_articles(page_size, start)
        return [article_to_dict(a) for a in articles]
    except Exception:
        logger.exception("Error fetching news")
        return _message(500, "Failed to fetch news articles")


# Registered before /api/news/{article_id} so "search" is not taken for an id
@router.get("/api/news/search")
async def search_news(request: Request, q: Optional[str] = None):
    if not q or not q.strip():
        return _message(400, "Query parameter 'q' is required")
    try:
        articles = _services(request).store.search_articles(q)
        return [article_to_dict(a) for a in articles]
    except Exception:
        logger.exception("Error searching news")
        return _message(500, "Failed to search news articles")


@router.post("/api/news/refresh")
async def refresh_news(request: Request):
    try:
        stats = await _services(request).orchestrator.run()
    except Exception:
        logger.exception("Error refreshing news")
        return _message(500, "Failed to refresh news feed")
    return {
        "message": "News feed refreshed successfully",
        "stats": stats.to_dict(),
        "success": True,
    }


@router.get("/api/news/{article_id}")
async def get_news(request: Request, article_id: str):
    try:
        article = _services(request).store.get_article(article_id)
    except Exception:
        logger.exception("Error fetching article")
        return _message(500, "Failed to fetch article")
    if article is None:
        return _message(404, "Article not found")
    return article_to_dict(article)


@router.get("/api/trending")
async def trending(request: Request):
    try:
        counts = _services(request).store.trending(TRENDING_LIMIT)
    except Exception:
        logger.exception("Error fetching trending data")
        return _message(500, "Failed to fetch trending data")
    return {
        key: [{"name": name, "count": count} for name, count in pairs]
        for key, pairs in counts.items()
    }


@router.get("/api/market-summary")
async def market_summary(request: Request):
    try:
        snapshot = await _services(request).market_cache.get_snapshot()
        return snapshot_to_dict(snapshot)
    except Exception:
        logger.exception("Error fetching market summary")
        return _message(500, "Failed to fetch market summary")


@router.get("/api/watchlist")
async def list_watchlist(request: Request, userId: Optional[str] = None):
    try:
        items = _services(request).store.list_watchlist(userId)
        return [watchlist_item_to_dict(i) for i in items]
    except Exception:
        logger.exception("Error fetching watchlist")
        return _message(500, "Failed to fetch watchlist")


@router.post("/api/watchlist", status_code=201)
async def add_watchlist(request: Request, body: WatchlistAdd):
    try:
        item = _services(request).store.add_to_watchlist(body.ticker, body.userId)
    except ValidationError as e:
        return _message(400, e.message)
    except Exception:
        logger.exception("Error adding to watchlist")
        return _message(500, "Failed to add to watchlist")
    return watchlist_item_to_dict(item)


@router.delete("/api/watchlist/{ticker}")
async def remove_watchlist(request: Request, ticker: str, userId: Optional[str] = None):
    try:
        removed = _services(request).store.remove_from_watchlist(ticker, userId)
    except Exception:
        logger.exception("Error removing from watchlist")
        return _message(500, "Failed to remove from watchlist")
    if not removed:
        return _message(404, "Watchlist item not found")
    return {"message": "Removed from watchlist", "ticker": ticker.upper()}


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _message(400, f"Invalid request: {detail}")


def create_app(services: ServiceContainer, **kwargs: Any) -> FastAPI:
    """Build the FastAPI app. Extra kwargs (e.g. lifespan) go to FastAPI()."""
    app = FastAPI(title="newsdesk", version=__version__, **kwargs)
    app.state.services = services
    app.include_router(router)
    app.add_exception_handler(RequestValidationError, _validation_error)
    return app
