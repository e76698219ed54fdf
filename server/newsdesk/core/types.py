"""
Core Type Definitions and Exceptions

Service-wide exceptions. Every error carries an optional context dict that
is rendered into its message so log lines stay self-describing.
"""
from __future__ import annotations

from typing import Any, Optional


class NewsdeskError(Exception):
    """Base exception for all newsdesk errors."""

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ValidationError(NewsdeskError):
    """Raised when data validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = repr(value)[:100]  # Truncate long values
        super().__init__(message, ctx)
        self.field = field
        self.value = value


class FeedFetchError(NewsdeskError):
    """Raised when a news feed cannot be fetched."""

    def __init__(
        self,
        message: str,
        url: str,
        status: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["url"] = url
        if status is not None:
            ctx["status"] = status
        super().__init__(message, ctx)
        self.url = url
        self.status = status


class EnrichmentError(NewsdeskError):
    """Raised when the enrichment service returns an unusable result."""

    def __init__(
        self,
        message: str,
        service: str = "groq",
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["service"] = service
        super().__init__(message, ctx)
        self.service = service


class EnrichmentUnavailableError(EnrichmentError):
    """Raised on transient or quota failures that should trigger a cooldown."""
    pass


class QuoteFetchError(NewsdeskError):
    """Raised when a market quote cannot be fetched or decoded."""

    def __init__(
        self,
        message: str,
        symbol: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["symbol"] = symbol
        super().__init__(message, ctx)
        self.symbol = symbol


class DuplicateArticleError(NewsdeskError):
    """Raised when an article with the same source URL is already stored."""

    def __init__(self, source_url: str) -> None:
        super().__init__("Article already stored", {"source_url": source_url})
        self.source_url = source_url


class DuplicateUserError(NewsdeskError):
    """Raised when a username is already taken."""

    def __init__(self, username: str) -> None:
        super().__init__("Username already exists", {"username": username})
        self.username = username


class PublisherError(NewsdeskError):
    """Raised when a Redis publish operation fails."""
    pass
