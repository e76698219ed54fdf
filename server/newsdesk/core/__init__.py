"""
newsdesk Core Utilities

Service-wide exception types.
"""
from newsdesk.core.types import (
    DuplicateArticleError,
    DuplicateUserError,
    EnrichmentError,
    EnrichmentUnavailableError,
    FeedFetchError,
    NewsdeskError,
    PublisherError,
    QuoteFetchError,
    ValidationError,
)

__all__ = [
    "DuplicateArticleError",
    "DuplicateUserError",
    "EnrichmentError",
    "EnrichmentUnavailableError",
    "FeedFetchError",
    "NewsdeskError",
    "PublisherError",
    "QuoteFetchError",
    "ValidationError",
]
