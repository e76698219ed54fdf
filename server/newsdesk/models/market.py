"""
Market Data Models

Snapshot of the tracked market indices as pushed to subscribers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class IndexQuote:
    """Display-ready quote for one index. All numbers are pre-formatted."""

    value: str
    change: str
    change_percent: str
    is_positive: bool


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Latest known state of every tracked index.

    Replaced wholesale on refresh; the indices mapping is read-only.
    """

    indices: Mapping[str, IndexQuote]
    market_status: str
    market_time: str
    last_updated: datetime
    is_fallback: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        if not self.indices:
            raise ValueError("indices must contain at least one index")
        if self.last_updated.tzinfo is None:
            raise ValueError("last_updated must be timezone-aware")
        object.__setattr__(self, "indices", MappingProxyType(dict(self.indices)))
