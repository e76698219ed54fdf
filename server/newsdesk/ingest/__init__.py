"""
Ingestion

Fetch, merge, enrich and store news in priority and background batches.
"""
from newsdesk.ingest.orchestrator import (
    IngestionOrchestrator,
    IngestState,
    IngestStats,
    OrchestratorStats,
)

__all__ = [
    "IngestState",
    "IngestStats",
    "IngestionOrchestrator",
    "OrchestratorStats",
]
