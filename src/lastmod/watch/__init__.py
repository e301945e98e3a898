"""Watch service for continuous stamping."""

from .service import WatchBatchResult, WatchService

__all__ = ["WatchBatchResult", "WatchService"]
