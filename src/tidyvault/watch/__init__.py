"""Long-running watch mode."""

from .service import WatchCycleResult, WatchService, organize_vault

__all__ = ["WatchCycleResult", "WatchService", "organize_vault"]
