"""In-memory offline OData store package."""
from __future__ import annotations

from .store import OfflineODataStore, PendingChange

__all__ = ['OfflineODataStore', 'PendingChange']
