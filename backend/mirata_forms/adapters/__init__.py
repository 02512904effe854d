"""OData service implementations."""
from __future__ import annotations

from .odata import ODataAdapter, ODataSettings
from .offline import OfflineODataStore

__all__ = [
    'ODataAdapter',
    'ODataSettings',
    'OfflineODataStore',
]
