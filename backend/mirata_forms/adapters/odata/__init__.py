"""Mirata OData adapter package."""
from __future__ import annotations

from .adapter import ODataAdapter, ODataSettings

__all__ = ['ODataAdapter', 'ODataSettings']
