"""Shared dependency containers.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mirata_forms.services.error_reporter import ErrorReporter

    from .models import SessionInfo
    from .protocols import ODataService, OfflineStore

__all__ = ("FormsDeps", "SyncDeps")


@dataclass(kw_only=True)
class FormsDeps:
    """Dependencies shared by the forms services."""

    service: ODataService
    reporter: ErrorReporter
    session: SessionInfo | None = None


@dataclass(kw_only=True)
class SyncDeps(FormsDeps):
    """Dependencies for the synchronization sequencer."""

    store: OfflineStore
