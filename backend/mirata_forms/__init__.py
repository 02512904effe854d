"""mirata-forms package initialization.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Local imports (core first, then alphabetical)
from ._version import __version__
from .adapters.odata import ODataAdapter, ODataSettings
from .adapters.offline import OfflineODataStore
from .services import ErrorReporter, SubmissionService, SyncSequencer

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = (
    "__version__",
    "ODataAdapter",
    "ODataSettings",
    "OfflineODataStore",
    "ErrorReporter",
    "SubmissionService",
    "SyncSequencer",
)
