"""Type aliases for mirata-forms.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
from typing import Any, Literal

# Third-party (alphabetical)
from typing_extensions import TypeAliasType

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = (
    "EntityKey",
    "JsonDict",
    "ActionKind",
    "Platform",
    "SyncMode",
    "ErrorCategory",
    "RecoveryStrategy",
)

# =============================================================================
# Section 3: Type Aliases
# =============================================================================
EntityKey = TypeAliasType("EntityKey", tuple[Any, ...])
JsonDict = TypeAliasType("JsonDict", dict[str, Any])

ActionKind = TypeAliasType(
    "ActionKind",
    Literal["create", "update", "delete", "undo"],
)
Platform = TypeAliasType("Platform", Literal["android", "iOS", ""])
SyncMode = TypeAliasType("SyncMode", Literal["initial", "routine"])
ErrorCategory = TypeAliasType(
    "ErrorCategory",
    Literal["transient", "recoverable", "fatal"],
)
RecoveryStrategy = TypeAliasType(
    "RecoveryStrategy",
    Literal["retry", "skip", "abort"],
)
