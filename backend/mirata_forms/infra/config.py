"""Process-level runtime configuration for mirata-forms.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
import os
from dataclasses import dataclass, field
from typing import Literal

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("Settings", "load_settings")


def _send_to_logfire() -> bool | Literal["if-token-present"]:
    raw = os.getenv("MIRATA_SEND_TO_LOGFIRE", "if-token-present").strip().lower()
    if raw in ("1", "true", "yes"):
        return True
    if raw in ("0", "false", "no"):
        return False
    return "if-token-present"


# =============================================================================
# Section 9: Dataclasses
# =============================================================================
@dataclass
class Settings:
    """Where telemetry goes and how the process identifies itself."""

    environment: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))
    service_name: str = field(default_factory=lambda: os.getenv("MIRATA_SERVICE_NAME", "mirata-forms"))
    send_to_logfire: bool | Literal["if-token-present"] = field(default_factory=_send_to_logfire)


# =============================================================================
# Section 12: Functions
# =============================================================================
def load_settings() -> Settings:
    """Read settings from the current environment."""
    return Settings()
