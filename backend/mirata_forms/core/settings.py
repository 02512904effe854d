"""Base settings configuration.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Third-party (alphabetical)
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("MirataSettings", "SessionSettings")


# =============================================================================
# Section 11: Classes
# =============================================================================
class MirataSettings(BaseSettings):
    """Base settings with shared environment defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        validate_default=True,
    )


class SessionSettings(MirataSettings):
    """Client session details attached to every error report.

    Environment variables are prefixed with MIRATA_SESSION_.
    """

    model_config = SettingsConfigDict(env_prefix="MIRATA_SESSION_")

    page_path: str | None = Field(default=None, description="Page or screen the client is on")
    user_id: str | None = Field(default=None, description="SAP user name of the mobile user")
    platform: str = Field(default="", description="android, iOS or empty")
