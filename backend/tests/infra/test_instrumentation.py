"""Tests for configuration and instrumentation helpers.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

import pytest

from mirata_forms.core.models import SessionInfo
from mirata_forms.core.settings import SessionSettings
from mirata_forms.infra import load_settings, operation_span, traced

__all__ = ()

pytestmark = pytest.mark.anyio


class TestSettings:
    """Tests for environment-driven settings."""

    def test_runtime_defaults(self, env) -> None:
        env.remove("ENVIRONMENT")
        env.remove("MIRATA_SERVICE_NAME")
        env.remove("MIRATA_SEND_TO_LOGFIRE")

        settings = load_settings()

        assert (settings.environment, settings.service_name) == ("development", "mirata-forms")
        assert settings.send_to_logfire == "if-token-present"

    @pytest.mark.parametrize(("raw", "expected"), [("false", False), ("YES", True), ("maybe", "if-token-present")])
    def test_send_to_logfire(self, env, raw: str, expected: object) -> None:
        env.set("MIRATA_SEND_TO_LOGFIRE", raw)

        assert load_settings().send_to_logfire == expected

    def test_session_from_env(self, env) -> None:
        env.set("MIRATA_SESSION_USER_ID", "JSMITH")
        env.set("MIRATA_SESSION_PLATFORM", "IOS")

        settings = SessionSettings()
        session = SessionInfo(page_path=settings.page_path, user_id=settings.user_id, platform=settings.platform)

        assert session.user_id == "JSMITH"
        assert session.platform == "iOS"


class TestTraced:
    """Tests for the traced decorator."""

    def test_sync_function(self) -> None:
        @traced("test.add")
        def add(a: int, b: int) -> int:
            return a + b

        assert add(1, 2) == 3

    async def test_async_function(self) -> None:
        @traced()
        async def double(value: int) -> int:
            return value * 2

        assert await double(4) == 8

    async def test_errors_propagate(self) -> None:
        @traced("test.fail")
        async def fail() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await fail()


class TestOperationSpan:
    def test_reraises(self) -> None:
        with pytest.raises(RuntimeError), operation_span("test.span", pending=[1, 2]):
            raise RuntimeError("x")
