"""Tests for the command-line entry point.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

import pytest

import mirata_forms.__main__ as cli
from mirata_forms import __version__
from mirata_forms.core.exceptions import SyncInProgressError
from mirata_forms.core.models import SyncReport

__all__ = ()


@pytest.fixture
def no_instrumentation(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_instrumentation", lambda **kwargs: None)


class TestMain:
    """Tests for main()."""

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.main([])

    @pytest.mark.usefixtures("no_instrumentation")
    def test_sync_prints_report(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        calls: list[bool] = []

        async def fake_run_sync(routine: bool) -> SyncReport:
            calls.append(routine)
            return SyncReport(mode="routine", uploaded=2, downloaded={"Definitions": 3})

        monkeypatch.setattr(cli, "run_sync", fake_run_sync)

        assert cli.main(["sync", "--routine"]) == 0

        out = capsys.readouterr().out
        assert calls == [True]
        assert "Definitions" in out
        assert "Uploaded: 2" in out

    @pytest.mark.usefixtures("no_instrumentation")
    def test_sync_error(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        async def fake_run_sync(routine: bool) -> SyncReport:
            raise SyncInProgressError()

        monkeypatch.setattr(cli, "run_sync", fake_run_sync)

        assert cli.main(["sync"]) == 1
        out = capsys.readouterr().out
        assert "already in progress" in out
        assert "recoverable, skip" in out
