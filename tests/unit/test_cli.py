import pytest

from pagetail import cli
from pagetail.exceptions import BrowserLaunchError


class _StubSession:
    outcome = 0

    async def run(self):
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _patch_session(monkeypatch, outcome):
    stub = type("StubSession", (_StubSession,), {"outcome": outcome})
    monkeypatch.setattr(cli, "TailSession", stub)


def test_clean_shutdown_exits_zero(monkeypatch):
    _patch_session(monkeypatch, 0)

    with pytest.raises(SystemExit) as exc_info:
        cli.main()

    assert exc_info.value.code == 0


def test_launch_failure_exits_non_zero(monkeypatch):
    _patch_session(monkeypatch, BrowserLaunchError("No Chrome/Chromium executable found"))

    with pytest.raises(SystemExit) as exc_info:
        cli.main()

    assert exc_info.value.code == 1


def test_unexpected_error_exits_non_zero(monkeypatch):
    _patch_session(monkeypatch, RuntimeError("boom"))

    with pytest.raises(SystemExit) as exc_info:
        cli.main()

    assert exc_info.value.code == 1
