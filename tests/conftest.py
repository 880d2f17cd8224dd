"""Shared test fixtures for acli.

Provides isolated config directories, a token store bound to a temporary
file with a controllable clock, output-state management, and a CLI runner.
These fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from acli.auth.token_store import TokenStore
from acli.output import OutputFormat, OutputManager, reset_output, set_output


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
"""Fixed instant used as "now" by :class:`FakeClock` unless advanced."""


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Forces XDG path resolution, points XDG_CONFIG_HOME and XDG_DATA_HOME at
    subdirectories of tmp_path, and clears every environment variable that
    feeds settings resolution.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("acli.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("NO_COLOR", "1")

    for var in ["ACLI_SERVER_URL", "ACLI_CLIENT_ID", "GITHUB_CLIENT_ID"]:
        monkeypatch.delenv(var, raising=False)

    return tmp_path


@pytest.fixture
def token_path(isolated_config: Path) -> Path:
    """The token file location the CLI resolves inside the isolated config."""
    return isolated_config / "config" / "acli" / "token.json"


# ---------------------------------------------------------------------------
# Token store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path: Path, clock: FakeClock) -> TokenStore:
    """A TokenStore writing to a disposable file with a fixed clock."""
    return TokenStore(tmp_path / "acli" / "token.json", clock=clock)


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
