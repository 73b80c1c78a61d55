"""
Pytest configuration & fixtures for the lorekeeper test suite.

Fixtures:
- temp_log_dir: ephemeral folder for current files and archives
- registry: a private keeper registry so tests never share keepers
- fake_trigger: a trigger factory recording start/stop and firing on demand
- make_keeper: builds keepers in temp_log_dir against the private registry
- runner: a Typer CliRunner for invoking the command line
"""
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Callable, List, Optional

import pytest
from typer.testing import CliRunner

# Ensure src is on sys.path so `import lorekeeper` works without installation
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from lorekeeper import ConfigurationError, Registry, new_keeper  # noqa: E402


@pytest.fixture
def temp_log_dir():
    d = Path(tempfile.mkdtemp(prefix="lorekeeper_"))
    try:
        yield d
    finally:
        shutil.rmtree(d, ignore_errors=True)


@pytest.fixture(scope="session")
def runner() -> CliRunner:
    """Return a Typer CliRunner instance for invoking commands."""
    return CliRunner()


@pytest.fixture
def registry() -> Registry:
    return Registry()


class FakeTrigger:
    """Trigger double: never runs on its own, ``fire()`` invokes the callback."""

    instances: List["FakeTrigger"] = []

    def __init__(self, spec: str) -> None:
        if spec == "never":
            raise ConfigurationError("unrecognised rotation schedule 'never'")
        self.spec = spec
        self.callback: Optional[Callable[[], None]] = None
        self.stopped = False
        type(self).instances.append(self)

    def start(self, callback: Callable[[], None]) -> None:
        self.callback = callback

    def stop(self) -> None:
        self.stopped = True

    def fire(self) -> None:
        assert self.callback is not None, "trigger was never started"
        self.callback()

    @classmethod
    def started(cls) -> List["FakeTrigger"]:
        return [t for t in cls.instances if t.callback is not None]


@pytest.fixture
def fake_trigger():
    # Fresh subclass per test so recorded instances do not leak between tests
    return type("FakeTrigger", (FakeTrigger,), {"instances": []})


@pytest.fixture
def make_keeper(temp_log_dir, registry):
    keepers = []

    def factory(**overrides):
        overrides.setdefault("folder", temp_log_dir)
        overrides.setdefault("name", "app")
        keeper = new_keeper(registry=registry, **overrides)
        keepers.append(keeper)
        return keeper

    yield factory
    for keeper in keepers:
        keeper.release()
