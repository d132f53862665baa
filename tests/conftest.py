"""Pytest configuration for plainbrowser tests."""

import sys
from pathlib import Path

import pytest
import structlog
from structlog._config import BoundLoggerLazyProxy

# Add src directory to sys.path for test imports
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

pytest_plugins = ["pytester"]


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate each test from the caller's environment.

    This fixture:
    - Removes PLAINBROWSER_* environment variables
    - Runs the test from a temporary directory so no .env file is picked up
    - Resets the global settings instance before each test
    """
    import os

    for name in list(os.environ):
        if name.startswith("PLAINBROWSER_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)

    from plainbrowser.config import reset_settings

    reset_settings()

    return tmp_path


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Reset structlog after each test so a test's configure_logging() does not leak."""
    yield
    structlog.reset_defaults()
    for module in list(sys.modules.values()):
        for attr in getattr(module, "__dict__", {}).values():
            if isinstance(attr, BoundLoggerLazyProxy):
                attr.__dict__.pop("bind", None)
