import importlib
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture
def now():
    """Fixed reference time so decay-based scores are reproducible."""
    return datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def fresh_config(monkeypatch):
    """
    Reload config after env changes and restore the defaults afterwards.
    """
    import civic_rank.config as config

    yield lambda: importlib.reload(config)

    monkeypatch.undo()
    importlib.reload(config)
