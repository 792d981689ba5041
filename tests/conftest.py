import os
import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'rsm' and tests/helpers importable as 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from rsm import TransitionEngine
from rsm.core.config import clear_all_caches
from rsm.core.state.loader import registry as handler_registry
from helpers.engines import fast_wait


@pytest.fixture(autouse=True)
def isolated_rsm_config(monkeypatch):
    """Drop leaked RSM_* overrides and cached config around every test."""
    for key in list(os.environ):
        if key.startswith("RSM_"):
            monkeypatch.delenv(key, raising=False)
    clear_all_caches()
    handler_registry.reset()
    yield
    clear_all_caches()
    handler_registry.reset()


@pytest.fixture
def engine():
    return TransitionEngine("start", fast_wait, 100)


@pytest.fixture
def failure():
    return RuntimeError("failed")
