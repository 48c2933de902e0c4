"""Shared pytest setup.

Puts the repository root on sys.path so tests can import both `repo_lib`
and `tests.helpers` without an installed package.
"""
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]


def pytest_configure(config):
    if str(REPO_ROOT) not in sys.path:
        sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def repo_dir(tmp_path):
    """An absolute, not yet existing directory for a file repository."""
    return tmp_path / "filetest"
