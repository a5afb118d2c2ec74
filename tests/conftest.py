"""Pytest configuration shared by the unit and backend suites.

Puts the repository root on sys.path so `valkey_context` and
`tests.helpers` import without an editable install, and provides a fake
Valkey client fixture for tests that only need one connection.
"""
import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    # Insert repo root (one level up from tests/) to sys.path
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


@pytest.fixture
def fake_valkey():
    from tests.helpers import FakeValkey

    return FakeValkey()
