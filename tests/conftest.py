"""
Pytest configuration for the chat analysis tests.

Test tiers:
- fast (default): pure unit tests, all I/O mocked
- medium: tests that write files (reports)
- slow: tests that call the real Huggy/OpenAI APIs (none by default)

Run tiers:
- pytest                          # fast + medium (slow excluded by addopts)
- pytest -m slow                  # slow only
- pytest --override-ini="addopts=" -v   # everything

Unmarked tests are auto-assigned to 'fast'.

API key safety: fake HUGGY_API_KEY / OPENAI_API_KEY are forced for every run
that excludes slow tests, so a broken mock cannot reach a real API.
"""

import os
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

FAKE_KEYS = {
    "HUGGY_API_KEY": "huggy-test-fake-key",
    "OPENAI_API_KEY": "sk-test-fake-key-for-testing",
}


def pytest_collection_modifyitems(config, items):
    """Add the 'fast' marker to tests without a tier marker."""
    for item in items:
        has_tier = (
            list(item.iter_markers(name="fast")) or
            list(item.iter_markers(name="medium")) or
            list(item.iter_markers(name="slow"))
        )
        if has_tier:
            continue
        if list(item.iter_markers(name="skip")):
            continue
        item.add_marker(pytest.mark.fast)


def pytest_configure(config):
    markexpr = getattr(config.option, "markexpr", "") or ""
    includes_slow_tests = (
        not markexpr or
        ("slow" in markexpr and "not slow" not in markexpr)
    )

    for name, value in FAKE_KEYS.items():
        if includes_slow_tests:
            os.environ.setdefault(name, value)
        else:
            os.environ[name] = value


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    return Mock(return_value=None)
