import sys
from pathlib import Path

import pytest

# Bootstrap to ensure tests can import searchhub without installing it.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tests.fakes import FakeQueue, FakeStore  # noqa: E402


def pytest_configure(config):
    config.pluginmanager.unregister(name="anyio")


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def queue():
    return FakeQueue()
