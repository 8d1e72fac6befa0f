import pytest

from netmon.state import MonitorState

from .helpers import FakeResolver


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def state(resolver):
    return MonitorState(resolver, interval_secs=2, history_len=5, enrich_paths=False)
