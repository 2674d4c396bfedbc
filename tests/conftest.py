import pytest

from fakes import Recorder
from store import JsonStateStore


@pytest.fixture
def store(tmp_path) -> JsonStateStore:
    return JsonStateStore(tmp_path / "state.json")


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
