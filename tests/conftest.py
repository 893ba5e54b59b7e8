import pytest

from abreadout.config import get_settings
from abreadout.core import narrative


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    # Tests never reach a live provider or Redis unless they inject one
    monkeypatch.setenv("LLM_PROVIDER", "none")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setattr(narrative, "readout_generator", None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
