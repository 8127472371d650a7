import logging
import os

import pytest

from resha.config import get_settings


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("RESHA_"):
            monkeypatch.delenv(key)
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    root.handlers[:] = handlers
    root.setLevel(level)
