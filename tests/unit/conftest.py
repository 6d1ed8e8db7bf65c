"""Unit test configuration.

Every test starts from the default ``Settings``: ambient
``CONTENT_GATEWAY_*`` variables are removed so a developer's shell
(space id, tokens, verbose logging) cannot leak into assertions.
"""

import os

import pytest


@pytest.fixture(autouse=True)
def _isolated_settings_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("CONTENT_GATEWAY_"):
            monkeypatch.delenv(name, raising=False)
