"""Shared pytest fixtures for gateway tests."""
from __future__ import annotations

import pytest

from gemini_gateway.common.config import CONFIG_ENV_VAR, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings independent of whatever the shell exports."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
