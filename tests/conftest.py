import pytest

import config


@pytest.fixture(autouse=True)
def canvas_env(monkeypatch):
    """Point every test at a fake Canvas instance and reset the global config."""
    monkeypatch.setenv("CANVAS_API_URL", "https://canvas.example.edu")
    monkeypatch.setenv("CANVAS_API_KEY", "test-key")
    monkeypatch.setattr(config, "_config", None)
    yield
    monkeypatch.setattr(config, "_config", None)
