"""Shared fixtures: isolated settings dir, fake HTTP responses, fake LiteLLM."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest


@pytest.fixture(autouse=True)
def tmp_today_dir(tmp_path, monkeypatch):
    """Redirect ~/.today to a temp directory for each test."""
    fake_config = tmp_path / ".today"
    fake_file = fake_config / "settings.json"

    monkeypatch.setattr("today.settings.CONFIG_DIR", fake_config)
    monkeypatch.setattr("today.settings.CONFIG_FILE", fake_file)

    # Clear env vars so key resolution only sees what a test sets
    for var in ("OPENAI_API_KEY", "OPENROUTER_API_KEY"):
        monkeypatch.delenv(var, raising=False)

    # Default output file is relative to the working directory
    monkeypatch.chdir(tmp_path)

    return fake_config, fake_file


@pytest.fixture
def make_response():
    """Build a fake urlopen() context manager with a JSON body."""

    def _make(payload=None, status=200):
        mock_resp = MagicMock()
        mock_resp.status = status
        mock_resp.read.return_value = json.dumps(payload or {}).encode()
        mock_resp.__enter__ = lambda s: s
        mock_resp.__exit__ = MagicMock(return_value=False)
        return mock_resp

    return _make


class FakeCompletion:
    """Stand-in for litellm.completion that records its calls."""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.text)
        return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason="stop")])


@pytest.fixture
def fake_completion(monkeypatch):
    """Patch litellm.completion; returns a factory taking text/error."""

    def _install(text="", error=None):
        fake = FakeCompletion(text=text, error=error)
        monkeypatch.setattr("litellm.completion", fake)
        return fake

    return _install
