"""Tests for env-driven settings."""

import pytest
from pydantic import ValidationError

from cfpflow.config import DEFAULT_BASE_URL, FlowSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("CFP_BASE_URL", "CFP_TIMEOUT_MS", "CFP_GET_RETRIES", "CFP_MAX_RESPONSE_TIME_MS"):
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    s = FlowSettings(_env_file=None)
    assert s.base_url == DEFAULT_BASE_URL
    assert s.timeout_ms == 30_000
    assert s.timeout_sec == 30.0
    assert s.get_retries == 0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CFP_BASE_URL", "http://localhost:3000/")
    monkeypatch.setenv("CFP_TIMEOUT_MS", "1500")
    s = FlowSettings(_env_file=None)
    assert s.base_url == "http://localhost:3000"
    assert s.timeout_sec == 1.5


def test_explicit_arguments_beat_environment(monkeypatch):
    monkeypatch.setenv("CFP_BASE_URL", "http://from-env")
    assert FlowSettings(base_url="http://from-arg", _env_file=None).base_url == "http://from-arg"


def test_retries_are_bounded():
    with pytest.raises(ValidationError):
        FlowSettings(get_retries=2, _env_file=None)
