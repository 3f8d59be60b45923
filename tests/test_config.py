import pytest

from kunafa_advisor.config import DEFAULT_MODEL, Settings
from kunafa_advisor.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ["OPENAI_API_KEY", "API_KEY", "OPENAI_MODEL", "UPSTREAM_TIMEOUT_SECONDS", "RELAY_URL"]:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults():
    settings = Settings.from_env()
    assert settings.api_key is None
    assert settings.model == DEFAULT_MODEL
    assert settings.timeout == 60.0


def test_from_env_reads_values(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("UPSTREAM_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("RELAY_URL", "http://relay.test/api/chat")

    settings = Settings.from_env()

    assert settings.api_key == "sk-test"
    assert settings.model == "gpt-4o-mini"
    assert settings.timeout == 12.5
    assert settings.relay_url == "http://relay.test/api/chat"


def test_from_env_accepts_legacy_key_name(monkeypatch):
    monkeypatch.setenv("API_KEY", "legacy")
    assert Settings.from_env().api_key == "legacy"


def test_require_api_key():
    assert Settings(api_key="k").require_api_key() == "k"
    with pytest.raises(ConfigurationError, match="API key not configured"):
        Settings(api_key="").require_api_key()


def test_from_env_rejects_malformed_timeout(monkeypatch):
    monkeypatch.setenv("UPSTREAM_TIMEOUT_SECONDS", "sixty")
    with pytest.raises(ConfigurationError, match="UPSTREAM_TIMEOUT_SECONDS"):
        Settings.from_env()
