import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv(".env")

DEFAULT_MODEL = "gpt-4o"
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_RELAY_URL = "http://localhost:7777/api/chat"


@dataclass(frozen=True)
class Settings:
    """Server and client configuration, read once and passed around explicitly."""

    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    relay_url: str = DEFAULT_RELAY_URL

    @classmethod
    def from_env(cls) -> "Settings":
        # API_KEY is accepted for deployments that predate OPENAI_API_KEY.
        api_key = os.environ.get("OPENAI_API_KEY") or os.environ.get("API_KEY")
        raw_timeout = os.environ.get("UPSTREAM_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
        try:
            timeout = float(raw_timeout)
        except ValueError as e:
            raise ConfigurationError(
                f"UPSTREAM_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}"
            ) from e
        return cls(
            api_key=api_key or None,
            model=os.environ.get("OPENAI_MODEL", DEFAULT_MODEL),
            timeout=timeout,
            relay_url=os.environ.get("RELAY_URL", DEFAULT_RELAY_URL),
        )

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("API key not configured on the server")
        return self.api_key


def get_settings() -> Settings:
    """FastAPI dependency; tests override it through ``app.dependency_overrides``."""
    return Settings.from_env()
