import os
import logging
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://developer-api.govee.com/v1"
SECRETS_PATH = Path("/run/secrets")


class ConfigError(RuntimeError):
    pass


class Settings(BaseModel):
    api_key: str = Field(..., min_length=1, repr=False)
    api_base: str = DEFAULT_API_BASE
    timeout: float = Field(default=10.0, gt=0)
    fetch_on_start: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, secrets_path: Path = SECRETS_PATH) -> "Settings":
        """Build settings from GOVEE_* environment variables.

        The API key comes from GOVEE_API_KEY, or from the secret file
        ``<secrets_path>/govee_api_key`` when the variable is unset.
        """
        api_key = os.getenv("GOVEE_API_KEY", "").strip()
        if not api_key:
            secret_file = secrets_path / "govee_api_key"
            if secret_file.exists():
                api_key = secret_file.read_text().strip()
                logger.info("Loaded API key from %s", secret_file)
        if not api_key:
            raise ConfigError(
                "No Govee API key configured. Set GOVEE_API_KEY or create "
                f"{secrets_path / 'govee_api_key'}."
            )

        raw_timeout = os.getenv("GOVEE_TIMEOUT", "10")
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigError(f"GOVEE_TIMEOUT must be a number of seconds, got {raw_timeout!r}") from None
        if not timeout > 0:
            raise ConfigError(f"GOVEE_TIMEOUT must be positive, got {raw_timeout!r}")

        return cls(
            api_key=api_key,
            api_base=os.getenv("GOVEE_API_BASE", DEFAULT_API_BASE).rstrip("/"),
            timeout=timeout,
            fetch_on_start=os.getenv("GOVEE_FETCH_ON_START", "true").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
