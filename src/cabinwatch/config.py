"""Application configuration via environment variables and .env file."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings.sources import DotEnvSettingsSource, PydanticBaseSettingsSource

# Path to .env file (patch in tests to use tmp_path / ".env")
_ENV_FILE: Path = Path(".env")

TRACKING_MODES = ("http", "mock", "none")


class Settings(BaseSettings):
    model_config = {
        "env_prefix": "CABINWATCH_",
        "env_file_encoding": "utf-8",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Load .env from _ENV_FILE (patchable in tests)
        return (
            init_settings,
            env_settings,
            DotEnvSettingsSource(
                settings_cls,
                env_file=_ENV_FILE,
                env_file_encoding="utf-8",
            ),
            file_secret_settings,
        )

    # Database (assignment store)
    db_path: Path = Path("./data/cabinwatch.db")

    # Logging
    log_level: str = "info"

    # Telemetry source: "http" (tracking API), "mock" or "none"
    tracking_mode: str = "mock"
    tracking_api_url: str = "http://localhost:3001"

    # Polling
    poll_interval: int = 5  # seconds between snapshot fetches
    fetch_timeout: float = 15.0  # seconds before a fetch counts as failed

    # Assignments: fail assign() when the guest-device link cannot be written
    require_device_link: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("tracking_mode", mode="before")
    @classmethod
    def parse_tracking_mode(cls, v: object) -> str:
        """Normalise case/whitespace; unknown modes fall back to "none"."""
        mode = str(v or "none").strip().lower()
        return mode if mode in TRACKING_MODES else "none"

    @field_validator("poll_interval")
    @classmethod
    def check_poll_interval(cls, v: int) -> int:
        if v < 1:
            raise ValueError("poll_interval must be at least 1 second")
        return v


def load_config() -> Settings:
    """Load configuration from .env and environment (env overrides .env)."""
    return Settings()


settings = Settings()
