from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"

DEFAULT_AGENT_ID = "00000000-0000-0000-0000-000000000001"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = True

    # CORS
    cors_origins: str = "http://localhost:4321"

    # Booking rules
    default_agent_id: str = DEFAULT_AGENT_ID
    appointment_duration_minutes: int = 45
    # When neither the live count nor the slot counter can be read, let the booking through
    capacity_fail_open: bool = True
    # Reject budgets whose lower bound is below the linked property's price
    enforce_budget_check: bool = True

    # EasyBroker (property price fallback). Leave api key empty to disable.
    easybroker_api_key: str = ""
    easybroker_base_url: str = "https://api.easybroker.com/v1"
    easybroker_timeout_seconds: float = 5.0

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def easybroker_enabled(self) -> bool:
        return bool(self.easybroker_api_key and self.easybroker_base_url)


settings = Settings()
