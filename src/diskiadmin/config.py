"""Admin console configuration with sensible defaults for API-Football.

Every field can be set as ``DISKIADMIN_<FIELD_NAME>`` in the environment
or in a ``.env`` file in the working directory. Keyword arguments win over
both.
"""

from typing import Annotated

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing_extensions import Self

API_FOOTBALL_HOST = "v3.football.api-sports.io"
API_FOOTBALL_BASE_URL = f"https://{API_FOOTBALL_HOST}"
ONESIGNAL_BASE_URL = "https://onesignal.com/api/v1"

# Leagues synced by ``competitions sync`` when no ids are given.
DEFAULT_COMPETITION_IDS = (288, 508, 507, 39, 140, 78, 135, 2, 12, 1, 6)

ENV_PREFIX = "DISKIADMIN_"


class AdminConfig(BaseSettings):
    """Configuration for the admin console.

    All timing values are in seconds. Credentials default to empty; clients
    that need one raise ``ConfigError`` when it is missing.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # Remote match source (API-Football)
    api_key: str = ""
    api_host: str = API_FOOTBALL_HOST
    api_base_url: str = API_FOOTBALL_BASE_URL
    http_timeout: float = 15.0

    # Rate limiting: delay between requests.
    # The free API-Football plan allows 10 requests/minute.
    min_delay: float = 0.5
    backoff_factor: float = 2.0
    recovery_factor: float = 0.85
    max_backoff: float = 60.0

    # tenacity stop_after_attempt; 1 disables retries
    max_retries: int = Field(default=3, ge=1)

    # Fixture listing
    upcoming_count: int = Field(default=20, ge=1)
    default_competition_ids: Annotated[tuple[int, ...], NoDecode] = DEFAULT_COMPETITION_IDS

    # Push notifications (OneSignal)
    onesignal_app_id: str = ""
    onesignal_rest_api_key: str = ""
    onesignal_base_url: str = ONESIGNAL_BASE_URL

    # Persistent store: "sqlite" for local runs, "firestore" for production
    store_backend: str = "sqlite"
    data_dir: str = "data"
    db_path: str | None = None  # {data_dir}/diskiadmin.db when unset
    firestore_project: str | None = None
    firestore_credentials: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            f"{ENV_PREFIX}FIRESTORE_CREDENTIALS",
            "GOOGLE_APPLICATION_CREDENTIALS",
        ),
    )

    # Keep raw API responses on disk for debugging re-imports
    archive_payloads: bool = False

    # Banter presence listing
    active_users_limit: int = Field(default=50, ge=1)

    @field_validator("default_competition_ids", mode="before")
    @classmethod
    def split_ids(cls, value):
        """Accept a comma-separated string such as ``"39,140"``."""
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return value

    @model_validator(mode="after")
    def default_db_path(self) -> Self:
        if not self.db_path:
            self.db_path = f"{self.data_dir}/diskiadmin.db"
        return self
