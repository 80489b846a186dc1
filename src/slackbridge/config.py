"""Application configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    app_db: str = Field(alias="APP_DB", default="/tmp/slackbridge.db")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    # Security: bind host defaults to loopback
    bind_host: str = Field(alias="BIND_HOST", default="127.0.0.1")
    bind_port: int = Field(alias="BIND_PORT", default=5858)

    homeserver_url: str = Field(alias="HOMESERVER_URL", default="http://localhost:8008")
    homeserver_domain: str = Field(alias="HOMESERVER_DOMAIN", default="localhost")
    matrix_as_token: str = Field(alias="MATRIX_AS_TOKEN", default="")
    matrix_bot_localpart: str = Field(alias="MATRIX_BOT_LOCALPART", default="slackbot")
    matrix_user_prefix: str = Field(alias="MATRIX_USER_PREFIX", default="slack_")
    matrix_http_timeout_seconds: float = Field(alias="MATRIX_HTTP_TIMEOUT_SECONDS", default=20.0)

    slack_api_base_url: str = Field(alias="SLACK_API_BASE_URL", default="https://slack.com/api")
    slack_http_timeout_seconds: float = Field(alias="SLACK_HTTP_TIMEOUT_SECONDS", default=10.0)
    slack_file_max_bytes: int = Field(alias="SLACK_FILE_MAX_BYTES", default=20_000_000)
    slack_name_cache_size: int = Field(alias="SLACK_NAME_CACHE_SIZE", default=2048)

    task_runner_shutdown_timeout_seconds: int = Field(
        alias="TASK_RUNNER_SHUTDOWN_TIMEOUT_SECONDS",
        default=30,
    )

    @property
    def bot_user_id(self) -> str:
        return f"@{self.matrix_bot_localpart}:{self.homeserver_domain}"


def validate_settings_for_env(settings: Settings) -> None:
    import logging as _logging
    import warnings

    _logger = _logging.getLogger(__name__)

    if settings.app_env == "prod" and settings.bind_host == "0.0.0.0":
        msg = (
            "SECURITY WARNING: BIND_HOST=0.0.0.0 in production. "
            "Slack event callbacks should reach the bridge through a reverse proxy."
        )
        _logger.warning(msg)
        warnings.warn(msg, stacklevel=2)

    if settings.app_env != "prod":
        return

    missing: list[str] = []
    required_non_empty = {
        "APP_DB": settings.app_db,
        "HOMESERVER_URL": settings.homeserver_url,
        "HOMESERVER_DOMAIN": settings.homeserver_domain,
        "MATRIX_AS_TOKEN": settings.matrix_as_token,
        "MATRIX_BOT_LOCALPART": settings.matrix_bot_localpart,
        "SLACK_API_BASE_URL": settings.slack_api_base_url,
    }
    for key, value in required_non_empty.items():
        if not value.strip():
            missing.append(key)

    if not settings.app_db.startswith("/"):
        missing.append("APP_DB(absolute path required)")
    if settings.homeserver_domain == "localhost":
        missing.append("HOMESERVER_DOMAIN(non-dev value)")

    if missing:
        keys = ", ".join(sorted(set(missing)))
        raise ValueError(f"invalid production configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
