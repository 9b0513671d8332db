"""Process-wide settings for the progression engine.

Values come from the process environment, falling back to a `.env` file at the
repo root. Field names map to upper-case variables (`default_passing_score` is
read from `DEFAULT_PASSING_SCORE`); `APP_ENV` selects the environment.

Groups:

* database: `DATABASE_URL`, or `DATABASE_HOSTNAME`/`_PORT`/`_NAME`/`_USERNAME`/
  `_PASSWORD`; `TEST_DATABASE_URL` for the test run;
* tokens: `SECRET_KEY`, `ALGORITHM` (HS256), `ACCESS_TOKEN_EXPIRE_MINUTES`;
* HTTP: `CORS_ORIGINS` and `ALLOWED_HOSTS`, comma-separated or a JSON list;
* logging: `LOG_LEVEL`, `LOG_DIR`, `USE_JSON_LOGS`;
* progression: `DEFAULT_PASSING_SCORE` (70), `DEFAULT_ATTEMPT_LIMIT` (1),
  `SUBMIT_GRACE_SECONDS` (30), `WEEKLY_DEFAULT_GOAL_MINUTES` (2520),
  `AUTO_PROMOTE_ON_PASS` (true), `IDLE_LEARNER_DAYS` (3).
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, ClassVar, List, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[3]

load_dotenv(BASE_DIR / ".env")

logger = logging.getLogger(__name__)

DEV_SECRET_KEY = "archetypeos-dev-secret-change-me"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
SQLITE_FALLBACK_URL = "sqlite:///./archetypeos.db"
SQLITE_TEST_URL = "sqlite:///./tests/test.db"


def parse_list(raw: Any) -> List[str]:
    """Accept a list, a JSON array string or a comma-separated string."""
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = raw.split(",")
        if isinstance(decoded, str):
            decoded = [decoded]
        raw = decoded
    return [str(item).strip() for item in raw if str(item).strip()]


class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(
        default="production", validation_alias=AliasChoices("APP_ENV", "environment")
    )
    app_name: str = "ArchetypeOS"

    database_url: Optional[str] = None
    test_database_url: Optional[str] = None
    database_hostname: Optional[str] = None
    database_port: str = "5432"
    database_name: Optional[str] = None
    database_username: Optional[str] = None
    database_password: Optional[str] = None

    secret_key: str = DEV_SECRET_KEY
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Kept as raw strings so comma-separated values survive env parsing;
    # normalised to lists after validation.
    cors_origins: Optional[str] = None
    allowed_hosts: Optional[str] = None

    log_level: str = "INFO"
    log_dir: Optional[str] = "logs"
    use_json_logs: bool = True

    default_passing_score: int = Field(default=70, ge=0, le=100)
    default_attempt_limit: int = Field(default=1, ge=1)
    submit_grace_seconds: int = Field(default=30, ge=0)
    weekly_default_goal_minutes: int = Field(default=360 * 7, ge=0)
    auto_promote_on_pass: bool = True
    idle_learner_days: int = Field(default=3, ge=1)

    @model_validator(mode="after")
    def _normalise(self) -> "Settings":
        origins = parse_list(self.cors_origins) or list(DEFAULT_CORS_ORIGINS)
        hosts = parse_list(self.allowed_hosts) or ["*"]
        if self.environment.lower() == "test" and "*" not in hosts and "testserver" not in hosts:
            hosts.append("testserver")
        object.__setattr__(self, "cors_origins", origins)
        object.__setattr__(self, "allowed_hosts", hosts)

        if self.secret_key == DEV_SECRET_KEY and self.environment.lower() == "production":
            logger.warning("SECRET_KEY is not set; tokens are signed with the development key")
        return self

    def get_database_url(self, *, use_test: bool = False) -> str:
        """Pick the SQLAlchemy URL.

        Tests use `TEST_DATABASE_URL` (a SQLite file, or a server database whose
        name contains `_test`). Otherwise `DATABASE_URL`, then a Postgres URL
        composed from the parts, then a local SQLite file so health checks can
        still answer.
        """
        if use_test:
            url = self.test_database_url or os.getenv("TEST_DATABASE_URL")
            if not url:
                return SQLITE_TEST_URL
            if not url.startswith("sqlite") and "_test" not in url:
                raise ValueError(
                    "TEST_DATABASE_URL must name a dedicated test database (containing '_test')"
                )
            return url

        if self.database_url:
            return str(self.database_url)

        parts = (
            self.database_username,
            self.database_password,
            self.database_hostname,
            self.database_name,
        )
        if all(parts):
            return (
                f"postgresql://{self.database_username}:{self.database_password}"
                f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
            )
        return SQLITE_FALLBACK_URL


__all__ = ["BASE_DIR", "Settings", "parse_list"]
