"""Per-environment settings classes, chosen by `APP_ENV`."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict, Type

from .settings import Settings


class DevelopmentSettings(Settings):
    environment: str = "development"
    use_json_logs: bool = False


class ProductionSettings(Settings):
    """Expects SECRET_KEY and ALLOWED_HOSTS to be set explicitly."""

    environment: str = "production"


class TestSettings(Settings):
    """Console logging only; always resolves to the dedicated test database."""

    environment: str = "test"
    log_dir: str | None = None

    def model_post_init(self, __context) -> None:
        super().model_post_init(__context)
        if not self.database_url:
            object.__setattr__(self, "database_url", self.get_database_url(use_test=True))


_CLASSES: Dict[str, Type[Settings]] = {
    "development": DevelopmentSettings,
    "production": ProductionSettings,
    "test": TestSettings,
}
_SHORT_NAMES = {"dev": "development", "prod": "production", "testing": "test"}


def settings_class_for(name: str | None) -> Type[Settings]:
    key = (name or "production").strip().lower()
    return _CLASSES.get(_SHORT_NAMES.get(key, key), ProductionSettings)


@lru_cache
def get_settings() -> Settings:
    return settings_class_for(os.getenv("APP_ENV"))()
