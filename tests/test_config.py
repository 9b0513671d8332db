"""Unit tests for configuration defaults and environment parsing."""

import pytest
from pydantic import ValidationError

from archetypeos.core.config import environment as env_module
from archetypeos.core.config.settings import Settings, parse_list


@pytest.fixture()
def clean_env(monkeypatch):
    """Ensure database-related environment variables do not leak between tests."""

    for var in (
        "DATABASE_URL",
        "TEST_DATABASE_URL",
        "DATABASE_HOSTNAME",
        "DATABASE_PORT",
        "DATABASE_PASSWORD",
        "DATABASE_NAME",
        "DATABASE_USERNAME",
        "CORS_ORIGINS",
        "ALLOWED_HOSTS",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


def _bare_settings(**overrides):
    values = {
        "database_url": None,
        "test_database_url": None,
        "database_hostname": None,
        "database_password": None,
        "database_name": None,
        "database_username": None,
    }
    values.update(overrides)
    return Settings(**values)


def test_database_url_falls_back_to_sqlite(clean_env):
    assert _bare_settings().get_database_url() == "sqlite:///./archetypeos.db"


def test_database_url_composed_from_parts(clean_env):
    settings = _bare_settings(
        database_username="app",
        database_password="secret",
        database_hostname="db",
        database_name="archetypeos",
    )
    assert settings.get_database_url() == "postgresql://app:secret@db:5432/archetypeos"


def test_test_database_must_be_dedicated(clean_env):
    settings = _bare_settings(test_database_url="postgresql://app:secret@db/archetypeos")
    with pytest.raises(ValueError):
        settings.get_database_url(use_test=True)

    settings = _bare_settings(test_database_url="postgresql://app:secret@db/archetypeos_test")
    assert settings.get_database_url(use_test=True).endswith("archetypeos_test")


def test_progression_defaults(clean_env, monkeypatch):
    for var in ("DEFAULT_PASSING_SCORE", "DEFAULT_ATTEMPT_LIMIT", "AUTO_PROMOTE_ON_PASS"):
        monkeypatch.delenv(var, raising=False)
    settings = _bare_settings()
    assert settings.default_passing_score == 70
    assert settings.default_attempt_limit == 1
    assert settings.auto_promote_on_pass is True


def test_progression_settings_read_environment(clean_env, monkeypatch):
    monkeypatch.setenv("DEFAULT_PASSING_SCORE", "80")
    monkeypatch.setenv("AUTO_PROMOTE_ON_PASS", "off")
    settings = _bare_settings()
    assert settings.default_passing_score == 80
    assert settings.auto_promote_on_pass is False


def test_out_of_range_passing_score_is_rejected(clean_env, monkeypatch):
    monkeypatch.setenv("DEFAULT_PASSING_SCORE", "120")
    with pytest.raises(ValidationError):
        _bare_settings()


def test_parse_list_accepts_csv_and_json():
    assert parse_list("a.example.com, b.example.com") == ["a.example.com", "b.example.com"]
    assert parse_list('["x.example.com"]') == ["x.example.com"]
    assert parse_list("") == []


def test_allowed_hosts_parsing(clean_env):
    settings = _bare_settings(allowed_hosts="a.example.com, b.example.com")
    assert "a.example.com" in settings.allowed_hosts
    assert "b.example.com" in settings.allowed_hosts


def test_cors_origins_from_comma_separated_env(clean_env, monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://learn.example.com,https://admin.example.com")
    settings = _bare_settings()
    assert settings.cors_origins == ["https://learn.example.com", "https://admin.example.com"]


def test_settings_class_for_aliases():
    assert env_module.settings_class_for("dev") is env_module.DevelopmentSettings
    assert env_module.settings_class_for("TESTING") is env_module.TestSettings
    assert env_module.settings_class_for(None) is env_module.ProductionSettings
    assert env_module.settings_class_for("staging") is env_module.ProductionSettings


def test_get_settings_uses_test_class():
    env_module.get_settings.cache_clear()
    try:
        assert isinstance(env_module.get_settings(), env_module.TestSettings)
    finally:
        env_module.get_settings.cache_clear()
