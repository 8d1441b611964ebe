from __future__ import annotations

import pytest

from crewfit.core.config import AppEnv, Settings, load_settings

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "PORT",
    "REDIS_URL",
    "PORTAL_BASE_URL",
    "AUTOSAVE_DELAY_MS",
    "DEFAULT_DURATION_MINUTES",
    "SESSION_TTL_SECONDS",
    "SEED_DEMO_DATA",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---- defaults ----


def test_load_settings_defaults() -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.redis_url is None
    assert settings.portal_base_url == "http://localhost:5173"
    assert settings.autosave_delay_ms == 600
    assert settings.default_duration_minutes == 30
    assert settings.seed_demo_data is True


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "PROD")
    monkeypatch.setenv("LOG_LEVEL", "  error ")
    monkeypatch.setenv("LOG_JSON", "yes")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")
    monkeypatch.setenv("AUTOSAVE_DELAY_MS", "250")
    monkeypatch.setenv("SEED_DEMO_DATA", "off")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "error"
    assert settings.log_json is True
    assert settings.redis_url == "redis://cache:6379/0"
    assert settings.autosave_delay_ms == 250
    assert settings.seed_demo_data is False


def test_portal_base_url_trailing_slash_is_stripped(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("PORTAL_BASE_URL", "https://rh.example.com/")
    assert load_settings().portal_base_url == "https://rh.example.com"


# ---- rejected values ----


def test_load_settings_rejects_invalid_app_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "staging")
    with pytest.raises(ValueError, match="APP_ENV must be dev|test|prod"):
        load_settings()


def test_load_settings_rejects_invalid_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    with pytest.raises(ValueError, match="LOG_LEVEL must be"):
        load_settings()


def test_load_settings_rejects_non_integer_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(ValueError, match="PORT must be an integer"):
        load_settings()


def test_load_settings_rejects_bad_boolean(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_JSON", "maybe")
    with pytest.raises(ValueError, match="LOG_JSON must be a boolean"):
        load_settings()


def test_load_settings_rejects_zero_duration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEFAULT_DURATION_MINUTES", "0")
    with pytest.raises(ValueError, match="DEFAULT_DURATION_MINUTES must be >= 1"):
        load_settings()


def test_load_settings_rejects_negative_autosave_delay(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("AUTOSAVE_DELAY_MS", "-5")
    with pytest.raises(ValueError, match="AUTOSAVE_DELAY_MS must be >= 0"):
        load_settings()


def test_load_settings_rejects_non_http_portal_url(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("PORTAL_BASE_URL", "ftp://files.example.com")
    with pytest.raises(ValueError, match="PORTAL_BASE_URL must be an http"):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        redis_url=None,
    )


@pytest.mark.parametrize("env", ["dev", "test", "prod"])
def test_settings_env_flags(env: AppEnv) -> None:
    s = _make_settings(env)
    assert (s.is_dev, s.is_test, s.is_prod) == (env == "dev", env == "test", env == "prod")


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.app_env = "prod"  # type: ignore[misc]
