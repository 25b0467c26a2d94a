import pytest

from birthchart.config import Settings

ENV_KEYS = (
    "EPHEMERIS_BACKEND",
    "EPHEMERIS_DIR",
    "DEFAULT_HOUSE_SYSTEM",
    "LOGGING_ENABLED",
    "LOG_LEVEL",
    "APP_ENV",
    "PREVIEW_ORIGIN",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env(dotenv=False)
    assert settings.ephemeris_backend == "swisseph"
    assert settings.default_house_system == "placidus"
    assert settings.logging_enabled is False
    assert settings.log_level == "INFO"
    assert settings.is_dev


def test_values_read_from_environment(clean_env):
    clean_env.setenv("EPHEMERIS_BACKEND", "Approximate")
    clean_env.setenv("DEFAULT_HOUSE_SYSTEM", "porphyry")
    clean_env.setenv("LOGGING_ENABLED", "yes")
    clean_env.setenv("LOG_LEVEL", "debug")
    clean_env.setenv("APP_ENV", "production")
    settings = Settings.from_env(dotenv=False)
    assert settings.ephemeris_backend == "approximate"
    assert settings.default_house_system == "porphyry"
    assert settings.logging_enabled is True
    assert settings.log_level == "DEBUG"
    assert not settings.is_dev


def test_legacy_moseph_spelling(clean_env):
    clean_env.setenv("EPHEMERIS_BACKEND", "moseph")
    assert Settings.from_env(dotenv=False).ephemeris_backend == "moshier"


@pytest.mark.parametrize(
    "env",
    [
        {"EPHEMERIS_BACKEND": "jpl"},
        {"DEFAULT_HOUSE_SYSTEM": "whole_sign"},
        {"EPHEMERIS_BACKEND": "approximate", "DEFAULT_HOUSE_SYSTEM": "koch"},
        {"EPHEMERIS_BACKEND": "approximate", "DEFAULT_HOUSE_SYSTEM": "regiomontanus"},
        {"LOG_LEVEL": "LOUD"},
    ],
)
def test_bad_values_fail_fast(clean_env, env):
    for key, value in env.items():
        clean_env.setenv(key, value)
    with pytest.raises(ValueError):
        Settings.from_env(dotenv=False)


def test_swiss_only_house_system_accepted_with_swiss_backend(clean_env):
    clean_env.setenv("EPHEMERIS_BACKEND", "moshier")
    clean_env.setenv("DEFAULT_HOUSE_SYSTEM", "koch")
    assert Settings.from_env(dotenv=False).default_house_system == "koch"
