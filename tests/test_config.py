from pathlib import Path

import pytest

from shiftclock.config import load_config


@pytest.fixture
def env(monkeypatch):
    values = {
        "DISCORD_TOKEN": "token",
        "GUILD_ID": "123",
        "OWNER_USER_ID": "456",
        "TIMEZONE": "Europe/Berlin",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv("SHIFTCLOCK_DB_PATH", raising=False)
    monkeypatch.delenv("PRESENCE_REFRESH_SECONDS", raising=False)
    return monkeypatch


def test_load_config_defaults(env) -> None:
    config = load_config()

    assert config.guild_id == 123
    assert config.owner_user_id == 456
    assert config.timezone.key == "Europe/Berlin"
    assert config.db_path == Path("shiftclock.db")
    assert config.presence_refresh_seconds == 60


def test_missing_token(env) -> None:
    env.delenv("DISCORD_TOKEN")
    with pytest.raises(ValueError, match="DISCORD_TOKEN"):
        load_config()


def test_invalid_timezone(env) -> None:
    env.setenv("TIMEZONE", "Mars/Olympus")
    with pytest.raises(ValueError, match="Invalid timezone"):
        load_config()


def test_refresh_must_be_positive(env) -> None:
    env.setenv("PRESENCE_REFRESH_SECONDS", "0")
    with pytest.raises(ValueError, match="must be positive"):
        load_config()
