from __future__ import annotations

from pathlib import Path

import pytest

from steampermalink.config import Settings
from steampermalink.services.logger_service import LoggerService

CONFIG_KEYS = (
    "DISCORD_TOKEN",
    "STEAM_API_KEY",
    "GUILD_ID",
    "PORT",
    "DATA_DIR",
    "USER_COOLDOWN_SEC",
    "MESSAGE_REPLY_TTL_SEC",
    "STEAM_API_BASE_URL",
    "STEAM_CACHE_TTL_SEC",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_settings_load_from_passwords_file(tmp_path: Path) -> None:
    passwords = tmp_path / "passwords.txt"
    passwords.write_text(
        "# comment\n"
        "DISCORD_TOKEN = abc\n"
        "STEAM_API_KEY=def\n"
        "GUILD_ID=42\n"
        "PORT=not-a-number\n"
        f"DATA_DIR={tmp_path / 'data'}\n"
        "junk line\n",
        encoding="utf-8",
    )
    settings = Settings.load(passwords)
    assert settings.discord_token == "abc"
    assert settings.steam_api_key == "def"
    assert settings.guild_id == 42
    assert settings.port == 8080
    assert settings.user_cooldown_sec == 8
    assert settings.message_reply_ttl_sec == 3600
    assert settings.profiles_path == tmp_path / "data" / "steampermalink-profiles.json"
    assert settings.groups_path.name == "steampermalink-groups.json"
    assert settings.settings_path.name == "steampermalink-settings.json"


def test_settings_fall_back_to_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISCORD_TOKEN", "env-token")
    monkeypatch.setenv("STEAM_API_KEY", "env-steam")
    monkeypatch.setenv("PORT", "3000")
    monkeypatch.setenv("USER_COOLDOWN_SEC", "2")
    settings = Settings.load(tmp_path / "missing.txt")
    assert (settings.discord_token, settings.steam_api_key) == ("env-token", "env-steam")
    assert settings.port == 3000
    assert settings.user_cooldown_sec == 2
    assert settings.guild_id == 0


def test_settings_require_tokens(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(RuntimeError, match="DISCORD_TOKEN"):
        Settings.load(tmp_path / "missing.txt")
    monkeypatch.setenv("DISCORD_TOKEN", "x")
    with pytest.raises(RuntimeError, match="STEAM_API_KEY"):
        Settings.load(tmp_path / "missing.txt")


def test_logger_keeps_bounded_rows_and_survives_bad_listeners() -> None:
    logger = LoggerService(max_rows=3, echo=False)
    seen: list[str] = []

    def broken(row: dict[str, object]) -> None:
        raise RuntimeError("listener failure")

    logger.subscribe(broken)
    logger.subscribe(lambda row: seen.append(str(row["event"])))
    for index in range(5):
        logger.log(f"event.{index}", index=index)

    assert logger.events() == ["event.2", "event.3", "event.4"]
    assert seen == [f"event.{index}" for index in range(5)]
    assert logger.rows[-1]["data"] == {"index": 4}
