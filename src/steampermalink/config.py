from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_STEAM_API_BASE_URL = "https://api.steampowered.com"

SETTINGS_FILE_NAME = "steampermalink-settings.json"
PROFILES_FILE_NAME = "steampermalink-profiles.json"
GROUPS_FILE_NAME = "steampermalink-groups.json"


@dataclass(frozen=True)
class Settings:
    discord_token: str
    steam_api_key: str
    guild_id: int
    port: int
    data_dir: Path
    user_cooldown_sec: int = 8
    message_reply_ttl_sec: int = 60 * 60
    steam_api_base_url: str = DEFAULT_STEAM_API_BASE_URL
    steam_cache_ttl_sec: int = 10 * 60

    @property
    def settings_path(self) -> Path:
        return self.data_dir / SETTINGS_FILE_NAME

    @property
    def profiles_path(self) -> Path:
        return self.data_dir / PROFILES_FILE_NAME

    @property
    def groups_path(self) -> Path:
        return self.data_dir / GROUPS_FILE_NAME

    @staticmethod
    def load(passwords_path: Path = Path("passwords.txt")) -> "Settings":
        values = _parse_passwords_file(passwords_path)

        def get(key: str, default: str = "") -> str:
            return (values.get(key) or os.getenv(key) or default).strip()

        token = get("DISCORD_TOKEN")
        steam_api_key = get("STEAM_API_KEY")
        if not token:
            raise RuntimeError("DISCORD_TOKEN is required (passwords.txt or environment).")
        if not steam_api_key:
            raise RuntimeError("STEAM_API_KEY is required (passwords.txt or environment).")
        return Settings(
            discord_token=token,
            steam_api_key=steam_api_key,
            guild_id=_to_int(get("GUILD_ID"), 0),
            port=_to_int(get("PORT"), 8080),
            data_dir=Path(get("DATA_DIR", ".")),
            user_cooldown_sec=_to_int(get("USER_COOLDOWN_SEC"), 8),
            message_reply_ttl_sec=_to_int(get("MESSAGE_REPLY_TTL_SEC"), 60 * 60),
            steam_api_base_url=get("STEAM_API_BASE_URL", DEFAULT_STEAM_API_BASE_URL),
            steam_cache_ttl_sec=_to_int(get("STEAM_CACHE_TTL_SEC"), 10 * 60),
        )


def _to_int(raw: str, default: int) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _parse_passwords_file(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    if not path.exists():
        return values
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip()
    return values
