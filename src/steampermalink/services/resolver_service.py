from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass

import aiohttp

from steampermalink.services.extractor import (
    STEAM_GROUP_ID_REGEX,
    STEAM_GROUP_NAME_REGEX,
    STEAM_PROFILE_REGEX,
    STEAM_USER_REGEX,
    STEAM_VANITY_ID_REGEX,
    clean_candidate,
    extract_first_group,
    is_numeric,
    is_profile_id,
)
from steampermalink.services.logger_service import LoggerService
from steampermalink.services.steam_client import SteamApiError, SteamWebClient

COMMUNITY_BASE_URL = "https://steamcommunity.com"

_GROUP_KEY_REGEX = re.compile(r"(gid|groups):([A-Za-z0-9_-]+)", re.IGNORECASE)


def profile_permalink(steam_id: str) -> str:
    return f"{COMMUNITY_BASE_URL}/profiles/{steam_id}"


@dataclass(frozen=True)
class GroupIdentity:
    key: str
    url: str
    gid: str | None = None
    name: str | None = None

    @staticmethod
    def from_gid(gid: str) -> "GroupIdentity":
        return GroupIdentity(key=f"gid:{gid}", url=f"{COMMUNITY_BASE_URL}/gid/{gid}", gid=gid)

    @staticmethod
    def from_name(name: str) -> "GroupIdentity":
        # Key is case-folded for dedup, the URL keeps the casing the user wrote.
        return GroupIdentity(key=f"groups:{name.lower()}", url=f"{COMMUNITY_BASE_URL}/groups/{name}", name=name)


class IdentityResolver:
    def __init__(self, client: SteamWebClient, logger: LoggerService | None = None) -> None:
        self.client = client
        self.logger = logger

    async def resolve_profile(self, candidate: str) -> str | None:
        """Return a SteamID64 for ``candidate`` or ``None`` when it cannot be resolved.

        Bare IDs and ``/profiles/<id>`` links are parsed locally. ``/id/`` and
        ``/user/`` links go to the Steam Web API once; any failure there is
        reported as ``None`` and is not retried.
        """
        value = clean_candidate(candidate)
        if not value:
            return None
        if is_profile_id(value):
            return value
        steam_id = extract_first_group(value, STEAM_PROFILE_REGEX)
        if steam_id:
            return steam_id

        match = STEAM_VANITY_ID_REGEX.search(value) or STEAM_USER_REGEX.search(value)
        if not match:
            return None
        full = match.group(0)
        normalized = full if full.lower().startswith("http") else f"https://{full}"
        try:
            resolved = await self.client.resolve(normalized)
        except (SteamApiError, aiohttp.ClientError, asyncio.TimeoutError) as exc:
            if self.logger is not None:
                self.logger.log("steam.resolve_failed", target=normalized[:200], error=str(exc)[:200])
            return None
        resolved = str(resolved).strip()
        return resolved if is_profile_id(resolved) else None

    def resolve_group(self, candidate: str) -> GroupIdentity | None:
        value = clean_candidate(candidate)
        if not value:
            return None
        key_match = _GROUP_KEY_REGEX.fullmatch(value)
        if key_match:
            kind, ident = key_match.group(1).lower(), key_match.group(2)
            if kind == "gid":
                return GroupIdentity.from_gid(ident) if is_numeric(ident) else None
            return GroupIdentity.from_name(ident)
        gid = extract_first_group(value, STEAM_GROUP_ID_REGEX)
        if gid:
            return GroupIdentity.from_gid(gid)
        name = extract_first_group(value, STEAM_GROUP_NAME_REGEX)
        if name:
            return GroupIdentity.from_name(name)
        if is_profile_id(value):
            return GroupIdentity.from_gid(value)
        return None
