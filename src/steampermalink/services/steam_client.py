from __future__ import annotations

import json
import re
import time

import aiohttp

from steampermalink.config import DEFAULT_STEAM_API_BASE_URL
from steampermalink.services.extractor import is_numeric

RESOLVE_VANITY_PATH = "/ISteamUser/ResolveVanityURL/v1/"
REQUEST_TIMEOUT_SEC = 15
# url_type=1 asks for an individual profile rather than a group.
URL_TYPE_INDIVIDUAL = 1

_URL_REGEX = re.compile(r"steamcommunity\.com/(id|user|profiles)/([^/?#\s]+)", re.IGNORECASE)
_VANITY_REGEX = re.compile(r"[A-Za-z0-9_-]+")


class SteamApiError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class SteamWebClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_STEAM_API_BASE_URL,
        cache_ttl_sec: float = 600,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_STEAM_API_BASE_URL).rstrip("/")
        self.cache_ttl_sec = max(0.0, float(cache_ttl_sec))
        self._cache: dict[str, tuple[str, float]] = {}
        self.requests_made = 0

    async def resolve(self, url_or_vanity: str, now: float | None = None) -> str:
        """Resolve a community URL (``/id/``, ``/user/``, ``/profiles/``) or bare vanity to a SteamID64."""
        kind, value = self._split_target(url_or_vanity)
        if kind == "profiles":
            if is_numeric(value):
                return value
            raise SteamApiError(f"Not a numeric profile id: {value!r}")

        cache_key = value.lower()
        now_ts = float(now if now is not None else time.time())
        cached = self._cache.get(cache_key)
        if cached:
            if cached[1] > now_ts:
                return cached[0]
            del self._cache[cache_key]

        steam_id = await self.resolve_vanity_url(value)
        if self.cache_ttl_sec > 0:
            self.purge_expired(now_ts)
            self._cache[cache_key] = (steam_id, now_ts + self.cache_ttl_sec)
        return steam_id

    def purge_expired(self, now: float | None = None) -> int:
        now_ts = float(now if now is not None else time.time())
        stale = [key for key, (_, until) in self._cache.items() if until <= now_ts]
        for key in stale:
            del self._cache[key]
        return len(stale)

    async def resolve_vanity_url(self, vanity: str) -> str:
        if not self.api_key.strip():
            raise SteamApiError("Steam API key is not configured.")
        params = {"key": self.api_key, "vanityurl": vanity, "url_type": str(URL_TYPE_INDIVIDUAL)}
        data = await self._get_json(RESOLVE_VANITY_PATH, params)
        response = data.get("response") if isinstance(data, dict) else None
        if not isinstance(response, dict):
            raise SteamApiError("Malformed ResolveVanityURL response.")
        try:
            success = int(response.get("success", 0) or 0)
        except (TypeError, ValueError) as exc:
            raise SteamApiError("Malformed ResolveVanityURL success flag.") from exc
        if success != 1:
            raise SteamApiError(str(response.get("message") or "No match."))
        steam_id = str(response.get("steamid", "")).strip()
        if not is_numeric(steam_id):
            raise SteamApiError("ResolveVanityURL returned no steamid.")
        return steam_id

    async def _get_json(self, path: str, params: dict[str, str]) -> object:
        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SEC)
        self.requests_made += 1
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, params=params) as response:
                raw = await response.read()
                if response.status >= 400:
                    excerpt = raw[:200].decode("utf-8", errors="replace")
                    raise SteamApiError(f"HTTP {response.status}: {excerpt}", status=response.status)
        try:
            # UnicodeDecodeError is a ValueError too.
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise SteamApiError("Steam API returned invalid JSON.") from exc

    def _split_target(self, url_or_vanity: str) -> tuple[str, str]:
        raw = (url_or_vanity or "").strip()
        match = _URL_REGEX.search(raw)
        if match:
            return match.group(1).lower(), match.group(2)
        if _VANITY_REGEX.fullmatch(raw):
            return "id", raw
        raise SteamApiError(f"Unrecognised Steam URL: {raw[:100]!r}")
