from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from steampermalink.services.steam_client import SteamApiError, SteamWebClient

GABE_ID = "76561197960287930"


def _make_app(hits: list[str]) -> web.Application:
    async def resolve_vanity(request: web.Request) -> web.Response:
        vanity = request.query.get("vanityurl", "")
        hits.append(vanity)
        if request.query.get("key") != "api-key":
            return web.Response(status=403, text="Forbidden")
        if vanity == "broken":
            return web.Response(text="not json")
        if vanity.lower() == "gabe":
            return web.json_response({"response": {"steamid": GABE_ID, "success": 1}})
        return web.json_response({"response": {"success": 42, "message": "No match"}})

    app = web.Application()
    app.router.add_get("/ISteamUser/ResolveVanityURL/v1/", resolve_vanity)
    return app


def test_resolve_vanity_url_and_cache() -> None:
    hits: list[str] = []

    async def scenario() -> tuple[str, str, str]:
        async with TestServer(_make_app(hits)) as server:
            client = SteamWebClient("api-key", base_url=str(server.make_url("/")), cache_ttl_sec=600)
            first = await client.resolve("https://steamcommunity.com/id/gabe", now=1000.0)
            cached = await client.resolve("https://steamcommunity.com/id/GABE/", now=1500.0)
            expired = await client.resolve("gabe", now=1700.0)
            return first, cached, expired

    assert asyncio.run(scenario()) == (GABE_ID, GABE_ID, GABE_ID)
    assert hits == ["gabe", "gabe"]


def test_profile_urls_are_answered_locally() -> None:
    client = SteamWebClient("api-key", base_url="http://127.0.0.1:9")
    out = asyncio.run(client.resolve("https://steamcommunity.com/profiles/76561198000000000"))
    assert out == "76561198000000000"
    assert client.requests_made == 0


def test_api_failures_raise_steam_api_error() -> None:
    hits: list[str] = []

    async def scenario() -> list[SteamApiError]:
        errors: list[SteamApiError] = []
        async with TestServer(_make_app(hits)) as server:
            base = str(server.make_url("/"))
            for client, target in (
                (SteamWebClient("api-key", base_url=base), "https://steamcommunity.com/id/nobody"),
                (SteamWebClient("api-key", base_url=base), "https://steamcommunity.com/id/broken"),
                (SteamWebClient("wrong-key", base_url=base), "https://steamcommunity.com/id/gabe"),
            ):
                with pytest.raises(SteamApiError) as info:
                    await client.resolve(target)
                errors.append(info.value)
        return errors

    no_match, bad_json, forbidden = asyncio.run(scenario())
    assert "No match" in str(no_match)
    assert "invalid JSON" in str(bad_json)
    assert forbidden.status == 403


def test_missing_api_key_or_bad_target_fails_without_request() -> None:
    client = SteamWebClient("", base_url="http://127.0.0.1:9")
    with pytest.raises(SteamApiError):
        asyncio.run(client.resolve("https://steamcommunity.com/id/gabe"))
    with pytest.raises(SteamApiError):
        asyncio.run(client.resolve("not a url at all"))
    assert client.requests_made == 0


def _malformed_app() -> web.Application:
    async def resolve_vanity(request: web.Request) -> web.Response:
        vanity = request.query.get("vanityurl", "")
        if vanity == "wordy":
            return web.json_response({"response": {"success": "yes", "steamid": GABE_ID}})
        if vanity == "binary":
            return web.Response(body=b"\xff\xfe\x00garbage", content_type="application/json")
        if vanity == "foreign":
            return web.json_response({"response": {"success": 1, "steamid": "٧٦٥٦١١٩٨٠٠٠٠٠٠٠٠٠"}})
        return web.json_response({"response": {"steamid": GABE_ID, "success": 1}})

    app = web.Application()
    app.router.add_get("/ISteamUser/ResolveVanityURL/v1/", resolve_vanity)
    return app


def test_malformed_upstream_payloads_raise_steam_api_error() -> None:
    async def scenario() -> list[str]:
        messages: list[str] = []
        async with TestServer(_malformed_app()) as server:
            client = SteamWebClient("api-key", base_url=str(server.make_url("/")))
            for vanity in ("wordy", "binary", "foreign"):
                with pytest.raises(SteamApiError) as info:
                    await client.resolve(vanity)
                messages.append(str(info.value))
        return messages

    wordy, binary, foreign = asyncio.run(scenario())
    assert "success flag" in wordy
    assert "invalid JSON" in binary
    assert "no steamid" in foreign


def test_non_ascii_profile_digits_are_rejected_locally() -> None:
    client = SteamWebClient("api-key", base_url="http://127.0.0.1:9")
    with pytest.raises(SteamApiError):
        asyncio.run(client.resolve("https://steamcommunity.com/profiles/٧٦٥٦١١٩٨٠٠٠٠٠٠٠٠٠"))
    assert client.requests_made == 0


def test_stale_cache_entries_are_evicted() -> None:
    async def scenario() -> SteamWebClient:
        async with TestServer(_malformed_app()) as server:
            client = SteamWebClient("api-key", base_url=str(server.make_url("/")), cache_ttl_sec=60)
            client._cache["old-a"] = ("1", 50.0)
            client._cache["old-b"] = ("2", 90.0)
            client._cache["fresh"] = ("3", 500.0)
            with pytest.raises(SteamApiError):
                await client.resolve("wordy", now=100.0)
            client._cache["wordy"] = ("4", 10.0)
            with pytest.raises(SteamApiError):
                await client.resolve("wordy", now=100.0)
            await client.resolve("gabe", now=100.0)
            return client

    client = asyncio.run(scenario())
    assert set(client._cache) == {"fresh", "gabe"}
    assert client._cache["gabe"] == (GABE_ID, 160.0)
