from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import discord

from steampermalink.services.extractor import extract_candidates, unique_stable
from steampermalink.services.guard_service import AntiSpamGuard
from steampermalink.services.logger_service import LoggerService
from steampermalink.services.resolver_service import IdentityResolver, profile_permalink
from steampermalink.ui.cards import permalink_card


@dataclass
class DetectionResult:
    status: str  # success | no_match | resolution_failed | transport_failed | skipped
    permalinks: list[str] = field(default_factory=list)
    reason: str = ""


class DetectionService:
    def __init__(self, resolver: IdentityResolver, guard: AntiSpamGuard, logger: LoggerService) -> None:
        self.resolver = resolver
        self.guard = guard
        self.logger = logger

    async def detect(self, content: str) -> DetectionResult:
        candidates = extract_candidates(content)
        if candidates.is_empty():
            return DetectionResult(status="no_match")

        permalinks: list[str] = []
        for url in [*candidates.profile_urls, *candidates.vanity_urls, *candidates.user_urls]:
            steam_id = await self.resolver.resolve_profile(url)
            if steam_id:
                permalinks.append(profile_permalink(steam_id))

        seen_group_keys: set[str] = set()
        for url in [*candidates.group_id_urls, *candidates.group_name_urls]:
            group = self.resolver.resolve_group(url)
            if group is None or group.key in seen_group_keys:
                continue
            seen_group_keys.add(group.key)
            permalinks.append(group.url)

        permalinks = unique_stable(permalinks)
        if not permalinks:
            return DetectionResult(status="resolution_failed")
        return DetectionResult(status="success", permalinks=permalinks)

    async def handle(self, message: Any, *, from_edit: bool = False) -> DetectionResult:
        content = str(getattr(message, "content", "") or "")
        if not content.strip():
            return DetectionResult(status="skipped", reason="empty")
        author = message.author
        if getattr(author, "bot", False):
            return DetectionResult(status="skipped", reason="bot_author")
        guild = getattr(message, "guild", None)
        if guild is None:
            return DetectionResult(status="skipped", reason="no_guild")

        now = time.time()
        verdict = self.guard.check(guild.id, message.id, author.id, now)
        if verdict:
            return DetectionResult(status="skipped", reason=verdict)

        result = await self.detect(content)
        if result.status != "success":
            return result

        try:
            await message.reply(
                embed=permalink_card(result.permalinks, from_edit=from_edit),
                allowed_mentions=discord.AllowedMentions.none(),
            )
        except discord.HTTPException as exc:
            self.logger.log("detect.send_failed", guild_id=guild.id, message_id=message.id, error=str(exc)[:300])
            return DetectionResult(status="transport_failed", permalinks=result.permalinks, reason=str(exc)[:300])

        self.guard.mark_replied(message.id, author.id, now)
        self.logger.log(
            "detect.reply_sent",
            guild_id=guild.id,
            message_id=message.id,
            user_id=author.id,
            count=len(result.permalinks),
            from_edit=from_edit,
        )
        return result
