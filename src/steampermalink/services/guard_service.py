from __future__ import annotations

import time

from steampermalink.storage import JsonStore

GuardVerdict = str  # disabled | duplicate | cooldown


class GuildSettingsService:
    def __init__(self, store: JsonStore) -> None:
        self.store = store

    def is_enabled(self, guild_id: int | str) -> bool:
        row = self.store.data.get(str(guild_id))
        if not isinstance(row, dict):
            return True
        return bool(row.get("enabled", True))

    async def set_enabled(self, guild_id: int | str, enabled: bool) -> bool:
        self.store.data[str(guild_id)] = {"enabled": bool(enabled)}
        await self.store.save()
        return bool(enabled)


class AntiSpamGuard:
    """Decides whether an automatic detection may reply.

    Replied message IDs expire after ``message_ttl_sec`` and are purged lazily on
    each check. The per-user map is never pruned.
    """

    def __init__(self, settings: GuildSettingsService, user_cooldown_sec: float = 8, message_ttl_sec: float = 3600) -> None:
        self.settings = settings
        self.user_cooldown_sec = float(user_cooldown_sec)
        self.message_ttl_sec = float(message_ttl_sec)
        self.replied_message_ids: dict[int, float] = {}
        self.last_reply_at_by_user: dict[int, float] = {}

    def check(self, guild_id: int, message_id: int, user_id: int, now: float | None = None) -> GuardVerdict | None:
        """Return the suppression reason, or ``None`` when a reply is allowed."""
        now_ts = float(now if now is not None else time.time())
        if not self.settings.is_enabled(guild_id):
            return "disabled"
        self.purge_expired(now_ts)
        if int(message_id) in self.replied_message_ids:
            return "duplicate"
        last = self.last_reply_at_by_user.get(int(user_id))
        if last is not None and now_ts - last < self.user_cooldown_sec:
            return "cooldown"
        return None

    def mark_replied(self, message_id: int, user_id: int, now: float | None = None) -> None:
        now_ts = float(now if now is not None else time.time())
        self.replied_message_ids[int(message_id)] = now_ts
        self.last_reply_at_by_user[int(user_id)] = now_ts

    def purge_expired(self, now: float | None = None) -> int:
        now_ts = float(now if now is not None else time.time())
        stale = [mid for mid, ts in self.replied_message_ids.items() if now_ts - ts > self.message_ttl_sec]
        for mid in stale:
            del self.replied_message_ids[mid]
        return len(stale)
