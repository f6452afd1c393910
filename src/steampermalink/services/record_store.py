from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

from steampermalink.services.resolver_service import GroupIdentity
from steampermalink.storage import JsonStore

PAGE_SIZE = 10

UpsertResult = Literal["added", "exists", "updated"]


@dataclass
class Page:
    items: list[dict[str, Any]]
    page: int
    total_pages: int
    total: int
    page_size: int


def paginate(items: list[dict[str, Any]], page: int, page_size: int = PAGE_SIZE) -> Page:
    size = max(1, int(page_size))
    total = len(items)
    total_pages = max(1, math.ceil(total / size))
    try:
        requested = int(page)
    except (TypeError, ValueError):
        requested = 1
    current = min(max(requested, 1), total_pages)
    start = (current - 1) * size
    return Page(items=items[start : start + size], page=current, total_pages=total_pages, total=total, page_size=size)


def _clean_note(note: str | None) -> str | None:
    text = (note or "").strip()
    return text or None


class RecordCollection:
    """Keyed records grouped by guild scope, persisted after every mutation.

    ``store.data`` is ``{scope_id: {key: record}}``; dict order is insertion
    order, which is also list order.
    """

    def __init__(self, store: JsonStore) -> None:
        self.store = store

    def _scope(self, scope_id: int | str) -> dict[str, dict[str, Any]] | None:
        node = self.store.data.get(str(scope_id))
        return node if isinstance(node, dict) else None

    def _ensure_scope(self, scope_id: int | str) -> dict[str, dict[str, Any]]:
        node = self._scope(scope_id)
        if node is None:
            node = {}
            self.store.data[str(scope_id)] = node
        return node

    def get(self, scope_id: int | str, key: str) -> dict[str, Any] | None:
        node = self._scope(scope_id)
        if node is None:
            return None
        row = node.get(key)
        return row if isinstance(row, dict) else None

    def list(self, scope_id: int | str) -> list[dict[str, Any]]:
        node = self._scope(scope_id)
        if node is None:
            return []
        return [row for row in node.values() if isinstance(row, dict)]

    def count(self, scope_id: int | str) -> int:
        return len(self.list(scope_id))

    def page(self, scope_id: int | str, page: int, page_size: int = PAGE_SIZE) -> Page:
        return paginate(self.list(scope_id), page, page_size)

    async def _upsert(
        self,
        scope_id: int | str,
        key: str,
        note: str | None,
        fields: dict[str, Any],
        now: datetime | None = None,
    ) -> UpsertResult:
        clean = _clean_note(note)
        node = self._ensure_scope(scope_id)
        row = node.get(key)
        if not isinstance(row, dict):
            stamp = now or datetime.now(tz=timezone.utc)
            node[key] = {**fields, "note": clean, "added_at": stamp.isoformat()}
            await self.store.save()
            return "added"
        if clean is None or clean == row.get("note"):
            return "exists"
        row["note"] = clean
        await self.store.save()
        return "updated"

    async def remove(self, scope_id: int | str, key: str) -> bool:
        node = self._scope(scope_id)
        if node is None or key not in node:
            return False
        del node[key]
        if not node:
            self.store.data.pop(str(scope_id), None)
        await self.store.save()
        return True

    async def clear(self, scope_id: int | str) -> int:
        node = self._scope(scope_id)
        if node is None:
            return 0
        removed = len(node)
        self.store.data.pop(str(scope_id), None)
        await self.store.save()
        return removed


class ProfileStore(RecordCollection):
    async def upsert(
        self,
        scope_id: int | str,
        identity: str,
        note: str | None = None,
        now: datetime | None = None,
    ) -> UpsertResult:
        return await self._upsert(scope_id, identity, note, {"identity": identity}, now)


class GroupStore(RecordCollection):
    async def upsert(
        self,
        scope_id: int | str,
        group: GroupIdentity,
        note: str | None = None,
        now: datetime | None = None,
    ) -> UpsertResult:
        fields = {"key": group.key, "url": group.url, "gid": group.gid, "name": group.name}
        return await self._upsert(scope_id, group.key, note, fields, now)
