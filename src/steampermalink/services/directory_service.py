from __future__ import annotations

from dataclasses import dataclass

from steampermalink.services.logger_service import LoggerService
from steampermalink.services.record_store import GroupStore, ProfileStore, UpsertResult
from steampermalink.services.resolver_service import IdentityResolver, profile_permalink

MAX_IMPORT_ITEMS = 200


@dataclass
class AddOutcome:
    result: UpsertResult | None
    key: str | None = None
    url: str | None = None

    @property
    def resolved(self) -> bool:
        return self.key is not None


@dataclass
class RemoveOutcome:
    removed: bool
    key: str | None = None


@dataclass
class ImportReport:
    processed: int = 0
    added: int = 0
    updated: int = 0
    existed: int = 0
    failed: int = 0
    truncated: int = 0

    def count(self, result: UpsertResult) -> None:
        if result == "added":
            self.added += 1
        elif result == "updated":
            self.updated += 1
        else:
            self.existed += 1


class DirectoryService:
    def __init__(
        self,
        resolver: IdentityResolver,
        profiles: ProfileStore,
        groups: GroupStore,
        logger: LoggerService,
        max_import_items: int = MAX_IMPORT_ITEMS,
    ) -> None:
        self.resolver = resolver
        self.profiles = profiles
        self.groups = groups
        self.logger = logger
        self.max_import_items = max(1, int(max_import_items))

    async def add_profile(self, scope_id: int, raw: str, note: str | None = None) -> AddOutcome:
        steam_id = await self.resolver.resolve_profile(raw)
        if steam_id is None:
            return AddOutcome(result=None)
        result = await self.profiles.upsert(scope_id, steam_id, note)
        self.logger.log("directory.profile_upsert", guild_id=scope_id, steam_id=steam_id, result=result)
        return AddOutcome(result=result, key=steam_id, url=profile_permalink(steam_id))

    async def remove_profile(self, scope_id: int, raw: str) -> RemoveOutcome:
        steam_id = await self.resolver.resolve_profile(raw)
        if steam_id is None:
            return RemoveOutcome(removed=False)
        removed = await self.profiles.remove(scope_id, steam_id)
        if removed:
            self.logger.log("directory.profile_removed", guild_id=scope_id, steam_id=steam_id)
        return RemoveOutcome(removed=removed, key=steam_id)

    async def add_group(self, scope_id: int, raw: str, note: str | None = None) -> AddOutcome:
        group = self.resolver.resolve_group(raw)
        if group is None:
            return AddOutcome(result=None)
        result = await self.groups.upsert(scope_id, group, note)
        self.logger.log("directory.group_upsert", guild_id=scope_id, key=group.key, result=result)
        return AddOutcome(result=result, key=group.key, url=group.url)

    async def remove_group(self, scope_id: int, raw: str) -> RemoveOutcome:
        group = self.resolver.resolve_group(raw)
        if group is None:
            return RemoveOutcome(removed=False)
        removed = await self.groups.remove(scope_id, group.key)
        if removed:
            self.logger.log("directory.group_removed", guild_id=scope_id, key=group.key)
        return RemoveOutcome(removed=removed, key=group.key)

    async def import_profiles(self, scope_id: int, candidates: list[str], note: str | None = None) -> ImportReport:
        batch, report = self._cap(candidates)
        for raw in batch:
            report.processed += 1
            steam_id = await self.resolver.resolve_profile(raw)
            if steam_id is None:
                report.failed += 1
                continue
            report.count(await self.profiles.upsert(scope_id, steam_id, note))
        self.logger.log("directory.profiles_imported", guild_id=scope_id, **vars(report))
        return report

    async def import_groups(self, scope_id: int, candidates: list[str], note: str | None = None) -> ImportReport:
        batch, report = self._cap(candidates)
        for raw in batch:
            report.processed += 1
            group = self.resolver.resolve_group(raw)
            if group is None:
                report.failed += 1
                continue
            report.count(await self.groups.upsert(scope_id, group, note))
        self.logger.log("directory.groups_imported", guild_id=scope_id, **vars(report))
        return report

    def _cap(self, candidates: list[str]) -> tuple[list[str], ImportReport]:
        batch = list(candidates[: self.max_import_items])
        return batch, ImportReport(truncated=max(0, len(candidates) - len(batch)))
