from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import discord
from discord import app_commands
from discord.ext import commands

from steampermalink.config import Settings
from steampermalink.services.attachment_service import (
    MAX_ATTACHMENT_BYTES,
    AttachmentDownloadError,
    AttachmentTooLargeError,
    download_text,
)
from steampermalink.services.detection_service import DetectionResult, DetectionService
from steampermalink.services.directory_service import DirectoryService, ImportReport
from steampermalink.services.extractor import bulk_candidates
from steampermalink.services.guard_service import AntiSpamGuard, GuildSettingsService
from steampermalink.services.keepalive_service import KeepAliveServer
from steampermalink.services.logger_service import LoggerService
from steampermalink.services.record_store import GroupStore, ProfileStore
from steampermalink.services.resolver_service import IdentityResolver
from steampermalink.services.steam_client import SteamWebClient
from steampermalink.storage import JsonStore
from steampermalink.ui.cards import group_page_card, import_report_card, profile_page_card
from steampermalink.utils.discord_utils import send_ephemeral

GUILD_ONLY_TEXT = "This command can only be used in a server."
COMMAND_FAILURE_TEXT = "Something went wrong while running that command."
STATE_CHOICES = [app_commands.Choice(name="on", value="on"), app_commands.Choice(name="off", value="off")]


@dataclass
class CommandReply:
    content: str | None = None
    embed: discord.Embed | None = None


class SteamPermalinkBot(commands.Bot):
    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.messages = True
        intents.message_content = True
        super().__init__(command_prefix=commands.when_mentioned, intents=intents, help_command=None)
        self.settings = settings
        self.logger = LoggerService()
        self.settings_store = JsonStore(settings.settings_path, self.logger)
        self.profiles_store = JsonStore(settings.profiles_path, self.logger)
        self.groups_store = JsonStore(settings.groups_path, self.logger)
        self.guild_settings = GuildSettingsService(self.settings_store)
        self.guard = AntiSpamGuard(
            self.guild_settings,
            user_cooldown_sec=settings.user_cooldown_sec,
            message_ttl_sec=settings.message_reply_ttl_sec,
        )
        self.steam = SteamWebClient(
            settings.steam_api_key,
            base_url=settings.steam_api_base_url,
            cache_ttl_sec=settings.steam_cache_ttl_sec,
        )
        self.resolver = IdentityResolver(self.steam, self.logger)
        self.profiles = ProfileStore(self.profiles_store)
        self.groups = GroupStore(self.groups_store)
        self.directory = DirectoryService(self.resolver, self.profiles, self.groups, self.logger)
        self.detection = DetectionService(self.resolver, self.guard, self.logger)
        self.keepalive = KeepAliveServer(settings.port, self.logger)
        self._register_commands()

    async def load_state(self) -> None:
        await self.settings_store.load()
        await self.profiles_store.load()
        await self.groups_store.load()

    async def setup_hook(self) -> None:
        await self.load_state()
        try:
            await self.keepalive.start()
        except OSError as exc:
            self.logger.log("keepalive.failed", port=self.settings.port, error=str(exc)[:300])
        await self._sync_commands()

    async def close(self) -> None:
        await self.keepalive.stop()
        await super().close()

    async def on_ready(self) -> None:
        self.logger.log("bot.ready", user=str(self.user), guilds=len(self.guilds))

    async def on_message(self, message: discord.Message) -> None:
        await self._run_detection(message, from_edit=False)

    async def on_message_edit(self, before: discord.Message, after: discord.Message) -> None:
        await self._run_detection(after, from_edit=True)

    async def _run_detection(self, message: Any, *, from_edit: bool) -> DetectionResult | None:
        try:
            return await self.detection.handle(message, from_edit=from_edit)
        except Exception as exc:  # noqa: BLE001
            self.logger.log(
                "detect.unexpected_error",
                message_id=getattr(message, "id", 0),
                from_edit=from_edit,
                error=f"{type(exc).__name__}: {exc}"[:300],
            )
            return None

    async def _sync_commands(self) -> None:
        try:
            if self.settings.guild_id:
                guild = discord.Object(id=self.settings.guild_id)
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                scope = f"guild:{self.settings.guild_id}"
            else:
                synced = await self.tree.sync()
                scope = "global"
            self.logger.log("commands.synced", scope=scope, count=len(synced))
        except discord.HTTPException as exc:
            self.logger.log("commands.sync_failed", error=str(exc)[:300])

    async def _run_command(
        self,
        interaction: discord.Interaction,
        name: str,
        action: Callable[[int], Awaitable[CommandReply]],
    ) -> None:
        if interaction.guild_id is None:
            await send_ephemeral(interaction, GUILD_ONLY_TEXT)
            return
        guild_id = int(interaction.guild_id)
        try:
            await interaction.response.defer(ephemeral=True, thinking=True)
        except discord.HTTPException as exc:
            self.logger.log("command.defer_failed", command=name, guild_id=guild_id, error=str(exc)[:300])
            return
        try:
            reply = await action(guild_id)
        except Exception as exc:  # noqa: BLE001
            self.logger.log(
                "command.failed",
                command=name,
                guild_id=guild_id,
                user_id=interaction.user.id,
                error=f"{type(exc).__name__}: {exc}"[:300],
            )
            reply = CommandReply(content=COMMAND_FAILURE_TEXT)
        try:
            await send_ephemeral(interaction, reply.content, embed=reply.embed)
        except discord.HTTPException as exc:
            self.logger.log("command.reply_failed", command=name, guild_id=guild_id, error=str(exc)[:300])

    def _register_commands(self) -> None:
        @self.tree.command(name="steampermalink", description="Enable or disable Steam permalink detection in this server")
        @app_commands.describe(state="on or off")
        @app_commands.choices(state=STATE_CHOICES)
        async def steampermalink(interaction: discord.Interaction, state: app_commands.Choice[str]) -> None:
            await self._run_command(interaction, "steampermalink", lambda gid: self._cmd_toggle(gid, state.value == "on"))

        profiles = app_commands.Group(name="profiles", description="Saved Steam profiles for this server", guild_only=True)

        @profiles.command(name="add", description="Save a Steam profile (link, vanity URL or SteamID64)")
        @app_commands.rename(target="input")
        @app_commands.describe(target="Profile link or SteamID64", note="Optional note")
        async def profiles_add(interaction: discord.Interaction, target: str, note: str | None = None) -> None:
            await self._run_command(interaction, "profiles.add", lambda gid: self._cmd_profiles_add(gid, target, note))

        @profiles.command(name="remove", description="Remove a saved Steam profile")
        @app_commands.rename(target="input")
        @app_commands.describe(target="Profile link or SteamID64")
        async def profiles_remove(interaction: discord.Interaction, target: str) -> None:
            await self._run_command(interaction, "profiles.remove", lambda gid: self._cmd_profiles_remove(gid, target))

        @profiles.command(name="list", description="List saved Steam profiles")
        @app_commands.describe(page="Page number (default 1)")
        async def profiles_list(interaction: discord.Interaction, page: int = 1) -> None:
            await self._run_command(interaction, "profiles.list", lambda gid: self._cmd_profiles_list(gid, page))

        @profiles.command(name="clear", description="Remove every saved Steam profile in this server")
        async def profiles_clear(interaction: discord.Interaction) -> None:
            await self._run_command(interaction, "profiles.clear", self._cmd_profiles_clear)

        @profiles.command(name="import", description="Import Steam profiles from text or a .txt file")
        @app_commands.describe(text="Links or SteamID64s", file="Text file with one link or ID per line")
        async def profiles_import(
            interaction: discord.Interaction,
            text: str | None = None,
            file: discord.Attachment | None = None,
        ) -> None:
            await self._run_command(interaction, "profiles.import", lambda gid: self._cmd_import("profiles", gid, text, file))

        groups = app_commands.Group(name="groups", description="Saved Steam groups for this server", guild_only=True)

        @groups.command(name="add", description="Save a Steam group (groups/<name> or gid/<id> link)")
        @app_commands.rename(target="input")
        @app_commands.describe(target="Group link or numeric group ID", note="Optional note")
        async def groups_add(interaction: discord.Interaction, target: str, note: str | None = None) -> None:
            await self._run_command(interaction, "groups.add", lambda gid: self._cmd_groups_add(gid, target, note))

        @groups.command(name="remove", description="Remove a saved Steam group by key (gid:<id> or groups:<name>)")
        @app_commands.describe(key="Group key as shown in /groups list, or the group link")
        async def groups_remove(interaction: discord.Interaction, key: str) -> None:
            await self._run_command(interaction, "groups.remove", lambda gid: self._cmd_groups_remove(gid, key))

        @groups.command(name="list", description="List saved Steam groups")
        @app_commands.describe(page="Page number (default 1)")
        async def groups_list(interaction: discord.Interaction, page: int = 1) -> None:
            await self._run_command(interaction, "groups.list", lambda gid: self._cmd_groups_list(gid, page))

        @groups.command(name="clear", description="Remove every saved Steam group in this server")
        async def groups_clear(interaction: discord.Interaction) -> None:
            await self._run_command(interaction, "groups.clear", self._cmd_groups_clear)

        @groups.command(name="import", description="Import Steam groups from text or a .txt file")
        @app_commands.describe(text="Group links or IDs", file="Text file with one link or ID per line")
        async def groups_import(
            interaction: discord.Interaction,
            text: str | None = None,
            file: discord.Attachment | None = None,
        ) -> None:
            await self._run_command(interaction, "groups.import", lambda gid: self._cmd_import("groups", gid, text, file))

        self.tree.add_command(profiles)
        self.tree.add_command(groups)

    async def _cmd_toggle(self, guild_id: int, enabled: bool) -> CommandReply:
        await self.guild_settings.set_enabled(guild_id, enabled)
        self.logger.log("settings.toggled", guild_id=guild_id, enabled=enabled)
        return CommandReply(content=f"SteamPermaLink is now **{'ON' if enabled else 'OFF'}** in this server.")

    async def _cmd_profiles_add(self, guild_id: int, raw: str, note: str | None) -> CommandReply:
        outcome = await self.directory.add_profile(guild_id, raw, note)
        if not outcome.resolved:
            return CommandReply(content="Could not resolve that Steam profile.")
        if outcome.result == "added":
            return CommandReply(content=f"Saved profile `{outcome.key}`: {outcome.url}")
        if outcome.result == "updated":
            return CommandReply(content=f"Updated the note for profile `{outcome.key}`.")
        return CommandReply(content=f"Profile `{outcome.key}` is already saved.")

    async def _cmd_profiles_remove(self, guild_id: int, raw: str) -> CommandReply:
        outcome = await self.directory.remove_profile(guild_id, raw)
        if outcome.key is None:
            return CommandReply(content="Could not resolve that Steam profile.")
        if outcome.removed:
            return CommandReply(content=f"Removed profile `{outcome.key}`.")
        return CommandReply(content=f"Profile `{outcome.key}` is not saved.")

    async def _cmd_profiles_list(self, guild_id: int, page: int) -> CommandReply:
        if self.profiles.count(guild_id) == 0:
            return CommandReply(content="No saved profiles yet.")
        return CommandReply(embed=profile_page_card(self.profiles.page(guild_id, page)))

    async def _cmd_profiles_clear(self, guild_id: int) -> CommandReply:
        removed = await self.profiles.clear(guild_id)
        self.logger.log("directory.profiles_cleared", guild_id=guild_id, removed=removed)
        return CommandReply(content=f"Cleared {removed} saved profile(s).")

    async def _cmd_groups_add(self, guild_id: int, raw: str, note: str | None) -> CommandReply:
        outcome = await self.directory.add_group(guild_id, raw, note)
        if not outcome.resolved:
            return CommandReply(content="Could not resolve that Steam group.")
        if outcome.result == "added":
            return CommandReply(content=f"Saved group `{outcome.key}`: {outcome.url}")
        if outcome.result == "updated":
            return CommandReply(content=f"Updated the note for group `{outcome.key}`.")
        return CommandReply(content=f"Group `{outcome.key}` is already saved.")

    async def _cmd_groups_remove(self, guild_id: int, key: str) -> CommandReply:
        outcome = await self.directory.remove_group(guild_id, key)
        if outcome.key is None:
            return CommandReply(content="Could not resolve that Steam group.")
        if outcome.removed:
            return CommandReply(content=f"Removed group `{outcome.key}`.")
        return CommandReply(content=f"Group `{outcome.key}` is not saved.")

    async def _cmd_groups_list(self, guild_id: int, page: int) -> CommandReply:
        if self.groups.count(guild_id) == 0:
            return CommandReply(content="No saved groups yet.")
        return CommandReply(embed=group_page_card(self.groups.page(guild_id, page)))

    async def _cmd_groups_clear(self, guild_id: int) -> CommandReply:
        removed = await self.groups.clear(guild_id)
        self.logger.log("directory.groups_cleared", guild_id=guild_id, removed=removed)
        return CommandReply(content=f"Cleared {removed} saved group(s).")

    async def _cmd_import(self, kind: str, guild_id: int, text: str | None, attachment: Any | None) -> CommandReply:
        parts = [text or ""]
        if attachment is not None:
            try:
                parts.append(await self._read_attachment(attachment))
            except AttachmentTooLargeError:
                return CommandReply(content=f"That file is too large (limit {MAX_ATTACHMENT_BYTES // 1024} KiB).")
            except AttachmentDownloadError as exc:
                self.logger.log("import.download_failed", guild_id=guild_id, error=str(exc)[:300])
                return CommandReply(content="Could not download that file.")
        candidates = bulk_candidates("\n".join(parts))
        if not candidates:
            return CommandReply(content="Nothing to import. Paste links or IDs, or attach a text file.")
        report: ImportReport
        if kind == "groups":
            report = await self.directory.import_groups(guild_id, candidates)
        else:
            report = await self.directory.import_profiles(guild_id, candidates)
        return CommandReply(embed=import_report_card(report, kind=kind, limit=self.directory.max_import_items))

    async def _read_attachment(self, attachment: Any) -> str:
        size = getattr(attachment, "size", None)
        return await download_text(
            str(attachment.url),
            MAX_ATTACHMENT_BYTES,
            declared_size=int(size) if size is not None else None,
        )


def main() -> None:
    settings = Settings.load()
    bot = SteamPermalinkBot(settings)
    bot.run(settings.discord_token)
