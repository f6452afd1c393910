from __future__ import annotations

from typing import Any

import discord

from steampermalink.services.directory_service import ImportReport
from steampermalink.services.record_store import Page
from steampermalink.services.resolver_service import profile_permalink

NOTE_PREVIEW_CHARS = 100
IMPORT_DEDUP_NOTE = "Repeated links, IDs and lines are counted once."


def permalink_card(permalinks: list[str], *, from_edit: bool) -> discord.Embed:
    embed = discord.Embed(
        title="Steam permalink" if len(permalinks) == 1 else "Steam permalinks",
        description="\n".join(permalinks)[:4000],
    )
    embed.set_footer(text="Detected after message edit." if from_edit else "Detected in your message.")
    return embed


def _note_suffix(row: dict[str, Any]) -> str:
    note = str(row.get("note") or "").strip()
    if not note:
        return ""
    if len(note) > NOTE_PREVIEW_CHARS:
        note = note[: NOTE_PREVIEW_CHARS - 3] + "..."
    return f" · {note}"


def _page_footer(page: Page) -> str:
    return f"Page {page.page}/{page.total_pages} · {page.total} total"


def profile_page_card(page: Page) -> discord.Embed:
    start = (page.page - 1) * page.page_size
    lines = [
        f"{start + index}. {profile_permalink(str(row.get('identity', '')))}{_note_suffix(row)}"
        for index, row in enumerate(page.items, start=1)
    ]
    embed = discord.Embed(title="Saved Steam profiles", description="\n".join(lines)[:4000] or "(empty)")
    embed.set_footer(text=_page_footer(page))
    return embed


def group_page_card(page: Page) -> discord.Embed:
    start = (page.page - 1) * page.page_size
    lines = [
        f"{start + index}. {row.get('url', '')} (`{row.get('key', '')}`){_note_suffix(row)}"
        for index, row in enumerate(page.items, start=1)
    ]
    embed = discord.Embed(title="Saved Steam groups", description="\n".join(lines)[:4000] or "(empty)")
    embed.set_footer(text=_page_footer(page))
    return embed


def import_report_card(report: ImportReport, *, kind: str, limit: int) -> discord.Embed:
    embed = discord.Embed(title=f"{kind.capitalize()} import", description=IMPORT_DEDUP_NOTE)
    embed.add_field(name="Processed", value=str(report.processed), inline=True)
    embed.add_field(name="Added", value=str(report.added), inline=True)
    embed.add_field(name="Updated", value=str(report.updated), inline=True)
    embed.add_field(name="Already saved", value=str(report.existed), inline=True)
    embed.add_field(name="Failed", value=str(report.failed), inline=True)
    if report.truncated:
        embed.set_footer(text=f"Only the first {limit} entries were processed; {report.truncated} skipped.")
    return embed
