from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, TypeVar

T = TypeVar("T")

STEAM_HOST = "steamcommunity.com"

_PREFIX = r"(?:https?://)?(?:www\.)?steamcommunity\.com/"
# Must be followed by end of text or a delimiter so partial tokens are rejected.
_BOUNDARY = r"(?=\Z|[\s)\]}>\"'.,!?])"

STEAM_PROFILE_REGEX = re.compile(_PREFIX + r"profiles/([0-9]{15,25})" + _BOUNDARY, re.IGNORECASE)
STEAM_VANITY_ID_REGEX = re.compile(_PREFIX + r"id/([A-Za-z0-9_-]+)" + _BOUNDARY, re.IGNORECASE)
STEAM_USER_REGEX = re.compile(_PREFIX + r"user/([A-Za-z0-9_-]+)" + _BOUNDARY, re.IGNORECASE)
STEAM_GROUP_NAME_REGEX = re.compile(_PREFIX + r"groups/([A-Za-z0-9_-]+)" + _BOUNDARY, re.IGNORECASE)
STEAM_GROUP_ID_REGEX = re.compile(_PREFIX + r"gid/([0-9]+)" + _BOUNDARY, re.IGNORECASE)

BARE_ID_REGEX = re.compile(r"(?<![0-9])[0-9]{15,25}(?![0-9])")
PROFILE_ID_REGEX = re.compile(r"[0-9]{15,25}")
NUMERIC_REGEX = re.compile(r"[0-9]+")

_FENCED_BLOCK_REGEX = re.compile(r"```[\s\S]*?```")
_INLINE_CODE_REGEX = re.compile(r"`[^`]*`")


@dataclass
class ExtractedCandidates:
    profile_urls: list[str] = field(default_factory=list)
    vanity_urls: list[str] = field(default_factory=list)
    user_urls: list[str] = field(default_factory=list)
    group_name_urls: list[str] = field(default_factory=list)
    group_id_urls: list[str] = field(default_factory=list)

    @property
    def has_profiles(self) -> bool:
        return bool(self.profile_urls or self.vanity_urls or self.user_urls)

    @property
    def has_groups(self) -> bool:
        return bool(self.group_name_urls or self.group_id_urls)

    def is_empty(self) -> bool:
        return not (self.has_profiles or self.has_groups)


def unique_stable(items: Iterable[T]) -> list[T]:
    seen: set[T] = set()
    out: list[T] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def strip_code_blocks(text: str) -> str:
    return _INLINE_CODE_REGEX.sub("", _FENCED_BLOCK_REGEX.sub("", text or ""))


def clean_candidate(raw: str) -> str:
    """Trim whitespace and the ``<url>`` wrapping Discord uses to hide previews."""
    value = (raw or "").strip()
    if value.startswith("<") and value.endswith(">"):
        value = value[1:-1].strip()
    return value


def is_profile_id(value: str) -> bool:
    return PROFILE_ID_REGEX.fullmatch(value or "") is not None


def is_numeric(value: str) -> bool:
    # ASCII digits only; str.isdigit() also accepts other scripts.
    return NUMERIC_REGEX.fullmatch(value or "") is not None


def extract_full_matches(text: str, pattern: re.Pattern[str]) -> list[str]:
    return unique_stable(match.group(0) for match in pattern.finditer(text or ""))


def extract_first_group(text: str, pattern: re.Pattern[str]) -> str | None:
    match = pattern.search(text or "")
    return match.group(1) if match else None


def extract_candidates(text: str, *, strip_code: bool = True) -> ExtractedCandidates:
    content = strip_code_blocks(text) if strip_code else (text or "")
    return ExtractedCandidates(
        profile_urls=extract_full_matches(content, STEAM_PROFILE_REGEX),
        vanity_urls=extract_full_matches(content, STEAM_VANITY_ID_REGEX),
        user_urls=extract_full_matches(content, STEAM_USER_REGEX),
        group_name_urls=extract_full_matches(content, STEAM_GROUP_NAME_REGEX),
        group_id_urls=extract_full_matches(content, STEAM_GROUP_ID_REGEX),
    )


def bulk_candidates(text: str) -> list[str]:
    """Looser extraction used by imports.

    Each token that mentions the Steam host is a candidate, and so is every
    bare 15-25 digit ID in the remaining tokens. A non-blank line that yields
    neither is kept whole so it is counted (and fails) instead of being
    dropped. Repeated candidates, garbage lines included, are kept once.
    """
    out: list[str] = []
    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        found: list[str] = []
        for token in line.split():
            if STEAM_HOST in token.lower():
                cleaned = clean_candidate(token)
                if cleaned:
                    found.append(cleaned)
                continue
            found.extend(BARE_ID_REGEX.findall(token))
        out.extend(found or [line])
    return unique_stable(out)
