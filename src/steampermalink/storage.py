from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

import aiofiles

from steampermalink.services.logger_service import LoggerService


class JsonStore:
    """One JSON document on disk, mirrored by ``self.data``.

    A missing or malformed file loads as an empty document. Writes go through a
    temp file and ``os.replace``; an ``OSError`` while writing is logged and
    reported as ``False`` but never raised, so ``data`` can run ahead of disk.
    """

    def __init__(self, path: Path, logger: LoggerService | None = None) -> None:
        self.path = Path(path)
        self.logger = logger
        self._lock = asyncio.Lock()
        self.data: dict[str, Any] = {}

    async def load(self) -> None:
        async with self._lock:
            self.data = await self._read_unlocked()

    async def save(self) -> bool:
        async with self._lock:
            return await self._save_unlocked()

    async def _read_unlocked(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
            loaded = json.loads(raw)
        except (OSError, ValueError) as exc:
            self._log("store.load_failed", path=str(self.path), error=str(exc)[:300])
            return {}
        if not isinstance(loaded, dict):
            self._log("store.load_failed", path=str(self.path), error="document is not an object")
            return {}
        return loaded

    async def _save_unlocked(self) -> bool:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
                await f.write(json.dumps(self.data, indent=2, ensure_ascii=False))
            os.replace(tmp, self.path)
        except OSError as exc:
            self._log("store.save_failed", path=str(self.path), error=str(exc)[:300])
            return False
        return True

    def _log(self, event: str, **data: object) -> None:
        if self.logger is not None:
            self.logger.log(event, **data)
