"""JSON-lines outcome sink: one record per line, flushed on every write."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import IO, Any

import structlog

logger = structlog.get_logger(__name__)


class JsonLinesWriter:
    """Append session outcomes and terminal failures to a ``.jsonl`` file."""

    name = "jsonl"

    def __init__(self) -> None:
        self._path: Path | None = None
        self._file: IO[str] | None = None
        self._records_written = 0
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def records_written(self) -> int:
        return self._records_written

    async def initialize(self, output_path: Path | str, *, append: bool = True) -> None:
        """Open the output file, creating parent directories as needed."""
        self._path = Path(output_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self._path.open("a" if append else "w", encoding="utf-8")
        logger.info("[OUTPUT] Outcome sink opened", path=str(self._path), append=append)

    async def write(self, record: dict[str, Any]) -> None:
        if self._file is None:
            raise RuntimeError("Writer not initialized")

        line = json.dumps(record, ensure_ascii=False, default=str)
        async with self._lock:
            self._file.write(line + "\n")
            self._file.flush()
            self._records_written += 1

        logger.debug(
            "[OUTPUT] Record written",
            video_id=record.get("video_id"),
            status=record.get("status"),
        )

    async def close(self) -> None:
        if self._file is None:
            return
        self._file.close()
        self._file = None
        logger.info(
            "[OUTPUT] Outcome sink closed",
            path=str(self._path),
            records=self._records_written,
        )

    async def __aenter__(self) -> JsonLinesWriter:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
