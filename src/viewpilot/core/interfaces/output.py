"""Output writer interface definitions."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IOutputWriter(Protocol):
    """Contract for outcome sinks."""

    @property
    def name(self) -> str:
        """Writer name."""
        ...

    @property
    def records_written(self) -> int:
        """Number of records written."""
        ...

    async def initialize(self, output_path: Path | str, *, append: bool = True) -> None:
        """
        Initialize the writer.

        Args:
            output_path: Path to output file
            append: Whether to append to an existing file
        """
        ...

    async def write(self, record: dict[str, Any]) -> None:
        """
        Write a single record.

        Args:
            record: Outcome record to write
        """
        ...

    async def close(self) -> None:
        """Flush and release resources."""
        ...
