"""
Destinations for encoded chart bytes.
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Protocol, Union

from loguru import logger

from .errors import OutputError


class OutputSink(Protocol):
    def write(self, data: bytes) -> None: ...


class FileSink:
    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def write(self, data: bytes) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(data)
        except OSError as e:
            raise OutputError(f"error writing {self.path}: {e}") from e
        logger.info("Chart saved as {}", self.path)


class MemorySink:
    """Keeps written payloads in memory."""

    def __init__(self) -> None:
        self.payloads: List[bytes] = []

    def write(self, data: bytes) -> None:
        self.payloads.append(bytes(data))
