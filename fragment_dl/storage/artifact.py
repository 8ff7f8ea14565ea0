"""
The output file that receives reassembled fragments.

Writes go to a sibling ``<name>.part`` file which only replaces ``<name>`` once
the whole stream has been written, so a failed session never leaves something
that looks like a finished download.
"""

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

log = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".part"


class OutputArtifact:
    """An append-only output sink with atomic finalization."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.partial_path = self.path.with_name(self.path.name + PARTIAL_SUFFIX)
        self._file = None
        self.bytes_written = 0

    @property
    def is_open(self) -> bool:
        return self._file is not None

    async def open(self) -> None:
        """Creates a fresh partial file, truncating any leftover from an earlier run."""
        await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
        self._file = await aiofiles.open(self.partial_path, "wb")
        self.bytes_written = 0
        log.debug(f"Writing to partial artifact '{self.partial_path}'")

    async def write(self, data: bytes) -> None:
        if self._file is None:
            raise OSError("Output artifact is not open.")
        await self._file.write(data)
        self.bytes_written += len(data)

    async def finalize(self) -> Path:
        """Flushes the partial file and moves it over the final path."""
        await self._close()
        await aiofiles.os.replace(self.partial_path, self.path)
        log.debug(f"Finalized artifact '{self.path}' ({self.bytes_written} bytes)")
        return self.path

    async def discard(self) -> None:
        """Closes and deletes the partial file; the final path is left untouched."""
        try:
            await self._close()
        finally:
            if await aiofiles.os.path.exists(self.partial_path):
                await aiofiles.os.remove(self.partial_path)
                log.debug(f"Removed partial artifact '{self.partial_path}'")

    async def _close(self) -> None:
        if self._file is not None:
            file, self._file = self._file, None
            await file.close()

    async def __aenter__(self) -> "OutputArtifact":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            await self.finalize()
        else:
            await self.discard()
