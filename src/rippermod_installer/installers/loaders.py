"""File loaders: how installers read the few files whose content matters.

All loaders address files by their file-tree path.  Blocking reads are
pushed off the event loop with ``asyncio.to_thread`` so sibling reads can
overlap.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

from rippermod_installer.archive.handler import ArchiveEntry, ArchiveHandler
from rippermod_installer.installers.filetree import normalize_path

logger = logging.getLogger(__name__)


@runtime_checkable
class FileLoader(Protocol):
    async def load(self, relative_path: str) -> bytes:
        """Return the bytes of *relative_path*.

        Raises:
            OSError: If the file cannot be read.
        """
        ...


class DirectoryLoader:
    """Reads files from an extracted mod directory (the staging copy)."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    async def load(self, relative_path: str) -> bytes:
        target = (self._root / normalize_path(relative_path)).resolve()
        if not target.is_relative_to(self._root):
            raise PermissionError(f"Refusing to read outside staging dir: {relative_path}")
        logger.debug("Reading %s", target)
        return await asyncio.to_thread(target.read_bytes)


class ArchiveLoader:
    """Reads files straight out of an open archive without extracting it.

    Archive handlers are not safe for concurrent use, so reads are
    serialised on a lock while still running off the event loop.
    """

    def __init__(self, handler: ArchiveHandler, entries: list[ArchiveEntry] | None = None) -> None:
        self._handler = handler
        self._lock = threading.Lock()
        self._entries = {
            normalize_path(e.filename).lower(): e
            for e in (entries or handler.list_entries())
            if not e.is_dir
        }

    def _read(self, entry: ArchiveEntry) -> bytes:
        with self._lock:
            return self._handler.read_file(entry)

    async def load(self, relative_path: str) -> bytes:
        entry = self._entries.get(normalize_path(relative_path).lower())
        if entry is None:
            raise FileNotFoundError(f"No such entry in archive: {relative_path}")
        return await asyncio.to_thread(self._read, entry)


class InMemoryLoader:
    """Serves file contents from a mapping; for previews and tests."""

    def __init__(self, contents: Mapping[str, bytes | str]) -> None:
        self._contents = {
            normalize_path(k).lower(): v.encode() if isinstance(v, str) else v
            for k, v in contents.items()
        }

    async def load(self, relative_path: str) -> bytes:
        try:
            return self._contents[normalize_path(relative_path).lower()]
        except KeyError:
            raise FileNotFoundError(f"No such file: {relative_path}") from None
