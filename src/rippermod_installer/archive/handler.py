"""Read-only archive access for ZIP, 7z, and RAR mod archives.

The planner never extracts an archive to disk on its own behalf; it only
needs the entry listing (to build a file tree) and the bytes of a handful of
small files (``info.json`` descriptors and ``.preset`` candidates).
"""

from __future__ import annotations

import shutil
import subprocess
import tempfile
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

SUPPORTED_EXTENSIONS = {".zip", ".7z", ".rar"}


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    filename: str
    is_dir: bool
    size: int = 0

    @property
    def path(self) -> str:
        """Entry name with forward slashes and no leading/trailing separators."""
        return self.filename.replace("\\", "/").strip("/")


class ArchiveHandler(ABC):
    """Base class for archive format handlers."""

    @abstractmethod
    def list_entries(self) -> list[ArchiveEntry]:
        """Return all entries in the archive."""

    @abstractmethod
    def read_file(self, entry: ArchiveEntry) -> bytes:
        """Read the contents of a single file entry.

        Raises:
            OSError: If the entry cannot be read.
        """

    @abstractmethod
    def close(self) -> None:
        """Release resources."""

    def __enter__(self) -> ArchiveHandler:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


class ZipHandler(ArchiveHandler):
    """Handler for .zip archives using stdlib zipfile."""

    def __init__(self, path: str | Path) -> None:
        self._zf = zipfile.ZipFile(path, "r")

    def list_entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(filename=info.filename, is_dir=info.is_dir(), size=info.file_size)
            for info in self._zf.infolist()
        ]

    def read_file(self, entry: ArchiveEntry) -> bytes:
        try:
            return self._zf.read(entry.filename)
        except (KeyError, zipfile.BadZipFile) as exc:
            raise OSError(f"Cannot read {entry.filename}: {exc}") from exc

    def close(self) -> None:
        self._zf.close()


class SevenZipHandler(ArchiveHandler):
    """Handler for .7z archives using py7zr.

    py7zr >= 1.0 has no in-memory ``read()``; single entries are extracted
    into a temporary directory and read back.
    """

    def __init__(self, path: str | Path) -> None:
        import py7zr

        self._path = Path(path)
        self._archive = py7zr.SevenZipFile(self._path, mode="r")

    def list_entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(
                filename=entry.filename,
                is_dir=entry.is_directory,
                size=getattr(entry, "uncompressed", 0) or 0,
            )
            for entry in self._archive.list()
        ]

    def read_file(self, entry: ArchiveEntry) -> bytes:
        self._archive.reset()
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir_path = Path(tmpdir).resolve()
            self._archive.extract(path=tmpdir, targets=[entry.filename])
            extracted = (tmpdir_path / entry.filename).resolve()
            if not extracted.is_file() or tmpdir_path not in extracted.parents:
                raise OSError(f"Cannot read {entry.filename} from {self._path.name}")
            return extracted.read_bytes()

    def close(self) -> None:
        self._archive.close()


def _find_7zip() -> str | None:
    """Locate the 7-Zip CLI executable."""
    common = [
        r"C:\Program Files\7-Zip\7z.exe",
        r"C:\Program Files (x86)\7-Zip\7z.exe",
    ]
    for p in common:
        if Path(p).exists():
            return p
    return shutil.which("7z")


class RarHandler(ArchiveHandler):
    """Handler for .rar archives using the 7-Zip CLI."""

    def __init__(self, path: str | Path) -> None:
        exe = _find_7zip()
        if not exe:
            raise FileNotFoundError(
                "RAR support requires 7-Zip. Install via: winget install 7zip.7zip"
            )
        self._exe = exe
        self._path = str(path)

    def list_entries(self) -> list[ArchiveEntry]:
        result = subprocess.run(
            [self._exe, "l", "-slt", self._path],
            capture_output=True,
            text=True,
            timeout=60,
        )
        if result.returncode != 0:
            raise OSError(f"7z list failed (exit {result.returncode}): {result.stderr}")

        entries: list[ArchiveEntry] = []
        current: dict[str, object] = {}

        def _flush() -> None:
            if current.get("path"):
                entries.append(
                    ArchiveEntry(
                        filename=str(current["path"]),
                        is_dir=bool(current.get("is_dir", False)),
                        size=int(current.get("size", 0)),  # type: ignore[call-overload]
                    )
                )

        for line in result.stdout.splitlines():
            line = line.strip()
            if line.startswith("Path = "):
                _flush()
                current = {"path": line[7:]}
            elif line.startswith("Size = "):
                try:
                    current["size"] = int(line[7:])
                except ValueError:
                    current["size"] = 0
            elif line.startswith("Folder = +"):
                current["is_dir"] = True
        _flush()

        # The first block describes the archive itself, not an entry
        return [e for e in entries if e.filename != self._path]

    def read_file(self, entry: ArchiveEntry) -> bytes:
        result = subprocess.run(
            [self._exe, "e", "-so", self._path, entry.filename],
            capture_output=True,
            timeout=120,
        )
        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace")
            raise OSError(f"7z extract failed (exit {result.returncode}): {stderr}")
        return result.stdout

    def close(self) -> None:
        pass


def open_archive(path: str | Path) -> ArchiveHandler:
    """Open an archive file and return the appropriate handler.

    Raises:
        ValueError: If the file extension is not supported.
        FileNotFoundError: For RAR files when 7-Zip is not installed.
        zipfile.BadZipFile: If a ZIP file is corrupt.
    """
    path = Path(path)
    ext = path.suffix.lower()

    if ext == ".zip":
        return ZipHandler(path)
    if ext == ".7z":
        return SevenZipHandler(path)
    if ext == ".rar":
        return RarHandler(path)

    raise ValueError(f"Unsupported archive format: {ext}")
