"""Immutable, path-indexed view of the files inside a mod archive.

Paths are relative, ``/``-separated and carry no leading or trailing
separator; the archive root is the empty string.  Lookups are
case-insensitive because mod archives are overwhelmingly authored on
Windows, but every path handed back keeps the casing found in the archive.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rippermod_installer.archive.handler import ArchiveEntry

FILETREE_ROOT = ""

PathPredicate = Callable[[str], bool]


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def normalize_path(raw: str) -> str:
    """Convert an archive or filesystem path to the tree's canonical form.

    Raises:
        ValueError: If the path escapes the root via ``..``.
    """
    parts = [p for p in raw.replace("\\", "/").split("/") if p and p != "."]
    if ".." in parts:
        raise ValueError(f"Path escapes the archive root: {raw!r}")
    return "/".join(parts)


def join(*parts: str) -> str:
    return "/".join(p for p in parts if p)


def basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def dirname(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else FILETREE_ROOT


def extname(path: str) -> str:
    """Return the extension including the dot, ``""`` for dotfiles and bare names."""
    name = basename(path)
    idx = name.rfind(".")
    return name[idx:] if idx > 0 else ""


def path_eq(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def path_in(candidates: Iterable[str]) -> PathPredicate:
    """Build a predicate testing case-insensitive membership in *candidates*."""
    lowered = frozenset(c.lower() for c in candidates)
    return lambda path: path.lower() in lowered


def relative_to(path: str, prefix: str) -> str:
    """Strip directory *prefix* from *path*; the root prefix strips nothing."""
    if not prefix:
        return path
    if not path.lower().startswith(prefix.lower() + "/"):
        raise ValueError(f"{path!r} is not under {prefix!r}")
    return path[len(prefix) + 1 :]


def match_any(_path: str) -> bool:
    return True


def _sort_key(path: str) -> tuple[str, str]:
    return path.lower(), path


# ---------------------------------------------------------------------------
# FileTree
# ---------------------------------------------------------------------------


class FileTree:
    """Read-only set of file and directory paths with directory-scoped queries."""

    __slots__ = ("_files", "_dirs", "_child_files", "_child_dirs")

    def __init__(self, files: Iterable[str], dirs: Iterable[str] = ()) -> None:
        self._files: dict[str, str] = {}
        self._dirs: dict[str, str] = {FILETREE_ROOT: FILETREE_ROOT}
        self._child_files: dict[str, list[str]] = {}
        self._child_dirs: dict[str, list[str]] = {}

        for raw in dirs:
            self._add_dir(normalize_path(raw))
        for raw in files:
            path = normalize_path(raw)
            if not path:
                continue
            key = path.lower()
            if key in self._files:
                continue
            self._files[key] = path
            parent = dirname(path)
            self._add_dir(parent)
            self._child_files.setdefault(parent.lower(), []).append(path)

        clashes = sorted(self._files[k] for k in self._files.keys() & self._dirs.keys())
        if clashes:
            raise ValueError(f"Paths present as both file and directory: {', '.join(clashes)}")

        for children in (*self._child_files.values(), *self._child_dirs.values()):
            children.sort(key=_sort_key)

    def _add_dir(self, path: str) -> None:
        while path.lower() not in self._dirs:
            self._dirs[path.lower()] = path
            parent = dirname(path)
            self._child_dirs.setdefault(parent.lower(), []).append(path)
            path = parent

    # -- construction -------------------------------------------------------

    @classmethod
    def from_paths(cls, paths: Iterable[str]) -> FileTree:
        """Build a tree from raw paths; a trailing separator marks a directory."""
        files: list[str] = []
        dirs: list[str] = []
        for raw in paths:
            (dirs if raw.endswith(("/", "\\")) else files).append(raw)
        return cls(files, dirs)

    @classmethod
    def from_archive_entries(cls, entries: Iterable[ArchiveEntry]) -> FileTree:
        files: list[str] = []
        dirs: list[str] = []
        for entry in entries:
            (dirs if entry.is_dir else files).append(entry.filename)
        return cls(files, dirs)

    @classmethod
    def from_directory(cls, root: Path) -> FileTree:
        """Build a tree from an extracted mod directory on disk."""
        files: list[str] = []
        dirs: list[str] = []
        for p in root.rglob("*"):
            rel = p.relative_to(root).as_posix()
            if p.is_dir():
                dirs.append(rel)
            elif p.is_file():
                files.append(rel)
        return cls(files, dirs)

    # -- queries ------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._files)

    def dir_in_tree(self, dir_path: str) -> bool:
        return normalize_path(dir_path).lower() in self._dirs

    def file_in_tree(self, file_path: str) -> bool:
        return normalize_path(file_path).lower() in self._files

    def files_in(self, dir_path: str, predicate: PathPredicate = match_any) -> list[str]:
        """Files directly inside *dir_path* whose path satisfies *predicate*."""
        key = normalize_path(dir_path).lower()
        return [f for f in self._child_files.get(key, []) if predicate(f)]

    def files_under(self, dir_path: str, predicate: PathPredicate = match_any) -> list[str]:
        """Files anywhere below *dir_path* whose path satisfies *predicate*."""
        key = normalize_path(dir_path).lower()
        if key not in self._dirs:
            return []
        prefix = key + "/" if key else ""
        found = [
            path
            for lower, path in self._files.items()
            if lower.startswith(prefix) and predicate(path)
        ]
        return sorted(found, key=_sort_key)

    def subdirs_in(self, dir_path: str) -> list[str]:
        return list(self._child_dirs.get(normalize_path(dir_path).lower(), []))

    def subdir_names_in(self, dir_path: str) -> list[str]:
        return [basename(d) for d in self.subdirs_in(dir_path)]

    def dir_with_some_in(self, dir_path: str, predicate: PathPredicate) -> bool:
        return len(self.files_in(dir_path, predicate)) > 0

    def dir_with_some_under(self, dir_path: str, predicate: PathPredicate) -> bool:
        return len(self.files_under(dir_path, predicate)) > 0

    def find_direct_subdirs_with_some(
        self,
        dir_path: str,
        predicate: PathPredicate,
    ) -> list[str]:
        """Subdirectories of *dir_path* that directly contain a matching file."""
        return [d for d in self.subdirs_in(dir_path) if self.dir_with_some_in(d, predicate)]

    def source_paths(self) -> list[str]:
        """Every file path in the tree, sorted."""
        return sorted(self._files.values(), key=_sort_key)
