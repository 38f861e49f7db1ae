"""Install planning for mods waiting in the staging folder.

A staging entry is either an archive (``.zip``/``.7z``/``.rar``) or an
already-extracted directory.  Either way it is turned into a file tree plus
a loader for the few files whose content matters, then handed to an
installer.  Nothing is copied or extracted.
"""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import py7zr

from rippermod_installer.archive.handler import SUPPORTED_EXTENSIONS, open_archive
from rippermod_installer.installers import (
    FileTree,
    InstallResult,
    ModInfo,
    get_installer,
    select_installer,
)
from rippermod_installer.installers.fallback import LoggingWarningSink, WarningSink
from rippermod_installer.installers.loaders import ArchiveLoader, DirectoryLoader, FileLoader

logger = logging.getLogger(__name__)

_ARCHIVE_READ_ERRORS = (zipfile.BadZipFile, py7zr.Bad7zFile, OSError)


class UnsupportedSourceError(ValueError):
    """No installer (or not the requested one) can handle the source."""


class UnreadableSourceError(UnsupportedSourceError):
    """The staging archive is corrupt or cannot be listed."""


@dataclass(frozen=True, slots=True)
class StagingSource:
    name: str
    is_archive: bool
    size: int


def _is_archive(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS


def list_sources(staging_dir: Path) -> list[StagingSource]:
    """Return archives and extracted mod directories in the staging folder."""
    if not staging_dir.is_dir():
        return []
    sources: list[StagingSource] = []
    for p in sorted(staging_dir.iterdir(), key=lambda p: p.name.lower()):
        if p.is_dir():
            sources.append(StagingSource(name=p.name, is_archive=False, size=0))
        elif _is_archive(p):
            sources.append(StagingSource(name=p.name, is_archive=True, size=p.stat().st_size))
    return sources


def resolve_source(staging_dir: Path, source_name: str) -> Path:
    """Locate *source_name* inside the staging folder.

    Raises:
        ValueError: If the name escapes the staging folder or isn't an archive.
        FileNotFoundError: If nothing by that name exists.
    """
    path = staging_dir / source_name
    if not path.resolve().is_relative_to(staging_dir.resolve()):
        raise ValueError("Invalid source name")
    if not path.exists():
        raise FileNotFoundError(f"Source not found: {source_name}")
    if path.is_file() and not _is_archive(path):
        raise ValueError(f"Unsupported archive format: {path.suffix}")
    return path


@contextmanager
def open_source(path: Path) -> Iterator[tuple[FileTree, FileLoader]]:
    """Yield a file tree and loader for a staging directory or archive.

    Raises:
        UnreadableSourceError: If the archive is corrupt or can't be listed.
    """
    if path.is_dir():
        yield FileTree.from_directory(path), DirectoryLoader(path)
        return

    try:
        archive = open_archive(path)
    except _ARCHIVE_READ_ERRORS as exc:
        raise UnreadableSourceError(f"Cannot read archive '{path.name}': {exc}") from exc

    with archive:
        try:
            entries = archive.list_entries()
        except _ARCHIVE_READ_ERRORS as exc:
            raise UnreadableSourceError(f"Cannot read archive '{path.name}': {exc}") from exc
        yield FileTree.from_archive_entries(entries), ArchiveLoader(archive, entries)


def _default_mod_name(path: Path) -> str:
    return path.name if path.is_dir() else path.stem


async def plan_install(
    staging_dir: Path,
    source_name: str,
    *,
    mod_name: str | None = None,
    installer_type: str | None = None,
    warnings: WarningSink | None = None,
) -> InstallResult:
    """Compute the install plan for a staging source.

    With *installer_type* the named installer is used (and must support the
    source); otherwise the first supporting installer by priority is chosen.

    Raises:
        ValueError / FileNotFoundError: See ``resolve_source``.
        LookupError: If *installer_type* names no registered installer.
        UnsupportedSourceError: If no suitable installer supports the source.
        InstallRejected: If the installer finds the layout unusable.
    """
    path = resolve_source(staging_dir, source_name)
    name = mod_name or _default_mod_name(path)

    with open_source(path) as (tree, loader):
        if installer_type is not None:
            installer = get_installer(installer_type)
            if installer is None:
                raise LookupError(f"Unknown installer: {installer_type}")
            if not installer.test(tree).supported:
                raise UnsupportedSourceError(
                    f"Installer '{installer_type}' doesn't support '{source_name}'"
                )
        else:
            installer = select_installer(tree)
            if installer is None:
                raise UnsupportedSourceError(f"No installer supports '{source_name}'")

        logger.info("Planning '%s' with %s installer (%d files)", name, installer.type, len(tree))
        mod_info = ModInfo(name=name, loader=loader, warnings=warnings or LoggingWarningSink())
        return await installer.install(tree, mod_info)
