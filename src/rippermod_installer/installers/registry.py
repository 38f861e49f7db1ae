"""Installer registry and auto-selection."""

from __future__ import annotations

import logging

from rippermod_installer.installers.filetree import FileTree
from rippermod_installer.installers.types import Installer, InstallerType

logger = logging.getLogger(__name__)

_INSTALLERS: list[type[Installer]] = []


def register_installer(cls: type[Installer]) -> type[Installer]:
    """Class decorator that adds an installer to the global registry."""
    if cls not in _INSTALLERS:
        _INSTALLERS.append(cls)
    return cls


def get_all_installers() -> list[Installer]:
    """Instantiate all registered installers, highest priority first."""
    installers = [cls() for cls in _INSTALLERS]
    return sorted(installers, key=lambda i: i.priority)


def get_installer(installer_type: InstallerType | str) -> Installer | None:
    for installer in get_all_installers():
        if installer.type == installer_type:
            return installer
    return None


def select_installer(tree: FileTree) -> Installer | None:
    """Return the first installer, by priority, that supports *tree*."""
    for installer in get_all_installers():
        if installer.test(tree).supported:
            logger.debug("Selected installer %s", installer.type)
            return installer
    return None
