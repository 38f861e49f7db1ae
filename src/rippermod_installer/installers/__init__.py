"""Installers: layout detection, validation, and install-plan generation."""

from rippermod_installer.installers.errors import InstallerError, InstallRejected
from rippermod_installer.installers.filetree import FileTree
from rippermod_installer.installers.outcome import MoveInstruction
from rippermod_installer.installers.preset import PresetInstaller
from rippermod_installer.installers.redmod import REDmodInstaller
from rippermod_installer.installers.registry import (
    get_all_installers,
    get_installer,
    select_installer,
)
from rippermod_installer.installers.types import (
    Installer,
    InstallerType,
    InstallResult,
    ModInfo,
    TestResult,
)

__all__ = [
    "FileTree",
    "InstallRejected",
    "InstallResult",
    "Installer",
    "InstallerError",
    "InstallerType",
    "ModInfo",
    "MoveInstruction",
    "PresetInstaller",
    "REDmodInstaller",
    "TestResult",
    "get_all_installers",
    "get_installer",
    "select_installer",
]
