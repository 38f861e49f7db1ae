"""Types at the seam between installers and whatever hosts them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from rippermod_installer.installers.fallback import LoggingWarningSink, WarningSink
from rippermod_installer.installers.filetree import FileTree
from rippermod_installer.installers.layouts import LayoutKind
from rippermod_installer.installers.loaders import FileLoader
from rippermod_installer.installers.outcome import MoveInstruction


class InstallerType(StrEnum):
    REDMOD = "redmod"
    PRESET = "preset"


@dataclass(frozen=True, slots=True)
class ModInfo:
    """What an installer knows about the mod it's planning for."""

    name: str
    loader: FileLoader
    warnings: WarningSink = field(default_factory=LoggingWarningSink)


@dataclass(frozen=True, slots=True)
class TestResult:
    __test__ = False  # not a pytest test class

    supported: bool
    required_files: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class InstallResult:
    installer: InstallerType
    kind: LayoutKind
    instructions: tuple[MoveInstruction, ...]


class Installer(Protocol):
    """Interface that every installer must satisfy."""

    type: InstallerType
    priority: int

    def test(self, tree: FileTree) -> TestResult: ...

    async def install(self, tree: FileTree, mod_info: ModInfo) -> InstallResult: ...
