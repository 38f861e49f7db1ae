"""Failure handling at the installer boundary.

When no layout can be resolved the attempt is logged, the user is warned
with the list of files that were considered, and the attempt is rejected.
Nothing from a failed attempt is ever installed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import NoReturn, Protocol

from rippermod_installer.installers.errors import InstallRejected
from rippermod_installer.installers.filetree import FileTree

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StructureWarning:
    installer: str
    mod_name: str
    message: str
    files: list[str] = field(default_factory=list)


class WarningSink(Protocol):
    """Where user-facing warnings about unusable archives are sent."""

    def warn(self, warning: StructureWarning) -> None: ...


class LoggingWarningSink:
    """Default sink for headless use: the warning only reaches the log."""

    def warn(self, warning: StructureWarning) -> None:
        logger.warning(
            "%s: '%s' can't be installed: %s (%d files)",
            warning.installer,
            warning.mod_name,
            warning.message,
            len(warning.files),
        )


class CollectingWarningSink:
    """Keeps warnings so a caller (e.g. an HTTP response) can surface them."""

    def __init__(self) -> None:
        self.warnings: list[StructureWarning] = []

    def warn(self, warning: StructureWarning) -> None:
        self.warnings.append(warning)


def fail_after_warning_user_and_logging(
    installer: str,
    mod_name: str,
    tree: FileTree,
    warnings: WarningSink,
    message: str,
    reason: str,
) -> NoReturn:
    """Log the failure, warn the user, and reject the attempt."""
    files = tree.source_paths()

    logger.error("%s: %s Error: %s", installer, message, reason)
    logger.debug("%s: files considered: %s", installer, files)

    warnings.warn(
        StructureWarning(
            installer=installer,
            mod_name=mod_name,
            message=f"{message} {reason}",
            files=files,
        )
    )
    raise InstallRejected(installer, message, reason, files)
