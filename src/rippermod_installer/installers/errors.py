"""Typed failures produced while planning an install.

Structural problems are returned as values (inside ``Err`` or as a
``Conflict`` outcome) and never raised inside the pipeline.  Only the
orchestrators raise, and only ``InstallRejected``, at the host boundary.
"""

from __future__ import annotations


class InstallerError(Exception):
    """Base class for all install-planning failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DescriptorLoadError(InstallerError):
    """``info.json`` was unreadable, malformed, or failed schema validation."""

    def __init__(self, path: str, cause: Exception | str) -> None:
        super().__init__(f"Error validating {path}: {cause}")
        self.path = path
        self.cause = cause


class NameMismatchError(InstallerError):
    """A REDmod directory name differs from the name declared in its descriptor."""

    def __init__(self, message: str, dirname: str, declared: str) -> None:
        super().__init__(message)
        self.dirname = dirname
        self.declared = declared


class CategoryCrossCheckError(InstallerError):
    """Declared content and shipped content disagree (e.g. custom sounds)."""


class MisplacedFileError(InstallerError):
    """Files of a known category sit outside the locations the game loads from."""

    def __init__(self, message: str, files: list[str]) -> None:
        super().__init__(message)
        self.files = files


class EnumerationConflictError(InstallerError):
    """A canonical REDmod base directory holds directories that are not REDmods."""

    def __init__(self, message: str, dirs: list[str]) -> None:
        super().__init__(message)
        self.dirs = dirs


class AmbiguousContentConflict(InstallerError):
    """Sniffed candidates were partly recognized and partly not."""


class NoLayoutMatchedError(InstallerError):
    """No layout detector fired even though the installer claimed support."""


class InstallRejected(InstallerError):
    """An install attempt failed; nothing from the attempt may be installed."""

    def __init__(
        self,
        installer: str,
        message: str,
        reason: str,
        files: list[str],
    ) -> None:
        super().__init__(message)
        self.installer = installer
        self.reason = reason
        self.files = files
