from rippermod_installer.archive.handler import (
    SUPPORTED_EXTENSIONS,
    ArchiveEntry,
    ArchiveHandler,
    open_archive,
)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "ArchiveEntry",
    "ArchiveHandler",
    "open_archive",
]
