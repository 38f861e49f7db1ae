"""Entry point for the standalone install-plan service."""

import sys

import uvicorn

from rippermod_installer.config import settings


def main() -> None:
    # reload needs an import string rather than the app object
    uvicorn.run(
        "rippermod_installer.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=not getattr(sys, "frozen", False),
    )


if __name__ == "__main__":
    main()
