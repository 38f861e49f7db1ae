"""Helpers shared by installers: building move instructions, picking layouts."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence

from rippermod_installer.installers.filetree import basename, join, relative_to
from rippermod_installer.installers.outcome import (
    NO_MATCH,
    MoveInstruction,
    NoMatch,
    Outcome,
)

logger = logging.getLogger(__name__)

LayoutAttempt = Callable[[], Outcome | Awaitable[Outcome]]


def move_from_to(source_prefix: str, dest_prefix: str, path: str) -> MoveInstruction:
    """Move *path* so its location relative to *source_prefix* is kept under *dest_prefix*."""
    destination = join(dest_prefix, relative_to(path, source_prefix))
    return MoveInstruction(source=path, destination=destination)


def instructions_to_move_all(
    source_prefix: str,
    dest_prefix: str,
    files: Iterable[str],
) -> list[MoveInstruction]:
    return [move_from_to(source_prefix, dest_prefix, f) for f in files]


def instructions_for_same_source_and_dest(files: Iterable[str]) -> list[MoveInstruction]:
    return [MoveInstruction(source=f, destination=f) for f in files]


def file_move(basedir: str, path: str) -> MoveInstruction:
    """Move *path* flat into *basedir*, keeping only its file name."""
    return MoveInstruction(source=path, destination=join(basedir, basename(path)))


async def use_first_matching_layout(layouts: Sequence[LayoutAttempt]) -> Outcome:
    """Try *layouts* in priority order and return the first decisive outcome.

    ``NoMatch`` moves on to the next layout; ``Instructions`` and
    ``Conflict`` both end the search.  If nothing matches, ``NO_MATCH``.
    """
    for attempt in layouts:
        outcome = attempt()
        if inspect.isawaitable(outcome):
            outcome = await outcome
        if not isinstance(outcome, NoMatch):
            logger.debug("Layout %s decided: %s", getattr(attempt, "__name__", attempt), outcome)
            return outcome
    return NO_MATCH
