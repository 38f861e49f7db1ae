"""Outcome and Result types shared by every installer.

``Outcome`` is the three-way answer a layout gives: it produced a plan, it
does not apply (try the next layout), or it applies but the content is
wrong (stop).  ``Result`` threads typed errors through the REDmod per-unit
pipeline without raising.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from rippermod_installer.installers.errors import InstallerError
from rippermod_installer.installers.layouts import LayoutKind

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class MoveInstruction:
    source: str
    destination: str

    def __post_init__(self) -> None:
        if not self.source or not self.destination:
            raise ValueError(
                f"Empty path in move instruction: {self.source!r} -> {self.destination!r}"
            )


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Instructions:
    kind: LayoutKind
    instructions: tuple[MoveInstruction, ...]


@dataclass(frozen=True, slots=True)
class NoMatch:
    pass


@dataclass(frozen=True, slots=True)
class Conflict:
    reason: str


NO_MATCH = NoMatch()

Outcome = Instructions | NoMatch | Conflict


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Err:
    error: InstallerError


Result = Ok[T] | Err


def and_then(result: Result[T], fn: Callable[[T], Result[U]]) -> Result[U]:
    """Feed an ``Ok`` value into *fn*; pass an ``Err`` through untouched."""
    if isinstance(result, Err):
        return result
    return fn(result.value)


def traverse(items: Iterable[T], fn: Callable[[T], Result[list[U]]]) -> Result[list[U]]:
    """Apply *fn* to each item in order, stopping at the first ``Err``.

    The ``Ok`` lists are concatenated in item order.
    """
    collected: list[U] = []
    for item in items:
        result = fn(item)
        if isinstance(result, Err):
            return result
        collected.extend(result.value)
    return Ok(collected)


def first_err(results: Iterable[Result[list[T]]]) -> Result[list[T]]:
    """Concatenate already-computed results, or return the first ``Err`` in order."""
    return traverse(results, lambda r: r)
