"""Character appearance preset installer.

Presets already in a canonical location (CyberCAT's preset dir or the
Appearance Change Unlocker's gendered dirs) are trusted as they are.
Anywhere else, each ``.preset`` file is sniffed to find out which tool it
belongs to, and the directory is only accepted if every candidate in it is
recognized.
"""

from __future__ import annotations

import asyncio
import json
import logging
from functools import partial

from rippermod_installer.installers.errors import (
    AmbiguousContentConflict,
    InstallerError,
    NoLayoutMatchedError,
)
from rippermod_installer.installers.fallback import fail_after_warning_user_and_logging
from rippermod_installer.installers.filetree import (
    FILETREE_ROOT,
    FileTree,
    PathPredicate,
    extname,
    path_eq,
)
from rippermod_installer.installers.layouts import (
    DEFAULT_PRESET_RULES,
    LayoutKind,
    PresetLayoutRules,
)
from rippermod_installer.installers.loaders import FileLoader
from rippermod_installer.installers.outcome import (
    NO_MATCH,
    Conflict,
    Instructions,
    MoveInstruction,
    Outcome,
)
from rippermod_installer.installers.registry import register_installer
from rippermod_installer.installers.shared import (
    file_move,
    instructions_for_same_source_and_dest,
    use_first_matching_layout,
)
from rippermod_installer.installers.types import (
    InstallerType,
    InstallResult,
    ModInfo,
    TestResult,
)

logger = logging.getLogger(__name__)

_LABEL = "Preset"
_UTF8_BOM = b"\xef\xbb\xbf"


def _preset_matcher(rules: PresetLayoutRules) -> PathPredicate:
    return lambda p: path_eq(extname(p), rules.extension)


def find_preset_canon_cybercat_files(
    tree: FileTree,
    rules: PresetLayoutRules = DEFAULT_PRESET_RULES,
) -> list[str]:
    return tree.files_in(rules.cybercat_basedir, _preset_matcher(rules))


def find_preset_canon_unlocker_files(
    tree: FileTree,
    rules: PresetLayoutRules = DEFAULT_PRESET_RULES,
) -> list[str]:
    return [
        *tree.files_in(rules.unlocker_femdir, _preset_matcher(rules)),
        *tree.files_in(rules.unlocker_mascdir, _preset_matcher(rules)),
    ]


def detect_preset_layout(
    tree: FileTree,
    rules: PresetLayoutRules = DEFAULT_PRESET_RULES,
) -> bool:
    return tree.dir_with_some_under(FILETREE_ROOT, _preset_matcher(rules))


# ---------------------------------------------------------------------------
# Content sniffing
# ---------------------------------------------------------------------------


def classify_preset(
    path: str,
    content: bytes,
    rules: PresetLayoutRules = DEFAULT_PRESET_RULES,
) -> MoveInstruction | None:
    """Work out where a preset file belongs from its content.

    CyberCAT presets are JSON objects with a known set of top-level keys;
    Unlocker presets are recognized by markers, feminine first.  Returns
    ``None`` for anything else.
    """
    text = content.removeprefix(_UTF8_BOM).decode("utf-8", errors="replace")

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict) and rules.cybercat_required_keys <= data.keys():
        return file_move(rules.cybercat_basedir, path)

    if all(marker.search(text) for marker in rules.unlocker_fem_markers):
        return file_move(rules.unlocker_femdir, path)

    if all(marker.search(text) for marker in rules.unlocker_masc_markers):
        return file_move(rules.unlocker_mascdir, path)

    return None


async def _load_candidate(loader: FileLoader, path: str) -> bytes | None:
    try:
        return await loader.load(path)
    except OSError as exc:
        logger.warning("%s: couldn't read candidate %s: %s", _LABEL, path, exc)
        return None


async def preset_instructions_from_decoding_unknown_presets(
    kind: LayoutKind,
    dir_path: str,
    tree: FileTree,
    loader: FileLoader,
    rules: PresetLayoutRules = DEFAULT_PRESET_RULES,
) -> Outcome:
    """Sniff every preset directly in *dir_path*; all or nothing."""
    candidates = tree.files_in(dir_path, _preset_matcher(rules))
    contents = await asyncio.gather(*(_load_candidate(loader, p) for p in candidates))

    recognized: list[MoveInstruction] = []
    unrecognized: list[str] = []
    for path, content in zip(candidates, contents, strict=True):
        move = classify_preset(path, content, rules) if content is not None else None
        if move is None:
            unrecognized.append(path)
        else:
            recognized.append(move)

    if not recognized:
        return NO_MATCH

    if unrecognized:
        return Conflict(
            f"{_LABEL}: can't tell which files in '{dir_path or '.'}' are presets, "
            f"these aren't recognized: {', '.join(unrecognized)}"
        )

    return Instructions(kind=kind, instructions=tuple(recognized))


# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------


def preset_canon_cybercat_layout(tree: FileTree, rules: PresetLayoutRules) -> Outcome:
    files = find_preset_canon_cybercat_files(tree, rules)
    if not files:
        return NO_MATCH
    return Instructions(
        kind=LayoutKind.PRESET_CYBERCAT,
        instructions=tuple(instructions_for_same_source_and_dest(files)),
    )


def preset_canon_unlocker_layout(tree: FileTree, rules: PresetLayoutRules) -> Outcome:
    files = find_preset_canon_unlocker_files(tree, rules)
    if not files:
        return NO_MATCH
    return Instructions(
        kind=LayoutKind.PRESET_UNLOCKER,
        instructions=tuple(instructions_for_same_source_and_dest(files)),
    )


async def preset_legacy_unlocker_layout(
    tree: FileTree,
    loader: FileLoader,
    rules: PresetLayoutRules,
) -> Outcome:
    return await preset_instructions_from_decoding_unknown_presets(
        LayoutKind.PRESET_UNLOCKER_LEGACY, rules.unlocker_basedir, tree, loader, rules
    )


async def preset_toplevel_layout(
    tree: FileTree,
    loader: FileLoader,
    rules: PresetLayoutRules,
) -> Outcome:
    return await preset_instructions_from_decoding_unknown_presets(
        LayoutKind.PRESET_TOPLEVEL, FILETREE_ROOT, tree, loader, rules
    )


async def plan_preset_install(
    tree: FileTree,
    loader: FileLoader,
    rules: PresetLayoutRules = DEFAULT_PRESET_RULES,
) -> Outcome:
    """Pick the first layout, in priority order, that gives a decisive answer."""
    return await use_first_matching_layout(
        [
            partial(preset_canon_cybercat_layout, tree, rules),
            partial(preset_canon_unlocker_layout, tree, rules),
            partial(preset_legacy_unlocker_layout, tree, loader, rules),
            partial(preset_toplevel_layout, tree, loader, rules),
        ]
    )


# ---------------------------------------------------------------------------
# Installer
# ---------------------------------------------------------------------------


@register_installer
class PresetInstaller:
    type = InstallerType.PRESET
    priority = 20

    def __init__(self, rules: PresetLayoutRules = DEFAULT_PRESET_RULES) -> None:
        self.rules = rules

    def test(self, tree: FileTree) -> TestResult:
        return TestResult(supported=detect_preset_layout(tree, self.rules))

    async def install(self, tree: FileTree, mod_info: ModInfo) -> InstallResult:
        outcome = await plan_preset_install(tree, mod_info.loader, self.rules)

        if isinstance(outcome, Instructions):
            logger.info(
                "%s: planned '%s' (%s, %d files)",
                _LABEL,
                mod_info.name,
                outcome.kind,
                len(outcome.instructions),
            )
            return InstallResult(
                installer=self.type,
                kind=outcome.kind,
                instructions=outcome.instructions,
            )

        if isinstance(outcome, Conflict):
            error: InstallerError = AmbiguousContentConflict(outcome.reason)
        else:
            error = NoLayoutMatchedError(f"{_LABEL}: no layout recognized")

        fail_after_warning_user_and_logging(
            _LABEL,
            mod_info.name,
            tree,
            mod_info.warnings,
            "Didn't Find Expected Preset Installation!",
            error.message,
        )
