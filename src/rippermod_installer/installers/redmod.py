"""REDmod installer: ``info.json``-described mods installed under ``mods/``.

An archive may carry REDmods in three layouts, tried in this order:

* canonical: ``mods/<Name>/info.json`` plus content dirs, possibly several mods
* named: ``<Name>/info.json`` plus content dirs at the archive root
* toplevel: ``info.json`` plus content dirs directly at the archive root

Each mod directory found is validated independently (descriptor, then every
content category in a fixed order) and the resulting move instructions are
concatenated.  One failing mod fails the whole archive.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import ValidationError

from rippermod_installer.installers.errors import (
    CategoryCrossCheckError,
    DescriptorLoadError,
    EnumerationConflictError,
    MisplacedFileError,
    NameMismatchError,
    NoLayoutMatchedError,
)
from rippermod_installer.installers.fallback import fail_after_warning_user_and_logging
from rippermod_installer.installers.filetree import (
    FILETREE_ROOT,
    FileTree,
    PathPredicate,
    basename,
    extname,
    join,
    path_eq,
    path_in,
)
from rippermod_installer.installers.layouts import (
    DEFAULT_REDMOD_RULES,
    LayoutKind,
    REDmodLayoutRules,
)
from rippermod_installer.installers.loaders import FileLoader
from rippermod_installer.installers.outcome import (
    Err,
    MoveInstruction,
    Ok,
    Result,
    and_then,
    first_err,
    traverse,
)
from rippermod_installer.installers.registry import register_installer
from rippermod_installer.installers.shared import instructions_to_move_all
from rippermod_installer.installers.types import (
    InstallerType,
    InstallResult,
    ModInfo,
    TestResult,
)
from rippermod_installer.schemas.redmod import REDmodInfo

logger = logging.getLogger(__name__)

_LABEL = "REDmod"
_UTF8_BOM = b"\xef\xbb\xbf"


@dataclass(frozen=True, slots=True)
class REDmodUnit:
    """One mod directory inside the archive, with its decoded descriptor."""

    info: REDmodInfo
    relative_source_dir: str
    relative_dest_dir: str
    tree: FileTree


ModDirsFunc = Callable[[FileTree, REDmodLayoutRules], Result[list[str]]]
SublayoutFunc = Callable[[REDmodUnit, REDmodLayoutRules], Result[list[MoveInstruction]]]


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------


def _info_json_matcher(rules: REDmodLayoutRules) -> PathPredicate:
    return lambda p: path_eq(basename(p), rules.info_filename)


def _extension_matcher(extensions: tuple[str, ...]) -> PathPredicate:
    allowed = path_in(extensions)
    return lambda p: allowed(extname(p))


def _has_any_subtype_dir(tree: FileTree, dir_path: str, rules: REDmodLayoutRules) -> bool:
    is_subtype = path_in(rules.subtype_dirnames)
    return any(is_subtype(name) for name in tree.subdir_names_in(dir_path))


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def find_canonical_redmod_dirs(
    tree: FileTree,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> list[str]:
    return [
        d
        for d in tree.find_direct_subdirs_with_some(rules.basedir, _info_json_matcher(rules))
        if _has_any_subtype_dir(tree, d, rules)
    ]


def find_named_redmod_dirs(
    tree: FileTree,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> list[str]:
    return [
        d
        for d in tree.find_direct_subdirs_with_some(FILETREE_ROOT, _info_json_matcher(rules))
        if _has_any_subtype_dir(tree, d, rules)
    ]


def detect_canonical_redmod_layout(
    tree: FileTree,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> bool:
    return tree.dir_in_tree(rules.basedir)


def detect_named_redmod_layout(
    tree: FileTree,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> bool:
    return len(find_named_redmod_dirs(tree, rules)) > 0


def detect_toplevel_redmod_layout(
    tree: FileTree,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> bool:
    has_info = tree.dir_with_some_in(FILETREE_ROOT, _info_json_matcher(rules))
    return has_info and _has_any_subtype_dir(tree, FILETREE_ROOT, rules)


def detect_redmod_layout(
    tree: FileTree,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> bool:
    return (
        detect_canonical_redmod_layout(tree, rules)
        or detect_named_redmod_layout(tree, rules)
        or detect_toplevel_redmod_layout(tree, rules)
    )


# ---------------------------------------------------------------------------
# Enumeration
# ---------------------------------------------------------------------------


def canonical_layout_mod_dirs(tree: FileTree, rules: REDmodLayoutRules) -> Result[list[str]]:
    """Every directory under the base dir must be a valid REDmod, or none are used."""
    valid_dirs = find_canonical_redmod_dirs(tree, rules)
    is_valid = path_in(valid_dirs)
    invalid_dirs = [d for d in tree.subdirs_in(rules.basedir) if not is_valid(d)]

    if invalid_dirs:
        return Err(
            EnumerationConflictError(
                f"{_LABEL}: Canon Layout: these directories don't look like valid REDmods: "
                f"{', '.join(invalid_dirs)}",
                invalid_dirs,
            )
        )
    if not valid_dirs:
        return Err(
            EnumerationConflictError(
                f"{_LABEL}: Canon Layout: no REDmod directories found in {rules.basedir}",
                [],
            )
        )
    return Ok(valid_dirs)


def named_layout_mod_dirs(tree: FileTree, rules: REDmodLayoutRules) -> Result[list[str]]:
    # Unlike the canonical layout, sibling directories that aren't REDmods are
    # not rejected here; they are simply left out of the plan.
    return Ok(find_named_redmod_dirs(tree, rules))


def toplevel_layout_mod_dirs(_tree: FileTree, _rules: REDmodLayoutRules) -> Result[list[str]]:
    return Ok([FILETREE_ROOT])


DetectFunc = Callable[[FileTree, REDmodLayoutRules], bool]

_LAYOUTS: tuple[tuple[LayoutKind, DetectFunc, ModDirsFunc], ...] = (
    (LayoutKind.REDMOD_CANONICAL, detect_canonical_redmod_layout, canonical_layout_mod_dirs),
    (LayoutKind.REDMOD_NAMED, detect_named_redmod_layout, named_layout_mod_dirs),
    (LayoutKind.REDMOD_TOPLEVEL, detect_toplevel_redmod_layout, toplevel_layout_mod_dirs),
)


def first_matching_layout(
    tree: FileTree,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> tuple[LayoutKind, ModDirsFunc] | None:
    for kind, detect, mod_dirs in _LAYOUTS:
        if detect(tree, rules):
            return kind, mod_dirs
    return None


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


async def read_redmod_info(
    loader: FileLoader,
    tree: FileTree,
    mod_dir: str,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> Result[REDmodInfo]:
    """Load and validate ``info.json`` for the REDmod in *mod_dir*."""
    found = tree.files_in(mod_dir, _info_json_matcher(rules))
    info_path = found[0] if found else join(mod_dir, rules.info_filename)

    try:
        raw = await loader.load(info_path)
    except OSError as exc:
        return Err(DescriptorLoadError(info_path, exc))

    try:
        info = REDmodInfo.model_validate_json(raw.removeprefix(_UTF8_BOM))
    except ValidationError as exc:
        return Err(DescriptorLoadError(info_path, _describe_validation_error(exc)))

    return Ok(info)


def collect_path_details(
    relative_source_dir: str,
    info: REDmodInfo,
    tree: FileTree,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> REDmodUnit:
    return REDmodUnit(
        info=info,
        relative_source_dir=relative_source_dir,
        relative_dest_dir=join(rules.basedir, info.name),
        tree=tree,
    )


# ---------------------------------------------------------------------------
# Sublayouts
# ---------------------------------------------------------------------------


def info_json_layout_and_validation(
    unit: REDmodUnit,
    rules: REDmodLayoutRules,
) -> Result[list[MoveInstruction]]:
    dirname = basename(unit.relative_source_dir)

    # The toplevel layout has no directory of its own to compare against
    is_toplevel = unit.relative_source_dir == FILETREE_ROOT
    if not is_toplevel and not path_eq(dirname, unit.info.name):
        return Err(
            NameMismatchError(
                f"REDmod directory '{dirname}' does not match mod name "
                f"'{unit.info.name}' in {rules.info_filename}",
                dirname,
                unit.info.name,
            )
        )

    info_files = unit.tree.files_in(unit.relative_source_dir, _info_json_matcher(rules))
    return Ok(
        instructions_to_move_all(unit.relative_source_dir, unit.relative_dest_dir, info_files)
    )


def archive_layout_and_validation(
    unit: REDmodUnit,
    rules: REDmodLayoutRules,
) -> Result[list[MoveInstruction]]:
    archive_dir = join(unit.relative_source_dir, rules.archives_dirname)
    archives = unit.tree.files_under(archive_dir, _extension_matcher(rules.archives_extensions))
    return Ok(
        instructions_to_move_all(unit.relative_source_dir, unit.relative_dest_dir, archives)
    )


def custom_sound_layout_and_validation(
    unit: REDmodUnit,
    rules: REDmodLayoutRules,
) -> Result[list[MoveInstruction]]:
    sounds_dir = join(unit.relative_source_dir, rules.customsounds_dirname)
    sound_files = unit.tree.files_under(
        sounds_dir, _extension_matcher(rules.customsounds_extensions)
    )

    sounds_required = unit.info.declares_sound_content
    has_sound_files = len(sound_files) > 0

    if sounds_required and not has_sound_files:
        return Err(
            CategoryCrossCheckError(
                f"Custom Sound sublayout: {rules.info_filename} declares customSounds "
                f"but there are no sound files in {sounds_dir or '.'}!"
            )
        )
    if has_sound_files and not sounds_required:
        return Err(
            CategoryCrossCheckError(
                f"Custom Sound sublayout: there are sound files but {rules.info_filename} "
                "doesn't declare customSounds!"
            )
        )

    return Ok(
        instructions_to_move_all(unit.relative_source_dir, unit.relative_dest_dir, sound_files)
    )


def script_layout_and_validation(
    unit: REDmodUnit,
    rules: REDmodLayoutRules,
) -> Result[list[MoveInstruction]]:
    scripts_dir = join(unit.relative_source_dir, rules.scripts_dirname)
    is_script = _extension_matcher(rules.scripts_extensions)

    all_scripts = unit.tree.files_under(scripts_dir, is_script)
    in_valid_subdir = path_in(
        f
        for subdir in rules.scripts_valid_subdirs
        for f in unit.tree.files_under(join(scripts_dir, subdir), is_script)
    )

    invalid = [f for f in all_scripts if not in_valid_subdir(f)]
    if invalid:
        return Err(
            MisplacedFileError(
                f"Script sublayout: these files don't look like valid REDmod scripts: "
                f"{', '.join(invalid)}",
                invalid,
            )
        )

    return Ok(
        instructions_to_move_all(unit.relative_source_dir, unit.relative_dest_dir, all_scripts)
    )


def tweak_layout_and_validation(
    unit: REDmodUnit,
    rules: REDmodLayoutRules,
) -> Result[list[MoveInstruction]]:
    tweaks_dir = join(unit.relative_source_dir, rules.tweaks_dirname)
    is_tweak = _extension_matcher(rules.tweaks_extensions)

    all_tweaks = unit.tree.files_under(tweaks_dir, is_tweak)
    in_valid_subdir = path_in(
        unit.tree.files_under(join(tweaks_dir, rules.tweaks_valid_subdir), is_tweak)
    )

    invalid = [f for f in all_tweaks if not in_valid_subdir(f)]
    if invalid:
        return Err(
            MisplacedFileError(
                f"Tweak sublayout: these files don't look like valid REDmod tweaks: "
                f"{', '.join(invalid)}",
                invalid,
            )
        )

    return Ok(
        instructions_to_move_all(unit.relative_source_dir, unit.relative_dest_dir, all_tweaks)
    )


def extra_files_layout_and_validation(
    unit: REDmodUnit,
    rules: REDmodLayoutRules,
) -> Result[list[MoveInstruction]]:
    """Anything outside the known content dirs is installed as-is, with a warning."""
    is_info_json = _info_json_matcher(rules)
    is_subtype = path_in(rules.subtype_dirnames)
    src = unit.relative_source_dir

    loose_files = unit.tree.files_in(src, lambda p: not is_info_json(p))
    files_in_unhandled_subdirs = [
        f
        for subdir in unit.tree.subdir_names_in(src)
        if not is_subtype(subdir)
        for f in unit.tree.files_under(join(src, subdir))
    ]
    remaining = sorted([*loose_files, *files_in_unhandled_subdirs], key=str.lower)

    if remaining:
        logger.warning(
            "%s: found some extra files in '%s', installing them too: %s",
            _LABEL,
            unit.info.name,
            remaining,
        )

    return Ok(instructions_to_move_all(src, unit.relative_dest_dir, remaining))


REDMOD_SUBLAYOUTS: tuple[SublayoutFunc, ...] = (
    info_json_layout_and_validation,
    archive_layout_and_validation,
    custom_sound_layout_and_validation,
    script_layout_and_validation,
    tweak_layout_and_validation,
    extra_files_layout_and_validation,
)


def validate_redmod_unit(
    unit: REDmodUnit,
    rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES,
) -> Result[list[MoveInstruction]]:
    """Run every sublayout in order, stopping at the first failure."""
    return traverse(REDMOD_SUBLAYOUTS, lambda sublayout: sublayout(unit, rules))


# ---------------------------------------------------------------------------
# Installer
# ---------------------------------------------------------------------------


@register_installer
class REDmodInstaller:
    type = InstallerType.REDMOD
    priority = 10

    def __init__(self, rules: REDmodLayoutRules = DEFAULT_REDMOD_RULES) -> None:
        self.rules = rules

    def test(self, tree: FileTree) -> TestResult:
        return TestResult(supported=detect_redmod_layout(tree, self.rules))

    async def _single_mod_pipeline(
        self,
        mod_dir: str,
        tree: FileTree,
        loader: FileLoader,
    ) -> Result[list[MoveInstruction]]:
        info = await read_redmod_info(loader, tree, mod_dir, self.rules)
        return and_then(
            info,
            lambda i: validate_redmod_unit(
                collect_path_details(mod_dir, i, tree, self.rules), self.rules
            ),
        )

    async def install(self, tree: FileTree, mod_info: ModInfo) -> InstallResult:
        def _fail(error_message: str) -> InstallResult:
            fail_after_warning_user_and_logging(
                _LABEL,
                mod_info.name,
                tree,
                mod_info.warnings,
                "Didn't Find Expected REDmod Installation!",
                error_message,
            )

        layout = first_matching_layout(tree, self.rules)
        if layout is None:
            error = NoLayoutMatchedError(
                f"{_LABEL}: No REDmod layout found! This shouldn't happen, "
                "we already tested we should handle this!"
            )
            return _fail(error.message)

        kind, mod_dirs_for_layout = layout
        mod_dirs = mod_dirs_for_layout(tree, self.rules)
        if isinstance(mod_dirs, Err):
            return _fail(mod_dirs.error.message)

        logger.debug("%s: %s layout, mod dirs: %s", _LABEL, kind, mod_dirs.value)

        per_mod = await asyncio.gather(
            *(self._single_mod_pipeline(d, tree, mod_info.loader) for d in mod_dirs.value)
        )
        combined = first_err(per_mod)
        if isinstance(combined, Err):
            return _fail(combined.error.message)

        logger.info(
            "%s: planned '%s' (%s, %d mods, %d files)",
            _LABEL,
            mod_info.name,
            kind,
            len(mod_dirs.value),
            len(combined.value),
        )
        return InstallResult(
            installer=self.type,
            kind=kind,
            instructions=tuple(combined.value),
        )
