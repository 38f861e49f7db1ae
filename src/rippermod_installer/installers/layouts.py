"""Structural constants for every known mod packaging convention.

The values are grouped into frozen rule sets so installers can be exercised
against synthetic tables in tests; production code uses the module defaults.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from rippermod_installer.installers.filetree import join


class LayoutKind(StrEnum):
    REDMOD_CANONICAL = "redmod-canonical"
    REDMOD_NAMED = "redmod-named"
    REDMOD_TOPLEVEL = "redmod-toplevel"
    PRESET_CYBERCAT = "preset-cybercat"
    PRESET_UNLOCKER = "preset-unlocker"
    PRESET_UNLOCKER_LEGACY = "preset-unlocker-legacy"
    PRESET_TOPLEVEL = "preset-toplevel"


# ---------------------------------------------------------------------------
# REDmod
# ---------------------------------------------------------------------------

REDMOD_INFO_FILENAME = "info.json"
REDMOD_BASEDIR = "mods"

REDMOD_ARCHIVES_DIRNAME = "archives"
REDMOD_CUSTOMSOUNDS_DIRNAME = "customSounds"
REDMOD_SCRIPTS_DIRNAME = "scripts"
REDMOD_TWEAKS_DIRNAME = "tweaks"


@dataclass(frozen=True, slots=True)
class REDmodLayoutRules:
    info_filename: str = REDMOD_INFO_FILENAME
    basedir: str = REDMOD_BASEDIR
    archives_dirname: str = REDMOD_ARCHIVES_DIRNAME
    customsounds_dirname: str = REDMOD_CUSTOMSOUNDS_DIRNAME
    scripts_dirname: str = REDMOD_SCRIPTS_DIRNAME
    tweaks_dirname: str = REDMOD_TWEAKS_DIRNAME
    archives_extensions: tuple[str, ...] = (".archive",)
    customsounds_extensions: tuple[str, ...] = (".wav",)
    scripts_extensions: tuple[str, ...] = (".script", ".ws")
    scripts_valid_subdirs: tuple[str, ...] = ("core", "cyberpunk", "exec", "samples", "tests")
    tweaks_extensions: tuple[str, ...] = (".tweak",)
    tweaks_valid_subdir: str = "base"

    @property
    def subtype_dirnames(self) -> tuple[str, ...]:
        """Directory names that mark a directory as a REDmod unit."""
        return (
            self.archives_dirname,
            self.customsounds_dirname,
            self.scripts_dirname,
            self.tweaks_dirname,
        )


DEFAULT_REDMOD_RULES = REDmodLayoutRules()


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

PRESET_MOD_EXTENSION = ".preset"
PRESET_MOD_CYBERCAT_BASEDIR = join("V2077", "presets", "cybercat")
PRESET_MOD_UNLOCKER_BASEDIR = join(
    "bin",
    "x64",
    "plugins",
    "cyber_engine_tweaks",
    "mods",
    "AppearanceChangeUnlocker",
    "character-preset",
)

# Placeholder markers until the authoritative Unlocker tables are available.
# Order matters: a feminine preset may also reference masculine resources,
# so the feminine markers are always tried first.
PRESET_MOD_UNLOCKER_REQUIRED_MATCHES_FEM = (
    re.compile(r"player_female_average", re.IGNORECASE),
    re.compile(r"_pwa_", re.IGNORECASE),
)
PRESET_MOD_UNLOCKER_REQUIRED_MATCHES_MASC = (
    re.compile(r"player_male_average", re.IGNORECASE),
    re.compile(r"_pma_", re.IGNORECASE),
)


@dataclass(frozen=True, slots=True)
class PresetLayoutRules:
    extension: str = PRESET_MOD_EXTENSION
    cybercat_basedir: str = PRESET_MOD_CYBERCAT_BASEDIR
    unlocker_basedir: str = PRESET_MOD_UNLOCKER_BASEDIR
    cybercat_required_keys: frozenset[str] = frozenset(
        {
            "DataExists",
            "Unknown1",
            "UnknownFirstBytes",
            "FirstSection",
            "SecondSection",
            "ThirdSection",
            "StringTriples",
        }
    )
    unlocker_fem_markers: tuple[re.Pattern[str], ...] = PRESET_MOD_UNLOCKER_REQUIRED_MATCHES_FEM
    unlocker_masc_markers: tuple[re.Pattern[str], ...] = PRESET_MOD_UNLOCKER_REQUIRED_MATCHES_MASC

    @property
    def unlocker_femdir(self) -> str:
        return join(self.unlocker_basedir, "female")

    @property
    def unlocker_mascdir(self) -> str:
        return join(self.unlocker_basedir, "male")


DEFAULT_PRESET_RULES = PresetLayoutRules()
