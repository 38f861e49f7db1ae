import json
import logging

import pytest

from rippermod_installer.installers import FileTree, InstallRejected, ModInfo, REDmodInstaller
from rippermod_installer.installers.errors import (
    DescriptorLoadError,
    EnumerationConflictError,
)
from rippermod_installer.installers.fallback import CollectingWarningSink
from rippermod_installer.installers.layouts import DEFAULT_REDMOD_RULES, LayoutKind
from rippermod_installer.installers.loaders import InMemoryLoader
from rippermod_installer.installers.outcome import Err, MoveInstruction, Ok
from rippermod_installer.installers.redmod import (
    canonical_layout_mod_dirs,
    detect_canonical_redmod_layout,
    detect_named_redmod_layout,
    detect_redmod_layout,
    detect_toplevel_redmod_layout,
    find_canonical_redmod_dirs,
    named_layout_mod_dirs,
    read_redmod_info,
)
from rippermod_installer.schemas.redmod import REDmodInfo

RULES = DEFAULT_REDMOD_RULES


def _info(name: str, **extra) -> str:
    return json.dumps({"name": name, **extra})


def _sounds(*types: str) -> list[dict]:
    return [{"name": f"snd{i}", "type": t, "file": f"snd{i}.wav"} for i, t in enumerate(types)]


async def _install(files, contents, sink=None, name="TestMod"):
    mod_info = ModInfo(
        name=name,
        loader=InMemoryLoader(contents),
        warnings=sink if sink is not None else CollectingWarningSink(),
    )
    return await REDmodInstaller().install(FileTree(files), mod_info)


class TestDetection:
    def test_canonical_needs_only_base_dir(self):
        assert detect_canonical_redmod_layout(FileTree(["mods/whatever.txt"]))

    def test_named(self):
        tree = FileTree(["CoolMod/info.json", "CoolMod/archives/a.archive"])
        assert detect_named_redmod_layout(tree)
        assert not detect_canonical_redmod_layout(tree)

    def test_named_requires_a_content_dir(self):
        assert not detect_named_redmod_layout(FileTree(["CoolMod/info.json"]))

    def test_toplevel(self):
        tree = FileTree(["info.json", "tweaks/base/t.tweak"])
        assert detect_toplevel_redmod_layout(tree)
        assert not detect_named_redmod_layout(tree)

    def test_toplevel_requires_a_content_dir(self):
        assert not detect_toplevel_redmod_layout(FileTree(["info.json", "readme.txt"]))

    def test_info_json_matched_case_insensitively(self):
        assert detect_toplevel_redmod_layout(FileTree(["INFO.JSON", "Archives/a.archive"]))

    def test_unrelated_archive(self):
        tree = FileTree(["archive/pc/mod/a.archive", "readme.txt"])
        assert not detect_redmod_layout(tree)
        assert not REDmodInstaller().test(tree).supported

    def test_installer_reports_support(self):
        tree = FileTree(["mods/A/info.json", "mods/A/archives/a.archive"])
        assert REDmodInstaller().test(tree).supported


class TestEnumeration:
    def test_canonical_returns_every_valid_dir(self):
        tree = FileTree(
            [
                "mods/A/info.json",
                "mods/A/archives/a.archive",
                "mods/B/info.json",
                "mods/B/tweaks/base/b.tweak",
            ]
        )
        assert canonical_layout_mod_dirs(tree, RULES) == Ok(["mods/A", "mods/B"])

    def test_canonical_invalid_sibling_fails_whole_enumeration(self):
        tree = FileTree(
            [
                "mods/A/info.json",
                "mods/A/archives/a.archive",
                "mods/Junk/readme.txt",
            ]
        )
        result = canonical_layout_mod_dirs(tree, RULES)

        assert isinstance(result, Err)
        assert isinstance(result.error, EnumerationConflictError)
        assert result.error.dirs == ["mods/Junk"]
        assert "mods/Junk" in result.error.message

    def test_canonical_dir_without_content_dir_is_invalid(self):
        tree = FileTree(["mods/A/info.json", "mods/A/readme.txt"])
        assert find_canonical_redmod_dirs(tree) == []
        assert isinstance(canonical_layout_mod_dirs(tree, RULES), Err)

    def test_canonical_empty_base_dir_is_a_conflict(self):
        result = canonical_layout_mod_dirs(FileTree([], ["mods/"]), RULES)
        assert isinstance(result, Err)
        assert result.error.dirs == []

    def test_named_ignores_non_redmod_siblings(self):
        tree = FileTree(
            [
                "A/info.json",
                "A/archives/a.archive",
                "docs/readme.txt",
            ]
        )
        assert named_layout_mod_dirs(tree, RULES) == Ok(["A"])


class TestReadREDmodInfo:
    @pytest.mark.anyio
    async def test_valid_descriptor(self):
        tree = FileTree(["A/info.json"])
        loader = InMemoryLoader({"A/info.json": _info("A", version="1.2")})

        result = await read_redmod_info(loader, tree, "A")

        assert result == Ok(REDmodInfo(name="A", version="1.2"))

    @pytest.mark.anyio
    async def test_utf8_bom_is_tolerated(self):
        tree = FileTree(["info.json"])
        loader = InMemoryLoader({"info.json": b"\xef\xbb\xbf" + _info("A").encode()})

        result = await read_redmod_info(loader, tree, "")

        assert isinstance(result, Ok)
        assert result.value.name == "A"

    @pytest.mark.anyio
    async def test_descriptor_found_regardless_of_case(self):
        tree = FileTree(["A/Info.Json"])
        loader = InMemoryLoader({"A/Info.Json": _info("A")})

        assert isinstance(await read_redmod_info(loader, tree, "A"), Ok)

    @pytest.mark.anyio
    async def test_unreadable_descriptor(self):
        result = await read_redmod_info(InMemoryLoader({}), FileTree(["A/info.json"]), "A")

        assert isinstance(result, Err)
        assert isinstance(result.error, DescriptorLoadError)
        assert result.error.path == "A/info.json"

    @pytest.mark.anyio
    async def test_malformed_json(self):
        loader = InMemoryLoader({"A/info.json": "{not json"})
        result = await read_redmod_info(loader, FileTree(["A/info.json"]), "A")

        assert isinstance(result, Err)
        assert result.error.message.startswith("Error validating A/info.json")

    @pytest.mark.anyio
    async def test_missing_name(self):
        loader = InMemoryLoader({"A/info.json": json.dumps({"version": "1.0"})})
        result = await read_redmod_info(loader, FileTree(["A/info.json"]), "A")

        assert isinstance(result, Err)
        assert "name" in result.error.message

    @pytest.mark.anyio
    async def test_unknown_sound_kind_rejected(self):
        content = _info("A", customSounds=[{"name": "x", "type": "mod_bogus"}])
        loader = InMemoryLoader({"A/info.json": content})
        result = await read_redmod_info(loader, FileTree(["A/info.json"]), "A")

        assert isinstance(result, Err)
        assert "customSounds" in result.error.message

    @pytest.mark.anyio
    @pytest.mark.parametrize("name", ["../../bin", "a/b", "a\\b", "..", "."])
    async def test_name_must_be_a_single_directory(self, name):
        loader = InMemoryLoader({"A/info.json": _info(name)})
        result = await read_redmod_info(loader, FileTree(["A/info.json"]), "A")

        assert isinstance(result, Err)
        assert isinstance(result.error, DescriptorLoadError)
        assert "single directory name" in result.error.message


class TestCanonicalInstall:
    @pytest.mark.anyio
    async def test_full_mod_in_category_order(self):
        files = [
            "mods/CoolMod/tweaks/base/t.tweak",
            "mods/CoolMod/scripts/exec/x.script",
            "mods/CoolMod/customSounds/s.wav",
            "mods/CoolMod/archives/a.archive",
            "mods/CoolMod/info.json",
        ]
        contents = {"mods/CoolMod/info.json": _info("CoolMod", customSounds=_sounds("mod_sfx_2d"))}

        result = await _install(files, contents)

        assert result.kind == LayoutKind.REDMOD_CANONICAL
        assert [i.source for i in result.instructions] == [
            "mods/CoolMod/info.json",
            "mods/CoolMod/archives/a.archive",
            "mods/CoolMod/customSounds/s.wav",
            "mods/CoolMod/scripts/exec/x.script",
            "mods/CoolMod/tweaks/base/t.tweak",
        ]
        assert all(i.source == i.destination for i in result.instructions)

    @pytest.mark.anyio
    async def test_destinations_are_prefixed_by_declared_name(self):
        files = [
            "mods/alpha/info.json",
            "mods/alpha/archives/a.archive",
            "mods/beta/info.json",
            "mods/beta/archives/b.archive",
        ]
        contents = {
            "mods/alpha/info.json": _info("Alpha"),
            "mods/beta/info.json": _info("Beta"),
        }

        result = await _install(files, contents)

        alpha = [i for i in result.instructions if i.source.startswith("mods/alpha/")]
        beta = [i for i in result.instructions if i.source.startswith("mods/beta/")]
        assert alpha and all(i.destination.startswith("mods/Alpha/") for i in alpha)
        assert beta and all(i.destination.startswith("mods/Beta/") for i in beta)
        assert len(result.instructions) == 4

    @pytest.mark.anyio
    async def test_plans_are_identical_across_runs(self):
        files = [
            "mods/B/info.json",
            "mods/B/archives/z.archive",
            "mods/B/archives/a.archive",
            "mods/A/info.json",
            "mods/A/scripts/core/s.script",
        ]
        contents = {"mods/A/info.json": _info("A"), "mods/B/info.json": _info("B")}

        first = await _install(files, contents)
        second = await _install(files, contents)

        assert first == second
        assert first.instructions[0].source == "mods/A/info.json"

    @pytest.mark.anyio
    async def test_invalid_sibling_rejects_everything(self):
        files = ["mods/A/info.json", "mods/A/archives/a.archive", "mods/stuff/readme.txt"]
        sink = CollectingWarningSink()

        with pytest.raises(InstallRejected) as exc_info:
            await _install(files, {"mods/A/info.json": _info("A")}, sink=sink)

        assert "mods/stuff" in exc_info.value.reason
        assert exc_info.value.message == "Didn't Find Expected REDmod Installation!"

    @pytest.mark.anyio
    async def test_one_failing_mod_fails_the_archive(self):
        files = [
            "mods/A/info.json",
            "mods/A/archives/a.archive",
            "mods/B/info.json",
            "mods/B/tweaks/loose.tweak",
        ]
        contents = {"mods/A/info.json": _info("A"), "mods/B/info.json": _info("B")}

        with pytest.raises(InstallRejected, match="REDmod"):
            await _install(files, contents)


class TestNamedAndToplevelInstall:
    @pytest.mark.anyio
    async def test_named_layout_moves_under_base_dir(self):
        files = ["CoolMod/info.json", "CoolMod/archives/a.archive", "readme.txt"]
        contents = {"CoolMod/info.json": _info("CoolMod")}

        result = await _install(files, contents)

        assert result.kind == LayoutKind.REDMOD_NAMED
        assert result.instructions == (
            MoveInstruction("CoolMod/info.json", "mods/CoolMod/info.json"),
            MoveInstruction("CoolMod/archives/a.archive", "mods/CoolMod/archives/a.archive"),
        )

    @pytest.mark.anyio
    async def test_name_comparison_ignores_case(self):
        files = ["coolmod/info.json", "coolmod/archives/a.archive"]
        result = await _install(files, {"coolmod/info.json": _info("CoolMod")})

        assert result.instructions[0].destination == "mods/CoolMod/info.json"

    @pytest.mark.anyio
    async def test_name_mismatch_rejected(self):
        files = ["Foo/info.json", "Foo/archives/a.archive"]

        with pytest.raises(InstallRejected) as exc_info:
            await _install(files, {"Foo/info.json": _info("Bar")})

        assert "'Foo' does not match mod name 'Bar'" in exc_info.value.reason

    @pytest.mark.anyio
    async def test_toplevel_is_one_implicit_unit(self):
        files = ["info.json", "archives/a.archive"]

        result = await _install(files, {"info.json": _info("Top")})

        assert result.kind == LayoutKind.REDMOD_TOPLEVEL
        assert result.instructions == (
            MoveInstruction("info.json", "mods/Top/info.json"),
            MoveInstruction("archives/a.archive", "mods/Top/archives/a.archive"),
        )

    @pytest.mark.anyio
    async def test_toplevel_name_cannot_leave_base_dir(self):
        files = ["info.json", "archives/a.archive"]

        with pytest.raises(InstallRejected) as exc_info:
            await _install(files, {"info.json": _info("../../bin")})

        assert exc_info.value.reason.startswith("Error validating info.json")
        assert "single directory name" in exc_info.value.reason


class TestSublayoutValidation:
    @pytest.mark.anyio
    async def test_sound_files_without_declaration_rejected(self):
        files = ["A/info.json", "A/customSounds/s.wav"]

        with pytest.raises(InstallRejected, match="REDmod") as exc_info:
            await _install(files, {"A/info.json": _info("A")})

        assert "doesn't declare customSounds" in exc_info.value.reason

    @pytest.mark.anyio
    async def test_declaration_without_sound_files_rejected(self):
        files = ["A/info.json", "A/archives/a.archive"]
        contents = {"A/info.json": _info("A", customSounds=_sounds("mod_sfx_city"))}

        with pytest.raises(InstallRejected) as exc_info:
            await _install(files, contents)

        assert "no sound files" in exc_info.value.reason

    @pytest.mark.anyio
    async def test_skip_only_declaration_needs_no_files(self):
        files = ["A/info.json", "A/archives/a.archive"]
        contents = {"A/info.json": _info("A", customSounds=_sounds("mod_skip"))}

        result = await _install(files, contents)

        assert len(result.instructions) == 2

    @pytest.mark.anyio
    async def test_matching_sound_declaration_and_files(self):
        files = ["A/info.json", "A/customSounds/sub/s.wav"]
        contents = {"A/info.json": _info("A", customSounds=_sounds("mod_skip", "mod_sfx_room"))}

        result = await _install(files, contents)

        assert result.instructions[-1].destination == "mods/A/customSounds/sub/s.wav"

    @pytest.mark.anyio
    async def test_script_in_whitelisted_subdir_included(self):
        files = ["A/info.json", "A/scripts/cyberpunk/deep/x.ws"]

        result = await _install(files, {"A/info.json": _info("A")})

        assert result.instructions[-1].destination == "mods/A/scripts/cyberpunk/deep/x.ws"

    @pytest.mark.anyio
    async def test_script_outside_whitelist_rejected(self):
        files = ["A/info.json", "A/scripts/exec/ok.script", "A/scripts/other/x.script"]

        with pytest.raises(InstallRejected) as exc_info:
            await _install(files, {"A/info.json": _info("A")})

        assert "A/scripts/other/x.script" in exc_info.value.reason
        assert "ok.script" not in exc_info.value.reason

    @pytest.mark.anyio
    async def test_tweak_outside_base_rejected(self):
        files = ["A/info.json", "A/tweaks/t.tweak"]

        with pytest.raises(InstallRejected) as exc_info:
            await _install(files, {"A/info.json": _info("A")})

        assert "A/tweaks/t.tweak" in exc_info.value.reason

    @pytest.mark.anyio
    async def test_unmatched_files_in_category_dirs_are_left_out(self):
        files = ["A/info.json", "A/archives/a.archive", "A/archives/readme.txt"]

        result = await _install(files, {"A/info.json": _info("A")})

        assert [i.source for i in result.instructions] == ["A/info.json", "A/archives/a.archive"]

    @pytest.mark.anyio
    async def test_extra_files_installed_with_warning(self, caplog):
        files = ["A/info.json", "A/archives/a.archive", "A/readme.txt", "A/docs/notes.md"]

        with caplog.at_level(logging.WARNING, logger="rippermod_installer.installers.redmod"):
            result = await _install(files, {"A/info.json": _info("A")})

        destinations = [i.destination for i in result.instructions]
        assert destinations[-2:] == ["mods/A/docs/notes.md", "mods/A/readme.txt"]
        assert "extra files" in caplog.text

    @pytest.mark.anyio
    async def test_no_warning_without_extra_files(self, caplog):
        files = ["A/info.json", "A/archives/a.archive"]

        with caplog.at_level(logging.WARNING, logger="rippermod_installer.installers.redmod"):
            await _install(files, {"A/info.json": _info("A")})

        assert "extra files" not in caplog.text


class TestRejection:
    @pytest.mark.anyio
    async def test_user_warned_with_considered_files(self):
        files = ["A/info.json", "A/archives/a.archive"]
        sink = CollectingWarningSink()

        with pytest.raises(InstallRejected) as exc_info:
            await _install(files, {}, sink=sink, name="Broken Mod")

        assert exc_info.value.files == ["A/archives/a.archive", "A/info.json"]
        assert len(sink.warnings) == 1
        warning = sink.warnings[0]
        assert warning.installer == "REDmod"
        assert warning.mod_name == "Broken Mod"
        assert warning.files == exc_info.value.files
        assert "Error validating A/info.json" in warning.message

    @pytest.mark.anyio
    async def test_failure_is_logged_at_error(self, caplog):
        files = ["A/info.json", "A/archives/a.archive"]

        with (
            caplog.at_level(logging.ERROR, logger="rippermod_installer.installers.fallback"),
            pytest.raises(InstallRejected),
        ):
            await _install(files, {"A/info.json": _info("B")})

        assert "Didn't Find Expected REDmod Installation!" in caplog.text
