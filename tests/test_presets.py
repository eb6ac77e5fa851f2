from __future__ import annotations

from pathlib import Path
import os
import tempfile
import textwrap
import unittest

from core.command_runner import CommandError, RecordingCommandRunner, ScriptedResponse
from core.console import RecordingConsole
from cmake_discovery.cache import Cache
from cmake_discovery.presets import (
    LIST_PRESETS_COMMAND,
    BuildType,
    Preset,
    PresetLister,
    flatten_presets,
    parse_preset_listing,
    presets_for,
)
from cmake_discovery.project import PathAccess, Project, ShellCommandRunner

LISTING = textwrap.dedent(
    """\
    Available configure presets:

      "default"     - Default Config
      "ninja-multi" - Ninja Multi-Config
      "plain"

    Available build presets:

      "default" - Default build
      "release"

    Available test presets:

      "default" - Default tests
    """
)


class PresetParserTests(unittest.TestCase):
    def test_sections_keep_counts_and_order(self) -> None:
        listing = parse_preset_listing(LISTING)
        self.assertEqual([build_type for build_type, _ in listing], [BuildType.CONFIGURE, BuildType.BUILD, BuildType.TEST])
        self.assertEqual([len(presets) for _, presets in listing], [3, 2, 1])
        self.assertEqual(
            listing[0][1],
            [
                Preset("default", "Default Config"),
                Preset("ninja-multi", "Ninja Multi-Config"),
                Preset("plain", ""),
            ],
        )
        self.assertEqual(listing[1][1][1], Preset("release", ""))

    def test_presets_before_any_header_are_discarded_with_warning(self) -> None:
        console = RecordingConsole()
        text = '  "orphan" - No header\nAvailable build presets:\n\n  "release"\n'
        listing = parse_preset_listing(text, console)
        self.assertEqual(listing, [(BuildType.BUILD, [Preset("release", "")])])
        warnings = console.of_level("warning")
        self.assertEqual(len(warnings), 1)
        self.assertIn("orphan", warnings[0])

    def test_unknown_preset_type_is_skipped(self) -> None:
        console = RecordingConsole()
        text = 'Available fancy presets:\n\n  "odd"\nAvailable workflow presets:\n\n  "ci" - Full CI\n'
        listing = parse_preset_listing(text, console)
        self.assertEqual(listing, [(BuildType.WORKFLOW, [Preset("ci", "Full CI")])])
        self.assertEqual(len(console.of_level("warning")), 1)

    def test_empty_output_has_no_sections(self) -> None:
        self.assertEqual(parse_preset_listing(""), [])

    def test_flatten_dedupes_by_name(self) -> None:
        flattened = flatten_presets(parse_preset_listing(LISTING))
        self.assertEqual([preset.name for preset in flattened], ["default", "ninja-multi", "plain", "release"])
        self.assertEqual(flattened[0].description, "Default Config")

    def test_presets_for_build_type(self) -> None:
        listing = parse_preset_listing(LISTING)
        self.assertEqual([preset.name for preset in presets_for(listing, BuildType.BUILD)], ["default", "release"])
        self.assertEqual(presets_for(listing, BuildType.PACKAGE), [])
        self.assertEqual(len(presets_for(listing, BuildType.DEFAULT)), 4)

    def test_preset_label(self) -> None:
        self.assertEqual(Preset("dev", "Developer build").label(), "dev - Developer build")
        self.assertEqual(Preset("dev").label(), "dev")


class PresetListerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.project = Project(root=str(self.root))
        self.runner = RecordingCommandRunner({LIST_PRESETS_COMMAND: LISTING})
        shell = ShellCommandRunner(self.runner, console=RecordingConsole())
        self.lister = PresetLister(shell, PathAccess(shell), Cache(), console=RecordingConsole())

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_missing_preset_files_skip_listing(self) -> None:
        self.assertEqual(self.lister.listing(self.project), [])
        self.assertEqual(self.runner.commands, [])

    def test_empty_preset_file_skips_listing(self) -> None:
        (self.root / "CMakePresets.json").write_text("   \n")
        self.assertEqual(self.lister.presets(self.project), [])
        self.assertEqual(self.runner.commands, [])

    def test_lists_in_project_root_and_caches(self) -> None:
        (self.root / "CMakePresets.json").write_text('{"version": 3}')
        first = self.lister.presets(self.project, BuildType.CONFIGURE)
        second = self.lister.presets(self.project, BuildType.TEST)
        self.assertEqual([preset.name for preset in first], ["default", "ninja-multi", "plain"])
        self.assertEqual([preset.name for preset in second], ["default"])
        self.assertEqual(len(self.runner.commands), 1)
        self.assertEqual(self.runner.commands[0].command, list(LIST_PRESETS_COMMAND))
        self.assertEqual(self.runner.commands[0].cwd, str(self.root))

    def test_user_presets_change_relists(self) -> None:
        presets_file = self.root / "CMakePresets.json"
        presets_file.write_text('{"version": 3}')
        os.utime(presets_file, (1_000_000, 1_000_000))
        self.lister.listing(self.project)

        user_file = self.root / "CMakeUserPresets.json"
        user_file.write_text('{"version": 3}')
        self.lister.listing(self.project)
        self.assertEqual(len(self.runner.commands), 2)

    def test_listing_failure_propagates(self) -> None:
        (self.root / "CMakeUserPresets.json").write_text('{"version": 3}')
        self.runner.script(LIST_PRESETS_COMMAND, ScriptedResponse(stderr="bad preset", returncode=1))
        with self.assertRaises(CommandError):
            self.lister.listing(self.project)


if __name__ == "__main__":
    unittest.main()
