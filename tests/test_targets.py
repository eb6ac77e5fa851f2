from __future__ import annotations

from pathlib import Path
import json
import os
import re
import tempfile
import unittest

from core.command_runner import RecordingCommandRunner
from core.console import RecordingConsole
from cmake_discovery.cache import Cache
from cmake_discovery.config import CachePolicy, CMakeConfig, TargetBackend
from cmake_discovery.errors import CodeModelError, ConfigurationError
from cmake_discovery.project import PathAccess, Project, ShellCommandRunner
from cmake_discovery.targets import (
    CodeModelSource,
    HelpTargetSource,
    TargetLister,
    exclude_targets,
    make_target_source,
    parse_code_model,
    parse_help_targets,
)

HELP_COMMAND = ("cmake", "--build", "build", "--target", "help")

CODE_MODEL = {
    "kind": "codemodel",
    "version": {"major": 2, "minor": 6},
    "configurations": [
        {"name": "Debug", "targets": [{"name": "app", "id": "app::@6890"}, {"name": "lib", "id": "lib::@6890"}]},
        {"name": "Release", "targets": [{"name": "app", "id": "app::@6890"}, {"name": "bench", "id": "bench::@6890"}]},
    ],
}


class HelpParserTests(unittest.TestCase):
    def test_ninja_and_makefile_lines(self) -> None:
        output = "all: phony\n... my_app (the default if no target is provided)"
        self.assertEqual(parse_help_targets(output), ["all", "my_app"])

    def test_makefile_listing(self) -> None:
        output = "\n".join(
            [
                "The following are some of the valid targets for this Makefile:",
                "... all (the default if no target is provided)",
                "... clean",
                "... depend",
                "... edit_cache",
                "... mylib",
            ]
        )
        self.assertEqual(parse_help_targets(output), ["all", "clean", "depend", "edit_cache", "mylib"])

    def test_ignores_unrelated_lines(self) -> None:
        output = "[1/1] Re-running CMake...\n  indented: not a target\nbuild.ninja: phony\n"
        self.assertEqual(parse_help_targets(output), ["build.ninja"])


class CodeModelParserTests(unittest.TestCase):
    def test_union_across_configurations_plus_meta_targets(self) -> None:
        targets = parse_code_model(CODE_MODEL)
        self.assertEqual(sorted(targets[:-3]), ["app", "bench", "lib"])
        self.assertEqual(targets[-3:], ["all", "install", "clean"])

    def test_wrong_kind_is_rejected(self) -> None:
        with self.assertRaises(CodeModelError):
            parse_code_model({"kind": "cache", "entries": []})

    def test_missing_configurations_lists_meta_targets_only(self) -> None:
        self.assertEqual(parse_code_model({"kind": "codemodel"}), ["all", "install", "clean"])

    def test_malformed_configurations_are_rejected(self) -> None:
        for document in (
            {"kind": "codemodel", "configurations": {"Debug": []}},
            {"kind": "codemodel", "configurations": ["Debug"]},
            {"kind": "codemodel", "configurations": [{"targets": "app"}]},
        ):
            with self.subTest(document=document):
                with self.assertRaises(CodeModelError):
                    parse_code_model(document)


class ExclusionTests(unittest.TestCase):
    def test_default_pattern_drops_dashboard_targets(self) -> None:
        pattern = CMakeConfig().exclude_targets
        targets = ["all", "NightlyBuild", "ContinuousTest", "ExperimentalStart", "my_app"]
        self.assertEqual(exclude_targets(targets, pattern), ["all", "my_app"])

    def test_no_pattern_keeps_everything(self) -> None:
        self.assertEqual(exclude_targets(["all", "NightlyBuild"], None), ["all", "NightlyBuild"])

    def test_pattern_matches_anywhere(self) -> None:
        self.assertEqual(exclude_targets(["app", "app_test", "lib"], re.compile("_test")), ["app", "lib"])


class TargetSourceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.project = Project(root=str(self.root))
        self.build_dir = self.root / "build"
        self.console = RecordingConsole()
        self.runner = RecordingCommandRunner()
        self.shell = ShellCommandRunner(self.runner, console=self.console)
        self.files = PathAccess(self.shell)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _code_model_source(self) -> CodeModelSource:
        return CodeModelSource(
            self.files,
            lambda project: str(self.build_dir),
            client="cmake-discovery",
            console=self.console,
        )

    def _write_reply(self, index: dict) -> Path:
        reply_dir = self.build_dir / ".cmake" / "api" / "v1" / "reply"
        reply_dir.mkdir(parents=True)
        (reply_dir / "index-2024-01-01T00-00-00-0000.json").write_text(json.dumps(index))
        (reply_dir / "codemodel-v2-abc.json").write_text(json.dumps(CODE_MODEL))
        return reply_dir

    def test_help_source_runs_help_target_in_project(self) -> None:
        self.runner.script(HELP_COMMAND, "all: phony\napp: phony\n")
        source = HelpTargetSource(self.shell, lambda project: list(HELP_COMMAND))
        self.assertEqual(source.list_targets(self.project), ["all", "app"])
        self.assertEqual(self.runner.commands[0].command, list(HELP_COMMAND))
        self.assertEqual(self.runner.commands[0].cwd, str(self.root))

    def test_code_model_from_client_reply(self) -> None:
        self._write_reply(
            {
                "objects": [],
                "reply": {
                    "client-cmake-discovery": {
                        "codemodel-v2": {"kind": "codemodel", "jsonFile": "codemodel-v2-abc.json"}
                    }
                },
            }
        )
        targets = self._code_model_source().list_targets(self.project)
        self.assertEqual(sorted(targets), ["all", "app", "bench", "clean", "install", "lib"])
        self.assertEqual(self.runner.commands, [])

    def test_code_model_falls_back_to_objects(self) -> None:
        self._write_reply({"objects": [{"kind": "codemodel", "jsonFile": "codemodel-v2-abc.json"}], "reply": {}})
        self.assertIn("bench", self._code_model_source().list_targets(self.project))

    def test_corrupt_index_raises_code_model_error(self) -> None:
        reply_dir = self._write_reply({})
        (reply_dir / "index-2024-01-01T00-00-00-0000.json").write_text("{not json")
        with self.assertRaises(CodeModelError):
            self._code_model_source().list_targets(self.project)

    def test_corrupt_code_model_raises_code_model_error(self) -> None:
        reply_dir = self._write_reply({"objects": [{"kind": "codemodel", "jsonFile": "codemodel-v2-abc.json"}]})
        (reply_dir / "codemodel-v2-abc.json").write_text('{"kind": "codemodel", "configurations": [')
        with self.assertRaises(CodeModelError):
            self._code_model_source().list_targets(self.project)

    def test_code_model_without_reply_is_empty(self) -> None:
        self.assertEqual(self._code_model_source().list_targets(self.project), [])
        self.assertTrue(self.console.of_level("info"))

    def test_code_model_without_build_directory_is_empty(self) -> None:
        source = CodeModelSource(self.files, lambda project: None, client="x", console=self.console)
        self.assertEqual(source.list_targets(self.project), [])
        self.assertIsNone(source.write_query(self.project))

    def test_write_query_creates_marker_file(self) -> None:
        path = self._code_model_source().write_query(self.project)
        expected = self.build_dir / ".cmake" / "api" / "v1" / "query" / "client-cmake-discovery" / "codemodel-v2"
        self.assertEqual(path, str(expected))
        self.assertTrue(expected.is_file())

    def test_make_target_source_accepts_names(self) -> None:
        arguments = dict(
            shell=self.shell,
            files=self.files,
            help_command=lambda project: list(HELP_COMMAND),
            build_directory=lambda project: str(self.build_dir),
            client="cmake-discovery",
        )
        self.assertIsInstance(make_target_source("code-model", **arguments), CodeModelSource)
        self.assertIsInstance(make_target_source(TargetBackend.HELP_TARGET, **arguments), HelpTargetSource)
        with self.assertRaises(ConfigurationError):
            make_target_source("bogus", **arguments)


class _CountingSource:
    def __init__(self, targets: list[str]) -> None:
        self.targets = targets
        self.calls = 0

    def list_targets(self, project: Project) -> list[str]:
        self.calls += 1
        return list(self.targets)


class TargetListerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.project = Project(root=str(self.root))
        self.build_dir = self.root / "build"
        self.build_dir.mkdir()
        self.source = _CountingSource(["all", "NightlyBuild", "my_app"])

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _lister(self, **overrides) -> TargetLister:
        config = CMakeConfig(**overrides)
        return TargetLister(config, self.source, Cache(), lambda project: str(self.build_dir))

    def test_exclusion_applies_to_listing(self) -> None:
        self.assertEqual(self._lister().list_targets(self.project), ["all", "my_app"])

    def test_changing_exclusion_does_not_need_recompute(self) -> None:
        config = CMakeConfig(cache_targets=CachePolicy.ALWAYS)
        lister = TargetLister(config, self.source, Cache(), lambda project: str(self.build_dir))
        lister.list_targets(self.project)
        config.exclude_targets = None
        self.assertEqual(lister.list_targets(self.project), ["all", "NightlyBuild", "my_app"])
        self.assertEqual(self.source.calls, 1)

    def test_always_policy_caches(self) -> None:
        lister = self._lister(cache_targets=CachePolicy.ALWAYS)
        lister.list_targets(self.project)
        lister.list_targets(self.project)
        self.assertEqual(self.source.calls, 1)
        lister.invalidate(self.project)
        lister.list_targets(self.project)
        self.assertEqual(self.source.calls, 2)

    def test_never_policy_recomputes(self) -> None:
        lister = self._lister(cache_targets=CachePolicy.NEVER)
        lister.list_targets(self.project)
        lister.list_targets(self.project)
        self.assertEqual(self.source.calls, 2)

    def test_auto_policy_follows_cache_file(self) -> None:
        cache_file = self.build_dir / "CMakeCache.txt"
        cache_file.write_text("CMAKE_BUILD_TYPE:STRING=Debug\n")
        os.utime(cache_file, (1_000_000, 1_000_000))
        lister = self._lister(cache_targets=CachePolicy.AUTO)

        lister.list_targets(self.project)
        lister.list_targets(self.project)
        self.assertEqual(self.source.calls, 1)

        os.utime(cache_file, (2_000_000, 2_000_000))
        lister.list_targets(self.project)
        self.assertEqual(self.source.calls, 2)

    def test_auto_policy_watches_custom_cache_file(self) -> None:
        lister = self._lister(cache_targets=CachePolicy.AUTO, cache_file="build.ninja")
        lister.list_targets(self.project)
        (self.build_dir / "build.ninja").write_text("rule cc\n")
        lister.list_targets(self.project)
        self.assertEqual(self.source.calls, 2)


if __name__ == "__main__":
    unittest.main()
