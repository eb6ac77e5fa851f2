"""Wire the discovery components together for a host (editor glue or the CLI)."""
from __future__ import annotations

from typing import Dict, List, Sequence

from core.command_runner import CommandRunner
from core.console import Console, ConsoleLike

from .cache import Cache, CacheStore
from .commands import CommandBuilder, ShellCommand
from .config import CMakeConfig
from .presets import BuildType, Preset, PresetLister, PresetListing
from .project import PathAccess, Project, ShellCommandRunner
from .resolver import Chooser, PresetResolver
from .targets import CodeModelSource, TargetLister, make_target_source


def no_choice(message: str, presets: Sequence[Preset]) -> str:
    return ""


class CMakeEngine:
    def __init__(
        self,
        config: CMakeConfig | None = None,
        *,
        runner: CommandRunner | None = None,
        store: CacheStore | None = None,
        choose: Chooser | None = None,
        console: ConsoleLike | None = None,
    ) -> None:
        self.config = config or CMakeConfig()
        self.console = console or Console()
        self.shell = ShellCommandRunner(runner, console=self.console)
        self.files = PathAccess(self.shell)
        self.cache = Cache(store, mtime_of=self.files.mtime)
        self.preset_lister = PresetLister(self.shell, self.files, self.cache, console=self.console)
        self.resolver = PresetResolver(
            self.config,
            self.cache,
            self.preset_lister,
            choose or no_choice,
            console=self.console,
        )
        self.commands = CommandBuilder(self.config, self.resolver, console=self.console)
        self.target_source = make_target_source(
            self.config.target_backend,
            shell=self.shell,
            files=self.files,
            help_command=self.commands.help_command,
            build_directory=self._expanded_build_directory,
            client=self.config.code_model_client,
            console=self.console,
        )
        self.target_lister = TargetLister(
            self.config,
            self.target_source,
            self.cache,
            self._expanded_build_directory,
        )

    def _expanded_build_directory(self, project: Project) -> str | None:
        return self.commands.build_directory(project, expand=True)

    def preset_listing(self, project: Project) -> PresetListing:
        return self.preset_lister.listing(project)

    def presets(self, project: Project, build_type: BuildType = BuildType.DEFAULT) -> List[Preset]:
        return self.preset_lister.presets(project, build_type)

    def resolve_preset(self, project: Project, build_type: BuildType, *, interactive: bool = True) -> str | None:
        return self.resolver.resolve(project, build_type, interactive=interactive)

    def set_preset(self, project: Project, build_type: BuildType, preset: str | None) -> None:
        self.resolver.set_preset(project, build_type, preset)

    def list_targets(self, project: Project) -> List[str]:
        return self.target_lister.list_targets(project)

    def configure_command(
        self,
        project: Project,
        *,
        interactive: bool = True,
        write_query: bool = True,
    ) -> ShellCommand:
        """Configure command; with the code-model backend also writes the file-API query first."""

        if write_query and isinstance(self.target_source, CodeModelSource):
            self.target_source.write_query(project)
        return self.commands.configure_command(project, interactive=interactive)

    def build_command(self, project: Project, *, interactive: bool = True) -> ShellCommand:
        return self.commands.build_command(project, interactive=interactive)

    def target_command(self, project: Project, target: str, *, interactive: bool = True) -> ShellCommand:
        return self.commands.target_command(project, target, interactive=interactive)

    def install_command(self, project: Project, *, interactive: bool = True) -> ShellCommand:
        return self.commands.install_command(project, interactive=interactive)

    def test_command(
        self,
        project: Project,
        argv: Sequence[str] = (),
        *,
        interactive: bool = True,
    ) -> ShellCommand:
        return self.commands.test_command(project, argv, interactive=interactive)

    def package_command(self, project: Project, *, interactive: bool = True) -> ShellCommand:
        return self.commands.package_command(project, interactive=interactive)

    def target_commands(self, project: Project) -> Dict[str, ShellCommand]:
        """Every command a user can pick for ``project``, keyed ``cmake:<action>``.

        Presets are resolved without prompting so enumerating never blocks,
        and nothing is written to the build directory.
        """

        commands: Dict[str, ShellCommand] = {
            "cmake:configure": self.configure_command(project, interactive=False, write_query=False),
            "cmake:build": self.build_command(project, interactive=False),
            "cmake:test": self.test_command(project, interactive=False),
            "cmake:install": self.install_command(project, interactive=False),
            "cmake:package": self.package_command(project, interactive=False),
        }
        for target in self.list_targets(project):
            commands[f"cmake:build:{target}"] = self.target_command(project, target, interactive=False)
        return commands


__all__ = ["CMakeEngine", "no_choice"]
