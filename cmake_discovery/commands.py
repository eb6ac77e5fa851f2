"""Assemble cmake, ctest and cpack command lines."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence
import os

from core.command_runner import format_command
from core.console import Console, ConsoleLike

from .config import CMakeConfig
from .presets import BuildType
from .project import Project, join_path, split_remote
from .resolver import PresetResolver


@dataclass(slots=True)
class ShellCommand:
    """An argument vector plus a one-line description for display."""

    argv: List[str]
    annotation: str = ""

    def format(self) -> str:
        return format_command(self.argv)


@dataclass(slots=True)
class _CommandContext:
    label: str
    preset: str | None = None
    build_dir: str | None = None
    target: str | None = None
    extra: List[str] = field(default_factory=list)

    def annotation(self) -> str:
        parts = [self.label]
        if self.preset:
            parts.append(f"preset={self.preset}")
        if self.build_dir:
            parts.append(f"build-dir={self.build_dir}")
        if self.target:
            parts.append(f"target={self.target}")
        parts.extend(self.extra)
        return " ".join(parts)


def build_directory(config: CMakeConfig, project: Project, *, expand: bool = False) -> str | None:
    """The configured build directory.

    Without ``expand`` the directory is returned as written, ready for the
    command line. With ``expand`` it is turned into a path this process can
    read: relative directories are joined to the project root and absolute
    ones get the project's remote prefix, unless ``remote`` is ``false`` or a
    fixed prefix string.
    """

    directory = config.build_directory
    if directory is None or not expand:
        return directory

    remote, local = split_remote(directory)
    if remote is not None:
        return directory
    if not os.path.isabs(local) and not local.startswith("/"):
        return project.expand(local)
    if config.remote is True:
        return f"{project.remote}{local}" if project.is_remote else local
    if isinstance(config.remote, str) and config.remote:
        return f"{config.remote}{local}"
    return local


class CommandBuilder:
    def __init__(
        self,
        config: CMakeConfig,
        resolver: PresetResolver,
        *,
        console: ConsoleLike | None = None,
    ) -> None:
        self._config = config
        self._resolver = resolver
        self._console = console or Console()

    def build_directory(self, project: Project, *, expand: bool = False) -> str | None:
        return build_directory(self._config, project, expand=expand)

    def _preset_args(self, preset: str | None) -> List[str]:
        return [f"--preset={preset}"] if preset else []

    def configure_command(self, project: Project, *, interactive: bool = True) -> ShellCommand:
        build_dir = self.build_directory(project)
        preset = self._resolver.resolve(project, BuildType.CONFIGURE, interactive=interactive)
        argv = ["cmake", "-S", "."]
        if build_dir:
            argv.extend(["-B", build_dir])
        argv.extend(self._preset_args(preset))
        if self._config.build_type:
            argv.append(f"-DCMAKE_BUILD_TYPE={self._config.build_type}")
        argv.extend(self._config.configure_options)
        context = _CommandContext("configure", preset=preset, build_dir=build_dir)
        if self._config.build_type:
            context.extra.append(f"build-type={self._config.build_type}")
        return ShellCommand(argv, context.annotation())

    def _build_argv(self, project: Project, *, interactive: bool) -> tuple[List[str], _CommandContext]:
        build_dir = self.build_directory(project)
        preset = self._resolver.resolve(project, BuildType.BUILD, interactive=interactive)
        argv = ["cmake", "--build"]
        if build_dir:
            argv.append(build_dir)
        argv.extend(self._preset_args(preset))
        return argv, _CommandContext("build", preset=preset, build_dir=build_dir)

    def build_command(self, project: Project, *, interactive: bool = True) -> ShellCommand:
        argv, context = self._build_argv(project, interactive=interactive)
        return ShellCommand(argv, context.annotation())

    def target_command(self, project: Project, target: str, *, interactive: bool = True) -> ShellCommand:
        argv, context = self._build_argv(project, interactive=interactive)
        argv.extend(["--target", target])
        context.target = target
        return ShellCommand(argv, context.annotation())

    def install_command(self, project: Project, *, interactive: bool = True) -> ShellCommand:
        argv, context = self._build_argv(project, interactive=interactive)
        argv.extend(["--target", "install"])
        context.label = "install"
        return ShellCommand(argv, context.annotation())

    def help_command(self, project: Project) -> List[str]:
        """Command printing the build system's targets; never prompts for a preset."""

        return self.target_command(project, "help", interactive=False).argv

    def parallel_jobs(self) -> int | None:
        jobs = self._config.ctest_jobs
        if jobs is None or jobs is False:
            return None
        if jobs is True or jobs == "auto":
            return os.cpu_count()
        if isinstance(jobs, int) and jobs >= 0:
            return jobs or None
        self._console.warning(f"Ignoring unrecognised ctest_jobs value {jobs!r}; running tests serially")
        return None

    def test_command(
        self,
        project: Project,
        argv: Sequence[str] = (),
        *,
        interactive: bool = True,
    ) -> ShellCommand:
        build_dir = self.build_directory(project)
        preset = self._resolver.resolve(project, BuildType.TEST, interactive=interactive)
        command: List[str] = []
        if self._config.ctest_environment:
            command.append("env")
            command.extend(f"{key}={value}" for key, value in self._config.ctest_environment.items())
        command.append("ctest")
        if build_dir:
            command.extend(["--test-dir", build_dir])
        command.extend(self._preset_args(preset))
        jobs = self.parallel_jobs()
        if jobs:
            command.append(f"--parallel={jobs}")
        command.extend(self._config.ctest_options)
        command.extend(argv)
        context = _CommandContext("test", preset=preset, build_dir=build_dir)
        if jobs:
            context.extra.append(f"jobs={jobs}")
        return ShellCommand(command, context.annotation())

    def package_command(self, project: Project, *, interactive: bool = True) -> ShellCommand:
        build_dir = self.build_directory(project)
        preset = self._resolver.resolve(project, BuildType.PACKAGE, interactive=interactive)
        argv = ["cpack"]
        if build_dir:
            argv.extend(["--config", join_path(build_dir, "CPackConfig.cmake")])
        argv.extend(self._preset_args(preset))
        context = _CommandContext("package", preset=preset, build_dir=build_dir)
        return ShellCommand(argv, context.annotation())


__all__ = ["CommandBuilder", "ShellCommand", "build_directory"]
