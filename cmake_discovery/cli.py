"""Command line interface for CMake target and preset discovery."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence
import sys

from core.command_runner import CommandError, CommandRunner, SubprocessCommandRunner
from core.console import Console

from .commands import ShellCommand
from .config import CMakeConfig
from .engine import CMakeEngine
from .errors import CodeModelError, ConfigurationError
from .presets import BuildType, Preset
from .project import DirectoryProjectLocator, Project

COMMAND_KINDS = ("configure", "build", "test", "install", "package", "target", "all")


def _prompt_choose(message: str, presets: Sequence[Preset]) -> str:
    """Numbered menu on stdin; an empty answer or end of input selects nothing."""

    for index, preset in enumerate(presets, start=1):
        print(f"  {index}) {preset.label()}")
    try:
        answer = input(message).strip()
    except EOFError:
        return ""
    if answer.isdigit() and 1 <= int(answer) <= len(presets):
        return presets[int(answer) - 1].name
    return answer


def _make_runner() -> CommandRunner:
    return SubprocessCommandRunner()


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="cmake-discovery", description="Discover CMake presets and targets")
    parser.add_argument("-C", "--directory", type=Path, help="Directory inside the CMake project (default: cwd)")
    parser.add_argument(
        "--config",
        action="append",
        type=Path,
        default=[],
        help="Configuration file (TOML, JSON or YAML); repeatable, later files win",
    )
    parser.add_argument(
        "--log-level",
        choices=sorted(Console.LEVELS, key=Console.LEVELS.__getitem__),
        default="warning",
        help="Console verbosity",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    presets_parser = subparsers.add_parser("presets", help="List the project's presets")
    presets_parser.add_argument(
        "--build-type",
        default=BuildType.DEFAULT.value,
        choices=[member.value for member in BuildType],
        help="Only list presets of this build type",
    )

    subparsers.add_parser("targets", help="List the project's build targets")

    command_parser = subparsers.add_parser("command", help="Print the command for an action")
    command_parser.add_argument("kind", choices=COMMAND_KINDS, help="Action to print the command for")
    command_parser.add_argument("--target", help="Target for the 'target' action")
    command_parser.add_argument("--preset", help="Pin this preset before resolving")
    command_parser.add_argument(
        "--build-type",
        default=BuildType.DEFAULT.value,
        choices=[member.value for member in BuildType],
        help="Build type --preset is pinned for (default: every build type)",
    )
    command_parser.add_argument(
        "--annotate",
        action="store_true",
        help="Print the annotation line above each command",
    )
    command_parser.add_argument("args", nargs="*", help="Extra arguments passed to ctest")

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console(args.log_level)

    start = args.directory or Path.cwd()
    project = DirectoryProjectLocator(start).current_project()
    if project is None:
        print(f"Error: no CMake project found at {start}")
        return 1

    try:
        config = CMakeConfig.load(args.config, project_root=Path(project.root))
        engine = CMakeEngine(config, runner=_make_runner(), choose=_prompt_choose, console=console)
    except (ConfigurationError, OSError) as exc:
        print(f"Error: {exc}")
        return 2

    handlers: Dict[str, Callable[[Namespace, CMakeEngine, Project], int]] = {
        "presets": _handle_presets,
        "targets": _handle_targets,
        "command": _handle_command,
    }
    try:
        return handlers[args.command](args, engine, project)
    except ConfigurationError as exc:
        print(f"Error: {exc}")
        return 2
    except (CommandError, CodeModelError, FileNotFoundError) as exc:
        print(f"Error: {exc}")
        return 3


def _handle_presets(args: Namespace, engine: CMakeEngine, project: Project) -> int:
    build_type = BuildType.parse(args.build_type)
    if build_type is BuildType.DEFAULT:
        rows = [
            (section.value, preset)
            for section, presets in engine.preset_listing(project)
            for preset in presets
        ]
    else:
        rows = [(build_type.value, preset) for preset in engine.presets(project, build_type)]

    if not rows:
        print("No presets found")
        return 0

    headers = ["Type", "Preset", "Description"]
    table: List[dict[str, str]] = [
        {"Type": kind, "Preset": preset.name, "Description": preset.description} for kind, preset in rows
    ]
    widths = {header: len(header) for header in headers}
    for row in table:
        for header in headers:
            widths[header] = max(widths[header], len(row[header]))

    def _format(row: dict[str, str]) -> str:
        return "  ".join(row.get(header, "").ljust(widths[header]) for header in headers).rstrip()

    print(_format({header: header for header in headers}))
    print("  ".join("-" * widths[header] for header in headers))
    for row in table:
        print(_format(row))
    return 0


def _handle_targets(args: Namespace, engine: CMakeEngine, project: Project) -> int:
    targets = sorted(engine.list_targets(project))
    if not targets:
        print("No targets found")
        return 0
    for target in targets:
        print(target)
    return 0


def _emit(command: ShellCommand, *, annotate: bool) -> None:
    if annotate and command.annotation:
        print(f"# {command.annotation}")
    print(command.format())


def _handle_command(args: Namespace, engine: CMakeEngine, project: Project) -> int:
    if args.preset:
        engine.set_preset(project, BuildType.parse(args.build_type), args.preset)

    kind = args.kind
    if kind == "all":
        for name, command in engine.target_commands(project).items():
            print(f"{name}: {command.format()}")
        return 0
    if kind == "target":
        if not args.target:
            print("Error: --target is required for the 'target' action")
            return 2
        _emit(engine.target_command(project, args.target), annotate=args.annotate)
        return 0

    builders: Dict[str, Callable[[], ShellCommand]] = {
        "configure": lambda: engine.configure_command(project),
        "build": lambda: engine.build_command(project),
        "test": lambda: engine.test_command(project, args.args),
        "install": lambda: engine.install_command(project),
        "package": lambda: engine.package_command(project),
    }
    _emit(builders[kind](), annotate=args.annotate)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
