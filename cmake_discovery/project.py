"""Project handles and remote-aware command and file access."""
from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path
from typing import List, Protocol, Sequence
import os
import posixpath
import re
import shlex

from core.command_runner import CommandResult, CommandRunner, SubprocessCommandRunner, format_command
from core.console import Console, ConsoleLike


_REMOTE_PATTERN = re.compile(r"^(?P<prefix>/ssh:(?P<host>[^:/][^:]*):)(?P<path>.*)$")


def split_remote(path: str) -> tuple[str | None, str]:
    """Split ``/ssh:host:/dir`` into ``("/ssh:host:", "/dir")``; local paths have no prefix."""

    match = _REMOTE_PATTERN.match(path)
    if match is None:
        return None, path
    return match.group("prefix"), match.group("path") or "/"


def remote_host(prefix: str) -> str:
    match = _REMOTE_PATTERN.match(prefix)
    if match is None:
        raise ValueError(f"Not a remote prefix: {prefix!r}")
    return match.group("host")


def join_path(base: str, *parts: str) -> str:
    """Join path components, keeping POSIX separators for remote paths."""

    remote, local = split_remote(base)
    if remote is None:
        return os.path.join(local, *parts)
    return remote + posixpath.join(local, *parts)


@dataclass(frozen=True, slots=True)
class Project:
    """Identity of a project: its root directory plus an optional remote-host prefix."""

    root: str
    remote: str | None = None

    @classmethod
    def from_path(cls, path: str | Path) -> "Project":
        remote, local = split_remote(str(path))
        return cls(root=local, remote=remote)

    @property
    def name(self) -> str:
        return posixpath.basename(self.root.rstrip("/\\")) or self.root

    @property
    def is_remote(self) -> bool:
        return self.remote is not None

    def local_path(self, *parts: str) -> str:
        if self.remote is None:
            return os.path.join(self.root, *parts)
        return posixpath.join(self.root, *parts)

    def expand(self, *parts: str) -> str:
        """Return ``parts`` joined to the root in file-access form (remote prefix included)."""

        local = self.local_path(*parts)
        return f"{self.remote}{local}" if self.remote else local


class ProjectLocator(Protocol):
    def current_project(self) -> Project | None:
        ...


class DirectoryProjectLocator:
    """Locate the top-level CMake project containing ``start``."""

    def __init__(self, start: Path | None = None) -> None:
        self._start = start

    def current_project(self) -> Project | None:
        directory = (self._start or Path.cwd()).resolve()
        if not (directory / "CMakeLists.txt").is_file():
            return None
        root = directory
        for parent in directory.parents:
            if not (parent / "CMakeLists.txt").is_file():
                break
            root = parent
        return Project(root=str(root))


class ShellCommandRunner:
    """Run commands in a project directory, over ssh when the directory is remote."""

    def __init__(self, runner: CommandRunner | None = None, *, console: ConsoleLike | None = None) -> None:
        self._runner = runner or SubprocessCommandRunner()
        self._console = console or Console()

    def run(
        self,
        command: Sequence[str],
        cwd: str,
        *,
        check: bool = True,
        note: str | None = None,
    ) -> CommandResult:
        remote, local = split_remote(cwd)
        if remote is None:
            self._console.debug(f"Running in {local}: {format_command(command)}")
            return self._runner.run(command, cwd=local, check=check, note=note)

        host = remote_host(remote)
        script = f"cd {shlex.quote(local)} && {format_command(command)}"
        self._console.debug(f"Running on {host}: {script}")
        return self._runner.run(["ssh", host, script], check=check, note=note)

    def output(self, command: Sequence[str], cwd: str, *, note: str | None = None) -> str:
        """Run ``command`` and return its captured stdout; failures raise :class:`CommandError`."""

        return self.run(command, cwd, note=note).stdout


class PathAccess:
    """File queries on expanded paths, local or ``/ssh:host:`` prefixed."""

    def __init__(self, shell: ShellCommandRunner) -> None:
        self._shell = shell

    def _remote(self, prefix: str, command: Sequence[str], *, check: bool = False) -> CommandResult:
        return self._shell.run(command, f"{prefix}/", check=check)

    def exists(self, path: str) -> bool:
        remote, local = split_remote(path)
        if remote is None:
            return os.path.exists(local)
        return self._remote(remote, ["test", "-e", local]).returncode == 0

    def has_content(self, path: str) -> bool:
        """Whether ``path`` is a file with at least one non-whitespace character."""

        remote, local = split_remote(path)
        if remote is None:
            try:
                return bool(Path(local).read_text(encoding="utf-8").strip())
            except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
                return False
        result = self._remote(remote, ["grep", "-q", "[^[:space:]]", local])
        return result.returncode == 0

    def mtime(self, path: str) -> float | None:
        remote, local = split_remote(path)
        if remote is None:
            try:
                return os.stat(local).st_mtime
            except FileNotFoundError:
                return None
        result = self._remote(remote, ["stat", "-c", "%Y", local])
        text = result.stdout.strip()
        if result.returncode != 0 or not text:
            return None
        return float(text)

    def read_text(self, path: str) -> str:
        remote, local = split_remote(path)
        if remote is None:
            return Path(local).read_text(encoding="utf-8")
        return self._remote(remote, ["cat", local], check=True).stdout

    def listdir(self, path: str, pattern: str = "*") -> List[str]:
        """Names of entries in ``path`` matching the glob ``pattern``, sorted; empty if missing."""

        remote, local = split_remote(path)
        if remote is None:
            try:
                names = os.listdir(local)
            except (FileNotFoundError, NotADirectoryError):
                return []
        else:
            result = self._remote(remote, ["ls", "-1", local])
            if result.returncode != 0:
                return []
            names = [line for line in result.stdout.splitlines() if line]
        return sorted(name for name in names if fnmatch(name, pattern))

    def touch(self, path: str) -> None:
        """Create ``path`` (and its parent directories) if it does not exist."""

        remote, local = split_remote(path)
        if remote is None:
            target = Path(local)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.touch(exist_ok=True)
            return
        parent = posixpath.dirname(local)
        script = f"mkdir -p {shlex.quote(parent)} && touch {shlex.quote(local)}"
        self._remote(remote, ["sh", "-c", script], check=True)


__all__ = [
    "DirectoryProjectLocator",
    "PathAccess",
    "Project",
    "ProjectLocator",
    "ShellCommandRunner",
    "join_path",
    "remote_host",
    "split_remote",
]
