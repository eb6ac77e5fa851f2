"""Discover build targets from the help target or the CMake file-API code model."""
from __future__ import annotations

from typing import Any, Callable, Iterable, List, Mapping, Protocol, Sequence
import json
import re

from core.console import Console, ConsoleLike

from .cache import Cache, Validity
from .config import CachePolicy, CMakeConfig, TargetBackend
from .errors import CodeModelError
from .project import PathAccess, Project, ShellCommandRunner, join_path

META_TARGETS = ("all", "install", "clean")

_HELP_TARGET_PATTERNS = (
    re.compile(r"^(?P<name>[^\s:]+): .*$"),
    re.compile(r"^\.\.\. (?P<name>\S+)(?: \(the default.*\))?\s*$"),
)

FILE_API_DIR = (".cmake", "api", "v1")
CODE_MODEL_OBJECT = "codemodel-v2"


def parse_help_targets(text: str) -> List[str]:
    """Extract target names from ``cmake --build <dir> --target help`` output.

    Ninja prints ``name: phony`` lines, Makefile generators print
    ``... name`` lines; anything else is ignored.
    """

    targets: List[str] = []
    for line in text.splitlines():
        for pattern in _HELP_TARGET_PATTERNS:
            match = pattern.match(line)
            if match is not None:
                targets.append(match.group("name"))
                break
    return targets


def parse_code_model(document: Mapping[str, Any]) -> List[str]:
    """Target names across every configuration of a code-model reply, plus the meta targets."""

    kind = document.get("kind") if isinstance(document, Mapping) else None
    if kind != "codemodel":
        raise CodeModelError(f"Expected a file-API reply of kind 'codemodel', got {kind!r}")

    configurations = document.get("configurations", [])
    if not isinstance(configurations, list):
        raise CodeModelError("Code-model 'configurations' must be a list")

    names: set[str] = set()
    for configuration in configurations:
        targets = configuration.get("targets", []) if isinstance(configuration, Mapping) else None
        if not isinstance(targets, list):
            raise CodeModelError(f"Malformed code-model configuration: {configuration!r}")
        for target in targets:
            name = target.get("name") if isinstance(target, Mapping) else None
            if name:
                names.add(str(name))
    return [*names, *META_TARGETS]


def exclude_targets(targets: Iterable[str], pattern: "re.Pattern[str] | None") -> List[str]:
    if pattern is None:
        return list(targets)
    return [target for target in targets if not pattern.search(target)]


class TargetSource(Protocol):
    def list_targets(self, project: Project) -> List[str]:
        ...


class HelpTargetSource:
    """Run the ``help`` target and scrape its output."""

    def __init__(
        self,
        shell: ShellCommandRunner,
        help_command: Callable[[Project], Sequence[str]],
    ) -> None:
        self._shell = shell
        self._help_command = help_command

    def list_targets(self, project: Project) -> List[str]:
        output = self._shell.output(self._help_command(project), project.expand(), note="list targets")
        return parse_help_targets(output)


class CodeModelSource:
    """Read targets from the code model written by the CMake file API."""

    def __init__(
        self,
        files: PathAccess,
        build_directory: Callable[[Project], str | None],
        *,
        client: str,
        console: ConsoleLike | None = None,
    ) -> None:
        self._files = files
        self._build_directory = build_directory
        self._client = client
        self._console = console or Console()

    def _api_dir(self, project: Project) -> str | None:
        build_dir = self._build_directory(project)
        if build_dir is None:
            return None
        return join_path(build_dir, *FILE_API_DIR)

    def query_path(self, project: Project) -> str | None:
        api_dir = self._api_dir(project)
        if api_dir is None:
            return None
        return join_path(api_dir, "query", f"client-{self._client}", CODE_MODEL_OBJECT)

    def write_query(self, project: Project) -> str | None:
        """Ask CMake to emit a code model on the next configure."""

        path = self.query_path(project)
        if path is None:
            self._console.info("No build directory configured; not writing a code-model query")
            return None
        if not self._files.exists(path):
            self._console.debug(f"Writing code-model query {path}")
            self._files.touch(path)
        return path

    def _load_json(self, path: str) -> Mapping[str, Any]:
        try:
            document = json.loads(self._files.read_text(path))
        except json.JSONDecodeError as exc:
            raise CodeModelError(f"Malformed file-API reply {path}: {exc}") from exc
        if not isinstance(document, Mapping):
            raise CodeModelError(f"File-API reply {path} is not a JSON object")
        return document

    def code_model_path(self, project: Project) -> str | None:
        api_dir = self._api_dir(project)
        if api_dir is None:
            self._console.info("No build directory configured; no code model available")
            return None
        reply_dir = join_path(api_dir, "reply")
        indexes = self._files.listdir(reply_dir, "index-*.json")
        if not indexes:
            self._console.info(f"No file-API reply in {reply_dir}; configure the project first")
            return None

        # Index file names sort by creation time; the last one is current.
        index = self._load_json(join_path(reply_dir, indexes[-1]))
        json_file = None
        replies = index.get("reply")
        client_reply = replies.get(f"client-{self._client}") if isinstance(replies, Mapping) else None
        if isinstance(client_reply, Mapping):
            code_model = client_reply.get(CODE_MODEL_OBJECT)
            if isinstance(code_model, Mapping):
                json_file = code_model.get("jsonFile")
        if json_file is None:
            objects = index.get("objects")
            for reply_object in objects if isinstance(objects, list) else []:
                if isinstance(reply_object, Mapping) and reply_object.get("kind") == "codemodel":
                    json_file = reply_object.get("jsonFile")
                    break
        if not isinstance(json_file, str) or not json_file:
            self._console.info(f"File-API reply in {reply_dir} has no code model")
            return None
        return join_path(reply_dir, json_file)

    def list_targets(self, project: Project) -> List[str]:
        path = self.code_model_path(project)
        if path is None:
            return []
        return parse_code_model(self._load_json(path))


def make_target_source(
    backend: "TargetBackend | str",
    *,
    shell: ShellCommandRunner,
    files: PathAccess,
    help_command: Callable[[Project], Sequence[str]],
    build_directory: Callable[[Project], str | None],
    client: str,
    console: ConsoleLike | None = None,
) -> TargetSource:
    backend = TargetBackend.parse(backend)
    if backend is TargetBackend.CODE_MODEL:
        return CodeModelSource(files, build_directory, client=client, console=console)
    return HelpTargetSource(shell, help_command)


class TargetLister:
    """List targets through a :class:`TargetSource`, caching per the configured policy."""

    CACHE_KEY = "cmake-targets"

    def __init__(
        self,
        config: CMakeConfig,
        source: TargetSource,
        cache: Cache,
        build_directory: Callable[[Project], str | None],
    ) -> None:
        self._config = config
        self._source = source
        self._cache = cache
        self._build_directory = build_directory

    def _validity(self, project: Project) -> bool | Validity:
        policy = self._config.cache_targets
        if policy is CachePolicy.ALWAYS:
            return True
        if policy is CachePolicy.NEVER:
            return False
        build_dir = self._build_directory(project)
        if build_dir is None:
            build_dir = project.expand()
        return self._cache.watch(join_path(build_dir, self._config.cache_file))

    def invalidate(self, project: Project) -> None:
        self._cache.invalidate(project, (self.CACHE_KEY, self._config.target_backend.value))

    def list_targets(self, project: Project) -> List[str]:
        targets = self._cache.get_with_predicate(
            project,
            (self.CACHE_KEY, self._config.target_backend.value),
            self._validity(project),
            lambda: self._source.list_targets(project),
        )
        return exclude_targets(targets, self._config.exclude_targets)


__all__ = [
    "CodeModelSource",
    "HelpTargetSource",
    "META_TARGETS",
    "TargetLister",
    "TargetSource",
    "exclude_targets",
    "make_target_source",
    "parse_code_model",
    "parse_help_targets",
]
