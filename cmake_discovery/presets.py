"""Parse ``cmake --list-presets=all`` output and list a project's presets."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Sequence, Tuple
import re

from core.console import Console, ConsoleLike

from .cache import AllOf, Cache
from .project import PathAccess, Project, ShellCommandRunner


class BuildType(str, Enum):
    CONFIGURE = "configure"
    BUILD = "build"
    TEST = "test"
    PACKAGE = "package"
    WORKFLOW = "workflow"
    DEFAULT = "default"

    @classmethod
    def parse(cls, value: "str | BuildType") -> "BuildType":
        if isinstance(value, BuildType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown build type '{value}' (allowed: {allowed})") from None


class Preset(NamedTuple):
    name: str
    description: str = ""

    def label(self) -> str:
        return f"{self.name} - {self.description}" if self.description else self.name


PresetListing = List[Tuple[BuildType, List[Preset]]]

PRESET_FILES = ("CMakePresets.json", "CMakeUserPresets.json")
LIST_PRESETS_COMMAND = ("cmake", "--list-presets=all")

_HEADER_PATTERN = re.compile(r"^Available (?P<word>\S+) presets:\s*$")
_PRESET_PATTERN = re.compile(r'^\s+"(?P<name>[^"]+)"(?:\s+-\s+(?P<description>.*?))?\s*$')


def parse_preset_listing(text: str, console: ConsoleLike | None = None) -> PresetListing:
    """Parse ``cmake --list-presets=all`` output into ``(build type, presets)`` sections.

    Sections keep the order of the listing, as do the presets inside them.
    """

    console = console or Console()
    sections: PresetListing = []
    current: BuildType | None = None
    discard_section = False
    pending: List[Preset] = []

    def flush() -> None:
        if current is not None:
            sections.append((current, list(pending)))
        elif pending and not discard_section:
            names = ", ".join(preset.name for preset in pending)
            console.warning(f"Discarding presets listed before any preset header: {names}")
        pending.clear()

    for line in text.splitlines():
        header = _HEADER_PATTERN.match(line)
        if header is not None:
            flush()
            word = header.group("word").lower()
            try:
                current = BuildType(word)
                discard_section = False
            except ValueError:
                console.warning(f"Ignoring presets of unknown type '{word}'")
                current = None
                discard_section = True
            continue

        preset = _PRESET_PATTERN.match(line)
        if preset is not None:
            pending.append(Preset(preset.group("name"), preset.group("description") or ""))

    flush()
    return sections


def flatten_presets(listing: Iterable[Tuple[BuildType, Sequence[Preset]]]) -> List[Preset]:
    """All presets across build types, deduplicated by name, first occurrence kept."""

    seen: Dict[str, Preset] = {}
    for _, presets in listing:
        for preset in presets:
            seen.setdefault(preset.name, preset)
    return list(seen.values())


def presets_for(listing: PresetListing, build_type: BuildType) -> List[Preset]:
    if build_type is BuildType.DEFAULT:
        return flatten_presets(listing)
    for section_type, presets in listing:
        if section_type is build_type:
            return list(presets)
    return []


class PresetLister:
    """List a project's presets through the CMake CLI, cached on the preset files."""

    CACHE_KEY = "cmake-presets"

    def __init__(
        self,
        shell: ShellCommandRunner,
        files: PathAccess,
        cache: Cache,
        *,
        console: ConsoleLike | None = None,
    ) -> None:
        self._shell = shell
        self._files = files
        self._cache = cache
        self._console = console or Console()

    def has_presets(self, project: Project) -> bool:
        return any(self._files.has_content(project.expand(name)) for name in PRESET_FILES)

    def listing(self, project: Project) -> PresetListing:
        validity = AllOf(tuple(self._cache.watch(project.expand(name)) for name in PRESET_FILES))
        return self._cache.get_with_predicate(
            project,
            self.CACHE_KEY,
            validity,
            lambda: self._list(project),
        )

    def presets(self, project: Project, build_type: BuildType = BuildType.DEFAULT) -> List[Preset]:
        return presets_for(self.listing(project), build_type)

    def _list(self, project: Project) -> PresetListing:
        if not self.has_presets(project):
            self._console.debug(f"No preset files in {project.expand()}, skipping preset listing")
            return []
        output = self._shell.output(LIST_PRESETS_COMMAND, project.expand(), note="list presets")
        return parse_preset_listing(output, self._console)


__all__ = [
    "BuildType",
    "LIST_PRESETS_COMMAND",
    "PRESET_FILES",
    "Preset",
    "PresetLister",
    "PresetListing",
    "flatten_presets",
    "parse_preset_listing",
    "presets_for",
]
