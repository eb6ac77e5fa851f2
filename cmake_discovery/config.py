"""Configuration for the discovery engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Union
import re

import yaml

from core.config_loader import collect_config_files, load_merged_config, normalize_string_list

from .errors import ConfigurationError
from .presets import BuildType


class PolicyMode(str, Enum):
    DISABLED = "disabled"
    SILENT = "silent"
    PROMPT_ALWAYS = "prompt-always"
    PROMPT_ONCE = "prompt-once"
    PROMPT_WHEN_MULTIPLE = "prompt-when-multiple"
    PROMPT_ONCE_WHEN_MULTIPLE = "prompt-once-when-multiple"

    @property
    def prompts(self) -> bool:
        return self not in (PolicyMode.DISABLED, PolicyMode.SILENT)

    @property
    def remembers_choice(self) -> bool:
        return self in (PolicyMode.PROMPT_ONCE, PolicyMode.PROMPT_ONCE_WHEN_MULTIPLE)

    @property
    def auto_selects_single(self) -> bool:
        return self in (PolicyMode.PROMPT_WHEN_MULTIPLE, PolicyMode.PROMPT_ONCE_WHEN_MULTIPLE)


_MODE_ALIASES = {
    "disable": PolicyMode.DISABLED,
}


@dataclass(frozen=True, slots=True)
class ExplicitPreset:
    name: str


TerminalPolicy = Union[PolicyMode, ExplicitPreset]


@dataclass(frozen=True, slots=True)
class PerBuildTypePolicy:
    """Preset policy chosen per build type; the ``default`` entry applies to unlisted types."""

    entries: Mapping[BuildType, TerminalPolicy]

    def for_build_type(self, build_type: BuildType) -> TerminalPolicy:
        policy = self.entries.get(build_type)
        if policy is None:
            policy = self.entries.get(BuildType.DEFAULT, PolicyMode.DISABLED)
        return policy


PresetPolicy = Union[PolicyMode, ExplicitPreset, PerBuildTypePolicy]


def _parse_terminal_policy(value: Any, *, field_name: str) -> TerminalPolicy:
    if isinstance(value, (PolicyMode, ExplicitPreset)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ConfigurationError(f"{field_name} must not be empty")
        if text in _MODE_ALIASES:
            return _MODE_ALIASES[text]
        try:
            return PolicyMode(text)
        except ValueError:
            return ExplicitPreset(text)
    if isinstance(value, Mapping):
        raise ConfigurationError(f"{field_name} cannot nest another per-build-type mapping")
    raise ConfigurationError(
        f"{field_name} must be a policy name, a preset name or a table of build types, not {value!r}"
    )


def parse_preset_policy(value: Any, *, field_name: str = "cmake.preset") -> PresetPolicy:
    """Parse a preset policy from configuration.

    Strings naming a :class:`PolicyMode` select that mode, any other string is
    an explicit preset name. Mappings choose a policy per build type and may
    not nest.
    """

    if isinstance(value, PerBuildTypePolicy):
        return value
    if isinstance(value, Mapping):
        entries: Dict[BuildType, TerminalPolicy] = {}
        for raw_key, raw_value in value.items():
            try:
                build_type = BuildType.parse(raw_key)
            except ValueError as exc:
                raise ConfigurationError(f"{field_name}: {exc}") from None
            entries[build_type] = _parse_terminal_policy(raw_value, field_name=f"{field_name}.{build_type.value}")
        return PerBuildTypePolicy(entries=entries)
    return _parse_terminal_policy(value, field_name=field_name)


class TargetBackend(str, Enum):
    HELP_TARGET = "help-target"
    CODE_MODEL = "code-model"

    @classmethod
    def parse(cls, value: "str | TargetBackend") -> "TargetBackend":
        if isinstance(value, TargetBackend):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ConfigurationError(f"Unknown target backend '{value}' (allowed: {allowed})") from None


class CachePolicy(str, Enum):
    ALWAYS = "always"
    NEVER = "never"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: Any) -> "CachePolicy":
        if isinstance(value, CachePolicy):
            return value
        if value is True:
            return cls.ALWAYS
        if value is False:
            return cls.NEVER
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ConfigurationError(f"cmake.cache_targets must be true, false or 'auto', not {value!r}")


DEFAULT_EXCLUDE_TARGETS = r"^(?:Nightly|Continuous|Experimental)"

PROJECT_CONFIG_STEM = ".cmake-discovery"


@dataclass(slots=True)
class CMakeConfig:
    build_directory: str | None = None
    build_type: str | None = None
    configure_options: List[str] = field(default_factory=list)
    preset: PresetPolicy = PolicyMode.PROMPT_ONCE_WHEN_MULTIPLE
    target_backend: TargetBackend = TargetBackend.HELP_TARGET
    cache_targets: CachePolicy = CachePolicy.AUTO
    cache_file: str = "CMakeCache.txt"
    exclude_targets: re.Pattern[str] | None = field(default_factory=lambda: re.compile(DEFAULT_EXCLUDE_TARGETS))
    ctest_options: List[str] = field(default_factory=list)
    ctest_environment: Dict[str, str] = field(default_factory=dict)
    ctest_jobs: Any = None
    remote: bool | str = True
    code_model_client: str = "cmake-discovery"

    KEYS = (
        "build_directory",
        "build_type",
        "configure_options",
        "preset",
        "target_backend",
        "cache_targets",
        "cache_file",
        "exclude_targets",
        "ctest_options",
        "ctest_environment",
        "ctest_jobs",
        "remote",
        "code_model_client",
    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CMakeConfig":
        section = data.get("cmake", data) if isinstance(data, Mapping) else None
        if not isinstance(section, Mapping):
            raise ConfigurationError("[cmake] section must be a table")

        unknown = {str(key) for key in section.keys() if str(key) not in cls.KEYS}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ConfigurationError(f"cmake configuration contains unknown keys: {joined}")

        config = cls()
        if "build_directory" in section:
            config.build_directory = _optional_str(section["build_directory"], "cmake.build_directory")
        if "build_type" in section:
            config.build_type = _optional_str(section["build_type"], "cmake.build_type")
        if "configure_options" in section:
            config.configure_options = _string_list(section["configure_options"], "cmake.configure_options")
        if "preset" in section:
            config.preset = parse_preset_policy(section["preset"])
        if "target_backend" in section:
            config.target_backend = TargetBackend.parse(section["target_backend"])
        if "cache_targets" in section:
            config.cache_targets = CachePolicy.parse(section["cache_targets"])
        if "cache_file" in section:
            cache_file = _optional_str(section["cache_file"], "cmake.cache_file")
            if cache_file is None:
                raise ConfigurationError("cmake.cache_file must not be empty")
            config.cache_file = cache_file
        if "exclude_targets" in section:
            config.exclude_targets = compile_exclude_pattern(section["exclude_targets"])
        if "ctest_options" in section:
            config.ctest_options = _string_list(section["ctest_options"], "cmake.ctest_options")
        if "ctest_environment" in section:
            environment = section["ctest_environment"]
            if not isinstance(environment, Mapping):
                raise ConfigurationError("cmake.ctest_environment must be a table")
            config.ctest_environment = {str(key): str(value) for key, value in environment.items()}
        if "ctest_jobs" in section:
            # Validated when the test command is built; bad values only warn.
            config.ctest_jobs = section["ctest_jobs"]
        if "remote" in section:
            remote = section["remote"]
            if not isinstance(remote, (bool, str)):
                raise ConfigurationError("cmake.remote must be a boolean or a remote prefix string")
            config.remote = remote
        if "code_model_client" in section:
            client = _optional_str(section["code_model_client"], "cmake.code_model_client")
            if client is None:
                raise ConfigurationError("cmake.code_model_client must not be empty")
            config.code_model_client = client
        return config

    @classmethod
    def load(cls, paths: Iterable[Path], *, project_root: Path | None = None) -> "CMakeConfig":
        """Load configuration files in order, then the project's ``.cmake-discovery.*`` file."""

        files = list(paths)
        try:
            if project_root is not None:
                files.extend(collect_config_files(project_root, stem=PROJECT_CONFIG_STEM).values())
            data = load_merged_config(files)
        except (TypeError, ValueError, yaml.YAMLError) as exc:
            raise ConfigurationError(str(exc)) from exc
        return cls.from_mapping(data)


def compile_exclude_pattern(value: Any) -> re.Pattern[str] | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError("cmake.exclude_targets must be a regular expression string")
    if not value:
        return None
    try:
        return re.compile(value)
    except re.error as exc:
        raise ConfigurationError(f"cmake.exclude_targets is not a valid regular expression: {exc}") from exc


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string")
    text = value.strip()
    return text or None


def _string_list(value: Any, field_name: str) -> List[str]:
    try:
        return normalize_string_list(value, field_name=field_name)
    except TypeError as exc:
        raise ConfigurationError(str(exc)) from exc


__all__ = [
    "CMakeConfig",
    "CachePolicy",
    "DEFAULT_EXCLUDE_TARGETS",
    "ExplicitPreset",
    "PerBuildTypePolicy",
    "PolicyMode",
    "PresetPolicy",
    "TargetBackend",
    "TerminalPolicy",
    "compile_exclude_pattern",
    "parse_preset_policy",
]
