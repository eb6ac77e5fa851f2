"""Target and preset discovery for CMake projects."""
from __future__ import annotations

from .cache import ALWAYS, NEVER, AllOf, Always, Cache, MemoryCacheStore, ModTimeOf, Never
from .commands import CommandBuilder, ShellCommand
from .config import (
    CMakeConfig,
    CachePolicy,
    ExplicitPreset,
    PerBuildTypePolicy,
    PolicyMode,
    TargetBackend,
    parse_preset_policy,
)
from .engine import CMakeEngine
from .errors import CMakeDiscoveryError, CodeModelError, ConfigurationError
from .presets import BuildType, Preset, PresetLister, parse_preset_listing
from .project import DirectoryProjectLocator, PathAccess, Project, ShellCommandRunner
from .resolver import PresetResolver
from .targets import TargetLister, exclude_targets, parse_code_model, parse_help_targets

__all__ = [
    "ALWAYS",
    "AllOf",
    "Always",
    "BuildType",
    "CMakeConfig",
    "CMakeDiscoveryError",
    "CMakeEngine",
    "Cache",
    "CachePolicy",
    "CodeModelError",
    "CommandBuilder",
    "ConfigurationError",
    "DirectoryProjectLocator",
    "ExplicitPreset",
    "MemoryCacheStore",
    "ModTimeOf",
    "NEVER",
    "Never",
    "PathAccess",
    "PerBuildTypePolicy",
    "PolicyMode",
    "Preset",
    "PresetLister",
    "PresetResolver",
    "Project",
    "ShellCommand",
    "ShellCommandRunner",
    "TargetBackend",
    "TargetLister",
    "exclude_targets",
    "parse_code_model",
    "parse_help_targets",
    "parse_preset_listing",
    "parse_preset_policy",
]
