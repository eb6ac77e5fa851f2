"""Shared core utilities for running commands, loading configuration and console output."""

from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    RecordingCommandRunner,
    ScriptedResponse,
    SubprocessCommandRunner,
    format_command,
)
from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    collect_config_files,
    load_config_file,
    load_merged_config,
    merge_mappings,
    normalize_string_list,
)
from .console import Console, ConsoleLike, RecordingConsole

__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "ConfigLoader",
    "Console",
    "ConsoleLike",
    "FILE_LOADERS",
    "RecordingCommandRunner",
    "RecordingConsole",
    "ScriptedResponse",
    "SubprocessCommandRunner",
    "collect_config_files",
    "format_command",
    "load_config_file",
    "load_merged_config",
    "merge_mappings",
    "normalize_string_list",
]
