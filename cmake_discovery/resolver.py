"""Decide which preset applies to a build type."""
from __future__ import annotations

from typing import Callable, Sequence

from core.console import Console, ConsoleLike

from .cache import Cache
from .config import (
    CMakeConfig,
    ExplicitPreset,
    PerBuildTypePolicy,
    PolicyMode,
    PresetPolicy,
    TerminalPolicy,
)
from .errors import ConfigurationError
from .presets import BuildType, Preset, PresetLister
from .project import Project

Chooser = Callable[[str, Sequence[Preset]], str]
"""Prompt collaborator: ``choose(message, presets)`` returns a name, ``""`` for no selection."""


def preset_cache_key(build_type: BuildType) -> tuple[str, str]:
    return ("cmake-preset", build_type.value)


def terminal_policy(policy: PresetPolicy, build_type: BuildType) -> TerminalPolicy:
    """Reduce ``policy`` to the single policy that applies to ``build_type``."""

    if isinstance(policy, PerBuildTypePolicy):
        policy = policy.for_build_type(build_type)
    if isinstance(policy, (PolicyMode, ExplicitPreset)):
        return policy
    raise ConfigurationError(f"Malformed preset policy for {build_type.value}: {policy!r}")


class PresetResolver:
    """Resolve the preset for a project and build type.

    Precedence, highest first:

    1. a preset set explicitly for the build type, then for ``default``;
    2. ``disabled`` (no preset);
    3. an explicit preset name from the configuration;
    4. ``silent`` (no preset, nothing listed);
    5. the project's listed presets, prompting when the policy asks to.

    Choices made under ``prompt-once`` and ``prompt-once-when-multiple`` are
    remembered like explicitly set presets. A sole preset that is picked
    automatically is not remembered, so adding a preset later brings the
    prompt back.
    """

    def __init__(
        self,
        config: CMakeConfig,
        cache: Cache,
        lister: PresetLister,
        choose: Chooser,
        *,
        console: ConsoleLike | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._lister = lister
        self._choose = choose
        self._console = console or Console()

    def cached_preset(self, project: Project, build_type: BuildType) -> str | None:
        preset = self._cache.get(project, preset_cache_key(build_type))
        if preset is None and build_type is not BuildType.DEFAULT:
            preset = self._cache.get(project, preset_cache_key(BuildType.DEFAULT))
        return preset

    def set_preset(self, project: Project, build_type: BuildType, preset: str | None) -> None:
        """Pin ``preset`` for ``build_type``; ``None`` forgets any pinned preset."""

        key = preset_cache_key(build_type)
        if preset:
            self._cache.put(project, key, preset)
        else:
            self._cache.invalidate(project, key)

    def resolve(
        self,
        project: Project,
        build_type: BuildType,
        *,
        interactive: bool = True,
    ) -> str | None:
        """Return the preset to use, or ``None`` for no preset.

        With ``interactive=False`` prompting policies behave like ``silent``.
        """

        policy = terminal_policy(self._config.preset, build_type)

        cached = self.cached_preset(project, build_type)
        if cached is not None:
            return cached

        if isinstance(policy, ExplicitPreset):
            return policy.name
        if policy is PolicyMode.DISABLED or policy is PolicyMode.SILENT:
            return None
        if not interactive:
            return None

        presets = self._lister.presets(project, build_type)
        if not presets:
            self._console.debug(f"No {build_type.value} presets available for {project.name}")
            return None
        if len(presets) == 1 and policy.auto_selects_single:
            return presets[0].name

        choice = self._choose(f"Select {build_type.value} preset: ", presets)
        if not choice:
            return None
        if policy.remembers_choice:
            self._cache.put(project, preset_cache_key(build_type), choice)
        return choice


__all__ = ["Chooser", "PresetResolver", "preset_cache_key", "terminal_policy"]
