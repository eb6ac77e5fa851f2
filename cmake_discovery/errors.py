"""Exception types raised by the discovery engine."""
from __future__ import annotations


class CMakeDiscoveryError(Exception):
    """Base class for errors raised by :mod:`cmake_discovery`."""


class ConfigurationError(CMakeDiscoveryError, ValueError):
    """Raised for invalid configuration such as an unknown backend or malformed preset policy."""


class CodeModelError(CMakeDiscoveryError):
    """Raised when a file-API reply is not a code model the engine understands.

    Usually means the installed CMake is too old or too new for the reply format.
    """


__all__ = ["CMakeDiscoveryError", "CodeModelError", "ConfigurationError"]
