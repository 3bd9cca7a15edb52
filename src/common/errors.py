"""Error taxonomy for dependency resolution and graph construction.

Every error is fatal to the current request; the CLI maps them to exit codes.
"""
from __future__ import annotations

from typing import Any, Optional


class DependsError(Exception):
    """Base class for all errors raised by this project."""


class ConfigError(DependsError):
    """Configuration file could not be loaded or is invalid."""


class MalformedVersionError(DependsError, ValueError):
    """A version or version range string could not be parsed."""

    def __init__(self, text: str, reason: Optional[str] = None):
        self.text = text
        message = f"Malformed version string: '{text}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class MalformedFrameworkError(DependsError, ValueError):
    """A target framework moniker could not be parsed."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Unrecognized target framework: '{text}'")


class PackageNotFoundError(DependsError):
    """No registry could resolve the package identity."""

    def __init__(self, identity: Any):
        self.identity = identity
        super().__init__(f"Package {identity} not found in any registry")


class UnsatisfiedDependencyError(DependsError):
    """No discovered candidate satisfies a declared dependency range."""

    def __init__(self, package_id: str, version_range: Any):
        self.package_id = package_id
        self.version_range = version_range
        super().__init__(
            f"No candidate for {package_id} satisfies {version_range}"
        )


class RegistryError(DependsError):
    """A registry request failed (transport, status or payload)."""


class ProjectLoadError(DependsError):
    """The project file could not be loaded."""


class UnsupportedProjectError(ProjectLoadError):
    """The project kind is not supported (only SDK-style projects are)."""


class MissingRestoreError(DependsError):
    """The project's lock file is absent; a restore has not been run."""

    def __init__(self, assets_path: str):
        self.assets_path = assets_path
        super().__init__(f"{assets_path} not found. Please run 'dotnet restore'")


class LockFileError(DependsError):
    """The lock file exists but cannot be read or lacks the requested target."""


class GraphConstructionError(DependsError):
    """The graph builder was used incorrectly."""


class ResolutionCancelledError(DependsError):
    """The caller cancelled the resolution; no graph is produced."""
