"""NuGet registry package.

This package provides NuGet package source support:
- package_reader.py: .nupkg archive reading (nuspec metadata, lib/ items)
- client.py: HTTP interactions with the NuGet V3 API
- local.py: folders of .nupkg files used as a feed

Repositories are created from configured registry entries via
create_repository().
"""

import os
from typing import Dict, List
from urllib.parse import urlparse

# Patch points exposed for tests (e.g., monkeypatch in tests)
from common.http_client import get_json, get_bytes  # noqa: F401

# Public API re-exports
from .package_reader import NupkgReader  # noqa: F401
from .client import NuGetV3Repository, select_dependency_group  # noqa: F401
from .local import LocalFeedRepository  # noqa: F401


def create_repository(name: str, url: str):
    """Build a repository for an http(s) service index or a local folder."""
    scheme = urlparse(url).scheme.lower()
    if scheme in ("http", "https"):
        return NuGetV3Repository(name, url)
    if scheme == "file":
        return LocalFeedRepository(name, urlparse(url).path)
    return LocalFeedRepository(name, os.path.expanduser(url))


def create_repositories(entries: List[Dict[str, str]]) -> list:
    """Repositories for ``[{"name": ..., "url": ...}]`` entries, in order."""
    return [create_repository(e.get("name") or e["url"], e["url"]) for e in entries]


__all__ = [
    "NupkgReader",
    "NuGetV3Repository",
    "LocalFeedRepository",
    "create_repository",
    "create_repositories",
    "select_dependency_group",
    # Patch points for tests
    "get_json",
    "get_bytes",
]
