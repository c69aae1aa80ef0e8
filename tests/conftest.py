"""Shared fixtures: package states, archives on disk and in-memory tiers."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from xpkg.errors import TransportError
from xpkg.package.archive import write_archive
from xpkg.package.models import PackageState, Tier, normalize_signature
from xpkg.repository import layout as layouts
from xpkg.repository.base import PackageRepository, find_best_version
from xpkg.versioning.version import ComparableVersion


V = ComparableVersion

SIG_A = normalize_signature(datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc))
SIG_B = normalize_signature(datetime(2024, 4, 1, 12, 0, 0, tzinfo=timezone.utc))


def make_pom(name: str, version: str = "1.0.0", dependencies: str = "") -> bytes:
    return (
        f'<Package Name="{name}" Group="com.virtuos.tnt">'
        f'<Versions><Current Platform="*">{version}</Current></Versions>'
        f"{dependencies}"
        f"</Package>"
    ).encode("utf-8")


def store_archive(repo_dir: Path, state: PackageState, version: str, extra: Optional[Dict[str, bytes]] = None) -> Path:
    """Write an archive where the default layout expects it."""
    v = V(version)
    path = layouts.DEFAULT.version_dir(repo_dir, state, v) / layouts.DEFAULT.filename(state, v).filename
    files = {"pom.xml": make_pom(state.name, version)}
    files.update(extra or {})
    return write_archive(path, files)


class FakeRepository(PackageRepository):
    """In-memory tier recording queries and submits."""

    def __init__(self, tier: Tier, versions: Optional[Dict[str, object]] = None, offline: bool = False):
        super().__init__(tier)
        self.versions = {V(v): sig for v, sig in (versions or {}).items()}
        self.offline = offline
        self.queries = 0
        self.submits: List[Tier] = []
        self.fail_submit: Optional[Exception] = None

    def query_in_range(self, state, version_range):
        self.queries += 1
        if self.offline:
            raise TransportError(f"{self.tier.value} is offline")
        best = find_best_version(sorted(self.versions), version_range)
        if best is None:
            return False
        state.set_tier(self.tier, url=f"mem://{self.tier.value}", version=best, signature=self.versions[best])
        return True

    def link(self, state):
        return None

    def download(self, state, destination):
        return True

    def submit(self, state, source):
        self.submits.append(source.tier)
        if self.fail_submit is not None:
            raise self.fail_submit
        version = state.version(source.tier)
        signature = state.signature(source.tier)
        self.versions[version] = signature
        state.set_tier(self.tier, url=f"mem://{self.tier.value}", version=version, signature=signature)
        return True


@pytest.fixture
def state():
    return PackageState(name="zlib", group="com.virtuos.tnt", branch="default", platform="Win32")
