"""Turns dependency edges into resolved packages."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from ..constants import Constants, NegotiationStatus
from ..errors import NotFoundError
from ..package.models import PackageInstance, PackageState
from ..package.pom import Pom, load_pom
from ..repository.negotiator import Negotiator
from .instance import DependencyInstance

logger = logging.getLogger(__name__)

PomLoader = Callable[[Path], Pom]


class PackageResolver:
    """Negotiates a dependency into the Target tier and loads its POM."""

    def __init__(self, negotiator: Negotiator, pom_loader: Optional[PomLoader] = None):
        self.negotiator = negotiator
        self.pom_loader = pom_loader or load_pom

    def resolve(self, dependency: DependencyInstance) -> PackageInstance:
        state = PackageState(
            name=dependency.name,
            group=dependency.group,
            branch=dependency.branch,
            platform=dependency.platform,
        )
        status = self.negotiator.update(state, dependency.version_range)
        if status != NegotiationStatus.SATISFIED:
            raise NotFoundError(
                f"No version of {dependency.name} in {dependency.version_range} for {dependency.platform}",
                package=dependency.name,
            )
        local_url = state.local_url()
        if not local_url:
            raise NotFoundError(f"{dependency.name} has no extracted content", package=dependency.name)
        pom = self.pom_loader(Path(local_url) / Constants.POM_FILE)
        return PackageInstance(state, pom)
