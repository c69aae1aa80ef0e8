"""Version negotiation between the tiers.

``update`` brings the Target tier to the best version available upstream:

    Remote -> Cache -> Share -> Target

Every tier is queried first (Target, Share, Cache, Remote). A version moves
one hop downstream when it is higher than what the next tier holds, or the
same version with a different signature. ``install`` and ``deploy`` move a
freshly built package the other way: Local -> Cache -> Remote.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..common.logging_utils import Timer, extra_context, is_debug_enabled
from ..constants import NegotiationStatus
from ..errors import IntegrityError, TransportError
from ..package.models import PackageState, Tier
from ..versioning.range import VersionRange
from .base import PackageRepository
from .context import ResolutionContext

logger = logging.getLogger(__name__)

CHAIN = (Tier.REMOTE, Tier.CACHE, Tier.SHARE, Tier.TARGET)


class Negotiator:
    """Runs negotiations against the tiers of a context."""

    def __init__(self, context: ResolutionContext):
        self.context = context

    def _chain(self) -> List[Tuple[Tier, PackageRepository]]:
        chain = []
        for tier in CHAIN:
            repo = self.context.repository(tier)
            if repo is not None:
                chain.append((tier, repo))
        return chain

    def _query(self, state: PackageState, tier: Tier, repo: PackageRepository, version_range: VersionRange) -> bool:
        try:
            found = repo.query_in_range(state, version_range)
        except TransportError as exc:
            logger.warning(
                "%s tier unreachable while looking for %s: %s",
                tier.value,
                state.name,
                exc,
                extra=extra_context(event="query", component="negotiator", tier=tier.value, package=state.name, outcome="offline"),
            )
            found = False
        if not found:
            state.clear_tier(tier)
        return found

    @staticmethod
    def _needs_propagation(state: PackageState, upstream: Tier, downstream: Tier) -> bool:
        if not state.exists(upstream):
            return False
        if not state.exists(downstream):
            return True
        up_version, down_version = state.version(upstream), state.version(downstream)
        if up_version > down_version:
            return True
        return up_version == down_version and state.signature(upstream) != state.signature(downstream)

    def _submit(self, state: PackageState, source: PackageRepository, destination: PackageRepository) -> bool:
        try:
            ok = destination.submit(state, source)
        except (IntegrityError, TransportError, OSError) as exc:
            logger.error(
                "Propagating %s %s from %s to %s failed: %s",
                state.name,
                state.version(source.tier),
                source.tier.value,
                destination.tier.value,
                exc,
                extra=extra_context(
                    event="propagate", component="negotiator", package=state.name,
                    tier=destination.tier.value, outcome="error",
                ),
            )
            return False
        if not ok:
            logger.warning(
                "%s tier did not accept %s %s from %s",
                destination.tier.value,
                state.name,
                state.version(source.tier),
                source.tier.value,
            )
        return ok

    def update(self, state: PackageState, version_range: Optional[VersionRange] = None) -> NegotiationStatus:
        """Bring the most downstream tier to the best version in ``version_range``."""
        version_range = version_range or VersionRange.default()
        chain = self._chain()
        if not chain:
            logger.error("No repository tiers configured")
            return NegotiationStatus.FAILED

        with Timer() as timer:
            for tier, repo in reversed(chain):
                self._query(state, tier, repo, version_range)

            if self._is_fresh(state, chain):
                if is_debug_enabled(logger):
                    logger.debug(
                        "All tiers hold one version and signature",
                        extra=extra_context(event="negotiate", component="negotiator", package=state.name, outcome="fresh"),
                    )
                return NegotiationStatus.SATISFIED

            present = [state.version(tier) for tier, _ in chain if state.exists(tier)]
            if not present:
                logger.error(
                    "No tier holds %s %s for %s",
                    state.name,
                    version_range,
                    state.platform,
                    extra=extra_context(event="negotiate", component="negotiator", package=state.name, outcome="not_found"),
                )
                return NegotiationStatus.FAILED
            best = max(present)

            for (up_tier, up_repo), (down_tier, down_repo) in zip(chain, chain[1:]):
                if self._needs_propagation(state, up_tier, down_tier):
                    self._submit(state, up_repo, down_repo)

        terminal = chain[-1][0]
        satisfied = state.exists(terminal) and state.version(terminal) == best
        logger.info(
            "%s %s for %s: %s",
            state.name,
            state.version(terminal) if state.exists(terminal) else "-",
            state.platform,
            "up to date" if satisfied else f"expected {best}",
            extra=extra_context(
                event="negotiate", component="negotiator", package=state.name, tier=terminal.value,
                outcome="satisfied" if satisfied else "failed", duration_ms=timer.duration_ms(),
            ),
        )
        return NegotiationStatus.SATISFIED if satisfied else NegotiationStatus.FAILED

    @staticmethod
    def _is_fresh(state: PackageState, chain: List[Tuple[Tier, PackageRepository]]) -> bool:
        if len(chain) < len(CHAIN):
            return False
        held = set()
        for tier, _ in chain:
            if not state.exists(tier) or state.signature(tier) is None:
                return False
            held.add((state.version(tier), state.signature(tier)))
        return len(held) == 1

    def _push(self, state: PackageState, source_tier: Tier, destination_tier: Tier) -> bool:
        source = self.context.repository(source_tier)
        destination = self.context.repository(destination_tier)
        if source is None or destination is None:
            logger.error("Cannot move %s from %s to %s: tier not configured", state.name, source_tier.value, destination_tier.value)
            return False
        if not state.exists(source_tier):
            try:
                found = source.query(state)
            except TransportError as exc:
                logger.error("%s tier unreachable: %s", source_tier.value, exc)
                return False
            if not found:
                logger.error("%s tier has no %s for %s", source_tier.value, state.name, state.platform)
                return False
        return self._submit(state, source, destination)

    def install(self, state: PackageState) -> bool:
        """Copy the locally built package into the cache."""
        return self._push(state, Tier.LOCAL, Tier.CACHE)

    def deploy(self, state: PackageState) -> bool:
        """Publish the cached package to the remote tier."""
        return self._push(state, Tier.CACHE, Tier.REMOTE)
