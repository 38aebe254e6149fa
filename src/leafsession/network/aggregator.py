"""
Responder aggregation: resolve every partner node concurrently and keep
whichever ones answer.
"""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from leafsession.errors import ResponderResolutionError
from leafsession.logger import get_logger
from leafsession.models import Attestation, HomeBase, NetworkIdentity, UserContext
from leafsession.network.resolver import IdentityResolver

if TYPE_CHECKING:
    from leafsession.state import SessionState

logger = get_logger(__name__)


@dataclass(frozen=True)
class AggregateResult:
    """Identities (home first) plus the failures that were left out."""

    identities: tuple[NetworkIdentity, ...]
    failures: tuple[ResponderResolutionError, ...] = ()

    @property
    def home(self) -> NetworkIdentity:
        return self.identities[0]


def should_federate(
    attestation: Attestation, user: Optional[UserContext], home: HomeBase
) -> bool:
    """
    Whether partner nodes may be contacted at all.

    Identified sessions never leave the home node, nor do users who are not
    allowed federated queries, and there is nothing to do without partners.
    """
    if attestation.is_identified:
        return False
    if user is None or not user.is_federated_okay:
        return False
    return bool(home.responders)


class ResponderAggregator:
    """Joins all partner resolutions, tolerating individual failures."""

    def __init__(self, resolver: IdentityResolver):
        self.resolver = resolver

    async def aggregate(
        self,
        state: "SessionState",
        attestation: Attestation,
        home: HomeBase,
    ) -> AggregateResult:
        """
        Resolve the home node's partners.

        Responder ids follow configured position (1..N); id 0 is the home node.

        Returns:
            AggregateResult with the home identity at index 0.
        """
        home_identity = home.identity.model_copy(
            update={"id": 0, "is_home_node": True, "enabled": True}
        )

        if not should_federate(attestation, state.user, home):
            logger.info("Federation skipped; using home node only")
            return AggregateResult(identities=(home_identity,))

        logger.info(f"Resolving {len(home.responders)} partner node(s)")
        resolutions = await asyncio.gather(
            *(self.resolver.resolve(state, d) for d in home.responders)
        )

        identities = [home_identity]
        failures = []
        for position, resolution in enumerate(resolutions, start=1):
            if resolution.ok:
                identities.append(
                    resolution.identity.model_copy(
                        update={
                            "id": position,
                            "address": resolution.address,
                            "enabled": True,
                            "is_home_node": False,
                        }
                    )
                )
            else:
                failures.append(resolution.error)

        logger.info(
            f"Resolved {len(identities) - 1}/{len(resolutions)} partner node(s)"
        )
        return AggregateResult(identities=tuple(identities), failures=tuple(failures))
