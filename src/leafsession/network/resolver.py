"""
Identity resolution for a single Leaf node.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from leafsession.errors import ResponderResolutionError
from leafsession.logger import get_logger
from leafsession.models import NetworkIdentity, ResponderDescriptor
from leafsession.network.base import NetworkTransport

if TYPE_CHECKING:
    from leafsession.state import SessionState

logger = get_logger(__name__)


def normalize_address(address: str) -> str:
    """Strip exactly one trailing slash."""
    if address.endswith("/"):
        return address[:-1]
    return address


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one node: an identity or a tagged error."""

    node_id: int
    address: str
    identity: Optional[NetworkIdentity] = None
    error: Optional[ResponderResolutionError] = None

    @property
    def ok(self) -> bool:
        return self.identity is not None


class IdentityResolver:
    """Fetches a node's NetworkIdentity; never raises for transport failures."""

    def __init__(self, transport: NetworkTransport):
        self.transport = transport

    async def resolve(
        self, state: "SessionState", descriptor: ResponderDescriptor
    ) -> Resolution:
        """
        Resolve one node's identity.

        Args:
            state: Current session state (carries the token).
            descriptor: The configured node to contact.

        Returns:
            A Resolution holding either the identity or the failure.
        """
        address = normalize_address(descriptor.address)
        target = descriptor.model_copy(update={"address": address})

        try:
            identity = await self.transport.fetch_responder_identity(state, target)
        except Exception as e:
            logger.warning(f"Could not resolve responder {descriptor.id} at {address}: {e}")
            return Resolution(
                node_id=descriptor.id,
                address=address,
                error=ResponderResolutionError(descriptor.id, address, e),
            )

        return Resolution(node_id=descriptor.id, address=address, identity=identity)
