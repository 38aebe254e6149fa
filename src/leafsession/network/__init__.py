"""
Network layer for leafsession.

Collaborator interfaces, their httpx implementations, and the identity
resolution / responder aggregation used during bootstrap.
"""

from leafsession.network.aggregator import (
    AggregateResult,
    ResponderAggregator,
    should_federate,
)
from leafsession.network.base import (
    Navigator,
    NetworkTransport,
    PreviousSessionStore,
    ResourceLoader,
    TokenService,
    index_datasets,
)
from leafsession.network.resolver import IdentityResolver, Resolution, normalize_address
from leafsession.network.store import JsonSessionStore, MemorySessionStore

__all__ = [
    "AggregateResult",
    "IdentityResolver",
    "JsonSessionStore",
    "MemorySessionStore",
    "Navigator",
    "NetworkTransport",
    "PreviousSessionStore",
    "Resolution",
    "ResourceLoader",
    "ResponderAggregator",
    "TokenService",
    "index_datasets",
    "normalize_address",
    "should_federate",
]
