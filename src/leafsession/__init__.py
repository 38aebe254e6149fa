"""
Session bootstrap for a federated Leaf query network.

A client attests, resolves its home node and partner responders, loads the
resources a session needs, and keeps the session alive until logout.
"""

from leafsession.bootstrap import GENERIC_ERROR_MESSAGE, SessionBootstrapPipeline
from leafsession.config import CONFIG, AuthConfig, AuthMechanism, Config
from leafsession.continuity import SessionContinuityManager, describe_elapsed
from leafsession.lifecycle import RefreshRunner, SessionLifecycleController
from leafsession.models import (
    Attestation,
    NetworkIdentity,
    PreviousSessionSnapshot,
    ResponderDescriptor,
    SessionContext,
    SessionLoadState,
    UserContext,
)
from leafsession.state import SessionState, SessionStore, Transition, TransitionType

__all__ = [
    "CONFIG",
    "GENERIC_ERROR_MESSAGE",
    "Attestation",
    "AuthConfig",
    "AuthMechanism",
    "Config",
    "NetworkIdentity",
    "PreviousSessionSnapshot",
    "RefreshRunner",
    "ResponderDescriptor",
    "SessionBootstrapPipeline",
    "SessionContext",
    "SessionContinuityManager",
    "SessionLifecycleController",
    "SessionLoadState",
    "SessionState",
    "SessionStore",
    "Transition",
    "TransitionType",
    "UserContext",
    "describe_elapsed",
]
