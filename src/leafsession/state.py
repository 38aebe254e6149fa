"""
Session state and its transition stream.

``SessionState`` is immutable. Every change is expressed as a ``Transition``
and applied by ``reduce``; ``SessionStore`` keeps the current state and
notifies subscribers (UI, persistence) after each transition.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional

from leafsession.config import CONFIG, Config
from leafsession.logger import get_logger
from leafsession.models import (
    Attestation,
    ConfirmationModal,
    HomeBase,
    NetworkIdentity,
    SessionContext,
    SessionLoadState,
    UserContext,
)

logger = get_logger(__name__)


class TransitionType(str, Enum):
    ATTESTATION_SUBMITTED = "attestation_submitted"
    ATTESTATION_ERRORED = "attestation_errored"
    ATTESTATION_COMPLETED = "attestation_completed"
    SESSION_CONTEXT_SET = "session_context_set"
    LOAD_STATE_SET = "load_state_set"
    USER_INQUIRY_SET = "user_inquiry_set"
    HOME_BASE_SET = "home_base_set"
    ADMIN_IDENTITY_SET = "admin_identity_set"
    RESPONDERS_SET = "responders_set"
    NETWORK_COHORTS_REGISTERED = "network_cohorts_registered"
    EXPORT_OPTIONS_SET = "export_options_set"
    IMPORT_OPTIONS_SET = "import_options_set"
    ROOT_CONCEPTS_SET = "root_concepts_set"
    DATASETS_SET = "datasets_set"
    SAVED_QUERIES_ADDED = "saved_queries_added"
    EXTENSION_CONCEPTS_SET = "extension_concepts_set"
    SEARCH_ENGINE_READY = "search_engine_ready"
    CONFIRMATION_REQUESTED = "confirmation_requested"
    CURRENT_QUERY_SET = "current_query_set"
    PANELS_SET = "panels_set"
    PANEL_FILTERS_SET = "panel_filters_set"
    TOKEN_CLEARED = "token_cleared"


@dataclass(frozen=True)
class Transition:
    """A named state change and its payload."""

    type: TransitionType
    payload: Any = None


@dataclass(frozen=True)
class SessionState:
    """Everything the bootstrap and lifecycle code read or produce."""

    config: Config = field(default_factory=lambda: CONFIG)
    user: Optional[UserContext] = None

    attestation: Optional[Attestation] = None
    attestation_submitted: bool = False
    attestation_errored: bool = False
    attestation_complete: bool = False
    nonce: Optional[str] = None

    context: Optional[SessionContext] = None
    load_state: SessionLoadState = field(default_factory=SessionLoadState)
    user_inquiry: dict = field(default_factory=dict)

    home_base: Optional[HomeBase] = None
    admin_identity: Optional[NetworkIdentity] = None
    responders: tuple[NetworkIdentity, ...] = ()
    network_cohorts: tuple[int, ...] = ()

    export_options: dict = field(default_factory=dict)
    import_options: dict = field(default_factory=dict)
    root_concepts: tuple[dict, ...] = ()
    extension_concepts: tuple[dict, ...] = ()
    datasets: tuple[dict, ...] = ()
    dataset_index: dict = field(default_factory=dict)
    saved_queries: tuple[dict, ...] = ()
    search_engine_ready: bool = False

    confirmation: Optional[ConfirmationModal] = None
    current_query: Optional[dict] = None
    panels: tuple[dict, ...] = ()
    panel_filters: tuple[dict, ...] = ()

    @property
    def token(self) -> Optional[str]:
        return self.context.raw_token if self.context else None


def reduce(state: SessionState, transition: Transition) -> SessionState:
    """Return the state that results from applying ``transition``."""
    t, p = transition.type, transition.payload

    if t == TransitionType.ATTESTATION_SUBMITTED:
        return replace(
            state,
            attestation=p,
            attestation_submitted=True,
            attestation_errored=False,
            attestation_complete=False,
        )
    if t == TransitionType.ATTESTATION_ERRORED:
        return replace(state, attestation_errored=bool(p))
    if t == TransitionType.ATTESTATION_COMPLETED:
        return replace(state, attestation_complete=True, nonce=p)
    if t == TransitionType.SESSION_CONTEXT_SET:
        return replace(state, context=p)
    if t == TransitionType.TOKEN_CLEARED:
        return replace(state, context=None)
    if t == TransitionType.LOAD_STATE_SET:
        return replace(state, load_state=p)
    if t == TransitionType.USER_INQUIRY_SET:
        return replace(state, user_inquiry=dict(p))
    if t == TransitionType.HOME_BASE_SET:
        return replace(state, home_base=p)
    if t == TransitionType.ADMIN_IDENTITY_SET:
        return replace(state, admin_identity=p)
    if t == TransitionType.RESPONDERS_SET:
        return replace(state, responders=tuple(p))
    if t == TransitionType.NETWORK_COHORTS_REGISTERED:
        return replace(state, network_cohorts=tuple(p))
    if t == TransitionType.EXPORT_OPTIONS_SET:
        return replace(state, export_options=dict(p))
    if t == TransitionType.IMPORT_OPTIONS_SET:
        return replace(state, import_options=dict(p))
    if t == TransitionType.ROOT_CONCEPTS_SET:
        return replace(state, root_concepts=tuple(p))
    if t == TransitionType.DATASETS_SET:
        datasets, index = p
        return replace(state, datasets=tuple(datasets), dataset_index=dict(index))
    if t == TransitionType.SAVED_QUERIES_ADDED:
        return replace(state, saved_queries=state.saved_queries + tuple(p))
    if t == TransitionType.EXTENSION_CONCEPTS_SET:
        return replace(state, extension_concepts=tuple(p))
    if t == TransitionType.SEARCH_ENGINE_READY:
        return replace(state, search_engine_ready=True)
    if t == TransitionType.CONFIRMATION_REQUESTED:
        return replace(state, confirmation=p)
    if t == TransitionType.CURRENT_QUERY_SET:
        return replace(state, current_query=p)
    if t == TransitionType.PANELS_SET:
        return replace(state, panels=tuple(p))
    if t == TransitionType.PANEL_FILTERS_SET:
        return replace(state, panel_filters=tuple(p))

    raise ValueError(f"Unknown transition type: {t}")


Subscriber = Callable[[Transition, SessionState], None]


class SessionStore:
    """
    Single-writer holder of the current ``SessionState``.

    Subscribers are called with each transition and the resulting state.
    """

    def __init__(self, state: Optional[SessionState] = None):
        self._state = state or SessionState()
        self._subscribers: list[Subscriber] = []

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Returns:
            A callable that removes the subscriber.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def dispatch(self, transition: Transition) -> SessionState:
        """Apply a transition, notify subscribers, and return the new state."""
        self._state = reduce(self._state, transition)
        logger.debug(f"Dispatched {transition.type.value}")

        for callback in list(self._subscribers):
            try:
                callback(transition, self._state)
            except Exception as e:
                logger.error(f"Subscriber failed on {transition.type.value}: {e}")

        return self._state
