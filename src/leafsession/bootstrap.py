"""
Session bootstrap pipeline.

Runs the stages that turn an attestation into a usable session, strictly in
order. Before each stage the load state (label, percent) is dispatched; each
stage then reads the current state and returns the transitions it produced.
The first failure stops the pipeline and flags the attestation as errored.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from leafsession.continuity import SessionContinuityManager
from leafsession.errors import BootstrapError
from leafsession.logger import get_logger
from leafsession.models import Attestation, SessionLoadState
from leafsession.network.aggregator import ResponderAggregator
from leafsession.network.base import NetworkTransport, ResourceLoader, TokenService
from leafsession.network.resolver import IdentityResolver
from leafsession.state import SessionState, SessionStore, Transition, TransitionType

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = (
    "Uh oh. Something went wrong while loading Leaf information from the "
    "server. Please contact your Leaf administrator."
)

StageFn = Callable[[SessionState], Awaitable[list[Transition]]]


@dataclass(frozen=True)
class Stage:
    label: str
    progress: int
    run: StageFn


class SessionBootstrapPipeline:
    """Attest, discover the network, and load session resources."""

    def __init__(
        self,
        store: SessionStore,
        tokens: TokenService,
        transport: NetworkTransport,
        loader: ResourceLoader,
        continuity: Optional[SessionContinuityManager] = None,
        aggregator: Optional[ResponderAggregator] = None,
    ):
        self.store = store
        self.tokens = tokens
        self.transport = transport
        self.loader = loader
        self.continuity = continuity
        self.aggregator = aggregator or ResponderAggregator(IdentityResolver(transport))
        self.last_error: Optional[BootstrapError] = None

    def stages(self, attestation: Attestation) -> list[Stage]:
        async def submit_attestation(state: SessionState) -> list[Transition]:
            ctx = await self.tokens.submit_attestation(state, attestation)
            transitions = [Transition(TransitionType.SESSION_CONTEXT_SET, ctx)]
            if state.user is not None:
                transitions.append(
                    Transition(
                        TransitionType.USER_INQUIRY_SET,
                        {"email": state.user.name, "show": False},
                    )
                )
            return transitions

        async def find_home(state: SessionState) -> list[Transition]:
            home = await self.transport.fetch_home_identity(state)
            transitions = [Transition(TransitionType.HOME_BASE_SET, home)]
            if state.user is not None and state.user.is_admin:
                transitions.append(
                    Transition(TransitionType.ADMIN_IDENTITY_SET, home.identity)
                )
            return transitions

        async def find_partners(state: SessionState) -> list[Transition]:
            result = await self.aggregator.aggregate(state, attestation, state.home_base)
            for failure in result.failures:
                logger.warning(f"Responder {failure.node_id} left out: {failure.cause}")
            return [
                Transition(TransitionType.RESPONDERS_SET, result.identities),
                Transition(
                    TransitionType.NETWORK_COHORTS_REGISTERED,
                    [r.id for r in result.identities],
                ),
            ]

        async def load_export_options(state: SessionState) -> list[Transition]:
            options = await self.loader.get_export_options(state)
            return [Transition(TransitionType.EXPORT_OPTIONS_SET, options)]

        async def load_import_options(state: SessionState) -> list[Transition]:
            options = await self.loader.get_import_options(state)
            return [Transition(TransitionType.IMPORT_OPTIONS_SET, options)]

        async def load_concepts(state: SessionState) -> list[Transition]:
            concepts = await self.loader.get_root_concepts(state)
            return [Transition(TransitionType.ROOT_CONCEPTS_SET, concepts)]

        async def load_datasets(state: SessionState) -> list[Transition]:
            datasets = await self.loader.get_datasets(state)
            index = await self.loader.index_datasets(datasets)
            return [Transition(TransitionType.DATASETS_SET, (datasets, index))]

        async def load_saved_queries(state: SessionState) -> list[Transition]:
            queries = await self.loader.get_saved_queries(state)
            return [Transition(TransitionType.SAVED_QUERIES_ADDED, queries)]

        async def load_extension_concepts(state: SessionState) -> list[Transition]:
            concepts = await self.loader.get_extension_concepts(
                state, state.import_options, list(state.saved_queries)
            )
            return [Transition(TransitionType.EXTENSION_CONCEPTS_SET, concepts)]

        async def init_search(state: SessionState) -> list[Transition]:
            await self.loader.initialize_search_engine(state)
            return [Transition(TransitionType.SEARCH_ENGINE_READY)]

        return [
            Stage("Submitting Attestation", 5, submit_attestation),
            Stage("Finding Home Leaf server", 10, find_home),
            Stage("Finding Partner Leaf servers", 20, find_partners),
            Stage("Loading Export options", 30, load_export_options),
            Stage("Loading Import options", 40, load_import_options),
            Stage("Loading Concepts", 50, load_concepts),
            Stage("Loading Patient List Datasets", 60, load_datasets),
            Stage("Loading Saved Queries", 70, load_saved_queries),
            Stage("Loading Extension Concepts", 80, load_extension_concepts),
            Stage("Initializing Search Engine", 100, init_search),
        ]

    def _set_load_state(self, display: str, progress: int) -> None:
        self.store.dispatch(
            Transition(
                TransitionType.LOAD_STATE_SET,
                SessionLoadState(display=display, progress=progress),
            )
        )

    async def run(self, attestation: Attestation) -> bool:
        """
        Bootstrap a session for ``attestation``.

        Returns:
            True on success. On failure the store carries the generic error
            load state and an errored attestation, and ``last_error`` is set.
        """
        self.last_error = None
        stage_label = "Submitting Attestation"

        try:
            for index, stage in enumerate(self.stages(attestation)):
                stage_label = stage.label
                self._set_load_state(stage.label, stage.progress)
                if index == 0:
                    self.store.dispatch(
                        Transition(TransitionType.ATTESTATION_SUBMITTED, attestation)
                    )

                logger.debug(f"Bootstrap stage: {stage.label} ({stage.progress}%)")
                for transition in await stage.run(self.store.state):
                    self.store.dispatch(transition)

            stage_label = "Completing Attestation"
            self.store.dispatch(
                Transition(
                    TransitionType.ATTESTATION_COMPLETED,
                    self.store.state.context.access_nonce,
                )
            )
            logger.info(
                f"Session ready with {len(self.store.state.responders)} node(s)"
            )

            stage_label = "Checking Previous Session"
            if self.continuity is not None:
                self.continuity.offer(self.store)

        except Exception as e:
            self.last_error = BootstrapError(stage_label, e)
            logger.error(f"Bootstrap failed during '{stage_label}': {e}")
            self._set_load_state(GENERIC_ERROR_MESSAGE, 0)
            self.store.dispatch(Transition(TransitionType.ATTESTATION_ERRORED, True))
            return False

        return True
