"""
Tests for the session bootstrap pipeline.
"""

import pytest

from conftest import FakeLoader, FakeTransport, identity, partner
from leafsession.bootstrap import GENERIC_ERROR_MESSAGE, SessionBootstrapPipeline
from leafsession.continuity import SessionContinuityManager
from leafsession.errors import BootstrapError
from leafsession.models import Attestation, HomeBase, PreviousSessionSnapshot, UserContext
from leafsession.network.store import MemorySessionStore
from leafsession.state import SessionState, SessionStore, TransitionType

EXPECTED_STAGES = [
    ("Submitting Attestation", 5),
    ("Finding Home Leaf server", 10),
    ("Finding Partner Leaf servers", 20),
    ("Loading Export options", 30),
    ("Loading Import options", 40),
    ("Loading Concepts", 50),
    ("Loading Patient List Datasets", 60),
    ("Loading Saved Queries", 70),
    ("Loading Extension Concepts", 80),
    ("Initializing Search Engine", 100),
]


@pytest.fixture
def transport(home_identity):
    home = HomeBase(
        identity=home_identity,
        responders=[
            partner(1, "https://p1.example/"),
            partner(2, "https://p2.example"),
        ],
    )
    return FakeTransport(home, partners={"https://p1.example": identity("Partner 1")})


def record(store):
    seen = []
    store.subscribe(lambda t, s: seen.append((t, s)))
    return seen


def load_states(seen):
    return [
        (s.load_state.display, s.load_state.progress)
        for t, s in seen
        if t.type == TransitionType.LOAD_STATE_SET
    ]


class TestBootstrapSuccess:
    @pytest.mark.asyncio
    async def test_progress_sequence(self, store, tokens, transport, loader):
        seen = record(store)
        pipeline = SessionBootstrapPipeline(store, tokens, transport, loader)

        assert await pipeline.run(Attestation()) is True
        assert load_states(seen) == EXPECTED_STAGES

        progress = [p for _, p in load_states(seen)]
        assert progress == sorted(progress)
        assert progress[-1] == 100

    @pytest.mark.asyncio
    async def test_final_state(self, store, tokens, transport, loader):
        pipeline = SessionBootstrapPipeline(store, tokens, transport, loader)
        await pipeline.run(Attestation())
        state = store.state

        assert state.attestation_complete
        assert not state.attestation_errored
        assert state.nonce == "nonce-1"
        assert state.context.raw_token == "token-0"
        assert [r.name for r in state.responders] == ["Home University", "Partner 1"]
        assert state.network_cohorts == (0, 1)
        assert state.user_inquiry == {"email": "researcher@example.org", "show": False}
        assert state.dataset_index["Clinical"][0]["id"] == "d1"
        assert state.dataset_index[""][0]["id"] == "d2"
        assert state.search_engine_ready
        assert pipeline.last_error is None

    @pytest.mark.asyncio
    async def test_stages_run_in_order(self, store, tokens, transport, loader):
        pipeline = SessionBootstrapPipeline(store, tokens, transport, loader)
        await pipeline.run(Attestation())

        assert loader.calls == [
            "export",
            "import",
            "concepts",
            "datasets",
            "queries",
            "extension",
            "search",
        ]

    @pytest.mark.asyncio
    async def test_extension_concepts_see_earlier_stages(
        self, store, tokens, transport, loader
    ):
        pipeline = SessionBootstrapPipeline(store, tokens, transport, loader)
        await pipeline.run(Attestation())

        import_options, saved_queries = loader.extension_args
        assert import_options == {"redCap": {"enabled": True}}
        assert saved_queries == [{"id": "q1", "name": "Diabetics"}]

    @pytest.mark.asyncio
    async def test_admin_gets_home_identity(self, config, tokens, transport, loader):
        store = SessionStore(
            SessionState(config=config, user=UserContext(name="a", is_admin=True))
        )
        await SessionBootstrapPipeline(store, tokens, transport, loader).run(
            Attestation()
        )
        assert store.state.admin_identity.name == "Home University"

    @pytest.mark.asyncio
    async def test_non_admin_has_no_admin_identity(
        self, store, tokens, transport, loader
    ):
        await SessionBootstrapPipeline(store, tokens, transport, loader).run(
            Attestation()
        )
        assert store.state.admin_identity is None

    @pytest.mark.asyncio
    async def test_identified_session_stays_home(
        self, store, tokens, transport, loader
    ):
        pipeline = SessionBootstrapPipeline(store, tokens, transport, loader)
        await pipeline.run(Attestation(is_identified=True))

        assert len(store.state.responders) == 1
        assert transport.requested == []

    @pytest.mark.asyncio
    async def test_continuity_runs_after_completion(
        self, store, tokens, transport, loader
    ):
        seen = record(store)
        snapshots = MemorySessionStore(
            PreviousSessionSnapshot(current_query={"id": "q"}, timestamp=1000.0)
        )
        continuity = SessionContinuityManager(snapshots, clock=lambda: 1000.0 + 120)
        pipeline = SessionBootstrapPipeline(
            store, tokens, transport, loader, continuity=continuity
        )
        await pipeline.run(Attestation())

        types = [t.type for t, _ in seen]
        assert types[-1] == TransitionType.CONFIRMATION_REQUESTED
        assert types.index(TransitionType.ATTESTATION_COMPLETED) < types.index(
            TransitionType.CONFIRMATION_REQUESTED
        )
        assert "about 2 minutes ago" in store.state.confirmation.body


class TestBootstrapFailure:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fail_on, label",
        [
            ("export", "Loading Export options"),
            ("datasets", "Loading Patient List Datasets"),
            ("search", "Initializing Search Engine"),
        ],
    )
    async def test_stage_failure_aborts(
        self, store, tokens, transport, fail_on, label
    ):
        loader = FakeLoader(fail_on=fail_on)
        seen = record(store)
        pipeline = SessionBootstrapPipeline(store, tokens, transport, loader)

        assert await pipeline.run(Attestation()) is False

        assert loader.calls[-1] == fail_on
        assert store.state.load_state.display == GENERIC_ERROR_MESSAGE
        assert store.state.load_state.progress == 0
        assert store.state.attestation_errored
        assert not store.state.attestation_complete
        assert isinstance(pipeline.last_error, BootstrapError)
        assert pipeline.last_error.stage == label

        progress = [p for _, p in load_states(seen)]
        assert progress[-1] == 0
        assert progress[:-1] == sorted(progress[:-1])

    @pytest.mark.asyncio
    async def test_attestation_failure(self, store, tokens, transport, loader):
        async def boom(state, attestation):
            raise PermissionError("denied")

        tokens.submit_attestation = boom
        pipeline = SessionBootstrapPipeline(store, tokens, transport, loader)

        assert await pipeline.run(Attestation()) is False
        assert loader.calls == []
        assert store.state.context is None
        assert store.state.attestation_errored
        assert pipeline.last_error.stage == "Submitting Attestation"

    @pytest.mark.asyncio
    async def test_partner_failure_is_not_fatal(self, store, tokens, home_identity, loader):
        home = HomeBase(
            identity=home_identity, responders=[partner(1, "https://down.example")]
        )
        transport = FakeTransport(home)
        pipeline = SessionBootstrapPipeline(store, tokens, transport, loader)

        assert await pipeline.run(Attestation()) is True
        assert len(store.state.responders) == 1

    @pytest.mark.asyncio
    async def test_rerun_after_failure_clears_error(
        self, store, tokens, transport
    ):
        failing = SessionBootstrapPipeline(
            store, tokens, transport, FakeLoader(fail_on="concepts")
        )
        await failing.run(Attestation())
        assert store.state.attestation_errored

        ok = SessionBootstrapPipeline(store, tokens, transport, FakeLoader())
        assert await ok.run(Attestation()) is True
        assert not store.state.attestation_errored
        assert store.state.load_state.progress == 100
