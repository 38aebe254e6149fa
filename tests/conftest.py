"""Shared pytest fixtures and fake collaborators."""

import asyncio
import base64
import json

import pytest

from leafsession.config import AuthConfig, AuthMechanism, Config
from leafsession.models import (
    HomeBase,
    LogoutResult,
    NetworkIdentity,
    ResponderDescriptor,
    SessionContext,
    UserContext,
)
from leafsession.network.base import (
    Navigator,
    NetworkTransport,
    ResourceLoader,
    TokenService,
)
from leafsession.state import SessionState, SessionStore


def make_token(claims: dict) -> str:
    """Build an unsigned JWT-shaped token carrying ``claims``."""

    def part(data: dict) -> str:
        raw = base64.urlsafe_b64encode(json.dumps(data).encode()).decode()
        return raw.rstrip("=")

    return f"{part({'alg': 'none'})}.{part(claims)}.sig"


class FakeTokenService(TokenService):
    def __init__(self, nonce="nonce-1", logout_result=None, logout_error=None):
        self.nonce = nonce
        self.logout_result = logout_result
        self.logout_error = logout_error
        self.refresh_error = None
        self.calls: list[str] = []
        self.refresh_count = 0

    async def get_user_context(self, config):
        return UserContext(name="researcher@example.org")

    async def submit_attestation(self, state, attestation):
        self.calls.append("submit_attestation")
        return SessionContext(
            raw_token="token-0", raw_decoded={"access-nonce": self.nonce}
        )

    async def refresh(self, state):
        self.calls.append("refresh")
        if self.refresh_error:
            raise self.refresh_error
        self.refresh_count += 1
        return SessionContext(
            raw_token=f"token-{self.refresh_count}",
            raw_decoded={"access-nonce": self.nonce},
        )

    async def logout(self, state):
        self.calls.append("logout")
        if self.logout_error:
            raise self.logout_error
        return self.logout_result

    def clear_local_token(self, config):
        self.calls.append("clear_local_token")


class FakeTransport(NetworkTransport):
    """
    Partner behaviour is keyed by normalized address: a NetworkIdentity to
    return, or an exception to raise. ``delays`` staggers completion.
    """

    def __init__(self, home: HomeBase, partners=None, delays=None):
        self.home = home
        self.partners = partners or {}
        self.delays = delays or {}
        self.requested: list[str] = []

    async def fetch_home_identity(self, state):
        return self.home

    async def fetch_responder_identity(self, state, descriptor):
        self.requested.append(descriptor.address)
        await asyncio.sleep(self.delays.get(descriptor.address, 0))
        outcome = self.partners.get(descriptor.address)
        if outcome is None:
            raise ConnectionError(f"no route to {descriptor.address}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeLoader(ResourceLoader):
    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls: list[str] = []
        self.extension_args = None

    def _record(self, name):
        self.calls.append(name)
        if name == self.fail_on:
            raise RuntimeError(f"{name} exploded")

    async def get_export_options(self, state):
        self._record("export")
        return {"redCap": {"enabled": False}}

    async def get_import_options(self, state):
        self._record("import")
        return {"redCap": {"enabled": True}}

    async def get_root_concepts(self, state):
        self._record("concepts")
        return [{"id": "c1", "uiDisplayName": "Demographics"}]

    async def get_datasets(self, state):
        self._record("datasets")
        return [
            {"id": "d1", "name": "Labs", "category": "Clinical"},
            {"id": "d2", "name": "Notes", "category": None},
        ]

    async def get_saved_queries(self, state):
        self._record("queries")
        return [{"id": "q1", "name": "Diabetics"}]

    async def get_extension_concepts(self, state, import_options, saved_queries):
        self._record("extension")
        self.extension_args = (import_options, saved_queries)
        return [{"id": "urn:leaf:concept:query:q1", "uiDisplayName": "Diabetics"}]

    async def initialize_search_engine(self, state):
        self._record("search")


class FakeNavigator(Navigator):
    def __init__(self):
        self.redirects: list[str] = []
        self.reloads = 0

    def redirect(self, uri):
        self.redirects.append(uri)

    def reload(self):
        self.reloads += 1


def partner(node_id: int, address: str) -> ResponderDescriptor:
    return ResponderDescriptor(id=node_id, name=f"Partner {node_id}", address=address)


def identity(name: str, **kwargs) -> NetworkIdentity:
    return NetworkIdentity(name=name, abbreviation=name[:3].upper(), **kwargs)


@pytest.fixture
def home_identity():
    return identity("Home University", id=7, address="https://home.example")


@pytest.fixture
def config():
    return Config(server_url="https://home.example")


@pytest.fixture
def secured_config():
    return Config(
        server_url="https://home.example",
        authentication=AuthConfig(
            mechanism=AuthMechanism.SAML2, logout_uri="https://idp.example/static"
        ),
    )


@pytest.fixture
def user():
    return UserContext(name="researcher@example.org")


@pytest.fixture
def store(config, user):
    return SessionStore(SessionState(config=config, user=user))


@pytest.fixture
def tokens():
    return FakeTokenService()


@pytest.fixture
def navigator():
    return FakeNavigator()


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def logout_result():
    return LogoutResult(logout_uri="https://idp.example/from-server")
