"""
Collaborator interfaces used by the bootstrap and lifecycle code.

Each external service (token issuance, node discovery, resource loading,
session persistence, page navigation) sits behind one of these ABCs so the
orchestration can run against real HTTP clients or in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from leafsession.config import Config
from leafsession.models import (
    Attestation,
    HomeBase,
    LogoutResult,
    NetworkIdentity,
    PreviousSessionSnapshot,
    ResponderDescriptor,
    SessionContext,
    UserContext,
)

if TYPE_CHECKING:
    from leafsession.state import SessionState


def index_datasets(datasets: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Group datasets by category; uncategorized datasets go under ""."""
    index: dict[str, list[dict[str, Any]]] = {}
    for dataset in datasets:
        category = (dataset.get("category") or "").strip()
        index.setdefault(category, []).append(dataset)
    return index


class TokenService(ABC):
    """Issues, refreshes and revokes session tokens."""

    @abstractmethod
    async def get_user_context(self, config: Config) -> UserContext:
        """Fetch the signed-in user's identity and permissions."""

    @abstractmethod
    async def submit_attestation(
        self, state: "SessionState", attestation: Attestation
    ) -> SessionContext:
        """Exchange an attestation for a session token."""

    @abstractmethod
    async def refresh(self, state: "SessionState") -> SessionContext:
        """Request a fresh session token for the current session."""

    @abstractmethod
    async def logout(self, state: "SessionState") -> Optional[LogoutResult]:
        """Blacklist the current token on the server."""

    @abstractmethod
    def clear_local_token(self, config: Config) -> None:
        """Forget any locally cached user token."""


class NetworkTransport(ABC):
    """Round-trips to the home node and its partner responders."""

    @abstractmethod
    async def fetch_home_identity(self, state: "SessionState") -> HomeBase:
        """Return the home identity and the configured partner list."""

    @abstractmethod
    async def fetch_responder_identity(
        self, state: "SessionState", descriptor: ResponderDescriptor
    ) -> NetworkIdentity:
        """Return the identity published by a partner node."""


class ResourceLoader(ABC):
    """Loads the resources a session needs before it is usable."""

    @abstractmethod
    async def get_export_options(self, state: "SessionState") -> dict[str, Any]:
        pass

    @abstractmethod
    async def get_import_options(self, state: "SessionState") -> dict[str, Any]:
        pass

    @abstractmethod
    async def get_root_concepts(self, state: "SessionState") -> list[dict[str, Any]]:
        pass

    @abstractmethod
    async def get_datasets(self, state: "SessionState") -> list[dict[str, Any]]:
        pass

    async def index_datasets(
        self, datasets: list[dict[str, Any]]
    ) -> dict[str, list[dict[str, Any]]]:
        """Build the dataset search index. Defaults to grouping by category."""
        return index_datasets(datasets)

    @abstractmethod
    async def get_saved_queries(self, state: "SessionState") -> list[dict[str, Any]]:
        pass

    @abstractmethod
    async def get_extension_concepts(
        self,
        state: "SessionState",
        import_options: dict[str, Any],
        saved_queries: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Concepts derived from imports and saved queries."""

    @abstractmethod
    async def initialize_search_engine(self, state: "SessionState") -> None:
        """Prepare concept/text search over everything loaded so far."""


class PreviousSessionStore(ABC):
    """Persists the in-progress query state between sessions."""

    @abstractmethod
    def get_previous_session(
        self, state: "SessionState"
    ) -> Optional[PreviousSessionSnapshot]:
        pass

    @abstractmethod
    def save_session(self, snapshot: PreviousSessionSnapshot) -> None:
        pass


class Navigator(ABC):
    """Leaves the client: redirect to a URI or force a full reload."""

    @abstractmethod
    def redirect(self, uri: str) -> None:
        pass

    @abstractmethod
    def reload(self) -> None:
        pass
