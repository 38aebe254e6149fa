"""
httpx-backed collaborators talking to a Leaf home node and its partners.

All three services share one ``httpx.AsyncClient``; the session token from
the current state is sent as a bearer header on each request.
"""

import base64
import json
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

import httpx

from leafsession.config import Config
from leafsession.errors import TransportError
from leafsession.logger import get_logger
from leafsession.models import (
    Attestation,
    HomeBase,
    LogoutResult,
    NetworkIdentity,
    ResponderDescriptor,
    SessionContext,
    UserContext,
)
from leafsession.network.base import NetworkTransport, ResourceLoader, TokenService

if TYPE_CHECKING:
    from leafsession.state import SessionState

logger = get_logger(__name__)


def decode_claims(token: str) -> dict[str, Any]:
    """Read a JWT's payload without verifying it."""
    try:
        payload = token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        return json.loads(base64.urlsafe_b64decode(payload))
    except (IndexError, ValueError) as e:
        raise TransportError(f"Malformed session token: {e}") from e


def _headers(state: Optional["SessionState"]) -> dict[str, str]:
    if state is not None and state.token:
        return {"Authorization": f"Bearer {state.token}"}
    return {}


class _LeafHttp:
    """Request helper shared by the HTTP services."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def _request(
        self,
        method: str,
        url: str,
        state: Optional["SessionState"] = None,
        **kwargs: Any,
    ) -> Any:
        headers = {**_headers(state), **kwargs.pop("headers", {})}
        try:
            resp = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"{method} {url} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if resp.status_code >= 400:
            raise TransportError(
                f"{method} {url} returned {resp.status_code}",
                status_code=resp.status_code,
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"{method} {url} returned invalid JSON") from e

    async def _get(self, url: str, state: Optional["SessionState"] = None, **kwargs):
        return await self._request("GET", url, state, **kwargs)

    async def _post(self, url: str, state: Optional["SessionState"] = None, **kwargs):
        return await self._request("POST", url, state, **kwargs)


class HttpTokenService(_LeafHttp, TokenService):
    """Token endpoints under /api/user."""

    def __init__(self, client: httpx.AsyncClient):
        super().__init__(client)
        self.token_cache: dict[str, str] = {}

    def _context(self, config: Config, data: dict[str, Any]) -> SessionContext:
        token = data["token"]
        self.token_cache[config.client_id] = token
        return SessionContext(
            raw_token=token,
            expiration_date=data.get("expirationDate"),
            raw_decoded=decode_claims(token),
        )

    async def get_user_context(self, config: Config) -> UserContext:
        data = await self._get("/api/user")
        return UserContext.model_validate(data)

    async def submit_attestation(
        self, state: "SessionState", attestation: Attestation
    ) -> SessionContext:
        params = {
            k: str(v).lower() if isinstance(v, bool) else v
            for k, v in attestation.model_dump(by_alias=True).items()
            if v is not None
        }
        data = await self._get("/api/user/attest", state, params=params)
        return self._context(state.config, data)

    async def refresh(self, state: "SessionState") -> SessionContext:
        data = await self._get("/api/user/refresh", state)
        return self._context(state.config, data)

    async def logout(self, state: "SessionState") -> Optional[LogoutResult]:
        data = await self._post("/api/user/logout", state)
        if not data:
            return None
        return LogoutResult.model_validate(data)

    def clear_local_token(self, config: Config) -> None:
        self.token_cache.pop(config.client_id, None)


class HttpNetworkTransport(_LeafHttp, NetworkTransport):
    """Home node discovery and partner identity endpoints."""

    async def fetch_home_identity(self, state: "SessionState") -> HomeBase:
        identity = await self._get("/api/network/identity", state)
        responders = await self._get("/api/network/responders", state) or []
        return HomeBase(
            identity=NetworkIdentity.model_validate(identity),
            responders=[ResponderDescriptor.model_validate(r) for r in responders],
        )

    async def fetch_responder_identity(
        self, state: "SessionState", descriptor: ResponderDescriptor
    ) -> NetworkIdentity:
        data = await self._get(f"{descriptor.address}/api/network/identity", state)
        return NetworkIdentity.model_validate(data)


class HttpResourceLoader(_LeafHttp, ResourceLoader):
    """Session resources served by the home node."""

    def __init__(self, client: httpx.AsyncClient):
        super().__init__(client)
        self.search_index: dict[str, set[str]] = {}

    async def get_export_options(self, state: "SessionState") -> dict[str, Any]:
        return await self._get("/api/export/options", state) or {}

    async def get_import_options(self, state: "SessionState") -> dict[str, Any]:
        return await self._get("/api/import/options", state) or {}

    async def get_root_concepts(self, state: "SessionState") -> list[dict[str, Any]]:
        data = await self._get("/api/concept", state) or {}
        return data.get("concepts", []) if isinstance(data, dict) else data

    async def get_datasets(self, state: "SessionState") -> list[dict[str, Any]]:
        return await self._get("/api/dataset", state) or []

    async def get_saved_queries(self, state: "SessionState") -> list[dict[str, Any]]:
        return await self._get("/api/query", state) or []

    async def get_extension_concepts(
        self,
        state: "SessionState",
        import_options: dict[str, Any],
        saved_queries: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        concepts = [
            {
                "id": f"urn:leaf:concept:query:{query.get('universalId') or query.get('id')}",
                "uiDisplayName": query.get("name", ""),
                "isParent": False,
                "isExtension": True,
            }
            for query in saved_queries
        ]

        redcap = import_options.get("redCap") or {}
        if redcap.get("enabled"):
            imported = await self._get("/api/import/metadata", state) or []
            concepts.extend(
                {
                    "id": f"urn:leaf:concept:import:{meta.get('id')}",
                    "uiDisplayName": meta.get("name", ""),
                    "isParent": True,
                    "isExtension": True,
                }
                for meta in imported
            )

        return concepts

    async def initialize_search_engine(self, state: "SessionState") -> None:
        index: dict[str, set[str]] = {}
        for concept in (*state.root_concepts, *state.extension_concepts):
            concept_id = str(concept.get("id", ""))
            for term in str(concept.get("uiDisplayName", "")).lower().split():
                index.setdefault(term, set()).add(concept_id)
        self.search_index = index
        logger.debug(f"Concept search index built with {len(index)} terms")


@dataclass
class HttpServices:
    tokens: HttpTokenService
    transport: HttpNetworkTransport
    loader: HttpResourceLoader


@asynccontextmanager
async def open_services(config: Config) -> AsyncIterator[HttpServices]:
    """Open a shared AsyncClient against the configured home node."""
    async with httpx.AsyncClient(
        base_url=config.server_url, timeout=config.request_timeout
    ) as client:
        yield HttpServices(
            tokens=HttpTokenService(client),
            transport=HttpNetworkTransport(client),
            loader=HttpResourceLoader(client),
        )
