"""
Pydantic models for the session bootstrap.

Covers:
- Identity and session records exchanged with Leaf nodes
- Client-side load state, snapshots and confirmation prompts
"""

import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Leaf nodes speak camelCase JSON
WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True)
FROZEN_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ─── Identity & Session ──────────────────────────────────────────────


class Attestation(BaseModel):
    """A user's claim about why and how they are using the data."""

    model_config = FROZEN_WIRE

    is_identified: bool = False
    session_type: int = 1
    has_approval: bool = False
    approval_type: str = ""
    document_title: str = ""
    document_institution: str = ""
    expiration_date: Optional[str] = None


class SessionContext(BaseModel):
    """A session token and its decoded claims. Replaced, never edited."""

    model_config = FROZEN_WIRE

    raw_token: str
    expiration_date: Optional[float] = None
    raw_decoded: dict[str, Any] = Field(default_factory=dict)

    @property
    def access_nonce(self) -> Optional[str]:
        return self.raw_decoded.get("access-nonce")


class UserContext(BaseModel):
    """Who is signed in and what they may do."""

    model_config = WIRE

    name: str
    is_admin: bool = False
    is_federated_okay: bool = True


class NetworkIdentity(BaseModel):
    """Public identity record of a Leaf node."""

    model_config = FROZEN_WIRE

    id: int = 0
    name: str = ""
    abbreviation: str = ""
    address: str = ""
    description: str = ""
    total_patients: int = 0
    primary_color: str = ""
    secondary_color: str = ""
    enabled: bool = True
    is_home_node: bool = False


class ResponderDescriptor(BaseModel):
    """A configured partner node, known before its identity is fetched."""

    model_config = FROZEN_WIRE

    id: int
    name: str = ""
    address: str
    issuer: str = ""


class HomeBase(BaseModel):
    """The home node's identity plus its configured partners."""

    model_config = WIRE

    identity: NetworkIdentity
    responders: list[ResponderDescriptor] = Field(default_factory=list)


class LogoutResult(BaseModel):
    model_config = WIRE

    logout_uri: Optional[str] = Field(default=None, alias="logoutURI")


# ─── Client State ────────────────────────────────────────────────────


class SessionLoadState(BaseModel):
    """Label and percent shown while a session loads."""

    model_config = FROZEN_WIRE

    display: str = ""
    progress: int = Field(default=0, ge=0, le=100)


class PreviousSessionSnapshot(BaseModel):
    """A saved in-progress query state; timestamp is epoch seconds."""

    model_config = WIRE

    current_query: Optional[dict[str, Any]] = None
    panels: list[dict[str, Any]] = Field(default_factory=list)
    panel_filters: list[dict[str, Any]] = Field(default_factory=list)
    timestamp: float = Field(default_factory=time.time)


class ConfirmationModal(BaseModel):
    """A yes/no prompt the UI layer is asked to show."""

    header: str
    body: str
    yes_button_text: str = "Yes"
    no_button_text: str = "No"
    show: bool = True
    on_click_yes: Callable[[], None] = Field(default=lambda: None, exclude=True)
    on_click_no: Callable[[], None] = Field(default=lambda: None, exclude=True)
