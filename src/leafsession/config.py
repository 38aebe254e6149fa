"""
Client configuration.

Values come from defaults, overridden by environment variables (a local
``.env`` file is loaded first).
"""

import os
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class AuthMechanism(str, Enum):
    """Authentication mechanism configured on the home node."""

    UNSECURED = "unsecured"
    SAML2 = "saml2"
    OPENID = "openid"


class AuthConfig(BaseModel):
    mechanism: AuthMechanism = AuthMechanism.UNSECURED
    logout_uri: Optional[str] = None


class Config(BaseModel):
    """Runtime settings for a bootstrap client."""

    server_url: str = "http://localhost:5001"
    request_timeout: float = 30.0
    refresh_interval_minutes: int = 4
    resume_window_minutes: int = 60 * 8
    client_id: str = "leaf-client"
    authentication: AuthConfig = Field(default_factory=AuthConfig)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Config":
        """Build a Config from LEAF_* environment variables."""
        load_dotenv(env_file)
        values: dict = {}

        if url := os.getenv("LEAF_SERVER_URL"):
            values["server_url"] = url
        if timeout := os.getenv("LEAF_REQUEST_TIMEOUT"):
            values["request_timeout"] = float(timeout)
        if minutes := os.getenv("LEAF_REFRESH_MINUTES"):
            values["refresh_interval_minutes"] = int(minutes)

        auth: dict = {}
        if mechanism := os.getenv("LEAF_AUTH_MECHANISM"):
            auth["mechanism"] = AuthMechanism(mechanism.lower())
        if logout_uri := os.getenv("LEAF_LOGOUT_URI"):
            auth["logout_uri"] = logout_uri
        if auth:
            values["authentication"] = AuthConfig(**auth)

        return cls(**values)


CONFIG = Config()
