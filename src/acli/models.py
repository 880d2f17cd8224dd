"""Canonical Pydantic models shared across all acli modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Persisted state** -- serialised as JSON in the user's config directory:
    :class:`StoredCredential` (``token.json``) and :class:`GlobalConfig`
    (``config.json``).

**Wire payloads** -- parsed from the auth server's responses:
    :class:`TokenPayload` and :class:`DeviceCodeResponse`.

**Runtime settings** -- the effective configuration for one invocation:
    :class:`Settings`.

All models use Pydantic v2. Wire payloads ignore unknown keys so that
servers adding fields never break the CLI.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SERVER_URL = "http://localhost:3005"
DEFAULT_SCOPE = "openid profile email"


# --- Persisted state ---


class StoredCredential(BaseModel):
    """The single cached credential written by ``ai login``.

    Every key is always present in the JSON file; optional values are
    written as ``null`` rather than omitted.

    Attributes:
        access_token: Opaque bearer string. Never empty.
        refresh_token: Refresh token if the flow issued one.
        token_type: Authorization scheme, ``"Bearer"`` unless the server
            said otherwise.
        scope: Space-separated granted scopes, if reported.
        expires_at: Absolute UTC expiry computed once at store time from
            ``expires_in``. ``None`` means the server reported no lifetime,
            which the store treats as already expired.
        created_at: UTC time the record was written.
    """

    access_token: str = Field(min_length=1, description="Opaque bearer token")
    refresh_token: Optional[str] = Field(default=None, description="Refresh token, if issued")
    token_type: str = Field(default="Bearer", description="Authorization scheme")
    scope: Optional[str] = Field(default=None, description="Granted scopes")
    expires_at: Optional[datetime] = Field(
        default=None, description="Absolute expiry (None = no reported lifetime)"
    )
    created_at: datetime = Field(description="When this record was stored")

    def authorization_header(self) -> str:
        """Return the ``Authorization`` header value for this credential."""
        return f"{self.token_type} {self.access_token}"


class GlobalConfig(BaseModel):
    """User-level defaults stored in ``<config_dir>/config.json``.

    Managed by ``ai config show`` / ``ai config set`` and read by
    :func:`~acli.config.resolve_settings` as the lowest-precedence source
    after built-in defaults.
    """

    server_url: str = Field(default=DEFAULT_SERVER_URL, description="Auth server base URL")
    client_id: Optional[str] = Field(default=None, description="OAuth client ID")
    scope: str = Field(default=DEFAULT_SCOPE, description="Scopes requested at login")


# --- Wire payloads ---


class TokenPayload(BaseModel):
    """Raw token response from the device token endpoint.

    Only ``access_token`` is required. ``expires_in`` is a relative lifetime
    in seconds and is converted to an absolute time by the token store.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    expires_in: Optional[int] = None


class DeviceCodeResponse(BaseModel):
    """Response of the device authorization endpoint (:rfc:`8628` section 3.2)."""

    model_config = ConfigDict(extra="ignore")

    device_code: str
    user_code: str
    verification_uri: Optional[str] = None
    verification_uri_complete: Optional[str] = None
    expires_in: int = 1800
    interval: int = 5

    @property
    def verification_url(self) -> str:
        """The URL to show the user, preferring the plain ``verification_uri``."""
        return self.verification_uri or self.verification_uri_complete or ""


# --- Runtime settings ---


class Settings(BaseModel):
    """Effective settings for one CLI invocation.

    Produced by :func:`~acli.config.resolve_settings`. ``token_path`` is
    always derived from the config directory and cannot be overridden from
    the command line.
    """

    server_url: str = DEFAULT_SERVER_URL
    client_id: Optional[str] = None
    scope: str = DEFAULT_SCOPE
    token_path: Path
