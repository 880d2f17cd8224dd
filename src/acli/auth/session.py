"""Fetch the server-side session for the cached credential.

Used by ``ai whoami`` to confirm that the token stored locally is still
accepted by the auth server and to show who it belongs to.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from acli.exceptions import ConnectionError_, ServerError, SessionExpiredError
from acli.models import StoredCredential

SESSION_PATH = "/api/auth/get-session"


def fetch_session(
    server_url: str,
    credential: StoredCredential,
    http: Optional[httpx.Client] = None,
) -> dict[str, Any]:
    """Return the session JSON the server associates with *credential*.

    Args:
        server_url: Base URL of the auth server.
        credential: The credential returned by
            :meth:`~acli.auth.token_store.TokenStore.require_authenticated`.
        http: Optional client to use instead of a one-off request.

    Raises:
        SessionExpiredError: The server rejects the token (401/403) or
            reports no active session.
        ServerError: The server answered with a 5xx status.
        ConnectionError_: The server could not be reached.
    """
    url = server_url.rstrip("/") + SESSION_PATH
    headers = {
        "Authorization": credential.authorization_header(),
        "Accept": "application/json",
    }
    try:
        if http is not None:
            response = http.get(url, headers=headers)
        else:
            response = httpx.get(url, headers=headers, timeout=30.0)
    except httpx.TransportError as exc:
        raise ConnectionError_(f"Cannot reach the auth server at {server_url}: {exc}") from exc

    if response.status_code in (401, 403):
        raise SessionExpiredError()
    if response.status_code >= 500:
        raise ServerError(f"Auth server error (status {response.status_code})")
    if response.status_code >= 400:
        raise SessionExpiredError(
            f"Session lookup failed (status {response.status_code}). Run: ai login"
        )

    try:
        data = response.json()
    except ValueError:
        data = None
    if not isinstance(data, dict) or not isinstance(data.get("user"), dict):
        raise SessionExpiredError()
    return data
