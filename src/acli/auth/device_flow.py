"""OAuth2 Device Authorization Grant (:rfc:`8628`) client.

Talks to the auth server's device authorization endpoints to obtain a raw
token payload for :meth:`~acli.auth.token_store.TokenStore.store_token`.

Flow:
    1. POST ``/api/auth/device/code`` to obtain ``device_code`` +
       ``user_code``.
    2. The command layer shows "Go to {verification_uri} and enter code:
       {user_code}" and optionally opens a browser.
    3. Poll ``/api/auth/device/token`` until the user authorizes or the code
       expires.

Every failure surfaces as :class:`~acli.exceptions.DeviceAuthorizationError`
(or :class:`~acli.exceptions.ConnectionError_` for transport failures);
nothing in the exchange is silently dropped.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from acli.exceptions import ConfigError, ConnectionError_, DeviceAuthorizationError
from acli.models import DEFAULT_SCOPE, DeviceCodeResponse, TokenPayload

logger = logging.getLogger(__name__)

DEVICE_CODE_PATH = "/api/auth/device/code"
DEVICE_TOKEN_PATH = "/api/auth/device/token"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
REQUEST_TIMEOUT = 30.0


class DeviceAuthorizationClient:
    """Run the client side of the device authorization flow.

    Args:
        server_url: Base URL of the auth server (no trailing slash).
        client_id: OAuth client ID registered with the server.
        scope: Space-separated scopes to request.
        http: Optional :class:`httpx.Client`. A private client is created
            (and closed by :meth:`close`) when omitted.
        sleep: Sleep function used between polls; injected by tests.
        monotonic: Monotonic clock used for the polling deadline.
    """

    def __init__(
        self,
        server_url: str,
        client_id: Optional[str],
        scope: str = DEFAULT_SCOPE,
        http: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._server_url = server_url.rstrip("/")
        self._client_id = client_id
        self._scope = scope
        self._owns_http = http is None
        self._http = http or httpx.Client(
            timeout=REQUEST_TIMEOUT, headers={"Accept": "application/json"}
        )
        self._sleep = sleep
        self._monotonic = monotonic

    def __enter__(self) -> DeviceAuthorizationClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    @property
    def client_id(self) -> str:
        if not self._client_id:
            raise ConfigError(
                "No OAuth client ID configured. Pass --client-id or set "
                "ACLI_CLIENT_ID (or GITHUB_CLIENT_ID)."
            )
        return self._client_id

    def request_device_code(self) -> DeviceCodeResponse:
        """POST to the device authorization endpoint.

        Returns:
            The parsed :class:`~acli.models.DeviceCodeResponse`.

        Raises:
            ConfigError: If no client ID is configured.
            DeviceAuthorizationError: On HTTP errors or if ``device_code``
                or ``user_code`` is missing from the response.
            ConnectionError_: If the server cannot be reached.
        """
        body = {"client_id": self.client_id, "scope": self._scope}
        url = self._server_url + DEVICE_CODE_PATH
        logger.debug("Requesting device code from %s", url)

        try:
            response = self._http.post(url, json=body)
            response.raise_for_status()
            result: Any = response.json()
        except httpx.HTTPStatusError as exc:
            raise DeviceAuthorizationError(
                f"Failed to start device authorization (status "
                f"{exc.response.status_code}): {_describe_error(exc.response)}"
            ) from exc
        except httpx.TransportError as exc:
            raise ConnectionError_(
                f"Cannot reach the auth server at {self._server_url}: {exc}"
            ) from exc
        except ValueError as exc:
            raise DeviceAuthorizationError(
                f"Device authorization response is not valid JSON: {exc}"
            ) from exc

        if not isinstance(result, dict):
            raise DeviceAuthorizationError(
                f"Unexpected device authorization response: {type(result).__name__}"
            )
        for field in ("device_code", "user_code"):
            if field not in result:
                raise DeviceAuthorizationError(
                    f"Device authorization response missing '{field}'"
                )
        try:
            return DeviceCodeResponse.model_validate(result)
        except ValidationError as exc:
            raise DeviceAuthorizationError(
                f"Malformed device authorization response: {exc}"
            ) from exc

    def poll_for_token(self, device: DeviceCodeResponse) -> TokenPayload:
        """Poll the token endpoint until the user authorizes or the code expires.

        Implements the polling rules from :rfc:`8628` section 3.5:
        ``authorization_pending`` keeps polling, ``slow_down`` adds five
        seconds to the interval, ``access_denied`` and ``expired_token`` end
        the flow.

        Args:
            device: The response from :meth:`request_device_code`.

        Returns:
            The :class:`~acli.models.TokenPayload` issued by the server.

        Raises:
            DeviceAuthorizationError: If the user denies access, the code
                expires, the server reports another error, or the deadline
                passes.
            ConnectionError_: If the server cannot be reached.
        """
        url = self._server_url + DEVICE_TOKEN_PATH
        deadline = self._monotonic() + device.expires_in
        poll_interval = max(device.interval, 1)

        body = {
            "grant_type": DEVICE_GRANT_TYPE,
            "device_code": device.device_code,
            "client_id": self.client_id,
        }

        while self._monotonic() < deadline:
            self._sleep(poll_interval)

            try:
                response = self._http.post(url, json=body)
                token_data: Any = response.json()
            except httpx.TransportError as exc:
                raise ConnectionError_(f"Token polling failed: {exc}") from exc
            except ValueError as exc:
                raise DeviceAuthorizationError(
                    f"Token endpoint returned invalid JSON (status {response.status_code})"
                ) from exc

            if not isinstance(token_data, dict):
                raise DeviceAuthorizationError(
                    f"Unexpected token response (status {response.status_code})"
                )

            if response.status_code == 200 and token_data.get("access_token"):
                try:
                    return TokenPayload.model_validate(token_data)
                except ValidationError as exc:
                    raise DeviceAuthorizationError(
                        f"Malformed token response: {exc}"
                    ) from exc

            error = token_data.get("error", "")
            if error == "authorization_pending":
                continue
            if error == "slow_down":
                poll_interval += 5
                logger.debug("Server asked to slow down; interval now %ss", poll_interval)
                continue
            if error == "access_denied":
                raise DeviceAuthorizationError("Authorization denied by user")
            if error == "expired_token":
                raise DeviceAuthorizationError("Device code expired. Please try again")
            if error:
                desc = token_data.get("error_description") or error
                raise DeviceAuthorizationError(f"Device authorization failed: {desc}")
            raise DeviceAuthorizationError(
                f"Unexpected token response (status {response.status_code})"
            )

        raise DeviceAuthorizationError("Device authorization timed out. Please try again")


def _describe_error(response: httpx.Response) -> str:
    """Pull a readable message out of an error response body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or "Unknown error"
    if isinstance(data, dict):
        return str(
            data.get("error_description")
            or data.get("message")
            or data.get("error")
            or "Unknown error"
        )
    return str(data)
