"""Tests for the device authorization client (OAuth2 Device Authorization Grant, RFC 8628)."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from acli.auth.device_flow import (
    DEVICE_CODE_PATH,
    DEVICE_GRANT_TYPE,
    DEVICE_TOKEN_PATH,
    DeviceAuthorizationClient,
)
from acli.exceptions import ConfigError, ConnectionError_, DeviceAuthorizationError
from acli.models import DeviceCodeResponse, TokenPayload

SERVER = "http://auth.test"


class _Clock:
    """Monotonic clock advanced by the fake sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    clock: _Clock | None = None,
    client_id: str | None = "cli-client",
) -> DeviceAuthorizationClient:
    clock = clock or _Clock()
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return DeviceAuthorizationClient(
        SERVER,
        client_id,
        scope="openid profile email",
        http=http,
        sleep=clock.sleep,
        monotonic=clock.monotonic,
    )


def _device(**overrides: Any) -> DeviceCodeResponse:
    data: dict[str, Any] = {
        "device_code": "dev-123",
        "user_code": "ABCD-1234",
        "verification_uri": "http://auth.test/device",
        "expires_in": 60,
        "interval": 5,
    }
    data.update(overrides)
    return DeviceCodeResponse(**data)


def _token_sequence(responses: list[httpx.Response]) -> Callable[[httpx.Request], httpx.Response]:
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == DEVICE_TOKEN_PATH
        return queue.pop(0)

    return handler


def _pending(error: str = "authorization_pending") -> httpx.Response:
    return httpx.Response(400, json={"error": error})


# -------------------------------------------------------------------------
# Device code request
# -------------------------------------------------------------------------


class TestRequestDeviceCode:
    def test_success(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "device_code": "dev-123",
                    "user_code": "ABCD-1234",
                    "verification_uri": "http://auth.test/device",
                    "verification_uri_complete": "http://auth.test/device?user_code=ABCD-1234",
                    "expires_in": 1800,
                    "interval": 5,
                },
            )

        client = _make_client(handler)
        device = client.request_device_code()

        assert device.device_code == "dev-123"
        assert device.user_code == "ABCD-1234"
        assert device.verification_url == "http://auth.test/device"

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == DEVICE_CODE_PATH
        body = json.loads(request.content)
        assert body == {"client_id": "cli-client", "scope": "openid profile email"}

    def test_defaults_for_interval_and_expiry(self) -> None:
        client = _make_client(
            lambda r: httpx.Response(200, json={"device_code": "d", "user_code": "u"})
        )
        device = client.request_device_code()
        assert device.interval == 5
        assert device.expires_in == 1800

    def test_verification_uri_complete_fallback(self) -> None:
        client = _make_client(
            lambda r: httpx.Response(
                200,
                json={
                    "device_code": "d",
                    "user_code": "u",
                    "verification_uri_complete": "http://auth.test/device?user_code=u",
                },
            )
        )
        assert client.request_device_code().verification_url.endswith("user_code=u")

    def test_missing_device_code(self) -> None:
        client = _make_client(lambda r: httpx.Response(200, json={"user_code": "u"}))
        with pytest.raises(DeviceAuthorizationError, match="device_code"):
            client.request_device_code()

    def test_missing_user_code(self) -> None:
        client = _make_client(lambda r: httpx.Response(200, json={"device_code": "d"}))
        with pytest.raises(DeviceAuthorizationError, match="user_code"):
            client.request_device_code()

    def test_http_error_includes_description(self) -> None:
        client = _make_client(
            lambda r: httpx.Response(
                400,
                json={"error": "invalid_client", "error_description": "Unknown client"},
            )
        )
        with pytest.raises(DeviceAuthorizationError, match="Unknown client") as exc_info:
            client.request_device_code()
        assert "400" in str(exc_info.value)

    def test_non_json_response(self) -> None:
        client = _make_client(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(DeviceAuthorizationError, match="not valid JSON"):
            client.request_device_code()

    @pytest.mark.parametrize("body", [["x"], 42, "device", False])
    def test_non_object_response(self, body: Any) -> None:
        client = _make_client(lambda r: httpx.Response(200, json=body))
        with pytest.raises(DeviceAuthorizationError, match="Unexpected device authorization"):
            client.request_device_code()

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _make_client(handler)
        with pytest.raises(ConnectionError_, match="auth.test"):
            client.request_device_code()

    def test_missing_client_id(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected without a client id")

        client = _make_client(handler, client_id=None)
        with pytest.raises(ConfigError, match="client ID"):
            client.request_device_code()


# -------------------------------------------------------------------------
# Token polling
# -------------------------------------------------------------------------


class TestPollForToken:
    def test_success_after_pending(self) -> None:
        clock = _Clock()
        client = _make_client(
            _token_sequence(
                [
                    _pending(),
                    _pending(),
                    httpx.Response(
                        200,
                        json={
                            "access_token": "tok",
                            "refresh_token": "ref",
                            "token_type": "Bearer",
                            "expires_in": 3600,
                            "scope": "openid",
                        },
                    ),
                ]
            ),
            clock=clock,
        )

        payload = client.poll_for_token(_device())

        assert isinstance(payload, TokenPayload)
        assert payload.access_token == "tok"
        assert payload.refresh_token == "ref"
        assert payload.expires_in == 3600
        assert clock.sleeps == [5, 5, 5]

    def test_sends_grant_fields(self) -> None:
        seen: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"access_token": "tok"})

        client = _make_client(handler)
        client.poll_for_token(_device())

        assert seen[0] == {
            "grant_type": DEVICE_GRANT_TYPE,
            "device_code": "dev-123",
            "client_id": "cli-client",
        }

    def test_slow_down_increases_interval(self) -> None:
        clock = _Clock()
        client = _make_client(
            _token_sequence(
                [
                    _pending("slow_down"),
                    _pending(),
                    httpx.Response(200, json={"access_token": "tok"}),
                ]
            ),
            clock=clock,
        )
        client.poll_for_token(_device())
        assert clock.sleeps == [5, 10, 10]

    def test_interval_has_floor_of_one_second(self) -> None:
        clock = _Clock()
        client = _make_client(
            _token_sequence([httpx.Response(200, json={"access_token": "tok"})]),
            clock=clock,
        )
        client.poll_for_token(_device(interval=0))
        assert clock.sleeps == [1]

    def test_access_denied(self) -> None:
        client = _make_client(_token_sequence([_pending("access_denied")]))
        with pytest.raises(DeviceAuthorizationError, match="denied"):
            client.poll_for_token(_device())

    def test_expired_token(self) -> None:
        client = _make_client(_token_sequence([_pending("expired_token")]))
        with pytest.raises(DeviceAuthorizationError, match="expired"):
            client.poll_for_token(_device())

    def test_other_error_uses_description(self) -> None:
        client = _make_client(
            lambda r: httpx.Response(
                400, json={"error": "invalid_grant", "error_description": "Bad device code"}
            )
        )
        with pytest.raises(DeviceAuthorizationError, match="Bad device code"):
            client.poll_for_token(_device())

    def test_unexpected_response_without_error(self) -> None:
        client = _make_client(lambda r: httpx.Response(500, json={}))
        with pytest.raises(DeviceAuthorizationError, match="500"):
            client.poll_for_token(_device())

    def test_invalid_json(self) -> None:
        client = _make_client(lambda r: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(DeviceAuthorizationError, match="invalid JSON"):
            client.poll_for_token(_device())

    @pytest.mark.parametrize("body", [["x"], 7, "pending", False])
    def test_non_object_response(self, body: Any) -> None:
        client = _make_client(lambda r: httpx.Response(200, json=body))
        with pytest.raises(DeviceAuthorizationError, match="Unexpected token response"):
            client.poll_for_token(_device())

    def test_times_out(self) -> None:
        clock = _Clock()
        client = _make_client(lambda r: _pending(), clock=clock)
        with pytest.raises(DeviceAuthorizationError, match="timed out"):
            client.poll_for_token(_device(expires_in=12, interval=5))
        assert clock.sleeps == [5, 5, 5]

    def test_connection_error_while_polling(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = _make_client(handler)
        with pytest.raises(ConnectionError_):
            client.poll_for_token(_device())


class TestLifecycle:
    def test_context_manager_closes_owned_client(self) -> None:
        with DeviceAuthorizationClient(SERVER, "cli") as client:
            http = client._http
        assert http.is_closed

    def test_injected_client_left_open(self) -> None:
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with DeviceAuthorizationClient(SERVER, "cli", http=http):
            pass
        assert not http.is_closed
        http.close()

    def test_trailing_slash_stripped(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"device_code": "d", "user_code": "u"})

        http = httpx.Client(transport=httpx.MockTransport(handler))
        DeviceAuthorizationClient(SERVER + "/", "cli", http=http).request_device_code()
        assert seen == [SERVER + DEVICE_CODE_PATH]
