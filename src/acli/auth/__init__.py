"""Authentication for acli.

This package holds the device-authorization token lifecycle:

- :class:`TokenStore` -- the single cached credential on disk (read,
  store, clear, freshness checks, and the :meth:`~TokenStore.require_authenticated`
  gate).
- :class:`DeviceAuthorizationClient` -- the :rfc:`8628` client that obtains
  new tokens from the auth server.
- :func:`fetch_session` -- asks the server who the cached token belongs to.

Typical usage::

    from acli.auth import TokenStore

    store = TokenStore()
    credential = store.require_authenticated()
    headers = {"Authorization": credential.authorization_header()}
"""

from acli.auth.device_flow import DeviceAuthorizationClient
from acli.auth.session import fetch_session
from acli.auth.token_store import ABSENT, Absent, StoreResult, TokenStore

__all__ = [
    "ABSENT",
    "Absent",
    "DeviceAuthorizationClient",
    "StoreResult",
    "TokenStore",
    "fetch_session",
]
