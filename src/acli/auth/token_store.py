"""Persistent store for the single cached login credential.

The store owns exactly one JSON file (by default
``~/.config/acli/token.json``, see :func:`~acli.config.default_token_path`).
Writing a new credential fully replaces the previous one; there is no
history and no merging of fields.

Reads never raise: a missing, unreadable, or malformed file is reported as
the :data:`ABSENT` sentinel so that the authentication gate stays binary.
Writes never raise either: :meth:`TokenStore.store_token` returns a
:class:`StoreResult` so the command layer decides how to present a failure.

Expiry is judged against a five-minute freshness margin. A credential
without ``expires_at`` is always treated as expired.

Two CLI processes writing at the same time are not coordinated: the last
writer wins. The atomic rename in :func:`~acli.config.atomic_write` only
guarantees that readers never see a torn file.

See Also:
    :mod:`acli.auth.device_flow` -- produces the payloads stored here.
"""

from __future__ import annotations

import enum
import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from acli.config import atomic_write, default_token_path
from acli.exceptions import (
    AcliError,
    NotAuthenticatedError,
    SessionExpiredError,
    StorageReadError,
    StorageWriteError,
    TokenPayloadError,
)
from acli.models import StoredCredential, TokenPayload

logger = logging.getLogger(__name__)

FRESHNESS_MARGIN = timedelta(minutes=5)
"""Tokens are considered expired this long before their literal expiry."""


class Absent(enum.Enum):
    """Marker for "no usable credential on disk".

    Falsy, so ``if token:`` reads naturally, but distinct from ``None`` so
    callers cannot mistake it for a field value.
    """

    TOKEN = "absent"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = Absent.TOKEN

LoadResult = Union[StoredCredential, Absent]


class StoreResult:
    """Outcome of :meth:`TokenStore.store_token`.

    Exactly one of :attr:`credential` and :attr:`error` is set.

    Args:
        credential: The record that was written, on success.
        error: The failure, on error. Its message is suitable for showing
            to the user.
    """

    def __init__(
        self,
        credential: Optional[StoredCredential] = None,
        error: Optional[AcliError] = None,
    ):
        self.credential = credential
        self.error = error

    @property
    def ok(self) -> bool:
        """``True`` when the credential was persisted."""
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        if self.ok:
            return "StoreResult(ok)"
        return f"StoreResult(error={self.error!r})"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes read from disk as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _payload_error(exc: ValidationError) -> TokenPayloadError:
    """Name the first offending field of a rejected token payload."""
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "payload"
    if first["type"] == "missing":
        return TokenPayloadError(f"Token payload is missing '{field}'")
    return TokenPayloadError(f"Token payload has an invalid '{field}'")


class TokenStore:
    """Read/write the cached credential for the CLI.

    Args:
        path: Location of the token file. Defaults to
            :func:`~acli.config.default_token_path`.
        clock: Callable returning the current aware UTC time. Injected by
            tests to evaluate expiry at fixed instants.
        margin: Freshness margin subtracted from ``expires_at``.

    Example::

        store = TokenStore(tmp_path / "token.json")
        store.store_token({"access_token": "abc123", "expires_in": 3600})
        store.require_authenticated().access_token  # "abc123"
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        clock: Callable[[], datetime] = _utcnow,
        margin: timedelta = FRESHNESS_MARGIN,
    ) -> None:
        self._path = path if path is not None else default_token_path()
        self._clock = clock
        self._margin = margin

    @property
    def path(self) -> Path:
        """The filesystem path to the token file."""
        return self._path

    def get_stored_token(self) -> LoadResult:
        """Load the stored credential.

        Returns:
            The :class:`~acli.models.StoredCredential`, or :data:`ABSENT`
            if the file is missing, unreadable, or does not hold a valid
            record.
        """
        try:
            return self._read()
        except StorageReadError as exc:
            logger.debug("Treating token as absent: %s", exc)
            return ABSENT

    def store_token(self, payload: Union[Mapping[str, Any], TokenPayload]) -> StoreResult:
        """Normalise a raw token payload and persist it, replacing any prior record.

        Args:
            payload: Token endpoint response. Must contain a non-empty
                ``access_token``; ``refresh_token``, ``token_type``,
                ``scope``, and ``expires_in`` (seconds) are optional.

        Returns:
            A :class:`StoreResult`. On failure ``error`` is a
            :class:`~acli.exceptions.TokenPayloadError` (bad payload) or
            :class:`~acli.exceptions.StorageWriteError` (filesystem).
        """
        try:
            token = (
                payload
                if isinstance(payload, TokenPayload)
                else TokenPayload.model_validate(dict(payload))
            )
        except ValidationError as exc:
            logger.debug("Rejected token payload: %s", exc)
            return StoreResult(error=_payload_error(exc))

        created_at = self._clock()
        expires_at = None
        if token.expires_in is not None:
            try:
                expires_at = created_at + timedelta(seconds=token.expires_in)
            except (OverflowError, ValueError):
                return StoreResult(
                    error=TokenPayloadError("Token payload has an invalid 'expires_in'")
                )

        credential = StoredCredential(
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            token_type=token.token_type or "Bearer",
            scope=token.scope,
            expires_at=expires_at,
            created_at=created_at,
        )

        text = json.dumps(credential.model_dump(mode="json"), indent=2) + "\n"
        try:
            atomic_write(self._path, text, mode=0o600)
        except OSError as exc:
            reason = exc.strerror or str(exc)
            logger.debug("Failed to write %s: %s", self._path, reason)
            return StoreResult(
                error=StorageWriteError(f"Failed to store token at {self._path}: {reason}")
            )

        logger.debug("Stored token at %s (expires_at=%s)", self._path, expires_at)
        return StoreResult(credential=credential)

    def clear_stored_token(self) -> bool:
        """Delete the token file.

        Returns:
            ``True`` if a file was removed, ``False`` if there was nothing
            to remove.

        Raises:
            StorageWriteError: If the file exists but cannot be deleted.
        """
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageWriteError(
                f"Failed to remove token at {self._path}: {exc.strerror or exc}"
            ) from exc
        logger.debug("Removed token at %s", self._path)
        return True

    def is_token_expired(self) -> bool:
        """Return ``True`` unless a stored token is fresh beyond the margin.

        Absent tokens and tokens without ``expires_at`` count as expired.
        """
        return self._is_expired(self.get_stored_token())

    def require_authenticated(self) -> StoredCredential:
        """Return the stored credential or refuse to continue.

        Returns:
            The present, non-expired credential.

        Raises:
            NotAuthenticatedError: No credential is stored.
            SessionExpiredError: The credential is inside or past the
                freshness margin, or has no expiry.
        """
        token = self.get_stored_token()
        if token is ABSENT:
            raise NotAuthenticatedError()
        if self._is_expired(token):
            raise SessionExpiredError()
        return token

    def _is_expired(self, token: LoadResult) -> bool:
        if token is ABSENT or token.expires_at is None:
            return True
        return _as_utc(token.expires_at) - self._margin <= self._clock()

    def _read(self) -> StoredCredential:
        try:
            text = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageReadError(f"Cannot read {self._path}: {exc}") from exc
        try:
            return StoredCredential.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValueError) as exc:
            raise StorageReadError(f"Invalid token file {self._path}: {exc}") from exc
