"""Exception hierarchy for acli.

All exceptions inherit from :class:`AcliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`acli.exit_codes`.
The top-level error handler in :func:`acli.app.main` catches
``AcliError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    AcliError (exit 1)
    +-- InvalidUsageError            (exit 2)
    +-- AuthError                    (exit 3)
    |   +-- NotAuthenticatedError
    |   +-- SessionExpiredError
    |   +-- DeviceAuthorizationError
    +-- ServerError                  (exit 5)
    +-- ConnectionError_             (exit 6)
    +-- StorageError                 (exit 8)
    |   +-- StorageReadError
    |   +-- StorageWriteError
    +-- TokenPayloadError            (exit 1)
    +-- ConfigError                  (exit 1)
"""

from acli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SERVER_ERROR,
    EXIT_STORAGE_ERROR,
)

LOGIN_HINT = "Run: ai login"
"""Remediation shown whenever an authenticated command cannot proceed."""


class AcliError(Exception):
    """Base exception for all acli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`acli.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AcliError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(AcliError):
    """Raised when the user cannot be authenticated."""

    exit_code = EXIT_AUTH_FAILURE


class NotAuthenticatedError(AuthError):
    """No stored credential exists for an action that needs one."""

    def __init__(self, message: str = f"Not authenticated. {LOGIN_HINT}"):
        super().__init__(message)


class SessionExpiredError(AuthError):
    """A stored credential exists but is inside or past its freshness margin."""

    def __init__(self, message: str = f"Session expired. Please login again. {LOGIN_HINT}"):
        super().__init__(message)


class DeviceAuthorizationError(AuthError):
    """The device authorization exchange with the auth server failed."""


class ServerError(AcliError):
    """Raised when the auth server returns an HTTP 5xx server error."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(AcliError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class StorageError(AcliError):
    """Base class for failures touching the local token file."""

    exit_code = EXIT_STORAGE_ERROR


class StorageReadError(StorageError):
    """The token file is missing or cannot be parsed.

    Never propagated to callers of
    :meth:`~acli.auth.token_store.TokenStore.get_stored_token`, which
    reports it as :data:`~acli.auth.token_store.ABSENT` instead.
    """


class StorageWriteError(StorageError):
    """The token directory or file could not be created, written, or removed."""


class TokenPayloadError(AcliError):
    """A token payload handed to the store has no usable ``access_token``."""


class ConfigError(AcliError):
    """Raised for configuration problems (invalid JSON, missing client id)."""

    exit_code = EXIT_GENERIC_FAILURE
