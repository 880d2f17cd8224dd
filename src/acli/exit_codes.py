"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~acli.exceptions.AcliError` subclass.
Shell wrappers can inspect the exit code to tell a missing login apart from
a network failure without parsing stderr.

Example::

    $ ai whoami
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- not logged in or session expired
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Not logged in, session expired, or the device authorization failed."""

EXIT_SERVER_ERROR = 5
"""The auth server returned an HTTP 5xx error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_STORAGE_ERROR = 8
"""The local token file could not be written or removed."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
