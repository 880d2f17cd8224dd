"""acli -- command-line assistant with device-authorization login.

The ``ai`` command signs a user in against a remote auth server using the
OAuth 2.0 Device Authorization Grant (:rfc:`8628`), caches the resulting
bearer token on disk, and gates every authenticated command on that cached
token.

Typical workflow::

    ai login      # device flow, token stored under the config directory
    ai whoami     # authenticated request using the cached token
    ai logout     # remove the cached token

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware directories and settings resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    auth: token store and device authorization client.
"""

__version__ = "1.0.0"
