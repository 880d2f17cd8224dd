"""Auth commands -- log in, log out, and inspect the cached credential.

Registered directly on the root app:

* ``ai login`` -- run the device authorization flow and cache the token.
* ``ai logout`` -- delete the cached token.
* ``ai whoami`` -- ask the auth server who the cached token belongs to.
* ``ai status`` -- show the cached token without contacting the server.

Every command that needs a session goes through
:meth:`~acli.auth.token_store.TokenStore.require_authenticated` and stops
with the auth exit code when it refuses.

Typical workflow::

    ai login --client-id my-client
    ai whoami
    ai logout
"""

from __future__ import annotations

import webbrowser
from typing import NoReturn, Optional

import typer

from acli.exceptions import LOGIN_HINT, AcliError
from acli.output import (
    OutputFormat,
    error,
    format_response,
    get_output,
    highlight,
    info,
    print_table,
    progress,
    success,
    suggest,
)


def _fail(exc: AcliError) -> NoReturn:
    """Report *exc* and stop the command with its exit code."""
    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


def _ctx_flag(ctx: typer.Context, name: str) -> bool:
    return bool(ctx.obj.get(name, False)) if ctx.obj else False


def login_command(
    ctx: typer.Context,
    server_url: Optional[str] = typer.Option(
        None, "--server-url", help="Auth server URL."
    ),
    client_id: Optional[str] = typer.Option(
        None, "--client-id", help="The OAuth client ID."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Never offer to open the verification URL."
    ),
) -> None:
    """Log in with the device authorization flow.

    Prints a verification URL and a one-time code, optionally opens the URL
    in a browser, waits for the user to approve, and caches the issued
    token. When a fresh token already exists the user is asked whether to
    re-authenticate unless ``--force`` is active.

    Raises:
        typer.Exit: With the error's exit code if the flow fails or the
            token cannot be written.

    Example::

        ai login
        ai login --server-url https://auth.example.com --client-id cli
    """
    from acli.auth import DeviceAuthorizationClient, TokenStore
    from acli.config import resolve_settings

    try:
        settings = resolve_settings(server_url, client_id)
    except AcliError as exc:
        _fail(exc)

    store = TokenStore(settings.token_path)
    force = _ctx_flag(ctx, "force")
    no_input = _ctx_flag(ctx, "no_input")

    if not force and not store.is_token_expired():
        if no_input:
            info("Already logged in.")
            suggest("Re-authenticate with: ai --force login")
            return
        reauth = typer.confirm(
            "You are already logged in. Do you want to re-authenticate?",
            default=False,
        )
        if not reauth:
            info("Login cancelled.")
            raise typer.Exit()

    try:
        with DeviceAuthorizationClient(
            settings.server_url, settings.client_id, settings.scope
        ) as client:
            progress("Starting device authorization...")
            device = client.request_device_code()

            url = device.verification_url
            success("Device authorization required")
            highlight("Please visit:", url)
            highlight("Enter code:", device.user_code)

            if url and not no_browser and not no_input:
                if typer.confirm("Open the verification URL in your browser?", default=True):
                    webbrowser.open(device.verification_uri_complete or url)

            info(
                f"Waiting for authorization (expires in "
                f"{device.expires_in // 60} minutes)..."
            )
            payload = client.poll_for_token(device)
    except AcliError as exc:
        _fail(exc)

    result = store.store_token(payload)
    if not result.ok:
        assert result.error is not None
        error(str(result.error))
        suggest("You are not logged in. Check permissions on the config directory and retry.")
        raise typer.Exit(code=result.error.exit_code)

    success("Login successful!")
    info(f"Token saved to {store.path}")


def logout_command() -> None:
    """Log out by deleting the cached token.

    Succeeds whether or not a token was stored.

    Example::

        ai logout
    """
    from acli.auth import TokenStore

    store = TokenStore()
    try:
        removed = store.clear_stored_token()
    except AcliError as exc:
        _fail(exc)

    if removed:
        success("Logged out.")
    else:
        info("Not logged in. Nothing to clear.")


def whoami_command(
    server_url: Optional[str] = typer.Option(
        None, "--server-url", help="Auth server URL."
    ),
) -> None:
    """Show the user the cached token belongs to.

    Requires a present, non-expired token, then asks the auth server for
    the session associated with it.

    Example::

        ai whoami
        ai --json whoami
    """
    from acli.auth import TokenStore, fetch_session
    from acli.config import resolve_settings

    try:
        settings = resolve_settings(server_url)
        credential = TokenStore(settings.token_path).require_authenticated()
        session = fetch_session(settings.server_url, credential)
    except AcliError as exc:
        _fail(exc)

    user = session["user"]
    if get_output().format == OutputFormat.JSON:
        format_response(user)
        return

    rows = [
        ["Name", str(user.get("name") or "-")],
        ["Email", str(user.get("email") or "-")],
        ["ID", str(user.get("id") or "-")],
    ]
    print_table(["Field", "Value"], rows, title="Current User")


def status_command() -> None:
    """Show the cached credential and whether it is still fresh.

    Reads only the local token file; the server is not contacted. The
    token itself is truncated.

    Example::

        ai status
    """
    from acli.auth import ABSENT, TokenStore

    store = TokenStore()
    token = store.get_stored_token()
    if token is ABSENT:
        info("Not logged in.")
        suggest(LOGIN_HINT)
        return

    preview = token.access_token
    if len(preview) > 8:
        preview = preview[:8] + "..."

    rows = [
        ["Token", preview],
        ["Token Type", token.token_type],
        ["Scope", token.scope or "-"],
        ["Refresh Token", "yes" if token.refresh_token else "no"],
        ["Created At", token.created_at.isoformat()],
        ["Expires At", token.expires_at.isoformat() if token.expires_at else "unknown"],
        ["Status", "expired" if store.is_token_expired() else "valid"],
        ["Path", str(store.path)],
    ]
    print_table(["Field", "Value"], rows, title="Stored Credential")
