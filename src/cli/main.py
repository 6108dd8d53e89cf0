"""CLI principal (Typer).

Comandos:
- `anchor decode|encode`: conversión anchor base64 <-> UUID.
- `user get`, `group get`: búsquedas contra un tenant configurado.
- `doctor run`: diagnóstico de configuración y conectividad.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import typer
from rich.console import Console

from cli import doctor
from cli.ui_components import build_error_panel
from core.config import AppSettings
from core.domain.anchor import decode_anchor, encode_anchor
from core.errors import BridgeError
from core.observability import setup_logging
from core.services.provisioning import build_provisioning

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="AirWatch user/group provisioning bridge.")
anchor_app = typer.Typer(no_args_is_help=True, help="Identity anchor conversions.")
user_app = typer.Typer(no_args_is_help=True, help="User lookups.")
group_app = typer.Typer(no_args_is_help=True, help="Group lookups.")

app.add_typer(anchor_app, name="anchor")
app.add_typer(user_app, name="user")
app.add_typer(group_app, name="group")
app.add_typer(doctor.app, name="doctor")

_console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    settings = AppSettings()
    setup_logging("DEBUG" if verbose else settings.log_level, settings.log_format)


def _fail(error: BridgeError) -> None:
    _console.print(build_error_panel(error))
    raise typer.Exit(code=1)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except BridgeError as exc:
        _fail(exc)
        raise


def _print_result(result: Any) -> None:
    if result is None:
        _console.print("[yellow]Not found[/yellow]")
        raise typer.Exit(code=2)
    _console.print_json(data=result)


@anchor_app.command("decode")
def anchor_decode(anchor: str = typer.Argument(..., help="Base64 anchor.")) -> None:
    """Base64 anchor -> hyphenated UUID."""

    try:
        typer.echo(decode_anchor(anchor))
    except BridgeError as exc:
        _fail(exc)


@anchor_app.command("encode")
def anchor_encode(value: str = typer.Argument(..., help="UUID (8-4-4-4-12).")) -> None:
    """Hyphenated UUID -> base64 anchor."""

    try:
        typer.echo(encode_anchor(value))
    except BridgeError as exc:
        _fail(exc)


@user_app.command("get")
def user_get(
    tenant: str = typer.Argument(..., help="Tenant (base entity) key."),
    key: str = typer.Argument(..., help="externalId or userName."),
    by: str = typer.Option("externalId", "--by", help="externalId | userName"),
    full: bool = typer.Option(False, "--full", help="Fetch every attribute, not just existence."),
    token: str | None = typer.Option(None, "--token", envvar="AWB_PASSTHROUGH_TOKEN", help="Authorization header value."),
) -> None:
    """Look up a user on the platform."""

    if by not in ("externalId", "userName"):
        raise typer.BadParameter("--by must be externalId or userName")
    try:
        provisioning = build_provisioning()
    except BridgeError as exc:
        _fail(exc)
    attributes = None if full else ["id", "userName"]
    result = _run(provisioning.users.get_user(tenant, key, by, attributes, token))
    _print_result(result)


@group_app.command("get")
def group_get(
    tenant: str = typer.Argument(..., help="Tenant (base entity) key."),
    name: str = typer.Argument(..., help="Group display name."),
    token: str | None = typer.Option(None, "--token", envvar="AWB_PASSTHROUGH_TOKEN", help="Authorization header value."),
) -> None:
    """Look up a custom user group by name."""

    try:
        provisioning = build_provisioning()
    except BridgeError as exc:
        _fail(exc)
    result = _run(provisioning.groups.get_group(tenant, name, token))
    _print_result(result)


def run() -> None:
    app()
