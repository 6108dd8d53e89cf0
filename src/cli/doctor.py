"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from cli.ui_components import build_error_panel, build_tenants_table, print_banner
from core.config import AppSettings, load_endpoint_config
from core.errors import BridgeError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, f"{type(exc).__name__}: {exc}"


@app.command()
def run(
    connectivity: bool = typer.Option(True, help="Probe every configured base URL."),
) -> None:
    """Show the tenant configuration and probe base URL connectivity."""

    settings = AppSettings()
    print_banner(_console)

    try:
        endpoint = load_endpoint_config(settings.config_file)
    except BridgeError as exc:
        _console.print(build_error_panel(exc))
        raise typer.Exit(code=1) from exc

    _console.print(f"[dim]Config file:[/dim] {settings.config_file}")
    _console.print(build_tenants_table(endpoint.entity))

    if not connectivity:
        return

    table = Table(title="Connectivity")
    table.add_column("Tenant", style="cyan", no_wrap=True)
    table.add_column("Base URL", style="magenta")
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")
    for key in sorted(endpoint.entity):
        for url in endpoint.entity[key].base_urls:
            ok, detail = asyncio.run(_check_http(url, settings))
            table.add_row(key, url, "OK" if ok else "FAIL", detail)
    _console.print(table)
