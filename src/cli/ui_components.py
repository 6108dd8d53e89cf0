"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from collections.abc import Mapping

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import TenantConfig
from core.errors import BridgeError


def print_banner(console: Console) -> None:
    title = Text("airwatch-bridge", style="bold cyan")
    subtitle = Text("Provisioning de usuarios y grupos • Failover • Anchors", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_tenants_table(tenants: Mapping[str, TenantConfig]) -> Table:
    """Tabla con la configuración (sin secretos) de cada tenant."""

    table = Table(title="Tenants")
    table.add_column("Tenant", style="cyan", no_wrap=True)
    table.add_column("Tenant code", style="white")
    table.add_column("Base URLs", style="magenta")
    table.add_column("Proxy", style="white")
    table.add_column("Credentials", style="green")
    for key in sorted(tenants):
        cfg = tenants[key]
        if cfg.token is not None:
            creds = "bearer"
        elif cfg.username:
            creds = "basic"
        else:
            creds = "passthrough"
        table.add_row(
            key,
            cfg.tenant_code,
            "\n".join(cfg.base_urls) or "[red]none[/red]",
            cfg.proxy.host if cfg.proxy else "-",
            creds,
        )
    return table


def build_error_panel(error: BridgeError) -> Panel:
    body = Text()
    body.append(error.message + "\n\n")
    body.append(f"code: {error.code}\n", style="bold")
    body.append(f"category: {error.category.value}", style="dim")
    where = error.context.describe()
    if where:
        body.append(f"\nrequest: {where}", style="dim")
    return Panel(body, title=Text("Error", style="bold red"), border_style="red")
