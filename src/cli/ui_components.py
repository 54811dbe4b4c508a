"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar paneles y el setup de logging en `setup` y `doctor`.
"""

from __future__ import annotations

import logging

from rich.align import Align
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import AppSettings
from core.domain.models import SessionInput, ValidationResult
from core.services.provisioning_pipeline import ProvisionResult


def configure_logging(verbose: bool = False) -> None:
    """Logging estándar con salida Rich; `--verbose` muestra cada comando externo."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("DEV STACK SETUP", style="bold cyan")
    subtitle = Text("SSL • DNS • Nginx • Docker bridge", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_summary_panel(result: ProvisionResult, session: SessionInput, settings: AppSettings) -> Panel:
    """Panel final con los artefactos generados."""

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Certificate", str(result.certificate.cert_path))
    table.add_row("Hosts", result.hosts_line)
    table.add_row("Gateway", str(result.gateway_config))
    table.add_row("Bridge", str(result.bridge_override))
    table.add_row("Listening", f"port {settings.listen_port} (SSL)")
    table.add_row("Internal bridge", f"Docker -> {settings.bridge_gateway_address}")
    if result.purged:
        table.add_row("Purged", ", ".join(p.name for p in result.purged))

    body = Text()
    body.append(f"Point your app .env to https://api.{session.domain}\n")
    body.append("Import rootCA.pem (mkcert -CAROOT) on mobile devices for SSL trust.", style="dim")

    title = Text(f"SETUP SUCCESSFUL: {session.domain}", style="bold green")
    return Panel(_stack(table, body), title=title, border_style="green")


def _stack(table: Table, body: Text) -> Table:
    grid = Table.grid()
    grid.add_row(table)
    grid.add_row(Text(""))
    grid.add_row(body)
    return grid


def build_validation_panel(validation: ValidationResult) -> Panel:
    """Salida de `nginx -t` cuando la validación falla."""

    body = Text(validation.output.strip() or "nginx -t failed without output", style="red")
    if validation.offending_file:
        body.append(f"\n\nOffending file: {validation.offending_file}", style="bold")
    return Panel(body, title=Text("Gateway config invalid", style="bold red"), border_style="red")
