"""Doctor command for environment diagnostics."""

from __future__ import annotations

import os
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters.dependencies import tool_status
from adapters.privilege import is_elevated
from core.config import load_settings, write_user_env_vars
from core.domain.roles import BackendRole

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _writable(path: Path) -> tuple[bool, str]:
    if not path.exists():
        return False, "missing"
    if os.access(path, os.W_OK):
        return True, "writable"
    return False, "needs sudo"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = load_settings()

    table = Table(title="Dev Stack Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Tools
    missing = []
    for name, path in tool_status(settings).items():
        if path is None:
            missing.append(name)
            table.add_row(name, "MISSING", "installed by `setup` (without sudo)")
        else:
            table.add_row(name, "OK", str(path))

    # Privilege / identity
    table.add_row("root", "YES" if is_elevated() else "NO", "setup re-runs itself with sudo")
    sudo_user = os.environ.get("SUDO_USER")
    table.add_row("SUDO_USER", "OK" if sudo_user else "UNSET", sudo_user or "resolved from the current account")

    # Paths
    for label, path in (
        ("Servers dir", settings.servers_dir),
        ("Hosts file", settings.hosts_file),
    ):
        ok, detail = _writable(path)
        table.add_row(label, "OK" if ok else "WARN", f"{path} ({detail})")

    # Ports
    ports = settings.ports
    table.add_row(
        "Ports",
        "OK",
        ", ".join(f"{role.value}={ports.port_for(role)}" for role in BackendRole),
    )

    _console.print(table)

    if missing:
        _console.print(
            f"\n[yellow]Note:[/yellow] {', '.join(missing)} will be installed by `setup` before it asks for sudo."
        )


@app.command(name="setup-ports")
def setup_ports() -> None:
    """Interactive port map (stored in the user config .env)."""

    ports = load_settings().ports
    values: dict[str, str] = {}
    for role in BackendRole:
        port = typer.prompt(f"{role.label()} port", default=ports.port_for(role), type=int)
        if not 1 <= port <= 65535:
            raise typer.BadParameter(f"{port} is not a valid TCP port")
        values[f"DEVSTACK_PORT_{role.value.upper()}"] = str(port)

    env_path = write_user_env_vars(values)
    _console.print(f"[green]Saved port map to:[/green] {env_path}")
