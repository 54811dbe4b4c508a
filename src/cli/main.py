"""CLI principal (Typer).

Flujo de `setup`:
1. Dependencias (sin sudo: Homebrew se niega a correr como root).
2. Elevación: re-ejecución con sudo reenviando los mismos argumentos.
3. Entrada del operador (flags/env o prompts interactivos).
4. Pipeline de provisionado (`core.services.provisioning_pipeline`).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from adapters.dependencies import resolve_dependencies
from adapters.privilege import elevate, is_elevated, resolve_identity
from adapters.process_runner import build_runner
from cli import doctor
from cli.ui_components import build_summary_panel, build_validation_panel, configure_logging, print_banner
from core.config import load_settings
from core.domain.models import SessionInput, ValidationResult
from core.errors import GatewayValidationError, InputError, ProvisioningError
from core.services.provisioning_pipeline import PipelineHooks, ProvisionRequest, provision

app = typer.Typer(
    no_args_is_help=True,
    help="Local dev stack setup: SSL, DNS aliases, nginx gateway and Docker bridge.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every external command."),
) -> None:
    configure_logging(verbose)


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    field_name = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field_name}: {first.get('msg', 'invalid value')}"


def collect_session(
    *,
    client: Optional[str],
    domain: Optional[str],
    project_dir: Optional[Path],
    use_cwd: Optional[bool],
    console: Console,
) -> SessionInput:
    """Pregunta lo que no llegó por flags/env. Sin reintentos: un valor inválido aborta."""

    if not client:
        client = typer.prompt("Enter Client Slug (e.g., companyx)").strip()
    if not domain:
        domain = typer.prompt("Enter Domain (e.g., companyx.com)").strip()

    if project_dir is None:
        cwd = Path.cwd()
        console.print(f"Current folder: [bold]{cwd}[/bold]")
        if use_cwd is None:
            use_cwd = typer.confirm("Is this the project root folder?", default=True)
        if use_cwd:
            project_dir = cwd
        else:
            project_dir = Path(typer.prompt("Enter the full path to the project folder").strip()).expanduser()

    if not project_dir.is_dir():
        raise InputError(f"Path {project_dir} does not exist.")
    if not os.access(project_dir, os.W_OK):
        raise InputError(f"Path {project_dir} is not writable.")

    try:
        return SessionInput(client_slug=client, domain=domain, project_dir=project_dir.resolve())
    except ValidationError as exc:
        raise InputError(_first_error(exc)) from exc


def _confirm_purge(servers_dir: Path, validation: ValidationResult) -> bool:
    _console.print(build_validation_panel(validation))
    return typer.confirm(f"Clear all stale configs in {servers_dir}?", default=False)


@app.command()
def setup(
    client: Optional[str] = typer.Option(None, "--client", envvar="DEVSTACK_CLIENT", help="Client slug (e.g. companyx)."),
    domain: Optional[str] = typer.Option(None, "--domain", envvar="DEVSTACK_DOMAIN", help="Apex domain (e.g. companyx.com)."),
    project_dir: Optional[Path] = typer.Option(
        None,
        "--project-dir",
        envvar="DEVSTACK_PROJECT_DIR",
        help="Project root that receives docker-compose.override.yml.",
    ),
    use_cwd: Optional[bool] = typer.Option(None, "--cwd/--no-cwd", help="Use the current folder as project root without asking."),
    user: Optional[str] = typer.Option(None, "--user", envvar="DEVSTACK_USER", help="Invoking user when SUDO_USER is unavailable."),
    purge_stale: Optional[bool] = typer.Option(
        None,
        "--purge-stale/--keep-stale",
        help="What to do when another config in the servers dir is broken (default: ask).",
    ),
    skip_deps: bool = typer.Option(False, "--skip-deps", help="Only verify external tools, never install them."),
) -> None:
    """Provision certificates, hosts aliases, nginx and the Docker bridge for a client."""

    settings = load_settings()
    runner = build_runner()

    try:
        elevated = is_elevated()
        if settings.elevate and not elevated:
            _console.print("Syncing native dependencies...")
            resolve_dependencies(settings, runner, install=not skip_deps, notify=_console.print)
            _console.print("[yellow]This setup modifies system networking and requires sudo.[/yellow]")
            raise typer.Exit(elevate(sys.argv, runner))

        print_banner(_console)
        tools = resolve_dependencies(
            settings,
            runner,
            install=not elevated and not skip_deps,
            notify=_console.print,
        )

        session = collect_session(
            client=client,
            domain=domain,
            project_dir=project_dir,
            use_cwd=use_cwd,
            console=_console,
        )
        identity = resolve_identity(os.environ, override_user=user, allow_root=settings.allow_root_identity)

        hooks = PipelineHooks(
            step=lambda index, total, label: _console.print(f"Step {index}/{total}: {label}..."),
            warning=lambda message: _console.print(f"[yellow]Warning:[/yellow] {message}"),
            confirm_purge=_confirm_purge,
        )
        result = provision(
            settings=settings,
            request=ProvisionRequest(session=session, identity=identity, purge_stale=purge_stale),
            runner=runner,
            tools=tools,
            hooks=hooks,
        )

        if not result.validation.ok:
            _console.print(build_validation_panel(result.validation))
            raise GatewayValidationError(
                f"{result.gateway_config} was written but nginx was not restarted",
                output=result.validation.output,
            )
    except ProvisioningError as exc:
        _console.print(f"[bold red]Error:[/bold red] {exc.message}")
        raise typer.Exit(exc.exit_code) from exc
    except OSError as exc:
        # Permisos sobre /etc/hosts o el directorio de servers (p.ej. DEVSTACK_ELEVATE=false).
        _console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    _console.print(build_summary_panel(result, session, settings))


def run() -> None:
    app()
