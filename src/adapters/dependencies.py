"""Resolución de herramientas externas (brew, nginx, mkcert).

Reglas:
- Homebrew se niega a correr como root: la instalación ocurre *antes* de
  elevar privilegios. El proceso elevado solo verifica (`install=False`).
- Tras cada instalación se vuelve a buscar la herramienta; si sigue sin
  aparecer es un error duro, nunca "instalar y esperar".
"""

from __future__ import annotations

import logging
import shlex
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from core.config import AppSettings
from core.errors import CommandError, DependencyError
from core.interfaces.runner import CommandRunner

logger = logging.getLogger(__name__)


@dataclass
class ToolPaths:
    """Rutas absolutas resueltas para cada herramienta."""

    paths: dict[str, str] = field(default_factory=dict)

    def __getitem__(self, name: str) -> str:
        try:
            return self.paths[name]
        except KeyError:
            raise DependencyError(f"Tool '{name}' was not resolved") from None


def locate_tool(name: str, settings: AppSettings) -> str | None:
    """Busca en PATH y luego en `<homebrew_prefix>/bin` (sudo recorta PATH)."""

    found = shutil.which(name)
    if found:
        return found
    candidate = settings.homebrew_prefix / "bin" / name
    if candidate.is_file():
        return str(candidate)
    return None


def _bootstrap_package_manager(settings: AppSettings, runner: CommandRunner) -> None:
    script = f'/bin/bash -c "$(curl -fsSL {shlex.quote(settings.homebrew_install_url)})"'
    try:
        runner.run(["/bin/bash", "-c", script], env={"NONINTERACTIVE": "1"}, interactive=True)
    except CommandError as exc:
        raise DependencyError(f"Could not install {settings.package_manager}: {exc.message}") from exc


def resolve_dependencies(
    settings: AppSettings,
    runner: CommandRunner,
    *,
    install: bool,
    notify: Callable[[str], None] | None = None,
) -> ToolPaths:
    """Detecta (e instala si `install`) el gestor de paquetes y las herramientas."""

    notify = notify or (lambda _msg: None)
    resolved = ToolPaths()

    manager = settings.package_manager
    manager_path = locate_tool(manager, settings)
    if manager_path is None:
        if not install:
            raise DependencyError(f"'{manager}' not found; run the setup without sudo so it can be installed")
        notify(f"Installing {manager}...")
        _bootstrap_package_manager(settings, runner)
        manager_path = locate_tool(manager, settings)
        if manager_path is None:
            raise DependencyError(f"'{manager}' is still missing after the bootstrap script ran")
    resolved.paths[manager] = manager_path

    for tool in settings.required_tools:
        path = locate_tool(tool, settings)
        if path is None:
            if not install:
                raise DependencyError(f"'{tool}' not found; run the setup without sudo so it can be installed")
            notify(f"Installing {tool}...")
            try:
                runner.run([manager_path, "install", tool])
            except CommandError as exc:
                raise DependencyError(f"'{manager} install {tool}' failed: {exc.message}") from exc
            path = locate_tool(tool, settings)
            if path is None:
                raise DependencyError(f"'{tool}' is still missing after '{manager} install {tool}'")
        logger.debug("tool %s -> %s", tool, path)
        resolved.paths[tool] = path

    return resolved


def tool_status(settings: AppSettings) -> dict[str, Path | None]:
    """Estado sin efectos secundarios (para `doctor`)."""

    names = [settings.package_manager, *settings.required_tools]
    status: dict[str, Path | None] = {}
    for name in names:
        found = locate_tool(name, settings)
        status[name] = Path(found) if found else None
    return status
