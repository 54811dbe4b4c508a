"""Contrato para ejecutar procesos externos.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite que el pipeline use `subprocess` en producción y un runner
  grabador en tests, sin tocar sudo, brew ni nginx de verdad.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence, runtime_checkable


@dataclass(frozen=True)
class CommandResult:
    """Salida normalizada de un proceso."""

    args: tuple[str, ...]
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@runtime_checkable
class CommandRunner(Protocol):
    """Contrato mínimo para lanzar un comando.

    Reglas de diseño:
    - Bloqueante: el flujo es estrictamente secuencial.
    - `check=True` convierte un código distinto de cero en `CommandError`.
    - `as_user` pide ejecutar con la identidad original (no la elevada).
    - `interactive=True` hereda stdin/stdout (sudo, instaladores).
    """

    def run(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        as_user: str | None = None,
        env: Mapping[str, str] | None = None,
        interactive: bool = False,
    ) -> CommandResult:
        ...
