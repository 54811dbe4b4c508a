"""Wrapper de subprocess.

Por qué un wrapper:
- Estandariza captura de salida, logging y la política de "ejecutar como el
  usuario original" (sudo -u) para todos los pasos.
- Facilita testeo: el pipeline recibe un `CommandRunner` que se puede
  sustituir por un runner grabador.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from typing import Mapping, Sequence

from core.errors import CommandError
from core.interfaces.runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


def current_euid() -> int:
    return os.geteuid()


def as_user_prefix(user: str | None) -> list[str]:
    """Prefijo para bajar a la identidad original cuando corremos como root."""

    if not user or user == "root" or current_euid() != 0:
        return []
    return ["sudo", "-u", user, "-H"]


class SubprocessRunner:
    """Implementación de `CommandRunner` sobre `subprocess.run`."""

    def run(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        as_user: str | None = None,
        env: Mapping[str, str] | None = None,
        interactive: bool = False,
    ) -> CommandResult:
        argv = [*as_user_prefix(as_user), *args]
        merged_env = {**os.environ, **env} if env else None
        logger.debug("exec: %s", shlex.join(argv))

        try:
            if interactive:
                proc = subprocess.run(argv, env=merged_env, check=False)
                output = ""
            else:
                proc = subprocess.run(
                    argv,
                    env=merged_env,
                    check=False,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                )
                output = proc.stdout or ""
        except FileNotFoundError as exc:
            raise CommandError(argv, 127, str(exc)) from exc

        result = CommandResult(args=tuple(argv), returncode=proc.returncode, output=output)
        if output:
            logger.debug("%s -> %s\n%s", argv[0], proc.returncode, output.rstrip())
        if check and not result.ok:
            raise CommandError(argv, result.returncode, output)
        return result


def build_runner() -> CommandRunner:
    """Runner por defecto de la aplicación."""

    return SubprocessRunner()
