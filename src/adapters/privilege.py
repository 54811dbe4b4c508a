"""Elevación de privilegios e identidad original.

Flujo:
- Si no somos root, nos re-ejecutamos con `sudo` reenviando los mismos
  argumentos, esperamos y salimos con el código del hijo.
- El hijo lleva `DEVSTACK_ELEVATED=1`; si aun así no es root, se aborta en
  lugar de volver a pedir sudo (sin bucles).
- La identidad del usuario real se recupera de `SUDO_USER` (o `--user`), nunca
  se deduce del proceso elevado.
"""

from __future__ import annotations

import logging
import os
import pwd
import shutil
import sys
from pathlib import Path
from typing import Mapping, Sequence

from adapters.process_runner import current_euid
from core.config import USER_ENV_FILE_ENV, get_user_env_file
from core.domain.models import IdentityContext
from core.errors import ElevationError
from core.interfaces.runner import CommandRunner

logger = logging.getLogger(__name__)

ELEVATED_ENV = "DEVSTACK_ELEVATED"
_FORWARDED_PREFIX = "DEVSTACK_"


def is_elevated() -> bool:
    return current_euid() == 0


def elevation_command(
    argv: Sequence[str],
    environ: Mapping[str, str],
    *,
    executable: str | None = None,
) -> list[str]:
    """`sudo env DEVSTACK_ELEVATED=1 [DEVSTACK_*...] <python> <argv...>`.

    sudo limpia el entorno: las variables `DEVSTACK_*` se reenvían
    explícitamente para que flags por entorno sobrevivan a la elevación.
    También viaja la ruta del .env del usuario, resuelta antes de que sudo
    cambie `HOME`.
    """

    variables = {
        key: value
        for key, value in environ.items()
        if key.startswith(_FORWARDED_PREFIX) and key != ELEVATED_ENV
    }
    variables.setdefault(USER_ENV_FILE_ENV, str(get_user_env_file(environ)))
    forwarded = [f"{key}={value}" for key, value in sorted(variables.items())]
    return ["sudo", "env", f"{ELEVATED_ENV}=1", *forwarded, executable or sys.executable, *argv]


def elevate(
    argv: Sequence[str],
    runner: CommandRunner,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Re-ejecuta el programa con sudo y devuelve el código de salida del hijo."""

    environ = os.environ if environ is None else environ
    if environ.get(ELEVATED_ENV) == "1":
        raise ElevationError("Re-executed through sudo but still not running as root")
    if shutil.which("sudo") is None:
        raise ElevationError("This setup modifies system networking and needs sudo, which was not found")

    command = elevation_command(argv, environ)
    logger.debug("elevating: %s", command)
    result = runner.run(command, check=False, interactive=True)
    return result.returncode


def resolve_identity(
    environ: Mapping[str, str],
    *,
    override_user: str | None = None,
    allow_root: bool = False,
    euid: int | None = None,
) -> IdentityContext:
    """Captura la identidad original del operador.

    Reglas:
    - `override_user` (flag `--user`) gana sobre `SUDO_USER`.
    - Sin ninguno de los dos y corriendo como root, se aborta salvo
      `allow_root`: caer en root rompería el trust store del usuario real.
    """

    euid = current_euid() if euid is None else euid
    user = (override_user or environ.get("SUDO_USER") or "").strip()

    if user:
        try:
            entry = pwd.getpwnam(user)
        except KeyError:
            raise ElevationError(f"Invoking user '{user}' does not exist") from None
    else:
        entry = pwd.getpwuid(euid)

    if entry.pw_uid == 0 and euid == 0 and not allow_root:
        raise ElevationError(
            "Cannot tell which user invoked the setup (SUDO_USER is unset). "
            "Run it through sudo from your own account, pass --user, "
            "or set DEVSTACK_ALLOW_ROOT_IDENTITY=true."
        )

    return IdentityContext(
        effective_uid=euid,
        user=entry.pw_name,
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        home=Path(entry.pw_dir),
    )
