"""Validación (`nginx -t`) y reinicio del gateway.

Reglas:
- Solo se reinicia si la validación pasa: un fichero roto no debe tumbar un
  gateway que ya funcionaba.
- Si la validación falla por *otro* fichero del directorio de servers
  (estado roto heredado), el pipeline ofrece purgar los `.conf` previos.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from core.domain.models import ValidationResult
from core.interfaces.runner import CommandRunner

logger = logging.getLogger(__name__)

_OFFENDING_RE = re.compile(r" in (/\S+?):\d+")
# Certificados borrados: nginx nombra el PEM pero no el .conf que lo usa.
_MISSING_CERT_RE = re.compile(r'cannot load certificate(?: key)? "([^"]+)"')


def _config_referencing(servers_dir: Path, needle: str) -> Path | None:
    for path in sorted(servers_dir.glob("*.conf")):
        try:
            if needle in path.read_text(encoding="utf-8", errors="replace"):
                return path
        except OSError:
            logger.debug("could not read %s", path)
    return None


def parse_offending_file(output: str, servers_dir: Path | None = None) -> Path | None:
    """Fichero culpable según la salida de `nginx -t`.

    Primero `in /ruta:linea`; si nginx solo cita un certificado que no puede
    cargar, se busca el `.conf` de `servers_dir` que lo referencia.
    """

    match = _OFFENDING_RE.search(output)
    if match:
        return Path(match.group(1))
    match = _MISSING_CERT_RE.search(output)
    if match and servers_dir is not None and servers_dir.is_dir():
        return _config_referencing(servers_dir, match.group(1))
    return None


def validate_config(nginx: str, runner: CommandRunner, servers_dir: Path | None = None) -> ValidationResult:
    result = runner.run([nginx, "-t"], check=False)
    return ValidationResult(
        ok=result.ok,
        output=result.output,
        offending_file=None if result.ok else parse_offending_file(result.output, servers_dir),
    )


def is_stale_failure(validation: ValidationResult, servers_dir: Path, own_config: Path) -> bool:
    """La validación falla por un fichero ajeno dentro de `servers_dir`."""

    offending = validation.offending_file
    if validation.ok or offending is None:
        return False
    return offending.parent.resolve() == servers_dir.resolve() and offending.resolve() != own_config.resolve()


def purge_configs(servers_dir: Path) -> list[Path]:
    """Borra todos los `*.conf` del directorio de servers."""

    removed: list[Path] = []
    for path in sorted(servers_dir.glob("*.conf")):
        path.unlink()
        removed.append(path)
    logger.debug("purged %d configs from %s", len(removed), servers_dir)
    return removed


def restart_gateway(package_manager: str, service: str, runner: CommandRunner) -> None:
    """`brew services restart nginx`; un fallo se propaga como `CommandError`."""

    runner.run([package_manager, "services", "restart", service])
