"""Errores del provisionado.

Cada clase corresponde a una categoría de fallo con su propio código de salida;
la CLI solo necesita capturar `ProvisioningError`.
"""

from __future__ import annotations

from typing import Sequence


class ProvisioningError(Exception):
    """Base de todos los fallos que abortan la ejecución."""

    exit_code = 1

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class InputError(ProvisioningError):
    """Entrada del operador inválida (slug, dominio, carpeta de proyecto)."""

    exit_code = 2


class DependencyError(ProvisioningError):
    """Herramienta externa ausente o instalación fallida."""

    exit_code = 3


class CertificateError(ProvisioningError):
    """El certificado no se generó o no cubre los nombres esperados."""

    exit_code = 4


class GatewayValidationError(ProvisioningError):
    """La configuración del gateway no pasa `nginx -t`; no se reinicia."""

    exit_code = 5

    def __init__(self, message: str, *, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class ElevationError(ProvisioningError):
    """No se pudo elevar privilegios o recuperar la identidad original."""

    exit_code = 6


class CommandError(ProvisioningError):
    """Un proceso externo terminó con código distinto de cero."""

    def __init__(self, args: Sequence[str], returncode: int, output: str = "") -> None:
        self.argv = list(args)
        self.returncode = returncode
        self.output = output
        detail = output.strip().splitlines()[-1] if output.strip() else "no output"
        super().__init__(f"`{' '.join(self.argv)}` exited with {returncode}: {detail}")
