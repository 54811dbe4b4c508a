"""Emisión de certificados locales con mkcert.

Por qué como el usuario original:
- `mkcert -install` registra la CA en el trust store de quien lo ejecuta; si
  corre como root, el navegador del usuario nunca confía en el certificado.

Postcondición (obligatoria): cert.pem y key.pem existen, no están vacíos y
los SANs cubren apex, comodín, localhost y 127.0.0.1.
"""

from __future__ import annotations

import ipaddress
import logging
import os
from pathlib import Path

from cryptography import x509

from core.config import AppSettings
from core.domain.models import CertificateArtifact, IdentityContext, SessionInput
from core.errors import CertificateError, CommandError
from core.interfaces.runner import CommandRunner

logger = logging.getLogger(__name__)

CERT_FILENAME = "cert.pem"
KEY_FILENAME = "key.pem"


def certificate_names(domain: str) -> list[str]:
    return [domain, f"*.{domain}", "localhost", "127.0.0.1"]


def certificate_dir(settings: AppSettings, identity: IdentityContext, client_slug: str) -> Path:
    return identity.home / settings.cert_root_name / client_slug


def read_certificate_names(cert_path: Path) -> set[str]:
    """SANs (DNS + IP) del primer certificado PEM del fichero."""

    try:
        cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
    except ValueError as exc:
        raise CertificateError(f"{cert_path} is not a valid PEM certificate: {exc}") from exc

    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return set()

    names: set[str] = set(san.get_values_for_type(x509.DNSName))
    names.update(str(ip) for ip in san.get_values_for_type(x509.IPAddress))
    return names


def verify_certificate(artifact: CertificateArtifact) -> None:
    for path in (artifact.cert_path, artifact.key_path):
        if not path.is_file() or path.stat().st_size == 0:
            raise CertificateError(f"SSL generation failed: {path} is missing or empty")

    found = read_certificate_names(artifact.cert_path)
    normalized = {str(ipaddress.ip_address(n)) if _is_ip(n) else n for n in artifact.names}
    missing = sorted(normalized - found)
    if missing:
        raise CertificateError(f"Certificate {artifact.cert_path} does not cover: {', '.join(missing)}")


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def provision_certificate(
    *,
    settings: AppSettings,
    session: SessionInput,
    identity: IdentityContext,
    runner: CommandRunner,
    mkcert: str,
) -> CertificateArtifact:
    """Crea la carpeta del cliente, instala la CA local y emite el certificado."""

    directory = certificate_dir(settings, identity, session.client_slug)
    directory.mkdir(parents=True, exist_ok=True)
    if identity.elevated:
        # mkdir ran as root: both <home>/certs and the client folder belong to the user.
        for path in (directory.parent, directory):
            os.chown(path, identity.uid, identity.gid)

    artifact = CertificateArtifact(
        directory=directory,
        cert_path=directory / CERT_FILENAME,
        key_path=directory / KEY_FILENAME,
        names=certificate_names(session.domain),
    )

    try:
        runner.run([mkcert, "-install"], as_user=identity.user)
        runner.run(
            [
                mkcert,
                "-cert-file",
                str(artifact.cert_path),
                "-key-file",
                str(artifact.key_path),
                *artifact.names,
            ],
            as_user=identity.user,
        )
    except CommandError as exc:
        raise CertificateError(f"mkcert failed: {exc.message}") from exc

    verify_certificate(artifact)
    logger.debug("certificate ready at %s", artifact.cert_path)
    return artifact
