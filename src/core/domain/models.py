"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta (slug, dominio, puertos) en el borde, antes de
  que esos valores lleguen a una plantilla o a un comando externo.
- Los perfiles de rutas son datos declarativos: se pueden cargar de JSON y
  sustituir en tests sin tocar los renderers.

Nota:
- Estos modelos describen *qué* se provisiona, no *cómo* se escribe en disco.
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from core.domain.roles import BackendRole

_SLUG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
_LABEL_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")


def is_valid_domain(value: str) -> bool:
    """Nombre DNS con al menos dos etiquetas (`example.com`)."""

    if not value or len(value) > 253:
        return False
    labels = value.split(".")
    if len(labels) < 2:
        return False
    return all(_LABEL_RE.match(label) for label in labels)


class SessionInput(BaseModel):
    """Datos recogidos una vez por ejecución; inmutables después."""

    model_config = ConfigDict(frozen=True)

    client_slug: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Identificador del cliente (nombre de fichero y carpeta de certificados).",
    )
    domain: str = Field(
        ...,
        min_length=3,
        max_length=253,
        description="Dominio apex del cliente (p.ej. 'companyx.com').",
    )
    project_dir: Path = Field(
        ...,
        description="Raíz del proyecto donde se escribe el override de contenedores.",
    )

    @field_validator("client_slug")
    @classmethod
    def _check_slug(cls, value: str) -> str:
        value = value.strip()
        if not _SLUG_RE.match(value):
            raise ValueError("client slug may only contain letters, digits, '-' and '_'")
        return value

    @field_validator("domain")
    @classmethod
    def _check_domain(cls, value: str) -> str:
        value = value.strip().lower().rstrip(".")
        if not is_valid_domain(value):
            raise ValueError(f"'{value}' is not a valid DNS name")
        return value


class IdentityContext(BaseModel):
    """Identidad original capturada tras la elevación.

    Por qué existe:
    - mkcert debe correr como el usuario real para que la CA quede en *su*
      trust store.
    - Los artefactos generados como root se devuelven a este usuario.
    """

    model_config = ConfigDict(frozen=True)

    effective_uid: int = Field(..., ge=0)
    user: str = Field(..., min_length=1)
    uid: int = Field(..., ge=0)
    gid: int = Field(..., ge=0)
    home: Path

    @property
    def elevated(self) -> bool:
        return self.effective_uid == 0


class PortMap(BaseModel):
    """Puerto TCP local por rol de backend."""

    model_config = ConfigDict(frozen=True)

    graphql: int = Field(default=8081, ge=1, le=65535)
    auth: int = Field(default=8080, ge=1, le=65535)
    storage: int = Field(default=9000, ge=1, le=65535)
    gateway: int = Field(default=8000, ge=1, le=65535)
    console: int = Field(default=8081, ge=1, le=65535)
    db_admin: int = Field(default=5050, ge=1, le=65535)

    def port_for(self, role: BackendRole) -> int:
        return int(getattr(self, role.value))


class RouteSpec(BaseModel):
    """Una ruta declarativa del gateway: `{subdominio, prefijo, rol, extras}`."""

    subdomain: str = Field(..., min_length=1, max_length=63)
    path_prefix: str = Field(default="/", min_length=1)
    role: BackendRole
    upstream_path: str | None = Field(
        default=None,
        description="Ruta añadida al proxy_pass (p.ej. '/v1/graphql').",
    )
    websocket: bool = Field(default=False, description="Cabeceras Upgrade/Connection.")
    large_buffers: bool = Field(default=False, description="Buffers ampliados para JWT grandes.")
    client_ip_headers: bool = Field(default=False, description="X-Real-IP y X-Forwarded-Proto.")

    @field_validator("subdomain")
    @classmethod
    def _check_subdomain(cls, value: str) -> str:
        value = value.strip().lower()
        if not _LABEL_RE.match(value):
            raise ValueError(f"'{value}' is not a valid DNS label")
        return value

    @field_validator("path_prefix", "upstream_path")
    @classmethod
    def _check_path(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith("/"):
            raise ValueError("paths must start with '/'")
        return value


class VirtualHost(BaseModel):
    """Bloque `server` ya agrupado por subdominio."""

    subdomain: str
    routes: list[RouteSpec] = Field(default_factory=list)


class GatewayProfile(BaseModel):
    """Conjunto ordenado de rutas que se renderiza a un fichero por cliente."""

    listen_port: int = Field(default=443, ge=1, le=65535)
    routes: list[RouteSpec] = Field(default_factory=list)

    def virtual_hosts(self) -> list[VirtualHost]:
        """Agrupa rutas por subdominio respetando el orden de aparición."""

        hosts: dict[str, VirtualHost] = {}
        for route in self.routes:
            hosts.setdefault(route.subdomain, VirtualHost(subdomain=route.subdomain)).routes.append(route)
        return list(hosts.values())


class BridgeService(BaseModel):
    """Servicio de contenedor que necesita resolver subdominios hacia el host."""

    name: str = Field(..., min_length=1, max_length=128)
    subdomains: list[str] = Field(default_factory=list)


class BridgeProfile(BaseModel):
    compose_version: str | None = Field(default="3.8")
    gateway_address: str = Field(default="host.docker.internal", min_length=1)
    services: list[BridgeService] = Field(default_factory=list)


class CertificateArtifact(BaseModel):
    """Par cert/key emitido por la CA local."""

    directory: Path
    cert_path: Path
    key_path: Path
    names: list[str] = Field(default_factory=list, description="SANs solicitados.")


class ValidationResult(BaseModel):
    """Resultado de `nginx -t`."""

    ok: bool
    output: str = ""
    offending_file: Path | None = Field(
        default=None,
        description="Fichero señalado por el validador cuando falla (si se pudo extraer).",
    )
