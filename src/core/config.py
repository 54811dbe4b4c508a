"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (procesos, plantillas, hosts) lean config de forma consistente.
- Los puertos y rutas que antes estaban "quemados" en el script viven aquí y
  se pueden sobreescribir por entorno o `.env`.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Mapping

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import PortMap


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (macOS / XDG)."""

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "devstack"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "devstack"
    return Path.home() / ".config" / "devstack"


USER_ENV_FILE_ENV = "DEVSTACK_USER_ENV_FILE"


def get_user_env_file(environ: Mapping[str, str] | None = None) -> Path:
    """Ruta del .env global del usuario.

    sudo reinicia `HOME`: el proceso elevado recibe la ruta ya resuelta en
    `DEVSTACK_USER_ENV_FILE` para seguir leyendo el .env del usuario real.
    """

    environ = os.environ if environ is None else environ
    explicit = environ.get(USER_ENV_FILE_ENV)
    if explicit:
        return Path(explicit)
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# devstack user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVSTACK_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    # Puertos internos (stack por defecto: Hasura, Keycloak, MinIO, Kong, pgAdmin)
    port_graphql: int = Field(default=8081, ge=1, le=65535, description="Puerto del gateway GraphQL.")
    port_auth: int = Field(default=8080, ge=1, le=65535, description="Puerto del servicio de auth.")
    port_storage: int = Field(default=9000, ge=1, le=65535, description="Puerto del object storage.")
    port_gateway: int = Field(default=8000, ge=1, le=65535, description="Puerto del API gateway genérico.")
    port_console: int = Field(default=8081, ge=1, le=65535, description="Puerto de la consola de administración.")
    port_db_admin: int = Field(default=5050, ge=1, le=65535, description="Puerto de la UI de administración de la BD.")

    # Herramientas externas
    package_manager: str = Field(default="brew", min_length=1, description="Gestor de paquetes de la plataforma.")
    homebrew_prefix: Path = Field(
        default=Path("/opt/homebrew"),
        description="Prefijo de Homebrew (donde viven bin/ y etc/).",
    )
    homebrew_install_url: str = Field(
        default="https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh",
        min_length=8,
        description="Script oficial de instalación de Homebrew.",
    )
    required_tools: list[str] = Field(
        default_factory=lambda: ["nginx", "mkcert"],
        description="Herramientas que deben existir en PATH antes de provisionar.",
    )
    gateway_service: str = Field(default="nginx", min_length=1, description="Nombre del servicio a reiniciar.")

    # Artefactos
    nginx_servers_dir: Path | None = Field(
        default=None,
        description="Directorio de virtual hosts (por defecto <homebrew_prefix>/etc/nginx/servers).",
    )
    hosts_file: Path = Field(default=Path("/etc/hosts"), description="Fichero de resolución estática.")
    host_labels: list[str] = Field(
        default_factory=lambda: ["api", "auth", "console", "db-admin", "app"],
        description="Subdominios que apuntan a loopback (orden estable).",
    )
    loopback_address: str = Field(default="127.0.0.1", min_length=1)
    cert_root_name: str = Field(default="certs", min_length=1, description="Carpeta bajo el home del usuario.")
    override_filename: str = Field(default="docker-compose.override.yml", min_length=1)

    # Perfiles
    listen_port: int = Field(default=443, ge=1, le=65535)
    include_storage: bool = Field(default=True, description="Ruta /files hacia el object storage.")
    include_subdomain_hosts: bool = Field(
        default=True,
        description="Virtual hosts extra para auth/console/db-admin.",
    )
    bridge_gateway_address: str = Field(
        default="host.docker.internal",
        min_length=1,
        description="Dirección del host vista desde dentro del contenedor.",
    )
    compose_version: str | None = Field(default="3.8", description="Clave `version` del override (vacío = omitir).")
    gateway_profile_path: Path | None = Field(default=None, description="JSON con un GatewayProfile propio.")
    bridge_profile_path: Path | None = Field(default=None, description="JSON con un BridgeProfile propio.")

    # Privilegios
    elevate: bool = Field(default=True, description="Re-ejecutar con sudo cuando no somos root.")
    allow_root_identity: bool = Field(
        default=False,
        description="Aceptar root como usuario original cuando SUDO_USER no existe.",
    )

    @property
    def ports(self) -> PortMap:
        return PortMap(
            graphql=self.port_graphql,
            auth=self.port_auth,
            storage=self.port_storage,
            gateway=self.port_gateway,
            console=self.port_console,
            db_admin=self.port_db_admin,
        )

    @property
    def servers_dir(self) -> Path:
        if self.nginx_servers_dir is not None:
            return self.nginx_servers_dir
        return self.homebrew_prefix / "etc" / "nginx" / "servers"


def load_settings() -> AppSettings:
    """Settings con el .env del usuario resuelto en tiempo de ejecución."""

    return AppSettings(_env_file=(".env", str(get_user_env_file())))
