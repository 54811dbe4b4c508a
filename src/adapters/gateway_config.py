"""Render del virtual host de nginx (un fichero por cliente).

Por qué está en adapters:
- La sintaxis de nginx y Jinja2 son detalles de infraestructura.
- El Core solo conoce el `GatewayProfile` declarativo y el `PortMap`.

Escapado: todo valor interpolado pasa por el filtro `nginx_value`, que
rechaza caracteres capaces de romper o inyectar directivas.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from core.domain.models import CertificateArtifact, GatewayProfile, PortMap
from core.errors import InputError


_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
_TEMPLATE_NAME = "nginx_server.conf.j2"

_FORBIDDEN = frozenset('"\\$')
_NEEDS_QUOTES = frozenset(";{}#'")


def nginx_value(value: object) -> str:
    """Valor seguro para una directiva nginx (se cita si hace falta)."""

    text = str(value)
    if not text:
        raise InputError("Empty value in nginx config")
    for ch in text:
        if ch in _FORBIDDEN or ord(ch) < 32 or ord(ch) == 127:
            raise InputError(f"Unsafe character {ch!r} in nginx config value {text!r}")
    if any(ch.isspace() or ch in _NEEDS_QUOTES for ch in text):
        return f'"{text}"'
    return text


def _get_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["nginx_value"] = nginx_value
    return env


def _build_hosts(profile: GatewayProfile, ports: PortMap, domain: str) -> list[dict[str, Any]]:
    hosts: list[dict[str, Any]] = []
    for vhost in profile.virtual_hosts():
        locations = []
        for route in vhost.routes:
            port = ports.port_for(route.role)
            locations.append(
                {
                    "path": route.path_prefix,
                    "proxy_pass": f"http://localhost:{port}{route.upstream_path or ''}",
                    "websocket": route.websocket,
                    "large_buffers": route.large_buffers,
                    "client_ip_headers": route.client_ip_headers,
                }
            )
        hosts.append({"server_name": f"{vhost.subdomain}.{domain}", "locations": locations})
    return hosts


def render_gateway_config(
    *,
    client_slug: str,
    domain: str,
    profile: GatewayProfile,
    ports: PortMap,
    certificate: CertificateArtifact,
) -> str:
    """Renderiza el fichero completo; determinista para las mismas entradas."""

    template = _get_env().get_template(_TEMPLATE_NAME)
    return template.render(
        client_slug=client_slug,
        listen_port=profile.listen_port,
        cert_path=str(certificate.cert_path),
        key_path=str(certificate.key_path),
        hosts=_build_hosts(profile, ports, domain),
    )


def gateway_config_path(servers_dir: Path, client_slug: str) -> Path:
    return servers_dir / f"{client_slug}.conf"


def write_gateway_config(*, servers_dir: Path, client_slug: str, text: str) -> Path:
    """Sobrescribe `<servers_dir>/<slug>.conf` (sin merge con ediciones manuales)."""

    servers_dir.mkdir(parents=True, exist_ok=True)
    path = gateway_config_path(servers_dir, client_slug)
    path.write_text(text, encoding="utf-8")
    return path
