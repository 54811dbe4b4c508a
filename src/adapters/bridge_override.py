"""Override de docker compose para alcanzar el host por los mismos nombres.

Por qué YAML serializado (y no plantilla):
- El fichero es pura estructura; `yaml.safe_dump` garantiza que el resultado
  está bien formado aunque el dominio contenga caracteres inesperados.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from core.domain.models import BridgeProfile


def build_bridge_document(profile: BridgeProfile, domain: str) -> dict[str, Any]:
    services: dict[str, Any] = {}
    for service in profile.services:
        services[service.name] = {
            "extra_hosts": [f"{label}.{domain}:{profile.gateway_address}" for label in service.subdomains],
        }

    document: dict[str, Any] = {}
    if profile.compose_version:
        document["version"] = profile.compose_version
    document["services"] = services
    return document


def render_bridge_override(profile: BridgeProfile, domain: str) -> str:
    return yaml.safe_dump(
        build_bridge_document(profile, domain),
        sort_keys=False,
        default_flow_style=False,
    )


def write_bridge_override(*, project_dir: Path, filename: str, text: str) -> Path:
    """Sobrescribe el override en la raíz del proyecto."""

    path = project_dir / filename
    path.write_text(text, encoding="utf-8")
    return path
