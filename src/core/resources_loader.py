"""Cargador de perfiles (rutas del gateway y servicios del bridge).

Este módulo vive en `core/` porque:
- centraliza el *qué* se publica (subdominios, rutas, servicios) sin acoplarse
  a la sintaxis de nginx ni de compose
- permite sustituir el perfil por defecto con un JSON propio por cliente.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from core.config import AppSettings
from core.domain.models import BridgeProfile, BridgeService, GatewayProfile, RouteSpec
from core.domain.roles import BackendRole
from core.errors import InputError


def default_gateway_profile(settings: AppSettings) -> GatewayProfile:
    """Perfil del stack por defecto.

    - api: /graphql (websocket), /auth (buffers), /files (opcional), / (gateway)
    - auth / console / db-admin como hosts propios (opcional)
    """

    routes = [
        RouteSpec(
            subdomain="api",
            path_prefix="/graphql",
            role=BackendRole.GRAPHQL,
            upstream_path="/v1/graphql",
            websocket=True,
        ),
        RouteSpec(
            subdomain="api",
            path_prefix="/auth",
            role=BackendRole.AUTH,
            upstream_path="/auth",
            large_buffers=True,
        ),
    ]
    if settings.include_storage:
        routes.append(RouteSpec(subdomain="api", path_prefix="/files", role=BackendRole.STORAGE))
    routes.append(
        RouteSpec(subdomain="api", path_prefix="/", role=BackendRole.GATEWAY, client_ip_headers=True)
    )

    if settings.include_subdomain_hosts:
        routes.extend(
            [
                RouteSpec(subdomain="auth", role=BackendRole.AUTH, large_buffers=True),
                RouteSpec(subdomain="console", role=BackendRole.CONSOLE),
                RouteSpec(subdomain="db-admin", role=BackendRole.DB_ADMIN),
            ]
        )

    return GatewayProfile(listen_port=settings.listen_port, routes=routes)


def default_bridge_profile(settings: AppSettings) -> BridgeProfile:
    return BridgeProfile(
        compose_version=settings.compose_version or None,
        gateway_address=settings.bridge_gateway_address,
        services=[
            BridgeService(name="hasura", subdomains=["api", "auth"]),
            BridgeService(name="auth-webhook", subdomains=["auth"]),
            BridgeService(name="kong", subdomains=["api", "auth"]),
        ],
    )


def _load_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InputError(f"Could not read profile {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InputError(f"Profile {path} must contain a JSON object")
    return data


def load_gateway_profile(settings: AppSettings) -> GatewayProfile:
    """Perfil JSON propio si `gateway_profile_path` está definido; si no, el de por defecto."""

    if settings.gateway_profile_path is None:
        return default_gateway_profile(settings)
    try:
        return GatewayProfile.model_validate(_load_json(settings.gateway_profile_path))
    except ValidationError as exc:
        raise InputError(f"Invalid gateway profile {settings.gateway_profile_path}: {exc}") from exc


def load_bridge_profile(settings: AppSettings) -> BridgeProfile:
    if settings.bridge_profile_path is None:
        return default_bridge_profile(settings)
    try:
        return BridgeProfile.model_validate(_load_json(settings.bridge_profile_path))
    except ValidationError as exc:
        raise InputError(f"Invalid bridge profile {settings.bridge_profile_path}: {exc}") from exc
