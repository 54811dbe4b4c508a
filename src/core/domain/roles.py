"""Backend roles served behind the local gateway.

This module centralizes the logical services a route can point at. Keeping
it in the domain layer lets the settings, the profiles and the renderers
share a single vocabulary without importing each other.
"""

from __future__ import annotations

from enum import Enum


class BackendRole(str, Enum):
    """Logical backend a gateway route forwards to."""

    GRAPHQL = "graphql"
    AUTH = "auth"
    STORAGE = "storage"
    GATEWAY = "gateway"
    CONSOLE = "console"
    DB_ADMIN = "db_admin"

    def label(self) -> str:
        """Human readable label for tables and logging."""

        return {
            BackendRole.GRAPHQL: "GraphQL gateway",
            BackendRole.AUTH: "Auth service",
            BackendRole.STORAGE: "Object storage",
            BackendRole.GATEWAY: "API gateway",
            BackendRole.CONSOLE: "Admin console",
            BackendRole.DB_ADMIN: "DB admin UI",
        }[self]
