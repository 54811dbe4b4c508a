"""Tests for core.domain.models: input validation and route grouping."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from core.domain.models import (
    GatewayProfile,
    IdentityContext,
    PortMap,
    RouteSpec,
    SessionInput,
    is_valid_domain,
)
from core.domain.roles import BackendRole


class TestSessionInput:
    def test_normalizes_domain(self, tmp_path):
        session = SessionInput(client_slug=" acme ", domain="Example.COM.", project_dir=tmp_path)
        assert session.client_slug == "acme"
        assert session.domain == "example.com"

    @pytest.mark.parametrize("slug", ["../etc", "a/b", "-acme", "acme corp", ""])
    def test_rejects_unsafe_slugs(self, slug, tmp_path):
        with pytest.raises(ValidationError):
            SessionInput(client_slug=slug, domain="example.com", project_dir=tmp_path)

    @pytest.mark.parametrize("domain", ["localhost", "exa mple.com", "-bad.com", "a..com", "ex_ample.com", "x;y.com"])
    def test_rejects_invalid_domains(self, domain, tmp_path):
        with pytest.raises(ValidationError):
            SessionInput(client_slug="acme", domain=domain, project_dir=tmp_path)

    def test_is_frozen(self, tmp_path):
        session = SessionInput(client_slug="acme", domain="example.com", project_dir=tmp_path)
        with pytest.raises(ValidationError):
            session.domain = "other.com"


@pytest.mark.parametrize(
    "value, expected",
    [("example.com", True), ("db-admin.acme.co.uk", True), ("com", False), ("a" * 64 + ".com", False)],
)
def test_is_valid_domain(value, expected):
    assert is_valid_domain(value) is expected


def test_port_map_lookup():
    ports = PortMap(graphql=1, auth=2, storage=3, gateway=4, console=5, db_admin=6)
    assert [ports.port_for(role) for role in BackendRole] == [1, 2, 3, 4, 5, 6]


def test_port_map_rejects_out_of_range():
    with pytest.raises(ValidationError):
        PortMap(auth=70000)


def test_route_paths_must_be_absolute():
    with pytest.raises(ValidationError):
        RouteSpec(subdomain="api", path_prefix="graphql", role=BackendRole.GRAPHQL)


def test_virtual_hosts_group_in_order():
    profile = GatewayProfile(
        routes=[
            RouteSpec(subdomain="api", path_prefix="/graphql", role=BackendRole.GRAPHQL),
            RouteSpec(subdomain="auth", role=BackendRole.AUTH),
            RouteSpec(subdomain="api", path_prefix="/", role=BackendRole.GATEWAY),
        ]
    )
    hosts = profile.virtual_hosts()
    assert [h.subdomain for h in hosts] == ["api", "auth"]
    assert [r.path_prefix for r in hosts[0].routes] == ["/graphql", "/"]


def test_identity_elevated_flag():
    root = IdentityContext(effective_uid=0, user="dev", uid=501, gid=20, home=Path("/Users/dev"))
    plain = IdentityContext(effective_uid=501, user="dev", uid=501, gid=20, home=Path("/Users/dev"))
    assert root.elevated and not plain.elevated
