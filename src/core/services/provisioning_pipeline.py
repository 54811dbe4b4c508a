"""Provisioning workflow for one client.

This module holds the ordered sequence of steps that runs once the process
is elevated and the session input is known: certificate, hosts aliases,
gateway config, container bridge, ownership and reload. The CLI only
collects input and renders progress; keeping the flow here makes it
reusable from tests with a fake command runner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from adapters.bridge_override import render_bridge_override, write_bridge_override
from adapters.certificates import provision_certificate
from adapters.dependencies import ToolPaths
from adapters.gateway_config import gateway_config_path, render_gateway_config, write_gateway_config
from adapters.gateway_service import is_stale_failure, purge_configs, restart_gateway, validate_config
from adapters.hosts_file import register_host_aliases
from adapters.ownership import chown_path, chown_tree
from core.config import AppSettings
from core.domain.models import CertificateArtifact, IdentityContext, SessionInput, ValidationResult
from core.interfaces.runner import CommandRunner
from core.resources_loader import load_bridge_profile, load_gateway_profile

logger = logging.getLogger(__name__)

TOTAL_STEPS = 6


@dataclass
class ProvisionRequest:
    """Inputs of a pipeline invocation."""

    session: SessionInput
    identity: IdentityContext
    # None -> ask through `PipelineHooks.confirm_purge`.
    purge_stale: bool | None = None


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (progress, warnings, prompts)."""

    step: Callable[[int, int, str], None] | None = None
    warning: Callable[[str], None] | None = None
    confirm_purge: Callable[[Path, ValidationResult], bool] | None = None


@dataclass
class ProvisionResult:
    """Output of a pipeline invocation."""

    certificate: CertificateArtifact
    hosts_line: str
    gateway_config: Path
    bridge_override: Path
    validation: ValidationResult
    restarted: bool = False
    purged: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _should_purge(request: ProvisionRequest, hooks: PipelineHooks, servers_dir: Path, validation: ValidationResult) -> bool:
    if request.purge_stale is not None:
        return request.purge_stale
    if hooks.confirm_purge is None:
        return False
    return hooks.confirm_purge(servers_dir, validation)


def provision(
    *,
    settings: AppSettings,
    request: ProvisionRequest,
    runner: CommandRunner,
    tools: ToolPaths,
    hooks: PipelineHooks | None = None,
) -> ProvisionResult:
    """Run every provisioning step in order; any `ProvisioningError` aborts."""

    hooks = hooks or PipelineHooks()
    session = request.session
    identity = request.identity
    warnings: list[str] = []

    def step(index: int, label: str) -> None:
        logger.info("step %d/%d: %s", index, TOTAL_STEPS, label)
        if hooks.step:
            hooks.step(index, TOTAL_STEPS, label)

    def warn(message: str) -> None:
        warnings.append(message)
        logger.debug("warning: %s", message)
        if hooks.warning:
            hooks.warning(message)

    step(1, f"Automating SSL trust for {session.domain}")
    certificate = provision_certificate(
        settings=settings,
        session=session,
        identity=identity,
        runner=runner,
        mkcert=tools["mkcert"],
    )

    step(2, f"Updating {settings.hosts_file}")
    line = register_host_aliases(
        settings.hosts_file,
        session.domain,
        settings.host_labels,
        settings.loopback_address,
    )

    step(3, "Configuring gateway")
    servers_dir = settings.servers_dir
    own_config = gateway_config_path(servers_dir, session.client_slug)
    purged: list[Path] = []
    preflight = validate_config(tools["nginx"], runner, servers_dir)
    if is_stale_failure(preflight, servers_dir, own_config):
        if _should_purge(request, hooks, servers_dir, preflight):
            purged = purge_configs(servers_dir)
        else:
            warn(f"Existing gateway config is broken: {preflight.offending_file}")

    text = render_gateway_config(
        client_slug=session.client_slug,
        domain=session.domain,
        profile=load_gateway_profile(settings),
        ports=settings.ports,
        certificate=certificate,
    )
    gateway_config = write_gateway_config(servers_dir=servers_dir, client_slug=session.client_slug, text=text)

    step(4, "Generating container override")
    bridge_override = write_bridge_override(
        project_dir=session.project_dir,
        filename=settings.override_filename,
        text=render_bridge_override(load_bridge_profile(settings), session.domain),
    )

    step(5, f"Restoring ownership to {identity.user}")
    if identity.elevated:
        chown_tree(certificate.directory, identity.uid, identity.gid)
        chown_path(gateway_config, identity.uid, identity.gid)
        chown_path(bridge_override, identity.uid, identity.gid)

    step(6, "Reloading gateway")
    validation = validate_config(tools["nginx"], runner, servers_dir)
    restarted = False
    if validation.ok:
        restart_gateway(tools[settings.package_manager], settings.gateway_service, runner)
        restarted = True
    else:
        warn("Gateway config failed validation; service not restarted")

    return ProvisionResult(
        certificate=certificate,
        hosts_line=line,
        gateway_config=gateway_config,
        bridge_override=bridge_override,
        validation=validation,
        restarted=restarted,
        purged=purged,
        warnings=warnings,
    )
