"""Shared fixtures: isolated settings, a recording command runner and test certificates."""

import datetime
import ipaddress
import sys
from dataclasses import dataclass
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from adapters.dependencies import ToolPaths
from core.config import AppSettings
from core.domain.models import IdentityContext, SessionInput
from core.errors import CommandError
from core.interfaces.runner import CommandResult


def write_test_certificate(cert_path: Path, key_path: Path, names):
    """Self-signed PEM pair whose SANs are exactly `names`."""
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, names[0])])
    alt_names = []
    for name in names:
        try:
            alt_names.append(x509.IPAddress(ipaddress.ip_address(name)))
        except ValueError:
            alt_names.append(x509.DNSName(name))
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.SubjectAlternativeName(alt_names), critical=False)
        .sign(key, hashes.SHA256())
    )
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )


@dataclass
class Call:
    args: tuple
    as_user: str | None
    interactive: bool


class FakeRunner:
    """CommandRunner that records calls and fakes mkcert/nginx/brew."""

    def __init__(self):
        self.calls = []
        self._queued = {}
        self.issue_certificates = True

    def queue(self, tool, returncode=0, output=""):
        self._queued.setdefault(tool, []).append((returncode, output))

    def commands(self, tool):
        return [c.args for c in self.calls if Path(c.args[0]).name == tool]

    def run(self, args, *, check=True, as_user=None, env=None, interactive=False):
        args = tuple(args)
        self.calls.append(Call(args=args, as_user=as_user, interactive=interactive))
        tool = Path(args[0]).name

        returncode, output = 0, ""
        if self._queued.get(tool):
            returncode, output = self._queued[tool].pop(0)
        elif tool == "mkcert" and "-cert-file" in args and self.issue_certificates:
            cert_path = Path(args[args.index("-cert-file") + 1])
            key_path = Path(args[args.index("-key-file") + 1])
            names = list(args[args.index("-key-file") + 2:])
            write_test_certificate(cert_path, key_path, names)
        elif tool == "nginx":
            output = "nginx: configuration file test is successful\n"

        result = CommandResult(args=args, returncode=returncode, output=output)
        if check and not result.ok:
            raise CommandError(args, returncode, output)
        return result


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def settings(tmp_path):
    hosts = tmp_path / "etc" / "hosts"
    hosts.parent.mkdir()
    hosts.write_text("127.0.0.1\tlocalhost\n255.255.255.255\tbroadcasthost\n::1             localhost\n")
    return AppSettings(
        _env_file=None,
        hosts_file=hosts,
        nginx_servers_dir=tmp_path / "servers",
        homebrew_prefix=tmp_path / "homebrew",
        elevate=False,
    )


@pytest.fixture
def identity(tmp_path):
    home = tmp_path / "home" / "dev"
    home.mkdir(parents=True)
    return IdentityContext(effective_uid=1000, user="dev", uid=1000, gid=1000, home=home)


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def session(project_dir):
    return SessionInput(client_slug="acme", domain="example.com", project_dir=project_dir)


@pytest.fixture
def tools():
    return ToolPaths({"brew": "/fake/bin/brew", "nginx": "/fake/bin/nginx", "mkcert": "/fake/bin/mkcert"})
