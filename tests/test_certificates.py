"""Tests for adapters.certificates: mkcert invocation and postconditions."""

import pytest

from adapters.certificates import (
    certificate_names,
    provision_certificate,
    read_certificate_names,
    verify_certificate,
)
from conftest import write_test_certificate
from core.domain.models import CertificateArtifact
from core.errors import CertificateError


def test_requested_names():
    assert certificate_names("example.com") == ["example.com", "*.example.com", "localhost", "127.0.0.1"]


class TestProvisionCertificate:
    def test_issues_under_user_home(self, settings, session, identity, runner):
        artifact = provision_certificate(
            settings=settings, session=session, identity=identity, runner=runner, mkcert="/fake/bin/mkcert"
        )
        assert artifact.directory == identity.home / "certs" / "acme"
        assert artifact.cert_path.stat().st_size > 0
        assert artifact.key_path.stat().st_size > 0
        assert read_certificate_names(artifact.cert_path) >= {
            "example.com",
            "*.example.com",
            "localhost",
            "127.0.0.1",
        }

    def test_runs_as_invoking_user(self, settings, session, identity, runner):
        provision_certificate(
            settings=settings, session=session, identity=identity, runner=runner, mkcert="/fake/bin/mkcert"
        )
        calls = [c for c in runner.calls if c.args[0] == "/fake/bin/mkcert"]
        assert [c.args[1] for c in calls] == ["-install", "-cert-file"]
        assert all(c.as_user == "dev" for c in calls)
        assert calls[1].args[-4:] == ("example.com", "*.example.com", "localhost", "127.0.0.1")

    def test_missing_output_is_fatal(self, settings, session, identity, runner):
        runner.issue_certificates = False
        with pytest.raises(CertificateError, match="missing or empty"):
            provision_certificate(
                settings=settings, session=session, identity=identity, runner=runner, mkcert="/fake/bin/mkcert"
            )

    def test_mkcert_failure_is_fatal(self, settings, session, identity, runner):
        runner.queue("mkcert", returncode=1, output="ERROR: failed to install the local CA")
        with pytest.raises(CertificateError) as excinfo:
            provision_certificate(
                settings=settings, session=session, identity=identity, runner=runner, mkcert="/fake/bin/mkcert"
            )
        assert excinfo.value.exit_code == 4


class TestVerifyCertificate:
    def _artifact(self, tmp_path, names):
        return CertificateArtifact(
            directory=tmp_path,
            cert_path=tmp_path / "cert.pem",
            key_path=tmp_path / "key.pem",
            names=names,
        )

    def test_missing_san_is_fatal(self, tmp_path):
        write_test_certificate(tmp_path / "cert.pem", tmp_path / "key.pem", ["example.com", "localhost"])
        artifact = self._artifact(tmp_path, certificate_names("example.com"))
        with pytest.raises(CertificateError, match=r"\*\.example\.com"):
            verify_certificate(artifact)

    def test_empty_key_is_fatal(self, tmp_path):
        write_test_certificate(tmp_path / "cert.pem", tmp_path / "key.pem", certificate_names("example.com"))
        (tmp_path / "key.pem").write_bytes(b"")
        with pytest.raises(CertificateError):
            verify_certificate(self._artifact(tmp_path, certificate_names("example.com")))

    def test_garbage_pem_is_fatal(self, tmp_path):
        (tmp_path / "cert.pem").write_text("not a certificate")
        (tmp_path / "key.pem").write_text("not a key")
        with pytest.raises(CertificateError, match="not a valid PEM"):
            verify_certificate(self._artifact(tmp_path, ["example.com"]))
