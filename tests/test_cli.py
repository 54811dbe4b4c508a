"""Tests for cli.main: prompts, flags, exit codes."""

import pytest
from typer.testing import CliRunner

import cli.main as cli_main
from cli.main import app

cli_runner = CliRunner()


@pytest.fixture
def wired(monkeypatch, tmp_path, settings, identity, runner, tools):
    """CLI with a fake runner, no real tools and settings pointing at tmp_path."""

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DEVSTACK_HOSTS_FILE", str(settings.hosts_file))
    monkeypatch.setenv("DEVSTACK_NGINX_SERVERS_DIR", str(settings.servers_dir))
    monkeypatch.setenv("DEVSTACK_ELEVATE", "false")
    monkeypatch.setattr(cli_main, "build_runner", lambda: runner)
    monkeypatch.setattr(cli_main, "resolve_dependencies", lambda *args, **kwargs: tools)
    monkeypatch.setattr(cli_main, "resolve_identity", lambda *args, **kwargs: identity)
    return runner


def test_flags_run_without_prompts(wired, settings, project_dir):
    result = cli_runner.invoke(
        app,
        ["setup", "--client", "acme", "--domain", "example.com", "--project-dir", str(project_dir)],
    )
    assert result.exit_code == 0, result.output
    assert "SETUP SUCCESSFUL" in result.output
    assert (settings.servers_dir / "acme.conf").is_file()
    assert (project_dir / "docker-compose.override.yml").is_file()


def test_interactive_prompts_use_current_folder(wired, monkeypatch, settings, project_dir):
    monkeypatch.chdir(project_dir)
    result = cli_runner.invoke(app, ["setup"], input="acme\nexample.com\ny\n")
    assert result.exit_code == 0, result.output
    assert "Is this the project root folder?" in result.output
    assert (project_dir / "docker-compose.override.yml").is_file()


def test_interactive_explicit_path(wired, project_dir):
    result = cli_runner.invoke(app, ["setup"], input=f"acme\nexample.com\nn\n{project_dir}\n")
    assert result.exit_code == 0, result.output
    assert (project_dir / "docker-compose.override.yml").is_file()


def test_missing_project_dir_aborts(wired, settings, tmp_path):
    missing = tmp_path / "nope"
    result = cli_runner.invoke(
        app,
        ["setup", "--client", "acme", "--domain", "example.com", "--project-dir", str(missing)],
    )
    assert result.exit_code == 2
    assert "does not exist" in " ".join(result.output.split())
    assert not missing.exists()
    assert not settings.servers_dir.exists()
    assert "example.com" not in settings.hosts_file.read_text()
    assert wired.calls == []


def test_invalid_slug_aborts(wired, project_dir):
    result = cli_runner.invoke(
        app,
        ["setup", "--client", "../evil", "--domain", "example.com", "--project-dir", str(project_dir)],
    )
    assert result.exit_code == 2
    assert "client_slug" in result.output


def test_invalid_gateway_config_exits_non_zero(wired, project_dir):
    wired.queue("nginx")
    wired.queue("nginx", returncode=1, output="nginx: [emerg] invalid in /etc/nginx/nginx.conf:3")
    result = cli_runner.invoke(
        app,
        ["setup", "--client", "acme", "--domain", "example.com", "--project-dir", str(project_dir)],
    )
    assert result.exit_code == 5
    assert "Gateway config invalid" in result.output
    assert wired.commands("brew") == []


def test_elevation_exits_with_child_code(monkeypatch, tmp_path, runner, tools):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DEVSTACK_ELEVATE", "true")
    monkeypatch.setattr(cli_main, "is_elevated", lambda: False)
    monkeypatch.setattr(cli_main, "build_runner", lambda: runner)
    installs = []
    monkeypatch.setattr(cli_main, "resolve_dependencies", lambda *a, **kw: installs.append(kw["install"]) or tools)
    monkeypatch.setattr(cli_main, "elevate", lambda argv, runner: 3)

    result = cli_runner.invoke(app, ["setup", "--client", "acme"])
    assert result.exit_code == 3
    assert installs == [True]


def test_doctor_reports_ports(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DEVSTACK_HOMEBREW_PREFIX", str(tmp_path))
    monkeypatch.setenv("DEVSTACK_PORT_DB_ADMIN", "5051")
    result = cli_runner.invoke(app, ["doctor", "run"])
    assert result.exit_code == 0, result.output
    assert "Dev Stack Doctor" in result.output
    assert "db_admin=5051" in " ".join(result.output.split())


def test_doctor_setup_ports_saves_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    saved = {}
    monkeypatch.setattr("cli.doctor.write_user_env_vars", lambda values: saved.update(values) or tmp_path / ".env")
    result = cli_runner.invoke(app, ["doctor", "setup-ports"], input="\n\n\n8001\n\n\n")
    assert result.exit_code == 0, result.output
    assert saved["DEVSTACK_PORT_GATEWAY"] == "8001"
    assert saved["DEVSTACK_PORT_GRAPHQL"] == "8081"
    assert len(saved) == 6
