"""End-to-end tests for the hook entry point."""

import json

import pytest

from netauth_client import ClientInitError, NetAuthClient
from sftpgo_hook import cli

from conftest import ALICE_KEY

DENIED = {"username": "", "permissions": None, "filters": {}}


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("core:\n  server: netauth.example.com\nsftpgo:\n  homedir: /from/file\n")
    return path


@pytest.fixture
def env(monkeypatch, hook_env):
    """Install the hook environment."""
    for key, value in hook_env.items():
        monkeypatch.setenv(key, value)
    for key in ("NETAUTH_SERVER", "NETAUTH_PORT"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def static_client(monkeypatch, service):
    """Replace the NetAuth client with the in-memory service."""
    created = []

    def fake_create_client(config):
        created.append(config)
        return service

    monkeypatch.setattr(cli, "create_client", fake_create_client)
    return created


def run_hook(capsys, *argv):
    code = cli.main(list(argv))
    out = capsys.readouterr().out
    return code, json.loads(out)


class TestMain:
    """Full hook runs"""

    def test_public_key_login(self, env, static_client, config_file, capsys):
        env.setenv("SFTPGO_AUTHD_PUBLIC_KEY", ALICE_KEY)

        code, document = run_hook(capsys, "--config", str(config_file))

        assert code == 0
        assert document["status"] == 1
        assert document["username"] == "alice"
        assert document["uid"] == 1000
        assert document["home_dir"] == "/srv/sftp/alice"
        assert document["permissions"] == {"/": ["*"]}
        assert static_client[0].server == "netauth.example.com"

    def test_password_login(self, env, static_client, config_file, capsys):
        env.setenv("SFTPGO_AUTHD_USERNAME", "bob")
        env.setenv("SFTPGO_AUTHD_PASSWORD", "hunter2")

        code, document = run_hook(capsys, "--config", str(config_file))

        assert code == 0
        assert document["status"] == 1
        assert document["uid"] == 1001

    def test_denial_exits_zero(self, env, static_client, config_file, capsys):
        env.setenv("SFTPGO_AUTHD_PASSWORD", "wrong")

        code, document = run_hook(capsys, "--config", str(config_file))

        assert code == 0
        assert document == DENIED

    def test_required_group_from_env(self, env, static_client, config_file, capsys):
        env.setenv("SFTPGO_AUTHD_USERNAME", "bob")
        env.setenv("SFTPGO_AUTHD_PASSWORD", "hunter2")
        env.setenv("SFTPGO_NETAUTH_REQUIREGROUP", "ops")

        code, document = run_hook(capsys, "--config", str(config_file))

        assert code == 0
        assert document == DENIED

    def test_home_base_from_file_when_env_unset(self, env, static_client, config_file, capsys):
        env.delenv("SFTPGO_NETAUTH_HOMEDIR")
        env.setenv("SFTPGO_AUTHD_PASSWORD", "correct horse")

        code, document = run_hook(capsys, "--config", str(config_file))

        assert document["home_dir"] == "/from/file/alice"

    def test_env_file(self, env, static_client, config_file, tmp_path, capsys):
        env.delenv("SFTPGO_AUTHD_USERNAME")
        env.delenv("SFTPGO_AUTHD_PASSWORD")
        env_file = tmp_path / "hook.env"
        env_file.write_text("SFTPGO_AUTHD_USERNAME=bob\nSFTPGO_AUTHD_PASSWORD=hunter2\n")

        code, document = run_hook(
            capsys, "--config", str(config_file), "--env-file", str(env_file)
        )

        assert document["username"] == "bob"
        assert document["status"] == 1


class TestSetupFailures:
    """Configuration and client failures exit 1 with a deny document"""

    def test_missing_config(self, env, tmp_path, capsys):
        code, document = run_hook(capsys, "--config", str(tmp_path / "missing.yaml"))

        assert code == 1
        assert document == DENIED

    def test_client_init_failure(self, env, tmp_path, capsys):
        path = tmp_path / "config.yaml"
        path.write_text("sftpgo:\n  homedir: /srv\n")

        code, document = run_hook(capsys, "--config", str(path), "--verbose")

        assert code == 1
        assert document == DENIED

    def test_server_with_port_suffix(self, env, tmp_path, capsys):
        """A host:port server value is rejected before any call is made"""
        path = tmp_path / "config.yaml"
        path.write_text("core:\n  server: 'netauth.example.com:1729'\n")

        code, document = run_hook(capsys, "--config", str(path))

        assert code == 1
        assert document == DENIED

    def test_stdout_is_only_json(self, env, tmp_path, capsys):
        code = cli.main(["--config", str(tmp_path / "missing.yaml"), "--verbose"])

        out = capsys.readouterr().out
        assert code == 1
        assert out.count("\n") == 1
        assert json.loads(out) == DENIED


class TestCreateClient:
    """Client construction from config"""

    def test_builds_netauth_client(self):
        config = cli.HookConfig(server="netauth.example.com", port=1730, client_id="sftp01")

        client = cli.create_client(config)

        assert isinstance(client, NetAuthClient)
        assert client.base_url == "https://netauth.example.com:1730"
        assert client.info.service == "sftpgo"
        assert client.info.id == "sftp01"

    def test_no_server(self):
        with pytest.raises(ClientInitError):
            cli.create_client(cli.HookConfig())


class TestParseArgs:
    def test_defaults(self):
        args = cli.parse_args([])

        assert args.config is None
        assert args.verbose is False
        assert args.log_level == "info"
        assert args.env_file is None
