import logging
import logging.handlers

import pytest
from pydantic import ValidationError
from rich.logging import RichHandler

from sshmount.config import Settings
from sshmount.logging_config import get_app_logger, setup_logging
from sshmount.utils.host_config import get_hostname, get_hostname_settings_file


def test_defaults(settings):
    assert settings.sshfs_command == "sshfs"
    assert settings.ssh_keygen_command == "ssh-keygen"
    assert settings.suppress_repeated_credential_prompts is False
    assert settings.sshfs_options == "reconnect,ServerAliveInterval=15,ServerAliveCountMax=3,max_conns=16"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("SSHFS_COMMAND", "/opt/homebrew/bin/sshfs")
    monkeypatch.setenv("KEEPALIVE_INTERVAL_SECONDS", "30")

    settings = Settings(hosts_file_path=str(tmp_path / "hosts.json"))

    assert settings.sshfs_command == "/opt/homebrew/bin/sshfs"
    assert settings.sshfs_options.startswith("reconnect,ServerAliveInterval=30,")


def test_invalid_keepalive_rejected():
    with pytest.raises(ValidationError):
        Settings(max_connections=0)


def test_hosts_file_expands_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))

    settings = Settings(hosts_file_path="~/.ssh/mounter/hosts.json")

    assert settings.hosts_file == tmp_path / ".ssh" / "mounter" / "hosts.json"


def test_hostname_settings_file_falls_back(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    assert get_hostname_settings_file() == "settings.env"

    (tmp_path / f"{get_hostname()}-settings.env").write_text("LOG_LEVEL=DEBUG\n")
    assert get_hostname_settings_file() == f"{get_hostname()}-settings.env"


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging(settings, restore_root_logger):
    setup_logging(settings)

    root = logging.getLogger()
    assert any(isinstance(h, RichHandler) for h in root.handlers)
    assert any(isinstance(h, logging.handlers.TimedRotatingFileHandler) for h in root.handlers)
    assert settings.log_directory.is_dir()

    get_app_logger().info("hello from the mounter")
    for handler in root.handlers:
        handler.flush()
    assert "hello from the mounter" in (settings.log_directory / "ssh_mounter.log").read_text()
