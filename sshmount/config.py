from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.host_config import get_hostname_settings_file


class Settings(BaseSettings):
    # Mount helper
    sshfs_command: str = "sshfs"
    ssh_keygen_command: str = "ssh-keygen"

    # Reconnect/keepalive policy passed to sshfs on every mount
    keepalive_interval_seconds: int = Field(default=15, ge=1)
    keepalive_max_missed: int = Field(default=3, ge=1)
    max_connections: int = Field(default=16, ge=1)

    # Prompt handling
    suppress_repeated_credential_prompts: bool = False  # Only surface the first password prompt per run

    # Host profiles
    hosts_file_path: str = "~/.ssh/mounter/hosts.json"

    # Logging konfiguration
    log_level: str = "INFO"
    log_file_path: str = "logs/ssh_mounter.log"
    log_retention_days: int = 30

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 8787

    model_config = SettingsConfigDict(env_file=get_hostname_settings_file())

    @property
    def log_directory(self) -> Path:
        """Returnerer log directory som Path objekt"""
        return Path(self.log_file_path).parent

    @property
    def hosts_file(self) -> Path:
        return Path(self.hosts_file_path).expanduser()

    @property
    def sshfs_options(self) -> str:
        """Reconnect/keepalive option string shared by every mount."""
        return (
            f"reconnect,ServerAliveInterval={self.keepalive_interval_seconds},"
            f"ServerAliveCountMax={self.keepalive_max_missed},"
            f"max_conns={self.max_connections}"
        )

    @property
    def config_file_info(self) -> dict:
        """Return information about which configuration file is being used."""
        from .utils.host_config import get_hostname, list_all_settings_files

        return {
            "hostname": get_hostname(),
            "active_config_file": get_hostname_settings_file(),
            "all_available_configs": list_all_settings_files()
        }
