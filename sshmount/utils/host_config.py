"""
Host-specific configuration file selection.

Lets one checkout serve several machines: a `{hostname}-settings.env` file
takes precedence over the shared `settings.env`.
"""

import logging
import socket
from pathlib import Path


def get_hostname() -> str:
    """Get the current hostname (without domain)."""
    return socket.gethostname().split('.')[0]


def get_hostname_settings_file() -> str:
    """
    Get the settings file for this host.

    Returns:
        str: `{hostname}-settings.env` if it exists, otherwise `settings.env`
    """
    host_settings = Path(f"{get_hostname()}-settings.env")
    if host_settings.exists():
        logging.debug(f"Using host-specific configuration: {host_settings}")
        return str(host_settings)
    return "settings.env"


def list_all_settings_files() -> list[str]:
    """List all available settings files (base + host-specific)."""
    settings_files = []

    if Path("settings.env").exists():
        settings_files.append("settings.env")

    for file_path in Path(".").glob("*-settings.env"):
        settings_files.append(str(file_path))

    return settings_files
