"""Command lines for sshfs and ssh-keygen."""

from typing import List

from sshmount.config import Settings
from sshmount.models import HostProfile

PASSWORD_AUTH_OPTIONS = "password_stdin,PubkeyAuthentication=no"
PUBLIC_KEY_AUTH_OPTIONS = "PasswordAuthentication=no"


def build_mount_options(profile: HostProfile, settings: Settings) -> str:
    """
    The `-o` option string for sshfs.

    Always carries the reconnect/keepalive policy; password mode reads the
    password from stdin and disables public keys, public-key mode disables
    password authentication.
    """
    auth = PUBLIC_KEY_AUTH_OPTIONS if profile.use_public_key else PASSWORD_AUTH_OPTIONS
    return f"{settings.sshfs_options},{auth}"


def build_mount_command(profile: HostProfile, settings: Settings) -> List[str]:
    """`sshfs user@host:remotePath localPath -p port -o options`"""
    return [
        settings.sshfs_command,
        profile.remote_spec,
        profile.local_path,
        "-p",
        str(profile.port),
        "-o",
        build_mount_options(profile, settings),
    ]


def build_host_key_removal_command(host: str, settings: Settings) -> List[str]:
    return [settings.ssh_keygen_command, "-R", host]
