"""Platform Factory - platform detection and unmount command selection."""

import platform
from typing import List


class UnsupportedPlatformError(Exception):
    """Raised when platform is not supported for sshfs mounting."""
    pass


class PlatformFactory:
    """Selects platform-specific commands. The platform is read once, at construction."""

    def __init__(self, system: str = None):
        self._platform_name = self._detect(system or platform.system())

    @staticmethod
    def _detect(system: str) -> str:
        """Map platform.system() to: macos or linux (any other POSIX with FUSE)."""
        system = system.lower()

        if system == "darwin":
            return "macos"
        elif system == "windows":
            raise UnsupportedPlatformError(f"Platform {system} not supported for sshfs mounting")
        else:
            return "linux"

    @property
    def platform_name(self) -> str:
        return self._platform_name

    def unmount_command(self, local_path: str) -> List[str]:
        """`umount <path>` on macOS, `fusermount -u <path>` elsewhere."""
        if self._platform_name == "macos":
            return ["umount", local_path]
        return ["fusermount", "-u", local_path]
