"""Mount point validation and system requirement checks."""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import aiofiles.os

from sshmount.core.exceptions import MountValidationError
from sshmount.models import SystemRequirements

FUSE_DEVICE = "/dev/fuse"
MACOS_SSHFS_PATH = "/usr/local/bin/sshfs"

logger = logging.getLogger(__name__)


async def check_write_permission(path: str) -> Optional[str]:
    """
    Make sure `path` exists (creating it if needed) and is writable.

    Returns:
        None when the path is usable, otherwise a message for the user.
    """
    try:
        if not await aiofiles.os.path.isdir(path):
            await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        logger.debug(f"Cannot create mount point {path}: {e}")
        return f"Cannot create directory: {path}"

    writable = await asyncio.to_thread(os.access, path, os.W_OK)
    if not writable:
        return f"No write permission for: {path}"

    return None


async def validate_mount_point(path: str) -> None:
    """
    Raises:
        MountValidationError: when the mount point is unusable.
    """
    message = await check_write_permission(path)
    if message:
        raise MountValidationError(path, message)


def check_sshfs_installed(sshfs_command: str = "sshfs") -> bool:
    return shutil.which(sshfs_command) is not None


def check_fuse_available() -> bool:
    # /dev/fuse on Linux; macFUSE installs have no device node until mounted
    return Path(FUSE_DEVICE).exists() or Path(MACOS_SSHFS_PATH).exists()


def check_system_requirements(sshfs_command: str = "sshfs") -> SystemRequirements:
    sshfs_installed = check_sshfs_installed(sshfs_command)
    fuse_available = check_fuse_available()

    issues = []
    if not sshfs_installed:
        issues.append("sshfs is not installed")
    if not fuse_available:
        issues.append("FUSE is not available")

    return SystemRequirements(
        sshfs_installed=sshfs_installed,
        fuse_available=fuse_available,
        issues=issues,
    )
