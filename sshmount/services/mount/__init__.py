"""
Mount Module

Components:
- MountOrchestrator: Owns the helper process and drives the mount state machine
- MountTable: Lists active mounts from the system mount table
- PlatformFactory: Platform detection and unmount command selection
- output_classifier: Password prompt and host key warning detection
- command_builder: sshfs and ssh-keygen command lines
- mount_validator: Mount point and system requirement checks
"""

from .mount_orchestrator import ActiveOperation, MountOrchestrator
from .mount_table import MountTable
from .platform_factory import PlatformFactory, UnsupportedPlatformError

__all__ = [
    "ActiveOperation",
    "MountOrchestrator",
    "MountTable",
    "PlatformFactory",
    "UnsupportedPlatformError",
]
