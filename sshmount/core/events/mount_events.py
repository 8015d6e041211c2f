"""
Events published by the mount orchestrator.

Every event derives from `MountEvent`; subscribing to it delivers all of them.
"""
from dataclasses import dataclass
from typing import Optional

from sshmount.core.events.domain_event import DomainEvent
from sshmount.models import HostProfile, MountState, OperationKind


@dataclass(frozen=True)
class MountEvent(DomainEvent):
    """Base for all orchestrator events."""


@dataclass(frozen=True)
class MountStateChangedEvent(MountEvent):
    old_state: MountState
    new_state: MountState


@dataclass(frozen=True)
class ProgressMessageEvent(MountEvent):
    message: str


@dataclass(frozen=True)
class MountSucceededEvent(MountEvent):
    host: HostProfile


@dataclass(frozen=True)
class MountFailedEvent(MountEvent):
    """Published for failed mounts and failed unmounts alike."""
    message: str
    operation: OperationKind = OperationKind.MOUNT
    host: Optional[HostProfile] = None


@dataclass(frozen=True)
class UnmountSucceededEvent(MountEvent):
    local_path: str


@dataclass(frozen=True)
class CredentialRequiredEvent(MountEvent):
    host: Optional[HostProfile] = None


@dataclass(frozen=True)
class HostKeyMismatchEvent(MountEvent):
    host: Optional[HostProfile] = None
