from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MountState(str, Enum):
    """
    Tilstand for mount-orkestratoren.

    Normal Workflow: Idle -> Mounting -> Idle
    Unmount: Idle -> Unmounting -> Idle
    Alternative: -> Error (ved fejl), Error -> Mounting/Unmounting (nyt forsøg)

    There is no "Mounted" state: a successful mount returns to Idle and the
    presentation layer asks the mount table whether a host is mounted.
    """

    IDLE = "Idle"
    MOUNTING = "Mounting"
    UNMOUNTING = "Unmounting"
    ERROR = "Error"


class OperationKind(str, Enum):
    MOUNT = "mount"
    UNMOUNT = "unmount"


class HostProfile(BaseModel):
    """
    A saved set of connection parameters for one remote mount target.

    Field aliases match the keys of the hosts JSON file.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(default="", description="Display name, not guaranteed unique")
    user: str = Field(..., min_length=1)
    host: str = Field(..., min_length=1, description="Address of the remote host")
    port: int = Field(default=22, ge=1, le=65535)
    remote_path: str = Field(default="", alias="remotePath")
    local_path: str = Field(..., min_length=1, alias="localPath")
    use_public_key: bool = Field(
        default=False,
        alias="usePublicKey",
        description="True = public key only, False = password authentication",
    )

    @property
    def remote_spec(self) -> str:
        """`user@host:remotePath` as passed to sshfs and shown by `mount`."""
        return f"{self.user}@{self.host}:{self.remote_path}"

    @property
    def display_label(self) -> str:
        return f"{self.name} ({self.user}@{self.host})"


class MountStateInfo(BaseModel):
    """Snapshot of the orchestrator for the API."""

    state: MountState
    host: Optional[HostProfile] = None
    has_active_operation: bool = False


class SystemRequirements(BaseModel):
    sshfs_installed: bool
    fuse_available: bool
    issues: List[str] = Field(default_factory=list)
