import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from sshmount.api.hosts import get_host_or_404
from sshmount.core.exceptions import BusyError, NoActiveOperationError, NoHostKeyMismatchError
from sshmount.core.host_repository import HostRepository
from sshmount.dependencies import (
    get_host_repository,
    get_mount_orchestrator,
    get_mount_state_info,
    get_mount_table,
)
from sshmount.models import MountStateInfo
from sshmount.services.mount.mount_orchestrator import MountOrchestrator
from sshmount.services.mount.mount_table import MountTable

router = APIRouter(prefix="/api", tags=["mounts"])


class CredentialRequest(BaseModel):
    password: str


def _conflict(error: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))


@router.post("/hosts/{index}/mount", status_code=status.HTTP_202_ACCEPTED)
async def mount_host(
    index: int,
    repository: HostRepository = Depends(get_host_repository),
    orchestrator: MountOrchestrator = Depends(get_mount_orchestrator),
):
    """Start a mount. The outcome arrives over the WebSocket."""
    host = await get_host_or_404(index, repository)
    try:
        accepted = await orchestrator.mount(host)
    except BusyError as e:
        raise _conflict(e)
    return {"accepted": accepted}


@router.post("/hosts/{index}/unmount", status_code=status.HTTP_202_ACCEPTED)
async def unmount_host(
    index: int,
    repository: HostRepository = Depends(get_host_repository),
    orchestrator: MountOrchestrator = Depends(get_mount_orchestrator),
):
    host = await get_host_or_404(index, repository)
    try:
        accepted = await orchestrator.unmount(host.local_path)
    except BusyError as e:
        raise _conflict(e)
    return {"accepted": accepted}


@router.post("/mount/credential")
async def supply_credential(
    request: CredentialRequest,
    orchestrator: MountOrchestrator = Depends(get_mount_orchestrator),
):
    try:
        sent = await orchestrator.supply_credential(request.password)
    except NoActiveOperationError as e:
        raise _conflict(e)
    return {"sent": sent}


@router.post("/mount/credential/decline")
async def decline_credential(orchestrator: MountOrchestrator = Depends(get_mount_orchestrator)):
    """Cancel the running mount and return to Idle."""
    try:
        await orchestrator.decline_credential()
        await orchestrator.reset()
    except (NoActiveOperationError, BusyError) as e:
        raise _conflict(e)
    logging.info("Mount cancelled by user")
    return {"state": orchestrator.state.value}


@router.post("/mount/host-key/retry", status_code=status.HTTP_202_ACCEPTED)
async def remove_host_key_and_retry(orchestrator: MountOrchestrator = Depends(get_mount_orchestrator)):
    try:
        accepted = await orchestrator.remove_host_key_and_retry()
    except (NoHostKeyMismatchError, BusyError) as e:
        raise _conflict(e)
    return {"accepted": accepted}


@router.post("/mount/reset")
async def reset(orchestrator: MountOrchestrator = Depends(get_mount_orchestrator)):
    try:
        await orchestrator.reset()
    except BusyError as e:
        raise _conflict(e)
    return {"state": orchestrator.state.value}


@router.get("/mount/state", response_model=MountStateInfo)
async def mount_state(info: MountStateInfo = Depends(get_mount_state_info)):
    return info


@router.get("/mounts")
async def active_mounts(mount_table: MountTable = Depends(get_mount_table)):
    return {"mounts": await mount_table.list_mounts()}
