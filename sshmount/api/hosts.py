import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from sshmount.core.exceptions import HostStoreError
from sshmount.core.host_repository import HostRepository
from sshmount.dependencies import get_host_repository, get_mount_table
from sshmount.models import HostProfile
from sshmount.services.mount.mount_table import MountTable

router = APIRouter(prefix="/api", tags=["hosts"])


async def _persist(repository: HostRepository) -> None:
    try:
        await repository.save()
    except HostStoreError as e:
        logging.error(f"Failed to save hosts: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


async def get_host_or_404(index: int, repository: HostRepository) -> HostProfile:
    host = await repository.get(index)
    if host is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No host at index {index}")
    return host


@router.get("/hosts", response_model=List[HostProfile])
async def list_hosts(repository: HostRepository = Depends(get_host_repository)):
    return await repository.get_all()


@router.post("/hosts", status_code=status.HTTP_201_CREATED)
async def add_host(host: HostProfile, repository: HostRepository = Depends(get_host_repository)):
    index = await repository.add(host)
    await _persist(repository)
    logging.info(f"Host added: {host.display_label}")
    return {"index": index}


@router.put("/hosts/{index}", response_model=HostProfile)
async def update_host(
    index: int, host: HostProfile, repository: HostRepository = Depends(get_host_repository)
):
    if not await repository.update(index, host):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No host at index {index}")
    await _persist(repository)
    logging.info(f"Host updated: {host.display_label}")
    return host


@router.delete("/hosts/{index}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_host(index: int, repository: HostRepository = Depends(get_host_repository)):
    if not await repository.remove(index):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No host at index {index}")
    await _persist(repository)
    logging.info(f"Host #{index} removed")


@router.get("/hosts/{index}/status")
async def host_status(
    index: int,
    repository: HostRepository = Depends(get_host_repository),
    mount_table: MountTable = Depends(get_mount_table),
):
    """Whether the host's `user@host:remotePath` appears in the system mount table."""
    host = await get_host_or_404(index, repository)
    return {"mounted": await mount_table.is_mounted(host)}
