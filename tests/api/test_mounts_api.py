"""
Endpoint functions called directly with real services and scripted helper processes.
"""

import pytest
from fastapi import HTTPException

from sshmount.api import hosts as hosts_api
from sshmount.api import mounts as mounts_api
from sshmount.core.host_repository import HostRepository
from sshmount.models import MountState
from sshmount.services.mount.mount_orchestrator import MountOrchestrator
from sshmount.services.mount.mount_table import MountTable
from sshmount.services.mount.output_classifier import HOST_KEY_CHANGED_BANNER
from sshmount.services.mount.platform_factory import PlatformFactory


@pytest.fixture
def repository(settings):
    return HostRepository(settings.hosts_file)


@pytest.fixture
def orchestrator(settings, event_bus, runner_factory):
    return MountOrchestrator(
        settings=settings,
        event_bus=event_bus,
        platform_factory=PlatformFactory("Linux"),
        runner_factory=runner_factory,
    )


class TestHostsApi:

    @pytest.mark.asyncio
    async def test_add_list_and_persist(self, repository, settings, pubkey_profile):
        result = await hosts_api.add_host(pubkey_profile, repository)

        assert result == {"index": 0}
        assert await hosts_api.list_hosts(repository) == [pubkey_profile]
        assert settings.hosts_file.exists()

    @pytest.mark.asyncio
    async def test_unknown_index_is_404(self, repository, pubkey_profile):
        with pytest.raises(HTTPException) as exc_info:
            await hosts_api.update_host(3, pubkey_profile, repository)
        assert exc_info.value.status_code == 404

        with pytest.raises(HTTPException) as exc_info:
            await hosts_api.remove_host(0, repository)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_host_status(self, repository, runner_factory, pubkey_profile):
        await repository.add(pubkey_profile)
        runner_factory.scripts["mount"] = [f"{pubkey_profile.remote_spec} on /mnt/media type fuse.sshfs\n"]
        runner_factory.auto_exit["mount"] = 0

        result = await hosts_api.host_status(0, repository, MountTable(runner_factory=runner_factory))

        assert result == {"mounted": True}


class TestMountsApi:

    @pytest.mark.asyncio
    async def test_mount_and_busy_conflict(self, repository, orchestrator, pubkey_profile):
        await repository.add(pubkey_profile)

        assert await mounts_api.mount_host(0, repository, orchestrator) == {"accepted": True}

        with pytest.raises(HTTPException) as exc_info:
            await mounts_api.unmount_host(0, repository, orchestrator)
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_credential_without_operation_is_conflict(self, orchestrator):
        with pytest.raises(HTTPException) as exc_info:
            await mounts_api.supply_credential(mounts_api.CredentialRequest(password="x"), orchestrator)
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_credential_is_forwarded(self, repository, orchestrator, runner_factory, password_profile):
        await repository.add(password_profile)
        await mounts_api.mount_host(0, repository, orchestrator)

        result = await mounts_api.supply_credential(mounts_api.CredentialRequest(password="pw"), orchestrator)

        assert result == {"sent": True}
        assert runner_factory.last.writes == ["pw\n"]

    @pytest.mark.asyncio
    async def test_decline_returns_to_idle(self, repository, orchestrator, runner_factory, password_profile):
        await repository.add(password_profile)
        await mounts_api.mount_host(0, repository, orchestrator)

        result = await mounts_api.decline_credential(orchestrator)

        assert result == {"state": "Idle"}
        assert runner_factory.last.terminated

    @pytest.mark.asyncio
    async def test_host_key_retry(self, repository, orchestrator, runner_factory, pubkey_profile):
        runner_factory.auto_exit["ssh-keygen"] = 0
        await repository.add(pubkey_profile)
        await mounts_api.mount_host(0, repository, orchestrator)
        await runner_factory.last.emit(HOST_KEY_CHANGED_BANNER)

        assert await mounts_api.remove_host_key_and_retry(orchestrator) == {"accepted": True}
        assert orchestrator.state == MountState.MOUNTING

        with pytest.raises(HTTPException) as exc_info:
            await mounts_api.remove_host_key_and_retry(orchestrator)
        assert exc_info.value.status_code == 409
