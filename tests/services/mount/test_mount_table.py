import pytest

from sshmount.services.mount.mount_table import MountTable

MOUNT_OUTPUT = (
    "/dev/sda1 on / type ext4 (rw,relatime)\n"
    "bob@media.local:/home/bob on /mnt/media type fuse.sshfs (rw,nosuid,nodev)\n"
    "\n"
)


@pytest.fixture
def mount_table(runner_factory):
    return MountTable(runner_factory=runner_factory)


@pytest.mark.asyncio
async def test_list_mounts(mount_table, runner_factory):
    # Split mid-line to make sure lines are assembled from chunks
    runner_factory.scripts["mount"] = [MOUNT_OUTPUT[:50], MOUNT_OUTPUT[50:]]
    runner_factory.auto_exit["mount"] = 0

    lines = await mount_table.list_mounts()

    assert lines == [
        "/dev/sda1 on / type ext4 (rw,relatime)",
        "bob@media.local:/home/bob on /mnt/media type fuse.sshfs (rw,nosuid,nodev)",
    ]
    assert runner_factory.last.command_line == ["mount"]
    assert runner_factory.last.closed


@pytest.mark.asyncio
async def test_is_mounted(mount_table, runner_factory, pubkey_profile, password_profile):
    runner_factory.scripts["mount"] = [MOUNT_OUTPUT]
    runner_factory.auto_exit["mount"] = 0

    assert await mount_table.is_mounted(pubkey_profile) is True
    assert await mount_table.is_mounted(password_profile) is False


@pytest.mark.asyncio
async def test_missing_mount_command(mount_table, runner_factory, pubkey_profile):
    runner_factory.missing_programs.add("mount")

    assert await mount_table.list_mounts() == []
    assert await mount_table.is_mounted(pubkey_profile) is False
