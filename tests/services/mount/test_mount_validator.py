import logging
from unittest.mock import patch

import pytest

from sshmount.core.exceptions import MountValidationError
from sshmount.services.mount.mount_validator import (
    check_system_requirements,
    check_write_permission,
    validate_mount_point,
)


class TestWritePermission:

    @pytest.mark.asyncio
    async def test_existing_writable_directory(self, mount_point):
        assert await check_write_permission(str(mount_point)) is None

    @pytest.mark.asyncio
    async def test_missing_directory_is_created(self, tmp_path):
        target = tmp_path / "new" / "mount"

        assert await check_write_permission(str(target)) is None
        assert target.is_dir()

    @pytest.mark.asyncio
    async def test_directory_that_cannot_be_created(self, tmp_path, caplog):
        blocker = tmp_path / "file.txt"
        blocker.write_text("not a directory")
        target = blocker / "mount"

        with caplog.at_level(logging.DEBUG, logger="sshmount.services.mount.mount_validator"):
            assert await check_write_permission(str(target)) == f"Cannot create directory: {target}"

        assert any(r.name == "sshmount.services.mount.mount_validator" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_directory_without_write_permission(self, mount_point):
        with patch("sshmount.services.mount.mount_validator.os.access", return_value=False):
            message = await check_write_permission(str(mount_point))

        assert message == f"No write permission for: {mount_point}"

    @pytest.mark.asyncio
    async def test_validate_mount_point_raises(self, mount_point):
        with patch("sshmount.services.mount.mount_validator.os.access", return_value=False):
            with pytest.raises(MountValidationError) as exc_info:
                await validate_mount_point(str(mount_point))

        assert exc_info.value.path == str(mount_point)


class TestSystemRequirements:

    def test_all_present(self):
        with patch("sshmount.services.mount.mount_validator.shutil.which", return_value="/usr/bin/sshfs"), \
                patch("sshmount.services.mount.mount_validator.check_fuse_available", return_value=True):
            requirements = check_system_requirements()

        assert requirements.sshfs_installed
        assert requirements.fuse_available
        assert requirements.issues == []

    def test_missing_everything(self):
        with patch("sshmount.services.mount.mount_validator.shutil.which", return_value=None), \
                patch("sshmount.services.mount.mount_validator.check_fuse_available", return_value=False):
            requirements = check_system_requirements("sshfs")

        assert not requirements.sshfs_installed
        assert requirements.issues == ["sshfs is not installed", "FUSE is not available"]
