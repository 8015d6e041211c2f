import logging

from fastapi import APIRouter, Depends

from sshmount.config import Settings
from sshmount.dependencies import get_settings
from sshmount.models import SystemRequirements
from sshmount.services.mount.mount_validator import check_system_requirements

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/settings", response_model=Settings)
async def read_settings(settings: Settings = Depends(get_settings)):
    """Get current application settings"""

    logging.info("Settings endpoint called", extra={"operation": "api_settings"})
    return settings


@router.get("/config-info")
async def get_config_info(settings: Settings = Depends(get_settings)):
    """Get information about which configuration file is being used"""

    logging.info("Config info endpoint called", extra={"operation": "api_config_info"})
    return settings.config_file_info


@router.get("/system/requirements", response_model=SystemRequirements)
async def system_requirements(settings: Settings = Depends(get_settings)):
    """sshfs and FUSE availability on this machine."""
    return check_system_requirements(settings.sshfs_command)
