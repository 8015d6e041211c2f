from functools import lru_cache
from typing import Any, Dict

from sshmount.core.events.event_bus import DomainEventBus
from sshmount.core.host_repository import HostRepository
from sshmount.core.mount_state_machine import MountStateMachine
from sshmount.models import MountStateInfo

from .config import Settings
from .logging_config import get_app_logger
from .services.mount.mount_orchestrator import MountOrchestrator
from .services.mount.mount_table import MountTable
from .services.mount.platform_factory import PlatformFactory
from .services.websocket_manager import WebSocketManager

# Global singleton instances
_singletons: Dict[str, Any] = {}


@lru_cache
def get_settings() -> Settings:
    """Hent Settings singleton instance."""
    return Settings()


def get_event_bus() -> DomainEventBus:
    if "event_bus" not in _singletons:
        _singletons["event_bus"] = DomainEventBus()
    return _singletons["event_bus"]


def get_host_repository() -> HostRepository:
    if "host_repository" not in _singletons:
        _singletons["host_repository"] = HostRepository(get_settings().hosts_file)
    return _singletons["host_repository"]


def get_mount_state_machine() -> MountStateMachine:
    if "mount_state_machine" not in _singletons:
        _singletons["mount_state_machine"] = MountStateMachine(
            event_bus=get_event_bus(), logger=get_app_logger()
        )
    return _singletons["mount_state_machine"]


def get_mount_orchestrator() -> MountOrchestrator:
    if "mount_orchestrator" not in _singletons:
        _singletons["mount_orchestrator"] = MountOrchestrator(
            settings=get_settings(),
            event_bus=get_event_bus(),
            state_machine=get_mount_state_machine(),
            platform_factory=PlatformFactory(),
            logger=get_app_logger(),
        )
    return _singletons["mount_orchestrator"]


def get_mount_table() -> MountTable:
    if "mount_table" not in _singletons:
        _singletons["mount_table"] = MountTable(logger=get_app_logger())
    return _singletons["mount_table"]


def get_mount_state_info() -> MountStateInfo:
    orchestrator = get_mount_orchestrator()
    return MountStateInfo(
        state=orchestrator.state,
        host=orchestrator.current_host,
        has_active_operation=orchestrator.has_active_operation,
    )


def get_websocket_manager() -> WebSocketManager:
    if "websocket_manager" not in _singletons:
        _singletons["websocket_manager"] = WebSocketManager(
            host_repository=get_host_repository(),
            event_bus=get_event_bus(),
            state_provider=get_mount_state_info,
        )
    return _singletons["websocket_manager"]


def reset_singletons() -> None:
    global _singletons
    _singletons.clear()
