import logging
from typing import Dict, Optional, Set

from sshmount.core.events.event_bus import DomainEventBus
from sshmount.core.events.mount_events import MountStateChangedEvent
from sshmount.core.exceptions import InvalidTransitionError
from sshmount.models import MountState


class MountStateMachine:
    """
    Central "dørmand" for alle mount-tilstandsovergange.

    Dette er den ENESTE klasse i systemet, der må:
    1. Validere en tilstandsovergang.
    2. Ændre den aktuelle MountState.
    3. Publicere MountStateChangedEvent.

    The state is the single source of truth for whether a new mount or
    unmount may start. Events are awaited, not fired and forgotten, so a
    state change is always delivered before whatever the caller publishes
    next.
    """

    def __init__(self, event_bus: DomainEventBus, logger: Optional[logging.Logger] = None):
        self._event_bus = event_bus
        self._logger = logger or logging.getLogger(__name__)
        self._state = MountState.IDLE

        # Definerer alle lovlige overgange
        self._transitions: Dict[MountState, Set[MountState]] = {
            MountState.IDLE: {
                MountState.MOUNTING,
                MountState.UNMOUNTING,
                MountState.ERROR,  # Validering fejlede før start
            },
            MountState.MOUNTING: {
                MountState.IDLE,
                MountState.ERROR,
            },
            MountState.UNMOUNTING: {
                MountState.IDLE,
                MountState.ERROR,
            },
            MountState.ERROR: {
                MountState.IDLE,
                MountState.MOUNTING,
                MountState.UNMOUNTING,
            },
        }

    @property
    def state(self) -> MountState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state in (MountState.MOUNTING, MountState.UNMOUNTING)

    def can_transition(self, new_state: MountState) -> bool:
        return new_state == self._state or new_state in self._transitions[self._state]

    async def transition(self, new_state: MountState) -> bool:
        """
        Move to `new_state` and publish the change.

        Returns:
            False if the machine already was in `new_state` (no event), True otherwise.

        Raises:
            InvalidTransitionError: Hvis overgangen ikke er tilladt.
        """
        old_state = self._state
        if new_state == old_state:
            return False

        if new_state not in self._transitions[old_state]:
            raise InvalidTransitionError(old_state.value, new_state.value)

        self._logger.info(f"Mount state: {old_state.value} -> {new_state.value}")
        self._state = new_state

        await self._event_bus.publish(
            MountStateChangedEvent(old_state=old_state, new_state=new_state)
        )
        return True
