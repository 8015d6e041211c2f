"""Mount Orchestrator - owns the sshfs/unmount process and drives the mount state machine."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set

from sshmount.config import Settings
from sshmount.core.events.event_bus import DomainEventBus
from sshmount.core.events.mount_events import (
    CredentialRequiredEvent,
    HostKeyMismatchEvent,
    MountEvent,
    MountFailedEvent,
    MountSucceededEvent,
    ProgressMessageEvent,
    UnmountSucceededEvent,
)
from sshmount.core.exceptions import (
    BusyError,
    MountValidationError,
    NoActiveOperationError,
    NoHostKeyMismatchError,
    RuntimeFailureError,
    SpawnFailureError,
)
from sshmount.core.mount_state_machine import MountStateMachine
from sshmount.models import HostProfile, MountState, OperationKind
from sshmount.services.mount.command_builder import (
    build_host_key_removal_command,
    build_mount_command,
)
from sshmount.services.mount.mount_validator import validate_mount_point
from sshmount.services.mount.output_classifier import OutputSignal, classify_output
from sshmount.services.mount.platform_factory import PlatformFactory
from sshmount.services.process.process_runner import ProcessOutcome, ProcessRunner

RunnerFactory = Callable[..., ProcessRunner]


@dataclass(eq=False)
class ActiveOperation:
    """The one running mount or unmount. Exists only while its process is owned."""

    kind: OperationKind
    runner: ProcessRunner
    local_path: str
    host: Optional[HostProfile] = None
    credential_prompts: int = 0
    host_key_mismatch: bool = False
    pending_credential: Optional[str] = None
    task: Optional[asyncio.Task] = None


class MountOrchestrator:
    """
    Mount lifecycle for one local mount subsystem.

    At most one external process is owned at a time; mount() and unmount()
    are rejected with BusyError while one is running. Every outcome reaches
    the caller as an event on the DomainEventBus, published from a single
    driver task per operation so that output-derived events keep the order
    of the bytes and the success/failure event comes last.

    Operations return as soon as the process is spawned. Their boolean result
    only says whether a process was started.
    """

    TERMINATE_GRACE_SECONDS = 2.0

    def __init__(
        self,
        settings: Settings,
        event_bus: DomainEventBus,
        state_machine: Optional[MountStateMachine] = None,
        platform_factory: Optional[PlatformFactory] = None,
        runner_factory: RunnerFactory = ProcessRunner,
        logger: Optional[logging.Logger] = None,
    ):
        self._settings = settings
        self._event_bus = event_bus
        self._logger = logger or logging.getLogger(__name__)
        self._state_machine = state_machine or MountStateMachine(event_bus, logger=self._logger)
        self._platform = platform_factory or PlatformFactory()
        self._runner_factory = runner_factory

        self._active: Optional[ActiveOperation] = None
        self._current_host: Optional[HostProfile] = None
        self._host_key_pending: Optional[HostProfile] = None
        # Operations whose driver is waiting on handlers of an output-derived event
        self._publishing: Set[ActiveOperation] = set()
        # mount/unmount/retry calls that have passed the busy check but own no process yet
        self._starting = 0

    @property
    def state(self) -> MountState:
        return self._state_machine.state

    @property
    def current_host(self) -> Optional[HostProfile]:
        """The profile of the current or most recent mount."""
        return self._current_host

    @property
    def has_active_operation(self) -> bool:
        return self._active is not None

    @property
    def active_operation(self) -> Optional[ActiveOperation]:
        return self._active

    @property
    def awaiting_host_key_decision(self) -> bool:
        return self._host_key_pending is not None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def mount(self, profile: HostProfile) -> bool:
        """
        Start mounting `profile`.

        Returns:
            True if sshfs was spawned. Validation and spawn failures return
            False after publishing MountFailedEvent.

        Raises:
            BusyError: if a mount or unmount is in progress.
        """
        self._ensure_not_busy()
        self._host_key_pending = None
        self._starting += 1
        try:
            return await self._start_mount(profile)
        finally:
            self._starting -= 1

    async def unmount(self, local_path: str) -> bool:
        """
        Start unmounting `local_path` with the platform's unmount command.

        Raises:
            BusyError: if a mount or unmount is in progress.
        """
        self._ensure_not_busy()
        self._host_key_pending = None
        self._starting += 1
        try:
            return await self._start_unmount(local_path)
        finally:
            self._starting -= 1

    async def _start_unmount(self, local_path: str) -> bool:
        command = self._platform.unmount_command(local_path)
        self._logger.info(f"Unmounting: {' '.join(command)}")

        await self._state_machine.transition(MountState.UNMOUNTING)
        await self._publish(ProgressMessageEvent(message=f"Unmounting {local_path}..."))

        operation = ActiveOperation(
            kind=OperationKind.UNMOUNT,
            runner=self._runner_factory(command[0], command[1:], logger=self._logger),
            local_path=local_path,
        )
        self._active = operation
        return await self._launch(operation)

    async def supply_credential(self, credential: str) -> bool:
        """
        Send the password to the running helper and close its input.

        A credential supplied before the process has been spawned is held and
        written right after spawning.

        Returns:
            False if the input channel was already closed by an earlier credential.

        Raises:
            NoActiveOperationError: if no process is running.
        """
        operation = self._active
        if operation is None:
            raise NoActiveOperationError("No operation is waiting for a credential")

        if not operation.runner.started:
            operation.pending_credential = credential
            return True

        if not operation.runner.is_running:
            raise NoActiveOperationError("The helper process has already exited")

        return await self._write_credential(operation, credential)

    async def decline_credential(self) -> None:
        """
        Kill the running helper without waiting for an outcome.

        No MountSucceededEvent/MountFailedEvent is published for it and the
        state is left as is; call reset() to return to Idle.

        Raises:
            NoActiveOperationError: if there is nothing to cancel.
        """
        operation = self._active
        if operation is None:
            raise NoActiveOperationError("No operation to cancel")

        self._logger.info(f"Credential declined, terminating {operation.runner.program}")
        await self._release(operation)
        await self._publish(ProgressMessageEvent(message="Cancelled."))

    async def reset(self) -> None:
        """
        Return to Idle after a declined credential or host key warning.

        Raises:
            BusyError: while a process is still owned.
        """
        if self._active is not None:
            raise BusyError(self.state.value)
        self._host_key_pending = None
        await self._state_machine.transition(MountState.IDLE)

    async def remove_host_key_and_retry(self) -> bool:
        """
        Remove the cached host key of the mismatching host and mount it again.

        A still-running sshfs for that host is terminated first. The mount is
        retried even if ssh-keygen fails; its own failure will then be reported.

        Raises:
            NoHostKeyMismatchError: if no host key warning is pending.
        """
        profile = self._host_key_pending
        if profile is None:
            raise NoHostKeyMismatchError("No host key mismatch is waiting for a decision")
        self._host_key_pending = None
        self._starting += 1
        try:
            return await self._retry_mount(profile)
        finally:
            self._starting -= 1

    async def shutdown(self) -> None:
        """Release any owned process. Used when the application stops."""
        if self._active is not None:
            self._logger.info(f"Shutting down, terminating {self._active.runner.program}")
            await self._release(self._active)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_not_busy(self) -> None:
        if self._starting or self._state_machine.is_busy or self._active is not None:
            raise BusyError(self.state.value)

    async def _retry_mount(self, profile: HostProfile) -> bool:
        if self._active is not None:
            self._logger.info(f"Superseding running mount of {profile.host} for host key removal")
            await self._release(self._active)

        if not self._state_machine.is_busy:
            await self._state_machine.transition(MountState.MOUNTING)

        await self._publish(ProgressMessageEvent(message=f"Removing old host key for {profile.host}..."))
        await self._remove_host_key(profile.host)

        return await self._start_mount(profile)

    async def _start_mount(self, profile: HostProfile) -> bool:
        self._current_host = profile

        try:
            await validate_mount_point(profile.local_path)
        except MountValidationError as e:
            self._logger.error(f"Mount point validation failed: {e}")
            await self._state_machine.transition(MountState.ERROR)
            await self._publish(MountFailedEvent(message=str(e), operation=OperationKind.MOUNT, host=profile))
            return False

        command = build_mount_command(profile, self._settings)
        self._logger.info(f"Mounting: {' '.join(command)}")

        await self._state_machine.transition(MountState.MOUNTING)
        await self._publish(ProgressMessageEvent(message=f"Connecting to {profile.host}..."))

        operation = ActiveOperation(
            kind=OperationKind.MOUNT,
            runner=self._runner_factory(command[0], command[1:], logger=self._logger),
            local_path=profile.local_path,
            host=profile,
        )
        self._active = operation

        # sshfs may print its prompt only after a network round trip
        if not profile.use_public_key:
            operation.credential_prompts += 1
            await self._publish(CredentialRequiredEvent(host=profile))
            if self._active is not operation:
                return False

        return await self._launch(operation)

    async def _launch(self, operation: ActiveOperation) -> bool:
        runner = operation.runner
        if not await runner.start():
            outcome = await runner.wait()
            await runner.aclose()
            if self._active is operation:
                self._active = None
            error = SpawnFailureError(runner.program, outcome.error_message)
            self._logger.error(f"{error} ({outcome.error_message})")
            await self._state_machine.transition(MountState.ERROR)
            await self._publish(
                MountFailedEvent(message=str(error), operation=operation.kind, host=operation.host)
            )
            return False

        if operation.pending_credential is not None:
            credential, operation.pending_credential = operation.pending_credential, None
            await self._write_credential(operation, credential)

        operation.task = asyncio.create_task(self._drive(operation))
        return True

    async def _drive(self, operation: ActiveOperation) -> None:
        """Consume output, then the outcome. Runs once per operation."""
        try:
            async with operation.runner as runner:
                async for chunk in runner.output():
                    self._logger.debug(f"{runner.program} {chunk.channel}: {chunk.text.rstrip()}")
                    if self._active is operation:
                        self._publishing.add(operation)
                        try:
                            await self._handle_output(operation, chunk.text)
                        finally:
                            self._publishing.discard(operation)
                outcome = await runner.wait()
        except Exception as e:
            self._logger.error(f"Error while supervising {operation.runner.program}: {e}", exc_info=True)
            outcome = ProcessOutcome(exit_code=-1, normal_exit=False, stderr=str(e))

        if self._active is not operation:
            # Declined or superseded; the outcome belongs to nobody
            return
        self._active = None
        await self._finish(operation, outcome)

    async def _handle_output(self, operation: ActiveOperation, text: str) -> None:
        signals = classify_output(text)

        if OutputSignal.CREDENTIAL_REQUEST in signals:
            if self._settings.suppress_repeated_credential_prompts and operation.credential_prompts > 0:
                self._logger.debug("Repeated password prompt suppressed")
            else:
                operation.credential_prompts += 1
                self._logger.info("Helper is asking for a password")
                await self._publish(CredentialRequiredEvent(host=operation.host))

        if (
            OutputSignal.HOST_KEY_CHANGED in signals
            and operation.kind is OperationKind.MOUNT
            and self._active is operation
        ):
            operation.host_key_mismatch = True
            self._host_key_pending = operation.host
            self._logger.warning(f"Remote host identification has changed for {operation.host.host}")
            await self._publish(HostKeyMismatchEvent(host=operation.host))

    async def _finish(self, operation: ActiveOperation, outcome: ProcessOutcome) -> None:
        if outcome.succeeded:
            await self._state_machine.transition(MountState.IDLE)
            if operation.kind is OperationKind.MOUNT:
                self._logger.info(f"Mount successful: {operation.host.name or operation.host.host}")
                await self._publish(MountSucceededEvent(host=operation.host))
            else:
                self._logger.info(f"Unmount successful: {operation.local_path}")
                await self._publish(UnmountSucceededEvent(local_path=operation.local_path))
            return

        error = self._failure(operation, outcome)
        self._logger.error(f"{operation.kind.value.capitalize()} failed (exit code {error.exit_code}): {error}")
        await self._state_machine.transition(MountState.ERROR)
        await self._publish(MountFailedEvent(message=str(error), operation=operation.kind, host=operation.host))

    @staticmethod
    def _failure(operation: ActiveOperation, outcome: ProcessOutcome) -> RuntimeFailureError:
        diagnostic = outcome.stderr.strip()
        if not diagnostic:
            diagnostic = f"{operation.kind.value.capitalize()} failed with unknown error"
        return RuntimeFailureError(diagnostic, exit_code=outcome.exit_code)

    async def _write_credential(self, operation: ActiveOperation, credential: str) -> bool:
        runner = operation.runner
        written = await runner.write(credential + "\n")
        await runner.close_input()
        if not written:
            self._logger.warning(f"Credential could not be sent to {runner.program}")
        return written

    async def _release(self, operation: ActiveOperation) -> None:
        """Drop ownership of `operation` and make sure its process is gone."""
        if self._active is operation:
            self._active = None

        if operation.task is None:
            await operation.runner.aclose()
            return

        if operation in self._publishing or operation.task is asyncio.current_task():
            # The driver is waiting on this handler; it exits by itself once the process is dead
            operation.runner.kill()
            return

        await operation.runner.stop(grace=self.TERMINATE_GRACE_SECONDS)
        await asyncio.gather(operation.task, return_exceptions=True)

    async def _remove_host_key(self, host: str) -> None:
        command = build_host_key_removal_command(host, self._settings)
        self._logger.info(f"Removing host key: {' '.join(command)}")

        async with self._runner_factory(command[0], command[1:], logger=self._logger) as keygen:
            if not await keygen.start():
                self._logger.warning(f"Could not start {command[0]}, retrying mount anyway")
                return
            outcome = await keygen.wait()

        if not outcome.succeeded:
            self._logger.warning(
                f"{command[0]} exited with code {outcome.exit_code}: {outcome.stderr.strip()}"
            )

    async def _publish(self, event: MountEvent) -> None:
        await self._event_bus.publish(event)
