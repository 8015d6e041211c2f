"""Mount Table - lists active mounts by running `mount`."""

import logging
from typing import Callable, List, Optional

from sshmount.models import HostProfile
from sshmount.services.process.process_runner import STDOUT, ProcessRunner

RunnerFactory = Callable[..., ProcessRunner]


class MountTable:
    """
    Answers "is this host mounted?" for the presentation layer.

    The orchestrator never tracks a Mounted state; this reads the system's
    mount table instead.
    """

    def __init__(
        self,
        runner_factory: RunnerFactory = ProcessRunner,
        logger: Optional[logging.Logger] = None,
    ):
        self._runner_factory = runner_factory
        self._logger = logger or logging.getLogger(__name__)

    async def list_mounts(self) -> List[str]:
        """Non-empty lines printed by `mount`. Empty if the command is unavailable."""
        async with self._runner_factory("mount", [], logger=self._logger) as runner:
            if not await runner.start():
                self._logger.warning("Cannot list mounts: 'mount' command not found")
                return []

            stdout_parts = []
            async for chunk in runner.output():
                if chunk.channel == STDOUT:
                    stdout_parts.append(chunk.text)
            outcome = await runner.wait()

        if not outcome.succeeded:
            self._logger.warning(f"'mount' exited with code {outcome.exit_code}: {outcome.stderr.strip()}")

        return [line for line in "".join(stdout_parts).splitlines() if line.strip()]

    async def is_mounted(self, profile: HostProfile) -> bool:
        remote_spec = profile.remote_spec
        return any(remote_spec in line for line in await self.list_mounts())
