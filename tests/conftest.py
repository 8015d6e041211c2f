"""
Pytest configuration og shared fixtures.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from sshmount.config import Settings
from sshmount.core.events.event_bus import DomainEventBus
from sshmount.core.events.mount_events import MountEvent
from sshmount.dependencies import get_settings, reset_singletons
from sshmount.models import HostProfile
from sshmount.services.process.process_runner import STDERR, STDOUT, OutputChunk, ProcessOutcome


@pytest.fixture(autouse=True)
def clean_singletons():
    """Automatically reset singletons before hver test."""
    reset_singletons()
    get_settings.cache_clear()
    yield
    reset_singletons()
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        hosts_file_path=str(tmp_path / "mounter" / "hosts.json"),
        log_file_path=str(tmp_path / "logs" / "ssh_mounter.log"),
    )


@pytest.fixture
def mount_point(tmp_path):
    path = tmp_path / "mnt" / "server"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def password_profile(mount_point):
    return HostProfile(
        name="Build server",
        user="alice",
        host="build.example.com",
        port=2222,
        remote_path="/srv/data",
        local_path=str(mount_point),
        use_public_key=False,
    )


@pytest.fixture
def pubkey_profile(mount_point):
    return HostProfile(
        name="Media",
        user="bob",
        host="media.local",
        remote_path="/home/bob",
        local_path=str(mount_point),
        use_public_key=True,
    )


@pytest.fixture
def event_bus():
    return DomainEventBus()


class EventRecorder:
    """Collects every MountEvent in publication order."""

    def __init__(self, bus: DomainEventBus):
        self.events: List[MountEvent] = []
        bus.subscribe(MountEvent, self._record)

    async def _record(self, event: MountEvent) -> None:
        self.events.append(event)

    def of_type(self, *event_types) -> List[MountEvent]:
        return [e for e in self.events if isinstance(e, event_types)]

    def types(self) -> List[str]:
        return [e.event_type for e in self.events]


@pytest.fixture
def recorder(event_bus):
    return EventRecorder(event_bus)


class FakeRunner:
    """
    Scripted stand-in for ProcessRunner.

    The test drives it: `await emit(text)` delivers one chunk and returns once
    the consumer has handled it, `finish(code)` ends the process.
    """

    def __init__(self, program: str, args=(), *, logger=None, fail_to_start=False, auto_exit=None, script=()):
        self.program = program
        self.args = list(args)
        self.fail_to_start = fail_to_start
        self.auto_exit = auto_exit
        self.script = list(script)
        self.started = False
        self.writes: List[str] = []
        self.input_closed = False
        self.terminated = False
        self.killed = False
        self.closed = False
        self._queue: "asyncio.Queue[Optional[OutputChunk]]" = asyncio.Queue()
        self._stderr: List[str] = []
        self._exit: Optional[asyncio.Future] = None
        self._outcome: Optional[ProcessOutcome] = None

    @property
    def command_line(self):
        return [self.program, *self.args]

    @property
    def is_running(self) -> bool:
        return self.started and self._outcome is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def start(self) -> bool:
        if self.fail_to_start:
            self._outcome = ProcessOutcome(
                exit_code=-1, normal_exit=False, failed_to_start=True, error_message="No such file or directory"
            )
            self._queue.put_nowait(None)
            return False
        self.started = True
        self._exit = asyncio.get_running_loop().create_future()
        for text in self.script:
            self._deliver(STDOUT, text)
        if self.auto_exit is not None:
            self.finish(self.auto_exit)
        return True

    async def emit(self, text: str, channel: str = STDERR) -> None:
        self._deliver(channel, text)
        await self._queue.join()

    def _deliver(self, channel: str, text: str) -> None:
        if channel == STDERR:
            self._stderr.append(text)
        self._queue.put_nowait(OutputChunk(channel=channel, text=text))

    def finish(self, exit_code: int = 0, stderr: str = "", normal_exit: bool = True) -> None:
        if self._outcome is not None:
            return
        if stderr:
            self._stderr.append(stderr)
        self._outcome = ProcessOutcome(
            exit_code=exit_code, normal_exit=normal_exit, stderr="".join(self._stderr)
        )
        self._queue.put_nowait(None)
        if self._exit is not None and not self._exit.done():
            self._exit.set_result(self._outcome)

    async def output(self):
        while True:
            chunk = await self._queue.get()
            try:
                if chunk is None:
                    return
                yield chunk
            finally:
                self._queue.task_done()

    async def wait(self) -> ProcessOutcome:
        if self._outcome is not None:
            return self._outcome
        return await self._exit

    async def write(self, text: str) -> bool:
        if not self.is_running or self.input_closed:
            return False
        self.writes.append(text)
        return True

    async def close_input(self) -> None:
        self.input_closed = True

    def terminate(self) -> None:
        if self.is_running:
            self.terminated = True
            self.finish(-15, normal_exit=False)

    def kill(self) -> None:
        if self.is_running:
            self.killed = True
            self.finish(-9, normal_exit=False)

    async def stop(self, grace: float = 2.0):
        self.terminate()
        return self._outcome

    async def aclose(self) -> None:
        self.closed = True
        self.kill()


class FakeRunnerFactory:
    """
    Creates FakeRunners and remembers them.

    `auto_exit` maps program -> exit code, `scripts` maps program -> stdout chunks
    delivered right after start.
    """

    def __init__(self):
        self.runners: List[FakeRunner] = []
        self.missing_programs: set = set()
        self.auto_exit: Dict[str, int] = {}
        self.scripts: Dict[str, List[str]] = {}

    def __call__(self, program, args=(), *, logger=None, **kwargs) -> FakeRunner:
        runner = FakeRunner(
            program,
            args,
            logger=logger,
            fail_to_start=program in self.missing_programs,
            auto_exit=self.auto_exit.get(program),
            script=self.scripts.get(program, ()),
        )
        self.runners.append(runner)
        return runner

    @property
    def last(self) -> FakeRunner:
        return self.runners[-1]

    def for_program(self, program: str) -> List[FakeRunner]:
        return [r for r in self.runners if r.program == program]


@pytest.fixture
def runner_factory():
    return FakeRunnerFactory()

