"""Process Runner - one external command with streamed output and a single outcome."""

import asyncio
import codecs
import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Sequence

STDOUT = "stdout"
STDERR = "stderr"


@dataclass(frozen=True)
class OutputChunk:
    """Text as it was read from one channel. Not aligned to line boundaries."""
    channel: str
    text: str


@dataclass(frozen=True)
class ProcessOutcome:
    """
    Terminal result of a ProcessRunner.

    Attributes:
        exit_code: Return code; negative when the process was killed by a signal.
        normal_exit: False when the process died from a signal or never started.
        failed_to_start: True when the executable could not be spawned.
        error_message: The spawn error, if any.
        stderr: Everything the process wrote to its error channel.
    """

    exit_code: int
    normal_exit: bool = True
    failed_to_start: bool = False
    error_message: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return not self.failed_to_start and self.normal_exit and self.exit_code == 0


class ProcessRunner:
    """
    Owns one child process.

    Output from stdout and stderr is delivered through `output()` as it is
    read. `wait()` returns the same ProcessOutcome every time it is called.
    Use as an async context manager: leaving the block kills a process that
    is still running, stops the readers and reaps the child.

    Exit is detected from the child's return code, not from the pipes
    closing. sshfs daemonizes on success and its ssh child keeps the stderr
    pipe open for the lifetime of the mount.
    """

    READ_SIZE = 4096
    EXIT_POLL_INTERVAL = 0.1
    DRAIN_TIMEOUT = 0.5

    def __init__(
        self,
        program: str,
        args: Sequence[str] = (),
        *,
        merge_output: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.program = program
        self.args: List[str] = list(args)
        self._merge_output = merge_output
        self._logger = logger or logging.getLogger(__name__)

        self._process: Optional[asyncio.subprocess.Process] = None
        self._queue: "asyncio.Queue[Optional[OutputChunk]]" = asyncio.Queue()
        self._reader_tasks: List[asyncio.Task] = []
        self._exit_task: Optional[asyncio.Task] = None
        self._open_streams = 0
        self._stderr_parts: List[str] = []
        self._outcome: Optional[ProcessOutcome] = None
        self._input_closed = False
        self._output_drained = False
        self._closed = False

    @property
    def command_line(self) -> List[str]:
        return [self.program, *self.args]

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def started(self) -> bool:
        return self._process is not None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def stderr_text(self) -> str:
        return "".join(self._stderr_parts)

    async def __aenter__(self) -> "ProcessRunner":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def start(self) -> bool:
        """
        Spawn the process.

        Returns:
            False if the executable could not be started. The outcome is then
            already available from `wait()` with `failed_to_start` set.
        """
        if self._process is not None or self._outcome is not None:
            raise RuntimeError(f"{self.program} has already been started")

        try:
            self._process = await asyncio.create_subprocess_exec(
                self.program,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT if self._merge_output else asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self._logger.error(f"Failed to start {self.program}: {e}")
            self._outcome = ProcessOutcome(
                exit_code=-1,
                normal_exit=False,
                failed_to_start=True,
                error_message=str(e),
            )
            self._queue.put_nowait(None)
            return False

        self._logger.debug(f"Started {self.program} (pid {self._process.pid})")

        streams = [(self._process.stdout, STDOUT)]
        if not self._merge_output:
            streams.append((self._process.stderr, STDERR))
        self._open_streams = len(streams)
        for stream, channel in streams:
            self._reader_tasks.append(asyncio.create_task(self._pump(stream, channel)))

        self._exit_task = asyncio.create_task(self._watch_exit())
        return True

    async def _pump(self, stream: asyncio.StreamReader, channel: str) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                data = await stream.read(self.READ_SIZE)
                if not data:
                    tail = decoder.decode(b"", final=True)
                    if tail:
                        self._deliver(channel, tail)
                    break
                text = decoder.decode(data)
                if text:
                    self._deliver(channel, text)
        finally:
            self._open_streams -= 1
            if self._open_streams == 0:
                self._queue.put_nowait(None)

    def _deliver(self, channel: str, text: str) -> None:
        if channel == STDERR:
            self._stderr_parts.append(text)
        self._queue.put_nowait(OutputChunk(channel=channel, text=text))

    async def _watch_exit(self) -> ProcessOutcome:
        process = self._process
        waiter = asyncio.ensure_future(process.wait())
        try:
            while process.returncode is None:
                await asyncio.wait({waiter}, timeout=self.EXIT_POLL_INTERVAL)
        finally:
            waiter.cancel()

        # Give the readers a moment to hand over what is still in the pipes
        if self._reader_tasks:
            _, pending = await asyncio.wait(self._reader_tasks, timeout=self.DRAIN_TIMEOUT)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        returncode = process.returncode
        self._outcome = ProcessOutcome(
            exit_code=returncode,
            normal_exit=returncode >= 0,
            stderr=self.stderr_text,
        )
        self._logger.debug(f"{self.program} exited with code {returncode}")
        return self._outcome

    async def output(self) -> AsyncIterator[OutputChunk]:
        """Yield output chunks in the order they were read until both channels end."""
        if self._process is None and self._outcome is None:
            raise RuntimeError(f"{self.program} has not been started")
        while not self._output_drained:
            chunk = await self._queue.get()
            if chunk is None:
                self._output_drained = True
                return
            yield chunk

    async def wait(self) -> ProcessOutcome:
        """Wait for the process to end and return its outcome."""
        if self._outcome is not None:
            return self._outcome
        if self._exit_task is None:
            raise RuntimeError(f"{self.program} has not been started")
        return await asyncio.shield(self._exit_task)

    async def write(self, text: str) -> bool:
        """Write to the process input. Returns False if input is no longer accepted."""
        if not self.is_running or self._input_closed or self._process.stdin is None:
            return False
        try:
            self._process.stdin.write(text.encode("utf-8"))
            await self._process.stdin.drain()
            return True
        except (BrokenPipeError, ConnectionResetError) as e:
            self._logger.warning(f"Cannot write to {self.program}: {e}")
            return False

    async def close_input(self) -> None:
        """Close the input channel. Further writes are refused."""
        if self._input_closed or self._process is None or self._process.stdin is None:
            self._input_closed = True
            return
        self._input_closed = True
        self._process.stdin.close()
        try:
            await self._process.stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            pass

    def terminate(self) -> None:
        """Ask the process to stop (SIGTERM)."""
        if self.is_running:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass

    def kill(self) -> None:
        if self.is_running:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass

    async def stop(self, grace: float = 2.0) -> Optional[ProcessOutcome]:
        """Terminate, then kill if the process is still alive after `grace` seconds."""
        if self._exit_task is None:
            return self._outcome
        self.terminate()
        try:
            return await asyncio.wait_for(asyncio.shield(self._exit_task), grace)
        except asyncio.TimeoutError:
            self._logger.warning(f"{self.program} ignored SIGTERM, killing it")
            self.kill()
            return await asyncio.shield(self._exit_task)

    async def aclose(self) -> None:
        """Release the process: kill it if needed, stop the readers and reap it."""
        if self._closed:
            return
        self._closed = True
        if self._process is None:
            return

        self.kill()
        if self._exit_task is not None:
            try:
                await asyncio.shield(self._exit_task)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._logger.error(f"Error while reaping {self.program}: {e}", exc_info=True)

        for task in self._reader_tasks:
            task.cancel()
        await asyncio.gather(*self._reader_tasks, return_exceptions=True)

        # A daemonized grandchild (the ssh started by sshfs) keeps stdout/stderr
        # open, so the pipes never reach EOF. Process has no public close; its
        # subprocess transport closes every pipe transport at once.
        transport = getattr(self._process, "_transport", None)
        if transport is not None:
            transport.close()
