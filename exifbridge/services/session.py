"""Long-lived exiftool session speaking the ``-stay_open`` protocol."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from asyncio.subprocess import Process
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import psutil
from transitions import Machine

from ..config.settings import RuntimeConfig, load_runtime_config
from ..protocol import protocol
from ..protocol.decoding import ExifToolOutput, decode_response, strip_line_terminator, trim_end
from ..protocol.encoding import encode_request
from ..protocol.errors import (
    ProcessSpawnError,
    ProcessWriteError,
    ProtocolViolation,
    SessionClosedError,
    StreamReadError,
)
from ..protocol.sentinels import SentinelFactory, Sentinels
from ..transport.stream import ReadOutcome, ReadResult, read_until_terminator
from ..util import log_hexdump

logger = logging.getLogger("exifbridge.session")

# FSM states for one call cycle
SESSION_STATE_IDLE = "IDLE"
SESSION_STATE_WRITING = "WRITING"
SESSION_STATE_READING = "READING"
SESSION_STATE_DECODING = "DECODING"
SESSION_STATE_FAULTED = "FAULTED"
SESSION_STATE_CLOSED = "CLOSED"

_ACTIVE_STATES = [
    SESSION_STATE_IDLE,
    SESSION_STATE_WRITING,
    SESSION_STATE_READING,
    SESSION_STATE_DECODING,
]


class ExifToolSession:
    """Own one exiftool child and serialise calls to it.

    Only one call may be writing to or reading from the child at a time;
    an :class:`asyncio.Lock` covers the whole write/read/decode cycle, so
    responses come back in the order requests were issued.

    Any pipe or framing failure faults the session for good. The child is
    not restarted; callers that want a fresh one start a new session.
    """

    def __init__(
        self,
        process: Process,
        config: RuntimeConfig,
        *,
        sentinels: SentinelFactory | None = None,
    ) -> None:
        self.config = config
        self._process = process
        self._sentinels = sentinels or SentinelFactory()
        self._lock = asyncio.Lock()
        self.fault_reason: str | None = None
        self.fsm_state = SESSION_STATE_IDLE
        self._machine = Machine(
            model=self,
            states=[*_ACTIVE_STATES, SESSION_STATE_FAULTED, SESSION_STATE_CLOSED],
            initial=SESSION_STATE_IDLE,
            model_attribute="fsm_state",
            auto_transitions=False,
            ignore_invalid_triggers=True,
        )
        self._machine.add_transition("begin_write", SESSION_STATE_IDLE, SESSION_STATE_WRITING)
        self._machine.add_transition("begin_read", SESSION_STATE_WRITING, SESSION_STATE_READING)
        self._machine.add_transition("begin_decode", SESSION_STATE_READING, SESSION_STATE_DECODING)
        self._machine.add_transition("finish", SESSION_STATE_DECODING, SESSION_STATE_IDLE)
        self._machine.add_transition("fault", _ACTIVE_STATES, SESSION_STATE_FAULTED)
        self._machine.add_transition("shutdown", "*", SESSION_STATE_CLOSED)

    if TYPE_CHECKING:
        def trigger(self, event: str, *args: Any, **kwargs: Any) -> bool:
            """FSM trigger placeholder."""
            ...

    @classmethod
    async def start(
        cls,
        config: RuntimeConfig | None = None,
        *,
        sentinels: SentinelFactory | None = None,
    ) -> "ExifToolSession":
        """Spawn exiftool in batch mode and wrap it in a session."""
        if config is None:
            config = load_runtime_config()
        try:
            process = await asyncio.create_subprocess_exec(
                config.executable,
                *config.startup_args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            raise ProcessSpawnError(f"Failed to start '{config.executable}': {exc}") from exc

        logger.info(
            "Started '%s' in stay_open mode (pid %s)",
            config.executable,
            getattr(process, "pid", None),
        )
        return cls(process, config, sentinels=sentinels)

    @property
    def pid(self) -> int | None:
        return getattr(self._process, "pid", None)

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def is_closed(self) -> bool:
        return self.fsm_state == SESSION_STATE_CLOSED

    @property
    def is_faulted(self) -> bool:
        return self.fsm_state == SESSION_STATE_FAULTED

    async def execute(self, params: Iterable[str]) -> ExifToolOutput:
        """Run one exiftool command and return its decoded result.

        Raises:
            ProtocolViolation: a parameter contains a line break, or the
                response framing is broken.
            ProcessWriteError: the request could not be written.
            StreamReadError: a pipe ended, failed or timed out before its
                terminator arrived.
            SessionClosedError: the session is closed or already faulted.
        """
        args = list(params)
        async with self._lock:
            self._ensure_usable()
            sentinels = self._sentinels.issue()
            # Encoding problems are caught before anything reaches the child.
            message = encode_request(args, sentinels)
            logger.debug("Call %s: %d argument(s)", sentinels.call_id, len(args))

            try:
                self.trigger("begin_write")
                await self._write(message)
                self.trigger("begin_read")
                raw_output, raw_error = await self._read_response(sentinels)
                self.trigger("begin_decode")
                result = decode_response(
                    strip_line_terminator(trim_end(raw_output)),
                    strip_line_terminator(trim_end(raw_error)),
                    sentinels,
                )
            except ProtocolViolation as exc:
                self._fault(f"call {sentinels.call_id}: {exc.reason}")
                raise
            except asyncio.CancelledError:
                self._fault(f"call {sentinels.call_id} cancelled mid-cycle")
                raise
            except BaseException as exc:
                if not self.is_faulted:
                    self._fault(f"call {sentinels.call_id}: unexpected {exc!r}")
                raise
            self.trigger("finish")

        logger.debug(
            "Call %s finished with status %d (%d output bytes, %d error bytes)",
            sentinels.call_id,
            result.status,
            len(result.output),
            len(result.error),
        )
        return result

    async def _write(self, message: bytes) -> None:
        stdin = self._process.stdin
        if stdin is None:
            self._fault("stdin pipe is not available")
            raise ProcessWriteError("exiftool stdin pipe is not available")
        try:
            stdin.write(message)
            await stdin.drain()
        except (OSError, RuntimeError) as exc:
            self._fault(f"write failed: {exc}")
            raise ProcessWriteError(f"Failed to write request to exiftool: {exc}") from exc

    async def _read_response(self, sentinels: Sentinels) -> tuple[bytes, bytes]:
        stdout = self._process.stdout
        stderr = self._process.stderr
        if stdout is None or stderr is None:
            self._fault("output pipes are not available")
            raise StreamReadError(
                "exiftool output pipes are not available",
                outcome=ReadOutcome.ERROR,
            )

        async with asyncio.TaskGroup() as tg:
            stdout_task = tg.create_task(self._read_pipe(stdout, sentinels.ready))
            stderr_task = tg.create_task(self._read_pipe(stderr, sentinels.err_post))

        for name, result in (("stdout", stdout_task.result()), ("stderr", stderr_task.result())):
            log_hexdump(logger, logging.DEBUG, f"call {sentinels.call_id} {name}", result.data)
            if not result.found:
                self._fault(f"{name} {result.outcome} before terminator")
                raise StreamReadError(
                    f"exiftool {name} stopped before its terminator ({result.outcome})",
                    outcome=result.outcome,
                    partial=result.data,
                )

        return stdout_task.result().data, stderr_task.result().data

    async def _read_pipe(self, reader: asyncio.StreamReader, terminator: str) -> ReadResult:
        return await read_until_terminator(
            reader,
            terminator,
            chunk_size=self.config.chunk_size,
            poll_interval=self.config.poll_interval,
            timeout=self.config.read_timeout,
            consume_line_terminator=True,
        )

    def _ensure_usable(self) -> None:
        if self.fsm_state == SESSION_STATE_CLOSED:
            raise SessionClosedError("exiftool session is closed")
        if self.fsm_state == SESSION_STATE_FAULTED:
            raise SessionClosedError(f"exiftool session is faulted: {self.fault_reason}")

    def _fault(self, reason: str) -> None:
        self.fault_reason = reason
        self.trigger("fault")
        logger.error("exiftool session faulted: %s", reason)

    async def close(self, timeout: float | None = None) -> int | None:
        """Ask exiftool to leave batch mode and wait for it to exit.

        The process tree is terminated if it is still alive after *timeout*
        seconds (``config.close_timeout`` by default). Safe to call twice.
        """
        if timeout is None:
            timeout = self.config.close_timeout

        async with self._lock:
            if self.is_closed:
                return self._process.returncode
            self.trigger("shutdown")
            proc = self._process
            if proc.returncode is None:
                await self._request_exit(proc)
                try:
                    async with asyncio.timeout(timeout):
                        await proc.wait()
                except TimeoutError:
                    logger.warning(
                        "exiftool pid %s did not exit within %.1fs; terminating",
                        self.pid,
                        timeout,
                    )
                    await self._terminate_process_tree(proc)
                    await proc.wait()

        logger.info("exiftool pid %s exited with code %s", self.pid, proc.returncode)
        return proc.returncode

    async def _request_exit(self, proc: Process) -> None:
        stdin = proc.stdin
        if stdin is None or stdin.is_closing():
            return
        try:
            stdin.write(protocol.STAY_OPEN_SHUTDOWN)
            await stdin.drain()
            stdin.close()
        except (OSError, RuntimeError):
            logger.debug("Failed to send stay_open shutdown", exc_info=True)

    async def _terminate_process_tree(self, proc: Process) -> None:
        if proc.returncode is not None:
            return
        pid_value = getattr(proc, "pid", None)
        if pid_value is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            return
        await asyncio.to_thread(self._kill_process_tree_sync, int(pid_value))
        try:
            proc.kill()
        except ProcessLookupError:
            pass

    @staticmethod
    def _kill_process_tree_sync(pid: int) -> None:
        try:
            process = psutil.Process(pid)
        except psutil.Error:
            return
        try:
            children = process.children(recursive=True)
        except psutil.Error:
            children = []
        targets = children + [process]

        for target in targets:
            try:
                target.terminate()
            except psutil.Error:
                continue

        try:
            _, alive = psutil.wait_procs(targets, timeout=1.0)
        except psutil.Error:
            alive = targets
        for target in alive:
            try:
                target.kill()
            except psutil.Error:
                continue

    async def __aenter__(self) -> "ExifToolSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


@asynccontextmanager
async def open_session(
    config: RuntimeConfig | None = None,
    *,
    sentinels: SentinelFactory | None = None,
) -> AsyncIterator[ExifToolSession]:
    """Start a session and close it when the block exits."""
    session = await ExifToolSession.start(config, sentinels=sentinels)
    async with session:
        yield session


__all__ = [
    "ExifToolSession",
    "open_session",
    "SESSION_STATE_CLOSED",
    "SESSION_STATE_DECODING",
    "SESSION_STATE_FAULTED",
    "SESSION_STATE_IDLE",
    "SESSION_STATE_READING",
    "SESSION_STATE_WRITING",
]
