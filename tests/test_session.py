"""Tests for the exiftool session call cycle."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from exifbridge.config.settings import RuntimeConfig
from exifbridge.protocol.errors import (
    ProcessSpawnError,
    ProcessWriteError,
    ProtocolViolation,
    SessionClosedError,
    StreamReadError,
)
from exifbridge.protocol.sentinels import SentinelFactory
from exifbridge.services.session import (
    SESSION_STATE_CLOSED,
    SESSION_STATE_FAULTED,
    SESSION_STATE_IDLE,
    ExifToolSession,
    open_session,
)
from exifbridge.transport.stream import ReadOutcome
from tests.conftest import TEST_NONCE
from tests.mocks import FakeExifToolProcess


@pytest.mark.asyncio
async def test_execute_round_trip(session: ExifToolSession, fake_process: FakeExifToolProcess) -> None:
    result = await session.execute(["-Model", "/tmp/a.jpg"])

    assert result.status == 0
    assert result.output == b"-Model\n/tmp/a.jpg\n"
    assert result.error == b""
    assert fake_process.calls == [["-Model", "/tmp/a.jpg"]]
    assert session.fsm_state == SESSION_STATE_IDLE


@pytest.mark.asyncio
async def test_execute_writes_framed_request(session: ExifToolSession, fake_process: FakeExifToolProcess) -> None:
    await session.execute(["-ver"])

    call_id = f"{TEST_NONCE}1"
    assert bytes(fake_process.stdin.written) == (
        f"-ver\n-echo4\n=${{status}}=post{call_id}\n-execute{call_id}\n".encode("ascii")
    )


@pytest.mark.asyncio
async def test_execute_reports_status_and_stderr(
    session: ExifToolSession,
    fake_process: FakeExifToolProcess,
) -> None:
    fake_process.handler = lambda args: (b"", b"Warning: [minor] Bad format\n", 1)

    result = await session.execute(["/missing.jpg"])

    assert result.status == 1
    assert result.error == b"Warning: [minor] Bad format\n"
    assert result.output == b""
    assert not result.ok


@pytest.mark.asyncio
async def test_each_call_uses_fresh_markers(session: ExifToolSession, fake_process: FakeExifToolProcess) -> None:
    await session.execute(["a"])
    await session.execute(["b"])

    written = bytes(fake_process.stdin.written)
    assert f"-execute{TEST_NONCE}1\n".encode() in written
    assert f"-execute{TEST_NONCE}2\n".encode() in written


@pytest.mark.asyncio
async def test_same_call_twice_is_idempotent(session: ExifToolSession) -> None:
    first = await session.execute(["-j", "x.jpg"])
    second = await session.execute(["-j", "x.jpg"])

    assert first == second


@pytest.mark.asyncio
async def test_concurrent_calls_are_serialised_in_order(
    session: ExifToolSession,
    fake_process: FakeExifToolProcess,
) -> None:
    results = await asyncio.gather(*(session.execute([f"file{i}.jpg"]) for i in range(10)))

    assert [r.output for r in results] == [f"file{i}.jpg\n".encode() for i in range(10)]
    assert fake_process.calls == [[f"file{i}.jpg"] for i in range(10)]


@pytest.mark.asyncio
async def test_line_break_in_param_does_not_reach_child(
    session: ExifToolSession,
    fake_process: FakeExifToolProcess,
) -> None:
    with pytest.raises(ProtocolViolation):
        await session.execute(["bad\nparam"])

    assert fake_process.stdin.written == bytearray()
    assert session.fsm_state == SESSION_STATE_IDLE
    assert (await session.execute(["ok"])).output == b"ok\n"


@pytest.mark.asyncio
async def test_write_failure_faults_session(session: ExifToolSession, fake_process: FakeExifToolProcess) -> None:
    fake_process.broken_pipe = True

    with pytest.raises(ProcessWriteError):
        await session.execute(["-ver"])

    assert session.is_faulted
    assert session.fsm_state == SESSION_STATE_FAULTED
    with pytest.raises(SessionClosedError):
        await session.execute(["-ver"])


@pytest.mark.asyncio
async def test_child_exit_mid_call_raises_stream_error(runtime_config: RuntimeConfig) -> None:
    process = FakeExifToolProcess()

    def _die(args: list[str]) -> tuple[bytes, bytes, int]:
        process.crash(1)
        return b"", b"", 0

    process.handler = _die
    session = ExifToolSession(process, runtime_config)  # type: ignore[arg-type]

    with pytest.raises(StreamReadError) as excinfo:
        await session.execute(["-ver"])

    assert excinfo.value.outcome is ReadOutcome.EOF
    assert session.is_faulted


@pytest.mark.asyncio
async def test_read_timeout_faults_session(fake_process: FakeExifToolProcess) -> None:
    config = RuntimeConfig(poll_interval=0.0, read_timeout=0.05)
    session = ExifToolSession(fake_process, config)  # type: ignore[arg-type]
    # Swallow the response so nothing ever reaches stdout/stderr.
    fake_process.receive = lambda data: None  # type: ignore[method-assign]

    with pytest.raises(StreamReadError) as excinfo:
        await session.execute(["-ver"])

    assert excinfo.value.outcome is ReadOutcome.TIMEOUT
    assert session.is_faulted


@pytest.mark.asyncio
async def test_malformed_status_faults_session(
    session: ExifToolSession,
    fake_process: FakeExifToolProcess,
) -> None:
    def _respond_without_status(call_id: str) -> None:
        fake_process._pending = []
        fake_process.stdout.feed_data(f"{{ready{call_id}}}\n".encode())
        fake_process.stderr.feed_data(f"post{call_id}\n".encode())

    fake_process._respond = _respond_without_status  # type: ignore[method-assign]

    with pytest.raises(ProtocolViolation) as excinfo:
        await session.execute(["-ver"])

    assert excinfo.value.reason == "missing status delimiter"
    assert session.is_faulted
    assert "missing status delimiter" in (session.fault_reason or "")


@pytest.mark.asyncio
async def test_marker_on_chunk_boundary_does_not_leak_into_next_call(fake_process: FakeExifToolProcess) -> None:
    # "ab\n" plus "{ready4242421}" is exactly one 17 byte chunk.
    config = RuntimeConfig(poll_interval=0.0, read_timeout=2.0, chunk_size=17)
    session = ExifToolSession(
        fake_process,  # type: ignore[arg-type]
        config,
        sentinels=SentinelFactory(nonce=TEST_NONCE),
    )

    first = await session.execute(["ab"])
    second = await session.execute(["x"])

    assert first.output == b"ab\n"
    assert second.output == b"x\n"
    assert second.error == b""


@pytest.mark.asyncio
async def test_unexpected_reader_failure_faults_session(session: ExifToolSession) -> None:
    with patch(
        "exifbridge.services.session.read_until_terminator",
        AsyncMock(side_effect=LookupError("reader bug")),
    ):
        with pytest.raises(ExceptionGroup):
            await session.execute(["-ver"])

    assert session.is_faulted
    assert "LookupError" in (session.fault_reason or "")
    with pytest.raises(SessionClosedError):
        await session.execute(["-ver"])


@pytest.mark.asyncio
async def test_close_sends_stay_open_false(session: ExifToolSession, fake_process: FakeExifToolProcess) -> None:
    code = await session.close()

    assert code == 0
    assert fake_process.shutdown_requested
    assert fake_process.stdin.closed
    assert session.fsm_state == SESSION_STATE_CLOSED
    assert await session.close() == 0
    with pytest.raises(SessionClosedError):
        await session.execute(["-ver"])


@pytest.mark.asyncio
async def test_close_kills_unresponsive_child(runtime_config: RuntimeConfig) -> None:
    process = FakeExifToolProcess(exit_on_shutdown=False)
    session = ExifToolSession(process, runtime_config)  # type: ignore[arg-type]

    await session.close(timeout=0.05)

    assert process.killed
    assert session.returncode == -9


@pytest.mark.asyncio
async def test_close_after_fault(session: ExifToolSession, fake_process: FakeExifToolProcess) -> None:
    fake_process.broken_pipe = True
    with pytest.raises(ProcessWriteError):
        await session.execute(["-ver"])

    await session.close(timeout=0.05)

    assert session.is_closed


@pytest.mark.asyncio
async def test_context_manager_closes(session: ExifToolSession, fake_process: FakeExifToolProcess) -> None:
    async with session as active:
        await active.execute(["-ver"])

    assert session.is_closed
    assert fake_process.returncode == 0


@pytest.mark.asyncio
async def test_start_spawns_stay_open_child() -> None:
    process = FakeExifToolProcess()
    spawn = AsyncMock(return_value=process)
    config = RuntimeConfig(executable="/opt/exiftool/exiftool", common_args=("-charset", "filename=utf8"))

    with patch("asyncio.create_subprocess_exec", spawn):
        session = await ExifToolSession.start(config, sentinels=SentinelFactory(nonce=1))

    args = spawn.await_args.args
    assert args == (
        "/opt/exiftool/exiftool",
        "-stay_open",
        "True",
        "-@",
        "-",
        "-common_args",
        "-charset",
        "filename=utf8",
    )
    assert (await session.execute(["x"])).output == b"x\n"


@pytest.mark.asyncio
async def test_start_reads_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXIFTOOL", "/usr/local/bin/exiftool")
    spawn = AsyncMock(return_value=FakeExifToolProcess())

    with patch("asyncio.create_subprocess_exec", spawn):
        session = await ExifToolSession.start()

    assert spawn.await_args.args[0] == "/usr/local/bin/exiftool"
    assert session.config.executable == "/usr/local/bin/exiftool"


@pytest.mark.asyncio
async def test_start_missing_executable_raises_spawn_error(tmp_path) -> None:
    config = RuntimeConfig(executable=str(tmp_path / "no-such-exiftool"))

    with pytest.raises(ProcessSpawnError):
        await ExifToolSession.start(config)


@pytest.mark.asyncio
async def test_open_session_closes_on_exit() -> None:
    process = FakeExifToolProcess()

    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
        async with open_session(RuntimeConfig(poll_interval=0.0)) as session:
            result = await session.execute(["-ver"])

    assert result.output == b"-ver\n"
    assert session.is_closed
    assert process.shutdown_requested
