# tests/test_device_session.py

import asyncio
import socket

import pytest

from scale_gateway.protocol.encoder import CLEAR_PRESET_TARE_CMD, STATUS_CMD, TARE_CMD, WEIGHT_CMD
from scale_gateway.protocol.outcomes import ErrorReason
from scale_gateway.session.device_session import DeviceSession, SessionState, send_command
from scale_gateway.simulator.scale_server import build_response, format_reading
from tests.scripted_scale import CLOSE, ScriptedScale

# --- Test Data ---

WEIGHT_REPLY = build_response("r", "0107", format_reading("W", 12.34) + format_reading("T", 0.0) + "0004")
STATUS_REPLY = build_response("r", "0100", "00")
TARE_OK = build_response("e", "1103", "0")
TARE_SEALED = build_response("e", "1103", "1")
CLEAR_OK = build_response("w", "0108", "0")

SHORT_TIMEOUT = 0.3


def replies(mapping):
    """Responder answering each known frame from a dict, ignoring the rest."""
    return lambda frame: mapping.get(frame)


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


# 1. Single command exchanges

@pytest.mark.asyncio
async def test_weight_read():
    async with ScriptedScale(replies({WEIGHT_CMD: WEIGHT_REPLY})) as scale:
        session = DeviceSession("127.0.0.1", scale.port, timeout=1.0)
        outcome = await session.run(WEIGHT_CMD)

        assert outcome.type == "weight"
        assert outcome.weight == 12.34
        assert outcome.lrc_valid is True
        assert scale.frames == [WEIGHT_CMD]
        assert session.state is SessionState.CLOSED
        assert await scale.wait_closed()


@pytest.mark.asyncio
async def test_reply_split_across_reads():
    chunks = [WEIGHT_REPLY[:8], WEIGHT_REPLY[8:25], WEIGHT_REPLY[25:]]
    async with ScriptedScale(replies({WEIGHT_CMD: chunks})) as scale:
        outcome = await send_command("127.0.0.1", scale.port, WEIGHT_CMD, timeout=1.0)

        assert outcome.type == "weight"
        assert outcome.weight == 12.34


@pytest.mark.asyncio
async def test_small_read_chunks():
    async with ScriptedScale(replies({STATUS_CMD: STATUS_REPLY})) as scale:
        outcome = await send_command("127.0.0.1", scale.port, STATUS_CMD, timeout=1.0, read_chunk_size=4)

        assert outcome.type == "status"
        assert outcome.status.code == 0


@pytest.mark.asyncio
async def test_checksum_mismatch_does_not_fail_the_session():
    corrupted = build_response("r", "0100", "07", corrupt_lrc=True)
    async with ScriptedScale(replies({STATUS_CMD: corrupted})) as scale:
        outcome = await send_command("127.0.0.1", scale.port, STATUS_CMD, timeout=1.0)

        assert outcome.type == "status"
        assert outcome.status.code == 0x07
        assert outcome.lrc_valid is False


# 2. Tare chain

@pytest.mark.asyncio
async def test_successful_tare_clears_preset_on_same_connection():
    async with ScriptedScale(replies({TARE_CMD: TARE_OK, CLEAR_PRESET_TARE_CMD: CLEAR_OK})) as scale:
        session = DeviceSession("127.0.0.1", scale.port, timeout=1.0)
        outcome = await session.run(TARE_CMD)

        assert outcome.type == "clearPreset"
        assert outcome.success is True
        assert outcome.message == "Preset tare cleared successfully"
        assert scale.frames == [TARE_CMD, CLEAR_PRESET_TARE_CMD]
        assert scale.connections == 1
        assert session.state is SessionState.CLOSED


@pytest.mark.asyncio
async def test_chained_clear_reports_already_clear():
    already = build_response("w", "0108", "5")
    async with ScriptedScale(replies({TARE_CMD: TARE_OK, CLEAR_PRESET_TARE_CMD: already})) as scale:
        outcome = await send_command("127.0.0.1", scale.port, TARE_CMD, timeout=1.0)

        assert outcome.type == "clearPreset"
        assert outcome.success is False
        assert outcome.message == "clearPreset already set/clear or firmware quirk"


@pytest.mark.asyncio
async def test_failed_tare_is_not_chained():
    async with ScriptedScale(replies({TARE_CMD: TARE_SEALED})) as scale:
        outcome = await send_command("127.0.0.1", scale.port, TARE_CMD, timeout=1.0)

        assert outcome.type == "tare"
        assert outcome.success is False
        assert outcome.message == "tare failed: Sealing switch locked"
        assert await scale.wait_closed()
        assert scale.frames == [TARE_CMD]


@pytest.mark.asyncio
async def test_chained_clear_without_reply_times_out():
    async with ScriptedScale(replies({TARE_CMD: TARE_OK})) as scale:
        outcome = await send_command("127.0.0.1", scale.port, TARE_CMD, timeout=SHORT_TIMEOUT)

        assert outcome.type == "error"
        assert outcome.reason is ErrorReason.TIMEOUT
        assert scale.frames == [TARE_CMD, CLEAR_PRESET_TARE_CMD]


# 3. Failures

@pytest.mark.asyncio
async def test_silent_scale_times_out_and_closes():
    async with ScriptedScale(lambda frame: None) as scale:
        session = DeviceSession("127.0.0.1", scale.port, timeout=SHORT_TIMEOUT)
        loop = asyncio.get_running_loop()
        started = loop.time()
        outcome = await session.run(WEIGHT_CMD)
        elapsed = loop.time() - started

        assert outcome.type == "error"
        assert outcome.reason is ErrorReason.TIMEOUT
        assert outcome.error == "No parsable response from scale, raw: none"
        assert outcome.raw_response is None
        assert "rawResponse" not in outcome.to_dict()
        assert elapsed < SHORT_TIMEOUT + 0.5
        assert session.state is SessionState.ERROR
        assert await scale.wait_closed()


@pytest.mark.asyncio
async def test_timeout_keeps_partial_bytes():
    partial = WEIGHT_REPLY[:20]
    async with ScriptedScale(replies({WEIGHT_CMD: partial})) as scale:
        outcome = await send_command("127.0.0.1", scale.port, WEIGHT_CMD, timeout=SHORT_TIMEOUT)

        assert outcome.type == "error"
        assert outcome.raw_response == partial.hex()
        assert outcome.error.endswith(partial.hex())


@pytest.mark.asyncio
async def test_unrecognized_reply_is_returned_without_waiting():
    garbage = b"\x0200FFx9999000000\x03\r\n"
    async with ScriptedScale(replies({WEIGHT_CMD: garbage})) as scale:
        loop = asyncio.get_running_loop()
        started = loop.time()
        outcome = await send_command("127.0.0.1", scale.port, WEIGHT_CMD, timeout=1.5)

        assert loop.time() - started < 0.75
        assert outcome.type == "error"
        assert outcome.reason is ErrorReason.UNRECOGNIZED
        assert outcome.error == "Invalid or unrecognized response"
        assert outcome.raw_response == garbage.hex()
        assert await scale.wait_closed()


@pytest.mark.asyncio
async def test_unexpected_tare_reply_is_reported():
    wrong_register = build_response("e", "9999", "0")
    async with ScriptedScale(replies({TARE_CMD: wrong_register})) as scale:
        loop = asyncio.get_running_loop()
        started = loop.time()
        outcome = await send_command("127.0.0.1", scale.port, TARE_CMD, timeout=1.5)

        assert loop.time() - started < 0.75
        assert outcome.reason is ErrorReason.UNRECOGNIZED
        assert outcome.error == "Unexpected response: function=execute, address=9999"
        assert outcome.raw_response == wrong_register.hex()
        assert scale.frames == [TARE_CMD]


@pytest.mark.asyncio
async def test_incomplete_status_reply_keeps_raw_bytes():
    truncated = b"\x0200FFr010008" + b"07" + b"\x03\r\n"
    async with ScriptedScale(replies({STATUS_CMD: truncated})) as scale:
        outcome = await send_command("127.0.0.1", scale.port, STATUS_CMD, timeout=1.5)

        assert outcome.reason is ErrorReason.INCOMPLETE
        assert outcome.error == "Incomplete status response"
        assert outcome.raw_response == truncated.hex()


@pytest.mark.asyncio
async def test_connection_refused():
    loop = asyncio.get_running_loop()
    started = loop.time()
    outcome = await send_command("127.0.0.1", unused_port(), WEIGHT_CMD, timeout=1.0)

    assert outcome.type == "error"
    assert outcome.reason is ErrorReason.TRANSPORT
    assert loop.time() - started < 1.0


@pytest.mark.asyncio
async def test_scale_closes_without_reply():
    async with ScriptedScale(lambda frame: CLOSE) as scale:
        outcome = await send_command("127.0.0.1", scale.port, WEIGHT_CMD, timeout=1.0)

        assert outcome.type == "error"
        assert outcome.reason is ErrorReason.TRANSPORT
        assert scale.frames == [WEIGHT_CMD]


# 4. Lifecycle

@pytest.mark.asyncio
async def test_session_is_single_use():
    async with ScriptedScale(replies({STATUS_CMD: STATUS_REPLY})) as scale:
        session = DeviceSession("127.0.0.1", scale.port, timeout=1.0)
        await session.run(STATUS_CMD)

        with pytest.raises(RuntimeError):
            await session.run(STATUS_CMD)


@pytest.mark.asyncio
async def test_concurrent_sessions_are_independent():
    async with ScriptedScale(replies({WEIGHT_CMD: WEIGHT_REPLY, STATUS_CMD: STATUS_REPLY})) as scale:
        outcomes = await asyncio.gather(
            send_command("127.0.0.1", scale.port, WEIGHT_CMD, timeout=1.0),
            send_command("127.0.0.1", scale.port, STATUS_CMD, timeout=1.0),
            send_command("127.0.0.1", scale.port, WEIGHT_CMD, timeout=1.0),
        )

        assert [o.type for o in outcomes] == ["weight", "status", "weight"]
        assert scale.connections == 3


def test_peer_and_initial_state():
    session = DeviceSession("192.168.1.40", 4001)
    assert session.peer == "192.168.1.40:4001"
    assert session.state is SessionState.IDLE
