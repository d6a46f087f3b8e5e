"""
Per-command TCP session with an HF2211 scale.

Every command opens a fresh connection, writes one frame, accumulates the reply
until it decodes, and closes. A frame that ends in ETX CR LF yet matches no
reply signature is returned as an error straight away. A successful execute-tare is followed by exactly one
clear-preset-tare frame on the same connection; its reply replaces the tare
outcome.

The deadline is wall-clock from the connection attempt and covers the chained
exchange, so a device trickling bytes can still be cut off mid-response.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from scale_gateway.protocol.encoder import CLEAR_PRESET_TARE_CMD, ETX, TARE_CMD, TERMINATOR
from scale_gateway.protocol.logger import get_protocol_logger
from scale_gateway.protocol.outcomes import ErrorOutcome, ErrorReason, SessionOutcome
from scale_gateway.protocol.parser import decode_response, is_structurally_plausible
from scale_gateway.utils.exceptions import ResponseTimeoutError, TransportError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 2.0
DEFAULT_READ_CHUNK_SIZE = 1024

FRAME_END = bytes([ETX]) + TERMINATOR


class SessionState(Enum):
    """Session state machine."""
    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_PRIMARY = "awaiting_primary"
    AWAITING_CHAINED = "awaiting_chained"  # Tare succeeded, clear preset sent
    CLOSED = "closed"
    ERROR = "error"


class DeviceSession:
    """
    One command exchange with one scale over one TCP connection.

    Sessions are single use and share nothing with each other, so any number
    may run concurrently against different scales.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    ):
        """
        Initialize session.

        Args:
            host: Scale IP address or hostname.
            port: Scale TCP port.
            timeout: Deadline in seconds, measured from the connection attempt.
            read_chunk_size: Maximum bytes per socket read.
        """
        self._host = host
        self._port = port
        self._timeout = timeout
        self._read_chunk_size = read_chunk_size

        self._state = SessionState.IDLE
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._buffer = bytearray()
        self._deadline = 0.0
        self._protocol_logger = get_protocol_logger()

    @property
    def peer(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def state(self) -> SessionState:
        return self._state

    async def run(self, command: bytes) -> SessionOutcome:
        """
        Send a command and return its outcome.

        Never raises for device or network failures; those come back as
        ErrorOutcome.

        Args:
            command: Complete command frame.

        Returns:
            Decoded outcome, or ErrorOutcome on transport error or timeout.
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError("DeviceSession instances are single use")

        self._deadline = asyncio.get_running_loop().time() + self._timeout

        try:
            outcome = await self._exchange(command)
            self._state = SessionState.CLOSED
            return outcome

        except ResponseTimeoutError as e:
            self._state = SessionState.ERROR
            logger.warning(f"{self.peer}: {e}")
            self._protocol_logger.log_error(self.peer, str(e), e.partial)
            return ErrorOutcome(
                error=str(e),
                raw_response=e.partial.hex() if e.partial else None,
                reason=ErrorReason.TIMEOUT,
            )

        except TransportError as e:
            self._state = SessionState.ERROR
            logger.error(f"{self.peer}: {e}")
            self._protocol_logger.log_error(self.peer, str(e), bytes(self._buffer))
            return ErrorOutcome(
                error=str(e),
                raw_response=self._buffer.hex() if self._buffer else None,
                reason=ErrorReason.TRANSPORT,
            )

        finally:
            await self._close()

    async def _exchange(self, command: bytes) -> SessionOutcome:
        """Drive connect, send, accumulate/decode and the tare chain."""
        await self._connect()

        self._state = SessionState.AWAITING_PRIMARY
        active_command = command
        await self._write(active_command)

        while True:
            chunk = await self._read()
            self._buffer.extend(chunk)

            if not is_structurally_plausible(self._buffer):
                self._protocol_logger.log_rx(self.peer, chunk)
                continue

            outcome = decode_response(bytes(self._buffer), active_command)
            if outcome.type == "error" and self._buffer.endswith(FRAME_END):
                # A terminated frame cannot become valid with more bytes
                logger.warning(f"{self.peer}: {outcome.error}")
                self._protocol_logger.log_rx(self.peer, chunk, outcome)
                if outcome.raw_response is None:
                    outcome = outcome.model_copy(update={"raw_response": self._buffer.hex()})
                return outcome

            if outcome.type == "error":
                # Not a complete recognizable frame yet, keep reading
                logger.debug(f"{self.peer}: not decodable yet ({outcome.error})")
                self._protocol_logger.log_rx(self.peer, chunk)
                continue

            self._protocol_logger.log_rx(self.peer, chunk, outcome)

            if (
                self._state is SessionState.AWAITING_PRIMARY
                and outcome.type == "tare"
                and outcome.success
                and command == TARE_CMD
            ):
                logger.info(f"{self.peer}: tare succeeded, sending clear preset tare")
                self._state = SessionState.AWAITING_CHAINED
                self._buffer.clear()
                active_command = CLEAR_PRESET_TARE_CMD
                await self._write(active_command)
                continue

            return outcome

    def _remaining(self) -> float:
        return self._deadline - asyncio.get_running_loop().time()

    def _timed_out(self) -> ResponseTimeoutError:
        raw = self._buffer.hex() if self._buffer else "none"
        return ResponseTimeoutError(
            f"No parsable response from scale, raw: {raw}", bytes(self._buffer)
        )

    async def _connect(self) -> None:
        self._state = SessionState.CONNECTING
        logger.debug(f"Connecting to scale at {self.peer}")

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(host=self._host, port=self._port),
                timeout=self._remaining(),
            )
        except asyncio.TimeoutError:
            raise ResponseTimeoutError(f"Timed out connecting to {self.peer}")
        except OSError as e:
            raise TransportError(str(e)) from e

    async def _write(self, frame: bytes) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"TX {self.peer}: {frame.hex(' ').upper()}")
        self._protocol_logger.log_tx(self.peer, frame)

        try:
            self._writer.write(frame)
            await asyncio.wait_for(self._writer.drain(), timeout=self._remaining())
        except asyncio.TimeoutError:
            raise self._timed_out()
        except OSError as e:
            raise TransportError(f"Write to {self.peer} failed: {e}") from e

    async def _read(self) -> bytes:
        remaining = self._remaining()
        if remaining <= 0:
            raise self._timed_out()

        try:
            chunk = await asyncio.wait_for(
                self._reader.read(self._read_chunk_size), timeout=remaining
            )
        except asyncio.TimeoutError:
            raise self._timed_out()
        except OSError as e:
            raise TransportError(f"Read from {self.peer} failed: {e}") from e

        if not chunk:
            raw = self._buffer.hex() if self._buffer else "none"
            raise TransportError(f"Connection closed by scale, no response parsed, raw: {raw}")

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"RX {self.peer}: {chunk.hex(' ').upper()}")
        return chunk

    async def _close(self) -> None:
        writer = self._writer
        if writer is None:
            return

        self._writer = None
        self._reader = None
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error closing connection to {self.peer}: {e}")


async def send_command(
    host: str,
    port: int,
    command: bytes,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
) -> SessionOutcome:
    """
    Send one command frame to a scale and return the normalized outcome.

    Args:
        host: Scale IP address or hostname.
        port: Scale TCP port.
        command: Command frame built by the protocol encoder.
        timeout: Deadline in seconds from the connection attempt.
        read_chunk_size: Maximum bytes per socket read.

    Returns:
        SessionOutcome; failures are ErrorOutcome, never exceptions.
    """
    session = DeviceSession(host, port, timeout=timeout, read_chunk_size=read_chunk_size)
    return await session.run(command)
