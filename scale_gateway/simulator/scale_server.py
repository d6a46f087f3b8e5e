"""
Simulated HF2211 scale served over TCP.

Answers weight, status, tare and preset tare commands with correctly framed,
LRC-bearing responses, so the gateway can run without physical hardware.
"""

import asyncio
import logging
from typing import List, Optional

from scale_gateway.config.models import SimulatorConfig
from scale_gateway.protocol.checksum import compute_lrc
from scale_gateway.protocol.encoder import (
    CLEAR_PRESET_TARE_CMD,
    COMMAND_CLASS,
    DEVICE_ADDRESS,
    ETX,
    FUNCTION_EXECUTE,
    FUNCTION_READ,
    REGISTER_STATUS,
    REGISTER_TARE,
    REGISTER_WEIGHT,
    STX,
    TERMINATOR,
    is_preset_tare_command,
)


logger = logging.getLogger(__name__)


def build_response(function: str, register: str, payload: str, corrupt_lrc: bool = False) -> bytes:
    """
    Build a response frame as the scale sends it.

    Args:
        function: Lower-case echoed function code ("r", "w", "e").
        register: 4-character register field.
        payload: ASCII payload; its length is declared in hex before it.
        corrupt_lrc: Emit a wrong checksum.

    Returns:
        STX + header + length + payload + LRC + ETX + CR LF.
    """
    body = f"{DEVICE_ADDRESS}{COMMAND_CLASS}{function}{register}{len(payload):02X}{payload}"
    frame = bytes([STX]) + body.encode("ascii")
    lrc = compute_lrc(frame, 1, len(frame))
    if corrupt_lrc:
        lrc = f"{int(lrc, 16) ^ 0xFF:02X}"
    return frame + lrc.encode("ascii") + bytes([ETX]) + TERMINATOR


def format_reading(prefix: str, value_kg: float) -> str:
    """Format an 11-character gross/tare field, e.g. "W    12.340"."""
    return f"{prefix}{value_kg:10.3f}"


class ScaleSimulator:
    """
    Asyncio TCP server emulating one scale.
    """

    def __init__(self, config: SimulatorConfig):
        """
        Initialize simulator.

        Args:
            config: Simulator configuration.
        """
        self.config = config
        self._server: Optional[asyncio.AbstractServer] = None
        self._port = config.port

        # Virtual hardware state
        self.gross_kg = config.gross_kg
        self.tare_kg = config.tare_kg
        self.preset_grams: Optional[int] = None
        self.status_code = config.status_code
        self.sealed = config.sealed

        self.frames_received: List[bytes] = []

        logger.info("ScaleSimulator initialized")

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def port(self) -> int:
        """Listening port (the bound port once started with port 0)."""
        return self._port

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def effective_tare_kg(self) -> float:
        if self.preset_grams is not None:
            return self.preset_grams / 1000.0
        return self.tare_kg

    async def start(self) -> None:
        """Start listening for gateway connections."""
        if self._server is not None:
            logger.warning("Simulator already running")
            return

        self._server = await asyncio.start_server(self._handle_client, self.config.host, self.config.port)
        self._port = self._server.sockets[0].getsockname()[1]
        logger.info(f"Simulated scale listening on {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop listening and close the server."""
        if self._server is None:
            return

        self._server.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("Simulated scale stopped")

    def status_flags(self) -> int:
        """Compute the 11-bit status flags for the current state."""
        net = self.gross_kg - self.effective_tare_kg
        flags = 0x004  # stable
        if abs(self.gross_kg) < 0.0005:
            flags |= 0x001
        if self.effective_tare_kg > 0:
            flags |= 0x002 | 0x008
        if self.preset_grams is not None:
            flags |= 0x010 | 0x400
        if net < 0:
            flags |= 0x100
        return flags

    def handle_frame(self, frame: bytes) -> Optional[bytes]:
        """
        Produce the reply to one command frame.

        Args:
            frame: Complete command frame.

        Returns:
            Response bytes, or None for frames the scale ignores.
        """
        if len(frame) < 12 or frame[0] != STX or ETX not in frame:
            logger.warning(f"[SIMULATOR] Ignoring malformed frame: {frame.hex()}")
            return None

        function = chr(frame[5])
        register = frame[6:10].decode("ascii", errors="replace")
        corrupt = self.config.inject_checksum_error

        if function == FUNCTION_READ and register == REGISTER_WEIGHT:
            payload = (
                format_reading("W", self.gross_kg)
                + format_reading("T", self.effective_tare_kg)
                + f"0{self.status_flags():03X}"
            )
            return build_response("r", register, payload, corrupt)

        if function == FUNCTION_READ and register == REGISTER_STATUS:
            return build_response("r", register, f"{self.status_code:02X}", corrupt)

        if function == FUNCTION_EXECUTE and register == REGISTER_TARE:
            return build_response("e", register, self._execute_tare(), corrupt)

        if is_preset_tare_command(frame):
            if frame == CLEAR_PRESET_TARE_CMD:
                result = self._clear_preset_tare()
            else:
                result = self._write_preset_tare(frame[12:frame.index(ETX)])
            return build_response("w", register, result, corrupt)

        logger.warning(f"[SIMULATOR] Unsupported command: {frame.hex()}")
        return None

    def _execute_tare(self) -> str:
        if self.sealed:
            return "1"
        self.tare_kg = self.gross_kg
        logger.info(f"[SIMULATOR] Tare executed at {self.tare_kg:.3f} kg")
        return "0"

    def _clear_preset_tare(self) -> str:
        if self.sealed:
            return "1"
        if self.preset_grams is None:
            return "5"
        self.preset_grams = None
        logger.info("[SIMULATOR] Preset tare cleared")
        return "0"

    def _write_preset_tare(self, digits: bytes) -> str:
        if self.sealed:
            return "1"
        try:
            grams = int(digits.decode("ascii"))
        except (UnicodeDecodeError, ValueError):
            return "2"
        if grams == self.preset_grams:
            return "5"
        self.preset_grams = grams
        logger.info(f"[SIMULATOR] Preset tare set to {grams} g")
        return "0"

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        logger.debug(f"[SIMULATOR] Connection from {peer}")
        buffer = bytearray()

        try:
            while True:
                chunk = await reader.read(1024)
                if not chunk:
                    break
                buffer.extend(chunk)

                while True:
                    end = buffer.find(TERMINATOR)
                    if end < 0:
                        break
                    frame = bytes(buffer[:end + len(TERMINATOR)])
                    del buffer[:end + len(TERMINATOR)]

                    self.frames_received.append(frame)
                    response = self.handle_frame(frame)
                    if response is not None:
                        await self._send(writer, response)

        except (ConnectionResetError, BrokenPipeError) as e:
            logger.debug(f"[SIMULATOR] Connection from {peer} dropped: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"[SIMULATOR] Error closing connection from {peer}: {e}")

    async def _send(self, writer: asyncio.StreamWriter, response: bytes) -> None:
        if self.config.response_latency_ms > 0:
            await asyncio.sleep(self.config.response_latency_ms / 1000.0)

        if self.config.split_replies:
            middle = len(response) // 2
            writer.write(response[:middle])
            await writer.drain()
            await asyncio.sleep(0.01)
            writer.write(response[middle:])
        else:
            writer.write(response)
        await writer.drain()
