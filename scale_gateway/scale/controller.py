"""
Scale controller.

One coroutine per logical scale operation. Each builds its command frame with the
protocol encoder and runs it through a fresh device session.
"""

import logging

from scale_gateway.config.models import SessionConfig
from scale_gateway.directory.interface import DeviceAddress
from scale_gateway.protocol.encoder import (
    encode_clear_preset_tare,
    encode_execute_tare,
    encode_preset_tare,
    encode_read_status,
    encode_read_weight,
)
from scale_gateway.protocol.outcomes import ErrorOutcome, ErrorReason, SessionOutcome
from scale_gateway.session.device_session import send_command
from scale_gateway.utils.exceptions import OutOfRangeValueError


logger = logging.getLogger(__name__)


class ScaleController:
    """
    Scale operations over per-command TCP sessions.

    Holds configuration only; no connection outlives a single call.
    """

    def __init__(self, config: SessionConfig):
        """
        Initialize scale controller.

        Args:
            config: Session timing configuration.
        """
        self.config = config
        logger.info(f"ScaleController initialized (timeout {config.timeout_ms} ms)")

    async def send(self, address: DeviceAddress, command: bytes) -> SessionOutcome:
        """Run one command frame against the scale at ``address``."""
        outcome = await send_command(
            address.host,
            address.port,
            command,
            timeout=self.config.timeout_seconds,
            read_chunk_size=self.config.read_chunk_size,
        )
        logger.info(f"{address}: {outcome.type}")
        return outcome

    async def read_weight(self, address: DeviceAddress) -> SessionOutcome:
        return await self.send(address, encode_read_weight())

    async def execute_tare(self, address: DeviceAddress) -> SessionOutcome:
        """
        Execute tare; on success the session also clears the preset tare and
        returns that outcome instead.
        """
        return await self.send(address, encode_execute_tare())

    async def read_status(self, address: DeviceAddress) -> SessionOutcome:
        return await self.send(address, encode_read_status())

    async def clear_preset_tare(self, address: DeviceAddress) -> SessionOutcome:
        return await self.send(address, encode_clear_preset_tare())

    async def set_preset_tare(self, address: DeviceAddress, value) -> SessionOutcome:
        """
        Store a preset tare on the scale.

        Args:
            address: Scale address.
            value: Preset tare in kg (0.0 - 30.0), number or numeric string.

        Returns:
            Outcome of the write. An out-of-range value yields an ErrorOutcome
            without any network activity.
        """
        try:
            command = encode_preset_tare(value)
        except OutOfRangeValueError as e:
            logger.warning(f"{address}: rejected preset tare {value!r}: {e}")
            return ErrorOutcome(error=str(e), reason=ErrorReason.OUT_OF_RANGE)

        return await self.send(address, command)
