"""
Read-only device directory backed by the ``devices`` section of config.json.
"""

import logging
from typing import Iterable, List, Optional

from scale_gateway.config.models import DeviceConfig
from scale_gateway.directory.interface import DeviceDirectory


logger = logging.getLogger(__name__)


class StaticDeviceDirectory(DeviceDirectory):
    """Device directory over a fixed list of configured scales."""

    def __init__(self, devices: Iterable[DeviceConfig]):
        self._devices = list(devices)
        logger.info(f"Device directory loaded with {len(self._devices)} devices")

    def list_devices(self) -> List[DeviceConfig]:
        return list(self._devices)

    def get_device(self, identifier: str) -> Optional[DeviceConfig]:
        key = str(identifier).strip()

        # Host match takes precedence over id
        for device in self._devices:
            if device.host == key:
                return device

        if key.isdigit():
            for device in self._devices:
                if device.id == int(key):
                    return device

        logger.debug(f"No device matches {key!r}")
        return None
