"""
Abstract interface for device lookup.

The session layer only ever sees a host/port pair; device identity, names and
storage stay behind this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from scale_gateway.config.models import DeviceConfig


@dataclass(frozen=True)
class DeviceAddress:
    """Network address of a scale."""
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class DeviceDirectory(ABC):
    """Abstract base class for device directories."""

    @abstractmethod
    def list_devices(self) -> List[DeviceConfig]:
        """
        List all known devices.

        Returns:
            Device records in directory order.
        """
        pass

    @abstractmethod
    def get_device(self, identifier: str) -> Optional[DeviceConfig]:
        """
        Find a device by numeric id or by network address.

        Args:
            identifier: Device id (e.g. "3") or host (e.g. "192.168.1.40").

        Returns:
            Device record, or None if nothing matches.
        """
        pass

    def lookup(self, identifier: str) -> Optional[DeviceAddress]:
        """
        Resolve an identifier to the address a session should connect to.

        Args:
            identifier: Device id or host.

        Returns:
            DeviceAddress, or None if nothing matches.
        """
        device = self.get_device(identifier)
        if device is None:
            return None
        return DeviceAddress(host=device.host, port=device.port)
