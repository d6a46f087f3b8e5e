"""
Protocol message logger for debugging scale communication.

Captures TX/RX frames with timestamps and peer addresses.
"""

import threading
from collections import deque
from datetime import datetime
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, asdict

from scale_gateway.protocol.encoder import describe_command
from scale_gateway.protocol.outcomes import ErrorOutcome, SessionOutcome


@dataclass
class ProtocolMessage:
    """A single protocol message (TX, RX or ERR)."""
    timestamp: str
    direction: str  # "TX", "RX" or "ERR"
    peer: str
    raw_hex: str
    decoded: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class ProtocolLogger:
    """
    Thread-safe logger for protocol messages.

    Maintains a circular buffer of messages with configurable max size.
    """

    DEFAULT_MAX_MESSAGES = 500

    def __init__(self, max_messages: int = DEFAULT_MAX_MESSAGES):
        self._messages: deque = deque(maxlen=max_messages)
        self._lock = threading.Lock()
        self._enabled = True
        self._tx_count = 0
        self._rx_count = 0
        self._error_count = 0

    @property
    def enabled(self) -> bool:
        """Check if logging is enabled."""
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        """Enable or disable logging."""
        self._enabled = value

    def _timestamp(self) -> str:
        return datetime.now().isoformat(timespec='milliseconds')

    def log_tx(self, peer: str, frame: bytes) -> None:
        """
        Log a transmitted command frame.

        Args:
            peer: "host:port" of the scale.
            frame: Raw bytes sent.
        """
        if not self._enabled:
            return

        with self._lock:
            self._tx_count += 1
            self._messages.append(ProtocolMessage(
                timestamp=self._timestamp(),
                direction="TX",
                peer=peer,
                raw_hex=frame.hex().upper(),
                decoded={"description": describe_command(frame)},
            ))

    def log_rx(self, peer: str, data: bytes, outcome: Optional[SessionOutcome] = None) -> None:
        """
        Log received bytes and, when available, what they decoded to.

        Args:
            peer: "host:port" of the scale.
            data: Raw bytes received.
            outcome: Decoded outcome, None for a partial frame.
        """
        if not self._enabled:
            return

        with self._lock:
            self._rx_count += 1

            decoded = None
            error = None
            if isinstance(outcome, ErrorOutcome):
                error = outcome.error
                self._error_count += 1
            elif outcome is not None:
                decoded = {"type": outcome.type, "lrcValid": outcome.lrc_valid}
                if not outcome.lrc_valid:
                    error = "LRC mismatch"
            else:
                decoded = {"type": "partial", "length": len(data)}

            self._messages.append(ProtocolMessage(
                timestamp=self._timestamp(),
                direction="RX",
                peer=peer,
                raw_hex=data.hex().upper(),
                decoded=decoded,
                error=error,
            ))

    def log_error(self, peer: str, error_msg: str, data: bytes = b"") -> None:
        """
        Log an error message.

        Args:
            peer: "host:port" of the scale.
            error_msg: Error description.
            data: Optional raw bytes associated with error.
        """
        if not self._enabled:
            return

        with self._lock:
            self._error_count += 1
            self._messages.append(ProtocolMessage(
                timestamp=self._timestamp(),
                direction="ERR",
                peer=peer,
                raw_hex=data.hex().upper(),
                error=error_msg,
            ))

    def get_messages(self, limit: int = 100) -> List[dict]:
        """
        Get recent messages.

        Args:
            limit: Maximum number of messages to return.

        Returns:
            List of message dictionaries, oldest first (chronological order).
        """
        with self._lock:
            messages = list(self._messages)
            if len(messages) > limit:
                messages = messages[-limit:]
            return [m.to_dict() for m in messages]

    def get_stats(self) -> dict:
        """Get logging statistics."""
        with self._lock:
            return {
                "total_messages": len(self._messages),
                "tx_count": self._tx_count,
                "rx_count": self._rx_count,
                "error_count": self._error_count,
                "max_messages": self._messages.maxlen,
                "enabled": self._enabled,
            }

    def clear(self) -> None:
        """Clear all logged messages."""
        with self._lock:
            self._messages.clear()
            self._tx_count = 0
            self._rx_count = 0
            self._error_count = 0


# Global instance
_logger: Optional[ProtocolLogger] = None


def get_protocol_logger() -> ProtocolLogger:
    """Get or create the global protocol logger."""
    global _logger
    if _logger is None:
        _logger = ProtocolLogger()
    return _logger
