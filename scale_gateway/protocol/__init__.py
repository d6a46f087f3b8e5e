"""
Protocol package for HF2211 scale communication.
"""

from scale_gateway.protocol.checksum import compute_lrc
from scale_gateway.protocol.encoder import (
    WEIGHT_CMD,
    TARE_CMD,
    STATUS_CMD,
    CLEAR_PRESET_TARE_CMD,
    encode_read_weight,
    encode_execute_tare,
    encode_read_status,
    encode_clear_preset_tare,
    encode_preset_tare,
)
from scale_gateway.protocol.parser import decode_response, is_structurally_plausible

__all__ = [
    "compute_lrc",
    "WEIGHT_CMD",
    "TARE_CMD",
    "STATUS_CMD",
    "CLEAR_PRESET_TARE_CMD",
    "encode_read_weight",
    "encode_execute_tare",
    "encode_read_status",
    "encode_clear_preset_tare",
    "encode_preset_tare",
    "decode_response",
    "is_structurally_plausible",
]
