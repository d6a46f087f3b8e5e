"""
Command encoding for the HF2211 scale protocol.

Frame layout: STX + address "00" + class "FF" + function + register + data + ETX + CR LF.
Commands carry no checksum; only responses do.
"""

import math

from scale_gateway.utils.exceptions import OutOfRangeValueError


STX = 0x02
ETX = 0x03
TERMINATOR = b"\r\n"

DEVICE_ADDRESS = "00"
COMMAND_CLASS = "FF"

FUNCTION_READ = "R"
FUNCTION_WRITE = "W"
FUNCTION_EXECUTE = "E"

REGISTER_WEIGHT = "0107"
REGISTER_STATUS = "0100"
REGISTER_TARE = "1103"
REGISTER_PRESET_TARE = "0808"

# Preset tare writes address their register through the "01" bank prefix
PRESET_TARE_BANK = "01"
PRESET_TARE_SIGNATURE = (FUNCTION_WRITE + PRESET_TARE_BANK + REGISTER_PRESET_TARE).encode("ascii")

MAX_PRESET_TARE_GRAMS = 30000


def build_command(function: str, register: str, data: str) -> bytes:
    """
    Build a complete command frame.

    Args:
        function: One-letter function code ("R", "W" or "E").
        register: Register field (4 hex digits, bank-prefixed for preset tare).
        data: ASCII digit data field.

    Returns:
        Frame bytes including start/end markers and line terminator.

    Example:
        >>> build_command("R", "0107", "0000")
        b'\\x0200FFR01070000\\x03\\r\\n'
    """
    body = f"{DEVICE_ADDRESS}{COMMAND_CLASS}{function}{register}{data}"
    return bytes([STX]) + body.encode("ascii") + bytes([ETX]) + TERMINATOR


WEIGHT_CMD = build_command(FUNCTION_READ, REGISTER_WEIGHT, "0000")
TARE_CMD = build_command(FUNCTION_EXECUTE, REGISTER_TARE, "0000")
STATUS_CMD = build_command(FUNCTION_READ, REGISTER_STATUS, "0000")
CLEAR_PRESET_TARE_CMD = build_command(
    FUNCTION_WRITE, PRESET_TARE_BANK + REGISTER_PRESET_TARE, "0" * 10
)


def encode_read_weight() -> bytes:
    return WEIGHT_CMD


def encode_execute_tare() -> bytes:
    return TARE_CMD


def encode_read_status() -> bytes:
    return STATUS_CMD


def encode_clear_preset_tare() -> bytes:
    return CLEAR_PRESET_TARE_CMD


def format_preset_tare_value(value) -> str:
    """
    Convert a kilogram value to the 8-digit gram field of a preset tare write.

    Args:
        value: Weight in kg (number or numeric string).

    Returns:
        Gram count zero-padded to 8 digits (e.g. 1.0 -> "00001000").

    Raises:
        OutOfRangeValueError: If value is non-numeric (booleans included), negative
            or above 30.0 kg.
    """
    if isinstance(value, bool):
        raise OutOfRangeValueError("Value must be between 0.0 and 30.0 kg")

    try:
        kilograms = float(value)
    except (TypeError, ValueError):
        raise OutOfRangeValueError("Value must be between 0.0 and 30.0 kg")

    if not math.isfinite(kilograms):
        raise OutOfRangeValueError("Value must be between 0.0 and 30.0 kg")

    grams = math.floor(kilograms * 1000 + 0.5)
    if grams < 0 or grams > MAX_PRESET_TARE_GRAMS:
        raise OutOfRangeValueError("Value must be between 0.0 and 30.0 kg")

    return f"{grams:08d}"


def encode_preset_tare(value) -> bytes:
    """
    Encode a preset tare write command.

    Example:
        >>> encode_preset_tare(1.5)
        b'\\x0200FFW01080800001500\\x03\\r\\n'
    """
    return build_command(
        FUNCTION_WRITE,
        PRESET_TARE_BANK + REGISTER_PRESET_TARE,
        format_preset_tare_value(value),
    )


def is_preset_tare_command(command: bytes) -> bool:
    """Check whether a frame is a preset tare write or clear."""
    return len(command) > 12 and command[5:12] == PRESET_TARE_SIGNATURE


def describe_command(command: bytes) -> str:
    """Get human-readable description of a command frame."""
    if command == WEIGHT_CMD:
        return "Read Weight"
    if command == STATUS_CMD:
        return "Read Status"
    if command == TARE_CMD:
        return "Execute Tare"
    if command == CLEAR_PRESET_TARE_CMD:
        return "Clear Preset Tare"
    if is_preset_tare_command(command):
        digits = command[12:-3].decode("ascii", errors="replace")
        return f"Set Preset Tare: {digits} g"
    return "Unknown command"
