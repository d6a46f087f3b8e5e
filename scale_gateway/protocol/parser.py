"""
Response decoding for the HF2211 scale protocol.

Responses carry no type tag. The reply type is inferred from its length, the
echoed function code and register field, and the command that produced it.
Signatures overlap on short buffers, so they are tried in a fixed priority order.
"""

import logging
import math
from typing import Callable, List, Optional, Tuple

from scale_gateway.protocol.checksum import compute_lrc
from scale_gateway.protocol.encoder import (
    CLEAR_PRESET_TARE_CMD,
    ETX,
    REGISTER_STATUS,
    REGISTER_TARE,
    REGISTER_WEIGHT,
    STX,
    TARE_CMD,
    is_preset_tare_command,
)
from scale_gateway.protocol.outcomes import (
    ErrorOutcome,
    ErrorReason,
    PresetTareOutcome,
    SessionOutcome,
    StatusCode,
    StatusFlags,
    StatusOutcome,
    TareOutcome,
    WeightOutcome,
)


logger = logging.getLogger(__name__)

MIN_FRAME_LENGTH = 12
MIN_WEIGHT_LENGTH = 43
MIN_SHORT_LENGTH = 16

# Echoed function codes are lower case
RESPONSE_READ = ord("r")
RESPONSE_WRITE = ord("w")
RESPONSE_EXECUTE = ord("e")

RESPONSE_FUNCTION_NAMES = {
    RESPONSE_WRITE: "write",
    RESPONSE_EXECUTE: "execute",
}

STATUS_CODE_DESCRIPTIONS = {
    0x00: "No error",
    0x01: "Error reading configuration from flash",
    0x02: "A/D converter failure",
    0x03: "Load cell signal out of range",
    0x04: "Load cell signal > 30mV",
    0x05: "Load cell signal < -30mV",
    0x06: "Load cell power supply failure",
    0x07: "Overload (> Max + 9e)",
    0x08: "Negative weight (< -19e)",
    0x40: "Calibration or mode warning (firmware-specific)",
}


def _ascii(data: bytes, start: int, end: int) -> str:
    return data[start:end].decode("ascii", errors="replace")


def _register(data: bytes) -> str:
    return _ascii(data, 6, 10)


def is_structurally_plausible(data: bytes) -> bool:
    """
    Cheap structural check run before classification.

    Requires the minimum frame length, a leading start marker and an end
    marker somewhere in the buffer. Passing it does not mean the buffer
    matches any response type.
    """
    if not data or len(data) < MIN_FRAME_LENGTH:
        return False
    return data[0] == STX and ETX in data


def describe_status_code(code: Optional[int]) -> str:
    return STATUS_CODE_DESCRIPTIONS.get(code, "Unknown")


def parse_status_flags(flags_value: int) -> StatusFlags:
    """
    Parse the status flags value from a weight response.

    Args:
        flags_value: Numeric value of the status flags field.

    Returns:
        StatusFlags with one attribute per bit.
    """
    return StatusFlags(
        zero=bool(flags_value & 0x001),
        tare=bool(flags_value & 0x002),
        stable=bool(flags_value & 0x004),
        net=bool(flags_value & 0x008),
        tare_mode="preset" if flags_value & 0x010 else "normal",
        high_resolution=bool(flags_value & 0x020),
        initial_zero=bool(flags_value & 0x040),
        overload=bool(flags_value & 0x080),
        negative=bool(flags_value & 0x100),
        range=2 if flags_value & 0x200 else 1,
        preset_tare=bool(flags_value & 0x400),
    )


def _parse_reading(field: str) -> Optional[float]:
    """Parse a gross/tare field such as "W   12.340" or "T -  0.500"."""
    text = field.strip()
    if text[:1].isalpha():
        text = text[1:]
    try:
        value = float(text.replace(" ", ""))
    except ValueError:
        return None
    # float() accepts "nan" and "inf", which are not readings
    return value if math.isfinite(value) else None


def parse_weight_response(data: bytes) -> WeightOutcome:
    """
    Parse a weight response from the scale.

    Args:
        data: Raw response bytes (at least 43).

    Returns:
        WeightOutcome; ``weight`` is None when either reading is not numeric.
    """
    gross = _ascii(data, 12, 23)
    tare = _ascii(data, 23, 34)
    flags = _ascii(data, 34, 38)
    lrc = _ascii(data, 38, 40)

    computed = compute_lrc(data, 1, 38)
    logger.debug(f"Weight LRC: computed={computed}, received={lrc}")

    gross_value = _parse_reading(gross)
    tare_value = _parse_reading(tare)
    weight = None
    if gross_value is not None and tare_value is not None:
        weight = round(gross_value - tare_value, 6)

    try:
        status_flags = parse_status_flags(int(flags[1:], 16))
    except ValueError:
        logger.warning(f"Unparseable status flags field: {flags!r}")
        status_flags = None

    return WeightOutcome(
        gross=gross,
        tare=tare,
        flags=flags,
        lrc=lrc,
        lrc_valid=computed == lrc,
        weight=weight,
        status_flags=status_flags,
    )


def parse_status_response(data: bytes) -> SessionOutcome:
    """
    Parse a status response from the scale.

    The payload length is declared in hex at offset 10; the status code
    follows it, then the LRC.
    """
    try:
        length = int(_ascii(data, 10, 12), 16)
    except ValueError:
        length = None

    if length is None or len(data) < MIN_FRAME_LENGTH + length + 3:
        return ErrorOutcome(error="Incomplete status response", reason=ErrorReason.INCOMPLETE)

    end = MIN_FRAME_LENGTH + length
    try:
        code = int(_ascii(data, MIN_FRAME_LENGTH, end), 16)
    except ValueError:
        code = None

    lrc = _ascii(data, end, end + 2)
    computed = compute_lrc(data, 1, end)
    logger.debug(f"Status LRC: computed={computed}, received={lrc}")

    return StatusOutcome(
        status=StatusCode(code=code, description=describe_status_code(code)),
        lrc=lrc,
        lrc_valid=computed == lrc,
    )


def parse_tare_response(data: bytes) -> SessionOutcome:
    """Parse the response to an execute-tare command."""
    function = data[5]
    register = _register(data)

    if function != RESPONSE_EXECUTE or register != REGISTER_TARE:
        function_name = RESPONSE_FUNCTION_NAMES.get(function, "unknown")
        return ErrorOutcome(
            error=f"Unexpected response: function={function_name}, address={register}",
            raw_response=data.hex(),
        )

    result = _ascii(data, 12, 13)
    if result == "0":
        message = "tare executed successfully"
    elif result == "1":
        message = "tare failed: Sealing switch locked"
    else:
        message = f"tare failed: Error code {result}"

    lrc = _ascii(data, 13, 15)
    computed = compute_lrc(data, 1, 13)
    logger.debug(f"Tare LRC: computed={computed}, received={lrc}")

    return TareOutcome(
        message=message,
        lrc=lrc,
        lrc_valid=computed == lrc,
        success=result == "0",
    )


def parse_preset_tare_response(data: bytes, command: bytes) -> PresetTareOutcome:
    """Parse the response to a preset tare write or clear."""
    kind = "clearPreset" if command == CLEAR_PRESET_TARE_CMD else "presetTare"

    result = _ascii(data, 12, 13)
    if result == "0":
        done = "Preset tare cleared" if kind == "clearPreset" else "Preset tare set"
        message = f"{done} successfully"
    elif result == "1":
        message = f"{kind} failed: Sealing switch locked"
    elif result == "5":
        message = f"{kind} already set/clear or firmware quirk"
    else:
        message = f"{kind} failed: Error code {result}"

    lrc = _ascii(data, 13, 15)
    computed = compute_lrc(data, 1, 13)
    logger.debug(f"{kind} LRC: computed={computed}, received={lrc}")

    return PresetTareOutcome(
        type=kind,
        message=message,
        lrc=lrc,
        lrc_valid=computed == lrc,
        success=result == "0",
    )


def _is_weight(data: bytes, command: bytes) -> bool:
    return (
        len(data) >= MIN_WEIGHT_LENGTH
        and data[5] == RESPONSE_READ
        and _register(data) == REGISTER_WEIGHT
    )


def _is_status(data: bytes, command: bytes) -> bool:
    return (
        len(data) >= MIN_SHORT_LENGTH
        and data[5] == RESPONSE_READ
        and _register(data) == REGISTER_STATUS
    )


def _is_tare(data: bytes, command: bytes) -> bool:
    return command == TARE_CMD and len(data) >= MIN_SHORT_LENGTH


def _is_preset_tare(data: bytes, command: bytes) -> bool:
    return (
        (command == CLEAR_PRESET_TARE_CMD or is_preset_tare_command(command))
        and len(data) >= MIN_SHORT_LENGTH
        and data[5] == RESPONSE_WRITE
    )


# Evaluated in order; the first matching signature wins
_SIGNATURES: List[Tuple[Callable[[bytes, bytes], bool], Callable[[bytes, bytes], SessionOutcome]]] = [
    (_is_weight, lambda data, command: parse_weight_response(data)),
    (_is_status, lambda data, command: parse_status_response(data)),
    (_is_tare, lambda data, command: parse_tare_response(data)),
    (_is_preset_tare, parse_preset_tare_response),
]


def decode_response(data: bytes, command: bytes) -> SessionOutcome:
    """
    Classify and parse a received byte sequence.

    Args:
        data: Bytes received from the scale.
        command: The command frame that was sent.

    Returns:
        One of the outcome models. Anything matching no signature becomes an
        ErrorOutcome carrying the raw bytes as hex.
    """
    if len(data) >= MIN_FRAME_LENGTH:
        for matches, parse in _SIGNATURES:
            if matches(data, command):
                return parse(data, command)

    return ErrorOutcome(
        error="Invalid or unrecognized response",
        raw_response=data.hex(),
        reason=ErrorReason.UNRECOGNIZED,
    )
