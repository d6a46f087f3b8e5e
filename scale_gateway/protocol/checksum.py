"""
LRC checksum calculation for the HF2211 scale protocol.
"""


def compute_lrc(data: bytes, start: int, end: int) -> str:
    """
    Calculate the longitudinal redundancy check (XOR of all bytes) over a range.

    Args:
        data: Frame bytes.
        start: First byte included in the checksum.
        end: First byte excluded from the checksum.

    Returns:
        Checksum as two uppercase hex characters.

    Example:
        >>> compute_lrc(b"\\x0200FFr0100", 1, 10)
        '73'
    """
    lrc = 0
    for byte in data[start:end]:
        lrc ^= byte
    return f"{lrc:02X}"
