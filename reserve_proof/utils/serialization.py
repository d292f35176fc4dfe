"""
ReserveProof - Serialization Utilities
========================================
Helper hex/base64 per il documento JSON e varint Bitcoin per il codec PSBT.
"""

import base64
import binascii
from typing import Optional

from reserve_proof.errors import CodecError


# ============================================================================
# BYTES/HEX/BASE64 CONVERSION
# ============================================================================

def hex_to_bytes(hex_str: str, length: Optional[int] = None) -> bytes:
    """
    Convert hex string to bytes.

    Args:
        hex_str: Hex string
        length: Lunghezza attesa in byte (None = qualsiasi)

    Raises:
        CodecError: hex non valido o lunghezza errata
    """
    if not isinstance(hex_str, str):
        raise CodecError(f"Expected hex string, got {type(hex_str).__name__}", code="INVALID_HEX")
    try:
        data = bytes.fromhex(hex_str)
    except ValueError as e:
        raise CodecError(f"Invalid hex string: {e}", code="INVALID_HEX")

    if length is not None and len(data) != length:
        raise CodecError(
            f"Expected {length} bytes, got {len(data)}",
            code="INVALID_LENGTH",
            details={"expected": length, "actual": len(data)}
        )
    return data


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def base64_to_bytes(b64_str: str) -> bytes:
    """
    Decode base64 standard (con padding), rifiutando caratteri estranei.

    Raises:
        CodecError: base64 non valido
    """
    if not isinstance(b64_str, str):
        raise CodecError(f"Expected base64 string, got {type(b64_str).__name__}", code="INVALID_BASE64")
    try:
        return base64.b64decode(b64_str.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CodecError(f"Invalid base64: {e}", code="INVALID_BASE64")


# ============================================================================
# BINARY SERIALIZATION
# ============================================================================

def compact_size(value: int) -> bytes:
    """
    Encode integer in Bitcoin compact size format.

    Args:
        value: Integer to encode

    Returns:
        bytes: Compact size bytes
    """
    if value < 0xfd:
        return bytes([value])
    elif value <= 0xffff:
        return b'\xfd' + value.to_bytes(2, 'little')
    elif value <= 0xffffffff:
        return b'\xfe' + value.to_bytes(4, 'little')
    else:
        return b'\xff' + value.to_bytes(8, 'little')


def read_compact_size(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Read compact size from bytes.

    Returns:
        tuple: (value, bytes_read)

    Raises:
        CodecError: dati troncati
    """
    if offset >= len(data):
        raise CodecError("Truncated compact size", code="TRUNCATED")

    first = data[offset]

    if first < 0xfd:
        return first, 1

    width = {0xfd: 2, 0xfe: 4, 0xff: 8}[first]
    if offset + 1 + width > len(data):
        raise CodecError("Truncated compact size", code="TRUNCATED")
    return int.from_bytes(data[offset + 1:offset + 1 + width], 'little'), 1 + width


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "hex_to_bytes",
    "bytes_to_base64",
    "base64_to_bytes",
    "compact_size",
    "read_compact_size",
]
