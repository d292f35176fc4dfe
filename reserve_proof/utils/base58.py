"""
ReserveProof - Base58 Encoding
================================
Base58 (alfabeto Bitcoin) per i frame del QR animato.
"""

from reserve_proof.errors import CodecError


# Bitcoin Base58 alphabet (no 0, O, I, l to avoid confusion)
BASE58_ALPHABET = '123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz'


def base58_encode(data: bytes) -> str:
    """
    Encode bytes to Base58 string.

    Examples:
        >>> base58_encode(b"hello")
        'Cn8eVZg'
    """
    num = int.from_bytes(data, byteorder='big')

    encoded = ''
    while num > 0:
        num, remainder = divmod(num, 58)
        encoded = BASE58_ALPHABET[remainder] + encoded

    # Preserve leading zeros
    leading_zeros = len(data) - len(data.lstrip(b'\x00'))
    return '1' * leading_zeros + encoded


def base58_decode(encoded: str) -> bytes:
    """
    Decode Base58 string to bytes.

    Raises:
        CodecError: carattere fuori alfabeto

    Examples:
        >>> base58_decode('Cn8eVZg')
        b'hello'
    """
    num = 0
    for char in encoded:
        index = BASE58_ALPHABET.find(char)
        if index < 0:
            raise CodecError(f"Invalid Base58 character: {char!r}", code="INVALID_BASE58")
        num = num * 58 + index

    decoded = num.to_bytes((num.bit_length() + 7) // 8, byteorder='big')

    # Restore leading zeros
    num_leading_zeros = len(encoded) - len(encoded.lstrip('1'))
    return b'\x00' * num_leading_zeros + decoded


__all__ = [
    "BASE58_ALPHABET",
    "base58_encode",
    "base58_decode",
]
