"""
ReserveProof - Ed25519 Group Operations
=========================================
Facade minimale sulle primitive ed25519 di libsodium (PyNaCl).

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

Nessuna aritmetica di curva è implementata qui: somma, sottrazione,
moltiplicazione scalare e validazione dei punti sono delegate a
libsodium. Questo modulo aggiunge solo:
- rappresentazione esplicita dell'identità (libsodium la rifiuta come input
  di crypto_scalarmult_ed25519_noclamp)
- aritmetica degli scalari mod L con int Python
- hash-to-point try-and-increment per generatori "nothing-up-my-sleeve"
"""

from __future__ import annotations

import hashlib
import secrets
import struct
from typing import Iterable, List, Optional, Sequence

import nacl.bindings

from reserve_proof.constants import HASH_TO_POINT_MAX_ATTEMPTS, POINT_SIZE, SCALAR_SIZE
from reserve_proof.errors import CryptoError, InvalidPointError


# ============================================================================
# CONSTANTS
# ============================================================================

# Ordine del sottogruppo primo (L)
CURVE_ORDER = 2**252 + 27742317777372353535851937790883648493

# Encoding compresso dell'identità (x=0, y=1)
IDENTITY_ENCODING = b"\x01" + b"\x00" * (POINT_SIZE - 1)

DOMAIN_HASH_TO_POINT = b"ReserveProof_HashToPoint_v1"


# ============================================================================
# SCALARS
# ============================================================================

def random_scalar() -> int:
    """Scalare uniforme non nullo in [1, L)"""
    return secrets.randbelow(CURVE_ORDER - 1) + 1


def scalar_to_bytes(scalar: int) -> bytes:
    """Encoding canonico little-endian (32 byte)"""
    return (scalar % CURVE_ORDER).to_bytes(SCALAR_SIZE, "little")


def scalar_from_bytes(data: bytes) -> int:
    """
    Decode scalare canonico.

    Raises:
        CryptoError: lunghezza errata o valore >= L
    """
    if len(data) != SCALAR_SIZE:
        raise CryptoError(
            f"Scalar must be {SCALAR_SIZE} bytes, got {len(data)}",
            code="INVALID_SCALAR"
        )
    value = int.from_bytes(data, "little")
    if value >= CURVE_ORDER:
        raise CryptoError("Non-canonical scalar encoding", code="INVALID_SCALAR")
    return value


def scalar_invert(scalar: int) -> int:
    """Inverso moltiplicativo mod L"""
    scalar %= CURVE_ORDER
    if scalar == 0:
        raise CryptoError("Cannot invert zero scalar", code="INVALID_SCALAR")
    return pow(scalar, CURVE_ORDER - 2, CURVE_ORDER)


def scalar_powers(base: int, count: int) -> List[int]:
    """[1, base, base^2, ..., base^(count-1)] mod L"""
    powers = []
    current = 1
    for _ in range(count):
        powers.append(current)
        current = current * base % CURVE_ORDER
    return powers


def inner_product(a: Sequence[int], b: Sequence[int]) -> int:
    """<a, b> mod L"""
    if len(a) != len(b):
        raise CryptoError("Inner product of vectors with different lengths")
    return sum(x * y for x, y in zip(a, b)) % CURVE_ORDER


# ============================================================================
# POINTS
# ============================================================================

class Point:
    """
    Punto del sottogruppo primo di ed25519 (encoding compresso 32 byte).

    Immutabile. L'identità è rappresentata con encoding None internamente.

    Examples:
        >>> G = Point.base()
        >>> P = G * 5 + G * 3
        >>> P == G * 8
        True
    """

    __slots__ = ("_encoding",)

    def __init__(self, encoding: Optional[bytes]):
        self._encoding = encoding

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def identity(cls) -> Point:
        return cls(None)

    @classmethod
    def base(cls) -> Point:
        """Base point standard di ed25519"""
        return cls(nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(scalar_to_bytes(1)))

    @classmethod
    def from_bytes(cls, data: bytes) -> Point:
        """
        Decode e valida un punto.

        Accetta l'encoding canonico dell'identità; ogni altro encoding deve
        essere un punto valido del sottogruppo primo (check libsodium).

        Raises:
            InvalidPointError: encoding non valido
        """
        if not isinstance(data, (bytes, bytearray)) or len(data) != POINT_SIZE:
            raise InvalidPointError(
                f"Point must be {POINT_SIZE} bytes",
                code="INVALID_POINT",
                details={"length": len(data) if isinstance(data, (bytes, bytearray)) else None}
            )
        data = bytes(data)
        if data == IDENTITY_ENCODING:
            return cls.identity()
        if not nacl.bindings.crypto_core_ed25519_is_valid_point(data):
            raise InvalidPointError("Bytes do not encode a valid group element", code="INVALID_POINT")
        return cls(data)

    @classmethod
    def from_hex(cls, hex_str: str) -> Point:
        try:
            data = bytes.fromhex(hex_str)
        except (ValueError, TypeError) as e:
            raise InvalidPointError(f"Invalid point hex: {e}", code="INVALID_POINT")
        return cls.from_bytes(data)

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    @property
    def is_identity(self) -> bool:
        return self._encoding is None

    def to_bytes(self) -> bytes:
        return IDENTITY_ENCODING if self._encoding is None else self._encoding

    def hex(self) -> str:
        return self.to_bytes().hex()

    # ------------------------------------------------------------------
    # Group law
    # ------------------------------------------------------------------

    def __add__(self, other: Point) -> Point:
        if self._encoding is None:
            return other
        if other._encoding is None:
            return self
        return _normalize(nacl.bindings.crypto_core_ed25519_add(self._encoding, other._encoding))

    def __sub__(self, other: Point) -> Point:
        if other._encoding is None:
            return self
        if self._encoding is None:
            return -other
        return _normalize(nacl.bindings.crypto_core_ed25519_sub(self._encoding, other._encoding))

    def __neg__(self) -> Point:
        if self._encoding is None:
            return self
        # Negazione: flip del bit di segno di x
        flipped = bytearray(self._encoding)
        flipped[31] ^= 0x80
        return Point(bytes(flipped))

    def __mul__(self, scalar: int) -> Point:
        k = scalar % CURVE_ORDER
        if k == 0 or self._encoding is None:
            return Point.identity()
        return Point(nacl.bindings.crypto_scalarmult_ed25519_noclamp(scalar_to_bytes(k), self._encoding))

    __rmul__ = __mul__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        if self._encoding is None:
            return "Point(identity)"
        return f"Point({self._encoding.hex()[:16]}...)"


def _normalize(encoding: bytes) -> Point:
    return Point(None if encoding == IDENTITY_ENCODING else encoding)


def multiscalar_mul(scalars: Iterable[int], points: Iterable[Point]) -> Point:
    """Σ s_i · P_i (somma semplice, niente Pippenger)"""
    acc = Point.identity()
    for scalar, point in zip(scalars, points, strict=True):
        acc = acc + point * scalar
    return acc


# ============================================================================
# HASH TO POINT
# ============================================================================

def hash_to_point(seed: bytes, index: Optional[int] = None) -> Point:
    """
    Deriva un punto con logaritmo discreto ignoto (try-and-increment).

    Ogni candidato è un hash SHA-512 troncato a 32 byte; il primo che
    libsodium accetta come punto valido del sottogruppo primo viene usato.

    Args:
        seed: Seed di dominio
        index: Indice opzionale (vettori di generatori)

    Raises:
        CryptoError: nessun candidato valido (probabilità trascurabile)
    """
    prefix = DOMAIN_HASH_TO_POINT + struct.pack("<I", len(seed)) + seed
    if index is not None:
        prefix += struct.pack("<Q", index)

    for counter in range(HASH_TO_POINT_MAX_ATTEMPTS):
        candidate = hashlib.sha512(prefix + struct.pack("<I", counter)).digest()[:POINT_SIZE]
        if candidate != IDENTITY_ENCODING and nacl.bindings.crypto_core_ed25519_is_valid_point(candidate):
            return Point(candidate)

    raise CryptoError(
        f"hash_to_point failed after {HASH_TO_POINT_MAX_ATTEMPTS} attempts",
        code="HASH_TO_POINT_FAILED"
    )


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "CURVE_ORDER",
    "IDENTITY_ENCODING",
    "Point",
    "random_scalar",
    "scalar_to_bytes",
    "scalar_from_bytes",
    "scalar_invert",
    "scalar_powers",
    "inner_product",
    "multiscalar_mul",
    "hash_to_point",
]
