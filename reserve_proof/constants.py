"""
ReserveProof - Core Constants
===============================
Costanti immutabili del protocollo proof-of-reserve.

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

IMPORTANTE: i parametri crittografici qui definiti devono essere identici
lato prover e lato verifier. Cambiarli invalida tutte le prove emesse.
"""

from enum import Enum
from typing import Final


# ============================================================================
# IDENTIFICAZIONE PROGETTO
# ============================================================================

PROJECT_NAME: Final[str] = "ReserveProof"
PROTOCOL_VERSION: Final[int] = 1
SOFTWARE_VERSION: Final[str] = "1.0.0"


# ============================================================================
# SISTEMA MONETARIO
# ============================================================================

# Unità base: 1 satoshi, come Bitcoin Core
SATOSHI_PER_BTC: Final[int] = 100_000_000

# Ogni valore (singolo output, totale, surplus) deve stare in [0, 2^64)
MAX_AMOUNT_EXCLUSIVE: Final[int] = 2 ** 64


def satoshi_to_btc(amount_satoshi: int) -> float:
    """
    Converte satoshi in BTC (solo per display).

    Examples:
        >>> satoshi_to_btc(150_000_000)
        1.5
    """
    return amount_satoshi / SATOSHI_PER_BTC


def format_amount(amount_satoshi: int) -> str:
    """Format satoshi amount for console output"""
    return f"{amount_satoshi:,} sat ({satoshi_to_btc(amount_satoshi):.8f} BTC)"


def is_valid_amount(amount: int) -> bool:
    """Check amount is an integer in [0, 2^64)"""
    return (
        isinstance(amount, int)
        and not isinstance(amount, bool)
        and 0 <= amount < MAX_AMOUNT_EXCLUSIVE
    )


# ============================================================================
# HASHING / ENCODING
# ============================================================================

# SHA-256 digest size (Merkle nodes, psbt_hash)
DIGEST_SIZE: Final[int] = 32

# Compressed ed25519 point / canonical scalar size
POINT_SIZE: Final[int] = 32
SCALAR_SIZE: Final[int] = 32

# Root "degenerate" per zero foglie
EMPTY_MERKLE_ROOT: Final[bytes] = b"\x00" * DIGEST_SIZE


# ============================================================================
# RANGE PROOF PARAMETERS
# ============================================================================

# Bit-width fissa del range proof: surplus in [0, 2^64)
RANGE_PROOF_BITS: Final[int] = 64

# Domain separation tag del transcript Fiat-Shamir
TRANSCRIPT_LABEL: Final[bytes] = b"por"

# Seed "nothing-up-my-sleeve" per i generatori
PEDERSEN_H_SEED: Final[bytes] = b"ReserveProof Pedersen blinding generator v1"
BULLETPROOF_GENS_SEED: Final[bytes] = b"ReserveProof Bulletproof generators v1"

# Tentativi massimi try-and-increment per hash-to-point
HASH_TO_POINT_MAX_ATTEMPTS: Final[int] = 1024


# ============================================================================
# SIGNING WORKFLOW
# ============================================================================

# Tag protocollo scritto nei draft (campo signing_type)
SIGNING_TYPE_PSBT_OPRETURN: Final[str] = "psbt-opreturn-v1"

# BIP-174 key types usati dal workflow
PSBT_MAGIC: Final[bytes] = b"psbt\xff"
PSBT_GLOBAL_UNSIGNED_TX: Final[int] = 0x00
PSBT_IN_PARTIAL_SIG: Final[int] = 0x02
PSBT_IN_TAP_KEY_SIG: Final[int] = 0x13

# Script opcode per output di dati
OP_RETURN: Final[int] = 0x6A


class SigningState(str, Enum):
    """Stati del workflow di firma"""
    DRAFT = "draft"
    AWAITING_MERGE = "awaiting_merge"
    FINALIZED = "finalized"
    REJECTED = "rejected"


# ============================================================================
# QR HAND-OFF
# ============================================================================

# Byte per frame QR animato (prima dell'encoding base58)
QR_CHUNK_SIZE: Final[int] = 400
QR_DEFAULT_FPS: Final[int] = 5


# ============================================================================
# FILE DEFAULTS
# ============================================================================

DEFAULT_PROOF_FILE: Final[str] = "proof.json"
DEFAULT_DRAFT_FILE: Final[str] = "draft.json"
DEFAULT_PSBT_FILE: Final[str] = "unsigned.psbt"


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "PROJECT_NAME",
    "PROTOCOL_VERSION",
    "SOFTWARE_VERSION",
    "SATOSHI_PER_BTC",
    "MAX_AMOUNT_EXCLUSIVE",
    "satoshi_to_btc",
    "format_amount",
    "is_valid_amount",
    "DIGEST_SIZE",
    "POINT_SIZE",
    "SCALAR_SIZE",
    "EMPTY_MERKLE_ROOT",
    "RANGE_PROOF_BITS",
    "TRANSCRIPT_LABEL",
    "PEDERSEN_H_SEED",
    "BULLETPROOF_GENS_SEED",
    "HASH_TO_POINT_MAX_ATTEMPTS",
    "SIGNING_TYPE_PSBT_OPRETURN",
    "PSBT_MAGIC",
    "PSBT_GLOBAL_UNSIGNED_TX",
    "PSBT_IN_PARTIAL_SIG",
    "PSBT_IN_TAP_KEY_SIG",
    "OP_RETURN",
    "SigningState",
    "QR_CHUNK_SIZE",
    "QR_DEFAULT_FPS",
    "DEFAULT_PROOF_FILE",
    "DEFAULT_DRAFT_FILE",
    "DEFAULT_PSBT_FILE",
]
