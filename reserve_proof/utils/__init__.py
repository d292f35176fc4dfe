"""
ReserveProof - Utilities Package
==================================
Merkle aggregator, encoding helpers.
"""

from reserve_proof.utils.serialization import (
    hex_to_bytes,
    bytes_to_base64,
    base64_to_bytes,
    compact_size,
    read_compact_size,
)
from reserve_proof.utils.merkle import MerkleTree, compute_merkle_root, verify_merkle_root
from reserve_proof.utils.base58 import base58_encode, base58_decode

__all__ = [
    # Serialization
    "hex_to_bytes",
    "bytes_to_base64",
    "base64_to_bytes",
    "compact_size",
    "read_compact_size",

    # Merkle
    "MerkleTree",
    "compute_merkle_root",
    "verify_merkle_root",

    # Base58
    "base58_encode",
    "base58_decode",
]
