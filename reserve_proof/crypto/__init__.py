"""
ReserveProof - Cryptography Package
=====================================
Pedersen commitments e range proof Bulletproofs su ed25519 (libsodium).
"""

from reserve_proof.crypto.group import (
    CURVE_ORDER,
    Point,
    hash_to_point,
    random_scalar,
)
from reserve_proof.crypto.transcript import Transcript
from reserve_proof.crypto.commitments import (
    PedersenGenerators,
    CommitmentOpening,
    CommitmentBatch,
    commit_outputs,
)
from reserve_proof.crypto.range_proof import (
    BulletproofGenerators,
    ProofParameters,
    get_default_parameters,
    RangeProof,
    SurplusProof,
    prove_range,
    verify_range,
    prove_surplus,
    verify_surplus,
)

__all__ = [
    "CURVE_ORDER",
    "Point",
    "hash_to_point",
    "random_scalar",
    "Transcript",
    "PedersenGenerators",
    "CommitmentOpening",
    "CommitmentBatch",
    "commit_outputs",
    "BulletproofGenerators",
    "ProofParameters",
    "get_default_parameters",
    "RangeProof",
    "SurplusProof",
    "prove_range",
    "verify_range",
    "prove_surplus",
    "verify_surplus",
]
