"""
ReserveProof - Value Commitment Engine
========================================
Pedersen commitments per-output: C = value·G + blinding·H.

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

Proprietà:
- Hiding: senza il blinding la commitment non rivela il valore
- Binding: non si può aprire la stessa commitment su due valori
- Omomorfismo: C(a, r1) + C(b, r2) = C(a+b, r1+r2)

I blinding factor restano in memoria (CommitmentOpening) e non vengono
mai serializzati.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from reserve_proof.constants import PEDERSEN_H_SEED, is_valid_amount, MAX_AMOUNT_EXCLUSIVE
from reserve_proof.crypto.group import Point, hash_to_point, random_scalar
from reserve_proof.errors import AmountOverflowError, NoOutputsError, format_input_error
from reserve_proof.logging_setup import get_logger

logger = get_logger("crypto.commitments")


# ============================================================================
# GENERATORS
# ============================================================================

@dataclass(frozen=True)
class PedersenGenerators:
    """
    Coppia di generatori (G, H).

    G è il base point di ed25519, H deriva da hash-to-point su un seed
    pubblico: nessuno conosce log_G(H).
    """
    G: Point
    H: Point

    @classmethod
    def from_seed(cls, seed: bytes = PEDERSEN_H_SEED) -> "PedersenGenerators":
        return cls(G=Point.base(), H=hash_to_point(seed))

    def commit(self, value: int, blinding: int) -> Point:
        """value·G + blinding·H"""
        return self.G * value + self.H * blinding


# ============================================================================
# BATCH COMMITMENT
# ============================================================================

@dataclass(frozen=True)
class CommitmentOpening:
    """Apertura di una commitment (solo in memoria)"""
    value: int
    blinding: int = field(repr=False)


@dataclass(frozen=True)
class CommitmentBatch:
    """
    Risultato di commit_outputs.

    Attributes:
        commitments: Una commitment per output, stesso ordine dell'input
        openings: Aperture corrispondenti (non serializzate)
        total: Somma dei valori (< 2^64)
    """
    commitments: tuple
    openings: tuple = field(repr=False)
    total: int = 0

    def commitment_bytes(self) -> List[bytes]:
        return [c.to_bytes() for c in self.commitments]

    def aggregate_blinding(self) -> int:
        return sum(o.blinding for o in self.openings)


def commit_outputs(outputs: Sequence, generators: PedersenGenerators) -> CommitmentBatch:
    """
    Impegna il valore di ogni output con un blinding fresco.

    Args:
        outputs: Sequenza di oggetti con attributo `value` (UnspentOutput)
        generators: Generatori Pedersen

    Returns:
        CommitmentBatch

    Raises:
        NoOutputsError: lista vuota
        InvalidAmountError: valore fuori da [0, 2^64)
        AmountOverflowError: somma >= 2^64
    """
    if not outputs:
        raise NoOutputsError("No unspent outputs to commit", code="NO_OUTPUTS")

    commitments = []
    openings = []
    total = 0

    for index, output in enumerate(outputs):
        value = output.value
        if not is_valid_amount(value):
            raise format_input_error(f"outputs[{index}].value", value, "integer in [0, 2^64)")

        total += value
        if total >= MAX_AMOUNT_EXCLUSIVE:
            raise AmountOverflowError(
                "Sum of output values exceeds 64 bits",
                code="AMOUNT_OVERFLOW",
                details={"input_index": index}
            )

        blinding = random_scalar()
        commitments.append(generators.commit(value, blinding))
        openings.append(CommitmentOpening(value=value, blinding=blinding))

    logger.debug(
        "Outputs committed",
        extra_data={"count": len(commitments)}
    )

    return CommitmentBatch(
        commitments=tuple(commitments),
        openings=tuple(openings),
        total=total,
    )


__all__ = [
    "PedersenGenerators",
    "CommitmentOpening",
    "CommitmentBatch",
    "commit_outputs",
]
