"""
ReserveProof - Verifier
=========================
Verifica di un ProofDocument contro l'altezza corrente della chain.

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

Controlli (in ordine, al primo fallimento ci si ferma):
1. block_height <= altezza corrente
2. Merkle root ricalcolata == utxo_root
3. range proof valida per surplus_commitment

Le ownership proof non vengono verificate.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from reserve_proof.crypto.range_proof import ProofParameters, get_default_parameters, verify_surplus
from reserve_proof.domain.models import ProofDocument
from reserve_proof.errors import RootMismatchError, StaleOrFutureHeightError
from reserve_proof.logging_setup import PerformanceLogger, get_logger
from reserve_proof.utils.merkle import compute_merkle_root

logger = get_logger("domain.verifier")


@dataclass(frozen=True)
class VerificationReport:
    """Esito positivo della verifica (solo dati pubblici)"""
    block_height: int
    current_height: int
    utxo_root: bytes
    commitment_count: int
    min_amount: int
    finalized: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": True,
            "block_height": self.block_height,
            "current_height": self.current_height,
            "utxo_root": self.utxo_root.hex(),
            "commitment_count": self.commitment_count,
            "min_amount": self.min_amount,
            "finalized": self.finalized,
        }


def verify_document(
    document: ProofDocument,
    current_height: int,
    params: Optional[ProofParameters] = None,
) -> VerificationReport:
    """
    Verifica un documento.

    Args:
        document: Documento da verificare
        current_height: Altezza corrente della chain (oracle)
        params: Parametri pubblici (default: parametri di protocollo)

    Returns:
        VerificationReport

    Raises:
        StaleOrFutureHeightError: block_height > current_height
        RootMismatchError: root ricalcolata diversa
        RangeProofInvalidError: range proof non valida
    """
    params = params or get_default_parameters()

    if document.block_height > current_height:
        raise StaleOrFutureHeightError(
            "Document block height is beyond the current chain height",
            code="FUTURE_HEIGHT",
            details={
                "stage": "height",
                "block_height": document.block_height,
                "current_height": current_height,
            }
        )

    recomputed = compute_merkle_root(document.commitments)
    if recomputed != document.utxo_root:
        raise RootMismatchError(
            "Recomputed Merkle root does not match utxo_root",
            code="ROOT_MISMATCH",
            details={
                "stage": "merkle_root",
                "expected": document.utxo_root.hex(),
                "actual": recomputed.hex(),
            }
        )

    with PerformanceLogger(logger, "verify_document"):
        verify_surplus(document.range_proof, document.surplus_commitment, params)

    logger.info(
        "Proof verified",
        extra_data={
            "utxo_root": document.utxo_root.hex(),
            "block_height": document.block_height,
            "commitments": document.commitment_count,
        }
    )

    return VerificationReport(
        block_height=document.block_height,
        current_height=current_height,
        utxo_root=document.utxo_root,
        commitment_count=document.commitment_count,
        min_amount=document.min_amount,
        finalized=document.is_finalized,
    )


def verify_with_oracle(document: ProofDocument, oracle, params: Optional[ProofParameters] = None) -> VerificationReport:
    """Come verify_document, con l'altezza letta una volta dall'oracle"""
    return verify_document(document, oracle.current_height(), params)


__all__ = [
    "VerificationReport",
    "verify_document",
    "verify_with_oracle",
]
