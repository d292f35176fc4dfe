"""
ReserveProof - Services Package
=================================
Pipeline di generazione, firma e verifica.
"""

from reserve_proof.services.proof_service import ProofService

__all__ = [
    "ProofService",
]
