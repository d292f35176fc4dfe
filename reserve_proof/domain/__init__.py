"""
ReserveProof - Domain Package
===============================
Documento proof-of-reserve, workflow di firma, verifier.
"""

# Models
from reserve_proof.domain.models import UnspentOutput, ProofDocument

# Signing workflow
from reserve_proof.domain.signing import (
    Draft,
    AwaitingMerge,
    Finalized,
    Rejected,
    SigningWorkflow,
    attach_signatures,
)

# Verifier
from reserve_proof.domain.verifier import (
    VerificationReport,
    verify_document,
    verify_with_oracle,
)

__all__ = [
    # Models
    "UnspentOutput",
    "ProofDocument",

    # Signing
    "Draft",
    "AwaitingMerge",
    "Finalized",
    "Rejected",
    "SigningWorkflow",
    "attach_signatures",

    # Verifier
    "VerificationReport",
    "verify_document",
    "verify_with_oracle",
]
