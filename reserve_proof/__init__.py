"""
ReserveProof - Lower-bound Proof of Reserve
=============================================
Dimostra che un indirizzo Bitcoin controlla almeno un minimo dichiarato
senza rivelarne il saldo esatto (Pedersen + Bulletproofs + Merkle root).

Version: 1.0.0
Author: ReserveProof Team
License: MIT
"""

__version__ = "1.0.0"
__author__ = "ReserveProof Team"
__license__ = "MIT"

# Core imports
from reserve_proof.domain.models import ProofDocument, UnspentOutput
from reserve_proof.domain.signing import SigningWorkflow, attach_signatures
from reserve_proof.domain.verifier import VerificationReport, verify_document
from reserve_proof.config import ReserveSettings, get_settings

# Services
from reserve_proof.services.proof_service import ProofService

# Oracles
from reserve_proof.network.oracle import ChainOracle, StaticChainOracle
from reserve_proof.network.rpc import BitcoinRPCOracle

# Constants
from reserve_proof.constants import (
    SigningState,
    satoshi_to_btc,
    format_amount,
)

__all__ = [
    # Version
    "__version__",

    # Core
    "ProofDocument",
    "UnspentOutput",
    "SigningWorkflow",
    "attach_signatures",
    "VerificationReport",
    "verify_document",
    "ReserveSettings",
    "get_settings",

    # Services
    "ProofService",

    # Oracles
    "ChainOracle",
    "StaticChainOracle",
    "BitcoinRPCOracle",

    # Constants
    "SigningState",
    "satoshi_to_btc",
    "format_amount",
]
