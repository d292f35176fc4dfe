"""
ReserveProof - Wallet Package
===============================
Codec PSBT (BIP-174) per la richiesta di firma.
"""

from reserve_proof.wallet.psbt import (
    TxIn,
    TxOut,
    UnsignedTransaction,
    op_return_script,
    PSBTField,
    PartialSignature,
    PSBT,
    compute_psbt_hash,
    check_spending_template,
)

__all__ = [
    "TxIn",
    "TxOut",
    "UnsignedTransaction",
    "op_return_script",
    "PSBTField",
    "PartialSignature",
    "PSBT",
    "compute_psbt_hash",
    "check_spending_template",
]
