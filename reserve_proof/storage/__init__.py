"""
ReserveProof - Storage Package
================================
Persistenza su file di documenti e PSBT.
"""

from reserve_proof.storage.files import (
    save_document,
    load_document,
    save_psbt,
    load_psbt,
)

__all__ = [
    "save_document",
    "load_document",
    "save_psbt",
    "load_psbt",
]
