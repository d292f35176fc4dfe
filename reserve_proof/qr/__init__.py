"""
ReserveProof - QR Package
===========================
QR animato per il trasferimento della PSBT.
"""

from reserve_proof.qr.generator import QRFrame, QRFrameRenderer

__all__ = [
    "QRFrame",
    "QRFrameRenderer",
]
