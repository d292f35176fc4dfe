"""
ReserveProof - CLI Package
============================
Entry point `reserveproof` (typer).
"""

from reserve_proof.cli.main import app

__all__ = [
    "app",
]
