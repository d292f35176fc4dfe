"""
ReserveProof - Fiat-Shamir Transcript
=======================================
Transcript hash-based per rendere non interattivo il protocollo di range proof.

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

Ogni messaggio è length-prefixed con la sua label; le challenge sono
SHA-512 dello stato corrente ridotte mod L e vengono riassorbite nel
transcript, così prover e verifier derivano la stessa sequenza solo se
hanno visto esattamente gli stessi messaggi.
"""

import hashlib
import struct

from reserve_proof.crypto.group import CURVE_ORDER, Point, scalar_to_bytes


class Transcript:
    """
    Transcript Fiat-Shamir.

    Examples:
        >>> t = Transcript(b"por")
        >>> t.append_u64(b"n", 64)
        >>> y = t.challenge_scalar(b"y")
    """

    def __init__(self, label: bytes):
        self._state = hashlib.sha512()
        self.append_message(b"dom-sep", label)

    def append_message(self, label: bytes, message: bytes) -> None:
        self._state.update(struct.pack("<I", len(label)))
        self._state.update(label)
        self._state.update(struct.pack("<Q", len(message)))
        self._state.update(message)

    def append_u64(self, label: bytes, value: int) -> None:
        self.append_message(label, struct.pack("<Q", value))

    def append_point(self, label: bytes, point: Point) -> None:
        self.append_message(label, point.to_bytes())

    def append_scalar(self, label: bytes, scalar: int) -> None:
        self.append_message(label, scalar_to_bytes(scalar))

    def challenge_scalar(self, label: bytes) -> int:
        """Deriva una challenge mod L e la riassorbe nel transcript"""
        fork = self._state.copy()
        fork.update(b"challenge")
        fork.update(struct.pack("<I", len(label)))
        fork.update(label)
        digest = fork.digest()

        self.append_message(label, digest)
        return int.from_bytes(digest, "little") % CURVE_ORDER


__all__ = ["Transcript"]
