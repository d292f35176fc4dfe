"""
ReserveProof - Core Domain Models
===================================
Strutture dati del proof-of-reserve.

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

Models:
- UnspentOutput: output non speso (txid + vout + value) fornito dall'oracle
- ProofDocument: artefatto pubblico (root, commitment, range proof, firme)

Tutte le strutture sono immutabili (frozen): le transizioni di stato
restituiscono nuovi documenti.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Sequence, Tuple

from reserve_proof.constants import DIGEST_SIZE, POINT_SIZE, is_valid_amount
from reserve_proof.errors import (
    CodecError,
    DocumentFormatError,
    InputError,
    format_input_error,
)
from reserve_proof.logging_setup import get_logger
from reserve_proof.utils.serialization import (
    base64_to_bytes,
    bytes_to_base64,
    hex_to_bytes,
)


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("models")


# ============================================================================
# UNSPENT OUTPUT
# ============================================================================

@dataclass(frozen=True)
class UnspentOutput:
    """
    Output non speso controllato dall'entità.

    Attributes:
        txid (str): Transaction ID, 64 hex in display order (big-endian)
        vout (int): Indice output nella transazione
        value (int): Valore in satoshi, in [0, 2^64)

    Examples:
        >>> utxo = UnspentOutput(txid="ab" * 32, vout=0, value=50_000)
        >>> utxo.outpoint
        'abab...:0'
    """

    txid: str
    vout: int
    value: int

    def __post_init__(self):
        """Validazione post-init"""
        if not isinstance(self.txid, str) or len(self.txid) != 64:
            raise InputError(
                "txid must be 64 hex characters",
                code="INVALID_TXID",
                details={"txid": self.txid}
            )
        try:
            bytes.fromhex(self.txid)
        except ValueError:
            raise InputError(
                "txid must be 64 hex characters",
                code="INVALID_TXID",
                details={"txid": self.txid}
            )

        if not isinstance(self.vout, int) or self.vout < 0:
            raise InputError(
                f"vout must be non-negative, got {self.vout}",
                code="INVALID_VOUT"
            )

        if not is_valid_amount(self.value):
            raise format_input_error("value", self.value, "integer in [0, 2^64)")

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.vout}"

    def txid_le(self) -> bytes:
        """txid nell'ordine di serializzazione della transazione (little-endian)"""
        return bytes.fromhex(self.txid)[::-1]

    def to_dict(self) -> Dict[str, Any]:
        return {"txid": self.txid, "vout": self.vout, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> UnspentOutput:
        return cls(txid=data["txid"], vout=data["vout"], value=data["value"])

    def __repr__(self) -> str:
        return f"UnspentOutput({self.txid[:16]}...:{self.vout}, value={self.value} sat)"


# ============================================================================
# PROOF DOCUMENT
# ============================================================================

@dataclass(frozen=True)
class ProofDocument:
    """
    Documento proof-of-reserve.

    Stati:
    - one-shot: niente psbt_hash/signing_type, ownership_proofs vuoto
    - draft: psbt_hash + signing_type, ownership_proofs vuoto
    - finalized: una ownership proof per commitment

    Attributes:
        block_height (int): Altezza chain a cui si riferiscono gli output
        utxo_root (bytes): Merkle root delle commitment (32 byte)
        commitments (tuple[bytes]): Commitment serializzate (32 byte ciascuna)
        range_proof (bytes): Range proof sul surplus
        surplus_commitment (bytes): Commitment a total - min_amount
        ownership_proofs (tuple[bytes]): Firme estratte dalla PSBT firmata
        min_amount (int): Minimo dichiarato (satoshi)
        psbt_hash (Optional[bytes]): SHA-256 della tx non firmata
        signing_type (Optional[str]): Tag protocollo di firma

    Security:
        - Immutabile (frozen)
        - Nessun campo parzialmente popolato: ownership_proofs è vuoto oppure
          allineato alle commitment
    """

    block_height: int
    utxo_root: bytes
    commitments: Tuple[bytes, ...]
    range_proof: bytes
    surplus_commitment: bytes
    min_amount: int
    ownership_proofs: Tuple[bytes, ...] = field(default_factory=tuple)
    psbt_hash: Optional[bytes] = None
    signing_type: Optional[str] = None

    def __post_init__(self):
        """Validazione strutturale (non crittografica)"""
        # Liste -> tuple per mantenere l'immutabilità
        object.__setattr__(self, "commitments", tuple(self.commitments))
        object.__setattr__(self, "ownership_proofs", tuple(self.ownership_proofs))

        if not isinstance(self.block_height, int) or self.block_height < 0:
            raise DocumentFormatError(
                f"block_height must be non-negative, got {self.block_height}",
                code="INVALID_DOCUMENT",
                details={"field": "block_height"}
            )

        if not is_valid_amount(self.min_amount):
            raise DocumentFormatError(
                f"min_amount must be in [0, 2^64), got {self.min_amount}",
                code="INVALID_DOCUMENT",
                details={"field": "min_amount"}
            )

        _check_length("utxo_root", self.utxo_root, DIGEST_SIZE)
        _check_length("surplus_commitment", self.surplus_commitment, POINT_SIZE)
        for index, commitment in enumerate(self.commitments):
            _check_length(f"commitments[{index}]", commitment, POINT_SIZE)
        if self.psbt_hash is not None:
            _check_length("psbt_hash", self.psbt_hash, DIGEST_SIZE)

        if self.ownership_proofs and len(self.ownership_proofs) != len(self.commitments):
            raise DocumentFormatError(
                "ownership_proofs must be empty or match commitments one-to-one",
                code="INVALID_DOCUMENT",
                details={
                    "field": "ownership_proofs",
                    "commitments": len(self.commitments),
                    "ownership_proofs": len(self.ownership_proofs),
                }
            )

    # ========================================================================
    # STATE
    # ========================================================================

    @property
    def is_finalized(self) -> bool:
        return bool(self.ownership_proofs)

    @property
    def is_draft(self) -> bool:
        return self.psbt_hash is not None and not self.ownership_proofs

    @property
    def commitment_count(self) -> int:
        return len(self.commitments)

    def with_ownership_proofs(self, proofs: Sequence[bytes]) -> ProofDocument:
        """Nuovo documento con le ownership proof (il draft non viene toccato)"""
        return replace(self, ownership_proofs=tuple(proofs))

    # ========================================================================
    # SERIALIZATION
    # ========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """
        Serializza nel formato JSON pubblico.

        psbt_hash e signing_type sono omessi in modalità one-shot.
        """
        data = {
            "block_height": self.block_height,
            "utxo_root": self.utxo_root.hex(),
            "commitments": [c.hex() for c in self.commitments],
            "range_proof": bytes_to_base64(self.range_proof),
            "surplus_commitment": self.surplus_commitment.hex(),
            "ownership_proofs": [p.hex() for p in self.ownership_proofs],
            "min_amount": self.min_amount,
        }

        if self.psbt_hash is not None:
            data["psbt_hash"] = self.psbt_hash.hex()
        if self.signing_type is not None:
            data["signing_type"] = self.signing_type

        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ProofDocument:
        """
        Deserializza da dict.

        Accetta "diff_commitment" come alias di "surplus_commitment".

        Raises:
            DocumentFormatError: campi mancanti o malformati
        """
        if not isinstance(data, dict):
            raise DocumentFormatError("Proof document must be a JSON object", code="INVALID_DOCUMENT")

        surplus_key = "surplus_commitment" if "surplus_commitment" in data else "diff_commitment"

        required = ("block_height", "utxo_root", "commitments", "range_proof", surplus_key, "min_amount")
        missing = [key for key in required if key not in data]
        if missing:
            raise DocumentFormatError(
                f"Missing fields: {', '.join(missing)}",
                code="INVALID_DOCUMENT",
                details={"missing": missing}
            )

        commitments = data["commitments"]
        ownership = data.get("ownership_proofs") or []
        if not isinstance(commitments, list) or not isinstance(ownership, list):
            raise DocumentFormatError(
                "commitments and ownership_proofs must be lists",
                code="INVALID_DOCUMENT"
            )

        psbt_hash = data.get("psbt_hash")

        return cls(
            block_height=data["block_height"],
            utxo_root=_decode_field("utxo_root", lambda: hex_to_bytes(data["utxo_root"])),
            commitments=tuple(
                _decode_field(f"commitments[{i}]", lambda c=c: hex_to_bytes(c))
                for i, c in enumerate(commitments)
            ),
            range_proof=_decode_field("range_proof", lambda: base64_to_bytes(data["range_proof"])),
            surplus_commitment=_decode_field(surplus_key, lambda: hex_to_bytes(data[surplus_key])),
            min_amount=data["min_amount"],
            ownership_proofs=tuple(
                _decode_field(f"ownership_proofs[{i}]", lambda p=p: hex_to_bytes(p))
                for i, p in enumerate(ownership)
            ),
            psbt_hash=(
                _decode_field("psbt_hash", lambda: hex_to_bytes(psbt_hash))
                if psbt_hash is not None else None
            ),
            signing_type=data.get("signing_type"),
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> ProofDocument:
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise DocumentFormatError(f"Invalid proof JSON: {e}", code="INVALID_DOCUMENT")
        return cls.from_dict(data)

    def __repr__(self) -> str:
        state = "finalized" if self.is_finalized else ("draft" if self.is_draft else "one-shot")
        return (
            f"ProofDocument(height={self.block_height}, "
            f"root={self.utxo_root.hex()[:16]}..., "
            f"commitments={len(self.commitments)}, state={state})"
        )


# ============================================================================
# HELPERS
# ============================================================================

def _check_length(name: str, value: bytes, expected: int) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != expected:
        raise DocumentFormatError(
            f"{name} must be {expected} bytes",
            code="INVALID_DOCUMENT",
            details={"field": name}
        )


def _decode_field(name: str, decode):
    try:
        return decode()
    except CodecError as e:
        raise DocumentFormatError(
            f"Malformed field {name}: {e.message}",
            code="INVALID_DOCUMENT",
            details={"field": name}
        )


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "UnspentOutput",
    "ProofDocument",
]
