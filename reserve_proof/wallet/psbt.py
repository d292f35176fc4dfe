"""
ReserveProof - PSBT Codec
===========================
Sottoinsieme di BIP-174 usato dal workflow di firma.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Supportato:
- Global map: PSBT_GLOBAL_UNSIGNED_TX (0x00)
- Input map: PSBT_IN_PARTIAL_SIG (0x02), PSBT_IN_TAP_KEY_SIG (0x13)
- Tutti gli altri campi sono conservati byte per byte ma non interpretati

La transazione non firmata è nel formato legacy (niente witness, scriptSig
vuoti): i suoi byte non cambiano durante la firma, quindi il suo SHA-256 è
l'identificativo stabile della richiesta di firma (psbt_hash).
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from reserve_proof.constants import (
    DIGEST_SIZE,
    OP_RETURN,
    PSBT_GLOBAL_UNSIGNED_TX,
    PSBT_IN_PARTIAL_SIG,
    PSBT_IN_TAP_KEY_SIG,
    PSBT_MAGIC,
)
from reserve_proof.errors import CodecError, PSBTFormatError, SigningRequestMismatchError
from reserve_proof.logging_setup import get_logger
from reserve_proof.utils.serialization import (
    base64_to_bytes,
    bytes_to_base64,
    compact_size,
    read_compact_size,
)

logger = get_logger("wallet.psbt")


# ============================================================================
# BYTE READER
# ============================================================================

class _Reader:
    """Cursore su bytes; ogni lettura oltre la fine è PSBTFormatError"""

    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0

    def read(self, n: int) -> bytes:
        if self.offset + n > len(self.data):
            raise PSBTFormatError(
                "Unexpected end of data",
                code="PSBT_TRUNCATED",
                details={"offset": self.offset, "wanted": n}
            )
        chunk = self.data[self.offset:self.offset + n]
        self.offset += n
        return chunk

    def read_compact(self) -> int:
        try:
            value, size = read_compact_size(self.data, self.offset)
        except CodecError:
            raise PSBTFormatError("Truncated compact size", code="PSBT_TRUNCATED")
        self.offset += size
        return value

    def read_u32(self) -> int:
        return struct.unpack("<I", self.read(4))[0]

    def read_u64(self) -> int:
        return struct.unpack("<Q", self.read(8))[0]

    def at_end(self) -> bool:
        return self.offset == len(self.data)


# ============================================================================
# UNSIGNED TRANSACTION
# ============================================================================

@dataclass(frozen=True)
class TxIn:
    """Input: outpoint (txid little-endian + vout), scriptSig, sequence"""
    txid_le: bytes
    vout: int
    script_sig: bytes = b""
    sequence: int = 0xFFFFFFFD

    @property
    def txid(self) -> str:
        """txid in display order"""
        return self.txid_le[::-1].hex()

    def serialize(self) -> bytes:
        return (
            self.txid_le
            + struct.pack("<I", self.vout)
            + compact_size(len(self.script_sig))
            + self.script_sig
            + struct.pack("<I", self.sequence)
        )


@dataclass(frozen=True)
class TxOut:
    """Output: valore in satoshi + scriptPubKey"""
    value: int
    script_pubkey: bytes

    @property
    def is_op_return(self) -> bool:
        return len(self.script_pubkey) > 0 and self.script_pubkey[0] == OP_RETURN

    def op_return_payload(self) -> Optional[bytes]:
        """
        Payload del primo push dopo OP_RETURN (None se non è un data output).

        Gestisce push diretti (1-75 byte) e OP_PUSHDATA1.
        """
        if not self.is_op_return or len(self.script_pubkey) < 2:
            return None

        opcode = self.script_pubkey[1]
        if 1 <= opcode <= 75:
            start, length = 2, opcode
        elif opcode == 0x4C and len(self.script_pubkey) >= 3:
            start, length = 3, self.script_pubkey[2]
        else:
            return None

        payload = self.script_pubkey[start:start + length]
        return payload if len(payload) == length else None

    def serialize(self) -> bytes:
        return struct.pack("<Q", self.value) + compact_size(len(self.script_pubkey)) + self.script_pubkey


def op_return_script(payload: bytes) -> bytes:
    """OP_RETURN <push payload> (payload <= 75 byte)"""
    if len(payload) > 75:
        raise ValueError("OP_RETURN payload too large for a direct push")
    return bytes([OP_RETURN, len(payload)]) + payload


@dataclass(frozen=True)
class UnsignedTransaction:
    """
    Transazione non firmata (formato legacy, senza witness).

    Examples:
        >>> tx = UnsignedTransaction.parse(raw)
        >>> tx.serialize() == raw
        True
    """
    version: int
    inputs: Tuple[TxIn, ...]
    outputs: Tuple[TxOut, ...]
    locktime: int = 0

    def serialize(self) -> bytes:
        parts = [struct.pack("<i", self.version), compact_size(len(self.inputs))]
        parts += [txin.serialize() for txin in self.inputs]
        parts.append(compact_size(len(self.outputs)))
        parts += [txout.serialize() for txout in self.outputs]
        parts.append(struct.pack("<I", self.locktime))
        return b"".join(parts)

    @classmethod
    def parse(cls, raw: bytes) -> UnsignedTransaction:
        """
        Parse di una transazione legacy.

        Raises:
            PSBTFormatError: dati troncati, byte residui o serializzazione witness
        """
        reader = _Reader(raw)
        version = struct.unpack("<i", reader.read(4))[0]

        input_count = reader.read_compact()
        if input_count == 0:
            # 0x00 0x01 = marker/flag segwit, non ammesso in una PSBT
            raise PSBTFormatError(
                "Unsigned transaction has no inputs or uses witness serialization",
                code="PSBT_INVALID_TX"
            )

        inputs = []
        for _ in range(input_count):
            txid_le = reader.read(32)
            vout = reader.read_u32()
            script_sig = reader.read(reader.read_compact())
            sequence = reader.read_u32()
            inputs.append(TxIn(txid_le=txid_le, vout=vout, script_sig=script_sig, sequence=sequence))

        outputs = []
        for _ in range(reader.read_compact()):
            value = reader.read_u64()
            script = reader.read(reader.read_compact())
            outputs.append(TxOut(value=value, script_pubkey=script))

        locktime = reader.read_u32()

        if not reader.at_end():
            raise PSBTFormatError("Trailing bytes after transaction", code="PSBT_INVALID_TX")

        return cls(version=version, inputs=tuple(inputs), outputs=tuple(outputs), locktime=locktime)


# ============================================================================
# PSBT
# ============================================================================

@dataclass(frozen=True)
class PSBTField:
    """Coppia key/value di una mappa PSBT"""
    key_type: int
    key_data: bytes
    value: bytes

    @property
    def key(self) -> bytes:
        return compact_size(self.key_type) + self.key_data

    def serialize(self) -> bytes:
        key = self.key
        return compact_size(len(key)) + key + compact_size(len(self.value)) + self.value


@dataclass(frozen=True)
class PartialSignature:
    """
    Firma parziale di un input.

    Attributes:
        public_key: Chiave pubblica (key data del campo 0x02)
        signature: Firma DER + sighash byte
    """
    public_key: bytes
    signature: bytes


@dataclass
class PSBT:
    """
    Partially Signed Bitcoin Transaction (BIP-174, versione 0).

    Attributes:
        global_fields: Mappa globale (contiene la tx non firmata)
        input_maps: Una mappa per input
        output_maps: Una mappa per output
    """

    global_fields: List[PSBTField]
    input_maps: List[List[PSBTField]] = field(default_factory=list)
    output_maps: List[List[PSBTField]] = field(default_factory=list)

    # ========================================================================
    # CONSTRUCTION
    # ========================================================================

    @classmethod
    def from_unsigned_tx(cls, tx: UnsignedTransaction) -> PSBT:
        """PSBT vuota (Creator role) per una transazione non firmata"""
        return cls(
            global_fields=[PSBTField(PSBT_GLOBAL_UNSIGNED_TX, b"", tx.serialize())],
            input_maps=[[] for _ in tx.inputs],
            output_maps=[[] for _ in tx.outputs],
        )

    def add_input_field(self, index: int, key_type: int, key_data: bytes, value: bytes) -> None:
        self.input_maps[index].append(PSBTField(key_type, key_data, value))

    def add_partial_signature(self, index: int, public_key: bytes, signature: bytes) -> None:
        self.add_input_field(index, PSBT_IN_PARTIAL_SIG, public_key, signature)

    def add_tap_key_signature(self, index: int, signature: bytes) -> None:
        self.add_input_field(index, PSBT_IN_TAP_KEY_SIG, b"", signature)

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def unsigned_tx_bytes(self) -> bytes:
        for f in self.global_fields:
            if f.key_type == PSBT_GLOBAL_UNSIGNED_TX and not f.key_data:
                return f.value
        raise PSBTFormatError("PSBT has no unsigned transaction", code="PSBT_NO_TX")

    @property
    def unsigned_tx(self) -> UnsignedTransaction:
        return UnsignedTransaction.parse(self.unsigned_tx_bytes)

    @property
    def input_count(self) -> int:
        return len(self.input_maps)

    def unsigned_tx_hash(self) -> bytes:
        """SHA-256 dei byte esatti della tx non firmata"""
        return hashlib.sha256(self.unsigned_tx_bytes).digest()

    def partial_signatures(self, index: int) -> List[PartialSignature]:
        return [
            PartialSignature(public_key=f.key_data, signature=f.value)
            for f in self.input_maps[index]
            if f.key_type == PSBT_IN_PARTIAL_SIG
        ]

    def tap_key_signature(self, index: int) -> Optional[bytes]:
        for f in self.input_maps[index]:
            if f.key_type == PSBT_IN_TAP_KEY_SIG and not f.key_data:
                return f.value
        return None

    # ========================================================================
    # SERIALIZATION
    # ========================================================================

    @staticmethod
    def _serialize_map(fields: Sequence[PSBTField]) -> bytes:
        return b"".join(f.serialize() for f in fields) + b"\x00"

    def serialize(self) -> bytes:
        result = PSBT_MAGIC + self._serialize_map(self.global_fields)
        for input_fields in self.input_maps:
            result += self._serialize_map(input_fields)
        for output_fields in self.output_maps:
            result += self._serialize_map(output_fields)
        return result

    def to_base64(self) -> str:
        return bytes_to_base64(self.serialize())

    @classmethod
    def parse(cls, data: bytes) -> PSBT:
        """
        Parse PSBT binaria.

        Raises:
            PSBTFormatError: magic errato, mappe malformate, chiavi duplicate
        """
        if not data.startswith(PSBT_MAGIC):
            raise PSBTFormatError("Missing PSBT magic bytes", code="PSBT_BAD_MAGIC")

        reader = _Reader(data)
        reader.read(len(PSBT_MAGIC))

        global_fields = _read_map(reader, "global")
        psbt = cls(global_fields=global_fields)
        tx = psbt.unsigned_tx

        psbt.input_maps = [_read_map(reader, f"input {i}") for i in range(len(tx.inputs))]
        psbt.output_maps = [_read_map(reader, f"output {i}") for i in range(len(tx.outputs))]

        if not reader.at_end():
            raise PSBTFormatError("Trailing bytes after PSBT maps", code="PSBT_TRAILING_DATA")

        return psbt

    @classmethod
    def from_base64(cls, psbt_base64: str) -> PSBT:
        try:
            data = base64_to_bytes(psbt_base64)
        except CodecError as e:
            raise PSBTFormatError(f"PSBT is not valid base64: {e.message}", code="PSBT_BAD_BASE64")
        return cls.parse(data)


def _read_map(reader: _Reader, name: str) -> List[PSBTField]:
    fields: List[PSBTField] = []
    seen: Dict[bytes, bool] = {}

    while True:
        key_len = reader.read_compact()
        if key_len == 0:
            return fields

        key = reader.read(key_len)
        key_type, type_size = _key_type(key)
        value = reader.read(reader.read_compact())

        if key in seen:
            raise PSBTFormatError(
                f"Duplicate key in {name} map",
                code="PSBT_DUPLICATE_KEY",
                details={"map": name, "key_type": key_type}
            )
        seen[key] = True
        fields.append(PSBTField(key_type=key_type, key_data=key[type_size:], value=value))


def _key_type(key: bytes) -> Tuple[int, int]:
    try:
        return read_compact_size(key, 0)
    except CodecError:
        raise PSBTFormatError("Malformed PSBT key", code="PSBT_BAD_KEY")


# ============================================================================
# HELPERS
# ============================================================================

def compute_psbt_hash(psbt_base64: str) -> bytes:
    """psbt_hash di una PSBT base64 (SHA-256 della tx non firmata)"""
    return PSBT.from_base64(psbt_base64).unsigned_tx_hash()


def check_spending_template(psbt: PSBT, outputs: Sequence, utxo_root: bytes) -> None:
    """
    Verifica che il template restituito dall'oracle sia la richiesta attesa.

    - spende esattamente gli output impegnati, nello stesso ordine
    - contiene un output OP_RETURN il cui payload è utxo_root

    Args:
        psbt: PSBT del template
        outputs: UnspentOutput impegnati (ordine delle commitment)
        utxo_root: Merkle root delle commitment

    Raises:
        SigningRequestMismatchError: template non coerente
    """
    tx = psbt.unsigned_tx

    spent = [(txin.txid, txin.vout) for txin in tx.inputs]
    expected = [(o.txid, o.vout) for o in outputs]
    if spent != expected:
        raise SigningRequestMismatchError(
            "Spending template does not spend exactly the committed outputs in order",
            code="TEMPLATE_INPUT_MISMATCH",
            details={"stage": "build_signing_request", "expected": len(expected), "actual": len(spent)}
        )

    if len(utxo_root) != DIGEST_SIZE or not any(
        out.op_return_payload() == utxo_root for out in tx.outputs
    ):
        raise SigningRequestMismatchError(
            "Spending template does not embed the UTXO root in an OP_RETURN output",
            code="TEMPLATE_ROOT_MISSING",
            details={"stage": "build_signing_request"}
        )


# ============================================================================
# EXPORT
# ============================================================================

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
