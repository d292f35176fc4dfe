"""
ReserveProof - PSBT Tests
===========================
Unit tests for the PSBT codec and spending-template checks.
"""

import hashlib

import pytest

from reserve_proof.constants import PSBT_MAGIC
from reserve_proof.errors import PSBTFormatError, SigningRequestMismatchError
from reserve_proof.wallet.psbt import (
    PSBT,
    TxIn,
    TxOut,
    UnsignedTransaction,
    check_spending_template,
    compute_psbt_hash,
    op_return_script,
)


ROOT = b"\x77" * 32


def make_tx(outputs, root=ROOT) -> UnsignedTransaction:
    return UnsignedTransaction(
        version=2,
        inputs=tuple(TxIn(txid_le=o.txid_le(), vout=o.vout) for o in outputs),
        outputs=(TxOut(value=0, script_pubkey=op_return_script(root)),),
        locktime=0,
    )


class TestUnsignedTransaction:
    """Test legacy transaction codec"""

    def test_roundtrip(self, sample_outputs):
        """Test parse(serialize(tx)) == tx"""
        tx = make_tx(sample_outputs)
        assert UnsignedTransaction.parse(tx.serialize()) == tx

    def test_txid_display_order(self, sample_outputs):
        """Test TxIn.txid is big-endian hex"""
        tx = make_tx(sample_outputs)
        assert tx.inputs[1].txid == sample_outputs[1].txid

    def test_trailing_bytes(self, sample_outputs):
        """Test trailing data is rejected"""
        with pytest.raises(PSBTFormatError):
            UnsignedTransaction.parse(make_tx(sample_outputs).serialize() + b"\x00")

    def test_truncated(self, sample_outputs):
        """Test truncated data is rejected"""
        with pytest.raises(PSBTFormatError):
            UnsignedTransaction.parse(make_tx(sample_outputs).serialize()[:-3])

    def test_op_return_payload(self):
        """Test OP_RETURN payload extraction"""
        out = TxOut(value=0, script_pubkey=op_return_script(ROOT))
        pushdata1 = TxOut(value=0, script_pubkey=b"\x6a\x4c\x20" + ROOT)
        p2wpkh = TxOut(value=1000, script_pubkey=b"\x00\x14" + b"\x01" * 20)

        assert out.op_return_payload() == ROOT
        assert pushdata1.op_return_payload() == ROOT
        assert p2wpkh.op_return_payload() is None


class TestPSBT:
    """Test PSBT codec"""

    def test_roundtrip(self, sample_outputs):
        """Test base64 roundtrip keeps all maps"""
        psbt = PSBT.from_unsigned_tx(make_tx(sample_outputs))
        psbt.add_partial_signature(0, b"\x02" * 33, b"\x30" * 71)
        psbt.add_input_field(1, 0x01, b"", b"\x00" * 43)

        restored = PSBT.from_base64(psbt.to_base64())

        assert restored.serialize() == psbt.serialize()
        assert restored.input_count == 3
        assert restored.partial_signatures(0)[0].public_key == b"\x02" * 33
        assert restored.partial_signatures(1) == []

    def test_hash_stable_across_signing(self, sample_outputs):
        """Test adding signatures does not change the unsigned-tx hash"""
        psbt = PSBT.from_unsigned_tx(make_tx(sample_outputs))
        before = psbt.unsigned_tx_hash()

        psbt.add_tap_key_signature(2, b"\xaa" * 64)

        assert psbt.unsigned_tx_hash() == before
        assert before == hashlib.sha256(make_tx(sample_outputs).serialize()).digest()
        assert compute_psbt_hash(psbt.to_base64()) == before

    def test_tap_key_signature(self, sample_outputs):
        """Test taproot key-path signature lookup"""
        psbt = PSBT.from_unsigned_tx(make_tx(sample_outputs))
        psbt.add_tap_key_signature(0, b"\xaa" * 64)

        assert psbt.tap_key_signature(0) == b"\xaa" * 64
        assert psbt.tap_key_signature(1) is None

    def test_bad_magic(self):
        """Test missing magic bytes"""
        with pytest.raises(PSBTFormatError) as exc_info:
            PSBT.parse(b"notapsbt")
        assert exc_info.value.code == "PSBT_BAD_MAGIC"

    def test_bad_base64(self):
        """Test invalid base64"""
        with pytest.raises(PSBTFormatError):
            PSBT.from_base64("!!!not base64!!!")

    def test_duplicate_key(self, sample_outputs):
        """Test duplicate keys in a map"""
        psbt = PSBT.from_unsigned_tx(make_tx(sample_outputs))
        psbt.add_partial_signature(0, b"\x02" * 33, b"\x30" * 71)
        psbt.add_partial_signature(0, b"\x02" * 33, b"\x31" * 71)

        with pytest.raises(PSBTFormatError) as exc_info:
            PSBT.parse(psbt.serialize())
        assert exc_info.value.code == "PSBT_DUPLICATE_KEY"

    def test_trailing_data(self, sample_outputs):
        """Test bytes after the last map"""
        data = PSBT.from_unsigned_tx(make_tx(sample_outputs)).serialize() + b"\x01"
        with pytest.raises(PSBTFormatError):
            PSBT.parse(data)

    def test_missing_unsigned_tx(self):
        """Test global map without unsigned tx"""
        with pytest.raises(PSBTFormatError):
            PSBT.parse(PSBT_MAGIC + b"\x00")


class TestSpendingTemplate:
    """Test check_spending_template"""

    def test_matching_template(self, sample_outputs):
        """Test exact inputs and embedded root"""
        psbt = PSBT.from_unsigned_tx(make_tx(sample_outputs))
        check_spending_template(psbt, sample_outputs, ROOT)

    def test_reordered_inputs(self, sample_outputs):
        """Test inputs in a different order"""
        psbt = PSBT.from_unsigned_tx(make_tx(sample_outputs[::-1]))

        with pytest.raises(SigningRequestMismatchError) as exc_info:
            check_spending_template(psbt, sample_outputs, ROOT)
        assert exc_info.value.code == "TEMPLATE_INPUT_MISMATCH"

    def test_missing_root(self, sample_outputs):
        """Test OP_RETURN carrying another payload"""
        psbt = PSBT.from_unsigned_tx(make_tx(sample_outputs, root=b"\x00" * 32))

        with pytest.raises(SigningRequestMismatchError) as exc_info:
            check_spending_template(psbt, sample_outputs, ROOT)
        assert exc_info.value.code == "TEMPLATE_ROOT_MISSING"
