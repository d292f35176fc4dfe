"""
ReserveProof - Proof Service Tests
====================================
Unit tests for generation, signing request and verification.
"""

import json

import pytest

from reserve_proof.constants import SIGNING_TYPE_PSBT_OPRETURN
from reserve_proof.errors import (
    BelowThresholdError,
    DocumentFormatError,
    InvalidAmountError,
    NoOutputsError,
    RootMismatchError,
    SigningRequestMismatchError,
)
from reserve_proof.logging_setup import AuditLogger
from reserve_proof.network.oracle import StaticChainOracle
from reserve_proof.services.proof_service import ProofService
from reserve_proof.utils.merkle import compute_merkle_root
from reserve_proof.wallet.psbt import PSBT


class TestGenerate:
    """Test one-shot generation"""

    def test_generate(self, one_shot_document):
        """Test one-shot document layout"""
        assert one_shot_document.block_height == 100
        assert one_shot_document.commitment_count == 3
        assert one_shot_document.min_amount == 30
        assert one_shot_document.psbt_hash is None
        assert one_shot_document.signing_type is None
        assert one_shot_document.utxo_root == compute_merkle_root(one_shot_document.commitments)

    def test_below_threshold(self, service, address):
        """Test minimum above total"""
        with pytest.raises(BelowThresholdError):
            service.generate(address, min_amount=46, height=100)

    def test_no_outputs(self, service):
        """Test address without UTXOs"""
        with pytest.raises(NoOutputsError):
            service.generate("bcrt1qempty", min_amount=0, height=100)

    @pytest.mark.parametrize("height", [-1, "100"])
    def test_invalid_height(self, service, address, height):
        """Test malformed height"""
        with pytest.raises(InvalidAmountError):
            service.generate(address, min_amount=30, height=height)

    def test_verify_roundtrip(self, service, one_shot_document):
        """Test generated document verifies"""
        assert service.verify(one_shot_document).commitment_count == 3


class TestSigningRequest:
    """Test split mode"""

    def test_draft_binds_psbt(self, signing_request):
        """Test psbt_hash is the unsigned-tx hash of the returned PSBT"""
        psbt_b64, draft = signing_request
        psbt = PSBT.from_base64(psbt_b64)

        assert draft.is_draft
        assert draft.signing_type == SIGNING_TYPE_PSBT_OPRETURN
        assert draft.psbt_hash == psbt.unsigned_tx_hash()
        assert psbt.input_count == draft.commitment_count
        assert psbt.unsigned_tx.outputs[0].op_return_payload() == draft.utxo_root

    def test_mismatching_template(self, sample_outputs, params, address):
        """Test oracle template that drops an input"""

        class DroppingOracle(StaticChainOracle):
            def create_funded_spending_template(self, inputs, embedded_data):
                return super().create_funded_spending_template(inputs[:-1], embedded_data)

        service = ProofService(DroppingOracle({address: sample_outputs}, height=120), params)

        with pytest.raises(SigningRequestMismatchError):
            service.build_signing_request(address, min_amount=30, height=100)

    def test_attach_signatures(self, service, signing_request, sign_psbt):
        """Test service-level finalize"""
        psbt_b64, draft = signing_request
        document = service.attach_signatures(draft, sign_psbt(psbt_b64))

        assert document.is_finalized
        assert service.verify(document).finalized

    def test_attach_to_one_shot(self, service, one_shot_document, signing_request, sign_psbt):
        """Test one-shot document is not a signing draft"""
        psbt_b64, _ = signing_request
        with pytest.raises(DocumentFormatError) as exc_info:
            service.attach_signatures(one_shot_document, sign_psbt(psbt_b64))
        assert exc_info.value.code == "NOT_A_DRAFT"


class TestAudit:
    """Test audit trail"""

    def test_audit_records(self, oracle, params, address, tmp_path):
        """Test generation and failed verification are audited"""
        audit = AuditLogger(tmp_path)
        service = ProofService(oracle, params, audit=audit)

        document = service.generate(address, min_amount=30, height=100)
        broken = document.__class__.from_dict(
            {**document.to_dict(), "commitments": [c.hex() for c in document.commitments[::-1]]}
        )
        with pytest.raises(RootMismatchError):
            service.verify(broken)

        for handler in audit.logger.handlers:
            handler.flush()

        lines = (tmp_path / "audit.log").read_text(encoding="utf-8").splitlines()
        records = [json.loads(line)["extra_data"] for line in lines]
        actions = [r["action"] for r in records]

        assert "proof_generated" in actions
        verification = next(r for r in records if r["action"] == "proof_verified")
        assert verification["success"] is False
        assert verification["error"] == "ROOT_MISMATCH"
