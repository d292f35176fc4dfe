"""
ReserveProof - Pytest Configuration
=====================================
Fixtures e configurazione per testing.

Last Updated: 2026-10-18
Version: 1.0.0
"""

import pytest

# Internal imports
from reserve_proof.config import ReserveSettings
from reserve_proof.crypto.range_proof import get_default_parameters
from reserve_proof.domain.models import UnspentOutput
from reserve_proof.network.oracle import StaticChainOracle
from reserve_proof.services.proof_service import ProofService
from reserve_proof.wallet.psbt import PSBT


TEST_ADDRESS = "bcrt1qreservetestaddress0000000000000000000"
CHAIN_HEIGHT = 120
PROOF_HEIGHT = 100


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

@pytest.fixture
def test_config(tmp_path):
    """Test configuration"""
    return ReserveSettings(
        network="regtest",
        rpc_url="http://127.0.0.1:18443",
        rpc_user="user",
        rpc_password="pass",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def params():
    """Parametri di protocollo (generatori cachati)"""
    return get_default_parameters()


# ============================================================================
# CHAIN FIXTURES
# ============================================================================

@pytest.fixture
def address():
    """Indirizzo con gli UTXO di test"""
    return TEST_ADDRESS


@pytest.fixture
def sample_outputs():
    """Tre UTXO: 10 + 20 + 15 = 45 sat"""
    return [
        UnspentOutput(txid="11" * 32, vout=0, value=10),
        UnspentOutput(txid="22" * 32, vout=1, value=20),
        UnspentOutput(txid="33" * 32, vout=2, value=15),
    ]


@pytest.fixture
def oracle(sample_outputs):
    """Oracle in memoria con gli UTXO di TEST_ADDRESS"""
    return StaticChainOracle({TEST_ADDRESS: sample_outputs}, height=CHAIN_HEIGHT)


@pytest.fixture
def service(oracle, params):
    """ProofService senza audit"""
    return ProofService(oracle, params)


# ============================================================================
# DOCUMENT FIXTURES
# ============================================================================

@pytest.fixture
def one_shot_document(service):
    """Documento one-shot, minimo 30"""
    return service.generate(TEST_ADDRESS, min_amount=30, height=PROOF_HEIGHT)


@pytest.fixture
def signing_request(service):
    """(psbt_base64, draft) per minimo 30"""
    return service.build_signing_request(TEST_ADDRESS, min_amount=30, height=PROOF_HEIGHT)


# ============================================================================
# SIGNER FIXTURES
# ============================================================================

def fake_signature(index: int) -> bytes:
    """Firma DER fittizia + SIGHASH_ALL (non verificata dal workflow)"""
    return bytes([0x30, 0x44]) + bytes([index + 1]) * 68 + b"\x01"


def fake_pubkey(index: int) -> bytes:
    return b"\x02" + bytes([index + 1]) * 32


@pytest.fixture
def sign_psbt():
    """
    Signer esterno simulato.

    sign_psbt(psbt_b64, taproot=False, skip=()) -> PSBT firmata base64
    """
    def _sign(psbt_b64: str, taproot: bool = False, skip=()) -> str:
        psbt = PSBT.from_base64(psbt_b64)
        for index in range(psbt.input_count):
            if index in skip:
                continue
            if taproot:
                psbt.add_tap_key_signature(index, bytes([0xA0 + index]) * 64)
            else:
                psbt.add_partial_signature(index, fake_pubkey(index), fake_signature(index))
        return psbt.to_base64()

    return _sign
