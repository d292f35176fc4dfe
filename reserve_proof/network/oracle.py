"""
ReserveProof - Chain-State Oracle
===================================
Interfaccia verso lo stato della chain: UTXO di un indirizzo, altezza
corrente, template di spesa (PSBT) con un output di dati.

Security Level: MEDIUM
Last Updated: 2026-10-18
Version: 1.0.0

Implementazioni:
- BitcoinRPCOracle (network/rpc.py): nodo Bitcoin Core via JSON-RPC
- StaticChainOracle: stato in memoria (regtest offline, test)

Ogni metodo viene invocato una sola volta per step; nessun retry.
"""

from typing import Dict, List, Optional, Protocol, Sequence, runtime_checkable

from reserve_proof.domain.models import UnspentOutput
from reserve_proof.logging_setup import get_logger
from reserve_proof.wallet.psbt import PSBT, TxIn, TxOut, UnsignedTransaction, op_return_script

logger = get_logger("network.oracle")


# ============================================================================
# PROTOCOL
# ============================================================================

@runtime_checkable
class ChainOracle(Protocol):
    """Sorgente dello stato della chain usata da generazione e verifica"""

    def list_unspent(self, address: str) -> List[UnspentOutput]:
        """UTXO dell'indirizzo, nell'ordine del nodo (non riordinati)"""
        ...

    def current_height(self) -> int:
        """Altezza corrente della chain"""
        ...

    def create_funded_spending_template(
        self,
        inputs: Sequence[UnspentOutput],
        embedded_data: bytes,
    ) -> str:
        """PSBT base64 che spende `inputs` con un output OP_RETURN `embedded_data`"""
        ...


# ============================================================================
# IN-MEMORY ORACLE
# ============================================================================

class StaticChainOracle:
    """
    Oracle in memoria.

    Examples:
        >>> oracle = StaticChainOracle({"bcrt1q...": [utxo1, utxo2]}, height=120)
        >>> oracle.current_height()
        120
    """

    def __init__(
        self,
        utxos: Optional[Dict[str, Sequence[UnspentOutput]]] = None,
        height: int = 0,
        tx_version: int = 2,
    ):
        self.utxos = {addr: list(outs) for addr, outs in (utxos or {}).items()}
        self.height = height
        self.tx_version = tx_version

    def list_unspent(self, address: str) -> List[UnspentOutput]:
        return list(self.utxos.get(address, []))

    def current_height(self) -> int:
        return self.height

    def create_funded_spending_template(
        self,
        inputs: Sequence[UnspentOutput],
        embedded_data: bytes,
    ) -> str:
        """Template a fee zero: tutti gli input, un solo output OP_RETURN"""
        tx = UnsignedTransaction(
            version=self.tx_version,
            inputs=tuple(TxIn(txid_le=u.txid_le(), vout=u.vout) for u in inputs),
            outputs=(TxOut(value=0, script_pubkey=op_return_script(embedded_data)),),
            locktime=0,
        )
        logger.debug("Static spending template built", extra_data={"inputs": len(inputs)})
        return PSBT.from_unsigned_tx(tx).to_base64()


__all__ = [
    "ChainOracle",
    "StaticChainOracle",
]
