"""
ReserveProof - Network Package
================================
Chain-state oracle (protocollo, Bitcoin Core RPC, in memoria).
"""

from reserve_proof.network.oracle import ChainOracle, StaticChainOracle
from reserve_proof.network.rpc import BitcoinRPCOracle, btc_to_satoshi

__all__ = [
    "ChainOracle",
    "StaticChainOracle",
    "BitcoinRPCOracle",
    "btc_to_satoshi",
]
