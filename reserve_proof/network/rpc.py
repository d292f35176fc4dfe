"""
ReserveProof - Bitcoin Core RPC Oracle
========================================
ChainOracle su JSON-RPC di Bitcoin Core (requests).

Security Level: MEDIUM
Last Updated: 2026-10-18
Version: 1.0.0

Metodi RPC usati:
- listunspent 0 9999999 [address]
- getblockcount
- walletcreatefundedpsbt inputs [{"data": root}] 0 options true

Gli importi BTC sono letti come Decimal e convertiti in satoshi in modo
esatto; un importo con più di 8 decimali è un errore del nodo.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence

import requests

from reserve_proof.constants import SATOSHI_PER_BTC
from reserve_proof.domain.models import UnspentOutput
from reserve_proof.errors import (
    OracleConnectionError,
    OracleError,
    OracleRPCError,
    InputError,
)
from reserve_proof.logging_setup import get_logger

logger = get_logger("network.rpc")


# ============================================================================
# HELPERS
# ============================================================================

def btc_to_satoshi(amount: Any) -> int:
    """
    Converte un importo BTC (Decimal/str/int) in satoshi senza arrotondamenti.

    Raises:
        OracleError: importo non rappresentabile in satoshi interi

    Examples:
        >>> btc_to_satoshi(Decimal("0.00000010"))
        10
    """
    try:
        sats = Decimal(str(amount)) * SATOSHI_PER_BTC
    except InvalidOperation:
        raise OracleError(f"Invalid BTC amount: {amount!r}", code="BAD_RESPONSE")

    if sats != sats.to_integral_value() or sats < 0:
        raise OracleError(f"Amount is not a whole number of satoshi: {amount}", code="BAD_RESPONSE")
    return int(sats)


# ============================================================================
# RPC ORACLE
# ============================================================================

class BitcoinRPCOracle:
    """
    Oracle JSON-RPC per bitcoind.

    Usage:
        oracle = BitcoinRPCOracle("http://127.0.0.1:18443", "user", "pass")
        height = oracle.current_height()
        utxos = oracle.list_unspent("bcrt1q...")
    """

    def __init__(
        self,
        url: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: int = 30,
    ):
        self.url = url
        self.auth = (user, password) if user is not None else None
        self.timeout = timeout
        self._id = 0

    @classmethod
    def from_settings(cls, settings) -> "BitcoinRPCOracle":
        return cls(
            url=settings.rpc_url,
            user=settings.rpc_user,
            password=settings.rpc_password,
            timeout=settings.rpc_timeout,
        )

    def _call(self, method: str, params: Optional[list] = None) -> Any:
        """
        Esegue una chiamata JSON-RPC.

        Raises:
            OracleConnectionError: trasporto fallito o risposta non JSON
            OracleRPCError: errore restituito dal nodo
        """
        self._id += 1
        payload = {
            "jsonrpc": "1.0",
            "id": self._id,
            "method": method,
            "params": params or [],
        }

        logger.debug(f"RPC call {method}", extra_data={"id": self._id})

        try:
            response = requests.post(
                self.url,
                json=payload,
                auth=self.auth,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise OracleConnectionError(
                f"Connection to node failed: {e}",
                code="CONNECTION_FAILED",
                details={"method": method}
            )

        # bitcoind risponde 500 con un body JSON-RPC per gli errori applicativi
        try:
            result = response.json(parse_float=Decimal)
        except ValueError:
            raise OracleConnectionError(
                f"Node returned non-JSON response (HTTP {response.status_code})",
                code="BAD_RESPONSE",
                details={"method": method, "status": response.status_code}
            )

        error = result.get("error") if isinstance(result, dict) else None
        if error:
            raise OracleRPCError(error.get("code", -1), error.get("message", "unknown error"))

        if not response.ok:
            raise OracleConnectionError(
                f"Node returned HTTP {response.status_code}",
                code="HTTP_ERROR",
                details={"method": method, "status": response.status_code}
            )

        return result.get("result")

    # ========================================================================
    # ChainOracle
    # ========================================================================

    def list_unspent(self, address: str) -> List[UnspentOutput]:
        entries = self._call("listunspent", [0, 9999999, [address]])
        if not isinstance(entries, list):
            raise OracleError("listunspent did not return a list", code="BAD_RESPONSE")

        outputs = []
        for entry in entries:
            try:
                outputs.append(UnspentOutput(
                    txid=entry["txid"],
                    vout=entry["vout"],
                    value=btc_to_satoshi(entry["amount"]),
                ))
            except (KeyError, TypeError) as e:
                raise OracleError(f"Malformed listunspent entry: {e}", code="BAD_RESPONSE")
            except InputError as e:
                raise OracleError(f"Malformed listunspent entry: {e.message}", code="BAD_RESPONSE")

        logger.info("UTXOs fetched", extra_data={"count": len(outputs)})
        return outputs

    def current_height(self) -> int:
        height = self._call("getblockcount")
        if not isinstance(height, int):
            raise OracleError("getblockcount did not return an integer", code="BAD_RESPONSE")
        return height

    def create_funded_spending_template(
        self,
        inputs: Sequence[UnspentOutput],
        embedded_data: bytes,
    ) -> str:
        result = self._call(
            "walletcreatefundedpsbt",
            [
                [{"txid": u.txid, "vout": u.vout} for u in inputs],
                [{"data": embedded_data.hex()}],
                0,
                {"feeRate": 0, "changePosition": -1, "lockUnspents": True},
                True,
            ],
        )
        if not isinstance(result, dict) or not isinstance(result.get("psbt"), str):
            raise OracleError("walletcreatefundedpsbt returned no PSBT", code="BAD_RESPONSE")
        return result["psbt"]


__all__ = [
    "btc_to_satoshi",
    "BitcoinRPCOracle",
]
