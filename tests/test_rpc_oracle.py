"""
ReserveProof - RPC Oracle Tests
=================================
Unit tests for the Bitcoin Core JSON-RPC oracle (requests mocked).
"""

import json
from decimal import Decimal

import pytest
import requests

from reserve_proof.config import ReserveSettings
from reserve_proof.errors import OracleConnectionError, OracleError, OracleRPCError
from reserve_proof.network import rpc
from reserve_proof.network.oracle import ChainOracle
from reserve_proof.network.rpc import BitcoinRPCOracle, btc_to_satoshi


class FakeResponse:
    """Risposta HTTP minima compatibile con requests.Response"""

    def __init__(self, body: str, status_code: int = 200):
        self.text = body
        self.status_code = status_code

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self, **kwargs):
        return json.loads(self.text, **kwargs)


@pytest.fixture
def rpc_calls(monkeypatch):
    """Intercetta requests.post; le risposte si accodano in calls.responses"""

    class Calls(list):
        responses = []

    calls = Calls()

    def fake_post(url, json=None, auth=None, timeout=None):
        calls.append({"url": url, "payload": json, "auth": auth, "timeout": timeout})
        response = calls.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(rpc.requests, "post", fake_post)
    return calls


@pytest.fixture
def node():
    return BitcoinRPCOracle("http://127.0.0.1:18443", "user", "pass", timeout=5)


class TestBtcToSatoshi:
    """Test exact BTC -> satoshi conversion"""

    @pytest.mark.parametrize("amount,expected", [
        (Decimal("0.00000010"), 10),
        (Decimal("1.5"), 150_000_000),
        ("21000000", 2_100_000_000_000_000),
        (0, 0),
    ])
    def test_conversion(self, amount, expected):
        """Test conversion without rounding"""
        assert btc_to_satoshi(amount) == expected

    @pytest.mark.parametrize("amount", [Decimal("0.000000001"), Decimal("-1"), "abc"])
    def test_invalid(self, amount):
        """Test sub-satoshi, negative and non-numeric amounts"""
        with pytest.raises(OracleError):
            btc_to_satoshi(amount)


class TestBitcoinRPCOracle:
    """Test BitcoinRPCOracle"""

    def test_is_chain_oracle(self, node):
        """Test protocol conformance"""
        assert isinstance(node, ChainOracle)

    def test_list_unspent(self, node, rpc_calls):
        """Test listunspent parsing keeps node order"""
        rpc_calls.responses.append(FakeResponse(json.dumps({
            "result": [
                {"txid": "22" * 32, "vout": 1, "amount": 0.0000002},
                {"txid": "11" * 32, "vout": 0, "amount": 0.0000001},
            ],
            "error": None,
            "id": 1,
        })))

        outputs = node.list_unspent("bcrt1qtest")

        assert [o.value for o in outputs] == [20, 10]
        assert outputs[0].txid == "22" * 32
        payload = rpc_calls[0]["payload"]
        assert payload["method"] == "listunspent"
        assert payload["params"] == [0, 9999999, ["bcrt1qtest"]]
        assert rpc_calls[0]["auth"] == ("user", "pass")
        assert rpc_calls[0]["timeout"] == 5

    def test_current_height(self, node, rpc_calls):
        """Test getblockcount"""
        rpc_calls.responses.append(FakeResponse('{"result": 812345, "error": null, "id": 1}'))
        assert node.current_height() == 812345

    def test_spending_template_params(self, node, rpc_calls, sample_outputs):
        """Test walletcreatefundedpsbt arguments"""
        rpc_calls.responses.append(FakeResponse('{"result": {"psbt": "cHNidP8B", "fee": 0}, "error": null}'))

        result = node.create_funded_spending_template(sample_outputs, b"\x77" * 32)

        assert result == "cHNidP8B"
        inputs, outputs, locktime, options, bip32derivs = rpc_calls[0]["payload"]["params"]
        assert inputs == [{"txid": o.txid, "vout": o.vout} for o in sample_outputs]
        assert outputs == [{"data": "77" * 32}]
        assert locktime == 0
        assert options["changePosition"] == -1
        assert bip32derivs is True

    def test_rpc_error(self, node, rpc_calls):
        """Test JSON-RPC error body on HTTP 500"""
        rpc_calls.responses.append(FakeResponse(
            '{"result": null, "error": {"code": -5, "message": "Invalid address"}, "id": 1}',
            status_code=500,
        ))

        with pytest.raises(OracleRPCError) as exc_info:
            node.list_unspent("bogus")
        assert exc_info.value.rpc_code == -5

    def test_connection_error(self, node, rpc_calls):
        """Test transport failure"""
        rpc_calls.responses.append(requests.exceptions.ConnectionError("refused"))

        with pytest.raises(OracleConnectionError) as exc_info:
            node.current_height()
        assert exc_info.value.code == "CONNECTION_FAILED"

    def test_non_json_response(self, node, rpc_calls):
        """Test HTML error page (e.g. 401 Unauthorized)"""
        rpc_calls.responses.append(FakeResponse("<html>401</html>", status_code=401))

        with pytest.raises(OracleConnectionError) as exc_info:
            node.current_height()
        assert exc_info.value.code == "BAD_RESPONSE"

    def test_malformed_entry(self, node, rpc_calls):
        """Test listunspent entry without amount"""
        rpc_calls.responses.append(FakeResponse('{"result": [{"txid": "aa", "vout": 0}], "error": null}'))

        with pytest.raises(OracleError):
            node.list_unspent("bcrt1qtest")

    def test_from_settings(self):
        """Test construction from settings"""
        settings = ReserveSettings(rpc_url="http://node:8332/", rpc_user="alice", rpc_password="pw", rpc_timeout=9)
        node = BitcoinRPCOracle.from_settings(settings)

        assert node.url == "http://node:8332"
        assert node.auth == ("alice", "pw")
        assert node.timeout == 9
