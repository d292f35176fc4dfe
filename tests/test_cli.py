"""
ReserveProof - CLI Tests
==========================
Tests for the typer command line interface.
"""

import json
import logging

import pytest
from typer.testing import CliRunner

from reserve_proof.cli import main as cli
from reserve_proof.cli.main import _build_oracle as build_rpc_oracle
from reserve_proof.cli.main import app
from reserve_proof.config import ReserveSettings
from reserve_proof.storage.files import load_document


runner = CliRunner()


@pytest.fixture(autouse=True)
def static_oracle(monkeypatch, oracle):
    """Tutti i comandi usano l'oracle in memoria"""
    monkeypatch.setattr(cli, "_build_oracle", lambda *args: oracle)
    return oracle


class TestGenerateAndVerify:
    """Test generate / verify commands"""

    def test_generate(self, address, tmp_path):
        """Test one-shot proof file"""
        out = tmp_path / "proof.json"
        result = runner.invoke(app, [
            "generate", "--address", address, "--min", "30", "--height", "100", "--out", str(out),
        ])

        assert result.exit_code == 0, result.output
        assert "3 commitments" in result.output
        assert load_document(out).min_amount == 30

    def test_generate_below_threshold(self, address, tmp_path):
        """Test input error exit code"""
        out = tmp_path / "proof.json"
        result = runner.invoke(app, [
            "generate", "--address", address, "--min", "100", "--height", "100", "--out", str(out),
        ])

        assert result.exit_code == 1
        assert "BELOW_THRESHOLD" in result.output
        assert not out.exists()

    def test_verify(self, one_shot_document, tmp_path):
        """Test verification table"""
        path = tmp_path / "proof.json"
        path.write_text(one_shot_document.to_json(), encoding="utf-8")

        result = runner.invoke(app, ["verify", "--proof", str(path)])

        assert result.exit_code == 0, result.output
        assert "proof verified" in result.output

    def test_verify_tampered(self, one_shot_document, tmp_path):
        """Test reordered commitments are reported"""
        data = one_shot_document.to_dict()
        data["commitments"] = data["commitments"][::-1]
        path = tmp_path / "proof.json"
        path.write_text(json.dumps(data), encoding="utf-8")

        result = runner.invoke(app, ["verify", "--proof", str(path)])

        assert result.exit_code == 1
        assert "ROOT_MISMATCH" in result.output

    def test_verify_node_behind(self, one_shot_document, static_oracle, tmp_path):
        """Test proof height beyond the node tip"""
        static_oracle.height = 50
        path = tmp_path / "proof.json"
        path.write_text(one_shot_document.to_json(), encoding="utf-8")

        result = runner.invoke(app, ["verify", "--proof", str(path)])

        assert result.exit_code == 1
        assert "FUTURE_HEIGHT" in result.output


class TestSigningCommands:
    """Test build-psbt / attach-sigs commands"""

    def test_split_mode(self, address, sign_psbt, tmp_path):
        """Test build-psbt -> external signer -> attach-sigs -> verify"""
        psbt_path = tmp_path / "unsigned.psbt"
        draft_path = tmp_path / "draft.json"
        signed_path = tmp_path / "signed.psbt"
        final_path = tmp_path / "proof.json"

        result = runner.invoke(app, [
            "build-psbt", "--address", address, "--min", "30", "--height", "100",
            "--psbt-out", str(psbt_path), "--draft-out", str(draft_path),
        ])
        assert result.exit_code == 0, result.output
        assert "PSBT and draft saved" in result.output

        signed_path.write_text(sign_psbt(psbt_path.read_text().strip()), encoding="utf-8")

        result = runner.invoke(app, [
            "attach-sigs", "--draft", str(draft_path), "--signed-psbt", str(signed_path),
            "--out", str(final_path),
        ])
        assert result.exit_code == 0, result.output
        assert load_document(final_path).is_finalized
        assert not load_document(draft_path).is_finalized

        result = runner.invoke(app, ["verify", "--proof", str(final_path)])
        assert result.exit_code == 0, result.output

    def test_build_psbt_with_qr(self, address, monkeypatch, tmp_path):
        """Test --qr plays the PSBT frames"""
        played = []
        monkeypatch.setattr(cli.QRFrameRenderer, "play", lambda self, payload: played.append(payload))

        result = runner.invoke(app, [
            "build-psbt", "--address", address, "--min", "30", "--height", "100", "--qr",
            "--psbt-out", str(tmp_path / "unsigned.psbt"), "--draft-out", str(tmp_path / "draft.json"),
        ])

        assert result.exit_code == 0, result.output
        assert played == [(tmp_path / "unsigned.psbt").read_text().strip()]

    def test_attach_missing_signature(self, signing_request, sign_psbt, tmp_path):
        """Test workflow error exit code"""
        psbt_b64, draft = signing_request
        draft_path = tmp_path / "draft.json"
        signed_path = tmp_path / "signed.psbt"
        out = tmp_path / "proof.json"
        draft_path.write_text(draft.to_json(), encoding="utf-8")
        signed_path.write_text(sign_psbt(psbt_b64, skip={2}), encoding="utf-8")

        result = runner.invoke(app, [
            "attach-sigs", "--draft", str(draft_path), "--signed-psbt", str(signed_path), "--out", str(out),
        ])

        assert result.exit_code == 1
        assert "MISSING_SIGNATURE" in result.output
        assert not out.exists()

    def test_attach_unreadable_draft(self, signing_request, sign_psbt, tmp_path):
        """Test a non UTF-8 draft file is reported with its error code"""
        psbt_b64, _ = signing_request
        draft_path = tmp_path / "draft.json"
        signed_path = tmp_path / "signed.psbt"
        draft_path.write_bytes(b"\xff\xfe{}")
        signed_path.write_text(sign_psbt(psbt_b64), encoding="utf-8")

        result = runner.invoke(app, [
            "attach-sigs", "--draft", str(draft_path), "--signed-psbt", str(signed_path),
            "--out", str(tmp_path / "proof.json"),
        ])

        assert result.exit_code == 1
        assert not isinstance(result.exception, UnicodeDecodeError)
        assert "DOCUMENT_UNREADABLE" in result.output

    def test_attach_to_one_shot_document(self, one_shot_document, signing_request, sign_psbt, tmp_path):
        """Test a document without psbt_hash is not accepted as a draft"""
        psbt_b64, _ = signing_request
        draft_path = tmp_path / "proof.json"
        signed_path = tmp_path / "signed.psbt"
        out = tmp_path / "final.json"
        draft_path.write_text(one_shot_document.to_json(), encoding="utf-8")
        signed_path.write_text(sign_psbt(psbt_b64), encoding="utf-8")

        result = runner.invoke(app, [
            "attach-sigs", "--draft", str(draft_path), "--signed-psbt", str(signed_path), "--out", str(out),
        ])

        assert result.exit_code == 1
        assert "NOT_A_DRAFT" in result.output
        assert not out.exists()


class TestOracleConfiguration:
    """Test RPC oracle built from settings + CLI options"""

    def test_cli_options_override_settings(self, monkeypatch, test_config):
        monkeypatch.setattr(cli, "_settings", lambda: test_config)

        rpc = build_rpc_oracle("http://10.0.0.5:18443/", None, "secret")

        assert rpc.url == "http://10.0.0.5:18443"
        assert rpc.auth == ("user", "secret")

    def test_remote_mainnet_http_warns(self, monkeypatch, caplog):
        """Test the network setting drives the plain-HTTP warning"""
        settings = ReserveSettings(
            network="mainnet", rpc_url="http://node.example.org:8332", rpc_user="u", rpc_password="p"
        )
        monkeypatch.setattr(cli, "_settings", lambda: settings)

        with caplog.at_level(logging.WARNING, logger="reserveproof"):
            build_rpc_oracle(None, None, None)

        assert any("plain-HTTP" in r.getMessage() for r in caplog.records)

    def test_regtest_local_is_quiet(self, monkeypatch, caplog, test_config):
        monkeypatch.setattr(cli, "_settings", lambda: test_config)

        with caplog.at_level(logging.WARNING, logger="reserveproof"):
            build_rpc_oracle(None, None, None)

        assert not [r for r in caplog.records if r.name == "reserveproof.cli"]


class TestMainCallback:
    """Test global options"""

    def test_version(self):
        """Test --version"""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "reserveproof" in result.output
