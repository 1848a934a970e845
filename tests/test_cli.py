from __future__ import annotations

import json

import httpx
from click.testing import CliRunner

from beaconanchor.adapters.rpc_httpx import HttpxRPC
from beaconanchor.application import use_cases
from beaconanchor.cli import cli
from conftest import block_ts

ENV_KEYS = (
    "RPC_URL", "CHAIN_ID", "CONTRACT_ADDRESS", "BLOCK_INTERVAL", "PRIVATE_KEY", "SUBMIT_MODE",
    "SECURE_RELAYER_ENDPOINT", "SECURE_RELAYER_API_KEY", "LOOP_INTERVAL_SECONDS", "LOG_FORMAT",
    "LOG_LEVEL", "SELF_RELAY",
)
CLEAN_ENV = {k: None for k in ENV_KEYS}


def test_help_lists_commands():
    res = CliRunner().invoke(cli, ["--help"], env=CLEAN_ENV)
    assert res.exit_code == 0
    assert "run" in res.output and "status" in res.output


def test_run_without_rpc_url_exits_before_looping():
    res = CliRunner().invoke(cli, ["run"], env=CLEAN_ENV)
    assert res.exit_code == 1
    assert "RPC_URL" in res.output


def test_run_direct_mode_requires_private_key():
    env = dict(CLEAN_ENV, RPC_URL="https://rpc.example.org", CHAIN_ID="17000",
               CONTRACT_ADDRESS="0x" + "12" * 20, BLOCK_INTERVAL="7200")
    res = CliRunner().invoke(cli, ["run"], env=env)
    assert res.exit_code == 1
    assert "PRIVATE_KEY" in res.output


def test_run_rejects_malformed_private_key_at_startup():
    env = dict(CLEAN_ENV, RPC_URL="https://rpc.example.org", CHAIN_ID="17000",
               CONTRACT_ADDRESS="0x" + "12" * 20, BLOCK_INTERVAL="7200", PRIVATE_KEY="0xdeadbeef")
    res = CliRunner().invoke(cli, ["run", "--log-format", "json"], env=env)
    assert res.exit_code == 1
    assert "invalid private key" in res.output
    assert "0xdeadbeef" not in res.output


def test_status_rejects_bad_contract_address():
    res = CliRunner().invoke(cli, ["status", "--rpc-url", "https://rpc.example.org", "--chain-id", "1",
                                   "--contract", "0xnope", "--block-interval", "32"], env=CLEAN_ENV)
    assert res.exit_code == 1
    assert "CONTRACT_ADDRESS" in res.output


def test_run_self_relay_requires_relayer_endpoint():
    env = dict(CLEAN_ENV, RPC_URL="https://rpc.example.org", CHAIN_ID="17000",
               CONTRACT_ADDRESS="0x" + "12" * 20, BLOCK_INTERVAL="7200", SELF_RELAY="true")
    res = CliRunner().invoke(cli, ["run"], env=env)
    assert res.exit_code == 1
    assert "SECURE_RELAYER_ENDPOINT" in res.output


def _node(height: str, anchored: tuple[int, ...] = ()):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        if method == "eth_blockNumber":
            result = height
        elif method == "eth_getBlockByNumber":
            result = {"number": params[0], "timestamp": hex(block_ts(int(params[0], 16)))}
        elif method == "eth_call":
            ts = int(params[0]["data"][-64:], 16)
            stored = any(block_ts(b) == ts for b in anchored)
            result = "0x" + ("11" if stored else "00") * 32
        else:
            raise AssertionError(f"unexpected method {method}")
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})
    return handler


def _status(monkeypatch, handler):
    def rpc_factory(rpc_url, contract, timeout_s=20):
        return HttpxRPC(rpc_url, contract, timeout_s=timeout_s, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(use_cases, "HttpxRPC", rpc_factory)
    return CliRunner().invoke(cli, ["status", "--rpc-url", "https://rpc.example.org", "--chain-id", "1",
                                    "--contract", "0x" + "12" * 20, "--block-interval", "50",
                                    "--log-format", "json", "--log-level", "ERROR"], env=CLEAN_ENV)


def test_status_shows_next_candidate(monkeypatch):
    res = _status(monkeypatch, _node("0xd2", anchored=(100,)))
    assert res.exit_code == 0, res.output
    assert "would submit" in res.output
    assert "150" in res.output


def test_status_exits_nonzero_on_unreadable_height(monkeypatch):
    res = _status(monkeypatch, _node("0x"))
    assert res.exit_code == 1
    assert "chain read failed" in res.output
    assert "invalid hex quantity" in res.output
