"""Tests for gm_market.infrastructure.artifacts — Foundry build/deploy output."""

import json

import pytest

from src.gm_common.errors import NetworkConfigError
from src.gm_market.infrastructure.artifacts import (
    load_broadcast_addresses,
    load_method_identifiers,
)


def _write_artifact(root, name: str, body: dict) -> None:
    folder = root / f"{name}.sol"
    folder.mkdir(parents=True)
    (folder / f"{name}.json").write_text(json.dumps(body))


class TestMethodIdentifiers:
    def test_loads_and_normalizes(self, tmp_path):
        _write_artifact(tmp_path, "GDPMarket", {
            "abi": [],
            "methodIdentifiers": {"phase()": "0xB1C9FE6E", "k()": "b4f40c61"},
        })

        ids = load_method_identifiers(tmp_path, "GDPMarket")

        assert ids == {"phase()": "b1c9fe6e", "k()": "b4f40c61"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(NetworkConfigError, match="artifact not found"):
            load_method_identifiers(tmp_path, "GDPMarket")

    def test_no_identifiers(self, tmp_path):
        _write_artifact(tmp_path, "USGDPOracle", {"abi": []})
        with pytest.raises(NetworkConfigError, match="methodIdentifiers"):
            load_method_identifiers(tmp_path, "USGDPOracle")

    def test_corrupt_json(self, tmp_path):
        folder = tmp_path / "GDPMarket.sol"
        folder.mkdir()
        (folder / "GDPMarket.json").write_text("{not json")
        with pytest.raises(NetworkConfigError, match="unreadable"):
            load_method_identifiers(tmp_path, "GDPMarket")


class TestBroadcastAddresses:
    def test_create_transactions_only(self, tmp_path):
        run = tmp_path / "run-latest.json"
        run.write_text(json.dumps({"transactions": [
            {"transactionType": "CREATE", "contractName": "MockUSDC",
             "contractAddress": "0x" + "22" * 20},
            {"transactionType": "CREATE", "contractName": "GDPMarket",
             "contractAddress": "0x" + "11" * 20},
            {"transactionType": "CALL", "contractName": "GDPMarket",
             "contractAddress": "0x" + "99" * 20},
        ]}))

        addresses = load_broadcast_addresses(run)

        assert addresses == {
            "MockUSDC": "0x" + "22" * 20,
            "GDPMarket": "0x" + "11" * 20,
        }

    def test_empty_run(self, tmp_path):
        run = tmp_path / "run-latest.json"
        run.write_text(json.dumps({"transactions": []}))
        assert load_broadcast_addresses(run) == {}
