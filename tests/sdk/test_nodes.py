"""
Unit tests for snip721_migration.nodes and snip721_migration.config modules.

Tests cover:
- Tagged-union dispatch on the `type` tag, unknown tags
- Gitpod endpoint derivation
- Faucet URL construction per node type
- Node selection (CI forces LocalSecret, TESTNET_TYPE, GITPOD_ID override, defaults)
- Loading the shipped config/nodes.json
- Settings resolution from an environment mapping
"""

import json
from pathlib import Path

import pytest

from snip721_migration.config import Settings
from snip721_migration.enums import ContractType
from snip721_migration.errors import UnknownNodeTypeError
from snip721_migration.nodes import (
    DEFAULT_NODES,
    Custom,
    Gitpod,
    LocalSecret,
    Pulsar2,
    Secret4,
    load_nodes,
    node_from_mapping,
    node_to_mapping,
    select_node,
)

ROOT = Path(__file__).parent.parent.parent

LOCAL = LocalSecret(
    chain_id="secretdev-1",
    grpc_gateway_endpoint="http://localhost:1317",
    faucet_address_endpoint="http://localhost:5000/faucet?address=",
)
PULSAR = Pulsar2(
    chain_id="pulsar-2",
    grpc_gateway_endpoint="https://api.pulsar.scrttestnet.com",
    faucet_address_endpoint="https://faucet.pulsar.scrttestnet.com/api/faucet",
)

# ================================================================
# Descriptors
# ================================================================


class TestNodeDescriptors:
    """Tests for node descriptor parsing and derived endpoints."""

    def test_dispatch_on_type_tag(self) -> None:
        node = node_from_mapping(
            {
                "type": "Custom",
                "chain_id": "my-chain",
                "grpc_gateway_endpoint": "http://node:1317",
                "faucet_address_endpoint": "http://node:5000/faucet?address=",
            }
        )
        assert isinstance(node, Custom)
        assert node.chain_id == "my-chain"

    def test_unknown_tag(self) -> None:
        with pytest.raises(UnknownNodeTypeError, match="Secret3"):
            node_from_mapping({"type": "Secret3", "chain_id": "x"})

    def test_missing_tag(self) -> None:
        with pytest.raises(UnknownNodeTypeError):
            node_from_mapping({"chain_id": "x"})

    def test_invalid_fields(self) -> None:
        with pytest.raises(ValueError, match="Gitpod"):
            node_from_mapping({"type": "Gitpod", "chain_id": "x", "grpc_gateway_endpoint": "y"})

    def test_gitpod_endpoints(self) -> None:
        node = Gitpod(chain_id="secretdev-1", gitpod_id="abc-123")
        assert node.grpc_gateway_endpoint == "https://1317-abc-123.gitpod.io"
        assert node.faucet_url("secret1x") == (
            "https://5000-abc-123.gitpod.io/faucet?address=secret1x"
        )

    def test_faucet_urls(self) -> None:
        assert LOCAL.faucet_url("secret1x") == "http://localhost:5000/faucet?address=secret1x"
        # Pulsar2 posts the address in the body.
        assert PULSAR.faucet_url("secret1x") == PULSAR.faucet_address_endpoint
        assert DEFAULT_NODES["Secret4"].faucet_url("secret1x") is None

    def test_mapping_round_trip_for_gitpod(self) -> None:
        node = Gitpod(chain_id="secretdev-1", gitpod_id="abc")
        assert node_to_mapping(node) == {
            "type": "Gitpod",
            "chain_id": "secretdev-1",
            "gitpod_id": "abc",
        }
        assert node_from_mapping(node_to_mapping(node)) == node

    def test_shipped_config_loads(self) -> None:
        nodes = load_nodes(ROOT / "config" / "nodes.json")
        assert {n.type for n in nodes} == {"LocalSecret", "Pulsar2", "Gitpod", "Secret4"}

    def test_load_nodes(self, tmp_path: Path) -> None:
        path = tmp_path / "nodes.json"
        path.write_text(json.dumps({"nodes": [node_to_mapping(LOCAL), node_to_mapping(PULSAR)]}))
        assert load_nodes(path) == [LOCAL, PULSAR]


# ================================================================
# Selection
# ================================================================


class TestSelectNode:
    """Tests for select_node."""

    def test_ci_forces_local_secret(self) -> None:
        assert select_node([PULSAR, LOCAL], testnet_type="Pulsar2", on_ci=True) == LOCAL

    def test_testnet_type_selects_tag(self) -> None:
        assert select_node([LOCAL, PULSAR], testnet_type="Pulsar2") == PULSAR

    def test_defaults_to_local_secret(self) -> None:
        assert select_node([PULSAR, LOCAL], testnet_type=None) == LOCAL

    def test_falls_back_to_default_nodes(self) -> None:
        assert select_node([], testnet_type="Secret4") == DEFAULT_NODES["Secret4"]
        assert isinstance(select_node([], testnet_type="Secret4"), Secret4)

    def test_gitpod_id_overrides_configured_node(self) -> None:
        configured = Gitpod(chain_id="secretdev-1", gitpod_id="old")
        node = select_node([configured], testnet_type="Gitpod", gitpod_id="new")
        assert node == Gitpod(chain_id="secretdev-1", gitpod_id="new")

    def test_gitpod_without_config(self) -> None:
        node = select_node([], testnet_type="Gitpod", gitpod_id="ws-1")
        assert isinstance(node, Gitpod)
        assert node.gitpod_id == "ws-1"

    def test_unconfigured_custom_node(self) -> None:
        with pytest.raises(LookupError, match="Custom"):
            select_node([LOCAL], testnet_type="Custom")

    def test_unknown_testnet_type(self) -> None:
        with pytest.raises(UnknownNodeTypeError):
            select_node([LOCAL], testnet_type="Holesky")


# ================================================================
# Settings
# ================================================================


class TestSettings:
    """Tests for Settings.from_environment."""

    def test_empty_environment_defaults(self) -> None:
        settings = Settings.from_environment({})

        assert settings.contract_path is None
        assert settings.testnet_type is None
        assert not settings.on_ci
        assert settings.nodes_file == Path("config/nodes.json")
        assert settings.rpc_timeout == 60.0

    def test_values_from_environment(self, tmp_path: Path) -> None:
        settings = Settings.from_environment(
            {
                "CONTRACT_PATH": str(tmp_path),
                "TESTNET_TYPE": "Pulsar2",
                "TEST_ENV": "CI",
                "GITPOD_ID": "ws",
                "DEPLOYER_MNEMONIC": "word " * 23 + "word",
                "NODES_CONFIG": str(tmp_path / "nodes.json"),
                "RPC_TIMEOUT": "5",
            }
        )

        assert settings.on_ci
        assert settings.testnet_type == "Pulsar2"
        assert settings.gitpod_id == "ws"
        assert settings.rpc_timeout == 5.0
        assert settings.artifact_path(ContractType.SNIP721_DEALER) == (
            tmp_path / "snip721_dealer.wasm.gz"
        )

    def test_empty_values_are_unset(self) -> None:
        assert Settings.from_environment({"TESTNET_TYPE": ""}).testnet_type is None

    def test_artifact_path_requires_contract_path(self) -> None:
        with pytest.raises(ValueError, match="CONTRACT_PATH"):
            Settings().artifact_path(ContractType.SNIP721_MIGRATABLE)

    def test_node_reads_nodes_file(self, tmp_path: Path) -> None:
        path = tmp_path / "nodes.json"
        path.write_text(json.dumps({"nodes": [node_to_mapping(PULSAR)]}))

        settings = Settings(testnet_type="Pulsar2", nodes_file=path)

        assert settings.node() == PULSAR

    def test_node_on_ci_without_config_file(self, tmp_path: Path) -> None:
        settings = Settings(test_env="CI", nodes_file=tmp_path / "missing.json")
        assert settings.node() == DEFAULT_NODES["LocalSecret"]
