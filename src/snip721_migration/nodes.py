from __future__ import annotations

import json
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Final

from .errors import UnknownNodeTypeError

# ---------------------------------------------------------------------------
# Node descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LocalSecret:
    """A LocalSecret docker node (the only node used on CI)."""

    type: ClassVar[str] = "LocalSecret"

    chain_id: str
    grpc_gateway_endpoint: str
    faucet_address_endpoint: str | None = None

    def faucet_url(self, address: str) -> str | None:
        if self.faucet_address_endpoint is None:
            return None
        return self.faucet_address_endpoint + address


@dataclass(frozen=True, slots=True)
class Pulsar2:
    """Public testnet; its faucet takes a JSON POST instead of a GET."""

    type: ClassVar[str] = "Pulsar2"

    chain_id: str
    grpc_gateway_endpoint: str
    faucet_address_endpoint: str | None = None

    def faucet_url(self, address: str) -> str | None:
        return self.faucet_address_endpoint


@dataclass(frozen=True, slots=True)
class Secret4:
    """Mainnet. There is no faucet; accounts must be funded externally."""

    type: ClassVar[str] = "Secret4"

    chain_id: str
    grpc_gateway_endpoint: str
    faucet_address_endpoint: str | None = None

    def faucet_url(self, address: str) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class Gitpod:
    """A LocalSecret node running in a Gitpod workspace; endpoints derive from the id."""

    type: ClassVar[str] = "Gitpod"

    chain_id: str
    gitpod_id: str

    @property
    def grpc_gateway_endpoint(self) -> str:
        return f"https://1317-{self.gitpod_id}.gitpod.io"

    @property
    def faucet_address_endpoint(self) -> str:
        return f"https://5000-{self.gitpod_id}.gitpod.io/faucet?address="

    def faucet_url(self, address: str) -> str | None:
        return self.faucet_address_endpoint + address


@dataclass(frozen=True, slots=True)
class Custom:
    type: ClassVar[str] = "Custom"

    chain_id: str
    grpc_gateway_endpoint: str
    faucet_address_endpoint: str | None = None

    def faucet_url(self, address: str) -> str | None:
        if self.faucet_address_endpoint is None:
            return None
        return self.faucet_address_endpoint + address


NodeInfo = LocalSecret | Pulsar2 | Secret4 | Gitpod | Custom

NODE_TYPES: Final[Mapping[str, type[NodeInfo]]] = {
    cls.type: cls for cls in (LocalSecret, Pulsar2, Secret4, Gitpod, Custom)
}

DEFAULT_NODES: Final[Mapping[str, NodeInfo]] = {
    "LocalSecret": LocalSecret(
        chain_id="secretdev-1",
        grpc_gateway_endpoint="http://localhost:1317",
        faucet_address_endpoint="http://localhost:5000/faucet?address=",
    ),
    "Pulsar2": Pulsar2(
        chain_id="pulsar-2",
        grpc_gateway_endpoint="https://api.pulsar.scrttestnet.com",
        faucet_address_endpoint="https://faucet.pulsar.scrttestnet.com/api/faucet",
    ),
    "Secret4": Secret4(
        chain_id="secret-4",
        grpc_gateway_endpoint="https://lcd.secret.express",
    ),
}


# ---------------------------------------------------------------------------
# Loading / selection
# ---------------------------------------------------------------------------


def node_from_mapping(obj: Mapping[str, Any]) -> NodeInfo:
    """Build a node descriptor from its JSON form, dispatching on the `type` tag."""
    tag = obj.get("type")
    cls = NODE_TYPES.get(str(tag)) if tag is not None else None
    if cls is None:
        raise UnknownNodeTypeError(
            f"Unknown node type {tag!r}; expected one of {sorted(NODE_TYPES)}"
        )
    fields = {k: v for k, v in obj.items() if k != "type"}
    try:
        return cls(**fields)
    except TypeError as e:
        raise ValueError(f"Invalid {tag} node descriptor: {e}") from e


def node_to_mapping(node: NodeInfo) -> dict[str, Any]:
    if isinstance(node, Gitpod):
        return {"type": node.type, "chain_id": node.chain_id, "gitpod_id": node.gitpod_id}
    out: dict[str, Any] = {
        "type": node.type,
        "chain_id": node.chain_id,
        "grpc_gateway_endpoint": node.grpc_gateway_endpoint,
    }
    if node.faucet_address_endpoint is not None:
        out["faucet_address_endpoint"] = node.faucet_address_endpoint
    return out


def load_nodes(path: str | os.PathLike[str]) -> list[NodeInfo]:
    """Read `{"nodes": [...]}` from a JSON config file."""
    with open(path, encoding="utf-8") as f:
        config = json.load(f)
    return [node_from_mapping(n) for n in config["nodes"]]


def select_node(
    nodes: Sequence[NodeInfo],
    *,
    testnet_type: str | None,
    on_ci: bool = False,
    gitpod_id: str | None = None,
) -> NodeInfo:
    """
    Pick the node to run against.

    CI always runs against LocalSecret. Otherwise `testnet_type` names the node tag
    (LocalSecret when unset). A `gitpod_id` overrides the id of a configured Gitpod
    node, or creates one if none is configured.
    """

    wanted = LocalSecret.type if on_ci or not testnet_type else testnet_type
    if wanted not in NODE_TYPES:
        raise UnknownNodeTypeError(
            f"Unknown node type {wanted!r}; expected one of {sorted(NODE_TYPES)}"
        )

    for node in nodes:
        if node.type != wanted:
            continue
        if isinstance(node, Gitpod) and gitpod_id:
            return Gitpod(chain_id=node.chain_id, gitpod_id=gitpod_id)
        return node

    if wanted == Gitpod.type and gitpod_id:
        return Gitpod(chain_id="secretdev-1", gitpod_id=gitpod_id)
    if wanted in DEFAULT_NODES:
        return DEFAULT_NODES[wanted]
    raise LookupError(f"No {wanted} node configured")
