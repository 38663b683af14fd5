from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from . import constants as const
from .enums import Permission
from .errors import UnexpectedTxResultError

# Type alias for JSON documents passed through to contracts
JsonObject = dict[str, Any]


# ---------------------------------------------------------------------------
# Code / contract identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CodeArtifact:
    """
    An uploaded WASM module.

    Once uploaded, a bytecode file maps to exactly one `(code_id, code_hash)` pair for the
    lifetime of the chain.
    """

    code_id: int
    code_hash: str

    def to_json(self) -> JsonObject:
        return {"code_id": self.code_id, "code_hash": self.code_hash}

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> CodeArtifact:
        return cls(code_id=int(obj["code_id"]), code_hash=str(obj["code_hash"]))


@dataclass(frozen=True, slots=True)
class ContractInstance:
    """A live contract. Migration yields a new instance at a new address."""

    address: str
    code_hash: str

    def to_json(self) -> JsonObject:
        return {"address": self.address, "code_hash": self.code_hash}

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> ContractInstance:
        return cls(address=str(obj["address"]), code_hash=str(obj.get("code_hash") or ""))


@dataclass(frozen=True, slots=True)
class Coin:
    amount: int
    denom: str = const.FEE_DENOM

    def to_json(self) -> JsonObject:
        # CosmWasm Uint128 amounts are JSON strings.
        return {"amount": str(self.amount), "denom": self.denom}

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> Coin:
        return cls(amount=int(obj["amount"]), denom=str(obj["denom"]))


# ---------------------------------------------------------------------------
# Permits
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PermitParams:
    permit_name: str
    allowed_tokens: tuple[str, ...]
    chain_id: str
    permissions: tuple[Permission, ...]

    def to_json(self) -> JsonObject:
        return {
            "permit_name": self.permit_name,
            "allowed_tokens": list(self.allowed_tokens),
            "chain_id": self.chain_id,
            "permissions": [p.value for p in self.permissions],
        }


@dataclass(frozen=True, slots=True)
class PermitSignature:
    pub_key_b64: str
    signature_b64: str

    def to_json(self) -> JsonObject:
        return {
            "pub_key": {"type": const.PERMIT_PUBKEY_TYPE, "value": self.pub_key_b64},
            "signature": self.signature_b64,
        }


@dataclass(frozen=True, slots=True)
class Permit:
    """
    An off-chain signed, address- and permission-scoped authorization (SNIP-24).

    A permit is only valid for the contracts listed in `params.allowed_tokens`; the
    contract receiving it enforces that, not this client.
    """

    signer_address: str
    params: PermitParams
    signature: PermitSignature

    def is_scoped_to(self, address: str) -> bool:
        return address in self.params.allowed_tokens

    def to_json(self) -> JsonObject:
        return {"params": self.params.to_json(), "signature": self.signature.to_json()}


# ---------------------------------------------------------------------------
# Migration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MigrationRequest:
    """Everything a destination contract needs to pull state from its source."""

    source_address: str
    source_code_hash: str
    admin_permit: Permit
    entropy: str

    def to_init_msg(self) -> JsonObject:
        return {
            "migrate": {
                "migrate_from": {
                    "address": self.source_address,
                    "code_hash": self.source_code_hash,
                    "admin_permit": self.admin_permit.to_json(),
                },
                "entropy": self.entropy,
            }
        }


@dataclass(frozen=True, slots=True)
class MigrateTokensProgress:
    """Progress reported by one `migrate_tokens_in` page-advance call."""

    complete: bool
    next_index: int | None = None
    total: int | None = None

    @classmethod
    def from_answer(cls, answer: Mapping[str, Any]) -> MigrateTokensProgress:
        body = answer.get("migrate_tokens_in")
        if not isinstance(body, Mapping):
            raise UnexpectedTxResultError(
                f"Expected a migrate_tokens_in execute answer, got: {answer!r}"
            )
        next_index = body.get("next_mint_index")
        total = body.get("total")
        return cls(
            complete=bool(body["complete"]),
            next_index=int(next_index) if next_index is not None else None,
            total=int(total) if total is not None else None,
        )


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class InstantiateContract:
    sender: str
    code_id: int
    code_hash: str
    init_msg: Mapping[str, Any]
    label: str
    admin: str | None = None
    funds: tuple[Coin, ...] = ()


@dataclass(frozen=True, slots=True)
class ExecuteContract:
    sender: str
    contract_address: str
    code_hash: str
    msg: Mapping[str, Any]
    funds: tuple[Coin, ...] = ()


TxMessage = InstantiateContract | ExecuteContract


@dataclass(frozen=True, slots=True)
class TxResult:
    """
    Chain-agnostic view of a committed transaction.

    `events` maps event type -> attribute key -> values (in emission order).
    `data` is the (decrypted) response payload of the first message, if any.
    """

    tx_hash: str
    gas_wanted: int
    gas_used: int
    events: Mapping[str, Mapping[str, Sequence[str]]] = field(default_factory=dict)
    data: bytes | None = None

    def attribute(self, event_type: str, key: str) -> str:
        values = self.events.get(event_type, {}).get(key)
        if not values:
            raise UnexpectedTxResultError(
                f"Transaction {self.tx_hash} has no '{event_type}.{key}' event attribute"
            )
        return values[0]

    def json_data(self) -> JsonObject:
        if not self.data:
            raise UnexpectedTxResultError(f"Transaction {self.tx_hash} returned no data")
        try:
            decoded = json.loads(self.data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise UnexpectedTxResultError(
                f"Transaction {self.tx_hash} data is not a JSON document"
            ) from e
        if not isinstance(decoded, dict):
            raise UnexpectedTxResultError(
                f"Transaction {self.tx_hash} data is not a JSON object"
            )
        return decoded


@dataclass(frozen=True, slots=True)
class ExecuteResult:
    """
    Result envelope for an execute call.

    The gas fee is charged whether or not the transaction succeeded, so a failed
    execute is reported here (`response is None`, `error` set) instead of raised.
    """

    response: TxResult | None
    gas_fee: Coin
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.response is not None
