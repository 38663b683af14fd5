from __future__ import annotations

import base64
import binascii
import json
import logging
import math
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol

import aiohttp
from secret_sdk.client.lcd import LCDClient
from secret_sdk.client.lcd.api.tx import CreateTxOptions
from secret_sdk.core import Coins
from secret_sdk.core.bank import MsgSend
from secret_sdk.core.fee import Fee
from secret_sdk.core.wasm import MsgInstantiateContract, MsgStoreCode
from secret_sdk.exceptions import LCDResponseError
from secret_sdk.key.mnemonic import MnemonicKey

from . import constants as const
from .errors import SimulationFailedError, TxFailedError
from .models import (
    Coin,
    ExecuteContract,
    InstantiateContract,
    JsonObject,
    Permit,
    PermitParams,
    TxMessage,
    TxResult,
)
from .permits import assemble_permit, permit_sign_bytes

logger = logging.getLogger(__name__)

# What the LCD client raises when the node rejects, fails or stops answering a request.
NODE_ERRORS: tuple[type[Exception], ...] = (LCDResponseError, aiohttp.ClientError, TimeoutError)


# ---------------------------------------------------------------------------
# Consumed interface
# ---------------------------------------------------------------------------


class SecretSigningClient(Protocol):
    """
    Signing + RPC capability consumed by the deployment and migration components.

    Implementations own transaction construction, encryption, broadcast and key
    management. Every call blocks until the node answers or the client times out.
    Broadcast failures raise `TxFailedError` carrying the chain's raw error text.
    """

    @property
    def chain_id(self) -> str: ...

    @property
    def addresses(self) -> Sequence[str]: ...

    def upload_code(self, sender: str, wasm_byte_code: bytes, *, gas_limit: int) -> TxResult: ...

    def get_code_hash(self, code_id: int) -> str: ...

    def get_code_hash_by_contract_address(self, address: str) -> str: ...

    def simulate_gas(self, msg: TxMessage) -> int: ...

    def instantiate(self, msg: InstantiateContract, *, gas_limit: int) -> TxResult: ...

    def execute(self, msg: ExecuteContract, *, gas_limit: int) -> TxResult: ...

    def query_contract_smart(
        self, address: str, query: Mapping[str, Any], *, code_hash: str | None = None
    ) -> JsonObject: ...

    def sign_permit(self, signer_address: str, params: PermitParams) -> Permit: ...

    def get_balance(self, address: str, denom: str = const.FEE_DENOM) -> int: ...

    def send_tokens(
        self, sender: str, recipient: str, amount: Coin, *, gas_limit: int
    ) -> TxResult: ...


# ---------------------------------------------------------------------------
# Fee helpers
# ---------------------------------------------------------------------------


def gas_to_fee(gas_limit: int, gas_price: float = const.DEFAULT_GAS_PRICE) -> Coin:
    """Fee charged for `gas_limit` at `gas_price` (rounded up to a whole uscrt)."""
    amount = math.ceil(Decimal(gas_limit) * Decimal(str(gas_price)))
    return Coin(amount=int(amount), denom=const.FEE_DENOM)


def padded_gas_limit(simulated_gas: int, margin: float = const.GAS_SIMULATION_MARGIN) -> int:
    """Simulated gas scaled by `margin`, truncated to whole gas units."""
    return int(Decimal(simulated_gas) * Decimal(str(margin)))


# ---------------------------------------------------------------------------
# Broadcast result parsing
# ---------------------------------------------------------------------------


def _merge_event(
    events: dict[str, dict[str, list[str]]], event_type: str, attributes: Iterable[Any]
) -> None:
    bucket = events.setdefault(event_type, {})
    for attr in attributes:
        if isinstance(attr, Mapping):
            key, value = attr.get("key"), attr.get("value")
        else:
            key, value = getattr(attr, "key", None), getattr(attr, "value", None)
        if key is None:
            continue
        bucket.setdefault(str(key), []).append("" if value is None else str(value))


def events_from_broadcast(result: Any) -> dict[str, dict[str, list[str]]]:
    """
    Flatten the events of a broadcast result into `type -> key -> [values]`.

    Prefers per-message logs (`logs[i].events_by_type`, or the flat
    `{"type", "key", "value"}` entries of a `TxInfo`); falls back to the flat ABCI
    `events` list when logs are empty, as newer nodes report them there.
    """

    events: dict[str, dict[str, list[str]]] = {}
    for log in getattr(result, "logs", None) or []:
        if isinstance(log, Mapping):
            if "type" in log:
                _merge_event(events, str(log["type"]), [log])
            else:
                for event in log.get("events") or []:
                    _merge_event(events, str(event["type"]), event.get("attributes") or [])
            continue
        by_type = getattr(log, "events_by_type", None)
        if isinstance(by_type, Mapping):
            for event_type, attrs in by_type.items():
                bucket = events.setdefault(str(event_type), {})
                for key, values in attrs.items():
                    bucket.setdefault(str(key), []).extend(str(v) for v in values)
            continue
        for event in getattr(log, "events", None) or []:
            if isinstance(event, Mapping):
                _merge_event(events, str(event["type"]), event.get("attributes") or [])
            else:
                _merge_event(events, str(event.type), event.attributes or [])

    if events:
        return events

    for event in getattr(result, "events", None) or []:
        if isinstance(event, Mapping):
            _merge_event(events, str(event["type"]), event.get("attributes") or [])
        else:
            _merge_event(events, str(event.type), getattr(event, "attributes", None) or [])
    return events


def _decode_data(data: Any) -> bytes | None:
    if isinstance(data, list | tuple):
        # TxInfo.data holds one response per message; ours carry a single message.
        data = data[0] if data else None
    if data is not None and not isinstance(data, str | bytes | bytearray | Mapping):
        data = getattr(data, "data", None)
    if data is None or data == "" or data == b"":
        return None
    if isinstance(data, bytes | bytearray):
        return bytes(data)
    if isinstance(data, Mapping):
        # Decrypted answers may already be parsed JSON.
        return json.dumps(data, separators=(",", ":")).encode("utf-8")
    text = str(data)
    if text.lstrip().startswith(("{", "[")):
        return text.encode("utf-8")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return text.encode("utf-8")


def tx_result_from_broadcast(result: Any) -> TxResult:
    """
    Convert an SDK broadcast result to a `TxResult`, raising `TxFailedError` if the
    chain rejected the transaction (non-zero `code`).
    """

    code = getattr(result, "code", None)
    tx_hash = str(getattr(result, "txhash", "") or "")
    gas_wanted = int(getattr(result, "gas_wanted", 0) or 0)
    if code not in (None, 0):
        # Broadcast results name it `raw_log`, TxInfo names it `rawlog`.
        raw_log = str(
            getattr(result, "raw_log", None)
            or getattr(result, "rawlog", None)
            or f"transaction failed with code {code}"
        )
        raise TxFailedError(raw_log, gas_wanted=gas_wanted or None, tx_hash=tx_hash or None)

    return TxResult(
        tx_hash=tx_hash,
        gas_wanted=gas_wanted,
        gas_used=int(getattr(result, "gas_used", 0) or 0),
        events=events_from_broadcast(result),
        data=_decode_data(getattr(result, "data", None)),
    )


# ---------------------------------------------------------------------------
# secret-sdk adapter
# ---------------------------------------------------------------------------


class InstantiateWithAdmin(MsgInstantiateContract):
    """`MsgInstantiateContract` that also serializes the chain-level contract admin."""

    admin: str = ""

    def to_proto(self) -> Any:
        proto = super().to_proto()
        proto.admin = self.admin
        return proto


def _public_key_bytes(key: MnemonicKey) -> bytes | str:
    public_key = key.public_key
    return getattr(public_key, "key", public_key)


@dataclass(slots=True)
class SecretNetworkClient:
    """
    `SecretSigningClient` backed by `secret-sdk`'s `LCDClient`.

    One client holds several signing keys; `sender` arguments select which key signs.
    Construct explicitly and pass it down: there is no process-wide singleton.
    """

    lcd: LCDClient
    keys: dict[str, MnemonicKey] = field(default_factory=dict)
    gas_price: float = const.DEFAULT_GAS_PRICE
    commit_timeout: float = const.DEFAULT_RPC_TIMEOUT
    poll_interval: float = const.TX_POLL_INTERVAL

    @classmethod
    def connect(
        cls,
        *,
        url: str,
        chain_id: str,
        mnemonics: Sequence[str] = (),
        random_accounts: int = 0,
        gas_price: float = const.DEFAULT_GAS_PRICE,
        commit_timeout: float = const.DEFAULT_RPC_TIMEOUT,
    ) -> SecretNetworkClient:
        """
        Connect to an LCD endpoint with keys derived from `mnemonics`, plus
        `random_accounts` freshly generated keys (test accounts).

        `commit_timeout` bounds how long a broadcast waits for block inclusion.
        """

        lcd = LCDClient(url=url, chain_id=chain_id)
        keys: dict[str, MnemonicKey] = {}
        for mnemonic in mnemonics:
            key = MnemonicKey(mnemonic=mnemonic)
            keys[key.acc_address] = key
        for _ in range(random_accounts):
            key = MnemonicKey()
            keys[key.acc_address] = key
        logger.info("Connected to %s (%s) with %d account(s)", url, chain_id, len(keys))
        return cls(lcd=lcd, keys=keys, gas_price=gas_price, commit_timeout=commit_timeout)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def chain_id(self) -> str:
        return str(self.lcd.chain_id)

    @property
    def addresses(self) -> Sequence[str]:
        return tuple(self.keys)

    def _key(self, address: str) -> MnemonicKey:
        try:
            return self.keys[address]
        except KeyError as e:
            raise ValueError(f"No signing key configured for {address}") from e

    def _fee(self, gas_limit: int) -> Fee:
        fee = gas_to_fee(gas_limit, self.gas_price)
        return Fee(gas_limit, Coins({fee.denom: fee.amount}))

    # ------------------------------------------------------------------
    # Message construction
    # ------------------------------------------------------------------

    def _to_sdk_msg(self, msg: TxMessage) -> Any:
        funds = {c.denom: c.amount for c in msg.funds}
        if isinstance(msg, InstantiateContract):
            sdk_msg = InstantiateWithAdmin(
                sender=msg.sender,
                code_id=msg.code_id,
                label=msg.label,
                init_msg=dict(msg.init_msg),
                init_funds=Coins(funds),
                code_hash=msg.code_hash,
                encryption_utils=self.lcd.encrypt_utils,
            )
            sdk_msg.admin = msg.admin or ""
            return sdk_msg
        return self.lcd.wasm.contract_execute_msg(
            sender_address=msg.sender,
            contract_address=msg.contract_address,
            handle_msg=dict(msg.msg),
            transfer_amount=Coins(funds) if funds else None,
            contract_code_hash=msg.code_hash,
        )

    def _wait_for_commit(self, tx_hash: str, *, gas_limit: int) -> Any:
        """Poll the node until `tx_hash` is included in a block."""

        deadline = time.monotonic() + self.commit_timeout
        while True:
            try:
                return self.lcd.tx.tx_info(tx_hash)
            except NODE_ERRORS as e:
                # The node answers 404 until the transaction is indexed.
                pending = isinstance(e, LCDResponseError) and (
                    getattr(e.response, "status", None) == 404
                )
                if not pending:
                    raise TxFailedError(str(e), gas_wanted=gas_limit, tx_hash=tx_hash) from e
            if time.monotonic() >= deadline:
                raise TxFailedError(
                    f"Transaction {tx_hash} was not committed within {self.commit_timeout}s",
                    gas_wanted=gas_limit,
                    tx_hash=tx_hash,
                )
            time.sleep(self.poll_interval)

    def _broadcast(self, sender: str, sdk_msg: Any, *, gas_limit: int) -> TxResult:
        wallet = self.lcd.wallet(self._key(sender))
        options = CreateTxOptions(msgs=[sdk_msg], fee=self._fee(gas_limit))
        try:
            signed = wallet.create_and_sign_tx(options)
            submitted = self.lcd.tx.broadcast_sync(signed)
        except NODE_ERRORS as e:
            raise TxFailedError(str(e), gas_wanted=gas_limit) from e
        # A non-zero code here is a CheckTx rejection; nothing was committed.
        tx_result_from_broadcast(submitted)
        committed = self._wait_for_commit(submitted.txhash, gas_limit=gas_limit)
        tx = tx_result_from_broadcast(committed)
        logger.debug("Broadcast %s (gas used %d / %d)", tx.tx_hash, tx.gas_used, gas_limit)
        return tx

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def upload_code(self, sender: str, wasm_byte_code: bytes, *, gas_limit: int) -> TxResult:
        msg = MsgStoreCode(sender=sender, wasm_byte_code=wasm_byte_code, source="", builder="")
        return self._broadcast(sender, msg, gas_limit=gas_limit)

    def simulate_gas(self, msg: TxMessage) -> int:
        wallet = self.lcd.wallet(self._key(msg.sender))
        # estimate_gas scales by gas_adjustment; padding is applied by the caller.
        options = CreateTxOptions(
            msgs=[self._to_sdk_msg(msg)],
            fee=self._fee(const.DEFAULT_GAS_LIMIT),
            gas_adjustment=1,
        )
        try:
            tx = wallet.create_and_sign_tx(options)
            return int(self.lcd.tx.estimate_gas(tx, options))
        except NODE_ERRORS as e:
            raise SimulationFailedError(str(e)) from e

    def instantiate(self, msg: InstantiateContract, *, gas_limit: int) -> TxResult:
        return self._broadcast(msg.sender, self._to_sdk_msg(msg), gas_limit=gas_limit)

    def execute(self, msg: ExecuteContract, *, gas_limit: int) -> TxResult:
        return self._broadcast(msg.sender, self._to_sdk_msg(msg), gas_limit=gas_limit)

    def send_tokens(
        self, sender: str, recipient: str, amount: Coin, *, gas_limit: int
    ) -> TxResult:
        msg = MsgSend(sender, recipient, Coins({amount.denom: amount.amount}))
        return self._broadcast(sender, msg, gas_limit=gas_limit)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_code_hash(self, code_id: int) -> str:
        answer = self.lcd.wasm.code_hash_by_code_id(code_id)
        return str(answer["code_hash"])

    def get_code_hash_by_contract_address(self, address: str) -> str:
        return str(self.lcd.wasm.contract_hash(address))

    def query_contract_smart(
        self, address: str, query: Mapping[str, Any], *, code_hash: str | None = None
    ) -> JsonObject:
        answer = self.lcd.wasm.contract_query(
            address, dict(query), contract_code_hash=code_hash
        )
        if not isinstance(answer, dict):
            raise TypeError(f"Query answer from {address} is not a JSON object: {answer!r}")
        return answer

    def get_balance(self, address: str, denom: str = const.FEE_DENOM) -> int:
        coins, _ = self.lcd.bank.balance(address)
        coin = coins.get(denom)
        return int(coin.amount) if coin is not None else 0

    # ------------------------------------------------------------------
    # Permits
    # ------------------------------------------------------------------

    def sign_permit(self, signer_address: str, params: PermitParams) -> Permit:
        key = self._key(signer_address)
        signature = key.sign(permit_sign_bytes(params))
        return assemble_permit(
            signer_address=signer_address,
            params=params,
            signature=signature,
            pub_key=_public_key_bytes(key),
        )
