from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from . import messages
from .client import SecretSigningClient
from .errors import UnexpectedTxResultError
from .models import Coin, ContractInstance, JsonObject, Permit


def _answer(answer: Mapping[str, Any], key: str) -> Any:
    if key not in answer:
        raise UnexpectedTxResultError(f"Expected a '{key}' query answer, got: {answer!r}")
    return answer[key]


@dataclass(slots=True)
class ContractReader:
    """
    Read-only queries against the SNIP-721 and dealer contracts.

    Permit-authenticated queries take an already-signed `Permit`; it must be scoped to
    the queried contract. Query errors raised by the node propagate unchanged, so
    callers can inspect the contract's error text (e.g. mode errors after migration).
    """

    client: SecretSigningClient

    def _query(self, contract: ContractInstance, query: JsonObject) -> JsonObject:
        return self.client.query_contract_smart(
            contract.address, query, code_hash=contract.code_hash or None
        )

    def _query_with_permit(
        self, contract: ContractInstance, permit: Permit, query: JsonObject
    ) -> JsonObject:
        return self._query(contract, messages.with_permit_query(permit, query))

    # ------------------------------------------------------------------
    # SNIP-721 public queries
    # ------------------------------------------------------------------

    def contract_info(self, contract: ContractInstance) -> JsonObject:
        return dict(_answer(self._query(contract, messages.contract_info_query()), "contract_info"))

    def contract_config(self, contract: ContractInstance) -> JsonObject:
        return dict(
            _answer(self._query(contract, messages.contract_config_query()), "contract_config")
        )

    def num_tokens(self, contract: ContractInstance) -> int:
        body = _answer(self._query(contract, messages.num_tokens_query()), "num_tokens")
        return int(body["count"])

    def minters(self, contract: ContractInstance) -> list[str]:
        body = _answer(self._query(contract, messages.minters_query()), "minters")
        return [str(m) for m in body["minters"]]

    # ------------------------------------------------------------------
    # SNIP-721 permit queries
    # ------------------------------------------------------------------

    def num_tokens_of_owner(
        self, contract: ContractInstance, *, owner: str, permit: Permit
    ) -> int:
        answer = self._query_with_permit(
            contract, permit, messages.num_tokens_of_owner_query(owner)
        )
        return int(_answer(answer, "num_tokens")["count"])

    def batch_nft_dossier(
        self, contract: ContractInstance, *, token_ids: Sequence[str], permit: Permit
    ) -> list[JsonObject]:
        answer = self._query_with_permit(
            contract, permit, messages.batch_nft_dossier_query(token_ids)
        )
        return [dict(d) for d in _answer(answer, "batch_nft_dossier")["nft_dossiers"]]

    def transaction_history(
        self,
        contract: ContractInstance,
        *,
        permit: Permit,
        page: int | None = None,
        page_size: int | None = None,
    ) -> JsonObject:
        answer = self._query_with_permit(
            contract,
            permit,
            messages.transaction_history_query(page=page, page_size=page_size),
        )
        return dict(_answer(answer, "transaction_history"))

    # ------------------------------------------------------------------
    # Dealer queries
    # ------------------------------------------------------------------

    def child_snip721(self, dealer: ContractInstance) -> ContractInstance:
        body = _answer(self._query(dealer, messages.child_snip721_query()), "contract_info")
        return ContractInstance.from_json(body)

    def prices(self, dealer: ContractInstance) -> list[Coin]:
        body = _answer(self._query(dealer, messages.prices_query()), "get_prices")
        return [Coin.from_json(c) for c in body["prices"]]

    # ------------------------------------------------------------------
    # Migration info (both contracts)
    # ------------------------------------------------------------------

    def migrated_from(self, contract: ContractInstance) -> ContractInstance | None:
        """The contract this one was migrated from, or None if it was created fresh."""
        return self._migration_info(contract, messages.migrated_from_query())

    def migrated_to(self, contract: ContractInstance) -> ContractInstance | None:
        """The contract this one was migrated to, or None while still live."""
        return self._migration_info(contract, messages.migrated_to_query())

    def _migration_info(
        self, contract: ContractInstance, query: JsonObject
    ) -> ContractInstance | None:
        body = _answer(self._query(contract, query), "migration_info")
        return ContractInstance.from_json(body) if body is not None else None
