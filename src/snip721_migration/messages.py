"""
JSON payload builders for the dealer and SNIP-721 contracts.

Builders are pure: they never touch the chain. Optional fields are omitted
rather than sent as `null`, matching what the contracts' serde schemas expect.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .models import Coin, JsonObject, MigrationRequest, Permit

# ---------------------------------------------------------------------------
# Instantiate
# ---------------------------------------------------------------------------


def migrate_init_msg(request: MigrationRequest) -> JsonObject:
    return request.to_init_msg()


def new_dealer_init_msg(
    *,
    snip721_code_id: int,
    snip721_code_hash: str,
    snip721_label: str,
    prices: Sequence[Coin],
    token_uri: str,
    entropy: str,
    admin: str | None = None,
    private_token_uri: str | None = None,
    royalty_info: JsonObject | None = None,
) -> JsonObject:
    """
    Init message for a fresh dealer, which instantiates its own child SNIP-721.

    `token_uri` is minted into every purchased token's public metadata.
    """

    body: dict[str, Any] = {
        "snip721_code_id": snip721_code_id,
        "snip721_code_hash": snip721_code_hash,
        "snip721_label": snip721_label,
        "prices": [p.to_json() for p in prices],
        "public_metadata": {"token_uri": token_uri},
        "entropy": entropy,
    }
    if private_token_uri is not None:
        body["private_metadata"] = {"token_uri": private_token_uri}
    if admin is not None:
        body["admin"] = admin
    if royalty_info is not None:
        body["royalty_info"] = royalty_info
    return {"new": body}


# ---------------------------------------------------------------------------
# Execute
# ---------------------------------------------------------------------------


def migrate_tokens_in_msg(
    *, pages: int | None = None, page_size: int | None = None
) -> JsonObject:
    body: dict[str, Any] = {}
    if pages is not None:
        body["pages"] = pages
    if page_size is not None:
        body["page_size"] = page_size
    return {"migrate_tokens_in": body}


def purchase_mint_msg() -> JsonObject:
    return {"purchase_mint": {}}


def transfer_nft_msg(*, recipient: str, token_id: str) -> JsonObject:
    return {"transfer_nft": {"recipient": recipient, "token_id": token_id}}


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


def contract_info_query() -> JsonObject:
    return {"contract_info": {}}


def contract_config_query() -> JsonObject:
    return {"contract_config": {}}


def num_tokens_query() -> JsonObject:
    return {"num_tokens": {}}


def minters_query() -> JsonObject:
    return {"minters": {}}


def with_permit_query(permit: Permit, query: JsonObject) -> JsonObject:
    """Wrap an authenticated query in the SNIP-24 `with_permit` envelope."""
    return {"with_permit": {"permit": permit.to_json(), "query": query}}


def num_tokens_of_owner_query(owner: str) -> JsonObject:
    return {"num_tokens_of_owner": {"owner": owner}}


def batch_nft_dossier_query(token_ids: Sequence[str]) -> JsonObject:
    return {"batch_nft_dossier": {"token_ids": list(token_ids)}}


def transaction_history_query(
    *, page: int | None = None, page_size: int | None = None
) -> JsonObject:
    body: dict[str, Any] = {}
    if page is not None:
        body["page"] = page
    if page_size is not None:
        body["page_size"] = page_size
    return {"transaction_history": body}


def child_snip721_query() -> JsonObject:
    return {"get_child_snip721": {}}


def prices_query() -> JsonObject:
    return {"get_prices": {}}


def migrated_from_query() -> JsonObject:
    return {"migrated_from": {}}


def migrated_to_query() -> JsonObject:
    return {"migrated_to": {}}
