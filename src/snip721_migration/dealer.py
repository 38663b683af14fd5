from __future__ import annotations

import logging
from collections.abc import Sequence

from . import constants as const
from . import messages
from .deployer import ContractDeployer
from .migration import default_entropy, default_label
from .models import Coin, CodeArtifact, ContractInstance, ExecuteResult, JsonObject

logger = logging.getLogger(__name__)

DEFAULT_PRICES: tuple[Coin, ...] = (Coin(amount=const.DEFAULT_PURCHASE_PRICE),)


def instantiate_dealer(
    deployer: ContractDeployer,
    dealer_code: CodeArtifact,
    snip721_code: CodeArtifact,
    *,
    admin: str,
    prices: Sequence[Coin] = DEFAULT_PRICES,
    token_uri: str = "publicMetadataUri",
    private_token_uri: str | None = "privateMetadataUri",
    royalty_info: JsonObject | None = None,
    label: str | None = None,
    snip721_label: str | None = None,
) -> ContractInstance:
    """
    Instantiate a fresh dealer, which in turn instantiates its child SNIP-721 from
    `snip721_code`. Query the child with `ContractReader.child_snip721`.
    """

    init_msg = messages.new_dealer_init_msg(
        snip721_code_id=snip721_code.code_id,
        snip721_code_hash=snip721_code.code_hash,
        snip721_label=snip721_label or default_label("MigratableSnip721"),
        prices=prices,
        token_uri=token_uri,
        private_token_uri=private_token_uri,
        admin=admin,
        royalty_info=royalty_info,
        entropy=default_entropy(),
    )
    dealer = deployer.instantiate(
        dealer_code,
        init_msg,
        sender=admin,
        label=label or default_label("Snip721Dealer"),
    )
    logger.info("Dealer instantiated at %s", dealer.address)
    return dealer


def purchase_mint(
    deployer: ContractDeployer,
    dealer: ContractInstance,
    *,
    buyer: str,
    prices: Sequence[Coin] = DEFAULT_PRICES,
) -> ExecuteResult:
    """Buy one token from `dealer`, paying `prices`. The dealer mints it on its child."""
    return deployer.execute(dealer, messages.purchase_mint_msg(), sender=buyer, funds=prices)


def transfer_nft(
    deployer: ContractDeployer,
    contract: ContractInstance,
    *,
    sender: str,
    recipient: str,
    token_id: str,
) -> ExecuteResult:
    return deployer.execute(
        contract,
        messages.transfer_nft_msg(recipient=recipient, token_id=token_id),
        sender=sender,
    )
