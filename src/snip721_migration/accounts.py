from __future__ import annotations

import logging
import time

import requests

from . import constants as const
from .client import SecretSigningClient
from .errors import FaucetError, TxFailedError
from .models import Coin
from .nodes import NodeInfo, Pulsar2

logger = logging.getLogger(__name__)


def request_from_faucet(
    node: NodeInfo, address: str, *, timeout: float = const.DEFAULT_RPC_TIMEOUT
) -> str:
    """Ask the node's faucet to send tokens to `address`. Returns the response body."""
    url = node.faucet_url(address)
    if url is None:
        raise FaucetError(f"{node.type} node has no faucet")
    try:
        if isinstance(node, Pulsar2):
            response = requests.post(
                url,
                json={"denom": const.FEE_DENOM, "address": address},
                timeout=timeout,
            )
        else:
            response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise FaucetError(f"failed to get tokens from faucet: {e}") from e
    return response.text


def fill_up_from_faucet(
    node: NodeInfo,
    client: SecretSigningClient,
    address: str,
    *,
    target_balance: int = const.FAUCET_TARGET_BALANCE,
    max_polls: int = const.FAUCET_MAX_BALANCE_POLLS,
    poll_interval: float = 1.0,
    timeout: float = const.DEFAULT_RPC_TIMEOUT,
) -> int:
    """
    Request faucet drips until `address` holds at least `target_balance` uscrt.

    The balance endpoint lags the faucet, so after each drip the balance is polled
    (up to `max_polls` times) until it changes. Returns the final balance.
    """

    balance = client.get_balance(address)
    while balance < target_balance:
        request_from_faucet(node, address, timeout=timeout)
        for _ in range(max_polls):
            new_balance = client.get_balance(address)
            if new_balance != balance:
                break
            time.sleep(poll_interval)
        else:
            raise FaucetError(f"Balance of {address} did not update after {max_polls} polls")
        balance = new_balance
        logger.info(
            "got tokens from faucet. New balance: %d, target balance: %d",
            balance,
            target_balance,
        )
    return balance


def initialize_account_before_execute(
    client: SecretSigningClient,
    address: str,
    *,
    gas_limit: int = const.BOOTSTRAP_GAS_LIMIT,
) -> None:
    """
    Send a 1 uscrt self-transfer from a freshly funded account.

    Some nodes reject the first contract execution from an account whose public key
    is not yet on chain; any prior transaction registers it. Failure is expected for
    accounts that are already initialized and is ignored.
    """

    try:
        client.send_tokens(address, address, Coin(amount=1), gas_limit=gas_limit)
    except TxFailedError as e:
        logger.debug("Bootstrap transfer for %s failed (ignored): %s", address, e.raw_log)
