from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from . import constants as const
from .client import SecretSigningClient, gas_to_fee, padded_gas_limit
from .errors import InstantiateFailedError, SimulationFailedError, TxFailedError
from .models import (
    Coin,
    CodeArtifact,
    ContractInstance,
    ExecuteContract,
    ExecuteResult,
    InstantiateContract,
    TxMessage,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ContractDeployer:
    """
    Instantiates and executes contracts through a `SecretSigningClient`.

    Gas policy: when no explicit limit is given, each transaction is simulated and the
    result padded by `gas_margin`. If simulation fails the transaction is still sent,
    with `fallback_gas_limit`; a failed simulation does not imply a failed execution.
    """

    client: SecretSigningClient
    gas_price: float = const.DEFAULT_GAS_PRICE
    gas_margin: float = const.GAS_SIMULATION_MARGIN
    fallback_gas_limit: int = const.DEFAULT_GAS_LIMIT

    def estimate_gas(self, msg: TxMessage) -> int:
        try:
            simulated = self.client.simulate_gas(msg)
        except SimulationFailedError as e:
            logger.warning(
                "Gas simulation failed, using fallback gas limit %d: %s",
                self.fallback_gas_limit,
                e,
            )
            return self.fallback_gas_limit
        return padded_gas_limit(simulated, self.gas_margin)

    def instantiate(
        self,
        code_artifact: CodeArtifact,
        init_msg: Mapping[str, Any],
        *,
        sender: str,
        label: str,
        admin: str | None = None,
        funds: Sequence[Coin] = (),
        gas_limit: int | None = None,
    ) -> ContractInstance:
        """
        Instantiate `code_artifact` with an opaque `init_msg`.

        Raises:
            InstantiateFailedError: with the chain's raw error text as its message.
        """

        msg = InstantiateContract(
            sender=sender,
            code_id=code_artifact.code_id,
            code_hash=code_artifact.code_hash,
            init_msg=init_msg,
            label=label,
            admin=admin,
            funds=tuple(funds),
        )
        limit = gas_limit if gas_limit is not None else self.estimate_gas(msg)
        try:
            tx = self.client.instantiate(msg, gas_limit=limit)
        except TxFailedError as e:
            raise InstantiateFailedError(e.raw_log) from e

        address = tx.attribute(const.MESSAGE_EVENT, const.CONTRACT_ADDRESS_ATTR)
        logger.info("contract address: %s", address)
        return ContractInstance(address=address, code_hash=code_artifact.code_hash)

    def execute(
        self,
        contract: ContractInstance,
        msg: Mapping[str, Any],
        *,
        sender: str,
        funds: Sequence[Coin] = (),
        gas_limit: int | None = None,
    ) -> ExecuteResult:
        """
        Execute `msg` on `contract`.

        The gas fee is paid whether or not the transaction succeeds, so chain-side
        failures are reported in the returned envelope rather than raised.
        """

        execute_msg = ExecuteContract(
            sender=sender,
            contract_address=contract.address,
            code_hash=contract.code_hash,
            msg=msg,
            funds=tuple(funds),
        )
        limit = gas_limit if gas_limit is not None else self.estimate_gas(execute_msg)
        fee = gas_to_fee(limit, self.gas_price)
        try:
            tx = self.client.execute(execute_msg, gas_limit=limit)
        except TxFailedError as e:
            logger.info("Execute on %s failed: %s", contract.address, e.raw_log)
            return ExecuteResult(response=None, gas_fee=fee, error=e.raw_log)
        return ExecuteResult(response=tx, gas_fee=fee)
