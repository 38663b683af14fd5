from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from . import constants as const
from .enums import ContractType
from .nodes import NodeInfo, load_nodes, select_node


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Runtime settings resolved from the environment (and a `.env` file, if present).

    `contract_path` is the directory holding the optimized `*.wasm.gz` artifacts.
    """

    contract_path: Path | None = None
    testnet_type: str | None = None
    test_env: str | None = None
    gitpod_id: str | None = None
    mnemonic: str | None = None
    nodes_file: Path = Path(const.DEFAULT_NODES_CONFIG)
    rpc_timeout: float = const.DEFAULT_RPC_TIMEOUT

    @classmethod
    def from_environment(
        cls, environ: Mapping[str, str] | None = None, *, dotenv: bool = True
    ) -> Settings:
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        def get(name: str) -> str | None:
            value = environ.get(name)
            return value if value else None

        contract_path = get(const.CONTRACT_PATH_ENV)
        timeout = get(const.RPC_TIMEOUT_ENV)
        return cls(
            contract_path=Path(contract_path) if contract_path else None,
            testnet_type=get(const.TESTNET_TYPE_ENV),
            test_env=get(const.TEST_ENV_ENV),
            gitpod_id=get(const.GITPOD_ID_ENV),
            mnemonic=get(const.MNEMONIC_ENV),
            nodes_file=Path(get(const.NODES_CONFIG_ENV) or const.DEFAULT_NODES_CONFIG),
            rpc_timeout=float(timeout) if timeout else const.DEFAULT_RPC_TIMEOUT,
        )

    @property
    def on_ci(self) -> bool:
        return self.test_env == const.CI_ENV_ID

    def artifact_path(self, contract: ContractType) -> Path:
        if self.contract_path is None:
            raise ValueError(f"{const.CONTRACT_PATH_ENV} is not set")
        return self.contract_path / contract.artifact_name

    def node(self) -> NodeInfo:
        nodes = load_nodes(self.nodes_file) if self.nodes_file.exists() else []
        return select_node(
            nodes,
            testnet_type=self.testnet_type,
            on_ci=self.on_ci,
            gitpod_id=self.gitpod_id,
        )
