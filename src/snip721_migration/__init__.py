# ruff: noqa: RUF022
"""
Deployment and migration tooling for the Secret Network dealer and migratable
SNIP-721 contracts.

Public entrypoints:
- :class:`snip721_migration.code_store.CodeStore`
- :class:`snip721_migration.deployer.ContractDeployer`
- :class:`snip721_migration.migration.MigrationOrchestrator`
- :class:`snip721_migration.verify.StateVerifier`

Chain access goes through a :class:`snip721_migration.client.SecretSigningClient`;
:class:`snip721_migration.client.SecretNetworkClient` implements it over `secret-sdk`.
"""

from __future__ import annotations

from . import constants, enums, messages
from .accounts import fill_up_from_faucet, initialize_account_before_execute
from .client import SecretNetworkClient, SecretSigningClient, gas_to_fee
from .code_store import CodeStore, read_contract_version
from .config import Settings
from .dealer import instantiate_dealer, purchase_mint, transfer_nft
from .deploy import ContractCodeMetadata, store_updated_contracts
from .deployer import ContractDeployer
from .enums import ContractMode, ContractType, Permission
from .errors import (
    ArtifactNotFoundError,
    ExecuteFailedError,
    FaucetError,
    InstantiateFailedError,
    InvalidArtifactError,
    MigrationIncompleteError,
    MigrationProgressError,
    MigrationToolsError,
    SimulationFailedError,
    TxFailedError,
    UnexpectedTxResultError,
    UnknownNodeTypeError,
    UploadFailedError,
    VerificationMismatchError,
)
from .migration import MigrationOrchestrator
from .models import (
    Coin,
    CodeArtifact,
    ContractInstance,
    ExecuteResult,
    MigrateTokensProgress,
    MigrationRequest,
    Permit,
    PermitParams,
    PermitSignature,
    TxResult,
)
from .nodes import (
    DEFAULT_NODES,
    Custom,
    Gitpod,
    LocalSecret,
    NodeInfo,
    Pulsar2,
    Secret4,
    load_nodes,
    select_node,
)
from .reader import ContractReader
from .verify import (
    DEFAULT_IGNORED_FIELDS,
    StateSnapshot,
    StateVerifier,
    contract_mode_from_error,
)

__all__ = [
    # Nodes
    "DEFAULT_NODES",
    "NodeInfo",
    "LocalSecret",
    "Pulsar2",
    "Secret4",
    "Gitpod",
    "Custom",
    "load_nodes",
    "select_node",
    # Config
    "Settings",
    # Client
    "SecretSigningClient",
    "SecretNetworkClient",
    "gas_to_fee",
    # Components
    "CodeStore",
    "ContractDeployer",
    "MigrationOrchestrator",
    "StateVerifier",
    "ContractReader",
    "read_contract_version",
    # Dealer flows
    "instantiate_dealer",
    "purchase_mint",
    "transfer_nft",
    # Accounts
    "fill_up_from_faucet",
    "initialize_account_before_execute",
    # Deploy
    "ContractCodeMetadata",
    "store_updated_contracts",
    # Verification
    "DEFAULT_IGNORED_FIELDS",
    "StateSnapshot",
    "contract_mode_from_error",
    # Errors
    "MigrationToolsError",
    "ArtifactNotFoundError",
    "InvalidArtifactError",
    "TxFailedError",
    "UploadFailedError",
    "SimulationFailedError",
    "InstantiateFailedError",
    "ExecuteFailedError",
    "MigrationIncompleteError",
    "MigrationProgressError",
    "UnexpectedTxResultError",
    "UnknownNodeTypeError",
    "FaucetError",
    "VerificationMismatchError",
    # Models
    "Coin",
    "CodeArtifact",
    "ContractInstance",
    "ExecuteResult",
    "MigrateTokensProgress",
    "MigrationRequest",
    "Permit",
    "PermitParams",
    "PermitSignature",
    "TxResult",
    # Enums
    "ContractMode",
    "ContractType",
    "Permission",
    # Constants
    "constants",
    # Enums module
    "enums",
    # Message builders
    "messages",
]
