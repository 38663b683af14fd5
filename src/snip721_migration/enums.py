from __future__ import annotations

import enum


class ContractMode(enum.Enum):
    """
    Contract-side lifecycle modes, as observed by the client.

    The client never sets these; they change as a side effect of the contract
    accepting migration execute messages.
    """

    RUNNING = "Running"
    MIGRATE_DATA_IN = "MigrateDataIn"
    MIGRATE_OUT_STARTED = "MigrateOutStarted"
    MIGRATED_OUT = "MigratedOut"


class ContractType(enum.Enum):
    """The contracts deployed by this repository."""

    SNIP721_DEALER = ("snip721-dealer", "snip721_dealer.wasm.gz", False)
    SNIP721_MIGRATABLE = ("snip721-migratable", "snip721_migratable.wasm.gz", True)

    def __init__(self, contract_name: str, artifact_name: str, imports_tokens: bool) -> None:
        self.contract_name = contract_name
        self.artifact_name = artifact_name
        # Destination must be driven through `migrate_tokens_in` after instantiation.
        self.imports_tokens = imports_tokens


class Permission(enum.Enum):
    OWNER = "owner"
    HISTORY = "history"
    ALLOWANCE = "allowance"
    BALANCE = "balance"
