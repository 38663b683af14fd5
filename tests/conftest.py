import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from dotenv import load_dotenv

from snip721_migration import constants as const
from snip721_migration.accounts import (
    fill_up_from_faucet,
    initialize_account_before_execute,
)
from snip721_migration.client import SecretNetworkClient
from snip721_migration.code_store import CodeStore
from snip721_migration.config import Settings
from snip721_migration.deployer import ContractDeployer
from snip721_migration.enums import ContractType
from snip721_migration.migration import MigrationOrchestrator
from snip721_migration.models import CodeArtifact
from snip721_migration.nodes import NodeInfo, Secret4
from snip721_migration.reader import ContractReader
from snip721_migration.verify import StateVerifier

ROOT = Path(__file__).parent.parent

# Integration tests need three funded accounts: admin, buyer and a transfer target.
NUM_TEST_ACCOUNTS = 3


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    load_dotenv(ROOT / ".env")
    on_ci = os.environ.get(const.TEST_ENV_ENV) == const.CI_ENV_ID
    if os.environ.get(const.TESTNET_TYPE_ENV) or on_ci:
        return
    skip = pytest.mark.skip(
        reason=f"set {const.TESTNET_TYPE_ENV} (or {const.TEST_ENV_ENV}=CI) to run against a node"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


# ================================================================
# Live-node fixtures (integration tests only)
# ================================================================


@pytest.fixture(scope="session")
def settings() -> Settings:
    return Settings.from_environment()


@pytest.fixture(scope="session")
def node(settings: Settings) -> NodeInfo:
    return settings.node()


@pytest.fixture(scope="session")
def secret_client(settings: Settings, node: NodeInfo) -> Iterator[SecretNetworkClient]:
    client = SecretNetworkClient.connect(
        url=node.grpc_gateway_endpoint,
        chain_id=node.chain_id,
        mnemonics=[settings.mnemonic] if settings.mnemonic else [],
        random_accounts=NUM_TEST_ACCOUNTS - (1 if settings.mnemonic else 0),
        commit_timeout=settings.rpc_timeout,
    )
    for address in client.addresses:
        if not isinstance(node, Secret4):
            fill_up_from_faucet(node, client, address, timeout=settings.rpc_timeout)
        initialize_account_before_execute(client, address)
    yield client
    client.keys.clear()


@pytest.fixture(scope="session")
def accounts(secret_client: SecretNetworkClient) -> tuple[str, str, str]:
    admin, buyer, other = secret_client.addresses[:NUM_TEST_ACCOUNTS]
    return admin, buyer, other


@pytest.fixture(scope="session")
def deployer(secret_client: SecretNetworkClient) -> ContractDeployer:
    return ContractDeployer(secret_client)


@pytest.fixture(scope="session")
def orchestrator(
    secret_client: SecretNetworkClient, deployer: ContractDeployer
) -> MigrationOrchestrator:
    return MigrationOrchestrator(secret_client, deployer)


@pytest.fixture(scope="session")
def reader(secret_client: SecretNetworkClient) -> ContractReader:
    return ContractReader(secret_client)


@pytest.fixture(scope="session")
def verifier(secret_client: SecretNetworkClient) -> StateVerifier:
    return StateVerifier(secret_client)


@pytest.fixture(scope="session")
def stored_code(
    settings: Settings,
    node: NodeInfo,
    secret_client: SecretNetworkClient,
    accounts: tuple[str, str, str],
    tmp_path_factory: pytest.TempPathFactory,
) -> dict[ContractType, CodeArtifact]:
    """Upload (once per session) both contracts; the cache lives in a temp dir."""
    store = CodeStore(root=tmp_path_factory.mktemp("deployed"), node_type=node.type)
    version = "integration"
    return {
        contract_type: store.get_or_store_code(
            secret_client,
            accounts[0],
            settings.artifact_path(contract_type),
            contract_name=contract_type.contract_name,
            version=version,
        )
        for contract_type in ContractType
    }
