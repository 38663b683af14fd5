"""
Integration tests for the migration tooling against a live Secret node.

These tests deploy fresh dealer / SNIP-721 contracts per test and drive real
migrations. They are skipped unless TESTNET_TYPE is set or TEST_ENV=CI.
"""

from pathlib import Path

import pytest

from snip721_migration import constants as const
from snip721_migration.client import SecretNetworkClient
from snip721_migration.code_store import CodeStore
from snip721_migration.config import Settings
from snip721_migration.dealer import instantiate_dealer, purchase_mint, transfer_nft
from snip721_migration.deployer import ContractDeployer
from snip721_migration.enums import ContractMode, ContractType
from snip721_migration.errors import InstantiateFailedError
from snip721_migration.migration import MigrationOrchestrator
from snip721_migration.models import CodeArtifact, ContractInstance
from snip721_migration.nodes import NodeInfo
from snip721_migration.reader import ContractReader
from snip721_migration.verify import StateVerifier, contract_mode_from_error

pytestmark = pytest.mark.integration

Accounts = tuple[str, str, str]


@pytest.fixture
def dealer(
    deployer: ContractDeployer,
    stored_code: dict[ContractType, CodeArtifact],
    accounts: Accounts,
) -> ContractInstance:
    return instantiate_dealer(
        deployer,
        stored_code[ContractType.SNIP721_DEALER],
        stored_code[ContractType.SNIP721_MIGRATABLE],
        admin=accounts[0],
    )


@pytest.fixture
def child(reader: ContractReader, dealer: ContractInstance) -> ContractInstance:
    return reader.child_snip721(dealer)


def _owned(
    verifier: StateVerifier, contract: ContractInstance, owner: str
) -> int:
    permit = verifier.viewer_permit(contract, owner)
    return verifier.reader.num_tokens_of_owner(contract, owner=owner, permit=permit)


def _migrate(
    orchestrator: MigrationOrchestrator,
    stored_code: dict[ContractType, CodeArtifact],
    source: ContractInstance,
    contract_type: ContractType,
    *,
    admin: str,
    import_tokens: bool | None = None,
) -> ContractInstance:
    return orchestrator.migrate(
        source,
        stored_code[contract_type],
        admin_address=admin,
        import_tokens=contract_type.imports_tokens if import_tokens is None else import_tokens,
    )


# ================================================================
# Code storage
# ================================================================


class TestCodeStorage:
    """Test idempotent uploads against the node."""

    def test_second_store_reuses_cached_code(
        self,
        secret_client: SecretNetworkClient,
        settings: Settings,
        node: NodeInfo,
        accounts: Accounts,
        tmp_path: Path,
    ) -> None:
        store = CodeStore(root=tmp_path, node_type=node.type)
        path = settings.artifact_path(ContractType.SNIP721_DEALER)

        first = store.get_or_store_code(
            secret_client, accounts[0], path, contract_name="snip721-dealer", version="x"
        )
        second = store.get_or_store_code(
            secret_client, accounts[0], path, contract_name="snip721-dealer", version="x"
        )

        assert first == second
        assert first.code_hash == secret_client.get_code_hash(first.code_id)


# ================================================================
# SNIP-721 migration
# ================================================================


class TestSnip721Migration:
    """Test migrating the dealer's child SNIP-721."""

    def test_migrated_state_matches_source(
        self,
        orchestrator: MigrationOrchestrator,
        deployer: ContractDeployer,
        verifier: StateVerifier,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        child: ContractInstance,
        accounts: Accounts,
    ) -> None:
        admin, buyer, _ = accounts
        assert purchase_mint(deployer, dealer, buyer=buyer).succeeded
        assert _owned(verifier, child, buyer) == 1
        before = verifier.snapshot(child, viewer=buyer, token_ids=["0"])

        migrated = _migrate(
            orchestrator, stored_code, child, ContractType.SNIP721_MIGRATABLE, admin=admin
        )

        assert migrated.address != child.address
        verifier.assert_equivalent(before, migrated, viewer=buyer, token_ids=["0"])

    def test_minters_are_migrated(
        self,
        orchestrator: MigrationOrchestrator,
        verifier: StateVerifier,
        stored_code: dict[ContractType, CodeArtifact],
        child: ContractInstance,
        accounts: Accounts,
    ) -> None:
        before = verifier.snapshot(child, viewer=accounts[0], token_ids=[])

        migrated = _migrate(
            orchestrator, stored_code, child, ContractType.SNIP721_MIGRATABLE, admin=accounts[0]
        )

        verifier.assert_minters_preserved(before, migrated)

    def test_dealer_is_notified_of_new_child_address(
        self,
        orchestrator: MigrationOrchestrator,
        deployer: ContractDeployer,
        reader: ContractReader,
        verifier: StateVerifier,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        child: ContractInstance,
        accounts: Accounts,
    ) -> None:
        admin, buyer, _ = accounts
        starting = _owned(verifier, child, buyer)
        purchase_mint(deployer, dealer, buyer=buyer)
        assert _owned(verifier, child, buyer) == starting + 1

        migrated = _migrate(
            orchestrator, stored_code, child, ContractType.SNIP721_MIGRATABLE, admin=admin
        )

        assert reader.child_snip721(dealer) == migrated

    @pytest.mark.parametrize("migrations", [1, 2])
    def test_dealer_mints_on_migrated_child(
        self,
        orchestrator: MigrationOrchestrator,
        deployer: ContractDeployer,
        verifier: StateVerifier,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        child: ContractInstance,
        accounts: Accounts,
        migrations: int,
    ) -> None:
        admin, buyer, _ = accounts
        purchase_mint(deployer, dealer, buyer=buyer)
        assert _owned(verifier, child, buyer) == 1

        current = child
        for _ in range(migrations):
            current = _migrate(
                orchestrator, stored_code, current, ContractType.SNIP721_MIGRATABLE, admin=admin
            )
        assert purchase_mint(deployer, dealer, buyer=buyer).succeeded

        assert _owned(verifier, current, buyer) == 2

    def test_migration_info(
        self,
        orchestrator: MigrationOrchestrator,
        reader: ContractReader,
        stored_code: dict[ContractType, CodeArtifact],
        child: ContractInstance,
        accounts: Accounts,
    ) -> None:
        admin = accounts[0]
        assert reader.migrated_from(child) is None
        assert reader.migrated_to(child) is None

        migrated = _migrate(
            orchestrator,
            stored_code,
            child,
            ContractType.SNIP721_MIGRATABLE,
            admin=admin,
            import_tokens=False,
        )

        assert reader.migrated_to(child) == migrated
        assert reader.migrated_from(migrated) == child
        assert reader.migrated_to(migrated) is None

        orchestrator.import_tokens(migrated, sender=admin)

        # Still answered once the destination is running.
        assert reader.migrated_to(child) == migrated
        assert reader.migrated_from(migrated) == child
        assert reader.migrated_to(migrated) is None


# ================================================================
# Source lockdown
# ================================================================


class TestSourceLockdown:
    """Test that a migrating or migrated source rejects state changes."""

    def test_purchase_fails_before_tokens_are_imported(
        self,
        orchestrator: MigrationOrchestrator,
        deployer: ContractDeployer,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        child: ContractInstance,
        accounts: Accounts,
    ) -> None:
        admin, buyer, _ = accounts
        purchase_mint(deployer, dealer, buyer=buyer)
        _migrate(
            orchestrator,
            stored_code,
            child,
            ContractType.SNIP721_MIGRATABLE,
            admin=admin,
            import_tokens=False,
        )

        result = purchase_mint(deployer, dealer, buyer=buyer)

        assert not result.succeeded
        assert contract_mode_from_error(result.error) is ContractMode.MIGRATE_OUT_STARTED

    def test_transfer_blocked_but_queries_allowed(
        self,
        orchestrator: MigrationOrchestrator,
        deployer: ContractDeployer,
        verifier: StateVerifier,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        child: ContractInstance,
        accounts: Accounts,
    ) -> None:
        admin, buyer, other = accounts
        purchase_mint(deployer, dealer, buyer=buyer)
        assert _owned(verifier, child, buyer) == 1
        _migrate(
            orchestrator,
            stored_code,
            child,
            ContractType.SNIP721_MIGRATABLE,
            admin=admin,
            import_tokens=False,
        )

        result = transfer_nft(deployer, child, sender=buyer, recipient=other, token_id="0")

        assert result.error is not None
        assert const.MODE_ERROR_PREFIX + "MigrateOutStarted" in result.error
        assert _owned(verifier, child, buyer) == 1

    def test_owner_queries_fail_after_tokens_are_imported(
        self,
        orchestrator: MigrationOrchestrator,
        deployer: ContractDeployer,
        verifier: StateVerifier,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        child: ContractInstance,
        accounts: Accounts,
    ) -> None:
        admin, buyer, _ = accounts
        purchase_mint(deployer, dealer, buyer=buyer)
        _migrate(orchestrator, stored_code, child, ContractType.SNIP721_MIGRATABLE, admin=admin)

        with pytest.raises(Exception, match="MigratedOut") as exc_info:
            _owned(verifier, child, buyer)

        assert contract_mode_from_error(str(exc_info.value)) is ContractMode.MIGRATED_OUT


# ================================================================
# Dealer migration
# ================================================================


class TestDealerMigration:
    """Test migrating the dealer itself."""

    @pytest.mark.parametrize("migrations", [1, 2])
    def test_migrated_dealer_can_mint(
        self,
        orchestrator: MigrationOrchestrator,
        deployer: ContractDeployer,
        reader: ContractReader,
        verifier: StateVerifier,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        accounts: Accounts,
        migrations: int,
    ) -> None:
        admin, buyer, _ = accounts
        current = dealer
        for _ in range(migrations):
            current = _migrate(
                orchestrator, stored_code, current, ContractType.SNIP721_DEALER, admin=admin
            )
        child = reader.child_snip721(current)

        assert purchase_mint(deployer, current, buyer=buyer).succeeded
        assert _owned(verifier, child, buyer) == 1

    def test_purchase_migrate_purchase(
        self,
        orchestrator: MigrationOrchestrator,
        deployer: ContractDeployer,
        reader: ContractReader,
        verifier: StateVerifier,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        child: ContractInstance,
        accounts: Accounts,
    ) -> None:
        admin, buyer, _ = accounts
        assert purchase_mint(deployer, dealer, buyer=buyer).succeeded
        assert _owned(verifier, child, buyer) == 1

        migrated = _migrate(
            orchestrator, stored_code, dealer, ContractType.SNIP721_DEALER, admin=admin
        )

        assert reader.child_snip721(migrated) == child
        assert purchase_mint(deployer, migrated, buyer=buyer).succeeded
        assert _owned(verifier, child, buyer) == 2

        # The retired dealer no longer sells.
        retired = purchase_mint(deployer, dealer, buyer=buyer)
        assert not retired.succeeded
        assert contract_mode_from_error(retired.error) in (
            ContractMode.MIGRATE_OUT_STARTED,
            ContractMode.MIGRATED_OUT,
        )
        assert _owned(verifier, child, buyer) == 2

    def test_dealer_migration_info(
        self,
        orchestrator: MigrationOrchestrator,
        reader: ContractReader,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        accounts: Accounts,
    ) -> None:
        assert reader.migrated_from(dealer) is None
        assert reader.migrated_to(dealer) is None

        migrated = _migrate(
            orchestrator, stored_code, dealer, ContractType.SNIP721_DEALER, admin=accounts[0]
        )

        assert migrated != dealer
        assert reader.migrated_to(dealer) == migrated
        assert reader.migrated_from(migrated) == dealer
        assert reader.migrated_to(migrated) is None


# ================================================================
# Authorization
# ================================================================


class TestAuthorization:
    """Test that only the admin's permit can start a migration."""

    @pytest.mark.parametrize(
        "contract_type", [ContractType.SNIP721_DEALER, ContractType.SNIP721_MIGRATABLE]
    )
    def test_non_admin_permit_rejected(
        self,
        orchestrator: MigrationOrchestrator,
        reader: ContractReader,
        stored_code: dict[ContractType, CodeArtifact],
        dealer: ContractInstance,
        accounts: Accounts,
        contract_type: ContractType,
    ) -> None:
        source = dealer if contract_type is ContractType.SNIP721_DEALER else (
            reader.child_snip721(dealer)
        )

        with pytest.raises(InstantiateFailedError, match=const.ADMIN_PERMIT_ERROR):
            _migrate(orchestrator, stored_code, source, contract_type, admin=accounts[1])
