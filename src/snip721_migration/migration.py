from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field

from . import constants as const
from . import messages
from .client import SecretSigningClient
from .deployer import ContractDeployer
from .enums import Permission
from .errors import (
    ExecuteFailedError,
    MigrationIncompleteError,
    MigrationProgressError,
)
from .models import (
    CodeArtifact,
    ContractInstance,
    MigrateTokensProgress,
    MigrationRequest,
)
from .permits import permit_params

logger = logging.getLogger(__name__)


def default_entropy() -> str:
    return const.ENTROPY_PREFIX + secrets.token_hex(16)


def default_label(prefix: str = "Migrated") -> str:
    return f"{prefix}{secrets.token_hex(8)}"


@dataclass(slots=True)
class MigrationOrchestrator:
    """
    Client-side driver of the instantiate-by-migration protocol.

    A migration is:
    1. sign an admin permit scoped to the source contract,
    2. instantiate the destination code with a `migrate` init message carrying it,
    3. (token contracts only) advance `migrate_tokens_in` until the destination
       reports completion.

    Failures are never retried: every step mutates chain state.
    """

    client: SecretSigningClient
    deployer: ContractDeployer
    permit_name: str = const.DEFAULT_PERMIT_NAME
    page_size: int | None = None
    max_page_calls: int = const.MAX_PAGE_CALLS
    entropy_factory: Callable[[], str] = field(default=default_entropy)

    def build_request(self, source: ContractInstance, *, admin_address: str) -> MigrationRequest:
        params = permit_params(
            permit_name=self.permit_name,
            allowed_tokens=[source.address],
            chain_id=self.client.chain_id,
            permissions=[Permission.OWNER],
        )
        permit = self.client.sign_permit(admin_address, params)
        return MigrationRequest(
            source_address=source.address,
            source_code_hash=source.code_hash,
            admin_permit=permit,
            entropy=self.entropy_factory(),
        )

    def migrate(
        self,
        source: ContractInstance,
        code_artifact: CodeArtifact,
        *,
        admin_address: str,
        label: str | None = None,
        import_tokens: bool = True,
    ) -> ContractInstance:
        """
        Migrate `source` into a new instance of `code_artifact`.

        `admin_address` must be the source contract's admin: any other signer is
        rejected by the contract with "Only the admins permit is allowed to initiate
        migration", surfaced verbatim as `InstantiateFailedError`.

        Returns the destination instance (a new address).
        """

        request = self.build_request(source, admin_address=admin_address)
        destination = self.deployer.instantiate(
            code_artifact,
            messages.migrate_init_msg(request),
            sender=admin_address,
            label=label if label is not None else default_label(),
        )
        logger.info("Migrated %s -> %s", source.address, destination.address)

        if import_tokens:
            self.import_tokens(destination, sender=admin_address)
        return destination

    def advance_page(
        self, destination: ContractInstance, *, sender: str
    ) -> MigrateTokensProgress:
        """Send one `migrate_tokens_in` call and parse the reported progress."""
        result = self.deployer.execute(
            destination,
            messages.migrate_tokens_in_msg(page_size=self.page_size),
            sender=sender,
        )
        if result.response is None:
            raise ExecuteFailedError(result.error or "migrate_tokens_in failed")
        return MigrateTokensProgress.from_answer(result.response.json_data())

    def import_tokens(self, destination: ContractInstance, *, sender: str) -> int:
        """
        Drive the paginated token import on `destination` to completion.

        The contract holds the page cursor; the reported `next_index` is tracked here
        only to check that progress is monotonic and `total` is stable.

        Returns the number of page-advance calls made.
        """

        total: int | None = None
        last_index: int | None = None
        for call in range(1, self.max_page_calls + 1):
            progress = self.advance_page(destination, sender=sender)
            # The final page reports `total: None`, so it is exempt from the checks below.
            if progress.complete:
                logger.info(
                    "Token import into %s complete after %d call(s)",
                    destination.address,
                    call,
                )
                return call

            if progress.total is not None:
                if total is not None and progress.total != total:
                    raise MigrationProgressError(
                        f"Token total changed during import: {total} -> {progress.total}"
                    )
                total = progress.total
            if progress.next_index is not None:
                if last_index is not None and progress.next_index < last_index:
                    raise MigrationProgressError(
                        f"Import cursor moved backwards: {last_index} -> {progress.next_index}"
                    )
                last_index = progress.next_index
            logger.info(
                "Token import into %s: %s/%s",
                destination.address,
                last_index,
                total,
            )

        raise MigrationIncompleteError(
            f"Token import into {destination.address} not complete after "
            f"{self.max_page_calls} calls"
        )

    def resume_token_import(self, destination: ContractInstance, *, sender: str) -> int:
        """
        Continue an interrupted token import.

        No client-side state is needed: the destination remembers where it stopped.
        """

        return self.import_tokens(destination, sender=sender)
