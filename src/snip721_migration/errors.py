from __future__ import annotations


class MigrationToolsError(Exception):
    """Base class for all errors raised by this package."""


class ArtifactNotFoundError(MigrationToolsError, FileNotFoundError):
    """Raised when a local contract bytecode artifact does not exist."""


class InvalidArtifactError(MigrationToolsError, ValueError):
    """Raised when a bytecode artifact is not gzip-compressed WASM."""


class TxFailedError(MigrationToolsError, RuntimeError):
    """
    Raised by the signing client when a broadcast transaction is rejected or times out.

    `raw_log` holds the chain's error text verbatim; `gas_wanted` is the gas limit the
    transaction was submitted with (the fee is debited regardless of the outcome).
    """

    def __init__(
        self,
        raw_log: str,
        *,
        gas_wanted: int | None = None,
        tx_hash: str | None = None,
    ) -> None:
        super().__init__(raw_log)
        self.raw_log = raw_log
        self.gas_wanted = gas_wanted
        self.tx_hash = tx_hash


class UploadFailedError(MigrationToolsError, RuntimeError):
    """Raised when the chain rejects or times out on a code upload."""


class SimulationFailedError(MigrationToolsError, RuntimeError):
    """Raised when gas estimation via simulation fails."""


class InstantiateFailedError(MigrationToolsError, RuntimeError):
    """
    Raised when the chain rejects an instantiate transaction.

    The message is the chain's raw error string, unmodified. Callers classify failures
    (e.g. admin permit denials) by substring match on it.
    """


class ExecuteFailedError(MigrationToolsError, RuntimeError):
    """Raised when an execute transaction fails and the caller needs it to be fatal."""


class MigrationIncompleteError(MigrationToolsError, RuntimeError):
    """Raised when the token import loop does not report completion within its call limit."""


class MigrationProgressError(MigrationToolsError, RuntimeError):
    """
    Raised when paginated token import reports inconsistent progress
    (`total` changed between pages or the cursor moved backwards).
    """


class UnexpectedTxResultError(MigrationToolsError, ValueError):
    """Raised when a transaction result lacks an expected event attribute or answer."""


class UnknownNodeTypeError(MigrationToolsError, ValueError):
    """Raised when a node descriptor carries an unrecognised type tag."""


class FaucetError(MigrationToolsError, RuntimeError):
    """Raised when the faucet cannot top an account up."""


class VerificationMismatchError(MigrationToolsError, AssertionError):
    """Raised when post-migration state differs from the source beyond the ignored fields."""
