from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .accounts import fill_up_from_faucet
from .client import SecretNetworkClient, SecretSigningClient
from .code_store import CodeStore, read_contract_version
from .config import Settings
from .enums import ContractType
from .models import CodeArtifact
from .nodes import Secret4

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ContractCodeMetadata:
    version: str
    code: CodeArtifact


def store_updated_contracts(
    client: SecretSigningClient,
    sender_address: str,
    store: CodeStore,
    *,
    contracts_dir: Path,
    artifact_dir: Path,
    contract_types: Sequence[ContractType] = tuple(ContractType),
) -> dict[ContractType, ContractCodeMetadata]:
    """
    Make sure the current version of every contract is stored on the store's node.

    The version comes from `<contracts_dir>/<contract_name>/Cargo.toml`; contracts
    whose version is already cached are not re-uploaded.
    """

    stored: dict[ContractType, ContractCodeMetadata] = {}
    for contract_type in contract_types:
        version = read_contract_version(
            contracts_dir / contract_type.contract_name / "Cargo.toml"
        )
        logger.info("%s cargoTomlVersion: %s", contract_type.name, version)
        code = store.get_or_store_code(
            client,
            sender_address,
            artifact_dir / contract_type.artifact_name,
            contract_name=contract_type.contract_name,
            version=version,
        )
        stored[contract_type] = ContractCodeMetadata(version=version, code=code)
    return stored


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="snip721_migration",
        description="Upload out-of-date dealer / SNIP-721 contract code to a Secret node.",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=Path.cwd(),
        help="Repository root holding `contracts/` and the `deployed/` cache",
    )
    parser.add_argument(
        "--artifact-dir",
        type=Path,
        default=None,
        help="Directory of optimized *.wasm.gz artifacts (default: <root>/optimized-wasm)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> dict[ContractType, ContractCodeMetadata]:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = _parse_args(argv)
    settings = Settings.from_environment()
    node = settings.node()
    logger.info("Deploying to %s (%s)", node.type, node.chain_id)

    mnemonics = [settings.mnemonic] if settings.mnemonic else []
    client = SecretNetworkClient.connect(
        url=node.grpc_gateway_endpoint,
        chain_id=node.chain_id,
        mnemonics=mnemonics,
        random_accounts=0 if mnemonics else 1,
        commit_timeout=settings.rpc_timeout,
    )
    sender = client.addresses[0]
    if not isinstance(node, Secret4):
        fill_up_from_faucet(node, client, sender, timeout=settings.rpc_timeout)

    artifact_dir = args.artifact_dir
    if artifact_dir is None:
        artifact_dir = settings.contract_path or args.root / "optimized-wasm"
    store = CodeStore(root=args.root, node_type=node.type)
    stored = store_updated_contracts(
        client,
        sender,
        store,
        contracts_dir=args.root / "contracts",
        artifact_dir=artifact_dir,
    )
    for contract_type, meta in stored.items():
        logger.info(
            "%s v%s: code id %d, hash %s",
            contract_type.contract_name,
            meta.version,
            meta.code.code_id,
            meta.code.code_hash,
        )
    return stored
