from __future__ import annotations

import json
import logging
import os
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from . import constants as const
from .client import SecretSigningClient
from .errors import (
    ArtifactNotFoundError,
    InvalidArtifactError,
    TxFailedError,
    UploadFailedError,
)
from .models import CodeArtifact

logger = logging.getLogger(__name__)


def read_contract_version(cargo_toml: str | os.PathLike[str]) -> str:
    """Return `[package].version` from a contract crate's `Cargo.toml`."""
    with open(cargo_toml, "rb") as f:
        manifest = tomllib.load(f)
    try:
        return str(manifest["package"]["version"])
    except KeyError as e:
        raise ValueError(f"{cargo_toml} has no [package].version") from e


def _write_json_atomic(path: Path, obj: dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(obj, f, indent=2)
            f.write("\n")
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


@dataclass(slots=True)
class CodeStore:
    """
    Idempotent contract code uploader.

    Each `(contract_name, version, node_type)` is uploaded at most once: the resulting
    `CodeArtifact` is cached as JSON at
    `<root>/deployed/<contract_name>/v<version>/<node_type>.json` and reused on later
    runs without any chain interaction.

    Concurrent writers for the same key are last-writer-wins; each write is atomic, so
    readers never observe a partial file.
    """

    root: Path
    node_type: str
    upload_gas_limit: int = const.UPLOAD_GAS_LIMIT
    _memo: dict[Path, CodeArtifact] = field(default_factory=dict)

    def cache_path(self, *, contract_name: str, version: str) -> Path:
        return (
            Path(self.root)
            / const.DEPLOYED_DIR_NAME
            / contract_name
            / f"v{version}"
            / f"{self.node_type}.json"
        )

    def cached(self, *, contract_name: str, version: str) -> CodeArtifact | None:
        path = self.cache_path(contract_name=contract_name, version=version)
        if path in self._memo:
            return self._memo[path]
        if not path.exists():
            return None
        artifact = CodeArtifact.from_json(json.loads(path.read_text(encoding="utf-8")))
        self._memo[path] = artifact
        return artifact

    def get_or_store_code(
        self,
        client: SecretSigningClient,
        uploader_address: str,
        artifact_path: str | os.PathLike[str],
        *,
        contract_name: str,
        version: str,
    ) -> CodeArtifact:
        """
        Return the cached `CodeArtifact` for this contract version and node, uploading
        `artifact_path` first if there is none.

        Raises:
            ArtifactNotFoundError: on a cache miss when `artifact_path` does not exist.
            InvalidArtifactError: on a cache miss when the file is not gzip-compressed.
            UploadFailedError: if the chain rejects the upload or it times out.
        """

        existing = self.cached(contract_name=contract_name, version=version)
        if existing is not None:
            logger.info(
                "Using cached %s v%s on %s: code id %d",
                contract_name,
                version,
                self.node_type,
                existing.code_id,
            )
            return existing

        path = Path(artifact_path)
        if not path.is_file():
            raise ArtifactNotFoundError(f"Contract artifact not found: {path}")
        wasm = path.read_bytes()
        if not wasm.startswith(const.GZIP_MAGIC):
            raise InvalidArtifactError(f"Contract artifact is not gzip-compressed: {path}")

        try:
            tx = client.upload_code(uploader_address, wasm, gas_limit=self.upload_gas_limit)
        except TxFailedError as e:
            raise UploadFailedError(e.raw_log) from e

        code_id = int(tx.attribute(const.MESSAGE_EVENT, const.CODE_ID_ATTR))
        logger.info("codeId: %d", code_id)
        code_hash = client.get_code_hash(code_id)
        logger.info("Contract hash: %s", code_hash)

        artifact = CodeArtifact(code_id=code_id, code_hash=code_hash)
        cache_file = self.cache_path(contract_name=contract_name, version=version)
        _write_json_atomic(cache_file, artifact.to_json())
        self._memo[cache_file] = artifact
        return artifact
