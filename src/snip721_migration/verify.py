from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

from . import constants as const
from .client import SecretSigningClient
from .enums import ContractMode, Permission
from .errors import VerificationMismatchError
from .models import ContractInstance, JsonObject, Permit
from .permits import permit_params
from .reader import ContractReader

logger = logging.getLogger(__name__)

# Fields a migrated token legitimately rewrites: the minting contract and time belong
# to the destination after import. Dotted key paths, matched against the end of a
# key's path (list indices are skipped).
DEFAULT_IGNORED_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "mint_run_info.collection_creator",
        "mint_run_info.token_creator",
        "mint_run_info.time_of_minting",
    }
)

_MODE_ERROR_RE: Final[re.Pattern[str]] = re.compile(re.escape(const.MODE_ERROR_PREFIX) + r"(\w+)")


def contract_mode_from_error(message: str) -> ContractMode | None:
    """
    Classify a contract error by the lifecycle mode it reports.

    A source contract mid-migration answers state-changing calls with
    "Not available in contact mode: MigrateOutStarted"; once fully migrated, owner
    queries answer with "...: MigratedOut". Returns None for any other error.
    """

    match = _MODE_ERROR_RE.search(message)
    if match is None:
        return None
    try:
        return ContractMode(match.group(1))
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """
    Queryable state of a SNIP-721 contract at one point in time.

    Take one of the source before migrating: once tokens are exported, owner queries
    on the source fail with a MigratedOut mode error.
    """

    contract_info: JsonObject
    contract_config: JsonObject
    num_tokens: int
    minters: tuple[str, ...]
    nft_dossiers: tuple[JsonObject, ...]
    transaction_history: JsonObject | None = None

    def to_json(self) -> JsonObject:
        out: JsonObject = {
            "contract_info": self.contract_info,
            "contract_config": self.contract_config,
            "num_tokens": self.num_tokens,
            "minters": list(self.minters),
            "nft_dossiers": list(self.nft_dossiers),
        }
        if self.transaction_history is not None:
            out["transaction_history"] = self.transaction_history
        return out


def _strip_ignored(obj: Any, ignore: frozenset[str], keys: tuple[str, ...] = ()) -> Any:
    if isinstance(obj, Mapping):
        out = {}
        for k, v in obj.items():
            path = (*keys, str(k))
            dotted = ".".join(path)
            if any(dotted == f or dotted.endswith("." + f) for f in ignore):
                continue
            out[k] = _strip_ignored(v, ignore, path)
        return out
    if isinstance(obj, list | tuple):
        return [_strip_ignored(v, ignore, keys) for v in obj]
    return obj


def _diff(a: Any, b: Any, path: str, out: list[str]) -> None:
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        for k in sorted(set(a) | set(b), key=str):
            sub = f"{path}.{k}" if path else str(k)
            if k not in a:
                out.append(f"{sub}: missing in source")
            elif k not in b:
                out.append(f"{sub}: missing in destination")
            else:
                _diff(a[k], b[k], sub, out)
        return
    if isinstance(a, list) and isinstance(b, list):
        if len(a) != len(b):
            out.append(f"{path}: length {len(a)} != {len(b)}")
        for i, (x, y) in enumerate(zip(a, b)):
            _diff(x, y, f"{path}[{i}]", out)
        return
    if a != b:
        out.append(f"{path}: {a!r} != {b!r}")


def differences(
    source: JsonObject, destination: JsonObject, *, ignore_fields: Iterable[str] = ()
) -> list[str]:
    """Paths at which `destination` differs from `source`, after removing ignored fields."""
    ignore = frozenset(ignore_fields)
    out: list[str] = []
    _diff(_strip_ignored(source, ignore), _strip_ignored(destination, ignore), "", out)
    return out


# ---------------------------------------------------------------------------
# Verifier
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class StateVerifier:
    """Compares SNIP-721 state before and after a migration."""

    client: SecretSigningClient
    permit_name: str = const.DEFAULT_PERMIT_NAME
    reader: ContractReader = field(init=False)

    def __post_init__(self) -> None:
        self.reader = ContractReader(self.client)

    def viewer_permit(self, contract: ContractInstance, viewer: str) -> Permit:
        params = permit_params(
            permit_name=self.permit_name,
            allowed_tokens=[contract.address],
            chain_id=self.client.chain_id,
            permissions=[Permission.OWNER],
        )
        return self.client.sign_permit(viewer, params)

    def snapshot(
        self,
        contract: ContractInstance,
        *,
        viewer: str,
        token_ids: Sequence[str],
        include_history: bool = False,
    ) -> StateSnapshot:
        reader = self.reader
        permit = self.viewer_permit(contract, viewer)
        history = (
            reader.transaction_history(contract, permit=permit) if include_history else None
        )
        return StateSnapshot(
            contract_info=reader.contract_info(contract),
            contract_config=reader.contract_config(contract),
            num_tokens=reader.num_tokens(contract),
            minters=tuple(reader.minters(contract)),
            nft_dossiers=tuple(
                reader.batch_nft_dossier(contract, token_ids=token_ids, permit=permit)
            ),
            transaction_history=history,
        )

    def _resolve(
        self,
        state: ContractInstance | StateSnapshot,
        *,
        viewer: str,
        token_ids: Sequence[str],
        include_history: bool,
    ) -> StateSnapshot:
        if isinstance(state, StateSnapshot):
            return state
        return self.snapshot(
            state, viewer=viewer, token_ids=token_ids, include_history=include_history
        )

    def assert_equivalent(
        self,
        source: ContractInstance | StateSnapshot,
        destination: ContractInstance | StateSnapshot,
        *,
        viewer: str,
        token_ids: Sequence[str],
        ignore_fields: Iterable[str] = DEFAULT_IGNORED_FIELDS,
        include_history: bool = False,
    ) -> None:
        """
        Assert that `destination` exposes the same state as `source`, ignoring
        `ignore_fields`.

        Raises:
            VerificationMismatchError: listing every differing path.
        """

        before = self._resolve(
            source, viewer=viewer, token_ids=token_ids, include_history=include_history
        )
        after = self._resolve(
            destination, viewer=viewer, token_ids=token_ids, include_history=include_history
        )
        diffs = differences(before.to_json(), after.to_json(), ignore_fields=ignore_fields)
        if diffs:
            raise VerificationMismatchError(
                "Migrated state differs from source:\n  " + "\n  ".join(diffs)
            )
        logger.info("Verified %d token(s) and contract state after migration", len(token_ids))

    def assert_minters_preserved(
        self,
        source: ContractInstance | StateSnapshot,
        destination: ContractInstance | StateSnapshot,
    ) -> None:
        before = source.minters if isinstance(source, StateSnapshot) else tuple(
            self.reader.minters(source)
        )
        after = destination.minters if isinstance(destination, StateSnapshot) else tuple(
            self.reader.minters(destination)
        )
        if list(before) != list(after):
            raise VerificationMismatchError(
                f"Minters not preserved: {list(before)!r} != {list(after)!r}"
            )
