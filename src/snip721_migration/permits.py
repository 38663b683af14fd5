from __future__ import annotations

import base64
import json
from collections.abc import Iterable

from . import constants as const
from .enums import Permission
from .models import JsonObject, Permit, PermitParams, PermitSignature

# ---------------------------------------------------------------------------
# SNIP-24 query permits
# ---------------------------------------------------------------------------


def permit_params(
    *,
    permit_name: str,
    allowed_tokens: Iterable[str],
    chain_id: str,
    permissions: Iterable[Permission] = (Permission.OWNER,),
) -> PermitParams:
    tokens = tuple(allowed_tokens)
    if not tokens:
        raise ValueError("A permit must be scoped to at least one contract address")
    perms = tuple(permissions)
    if not perms:
        raise ValueError("A permit must grant at least one permission")
    return PermitParams(
        permit_name=permit_name,
        allowed_tokens=tokens,
        chain_id=chain_id,
        permissions=perms,
    )


def permit_sign_doc(params: PermitParams) -> JsonObject:
    """
    Amino `StdSignDoc` a wallet signs for a query permit.

    Permits are never broadcast, so account number, sequence and fee are fixed
    placeholders the contract reconstructs identically when verifying.
    """

    return {
        "account_number": "0",
        "chain_id": params.chain_id,
        "fee": {"amount": [{"amount": "0", "denom": const.FEE_DENOM}], "gas": "1"},
        "memo": "",
        "msgs": [
            {
                "type": const.PERMIT_MSG_TYPE,
                "value": {
                    "allowed_tokens": list(params.allowed_tokens),
                    "permissions": [p.value for p in params.permissions],
                    "permit_name": params.permit_name,
                },
            }
        ],
        "sequence": "0",
    }


def permit_sign_bytes(params: PermitParams) -> bytes:
    """Canonical (sorted keys, compact) UTF-8 encoding of the permit sign doc."""
    return json.dumps(
        permit_sign_doc(params), sort_keys=True, separators=(",", ":")
    ).encode("utf-8")


def _b64(value: bytes | str) -> str:
    if isinstance(value, str):
        # Already base64 (some key implementations expose the pubkey this way).
        return value
    return base64.b64encode(value).decode("ascii")


def assemble_permit(
    *,
    signer_address: str,
    params: PermitParams,
    signature: bytes | str,
    pub_key: bytes | str,
) -> Permit:
    """
    Combine signed params with the signer's compressed secp256k1 public key.

    Both `signature` and `pub_key` may be raw bytes or already base64-encoded.
    """

    return Permit(
        signer_address=signer_address,
        params=params,
        signature=PermitSignature(
            pub_key_b64=_b64(pub_key), signature_b64=_b64(signature)
        ),
    )
