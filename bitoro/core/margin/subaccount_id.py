"""
Packed sub-account identifier codec.

A sub-account id is a 32-byte value, hex encoded with a ``0x`` prefix:

    | account (20) | collateral_id (1) | asset_id (1) | is_long (1) | reserved (9) |

Decoding is pure and deterministic; range checks against the caller's asset
list happen in the pricing layer, not here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import InvalidArgumentError

SUB_ACCOUNT_ID_NBYTES = 32
ACCOUNT_NBYTES = 20
_RESERVED_NBYTES = SUB_ACCOUNT_ID_NBYTES - ACCOUNT_NBYTES - 3

_HEX_CHARS_RE = re.compile(r"^[0-9a-fA-F]+$")


@dataclass(frozen=True)
class SubAccountId:
    account: str
    collateral_id: int
    asset_id: int
    is_long: bool


def _hex_to_bytes_allow_0x(hex_str: str, *, name: str, expected_nbytes: int) -> bytes:
    if not isinstance(hex_str, str):
        raise InvalidArgumentError(f"{name} must be a string")
    s = hex_str[2:] if hex_str.startswith("0x") else hex_str
    if len(s) != 2 * expected_nbytes:
        raise InvalidArgumentError(f"{name} must be {expected_nbytes} bytes (hex length {2 * expected_nbytes})")
    if not _HEX_CHARS_RE.fullmatch(s):
        raise InvalidArgumentError(f"{name} must be valid hex")
    return bytes.fromhex(s)


def decode_sub_account_id(sub_account_id: str) -> SubAccountId:
    raw = _hex_to_bytes_allow_0x(sub_account_id, name="sub_account_id", expected_nbytes=SUB_ACCOUNT_ID_NBYTES)
    is_long_byte = raw[ACCOUNT_NBYTES + 2]
    if is_long_byte > 1:
        raise InvalidArgumentError(f"invalid is_long flag {is_long_byte} in sub_account_id")
    return SubAccountId(
        account="0x" + raw[:ACCOUNT_NBYTES].hex(),
        collateral_id=raw[ACCOUNT_NBYTES],
        asset_id=raw[ACCOUNT_NBYTES + 1],
        is_long=is_long_byte == 1,
    )


def encode_sub_account_id(account: str, collateral_id: int, asset_id: int, is_long: bool) -> str:
    account_bytes = _hex_to_bytes_allow_0x(account, name="account", expected_nbytes=ACCOUNT_NBYTES)
    for name, v in (("collateral_id", collateral_id), ("asset_id", asset_id)):
        if not isinstance(v, int) or isinstance(v, bool) or not (0 <= v <= 0xFF):
            raise InvalidArgumentError(f"{name} must fit in u8: {v!r}")
    if not isinstance(is_long, bool):
        raise InvalidArgumentError("is_long must be a bool")
    raw = account_bytes + bytes([collateral_id, asset_id, int(is_long)]) + bytes(_RESERVED_NBYTES)
    return "0x" + raw.hex()
