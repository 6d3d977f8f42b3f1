# Copyright (C) 2026 The rawtx-utils developers
#
# This file is part of rawtx-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of rawtx-utils, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

"""Classification of locking scripts into the standard shapes."""

from enum import Enum
from typing import Optional

from rawtxutils.errors import MalformedEncoding
from rawtxutils.keys import Address, P2pkhAddress, P2shAddress
from rawtxutils.hashes import hash160
from rawtxutils.script import (
    Script,
    OP_1,
    OP_16,
    OP_CHECKMULTISIG,
    OP_CHECKSIG,
    OP_DUP,
    OP_EQUAL,
    OP_EQUALVERIFY,
    OP_HASH160,
    OP_RETURN,
    decode_small_int,
)
from rawtxutils.utils import b_to_h


class ScriptType(Enum):
    NONSTANDARD = "nonstandard"
    PUBKEY = "pubkey"
    PUBKEYHASH = "pubkeyhash"
    SCRIPTHASH = "scripthash"
    MULTISIG = "multisig"
    NULL_DATA = "nulldata"


def _is_pubkey_push(push: Optional[bytes]) -> bool:
    return push is not None and 33 <= len(push) <= 65


def solve(script: Script) -> tuple[ScriptType, list[bytes]]:
    """Matches a locking script against the standard templates

    Returns the script type and its solutions:

    |  PUBKEY:      [pubkey]
    |  PUBKEYHASH:  [pubkey hash]
    |  SCRIPTHASH:  [script hash]
    |  MULTISIG:    [m, pubkey_1, ..., pubkey_n, n] (m and n as one byte each)
    |  NULL_DATA:   []
    """

    raw = script.to_bytes()

    # pay-to-script-hash is matched on the exact bytes
    if len(raw) == 23 and raw[0] == OP_HASH160 and raw[1] == 0x14 and raw[22] == OP_EQUAL:
        return ScriptType.SCRIPTHASH, [raw[2:22]]

    try:
        ops = list(script.ops())
    except MalformedEncoding:
        return ScriptType.NONSTANDARD, []

    if ops and ops[0] == (OP_RETURN, None):
        if all(push is not None for _, push in ops[1:]):
            return ScriptType.NULL_DATA, []
        return ScriptType.NONSTANDARD, []

    if len(ops) == 2 and _is_pubkey_push(ops[0][1]) and ops[1][0] == OP_CHECKSIG:
        return ScriptType.PUBKEY, [ops[0][1]]  # type: ignore

    if (
        len(ops) == 5
        and ops[0][0] == OP_DUP
        and ops[1][0] == OP_HASH160
        and ops[2][1] is not None
        and len(ops[2][1]) == 20
        and ops[3][0] == OP_EQUALVERIFY
        and ops[4][0] == OP_CHECKSIG
    ):
        return ScriptType.PUBKEYHASH, [ops[2][1]]

    if len(ops) >= 4 and ops[-1][0] == OP_CHECKMULTISIG:
        first, last = ops[0][0], ops[-2][0]
        if OP_1 <= first <= OP_16 and OP_1 <= last <= OP_16:
            m = decode_small_int(first)
            n = decode_small_int(last)
            keys = [push for _, push in ops[1:-2]]
            if (
                len(keys) == n
                and 1 <= m <= n
                and all(_is_pubkey_push(key) for key in keys)
            ):
                return ScriptType.MULTISIG, [bytes([m])] + keys + [bytes([n])]  # type: ignore

    return ScriptType.NONSTANDARD, []


def get_script_type(script: Script) -> ScriptType:
    return solve(script)[0]


def _pubkey_address(pubkey: bytes) -> Address:
    return P2pkhAddress(hash160=b_to_h(hash160(pubkey)))


def extract_destinations(
    script: Script,
) -> Optional[tuple[ScriptType, list[Address], int]]:
    """Returns (type, addresses, required signatures) for scripts that pay
    to addresses, None otherwise"""

    script_type, solutions = solve(script)

    if script_type == ScriptType.PUBKEY:
        return script_type, [_pubkey_address(solutions[0])], 1
    if script_type == ScriptType.PUBKEYHASH:
        return script_type, [P2pkhAddress(hash160=b_to_h(solutions[0]))], 1
    if script_type == ScriptType.SCRIPTHASH:
        return script_type, [P2shAddress(hash160=b_to_h(solutions[0]))], 1
    if script_type == ScriptType.MULTISIG:
        required = solutions[0][0]
        addresses = [_pubkey_address(key) for key in solutions[1:-1]]
        return script_type, addresses, required
    return None


def null_data_script(data: bytes) -> Script:
    """Returns OP_RETURN <data>"""
    return Script(["OP_RETURN", b_to_h(data)])


def multisig_script(required: int, pubkeys: list[bytes]) -> Script:
    """Returns OP_m <pubkey_1> ... <pubkey_n> OP_n OP_CHECKMULTISIG"""
    if not 1 <= required <= len(pubkeys) <= 16:
        raise ValueError("Invalid multisig parameters")
    return Script(
        [required] + [b_to_h(key) for key in pubkeys] + [len(pubkeys), "OP_CHECKMULTISIG"]
    )
