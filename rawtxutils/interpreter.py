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

"""Script verification for the standard script shapes.

Only push-only unlocking scripts are evaluated, against pay-to-pubkey,
pay-to-pubkey-hash, bare multisig and pay-to-script-hash wrapping one of
those. Anything else never verifies.
"""

from abc import ABC, abstractmethod

from rawtxutils.constants import (
    SCRIPT_VERIFY_NONE,
    SCRIPT_VERIFY_P2SH,
    SCRIPT_VERIFY_STRICTENC,
    SIGHASH_ALL,
    SIGHASH_ANYONECANPAY,
    SIGHASH_SINGLE,
)
from rawtxutils.hashes import hash160
from rawtxutils.keys import PublicKey
from rawtxutils.script import Script, eval_push_only
from rawtxutils.standard import ScriptType, solve
from rawtxutils.transactions import Transaction


def is_canonical_pubkey(pubkey: bytes) -> bool:
    """33 bytes starting with 02/03 or 65 bytes starting with 04"""

    if len(pubkey) < 33:
        return False
    if pubkey[0] == 0x04:
        return len(pubkey) == 65
    if pubkey[0] in (0x02, 0x03):
        return len(pubkey) == 33
    return False


def is_canonical_signature(sig: bytes) -> bool:
    """Checks for a strict DER signature followed by a defined sighash byte

    |  0x30 | total length | 0x02 | len(R) | R | 0x02 | len(S) | S | sighash
    """

    if len(sig) < 9 or len(sig) > 73:
        return False

    hash_type = sig[-1] & ~SIGHASH_ANYONECANPAY
    if hash_type < SIGHASH_ALL or hash_type > SIGHASH_SINGLE:
        return False

    if sig[0] != 0x30 or sig[1] != len(sig) - 3:
        return False

    length_r = sig[3]
    if 5 + length_r >= len(sig):
        return False
    length_s = sig[5 + length_r]
    if length_r + length_s + 7 != len(sig):
        return False

    # R and S must be positive integers without excess padding
    for offset, length in ((4, length_r), (6 + length_r, length_s)):
        if sig[offset - 2] != 0x02 or length == 0:
            return False
        if sig[offset] & 0x80:
            return False
        if length > 1 and sig[offset] == 0x00 and not sig[offset + 1] & 0x80:
            return False

    return True


def check_sig(
    sig: bytes,
    pubkey: bytes,
    script_code: Script,
    tx: Transaction,
    txin_index: int,
    flags: int = SCRIPT_VERIFY_NONE,
) -> bool:
    """Checks a signature (with its sighash byte) against a public key

    The sighash type is taken from the signature's last byte.
    """

    if flags & SCRIPT_VERIFY_STRICTENC:
        if not is_canonical_signature(sig) or not is_canonical_pubkey(pubkey):
            return False

    if not sig:
        return False

    try:
        public_key = PublicKey.from_bytes(pubkey)
    except ValueError:
        return False

    digest = tx.get_transaction_digest(txin_index, script_code, sig[-1])
    return public_key.verify_digest(sig[:-1], digest)


class ScriptVerifier(ABC):
    """Verifies an unlocking script against a locking script"""

    @abstractmethod
    def verify_script(
        self,
        script_sig: Script,
        script_pub_key: Script,
        tx: Transaction,
        txin_index: int,
        flags: int,
    ) -> bool:
        pass


class StandardScriptVerifier(ScriptVerifier):
    """Verifier for the standard script shapes"""

    def verify_script(
        self,
        script_sig: Script,
        script_pub_key: Script,
        tx: Transaction,
        txin_index: int,
        flags: int,
    ) -> bool:
        stack = eval_push_only(script_sig)
        if stack is None:
            return False

        return self._eval_locking(
            script_pub_key,
            stack,
            tx,
            txin_index,
            flags,
            allow_p2sh=bool(flags & SCRIPT_VERIFY_P2SH),
        )

    def _eval_locking(
        self,
        script_pub_key: Script,
        stack: list[bytes],
        tx: Transaction,
        txin_index: int,
        flags: int,
        allow_p2sh: bool,
    ) -> bool:
        script_type, solutions = solve(script_pub_key)

        if script_type == ScriptType.PUBKEY:
            if len(stack) < 1:
                return False
            return check_sig(
                stack[-1], solutions[0], script_pub_key, tx, txin_index, flags
            )

        if script_type == ScriptType.PUBKEYHASH:
            if len(stack) < 2:
                return False
            sig, pubkey = stack[-2], stack[-1]
            if hash160(pubkey) != solutions[0]:
                return False
            return check_sig(sig, pubkey, script_pub_key, tx, txin_index, flags)

        if script_type == ScriptType.MULTISIG:
            return self._check_multisig(
                stack, solutions, script_pub_key, tx, txin_index, flags
            )

        if script_type == ScriptType.SCRIPTHASH:
            if len(stack) < 1 or hash160(stack[-1]) != solutions[0]:
                return False
            if not allow_p2sh:
                return True
            # the serialized redeem script is evaluated against the rest
            redeem_script = Script.from_raw(stack[-1])
            return self._eval_locking(
                redeem_script, stack[:-1], tx, txin_index, flags, allow_p2sh=False
            )

        return False

    def _check_multisig(
        self,
        stack: list[bytes],
        solutions: list[bytes],
        script_code: Script,
        tx: Transaction,
        txin_index: int,
        flags: int,
    ) -> bool:
        required = solutions[0][0]
        pubkeys = solutions[1:-1]

        # the signatures plus the extra dummy element CHECKMULTISIG consumes
        if len(stack) < required + 1:
            return False
        sigs = stack[len(stack) - required :]

        # signatures must appear in the same order as their public keys
        isig = 0
        ikey = 0
        while isig < len(sigs):
            if len(sigs) - isig > len(pubkeys) - ikey:
                return False
            if check_sig(sigs[isig], pubkeys[ikey], script_code, tx, txin_index, flags):
                isig += 1
            ikey += 1
        return True
