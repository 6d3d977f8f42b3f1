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

"""Producing and merging unlocking scripts, dispatched by script shape."""

from typing import Callable, Optional

from loguru import logger

from rawtxutils.constants import SCRIPT_VERIFY_NONE, STANDARD_SCRIPT_VERIFY_FLAGS
from rawtxutils.hashes import hash160
from rawtxutils.interpreter import ScriptVerifier, StandardScriptVerifier, check_sig
from rawtxutils.keystore import KeyStore
from rawtxutils.script import Script, eval_push_only
from rawtxutils.standard import ScriptType, solve
from rawtxutils.transactions import Transaction
from rawtxutils.utils import h_to_b


def _create_sig(
    keystore: KeyStore,
    key_id: bytes,
    script_code: Script,
    tx: Transaction,
    txin_index: int,
    sighash: int,
) -> Optional[bytes]:
    key = keystore.get_key(key_id)
    if key is None:
        return None
    return h_to_b(key.sign_input(tx, txin_index, script_code, sighash))


def _solve(
    keystore: KeyStore,
    script_code: Script,
    tx: Transaction,
    txin_index: int,
    sighash: int,
) -> tuple[ScriptType, list[bytes], bool]:
    """Produces the unlocking stack for script_code with the keys available

    Returns (script type, stack, solved). For pay-to-script-hash the stack
    holds the serialized redeem script only.
    """

    script_type, solutions = solve(script_code)

    if script_type == ScriptType.PUBKEY:
        sig = _create_sig(
            keystore, hash160(solutions[0]), script_code, tx, txin_index, sighash
        )
        if sig is None:
            return script_type, [], False
        return script_type, [sig], True

    if script_type == ScriptType.PUBKEYHASH:
        key = keystore.get_key(solutions[0])
        if key is None:
            return script_type, [], False
        sig = h_to_b(key.sign_input(tx, txin_index, script_code, sighash))
        return script_type, [sig, key.get_public_key().to_bytes()], True

    if script_type == ScriptType.MULTISIG:
        required = solutions[0][0]
        # CHECKMULTISIG pops one element too many
        stack = [b""]
        for pubkey in solutions[1:-1]:
            if len(stack) - 1 >= required:
                break
            sig = _create_sig(
                keystore, hash160(pubkey), script_code, tx, txin_index, sighash
            )
            if sig is not None:
                stack.append(sig)
        return script_type, stack, len(stack) - 1 == required

    if script_type == ScriptType.SCRIPTHASH:
        redeem_script = keystore.get_redeem_script(solutions[0])
        if redeem_script is None:
            return script_type, [], False
        return script_type, [redeem_script.to_bytes()], True

    # null data and non-standard scripts cannot be signed
    return script_type, [], False


def sign_signature(
    keystore: KeyStore,
    script_pub_key: Script,
    tx: Transaction,
    txin_index: int,
    sighash: int,
) -> bool:
    """Signs input txin_index of tx in place for the given locking script

    The input's unlocking script is replaced with whatever could be produced,
    possibly a partial multisig. Returns True if the keys available were
    enough to solve the script.
    """

    txin = tx.inputs[txin_index]
    script_type, stack, solved = _solve(
        keystore, script_pub_key, tx, txin_index, sighash
    )

    if script_type == ScriptType.SCRIPTHASH:
        if not solved:
            txin.script_sig = Script([])
            return False
        redeem_script = Script.from_raw(stack[0])
        # the signature hash commits to the redeem script, not the p2sh script
        sub_type, sub_stack, sub_solved = _solve(
            keystore, redeem_script, tx, txin_index, sighash
        )
        solved = sub_solved and sub_type != ScriptType.SCRIPTHASH
        stack = sub_stack + [redeem_script.to_bytes()]

    txin.script_sig = Script.from_stack(stack)
    logger.debug(
        f"Input {txin_index} ({script_type.value}) "
        f"{'solved' if solved else 'not solved'} with available keys"
    )
    return solved


def _combine_multisig(
    script_code: Script,
    solutions: list[bytes],
    tx: Transaction,
    txin_index: int,
    stack1: list[bytes],
    stack2: list[bytes],
) -> list[bytes]:
    # union of all non-empty candidates; sorted for a stable matching order
    all_sigs = sorted({sig for sig in stack1 + stack2 if sig})

    required = solutions[0][0]
    pubkeys = solutions[1:-1]

    # match each signature to the first public key it verifies against
    matched: dict[int, bytes] = {}
    for sig in all_sigs:
        for i, pubkey in enumerate(pubkeys):
            if i in matched:
                continue
            if check_sig(sig, pubkey, script_code, tx, txin_index, SCRIPT_VERIFY_NONE):
                matched[i] = sig
                break

    result = [b""]
    for i in range(len(pubkeys)):
        if len(result) - 1 >= required:
            break
        if i in matched:
            result.append(matched[i])

    # fill any missing signatures with OP_0
    result += [b""] * (required - (len(result) - 1))
    return result


def _combine(
    script_code: Script,
    tx: Transaction,
    txin_index: int,
    stack1: list[bytes],
    stack2: list[bytes],
    satisfies: Callable[[list[bytes]], bool],
) -> list[bytes]:
    script_type, solutions = solve(script_code)

    if script_type == ScriptType.MULTISIG:
        return _combine_multisig(
            script_code, solutions, tx, txin_index, stack1, stack2
        )

    if script_type == ScriptType.SCRIPTHASH:
        if not stack1 or not stack1[-1]:
            return stack2
        if not stack2 or not stack2[-1]:
            return stack1
        # merge the redeem script's stacks and wrap the result again
        redeem_bytes = stack1[-1]
        inner = _combine(
            Script.from_raw(redeem_bytes),
            tx,
            txin_index,
            stack1[:-1],
            stack2[:-1],
            lambda stack: satisfies(stack + [redeem_bytes]),
        )
        return inner + [redeem_bytes]

    # single signature shapes and anything unrecognised: the first candidate
    # that verifies wins
    for candidate in (stack1, stack2):
        if candidate and satisfies(candidate):
            return candidate

    if script_type in (ScriptType.PUBKEY, ScriptType.PUBKEYHASH):
        # signatures are bigger than placeholders or empty scripts
        if not stack1 or not stack1[0]:
            return stack2
        return stack1

    # nothing is known about this shape, assume the bigger one is correct
    if len(stack1) >= len(stack2):
        return stack1
    return stack2


def combine_signatures(
    script_pub_key: Script,
    tx: Transaction,
    txin_index: int,
    script_sig1: Script,
    script_sig2: Script,
    verifier: Optional[ScriptVerifier] = None,
    flags: int = STANDARD_SCRIPT_VERIFY_FLAGS,
) -> Script:
    """Merges two unlocking scripts for the same input into one

    |  MULTISIG: union of signatures in public key order, up to the required
    |      count, padded with OP_0
    |  PUBKEY/PUBKEYHASH: the first candidate that verifies, otherwise the
    |      first non-empty one
    |  SCRIPTHASH: merges the redeem script's stacks by the same rules and
    |      appends the redeem script again
    |  NULL_DATA/NONSTANDARD: the first candidate that verifies, otherwise
    |      the larger one
    """

    if verifier is None:
        verifier = StandardScriptVerifier()

    stack1 = eval_push_only(script_sig1) or []
    stack2 = eval_push_only(script_sig2) or []

    def satisfies(stack: list[bytes]) -> bool:
        return verifier.verify_script(
            Script.from_stack(stack), script_pub_key, tx, txin_index, flags
        )

    return Script.from_stack(
        _combine(script_pub_key, tx, txin_index, stack1, stack2, satisfies)
    )
