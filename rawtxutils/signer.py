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

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from loguru import logger

from rawtxutils.builder import is_txid
from rawtxutils.chainstate import NodeContext
from rawtxutils.coins import CoinsViewCache, warm_view
from rawtxutils.constants import (
    SIGHASH_ANYONECANPAY,
    SIGHASH_SINGLE,
    SIGHASH_TYPES,
    STANDARD_SCRIPT_VERIFY_FLAGS,
)
from rawtxutils.errors import InvalidKey, InvalidParameter, MalformedEncoding
from rawtxutils.keys import PrivateKey
from rawtxutils.keystore import BasicKeyStore, KeyStore
from rawtxutils.script import Script
from rawtxutils.sign import combine_signatures, sign_signature
from rawtxutils.standard import ScriptType, get_script_type
from rawtxutils.transactions import Transaction, decode_transactions
from rawtxutils.utils import h_to_b


@dataclass(frozen=True)
class PrevoutHint:
    """Caller supplied locking script of an output being spent"""

    txid: str
    vout: int
    script_pub_key: Script
    redeem_script: Optional[Script] = None


@dataclass(frozen=True)
class SignResult:
    hex: str
    complete: bool

    def to_json(self) -> dict:
        return {"hex": self.hex, "complete": self.complete}


def parse_sighash(name: str) -> int:
    """Maps ALL, NONE or SINGLE, optionally with |ANYONECANPAY, to its value

    Raises
    ------
    InvalidParameter
        on any other string
    """
    if name not in SIGHASH_TYPES:
        raise InvalidParameter("Invalid sighash param")
    return SIGHASH_TYPES[name]


def _decode_keys(private_keys: Iterable[str]) -> BasicKeyStore:
    keystore = BasicKeyStore()
    for wif in private_keys:
        try:
            keystore.add_key(PrivateKey.from_wif(wif))
        except (ValueError, TypeError):
            raise InvalidKey()
    return keystore


def sign_raw_transaction(
    tx_data: Union[str, bytes],
    context: NodeContext,
    prevouts: Optional[Iterable[PrevoutHint]] = None,
    private_keys: Optional[Iterable[str]] = None,
    sighash_type: str = "ALL",
) -> SignResult:
    """Signs as many inputs as possible and merges in existing signatures

    tx_data holds one or more transactions back to back (hex or bytes),
    variants of the same transaction carrying different partial signatures.
    The first variant is signed; the unlocking scripts of all variants are
    merged into it input by input.

    When private_keys is given (even empty) only those keys are used and
    redeem scripts of prevout hints are made available for signing.
    Otherwise the context's persistent key store is used.

    Inputs whose previous output cannot be resolved, or whose final
    unlocking script does not verify, make the result incomplete; they are
    never reported as errors.

    Raises
    ------
    MalformedEncoding, MissingTransaction
        if tx_data does not decode
    InvalidKey
        on a private key that does not decode
    InvalidParameter
        on a malformed prevout hint or sighash type
    PrevoutScriptMismatch
        if a prevout hint contradicts a known output
    KeyStoreLocked
        if the persistent key store cannot be used
    """

    if isinstance(tx_data, str):
        try:
            tx_data = h_to_b(tx_data)
        except ValueError:
            raise MalformedEncoding("TX decode failed")
    variants = decode_transactions(tx_data)

    # the first variant is the one that gets signed
    merged_tx = Transaction.copy(variants[0])

    view = CoinsViewCache()
    warm_view(
        view, context.chain, context.pool, [txin.txid for txin in merged_tx.inputs]
    )

    given_keys = private_keys is not None
    temp_keystore = BasicKeyStore()
    if given_keys:
        temp_keystore = _decode_keys(private_keys)  # type: ignore
    else:
        context.get_keystore().ensure_unlocked()

    for hint in prevouts or []:
        if not is_txid(hint.txid):
            raise InvalidParameter("txid must be hexadecimal string")
        if hint.vout < 0:
            raise InvalidParameter("vout must be positive")

        view.inject(hint.txid.lower(), hint.vout, hint.script_pub_key)

        # redeem scripts only make sense with caller supplied keys
        if (
            given_keys
            and hint.redeem_script is not None
            and get_script_type(hint.script_pub_key) == ScriptType.SCRIPTHASH
        ):
            temp_keystore.add_redeem_script(hint.redeem_script)

    keystore: KeyStore = temp_keystore if given_keys else context.get_keystore()

    sighash = parse_sighash(sighash_type)
    hash_single = (sighash & ~SIGHASH_ANYONECANPAY) == SIGHASH_SINGLE

    complete = True
    for i, txin in enumerate(merged_tx.inputs):
        prev_output = view.access_coin(txin.outpoint)
        if prev_output is None:
            logger.debug(f"Input {i} spends unknown output {txin.txid}:{txin.txout_index}")
            complete = False
            continue
        script_pub_key = prev_output.script_pubkey

        txin.script_sig = Script([])
        # SINGLE has nothing to commit to without a matching output
        if not hash_single or i < len(merged_tx.outputs):
            sign_signature(keystore, script_pub_key, merged_tx, i, sighash)

        # merge in the signatures of every variant
        for variant in variants:
            if i >= len(variant.inputs):
                continue
            txin.script_sig = combine_signatures(
                script_pub_key,
                merged_tx,
                i,
                txin.script_sig,
                variant.inputs[i].script_sig,
                context.verifier,
            )

        if not context.verifier.verify_script(
            txin.script_sig, script_pub_key, merged_tx, i, STANDARD_SCRIPT_VERIFY_FLAGS
        ):
            logger.debug(f"Input {i} does not verify yet")
            complete = False

    if not complete:
        logger.warning(f"Transaction {merged_tx.get_txid()} is not completely signed")

    return SignResult(merged_tx.to_hex(), complete)
