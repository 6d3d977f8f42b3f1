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

from typing import Union

from loguru import logger

from rawtxutils.chainstate import NodeContext
from rawtxutils.constants import MAX_PLAUSIBLE_HEIGHT
from rawtxutils.errors import AlreadySubmitted, MalformedEncoding, Rejected
from rawtxutils.transactions import Transaction


def submit_transaction(
    tx: Transaction, context: NodeContext, allow_high_fees: bool = False
) -> str:
    """Admits tx to the pending pool and relays it, returning its txid

    Raises
    ------
    AlreadySubmitted
        if the transaction is already pending or confirmed
    Rejected
        with the pool's code and reason if admission fails
    """

    txid = tx.get_txid()

    if context.pool.exists(txid):
        raise AlreadySubmitted(txid, confirmed=False)

    coins = context.chain.get_coins(txid)
    if coins is not None and coins.height < MAX_PLAUSIBLE_HEIGHT:
        raise AlreadySubmitted(txid, confirmed=True)

    result = context.pool.admit(tx, reject_insane_fee=not allow_high_fees)
    if not result.accepted:
        logger.info(f"Transaction {txid} rejected: {result.reason}")
        raise Rejected(result.code, result.reason, result.invalid)

    logger.info(f"Transaction {txid} accepted to the pending pool")
    for observer in context.observers:
        observer.transaction_accepted(txid, tx)

    if context.relay is not None:
        # fire and forget
        try:
            context.relay.relay(tx, txid)
        except Exception as e:
            logger.warning(f"Relaying {txid} failed: {e}")

    return txid


def send_raw_transaction(
    tx_data: Union[str, bytes], context: NodeContext, allow_high_fees: bool = False
) -> str:
    """Decodes a serialized transaction and submits it (see submit_transaction)

    Raises
    ------
    MalformedEncoding
        if tx_data is not exactly one transaction
    """

    try:
        tx = Transaction.from_raw(tx_data)
    except MalformedEncoding:
        raise MalformedEncoding("TX decode failed")

    return submit_transaction(tx, context, allow_high_fees)
