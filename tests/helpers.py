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

"""Shared fixtures: an in-memory node and the testnet vectors used by several
test modules."""

from itertools import count

from rawtxutils.chainstate import NodeContext, TransactionObserver
from rawtxutils.keys import P2pkhAddress, PrivateKey
from rawtxutils.memory import MemoryChainState, MemoryPendingPool, RecordingRelay
from rawtxutils.script import Script
from rawtxutils.transactions import (
    COINBASE_INDEX,
    NULL_TXID,
    Transaction,
    TxInput,
    TxOutput,
)

# testnet key and P2PKH vector, signed by Bitcoin Core
SK_WIF = "cRvyLwCPLU88jsyj94L7iJjQX5C2f8koG4G2gevN4BeSGcEvfKe9"
FROM_ADDRESS = "myPAE9HwPeKHh8FjKwBNBaHnemApo3dw6e"
TO_ADDRESS = "n4bkvTyU1dVdzsrhWBqBw8fEMbHjJvtmJR"
CHANGE_ADDRESS = "mytmhndz4UbEMeoSZorXXrLpPfeoFUDzEp"
PREV_TXID = "fb48f4e23bf6ddf606714141ac78c3e921c8c0bebeb7c8abb2c799e9ff96ce6c"

UNSIGNED_TX = (
    "02000000016cce96ffe999c7b2abc8b7bebec0c821e9c378ac41417106f6ddf63be2f448fb"
    "0000000000ffffffff0280969800000000001976a914fd337ad3bf81e086d96a68e1f8d6a0"
    "a510f8c24a88ac4081ba01000000001976a914c992931350c9ba48538003706953831402ea"
    "34ea88ac00000000"
)
SIGNED_TX = (
    "02000000016cce96ffe999c7b2abc8b7bebec0c821e9c378ac41417106f6ddf63be2f448fb"
    "000000006a473044022079dad1afef077fa36dcd3488708dd05ef37888ef550b45eb00cdb0"
    "4ba3fc980e02207a19f6261e69b604a92e2bffdf6ddbed0c64f55d5003e9dfb58b874b07ae"
    "f3d7012103a2fef1829e0742b89c218c51898d9e7cb9d51201ba2bf9d9e9214ebb6af32708"
    "ffffffff0280969800000000001976a914fd337ad3bf81e086d96a68e1f8d6a0a510f8c24a"
    "88ac4081ba01000000001976a914c992931350c9ba48538003706953831402ea34ea88ac00"
    "000000"
)

_coinbase_counter = count()


class RecordingObserver(TransactionObserver):
    def __init__(self):
        self.accepted = []

    def transaction_accepted(self, txid, tx):
        self.accepted.append(txid)


def make_context(**kwargs):
    """Returns a NodeContext over an empty in-memory chain and pool"""
    chain = MemoryChainState()
    pool = MemoryPendingPool(chain)
    return NodeContext(chain, pool, RecordingRelay(), **kwargs)


def coinbase(script_pub_key: Script, amount: int) -> Transaction:
    """Returns a coinbase transaction with a unique txid"""
    tag = next(_coinbase_counter) + 1
    txin = TxInput(NULL_TXID, COINBASE_INDEX, Script([tag, "OP_0"]))
    return Transaction([txin], [TxOutput(amount, script_pub_key)])


def fund(context: NodeContext, key: PrivateKey, amount: int) -> str:
    """Mines a block paying amount to the P2PKH address of key; returns the
    txid of the paying transaction"""
    script = key.get_public_key().get_address().to_script_pub_key()
    tx = coinbase(script, amount)
    context.chain.add_block([tx])
    return tx.get_txid()


def fund_script(context: NodeContext, script_pub_key: Script, amount: int) -> str:
    tx = coinbase(script_pub_key, amount)
    context.chain.add_block([tx])
    return tx.get_txid()


def spending_tx() -> Transaction:
    """Returns an unsigned transaction spending PREV_TXID:0 to TO_ADDRESS"""
    return Transaction(
        [TxInput(PREV_TXID, 0)],
        [TxOutput(90000, P2pkhAddress(TO_ADDRESS).to_script_pub_key())],
    )
