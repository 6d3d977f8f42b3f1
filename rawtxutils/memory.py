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

"""In-memory ledger collaborators, for offline use and tests.

Only the policy a pending pool needs to tell valid from invalid spends is
implemented: no block validation and no coinbase maturity.
"""

import struct
import threading
from typing import Callable, Iterator, Optional

from loguru import logger

from rawtxutils.chainstate import (
    AdmissionResult,
    BlockInfo,
    ChainState,
    PendingPool,
    Relay,
    Wallet,
)
from rawtxutils.coins import Coins, CoinsViewCache, PendingPoolCoinsView
from rawtxutils.constants import (
    DEFAULT_MIN_RELAY_TX_FEE,
    INSANE_FEE_MULTIPLIER,
    MAX_MONEY,
    REJECT_DUPLICATE,
    REJECT_INSUFFICIENTFEE,
    REJECT_INVALID,
    REJECT_NONSTANDARD,
    SCRIPT_VERIFY_P2SH,
    SIGHASH_ALL,
    STANDARD_SCRIPT_VERIFY_FLAGS,
)
from rawtxutils.errors import FundingError
from rawtxutils.hashes import hash256
from rawtxutils.interpreter import ScriptVerifier, StandardScriptVerifier
from rawtxutils.keys import PrivateKey, decode_address
from rawtxutils.keystore import BasicKeyStore, KeyStore
from rawtxutils.sign import sign_signature
from rawtxutils.transactions import OutPoint, Transaction, TxInput, TxOutput
from rawtxutils.utils import b_to_h, h_to_b


class MemoryChainState(ChainState):
    """A chain of blocks kept in memory

    Every added block extends the active chain; the outputs its transactions
    create become coins and the outputs they spend are removed.
    """

    def __init__(self) -> None:
        self.blocks: list[BlockInfo] = []
        self._block_index: dict[str, BlockInfo] = {}
        self._transactions: dict[str, tuple[Transaction, str]] = {}
        self._coins: dict[str, Coins] = {}

    def add_block(self, transactions: list[Transaction], time: int = 0) -> BlockInfo:
        height = len(self.blocks)
        prev_hash = self.blocks[-1].block_hash if self.blocks else "00" * 32
        header = h_to_b(prev_hash) + struct.pack("<II", height, time)
        header += b"".join(tx.get_hash() for tx in transactions)
        block = BlockInfo(b_to_h(hash256(header)[::-1]), height, time)

        self.blocks.append(block)
        self._block_index[block.block_hash] = block
        for tx in transactions:
            txid = tx.get_txid()
            if not tx.is_coinbase():
                for txin in tx.inputs:
                    coins = self._coins.get(txin.txid)
                    if coins is not None:
                        coins.spend(txin.txout_index)
            self._transactions[txid] = (tx, block.block_hash)
            self._coins[txid] = Coins.from_transaction(tx, height)

        logger.debug(f"Block {block.block_hash} at height {height} connected")
        return block

    def get_coins(self, txid: str) -> Optional[Coins]:
        coins = self._coins.get(txid)
        if coins is None or coins.is_pruned():
            return None
        return coins.copy()

    def get_transaction(self, txid: str) -> Optional[tuple[Transaction, Optional[str]]]:
        found = self._transactions.get(txid)
        if found is None:
            return None
        tx, block_hash = found
        return Transaction.copy(tx), block_hash

    def get_block(self, block_hash: str) -> Optional[BlockInfo]:
        return self._block_index.get(block_hash)

    def get_height(self) -> int:
        return len(self.blocks) - 1

    def unspent(self) -> Iterator[tuple[OutPoint, TxOutput]]:
        """Yields every unspent output of the chain"""
        for txid, coins in self._coins.items():
            for index, txout in enumerate(coins.outputs):
                if txout is not None:
                    yield OutPoint(txid, index), txout


class MemoryPendingPool(PendingPool):
    """Pending pool over a ChainState

    Admission requires every input to be unspent in the chain or the pool,
    no conflict with a pending spend, verifying unlocking scripts and a fee
    of at least min_relay_fee per 1000 bytes. Fees above INSANE_FEE_MULTIPLIER
    times that floor are refused unless the caller allows them.
    """

    def __init__(
        self,
        chain: ChainState,
        verifier: Optional[ScriptVerifier] = None,
        min_relay_fee: int = DEFAULT_MIN_RELAY_TX_FEE,
    ) -> None:
        self.lock = threading.RLock()
        self.chain = chain
        self.verifier = verifier if verifier is not None else StandardScriptVerifier()
        self.min_relay_fee = min_relay_fee
        self._transactions: dict[str, Transaction] = {}
        self._spends: dict[OutPoint, str] = {}

    def exists(self, txid: str) -> bool:
        with self.lock:
            return txid in self._transactions

    def get(self, txid: str) -> Optional[Transaction]:
        with self.lock:
            return self._transactions.get(txid)

    def is_spent(self, outpoint: OutPoint) -> bool:
        with self.lock:
            return outpoint in self._spends

    def remove(self, txid: str) -> None:
        with self.lock:
            tx = self._transactions.pop(txid, None)
            if tx is None:
                return
            for txin in tx.inputs:
                self._spends.pop(txin.outpoint, None)

    def __len__(self) -> int:
        return len(self._transactions)

    def min_fee(self, size: int) -> int:
        return self.min_relay_fee * size // 1000

    def admit(self, tx: Transaction, reject_insane_fee: bool) -> AdmissionResult:
        with self.lock:
            result = self._check(tx, reject_insane_fee)
            if not result.accepted:
                return result

            txid = tx.get_txid()
            self._transactions[txid] = tx
            for txin in tx.inputs:
                self._spends[txin.outpoint] = txid
            logger.debug(f"Pending pool admitted {txid} ({len(self)} pending)")
            return result

    def _check(self, tx: Transaction, reject_insane_fee: bool) -> AdmissionResult:
        if not tx.inputs:
            return AdmissionResult.reject(REJECT_INVALID, "bad-txns-vin-empty")
        if not tx.outputs:
            return AdmissionResult.reject(REJECT_INVALID, "bad-txns-vout-empty")
        if tx.is_coinbase():
            return AdmissionResult.reject(REJECT_INVALID, "coinbase")

        value_out = 0
        for txout in tx.outputs:
            if txout.amount < 0:
                return AdmissionResult.reject(REJECT_INVALID, "bad-txns-vout-negative")
            value_out += txout.amount
            if txout.amount > MAX_MONEY or value_out > MAX_MONEY:
                return AdmissionResult.reject(REJECT_INVALID, "bad-txns-vout-toolarge")

        if tx.get_txid() in self._transactions:
            return AdmissionResult.reject(
                REJECT_DUPLICATE, "txn-already-in-mempool", invalid=False
            )
        for txin in tx.inputs:
            if txin.outpoint in self._spends:
                return AdmissionResult.reject(
                    REJECT_DUPLICATE, "txn-mempool-conflict", invalid=False
                )

        view = CoinsViewCache(PendingPoolCoinsView(self.chain, self))
        value_in = 0
        prev_outputs = []
        for txin in tx.inputs:
            prev_output = view.access_coin(txin.outpoint)
            if prev_output is None:
                return AdmissionResult.reject(
                    REJECT_INVALID, "missing-inputs", invalid=False
                )
            value_in += prev_output.amount
            prev_outputs.append(prev_output)

        if value_in < value_out:
            return AdmissionResult.reject(REJECT_INVALID, "bad-txns-in-belowout")

        fee = value_in - value_out
        floor = self.min_fee(tx.get_size())
        if fee < floor:
            return AdmissionResult.reject(REJECT_INSUFFICIENTFEE, "insufficient fee")
        if reject_insane_fee and fee > floor * INSANE_FEE_MULTIPLIER:
            return AdmissionResult.reject(
                REJECT_NONSTANDARD, f"insane fees, {fee} > {floor * INSANE_FEE_MULTIPLIER}",
                invalid=False,
            )

        for i, (txin, prev_output) in enumerate(zip(tx.inputs, prev_outputs)):
            script_pub_key = prev_output.script_pubkey
            if self.verifier.verify_script(
                txin.script_sig, script_pub_key, tx, i, STANDARD_SCRIPT_VERIFY_FLAGS
            ):
                continue
            # failing only the policy flags is non-standard, not invalid
            if self.verifier.verify_script(
                txin.script_sig, script_pub_key, tx, i, SCRIPT_VERIFY_P2SH
            ):
                return AdmissionResult.reject(
                    REJECT_NONSTANDARD, "non-mandatory-script-verify-flag"
                )
            return AdmissionResult.reject(
                REJECT_INVALID, "mandatory-script-verify-flag-failed"
            )

        return AdmissionResult.accept()


class RecordingRelay(Relay):
    """Keeps every relayed transaction in relayed, in relay order"""

    def __init__(self) -> None:
        self.relayed: list[tuple[str, Transaction]] = []

    def relay(self, tx: Transaction, txid: str) -> None:
        self.relayed.append((txid, tx))


class MemoryWallet(Wallet):
    """A single key wallet funding payments from MemoryChainState coins

    Coins are picked in chain order; change goes back to the wallet's own
    address and fee is paid on every transaction.
    """

    def __init__(
        self,
        chain: MemoryChainState,
        pool: MemoryPendingPool,
        key: Optional[PrivateKey] = None,
        fee: int = 1000000,
    ) -> None:
        self.chain = chain
        self.pool = pool
        self.key = key if key is not None else PrivateKey()
        self.fee = fee
        self._keystore = BasicKeyStore()
        self._keystore.add_key(self.key)

    @property
    def keystore(self) -> KeyStore:
        return self._keystore

    def get_receive_address(self) -> str:
        return self.key.get_public_key().get_address().to_string()

    def _own_coins(
        self, coin_filter: Callable[[TxOutput], bool]
    ) -> Iterator[tuple[OutPoint, TxOutput]]:
        own_script = self.key.get_public_key().get_address().to_script_pub_key()
        for outpoint, txout in self.chain.unspent():
            if txout.script_pubkey != own_script:
                continue
            if self.pool.is_spent(outpoint) or not coin_filter(txout):
                continue
            yield outpoint, txout

    def create_transaction(
        self,
        address: str,
        amount: int,
        coin_filter: Callable[[TxOutput], bool],
    ) -> Transaction:
        target = amount + self.fee
        selected = []
        total = 0
        for outpoint, txout in self._own_coins(coin_filter):
            selected.append((outpoint, txout))
            total += txout.amount
            if total >= target:
                break
        if total < target:
            raise FundingError(f"Insufficient funds: {total} < {target}")

        outputs = [TxOutput(amount, decode_address(address).to_script_pub_key())]
        change = total - target
        if change > 0:
            outputs.append(
                TxOutput(change, self.key.get_public_key().get_address().to_script_pub_key())
            )

        tx = Transaction(
            [TxInput(outpoint.txid, outpoint.index) for outpoint, _ in selected], outputs
        )
        for i, (_, txout) in enumerate(selected):
            sign_signature(self._keystore, txout.script_pubkey, tx, i, SIGHASH_ALL)
        return tx
