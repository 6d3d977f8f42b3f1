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

"""Views resolving transaction ids to their (unspent) outputs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

from loguru import logger

from rawtxutils.constants import MEMPOOL_HEIGHT
from rawtxutils.errors import PrevoutScriptMismatch
from rawtxutils.script import Script
from rawtxutils.transactions import OutPoint, Transaction, TxOutput

if TYPE_CHECKING:
    from rawtxutils.chainstate import PendingPool


@dataclass
class Coins:
    """Outputs of one transaction; spent or unknown positions are None"""

    outputs: list[Optional[TxOutput]] = field(default_factory=list)
    height: int = 0

    @classmethod
    def from_transaction(cls, tx: Transaction, height: int) -> "Coins":
        return cls([TxOutput.copy(txout) for txout in tx.outputs], height)

    def is_available(self, index: int) -> bool:
        return 0 <= index < len(self.outputs) and self.outputs[index] is not None

    def get_output(self, index: int) -> Optional[TxOutput]:
        if not self.is_available(index):
            return None
        return self.outputs[index]

    def spend(self, index: int) -> None:
        if 0 <= index < len(self.outputs):
            self.outputs[index] = None

    def is_pruned(self) -> bool:
        return all(txout is None for txout in self.outputs)

    def copy(self) -> "Coins":
        return Coins(
            [TxOutput.copy(txout) if txout else None for txout in self.outputs],
            self.height,
        )


class CoinsView(ABC):
    """Looks up the coins of a transaction id"""

    @abstractmethod
    def get_coins(self, txid: str) -> Optional[Coins]:
        pass

    def have_coins(self, txid: str) -> bool:
        return self.get_coins(txid) is not None


class DummyCoinsView(CoinsView):
    """A view that knows nothing, for offline composition"""

    def get_coins(self, txid: str) -> Optional[Coins]:
        return None


class CoinsViewBacked(CoinsView):
    """A view delegating to a swappable backend"""

    def __init__(self, backend: CoinsView) -> None:
        self.backend = backend

    def set_backend(self, backend: CoinsView) -> None:
        self.backend = backend

    def get_coins(self, txid: str) -> Optional[Coins]:
        return self.backend.get_coins(txid)


class PendingPoolCoinsView(CoinsViewBacked):
    """Outputs of pending pool transactions on top of a confirmed view"""

    def __init__(self, backend: CoinsView, pool: "PendingPool") -> None:
        super().__init__(backend)
        self.pool = pool

    def get_coins(self, txid: str) -> Optional[Coins]:
        tx = self.pool.get(txid)
        if tx is not None:
            return Coins.from_transaction(tx, MEMPOOL_HEIGHT)
        return self.backend.get_coins(txid)


class CoinsViewCache(CoinsViewBacked):
    """Request-local cache over a backend view

    Coins fetched once stay cached after the backend is swapped; misses are
    not cached. Entries can be installed directly with set_coins or inject.
    """

    def __init__(self, backend: Optional[CoinsView] = None) -> None:
        super().__init__(backend if backend is not None else DummyCoinsView())
        self._cache: dict[str, Coins] = {}

    def get_coins(self, txid: str) -> Optional[Coins]:
        coins = self._cache.get(txid)
        if coins is not None:
            return coins
        coins = self.backend.get_coins(txid)
        if coins is None:
            return None
        coins = coins.copy()
        self._cache[txid] = coins
        return coins

    def set_coins(self, txid: str, coins: Coins) -> None:
        self._cache[txid] = coins

    def access_coin(self, outpoint: OutPoint) -> Optional[TxOutput]:
        """Returns the unspent output referenced by outpoint, if known"""
        coins = self.get_coins(outpoint.txid)
        if coins is None:
            return None
        return coins.get_output(outpoint.index)

    def inject(self, txid: str, index: int, script_pub_key: Script) -> None:
        """Records a caller supplied locking script for txid:index

        The amount is recorded as 0 since it cannot be verified.

        Raises
        ------
        PrevoutScriptMismatch
            if an available output at that position has a different script
        """

        coins = self.get_coins(txid)
        if coins is None:
            coins = Coins()
        elif coins.is_available(index):
            existing = coins.outputs[index].script_pubkey  # type: ignore
            if existing != script_pub_key:
                raise PrevoutScriptMismatch(existing.to_asm(), script_pub_key.to_asm())

        if index >= len(coins.outputs):
            coins.outputs.extend([None] * (index + 1 - len(coins.outputs)))
        coins.outputs[index] = TxOutput(0, script_pub_key)
        self.set_coins(txid, coins)


def warm_view(
    cache: CoinsViewCache,
    chain_view: CoinsView,
    pool: "PendingPool",
    txids: Iterable[str],
) -> None:
    """Fetches the coins of txids into cache while holding the pool lock

    The cache backend is switched to the pool-aware view for the fetch and to
    a DummyCoinsView afterwards, so nothing later in the request touches the
    shared pool.
    """

    with pool.lock:
        cache.set_backend(PendingPoolCoinsView(chain_view, pool))
        try:
            for txid in txids:
                # a miss is fine here
                cache.get_coins(txid)
        finally:
            cache.set_backend(DummyCoinsView())
    logger.debug("Resolved view warmed, pending pool lock released")
