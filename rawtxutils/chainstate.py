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

"""Interfaces of the ledger collaborators and the context handed to every
operation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from rawtxutils.coins import CoinsView
from rawtxutils.errors import KeyStoreLocked
from rawtxutils.interpreter import ScriptVerifier, StandardScriptVerifier
from rawtxutils.keystore import KeyStore
from rawtxutils.transactions import Transaction, TxOutput


@dataclass(frozen=True)
class BlockInfo:
    block_hash: str
    height: int
    time: int
    in_active_chain: bool = True


class ChainState(CoinsView):
    """Confirmed ledger state"""

    @abstractmethod
    def get_transaction(self, txid: str) -> Optional[tuple[Transaction, Optional[str]]]:
        """Returns (transaction, hash of the confirming block or None)"""

    @abstractmethod
    def get_block(self, block_hash: str) -> Optional[BlockInfo]:
        pass

    @abstractmethod
    def get_height(self) -> int:
        pass


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of a pending pool admission

    invalid tells a consensus/policy rejection (reported as "code: reason")
    apart from other failures (reported with the reason only).
    """

    accepted: bool
    code: Optional[int] = None
    reason: str = ""
    invalid: bool = False

    @classmethod
    def accept(cls) -> "AdmissionResult":
        return cls(True)

    @classmethod
    def reject(cls, code: int, reason: str, invalid: bool = True) -> "AdmissionResult":
        return cls(False, code, reason, invalid)


class PendingPool(ABC):
    """The node's pool of valid but unconfirmed transactions

    Implementations expose a re-entrant ``lock`` guarding the pool contents.
    """

    lock: Any

    @abstractmethod
    def exists(self, txid: str) -> bool:
        pass

    @abstractmethod
    def get(self, txid: str) -> Optional[Transaction]:
        pass

    @abstractmethod
    def admit(self, tx: Transaction, reject_insane_fee: bool) -> AdmissionResult:
        pass


class Relay(ABC):
    @abstractmethod
    def relay(self, tx: Transaction, txid: str) -> None:
        pass


class TransactionObserver(ABC):
    """Notified after a transaction is admitted, e.g. a wallet"""

    @abstractmethod
    def transaction_accepted(self, txid: str, tx: Transaction) -> None:
        pass


class Wallet(ABC):
    """Funding source used by the token protocol"""

    @property
    @abstractmethod
    def keystore(self) -> KeyStore:
        pass

    @abstractmethod
    def get_receive_address(self) -> str:
        """Returns an address owned by the wallet"""

    @abstractmethod
    def create_transaction(
        self,
        address: str,
        amount: int,
        coin_filter: Callable[[TxOutput], bool],
    ) -> Transaction:
        """Returns a signed transaction paying amount to address

        Only coins accepted by coin_filter may be spent.

        Raises
        ------
        FundingError
            if the wallet cannot fund the payment
        """


@dataclass
class NodeContext:
    """Collaborators a request operates on"""

    chain: ChainState
    pool: PendingPool
    relay: Optional[Relay] = None
    observers: list[TransactionObserver] = field(default_factory=list)
    keystore: Optional[KeyStore] = None
    wallet: Optional[Wallet] = None
    verifier: ScriptVerifier = field(default_factory=StandardScriptVerifier)

    def get_keystore(self) -> KeyStore:
        """Returns the persistent key store, falling back to the wallet's"""
        if self.keystore is not None:
            return self.keystore
        if self.wallet is not None:
            return self.wallet.keystore
        raise KeyStoreLocked("No key store available")
