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

from typing import Optional


class RawTxError(Exception):
    """Base class of all errors raised by rawtx-utils operations.

    Attributes:
        message -- explanation of the error
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MalformedEncoding(RawTxError):
    """A transaction or script could not be decoded"""


class MissingTransaction(RawTxError):
    """No transaction could be decoded from the supplied data"""

    def __init__(self, message: str = "Missing transaction"):
        super().__init__(message)


class InvalidParameter(RawTxError):
    """A request parameter is out of range or has the wrong shape"""


class InvalidAddress(RawTxError):
    """An address failed format, checksum or network validation"""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Invalid address: {address}")


class DuplicateAddress(RawTxError):
    """The same address was given twice as a destination"""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Invalid parameter, duplicated address: {address}")


class InvalidKey(RawTxError):
    """A private key could not be decoded"""

    def __init__(self, message: str = "Invalid private key"):
        super().__init__(message)


class KeyStoreLocked(RawTxError):
    """The persistent key store must be unlocked before signing"""


class PrevoutScriptMismatch(RawTxError):
    """A prevout hint disagrees with the locking script already known"""

    def __init__(self, existing: str, supplied: str):
        self.existing = existing
        self.supplied = supplied
        super().__init__(
            f"Previous output scriptPubKey mismatch:\n{existing}\nvs:\n{supplied}"
        )


class AlreadySubmitted(RawTxError):
    """The transaction is already pending or confirmed"""

    def __init__(self, txid: str, confirmed: bool):
        self.txid = txid
        self.confirmed = confirmed
        where = "block chain" if confirmed else "memory pool"
        super().__init__(f"transaction already in {where}")


class Rejected(RawTxError):
    """The pending pool refused the transaction.

    code and reason are the pool's own values, passed through unmodified.
    invalid is False for rejections that do not make the transaction itself
    invalid (conflicts, missing inputs, insane fees); those render the reason
    only.
    """

    def __init__(self, code: Optional[int], reason: str, invalid: bool = True):
        self.code = code
        self.reason = reason
        self.invalid = invalid
        if code is None or not invalid:
            super().__init__(reason)
        else:
            super().__init__(f"{code}: {reason}")


class TransactionNotFound(RawTxError):
    """No transaction with the given id is known"""

    def __init__(self, txid: str):
        self.txid = txid
        super().__init__("No information available about transaction")


class FundingError(RawTxError):
    """The wallet could not fund a transaction"""
