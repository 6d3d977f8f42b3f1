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

from __future__ import annotations

import struct
from dataclasses import dataclass
from io import BytesIO
from typing import BinaryIO, Optional, Union

from rawtxutils.constants import (
    DEFAULT_TX_LOCKTIME,
    DEFAULT_TX_SEQUENCE,
    DEFAULT_TX_VERSION,
    EMPTY_TX_SEQUENCE,
    NEGATIVE_SATOSHI,
    SIGHASH_ALL,
    SIGHASH_ANYONECANPAY,
    SIGHASH_NONE,
    SIGHASH_SINGLE,
)
from rawtxutils.errors import MalformedEncoding, MissingTransaction
from rawtxutils.hashes import hash256
from rawtxutils.script import Script, OP_CODES
from rawtxutils.utils import (
    b_to_h,
    h_to_b,
    encode_varint,
    prepend_compact_size,
    read_compact_size,
    read_exact,
    read_struct,
    read_var_bytes,
)

NULL_TXID = "00" * 32
COINBASE_INDEX = 0xFFFFFFFF

# digest returned for SIGHASH_SINGLE without a matching output (the number 1)
ONE_DIGEST = b"\x01" + b"\x00" * 31


@dataclass(frozen=True)
class OutPoint:
    """Reference to an output of a previous transaction (txid in display hex)"""

    txid: str
    index: int

    def to_bytes(self) -> bytes:
        return h_to_b(self.txid)[::-1] + struct.pack("<I", self.index)


class TxInput:
    """Represents a transaction input

    A transaction input requires a transaction id of a UTXO and the index of
    that UTXO.

    Attributes
    ----------
    txid : str
        the transaction id as a hex string (little-endian as displayed by
        tools)
    txout_index : int
        the index of the UTXO that we want to spend
    script_sig : Script
        the script that satisfies the locking conditions (aka unlocking script)
    sequence : int
        the input sequence (for timelocks, RBF, etc.)

    Methods
    -------
    to_bytes()
        serializes TxInput to bytes
    copy()
        creates a copy of the object (classmethod)
    read(stream)
        decodes a TxInput from a byte stream (classmethod)
    """

    def __init__(
        self,
        txid: str,
        txout_index: int,
        script_sig: Optional[Script] = None,
        sequence: int = DEFAULT_TX_SEQUENCE,
    ) -> None:
        """See TxInput description"""

        self.txid = txid
        self.txout_index = txout_index
        self.script_sig = script_sig if script_sig is not None else Script([])
        self.sequence = sequence

    @property
    def outpoint(self) -> OutPoint:
        return OutPoint(self.txid, self.txout_index)

    def is_coinbase(self) -> bool:
        return self.txid == NULL_TXID and self.txout_index == COINBASE_INDEX

    def to_bytes(self) -> bytes:
        """Serializes to bytes"""

        # Internally Bitcoin uses little-endian byte order as it improves
        # speed. Hashes are defined and implemented as big-endian thus
        # those are transmitted in big-endian order. However, when hashes are
        # displayed Bitcoin uses little-endian order because it is sometimes
        # convenient to consider hashes as little-endian integers (and not
        # strings)
        # - note that we reverse the byte order for the tx hash since the string
        #   was displayed in little-endian!
        txid_bytes = h_to_b(self.txid)[::-1]
        return (
            txid_bytes
            + struct.pack("<I", self.txout_index)
            + prepend_compact_size(self.script_sig.to_bytes())
            + struct.pack("<I", self.sequence)
        )

    @classmethod
    def read(cls, stream: BinaryIO) -> "TxInput":
        txid = b_to_h(read_exact(stream, 32)[::-1])
        txout_index = read_struct(stream, "<I")
        script_sig = Script.from_raw(read_var_bytes(stream))
        sequence = read_struct(stream, "<I")
        return cls(txid, txout_index, script_sig, sequence)

    @classmethod
    def copy(cls, txin: "TxInput") -> "TxInput":
        """Deep copy of TxInput"""

        return cls(
            txin.txid, txin.txout_index, Script.copy(txin.script_sig), txin.sequence
        )

    def __str__(self) -> str:
        return str(
            {
                "txid": self.txid,
                "txout_index": self.txout_index,
                "script_sig": self.script_sig.to_hex(),
                "sequence": self.sequence,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


class TxOutput:
    """Represents a transaction output

    Attributes
    ----------
    amount : int
        the value we want to send to this output in base units
    script_pubkey : Script
        the script that will lock this amount

    Methods
    -------
    to_bytes()
        serializes TxOutput to bytes
    copy()
        creates a copy of the object (classmethod)
    read(stream)
        decodes a TxOutput from a byte stream (classmethod)
    """

    def __init__(self, amount: int, script_pubkey: Script) -> None:
        """See TxOutput description"""

        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TypeError("Amount needs to be in base units as an integer.")

        self.amount = amount
        self.script_pubkey = script_pubkey

    def to_bytes(self) -> bytes:
        """Serializes to bytes"""

        # internally all little-endian except hashes
        # note struct uses little-endian by default
        return struct.pack("<q", self.amount) + prepend_compact_size(
            self.script_pubkey.to_bytes()
        )

    @classmethod
    def read(cls, stream: BinaryIO) -> "TxOutput":
        amount = read_struct(stream, "<q")
        script_pubkey = Script.from_raw(read_var_bytes(stream))
        return cls(amount, script_pubkey)

    @classmethod
    def copy(cls, txout: "TxOutput") -> "TxOutput":
        """Deep copy of TxOutput"""

        return cls(txout.amount, Script.copy(txout.script_pubkey))

    def __str__(self) -> str:
        return str(
            {"amount": self.amount, "script_pubkey": self.script_pubkey.to_hex()}
        )

    def __repr__(self) -> str:
        return self.__str__()


class Transaction:
    """Represents a legacy (pre-segwit) transaction

    Attributes
    ----------
    inputs : list (TxInput)
        A list of all the transaction inputs
    outputs : list (TxOutput)
        A list of all the transaction outputs
    locktime : int
        The transaction's locktime parameter
    version : int
        The transaction version

    Methods
    -------
    to_bytes()
        Serializes Transaction to bytes
    to_hex()
        converts result of to_bytes to hexadecimal string
    serialize()
        converts result of to_bytes to hexadecimal string
    from_raw(rawtxhex)
        Instantiates a Transaction from serialized raw hexadacimal data (classmethod)
    from_bytes(data)
        Instantiates a Transaction from serialized bytes (classmethod)
    read(stream)
        Decodes one Transaction from a byte stream (classmethod)
    get_txid()
        Calculates txid and returns it
    get_size()
        Calculates the tx size
    copy()
        creates a copy of the object (classmethod)
    get_transaction_digest(txin_index, script, sighash)
        returns the transaction input's digest that is to be signed according
        to sighash
    """

    def __init__(
        self,
        inputs: Optional[list[TxInput]] = None,
        outputs: Optional[list[TxOutput]] = None,
        locktime: int = DEFAULT_TX_LOCKTIME,
        version: int = DEFAULT_TX_VERSION,
    ) -> None:
        """See Transaction description"""

        # make sure default argument for inputs and outputs is an empty list
        self.inputs = inputs if inputs is not None else []
        self.outputs = outputs if outputs is not None else []
        self.locktime = locktime
        self.version = version

    def to_bytes(self) -> bytes:
        """Serializes to bytes: version, inputs, outputs and locktime"""

        data = struct.pack("<i", self.version)
        data += encode_varint(len(self.inputs))
        for txin in self.inputs:
            data += txin.to_bytes()
        data += encode_varint(len(self.outputs))
        for txout in self.outputs:
            data += txout.to_bytes()
        data += struct.pack("<I", self.locktime)
        return data

    def to_hex(self) -> str:
        """Converts object to hexadecimal string"""

        return b_to_h(self.to_bytes())

    def serialize(self) -> str:
        """Converts object to hexadecimal string"""

        return self.to_hex()

    def get_hash(self) -> bytes:
        """Returns the double SHA-256 of the serialization (internal order)"""

        return hash256(self.to_bytes())

    def get_txid(self) -> str:
        """Hashes the serialized tx to get a unique id"""

        # note that we reverse the hash for display purposes
        return b_to_h(self.get_hash()[::-1])

    def get_size(self) -> int:
        """Gets the size of the transaction"""

        return len(self.to_bytes())

    def is_coinbase(self) -> bool:
        return len(self.inputs) == 1 and self.inputs[0].is_coinbase()

    @classmethod
    def read(cls, stream: BinaryIO) -> "Transaction":
        """Decodes one transaction from the stream

        Raises
        ------
        MalformedEncoding
            on truncated data or oversized counts
        """

        version = read_struct(stream, "<i")
        inputs = [TxInput.read(stream) for _ in range(read_compact_size(stream))]
        outputs = [TxOutput.read(stream) for _ in range(read_compact_size(stream))]
        locktime = read_struct(stream, "<I")
        return cls(inputs, outputs, locktime, version)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Transaction":
        """Decodes exactly one transaction; trailing bytes are an error"""

        stream = BytesIO(data)
        tx = cls.read(stream)
        if stream.tell() != len(data):
            raise MalformedEncoding("TX decode failed: trailing data")
        return tx

    @classmethod
    def from_raw(cls, rawtxhex: Union[str, bytes]) -> "Transaction":
        """Imports a Transaction from hexadecimal data"""

        if isinstance(rawtxhex, bytes):
            return cls.from_bytes(rawtxhex)
        try:
            data = h_to_b(rawtxhex)
        except ValueError:
            raise MalformedEncoding("TX decode failed: not hexadecimal")
        return cls.from_bytes(data)

    @classmethod
    def copy(cls, tx: "Transaction") -> "Transaction":
        """Deep copy of Transaction"""

        return cls(
            [TxInput.copy(txin) for txin in tx.inputs],
            [TxOutput.copy(txout) for txout in tx.outputs],
            tx.locktime,
            tx.version,
        )

    def get_transaction_digest(
        self, txin_index: int, script: Script, sighash: int = SIGHASH_ALL
    ) -> bytes:
        """Returns the transaction's digest for signing.
        https://en.bitcoin.it/wiki/OP_CHECKSIG

        |  SIGHASH types (see constants.py):
        |      SIGHASH_ALL - signs all inputs and outputs (default)
        |      SIGHASH_NONE - signs all of the inputs
        |      SIGHASH_SINGLE - signs all inputs but only txin_index output
        |      SIGHASH_ANYONECANPAY (only combined with one of the above)
        |      - with ALL - signs all outputs but only txin_index input
        |      - with NONE - signs only the txin_index input
        |      - with SINGLE - signs txin_index input and output

        An out of range txin_index, or SIGHASH_SINGLE without an output at
        txin_index, yields the digest 1 (as the reference client does).

        Attributes
        ----------
        txin_index : int
            The index of the input that we wish to sign
        script : Script
            The scriptPubKey (or redeem script) of the UTXO that we want to spend
        sighash : int
            The type of the signature hash to be created
        """

        if txin_index >= len(self.inputs):
            return ONE_DIGEST
        if (sighash & 0x1F) == SIGHASH_SINGLE and txin_index >= len(self.outputs):
            return ONE_DIGEST

        # clone transaction to modify without messing up the real transaction
        tmp_tx = Transaction.copy(self)

        # make sure all input scriptSigs are empty
        for txin in tmp_tx.inputs:
            txin.script_sig = Script([])

        # the signed input commits to the script code without separators
        tmp_tx.inputs[txin_index].script_sig = script.without_opcode(
            OP_CODES["OP_CODESEPARATOR"][0]
        )

        # whether 0x0n or 0x8n, bitwise AND'ing will result to n
        if (sighash & 0x1F) == SIGHASH_NONE:
            # do not include outputs in digest (i.e. do not sign outputs)
            tmp_tx.outputs = []

            # do not include sequence of other inputs (zero them for digest)
            # which means that they can be replaced
            for i in range(len(tmp_tx.inputs)):
                if i != txin_index:
                    tmp_tx.inputs[i].sequence = EMPTY_TX_SEQUENCE

        elif (sighash & 0x1F) == SIGHASH_SINGLE:
            # keep only output that corresponds to txin_index -- delete all outputs
            # after txin_index and blank out all outputs upto txin_index
            txout = tmp_tx.outputs[txin_index]
            tmp_tx.outputs = []
            for i in range(txin_index):
                tmp_tx.outputs.append(TxOutput(NEGATIVE_SATOSHI, Script([])))
            tmp_tx.outputs.append(txout)

            for i in range(len(tmp_tx.inputs)):
                if i != txin_index:
                    tmp_tx.inputs[i].sequence = EMPTY_TX_SEQUENCE

        # bitwise AND'ing 0x8n to 0x80 will result to true
        if sighash & SIGHASH_ANYONECANPAY:
            # ignore all other inputs from the signature which means that
            # anyone can add new inputs
            tmp_tx.inputs = [tmp_tx.inputs[txin_index]]

        # Note that although sighash is one byte it is hashed as a 4 byte value.
        tx_for_signing = tmp_tx.to_bytes() + struct.pack("<i", sighash)

        return hash256(tx_for_signing)

    def __str__(self) -> str:
        return str(
            {
                "inputs": self.inputs,
                "outputs": self.outputs,
                "locktime": self.locktime,
                "version": self.version,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


def decode_transactions(data: bytes) -> list[Transaction]:
    """Decodes transactions concatenated back to back until data runs out

    Raises
    ------
    MalformedEncoding
        if any of the transactions fails to decode
    MissingTransaction
        if data holds no transaction at all
    """

    stream = BytesIO(data)
    transactions = []
    while stream.tell() < len(data):
        try:
            transactions.append(Transaction.read(stream))
        except MalformedEncoding as e:
            raise MalformedEncoding(f"TX decode failed: {e.message}")

    if not transactions:
        raise MissingTransaction()
    return transactions
