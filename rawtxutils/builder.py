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

import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Optional, Union

from rawtxutils.constants import COIN, DEFAULT_TX_SEQUENCE, MAX_MONEY
from rawtxutils.errors import DuplicateAddress, InvalidParameter
from rawtxutils.keys import Address, decode_address
from rawtxutils.standard import null_data_script
from rawtxutils.transactions import Transaction, TxInput, TxOutput
from rawtxutils.utils import amount_from_value, h_to_b, is_hex

# destination key reserved for null data outputs
DATA_KEY = "data"

OutputSpec = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]

# leading decimal integer of a data amount; anything after it is ignored
_DATA_AMOUNT_PATTERN = re.compile(r"^\s*([+-]?[0-9]+)")


@dataclass(frozen=True)
class InputSpec:
    """A previous output to spend, with an optional sequence override"""

    txid: str
    vout: int
    sequence: Optional[int] = None


def is_txid(value: Any) -> bool:
    return isinstance(value, str) and len(value) == 64 and is_hex(value)


def _check_uint32(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidParameter(f"Invalid parameter, {name} must be an integer")
    if value < 0:
        raise InvalidParameter(f"Invalid parameter, {name} must be positive")
    if value > 0xFFFFFFFF:
        raise InvalidParameter(f"Invalid parameter, {name} out of range")
    return value


def make_input(spec: InputSpec) -> TxInput:
    """Returns an unsigned TxInput for spec

    Raises
    ------
    InvalidParameter
        on a malformed txid or a negative vout or sequence
    """
    if not is_txid(spec.txid):
        raise InvalidParameter("txid must be hexadecimal string")
    vout = _check_uint32(spec.vout, "vout")
    sequence = DEFAULT_TX_SEQUENCE
    if spec.sequence is not None:
        sequence = _check_uint32(spec.sequence, "sequence")
    return TxInput(spec.txid.lower(), vout, sequence=sequence)


def make_data_output(value: str) -> TxOutput:
    """Returns the null data output for a "<hex>" or "<hex>:<amount>" value

    The amount, in whole coins, is optional and negative amounts become 0.
    Only its leading decimal digits count, so "5x" is 5 and "abc" is 0.
    """
    if not isinstance(value, str):
        raise InvalidParameter("Invalid parameter, data must be a string")

    parts = value.split(":")
    if not is_hex(parts[0]):
        raise InvalidParameter("Data must be hexadecimal string")

    amount = 0
    if len(parts) == 2:
        match = _DATA_AMOUNT_PATTERN.match(parts[1])
        if match is not None:
            amount = int(match.group(1))

    amount = max(0, amount) * COIN
    if amount > MAX_MONEY:
        raise InvalidParameter("Invalid amount")

    return TxOutput(amount, null_data_script(h_to_b(parts[0])))


def _iter_outputs(outputs: OutputSpec) -> Iterator[tuple[str, Any]]:
    if isinstance(outputs, Mapping):
        yield from outputs.items()
        return
    for entry in outputs:
        # single entry objects, as sent by some clients, or plain pairs
        if isinstance(entry, Mapping):
            yield from entry.items()
        else:
            key, value = entry
            yield key, value


def build_transaction(
    inputs: Iterable[InputSpec],
    outputs: OutputSpec,
    locktime: int = 0,
) -> Transaction:
    """Builds an unsigned transaction

    Inputs become TxInputs with empty unlocking scripts. Each output key is
    either an address, paid the given display amount, or "data".

    Raises
    ------
    InvalidParameter
        on malformed inputs, amounts or data
    InvalidAddress
        on an address that does not decode for the configured network
    DuplicateAddress
        on an address given twice
    """

    tx_inputs = [make_input(spec) for spec in inputs]

    tx_outputs = []
    seen: set[Address] = set()
    for key, value in _iter_outputs(outputs):
        if key == DATA_KEY:
            tx_outputs.append(make_data_output(value))
            continue

        address = decode_address(key)
        if address in seen:
            raise DuplicateAddress(key)
        seen.add(address)

        tx_outputs.append(TxOutput(amount_from_value(value), address.to_script_pub_key()))

    return Transaction(tx_inputs, tx_outputs, _check_uint32(locktime, "locktime"))


def create_raw_transaction(
    inputs: Iterable[InputSpec],
    outputs: OutputSpec,
    locktime: int = 0,
) -> str:
    """Returns the hex of the unsigned transaction (see build_transaction)"""

    return build_transaction(inputs, outputs, locktime).to_hex()
