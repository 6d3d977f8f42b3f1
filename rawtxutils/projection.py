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

"""Display records (JSON shaped dictionaries) of transactions and scripts.

Amounts are Decimal display values; nothing here can be decoded back into a
transaction.
"""

from typing import Any, Optional, Union

from rawtxutils.chainstate import BlockInfo
from rawtxutils.errors import MalformedEncoding
from rawtxutils.keys import P2shAddress, hash160_of_script
from rawtxutils.script import Script
from rawtxutils.standard import extract_destinations, get_script_type
from rawtxutils.transactions import Transaction
from rawtxutils.utils import b_to_h, is_hex, value_from_amount


def script_pub_key_to_json(script: Script, include_hex: bool = True) -> dict[str, Any]:
    """Returns asm, hex, type and, for scripts paying to addresses, reqSigs
    and addresses"""

    out: dict[str, Any] = {"asm": script.to_asm()}
    if include_hex:
        out["hex"] = script.to_hex()

    destinations = extract_destinations(script)
    if destinations is None:
        out["type"] = get_script_type(script).value
        return out

    script_type, addresses, required = destinations
    out["reqSigs"] = required
    out["type"] = script_type.value
    out["addresses"] = [address.to_string() for address in addresses]
    return out


def tx_to_json(
    tx: Transaction,
    block: Optional[BlockInfo] = None,
    tip_height: Optional[int] = None,
) -> dict[str, Any]:
    """Returns the display record of tx

    With the confirming block (and the current tip height) the record also
    carries blockhash, confirmations and block times. Blocks outside the
    active chain have 0 confirmations.
    """

    entry: dict[str, Any] = {
        "txid": tx.get_txid(),
        "version": tx.version,
        "locktime": tx.locktime,
    }

    vin = []
    for txin in tx.inputs:
        record: dict[str, Any] = {}
        if tx.is_coinbase():
            record["coinbase"] = txin.script_sig.to_hex()
        else:
            record["txid"] = txin.txid
            record["vout"] = txin.txout_index
            record["scriptSig"] = {
                "asm": txin.script_sig.to_asm(),
                "hex": txin.script_sig.to_hex(),
            }
        record["sequence"] = txin.sequence
        vin.append(record)
    entry["vin"] = vin

    entry["vout"] = [
        {
            "value": value_from_amount(txout.amount),
            "n": n,
            "scriptPubKey": script_pub_key_to_json(txout.script_pubkey, True),
        }
        for n, txout in enumerate(tx.outputs)
    ]

    if block is not None:
        entry["blockhash"] = block.block_hash
        if block.in_active_chain and tip_height is not None:
            entry["confirmations"] = 1 + tip_height - block.height
            entry["time"] = block.time
            entry["blocktime"] = block.time
        else:
            entry["confirmations"] = 0

    return entry


def decode_script(script_hex: Union[str, bytes]) -> dict[str, Any]:
    """Classifies a serialized script and adds the p2sh address paying to it

    An empty string is the empty script.
    """

    if isinstance(script_hex, str):
        if script_hex and not is_hex(script_hex):
            raise MalformedEncoding("argument must be hexadecimal string")
        script = Script.from_raw(script_hex) if script_hex else Script([])
    else:
        script = Script.from_raw(script_hex)

    result = script_pub_key_to_json(script, include_hex=False)
    result["p2sh"] = P2shAddress(
        hash160=b_to_h(hash160_of_script(script))
    ).to_string()
    return result
