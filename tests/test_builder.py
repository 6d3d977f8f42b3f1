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

import unittest
from decimal import Decimal

from rawtxutils.setup import setup
from rawtxutils.builder import (
    InputSpec,
    build_transaction,
    create_raw_transaction,
    make_data_output,
)
from rawtxutils.constants import COIN
from rawtxutils.errors import DuplicateAddress, InvalidAddress, InvalidParameter
from rawtxutils.standard import ScriptType, get_script_type
from tests.helpers import CHANGE_ADDRESS, PREV_TXID, TO_ADDRESS, UNSIGNED_TX


class TestCreateRawTransaction(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.inputs = [InputSpec(PREV_TXID, 0)]

    def test_unsigned_p2pkh(self):
        raw = create_raw_transaction(
            self.inputs, {TO_ADDRESS: "0.1", CHANGE_ADDRESS: Decimal("0.29")}
        )
        self.assertEqual(raw, "01000000" + UNSIGNED_TX[8:])

    def test_outputs_as_pairs(self):
        raw = create_raw_transaction(
            self.inputs, [(TO_ADDRESS, 0.1), {CHANGE_ADDRESS: 0.29}]
        )
        self.assertEqual(raw, "01000000" + UNSIGNED_TX[8:])

    def test_inputs_are_unsigned(self):
        tx = build_transaction(self.inputs + [InputSpec(PREV_TXID, 1, 7)], {TO_ADDRESS: 1})
        self.assertTrue(all(txin.script_sig.is_empty() for txin in tx.inputs))
        self.assertEqual(tx.inputs[0].sequence, 0xFFFFFFFF)
        self.assertEqual(tx.inputs[1].sequence, 7)
        self.assertEqual(tx.outputs[0].amount, COIN)

    def test_txid_is_normalized(self):
        tx = build_transaction([InputSpec(PREV_TXID.upper(), 0)], {TO_ADDRESS: 1})
        self.assertEqual(tx.inputs[0].txid, PREV_TXID)

    def test_locktime(self):
        tx = build_transaction(self.inputs, {TO_ADDRESS: 1}, locktime=500000)
        self.assertEqual(tx.locktime, 500000)
        with self.assertRaises(InvalidParameter):
            build_transaction(self.inputs, {TO_ADDRESS: 1}, locktime=-1)

    def test_no_inputs_or_outputs(self):
        tx = build_transaction([], {})
        self.assertEqual(tx.to_hex(), "01000000000000000000")

    def test_data_output(self):
        tx = build_transaction(self.inputs, {"data": "00010203:5"})
        self.assertEqual(tx.outputs[0].amount, 5 * COIN)
        self.assertEqual(tx.outputs[0].script_pubkey.to_hex(), "6a0400010203")
        self.assertEqual(get_script_type(tx.outputs[0].script_pubkey), ScriptType.NULL_DATA)

    def test_data_output_without_amount(self):
        txout = make_data_output("cafe")
        self.assertEqual(txout.amount, 0)
        self.assertEqual(txout.script_pubkey.to_hex(), "6a02cafe")

    def test_data_output_negative_amount(self):
        self.assertEqual(make_data_output("cafe:-3").amount, 0)

    def test_data_output_amount_prefix(self):
        self.assertEqual(make_data_output("cafe:5_0").amount, 5 * COIN)
        self.assertEqual(make_data_output("cafe: 7coins").amount, 7 * COIN)
        self.assertEqual(make_data_output("cafe:abc").amount, 0)
        self.assertEqual(make_data_output("cafe:").amount, 0)

    def test_data_output_invalid(self):
        for value in ("xyz", "caf", 5):
            with self.assertRaises(InvalidParameter):
                make_data_output(value)

    def test_duplicate_address(self):
        with self.assertRaises(DuplicateAddress):
            build_transaction(self.inputs, [(TO_ADDRESS, 1), (TO_ADDRESS, 2)])

    def test_invalid_address(self):
        with self.assertRaises(InvalidAddress):
            build_transaction(self.inputs, {"1EHNa6Q4Jz2uvNExL497mE43ikXhwF6kZm": 1})
        with self.assertRaises(InvalidAddress):
            build_transaction(self.inputs, {"nonsense": 1})

    def test_invalid_inputs(self):
        with self.assertRaises(InvalidParameter):
            build_transaction([InputSpec(PREV_TXID, -1)], {TO_ADDRESS: 1})
        with self.assertRaises(InvalidParameter):
            build_transaction([InputSpec(PREV_TXID[:-2], 0)], {TO_ADDRESS: 1})
        with self.assertRaises(InvalidParameter):
            build_transaction([InputSpec("zz" * 32, 0)], {TO_ADDRESS: 1})
        with self.assertRaises(InvalidParameter):
            build_transaction([InputSpec(PREV_TXID, 0, -5)], {TO_ADDRESS: 1})

    def test_invalid_amounts(self):
        for amount in (0, -1, "abc", "NaN", True, 21000000 * 10000):
            with self.assertRaises(InvalidParameter):
                build_transaction(self.inputs, {TO_ADDRESS: amount})
        with self.assertRaises(InvalidParameter):
            build_transaction(self.inputs, {TO_ADDRESS: 50000000001})


if __name__ == "__main__":
    unittest.main()
