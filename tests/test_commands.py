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

import os
import tempfile
import unittest

from rawtxutils.setup import setup
from rawtxutils import commands
from rawtxutils.commands import (
    CreateRawTransactionRequest,
    SignRawTransactionRequest,
    parse_request,
)
from rawtxutils.constants import COIN, SIGHASH_ALL
from rawtxutils.errors import (
    InvalidParameter,
    MalformedEncoding,
    TransactionNotFound,
)
from rawtxutils.keys import PrivateKey, P2pkhAddress
from rawtxutils.keystore import BasicKeyStore
from rawtxutils.memory import MemoryWallet
from rawtxutils.script import Script
from rawtxutils.sign import sign_signature
from rawtxutils.transactions import Transaction, TxInput, TxOutput
from tests.helpers import (
    CHANGE_ADDRESS,
    FROM_ADDRESS,
    PREV_TXID,
    SIGNED_TX,
    SK_WIF,
    TO_ADDRESS,
    UNSIGNED_TX,
    fund,
    make_context,
)


class TestCreateRawTransaction(unittest.TestCase):
    def setUp(self):
        setup("testnet")

    def test_create(self):
        raw = commands.createrawtransaction(
            [{"txid": PREV_TXID, "vout": 0}], {TO_ADDRESS: 0.1, CHANGE_ADDRESS: 0.29}
        )
        self.assertEqual(raw, "01000000" + UNSIGNED_TX[8:])

    def test_sequence_and_locktime(self):
        raw = commands.createrawtransaction(
            [{"txid": PREV_TXID, "vout": 0, "sequence": 1}], {TO_ADDRESS: 1}, 99
        )
        tx = Transaction.from_raw(raw)
        self.assertEqual(tx.inputs[0].sequence, 1)
        self.assertEqual(tx.locktime, 99)

    def test_invalid_parameters(self):
        outputs = {TO_ADDRESS: 1}
        for inputs in (
            "inputs",
            ["entry"],
            [{"txid": PREV_TXID}],
            [{"txid": PREV_TXID, "vout": "0"}],
            [{"txid": PREV_TXID, "vout": True}],
            [{"txid": PREV_TXID, "vout": -1}],
            [{"txid": "xyz", "vout": 0}],
            [{"txid": PREV_TXID, "vout": 0, "sequence": "1"}],
        ):
            with self.assertRaises(InvalidParameter):
                commands.createrawtransaction(inputs, outputs)
        with self.assertRaises(InvalidParameter):
            commands.createrawtransaction([], "outputs")
        with self.assertRaises(InvalidParameter):
            commands.createrawtransaction([], outputs, "0")


class TestRequests(unittest.TestCase):
    def test_create_request(self):
        request = parse_request(
            CreateRawTransactionRequest,
            inputs=[{"txid": PREV_TXID.upper(), "vout": 1, "sequence": 5}],
            outputs=[(TO_ADDRESS, 1)],
        )
        spec = request.input_specs()[0]
        self.assertEqual((spec.txid, spec.vout, spec.sequence), (PREV_TXID, 1, 5))
        self.assertEqual(request.locktime, 0)

    def test_error_names_the_parameter(self):
        with self.assertRaises(InvalidParameter) as cm:
            parse_request(
                CreateRawTransactionRequest,
                inputs=[{"txid": PREV_TXID, "vout": "0"}],
                outputs={},
            )
        self.assertIn("inputs.0.vout", str(cm.exception))

    def test_sign_request(self):
        script_hex = P2pkhAddress(FROM_ADDRESS).to_script_pub_key().to_hex()
        request = parse_request(
            SignRawTransactionRequest,
            hexstring=UNSIGNED_TX,
            prevtxs=[
                {"txid": PREV_TXID, "vout": 0, "scriptPubKey": script_hex, "redeemScript": "51"}
            ],
            sighashtype="SINGLE|ANYONECANPAY",
        )
        hint = request.prevout_hints()[0]
        self.assertEqual(hint.script_pub_key.to_hex(), script_hex)
        self.assertEqual(hint.redeem_script, Script(["OP_1"]))
        self.assertIsNone(request.privkeys)

    def test_sighash_type(self):
        with self.assertRaises(InvalidParameter) as cm:
            parse_request(SignRawTransactionRequest, hexstring="", sighashtype="ALL|NONE")
        self.assertIn("Invalid sighash param", str(cm.exception))


class TestDecode(unittest.TestCase):
    def setUp(self):
        setup("testnet")

    def test_decoderawtransaction(self):
        entry = commands.decoderawtransaction(SIGNED_TX)
        self.assertEqual(entry["txid"], Transaction.from_raw(SIGNED_TX).get_txid())
        self.assertEqual(entry["vout"][0]["scriptPubKey"]["addresses"], [TO_ADDRESS])

    def test_decoderawtransaction_errors(self):
        with self.assertRaises(InvalidParameter):
            commands.decoderawtransaction("xyz")
        with self.assertRaises(InvalidParameter):
            commands.decoderawtransaction(None)
        with self.assertRaises(MalformedEncoding) as cm:
            commands.decoderawtransaction(SIGNED_TX + SIGNED_TX)
        self.assertEqual(str(cm.exception), "TX decode failed")

    def test_decodescript(self):
        result = commands.decodescript("76a914fd337ad3bf81e086d96a68e1f8d6a0a510f8c24a88ac")
        self.assertEqual(result["type"], "pubkeyhash")
        self.assertEqual(result["addresses"], [TO_ADDRESS])
        self.assertEqual(commands.decodescript("")["type"], "nonstandard")
        with self.assertRaises(InvalidParameter):
            commands.decodescript(5)
        with self.assertRaises(InvalidParameter):
            commands.decodescript("abc")


class TestGetRawTransaction(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.context = make_context()
        self.key = PrivateKey(secret_exponent=81)

    def test_confirmed(self):
        txid = fund(self.context, self.key, COIN)
        self.context.chain.add_block([])
        self.context.chain.add_block([])

        raw = commands.getrawtransaction(self.context, txid)
        self.assertEqual(Transaction.from_raw(raw).get_txid(), txid)

        entry = commands.getrawtransaction(self.context, txid, 1)
        self.assertEqual(entry["hex"], raw)
        self.assertEqual(entry["txid"], txid)
        self.assertEqual(entry["confirmations"], 3)
        self.assertEqual(entry["blockhash"], self.context.chain.blocks[0].block_hash)

    def test_pending(self):
        txid = fund(self.context, self.key, COIN)
        keystore = BasicKeyStore()
        keystore.add_key(self.key)
        tx = Transaction([TxInput(txid, 0)], [TxOutput(COIN - 100000, Script(["OP_1"]))])
        sign_signature(
            keystore,
            self.key.get_public_key().get_address().to_script_pub_key(),
            tx,
            0,
            SIGHASH_ALL,
        )
        pending_txid = commands.sendrawtransaction(self.context, tx.to_hex())

        entry = commands.getrawtransaction(self.context, pending_txid, 1)
        self.assertEqual(entry["hex"], tx.to_hex())
        self.assertNotIn("confirmations", entry)

    def test_unknown(self):
        with self.assertRaises(TransactionNotFound):
            commands.getrawtransaction(self.context, PREV_TXID)
        with self.assertRaises(InvalidParameter):
            commands.getrawtransaction(self.context, "1234")
        with self.assertRaises(InvalidParameter):
            commands.getrawtransaction(self.context, PREV_TXID, "1")


class TestSignAndSend(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.context = make_context()
        self.prevtx = {
            "txid": PREV_TXID,
            "vout": 0,
            "scriptPubKey": P2pkhAddress(FROM_ADDRESS).to_script_pub_key().to_hex(),
        }

    def test_signrawtransaction(self):
        result = commands.signrawtransaction(
            self.context, UNSIGNED_TX, [self.prevtx], [SK_WIF]
        )
        self.assertEqual(result, {"hex": SIGNED_TX, "complete": True})

    def test_signrawtransaction_sighash(self):
        result = commands.signrawtransaction(
            self.context, UNSIGNED_TX, [self.prevtx], [SK_WIF], "NONE|ANYONECANPAY"
        )
        self.assertTrue(result["complete"])
        self.assertNotEqual(result["hex"], SIGNED_TX)

    def test_signrawtransaction_invalid_parameters(self):
        for prevtxs in (
            "prevtxs",
            ["entry"],
            [dict(self.prevtx, txid="00")],
            [dict(self.prevtx, vout=-1)],
            [dict(self.prevtx, scriptPubKey="zz")],
            [dict(self.prevtx, redeemScript="zz")],
        ):
            with self.assertRaises(InvalidParameter):
                commands.signrawtransaction(self.context, UNSIGNED_TX, prevtxs, [SK_WIF])
        with self.assertRaises(InvalidParameter):
            commands.signrawtransaction(self.context, UNSIGNED_TX, [], SK_WIF)
        with self.assertRaises(InvalidParameter):
            commands.signrawtransaction(self.context, UNSIGNED_TX, [], [SK_WIF], "all")
        with self.assertRaises(InvalidParameter):
            commands.signrawtransaction(self.context, "xyz")

    def test_sendrawtransaction_parameters(self):
        with self.assertRaises(InvalidParameter):
            commands.sendrawtransaction(self.context, SIGNED_TX, "yes")
        with self.assertRaises(InvalidParameter):
            commands.sendrawtransaction(self.context, 42)


class TestTokenCommands(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.path = os.path.join(tmp.name, "token.txt")
        with open(self.path, "wb") as f:
            f.write(b"token payload")

    def test_createtoken(self):
        result = commands.createtoken(self.path, PREV_TXID)
        self.assertEqual(
            set(result), {"Token ID", "Token public key", "Token private key"}
        )
        with self.assertRaises(InvalidParameter):
            commands.createtoken(self.path, 5)

    def test_inittoken(self):
        context = make_context()
        context.wallet = MemoryWallet(context.chain, context.pool)
        fund(context, context.wallet.key, 1500 * COIN)

        result = commands.inittoken(context, TO_ADDRESS, self.path)
        self.assertTrue(context.pool.exists(result["transactionid"]))
        self.assertIn("Token ID", result)

        with self.assertRaises(InvalidParameter):
            commands.inittoken(context, None, self.path)


if __name__ == "__main__":
    unittest.main()
