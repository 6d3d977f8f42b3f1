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

from rawtxutils.setup import setup
from rawtxutils.utils import to_satoshis
from rawtxutils.keys import PrivateKey, P2pkhAddress
from rawtxutils.constants import (
    SIGHASH_ALL,
    SIGHASH_NONE,
    SIGHASH_SINGLE,
    SIGHASH_ANYONECANPAY,
)
from rawtxutils.errors import MalformedEncoding, MissingTransaction
from rawtxutils.transactions import (
    ONE_DIGEST,
    Transaction,
    TxInput,
    TxOutput,
    decode_transactions,
)
from rawtxutils.script import Script
from tests.helpers import (
    CHANGE_ADDRESS,
    FROM_ADDRESS,
    PREV_TXID,
    SIGNED_TX,
    SK_WIF,
    TO_ADDRESS,
    UNSIGNED_TX,
)


class TestCreateP2pkhTransaction(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.txin = TxInput(PREV_TXID, 0)
        self.txout = TxOutput(
            to_satoshis(0.1), P2pkhAddress(TO_ADDRESS).to_script_pub_key()
        )
        self.change_txout = TxOutput(
            to_satoshis(0.29), P2pkhAddress(CHANGE_ADDRESS).to_script_pub_key()
        )
        self.change_low_s_txout = TxOutput(
            to_satoshis(0.29),
            P2pkhAddress("mmYNBho9BWQB2dSniP1NJvnPoj5EVWw89w").to_script_pub_key(),
        )
        self.sk = PrivateKey(SK_WIF)
        self.from_addr = P2pkhAddress(FROM_ADDRESS)

        self.core_tx_signed_low_s_SIGNONE_result = (
            "02000000016cce96ffe999c7b2abc8b7bebec0c821e9c378ac41417106f6ddf63be2f448fb"
            "000000006a47304402201e4b7a2ed516485fdde697ba63f6670d43aa6f18d82f18bae12d5f"
            "d228363ac10220670602bec9df95d7ec4a619a2f44e0b8dcf522fdbe39530dd78d738c0ed0"
            "c430022103a2fef1829e0742b89c218c51898d9e7cb9d51201ba2bf9d9e9214ebb6af32708"
            "ffffffff0280969800000000001976a914fd337ad3bf81e086d96a68e1f8d6a0a510f8c24a"
            "88ac4081ba01000000001976a91442151d0c21442c2b038af0ad5ee64b9d6f4f4e4988ac00"
            "000000"
        )
        self.core_tx_signed_low_s_SIGNONE_txid = (
            "105933681b0ca37ae0c0af43ae6f111803c899232b7fd586584b532dbe21ae6f"
        )

    def test_unsigned_tx_1_input_2_outputs(self):
        tx = Transaction([self.txin], [self.txout, self.change_txout], version=2)
        self.assertEqual(tx.serialize(), UNSIGNED_TX)

    def test_signed_tx_1_input_2_outputs(self):
        tx = Transaction([self.txin], [self.txout, self.change_txout], version=2)
        sig = self.sk.sign_input(tx, 0, self.from_addr.to_script_pub_key())
        pk = self.sk.get_public_key().to_hex()
        self.txin.script_sig = Script([sig, pk])
        self.assertEqual(tx.serialize(), SIGNED_TX)

    def test_signed_low_s_SIGNONE_tx_1_input_2_outputs(self):
        tx = Transaction([self.txin], [self.txout, self.change_low_s_txout], version=2)
        sig = self.sk.sign_input(
            tx, 0, self.from_addr.to_script_pub_key(), SIGHASH_NONE
        )
        pk = self.sk.get_public_key().to_hex()
        self.txin.script_sig = Script([sig, pk])
        self.assertEqual(tx.serialize(), self.core_tx_signed_low_s_SIGNONE_result)
        self.assertEqual(tx.get_txid(), self.core_tx_signed_low_s_SIGNONE_txid)


class TestDecodeTransaction(unittest.TestCase):
    def setUp(self):
        setup("testnet")

    def test_round_trip(self):
        for raw in (UNSIGNED_TX, SIGNED_TX):
            tx = Transaction.from_raw(raw)
            self.assertEqual(tx.to_hex(), raw)

    def test_fields(self):
        tx = Transaction.from_raw(SIGNED_TX)
        self.assertEqual(tx.version, 2)
        self.assertEqual(tx.locktime, 0)
        self.assertEqual(len(tx.inputs), 1)
        self.assertEqual(tx.inputs[0].txid, PREV_TXID)
        self.assertEqual(tx.inputs[0].txout_index, 0)
        self.assertEqual(tx.inputs[0].sequence, 0xFFFFFFFF)
        self.assertEqual([txout.amount for txout in tx.outputs], [10000000, 29000000])

    def test_trailing_data(self):
        with self.assertRaises(MalformedEncoding):
            Transaction.from_raw(UNSIGNED_TX + "00")

    def test_truncated(self):
        with self.assertRaises(MalformedEncoding):
            Transaction.from_raw(UNSIGNED_TX[:-2])

    def test_not_hex(self):
        with self.assertRaises(MalformedEncoding):
            Transaction.from_raw("zz" + UNSIGNED_TX)

    def test_oversized_compact_size(self):
        # input counts above MAX_SIZE
        with self.assertRaises(MalformedEncoding):
            Transaction.from_raw("01000000fe00000004")
        with self.assertRaises(MalformedEncoding):
            Transaction.from_raw("01000000ff0000000000000001")

    def test_decode_concatenated(self):
        data = bytes.fromhex(UNSIGNED_TX + SIGNED_TX)
        variants = decode_transactions(data)
        self.assertEqual(len(variants), 2)
        self.assertEqual(variants[0].to_hex(), UNSIGNED_TX)
        self.assertEqual(variants[1].to_hex(), SIGNED_TX)
        # both variants spend the same outputs
        self.assertEqual(variants[0].get_txid(), Transaction.from_raw(UNSIGNED_TX).get_txid())

    def test_decode_empty(self):
        with self.assertRaises(MissingTransaction):
            decode_transactions(b"")

    def test_decode_truncated_tail(self):
        data = bytes.fromhex(UNSIGNED_TX + SIGNED_TX[:20])
        with self.assertRaises(MalformedEncoding):
            decode_transactions(data)

    def test_copy_is_deep(self):
        tx = Transaction.from_raw(SIGNED_TX)
        copied = Transaction.copy(tx)
        copied.inputs[0].script_sig = Script([])
        self.assertEqual(tx.to_hex(), SIGNED_TX)


class TestSignatureHash(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        txid = "76464c2b9e2af4d63ef38a77964b3b77e629dddefc5cb9eb1a3645b1608b790f"
        self.sig_txin1 = TxInput(txid, 0)
        self.sig_txin2 = TxInput(txid, 1)
        self.sig_sk1 = PrivateKey("cTALNpTpRbbxTCJ2A5Vq88UxT44w1PE2cYqiB3n4hRvzyCev1Wwo")
        self.sig_sk2 = PrivateKey("cVf3kGh6552jU2rLaKwXTKq5APHPoZqCP4GQzQirWGHFoHQ9rEVt")
        self.sig_from_addr1 = P2pkhAddress("n4bkvTyU1dVdzsrhWBqBw8fEMbHjJvtmJR")
        self.sig_from_addr2 = P2pkhAddress("mmYNBho9BWQB2dSniP1NJvnPoj5EVWw89w")
        self.sig_txout1 = TxOutput(
            to_satoshis(0.09),
            P2pkhAddress("myPAE9HwPeKHh8FjKwBNBaHnemApo3dw6e").to_script_pub_key(),
        )
        self.sig_txout2 = TxOutput(
            to_satoshis(0.009),
            P2pkhAddress("mmYNBho9BWQB2dSniP1NJvnPoj5EVWw89w").to_script_pub_key(),
        )
        self.sig_sighash_single_result = (
            "02000000010f798b60b145361aebb95cfcdedd29e6773b4b96778af33ed6f42a9e2b4c4676"
            "000000006a47304402202cfd7077fe8adfc5a65fb3953fa3482cad1413c28b53f12941c108"
            "2898d4935102201d393772c47f0699592268febb5b4f64dabe260f440d5d0f96dae5bc2b53"
            "e11e032102d82c9860e36f15d7b72aa59e29347f951277c21cd4d34822acdeeadbcff8a546"
            "ffffffff0240548900000000001976a914c3f8e5b0f8455a2b02c29c4488a550278209b669"
            "88aca0bb0d00000000001976a91442151d0c21442c2b038af0ad5ee64b9d6f4f4e4988ac00"
            "000000"
        )
        self.sign_sighash_all_single_anyone_2in_2out_result = (
            "02000000020f798b60b145361aebb95cfcdedd29e6773b4b96778af33ed6f42a9e2b4c4676"
            "000000006a47304402205360315c439214dd1da10ea00a7531c0a211a865387531c358e586"
            "000bfb41b3022064a729e666b4d8ac7a09cb7205c8914c2eb634080597277baf946903d543"
            "8f49812102d82c9860e36f15d7b72aa59e29347f951277c21cd4d34822acdeeadbcff8a546"
            "ffffffff0f798b60b145361aebb95cfcdedd29e6773b4b96778af33ed6f42a9e2b4c467601"
            "0000006a473044022067943abe9fa7584ba9816fc9bf002b043f7f97e11de59155d66e041"
            "1a679ba2c02200a13462236fa520b80b4ed85c7ded363b4c9264eb7b2d9746200be48f2b6f"
            "4cb832102364d6f04487a71b5966eae3e14a4dc6f00dbe8e55e61bedd0b880766bfe72b5df"
            "fffffff0240548900000000001976a914c3f8e5b0f8455a2b02c29c4488a550278209b6698"
            "8aca0bb0d00000000001976a91442151d0c21442c2b038af0ad5ee64b9d6f4f4e4988ac000"
            "00000"
        )

    def test_signed_low_s_SIGSINGLE_tx_1_input_2_outputs(self):
        tx = Transaction([self.sig_txin1], [self.sig_txout1, self.sig_txout2], version=2)
        sig = self.sig_sk1.sign_input(
            tx, 0, self.sig_from_addr1.to_script_pub_key(), SIGHASH_SINGLE
        )
        pk = self.sig_sk1.get_public_key().to_hex()
        self.sig_txin1.script_sig = Script([sig, pk])
        self.assertEqual(tx.serialize(), self.sig_sighash_single_result)

    def test_signed_anyonecanpay_2in_2_out(self):
        tx = Transaction(
            [self.sig_txin1, self.sig_txin2],
            [self.sig_txout1, self.sig_txout2],
            version=2,
        )
        sig = self.sig_sk1.sign_input(
            tx,
            0,
            self.sig_from_addr1.to_script_pub_key(),
            SIGHASH_ALL | SIGHASH_ANYONECANPAY,
        )
        sig2 = self.sig_sk2.sign_input(
            tx,
            1,
            self.sig_from_addr2.to_script_pub_key(),
            SIGHASH_SINGLE | SIGHASH_ANYONECANPAY,
        )
        pk = self.sig_sk1.get_public_key().to_hex()
        pk2 = self.sig_sk2.get_public_key().to_hex()
        self.sig_txin1.script_sig = Script([sig, pk])
        self.sig_txin2.script_sig = Script([sig2, pk2])
        self.assertEqual(
            tx.serialize(), self.sign_sighash_all_single_anyone_2in_2out_result
        )

    def test_single_without_matching_output(self):
        tx = Transaction(
            [self.sig_txin1, self.sig_txin2], [self.sig_txout1], version=2
        )
        script = self.sig_from_addr2.to_script_pub_key()
        self.assertEqual(
            tx.get_transaction_digest(1, script, SIGHASH_SINGLE), ONE_DIGEST
        )
        self.assertEqual(
            tx.get_transaction_digest(
                1, script, SIGHASH_SINGLE | SIGHASH_ANYONECANPAY
            ),
            ONE_DIGEST,
        )
        self.assertNotEqual(
            tx.get_transaction_digest(0, script, SIGHASH_SINGLE), ONE_DIGEST
        )

    def test_input_out_of_range(self):
        tx = Transaction([self.sig_txin1], [self.sig_txout1], version=2)
        script = self.sig_from_addr1.to_script_pub_key()
        self.assertEqual(tx.get_transaction_digest(1, script, SIGHASH_ALL), ONE_DIGEST)

    def test_code_separators_removed(self):
        tx = Transaction([self.sig_txin1], [self.sig_txout1], version=2)
        script = self.sig_from_addr1.to_script_pub_key()
        with_separator = Script.from_raw("ab" + script.to_hex())
        self.assertEqual(
            tx.get_transaction_digest(0, script, SIGHASH_ALL),
            tx.get_transaction_digest(0, with_separator, SIGHASH_ALL),
        )

    def test_digest_ignores_other_script_sigs(self):
        tx = Transaction(
            [self.sig_txin1, self.sig_txin2], [self.sig_txout1], version=2
        )
        script = self.sig_from_addr1.to_script_pub_key()
        before = tx.get_transaction_digest(0, script, SIGHASH_ALL)
        tx.inputs[1].script_sig = Script(["OP_1"])
        self.assertEqual(tx.get_transaction_digest(0, script, SIGHASH_ALL), before)


if __name__ == "__main__":
    unittest.main()
