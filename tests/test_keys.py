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
from rawtxutils.errors import InvalidAddress
from rawtxutils.hashes import hash256, ripemd160
from rawtxutils.keys import (
    PrivateKey,
    PublicKey,
    P2pkhAddress,
    P2shAddress,
    decode_address,
)
from rawtxutils.script import Script
from rawtxutils.utils import Secp256k1Params, b_to_i


class TestPrivateKeys(unittest.TestCase):
    def setUp(self):
        setup("mainnet")
        self.key_wifc = "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"
        self.key_wif = "5HpHagT65TZzG1PH3CSu63k8DbpvD8s5ip4nEB3kEsreAnchuDf"
        self.key_bytes = b"\x00" * 31 + b"\x01"
        self.public_key_bytes = (
            b"y\xbef~\xf9\xdc\xbb\xacU\xa0b\x95\xce\x87\x0b\x07\x02\x9b\xfc\xdb-\xce("
            b"\xd9Y\xf2\x81[\x16\xf8\x17\x98H:\xdaw&\xa3\xc4e]\xa4\xfb\xfc\x0e\x11"
            b"\x08\xa8\xfd\x17\xb4H\xa6\x85T\x19\x9cG\xd0\x8f\xfb\x10\xd4\xb8"
        )

    def tearDown(self):
        setup("testnet")

    def test_wif_creation(self):
        p = PrivateKey(self.key_wifc)
        self.assertEqual(p.to_bytes(), self.key_bytes)
        self.assertTrue(p.compressed)
        self.assertEqual(p.to_wif(compressed=False), self.key_wif)

    def test_uncompressed_wif_creation(self):
        p = PrivateKey.from_wif(self.key_wif)
        self.assertFalse(p.compressed)
        self.assertEqual(p.to_wif(), self.key_wif)

    def test_exponent_creation(self):
        p = PrivateKey(secret_exponent=1)
        self.assertEqual(p.to_bytes(), self.key_bytes)
        self.assertEqual(p.to_wif(compressed=False), self.key_wif)
        self.assertEqual(p.to_wif(), self.key_wifc)

    def test_public_key(self):
        p = PrivateKey(secret_exponent=1)
        self.assertEqual(
            p.get_public_key().to_bytes(compressed=False),
            b"\x04" + self.public_key_bytes,
        )

    def test_wrong_network(self):
        setup("testnet")
        with self.assertRaises(ValueError):
            PrivateKey.from_wif(self.key_wifc)

    def test_bad_checksum(self):
        with self.assertRaises(ValueError):
            PrivateKey.from_wif(self.key_wifc[:-1] + "o")

    def test_random_keys_differ(self):
        self.assertNotEqual(PrivateKey().to_bytes(), PrivateKey().to_bytes())


class TestPublicKeys(unittest.TestCase):
    def setUp(self):
        setup("mainnet")
        self.public_key_hexc = (
            "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
        )
        self.public_key_hex = (
            "0479be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
            "483ada7726a3c4655da4fbfc0e1108a8fd17b448a68554199c47d08ffb10d4b8"
        )
        self.address = "1EHNa6Q4Jz2uvNExL497mE43ikXhwF6kZm"
        self.addressc = "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"

    def tearDown(self):
        setup("testnet")

    def test_pubkey_creation(self):
        pub1 = PublicKey(self.public_key_hex)
        pub2 = PublicKey(self.public_key_hexc)
        self.assertEqual(pub1.to_bytes(compressed=False), pub2.to_bytes(compressed=False))
        self.assertEqual(pub1.to_hex(compressed=True), self.public_key_hexc)

    def test_pubkey_uncompressed(self):
        pub = PublicKey(self.public_key_hex)
        self.assertFalse(pub.compressed)
        self.assertEqual(pub.to_hex(), self.public_key_hex)

    def test_get_addresses(self):
        pub = PublicKey.from_hex(self.public_key_hex)
        self.assertEqual(pub.get_address(compressed=False).to_string(), self.address)
        self.assertEqual(pub.get_address(compressed=True).to_string(), self.addressc)

    def test_invalid_sec(self):
        with self.assertRaises(ValueError):
            PublicKey("05" + self.public_key_hexc[2:])
        with self.assertRaises(ValueError):
            PublicKey(self.public_key_hexc[:-2])

    def test_key_id(self):
        pub = PublicKey(self.public_key_hexc)
        self.assertEqual(pub.get_id().hex(), "751e76e8199196d454941c45d1b3a323f1433bd6")


class TestSignDigest(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.priv = PrivateKey("cTALNpTpRbbxTCJ2A5Vq88UxT44w1PE2cYqiB3n4hRvzyCev1Wwo")
        self.digest = hash256(b"rawtx-utils")

    def test_deterministic(self):
        self.assertEqual(
            self.priv.sign_digest(self.digest), self.priv.sign_digest(self.digest)
        )

    def test_low_r_and_low_s(self):
        for i in range(10):
            sig = self.priv.sign_digest(hash256(bytes([i])))
            self.assertLess(sig[3], 33)
            length_r = sig[3]
            s = b_to_i(sig[6 + length_r :])
            self.assertLessEqual(s, Secp256k1Params._order // 2)

    def test_verify(self):
        sig = self.priv.sign_digest(self.digest)
        pub = self.priv.get_public_key()
        self.assertTrue(pub.verify_digest(sig, self.digest))
        self.assertFalse(pub.verify_digest(sig, hash256(b"other")))
        self.assertFalse(pub.verify_digest(b"\x30\x00", self.digest))


class TestAddresses(unittest.TestCase):
    def setUp(self):
        setup("mainnet")
        self.hash160 = "91b24bf9f5288532960ac687abb035127b1d28a5"
        self.hash160c = "751e76e8199196d454941c45d1b3a323f1433bd6"
        self.address = "1EHNa6Q4Jz2uvNExL497mE43ikXhwF6kZm"
        self.addressc = "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"

    def tearDown(self):
        setup("testnet")

    def test_creation_hash(self):
        self.assertEqual(P2pkhAddress.from_hash160(self.hash160).to_string(), self.address)
        self.assertEqual(P2pkhAddress.from_hash160(self.hash160c).to_string(), self.addressc)

    def test_creation_address(self):
        self.assertEqual(P2pkhAddress.from_address(self.address).to_hash160(), self.hash160)
        self.assertEqual(P2pkhAddress.from_address(self.addressc).to_hash160(), self.hash160c)

    def test_decode_address(self):
        address = decode_address(self.address)
        self.assertIsInstance(address, P2pkhAddress)
        p2sh = P2shAddress(hash160=self.hash160)
        self.assertEqual(p2sh.to_string()[0], "3")
        self.assertEqual(decode_address(p2sh.to_string()), p2sh)

    def test_decode_invalid_address(self):
        for bad in ("", "1EHNa6Q4Jz2uvNExL497mE43ikXhwF6kZn", "not an address", 12):
            with self.assertRaises(InvalidAddress):
                decode_address(bad)

    def test_decode_other_network(self):
        setup("testnet")
        with self.assertRaises(InvalidAddress):
            decode_address(self.address)

    def test_p2sh_from_script(self):
        setup("testnet")
        priv = PrivateKey.from_wif("cTALNpTpRbbxTCJ2A5Vq88UxT44w1PE2cYqiB3n4hRvzyCev1Wwo")
        script = Script([priv.get_public_key().to_hex(), "OP_CHECKSIG"])
        addr = P2shAddress.from_script(script)
        self.assertEqual(addr.to_string()[0], "2")
        self.assertEqual(decode_address(addr.to_string()), addr)
        self.assertEqual(addr.to_script_pub_key(), script.to_p2sh_script_pub_key())


class TestHashes(unittest.TestCase):
    def test_ripemd160(self):
        self.assertEqual(
            ripemd160(b"").hex(), "9c1185a5c5e9fc54612808977ee8f548b2258d31"
        )
        self.assertEqual(
            ripemd160(b"abc").hex(), "8eb208f7e05d987a9b044a8e98c6b087f15a0bfc"
        )
        self.assertEqual(
            ripemd160(b"message digest").hex(),
            "5d0689ef49d2fae572b881b123a85ffa21595f36",
        )


if __name__ == "__main__":
    unittest.main()
