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

import re
import struct
import hashlib
from abc import ABC, abstractmethod
from typing import Optional

from base58check import b58encode, b58decode  # type: ignore
from ecdsa import SigningKey, VerifyingKey, SECP256k1, BadSignatureError  # type: ignore
from ecdsa.der import UnexpectedDER  # type: ignore
from ecdsa.util import sigencode_der, sigdecode_der  # type: ignore
from sympy.ntheory import sqrt_mod  # type: ignore

from rawtxutils.constants import (
    NETWORK_WIF_PREFIXES,
    NETWORK_P2PKH_PREFIXES,
    NETWORK_P2SH_PREFIXES,
    SIGHASH_ALL,
    P2PKH_ADDRESS,
    P2SH_ADDRESS,
)
from rawtxutils.errors import InvalidAddress
from rawtxutils.hashes import hash160, hash256
from rawtxutils.script import Script
from rawtxutils.setup import get_network
from rawtxutils.utils import Secp256k1Params, b_to_h, h_to_b, b_to_i, i_to_b32


_BASE58_PATTERN = re.compile(
    r"^[123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz]+$"
)


def _b58decode_check(encoded: str) -> bytes:
    """Base58Check decodes and returns the payload (prefix included)

    Raises
    ------
    ValueError
        on invalid characters or a wrong checksum
    """
    if not isinstance(encoded, str) or not _BASE58_PATTERN.match(encoded):
        raise ValueError("Invalid base58 characters")

    data_checksum = b58decode(encoded.encode("utf-8"))
    if len(data_checksum) < 5:
        raise ValueError("Data too short")
    data = data_checksum[:-4]
    checksum = data_checksum[-4:]
    if hash256(data)[0:4] != checksum:
        raise ValueError("Checksum is wrong. Possible mistype?")
    return data


def _b58encode_check(data: bytes) -> str:
    return b58encode(data + hash256(data)[0:4]).decode("utf-8")


class PrivateKey:
    """Represents an ECDSA private key.

    Attributes
    ----------
    key : SigningKey
        the ecdsa signing key
    compressed : bool
        whether the corresponding public key is used in compressed form

    Methods
    -------
    from_wif(wif)
        creates an object from a WIF of WIFC format (string)
    to_wif(compressed=None)
        returns as WIFC (compressed) or WIF format (string)
    to_bytes()
        returns the key's raw bytes
    sign_input(tx, txin_index, script, sighash=SIGHASH_ALL)
        creates the transaction's digest and signs it for a particular index
        and returns the signature.
    sign_digest(digest)
        signs a 32 byte digest and returns the DER signature
    get_public_key()
        returns the corresponding PublicKey object
    """

    def __init__(
        self,
        wif: Optional[str] = None,
        secret_exponent: Optional[int] = None,
        compressed: bool = True,
    ) -> None:
        """With no parameters a random key is created

        Parameters
        ----------
        wif : str, optional
            the key in WIF of WIFC format (default None)
        secret_exponent : int, optional
            used to create a specific key deterministically (default None)
        compressed : bool
            public key form for keys not created from a WIF (default True)
        """

        self.compressed = compressed
        if not secret_exponent and not wif:
            self.key = SigningKey.generate(curve=SECP256k1)
        else:
            if wif:
                self._from_wif(wif)
            elif secret_exponent:
                self.key = SigningKey.from_secret_exponent(
                    secret_exponent, curve=SECP256k1
                )

    def to_bytes(self) -> bytes:
        """Returns key's bytes"""

        return self.key.to_string()

    @classmethod
    def from_wif(cls, wif: str) -> "PrivateKey":
        """Creates key from WIFC or WIF format key"""

        return cls(wif=wif)

    def _from_wif(self, wif: str) -> None:
        """Creates key from WIFC or WIF format key

        Check to_wif for the detailed process. From WIF is the reverse.

        Raises
        ------
        ValueError
            if the checksum is wrong or if the WIF/WIFC is not from the
            configured network.
        """

        key_bytes = _b58decode_check(wif)

        # get network prefix and check with current setup
        network_prefix = key_bytes[:1]
        if NETWORK_WIF_PREFIXES[get_network()] != network_prefix:
            raise ValueError("Using the wrong network!")

        # remove network prefix
        key_bytes = key_bytes[1:]

        # 33 bytes ending with 0x01 means the public key is compressed
        if len(key_bytes) == 33 and key_bytes[-1] == 1:
            self.compressed = True
            key_bytes = key_bytes[:-1]
        elif len(key_bytes) == 32:
            self.compressed = False
        else:
            raise ValueError("Invalid WIF length")

        secret = b_to_i(key_bytes)
        if secret == 0 or secret >= Secp256k1Params._order:
            raise ValueError("Private key out of range")
        self.key = SigningKey.from_string(key_bytes, curve=SECP256k1)

    def to_wif(self, compressed: Optional[bool] = None) -> str:
        """Returns key in WIFC or WIF string

        |  Pseudocode:
        |      network_prefix = (1 byte version number)
        |      data = network_prefix + (32 bytes number/key) [ + 0x01 if compressed ]
        |      data_hash = SHA-256( SHA-256( data ) )
        |      checksum = (first 4 bytes of data_hash)
        |      wif = Base58CheckEncode( data + checksum )
        """

        if compressed is None:
            compressed = self.compressed

        data = NETWORK_WIF_PREFIXES[get_network()] + self.to_bytes()
        if compressed:
            data += b"\x01"

        return _b58encode_check(data)

    def sign_input(self, tx, txin_index: int, script: Script, sighash: int = SIGHASH_ALL) -> str:
        # get the digest from the transaction object and sign
        tx_digest = tx.get_transaction_digest(txin_index, script, sighash)
        return self._sign_input(tx_digest, sighash)

    def _sign_input(self, tx_digest: bytes, sighash: int = SIGHASH_ALL) -> str:
        """Signs a transaction digest with the private key

        Returns the DER signature followed by the sighash byte, in hex
        """

        signature = self.sign_digest(tx_digest)

        # add sighash in the signature -- as one byte!
        signature += struct.pack("B", sighash)

        return b_to_h(signature)

    def sign_digest(self, digest: bytes, low_r: bool = True) -> bytes:
        """Signs a 32 byte digest deterministically (RFC6979)

        Returns a DER signature with a low S value and, unless low_r is False,
        a low R value.
        """

        signature = self.key.sign_digest_deterministic(
            digest, sigencode=sigencode_der, hashfunc=hashlib.sha256
        )

        # A high R is 33 bytes long (it needs a sign byte); try different
        # nonces via extra entropy until R fits in 32 bytes.
        attempt = 1
        while low_r and signature[3] == 33:
            signature = self.key.sign_digest_deterministic(
                digest,
                extra_entropy=i_to_b32(attempt),
                sigencode=sigencode_der,
                hashfunc=hashlib.sha256,
            )
            attempt += 1

        return _normalize_low_s(signature)

    def get_public_key(self) -> "PublicKey":
        """Returns the corresponding PublicKey"""

        point = self.key.get_verifying_key().to_string()
        return PublicKey.from_bytes(b"\x04" + point, compressed=self.compressed)


def _normalize_low_s(signature: bytes) -> bytes:
    """Replaces a high S with (order - S)

    DER structure is:
      0x30 | total length | 0x02 | len(R) | R | 0x02 | len(S) | S
    """

    length_r = signature[3]
    r = signature[4 : 4 + length_r]
    s = b_to_i(signature[6 + length_r :])

    if s <= Secp256k1Params._order // 2:
        return signature

    s = Secp256k1Params._order - s
    s_bytes = s.to_bytes((s.bit_length() + 7) // 8, "big")
    # positive integers with the top bit set need a 0x00 sign byte
    if s_bytes[0] & 0x80:
        s_bytes = b"\x00" + s_bytes

    body = b"\x02" + bytes([len(r)]) + r + b"\x02" + bytes([len(s_bytes)]) + s_bytes
    return b"\x30" + bytes([len(body)]) + body


class PublicKey:
    """Represents an ECDSA public key.

    Attributes
    ----------
    key : VerifyingKey
        the ecdsa verifying key (x, y coordinates of the ECDSA curve)
    compressed : bool
        whether the key serializes in compressed SEC format by default

    Methods
    -------
    from_hex(hex_str)
        creates an object from a hex string in SEC format (classmethod)
    from_bytes(b)
        creates an object from SEC bytes (classmethod)
    verify_digest(signature, digest)
        returns true if the DER signature is valid for the digest
    to_hex(compressed=None)
        returns the key as hex string (in SEC format)
    to_bytes(compressed=None)
        returns the key as SEC bytes
    to_hash160()
        returns the hash160 hex string of the public key
    get_address()
        returns the corresponding P2pkhAddress object
    """

    def __init__(self, hex_str: str) -> None:
        """
        Parameters
        ----------
        hex_str : str
            the public key in hex string (SEC format)

        Raises
        ------
        ValueError
            If the SEC encoding is invalid or the point is not on the curve
        """

        hex_bytes = h_to_b(hex_str.strip())

        if len(hex_bytes) == 65 and hex_bytes[0] == 4:
            # uncompressed - SEC format: 0x04 + x + y coordinates (x,y are 32 byte
            # numbers)
            self.compressed = False
            point = hex_bytes[1:]
        elif len(hex_bytes) == 33 and hex_bytes[0] in (2, 3):
            # compressed - SEC FORMAT: 0x02|0x03 + x coordinate (if 02 then y
            # is even else y is odd. Calculate y and then instantiate the ecdsa key
            self.compressed = True
            x_coord = b_to_i(hex_bytes[1:])
            if x_coord >= Secp256k1Params._p:
                raise ValueError("Invalid SEC compressed format")

            # y = modulo_square_root( (x**3 + 7) mod p ) -- there will be 2 y values
            y_values = sqrt_mod(
                (x_coord**3 + 7) % Secp256k1Params._p, Secp256k1Params._p, True
            )
            if not y_values:
                raise ValueError("Point is not on the curve")

            # check SEC format's first byte to determine which of the 2 values to use
            want_odd = hex_bytes[0] == 3
            y_coord = next(
                (y for y in y_values if (y % 2 == 1) == want_odd), None  # type: ignore
            )
            if y_coord is None:
                raise ValueError("Point is not on the curve")
            point = i_to_b32(x_coord) + i_to_b32(int(y_coord))
        else:
            raise ValueError("Invalid SEC public key format")

        try:
            self.key = VerifyingKey.from_string(point, curve=SECP256k1)
        except AssertionError as e:
            # ecdsa's MalformedPointError derives from AssertionError
            raise ValueError(f"Invalid public key point: {e}")

    @classmethod
    def from_hex(cls, hex_str: str) -> "PublicKey":
        """Creates a public key from a hex string (SEC format)"""

        return cls(hex_str)

    @classmethod
    def from_bytes(cls, b: bytes, compressed: Optional[bool] = None) -> "PublicKey":
        """Creates a public key from SEC bytes, optionally changing its default
        serialization"""

        public_key = cls(b_to_h(b))
        if compressed is not None:
            public_key.compressed = compressed
        return public_key

    def to_bytes(self, compressed: Optional[bool] = None) -> bytes:
        """Returns the key in SEC format"""

        if compressed is None:
            compressed = self.compressed

        point = self.key.to_string()
        if compressed:
            # check if y is even or odd (02 even, 03 odd)
            prefix = b"\x02" if point[-1] % 2 == 0 else b"\x03"
            return prefix + point[:32]
        # uncompressed starts with 04
        return b"\x04" + point

    def to_hex(self, compressed: Optional[bool] = None) -> str:
        """Returns public key as a hex string (SEC format)"""

        return b_to_h(self.to_bytes(compressed))

    def verify_digest(self, signature: bytes, digest: bytes) -> bool:
        """Verifies a DER signature (without sighash byte) over a digest"""

        try:
            return self.key.verify_digest(signature, digest, sigdecode=sigdecode_der)
        except (BadSignatureError, UnexpectedDER, ValueError, AssertionError):
            return False

    def get_id(self) -> bytes:
        """Returns the key id, i.e. RIPEMD( SHA256( ) ) of the SEC bytes"""

        return hash160(self.to_bytes())

    def to_hash160(self, compressed: Optional[bool] = None) -> str:
        """Returns the RIPEMD( SHA256( ) ) of the public key in hex"""

        return b_to_h(hash160(self.to_bytes(compressed)))

    def get_address(self, compressed: Optional[bool] = None) -> "P2pkhAddress":
        """Returns the corresponding P2PKH Address"""

        return P2pkhAddress(hash160=self.to_hash160(compressed))

    def __eq__(self, _other: object) -> bool:
        if not isinstance(_other, PublicKey):
            return False
        return self.to_bytes() == _other.to_bytes()


class Address(ABC):
    """Represents a legacy base58 address

    Attributes
    ----------
    hash160 : str
        the hash160 string representation of the address; hash160 represents
        two consequtive hashes of the public key or the redeam script, first
        a SHA-256 and then an RIPEMD-160

    Methods
    -------
    from_address(address)
        instantiates an object from address string encoding
    from_hash160(hash160_str)
        instantiates an object from a hash160 hex string
    from_script(redeem_script)
        instantiates an object from a redeem_script
    to_string()
        returns the address's string encoding
    to_hash160()
        returns the address's hash160 hex string representation
    to_script_pub_key()
        returns the locking script paying to the address

    Raises
    ------
    TypeError
        No parameters passed
    ValueError
        If an invalid address or hash160 is provided.
    """

    @abstractmethod
    def __init__(
        self,
        address: Optional[str] = None,
        hash160: Optional[str] = None,
        script: Optional[Script] = None,
    ) -> None:
        if hash160:
            if self._is_hash160_valid(hash160):
                self.hash160 = hash160
            else:
                raise ValueError("Invalid value for parameter hash160.")
        elif address:
            if self._is_address_valid(address):
                self.hash160 = self._address_to_hash160(address)
            else:
                raise ValueError("Invalid value for parameter address.")
        elif script:
            if isinstance(script, Script):
                self.hash160 = b_to_h(hash160_of_script(script))
            else:
                raise TypeError("A Script class is required.")
        else:
            raise TypeError("A valid address or hash160 is required.")

    @classmethod
    def from_address(cls, address: str) -> "Address":
        """Creates an address object from an address string"""

        return cls(address=address)

    @classmethod
    def from_hash160(cls, hash160: str) -> "Address":
        """Creates an address object from a hash160 string"""

        return cls(hash160=hash160)

    @classmethod
    def from_script(cls, script: Script) -> "Address":
        """Creates an address object from a Script object"""

        return cls(script=script)

    def _address_to_hash160(self, address: str) -> str:
        """Base58CheckDecode the address and remove the network prefix"""

        return b_to_h(_b58decode_check(address)[1:])

    def _is_hash160_valid(self, hash160: str) -> bool:
        """Checks is a hash160 hex string is valid"""

        # check the size -- should be 20 bytes, 40 characters in hexadecimal string
        if len(hash160) != 40:
            return False

        # check all (string) digits are hex
        try:
            int(hash160, 16)
            return True
        except ValueError:
            return False

    def _is_address_valid(self, address: str) -> bool:
        """Checks is an address string is valid for this type and network"""

        # check for length (26-35 characters)
        if len(address) < 26 or len(address) > 35:
            return False

        try:
            data = _b58decode_check(address)
        except ValueError:
            return False

        if len(data) != 21:
            return False

        return data[:1] == self._network_prefix()

    def _network_prefix(self) -> bytes:
        if self.get_type() == P2PKH_ADDRESS:
            return NETWORK_P2PKH_PREFIXES[get_network()]
        return NETWORK_P2SH_PREFIXES[get_network()]

    def to_hash160(self) -> str:
        """Returns as hash160 hex string"""

        return self.hash160

    @abstractmethod
    def get_type(self) -> str:
        """Returns the type of address"""

    def to_string(self) -> str:
        """Returns as address string

        |  Pseudocode:
        |      network_prefix = (1 byte version number)
        |      data = network_prefix + hash160_bytes
        |      data_hash = SHA-256( SHA-256( data ) )
        |      checksum = (first 4 bytes of data_hash)
        |      address_bytes = Base58CheckEncode( data + checksum )
        """

        return _b58encode_check(self._network_prefix() + h_to_b(self.hash160))

    @abstractmethod
    def to_script_pub_key(self) -> Script:
        """Overriden from subclasses"""

    def __str__(self) -> str:
        return self.to_string()

    def __eq__(self, _other: object) -> bool:
        if not isinstance(_other, Address):
            return False
        return self.get_type() == _other.get_type() and self.hash160 == _other.hash160

    def __hash__(self) -> int:
        return hash((self.get_type(), self.hash160))


class P2pkhAddress(Address):
    """Encapsulates a P2PKH address.

    Check Address class for details
    """

    def __init__(
        self, address: Optional[str] = None, hash160: Optional[str] = None
    ) -> None:
        super().__init__(address=address, hash160=hash160)

    def to_script_pub_key(self) -> Script:
        """Returns the scriptPubKey (P2PKH) that corresponds to this address"""
        return Script(
            ["OP_DUP", "OP_HASH160", self.to_hash160(), "OP_EQUALVERIFY", "OP_CHECKSIG"]
        )

    def get_type(self) -> str:
        """Returns the type of address"""
        return P2PKH_ADDRESS


class P2shAddress(Address):
    """Encapsulates a P2SH address.

    Check Address class for details
    """

    def __init__(
        self,
        address: Optional[str] = None,
        hash160: Optional[str] = None,
        script: Optional[Script] = None,
    ) -> None:
        super().__init__(address=address, hash160=hash160, script=script)

    def to_script_pub_key(self) -> Script:
        """Returns the scriptPubKey (P2SH) that corresponds to this address"""
        return Script(["OP_HASH160", self.to_hash160(), "OP_EQUAL"])

    def get_type(self) -> str:
        """Returns the type of address"""
        return P2SH_ADDRESS


def hash160_of_script(script: Script) -> bytes:
    """RIPEMD160( SHA256( script ) ) - the script id of a redeem script"""
    return hash160(script.to_bytes())


def decode_address(address: str) -> Address:
    """Parses a P2PKH or P2SH address of the configured network

    Raises
    ------
    InvalidAddress
        if the address is malformed, has a bad checksum or belongs to another
        network
    """

    if not isinstance(address, str):
        raise InvalidAddress(str(address))
    for address_class in (P2pkhAddress, P2shAddress):
        try:
            return address_class(address=address)
        except (ValueError, TypeError):
            continue
    raise InvalidAddress(address)
