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
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import BinaryIO, Union

from rawtxutils.constants import MAX_MONEY, MAX_SIZE, SATOSHIS_PER_BITCOIN
from rawtxutils.errors import InvalidParameter, MalformedEncoding


class Secp256k1Params:
    # ECDSA curve using secp256k1 is defined by: y**2 = x**3 + 7
    # This is done modulo p which (secp256k1) is:
    # p is the finite field prime number and is equal to:
    # 2^256 - 2^32 - 2^9 - 2^8 - 2^7 - 2^6 - 2^4 - 1
    _p = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
    # prime number of points in the group (the order)
    _order = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


_HEX_PATTERN = re.compile(r"^([0-9a-fA-F]{2})*$")


def is_hex(value: str) -> bool:
    """Checks that value is an even-length hexadecimal string"""
    return isinstance(value, str) and _HEX_PATTERN.match(value) is not None


def to_satoshis(num: Union[int, float, Decimal]) -> int:
    """
    Converts from any number type (int/float/Decimal) to satoshis (int)
    """
    # we need to round because of how floats are stored internally:
    # e.g. 0.29 * 100000000 = 28999999.999999996
    return int(round(num * SATOSHIS_PER_BITCOIN))


def amount_from_value(value: Union[int, float, str, Decimal]) -> int:
    """Converts a display amount (e.g. 0.29) to base units

    Raises
    ------
    InvalidParameter
        if the amount is not a number, not positive or above the money range
    """
    if isinstance(value, bool):
        raise InvalidParameter("Invalid amount")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidParameter("Invalid amount")
    if not amount.is_finite() or amount <= 0:
        raise InvalidParameter("Invalid amount")

    base_units = int(
        (amount * SATOSHIS_PER_BITCOIN).to_integral_value(rounding=ROUND_HALF_UP)
    )
    if base_units <= 0 or base_units > MAX_MONEY:
        raise InvalidParameter("Invalid amount")
    return base_units


def value_from_amount(amount: int) -> Decimal:
    """Converts base units to a display amount with 8 decimals"""
    return (Decimal(amount) / SATOSHIS_PER_BITCOIN).quantize(Decimal("0.00000001"))


def encode_varint(i: int) -> bytes:
    """
    Encode a potentially very large integer into varint bytes. The length should be
    specified in little-endian.

    https://bitcoin.org/en/developer-reference#compactsize-unsigned-integers
    """
    if i < 253:
        return bytes([i])
    elif i < 0x10000:
        return b"\xfd" + i.to_bytes(2, "little")
    elif i < 0x100000000:
        return b"\xfe" + i.to_bytes(4, "little")
    elif i < 0x10000000000000000:
        return b"\xff" + i.to_bytes(8, "little")
    else:
        raise ValueError("Integer is too large: %d" % i)


def prepend_compact_size(data: bytes) -> bytes:
    """
    Counts bytes and returns them with their varint (or compact size) prepended.
    """
    return encode_varint(len(data)) + data


#
# Strict stream readers used by the transaction codec. Every short read is a
# MalformedEncoding.
#
def read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise MalformedEncoding("Unexpected end of data")
    return data


def read_struct(stream: BinaryIO, fmt: str) -> int:
    return struct.unpack(fmt, read_exact(stream, struct.calcsize(fmt)))[0]


def read_compact_size(stream: BinaryIO) -> int:
    """Reads a compact size from the stream, rejecting sizes above MAX_SIZE"""
    first_byte = read_exact(stream, 1)[0]
    if first_byte < 0xFD:
        size = first_byte
    elif first_byte == 0xFD:
        size = read_struct(stream, "<H")
    elif first_byte == 0xFE:
        size = read_struct(stream, "<I")
    else:
        size = read_struct(stream, "<Q")
    if size > MAX_SIZE:
        raise MalformedEncoding("Size too large")
    return size


def read_var_bytes(stream: BinaryIO) -> bytes:
    return read_exact(stream, read_compact_size(stream))


#
# Basic conversions between bytes (b), hexadecimal (h) and integer (i)
# Some were trivial but included for consistency.
#
def b_to_h(b: bytes) -> str:
    """Converts bytes to hexadecimal string"""
    return b.hex()


def h_to_b(h: str) -> bytes:
    """Converts hexadecimal string to bytes"""
    return bytes.fromhex(h)


# to convert hashes to ints we need byteorder BIG...
def b_to_i(b: bytes) -> int:
    """Converts a bytes to a number"""
    return int.from_bytes(b, byteorder="big")


def i_to_b32(i: int) -> bytes:
    """Converts a integer to bytes"""
    return i.to_bytes(32, byteorder="big")
