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

import copy
import struct
from typing import Any, Iterator, Optional, Union

from rawtxutils.errors import MalformedEncoding
from rawtxutils.hashes import hash160
from rawtxutils.utils import b_to_h, h_to_b


# Legacy op codes. Complete list at: https://en.bitcoin.it/wiki/Script
OP_CODES = {
    # constants
    "OP_0": b"\x00",
    "OP_FALSE": b"\x00",
    "OP_PUSHDATA1": b"\x4c",
    "OP_PUSHDATA2": b"\x4d",
    "OP_PUSHDATA4": b"\x4e",
    "OP_1NEGATE": b"\x4f",
    "OP_RESERVED": b"\x50",
    "OP_1": b"\x51",
    "OP_TRUE": b"\x51",
    "OP_2": b"\x52",
    "OP_3": b"\x53",
    "OP_4": b"\x54",
    "OP_5": b"\x55",
    "OP_6": b"\x56",
    "OP_7": b"\x57",
    "OP_8": b"\x58",
    "OP_9": b"\x59",
    "OP_10": b"\x5a",
    "OP_11": b"\x5b",
    "OP_12": b"\x5c",
    "OP_13": b"\x5d",
    "OP_14": b"\x5e",
    "OP_15": b"\x5f",
    "OP_16": b"\x60",
    # flow control
    "OP_NOP": b"\x61",
    "OP_VER": b"\x62",
    "OP_IF": b"\x63",
    "OP_NOTIF": b"\x64",
    "OP_VERIF": b"\x65",
    "OP_VERNOTIF": b"\x66",
    "OP_ELSE": b"\x67",
    "OP_ENDIF": b"\x68",
    "OP_VERIFY": b"\x69",
    "OP_RETURN": b"\x6a",
    # stack
    "OP_TOALTSTACK": b"\x6b",
    "OP_FROMALTSTACK": b"\x6c",
    "OP_2DROP": b"\x6d",
    "OP_2DUP": b"\x6e",
    "OP_3DUP": b"\x6f",
    "OP_2OVER": b"\x70",
    "OP_2ROT": b"\x71",
    "OP_2SWAP": b"\x72",
    "OP_IFDUP": b"\x73",
    "OP_DEPTH": b"\x74",
    "OP_DROP": b"\x75",
    "OP_DUP": b"\x76",
    "OP_NIP": b"\x77",
    "OP_OVER": b"\x78",
    "OP_PICK": b"\x79",
    "OP_ROLL": b"\x7a",
    "OP_ROT": b"\x7b",
    "OP_SWAP": b"\x7c",
    "OP_TUCK": b"\x7d",
    # splice
    "OP_CAT": b"\x7e",
    "OP_SUBSTR": b"\x7f",
    "OP_LEFT": b"\x80",
    "OP_RIGHT": b"\x81",
    "OP_SIZE": b"\x82",
    # bitwise logic
    "OP_INVERT": b"\x83",
    "OP_AND": b"\x84",
    "OP_OR": b"\x85",
    "OP_XOR": b"\x86",
    "OP_EQUAL": b"\x87",
    "OP_EQUALVERIFY": b"\x88",
    "OP_RESERVED1": b"\x89",
    "OP_RESERVED2": b"\x8a",
    # arithmetic
    "OP_1ADD": b"\x8b",
    "OP_1SUB": b"\x8c",
    "OP_2MUL": b"\x8d",
    "OP_2DIV": b"\x8e",
    "OP_NEGATE": b"\x8f",
    "OP_ABS": b"\x90",
    "OP_NOT": b"\x91",
    "OP_0NOTEQUAL": b"\x92",
    "OP_ADD": b"\x93",
    "OP_SUB": b"\x94",
    "OP_MUL": b"\x95",
    "OP_DIV": b"\x96",
    "OP_MOD": b"\x97",
    "OP_LSHIFT": b"\x98",
    "OP_RSHIFT": b"\x99",
    "OP_BOOLAND": b"\x9a",
    "OP_BOOLOR": b"\x9b",
    "OP_NUMEQUAL": b"\x9c",
    "OP_NUMEQUALVERIFY": b"\x9d",
    "OP_NUMNOTEQUAL": b"\x9e",
    "OP_LESSTHAN": b"\x9f",
    "OP_GREATERTHAN": b"\xa0",
    "OP_LESSTHANOREQUAL": b"\xa1",
    "OP_GREATERTHANOREQUAL": b"\xa2",
    "OP_MIN": b"\xa3",
    "OP_MAX": b"\xa4",
    "OP_WITHIN": b"\xa5",
    # crypto
    "OP_RIPEMD160": b"\xa6",
    "OP_SHA1": b"\xa7",
    "OP_SHA256": b"\xa8",
    "OP_HASH160": b"\xa9",
    "OP_HASH256": b"\xaa",
    "OP_CODESEPARATOR": b"\xab",
    "OP_CHECKSIG": b"\xac",
    "OP_CHECKSIGVERIFY": b"\xad",
    "OP_CHECKMULTISIG": b"\xae",
    "OP_CHECKMULTISIGVERIFY": b"\xaf",
    # expansion
    "OP_NOP1": b"\xb0",
    "OP_NOP2": b"\xb1",
    "OP_NOP3": b"\xb2",
    "OP_NOP4": b"\xb3",
    "OP_NOP5": b"\xb4",
    "OP_NOP6": b"\xb5",
    "OP_NOP7": b"\xb6",
    "OP_NOP8": b"\xb7",
    "OP_NOP9": b"\xb8",
    "OP_NOP10": b"\xb9",
}

# aliases (OP_FALSE, OP_TRUE) are skipped so that each code maps to the
# canonical name
CODE_OPS = {}
for _name, _code in OP_CODES.items():
    if _code[0] not in CODE_OPS:
        CODE_OPS[_code[0]] = _name

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_16 = 0x60
OP_RETURN = 0x6A
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_CHECKSIG = 0xAC
OP_CHECKMULTISIG = 0xAE


def encode_push_data(data: bytes) -> bytes:
    """Returns the smallest push op code, length and data for data"""
    size = len(data)
    if size < OP_PUSHDATA1:
        return bytes([size]) + data
    elif size <= 0xFF:
        return b"\x4c" + bytes([size]) + data
    elif size <= 0xFFFF:
        return b"\x4d" + struct.pack("<H", size) + data
    elif size <= 0xFFFFFFFF:
        return b"\x4e" + struct.pack("<I", size) + data
    else:
        raise ValueError("Data too large. Cannot push into script")


def encode_script_num(n: int) -> bytes:
    """Encodes an integer as a minimal little-endian sign-magnitude number"""
    if n == 0:
        return b""
    negative = n < 0
    absolute = -n if negative else n
    result = bytearray()
    while absolute:
        result.append(absolute & 0xFF)
        absolute >>= 8
    # the sign lives in the top bit of the last byte
    if result[-1] & 0x80:
        result.append(0x80 if negative else 0x00)
    elif negative:
        result[-1] |= 0x80
    return bytes(result)


def decode_script_num(data: bytes) -> int:
    """Decodes a little-endian sign-magnitude number"""
    if not data:
        return 0
    value = int.from_bytes(data, "little")
    if data[-1] & 0x80:
        return -(value & ~(0x80 << (8 * (len(data) - 1))))
    return value


def small_int_opcode(n: int) -> int:
    """Returns the op code for 0..16"""
    if n == 0:
        return OP_0
    if 1 <= n <= 16:
        return OP_1 + n - 1
    raise ValueError("Small integer out of range")


def decode_small_int(opcode: int) -> int:
    """Returns the integer of OP_0 and OP_1..OP_16"""
    if opcode == OP_0:
        return 0
    if OP_1 <= opcode <= OP_16:
        return opcode - OP_1 + 1
    raise ValueError("Not a small integer op code")


def op_name(opcode: int) -> str:
    """Returns the op code name as shown in asm"""
    if opcode == OP_0:
        return "0"
    if opcode == OP_1NEGATE:
        return "-1"
    if OP_1 <= opcode <= OP_16:
        return str(opcode - OP_1 + 1)
    return CODE_OPS.get(opcode, "OP_UNKNOWN")


class Script:
    """Represents a legacy script

    A Script is a program of op codes and pushed data. It can be created from
    a list of tokens or decoded from raw bytes; a decoded Script keeps the
    exact bytes it was decoded from so that re-encoding is bit-identical even
    for non-minimal pushes.

    Attributes
    ----------
    script : list
        the list with all the script OP_CODES and data (hex strings)

    Methods
    -------
    to_bytes()
        returns a serialized byte version of the script
    to_hex()
        returns a serialized version of the script in hex
    from_raw(data)
        decodes a script from hex or bytes (staticmethod)
    from_stack(stack)
        creates a push-only script from a list of byte strings (classmethod)
    ops()
        iterates over (op code, push data) pairs
    to_asm()
        returns the human readable asm representation
    is_push_only()
        checks that the script only pushes data
    to_p2sh_script_pub_key()
        converts script to p2sh scriptPubKey (locking script)
    get_script()
        returns the list of tokens that makes up this script
    copy()
        creates a copy of the object (classmethod)

    Raises
    ------
    ValueError
        If string data is too large or integer is out of range
    """

    def __init__(self, script: Optional[list[Any]] = None):
        """See Script description"""
        self.script: list[Any] = script if script is not None else []
        self._raw: Optional[bytes] = None

    @classmethod
    def copy(cls, script: "Script") -> "Script":
        """Deep copy of Script"""
        new_script = cls(copy.deepcopy(script.script))
        new_script._raw = script._raw
        return new_script

    def _token_to_bytes(self, token: Any) -> bytes:
        if isinstance(token, str) and token in OP_CODES:
            return OP_CODES[token]
        if isinstance(token, bool):
            raise ValueError("Invalid script token")
        if isinstance(token, int):
            if 0 <= token <= 16:
                return bytes([small_int_opcode(token)])
            if token == -1:
                return bytes([OP_1NEGATE])
            return encode_push_data(encode_script_num(token))
        if isinstance(token, bytes):
            return encode_push_data(token)
        # hex string data
        return encode_push_data(h_to_b(token))

    def to_bytes(self) -> bytes:
        """Converts the script to bytes"""
        if self._raw is not None:
            return self._raw
        return b"".join(self._token_to_bytes(token) for token in self.script)

    def to_hex(self) -> str:
        """Converts the script to hexadecimal"""
        return b_to_h(self.to_bytes())

    @staticmethod
    def from_raw(data: Union[str, bytes]) -> "Script":
        """Decodes a Script from raw hexadecimal data or bytes

        Malformed scripts are accepted; the raw bytes are kept and the token
        list stops at the malformed push.
        """
        if isinstance(data, str):
            raw = h_to_b(data)
        elif isinstance(data, (bytes, bytearray)):
            raw = bytes(data)
        else:
            raise TypeError("Input must be a hexadecimal string or bytes")

        script = Script()
        script._raw = raw
        tokens: list[Any] = []
        try:
            for opcode, push in script.ops():
                if push is not None and opcode != OP_0:
                    tokens.append(b_to_h(push))
                else:
                    tokens.append(CODE_OPS.get(opcode, "OP_UNKNOWN"))
        except MalformedEncoding:
            pass
        script.script = tokens
        return script

    @classmethod
    def from_stack(cls, stack: list[bytes]) -> "Script":
        """Pushes every stack element in order; empty elements become OP_0"""
        return Script.from_raw(b"".join(encode_push_data(item) for item in stack))

    def ops(self) -> Iterator[tuple[int, Optional[bytes]]]:
        """Yields (op code, push data) pairs; push data is None for non-push
        op codes

        Raises
        ------
        MalformedEncoding
            if a push runs past the end of the script
        """
        for opcode, push, _, _ in self._ops_with_positions():
            yield opcode, push

    def _ops_with_positions(
        self,
    ) -> Iterator[tuple[int, Optional[bytes], int, int]]:
        raw = self.to_bytes()
        index = 0
        while index < len(raw):
            start = index
            opcode = raw[index]
            index += 1
            if opcode > OP_PUSHDATA4:
                yield opcode, None, start, index
                continue

            if opcode < OP_PUSHDATA1:
                size = opcode
            elif opcode == OP_PUSHDATA1:
                if index + 1 > len(raw):
                    raise MalformedEncoding("Truncated push in script")
                size = raw[index]
                index += 1
            elif opcode == OP_PUSHDATA2:
                if index + 2 > len(raw):
                    raise MalformedEncoding("Truncated push in script")
                size = struct.unpack("<H", raw[index : index + 2])[0]
                index += 2
            else:
                if index + 4 > len(raw):
                    raise MalformedEncoding("Truncated push in script")
                size = struct.unpack("<I", raw[index : index + 4])[0]
                index += 4

            if index + size > len(raw):
                raise MalformedEncoding("Truncated push in script")
            yield opcode, raw[index : index + size], start, index + size
            index += size

    def without_opcode(self, opcode: int) -> "Script":
        """Returns a copy with every occurrence of a non-push op code removed

        Other ops keep their original encoding. A malformed tail is kept as is.
        """
        raw = self.to_bytes()
        kept = b""
        position = 0
        try:
            for op, push, start, end in self._ops_with_positions():
                if push is None and op == opcode:
                    kept += raw[position:start]
                    position = end
        except MalformedEncoding:
            pass
        return Script.from_raw(kept + raw[position:])

    def to_asm(self) -> str:
        """Returns the asm representation

        Pushes of up to 4 bytes are shown as numbers, longer ones as hex. A
        malformed push ends the output with [error].
        """
        parts = []
        try:
            for opcode, push in self.ops():
                if push is not None:
                    if len(push) <= 4:
                        parts.append(str(decode_script_num(push)))
                    else:
                        parts.append(b_to_h(push))
                else:
                    parts.append(op_name(opcode))
        except MalformedEncoding:
            parts.append("[error]")
        return " ".join(parts)

    def is_push_only(self) -> bool:
        """Checks that the script only contains push op codes (up to OP_16)"""
        try:
            return all(opcode <= OP_16 for opcode, _ in self.ops())
        except MalformedEncoding:
            return False

    def is_empty(self) -> bool:
        return len(self.to_bytes()) == 0

    def get_script(self) -> list[Any]:
        """Returns script as array of strings"""
        return self.script

    def to_p2sh_script_pub_key(self) -> "Script":
        """Converts script to p2sh scriptPubKey (locking script)"""
        hex_hash160 = b_to_h(hash160(self.to_bytes()))
        return Script(["OP_HASH160", hex_hash160, "OP_EQUAL"])

    def __len__(self) -> int:
        return len(self.to_bytes())

    def __str__(self) -> str:
        return self.to_asm()

    def __repr__(self) -> str:
        return f"Script({self.to_hex()!r})"

    def __eq__(self, _other: object) -> bool:
        if not isinstance(_other, Script):
            return False
        return self.to_bytes() == _other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())


def eval_push_only(script: Script) -> Optional[list[bytes]]:
    """Executes a push-only script and returns the resulting stack

    Returns None if the script contains a non-push op code or is malformed.
    """
    stack: list[bytes] = []
    try:
        for opcode, push in script.ops():
            if push is not None:
                stack.append(push)
            elif opcode == OP_1NEGATE:
                stack.append(encode_script_num(-1))
            elif OP_1 <= opcode <= OP_16:
                stack.append(encode_script_num(opcode - OP_1 + 1))
            else:
                return None
    except MalformedEncoding:
        return None
    return stack
