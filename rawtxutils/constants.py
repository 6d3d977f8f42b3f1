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

NETWORK_DEFAULT_PORTS = {
    "mainnet": 8332,
    "testnet": 18332,
    "regtest": 18443,
}

NETWORK_WIF_PREFIXES = {
    "mainnet": b"\x80",
    "testnet": b"\xef",
    "regtest": b"\xef",
}

NETWORK_P2PKH_PREFIXES = {
    "mainnet": b"\x00",
    "testnet": b"\x6f",
    "regtest": b"\x6f",
}

NETWORK_P2SH_PREFIXES = {
    "mainnet": b"\x05",
    "testnet": b"\xc4",
    "regtest": b"\xc4",
}


# Constants for address types
P2PKH_ADDRESS = "p2pkh"
P2SH_ADDRESS = "p2sh"


# Constants related to transaction signature types
SIGHASH_ALL = 0x01
SIGHASH_NONE = 0x02
SIGHASH_SINGLE = 0x03
SIGHASH_ANYONECANPAY = 0x80

# the six selector strings accepted by the signing engine
SIGHASH_TYPES = {
    "ALL": SIGHASH_ALL,
    "ALL|ANYONECANPAY": SIGHASH_ALL | SIGHASH_ANYONECANPAY,
    "NONE": SIGHASH_NONE,
    "NONE|ANYONECANPAY": SIGHASH_NONE | SIGHASH_ANYONECANPAY,
    "SINGLE": SIGHASH_SINGLE,
    "SINGLE|ANYONECANPAY": SIGHASH_SINGLE | SIGHASH_ANYONECANPAY,
}


# Transaction defaults
DEFAULT_TX_VERSION = 1
DEFAULT_TX_LOCKTIME = 0
DEFAULT_TX_SEQUENCE = 0xFFFFFFFF
EMPTY_TX_SEQUENCE = 0

# largest compact size accepted while decoding
MAX_SIZE = 0x02000000


# Monetary constants
SATOSHIS_PER_BITCOIN = 100000000
COIN = SATOSHIS_PER_BITCOIN
NEGATIVE_SATOSHI = -1
MAX_MONEY = 50000000000 * COIN

# fee floor used by the in-memory pending pool (base units per 1000 bytes)
DEFAULT_MIN_RELAY_TX_FEE = 100000
# a fee above this multiple of the floor is considered insane
INSANE_FEE_MULTIPLIER = 10000


# Ledger heights
MEMPOOL_HEIGHT = 0x7FFFFFFF
# coins above this height are not treated as confirmed
MAX_PLAUSIBLE_HEIGHT = 1000000000


# Script verification flags
SCRIPT_VERIFY_NONE = 0
SCRIPT_VERIFY_P2SH = 1 << 0
SCRIPT_VERIFY_STRICTENC = 1 << 1
STANDARD_SCRIPT_VERIFY_FLAGS = SCRIPT_VERIFY_P2SH | SCRIPT_VERIFY_STRICTENC


# Reject codes reported by the pending pool
REJECT_MALFORMED = 0x01
REJECT_INVALID = 0x10
REJECT_OBSOLETE = 0x11
REJECT_DUPLICATE = 0x12
REJECT_NONSTANDARD = 0x40
REJECT_DUST = 0x41
REJECT_INSUFFICIENTFEE = 0x42


# Token protocol
TOKEN_FUNDING_AMOUNT = 1001 * COIN
TOKEN_OUTPUT_AMOUNT = 1000 * COIN
# only this many bytes of the token preimage are hashed
TOKEN_HASH_WINDOW = 64
