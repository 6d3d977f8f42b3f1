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

__version__ = "0.1.0"

from rawtxutils.setup import setup, get_network

from rawtxutils.keys import (
    PrivateKey,
    PublicKey,
    Address,
    P2pkhAddress,
    P2shAddress,
)

from rawtxutils.script import Script

from rawtxutils.transactions import (
    OutPoint,
    Transaction,
    TxInput,
    TxOutput,
)

from rawtxutils.chainstate import NodeContext

from rawtxutils.builder import InputSpec, create_raw_transaction

from rawtxutils.signer import PrevoutHint, SignResult, sign_raw_transaction

from rawtxutils.gateway import send_raw_transaction

from rawtxutils.token import commit, init_token

from rawtxutils import commands, proxy

__all__ = [
    'setup',
    'get_network',
    'PrivateKey',
    'PublicKey',
    'Address',
    'P2pkhAddress',
    'P2shAddress',
    'Script',
    'OutPoint',
    'Transaction',
    'TxInput',
    'TxOutput',
    'NodeContext',
    'InputSpec',
    'create_raw_transaction',
    'PrevoutHint',
    'SignResult',
    'sign_raw_transaction',
    'send_raw_transaction',
    'commit',
    'init_token',
    'commands',
    'proxy',
]
