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

NETWORK = "testnet"
networks = {"mainnet", "testnet", "regtest"}


def setup(network: str = "testnet") -> str:
    """Setup rawtx-utils with the specified network (mainnet, testnet, regtest)

    Raises
    ------
    ValueError
        if the network is not supported
    """
    global NETWORK
    if network not in networks:
        raise ValueError(f"Unsupported network: {network}")
    NETWORK = network
    return NETWORK


def get_network() -> str:
    global NETWORK
    return NETWORK

