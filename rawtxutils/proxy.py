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
from typing import Optional, Any, Dict, Union, cast

from bitcoinrpc.authproxy import AuthServiceProxy
from loguru import logger

from rawtxutils.chainstate import BlockInfo, ChainState
from rawtxutils.coins import Coins
from rawtxutils.constants import NETWORK_DEFAULT_PORTS
from rawtxutils.errors import KeyStoreLocked
from rawtxutils.keys import P2pkhAddress, P2shAddress, PrivateKey
from rawtxutils.keystore import KeyStore
from rawtxutils.script import Script
from rawtxutils.setup import get_network
from rawtxutils.transactions import Transaction
from rawtxutils.utils import b_to_h


JSONDict = Dict[str, Any]

# wallet RPC error codes
RPC_WALLET_UNLOCK_NEEDED = -13


class RPCError(Exception):
    """Exception raised for errors when interfacing with the node.

    Attributes:
        message -- explanation of the error
        code -- error code returned by the node
    """

    def __init__(self, message: str, code: Optional[int] = None):
        self.message = message
        self.code = code
        super().__init__(f"RPC Error ({code}): {message}" if code else message)


class NodeProxy:
    """Node proxy that can call the node's JSON-RPC functionality.

    Attributes
    ----------
    proxy : object
        an instance of bitcoinrpc.authproxy.AuthServiceProxy

    Methods
    -------
    call(method, *params)
        Calls any RPC method with provided parameters
    get_block_count()
        Returns the height of the active chain tip
    get_block(block_hash)
        Returns the header information of a block
    get_raw_transaction(txid, verbose=False)
        Returns a transaction as hex or as a JSON object
    get_tx_out(txid, n, include_mempool=True)
        Returns an unspent output or None
    dump_priv_key(address)
        Returns the WIF of a wallet key
    validate_address(address)
        Returns information about an address
    """

    def __init__(
        self,
        rpcuser: str,
        rpcpassword: str,
        host: Optional[str] = None,
        port: Optional[int] = None,
        timeout: int = 30,
        use_https: bool = False,
    ) -> None:
        """Connects to a node using provided credentials.

        Parameters
        ----------
        rpcuser : str
            RPC username as defined in the node's configuration
        rpcpassword : str
            RPC password as defined in the node's configuration
        host : str, optional
            Host where the node resides; defaults to 127.0.0.1
        port : int, optional
            Port to connect to; uses default ports according to network
        timeout : int, optional
            Timeout for RPC calls in seconds; defaults to 30
        use_https : bool, optional
            Whether to use HTTPS for the connection; defaults to False

        Raises
        ------
        ValueError
            If rpcuser and/or rpcpassword are not specified
        """
        if not rpcuser or not rpcpassword:
            raise ValueError("rpcuser or rpcpassword is missing")

        if not host:
            host = "127.0.0.1"
        if not port:
            port = NETWORK_DEFAULT_PORTS[get_network()]

        protocol = "https" if use_https else "http"
        service_url = f"{protocol}://{rpcuser}:{rpcpassword}@{host}:{port}"

        self.proxy = AuthServiceProxy(service_url, timeout=timeout)

    def __call__(self, method: str, *params: Any) -> Any:
        return self.call(method, *params)

    def call(self, method: str, *params: Any) -> Any:
        """Call any RPC method.

        Raises
        ------
        RPCError
            If the RPC call fails
        """
        try:
            rpc_method = getattr(self.proxy, method)
            return rpc_method(*params)
        except Exception as e:
            # Extract error code if available
            error_code = None
            if hasattr(e, "error") and "code" in e.error:
                error_code = e.error["code"]

            raise RPCError(str(e), error_code)

    def get_block_count(self) -> int:
        return cast(int, self.call("getblockcount"))

    def get_block(self, block_hash: str) -> JSONDict:
        return cast(JSONDict, self.call("getblock", block_hash))

    def get_raw_transaction(self, txid: str, verbose: bool = False) -> Union[str, JSONDict]:
        """Get a raw transaction.

        Returns
        -------
        Union[str, dict]
            The raw transaction as hex string or a JSON object if verbose=True
        """
        result = self.call("getrawtransaction", txid, 1 if verbose else 0)
        if verbose:
            return cast(JSONDict, result)
        return cast(str, result)

    def get_tx_out(self, txid: str, n: int, include_mempool: bool = True) -> Optional[JSONDict]:
        return cast(Optional[JSONDict], self.call("gettxout", txid, n, include_mempool))

    def get_info(self) -> JSONDict:
        return cast(JSONDict, self.call("getinfo"))

    def dump_priv_key(self, address: str) -> str:
        return cast(str, self.call("dumpprivkey", address))

    def validate_address(self, address: str) -> JSONDict:
        return cast(JSONDict, self.call("validateaddress", address))


class NodeChainState(ChainState):
    """Confirmed chain state read from a node over JSON-RPC

    Unspent outputs come from gettxout without the node's memory pool, so
    pending spends are not taken into account here.
    """

    def __init__(self, proxy: NodeProxy) -> None:
        self.proxy = proxy

    def _get_tx(self, txid: str) -> Optional[Transaction]:
        try:
            raw = self.proxy.get_raw_transaction(txid)
        except RPCError as e:
            logger.debug(f"getrawtransaction {txid} failed: {e.message}")
            return None
        return Transaction.from_raw(cast(str, raw))

    def get_coins(self, txid: str) -> Optional[Coins]:
        tx = self._get_tx(txid)
        if tx is None:
            return None

        tip = self.get_height()
        height = None
        outputs = []
        for n, txout in enumerate(tx.outputs):
            utxo = self.proxy.get_tx_out(txid, n, False)
            if utxo is None:
                outputs.append(None)
                continue
            outputs.append(txout)
            height = tip - int(utxo["confirmations"]) + 1

        if height is None:
            return None
        return Coins(outputs, height)

    def get_transaction(self, txid: str) -> Optional[tuple[Transaction, Optional[str]]]:
        try:
            result = cast(JSONDict, self.proxy.get_raw_transaction(txid, verbose=True))
        except RPCError as e:
            logger.debug(f"getrawtransaction {txid} failed: {e.message}")
            return None
        return Transaction.from_raw(result["hex"]), result.get("blockhash")

    def get_block(self, block_hash: str) -> Optional[BlockInfo]:
        try:
            block = self.proxy.get_block(block_hash)
        except RPCError:
            return None
        # blocks off the active chain report -1 confirmations
        return BlockInfo(
            block["hash"],
            int(block["height"]),
            int(block["time"]),
            int(block["confirmations"]) >= 0,
        )

    def get_height(self) -> int:
        return self.proxy.get_block_count()


class NodeKeyStore(KeyStore):
    """The node's wallet used as the persistent key store"""

    def __init__(self, proxy: NodeProxy) -> None:
        self.proxy = proxy

    def get_key(self, key_id: bytes) -> Optional[PrivateKey]:
        address = P2pkhAddress(hash160=b_to_h(key_id)).to_string()
        try:
            wif = self.proxy.dump_priv_key(address)
        except RPCError as e:
            if e.code == RPC_WALLET_UNLOCK_NEEDED:
                raise KeyStoreLocked(e.message)
            return None
        return PrivateKey.from_wif(wif)

    def get_redeem_script(self, script_id: bytes) -> Optional[Script]:
        address = P2shAddress(hash160=b_to_h(script_id)).to_string()
        info = self.proxy.validate_address(address)
        if not info.get("isscript") or "hex" not in info:
            return None
        return Script.from_raw(info["hex"])

    def ensure_unlocked(self) -> None:
        """Raises KeyStoreLocked if the node's wallet is encrypted and locked"""
        info = self.proxy.get_info()
        if info.get("unlocked_until", None) == 0:
            raise KeyStoreLocked(
                "Error: Please enter the wallet passphrase with walletpassphrase first."
            )
