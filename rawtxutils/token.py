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

"""File anchored tokens.

A token commits to the first bytes of a file followed by the id of an anchor
(funding) transaction. The commitment is signed with a fresh key; the
signature is the token id and is written into a null data output of the
minting transaction.
"""

from dataclasses import dataclass

from loguru import logger

from rawtxutils.builder import DATA_KEY, InputSpec, build_transaction
from rawtxutils.chainstate import NodeContext
from rawtxutils.constants import (
    TOKEN_FUNDING_AMOUNT,
    TOKEN_HASH_WINDOW,
    TOKEN_OUTPUT_AMOUNT,
)
from rawtxutils.errors import FundingError
from rawtxutils.gateway import submit_transaction
from rawtxutils.hashes import hash256
from rawtxutils.keys import PrivateKey, decode_address
from rawtxutils.signer import sign_raw_transaction
from rawtxutils.standard import ScriptType, get_script_type
from rawtxutils.transactions import Transaction, TxOutput
from rawtxutils.utils import b_to_h, value_from_amount


@dataclass(frozen=True)
class TokenCommitment:
    """A signed token commitment

    Attributes
    ----------
    token_id : str
        the DER signature over digest, in hex
    public_id : str
        hash of the token's uncompressed public key (hex, display order)
    private_key : str
        the token's private key as uncompressed WIF
    digest : bytes
        the signed 32 byte commitment hash
    """

    token_id: str
    public_id: str
    private_key: str
    digest: bytes

    def to_json(self) -> dict:
        return {
            "Token ID": self.token_id,
            "Token public key": self.public_id,
            "Token private key": self.private_key,
        }


@dataclass(frozen=True)
class MintResult:
    commitment: TokenCommitment
    txid: str

    @property
    def token_id(self) -> str:
        return self.commitment.token_id

    def to_json(self) -> dict:
        result = self.commitment.to_json()
        result["transactionid"] = self.txid
        return result


def commitment_digest(file_bytes: bytes, anchor_txid: str) -> bytes:
    """Double SHA256 over the first TOKEN_HASH_WINDOW bytes of the file
    followed by the anchor txid (hex text)"""

    preimage = file_bytes + anchor_txid.encode()
    return hash256(preimage[:TOKEN_HASH_WINDOW])


def commit(file_bytes: bytes, anchor_txid: str) -> TokenCommitment:
    """Signs the commitment to file_bytes and anchor_txid with a fresh key

    The digest is deterministic; the key, and with it the token id, is new on
    every call.
    """

    digest = commitment_digest(file_bytes, anchor_txid)

    key = PrivateKey(compressed=False)
    signature = key.sign_digest(digest)

    pubkey_bytes = key.get_public_key().to_bytes(compressed=False)
    public_id = b_to_h(hash256(pubkey_bytes)[::-1])

    return TokenCommitment(
        token_id=b_to_h(signature),
        public_id=public_id,
        private_key=key.to_wif(compressed=False),
        digest=digest,
    )


def create_token(path: str, anchor_txid: str) -> TokenCommitment:
    """Commits to the file at path (see commit)"""

    with open(path, "rb") as f:
        file_bytes = f.read()
    return commit(file_bytes, anchor_txid)


def spendable_for_token(txout: TxOutput) -> bool:
    """Coin filter refusing null data outputs as funding sources"""
    return get_script_type(txout.script_pubkey) != ScriptType.NULL_DATA


def find_funding_output(funding_tx: Transaction) -> int:
    """Returns the index of the first output worth TOKEN_FUNDING_AMOUNT

    Falls back to 0, with a warning, when there is none.
    """

    for index, txout in enumerate(funding_tx.outputs):
        if txout.amount == TOKEN_FUNDING_AMOUNT:
            return index

    logger.warning(
        f"No output of {TOKEN_FUNDING_AMOUNT} in funding transaction "
        f"{funding_tx.get_txid()}, spending output 0"
    )
    return 0


def build_mint_transaction(
    funding_txid: str, funding_index: int, destination: str, token_id: str
) -> Transaction:
    """Builds the unsigned mint spending the funding output

    Raises
    ------
    InvalidAddress
        if destination is not a valid address for the active network
    """
    outputs = [
        (destination, value_from_amount(TOKEN_OUTPUT_AMOUNT)),
        (DATA_KEY, token_id),
    ]
    return build_transaction([InputSpec(funding_txid, funding_index)], outputs)


def init_token(destination: str, path: str, context: NodeContext) -> MintResult:
    """Funds, commits and mints a token for the file at path

    A funding transaction paying TOKEN_FUNDING_AMOUNT to the wallet itself is
    submitted first. Its output is spent into TOKEN_OUTPUT_AMOUNT to
    destination plus a null data output carrying the token id; the minting
    transaction is signed with the persistent key store and submitted.

    Raises
    ------
    InvalidAddress
        if destination does not decode
    FundingError
        if no wallet is available or it cannot fund the token
    AlreadySubmitted, Rejected
        from either submission
    """

    decode_address(destination)

    if context.wallet is None:
        raise FundingError("No wallet available to fund the token")
    wallet = context.wallet

    funding_tx = wallet.create_transaction(
        wallet.get_receive_address(), TOKEN_FUNDING_AMOUNT, spendable_for_token
    )
    funding_txid = submit_transaction(funding_tx, context)
    funding_index = find_funding_output(funding_tx)

    commitment = create_token(path, funding_txid)

    mint_tx = build_mint_transaction(
        funding_txid, funding_index, destination, commitment.token_id
    )
    signed = sign_raw_transaction(mint_tx.to_bytes(), context, sighash_type="ALL")
    if not signed.complete:
        logger.warning(f"Token transaction spending {funding_txid} is not fully signed")

    txid = submit_transaction(
        Transaction.from_raw(signed.hex), context, allow_high_fees=False
    )
    logger.info(f"Token {commitment.public_id} minted in {txid}")
    return MintResult(commitment, txid)
