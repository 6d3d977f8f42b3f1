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

"""JSON shaped entry points, named after the node's raw transaction calls.

Each call validates its parameters into a request model in one pass,
before any work starts, then hands it to the core modules. Results are
dictionaries (or strings) shaped like the node's JSON results.
"""

from typing import Any, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rawtxutils.builder import InputSpec, build_transaction, is_txid
from rawtxutils.chainstate import NodeContext
from rawtxutils.constants import SIGHASH_TYPES
from rawtxutils.errors import InvalidParameter, MalformedEncoding, TransactionNotFound
from rawtxutils.gateway import send_raw_transaction
from rawtxutils.projection import decode_script, tx_to_json
from rawtxutils.script import Script
from rawtxutils.signer import PrevoutHint, sign_raw_transaction
from rawtxutils.token import create_token, init_token
from rawtxutils.transactions import Transaction
from rawtxutils.utils import is_hex


def _check_txid(value: str) -> str:
    if not is_txid(value):
        raise ValueError("txid must be hexadecimal string")
    return value.lower()


def _check_hex(value: str) -> str:
    if not is_hex(value):
        raise ValueError("must be hexadecimal string")
    return value


class Request(BaseModel):
    """Base of the request models; JSON types are taken as they are, so
    "0" is not an int and true is not a number"""

    model_config = ConfigDict(strict=True, frozen=True)


RequestT = TypeVar("RequestT", bound=Request)


def parse_request(model: Type[RequestT], **params: Any) -> RequestT:
    """Validates params into model

    Raises
    ------
    InvalidParameter
        describing the first offending parameter
    """
    try:
        return model.model_validate(params)
    except ValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        raise InvalidParameter(f"Invalid parameter {location}: {error['msg']}")


class InputEntry(Request):
    txid: str
    vout: int = Field(ge=0)
    sequence: Optional[int] = Field(default=None, ge=0)

    @field_validator("txid")
    @classmethod
    def validate_txid(cls, v: str) -> str:
        return _check_txid(v)


class PrevTxEntry(Request):
    txid: str
    vout: int = Field(ge=0)
    script_pub_key: str = Field(alias="scriptPubKey")
    redeem_script: Optional[str] = Field(default=None, alias="redeemScript")

    @field_validator("txid")
    @classmethod
    def validate_txid(cls, v: str) -> str:
        return _check_txid(v)

    @field_validator("script_pub_key", "redeem_script")
    @classmethod
    def validate_script(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_hex(v)

    def to_hint(self) -> PrevoutHint:
        redeem_script = None
        if self.redeem_script is not None:
            redeem_script = Script.from_raw(self.redeem_script)
        return PrevoutHint(
            self.txid, self.vout, Script.from_raw(self.script_pub_key), redeem_script
        )


class CreateRawTransactionRequest(Request):
    inputs: list[InputEntry]
    # ordered address/data mapping, or a list of pairs
    outputs: Union[dict[str, Any], list[Any]]
    locktime: int = 0

    def input_specs(self) -> list[InputSpec]:
        return [InputSpec(entry.txid, entry.vout, entry.sequence) for entry in self.inputs]


class DecodeRawTransactionRequest(Request):
    hexstring: str

    @field_validator("hexstring")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        return _check_hex(v)


class DecodeScriptRequest(Request):
    hexstring: str

    # the empty string is the empty script
    @field_validator("hexstring")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        return _check_hex(v)


class GetRawTransactionRequest(Request):
    txid: str
    verbose: int = 0

    @field_validator("txid")
    @classmethod
    def validate_txid(cls, v: str) -> str:
        return _check_txid(v)


class SignRawTransactionRequest(Request):
    hexstring: str
    prevtxs: Optional[list[PrevTxEntry]] = None
    privkeys: Optional[list[str]] = None
    sighashtype: str = "ALL"

    @field_validator("hexstring")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        return _check_hex(v)

    @field_validator("sighashtype")
    @classmethod
    def validate_sighash(cls, v: str) -> str:
        if v not in SIGHASH_TYPES:
            raise ValueError("Invalid sighash param")
        return v

    def prevout_hints(self) -> list[PrevoutHint]:
        return [entry.to_hint() for entry in self.prevtxs or []]


class SendRawTransactionRequest(Request):
    hexstring: str
    allowhighfees: bool = False

    @field_validator("hexstring")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        return _check_hex(v)


class TokenRequest(Request):
    path: str
    previous_tx_id: str


class InitTokenRequest(Request):
    address: str
    path: str


def createrawtransaction(inputs: Any, outputs: Any, locktime: Any = 0) -> str:
    """Returns the hex of an unsigned transaction

    inputs is a list of {"txid", "vout", "sequence" (optional)} objects,
    outputs maps addresses to amounts and "data" to hex data.
    """
    request = parse_request(
        CreateRawTransactionRequest, inputs=inputs, outputs=outputs, locktime=locktime
    )
    tx = build_transaction(request.input_specs(), request.outputs, request.locktime)
    return tx.to_hex()


def decoderawtransaction(hexstring: Any) -> dict[str, Any]:
    request = parse_request(DecodeRawTransactionRequest, hexstring=hexstring)
    try:
        tx = Transaction.from_bytes(bytes.fromhex(request.hexstring))
    except MalformedEncoding:
        raise MalformedEncoding("TX decode failed")
    return tx_to_json(tx)


def decodescript(hexstring: Any) -> dict[str, Any]:
    request = parse_request(DecodeScriptRequest, hexstring=hexstring)
    return decode_script(request.hexstring)


def getrawtransaction(
    context: NodeContext, txid: Any, verbose: Any = 0
) -> Union[str, dict[str, Any]]:
    """Returns a pending or confirmed transaction as hex, or with verbose set
    as its display record"""

    request = parse_request(GetRawTransactionRequest, txid=txid, verbose=verbose)

    block_hash = None
    tx = context.pool.get(request.txid)
    if tx is None:
        found = context.chain.get_transaction(request.txid)
        if found is None:
            raise TransactionNotFound(request.txid)
        tx, block_hash = found

    if not request.verbose:
        return tx.to_hex()

    block = context.chain.get_block(block_hash) if block_hash else None
    result: dict[str, Any] = {"hex": tx.to_hex()}
    result.update(tx_to_json(tx, block, context.chain.get_height()))
    return result


def signrawtransaction(
    context: NodeContext,
    hexstring: Any,
    prevtxs: Any = None,
    privkeys: Any = None,
    sighashtype: Any = "ALL",
) -> dict[str, Any]:
    """Returns {"hex", "complete"} (see signer.sign_raw_transaction)"""

    request = parse_request(
        SignRawTransactionRequest,
        hexstring=hexstring,
        prevtxs=prevtxs,
        privkeys=privkeys,
        sighashtype=sighashtype,
    )
    result = sign_raw_transaction(
        bytes.fromhex(request.hexstring),
        context,
        request.prevout_hints(),
        request.privkeys,
        request.sighashtype,
    )
    return result.to_json()


def sendrawtransaction(
    context: NodeContext, hexstring: Any, allowhighfees: Any = False
) -> str:
    request = parse_request(
        SendRawTransactionRequest, hexstring=hexstring, allowhighfees=allowhighfees
    )
    return send_raw_transaction(
        bytes.fromhex(request.hexstring), context, request.allowhighfees
    )


def createtoken(path: Any, previous_tx_id: Any) -> dict[str, Any]:
    request = parse_request(TokenRequest, path=path, previous_tx_id=previous_tx_id)
    return create_token(request.path, request.previous_tx_id).to_json()


def inittoken(context: NodeContext, address: Any, path: Any) -> dict[str, Any]:
    request = parse_request(InitTokenRequest, address=address, path=path)
    return init_token(request.address, request.path, context).to_json()
