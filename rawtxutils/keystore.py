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

from abc import ABC, abstractmethod
from typing import Optional

from rawtxutils.hashes import hash160
from rawtxutils.keys import PrivateKey
from rawtxutils.script import Script


class KeyStore(ABC):
    """Source of signing keys and redeem scripts

    Keys are looked up by key id (hash160 of the serialized public key) and
    redeem scripts by script id (hash160 of the script).
    """

    @abstractmethod
    def get_key(self, key_id: bytes) -> Optional[PrivateKey]:
        pass

    @abstractmethod
    def get_redeem_script(self, script_id: bytes) -> Optional[Script]:
        pass

    def ensure_unlocked(self) -> None:
        """Raises KeyStoreLocked if keys cannot be used right now"""


class BasicKeyStore(KeyStore):
    """In-memory key store, e.g. for keys passed along with a request"""

    def __init__(self) -> None:
        self._keys: dict[bytes, PrivateKey] = {}
        self._scripts: dict[bytes, Script] = {}

    def add_key(self, key: PrivateKey) -> bytes:
        """Adds a key and returns its key id"""
        key_id = key.get_public_key().get_id()
        self._keys[key_id] = key
        return key_id

    def add_redeem_script(self, script: Script) -> bytes:
        """Adds a redeem script and returns its script id"""
        script_id = hash160(script.to_bytes())
        self._scripts[script_id] = script
        return script_id

    def get_key(self, key_id: bytes) -> Optional[PrivateKey]:
        return self._keys.get(key_id)

    def get_redeem_script(self, script_id: bytes) -> Optional[Script]:
        return self._scripts.get(script_id)

    def __len__(self) -> int:
        return len(self._keys)
