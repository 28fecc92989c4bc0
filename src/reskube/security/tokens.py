#!/usr/bin/env python3
"""
security/tokens.py
==================

Python implementation of Hadoop's token material: `Token`, the identifier of
delegation tokens (`AbstractDelegationTokenIdentifier`) and `Credentials`, the
set of tokens and secret keys of a user.

`Credentials` are written in Hadoop's token storage format (`HDTS`, version 0)
so the driver can load them with `HADOOP_TOKEN_FILE_LOCATION`, and read in the
same format.

Example
-------

```python
from reskube.security.tokens import Credentials, Token

token = Token.decode_from_url_string(url_string)  # e.g. from WebHDFS

credentials = Credentials()
credentials.add_token(token.service, token)
payload = credentials.write_token_storage()
```
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import base64
from typing import ClassVar

import msgspec

from ..common.exceptions import TokenSerializationError
from .writable import DataInput, DataOutput

TOKEN_STORAGE_MAGIC = b"HDTS"
"""Header of Hadoop's token storage format."""
TOKEN_STORAGE_VERSION = 0
"""The writable based token storage version."""

DELEGATION_TOKEN_KINDS = frozenset(
    {
        "HDFS_DELEGATION_TOKEN",
        "WEBHDFS delegation",
        "SWEBHDFS delegation",
        "RM_DELEGATION_TOKEN",
        "TIMELINE_DELEGATION_TOKEN",
        "MR_DELEGATION_TOKEN",
        "HIVE_DELEGATION_TOKEN",
        "kms-dt",
    }
)
"""Token kinds whose identifier is an `AbstractDelegationTokenIdentifier`."""


class DelegationTokenIdentifier(msgspec.Struct, frozen=True, kw_only=True):
    """
    Identifier of a delegation token.

    Parameters
    ----------
    owner : str
        The user the token was issued to.
    renewer : str
        The user allowed to renew the token.
    real_user : str
        The real user in case of impersonation, by default `""`.
    issue_date : int
        Issue time in milliseconds since the epoch.
    max_date : int
        Time in milliseconds after which the token can't be renewed anymore.
    sequence_number : int
        Sequence number assigned by the issuer.
    master_key_id : int
        Id of the issuer's key used to compute the token password.
    """

    VERSION: ClassVar[int] = 0

    owner: str
    renewer: str
    real_user: str = ""
    issue_date: int = 0
    max_date: int = 0
    sequence_number: int = 0
    master_key_id: int = 0

    def to_bytes(self) -> bytes:
        out = DataOutput()
        out.write_byte(self.VERSION)
        out.write_text(self.owner)
        out.write_text(self.renewer)
        out.write_text(self.real_user)
        out.write_vlong(self.issue_date)
        out.write_vlong(self.max_date)
        out.write_vint(self.sequence_number)
        out.write_vint(self.master_key_id)
        return out.getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> DelegationTokenIdentifier:
        inp = DataInput(data)
        version = inp.read_byte()
        if version != cls.VERSION:
            raise ValueError(f"Unknown delegation token identifier version {version}")
        return cls(
            owner=inp.read_text(),
            renewer=inp.read_text(),
            real_user=inp.read_text(),
            issue_date=inp.read_vlong(),
            max_date=inp.read_vlong(),
            sequence_number=inp.read_vint(),
            master_key_id=inp.read_vint(),
        )


class Token(msgspec.Struct, frozen=True):
    """
    An opaque security token.

    Parameters
    ----------
    identifier : bytes
        The serialized token identifier.
    password : bytes
        The token password.
    kind : str
        The token kind, e.g. `'HDFS_DELEGATION_TOKEN'`.
    service : str
        The service the token is valid for, e.g. `'ha-hdfs:nameservice1'`.
    """

    identifier: bytes
    password: bytes
    kind: str
    service: str = ""

    def decode_identifier(self) -> DelegationTokenIdentifier | None:
        """
        Decode the identifier of the token.

        Returns
        -------
        DelegationTokenIdentifier | None
            The identifier for delegation token kinds, `None` for any other kind
            or identifiers which can't be decoded.
        """
        if self.kind not in DELEGATION_TOKEN_KINDS:
            return None
        try:
            return DelegationTokenIdentifier.from_bytes(self.identifier)
        except (EOFError, ValueError, UnicodeDecodeError):
            return None

    def write(self, out: DataOutput):
        out.write_bytes(self.identifier)
        out.write_bytes(self.password)
        out.write_text(self.kind)
        out.write_text(self.service)

    @classmethod
    def read(cls, inp: DataInput) -> Token:
        return cls(
            identifier=inp.read_bytes(),
            password=inp.read_bytes(),
            kind=inp.read_text(),
            service=inp.read_text(),
        )

    def encode_to_url_string(self) -> str:
        """Encode the token as URL-safe base64 string, the way WebHDFS does."""
        out = DataOutput()
        self.write(out)
        return base64.urlsafe_b64encode(out.getvalue()).decode("ascii").rstrip("=")

    @classmethod
    def decode_from_url_string(cls, url_string: str) -> Token:
        """Decode a token from its URL-safe base64 string representation."""
        _padded = url_string + "=" * (-len(url_string) % 4)
        return cls.read(DataInput(base64.urlsafe_b64decode(_padded)))

    def __str__(self) -> str:
        return f"Kind: {self.kind}, Service: {self.service}, Ident: {self.decode_identifier()}"


class Credentials:
    """
    Tokens and secret keys of a user, keyed by alias.

    `Credentials` are mutable. Use `copy` to get an independent set, the
    tokens themselves are immutable.

    Parameters
    ----------
    credentials : Credentials, optional
        Credentials to copy tokens and secret keys from.
    """

    def __init__(self, credentials: Credentials | None = None):
        self._tokens: dict[str, Token] = dict(credentials._tokens) if credentials else {}
        self._secret_keys: dict[str, bytes] = (
            dict(credentials._secret_keys) if credentials else {}
        )

    def copy(self) -> Credentials:
        return Credentials(self)

    def add_token(self, alias: str, token: Token):
        self._tokens[alias] = token

    def get_token(self, alias: str) -> Token | None:
        return self._tokens.get(alias)

    def add_secret_key(self, alias: str, key: bytes):
        self._secret_keys[alias] = key

    @property
    def tokens(self) -> list[Token]:
        return list(self._tokens.values())

    @property
    def secret_keys(self) -> dict[str, bytes]:
        return dict(self._secret_keys)

    def __len__(self) -> int:
        return len(self._tokens)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Credentials):
            return NotImplemented
        return self._tokens == other._tokens and self._secret_keys == other._secret_keys

    def __repr__(self) -> str:
        return (
            f"Credentials(tokens={sorted(self._tokens)}, secret_keys={sorted(self._secret_keys)})"
        )

    def write_token_storage(self) -> bytes:
        """
        Serialize the credentials in Hadoop's token storage format.

        Returns
        -------
        bytes
            `HDTS`, the format version and the writable encoded tokens and
            secret keys.

        Raises
        ------
        TokenSerializationError
            If a token or key can't be encoded.
        """
        try:
            out = DataOutput()
            out.write(TOKEN_STORAGE_MAGIC)
            out.write_byte(TOKEN_STORAGE_VERSION)
            out.write_vint(len(self._tokens))
            for alias, token in self._tokens.items():
                out.write_text(alias)
                token.write(out)
            out.write_vint(len(self._secret_keys))
            for alias, key in self._secret_keys.items():
                out.write_text(alias)
                out.write_bytes(key)
            return out.getvalue()
        except (AttributeError, TypeError, ValueError, UnicodeEncodeError) as e:
            raise TokenSerializationError(f"Could not serialize credentials: {e}") from e

    @classmethod
    def read_token_storage(cls, data: bytes) -> Credentials:
        """
        Deserialize credentials written in Hadoop's token storage format.

        Parameters
        ----------
        data : bytes
            The token storage bytes.

        Raises
        ------
        TokenSerializationError
            If the data is not in token storage format version 0 or is truncated.
        """
        try:
            inp = DataInput(data)
            if inp.read(len(TOKEN_STORAGE_MAGIC)) != TOKEN_STORAGE_MAGIC:
                raise ValueError("Bad header found in token storage")
            version = inp.read_byte()
            if version != TOKEN_STORAGE_VERSION:
                raise ValueError(f"Unsupported token storage version {version}")

            credentials = cls()
            for _ in range(inp.read_vint()):
                alias = inp.read_text()
                credentials.add_token(alias, Token.read(inp))
            for _ in range(inp.read_vint()):
                alias = inp.read_text()
                credentials.add_secret_key(alias, inp.read_bytes())
            return credentials
        except (EOFError, ValueError, UnicodeDecodeError) as e:
            raise TokenSerializationError(f"Could not read token storage: {e}") from e
