"""Relay wire encoding for signed transactions.

Layout of one encoded transaction, before base64::

    u64 little-endian signature count
    count * 64-byte signature, in transaction order
    message bytes, verbatim

The whole buffer is encoded with the standard padded base64 alphabet on a
single line. The relay decodes the exact inverse, so any change here breaks
every bundle.
"""

from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass
from typing import Any, Iterable

from solders.message import MessageV0, to_bytes_versioned
from solders.signature import Signature

from .errors import SOURCE_BUNDLES, SerializationError

SIGNATURE_COUNT_FORMAT = "<Q"
SIGNATURE_COUNT_SIZE = struct.calcsize(SIGNATURE_COUNT_FORMAT)
SIGNATURE_SIZE = 64


@dataclass(slots=True, frozen=True)
class DecodedTransaction:
    signatures: list[Signature]
    message_bytes: bytes


def message_bytes(tx: Any) -> bytes:
    message = tx.message
    if isinstance(message, MessageV0):
        return bytes(to_bytes_versioned(message))
    return bytes(message)


def serialize_transaction(tx: Any) -> bytes:
    signatures = list(tx.signatures)
    if not signatures:
        raise SerializationError("Cannot encode a transaction without signatures.", source=SOURCE_BUNDLES)

    buffer = bytearray(struct.pack(SIGNATURE_COUNT_FORMAT, len(signatures)))
    for signature in signatures:
        raw = bytes(signature)
        if len(raw) != SIGNATURE_SIZE:
            raise SerializationError(
                f"Signature has {len(raw)} bytes, expected {SIGNATURE_SIZE}.",
                source=SOURCE_BUNDLES,
            )
        buffer.extend(raw)
    buffer.extend(message_bytes(tx))
    return bytes(buffer)


def encode_transaction(tx: Any) -> str:
    return base64.b64encode(serialize_transaction(tx)).decode("ascii")


def encode_bundle(transactions: Iterable[Any]) -> list[str]:
    return [encode_transaction(tx) for tx in transactions]


def decode_transaction(encoded: str) -> DecodedTransaction:
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as error:
        raise SerializationError(f"Encoded transaction is not valid base64: {error}", source=SOURCE_BUNDLES) from error

    if len(raw) < SIGNATURE_COUNT_SIZE:
        raise SerializationError("Encoded transaction is shorter than its signature count.", source=SOURCE_BUNDLES)

    (count,) = struct.unpack_from(SIGNATURE_COUNT_FORMAT, raw, 0)
    message_offset = SIGNATURE_COUNT_SIZE + count * SIGNATURE_SIZE
    if count == 0 or message_offset >= len(raw):
        raise SerializationError(
            f"Encoded transaction declares {count} signatures but holds {len(raw)} bytes.",
            source=SOURCE_BUNDLES,
        )

    signatures = [
        Signature.from_bytes(raw[offset : offset + SIGNATURE_SIZE])
        for offset in range(SIGNATURE_COUNT_SIZE, message_offset, SIGNATURE_SIZE)
    ]
    return DecodedTransaction(signatures=signatures, message_bytes=raw[message_offset:])
