#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Message codec for the TP-Link Smart Home protocol.

Message bodies are obfuscated with a single-byte autokey XOR cipher. The key
starts at CIPHER_SEED (0xAB) for every message and is replaced by each
ciphertext byte as it is produced, so the keystream depends on previously
emitted ciphertext rather than on the plaintext. The cipher is length-preserving
and provides no integrity or confidentiality guarantee.

Framing is kept separate from the cipher: the TCP transport prefixes the
encoded body with a 4-byte big-endian length header (see frame()), while the
UDP transport sends the encoded body alone.
"""

from __future__ import annotations

import struct

from .internal_types import *
from .constants import CIPHER_SEED, LENGTH_HEADER_SIZE, MAX_TCP_BODY_LENGTH
from .exceptions import ArgumentError, DataError

_LENGTH_HEADER = struct.Struct('>I')

def encode(plaintext: Union[bytes, bytearray, memoryview]) -> bytes:
    """Encrypt a message body. Empty input yields empty output."""
    key = CIPHER_SEED
    result = bytearray(len(plaintext))
    for i, p in enumerate(bytes(plaintext)):
        key = p ^ key
        result[i] = key
    return bytes(result)

def decode(ciphertext: Union[bytes, bytearray, memoryview]) -> bytes:
    """Decrypt a message body. Empty input yields empty output."""
    key = CIPHER_SEED
    result = bytearray(len(ciphertext))
    for i, c in enumerate(bytes(ciphertext)):
        result[i] = c ^ key
        key = c
    return bytes(result)

def encode_text(text: str) -> bytes:
    """UTF-8 encodes a command text and encrypts it. No length header is added."""
    if text is None:
        raise ArgumentError("Message text must not be None")
    return encode(text.encode('utf-8'))

def decode_text(ciphertext: Union[bytes, bytearray, memoryview]) -> str:
    """Decrypts a message body and decodes it as UTF-8 text."""
    plaintext = decode(ciphertext)
    try:
        return plaintext.decode('utf-8')
    except UnicodeDecodeError as e:
        raise DataError(f"The device has sent an invalid response: body is not UTF-8: {plaintext!r}") from e

def frame(body: bytes) -> bytes:
    """Prefixes an encoded body with its 4-byte big-endian length, as used on TCP connections."""
    if len(body) > MAX_TCP_BODY_LENGTH:
        raise ArgumentError(f"Message body of {len(body)} bytes is too large for the length header")
    return _LENGTH_HEADER.pack(len(body)) + body

def unpack_length_header(header: bytes) -> int:
    """Returns the body length encoded in a 4-byte TCP length header."""
    if len(header) != LENGTH_HEADER_SIZE:
        raise ArgumentError(f"Length header must be exactly {LENGTH_HEADER_SIZE} bytes, got {len(header)}")
    length: int = _LENGTH_HEADER.unpack(header)[0]
    return length
