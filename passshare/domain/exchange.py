"""Client-side exchange codec.

AES-256-GCM envelopes framed as ``nonce || ciphertext+tag`` and carried as
unpadded base64url text. The relay only ever sees the encoded blob; the key
travels out of band in the share URL fragment.
"""
import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from passshare.core.random_source import RandomSource
from passshare.errors import AuthenticationFailure, EncryptionFailure, MalformedEncoding

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16

_B64U_TEXT = re.compile(r"^[A-Za-z0-9_-]*$")


@dataclass(frozen=True)
class Envelope:
    nonce: bytes
    ciphertext: bytes  # includes the GCM tag

    def __post_init__(self):
        if len(self.nonce) != NONCE_SIZE:
            raise MalformedEncoding(f"Invalid nonce: must be {NONCE_SIZE} bytes")

    def to_bytes(self) -> bytes:
        return self.nonce + self.ciphertext

    @staticmethod
    def from_bytes(data: bytes) -> "Envelope":
        if len(data) < NONCE_SIZE:
            raise MalformedEncoding("Envelope shorter than nonce")
        return Envelope(nonce=data[:NONCE_SIZE], ciphertext=data[NONCE_SIZE:])


def encode_text(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def decode_text(text: str, min_length: int = NONCE_SIZE, max_length: Optional[int] = None) -> bytes:
    """Decode unpadded base64url, rejecting anything that cannot be an envelope."""
    if not isinstance(text, str) or not _B64U_TEXT.match(text):
        raise MalformedEncoding("Invalid base64url alphabet")
    if len(text) % 4 == 1:
        raise MalformedEncoding("Invalid base64url length")

    try:
        data = base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
    except (binascii.Error, ValueError) as e:
        raise MalformedEncoding("Invalid base64url data") from e

    if len(data) < min_length:
        raise MalformedEncoding("Decoded data too short")
    if max_length is not None and len(data) > max_length:
        raise MalformedEncoding("Decoded data too long")
    return data


def generate_key(random: Optional[RandomSource] = None) -> bytes:
    return (random or RandomSource()).token_bytes(KEY_SIZE)


def export_key(key: bytes) -> str:
    return encode_text(key)


def import_key(text: str) -> bytes:
    key = decode_text(text, min_length=KEY_SIZE, max_length=KEY_SIZE)
    return key


def encrypt(plaintext: Union[str, bytes], key: bytes, random: Optional[RandomSource] = None) -> Envelope:
    data = plaintext.encode("utf-8") if isinstance(plaintext, str) else plaintext
    nonce = (random or RandomSource()).token_bytes(NONCE_SIZE)
    try:
        ciphertext = AESGCM(key).encrypt(nonce, data, None)
    except (ValueError, TypeError, OverflowError) as e:
        raise EncryptionFailure() from e
    return Envelope(nonce=nonce, ciphertext=ciphertext)


def decrypt(envelope: Envelope, key: bytes) -> str:
    if len(envelope.ciphertext) < TAG_SIZE:
        raise AuthenticationFailure()
    try:
        data = AESGCM(key).decrypt(envelope.nonce, envelope.ciphertext, None)
    except (InvalidTag, ValueError) as e:
        raise AuthenticationFailure() from e

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise AuthenticationFailure() from e


def seal(plaintext: Union[str, bytes], key: bytes, random: Optional[RandomSource] = None) -> str:
    """Encrypt and frame ``plaintext`` into transport text."""
    return encode_text(encrypt(plaintext, key, random).to_bytes())


def open_sealed(text: str, key: bytes) -> str:
    return decrypt(Envelope.from_bytes(decode_text(text)), key)
