from __future__ import annotations

import base64
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import CryptoError, FormatError


logger = logging.getLogger(__name__)

KEY_SIZE = 32
NONCE_SIZE = 12
HEADER_SIZE = KEY_SIZE + NONCE_SIZE  # 44


def _b64encode_nopad(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii").rstrip("=")


def _b64decode_nopad(text: str) -> bytes:
    """
    Decode a blob written by `_b64encode_nopad`.

    Looser than a strict unpadded decoder: surrounding whitespace, trailing
    padding and non-zero trailing bits are all accepted.
    """
    stripped = text.strip().rstrip("=")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), validate=True)
    except (ValueError, UnicodeEncodeError) as exc:
        raise FormatError("Failed to decode encrypted password") from exc


def encrypt(plaintext: str) -> str:
    """
    Seal `plaintext` into a self-contained, storable blob.

    Layout before encoding: key (32) || nonce (12) || ciphertext + GCM tag (16).
    The result is standard base64 without padding. A fresh key and nonce are
    drawn for every call, so equal plaintexts never produce equal blobs.

    Notes
    - The key travels inside the blob. This keeps the password out of the
      config file in cleartext; it is not protection against anyone who can
      read the file.
    """
    try:
        key = os.urandom(KEY_SIZE)
        nonce = os.urandom(NONCE_SIZE)
    except (OSError, NotImplementedError) as exc:
        raise CryptoError("Failed to generate encryption key") from exc

    try:
        sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    except (ValueError, OverflowError) as exc:
        raise CryptoError("Failed to encrypt password") from exc

    return _b64encode_nopad(key + nonce + sealed)


def decrypt(blob: str) -> str:
    """
    Open a blob produced by `encrypt`.

    Raises
    - FormatError: not base64, or shorter than the 44-byte key+nonce header.
    - CryptoError: authentication failed (tampered or foreign blob) or the
      recovered bytes are not UTF-8.
    """
    raw = _b64decode_nopad(blob)
    if len(raw) < HEADER_SIZE:
        raise FormatError("Invalid encrypted password format")

    key = raw[:KEY_SIZE]
    nonce = raw[KEY_SIZE:HEADER_SIZE]
    ciphertext = raw[HEADER_SIZE:]

    try:
        opened = AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as exc:
        logger.debug("Stored password failed authentication (%d bytes)", len(raw))
        raise CryptoError("Failed to decrypt password") from exc

    try:
        return opened.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CryptoError("Decrypted password is not valid UTF-8") from exc


__all__ = ["encrypt", "decrypt", "KEY_SIZE", "NONCE_SIZE", "HEADER_SIZE"]
