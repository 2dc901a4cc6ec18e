from __future__ import annotations

import asyncio
import base64
import logging
import os

from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .models import Assignment


logger = logging.getLogger(__name__)

KEY_BITS = 256
NONCE_SIZE = 12  # 96-bit GCM nonce


class TokenGenerationError(RuntimeError):
    pass


# ---------------------------------------------------------------------------
# Display tokens
#
# Each recipient id is sealed with AES-256-GCM under a key that only lives for
# one call of encrypt_tokens(). The key is never returned, stored or logged, so
# nobody (including this app) can ever open a token again. Tokens exist to show
# that a pairing was made without showing who it is.
# ---------------------------------------------------------------------------


def tokens_supported() -> bool:
    """True if the cryptography backend can do AES-256-GCM here."""
    try:
        cipher = AESGCM(AESGCM.generate_key(bit_length=KEY_BITS))
        cipher.encrypt(os.urandom(NONCE_SIZE), b"", None)
    except UnsupportedAlgorithm:
        return False
    return True


def _seal(cipher, recipient_id: str) -> str:
    nonce = os.urandom(NONCE_SIZE)
    ciphertext = cipher.encrypt(nonce, recipient_id.encode("utf-8"), None)
    return base64.b64encode(nonce + ciphertext).decode("ascii")


async def encrypt_tokens(assignments: list[Assignment]) -> list[str] | None:
    """
    Return one token per assignment, in the same order.

    Returns None when AES-GCM is unavailable. Raises TokenGenerationError if
    any single item fails; partial results are never returned.
    """
    if not tokens_supported():
        logger.info("AES-GCM unavailable; skipping display tokens")
        return None

    try:
        key = await asyncio.to_thread(AESGCM.generate_key, bit_length=KEY_BITS)
        cipher = AESGCM(key)
        tokens = []
        for a in assignments:
            tokens.append(await asyncio.to_thread(_seal, cipher, a.recipient.id))
    except (UnsupportedAlgorithm, InternalError, ValueError, TypeError, OverflowError) as e:
        logger.error("Token generation failed: %s", e)
        raise TokenGenerationError("Failed to create encrypted tokens.") from e

    logger.info("Created %d display tokens", len(tokens))
    return tokens
