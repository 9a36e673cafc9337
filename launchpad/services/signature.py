# launchpad/services/signature.py
from __future__ import annotations

import binascii
import logging
import re
from typing import Optional

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from web3 import Web3

from launchpad.core.errors import InvalidAddress

logger = logging.getLogger(__name__)


# The exact text the wallet is asked to sign (personal_sign). Clients build the
# same string, so it must not change byte-for-byte.
LOGIN_MESSAGE_TEMPLATE = "Sign this message to authenticate with Launchpad.\n\nNonce: {nonce}"

# EIP-191 version 0x45 ("E") prefix used by personal_sign / eth_sign.
PERSONAL_MESSAGE_PREFIX = "\x19Ethereum Signed Message:\n"

SIGNATURE_LENGTH = 65  # r (32) || s (32) || v (1)

ADDRESS_RE = re.compile(r"(0[xX])?(?P<hex>[0-9a-fA-F]{40})")


def is_hex_address(address: str) -> bool:
    return isinstance(address, str) and ADDRESS_RE.fullmatch(address.strip()) is not None


def normalize_address(address: str) -> str:
    """
    Return the canonical form of an address: 0x-prefixed, lower-case.

    Checksums are not enforced; two addresses are equal when their canonical
    forms are equal.
    """
    if not isinstance(address, str):
        raise InvalidAddress()
    m = ADDRESS_RE.fullmatch(address.strip())
    if not m:
        raise InvalidAddress()
    return "0x" + m.group("hex").lower()


def login_message(nonce: str) -> str:
    return LOGIN_MESSAGE_TEMPLATE.format(nonce=nonce)


def personal_message_hash(message: str) -> bytes:
    """keccak256("\\x19Ethereum Signed Message:\\n" + len(message) + message)"""
    body = message.encode("utf-8")
    prefix = f"{PERSONAL_MESSAGE_PREFIX}{len(body)}".encode("utf-8")
    return bytes(Web3.keccak(prefix + body))


def public_key_to_address(public_key: keys.PublicKey) -> str:
    # last 20 bytes of keccak256(X || Y)
    return "0x" + bytes(Web3.keccak(public_key.to_bytes()))[-20:].hex()


def _decode_signature(signature: str) -> Optional[bytes]:
    if not isinstance(signature, str):
        return None
    value = signature.strip()
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    try:
        raw = binascii.unhexlify(value.encode())
    except (binascii.Error, ValueError):
        return None
    if len(raw) != SIGNATURE_LENGTH:
        return None
    return raw


def recover_address(message: str, signature: str) -> Optional[str]:
    """
    Recover the signer of a personal_sign message.

    Returns the lower-case 0x address, or None when the signature is malformed
    or no public key can be recovered from it. Never raises on bad input.
    """
    raw = _decode_signature(signature)
    if raw is None:
        return None

    r = int.from_bytes(raw[0:32], "big")
    s = int.from_bytes(raw[32:64], "big")
    v = raw[64]
    # wallets send 27/28, recovery expects 0/1
    if v >= 27:
        v -= 27
    if v not in (0, 1):
        return None

    try:
        digest = personal_message_hash(message)
    except UnicodeEncodeError:
        return None

    try:
        public_key = keys.Signature(vrs=(v, r, s)).recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError, ValueError) as exc:
        logger.debug("public key recovery failed: %s", exc)
        return None

    return public_key_to_address(public_key)


def verify_signature(address: str, message: str, signature: str) -> bool:
    """True iff `signature` over `message` was produced by the key behind `address`."""
    try:
        expected = normalize_address(address)
    except InvalidAddress:
        return False

    recovered = recover_address(message, signature)
    if recovered is None:
        return False
    return recovered == expected
