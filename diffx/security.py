"""
DiffX Security - Checksums, signing, verification, and encryption.

Security features:
  - SHA-256 checksum over the canonical serialization
  - HMAC-SHA256 signing; the signature lives in the root section's options
    (``sig-algo`` and ``signature``) and is excluded from the signed bytes
  - AES-256-GCM encryption with AAD binding for whole documents
  - Key derivation via PBKDF2 for password-based encryption
"""

from __future__ import annotations

import hashlib
import hmac
import os
from dataclasses import replace
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

if TYPE_CHECKING:
    from diffx.document import DiffXDocument

SIGNATURE_OPTION = "signature"
SIG_ALGO_OPTION = "sig-algo"
SIG_ALGO = "hmac-sha256"

ENCRYPTED_MAGIC = b"#diffx-enc/"
_ENCRYPTED_HEADER = b"#diffx-enc/1.0\n"

# AAD (Additional Authenticated Data) for AES-GCM binding
_AES_AAD = b"DIFFX-ENC/1.0"

_SALT_SIZE = 16
_NONCE_SIZE = 12
_TAG_SIZE = 16


# =============================================================================
# Checksums
# =============================================================================

def checksum(doc: DiffXDocument) -> str:
    """SHA-256 hex digest of the document's serialization."""
    return hashlib.sha256(doc.to_bytes()).hexdigest()


def fingerprint(doc: DiffXDocument) -> str:
    """Short, stable identifier for a document (first 32 hex chars of the checksum)."""
    return checksum(_unsigned(doc))[:32]


# =============================================================================
# HMAC Signing & Verification
# =============================================================================

def _unsigned(doc: DiffXDocument) -> DiffXDocument:
    """Copy of doc with signature options removed from the root."""
    options = {
        k: v for k, v in doc.root.options.items()
        if k not in (SIGNATURE_OPTION, SIG_ALGO_OPTION)
    }
    return replace(doc, root=replace(doc.root, options=options))


def _signature(doc: DiffXDocument, secret: str | bytes) -> str:
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    message = _unsigned(doc).to_bytes()
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


def sign(doc: DiffXDocument, secret: str | bytes) -> DiffXDocument:
    """Return a signed copy of doc.

    Re-signing replaces any earlier signature, so sign() is idempotent for
    a given secret.
    """
    sig = _signature(doc, secret)
    options = dict(_unsigned(doc).root.options)
    options[SIG_ALGO_OPTION] = SIG_ALGO
    options[SIGNATURE_OPTION] = sig
    return replace(doc, root=replace(doc.root, options=options))


def signature_of(doc: DiffXDocument) -> str:
    """The stored signature, or "" if the document is unsigned."""
    return doc.root.options.get(SIGNATURE_OPTION, "")


def verify(doc: DiffXDocument, secret: str | bytes, *, require: bool = False) -> bool:
    """Verify the HMAC-SHA256 signature of a document.

    Returns False if unsigned, unless require=True, which raises ValueError
    instead.
    """
    stored = signature_of(doc)
    if not stored:
        if require:
            raise ValueError("Document has no signature but signature is required")
        return False
    if doc.root.options.get(SIG_ALGO_OPTION) != SIG_ALGO:
        return False
    return hmac.compare_digest(stored, _signature(doc, secret))


# =============================================================================
# AES-256-GCM Encryption
# =============================================================================

def _derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 256-bit key from a password using PBKDF2."""
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        iterations=600_000,  # OWASP recommended minimum
        dklen=32,
    )


def encrypt_bytes(data: bytes, password: str) -> bytes:
    """
    Encrypt raw bytes with AES-256-GCM using a password.
    Returns: salt (16) + nonce (12) + ciphertext + tag (16)
    """
    salt = os.urandom(_SALT_SIZE)
    nonce = os.urandom(_NONCE_SIZE)
    key = _derive_key(password, salt)
    return salt + nonce + AESGCM(key).encrypt(nonce, data, _AES_AAD)


def decrypt_bytes(encrypted: bytes, password: str) -> bytes:
    """
    Decrypt bytes that were encrypted with encrypt_bytes().
    Raises ValueError on a wrong password or tampered data.
    """
    salt = encrypted[:_SALT_SIZE]
    nonce = encrypted[_SALT_SIZE:_SALT_SIZE + _NONCE_SIZE]
    ciphertext = encrypted[_SALT_SIZE + _NONCE_SIZE:]

    key = _derive_key(password, salt)
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, _AES_AAD)
    except InvalidTag as e:
        raise ValueError("Decryption failed (wrong password or corrupted data)") from e


def encrypt_document(doc: DiffXDocument, password: str) -> bytes:
    """
    Encrypt an entire DiffX document.

    The payload is prefixed with a plaintext header so tools can identify
    it as an encrypted DiffX file.
    """
    return _ENCRYPTED_HEADER + encrypt_bytes(doc.to_bytes(), password)


def decrypt_document(data: bytes, password: str) -> DiffXDocument:
    """Decrypt data produced by encrypt_document() and parse it."""
    from diffx.reader import DiffXReader

    if not is_encrypted_diffx(data):
        raise ValueError("Data is not an encrypted DiffX file (missing header)")
    if b"\n" not in data:
        raise ValueError("Malformed encrypted DiffX file: missing header terminator")

    encrypted = data[data.index(b"\n") + 1:]
    minimum = _SALT_SIZE + _NONCE_SIZE + _TAG_SIZE
    if len(encrypted) < minimum:
        raise ValueError(
            f"Encrypted payload too short: {len(encrypted)} bytes "
            f"(minimum {minimum} bytes: 16 salt + 12 nonce + 16 tag)"
        )
    return DiffXReader.parse(decrypt_bytes(encrypted, password))


def is_encrypted_diffx(data: bytes) -> bool:
    """Check if data is an encrypted DiffX file."""
    return data.startswith(ENCRYPTED_MAGIC)
