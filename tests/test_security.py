"""
Security Tests - Checksums, signing, verification, encryption.
"""

import hashlib

import pytest

from diffx.document import DiffXDocument, Section
from diffx.parser import parse_document
from diffx.reader import DiffXReader
from diffx.security import (
    checksum,
    decrypt_bytes,
    decrypt_document,
    encrypt_bytes,
    encrypt_document,
    fingerprint,
    is_encrypted_diffx,
    sign,
    signature_of,
    verify,
)


def _doc(text: str = "sensitive data") -> DiffXDocument:
    return DiffXDocument(
        title="diffx",
        root=Section.container(
            {"content": Section.from_text(text)},
            options={"version": "1.0"},
        ),
    )


class TestChecksum:

    def test_checksum_is_sha256_of_bytes(self):
        doc = _doc()
        assert checksum(doc) == hashlib.sha256(doc.to_bytes()).hexdigest()

    def test_fingerprint_ignores_signature(self):
        doc = _doc()
        assert fingerprint(doc) == fingerprint(sign(doc, "key"))
        assert len(fingerprint(doc)) == 32


class TestSigning:

    def test_sign_and_verify(self):
        signed = sign(_doc(), "my-secret-key")
        assert signature_of(signed)
        assert signed.root.options["sig-algo"] == "hmac-sha256"
        assert verify(signed, "my-secret-key") is True

    def test_sign_does_not_mutate(self):
        doc = _doc()
        sign(doc, "key")
        assert "signature" not in doc.root.options

    def test_verify_wrong_key(self):
        assert verify(sign(_doc(), "correct-key"), "wrong-key") is False

    def test_verify_tampered_content(self):
        signed = sign(_doc("original"), "key")
        tampered = parse_document(signed.to_bytes().replace(b"original", b"tampered"))
        assert verify(tampered, "key") is False

    def test_verify_tampered_options(self):
        signed = sign(_doc(), "key")
        tampered = parse_document(signed.to_bytes().replace(b"version=1.0", b"version=2.0"))
        assert verify(tampered, "key") is False

    def test_verify_unsigned(self):
        assert verify(_doc(), "any-key") is False

    def test_verify_require(self):
        with pytest.raises(ValueError, match="no signature"):
            verify(_doc(), "key", require=True)

    def test_resign_is_idempotent(self):
        once = sign(_doc(), "key")
        twice = sign(once, "key")
        assert signature_of(once) == signature_of(twice)
        assert once.root.options == twice.root.options

    def test_signature_survives_write_read(self, tmp_path):
        path = tmp_path / "signed.diffx"
        sign(_doc(), "persist-key").write(str(path))
        loaded = DiffXReader.read(path)
        assert verify(loaded, "persist-key") is True


class TestEncryption:

    def test_bytes_roundtrip(self):
        data = b"\x00binary\xffpayload"
        assert decrypt_bytes(encrypt_bytes(data, "pw"), "pw") == data

    def test_document_roundtrip(self):
        doc = _doc()
        encrypted = encrypt_document(doc, "hunter2")
        assert is_encrypted_diffx(encrypted)
        assert b"sensitive data" not in encrypted
        restored = decrypt_document(encrypted, "hunter2")
        assert restored.root == doc.root

    def test_wrong_password(self):
        encrypted = encrypt_document(_doc(), "right")
        with pytest.raises(ValueError, match="Decryption failed"):
            decrypt_document(encrypted, "wrong")

    def test_not_encrypted(self):
        assert not is_encrypted_diffx(_doc().to_bytes())
        with pytest.raises(ValueError, match="not an encrypted"):
            decrypt_document(_doc().to_bytes(), "pw")

    def test_payload_too_short(self):
        with pytest.raises(ValueError, match="too short"):
            decrypt_document(b"#diffx-enc/1.0\nshort", "pw")
