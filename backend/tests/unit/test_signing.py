"""Unit tests for QZ Tray key loading and request signing."""

import base64
from pathlib import Path

import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from relay_shared.services.signing import CertificateStore, SigningError, SigningKeyProvider


@pytest.fixture(scope="module")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="module")
def private_pem(private_key: rsa.RSAPrivateKey) -> bytes:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(autouse=True)
def clear_qz_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("QZ_PRIVATE_KEY_B64", "QZ_PRIVATE_KEY", "QZ_PRIVATE_KEY_PATH", "QZ_CERT_PATH"):
        monkeypatch.delenv(name, raising=False)


def _verify(key: rsa.RSAPrivateKey, message: str, signature_b64: str) -> None:
    key.public_key().verify(
        base64.b64decode(signature_b64),
        message.encode("utf-8"),
        padding.PKCS1v15(),
        hashes.SHA256(),
    )


class TestSigningKeyProvider:
    def test_sign_with_base64_key(
        self, private_key: rsa.RSAPrivateKey, private_pem: bytes, tmp_path: Path
    ) -> None:
        provider = SigningKeyProvider(
            b64_value=base64.b64encode(private_pem).decode(),
            key_path=tmp_path / "missing.pem",
        )

        signature = provider.sign("print job 1")

        _verify(private_key, "print job 1", signature)

    def test_signature_rejects_other_message(
        self, private_key: rsa.RSAPrivateKey, private_pem: bytes
    ) -> None:
        provider = SigningKeyProvider(b64_value=base64.b64encode(private_pem).decode())

        with pytest.raises(InvalidSignature):
            _verify(private_key, "print job 2", provider.sign("print job 1"))

    def test_raw_key_with_escaped_newlines(
        self, private_key: rsa.RSAPrivateKey, private_pem: bytes, tmp_path: Path
    ) -> None:
        escaped = private_pem.decode().replace("\n", "\\n")
        provider = SigningKeyProvider(raw_value=escaped, key_path=tmp_path / "missing.pem")

        _verify(private_key, "hello", provider.sign("hello"))

    def test_file_fallback(
        self, private_key: rsa.RSAPrivateKey, private_pem: bytes, tmp_path: Path
    ) -> None:
        key_file = tmp_path / "qz-private.pem"
        key_file.write_bytes(private_pem)

        provider = SigningKeyProvider(key_path=key_file)

        _verify(private_key, "hello", provider.sign("hello"))

    def test_key_loaded_once(self, private_pem: bytes, tmp_path: Path) -> None:
        key_file = tmp_path / "qz-private.pem"
        key_file.write_bytes(private_pem)
        provider = SigningKeyProvider(key_path=key_file)

        first = provider.get_key()
        key_file.unlink()

        assert provider.get_key() is first

    def test_missing_key(self, tmp_path: Path) -> None:
        provider = SigningKeyProvider(key_path=tmp_path / "missing.pem")

        with pytest.raises(SigningError):
            provider.sign("hello")

    def test_garbage_key(self, tmp_path: Path) -> None:
        provider = SigningKeyProvider(
            raw_value="not a pem", key_path=tmp_path / "missing.pem"
        )

        with pytest.raises(SigningError):
            provider.get_key()


class TestCertificateStore:
    def test_reads_certificate(self, tmp_path: Path) -> None:
        cert_file = tmp_path / "qz-public.crt"
        cert_file.write_text("-----BEGIN CERTIFICATE-----\nabc\n-----END CERTIFICATE-----\n")

        store = CertificateStore(cert_file)

        assert store.get_certificate().startswith("-----BEGIN CERTIFICATE-----")

    def test_missing_certificate(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            CertificateStore(tmp_path / "missing.crt").get_certificate()
