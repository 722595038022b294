"""Request signing for QZ Tray printing.

QZ Tray asks the backend to sign each print request with the merchant's
private key; the matching public certificate is served as plain text.
The private key is resolved once per process, in this order:

1. QZ_PRIVATE_KEY_B64 - base64 of the PEM
2. QZ_PRIVATE_KEY - PEM text, with literal "\\n" sequences unescaped
3. The PEM file at QZ_PRIVATE_KEY_PATH (development fallback)
"""

import base64
import os
import threading
from functools import lru_cache
from pathlib import Path

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from relay_shared.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PRIVATE_KEY_PATH = Path("certs") / "qz-private.pem"
DEFAULT_CERT_PATH = Path("certs") / "qz-public.crt"


class SigningError(Exception):
    """Raised when the signing key cannot be loaded or used."""

    pass


class SigningKeyProvider:
    """Lazily loads the signing key exactly once, then serves it read-only."""

    def __init__(
        self,
        b64_value: str | None = None,
        raw_value: str | None = None,
        key_path: Path | str | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            b64_value: Base64 PEM. Defaults to QZ_PRIVATE_KEY_B64 env var.
            raw_value: PEM text. Defaults to QZ_PRIVATE_KEY env var.
            key_path: PEM file fallback. Defaults to QZ_PRIVATE_KEY_PATH env var.
        """
        self._b64_value = b64_value if b64_value is not None else os.getenv("QZ_PRIVATE_KEY_B64")
        self._raw_value = raw_value if raw_value is not None else os.getenv("QZ_PRIVATE_KEY")
        self._key_path = Path(
            key_path or os.getenv("QZ_PRIVATE_KEY_PATH") or DEFAULT_PRIVATE_KEY_PATH
        )
        self._lock = threading.Lock()
        self._key: rsa.RSAPrivateKey | None = None

    def _load_pem(self) -> bytes:
        if self._b64_value:
            logger.info("Loading signing key from QZ_PRIVATE_KEY_B64")
            return base64.b64decode(self._b64_value)
        if self._raw_value:
            logger.info("Loading signing key from QZ_PRIVATE_KEY")
            return self._raw_value.replace("\\n", "\n").encode("utf-8")
        logger.warning("Loading signing key from file %s", self._key_path)
        return self._key_path.read_bytes()

    def get_key(self) -> rsa.RSAPrivateKey:
        """Return the private key, loading it on first use.

        Raises:
            SigningError: If no source yields a usable RSA private key
        """
        if self._key is not None:
            return self._key
        with self._lock:
            if self._key is None:
                try:
                    key = serialization.load_pem_private_key(self._load_pem(), password=None)
                except (OSError, ValueError, TypeError) as e:
                    raise SigningError(f"Failed to load signing key: {e}") from e
                if not isinstance(key, rsa.RSAPrivateKey):
                    raise SigningError("Signing key is not an RSA private key")
                self._key = key
        return self._key

    def sign(self, message: str) -> str:
        """Sign a message with RSA PKCS#1 v1.5 / SHA-256.

        Returns:
            Base64-encoded signature, as QZ Tray expects
        """
        signature = self.get_key().sign(
            message.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256()
        )
        return base64.b64encode(signature).decode("ascii")


class CertificateStore:
    """Serves the public certificate text, read once from disk."""

    def __init__(self, cert_path: Path | str | None = None) -> None:
        self._cert_path = Path(cert_path or os.getenv("QZ_CERT_PATH") or DEFAULT_CERT_PATH)
        self._lock = threading.Lock()
        self._cert: str | None = None

    def get_certificate(self) -> str:
        """Return the certificate PEM text.

        Raises:
            OSError: If the certificate file cannot be read
        """
        if self._cert is None:
            with self._lock:
                if self._cert is None:
                    self._cert = self._cert_path.read_text(encoding="utf-8")
        return self._cert


@lru_cache(maxsize=1)
def get_signing_key_provider() -> SigningKeyProvider:
    """Get the process-wide SigningKeyProvider."""
    return SigningKeyProvider()


@lru_cache(maxsize=1)
def get_certificate_store() -> CertificateStore:
    """Get the process-wide CertificateStore."""
    return CertificateStore()
