"""Signer-verifiers backed by a private key stored in a PEM file."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

_CURVE_HASHES = {
    "secp256r1": hashes.SHA256,
    "secp384r1": hashes.SHA384,
    "secp521r1": hashes.SHA512,
}


class SignerError(ValueError):
    """A signer cannot be configured, loaded, or fails to verify a signature."""


def _load_private_key(pem: bytes, password: str) -> Any:
    unlock = password.encode() if password else None
    try:
        return serialization.load_pem_private_key(pem, password=unlock)
    except TypeError:
        # A password given for an unencrypted key is ignored.
        if unlock is None:
            raise
        return serialization.load_pem_private_key(pem, password=None)


class FileSignerVerifier:
    """Signs and verifies with a private key read from a PEM file.

    ECDSA keys sign with the digest that matches their curve, RSA keys use
    PKCS#1 v1.5 with SHA-256, and Ed25519 keys sign the message directly.
    """

    def __init__(self, key_path: Union[str, Path], password: str = "") -> None:
        try:
            pem = Path(key_path).read_bytes()
            key = _load_private_key(pem, password)
        except (OSError, ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise SignerError(f"file: provide a valid signer, {key_path} is not valid: {exc}") from exc
        try:
            self._check_supported(key)
        except SignerError as exc:
            raise SignerError(f"file: loaded private key from {key_path} can't be used to sign: {exc}") from exc
        self._key = key

    @staticmethod
    def _check_supported(key: Any) -> None:
        if isinstance(key, ec.EllipticCurvePrivateKey):
            if key.curve.name not in _CURVE_HASHES:
                raise SignerError(f"unsupported elliptic curve {key.curve.name}")
        elif not isinstance(key, (rsa.RSAPrivateKey, ed25519.Ed25519PrivateKey)):
            raise SignerError(f"unsupported key type {type(key).__name__}")

    def public_key(self) -> Any:
        """Return the public half of the loaded key."""
        return self._key.public_key()

    def sign(self, message: bytes) -> bytes:
        """Sign a message and return the signature bytes."""
        key = self._key
        if isinstance(key, ec.EllipticCurvePrivateKey):
            return key.sign(message, ec.ECDSA(_CURVE_HASHES[key.curve.name]()))
        if isinstance(key, rsa.RSAPrivateKey):
            return key.sign(message, padding.PKCS1v15(), hashes.SHA256())
        return key.sign(message)

    def verify(self, message: bytes, signature: bytes) -> None:
        """Raise SignerError unless the signature over message is valid."""
        key = self.public_key()
        try:
            if isinstance(key, ec.EllipticCurvePublicKey):
                key.verify(signature, message, ec.ECDSA(_CURVE_HASHES[key.curve.name]()))
            elif isinstance(key, rsa.RSAPublicKey):
                key.verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
            else:
                key.verify(signature, message)
        except (InvalidSignature, ValueError) as exc:
            raise SignerError("invalid signature") from exc


def new_signer_verifier(file_path: Union[str, Path, None], password: str = "") -> FileSignerVerifier:
    """Return a signer-verifier for the configured private key file."""
    if not file_path:
        raise SignerError(
            "insufficient signing parameters provided, must configure one of file, KMS, or Tink signer-verifiers"
        )
    return FileSignerVerifier(file_path, password)