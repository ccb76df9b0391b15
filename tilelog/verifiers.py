"""Verifiers built from DER public keys and X.509 certificates."""

from __future__ import annotations

import abc
import hashlib
from dataclasses import dataclass
from typing import Any, BinaryIO, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

DerSource = Union[bytes, bytearray, memoryview, BinaryIO, None]


@dataclass(frozen=True)
class Identity:
    """The identity behind a verifier.

    ``crypto`` is the public key or certificate object, ``raw`` its DER
    encoding and ``fingerprint`` the hex SHA-256 digest of ``raw``.
    """

    crypto: Any
    raw: bytes
    fingerprint: str


def _read_der(data: DerSource, what: str) -> bytes:
    if data is None:
        raise ValueError(f"{what} data is missing")
    if hasattr(data, "read"):
        data = data.read()
    return bytes(data)


def _identity(crypto: Any, raw: bytes) -> Identity:
    return Identity(crypto=crypto, raw=raw, fingerprint=hashlib.sha256(raw).hexdigest())


class KeyVerifier(abc.ABC):
    """Something that verifies signatures: a public key or a certificate."""

    @abc.abstractmethod
    def public_key(self) -> Any:
        """Return the public key used for signature verification."""

    @abc.abstractmethod
    def identity(self) -> Identity:
        """Return the identity of the key or certificate."""

    @abc.abstractmethod
    def __str__(self) -> str:
        """Return the PEM encoding, or an empty string if it cannot be made."""


class PublicKeyVerifier(KeyVerifier):
    """A verifier backed by a DER-encoded PKIX public key."""

    def __init__(self, data: DerSource) -> None:
        der = _read_der(data, "public key")
        try:
            self._key = serialization.load_der_public_key(der)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise ValueError(f"parsing public key: {exc}") from exc

    def public_key(self) -> Any:
        return self._key

    def identity(self) -> Identity:
        raw = self._key.public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return _identity(self._key, raw)

    def __str__(self) -> str:
        try:
            encoded = self._key.public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            )
        except (ValueError, TypeError):
            return ""
        return encoded.decode("ascii")


class CertificateVerifier(KeyVerifier):
    """A verifier backed by a DER-encoded X.509 certificate."""

    def __init__(self, data: DerSource) -> None:
        der = _read_der(data, "certificate")
        try:
            self.certificate = x509.load_der_x509_certificate(der)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise ValueError(f"parsing certificate: {exc}") from exc
        self._raw = der

    def public_key(self) -> Any:
        return self.certificate.public_key()

    def identity(self) -> Identity:
        return _identity(self.certificate, self._raw)

    def __str__(self) -> str:
        try:
            encoded = self.certificate.public_bytes(serialization.Encoding.PEM)
        except (ValueError, TypeError):
            return ""
        return encoded.decode("ascii")