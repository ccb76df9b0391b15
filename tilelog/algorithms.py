"""Signing algorithms a log instance accepts, and checks against them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from .models import HashAlgorithm, PublicKeyDetails

_HASHES = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

_HASH_DISPLAY = {"sha256": "SHA-256", "sha384": "SHA-384", "sha512": "SHA-512"}

_CURVE_DISPLAY = {"secp256r1": "P-256", "secp384r1": "P-384", "secp521r1": "P-521"}


@dataclass(frozen=True)
class AlgorithmDetails:
    """The key type, key parameters and digest behind a PublicKeyDetails value."""

    key_details: PublicKeyDetails
    key_type: str
    hash_name: Optional[str]
    proto_hash: HashAlgorithm
    curve: Optional[str] = None
    rsa_bits: Optional[int] = None
    rsa_pss: bool = False

    def hash_algorithm(self) -> Optional[hashes.HashAlgorithm]:
        """Return a hash object for the digest, or None if there is none."""
        if self.hash_name is None:
            return None
        return _HASHES[self.hash_name]()

    def matches(self, public_key: Any, hash_name: Optional[str]) -> bool:
        """Tell whether a public key and digest fit these details."""
        if hash_name != self.hash_name:
            return False
        if self.key_type == "ecdsa":
            return (
                isinstance(public_key, ec.EllipticCurvePublicKey)
                and public_key.curve.name == self.curve
            )
        if self.key_type == "rsa":
            return isinstance(public_key, rsa.RSAPublicKey) and public_key.key_size == self.rsa_bits
        return isinstance(public_key, ed25519.Ed25519PublicKey)


def _ecdsa(details: PublicKeyDetails, curve: str, hash_name: str, proto: HashAlgorithm) -> AlgorithmDetails:
    return AlgorithmDetails(details, "ecdsa", hash_name, proto, curve=curve)


def _rsa(details: PublicKeyDetails, bits: int, pss: bool) -> AlgorithmDetails:
    return AlgorithmDetails(details, "rsa", "sha256", HashAlgorithm.SHA2_256, rsa_bits=bits, rsa_pss=pss)


_P = PublicKeyDetails
_DETAILS = {
    d.key_details: d
    for d in (
        _ecdsa(_P.PKIX_ECDSA_P256_SHA_256, "secp256r1", "sha256", HashAlgorithm.SHA2_256),
        _ecdsa(_P.PKIX_ECDSA_P384_SHA_384, "secp384r1", "sha384", HashAlgorithm.SHA2_384),
        _ecdsa(_P.PKIX_ECDSA_P521_SHA_512, "secp521r1", "sha512", HashAlgorithm.SHA2_512),
        AlgorithmDetails(_P.PKIX_ED25519, "ed25519", None, HashAlgorithm.HASH_ALGORITHM_UNSPECIFIED),
        AlgorithmDetails(_P.PKIX_ED25519_PH, "ed25519", "sha512", HashAlgorithm.SHA2_512),
        _rsa(_P.PKIX_RSA_PKCS1V15_2048_SHA256, 2048, False),
        _rsa(_P.PKIX_RSA_PKCS1V15_3072_SHA256, 3072, False),
        _rsa(_P.PKIX_RSA_PKCS1V15_4096_SHA256, 4096, False),
        _rsa(_P.PKIX_RSA_PSS_2048_SHA256, 2048, True),
        _rsa(_P.PKIX_RSA_PSS_3072_SHA256, 3072, True),
        _rsa(_P.PKIX_RSA_PSS_4096_SHA256, 4096, True),
    )
}


def get_algorithm_details(key_details: PublicKeyDetails) -> AlgorithmDetails:
    """Return the details of a key algorithm, raising ValueError if unknown."""
    try:
        return _DETAILS[PublicKeyDetails(key_details)]
    except (KeyError, ValueError):
        raise ValueError(f"unsupported public key details: {key_details!r}") from None


def _describe_key(public_key: Any) -> str:
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        curve = _CURVE_DISPLAY.get(public_key.curve.name, public_key.curve.name)
        return f"ECDSA key, curve {curve}"
    if isinstance(public_key, rsa.RSAPublicKey):
        return f"RSA key, size {public_key.key_size}"
    if isinstance(public_key, ed25519.Ed25519PublicKey):
        return "ED25519 key"
    return f"{type(public_key).__name__} key"


class UnsupportedAlgorithmError(ValueError):
    """A key and digest pair is not accepted by this log instance."""

    def __init__(self, public_key: Any, hash_name: Optional[str]) -> None:
        digest = _HASH_DISPLAY.get(hash_name, "unknown hash value 0") if hash_name else "unknown hash value 0"
        super().__init__(f"unsupported entry algorithm for {_describe_key(public_key)}, digest {digest}")
        self.public_key = public_key
        self.hash_name = hash_name


class AlgorithmRegistry:
    """The set of signing algorithms a log instance accepts."""

    def __init__(self, allowed: Iterable[PublicKeyDetails]) -> None:
        self.allowed = [get_algorithm_details(d) for d in allowed]

    def check(self, public_key: Any, hash_name: Optional[str]) -> bool:
        """Tell whether the key and digest match an accepted algorithm."""
        return any(d.matches(public_key, hash_name) for d in self.allowed)