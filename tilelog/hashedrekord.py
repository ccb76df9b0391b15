"""Validation and canonicalisation of hashed rekord requests."""

from __future__ import annotations

from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa, utils

from .algorithms import AlgorithmDetails, AlgorithmRegistry, UnsupportedAlgorithmError, get_algorithm_details
from .models import HashedRekordLogEntry, HashedRekordRequest, HashOutput
from .validation import ValidationError, validate_verifier
from .verifiers import CertificateVerifier, KeyVerifier, PublicKeyVerifier


def _validate(request: HashedRekordRequest) -> None:
    signature = request.signature
    if signature is None or not signature.content:
        raise ValidationError("missing signature")
    if signature.verifier is None:
        raise ValidationError("missing verifier")
    if not request.digest:
        raise ValidationError("missing digest")
    try:
        validate_verifier(signature.verifier)
    except ValidationError as exc:
        raise ValidationError(f"invalid verifier: {exc}") from exc


def _extract_verifier(request: HashedRekordRequest) -> KeyVerifier:
    verifier = request.signature.verifier
    try:
        if verifier.public_key is not None:
            return PublicKeyVerifier(verifier.public_key.raw_bytes)
        if verifier.x509_certificate is not None:
            return CertificateVerifier(verifier.x509_certificate.raw_bytes)
    except ValueError as exc:
        raise ValueError(f"parsing verifier: {exc}") from exc
    raise ValidationError("must contain either a public key or X.509 certificate")


def _verify_digest(key: Any, details: AlgorithmDetails, signature: bytes, digest: bytes) -> None:
    try:
        if isinstance(key, ed25519.Ed25519PublicKey):
            raise ValueError("Ed25519ph prehashed verification is not supported")
        prehashed = utils.Prehashed(details.hash_algorithm())
        if isinstance(key, ec.EllipticCurvePublicKey):
            key.verify(signature, digest, ec.ECDSA(prehashed))
        elif isinstance(key, rsa.RSAPublicKey):
            pad = (
                padding.PSS(mgf=padding.MGF1(details.hash_algorithm()), salt_length=padding.PSS.AUTO)
                if details.rsa_pss
                else padding.PKCS1v15()
            )
            key.verify(signature, digest, pad, prehashed)
        else:
            raise ValueError("unsupported public key type")
    except InvalidSignature:
        raise ValueError("verifying signature: invalid signature") from None
    except (ValueError, TypeError) as exc:
        raise ValueError(f"verifying signature: {exc}") from exc


def to_log_entry(request: HashedRekordRequest, registry: AlgorithmRegistry) -> HashedRekordLogEntry:
    """Validate a request, verify its signature and return the log entry."""
    _validate(request)
    verifier = _extract_verifier(request)
    try:
        details = get_algorithm_details(request.signature.verifier.key_details)
    except ValueError as exc:
        raise ValueError(f"getting key algorithm details: {exc}") from exc
    key = verifier.public_key()
    if not registry.check(key, details.hash_name):
        raise UnsupportedAlgorithmError(key, details.hash_name)
    _verify_digest(key, details, request.signature.content, request.digest)
    return HashedRekordLogEntry(
        signature=request.signature,
        data=HashOutput(algorithm=details.proto_hash, digest=request.digest),
    )