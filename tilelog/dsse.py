"""Validation and canonicalisation of DSSE envelope requests."""

from __future__ import annotations

import base64
import binascii
import hashlib
from dataclasses import dataclass, field
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from .algorithms import AlgorithmDetails, AlgorithmRegistry, UnsupportedAlgorithmError, get_algorithm_details
from .models import DSSELogEntry, DSSERequest, Envelope, EnvelopeSignature, HashAlgorithm, HashOutput, Signature, Verifier
from .validation import ValidationError, validate_verifier
from .verifiers import CertificateVerifier, KeyVerifier, PublicKeyVerifier


@dataclass
class DsseSignature:
    """A DSSE signature with base64-encoded signature bytes."""

    sig: str = ""
    keyid: str = ""


@dataclass
class DsseEnvelope:
    """A DSSE envelope in its JSON form, with base64-encoded payload."""

    payload: str = ""
    payload_type: str = ""
    signatures: list[DsseSignature] = field(default_factory=list)


def pae(payload_type: str, payload: bytes) -> bytes:
    """Return the DSSE pre-authentication encoding of a payload."""
    type_bytes = payload_type.encode("utf-8")
    return b"DSSEv1 %d %s %d %s" % (len(type_bytes), type_bytes, len(payload), payload)


def _b64decode(text: str) -> bytes:
    return base64.b64decode(text, validate=True)


def from_proto(envelope: Envelope) -> DsseEnvelope:
    """Convert an envelope with raw bytes to its base64 JSON form."""
    return DsseEnvelope(
        payload=base64.b64encode(envelope.payload).decode("ascii"),
        payload_type=envelope.payload_type,
        signatures=[
            DsseSignature(sig=base64.b64encode(s.sig).decode("ascii"), keyid=s.keyid) for s in envelope.signatures
        ],
    )


def to_proto(envelope: DsseEnvelope) -> Envelope:
    """Convert a base64 JSON-form envelope to one with raw bytes."""
    try:
        payload = _b64decode(envelope.payload)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"failed to decode dsse payload: {exc}") from exc
    signatures = []
    for s in envelope.signatures:
        try:
            sig = _b64decode(s.sig)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"failed to decode dsse signature: {exc}") from exc
        signatures.append(EnvelopeSignature(sig=sig, keyid=s.keyid))
    return Envelope(payload=payload, payload_type=envelope.payload_type, signatures=signatures)


def _validate(request: DSSERequest) -> None:
    if request.envelope is None:
        raise ValidationError("missing envelope")
    if not request.verifiers:
        raise ValidationError("missing verifiers")
    for v in request.verifiers:
        try:
            validate_verifier(v)
        except ValidationError as exc:
            raise ValidationError(f"invalid verifier: {exc}") from exc
    if not request.envelope.signatures:
        raise ValidationError("envelope missing signatures")
    if any(s is None or not s.sig for s in request.envelope.signatures):
        raise ValidationError("envelope signature empty")


def _extract_verifiers(request: DSSERequest) -> list[tuple[Verifier, KeyVerifier]]:
    result = []
    for v in request.verifiers:
        if v.public_key is not None:
            try:
                result.append((v, PublicKeyVerifier(v.public_key.raw_bytes)))
            except ValueError as exc:
                raise ValueError(f"parsing public key: {exc}") from exc
        elif v.x509_certificate is not None:
            try:
                result.append((v, CertificateVerifier(v.x509_certificate.raw_bytes)))
            except ValueError as exc:
                raise ValueError(f"parsing certificate: {exc}") from exc
        else:
            raise ValidationError("must contain either a public key or X.509 certificate")
    return result


def _verifies(key: Any, details: AlgorithmDetails, signature: bytes, message: bytes) -> bool:
    try:
        if isinstance(key, ec.EllipticCurvePublicKey):
            key.verify(signature, message, ec.ECDSA(details.hash_algorithm()))
        elif isinstance(key, rsa.RSAPublicKey):
            pad = (
                padding.PSS(mgf=padding.MGF1(details.hash_algorithm()), salt_length=padding.PSS.AUTO)
                if details.rsa_pss
                else padding.PKCS1v15()
            )
            key.verify(signature, message, pad, details.hash_algorithm())
        elif isinstance(key, ed25519.Ed25519PublicKey):
            key.verify(signature, message)
        else:
            return False
    except (InvalidSignature, ValueError, TypeError):
        return False
    return True


def _verify_envelope(
    verifiers: list[tuple[Verifier, KeyVerifier]], envelope: Envelope, registry: AlgorithmRegistry
) -> dict[bytes, Verifier]:
    message = pae(envelope.payload_type, envelope.payload)
    remaining = {s.sig for s in envelope.signatures}
    accepted_by: dict[bytes, Verifier] = {}
    for proto_verifier, key_verifier in verifiers:
        if not remaining:
            break
        try:
            details = get_algorithm_details(proto_verifier.key_details)
        except ValueError as exc:
            raise ValueError(f"getting key algorithm details: {exc}") from exc
        key = key_verifier.public_key()
        if not registry.check(key, details.hash_name):
            raise UnsupportedAlgorithmError(key, details.hash_name)
        accepted = [s.sig for s in envelope.signatures if _verifies(key, details, s.sig, message)]
        if not accepted:
            raise ValueError(
                "could not verify envelope: accepted signatures do not match threshold, Found: 0, Expected 1"
            )
        for sig in accepted:
            remaining.discard(sig)
            accepted_by[sig] = proto_verifier
    if remaining:
        raise ValueError("all signatures must have a key that verifies it")
    return accepted_by


def to_log_entry(request: DSSERequest, registry: AlgorithmRegistry) -> DSSELogEntry:
    """Validate a request, verify every envelope signature and return the log entry.

    Signatures in the entry are sorted by their raw bytes.
    """
    _validate(request)
    verifiers = _extract_verifiers(request)
    accepted_by = _verify_envelope(verifiers, request.envelope, registry)
    signatures = [Signature(content=sig, verifier=accepted_by[sig]) for sig in sorted(accepted_by)]
    return DSSELogEntry(
        payload_hash=HashOutput(
            algorithm=HashAlgorithm.SHA2_256,
            digest=hashlib.sha256(request.envelope.payload).digest(),
        ),
        signatures=signatures,
    )