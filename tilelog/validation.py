"""Checks that request verifiers carry the fields they need."""

from __future__ import annotations

from .models import Verifier


class ValidationError(ValueError):
    """A request is missing a required field."""


def validate_verifier(verifier: Verifier) -> None:
    """Raise ValidationError if the verifier lacks key or certificate bytes."""
    public_key = verifier.public_key
    certificate = verifier.x509_certificate
    if public_key is None and certificate is None:
        raise ValidationError("missing signature public key or X.509 certificate")
    if public_key is not None and not public_key.raw_bytes:
        raise ValidationError("missing public key raw bytes")
    if certificate is not None and not certificate.raw_bytes:
        raise ValidationError("missing X.509 certificate raw bytes")