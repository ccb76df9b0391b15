"""Request, entry and proof records exchanged with the transparency log."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Union


class PublicKeyDetails(IntEnum):
    """Signing key type and digest algorithm pairs a verifier may declare."""

    PUBLIC_KEY_DETAILS_UNSPECIFIED = 0
    PKIX_ECDSA_P256_SHA_256 = 5
    PKIX_ED25519 = 7
    PKIX_ED25519_PH = 8
    PKIX_RSA_PKCS1V15_2048_SHA256 = 9
    PKIX_RSA_PKCS1V15_3072_SHA256 = 10
    PKIX_RSA_PKCS1V15_4096_SHA256 = 11
    PKIX_ECDSA_P384_SHA_384 = 12
    PKIX_ECDSA_P521_SHA_512 = 13
    PKIX_RSA_PSS_2048_SHA256 = 16
    PKIX_RSA_PSS_3072_SHA256 = 17
    PKIX_RSA_PSS_4096_SHA256 = 18


class HashAlgorithm(IntEnum):
    """Digest algorithms recorded alongside a hash output."""

    HASH_ALGORITHM_UNSPECIFIED = 0
    SHA2_256 = 1
    SHA2_384 = 2
    SHA2_512 = 3
    SHA3_256 = 4
    SHA3_384 = 5


@dataclass
class PublicKey:
    """A DER-encoded PKIX public key."""

    raw_bytes: bytes = b""


@dataclass
class X509Certificate:
    """A DER-encoded X.509 certificate."""

    raw_bytes: bytes = b""


@dataclass
class Verifier:
    """Key material that verifies a signature, with its declared algorithm."""

    public_key: Optional[PublicKey] = None
    x509_certificate: Optional[X509Certificate] = None
    key_details: PublicKeyDetails = PublicKeyDetails.PUBLIC_KEY_DETAILS_UNSPECIFIED


@dataclass
class Signature:
    """A raw signature and the verifier that checks it."""

    content: bytes = b""
    verifier: Optional[Verifier] = None


@dataclass
class EnvelopeSignature:
    """One signature inside a DSSE envelope, with raw signature bytes."""

    sig: bytes = b""
    keyid: str = ""


@dataclass
class Envelope:
    """A DSSE envelope with a raw payload."""

    payload: bytes = b""
    payload_type: str = ""
    signatures: list[EnvelopeSignature] = field(default_factory=list)


@dataclass
class HashOutput:
    """A digest together with the algorithm that produced it."""

    algorithm: HashAlgorithm = HashAlgorithm.HASH_ALGORITHM_UNSPECIFIED
    digest: bytes = b""


@dataclass
class HashedRekordRequest:
    """A request to log a signature over an artifact digest."""

    signature: Optional[Signature] = None
    digest: bytes = b""


@dataclass
class DSSERequest:
    """A request to log a DSSE envelope and the verifiers of its signatures."""

    envelope: Optional[Envelope] = None
    verifiers: list[Verifier] = field(default_factory=list)


@dataclass
class HashedRekordLogEntry:
    """The canonical form of a hashed rekord as stored in the log."""

    signature: Optional[Signature] = None
    data: Optional[HashOutput] = None


@dataclass
class DSSELogEntry:
    """The canonical form of a DSSE envelope as stored in the log."""

    payload_hash: Optional[HashOutput] = None
    signatures: list[Signature] = field(default_factory=list)


@dataclass(frozen=True)
class KindVersion:
    """The kind of a log entry and the version of its schema."""

    kind: str
    version: str


@dataclass
class CheckpointEnvelope:
    """A signed checkpoint note in its text form."""

    envelope: str = ""


@dataclass
class InclusionProof:
    """Proof that an entry is included in a tree of a given size."""

    log_index: int = 0
    root_hash: bytes = b""
    tree_size: int = 0
    hashes: list[bytes] = field(default_factory=list)
    checkpoint: Optional[CheckpointEnvelope] = None


@dataclass
class TransparencyLogEntry:
    """An entry in the log with its index, body and inclusion proof."""

    log_index: int = 0
    inclusion_proof: Optional[InclusionProof] = None
    canonicalized_body: bytes = b""
    kind_version: Optional[KindVersion] = None


def get_kind_version(spec: Union[HashedRekordRequest, DSSERequest, None]) -> KindVersion:
    """Return the entry kind and version for a create request."""
    if isinstance(spec, HashedRekordRequest):
        return KindVersion(kind="hashedrekord", version="0.0.2")
    if isinstance(spec, DSSERequest):
        return KindVersion(kind="dsse", version="0.0.2")
    raise TypeError("invalid type, request must be for hashedrekord or dsse")