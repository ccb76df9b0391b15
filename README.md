# tilelog

Building blocks for a tile-based transparency log. tilelog checks and
converts incoming log entries, verifies their signatures, and verifies
Merkle inclusion and consistency proofs against signed checkpoints.

## Installation

```
pip install tilelog
```

Install the test extra to run the test suite:

```
pip install "tilelog[test]"
pytest
```

## What it covers

- **Entry types** (`tilelog.models`): hashedrekord and DSSE requests and log
  entries, verifiers, inclusion proofs, and `get_kind_version` for working
  out which kind a request is.
- **Request validation** (`tilelog.validation`): `validate_verifier` raises
  `ValidationError` when a verifier has no key, no certificate, or an empty
  one.
- **Key material** (`tilelog.verifiers`): `PublicKeyVerifier` wraps a
  DER-encoded PKIX public key and `CertificateVerifier` wraps a DER-encoded
  X.509 certificate. Each gives its public key, a PEM form through `str()`,
  and an `Identity` that holds a SHA-256 fingerprint.
- **Algorithm policy** (`tilelog.algorithms`): an `AlgorithmRegistry` built
  from the allowed `PublicKeyDetails` values. An entry whose key and digest
  pair is not allowed raises `UnsupportedAlgorithmError`.
- **Entry conversion** (`tilelog.hashedrekord`, `tilelog.dsse`):
  `to_log_entry(request, registry)` validates a request, verifies its
  signatures and returns the log entry to be stored. DSSE signatures come
  back in a fixed order.
- **Proofs and checkpoints** (`tilelog.merkle`, `tilelog.checkpoint`,
  `tilelog.verify`): RFC 6962 leaf and node hashing, inclusion and
  consistency proof checks, checkpoint parsing, and verification of signed
  checkpoint notes.
- **Log storage** (`tilelog.storage`): `Storage` adds an entry, waits until
  it is sequenced, and returns a `TransparencyLogEntry` with an inclusion
  proof that has already been verified. Adding the same entry twice raises
  `DuplicateError`.
- **Signing keys** (`tilelog.signer`): `new_signer_verifier` loads a private
  key from a PEM file, which may be protected by a password.

## Example

```python
from tilelog.algorithms import AlgorithmRegistry
from tilelog.hashedrekord import to_log_entry
from tilelog.models import (
    HashedRekordRequest, PublicKey, PublicKeyDetails, Signature, Verifier,
)

registry = AlgorithmRegistry([PublicKeyDetails.PKIX_ECDSA_P256_SHA_256])
request = HashedRekordRequest(
    signature=Signature(
        content=signature_bytes,
        verifier=Verifier(
            public_key=PublicKey(raw_bytes=der_public_key),
            key_details=PublicKeyDetails.PKIX_ECDSA_P256_SHA_256,
        ),
    ),
    digest=sha256_digest,
)
entry = to_log_entry(request, registry)
```

Verifying an entry that the log returned:

```python
from tilelog.verify import verify_log_entry

verify_log_entry(entry, note_verifier)  # raises if the checkpoint or proof is bad
```