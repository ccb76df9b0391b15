"""Log checkpoints and the signed notes that carry them."""

from __future__ import annotations

import base64
import binascii
import hashlib
from dataclasses import dataclass
from typing import Any, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

_SIG_PREFIX = "\u2014 "
_CURVE_HASHES = {"secp256r1": hashes.SHA256, "secp384r1": hashes.SHA384, "secp521r1": hashes.SHA512}


class CheckpointError(ValueError):
    """A checkpoint or its signed note cannot be parsed or verified."""


@dataclass(frozen=True)
class Checkpoint:
    """The origin, size and root hash of a log at one point in time."""

    origin: str
    size: int
    hash: bytes

    def marshal(self) -> bytes:
        """Return the checkpoint body in its text form."""
        encoded = base64.b64encode(self.hash).decode("ascii")
        return f"{self.origin}\n{self.size}\n{encoded}\n".encode("utf-8")


def unmarshal_checkpoint(data: Union[bytes, str]) -> Checkpoint:
    """Parse the first three lines of a checkpoint, ignoring what follows."""
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    parts = data.split("\n", 3)
    if len(parts) < 4:
        raise CheckpointError("invalid checkpoint - too few newlines")
    origin, size_text, hash_text = parts[:3]
    if not origin:
        raise CheckpointError("invalid checkpoint - empty origin")
    if not size_text.isdigit():
        raise CheckpointError(f"invalid checkpoint - size invalid: {size_text!r}")
    try:
        root = base64.b64decode(hash_text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CheckpointError(f"invalid checkpoint - invalid hash: {exc}") from exc
    return Checkpoint(origin=origin, size=int(size_text), hash=root)


def _key_hash(name: str, public_key: Any) -> bytes:
    der = public_key.public_bytes(serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)
    return hashlib.sha256(name.encode("utf-8") + b"\n" + der).digest()[:4]


class NoteVerifier:
    """Verifies note signatures made by a named key."""

    def __init__(self, name: str, public_key: Any) -> None:
        self.name = name
        self.public_key = public_key
        self.key_hash = _key_hash(name, public_key)

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Tell whether the signature over message is valid for this key."""
        key = self.public_key
        try:
            if isinstance(key, ec.EllipticCurvePublicKey):
                key.verify(signature, message, ec.ECDSA(_CURVE_HASHES[key.curve.name]()))
            elif isinstance(key, ed25519.Ed25519PublicKey):
                key.verify(signature, message)
            elif isinstance(key, rsa.RSAPublicKey):
                key.verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
            else:
                return False
        except (InvalidSignature, KeyError, ValueError):
            return False
        return True


def sign_note(text: str, name: str, private_key: Any) -> str:
    """Sign note text with a private key and return the signed note."""
    if not text.endswith("\n"):
        raise CheckpointError("note text must end with a newline")
    message = text.encode("utf-8")
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        sig = private_key.sign(message, ec.ECDSA(_CURVE_HASHES[private_key.curve.name]()))
    elif isinstance(private_key, ed25519.Ed25519PrivateKey):
        sig = private_key.sign(message)
    elif isinstance(private_key, rsa.RSAPrivateKey):
        sig = private_key.sign(message, padding.PKCS1v15(), hashes.SHA256())
    else:
        raise CheckpointError("unsupported private key type")
    blob = base64.b64encode(_key_hash(name, private_key.public_key()) + sig).decode("ascii")
    return f"{text}\n{_SIG_PREFIX}{name} {blob}\n"


def _open_note(text: str, verifier: NoteVerifier) -> str:
    split = text.rfind("\n\n")
    if split < 0:
        raise CheckpointError("malformed note")
    body, signatures = text[: split + 1], text[split + 2 :]
    message = body.encode("utf-8")
    for line in signatures.splitlines():
        if not line.startswith(_SIG_PREFIX):
            raise CheckpointError("malformed note signature line")
        fields = line[len(_SIG_PREFIX) :].split(" ")
        if len(fields) != 2 or fields[0] != verifier.name:
            continue
        try:
            blob = base64.b64decode(fields[1], validate=True)
        except (binascii.Error, ValueError):
            raise CheckpointError("malformed note signature") from None
        if blob[:4] == verifier.key_hash and verifier.verify(message, blob[4:]):
            return body
    raise CheckpointError("note has no verifiable signatures")


def parse_checkpoint(text: Union[str, bytes], verifier: NoteVerifier) -> Checkpoint:
    """Verify a signed checkpoint note and return the checkpoint it holds."""
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    body = _open_note(text, verifier)
    checkpoint = unmarshal_checkpoint(body)
    if checkpoint.origin != verifier.name:
        raise CheckpointError(f"unexpected checkpoint origin {checkpoint.origin!r}")
    return checkpoint