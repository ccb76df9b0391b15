import base64
import hashlib

import pytest

from tilelog.algorithms import AlgorithmRegistry
from tilelog.dsse import DsseEnvelope, DsseSignature, from_proto, pae, to_log_entry, to_proto
from tilelog.models import (
    DSSERequest,
    Envelope,
    EnvelopeSignature,
    HashAlgorithm,
    PublicKey,
    PublicKeyDetails,
    Verifier,
    X509Certificate,
)

PEM_PUBLIC_KEY = """-----BEGIN PUBLIC KEY-----
MFkwEwYHKoZIzj0CAQYIKoZIzj0DAQcDQgAE850nB+WrwXzivt7yFbhFKw/8M2pa
qSTHiQhkA4/0ZAsJtmzn/v4HdeZKTCQcsHq5IwM/LtbmEdv9ChO9M3cg9g==
-----END PUBLIC KEY-----"""
PEM_CERT = """-----BEGIN CERTIFICATE-----
MIICGTCCAb+gAwIBAgIUWi7MFKfQ+/QSDFb0RjUBmyvOCu0wCgYIKoZIzj0EAwIw
YTELMAkGA1UEBhMCQVUxEzARBgNVBAgMClNvbWUtU3RhdGUxITAfBgNVBAoMGElu
dGVybmV0IFdpZGdpdHMgUHR5IEx0ZDEaMBgGA1UEAwwRdGVzdC5zaWdzdG9yZS5k
ZXYwIBcNMjUwMzI3MTgwNjAwWhgPMjEyNTAzMDMxODA2MDBaMGExCzAJBgNVBAYT
AkFVMRMwEQYDVQQIDApTb21lLVN0YXRlMSEwHwYDVQQKDBhJbnRlcm5ldCBXaWRn
aXRzIFB0eSBMdGQxGjAYBgNVBAMMEXRlc3Quc2lnc3RvcmUuZGV2MFkwEwYHKoZI
zj0CAQYIKoZIzj0DAQcDQgAEYJSwH/PInqkK+Um3iMPswCJg9SgypKpWY9onmsAJ
Sj/nGF5ZiEOLfD7KJ747MtBrQ/lRJTXW5aEs9brVKOwrXqNTMFEwHQYDVR0OBBYE
FAFlFaiDwXiV0qh7PILjNrp1zdYGMB8GA1UdIwQYMBaAFAFlFaiDwXiV0qh7PILj
Nrp1zdYGMA8GA1UdEwEB/wQFMAMBAf8wCgYIKoZIzj0EAwIDSAAwRQIhALrgqHZR
5glHunRCQ60XVtn7xEUvHIkyWdhQvocrEQ+KAiAlucBaXZ5NQ9viz1ATrdSyuj+a
atI4zS+80vbts4NEFA==
-----END CERTIFICATE-----"""
PEM_PUBLIC_KEY_P384 = """-----BEGIN PUBLIC KEY-----
MHYwEAYHKoZIzj0CAQYFK4EEACIDYgAEhM6AR/E5+rwuiWx5YE07ZpSNlG9NCFLb
m+gjNn0q5uByc7GmCwH3fUF3SFyTDCm6+lm9DMiSQHpFqt1IP6HpnAzMwseTOsS7
cc1SxluRyLGYAJEFcNxc01Y/9cT79mf/
-----END PUBLIC KEY-----"""

KEY_SIG = base64.b64decode(
    "MEUCIQCSWas1Y9bI7aDNrBdHlzrFH8ch7B7IM+pJK86mtjkbJAIgaeCltz6vs20DP2sJ7IBihvcrdqGn3ivuV/KNPlMOetk="
)
CERT_SIG = base64.b64decode(
    "MEUCIQDoYuLoinEz/gM6B+hEn/0d47lmRDitQ3LfL9vH0sF/gQIgPqVgoBTRsMSPYMXYuJYYCIaTpnuppqQaTSTRn0ubwLI="
)
KEY_SIG_P384 = base64.b64decode(
    "MGYCMQDdKEzOCt71AzF+KKxrDQgCcPtsnfPZORmPlFZutXFqM8y/fi77sEAOjYkVdc4xxJwCMQC/4JuQ/bDWQV4QzPRA/u03pG49iTUDskoCFIrmabe0XyC9JkY1yyeuNS2LixMCaCI="
)
PAYLOAD = b"payload"
PAYLOAD_TYPE = "application/vnd.in-toto+json"
P256 = PublicKeyDetails.PKIX_ECDSA_P256_SHA_256
P384 = PublicKeyDetails.PKIX_ECDSA_P384_SHA_384


def _der(pem):
    return base64.b64decode("".join(line for line in pem.splitlines() if not line.startswith("-----")))


def _key(pem=PEM_PUBLIC_KEY, details=P256):
    return Verifier(public_key=PublicKey(raw_bytes=_der(pem)), key_details=details)


def _envelope(*sigs):
    return Envelope(
        payload=PAYLOAD, payload_type=PAYLOAD_TYPE, signatures=[EnvelopeSignature(sig=s) for s in sigs]
    )


def _registry(allowed=None):
    return AlgorithmRegistry(allowed if allowed is not None else [P256, P384])


def test_valid_dsse():
    entry = to_log_entry(DSSERequest(envelope=_envelope(KEY_SIG), verifiers=[_key()]), _registry())
    assert entry.payload_hash.algorithm == HashAlgorithm.SHA2_256
    assert entry.payload_hash.digest == hashlib.sha256(PAYLOAD).digest()
    assert [s.content for s in entry.signatures] == [KEY_SIG]
    assert entry.signatures[0].verifier == _key()


def test_valid_dsse_with_certificate():
    verifier = Verifier(x509_certificate=X509Certificate(raw_bytes=_der(PEM_CERT)), key_details=P256)
    entry = to_log_entry(DSSERequest(envelope=_envelope(CERT_SIG), verifiers=[verifier]), _registry())
    assert [s.content for s in entry.signatures] == [CERT_SIG]
    assert entry.signatures[0].verifier == verifier


@pytest.mark.parametrize("order", [(KEY_SIG, KEY_SIG_P384), (KEY_SIG_P384, KEY_SIG)])
def test_multiple_signatures_canonical_order(order):
    request = DSSERequest(envelope=_envelope(*order), verifiers=[_key(), _key(PEM_PUBLIC_KEY_P384, P384)])
    entry = to_log_entry(request, _registry())
    assert [s.content for s in entry.signatures] == [KEY_SIG, KEY_SIG_P384]
    assert entry.signatures[0].verifier == _key()
    assert entry.signatures[1].verifier == _key(PEM_PUBLIC_KEY_P384, P384)


@pytest.mark.parametrize(
    "request_,message",
    [
        (DSSERequest(verifiers=[_key()]), "missing envelope"),
        (DSSERequest(envelope=_envelope(KEY_SIG)), "missing verifiers"),
        (
            DSSERequest(
                envelope=_envelope(b"sig"), verifiers=[Verifier(public_key=PublicKey(), key_details=P256)]
            ),
            "invalid verifier",
        ),
        (DSSERequest(envelope=_envelope(), verifiers=[_key()]), "envelope missing signatures"),
        (
            DSSERequest(envelope=_envelope(base64.b64decode("Zm9vYmFyCg==")), verifiers=[_key()]),
            "could not verify envelope: accepted signatures do not match threshold, Found: 0, Expected 1",
        ),
    ],
)
def test_errors(request_, message):
    with pytest.raises(ValueError) as info:
        to_log_entry(request_, _registry())
    assert message in str(info.value)


def test_mismatched_key_algorithm():
    registry = _registry([PublicKeyDetails.PKIX_RSA_PKCS1V15_4096_SHA256, PublicKeyDetails.PKIX_ED25519_PH])
    with pytest.raises(ValueError) as info:
        to_log_entry(DSSERequest(envelope=_envelope(KEY_SIG), verifiers=[_key()]), registry)
    assert "unsupported entry algorithm for ECDSA key, curve P-256, digest SHA-256" in str(info.value)


CONVERTER_CASES = [
    [DsseSignature(sig="c2lnbmF0dXJlCg==", keyid="id1")],
    [DsseSignature(sig="c2lnbmF0dXJlCg==")],
    [DsseSignature(sig="c2lnbmF0dXJlCg==", keyid="id1"), DsseSignature(sig="c2lnbmF0dXJlMgo=", keyid="id2")],
]


@pytest.mark.parametrize("sigs", CONVERTER_CASES)
def test_to_proto(sigs):
    env = DsseEnvelope(payload="cGF5bG9hZAo=", payload_type=PAYLOAD_TYPE, signatures=sigs)
    converted = to_proto(env)
    assert converted.payload == b"payload\n"
    assert converted.payload_type == PAYLOAD_TYPE
    assert [(s.sig, s.keyid) for s in converted.signatures] == [
        (base64.b64decode(s.sig), s.keyid) for s in sigs
    ]


@pytest.mark.parametrize("sigs", CONVERTER_CASES)
def test_from_proto_round_trip(sigs):
    env = DsseEnvelope(payload="cGF5bG9hZAo=", payload_type=PAYLOAD_TYPE, signatures=sigs)
    assert from_proto(to_proto(env)) == env


def test_to_proto_bad_payload():
    with pytest.raises(ValueError, match="failed to decode dsse payload"):
        to_proto(DsseEnvelope(payload="!!!", payload_type=PAYLOAD_TYPE))


def test_pae_encoding():
    assert pae("t", b"abc") == b"DSSEv1 1 t 3 abc"