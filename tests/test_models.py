import pytest

from tilelog.models import (
    DSSERequest,
    HashedRekordRequest,
    KindVersion,
    Signature,
    TransparencyLogEntry,
    get_kind_version,
)


def test_hashedrekord_kind_version():
    assert get_kind_version(HashedRekordRequest()) == KindVersion(
        kind="hashedrekord", version="0.0.2"
    )


def test_dsse_kind_version():
    assert get_kind_version(DSSERequest()) == KindVersion(kind="dsse", version="0.0.2")


@pytest.mark.parametrize("spec", [None, Signature(), "hashedrekord"])
def test_invalid_type(spec):
    with pytest.raises(TypeError, match="invalid type, request must be for hashedrekord or dsse"):
        get_kind_version(spec)


def test_request_defaults_are_empty():
    request = DSSERequest()
    other = DSSERequest()
    request.verifiers.append(None)
    assert other.verifiers == []
    assert HashedRekordRequest().digest == b""


def test_log_entry_defaults():
    entry = TransparencyLogEntry()
    assert entry.log_index == 0
    assert entry.canonicalized_body == b""
    assert entry.inclusion_proof is None