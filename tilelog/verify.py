"""Client-side verification of log entries, checkpoints and consistency."""

from __future__ import annotations

from typing import Sequence

from .checkpoint import Checkpoint, CheckpointError, NoteVerifier, parse_checkpoint
from .merkle import ProofError, hash_leaf, verify_consistency, verify_inclusion
from .models import TransparencyLogEntry
from .safeint import SafeInt64


def verify_inclusion_proof(entry: TransparencyLogEntry, checkpoint: Checkpoint) -> None:
    """Raise ProofError unless the entry's inclusion proof matches the checkpoint."""
    leaf = hash_leaf(entry.canonicalized_body)
    try:
        index = SafeInt64(entry.log_index)
    except (TypeError, ValueError) as exc:
        raise ProofError(f"invalid index: {exc}") from exc
    hashes = entry.inclusion_proof.hashes if entry.inclusion_proof else []
    try:
        verify_inclusion(int(index), checkpoint.size, leaf, hashes, checkpoint.hash)
    except ProofError as exc:
        raise ProofError(f"verifying inclusion: {exc}") from exc


def verify_checkpoint(unverified: str, verifier: NoteVerifier) -> Checkpoint:
    """Verify the signature on a checkpoint note and return the checkpoint."""
    try:
        return parse_checkpoint(unverified, verifier)
    except CheckpointError as exc:
        raise CheckpointError(f"unverified checkpoint signature: {exc}") from exc


def verify_log_entry(entry: TransparencyLogEntry, verifier: NoteVerifier) -> None:
    """Verify an entry's checkpoint signature and then its inclusion proof."""
    proof = entry.inclusion_proof
    envelope = proof.checkpoint.envelope if proof and proof.checkpoint else ""
    checkpoint = verify_checkpoint(envelope, verifier)
    verify_inclusion_proof(entry, checkpoint)


def verify_consistency_proof(
    proof: Sequence[bytes], old_size: int, old_root_hash: bytes, new_unverified: str, verifier: NoteVerifier
) -> None:
    """Verify the new checkpoint and its consistency with an older size and root."""
    new_cp = verify_checkpoint(new_unverified, verifier)
    verify_consistency(old_size, new_cp.size, proof, old_root_hash, new_cp.hash)


def verify_consistency_proof_with_checkpoints(
    proof: Sequence[bytes], old_unverified: str, new_unverified: str, verifier: NoteVerifier
) -> None:
    """Verify both checkpoints and the consistency proof between them."""
    old_cp = verify_checkpoint(old_unverified, verifier)
    verify_consistency_proof(proof, old_cp.size, old_cp.hash, new_unverified, verifier)