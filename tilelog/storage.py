"""Adding entries to a tiled log and building their inclusion proofs."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .checkpoint import unmarshal_checkpoint
from .merkle import ProofError, hash_children, hash_leaf, verify_inclusion
from .models import CheckpointEnvelope, InclusionProof, TransparencyLogEntry
from .safeint import SafeInt64

logger = logging.getLogger(__name__)

TILE_WIDTH = 256
TILE_HEIGHT = 8
HASH_SIZE = 32

DEFAULT_BATCH_MAX_SIZE = 256
DEFAULT_BATCH_MAX_AGE = 0.25
DEFAULT_CHECKPOINT_INTERVAL = 10.0
DEFAULT_PUSHBACK_MAX_OUTSTANDING = 4096
ANTISPAM_LRU_SIZE = 256


class DuplicateError(Exception):
    """An equivalent entry is already in the log."""

    def __init__(self, index: int) -> None:
        super().__init__(f"an equivalent entry already exists in the transparency log with index {index}")
        self.index = index


class InclusionProofVerificationError(Exception):
    """A freshly built inclusion proof did not verify."""

    def __init__(self, index: int, error: Exception) -> None:
        super().__init__(f"verifying inclusion proof for index {index}: {error}")
        self.index = index
        self.error = error


@dataclass(frozen=True)
class Entry:
    """Data to be appended to the log."""

    data: bytes

    def leaf_hash(self) -> bytes:
        """Return the Merkle leaf hash of the data."""
        return hash_leaf(self.data)


@dataclass(frozen=True)
class Index:
    """Where an entry was sequenced, and whether it duplicated an earlier one."""

    index: int
    is_dup: bool = False


@dataclass
class AppendOptions:
    """Settings for appending to the log; times are in seconds."""

    checkpoint_signer: Any = None
    batch_max_size: int = DEFAULT_BATCH_MAX_SIZE
    batch_max_age: float = DEFAULT_BATCH_MAX_AGE
    checkpoint_interval: float = DEFAULT_CHECKPOINT_INTERVAL
    pushback_max_outstanding: int = DEFAULT_PUSHBACK_MAX_OUTSTANDING
    antispam_lru_size: int = 0
    antispam: Any = None


def with_lifecycle_options(
    options: AppendOptions, batch_max_size: int, batch_max_age: float, checkpoint_interval: float, pushback: int
) -> AppendOptions:
    """Set batching, checkpoint and pushback options and return the options."""
    options.batch_max_size = batch_max_size
    options.batch_max_age = batch_max_age
    options.checkpoint_interval = checkpoint_interval
    options.pushback_max_outstanding = pushback
    return options


def with_antispam_options(options: AppendOptions, antispam: Any) -> AppendOptions:
    """Enable in-memory antispam, backed by an optional persistent store."""
    options.antispam_lru_size = ANTISPAM_LRU_SIZE
    options.antispam = antispam
    return options


TileReader = Callable[[int, int, int], bytes]


class ProofBuilder:
    """Builds inclusion proofs for a tree of a given size from stored tiles."""

    def __init__(self, size: int, read_tile: TileReader) -> None:
        self.size = size
        self._read_tile = read_tile
        self._tiles: dict[tuple[int, int, int], bytes] = {}

    def _tile(self, tile_level: int, tile_index: int) -> bytes:
        count = self.size >> (TILE_HEIGHT * tile_level)
        width = min(TILE_WIDTH, count - tile_index * TILE_WIDTH)
        p = 0 if width == TILE_WIDTH else width
        key = (tile_level, tile_index, p)
        if key not in self._tiles:
            self._tiles[key] = self._read_tile(*key)
        return self._tiles[key]

    def _node(self, level: int, index: int) -> bytes:
        tile_level, sub = divmod(level, TILE_HEIGHT)
        first = index << sub
        tile_index, offset = divmod(first, TILE_WIDTH)
        tile = self._tile(tile_level, tile_index)
        nodes = [tile[(offset + i) * HASH_SIZE : (offset + i + 1) * HASH_SIZE] for i in range(1 << sub)]
        if any(len(n) != HASH_SIZE for n in nodes):
            raise ProofError(f"tile level {tile_level} index {tile_index} is too short")
        while len(nodes) > 1:
            nodes = [hash_children(nodes[i], nodes[i + 1]) for i in range(0, len(nodes), 2)]
        return nodes[0]

    def _subtree(self, lo: int, hi: int) -> bytes:
        n = hi - lo
        if n & (n - 1) == 0 and lo % n == 0:
            level = n.bit_length() - 1
            return self._node(level, lo >> level)
        k = 1 << ((n - 1).bit_length() - 1)
        return hash_children(self._subtree(lo, lo + k), self._subtree(lo + k, hi))

    def _path(self, index: int, lo: int, hi: int) -> list[bytes]:
        n = hi - lo
        if n == 1:
            return []
        k = 1 << ((n - 1).bit_length() - 1)
        if index < lo + k:
            return self._path(index, lo, lo + k) + [self._subtree(lo + k, hi)]
        return self._path(index, lo + k, hi) + [self._subtree(lo, lo + k)]

    def inclusion_proof(self, index: int) -> list[bytes]:
        """Return the hashes proving the leaf at index is in the tree."""
        if not 0 <= index < self.size:
            raise ProofError(f"index {index} out of range for tree size {self.size}")
        return self._path(index, 0, self.size)


class Storage:
    """Adds entries to a log and waits for them to be published in a checkpoint.

    ``add_fn`` takes an Entry and returns a callable that yields its Index;
    ``read_checkpoint`` returns the latest signed checkpoint; ``read_tile``
    takes a level, index and partial width and returns the tile bytes.
    """

    def __init__(
        self,
        origin: str,
        add_fn: Callable[[Entry], Callable[[], Index]],
        read_checkpoint: Callable[[], bytes],
        read_tile: TileReader,
        poll_interval: float = 1.0,
    ) -> None:
        self.origin = origin
        self._add_fn = add_fn
        self._read_checkpoint = read_checkpoint
        self._read_tile = read_tile
        self.poll_interval = poll_interval

    def add(self, entry: Entry) -> TransparencyLogEntry:
        """Add an entry, wait for it to be sequenced, and return it with its inclusion proof."""
        try:
            index, is_dup, body = self._add_entry(entry)
        except Exception as exc:
            raise RuntimeError(f"add entry: {exc}") from exc
        if is_dup:
            raise DuplicateError(int(index))
        try:
            proof = self._build_proof(index, body, entry.leaf_hash())
        except InclusionProofVerificationError:
            raise
        except Exception as exc:
            raise RuntimeError(f"building inclusion proof: {exc}") from exc
        return TransparencyLogEntry(
            log_index=int(index), inclusion_proof=proof, canonicalized_body=entry.data
        )

    def read_tile(self, level: int, index: int, p: int) -> bytes:
        """Return the raw bytes of a tile, with p the partial width or 0 if full."""
        try:
            return self._read_tile(level, index, p)
        except Exception as exc:
            raise RuntimeError(f"reading tile level {level} index {index} p {p}: {exc}") from exc

    def _add_entry(self, entry: Entry) -> tuple[SafeInt64, bool, bytes]:
        try:
            result = self._add_fn(entry)()
            while True:
                body = self._read_checkpoint()
                if unmarshal_checkpoint(body).size > result.index:
                    break
                time.sleep(self.poll_interval)
        except Exception as exc:
            raise RuntimeError(f"await: {exc}") from exc
        try:
            index = SafeInt64(result.index)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid index: {exc}") from exc
        return index, result.is_dup, body

    def _build_proof(self, index: SafeInt64, signed: bytes, leaf_hash: bytes) -> InclusionProof:
        try:
            checkpoint = unmarshal_checkpoint(signed)
        except ValueError as exc:
            raise ValueError(f"unmarshalling checkpoint: {exc}") from exc
        builder = ProofBuilder(checkpoint.size, self.read_tile)
        try:
            hashes = builder.inclusion_proof(int(index))
        except Exception as exc:
            raise RuntimeError(f"generating inclusion proof: {exc}") from exc
        try:
            size = SafeInt64(checkpoint.size)
        except (TypeError, ValueError):
            raise ValueError(f"invalid tree size: {checkpoint.size}") from None
        try:
            verify_inclusion(int(index), int(size), leaf_hash, hashes, checkpoint.hash)
        except ProofError as exc:
            raise InclusionProofVerificationError(int(index), exc) from exc
        envelope = signed.decode("utf-8") if isinstance(signed, bytes) else signed
        return InclusionProof(
            log_index=int(index),
            root_hash=checkpoint.hash.hex().encode("ascii"),
            tree_size=int(size),
            hashes=hashes,
            checkpoint=CheckpointEnvelope(envelope=envelope),
        )