"""Entry validation, signature checks and Merkle proof verification for a tile-based transparency log."""

__version__ = "0.1.0"