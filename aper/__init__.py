"""Bit-level reading and writing of ASN.1 Aligned PER primitives."""

__version__ = "0.1.0"
__all__ = ["bits", "bitstring", "reader", "writer"]