"""Reading runs of bits out of a byte string."""

from __future__ import annotations

from .bitstring import AperError

_UINT64_MASK = (1 << 64) - 1


def get_bit_string(src: bytes, bits_offset: int, num_bits: int) -> bytes:
    """Return ``num_bits`` bits starting ``bits_offset`` bits into ``src``.

    The bits are left aligned in the result and unused trailing bits are zero.
    """
    if bits_offset < 0 or num_bits < 0:
        raise AperError("Bit offset and bit count must not be negative")
    bits_left = len(src) * 8 - bits_offset
    if num_bits > bits_left:
        raise AperError(
            f"Get bits overflow, requireBits: {num_bits}, leftBits: {bits_left}"
        )
    if num_bits == 0:
        return b""
    byte_len = (bits_offset + num_bits + 7) >> 3
    window = int.from_bytes(src[:byte_len], "big")
    bits = (window >> (byte_len * 8 - bits_offset - num_bits)) & ((1 << num_bits) - 1)
    out_len = (num_bits + 7) >> 3
    return (bits << (out_len * 8 - num_bits)).to_bytes(out_len, "big")


def get_bits_value(src: bytes, bits_offset: int, num_bits: int) -> int:
    """Return the unsigned value of ``num_bits`` bits, kept to 64 bits."""
    data = get_bit_string(src, bits_offset, num_bits)
    value = int.from_bytes(data, "big") >> (len(data) * 8 - num_bits)
    return value & _UINT64_MASK