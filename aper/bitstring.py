"""The ASN.1 BIT STRING value and the errors raised by the codec."""

from __future__ import annotations

from dataclasses import dataclass


class AperError(ValueError):
    """Raised when a value cannot be encoded or decoded."""


class InvalidError(AperError):
    """Raised for values or data that the codec rejects as invalid."""


def _byte_count(num_bits: int) -> int:
    return (num_bits + 7) // 8


@dataclass
class BitString:
    """A string of ``length`` bits stored most significant bit first in ``value``."""

    value: bytes = b""
    length: int = 0

    def update_value(self, new_bytes: bytes) -> bytes:
        """Replace the stored bytes; their count must match ``length``."""
        expected = _byte_count(self.length)
        if len(new_bytes) != expected:
            raise InvalidError(f"too many bytes {len(new_bytes)}. Expecting {expected}")
        self.value = bytes(new_bytes)
        return self.value

    def truncate_value(self) -> bytes:
        """Clear the unused trailing bits of the last byte."""
        if self.length == 0:
            raise InvalidError("Length should not be 0")
        expected = _byte_count(self.length)
        if len(self.value) != expected:
            raise InvalidError(f"too many bytes {len(self.value)}. Expecting {expected}")
        trailing_bits = expected * 8 - self.length
        last = self.value[-1] & (0xFF << trailing_bits) & 0xFF
        self.value = bytes(self.value[:-1]) + bytes([last])
        return self.value