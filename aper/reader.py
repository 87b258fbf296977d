"""Bit-level reader for aligned PER encoded data."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .bits import get_bit_string, get_bits_value
from .bitstring import AperError, BitString, InvalidError

log = logging.getLogger(__name__)

_UINT64_MASK = (1 << 64) - 1


def _to_int64(value: int) -> int:
    value &= _UINT64_MASK
    return value - (1 << 64) if value >> 63 else value


def _bits_for_range(value_range: int) -> int:
    """Smallest bit count (1..8) whose span covers ``value_range``."""
    for bits in range(1, 9):
        if (1 << bits) >= value_range:
            return bits
    return 9


@dataclass
class BitReader:
    """Reads bits, lengths and primitive values from aligned PER data."""

    data: bytes
    byte_offset: int = 0
    bits_offset: int = 0
    choice_can_be_extended: bool = False

    def __post_init__(self) -> None:
        self.data = bytes(self.data)

    @property
    def at_end(self) -> bool:
        """True when every byte of the data has been consumed."""
        return self.byte_offset == len(self.data)

    def _bit_carry(self) -> None:
        self.byte_offset += self.bits_offset >> 3
        self.bits_offset &= 0x07

    def get_bit_string(self, num_bits: int) -> bytes:
        """Read ``num_bits`` bits, left aligned in the returned bytes."""
        result = get_bit_string(self.data[self.byte_offset:], self.bits_offset, num_bits)
        self.bits_offset += num_bits
        self._bit_carry()
        return result

    def get_bits_value(self, num_bits: int) -> int:
        """Read ``num_bits`` bits as an unsigned number."""
        result = get_bits_value(self.data[self.byte_offset:], self.bits_offset, num_bits)
        self.bits_offset += num_bits
        self._bit_carry()
        return result

    def parse_align_bits(self) -> None:
        """Skip to the next octet boundary; the skipped bits must be zero."""
        if self.bits_offset & 0x7:
            align_bits = 8 - (self.bits_offset & 0x7)
            if self.get_bits_value(align_bits) != 0:
                dump = self.data[: self.byte_offset + 1].hex(" ")
                raise AperError(f"Align Bit is not zero in (see last octet)\n{dump}")
        elif self.bits_offset:
            self._bit_carry()

    def parse_constraint_value(self, value_range: int) -> int:
        """Read a whole number constrained to ``value_range`` values."""
        if value_range <= 255:
            if value_range < 0:
                raise AperError("Value range is negative")
            return self.get_bits_value(_bits_for_range(value_range))
        if value_range == 256:
            num_bytes = 1
        elif value_range <= 65536:
            num_bytes = 2
        else:
            raise AperError("Constraint Value is large than 65536")
        self.parse_align_bits()
        return self.get_bits_value(num_bytes * 8)

    def parse_length(self, size_range: int) -> tuple[int, bool]:
        """Read a length determinant; return it and whether a fragment follows."""
        if 0 < size_range <= 65536:
            return self.parse_constraint_value(size_range), False
        self.parse_align_bits()
        first = self.get_bits_value(8)
        if not first & 0x80:
            return first & 0x7F, False
        if not first & 0x40:
            second = self.get_bits_value(8)
            return ((first & 0x3F) << 8) | second, False
        multiplier = first & 0x3F
        if not 1 <= multiplier <= 4:
            raise AperError("Parsed Length Out of Constraint")
        return 16384 * multiplier, True

    @staticmethod
    def _size_bounds(extended: bool, lower_bound: int | None,
                     upper_bound: int | None) -> tuple[int, int, int]:
        lb, ub, size_range = 0, -1, -1
        if not extended:
            if lower_bound is not None:
                lb = lower_bound
            if upper_bound is not None:
                ub = upper_bound
                size_range = ub - lb + 1
        if ub > 65535:
            size_range = -1
        return lb, ub, size_range

    def parse_bit_string(self, extended: bool, lower_bound: int | None,
                         upper_bound: int | None) -> BitString:
        """Read a BIT STRING with the given size constraint."""
        lb, ub, size_range = self._size_bounds(extended, lower_bound, upper_bound)
        bit_string = BitString(b"", 0)

        if size_range == 1:
            sizes = (ub + 7) >> 3
            bit_string.length = ub
            if sizes > 2:
                self.parse_align_bits()
                if self.byte_offset + sizes > len(self.data):
                    raise AperError("PER data out of range")
                bit_string.update_value(self.data[self.byte_offset:self.byte_offset + sizes])
                bit_string.truncate_value()
                self.byte_offset += sizes
                self.bits_offset = ub & 0x7
                if self.bits_offset:
                    self.byte_offset -= 1
            else:
                bit_string.update_value(self.get_bit_string(ub))
            return bit_string

        while True:
            length, repeat = self.parse_length(size_range)
            raw_length = length + lb
            if raw_length == 0:
                return bit_string
            sizes = (raw_length + 7) >> 3
            self.parse_align_bits()
            if self.byte_offset + sizes > len(self.data):
                raise InvalidError("PER data out of range")
            bit_string.length += raw_length
            bit_string.update_value(self.data[self.byte_offset:self.byte_offset + sizes])
            bit_string.truncate_value()
            self.byte_offset += sizes
            self.bits_offset = raw_length & 0x7
            if self.bits_offset:
                self.byte_offset -= 1
            log.debug("Decoded BIT STRING (length = %d): %s", raw_length, bit_string.value.hex())
            if not repeat:
                return bit_string

    def parse_octet_string(self, extended: bool, lower_bound: int | None,
                           upper_bound: int | None) -> bytes:
        """Read an OCTET STRING with the given size constraint."""
        lb, ub, size_range = self._size_bounds(extended, lower_bound, upper_bound)

        if size_range == 1:
            if ub > 2:
                self.parse_align_bits()
                if self.byte_offset + ub > len(self.data):
                    raise AperError("per data out of range")
                octets = self.data[self.byte_offset:self.byte_offset + ub]
                self.byte_offset += ub
                return octets
            return self.get_bit_string(ub * 8)

        octets = bytearray()
        while True:
            length, repeat = self.parse_length(size_range)
            raw_length = length + lb
            if raw_length == 0:
                return bytes(octets)
            self.parse_align_bits()
            if raw_length + self.byte_offset > len(self.data):
                raise AperError("per data out of range ")
            octets += self.data[self.byte_offset:self.byte_offset + raw_length]
            self.byte_offset += raw_length
            if not repeat:
                return bytes(octets)

    def parse_bool(self) -> bool:
        """Read a BOOLEAN."""
        return self.get_bits_value(1) == 1

    def parse_real(self, lower_bound: int | None, upper_bound: int | None) -> float:
        """Read a base 2 REAL; bounds are only checked to log a warning."""
        self.parse_align_bits()
        byte_length = self.get_bits_value(8)

        header = self.get_bits_value(1)
        if header != 1:
            raise InvalidError(
                "It looks like the header for REAL contains corrupted bytes. "
                f"Got {header}, expected to have 1"
            )
        negative = self.get_bits_value(1) == 1

        base_bits = self.get_bits_value(2)
        if base_bits == 1:
            raise InvalidError(
                f"Error while parsing encoding base of REAL, obtained {base_bits} - "
                "base of 8 is not supported"
            )
        if base_bits == 2:
            raise InvalidError(
                f"Error while parsing encoding base of REAL, obtained {base_bits} - "
                "base of 16 is not supported"
            )
        if base_bits != 0:
            raise InvalidError(f"Error while parsing encoding base of REAL, obtained {base_bits}")

        scaling = self.get_bits_value(2)
        if scaling != 0:
            raise InvalidError(
                f"Error parsing scaling factor - decoded bits expected to be 0, obtained {scaling}"
            )
        exponent_format = self.get_bits_value(2)
        if exponent_format != 0:
            raise InvalidError(
                f"Error parsing exponent - decoded bits expected to be 0, obtained {exponent_format}"
            )

        exponent = self.get_bits_value(8)
        if exponent >= 52:
            exponent = -(256 - exponent)
        mantissa = self.get_bits_value(8 * (byte_length - 2))

        result = math.ldexp(float(mantissa), exponent)
        if negative:
            result = -result

        if lower_bound is not None and result < float(lower_bound - 1):
            log.warning("Decoding REAL - value (%s) is lower than lowerbound (%s)",
                        result, float(lower_bound))
        if upper_bound is not None and result > float(upper_bound + 1):
            log.warning("Decoding REAL - value (%s) is higher than upperbound (%s)",
                        result, float(upper_bound))
        return result

    def parse_integer(self, extended: bool, lower_bound: int | None,
                      upper_bound: int | None) -> int:
        """Read an INTEGER with the given value constraint."""
        lb, ub, value_range = 0, -1, 0
        if extended or lower_bound is None:
            value_range = -1
        else:
            lb = lower_bound
            if upper_bound is not None:
                ub = upper_bound
                value_range = ub - lb + 1

        if value_range == 1:
            return ub
        if value_range <= 0:
            self.parse_align_bits()
            if self.byte_offset >= len(self.data):
                raise AperError("per data out of range")
            raw_length = self.data[self.byte_offset]
            self.byte_offset += 1
        elif value_range <= 65536:
            return _to_int64(self.parse_constraint_value(value_range) + lb)
        else:
            remaining = (value_range - 1) & _UINT64_MASK
            byte_len = 1
            while byte_len <= 127:
                remaining >>= 8
                if remaining == 0:
                    break
                byte_len += 1
            raw_length = self.get_bits_value(_bits_for_range(byte_len)) + 1
            self.parse_align_bits()

        raw_value = self.get_bits_value(raw_length * 8)
        if value_range < 0 and raw_length > 0:
            sign_shift = raw_length * 8 - 1
            sign_mask = (1 << sign_shift) if sign_shift < 64 else 0
            value_mask = (sign_mask - 1) & _UINT64_MASK
            if raw_value & sign_mask:
                return -(((~raw_value) & value_mask) + 1)
        return _to_int64(raw_value + lb)

    def get_choice_index(self, num_items_not_in_extension: int, choice_map_len: int) -> int:
        """Read the 1-based index of the CHOICE alternative that follows."""
        if not self.choice_can_be_extended:
            if choice_map_len < 1:
                raise AperError("the upper bound of CHOICE is missing")
            return self.parse_constraint_value(choice_map_len) + 1

        self.choice_can_be_extended = False
        if self.get_bits_value(1):
            upper_bound = choice_map_len - num_items_not_in_extension
            if upper_bound == 1:
                return choice_map_len
            if upper_bound < 1:
                raise AperError("the upper bound of CHOICE is missing")
            return self.parse_constraint_value(upper_bound) + 1 + num_items_not_in_extension

        if num_items_not_in_extension == 1:
            return 1
        if num_items_not_in_extension < 1:
            raise AperError("the upper bound of CHOICE is missing")
        return self.parse_constraint_value(num_items_not_in_extension) + 1

    def get_canonical_choice_index(self) -> int:
        """Read the byte count that precedes a CHOICE in canonical ordering."""
        self.parse_align_bits()
        if self.get_bits_value(1) == 0:
            num_bytes = self.get_bits_value(7)
        else:
            num_bytes = self.get_bits_value(15)
        log.debug("Decoding %d bytes", num_bytes)
        return num_bytes