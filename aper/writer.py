"""Bit-level writer for aligned PER encoded data."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from .bits import get_bit_string
from .bitstring import AperError, InvalidError

log = logging.getLogger(__name__)

_UINT64_MASK = (1 << 64) - 1


def _bits_for_range(value_range: int) -> int:
    """Smallest bit count (1..8) whose span covers ``value_range``."""
    for bits in range(1, 9):
        if (1 << bits) >= value_range:
            return bits
    return 9


def _format_bytes(data: bytes) -> str:
    return "[" + " ".join(str(b) for b in data) + "]"


def _format_float(number: float) -> str:
    if math.isfinite(number) and number == int(number) and abs(number) < 1e21:
        return str(int(number))
    return repr(number)


def how_many_bits_needed(value: int) -> int:
    """Number of bits needed for the magnitude of ``value``; at least one."""
    return max(1, abs(value).bit_length())


def how_many_bytes_needed(value: int) -> int:
    """Number of octets needed for the magnitude of ``value``; at least one."""
    return (how_many_bits_needed(value) + 7) // 8


@dataclass
class BitWriter:
    """Accumulates bits, lengths and primitive values as aligned PER data."""

    data: bytearray = field(default_factory=bytearray)
    bits_offset: int = 0
    choice_can_be_extended: bool = False
    sequence_can_be_extended: bool = False

    def put_bit_string(self, data: bytes, num_bits: int) -> None:
        """Append the first ``num_bits`` bits of ``data``."""
        if num_bits <= 0:
            return
        needed = (num_bits + 7) >> 3
        if len(data) < needed:
            raise AperError(f"Not enough bytes to put {num_bits} bits: got {len(data)}")
        chunk = bytes(data[:needed])
        if self.bits_offset == 0:
            self.data += chunk
            self.bits_offset = num_bits & 0x7
            return
        bits_left = 8 - self.bits_offset
        if num_bits <= bits_left:
            self.data[-1] |= chunk[0] >> self.bits_offset
        else:
            shifted = get_bit_string(b"\x00" + chunk, bits_left, self.bits_offset + num_bits)
            self.data[-1] |= shifted[0]
            self.data += shifted[1:]
        self.bits_offset = ((num_bits & 0x7) + self.bits_offset) & 0x7

    def put_bits_value(self, value: int, num_bits: int) -> None:
        """Append ``value`` as an unsigned number of ``num_bits`` bits."""
        if num_bits == 0:
            return
        value &= _UINT64_MASK
        if value >> num_bits:
            raise AperError("bits Value is over capacity")
        num_bytes = (num_bits + 7) >> 3
        chunk = (value << (num_bytes * 8 - num_bits)).to_bytes(num_bytes, "big")
        self.put_bit_string(chunk, num_bits)

    def append_align_bits(self) -> None:
        """Pad with zero bits up to the next octet boundary."""
        self.bits_offset = 0

    def append_constraint_value(self, value_range: int, value: int) -> None:
        """Append a whole number constrained to ``value_range`` values."""
        if value_range <= 255:
            if value_range < 0:
                raise AperError(f"value range is negative: {value_range}")
            self.put_bits_value(value, _bits_for_range(value_range))
            return
        if value_range == 256:
            num_bytes = 1
        elif value_range <= 65536:
            num_bytes = 2
        else:
            raise AperError("constraint Value is larger than 65536")
        self.append_align_bits()
        self.put_bits_value(value, num_bytes * 8)

    def append_length(self, size_range: int, value: int) -> None:
        """Append a length determinant."""
        if 0 < size_range <= 65536:
            self.append_constraint_value(size_range, value)
            return
        self.append_align_bits()
        if value <= 127:
            self.put_bits_value(value, 8)
        elif value <= 16383:
            self.put_bits_value(value | 0x8000, 16)
        else:
            self.put_bits_value((value >> 14) | 0xC0, 8)

    def _size_extension(self, length: int, extensive: bool, lower_bound: int | None,
                        upper_bound: int | None, what: str,
                        data: bytes) -> tuple[int, int, int]:
        lb, ub, size_range = 0, -1, -1
        if lower_bound is not None:
            lb = lower_bound
            if upper_bound is not None:
                ub = upper_bound
                if length <= (ub & _UINT64_MASK):
                    size_range = ub - lb + 1
                elif not extensive:
                    raise AperError(
                        f"{what} Length is over upperbound: obtained bytes "
                        f"{_format_bytes(data)} of length {length}, UB is {ub}"
                    )
                if extensive:
                    if size_range == -1:
                        self.put_bits_value(1, 1)
                        lb = 0
                    else:
                        self.put_bits_value(0, 1)
        if ub > 65535:
            size_range = -1
        return lb, ub, size_range

    def append_bit_string(self, data: bytes, bits_length: int, extensive: bool,
                          lower_bound: int | None, upper_bound: int | None) -> None:
        """Append a BIT STRING of ``bits_length`` bits with a size constraint."""
        buffer = bytearray(data)
        lb, ub, size_range = self._size_extension(
            bits_length, extensive, lower_bound, upper_bound, "bitString", bytes(buffer))

        sizes = (bits_length + 7) >> 3
        shift = 8 - (bits_length & 0x7)
        if shift != 8:
            buffer[sizes - 1] &= (0xFF << shift) & 0xFF

        if size_range == 1:
            if sizes > 2:
                self.append_align_bits()
                self.data += buffer
                self.bits_offset = ub & 0x7
                if bits_length != ub:
                    raise AperError(
                        f"bitString Length({bits_length}) is not match fix-sized : {ub}")
            else:
                self.put_bit_string(bytes(buffer), bits_length)
            return

        raw_length = bits_length - lb
        byte_offset = 0
        while True:
            if raw_length > 65536:
                part = 65536
            elif raw_length >= 16384:
                part = raw_length & 0xC000
            else:
                part = raw_length
            self.append_length(size_range, part)
            part += lb
            sizes = (part + 7) >> 3
            if part == 0:
                return
            self.append_align_bits()
            self.data += buffer[byte_offset:byte_offset + sizes]
            raw_length -= part - lb
            if raw_length > 0:
                byte_offset += sizes
            else:
                self.bits_offset += part & 0x7
                return

    def append_octet_string(self, data: bytes, extensive: bool,
                            lower_bound: int | None, upper_bound: int | None) -> None:
        """Append an OCTET STRING with a size constraint."""
        data = bytes(data)
        byte_len = len(data)
        lb, ub, size_range = self._size_extension(
            byte_len, extensive, lower_bound, upper_bound, "OctetString", data)

        if size_range == 1:
            if byte_len != ub:
                raise AperError(f"OctetString Length({byte_len}) is not match fix-sized : {ub}")
            if byte_len > 2:
                self.append_align_bits()
                self.data += data
            else:
                self.put_bit_string(data, byte_len * 8)
            return

        raw_length = byte_len - lb
        byte_offset = 0
        while True:
            if raw_length > 65536:
                part = 65536
            elif raw_length >= 16384:
                part = raw_length & 0xC000
            else:
                part = raw_length
            self.append_length(size_range, part)
            part += lb
            if part == 0:
                return
            self.append_align_bits()
            self.data += data[byte_offset:byte_offset + part]
            raw_length -= part - lb
            if raw_length > 0:
                byte_offset += part
            else:
                return

    def append_bool(self, value: bool) -> None:
        """Append a BOOLEAN as a single bit."""
        self.put_bits_value(1 if value else 0, 1)

    def append_real(self, value: float, lower_bound: int | None,
                    upper_bound: int | None) -> None:
        """Append a REAL in base 2; zero cannot be encoded."""
        if lower_bound is not None and value < float(lower_bound):
            raise InvalidError(
                f"Error encoding REAL - value ({_format_float(value)}) is lower than "
                f"lowerbound ({_format_float(float(lower_bound))})"
            )
        if upper_bound is not None and value > float(upper_bound):
            raise InvalidError(
                f"Error encoding REAL - value ({_format_float(value)}) is higher than "
                f"upperbound ({_format_float(float(upper_bound))})"
            )
        if value == 0.0:
            raise InvalidError("Error encoding REAL - numerical argument is out of domain")

        exponent = 0
        if value == math.trunc(value):
            mantissa = abs(int(value))
            while mantissa % 2 == 0:
                exponent += 1
                mantissa //= 2
        else:
            scaled = value
            for _ in range(52):
                if scaled == math.trunc(scaled):
                    break
                scaled *= 2
                exponent += 1
            mantissa = abs(int(math.trunc(scaled)))
            exponent = 256 - exponent

        mantissa_bytes = how_many_bytes_needed(mantissa)
        if ((exponent % 2 == 0 or mantissa % 2 != 0 or exponent == 0)
                and mantissa_bytes < 7 and mantissa > 32):
            mantissa_bytes += 1
        exponent_bytes = how_many_bytes_needed(exponent)
        byte_length = exponent_bytes + mantissa_bytes + 1
        log.debug("Encoding REAL %s: exponent %d, mantissa %d", value, exponent, mantissa)

        self.append_align_bits()
        start = len(self.data)
        self.put_bits_value(byte_length, 8)
        self.put_bits_value(1, 1)
        self.put_bits_value(0 if value >= 0 else 1, 1)
        self.put_bits_value(0, 2)
        self.put_bits_value(0, 2)
        self.put_bits_value(0, 2)
        self.put_bits_value(exponent, exponent_bytes * 8)
        self.put_bits_value(mantissa, mantissa_bytes * 8)

        written = len(self.data) - start
        if written != byte_length + 1:
            raise InvalidError(
                "Error encoding REAL - checksum verification failed. "
                f"Encoded {written} bytes, expected {byte_length + 1} bytes to encode"
            )

    def append_integer(self, value: int, extensive: bool, lower_bound: int | None,
                       upper_bound: int | None) -> None:
        """Append an INTEGER with a value constraint."""
        lb, value_range = 0, 0
        if lower_bound is not None:
            lb = lower_bound
            if value < lb:
                raise AperError(
                    f"INTEGER value is smaller than lowerbound: obtained {value}, LB is {lb}")
            if upper_bound is not None:
                ub = upper_bound
                if value <= ub:
                    value_range = ub - lb + 1
                elif not extensive:
                    raise AperError(
                        f"INTEGER value is larger than upperbound: obtained {value}, UB is {ub}")
                if extensive:
                    if value_range == 0:
                        value_range = -1
                        self.put_bits_value(1, 1)
                    else:
                        self.put_bits_value(0, 1)
        else:
            value_range = -1

        if value_range == 1:
            return
        magnitude = abs(value)
        if value_range <= 0:
            magnitude >>= 7
        elif value_range <= 65536:
            self.append_constraint_value(value_range, value - lb)
            return
        else:
            magnitude >>= 8

        raw_length = 1
        while raw_length <= 127 and magnitude:
            magnitude >>= 8
            raw_length += 1

        if value_range <= 0:
            self.append_align_bits()
            self.data.append(raw_length & 0xFF)
        else:
            remaining = (value_range - 1) & _UINT64_MASK
            byte_len = 1
            while byte_len <= 127:
                remaining >>= 8
                if remaining <= 1:
                    break
                byte_len += 1
            length_bits = _bits_for_range(byte_len)

            distance = value - lb
            raw_length = 1
            while raw_length <= 127 and distance:
                distance >>= 8
                raw_length += 1
            raw_length = 1 if value == lb else raw_length - 1
            self.put_bits_value(raw_length - 1, length_bits)

        num_bits = raw_length * 8
        self.append_align_bits()
        if value_range < 0:
            self.put_bits_value(value & ((1 << num_bits) - 1), num_bits)
        else:
            self.put_bits_value(value - lb, num_bits)

    def append_enumerated(self, value: int, extensive: bool, lower_bound: int | None,
                          upper_bound: int | None) -> None:
        """Append an ENUMERATED; extension values are not supported."""
        if lower_bound is None or upper_bound is None:
            raise AperError(
                "ENUMERATED value constraint is error - make sure that at least LB or UB tag is passed")
        lb, ub = lower_bound, upper_bound
        if value > ub:
            if extensive:
                raise AperError("Unsupport the extensive value of ENUMERATED")
            raise AperError(f"ENUMERATED value is larger than upperbound: obtained {value}, UB is {ub}")
        if value < lb:
            raise AperError(f"ENUMERATED value is smaller than lowerbound: obtained {value}, LB is {lb}")
        if extensive:
            self.put_bits_value(0, 1)
        value_range = ub - lb + 1
        if value_range > 1:
            self.append_constraint_value(value_range, value)

    def append_choice_index(self, present: int, extensive: bool, from_choice_extension: bool,
                            num_items_not_in_extension: int, choice_map_len: int) -> None:
        """Append the index of the chosen CHOICE alternative (1-based ``present``)."""
        if from_choice_extension:
            self.put_bits_value(1, 1)
            raw_choice = present - 1 - num_items_not_in_extension
            bounds = choice_map_len - num_items_not_in_extension
            if bounds < 1:
                raise AperError("the upper bound of CHOICE is missing")
            if extensive and raw_choice > bounds:
                raise AperError(f"unsupport value of CHOICE type is in Extensed: {raw_choice}")
            if bounds != 1:
                self.append_constraint_value(bounds, raw_choice)
            return

        if self.choice_can_be_extended:
            self.put_bits_value(0, 1)
        raw_choice = present - 1
        bounds = num_items_not_in_extension
        if bounds < 1:
            raise AperError("the upper bound of CHOICE is missing")
        if extensive and raw_choice > bounds:
            raise AperError(f"unsupport value of CHOICE type: {raw_choice}")
        if bounds != 1:
            self.append_constraint_value(bounds, raw_choice)

    def append_normally_small_non_negative_whole_number(self, value: int) -> None:
        """Append a small whole number: 7 bits up to 127, else a flagged longer form."""
        if value > 32767:
            raise AperError(
                f"aper: Value {value} has exceeded its possible upperbound and shouldn't be "
                "encoded as Normally small non-negative whole number")
        if value > 127:
            self.put_bits_value(1, 1)
            if value < 256:
                self.append_align_bits()
                self.put_bits_value(value, 8)
            else:
                self.put_bits_value(value, 15)
            return
        self.put_bits_value(0, 1)
        self.put_bits_value(value, 7)