# aper

Building blocks for ASN.1 data in the Aligned Packed Encoding Rules (APER):
reading and writing the individual PER primitives bit by bit.

## Installing

```
pip install .
```

The package has no runtime dependencies. To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `aper.bitstring` – the `BitString` dataclass (`value` bytes holding
  `length` bits, most significant bit first) and the errors `AperError`
  (a `ValueError`) and its subclass `InvalidError`.
  `BitString.update_value(new_bytes)` replaces the bytes, which must number
  exactly `ceil(length / 8)`; `BitString.truncate_value()` clears the unused
  trailing bits of the last byte.
- `aper.bits` – `get_bit_string(src, bits_offset, num_bits)` returns a run of
  bits left-aligned in new bytes; `get_bits_value(src, bits_offset, num_bits)`
  returns the same run as an unsigned number.
- `aper.writer` – `BitWriter` appends PER primitives to its `data` bytearray:
  bits and bit strings, alignment padding, constrained whole numbers, length
  determinants (fragmented above 16383), BIT STRING, OCTET STRING, BOOLEAN,
  base-2 REAL, INTEGER (constrained, semi-constrained, unconstrained,
  extensible), ENUMERATED, CHOICE indexes and normally small non-negative
  whole numbers. `how_many_bits_needed` and `how_many_bytes_needed` size a
  magnitude.
- `aper.reader` – `BitReader` reads the same primitives back from a byte
  string, tracking `byte_offset` and `bits_offset`; it also reads CHOICE
  indexes and the byte count that precedes a CHOICE in canonical ordering.

## Examples

```python
from aper.bits import get_bit_string, get_bits_value
from aper.bitstring import BitString
from aper.reader import BitReader
from aper.writer import BitWriter

assert get_bits_value(b"\xf0", 2, 4) == 12
assert get_bit_string(b"\xf0", 2, 4) == b"\xc0"

bs = BitString(b"\x3f\xff\xfd", 22)
assert bs.truncate_value() == b"\x3f\xff\xfc"

writer = BitWriter()
writer.append_bool(True)
writer.append_constraint_value(10, 5)     # 4 bits for a range of 10
assert bytes(writer.data) == b"\xa8"

reader = BitReader(bytes(writer.data))
assert reader.parse_bool() is True
assert reader.parse_constraint_value(10) == 5

writer = BitWriter()
writer.append_integer(200, False, None, None)   # unconstrained
assert bytes(writer.data) == b"\x02\x00\xc8"
assert BitReader(bytes(writer.data)).parse_integer(False, None, None) == 200

writer = BitWriter()
writer.append_normally_small_non_negative_whole_number(131)
assert bytes(writer.data) == b"\x80\x83"
```

Bounds are passed as plain integers or `None` for "no bound"; the `extended`
or `extensive` flag says whether the constraint is extensible.

## Errors

Every failure raises `aper.bitstring.AperError`: running out of data,
non-zero alignment bits, values outside their constraint, and so on. Some
checks, such as a REAL out of bounds on encoding or an unsupported REAL base
on decoding, raise its subclass `InvalidError`.

## What the package does not do

The package works at the level of single PER primitives. It does not walk a
message description: there is no schema of tagged fields, no whole-message
encode or decode, and no resolution of CHOICE alternatives through choice
maps. A caller composes a message by calling `BitWriter` and `BitReader`
methods in the order its ASN.1 definition gives.