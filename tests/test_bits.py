import pytest

from aper.bits import get_bit_string, get_bits_value
from aper.bitstring import AperError

SAMPLES = [
    b"\xff\xee\xdd\xcf",
    b"\x23\x64\x81\x37\xff\x4a\xd5\x7b",
    b"\x40\x80\xff\x00",
    b"\x00",
    b"\xbd\xe4\xaa\x1c\xd3",
]


@pytest.mark.parametrize("src", SAMPLES)
def test_whole_bytes_round_trip(src):
    assert get_bit_string(src, 0, len(src) * 8) == src


@pytest.mark.parametrize("src", SAMPLES)
def test_whole_value_matches_big_endian(src):
    assert get_bits_value(src, 0, len(src) * 8) == int.from_bytes(src, "big")


@pytest.mark.parametrize("src", SAMPLES)
def test_string_and_value_agree(src):
    total = len(src) * 8
    for offset in range(0, min(total, 9)):
        for count in range(1, total - offset + 1):
            data = get_bit_string(src, offset, count)
            assert len(data) == (count + 7) // 8
            unused = len(data) * 8 - count
            assert data[-1] & ((1 << unused) - 1) == 0
            assert int.from_bytes(data, "big") >> unused == get_bits_value(src, offset, count)


@pytest.mark.parametrize("src", SAMPLES)
def test_split_reads_concatenate(src):
    total = len(src) * 8
    for offset in range(0, 8):
        for first in range(1, 10):
            second = total - offset - first
            if second < 1:
                continue
            whole = get_bits_value(src, offset, first + second)
            head = get_bits_value(src, offset, first)
            tail = get_bits_value(src, offset + first, second)
            assert whole == (head << second) | tail


def test_pinned_values():
    assert get_bit_string(b"\xff\xee", 4, 8) == b"\xfe"
    assert get_bits_value(b"\xff\xee\xdd", 4, 12) == 0xFEE
    assert get_bit_string(b"\xff", 3, 0) == b""


def test_only_needed_bytes_are_read():
    assert get_bit_string(b"\xab\xcd\xef", 0, 8) == get_bit_string(b"\xab", 0, 8)


def test_overflow_raises():
    with pytest.raises(AperError, match="Get bits overflow, requireBits: 9, leftBits: 8"):
        get_bit_string(b"\xff", 0, 9)


def test_overflow_with_offset_raises():
    with pytest.raises(AperError, match="leftBits: 5"):
        get_bits_value(b"\xff", 3, 6)


def test_value_kept_within_64_bits():
    src = b"\x01" + b"\xff" * 8
    assert get_bits_value(src, 0, len(src) * 8) < 1 << 64
    assert get_bits_value(src, 8, 64) == int.from_bytes(src[1:], "big")


def test_negative_arguments_raise():
    with pytest.raises(AperError):
        get_bit_string(b"\xff", -1, 2)