import pytest

from aper.bitstring import AperError, BitString, InvalidError


@pytest.mark.parametrize(
    "initial, length, new_bytes",
    [
        (b"\x3f\xff\xfd", 22, b"\xfd\xee\x3f"),
        (b"", 31, b"\xfd\xe4\xff\x1c"),
        (b"", 40, b"\xbd\xe4\xaa\x1c\xd3"),
    ],
)
def test_update_value(initial, length, new_bytes):
    bs = BitString(value=initial, length=length)
    result = bs.update_value(new_bytes)
    assert result == new_bytes
    assert bs.value == new_bytes
    assert bs.length == length


def test_update_value_wrong_size():
    bs = BitString(value=b"\x3f\xff\xfd", length=22)
    with pytest.raises(InvalidError, match="too many bytes 4. Expecting 3"):
        bs.update_value(b"\x01\x02\x03\x04")
    assert bs.value == b"\x3f\xff\xfd"


@pytest.mark.parametrize(
    "value, length, expected",
    [
        (b"\x3f\xff\xfd", 22, b"\x3f\xff\xfc"),
        (b"\x3f\xff\xff\xfd", 28, b"\x3f\xff\xff\xf0"),
        (b"\x3f\xff\xfd\xff", 25, b"\x3f\xff\xfd\x80"),
        (b"\x3f\xff\xfd\xff\x55", 34, b"\x3f\xff\xfd\xff\x40"),
        (b"\x3f\xff\xfd", 17, b"\x3f\xff\x80"),
    ],
)
def test_truncate_value(value, length, expected):
    bs = BitString(value=value, length=length)
    assert bs.truncate_value() == expected
    assert bs.value == expected


def test_truncate_full_bytes_unchanged():
    bs = BitString(value=b"\xff\xee\xdd\xcf", length=32)
    assert bs.truncate_value() == b"\xff\xee\xdd\xcf"


def test_truncate_zero_length():
    bs = BitString(value=b"", length=0)
    with pytest.raises(InvalidError, match="Length should not be 0"):
        bs.truncate_value()


def test_truncate_wrong_size():
    bs = BitString(value=b"\x3f", length=22)
    with pytest.raises(InvalidError):
        bs.truncate_value()


def test_invalid_error_is_aper_error():
    bs = BitString(length=8)
    with pytest.raises(AperError):
        bs.update_value(b"")