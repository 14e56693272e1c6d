import pytest

from rproxy.hashfunc import Hash, atol, crc16, hash_tag


def test_hash_tag_extracts_enclosed_part():
    assert hash_tag(b"{user1000}.following", "{}") == b"user1000"


def test_hash_tag_accepts_str():
    assert hash_tag("pre{abc}post", "{}") == b"abc"


@pytest.mark.parametrize(
    "key",
    [b"plainkey", b"open{only", b"{}empty", b"close}first"],
)
def test_hash_tag_falls_back_to_whole_key(key):
    assert hash_tag(key, "{}") == key


@pytest.mark.parametrize("tag", [None, "", "{"])
def test_hash_tag_without_usable_tag(tag):
    assert hash_tag(b"{a}b", tag) == b"{a}b"


def test_hash_tag_uses_first_open_and_next_close():
    assert hash_tag(b"x{a}y{b}", "{}") == b"a"


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"123abc", 123),
        (b"-42", -42),
        (b"+7", 7),
        (b"", 0),
        (b"abc", 0),
        (b"-", 0),
    ],
)
def test_atol(data, expected):
    assert atol(data) == expected


def test_crc16_reference_vector():
    assert crc16(b"123456789") == 0x31C3


def test_crc16_empty_is_zero():
    assert crc16(b"") == 0


def test_crc16_fits_sixteen_bits():
    for key in (b"a", b"hello world", bytes(range(256))):
        assert 0 <= crc16(key) <= 0xFFFF


def test_crc16_str_and_bytes_agree():
    assert crc16("somekey") == crc16(b"somekey")


@pytest.mark.parametrize(
    "text, expected",
    [("atol", Hash.ATOL), ("CRC16", Hash.CRC16), ("md5", Hash.NONE)],
)
def test_hash_parse(text, expected):
    assert Hash.parse(text) is expected


def test_hash_atol_with_tag():
    assert Hash.ATOL.hash(b"{12}x", "{}") == 12


def test_hash_crc16_same_tag_same_hash():
    a = Hash.CRC16.hash(b"{user}.name", "{}")
    b = Hash.CRC16.hash(b"{user}.age", "{}")
    assert a == b == crc16(b"user")


def test_hash_without_tag_uses_whole_key():
    assert Hash.CRC16.hash(b"{user}.name") == crc16(b"{user}.name")


def test_hash_none_is_zero():
    assert Hash.NONE.hash(b"anything", "{}") == 0