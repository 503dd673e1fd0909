import pytest

from wimtools.keys import ControlChar, InputKey, ScanCode


def test_parse_escape_scan_code():
    key = InputKey.parse(bytes([ScanCode.ESC, 0, 0, 0]))
    assert key.scan_code == ScanCode.ESC
    assert key.scan is ScanCode.ESC
    assert key.char == ""


def test_parse_carriage_return():
    key = InputKey.parse(bytes([0, 0, ControlChar.CARRIAGE_RETURN, 0]))
    assert key.unicode_char == ControlChar.CARRIAGE_RETURN
    assert key.scan is ScanCode.NULL


def test_pack_is_little_endian():
    assert InputKey(ScanCode.UP, 0).pack() == b"\x01\x00\x00\x00"


def test_char_property():
    assert InputKey(unicode_char=ord("a")).char == "a"


@pytest.mark.parametrize(
    "key",
    [
        InputKey(),
        InputKey(ScanCode.F10, 0),
        InputKey(0, ord("Z")),
        InputKey(0, 0x20AC),
        InputKey(0x1234, 0xFFFF),
    ],
)
def test_round_trip(key):
    packed = key.pack()
    assert len(packed) == InputKey.SIZE
    assert InputKey.parse(packed) == key


def test_unknown_scan_code():
    assert InputKey(0x1234, 0).scan is None


def test_parse_too_short():
    with pytest.raises(ValueError):
        InputKey.parse(b"\x00\x00\x00")


def test_pack_out_of_range():
    with pytest.raises(ValueError):
        InputKey(0x10000, 0).pack()