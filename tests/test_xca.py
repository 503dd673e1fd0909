import pytest

from wimtools.xca import (
    HuffmanAlphabet,
    XcaError,
    decompress,
    decompressed_size,
    main,
    symbol_lengths,
)

# Every one of the 512 symbols has a 9-bit code, so each code equals its symbol.
UNIFORM_TABLE = bytes([0x99]) * 256


class _Encoder:
    """Builds XCA streams using the uniform 9-bit alphabet."""

    def __init__(self):
        self.out = bytearray()
        self.out_len = 0
        self.threshold = 0
        self._bits = []
        self._slots = []

    def _reserve(self, count):
        while len(self._slots) < count:
            self._slots.append(len(self.out))
            self.out += b"\0\0"

    def _flush(self):
        for index, slot in enumerate(self._slots):
            chunk = self._bits[16 * index:16 * index + 16]
            chunk = chunk + [0] * (16 - len(chunk))
            word = int("".join(str(bit) for bit in chunk), 2)
            self.out[slot:slot + 2] = word.to_bytes(2, "little")

    def _start_block(self):
        self._flush()
        self.out += UNIFORM_TABLE
        self._bits = []
        self._slots = []
        self._reserve(2)
        self.threshold = self.out_len + 65536

    def _put_bits(self, value, width):
        self._bits.extend((value >> shift) & 1 for shift in reversed(range(width)))
        consumed = len(self._bits)
        self._reserve(2 + max(0, -(-(consumed - 16) // 16)))

    def _symbol(self, symbol):
        if self.out_len >= self.threshold:
            self._start_block()
        self._put_bits(symbol, 9)

    def literals(self, data):
        for byte in data:
            self._symbol(byte)
            self.out_len += 1
        return self

    def match(self, length, offset):
        extra_len = length - 3
        offset_bits = offset.bit_length() - 1
        self._symbol(256 + (offset_bits << 4) + min(extra_len, 15))
        if extra_len >= 15:
            if extra_len - 15 < 255:
                self.out.append(extra_len - 15)
            else:
                self.out.append(255)
                self.out += extra_len.to_bytes(2, "little")
        if offset_bits:
            self._put_bits(offset - (1 << offset_bits), offset_bits)
        self.out_len += length
        return self

    def finish(self):
        self._symbol(256)
        self._flush()
        return bytes(self.out)


def test_symbol_lengths_low_nibble_first():
    table = bytes([0x21]) + bytes(255)
    lengths = symbol_lengths(table)
    assert len(lengths) == 512
    assert lengths[:2] == [1, 2]
    assert not any(lengths[2:])


def test_symbol_lengths_short_table():
    with pytest.raises(XcaError):
        symbol_lengths(bytes(255))


def test_alphabet_canonical_codes():
    alphabet = HuffmanAlphabet([1, 2, 2])
    assert alphabet.decode(0x0000) == (0, 1)
    assert alphabet.decode(0xFFFF) == (2, 2)
    assert {alphabet.decode(bits)[1] for bits in range(0, 1 << 16, 257)} <= {1, 2}


def test_alphabet_skips_unused_symbols():
    alphabet = HuffmanAlphabet([0, 1, 1])
    assert alphabet.decode(0x0000)[0] == 1
    assert alphabet.decode(0x8000)[0] == 2


@pytest.mark.parametrize("lengths", [[1, 1, 1], [1], [0, 0, 0], [17, 1]])
def test_alphabet_rejects_bad_lengths(lengths):
    with pytest.raises(XcaError):
        HuffmanAlphabet(lengths)


def test_alphabet_decode_range():
    with pytest.raises(ValueError):
        HuffmanAlphabet([1, 1]).decode(1 << 16)


def test_empty_input():
    assert decompress(b"") == b""
    assert decompressed_size(b"") == 0


def test_literal_round_trip():
    text = b"The quick brown fox jumps over the lazy dog"
    stream = _Encoder().literals(text).finish()
    assert decompress(stream) == text
    assert decompressed_size(stream) == len(text)


def test_overlapping_match_repeats_pattern():
    stream = _Encoder().literals(b"abc").match(9, 3).finish()
    result = decompress(stream)
    assert result[:3] == b"abc"
    assert len(result) == 12
    assert all(result[i] == result[i - 3] for i in range(3, len(result)))


def test_match_with_offset_bits_and_extended_length():
    prefix = bytes(range(256)) + bytes(range(144))
    stream = _Encoder().literals(prefix).match(20, 300).match(100, 257).finish()
    result = decompress(stream)
    assert result[:400] == prefix
    assert result[400:420] == result[100:120]
    assert len(result) == 520
    assert result[420:] == result[420 - 257:520 - 257]


def test_multiple_blocks():
    stream = _Encoder().literals(b"a").match(65535, 1).match(4464, 1).finish()
    assert decompress(stream) == b"a" * 70000
    assert decompressed_size(stream) == 70000


def test_table_too_short():
    with pytest.raises(XcaError):
        decompress(bytes([0x99]) * 100)


def test_invalid_table():
    with pytest.raises(XcaError):
        decompress(bytes(256) + bytes(4))


def test_input_overrun():
    with pytest.raises(XcaError):
        decompress(UNIFORM_TABLE + b"\0\0\0")


def test_match_before_start_of_output():
    stream = _Encoder().literals(b"a").match(4, 8).finish()
    with pytest.raises(XcaError):
        decompress(stream)
    assert decompressed_size(stream) == 5


def test_main_writes_output_file(tmp_path):
    source = tmp_path / "in.xca"
    target = tmp_path / "out.bin"
    source.write_bytes(_Encoder().literals(b"hello").match(10, 5).finish())
    assert main([str(source), "-o", str(target)]) == 0
    assert target.read_bytes() == b"hello" * 3


def test_main_writes_stdout(tmp_path, capsysbinary):
    source = tmp_path / "in.xca"
    source.write_bytes(_Encoder().literals(b"data").finish())
    assert main([str(source)]) == 0
    assert capsysbinary.readouterr().out == b"data"


def test_main_reports_errors(tmp_path):
    source = tmp_path / "bad.xca"
    source.write_bytes(b"\x01\x02")
    assert main([str(source)]) == 1
    assert main([str(tmp_path / "missing.xca")]) == 1