"""Xpress Compression Algorithm (MS-XCA) Huffman decompression."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, Sequence

HUFFMAN_BITS = 16
XCA_CODES = 512
END_MARKER = 256
BLOCK_SIZE = 64 * 1024
LENGTHS_TABLE_SIZE = XCA_CODES // 2

_ACCUM_MASK = 0xFFFFFFFF
_CODE_SPACE = 1 << HUFFMAN_BITS


class XcaError(ValueError):
    """Raised when XCA-compressed data cannot be decoded."""


class HuffmanAlphabet:
    """Canonical Huffman alphabet decoding 16-bit look-ahead windows."""

    def __init__(self, lengths: Iterable[int]):
        self.lengths = tuple(lengths)
        for symbol, length in enumerate(self.lengths):
            if not 0 <= length <= HUFFMAN_BITS:
                raise XcaError(f"Huffman length {length} of symbol {symbol} out of range")

        table: list[tuple[int, int] | None] = [None] * _CODE_SPACE
        start = 0
        ordered = sorted((length, symbol) for symbol, length in enumerate(self.lengths) if length)
        for length, symbol in ordered:
            span = 1 << (HUFFMAN_BITS - length)
            if start + span > _CODE_SPACE:
                raise XcaError("Huffman alphabet is over-subscribed")
            table[start:start + span] = [(symbol, length)] * span
            start += span
        if start != _CODE_SPACE:
            raise XcaError("Huffman alphabet is incomplete")
        self._table = table

    def decode(self, bits: int) -> tuple[int, int]:
        """Return (symbol, code length) for the top 16 bits of the stream."""
        if not 0 <= bits < _CODE_SPACE:
            raise ValueError(f"look-ahead value {bits:#x} does not fit in {HUFFMAN_BITS} bits")
        entry = self._table[bits]
        assert entry is not None
        return entry


def symbol_lengths(table: bytes) -> list[int]:
    """Unpack the 256-byte nibble table into 512 Huffman code lengths."""
    if len(table) < LENGTHS_TABLE_SIZE:
        raise XcaError(
            f"Huffman lengths table needs {LENGTHS_TABLE_SIZE} bytes, got {len(table)}"
        )
    lengths = []
    for byte in table[:LENGTHS_TABLE_SIZE]:
        lengths.append(byte & 0x0F)
        lengths.append(byte >> 4)
    return lengths


class _Stream:
    """Little-endian reader that keeps advancing past the end of its data."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def take(self, count: int) -> bytes:
        chunk = self.data[self.pos:self.pos + count]
        self.pos += count
        return chunk.ljust(count, b"\0")

    def read8(self) -> int:
        return self.take(1)[0]

    def read16(self) -> int:
        return int.from_bytes(self.take(2), "little")


def _copy_match(output: bytearray, length: int, offset: int) -> None:
    if offset > len(output):
        raise XcaError(
            f"match offset {offset:#x} reaches before start of output (length {len(output):#x})"
        )
    start = len(output) - offset
    if offset >= length:
        output += output[start:start + length]
    else:
        pattern = bytes(output[start:])
        output += (pattern * (length // offset + 1))[:length]


def _run(data: bytes, output: bytearray | None) -> int:
    stream = _Stream(bytes(data))
    end = len(stream.data)
    out_len = 0
    threshold = 0
    accum = 0
    extra_bits = 0
    alphabet: HuffmanAlphabet | None = None

    def refill() -> None:
        nonlocal accum, extra_bits
        if extra_bits < 0:
            accum |= stream.read16() << -extra_bits
            extra_bits += 16

    while stream.pos < end:
        if out_len >= threshold:
            if stream.pos + LENGTHS_TABLE_SIZE > end:
                raise XcaError(
                    "XCA too short to hold Huffman lengths table at input offset "
                    f"{stream.pos:#x}"
                )
            alphabet = HuffmanAlphabet(symbol_lengths(stream.take(LENGTHS_TABLE_SIZE)))
            accum = (stream.read16() << 16) | stream.read16()
            extra_bits = 16
            threshold = out_len + BLOCK_SIZE

        assert alphabet is not None
        symbol, length = alphabet.decode(accum >> (32 - HUFFMAN_BITS))
        accum = (accum << length) & _ACCUM_MASK
        extra_bits -= length
        refill()

        if symbol < END_MARKER:
            if output is not None:
                output.append(symbol)
            out_len += 1
            continue

        if symbol == END_MARKER and stream.pos >= end - 1:
            return out_len

        raw = symbol - END_MARKER
        offset_bits = raw >> 4
        match_len = raw & 0x0F
        if match_len == 0x0F:
            match_len = stream.read8()
            if match_len == 0xFF:
                match_len = stream.read16()
            else:
                match_len += 0x0F
        match_len += 3
        if offset_bits:
            offset = (accum >> (32 - offset_bits)) + (1 << offset_bits)
        else:
            offset = 1
        accum = (accum << offset_bits) & _ACCUM_MASK
        extra_bits -= offset_bits
        refill()

        out_len += match_len
        if output is not None:
            _copy_match(output, match_len, offset)

    if stream.pos == end:
        return out_len
    raise XcaError(f"XCA input overrun at output length {out_len:#x}")


def decompress(data: bytes) -> bytes:
    """Decompress XCA-compressed data."""
    output = bytearray()
    _run(data, output)
    return bytes(output)


def decompressed_size(data: bytes) -> int:
    """Return the decompressed length without producing the output."""
    return _run(data, None)


def main(argv: Sequence[str] | None = None) -> int:
    """Decompress an XCA file to a file or to standard output."""
    parser = argparse.ArgumentParser(prog="xca", description="Decompress MS-XCA data.")
    parser.add_argument("input", help="compressed input file")
    parser.add_argument("-o", "--output", help="output file (default: standard output)")
    args = parser.parse_args(argv)

    try:
        result = decompress(Path(args.input).read_bytes())
        if args.output:
            Path(args.output).write_bytes(result)
        else:
            sys.stdout.buffer.write(result)
            sys.stdout.buffer.flush()
    except (OSError, XcaError) as exc:
        print(f"xca: {exc}", file=sys.stderr)
        return 1
    return 0