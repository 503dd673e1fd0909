"""Keystrokes reported by a simple text input device."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

_KEY = struct.Struct("<HH")


class ControlChar(IntEnum):
    """Control characters every input device must report."""

    NULL = 0x0000
    BACKSPACE = 0x0008
    TAB = 0x0009
    LINEFEED = 0x000A
    CARRIAGE_RETURN = 0x000D


class ScanCode(IntEnum):
    """Scan codes for keys that have no character."""

    NULL = 0x0000
    UP = 0x0001
    DOWN = 0x0002
    RIGHT = 0x0003
    LEFT = 0x0004
    HOME = 0x0005
    END = 0x0006
    INSERT = 0x0007
    DELETE = 0x0008
    PAGE_UP = 0x0009
    PAGE_DOWN = 0x000A
    F1 = 0x000B
    F2 = 0x000C
    F3 = 0x000D
    F4 = 0x000E
    F5 = 0x000F
    F6 = 0x0010
    F7 = 0x0011
    F8 = 0x0012
    F9 = 0x0013
    F10 = 0x0014
    ESC = 0x0017


@dataclass(frozen=True)
class InputKey:
    """A keystroke: scan code plus a UTF-16 code unit."""

    scan_code: int = ScanCode.NULL
    unicode_char: int = ControlChar.NULL

    SIZE = _KEY.size

    @property
    def scan(self) -> ScanCode | None:
        """The scan code as a known ScanCode, if it is one."""
        try:
            return ScanCode(self.scan_code)
        except ValueError:
            return None

    @property
    def char(self) -> str:
        """The character for the key, or an empty string if none."""
        return chr(self.unicode_char) if self.unicode_char else ""

    @classmethod
    def parse(cls, data: bytes) -> InputKey:
        """Decode a keystroke from the start of ``data``."""
        if len(data) < _KEY.size:
            raise ValueError(f"keystroke needs {_KEY.size} bytes, got {len(data)}")
        scan_code, unicode_char = _KEY.unpack_from(data)
        return cls(scan_code, unicode_char)

    def pack(self) -> bytes:
        """Encode the keystroke."""
        try:
            return _KEY.pack(self.scan_code, self.unicode_char)
        except struct.error as exc:
            raise ValueError(f"keystroke field out of range: {exc}") from exc