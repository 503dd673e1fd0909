"""GUID Partition Table structures and basic firmware data types."""

from __future__ import annotations

import struct
import uuid
from dataclasses import dataclass

EFI_PAGE_SIZE = 0x1000
EFI_PAGE_MASK = 0xFFF
EFI_PAGE_SHIFT = 12

PRIMARY_PART_HEADER_LBA = 1
EFI_PTAB_HEADER_ID = b"EFI PART"

PARTITION_ENTRY_SIZE = 128
PARTITION_NAME_LENGTH = 36
TIME_ZONE_UNSPECIFIED = 2047

_NULL_GUID = uuid.UUID(int=0)

_TIME = struct.Struct("<HBBBBBBIhBB")
_HEADER = struct.Struct("<8sIIIIQQQQ16sQIII")
_ENTRY = struct.Struct("<16s16sQQQ72s")


class GptError(ValueError):
    """Raised when partition table data is malformed."""


def size_to_pages(size: int) -> int:
    """Number of 4 KiB pages needed to hold ``size`` bytes."""
    if size < 0:
        raise ValueError(f"size {size} is negative")
    return (size >> EFI_PAGE_SHIFT) + (1 if size & EFI_PAGE_MASK else 0)


def pages_to_size(pages: int) -> int:
    """Number of bytes in ``pages`` 4 KiB pages."""
    if pages < 0:
        raise ValueError(f"page count {pages} is negative")
    return pages << EFI_PAGE_SHIFT


def _need(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise GptError(f"{what} needs {size} bytes, got {len(data)}")


@dataclass
class EfiTime:
    """Firmware time stamp."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    nanosecond: int = 0
    time_zone: int = TIME_ZONE_UNSPECIFIED
    daylight: int = 0

    SIZE = _TIME.size

    @classmethod
    def parse(cls, data: bytes) -> EfiTime:
        """Decode a time stamp from the start of ``data``."""
        _need(data, _TIME.size, "time stamp")
        (year, month, day, hour, minute, second, _pad1,
         nanosecond, time_zone, daylight, _pad2) = _TIME.unpack_from(data)
        return cls(year, month, day, hour, minute, second, nanosecond, time_zone, daylight)

    def pack(self) -> bytes:
        """Encode the time stamp."""
        try:
            return _TIME.pack(
                self.year, self.month, self.day, self.hour, self.minute, self.second, 0,
                self.nanosecond, self.time_zone, self.daylight, 0,
            )
        except struct.error as exc:
            raise GptError(f"time stamp field out of range: {exc}") from exc


@dataclass
class PartitionTableHeader:
    """GPT partition table header."""

    revision: int
    header_size: int
    header_crc32: int
    my_lba: int
    alternate_lba: int
    first_usable_lba: int
    last_usable_lba: int
    disk_guid: uuid.UUID
    partition_entry_lba: int
    number_of_partition_entries: int
    size_of_partition_entry: int
    partition_entry_array_crc32: int
    reserved: int = 0
    signature: bytes = EFI_PTAB_HEADER_ID

    SIZE = _HEADER.size

    @classmethod
    def parse(cls, data: bytes) -> PartitionTableHeader:
        """Decode a header from the start of ``data``."""
        _need(data, _HEADER.size, "partition table header")
        (signature, revision, header_size, header_crc32, reserved,
         my_lba, alternate_lba, first_usable, last_usable, disk_guid,
         entry_lba, entry_count, entry_size, entry_crc) = _HEADER.unpack_from(data)
        if signature != EFI_PTAB_HEADER_ID:
            raise GptError(f"bad partition table signature {signature!r}")
        return cls(
            revision=revision,
            header_size=header_size,
            header_crc32=header_crc32,
            my_lba=my_lba,
            alternate_lba=alternate_lba,
            first_usable_lba=first_usable,
            last_usable_lba=last_usable,
            disk_guid=uuid.UUID(bytes_le=disk_guid),
            partition_entry_lba=entry_lba,
            number_of_partition_entries=entry_count,
            size_of_partition_entry=entry_size,
            partition_entry_array_crc32=entry_crc,
            reserved=reserved,
            signature=signature,
        )

    def pack(self) -> bytes:
        """Encode the header."""
        if len(self.signature) != len(EFI_PTAB_HEADER_ID):
            raise GptError(f"signature {self.signature!r} must be 8 bytes")
        try:
            return _HEADER.pack(
                self.signature, self.revision, self.header_size, self.header_crc32,
                self.reserved, self.my_lba, self.alternate_lba, self.first_usable_lba,
                self.last_usable_lba, self.disk_guid.bytes_le, self.partition_entry_lba,
                self.number_of_partition_entries, self.size_of_partition_entry,
                self.partition_entry_array_crc32,
            )
        except struct.error as exc:
            raise GptError(f"header field out of range: {exc}") from exc


@dataclass
class PartitionEntry:
    """One entry of the GPT partition entry array."""

    type_guid: uuid.UUID
    unique_guid: uuid.UUID
    starting_lba: int
    ending_lba: int
    attributes: int = 0
    name: str = ""

    @property
    def is_used(self) -> bool:
        """A zero type GUID marks an unused entry."""
        return self.type_guid != _NULL_GUID

    @classmethod
    def parse(cls, data: bytes) -> PartitionEntry:
        """Decode an entry from the start of ``data``."""
        _need(data, _ENTRY.size, "partition entry")
        type_guid, unique_guid, start, end, attributes, raw_name = _ENTRY.unpack_from(data)
        name = raw_name.decode("utf-16-le", "surrogatepass").split("\0", 1)[0]
        return cls(
            type_guid=uuid.UUID(bytes_le=type_guid),
            unique_guid=uuid.UUID(bytes_le=unique_guid),
            starting_lba=start,
            ending_lba=end,
            attributes=attributes,
            name=name,
        )

    def pack(self) -> bytes:
        """Encode the entry as 128 bytes."""
        if "\0" in self.name:
            raise GptError("partition name may not contain NUL characters")
        encoded = self.name.encode("utf-16-le", "surrogatepass")
        if len(encoded) > PARTITION_NAME_LENGTH * 2:
            raise GptError(
                f"partition name {self.name!r} longer than {PARTITION_NAME_LENGTH} characters"
            )
        try:
            return _ENTRY.pack(
                self.type_guid.bytes_le, self.unique_guid.bytes_le,
                self.starting_lba, self.ending_lba, self.attributes, encoded,
            )
        except struct.error as exc:
            raise GptError(f"partition entry field out of range: {exc}") from exc


def parse_partition_entries(data: bytes, count: int, entry_size: int) -> list[PartitionEntry]:
    """Decode ``count`` entries of ``entry_size`` bytes each from ``data``."""
    multiple, remainder = divmod(entry_size, PARTITION_ENTRY_SIZE)
    if remainder or multiple < 1 or multiple & (multiple - 1):
        raise GptError(f"partition entry size {entry_size} is not 128 x 2^n")
    if count < 0:
        raise GptError(f"partition entry count {count} is negative")
    total = count * entry_size
    _need(data, total, f"{count} partition entries")
    view = memoryview(data)
    return [
        PartitionEntry.parse(bytes(view[offset:offset + entry_size]))
        for offset in range(0, total, entry_size)
    ]