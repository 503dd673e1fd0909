import uuid

import pytest

from wimtools.gpt import (
    EFI_PAGE_SIZE,
    EFI_PTAB_HEADER_ID,
    PARTITION_ENTRY_SIZE,
    PARTITION_NAME_LENGTH,
    EfiTime,
    GptError,
    PartitionEntry,
    PartitionTableHeader,
    pages_to_size,
    parse_partition_entries,
    size_to_pages,
)

DISK_GUID = uuid.UUID("12345678-9abc-def0-1122-334455667788")
TYPE_GUID = uuid.UUID("c12a7328-f81f-11d2-ba4b-00a0c93ec93b")
UNIQUE_GUID = uuid.UUID("00000000-1111-2222-3333-444444444444")


def make_header(**changes):
    fields = dict(
        revision=0x10000,
        header_size=PartitionTableHeader.SIZE,
        header_crc32=0xDEADBEEF,
        my_lba=1,
        alternate_lba=2047,
        first_usable_lba=34,
        last_usable_lba=2014,
        disk_guid=DISK_GUID,
        partition_entry_lba=2,
        number_of_partition_entries=4,
        size_of_partition_entry=PARTITION_ENTRY_SIZE,
        partition_entry_array_crc32=0x12345678,
    )
    fields.update(changes)
    return PartitionTableHeader(**fields)


def make_entry(name="EFI system"):
    return PartitionEntry(TYPE_GUID, UNIQUE_GUID, 2048, 4095, 1, name)


@pytest.mark.parametrize("size", [0, 1, EFI_PAGE_SIZE - 1, EFI_PAGE_SIZE, EFI_PAGE_SIZE + 1, 10**7])
def test_size_to_pages_covers_size(size):
    pages = size_to_pages(size)
    assert pages_to_size(pages) >= size
    assert pages_to_size(pages) < size + EFI_PAGE_SIZE


@pytest.mark.parametrize("pages", [0, 1, 7, 1000])
def test_pages_round_trip(pages):
    assert size_to_pages(pages_to_size(pages)) == pages
    assert pages_to_size(pages) == pages * EFI_PAGE_SIZE


def test_negative_sizes_rejected():
    with pytest.raises(ValueError):
        size_to_pages(-1)
    with pytest.raises(ValueError):
        pages_to_size(-1)


def test_time_round_trip():
    stamp = EfiTime(2024, 2, 29, 23, 59, 58, 999_999_999, -60, 1)
    packed = stamp.pack()
    assert len(packed) == EfiTime.SIZE
    assert EfiTime.parse(packed) == stamp


def test_time_too_short():
    with pytest.raises(GptError):
        EfiTime.parse(b"\0" * (EfiTime.SIZE - 1))


def test_time_out_of_range():
    with pytest.raises(GptError):
        EfiTime(70000, 1, 1).pack()


def test_header_round_trip():
    header = make_header()
    packed = header.pack()
    assert packed.startswith(EFI_PTAB_HEADER_ID)
    assert len(packed) == PartitionTableHeader.SIZE
    assert PartitionTableHeader.parse(packed) == header


def test_header_guid_is_mixed_endian():
    packed = make_header().pack()
    assert DISK_GUID.bytes_le in packed


def test_header_bad_signature():
    packed = bytearray(make_header().pack())
    packed[0:8] = b"NOT PART"
    with pytest.raises(GptError):
        PartitionTableHeader.parse(bytes(packed))


def test_header_too_short():
    with pytest.raises(GptError):
        PartitionTableHeader.parse(make_header().pack()[:-1])


def test_entry_round_trip():
    entry = make_entry()
    packed = entry.pack()
    assert len(packed) == PARTITION_ENTRY_SIZE
    assert PartitionEntry.parse(packed) == entry
    assert entry.is_used


def test_entry_name_is_utf16():
    packed = make_entry("A").pack()
    assert "A".encode("utf-16-le") + b"\0\0" in packed


def test_entry_full_length_name():
    name = "x" * PARTITION_NAME_LENGTH
    assert PartitionEntry.parse(make_entry(name).pack()).name == name


def test_entry_name_too_long():
    with pytest.raises(GptError):
        make_entry("x" * (PARTITION_NAME_LENGTH + 1)).pack()


def test_entry_name_with_nul():
    with pytest.raises(GptError):
        make_entry("a\0b").pack()


def test_unused_entry():
    entry = PartitionEntry.parse(bytes(PARTITION_ENTRY_SIZE))
    assert not entry.is_used
    assert entry.name == ""


def test_parse_entries_with_padding():
    size = PARTITION_ENTRY_SIZE * 2
    first = make_entry("one")
    second = make_entry("two")
    data = first.pack().ljust(size, b"\xff") + second.pack().ljust(size, b"\xff")
    assert parse_partition_entries(data, 2, size) == [first, second]


@pytest.mark.parametrize("entry_size", [0, 64, PARTITION_ENTRY_SIZE + 1, PARTITION_ENTRY_SIZE * 3])
def test_parse_entries_bad_size(entry_size):
    with pytest.raises(GptError):
        parse_partition_entries(bytes(PARTITION_ENTRY_SIZE * 4), 1, entry_size)


def test_parse_entries_short_data():
    with pytest.raises(GptError):
        parse_partition_entries(make_entry().pack(), 2, PARTITION_ENTRY_SIZE)