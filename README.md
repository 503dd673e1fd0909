# wimtools

Pure-Python tools for the data formats met when booting Windows images:

- **XCA decompression** (Xpress Compression Algorithm, the Huffman variant
  used in WIM files): `wimtools.xca`
- **GPT** partition table headers and entries, the UEFI `EFI_TIME`
  structure and 4 KiB page-size helpers: `wimtools.gpt`
- **PE/COFF headers**: DOS header, COFF file header, PE32/PE32+ optional
  header with data directories, and section headers: `wimtools.pe_headers`
- **UEFI device paths**: generic node parsing and building
  (`wimtools.devicepath`), plus builders and decoders for file path, hard
  drive and PCI nodes and EISA/ACPI ID helpers (`wimtools.devicenodes`)
- **Keystrokes** from a UEFI simple text input device: scan codes, control
  characters and the `InputKey` structure: `wimtools.keys`

There are no runtime dependencies.

## Installation

```sh
pip install .
```

For running the tests:

```sh
pip install .[test]
pytest
```

## Decompressing XCA data

```python
from wimtools.xca import decompress, decompressed_size, XcaError

with open("chunk.bin", "rb") as f:
    compressed = f.read()

try:
    data = decompress(compressed)
except XcaError as exc:
    print(f"corrupt chunk: {exc}")
else:
    assert len(data) == decompressed_size(compressed)
```

A stream is made of blocks, each starting with a 256-byte table of 4-bit
Huffman code lengths for 512 symbols; a new table is read each time another
64 KiB of output has been produced. `XcaError` is a `ValueError` and is
raised for truncated tables, invalid Huffman alphabets, matches that reach
before the start of the output, and input overruns. `symbol_lengths` and
`HuffmanAlphabet` are available for working with the tables directly.

The same is available from the command line:

```sh
xca-decompress chunk.bin -o chunk.out
```

Without `-o`/`--output` the decompressed data is written to standard output.
On error a message is printed to standard error and the exit status is 1.

## Reading a GPT

```python
from wimtools.gpt import PartitionTableHeader, parse_partition_entries

with open("disk.img", "rb") as disk:
    disk.seek(512)
    header = PartitionTableHeader.parse(disk.read(PartitionTableHeader.SIZE))
    disk.seek(header.partition_entry_lba * 512)
    raw = disk.read(header.number_of_partition_entries * header.size_of_partition_entry)

for entry in parse_partition_entries(
    raw, header.number_of_partition_entries, header.size_of_partition_entry
):
    if entry.is_used:
        print(entry.name, entry.type_guid, entry.starting_lba, entry.ending_lba)
```

`PartitionTableHeader`, `PartitionEntry` and `EfiTime` each have `parse`
and `pack`. Malformed data raises `GptError`. `size_to_pages` and
`pages_to_size` convert between bytes and 4 KiB pages.

## Reading PE headers

```python
from wimtools.pe_headers import DosHeader, FileHeader, OptionalHeader, SectionHeader

with open("bootx64.efi", "rb") as f:
    data = f.read()

dos = DosHeader.parse(data)
file_header = FileHeader.parse(data, dos.new_header_offset)
optional = OptionalHeader.parse(
    data, file_header.optional_header_offset, file_header.size_of_optional_header
)
sections = [
    SectionHeader.parse(data, file_header.section_table_offset + i * SectionHeader.SIZE)
    for i in range(file_header.number_of_sections)
]
print(file_header.machine_type, optional.is_pe32_plus, [s.name for s in sections])
```

Bad signatures, unknown optional header magic and truncated data raise
`PeFormatError`. `MachineType`, `Subsystem` and `SectionFlags` give names to
the header values.

## Device paths

```python
from wimtools.devicepath import parse_device_path, build_device_path
from wimtools.devicenodes import filepath_node, decode_filepath, pci_node

path = build_device_path([pci_node(0, 0x1F), filepath_node(r"\EFI\BOOT\BOOTX64.EFI")])
nodes = parse_device_path(path)
print(decode_filepath(nodes[-1]))
```

`build_device_path` appends the end-of-path node when it is missing;
`parse_device_path` stops at it and does not return it. Malformed paths or
nodes raise `DevicePathError`.

## Keystrokes

```python
from wimtools.keys import InputKey, ScanCode

key = InputKey.parse(b"\x17\x00\x00\x00")
assert key.scan is ScanCode.ESC and key.char == ""
```

## What this package does not do

It reads headers one at a time: it does not parse TE image headers or base
relocation blocks, nor assemble a whole image from its headers and sections.
It has no constants or helpers for text console colours and attributes.
It does not read or write disks, boot anything, or talk to firmware; it only
decodes and encodes the byte layouts described above.