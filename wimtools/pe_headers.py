"""Portable Executable headers: DOS stub, COFF file header, optional header, sections."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum, IntFlag

DOS_SIGNATURE = b"MZ"
OS2_SIGNATURE = b"NE"
OS2_SIGNATURE_LE = b"LE"
NT_SIGNATURE = b"PE\0\0"

PE32_MAGIC = 0x10B
PE32_PLUS_MAGIC = 0x20B

NUMBER_OF_DIRECTORY_ENTRIES = 16
SIZEOF_SHORT_NAME = 8

DIRECTORY_ENTRY_EXPORT = 0
DIRECTORY_ENTRY_IMPORT = 1
DIRECTORY_ENTRY_RESOURCE = 2
DIRECTORY_ENTRY_EXCEPTION = 3
DIRECTORY_ENTRY_SECURITY = 4
DIRECTORY_ENTRY_BASERELOC = 5
DIRECTORY_ENTRY_DEBUG = 6
DIRECTORY_ENTRY_COPYRIGHT = 7
DIRECTORY_ENTRY_GLOBALPTR = 8
DIRECTORY_ENTRY_TLS = 9
DIRECTORY_ENTRY_LOAD_CONFIG = 10

IMAGE_FILE_RELOCS_STRIPPED = 0x0001
IMAGE_FILE_EXECUTABLE_IMAGE = 0x0002
IMAGE_FILE_LINE_NUMS_STRIPPED = 0x0004
IMAGE_FILE_LOCAL_SYMS_STRIPPED = 0x0008
IMAGE_FILE_BYTES_REVERSED_LO = 0x0080
IMAGE_FILE_32BIT_MACHINE = 0x0100
IMAGE_FILE_DEBUG_STRIPPED = 0x0200
IMAGE_FILE_SYSTEM = 0x1000
IMAGE_FILE_DLL = 0x2000
IMAGE_FILE_BYTES_REVERSED_HI = 0x8000

_DOS = struct.Struct("<30HI")
_FILE = struct.Struct("<HHIIIHH")
_DIRECTORY = struct.Struct("<II")
_OPT32 = struct.Struct("<HBBIIIIIIIIIHHHHHHIIIIHHIIIIII")
_OPT64 = struct.Struct("<HBBIIIIIQIIHHHHHHIIIIHHQQQQII")
_SECTION = struct.Struct("<8sIIIIIIHHI")

DOS_HEADER_SIZE = _DOS.size
FILE_HEADER_SIZE = _FILE.size
SECTION_HEADER_SIZE = _SECTION.size


class PeFormatError(ValueError):
    """Raised when image headers are malformed."""


class MachineType(IntEnum):
    """Machine types of images."""

    I386 = 0x014C
    IA64 = 0x0200
    EBC = 0x0EBC
    X64 = 0x8664
    ARMTHUMB_MIXED = 0x01C2
    ARM64 = 0xAA64


class Subsystem(IntEnum):
    """Subsystem an image is built for."""

    UNKNOWN = 0
    NATIVE = 1
    WINDOWS_GUI = 2
    WINDOWS_CUI = 3
    OS2_CUI = 5
    POSIX_CUI = 7
    EFI_APPLICATION = 10
    EFI_BOOT_SERVICE_DRIVER = 11
    EFI_RUNTIME_DRIVER = 12
    SAL_RUNTIME_DRIVER = 13


class SectionFlags(IntFlag):
    """Section characteristics."""

    TYPE_NO_PAD = 0x00000008
    CNT_CODE = 0x00000020
    CNT_INITIALIZED_DATA = 0x00000040
    CNT_UNINITIALIZED_DATA = 0x00000080
    LNK_OTHER = 0x00000100
    LNK_INFO = 0x00000200
    LNK_REMOVE = 0x00000800
    LNK_COMDAT = 0x00001000
    ALIGN_1BYTES = 0x00100000
    ALIGN_2BYTES = 0x00200000
    ALIGN_4BYTES = 0x00300000
    ALIGN_8BYTES = 0x00400000
    ALIGN_16BYTES = 0x00500000
    ALIGN_32BYTES = 0x00600000
    ALIGN_64BYTES = 0x00700000
    MEM_DISCARDABLE = 0x02000000
    MEM_NOT_CACHED = 0x04000000
    MEM_NOT_PAGED = 0x08000000
    MEM_SHARED = 0x10000000
    MEM_EXECUTE = 0x20000000
    MEM_READ = 0x40000000
    MEM_WRITE = 0x80000000


_ALIGN_SHIFT = 20
_ALIGN_MASK = 0xF


def _check_range(data: bytes, offset: int, size: int, what: str) -> None:
    if offset < 0:
        raise PeFormatError(f"{what} offset {offset} is negative")
    if offset + size > len(data):
        raise PeFormatError(
            f"{what} at offset {offset:#x} needs {size} bytes, only {max(len(data) - offset, 0)} left"
        )


@dataclass(frozen=True)
class DosHeader:
    """The DOS stub header that may start an image."""

    bytes_on_last_page: int
    pages: int
    relocations: int
    header_paragraphs: int
    min_alloc: int
    max_alloc: int
    initial_ss: int
    initial_sp: int
    checksum: int
    initial_ip: int
    initial_cs: int
    relocation_table_offset: int
    overlay_number: int
    oem_id: int
    oem_info: int
    new_header_offset: int

    SIZE = _DOS.size

    @classmethod
    def parse(cls, data: bytes) -> DosHeader:
        """Decode the DOS header at the start of ``data``."""
        _check_range(data, 0, _DOS.size, "DOS header")
        if bytes(data[:2]) != DOS_SIGNATURE:
            raise PeFormatError(f"bad DOS signature {bytes(data[:2])!r}")
        fields = _DOS.unpack_from(data)
        (_magic, cblp, cp, crlc, cparhdr, minalloc, maxalloc, ss, sp, csum,
         ip, cs, lfarlc, ovno) = fields[:14]
        oemid, oeminfo = fields[18:20]
        lfanew = fields[30]
        return cls(
            bytes_on_last_page=cblp,
            pages=cp,
            relocations=crlc,
            header_paragraphs=cparhdr,
            min_alloc=minalloc,
            max_alloc=maxalloc,
            initial_ss=ss,
            initial_sp=sp,
            checksum=csum,
            initial_ip=ip,
            initial_cs=cs,
            relocation_table_offset=lfarlc,
            overlay_number=ovno,
            oem_id=oemid,
            oem_info=oeminfo,
            new_header_offset=lfanew,
        )


@dataclass(frozen=True)
class FileHeader:
    """The NT signature and COFF file header that follows it."""

    offset: int
    machine: int
    number_of_sections: int
    time_date_stamp: int
    pointer_to_symbol_table: int
    number_of_symbols: int
    size_of_optional_header: int
    characteristics: int

    @property
    def machine_type(self) -> MachineType | None:
        """The machine as a known MachineType, if it is one."""
        try:
            return MachineType(self.machine)
        except ValueError:
            return None

    @property
    def optional_header_offset(self) -> int:
        """File offset of the optional header."""
        return self.offset + len(NT_SIGNATURE) + _FILE.size

    @property
    def section_table_offset(self) -> int:
        """File offset of the first section header."""
        return self.optional_header_offset + self.size_of_optional_header

    @classmethod
    def parse(cls, data: bytes, offset: int) -> FileHeader:
        """Decode the NT signature and file header starting at ``offset``."""
        _check_range(data, offset, len(NT_SIGNATURE) + _FILE.size, "file header")
        signature = bytes(data[offset:offset + len(NT_SIGNATURE)])
        if signature != NT_SIGNATURE:
            raise PeFormatError(f"bad NT signature {signature!r} at offset {offset:#x}")
        (machine, sections, stamp, symtab, symbols,
         opt_size, characteristics) = _FILE.unpack_from(data, offset + len(NT_SIGNATURE))
        return cls(
            offset=offset,
            machine=machine,
            number_of_sections=sections,
            time_date_stamp=stamp,
            pointer_to_symbol_table=symtab,
            number_of_symbols=symbols,
            size_of_optional_header=opt_size,
            characteristics=characteristics,
        )


@dataclass(frozen=True)
class DataDirectory:
    """Location and size of one header data directory."""

    virtual_address: int
    size: int


@dataclass(frozen=True)
class OptionalHeader:
    """PE32 or PE32+ optional header."""

    magic: int
    major_linker_version: int
    minor_linker_version: int
    size_of_code: int
    size_of_initialized_data: int
    size_of_uninitialized_data: int
    address_of_entry_point: int
    base_of_code: int
    base_of_data: int | None
    image_base: int
    section_alignment: int
    file_alignment: int
    major_operating_system_version: int
    minor_operating_system_version: int
    major_image_version: int
    minor_image_version: int
    major_subsystem_version: int
    minor_subsystem_version: int
    win32_version_value: int
    size_of_image: int
    size_of_headers: int
    checksum: int
    subsystem: int
    dll_characteristics: int
    size_of_stack_reserve: int
    size_of_stack_commit: int
    size_of_heap_reserve: int
    size_of_heap_commit: int
    loader_flags: int
    number_of_rva_and_sizes: int
    data_directories: tuple[DataDirectory, ...]

    @property
    def is_pe32_plus(self) -> bool:
        """Whether this is a 64-bit (PE32+) header."""
        return self.magic == PE32_PLUS_MAGIC

    @classmethod
    def parse(cls, data: bytes, offset: int, size: int) -> OptionalHeader:
        """Decode an optional header of ``size`` bytes starting at ``offset``."""
        if size < 2:
            raise PeFormatError(f"optional header size {size} too small")
        _check_range(data, offset, size, "optional header")
        (magic,) = struct.unpack_from("<H", data, offset)
        if magic == PE32_MAGIC:
            layout = _OPT32
        elif magic == PE32_PLUS_MAGIC:
            layout = _OPT64
        else:
            raise PeFormatError(f"unknown optional header magic {magic:#x}")
        if size < layout.size:
            raise PeFormatError(
                f"optional header size {size} too small for magic {magic:#x}"
            )
        fields = list(layout.unpack_from(data, offset))
        if layout is _OPT64:
            fields.insert(8, None)
        (magic, major_linker, minor_linker, size_code, size_init, size_uninit,
         entry, base_code, base_data, image_base, section_align, file_align,
         major_os, minor_os, major_image, minor_image, major_sub, minor_sub,
         win32_version, size_image, size_headers, checksum, subsystem, dll_chars,
         stack_reserve, stack_commit, heap_reserve, heap_commit,
         loader_flags, rva_count) = fields

        count = min(rva_count, NUMBER_OF_DIRECTORY_ENTRIES)
        if layout.size + count * _DIRECTORY.size > size:
            raise PeFormatError(
                f"{count} data directories do not fit in optional header of {size} bytes"
            )
        directories = tuple(
            DataDirectory(*_DIRECTORY.unpack_from(data, offset + layout.size + index * _DIRECTORY.size))
            for index in range(count)
        )
        return cls(
            magic=magic,
            major_linker_version=major_linker,
            minor_linker_version=minor_linker,
            size_of_code=size_code,
            size_of_initialized_data=size_init,
            size_of_uninitialized_data=size_uninit,
            address_of_entry_point=entry,
            base_of_code=base_code,
            base_of_data=base_data,
            image_base=image_base,
            section_alignment=section_align,
            file_alignment=file_align,
            major_operating_system_version=major_os,
            minor_operating_system_version=minor_os,
            major_image_version=major_image,
            minor_image_version=minor_image,
            major_subsystem_version=major_sub,
            minor_subsystem_version=minor_sub,
            win32_version_value=win32_version,
            size_of_image=size_image,
            size_of_headers=size_headers,
            checksum=checksum,
            subsystem=subsystem,
            dll_characteristics=dll_chars,
            size_of_stack_reserve=stack_reserve,
            size_of_stack_commit=stack_commit,
            size_of_heap_reserve=heap_reserve,
            size_of_heap_commit=heap_commit,
            loader_flags=loader_flags,
            number_of_rva_and_sizes=rva_count,
            data_directories=directories,
        )


@dataclass(frozen=True)
class SectionHeader:
    """One entry of the section table."""

    name: str
    virtual_size: int
    virtual_address: int
    size_of_raw_data: int
    pointer_to_raw_data: int
    pointer_to_relocations: int
    pointer_to_linenumbers: int
    number_of_relocations: int
    number_of_linenumbers: int
    characteristics: int

    SIZE = _SECTION.size

    @property
    def flags(self) -> SectionFlags:
        """The characteristics as section flags."""
        return SectionFlags(self.characteristics)

    @property
    def alignment(self) -> int | None:
        """Byte alignment encoded in the characteristics, if any."""
        code = (self.characteristics >> _ALIGN_SHIFT) & _ALIGN_MASK
        return 1 << (code - 1) if code else None

    @classmethod
    def parse(cls, data: bytes, offset: int) -> SectionHeader:
        """Decode a section header starting at ``offset``."""
        _check_range(data, offset, _SECTION.size, "section header")
        (raw_name, virtual_size, virtual_address, raw_size, raw_pointer,
         reloc_pointer, line_pointer, relocs, lines,
         characteristics) = _SECTION.unpack_from(data, offset)
        name = raw_name.split(b"\0", 1)[0].decode("latin-1")
        return cls(
            name=name,
            virtual_size=virtual_size,
            virtual_address=virtual_address,
            size_of_raw_data=raw_size,
            pointer_to_raw_data=raw_pointer,
            pointer_to_relocations=reloc_pointer,
            pointer_to_linenumbers=line_pointer,
            number_of_relocations=relocs,
            number_of_linenumbers=lines,
            characteristics=characteristics,
        )