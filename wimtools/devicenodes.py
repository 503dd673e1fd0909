"""Builders and decoders for common device path nodes."""

from __future__ import annotations

import struct
import uuid
from typing import NamedTuple

from wimtools.devicepath import (
    HW_PCI_DP,
    MEDIA_FILEPATH_DP,
    MEDIA_HARDDRIVE_DP,
    DeviceNode,
    DevicePathError,
    NodeType,
)

MBR_TYPE_PCAT = 0x01
MBR_TYPE_EFI_PARTITION_TABLE_HEADER = 0x02

NO_DISK_SIGNATURE = 0x00
SIGNATURE_TYPE_MBR = 0x01
SIGNATURE_TYPE_GUID = 0x02

PNP_EISA_ID_CONST = 0x41D0
PNP_EISA_ID_MASK = 0xFFFF

ACPI_ADR_DISPLAY_TYPE_OTHER = 0
ACPI_ADR_DISPLAY_TYPE_VGA = 1
ACPI_ADR_DISPLAY_TYPE_TV = 2
ACPI_ADR_DISPLAY_TYPE_EXTERNAL_DIGITAL = 3
ACPI_ADR_DISPLAY_TYPE_INTERNAL_DIGITAL = 4

SIGNATURE_SIZE = 16

_HARDDRIVE = struct.Struct("<IQQ16sBB")
_PCI = struct.Struct("<BB")


class _HardDrive(NamedTuple):
    partition_number: int
    start: int
    size: int
    signature: bytes
    mbr_type: int
    signature_type: int


def _expect(node: DeviceNode, node_type: NodeType, subtype: int, what: str) -> None:
    if node.type != node_type or node.subtype != subtype:
        raise DevicePathError(
            f"node type {node.type:#x} subtype {node.subtype:#x} is not a {what} node"
        )


def filepath_node(path: str) -> DeviceNode:
    """Build a file path media node holding a NUL-terminated UTF-16 path."""
    if "\0" in path:
        raise DevicePathError("file path may not contain NUL characters")
    data = (path + "\0").encode("utf-16-le", "surrogatepass")
    return DeviceNode(NodeType.MEDIA, MEDIA_FILEPATH_DP, data)


def decode_filepath(node: DeviceNode) -> str:
    """Return the path held by a file path media node."""
    _expect(node, NodeType.MEDIA, MEDIA_FILEPATH_DP, "file path")
    if len(node.data) % 2:
        raise DevicePathError(f"file path node data length {len(node.data)} is odd")
    text = bytes(node.data).decode("utf-16-le", "surrogatepass")
    return text.split("\0", 1)[0]


def _signature_bytes(signature: bytes | int | uuid.UUID) -> bytes:
    if isinstance(signature, uuid.UUID):
        return signature.bytes_le
    if isinstance(signature, int):
        if not 0 <= signature <= 0xFFFFFFFF:
            raise DevicePathError(f"MBR signature {signature:#x} out of range")
        return signature.to_bytes(4, "little").ljust(SIGNATURE_SIZE, b"\0")
    raw = bytes(signature)
    if len(raw) > SIGNATURE_SIZE:
        raise DevicePathError(f"partition signature longer than {SIGNATURE_SIZE} bytes")
    return raw.ljust(SIGNATURE_SIZE, b"\0")


def harddrive_node(
    partition_number: int,
    start: int,
    size: int,
    signature: bytes | int | uuid.UUID = b"",
    mbr_type: int = MBR_TYPE_EFI_PARTITION_TABLE_HEADER,
    signature_type: int = SIGNATURE_TYPE_GUID,
) -> DeviceNode:
    """Build a hard drive media node describing one partition."""
    try:
        data = _HARDDRIVE.pack(
            partition_number, start, size, _signature_bytes(signature),
            mbr_type, signature_type,
        )
    except struct.error as exc:
        raise DevicePathError(f"hard drive node field out of range: {exc}") from exc
    return DeviceNode(NodeType.MEDIA, MEDIA_HARDDRIVE_DP, data)


def decode_harddrive(node: DeviceNode) -> _HardDrive:
    """Return the fields of a hard drive media node."""
    _expect(node, NodeType.MEDIA, MEDIA_HARDDRIVE_DP, "hard drive")
    if len(node.data) < _HARDDRIVE.size:
        raise DevicePathError(
            f"hard drive node needs {_HARDDRIVE.size} data bytes, got {len(node.data)}"
        )
    return _HardDrive(*_HARDDRIVE.unpack_from(bytes(node.data)))


def pci_node(function: int, device: int) -> DeviceNode:
    """Build a PCI hardware node."""
    try:
        data = _PCI.pack(function, device)
    except struct.error as exc:
        raise DevicePathError(f"PCI node field out of range: {exc}") from exc
    return DeviceNode(NodeType.HARDWARE, HW_PCI_DP, data)


def decode_pci(node: DeviceNode) -> tuple[int, int]:
    """Return (function, device) of a PCI hardware node."""
    _expect(node, NodeType.HARDWARE, HW_PCI_DP, "PCI")
    if len(node.data) < _PCI.size:
        raise DevicePathError(
            f"PCI node needs {_PCI.size} data bytes, got {len(node.data)}"
        )
    return _PCI.unpack_from(bytes(node.data))


def eisa_id(name: int, num: int) -> int:
    """Combine a compressed EISA name and a product number into a 32-bit ID."""
    return (name | (num << 16)) & 0xFFFFFFFF


def eisa_pnp_id(pnp_id: int) -> int:
    """EISA ID for a PNP device number."""
    return eisa_id(PNP_EISA_ID_CONST, pnp_id)


def eisa_id_to_num(value: int) -> int:
    """Product number part of an EISA ID."""
    return value >> 16


def acpi_display_adr(
    device_id_scheme: int,
    head_id: int,
    non_vga_output: int,
    bios_can_detect: int,
    vendor_info: int,
    display_type: int,
    port: int,
    index: int,
) -> int:
    """Encode an ACPI _ADR value for a video output device."""
    return (
        ((device_id_scheme & 0x1) << 31)
        | ((head_id & 0x7) << 18)
        | ((non_vga_output & 0x1) << 17)
        | ((bios_can_detect & 0x1) << 16)
        | ((vendor_info & 0xF) << 12)
        | ((display_type & 0xF) << 8)
        | ((port & 0xF) << 4)
        | (index & 0xF)
    ) & 0xFFFFFFFF