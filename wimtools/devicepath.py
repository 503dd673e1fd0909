"""Device paths: chains of typed nodes describing where a device or file lives."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable

_HEADER = struct.Struct("<BBH")

HEADER_SIZE = _HEADER.size
MAX_NODE_LENGTH = 0xFFFF

END_ENTIRE_DEVICE_PATH_SUBTYPE = 0xFF
END_INSTANCE_DEVICE_PATH_SUBTYPE = 0x01

HW_PCI_DP = 0x01
HW_PCCARD_DP = 0x02
HW_MEMMAP_DP = 0x03
HW_VENDOR_DP = 0x04
HW_CONTROLLER_DP = 0x05

ACPI_DP = 0x01
ACPI_EXTENDED_DP = 0x02
ACPI_ADR_DP = 0x03

MSG_ATAPI_DP = 0x01
MSG_SCSI_DP = 0x02
MSG_FIBRECHANNEL_DP = 0x03
MSG_1394_DP = 0x04
MSG_USB_DP = 0x05
MSG_I2O_DP = 0x06
MSG_INFINIBAND_DP = 0x09
MSG_VENDOR_DP = 0x0A
MSG_MAC_ADDR_DP = 0x0B
MSG_IPV4_DP = 0x0C
MSG_IPV6_DP = 0x0D
MSG_UART_DP = 0x0E
MSG_USB_CLASS_DP = 0x0F
MSG_USB_WWID_DP = 0x10
MSG_DEVICE_LOGICAL_UNIT_DP = 0x11
MSG_SATA_DP = 0x12
MSG_ISCSI_DP = 0x13
MSG_VLAN_DP = 0x14
MSG_FIBRECHANNELEX_DP = 0x15
MSG_SASEX_DP = 0x16
MSG_NVME_NAMESPACE_DP = 0x17

MEDIA_HARDDRIVE_DP = 0x01
MEDIA_CDROM_DP = 0x02
MEDIA_VENDOR_DP = 0x03
MEDIA_FILEPATH_DP = 0x04
MEDIA_PROTOCOL_DP = 0x05
MEDIA_PIWG_FW_FILE_DP = 0x06
MEDIA_PIWG_FW_VOL_DP = 0x07
MEDIA_RELATIVE_OFFSET_RANGE_DP = 0x08

BBS_BBS_DP = 0x01


class DevicePathError(ValueError):
    """Raised when a device path is malformed."""


class NodeType(IntEnum):
    """Major type of a device path node."""

    HARDWARE = 0x01
    ACPI = 0x02
    MESSAGING = 0x03
    MEDIA = 0x04
    BBS = 0x05
    END = 0x7F


@dataclass(frozen=True)
class DeviceNode:
    """One node of a device path: type, subtype and type-specific data."""

    type: int
    subtype: int
    data: bytes = b""

    @property
    def length(self) -> int:
        """Encoded length of the node, header included."""
        return HEADER_SIZE + len(self.data)

    @property
    def node_type(self) -> NodeType | None:
        """The type as a known NodeType, if it is one."""
        try:
            return NodeType(self.type)
        except ValueError:
            return None

    @property
    def is_end(self) -> bool:
        """Whether this node ends the entire device path."""
        return self.type == NodeType.END and self.subtype == END_ENTIRE_DEVICE_PATH_SUBTYPE

    @property
    def is_end_instance(self) -> bool:
        """Whether this node ends one instance of a multi-instance path."""
        return self.type == NodeType.END and self.subtype == END_INSTANCE_DEVICE_PATH_SUBTYPE

    def pack(self) -> bytes:
        """Encode the node."""
        if not 0 <= self.type <= 0xFF:
            raise DevicePathError(f"node type {self.type} out of range")
        if not 0 <= self.subtype <= 0xFF:
            raise DevicePathError(f"node subtype {self.subtype} out of range")
        if self.length > MAX_NODE_LENGTH:
            raise DevicePathError(f"node length {self.length} exceeds {MAX_NODE_LENGTH}")
        return _HEADER.pack(self.type, self.subtype, self.length) + bytes(self.data)


def end_node(instance: bool = False) -> DeviceNode:
    """Return an end-of-path node, or an end-of-instance node if ``instance``."""
    subtype = END_INSTANCE_DEVICE_PATH_SUBTYPE if instance else END_ENTIRE_DEVICE_PATH_SUBTYPE
    return DeviceNode(NodeType.END, subtype)


def parse_device_path(data: bytes) -> list[DeviceNode]:
    """Decode nodes up to the end-of-path node, which is not returned."""
    view = bytes(data)
    nodes = []
    offset = 0
    while True:
        if offset + HEADER_SIZE > len(view):
            raise DevicePathError(
                f"device path ends at offset {offset:#x} without an end node"
            )
        node_type, subtype, length = _HEADER.unpack_from(view, offset)
        if length < HEADER_SIZE:
            raise DevicePathError(f"node length {length} at offset {offset:#x} too small")
        if offset + length > len(view):
            raise DevicePathError(f"node at offset {offset:#x} overruns device path")
        node = DeviceNode(node_type, subtype, view[offset + HEADER_SIZE:offset + length])
        if node.is_end:
            return nodes
        nodes.append(node)
        offset += length


def build_device_path(nodes: Iterable[DeviceNode]) -> bytes:
    """Encode nodes as a device path, adding the end-of-path node if missing."""
    nodes = list(nodes)
    for index, node in enumerate(nodes[:-1]):
        if node.is_end:
            raise DevicePathError(f"end-of-path node at position {index} before last node")
    if not nodes or not nodes[-1].is_end:
        nodes.append(end_node())
    return b"".join(node.pack() for node in nodes)