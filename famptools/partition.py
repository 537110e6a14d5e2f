"""The partition header that describes the filesystem partition."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from famptools.yaml_data import OsData

__all__ = [
    "PartitionType",
    "FsType",
    "PartitionHeader",
    "init_fs_and_partition_type",
    "FS_ADDRESS",
    "PART_HEADER_START",
    "PART_HEADER_END",
    "PARTITION_HEADER_SIZE",
    "HIGHER_HALF_BASE",
    "NO_FS",
]

FS_ADDRESS = 0xF000
HIGHER_HALF_BASE = 0x80000000

PART_HEADER_START = b"PARTS\0"
PART_HEADER_END = b"PARTE" + bytes(10)

NO_FS = b"NO_FS_MOUNTED\0"

_LAYOUT = struct.Struct("<6sBIIHIBIHBI15s")
PARTITION_HEADER_SIZE = _LAYOUT.size


class PartitionType(enum.IntEnum):
    USER_KERNEL = 1 << 0  # UKA
    KERNEL_ONLY = 1 << 1  # KOA
    CRITICAL_KERNEL_ONLY = 1 << 2  # CDKOA
    CRITICAL_USER_KERNEL = 1 << 3  # CDUKA
    EXTRA = 1 << 4  # E


class FsType(enum.IntEnum):
    FAT32 = 1 << 5
    EXT2 = 1 << 6
    FAMP_CUSTOM = 1 << 7
    ISO9660 = 1 << 8


_PART_TYPE_NAMES = {
    "UKA": PartitionType.USER_KERNEL,
    "KOA": PartitionType.KERNEL_ONLY,
    "CDKOA": PartitionType.CRITICAL_KERNEL_ONLY,
    "CDUKA": PartitionType.CRITICAL_USER_KERNEL,
    "E": PartitionType.EXTRA,
}

_CONFIG_FS_TYPES = {
    2: FsType.FAT32,
    3: FsType.EXT2,
    4: FsType.ISO9660,
}


@dataclass
class PartitionHeader:
    partition_type: int = 0
    starting_lba: int = 0
    ending_lba: int = 0
    partition_address: int = 0
    virtual_address: int = 0
    fs_type: int = 0
    famp_custom_fs_revision: int = 0
    cylinder: int = 0
    head: int = 0
    sector: int = 0
    header_start: bytes = PART_HEADER_START
    header_end: bytes = PART_HEADER_END

    def pack(self) -> bytes:
        """Return the header in its packed on-disk layout.

        The filesystem type occupies one byte, so values above 255 are
        truncated to their low byte.
        """
        return _LAYOUT.pack(
            bytes(self.header_start)[:6],
            self.partition_type & 0xFF,
            self.starting_lba & 0xFFFFFFFF,
            self.ending_lba & 0xFFFFFFFF,
            self.partition_address & 0xFFFF,
            self.virtual_address & 0xFFFFFFFF,
            self.fs_type & 0xFF,
            self.famp_custom_fs_revision & 0xFFFFFFFF,
            self.cylinder & 0xFFFF,
            self.head & 0xFF,
            self.sector & 0xFFFFFFFF,
            bytes(self.header_end)[:15],
        )

    def set_lba(self, start_lba: int, fs_size: int) -> None:
        """Set the first and last LBA of a filesystem of ``fs_size`` bytes."""
        self.starting_lba = start_lba & 0xFFFFFFFF
        self.ending_lba = (start_lba + fs_size // 512) & 0xFFFFFFFF


def init_fs_and_partition_type(
    header: PartitionHeader,
    kernel_size: int,
    odata: Optional["OsData"] = None,
    fs_type: Optional[str] = None,
    part_type: Optional[str] = None,
) -> None:
    """Fill in the filesystem and partition type of ``header``.

    With ``odata`` the filesystem comes from the configuration and the
    partition is open to user and kernel. Otherwise the filesystem is the
    custom one and ``part_type`` (UKA, KOA, CDKOA, CDUKA or E) selects the
    partition type; an unknown name leaves it unchanged.
    """
    if odata is None and fs_type is None and part_type is None:
        raise ValueError(
            "Cannot initiate FS type and size.\nThere is no data to use to configure."
        )

    header.header_start = PART_HEADER_START
    header.header_end = PART_HEADER_END

    if odata is not None:
        chosen = _CONFIG_FS_TYPES.get(odata.fs_type)
        if chosen is None:
            header.fs_type = FsType.FAMP_CUSTOM
            if odata.fs_type == 1:
                header.famp_custom_fs_revision = 1
        else:
            header.fs_type = chosen
        header.partition_type = PartitionType.USER_KERNEL
    else:
        header.fs_type = FsType.FAMP_CUSTOM
        header.famp_custom_fs_revision = 1
        if part_type in _PART_TYPE_NAMES:
            header.partition_type = _PART_TYPE_NAMES[part_type]

    header.partition_address = FS_ADDRESS
    header.virtual_address = (HIGHER_HALF_BASE + kernel_size) & 0xFFFFFFFF