"""Adds a filesystem partition to an existing disk image and rewrites the boot source."""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from famptools.configure import render_boot_source
from famptools.disk_image import ConfigError, DiskImage, initiate_path
from famptools.memory_stamp import BYTES_PER_SECTOR
from famptools.partition import PartitionHeader, init_fs_and_partition_type

__all__ = [
    "read_mbr_os_info",
    "format_disk_image",
    "main",
    "MBR_INFO_OFFSET",
    "MIN_FS_SECTORS",
    "MAX_FS_SECTORS",
]

MBR_INFO_OFFSET = 0x100
MIN_FS_SECTORS = 5
MAX_FS_SECTORS = 15

_OS_NAME_SIZE = 15
_OS_VERSION_SIZE = 5
_INFO_SIZE = 1 + _OS_NAME_SIZE + _OS_VERSION_SIZE + 1

_USAGE = (
    "Expected at least three arguments: [type_of_filesystem] [part_type] [size_of_filesystem]\n"
    "\tWhere `size_of_filesystem` has to be >= 5 sectors.\n"
    "For more information, run `FAMP_fdi --h`."
)

BytesLike = Union[bytes, bytearray, memoryview]


def _c_string(data: bytes) -> str:
    return data.split(b"\0", 1)[0].decode("latin-1")


def _read(path: Union[str, Path]) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"Error opening file {path}.") from exc


def _atoi(text: str) -> int:
    match = re.match(r"\s*[+-]?\d+", text)
    return int(match.group()) if match else 0


def read_mbr_os_info(mbr: BytesLike) -> Tuple[int, str, str, int]:
    """Return the filesystem type, OS name, OS version and OS type kept in the MBR."""
    data = bytes(mbr)
    if len(data) < MBR_INFO_OFFSET + _INFO_SIZE:
        raise ConfigError("The MBR binary is too small to hold the OS information.")
    offset = MBR_INFO_OFFSET
    fs_type = data[offset]
    offset += 1
    os_name = _c_string(data[offset:offset + _OS_NAME_SIZE])
    offset += _OS_NAME_SIZE
    os_version = _c_string(data[offset:offset + _OS_VERSION_SIZE])
    offset += _OS_VERSION_SIZE
    os_type = data[offset]
    return fs_type, os_name, os_version, os_type


def format_disk_image(
    root: str,
    image_path: Union[str, Path],
    fs_type: str,
    part_type: str,
    fs_sectors: int,
) -> Optional[PartitionHeader]:
    """Append a filesystem partition to the disk image and rewrite the boot source.

    Returns the partition header, or ``None`` when the image was formatted
    before. A size of 15 sectors or more falls back to 5 sectors.
    """
    done_marker = Path(initiate_path(root, "boot_protocol/tools_bin/format_done"))
    if done_marker.exists():
        return None

    fs_size = fs_sectors * BYTES_PER_SECTOR
    if fs_size >= MAX_FS_SECTORS * BYTES_PER_SECTOR:
        fs_size = MIN_FS_SECTORS * BYTES_PER_SECTOR

    mbr_fs_type, os_name, os_version, os_type = read_mbr_os_info(
        _read(initiate_path(root, "bin/boot.bin"))
    )

    original = _read(image_path)
    image = DiskImage()
    end = image.fill(original, 0)
    end += image.extend(fs_size)

    # The header goes into the image before its types are filled in.
    header = PartitionHeader(header_start=bytes(6), header_end=bytes(15))
    header.set_lba(end - fs_size, fs_size)
    header.cylinder = header.head = header.sector = 0
    print(f"\n{end}, {end - fs_size}")
    image.fill(header.pack(), end - fs_size)

    temp_image = initiate_path(root, "boot_protocol/bin/temp_image.fimg")
    Path(temp_image).write_bytes(bytes(image.data[:fs_size + len(original)]))
    done_marker.write_bytes(b"")

    second_stage_size = len(_read(initiate_path(root, "boot_protocol/bin/second_stage.bin")))
    partition_table_size = len(
        _read(initiate_path(root, "boot_protocol/bin/mbr_partition_table.bin"))
    )
    _read(initiate_path(root, "boot_protocol/bin/higher_half_kernel.bin"))
    kernel_size = len(_read(initiate_path(root, "bin/kernel.bin")))

    init_fs_and_partition_type(header, kernel_size, fs_type=fs_type, part_type=part_type)

    template = _read(
        initiate_path(root, "boot_protocol/config/formats/boot_format")
    ).decode("latin-1")
    source = render_boot_source(
        template,
        os_name,
        os_version,
        mbr_fs_type,
        os_type,
        2 + partition_table_size // BYTES_PER_SECTOR,
        second_stage_size,
        kernel_size,
        fs_size,
    )
    Path(initiate_path(root, "boot_protocol/boot/boot.s")).write_bytes(source.encode("latin-1"))
    return header


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Format a disk image: root, image, filesystem type, partition type, size in sectors."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 5:
        print(_USAGE, file=sys.stderr)
        return 1
    root, image_path, fs_type, part_type, size_text = args[:5]
    try:
        header = format_disk_image(root, image_path, fs_type, part_type, _atoi(size_text))
    except (ConfigError, OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1
    if header is None:
        print(
            "Disk image has already been formatted. "
            "Clean out the directory storing the disk image and reformat.",
            file=sys.stderr,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())