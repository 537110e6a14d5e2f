"""Writes the boot sector source, build files and disk image described by ``boot.yaml``."""

from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path
from typing import Optional, Sequence, Union

from famptools.disk_image import (
    MAX_PATH_LENGTH,
    CheckStatus,
    ConfigError,
    DiskImage,
    check_disk_chunk,
    initiate_path,
    is_memory_stamp_good,
)
from famptools.memory_stamp import (
    BYTES_PER_SECTOR,
    KERNEL_ADDRESS,
    SECOND_STAGE_ADDRESS,
    MemoryId,
)
from famptools.partition import NO_FS, PartitionHeader, init_fs_and_partition_type
from famptools.yaml_data import OsData
from famptools.yaml_lexer import YamlError
from famptools.yaml_parser import open_and_parse_yaml

__all__ = [
    "pad_os_name",
    "render_boot_source",
    "render_linker_script",
    "build_disk_image",
    "fs_chunk",
    "main",
    "MBR_SIZE",
    "SECTOR_AFTER_MBR",
    "OS_NAME_WIDTH",
    "FAMP_DISK_IMAGE_FOLDER",
    "NO_FS_SECTORS",
    "AUTO_FS_SECTORS",
]

MBR_SIZE = BYTES_PER_SECTOR
SECTOR_AFTER_MBR = 2
OS_NAME_WIDTH = 15
FAMP_DISK_IMAGE_FOLDER = "/usr/lib/FAMP_disk_images/"
NO_FS_SECTORS = 1
AUTO_FS_SECTORS = 5

BytesLike = Union[bytes, bytearray, memoryview]

_CONVERSION = re.compile(
    r"%([-+ #0]*\d*(?:\.\d+)?)(?:hh|h|ll|l|z|j|t|L)?([diouxXeEfFgGcs%])"
)


def _c_format(template: str, values: tuple) -> str:
    """Fill a printf-style template, accepting C length modifiers."""

    def convert(match: re.Match) -> str:
        conversion = "d" if match.group(2) == "u" else match.group(2)
        return "%" + match.group(1) + conversion

    try:
        return _CONVERSION.sub(convert, template) % values
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"The format template does not fit its values: {exc}") from exc


def _read(path: Union[str, Path]) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"Error opening file {path}.") from exc


def _read_template(path: Union[str, Path]) -> str:
    data = _read(path)
    if not data:
        raise ConfigError(f"Error with size of {path}.\n\tWas all the content removed?")
    return data.decode("latin-1")


def _write(path: Union[str, Path], data: BytesLike) -> None:
    try:
        Path(path).write_bytes(bytes(data))
    except OSError as exc:
        raise ConfigError(f"Error creating file {path}.") from exc


def pad_os_name(name: str) -> str:
    """Pad an OS name shorter than 15 characters with spaces to 15."""
    return name.ljust(OS_NAME_WIDTH)


def render_boot_source(
    template: str,
    os_name: str,
    os_version: str,
    fs_type: int,
    os_type: int,
    first_sector: int,
    ssb_size: int,
    kernel_size: int,
    fs_size: int,
) -> str:
    """Fill the boot sector template with the OS details and partition table layout."""
    ssb_sectors = ssb_size // BYTES_PER_SECTOR
    kernel_sectors = kernel_size // BYTES_PER_SECTOR
    fs_sectors = fs_size // BYTES_PER_SECTOR
    kernel_start = first_sector + ssb_sectors
    fs_start = kernel_start + kernel_sectors
    return _c_format(
        template,
        (
            fs_type,
            os_name,
            os_version,
            os_type,
            first_sector,
            kernel_start,
            ssb_sectors,
            kernel_start,
            fs_start,
            kernel_sectors,
            fs_start,
            fs_start + fs_sectors,
            fs_sectors,
        ),
    )


def render_linker_script(template: str, second_stage_size: int, kernel_size: int) -> str:
    """Fill the second-stage linker template with the binaries' end addresses."""
    return _c_format(
        template,
        (
            SECOND_STAGE_ADDRESS + second_stage_size - BYTES_PER_SECTOR,
            KERNEL_ADDRESS + kernel_size - BYTES_PER_SECTOR,
            kernel_size,
            KERNEL_ADDRESS,
        ),
    )


def build_disk_image(
    mbr: BytesLike,
    partition_table: BytesLike,
    second_stage: BytesLike,
    higher_half: BytesLike,
    kernel: BytesLike,
    fs_chunk: BytesLike,
) -> DiskImage:
    """Lay the binaries out one after another; the MBR takes exactly one sector."""
    parts = [
        (bytes(mbr)[:MBR_SIZE], MBR_SIZE),
        (bytes(partition_table), len(partition_table)),
        (bytes(second_stage), len(second_stage)),
        (bytes(higher_half), len(higher_half)),
        (bytes(kernel), len(kernel)),
        (bytes(fs_chunk), len(fs_chunk)),
    ]
    image = DiskImage()
    position = 0
    for data, size in parts:
        image.fill(data, position)
        position += size
    if position > len(image):
        image.extend(position - len(image))
    return image


def fs_chunk(
    odata: OsData,
    kernel_size: int,
    start_sector: int,
    ssb_size: int,
    higher_half_size: int,
) -> bytes:
    """Return the bytes that stand for the filesystem partition.

    Without auto formatting it is one sector marked as holding no
    filesystem; with it, five sectors beginning with a partition header.
    """
    if not odata.auto_format:
        size = NO_FS_SECTORS * BYTES_PER_SECTOR
        return NO_FS + bytes(size - len(NO_FS))

    size = AUTO_FS_SECTORS * BYTES_PER_SECTOR
    header = PartitionHeader()
    init_fs_and_partition_type(header, kernel_size, odata=odata)
    start = (
        (start_sector - 1) * BYTES_PER_SECTOR
        + ssb_size
        + higher_half_size
        + odata.kernel_bin_size
    ) // BYTES_PER_SECTOR
    header.set_lba(start, size)
    packed = header.pack()
    return packed + bytes(size - len(packed))


def _check_existing_image(data: bytes, chunks: list) -> None:
    image = DiskImage(len(data))
    image.data[:] = data
    position = 0
    for name, content, expected_id in chunks:
        check = check_disk_chunk(image, content, position, name, expected_id is not None)
        if (
            expected_id is not None
            and is_memory_stamp_good(check, expected_id) is not CheckStatus.GOOD_MEMORY_STAMP
        ):
            raise ConfigError(
                f"The memory stamp residing in the current chunk of the binary file {name} "
                "does not match the metadata of the binary file itself."
            )
        position += check.bytes_checked


def _configure(base: Path, mode: str) -> None:
    odata = open_and_parse_yaml(base / "../../boot.yaml", base / "../..")

    second_stage = _read(base / "../bin/second_stage.bin")
    partition_table = _read(base / "../bin/mbr_partition_table.bin")
    higher_half = _read(base / "../bin/higher_half_kernel.bin")

    kernel_bin_file = "../../" + odata.kernel_bin_name
    if len(kernel_bin_file) > MAX_PATH_LENGTH:
        raise ConfigError(
            "File path is too large. Make sure the binary file for the kernel is not too long."
        )
    kernel = _read(base / kernel_bin_file)
    if len(kernel) != odata.kernel_bin_size:
        raise ConfigError(
            f"Size mismatch for kernel binary file located at "
            f"{initiate_path(odata.bin_folder, '/kernel.bin')}."
        )

    sector = SECTOR_AFTER_MBR + len(partition_table) // BYTES_PER_SECTOR
    fs = fs_chunk(odata, len(kernel), sector, len(second_stage), len(higher_half))
    fs_path = base / initiate_path("../", "tools_bin/temp_FS_part_header.bin")
    _write(fs_path, fs)

    if mode != "eve":
        source = render_boot_source(
            _read_template(base / "formats/boot_format"),
            pad_os_name(odata.os_name),
            odata.os_version,
            odata.fs_type,
            odata.os_type,
            sector,
            len(second_stage),
            odata.kernel_bin_size,
            len(fs),
        )
        _write(base / "../boot/boot.s", source.encode("latin-1"))
        if mode == "mbr":
            return

    mbr_name = "../../bin/boot.bin"
    mbr = _read(base / mbr_name)
    image_path = base / initiate_path("../bin/", initiate_path(odata.disk_name, ".fimg"))

    if image_path.exists():
        chunks = [
            (mbr_name, mbr[:MBR_SIZE], None),
            ("../bin/mbr_partition_table.bin", partition_table, None),
            ("../bin/second_stage.bin", second_stage, MemoryId.SECOND_STAGE),
            ("../bin/higher_half_kernel.bin", higher_half, None),
            (kernel_bin_file, kernel, MemoryId.KERNEL),
        ]
        _check_existing_image(_read(image_path), chunks)
    else:
        if not fs_path.exists():
            raise ConfigError(
                "The temporary FS binary file does not exist. It must have been deleted."
            )
        image = build_disk_image(
            mbr, partition_table, second_stage, higher_half, kernel, _read(fs_path)
        )
        _write(image_path, bytes(image))

    disk_image = initiate_path(FAMP_DISK_IMAGE_FOLDER, initiate_path(odata.disk_name, ".fimg"))
    makefile = _c_format(
        _read_template(base / "formats/makefile_format"),
        (
            disk_image,
            "../" + odata.kernel_o_name,
            odata.kernel_o_name,
            odata.kernel_source,
            odata.kernel_o_name,
            kernel_bin_file,
            kernel_bin_file,
            odata.kernel_o_name,
        ),
    )
    _write(base / "../Makefile", makefile.encode("latin-1"))

    _write(base / "../../Makefile", _read_template(base / "formats/user_makefile_format").encode("latin-1"))

    fdi = _c_format(_read_template(base / "formats/FAMP_fdi_format"), (disk_image,))
    _write(base / "scripts/FAMP_fdi", fdi.encode("latin-1"))

    linker = render_linker_script(
        _read_template(base / "formats/ss_linker_format"), len(second_stage), len(kernel)
    )
    _write(base / "../linker/linker.ld", linker.encode("latin-1"))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Configure the boot protocol; ``mbr`` stops after the boot source, ``eve`` skips it."""
    parser = argparse.ArgumentParser(
        prog="famp-config", description="Configure the boot protocol from boot.yaml."
    )
    parser.add_argument("mode", nargs="?", default="", help="`mbr` or `eve`")
    parser.add_argument(
        "--dir", type=Path, default=Path("."), help="the configuration directory"
    )
    args = parser.parse_args(argv)
    try:
        _configure(args.dir, args.mode)
    except (ConfigError, YamlError, OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())