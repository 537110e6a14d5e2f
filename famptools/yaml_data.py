"""Typed configuration values and the OS description built from them."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Union

from famptools.yaml_lexer import YamlError

__all__ = [
    "DataType",
    "YamlEntry",
    "OsData",
    "hex_to_int",
    "build_os_info",
    "NEEDED_NAMES",
    "OS_32BIT",
    "OS_64BIT",
    "FS_CUSTOM",
    "FS_FAT32",
    "FS_EXT2",
]

NEEDED_NAMES = (
    "os_type",
    "os_name",
    "os_vers",
    "pref_FS",
    "bin_folder",
    "kernel_o_binary",
    "kernel_bin_binary",
    "kernel_source_code_file",
)

OS_32BIT = 0x02
OS_64BIT = 0x03

FS_CUSTOM = 1
FS_FAT32 = 2
FS_EXT2 = 3

# Number of positional values read to describe the OS.
_FIELD_COUNT = 10

_MISSING = "\n\nError:\n\tMissing some information in `boot.yaml`.\n"


class DataType(enum.Enum):
    CHR = "chr"
    HEX = "hex"
    DEC = "dec"
    STR = "str"


@dataclass(frozen=True)
class YamlEntry:
    name: str
    data_type: DataType
    value: str


@dataclass
class OsData:
    os_type: int
    os_name: str
    os_version: str
    fs_type: int
    disk_name: str
    auto_format: bool
    bin_folder: str
    kernel_o_name: str
    kernel_bin_size: int
    kernel_bin_name: str
    kernel_source: str
    has_second_stage: bool = False

    @property
    def kernel_o_name_size(self) -> int:
        return len(self.kernel_o_name)

    @property
    def kernel_source_size(self) -> int:
        return len(self.kernel_source)


def hex_to_int(text: str) -> int:
    """Convert hex digits to an integer, ignoring the first character.

    The first character is the ``0`` left in place of the ``0x`` prefix;
    characters that are not hex digits are skipped.
    """
    result = 0
    base = 1
    for ch in reversed(text[1:]):
        if "0" <= ch <= "9":
            digit = ord(ch) - ord("0")
        elif "A" <= ch <= "F":
            digit = ord(ch) - ord("A") + 10
        elif "a" <= ch <= "f":
            digit = ord(ch) - ord("a") + 10
        else:
            continue
        result += digit * base
        base *= 16
    return result


def _os_type(value: str) -> int:
    return OS_64BIT if value == "64bit" else OS_32BIT


def _fs_type(value: str) -> int:
    return {"custom": FS_CUSTOM, "FAT32": FS_FAT32, "ext2": FS_EXT2}.get(value, FS_CUSTOM)


def _file_size(path: Path) -> int:
    try:
        with open(path, "rb") as handle:
            handle.seek(0, 2)
            return handle.tell()
    except OSError as exc:
        raise YamlError(f"Error opening kernel binary file`{path}`.") from exc


def build_os_info(
    entries: Sequence[YamlEntry], kernel_root: Union[str, Path] = "../.."
) -> OsData:
    """Build the OS description from entries, read in file order.

    The kernel binary is looked up under ``kernel_root`` to learn its size.
    """
    values = [entry.value for entry in entries]
    if len(values) < max(len(NEEDED_NAMES), _FIELD_COUNT):
        raise YamlError(_MISSING)

    (
        os_type,
        os_name,
        os_version,
        fs_type,
        disk_name,
        auto_format,
        bin_folder,
        kernel_o_name,
        kernel_bin_name,
        kernel_source,
    ) = values[:_FIELD_COUNT]

    return OsData(
        os_type=_os_type(os_type),
        os_name=os_name,
        os_version=os_version,
        fs_type=_fs_type(fs_type),
        disk_name=disk_name,
        auto_format=auto_format == "yes",
        bin_folder=bin_folder,
        kernel_o_name=kernel_o_name,
        kernel_bin_size=_file_size(Path(kernel_root) / kernel_bin_name),
        kernel_bin_name=kernel_bin_name,
        kernel_source=kernel_source,
    )