import pytest

from famptools.yaml_data import (
    FS_CUSTOM,
    FS_EXT2,
    FS_FAT32,
    OS_32BIT,
    OS_64BIT,
    DataType,
    YamlEntry,
    build_os_info,
    hex_to_int,
)
from famptools.yaml_lexer import YamlError


def make_entries(**overrides):
    values = {
        "os_type": "32bit",
        "os_name": "FAMP",
        "os_vers": "1.0",
        "pref_FS": "custom",
        "disk_name": "disk",
        "auto_format": "no",
        "bin_folder": "bin",
        "kernel_o_binary": "kernel.o",
        "kernel_bin_binary": "kernel.bin",
        "kernel_source_code_file": "kernel.c",
    }
    values.update(overrides)
    return [YamlEntry(name, DataType.STR, value) for name, value in values.items()]


@pytest.fixture
def kernel_root(tmp_path):
    (tmp_path / "kernel.bin").write_bytes(b"\x90" * 700)
    return tmp_path


@pytest.mark.parametrize("number", [0, 1, 9, 10, 15, 16, 255, 4096, 0xDEADBEEF])
def test_hex_to_int_round_trip(number):
    assert hex_to_int("0" + format(number, "X")) == number
    assert hex_to_int("0" + format(number, "x")) == number


def test_hex_to_int_ignores_first_character():
    assert hex_to_int("7FF") == hex_to_int("0FF")


def test_hex_to_int_skips_non_hex_characters():
    assert hex_to_int("0A-B") == hex_to_int("0AB")


def test_hex_to_int_short_text():
    assert hex_to_int("") == 0
    assert hex_to_int("0") == 0


def test_build_defaults(kernel_root):
    data = build_os_info(make_entries(), kernel_root)
    assert data.os_type == OS_32BIT
    assert data.fs_type == FS_CUSTOM
    assert data.os_name == "FAMP"
    assert data.os_version == "1.0"
    assert data.disk_name == "disk"
    assert data.auto_format is False
    assert data.bin_folder == "bin"
    assert data.kernel_o_name == "kernel.o"
    assert data.kernel_o_name_size == len("kernel.o")
    assert data.kernel_source == "kernel.c"
    assert data.kernel_source_size == len("kernel.c")
    assert data.has_second_stage is False


def test_kernel_size_is_read(kernel_root):
    data = build_os_info(make_entries(), kernel_root)
    assert data.kernel_bin_size == len((kernel_root / "kernel.bin").read_bytes())
    assert data.kernel_bin_name == "kernel.bin"


@pytest.mark.parametrize(
    "value, expected", [("32bit", OS_32BIT), ("64bit", OS_64BIT), ("16bit", OS_32BIT)]
)
def test_os_type(kernel_root, value, expected):
    assert build_os_info(make_entries(os_type=value), kernel_root).os_type == expected


@pytest.mark.parametrize(
    "value, expected",
    [("custom", FS_CUSTOM), ("FAT32", FS_FAT32), ("ext2", FS_EXT2), ("ntfs", FS_CUSTOM)],
)
def test_fs_type(kernel_root, value, expected):
    assert build_os_info(make_entries(pref_FS=value), kernel_root).fs_type == expected


def test_auto_format_yes(kernel_root):
    assert build_os_info(make_entries(auto_format="yes"), kernel_root).auto_format is True


def test_too_few_entries(kernel_root):
    with pytest.raises(YamlError):
        build_os_info(make_entries()[:7], kernel_root)


def test_missing_kernel_binary(tmp_path):
    with pytest.raises(YamlError):
        build_os_info(make_entries(), tmp_path)