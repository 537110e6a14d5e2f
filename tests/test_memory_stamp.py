import pytest

from famptools.memory_stamp import (
    ACCESS_LEVEL_ONE,
    BYTES_PER_SECTOR,
    KERNEL_ADDRESS,
    MAGIC,
    MEMORY_STAMP_SIZE,
    SECOND_STAGE_ADDRESS,
    MemoryId,
    MemoryStamp,
    find_memory_stamp,
    main,
    pad_file,
    sectors_needed,
    stamp_file,
    unpack_memory_stamp,
)


def _stamp(memory_id=MemoryId.KERNEL):
    return MemoryStamp(
        memory_id=int(memory_id),
        sectors=3,
        estimate_size_in_bytes=1536,
        beginning_address=KERNEL_ADDRESS,
        ending_address=KERNEL_ADDRESS + 1536,
        name="kernel",
    )


def _write(tmp_path, size, name="bin.bin"):
    path = tmp_path / name
    path.write_bytes(bytes([0x90]) * size)
    return path


@pytest.mark.parametrize("size,expected", [(1, 1), (512, 1), (513, 2), (1024, 2)])
def test_sectors_needed(size, expected):
    assert sectors_needed(size) == expected


def test_pack_starts_with_magic_and_has_fixed_size():
    packed = _stamp().pack()
    assert len(packed) == MEMORY_STAMP_SIZE
    assert packed[:5] == bytes([0x2B, 0x84, 0x83, 0x82, 0x81])
    assert packed[5] == 0x2A


def test_pack_unpack_round_trip():
    stamp = _stamp()
    assert unpack_memory_stamp(stamp.pack()) == stamp


def test_unpack_too_short():
    with pytest.raises(ValueError):
        unpack_memory_stamp(b"\x2b\x84")


def test_pad_file_to_sector(tmp_path):
    path = _write(tmp_path, 100)
    padding = pad_file(path)
    data = path.read_bytes()
    assert len(data) == BYTES_PER_SECTOR
    assert padding == BYTES_PER_SECTOR - 100
    assert data[100:] == bytes(padding)


def test_pad_file_already_aligned(tmp_path):
    path = _write(tmp_path, BYTES_PER_SECTOR)
    assert pad_file(path) == 0
    assert path.stat().st_size == BYTES_PER_SECTOR


def test_pad_empty_file_fails(tmp_path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    with pytest.raises(ValueError):
        pad_file(path)


def test_pad_missing_file_fails(tmp_path):
    with pytest.raises(OSError):
        pad_file(tmp_path / "missing.bin")


def test_stamp_kernel(tmp_path):
    path = _write(tmp_path, 100)
    stamp = stamp_file(path, kernel=True)
    data = path.read_bytes()
    assert len(data) == BYTES_PER_SECTOR
    assert data[:100] == bytes([0x90]) * 100
    stored = unpack_memory_stamp(data[-MEMORY_STAMP_SIZE:])
    assert stored == stamp
    assert stored.memory_id == MemoryId.KERNEL
    assert stored.name == "kernel"
    assert stored.beginning_address == KERNEL_ADDRESS
    assert stored.estimate_size_in_bytes == len(data)
    assert stored.ending_address == stored.beginning_address + len(data)
    assert stored.sectors == 1
    assert stored.is_overwritten is False


def test_stamp_second_stage(tmp_path):
    path = _write(tmp_path, 700)
    stamp = stamp_file(path, kernel=False)
    assert stamp.memory_id == 0x0B
    assert stamp.name == "second_stage"
    assert stamp.beginning_address == 0x7E00 == SECOND_STAGE_ADDRESS
    assert stamp.access == ACCESS_LEVEL_ONE == 0x0B
    assert path.stat().st_size == stamp.sectors * BYTES_PER_SECTOR


def test_stamp_when_last_sector_is_nearly_full(tmp_path):
    path = _write(tmp_path, 500)
    stamp = stamp_file(path, kernel=True)
    size = path.stat().st_size
    assert size % BYTES_PER_SECTOR == 0
    assert size == stamp.estimate_size_in_bytes
    assert path.read_bytes()[-MEMORY_STAMP_SIZE:] == stamp.pack()


def test_find_memory_stamp_after_junk():
    stamp = _stamp()
    data = b"\x2b\x00\x2b\x84\x83\x00" + bytes(10) + stamp.pack() + bytes(4)
    assert find_memory_stamp(data, MemoryId.KERNEL) == stamp


def test_find_memory_stamp_wrong_kind():
    data = bytes(7) + _stamp().pack()
    assert find_memory_stamp(data, MemoryId.SECOND_STAGE) is None


def test_find_memory_stamp_absent():
    assert find_memory_stamp(bytes(200), MemoryId.KERNEL) is None


def test_find_memory_stamp_respects_start():
    stamp = _stamp()
    data = stamp.pack() + bytes(3)
    assert find_memory_stamp(data, MemoryId.KERNEL, 1) is None
    assert find_memory_stamp(data, MemoryId.KERNEL, 0) == stamp


def test_find_in_stamped_file(tmp_path):
    path = _write(tmp_path, 300)
    stamp = stamp_file(path, kernel=False)
    found = find_memory_stamp(path.read_bytes(), MemoryId.SECOND_STAGE)
    assert found == stamp
    assert found.magic == MAGIC


def test_main_without_arguments():
    assert main([]) == 1


def test_main_jpad(tmp_path):
    path = _write(tmp_path, 10)
    assert main([str(path), "--jpad"]) == 0
    assert path.stat().st_size == BYTES_PER_SECTOR


def test_main_kernel_reports(tmp_path, capsys):
    path = _write(tmp_path, 10)
    assert main([str(path), "--kernel"]) == 0
    out = capsys.readouterr().out
    assert "mem_info.beginning_address: A000" in out
    assert "mem_info.sectors: 1" in out


def test_main_missing_file(tmp_path):
    assert main([str(tmp_path / "nope.bin"), "--kernel"]) == 1