import pytest

from famptools.disk_image import (
    MAX_PATH_LENGTH,
    CheckStatus,
    ChunkCheck,
    ConfigError,
    DiskImage,
    approve,
    check_disk_chunk,
    initiate_path,
    is_memory_stamp_good,
    rework_chunk,
    strdel,
)
from famptools.memory_stamp import MEMORY_STAMP_SIZE, MemoryId, MemoryStamp


def _image_with(content: bytes, pos: int, total: int) -> DiskImage:
    image = DiskImage(total)
    image.fill(content, pos)
    return image


def _stamped_chunk(memory_id: int) -> bytes:
    body = b"\x90" * 100
    total = len(body) + MEMORY_STAMP_SIZE
    stamp = MemoryStamp(
        memory_id=memory_id,
        sectors=1,
        estimate_size_in_bytes=total,
        beginning_address=0xA000,
        ending_address=0xA000 + total,
        name="kernel",
    )
    return body + stamp.pack()


def test_initiate_path_concatenates():
    assert initiate_path("../", "tools_bin/temp_FS_part_header.bin") == (
        "../tools_bin/temp_FS_part_header.bin"
    )


def test_initiate_path_without_second_part():
    assert initiate_path("boot_protocol/bin") == "boot_protocol/bin"


def test_initiate_path_missing_first_part():
    with pytest.raises(ConfigError):
        initiate_path(None, "x")


def test_initiate_path_length_limit():
    first = "a" * (MAX_PATH_LENGTH - 1)
    assert len(initiate_path(first, "b")) == MAX_PATH_LENGTH
    with pytest.raises(ConfigError):
        initiate_path(first, "bc")


def test_strdel_removes_fragment():
    assert strdel("hello world", 5, 6) == "hello"
    assert strdel("abc", 0, 0) == "abc"


def test_strdel_past_end():
    with pytest.raises(ConfigError):
        strdel("abc", 2, 5)


def test_disk_image_starts_zeroed():
    image = DiskImage(512)
    assert bytes(image) == bytes(512)


def test_disk_image_extend_grows():
    image = DiskImage(512)
    assert image.extend(1024) == 1024
    assert len(image) == 512 + 1024
    assert bytes(image) == bytes(len(image))


def test_fill_within_and_beyond():
    image = DiskImage(8)
    assert image.fill(b"ab", 2) == 4
    assert bytes(image)[2:4] == b"ab"
    end = image.fill(b"xyz", 7)
    assert end == 10
    assert len(image) == 10
    assert bytes(image)[7:] == b"xyz"


def test_fill_with_nothing_raises():
    with pytest.raises(ConfigError):
        DiskImage(4).fill(b"", 0)


def test_check_matching_chunk_is_good():
    content = bytes(range(1, 65))
    image = _image_with(content, 16, 128)
    check = check_disk_chunk(image, content, 16, "bin/second_stage.bin")
    assert check.status[0] is CheckStatus.GOOD
    assert check.bad_bytes == 0
    assert check.bytes_checked == len(content)


def test_check_repairs_mismatching_chunk():
    content = bytes(range(1, 65))
    image = _image_with(content, 16, 128)
    image.data[16] ^= 0xFF
    image.data[40] ^= 0xFF
    image.data[79] ^= 0xFF
    check = check_disk_chunk(image, content, 16, "bin/kernel.bin")
    assert check.status[0] is CheckStatus.FIXED
    assert check.bad_bytes == 3
    assert check.corrected_bytes == check.bad_bytes
    assert bytes(image)[16:16 + len(content)] == content
    assert bytes(image)[:16] == bytes(16)


def test_check_chunk_past_end_raises():
    with pytest.raises(ConfigError):
        check_disk_chunk(DiskImage(10), b"abcdefgh", 5, "bin/kernel.bin")


def test_memory_stamp_good():
    chunk = _stamped_chunk(MemoryId.KERNEL)
    image = _image_with(chunk, 0, len(chunk))
    check = check_disk_chunk(image, chunk, 0, "bin/kernel.bin", True)
    assert check.memory_stamp.memory_id == MemoryId.KERNEL
    assert is_memory_stamp_good(check, MemoryId.KERNEL) is CheckStatus.GOOD_MEMORY_STAMP


def test_memory_stamp_wrong_id():
    chunk = _stamped_chunk(MemoryId.KERNEL)
    image = _image_with(chunk, 0, len(chunk))
    check = check_disk_chunk(image, chunk, 0, "bin/kernel.bin", True)
    assert is_memory_stamp_good(check, MemoryId.SECOND_STAGE) is CheckStatus.BAD_MEMORY_STAMP


def test_memory_stamp_not_read_without_flag():
    chunk = _stamped_chunk(MemoryId.KERNEL)
    image = _image_with(chunk, 0, len(chunk))
    check = check_disk_chunk(image, chunk, 0, "bin/kernel.bin", False)
    assert check.memory_stamp is None
    assert is_memory_stamp_good(check, MemoryId.KERNEL) is CheckStatus.BAD_MEMORY_STAMP


def test_rework_chunk_corrects_bytes():
    content = b"ABCDEFGH"
    image = DiskImage(len(content))
    check = ChunkCheck(image=image, filename="f.bin", begin_pos=0,
                       bytes_checked=len(content), bad_bytes=len(content))
    result = rework_chunk(check, content)
    assert result is check
    assert bytes(image) == content
    assert check.corrected_bytes == len(content)
    assert check.status == [CheckStatus.UNSTATED, CheckStatus.UNSTATED]


def test_approve_fixes_and_resets_tries():
    content = b"ABCDEFGH"
    image = DiskImage(len(content))
    check = ChunkCheck(image=image, filename="f.bin", begin_pos=0,
                       bytes_checked=len(content), bad_bytes=len(content))
    assert approve(check, content) is CheckStatus.FIXED
    assert check.status[0] is CheckStatus.FIXED
    assert check.tries == 0
    assert bytes(image) == content


def test_approve_without_image():
    check = ChunkCheck(image=None, filename="f.bin", begin_pos=0, bytes_checked=4)
    assert approve(check, b"abcd") is CheckStatus.UNKNOWN_ERROR


def test_approve_on_truncated_image_reports_bad_chunk():
    check = ChunkCheck(image=DiskImage(2), filename="f.bin", begin_pos=0,
                       bytes_checked=4, bad_bytes=1)
    assert approve(check, b"abcd") is CheckStatus.BAD_CHUNK
    assert check.status[1] is CheckStatus.CHUNK_CORRUPTED