"""In-memory disk image and the checks that keep its chunks in line with their binaries."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Union

from famptools.memory_stamp import MEMORY_STAMP_SIZE, MemoryStamp, unpack_memory_stamp

__all__ = [
    "ConfigError",
    "CheckStatus",
    "ChunkCheck",
    "DiskImage",
    "initiate_path",
    "strdel",
    "check_disk_chunk",
    "rework_chunk",
    "approve",
    "is_memory_stamp_good",
    "MAX_PATH_LENGTH",
    "MAX_TRIES",
]

MAX_PATH_LENGTH = 80

# A chunk is reworked at most this many times minus one before giving up.
MAX_TRIES = 4

BytesLike = Union[bytes, bytearray, memoryview]


class ConfigError(Exception):
    """Raised when the image configuration cannot go on."""


class CheckStatus(enum.Enum):
    NEEDS_REWORK = "needs_rework"
    GOOD = "good"
    BAD_MEMORY_STAMP = "bad_memory_stamp"
    GOOD_MEMORY_STAMP = "good_memory_stamp"
    BAD_CHUNK = "bad_chunk"
    UNKNOWN_ERROR = "unknown_error"
    CHUNK_CORRUPTED = "chunk_corrupted"
    FIXED = "fixed"
    UNSTATED = "unstated"


class DiskImage:
    """A growable, zero-initialised byte buffer holding a whole disk image."""

    def __init__(self, size: int = 0):
        if size < 0:
            raise ConfigError("A disk image cannot have a negative size.")
        self.data = bytearray(size)

    def __len__(self) -> int:
        return len(self.data)

    def __bytes__(self) -> bytes:
        return bytes(self.data)

    def extend(self, new_size: int) -> int:
        """Append ``new_size`` zero bytes; return the number of bytes added."""
        if new_size < 0:
            raise ConfigError("Cannot extend the disk image by a negative size.")
        self.data.extend(bytes(new_size))
        return new_size

    def fill(self, data: BytesLike, start: int) -> int:
        """Copy ``data`` into the image at ``start``, growing it when needed.

        Returns the position just past the copied bytes.
        """
        data = bytes(data)
        if not data:
            raise ConfigError(
                "Error reading in binary data: nothing got read or the file is corrupted."
            )
        if start < 0:
            raise ConfigError("Cannot fill the disk image at a negative position.")
        end = start + len(data)
        if end > len(self.data):
            self.extend(end - len(self.data))
        self.data[start:end] = data
        return end


@dataclass
class ChunkCheck:
    """The state of one chunk of the image compared with its binary."""

    image: Optional[DiskImage]
    filename: str
    begin_pos: int
    bytes_checked: int = 0
    status: list = field(default_factory=lambda: [CheckStatus.UNSTATED, CheckStatus.UNSTATED])
    bad_bytes: int = 0
    corrected_bytes: int = 0
    check_memory_stamp: bool = False
    memory_stamp: Optional[MemoryStamp] = None
    tries: int = 0

    def region(self, length: int) -> bytes:
        """Return ``length`` bytes of the image starting at the chunk."""
        if self.image is None:
            return b""
        return bytes(self.image.data[self.begin_pos:self.begin_pos + length])


def initiate_path(data1: Optional[str], data2: Optional[str] = None) -> str:
    """Join two path parts, refusing a missing first part or an overlong result."""
    if data1 is None:
        raise ConfigError("Cannot initiate the path. No data given to configure the path.")
    if data2 is None:
        return data1
    if len(data1) + len(data2) > MAX_PATH_LENGTH:
        raise ConfigError(
            f"Path is too large: {data1}{data2}.\n"
            f"FAMP only allows up to {MAX_PATH_LENGTH} characters for a path."
        )
    return data1 + data2


def strdel(text: str, start: int, length: int) -> str:
    """Return ``text`` with ``length`` characters removed from ``start``."""
    end = start + length
    if start < 0 or length < 0 or end > len(text):
        raise ConfigError("End position surpasses length of text.")
    return text[:start] + text[end:]


def _mismatches(check: ChunkCheck, content: bytes) -> int:
    return sum(a != b for a, b in zip(check.region(len(content)), content))


def check_disk_chunk(
    image: DiskImage,
    chunk: BytesLike,
    pos: int,
    filename: str,
    check_memory_stamp: bool = False,
) -> ChunkCheck:
    """Compare the image at ``pos`` with the binary ``chunk`` and repair it.

    A chunk that differs is reworked until it matches; a chunk that cannot
    be repaired raises :class:`ConfigError`.
    """
    if filename is None:
        raise ConfigError(
            "An argument passed to `check_disk_chunk` resulted in being NULL."
        )
    content = bytes(chunk)
    check = ChunkCheck(
        image=image,
        filename=filename,
        begin_pos=pos,
        check_memory_stamp=check_memory_stamp,
    )

    if check_memory_stamp and len(content) >= MEMORY_STAMP_SIZE:
        check.memory_stamp = unpack_memory_stamp(content[-MEMORY_STAMP_SIZE:])

    if pos < 0 or pos + len(content) > len(image):
        raise ConfigError(
            f"The chunk for the binary file {filename} extends past the end of the disk image."
        )

    check.bytes_checked = len(content)
    check.bad_bytes = _mismatches(check, content)

    if check.bad_bytes:
        check.status = [CheckStatus.NEEDS_REWORK, CheckStatus.UNSTATED]
        result = approve(rework_chunk(check, content), content)
        if result in (CheckStatus.BAD_CHUNK, CheckStatus.UNKNOWN_ERROR):
            raise ConfigError(
                "A unknown error occurred, or there is a bad chunk residing in the disk image.\n"
                f"The error occurrs with the binary file {filename}."
            )
        if check.status[1] is CheckStatus.CHUNK_CORRUPTED:
            raise ConfigError(f"The binary file {filename} is corrupted.")
        if check.status[0] is not CheckStatus.FIXED:
            raise ConfigError(
                f"There are some underlying problems with a specific chunk (located ~{pos} "
                f"bytes into the disk image).\nThe error occurrs with the binary file {filename}."
            )
    else:
        check.status = [CheckStatus.GOOD, CheckStatus.UNSTATED]
    return check


def rework_chunk(check: ChunkCheck, content: BytesLike) -> ChunkCheck:
    """Overwrite every byte of the chunk that differs from ``content``."""
    content = bytes(content)
    if check.image is not None:
        region = check.region(check.bytes_checked)
        for offset, (have, want) in enumerate(zip(region, content[:check.bytes_checked])):
            if have != want:
                check.image.data[check.begin_pos + offset] = want
                check.corrected_bytes += 1
        if check.corrected_bytes < check.bad_bytes:
            end = check.image.fill(content[:check.bytes_checked], check.begin_pos)
            if end - check.begin_pos != check.bytes_checked:
                raise ConfigError(
                    "There was a random mismatch of chunk sizes when fixing a chunk of data "
                    f"from the disk image.\nThis error occurrs for the binary file {check.filename}."
                )
    check.status = [CheckStatus.UNSTATED, CheckStatus.UNSTATED]
    check.tries += 1
    return check


def approve(check: ChunkCheck, content: BytesLike) -> CheckStatus:
    """Recheck a reworked chunk against ``content`` and report whether it is fixed."""
    if check.image is None:
        return CheckStatus.UNKNOWN_ERROR
    content = bytes(content)[:check.bytes_checked]
    try:
        while True:
            if check.tries >= MAX_TRIES:
                raise ConfigError(
                    f"Attempted to fix the disk image {MAX_TRIES - 1} times while checking the "
                    f"chunk of data resembling the binary file {check.filename}. Aborting."
                )
            if len(check.region(len(content))) < len(content):
                check.status = [CheckStatus.BAD_CHUNK, CheckStatus.CHUNK_CORRUPTED]
                return CheckStatus.BAD_CHUNK
            matches = _mismatches(check, content) == 0
            if matches and check.corrected_bytes >= check.bad_bytes:
                check.status = [CheckStatus.FIXED, CheckStatus.UNSTATED]
                return CheckStatus.FIXED
            if check.corrected_bytes < check.bad_bytes and check.tries + 1 == MAX_TRIES:
                check.status = [CheckStatus.BAD_CHUNK, CheckStatus.UNSTATED]
                return CheckStatus.BAD_CHUNK
            rework_chunk(check, content)
    finally:
        check.tries = 0


def is_memory_stamp_good(check: ChunkCheck, expected_id: int) -> CheckStatus:
    """Tell whether the chunk's stamp has the expected id and the chunk's size."""
    stamp = check.memory_stamp
    if (
        stamp is not None
        and stamp.memory_id == int(expected_id)
        and stamp.estimate_size_in_bytes == check.bytes_checked
    ):
        return CheckStatus.GOOD_MEMORY_STAMP
    return CheckStatus.BAD_MEMORY_STAMP