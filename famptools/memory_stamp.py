"""Memory stamps: metadata appended to the end of sector-padded binaries."""

from __future__ import annotations

import enum
import struct
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

__all__ = [
    "MemoryId",
    "MemoryStamp",
    "unpack_memory_stamp",
    "sectors_needed",
    "pad_file",
    "stamp_file",
    "find_memory_stamp",
    "main",
    "BYTES_PER_SECTOR",
    "MEMORY_STAMP_SIZE",
    "MAGIC",
    "ACCESS_LEVEL_ONE",
    "ACCESS_LEVEL_TWO",
    "ACCESS_LEVEL_THREE",
    "KERNEL_ADDRESS",
    "SECOND_STAGE_ADDRESS",
]

BYTES_PER_SECTOR = 512

MAGIC = bytes([0x2B, 0x84, 0x83, 0x82, 0x81])

ACCESS_LEVEL_ONE = 0b00001011
ACCESS_LEVEL_TWO = 0b00001001
ACCESS_LEVEL_THREE = 0b00001000

KERNEL_ADDRESS = 0xA000
SECOND_STAGE_ADDRESS = 0x7E00

_NAME_SIZE = 20
# magic, id, sectors, (pad), estimated size, overwritten, access,
# beginning, ending, name, (tail padding to 8-byte alignment)
_LAYOUT = struct.Struct("<5sBBxQ?BHH20s6x")
MEMORY_STAMP_SIZE = _LAYOUT.size


class MemoryId(enum.IntEnum):
    BOOT_1 = 0x0A
    SECOND_STAGE = 0x0B
    USER = 0x1A
    KERNEL = 0x2A


@dataclass
class MemoryStamp:
    memory_id: int
    sectors: int
    estimate_size_in_bytes: int
    beginning_address: int
    ending_address: int
    name: str = ""
    access: int = ACCESS_LEVEL_ONE
    is_overwritten: bool = False
    magic: bytes = MAGIC

    def pack(self) -> bytes:
        """Return the stamp in its on-disk layout."""
        name = self.name.encode("latin-1")[:_NAME_SIZE]
        return _LAYOUT.pack(
            bytes(self.magic)[:5],
            self.memory_id & 0xFF,
            self.sectors & 0xFF,
            self.estimate_size_in_bytes & 0xFFFFFFFFFFFFFFFF,
            self.is_overwritten,
            self.access & 0xFF,
            self.beginning_address & 0xFFFF,
            self.ending_address & 0xFFFF,
            name,
        )


def unpack_memory_stamp(data: Union[bytes, bytearray, memoryview]) -> MemoryStamp:
    """Read a stamp from the first bytes of ``data``."""
    if len(data) < MEMORY_STAMP_SIZE:
        raise ValueError(
            f"A memory stamp needs {MEMORY_STAMP_SIZE} bytes, got {len(data)}."
        )
    (
        magic,
        memory_id,
        sectors,
        estimate,
        overwritten,
        access,
        beginning,
        ending,
        name,
    ) = _LAYOUT.unpack_from(bytes(data[:MEMORY_STAMP_SIZE]))
    return MemoryStamp(
        memory_id=memory_id,
        sectors=sectors,
        estimate_size_in_bytes=estimate,
        beginning_address=beginning,
        ending_address=ending,
        name=name.rstrip(b"\0").decode("latin-1"),
        access=access,
        is_overwritten=overwritten,
        magic=magic,
    )


def sectors_needed(file_size: int) -> int:
    """Number of whole sectors needed to hold ``file_size`` bytes."""
    return -(-file_size // BYTES_PER_SECTOR)


def _file_size(path: Path) -> int:
    size = path.stat().st_size
    if size == 0:
        raise ValueError("File has zero bytes.")
    return size


def pad_file(path: Union[str, Path]) -> int:
    """Pad a file with zeros to a whole number of sectors; return the padding."""
    path = Path(path)
    file_size = _file_size(path)
    padding = sectors_needed(file_size) * BYTES_PER_SECTOR - file_size
    with open(path, "ab") as handle:
        handle.write(bytes(padding))
    return padding


def stamp_file(path: Union[str, Path], kernel: bool) -> MemoryStamp:
    """Pad a binary to whole sectors, ending it with a memory stamp.

    The stamp describes the kernel when ``kernel`` is true and the
    second-stage bootloader otherwise.
    """
    path = Path(path)
    file_size = _file_size(path)
    sectors = sectors_needed(file_size)
    padding = sectors * BYTES_PER_SECTOR - file_size - MEMORY_STAMP_SIZE
    if padding < 0:
        # Not enough room left in the last sector for the stamp.
        sectors += 1
        padding += BYTES_PER_SECTOR
    if sectors > 0xFF:
        raise ValueError(f"`{path}` needs {sectors} sectors; at most 255 fit a stamp.")

    if kernel:
        memory_id, name, beginning = MemoryId.KERNEL, "kernel", KERNEL_ADDRESS
    else:
        memory_id, name, beginning = MemoryId.SECOND_STAGE, "second_stage", SECOND_STAGE_ADDRESS

    estimate = file_size + padding + MEMORY_STAMP_SIZE
    stamp = MemoryStamp(
        memory_id=int(memory_id),
        sectors=sectors,
        estimate_size_in_bytes=estimate,
        beginning_address=beginning,
        ending_address=(beginning + estimate) & 0xFFFF,
        name=name,
        access=ACCESS_LEVEL_ONE,
        is_overwritten=False,
    )
    with open(path, "ab") as handle:
        handle.write(bytes(padding))
        handle.write(stamp.pack())
    return stamp


def find_memory_stamp(
    data: Union[bytes, bytearray, memoryview], kind: int, start: int = 0
) -> Optional[MemoryStamp]:
    """Find the first stamp in ``data`` from ``start``.

    Returns ``None`` when no stamp is found, or when the first one found
    carries a memory id other than ``kind``.
    """
    data = bytes(data)
    position = data.find(MAGIC, start)
    if position < 0 or len(data) - position < MEMORY_STAMP_SIZE:
        return None
    stamp = unpack_memory_stamp(data[position:])
    if stamp.memory_id != int(kind):
        return None
    return stamp


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Pad (``--jpad``) or stamp (``--kernel``, ``--second_stage``) a binary."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print("Expected file as argument.", file=sys.stderr)
        return 1
    filename, mode = args[0], args[1]
    try:
        if mode == "--jpad":
            pad_file(filename)
            return 0
        stamp = stamp_file(filename, kernel=mode == "--kernel")
    except (OSError, ValueError) as exc:
        print(f"Error! {exc}", file=sys.stderr)
        return 1
    print(
        f"\n\nmem_info.beginning_address: {stamp.beginning_address:X}\n"
        f"mem_info.ending_address: {stamp.ending_address:X}\n"
        f"mem_info.sectors: {stamp.sectors}\n"
        f"mem_info.access: {stamp.access:X}\n"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())