# famptools

These are host-side tools for a small x86 boot protocol. They do the following:

- read the project's `boot.yaml`
- pad the boot binaries to whole sectors and put memory stamps on them
- build partition headers
- assemble the temporary disk image and check it against the binaries

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Commands

### `famp-stamp`

```
famp-stamp bin/mbr_partition_table.bin --jpad
famp-stamp bin/second_stage.bin --second_stage
famp-stamp ../bin/kernel.bin --kernel
```

- **`--jpad`** appends zero bytes until the file fills a whole number of
  512-byte sectors.
- **`--kernel`** pads the file and ends it with a memory stamp. The stamp carries:
  - the kernel memory id (`0x2A`)
  - the name `kernel`
  - the start address `0xA000`
- **Any other flag** produces the same kind of stamp with the second-stage values:
  - the memory id `0x0B`
  - the name `second_stage`
  - the start address `0x7E00`

If the last sector has no room left for the stamp, one more sector is added.
After a stamp is written, the command prints its start address, end address,
sector count and access byte.

### `famp-config`

```
famp-config            # everything
famp-config mbr        # stop once the MBR source is written
famp-config eve        # everything except the MBR source
famp-config --dir PATH # run from another configuration directory (default: .)
```

The command runs from the configuration directory and reads
`../../boot.yaml`. It then works through these steps:

1. It writes the file-system chunk to `../tools_bin/temp_FS_part_header.bin`.
   Without `auto_format: "yes"`, this chunk is one sector marked
   `NO_FS_MOUNTED`. With it, the chunk is five sectors that begin with a
   partition header.
2. Unless the mode is `eve`, it fills `formats/boot_format` and writes
   `../boot/boot.s`. The `mbr` mode stops here.
3. It builds `../bin/<disk_name>.fimg` from the binaries. If that image
   already exists, it checks each chunk of the image against its binary
   instead, repairs the bytes that differ, and verifies the memory stamps of
   the second stage and the kernel.
4. It fills the templates `formats/makefile_format`,
   `formats/user_makefile_format`, `formats/FAMP_fdi_format` and
   `formats/ss_linker_format`.
5. From those templates it writes `../Makefile`, `../../Makefile`,
   `scripts/FAMP_fdi` and `../linker/linker.ld`.

### `famp-fdi`

```
famp-fdi <root> <image.fimg> <fs_type> <part_type> <fs_sectors>
```

The command appends a file-system partition to the disk image. It writes the
result to `<root>boot_protocol/bin/temp_image.fimg`. It then rewrites
`<root>boot_protocol/boot/boot.s` from
`<root>boot_protocol/config/formats/boot_format`, using the OS information
stored 256 bytes into `<root>bin/boot.bin`.

- **Already formatted:** if `<root>boot_protocol/tools_bin/format_done`
  exists, the command only reports this and does nothing else. Otherwise it
  creates that file.
- **`fs_sectors`:** a value of 15 or more falls back to 5 sectors.
- **`fs_type`:** every value selects the custom file system, revision 1.
- **`part_type`:** one of the following.

  | Value   | Partition                                 |
  |---------|-------------------------------------------|
  | `UKA`   | user and kernel access                    |
  | `KOA`   | kernel access only                        |
  | `CDKOA` | critical data, kernel access only         |
  | `CDUKA` | critical data, user and kernel access     |
  | `E`     | extra                                     |

## Library use

```python
from famptools.yaml_parser import parse_entries
from famptools.memory_stamp import sectors_needed, find_memory_stamp, MemoryId
from famptools.partition import PartitionHeader
from famptools.bits import text_attribute

entries = parse_entries('os_type: "32bit"\nos_name: "MyOS"\n')
print(entries[1].value)            # MyOS
print(sectors_needed(1000))        # 2
print(hex(text_attribute(0x01, 0x0F)))  # 0x1f
print(len(PartitionHeader().pack()))    # 44
```

### Modules

- **`famptools.yaml_lexer`, `famptools.yaml_data`, `famptools.yaml_parser`**
  tokenize and parse the `key: value` subset used by `boot.yaml`. Their main
  entry points are `parse_entries`, `parse_yaml` and `open_and_parse_yaml`.
  The result is an `OsData`.
- **`famptools.memory_stamp`** provides:
  - `MemoryStamp`, with `pack()`
  - `unpack_memory_stamp`
  - `sectors_needed`
  - `pad_file`
  - `stamp_file`
  - `find_memory_stamp`
- **`famptools.partition`** provides `PartitionHeader`, with `pack()` and
  `set_lba()`, and `init_fs_and_partition_type`.
- **`famptools.disk_image`** provides:
  - `DiskImage`, with `extend()` and `fill()`
  - the checking functions `check_disk_chunk`, `rework_chunk`, `approve` and
    `is_memory_stamp_good`
  - the string helpers `initiate_path` and `strdel`
- **`famptools.configure`** provides `render_boot_source`,
  `render_linker_script`, `build_disk_image`, `fs_chunk` and `pad_os_name`.
- **`famptools.format_image`** provides `read_mbr_os_info` and
  `format_disk_image`.
- **`famptools.bits`** provides bit and byte helpers and the text-mode colour
  attributes `text_attribute` and `text_value`.

### Errors

- The YAML reader raises `famptools.yaml_lexer.YamlError`.
- The disk-image and configuration tools raise
  `famptools.disk_image.ConfigError`.

## What this package does not do

The package does not do the following:

- It does not compile or assemble the boot sector, the second stage, the
  kernel or any other binary. Those binaries must already exist where the
  commands look for them.
- It does not ship the `formats/` templates that `famp-config` and
  `famp-fdi` fill. You must provide them.
- It contains none of the code that runs on the machine at boot time.