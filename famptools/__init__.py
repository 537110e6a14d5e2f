"""Host-side tools for a small x86 boot protocol: boot.yaml parsing, memory stamps, partition headers and disk images."""

__version__ = "0.1.0"