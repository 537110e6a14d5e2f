"""Parser turning ``key: value`` configuration text into OS information."""

from __future__ import annotations

from pathlib import Path
from typing import Union

from famptools.yaml_data import DataType, OsData, YamlEntry, build_os_info
from famptools.yaml_lexer import Lexer, TokenKind, YamlError, read_source

__all__ = ["parse_entries", "parse_yaml", "open_and_parse_yaml"]

_VALUE_TYPES = {
    TokenKind.CHARACTER: DataType.CHR,
    TokenKind.STRING: DataType.STR,
    TokenKind.NUMBER: DataType.DEC,
    TokenKind.HEX: DataType.HEX,
}


def parse_entries(source: Union[str, bytes]) -> list[YamlEntry]:
    """Parse every ``name: value`` pair in ``source``, in order."""
    lexer = Lexer(source)
    entries: list[YamlEntry] = []
    token = lexer.next_token()
    while token.kind is TokenKind.USER_DEF:
        name = token.value
        token = lexer.next_token()
        if token.kind is not TokenKind.COLON:
            raise YamlError(f"Expected `:` after `{name}`.")
        token = lexer.next_token()
        data_type = _VALUE_TYPES.get(token.kind)
        if data_type is None:
            raise YamlError(
                f"Error on line {lexer.line}:\n\tExpected a string, decimal or hex value."
            )
        entries.append(YamlEntry(name, data_type, token.value))
        token = lexer.next_token()
    if token.kind is not TokenKind.EOF:
        raise YamlError(f"Error on line {lexer.line}.")
    return entries


def parse_yaml(source: Union[str, bytes], kernel_root: Union[str, Path] = "../..") -> OsData:
    """Parse configuration text into an :class:`OsData`."""
    return build_os_info(parse_entries(source), kernel_root)


def open_and_parse_yaml(
    filename: Union[str, Path] = "../../boot.yaml", kernel_root: Union[str, Path] = "../.."
) -> OsData:
    """Read and parse a configuration file."""
    return parse_yaml(read_source(filename), kernel_root)