"""
This module provides functionality for reading registry CSV exports.

Registry files come from two different systems and are written either in UTF-8
or in the legacy Windows Central European code page. The encoding is guessed per
file: the primary encoding wins unless it produces replacement characters. Files
made only of ASCII decode identically either way, so the guess is a heuristic.
"""
import logging
import re
from pathlib import Path
from typing import List, Union

from .config import CSV_DELIMITER, FALLBACK_ENCODING, PRIMARY_ENCODING
from .exceptions import DecodeError

# Get a logger instance for this module
logger = logging.getLogger(__name__)

REPLACEMENT_CHAR = "\ufffd"
QUOTE_CHAR = '"'

line_break_pattern = re.compile(r"\r?\n")

RawRow = List[str]


def decode_bytes(
    data: bytes,
    primary_encoding: str = PRIMARY_ENCODING,
    fallback_encoding: str = FALLBACK_ENCODING,
) -> str:
    """
    Decodes a registry file, falling back to the legacy code page when needed.

    Args:
        data: The raw file content.
        primary_encoding: The encoding tried first.
        fallback_encoding: The encoding used when the primary one yields
            replacement characters.

    Returns:
        The decoded text.

    Raises:
        DecodeError: If both encodings still yield replacement characters.
    """
    text = data.decode(primary_encoding, errors="replace")
    if REPLACEMENT_CHAR not in text:
        return text

    logger.info(
        f"Content is not valid {primary_encoding}, retrying with {fallback_encoding}."
    )
    text = data.decode(fallback_encoding, errors="replace")
    if REPLACEMENT_CHAR in text:
        raise DecodeError(
            f"Content is unreadable as both {primary_encoding} and {fallback_encoding}."
        )
    return text


def split_line(line: str, delimiter: str = CSV_DELIMITER) -> RawRow:
    """Splits one line into stripped fields, honoring double-quoted fields."""
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == QUOTE_CHAR:
            if in_quotes and i + 1 < len(line) and line[i + 1] == QUOTE_CHAR:
                current.append(QUOTE_CHAR)
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current).strip())
    return fields


def tokenize(text: str, delimiter: str = CSV_DELIMITER) -> List[RawRow]:
    """
    Splits decoded text into rows of fields. Blank lines are dropped.

    Malformed lines (e.g. an unterminated quote) are still returned as a
    best-effort list of fields.
    """
    rows = []
    for line in line_break_pattern.split(text):
        line = line.strip()
        if not line:
            continue
        rows.append(split_line(line, delimiter))
    return rows


def read_registry(data: bytes, delimiter: str = CSV_DELIMITER) -> List[RawRow]:
    """Decodes and tokenizes the content of one registry file."""
    return tokenize(decode_bytes(data), delimiter)


def read_registry_file(path: Union[str, Path], delimiter: str = CSV_DELIMITER) -> List[RawRow]:
    """Reads a registry file from disk and returns its tokenized rows."""
    data = Path(path).read_bytes()
    logger.info(f"Read {len(data)} bytes from {path}.")
    return read_registry(data, delimiter)
