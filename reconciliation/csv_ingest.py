#!/usr/bin/env python3
"""
CSV Ingester - Parse registration and Zoom exports into row records.

The format is comma-delimited with double-quote escaping ("" is a literal
quote inside a quoted field). Text is split on raw line breaks before each
line is parsed, so a quoted field containing a newline is split across two
rows.
"""

import csv
import logging
from pathlib import Path
from typing import List, Union

from .models import RawRecord

logger = logging.getLogger(__name__)


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into trimmed field values.

    Args:
        line: A single line without its line terminator

    Returns:
        List of field values
    """
    fields = next(csv.reader([line], skipinitialspace=True), [])
    return [value.strip() for value in fields]


def parse_csv(text: str, source: str = "file") -> List[RawRecord]:
    """
    Parse CSV text into a list of header -> value records.

    The first line is the header row. Blank lines and rows whose values are
    all blank are skipped; missing trailing values become "".

    Args:
        text: Full CSV text
        source: Label used in log messages

    Returns:
        List of row records
    """
    if not text or not text.strip():
        return []

    lines = text.strip().split("\n")
    headers = parse_csv_line(lines[0].lstrip("\ufeff").strip())

    rows = []
    for raw_line in lines[1:]:
        line = raw_line.strip()
        if not line:
            continue

        values = parse_csv_line(line)
        row = {header: (values[i] if i < len(values) else "") for i, header in enumerate(headers)}

        if all(not v.strip() for v in row.values()):
            continue
        rows.append(row)

    logger.debug(f"Parsed {source}: {len(rows)} rows with headers {headers}")
    return rows


def load_csv_file(path: Union[str, Path]) -> List[RawRecord]:
    """
    Read and parse a CSV file.

    An unreadable file yields an empty list so that one bad export does not
    stop the other sources from being reconciled.

    Args:
        path: Path to the CSV file

    Returns:
        List of row records ([] on failure)
    """
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not load {file_path}: {e}")
        return []

    rows = parse_csv(text, file_path.name)
    logger.info(f"Loaded {file_path.name}: {len(rows)} rows")
    return rows
