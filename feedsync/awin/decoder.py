"""
Streaming CSV decoding of a downloaded feed.
ZIP archives are read entry by entry without extracting to disk; only the CSV entry is decompressed.
"""
from __future__ import annotations

import csv
import io
import logging
import sys
import zipfile
import zlib
from pathlib import Path
from typing import IO, Iterator, Optional

from feedsync.errors import DecodeError

logger = logging.getLogger(__name__)

# Descriptions in merchant feeds run past the csv module's 128 KiB default
FIELD_SIZE_LIMIT = min(sys.maxsize, 2**31 - 1)

Record = dict[str, str]


def _find_csv_entry(zf: zipfile.ZipFile) -> Optional[zipfile.ZipInfo]:
    for info in zf.infolist():
        if info.is_dir():
            continue
        if info.filename.lower().endswith(".csv"):
            return info
    return None


def _without_nul(lines: IO[str]) -> Iterator[str]:
    for line in lines:
        yield line.replace("\x00", "") if "\x00" in line else line


def _iter_csv(binary: IO[bytes], source: str) -> Iterator[Record]:
    text = io.TextIOWrapper(binary, encoding="utf-8-sig", errors="replace", newline="")
    reader = csv.DictReader(_without_nul(text), restval="", strict=False, skipinitialspace=False)
    try:
        fieldnames = reader.fieldnames
        if not fieldnames:
            raise DecodeError(f"{source}: empty file or missing header row")
        for row in reader:
            # Extra cells beyond the header come back under the None key; drop them
            record = {
                (k or "").strip(): (v.strip() if isinstance(v, str) else "")
                for k, v in row.items()
                if k is not None
            }
            if not any(record.values()):
                continue
            yield record
    except csv.Error as e:
        raise DecodeError(f"{source}: CSV error at line {reader.line_num}: {e}") from e
    except (zipfile.BadZipFile, zlib.error, EOFError, OSError) as e:
        raise DecodeError(f"{source}: truncated or corrupt data: {e}") from e


def iter_records(path: Path, expect_zip: bool = False) -> Iterator[Record]:
    """
    Lazily yield one column-name -> value mapping per data row.
    The file is re-read from the start on each call; raises DecodeError on a corrupt archive,
    a missing CSV entry or an unparseable stream.
    With expect_zip, a non-ZIP payload (e.g. an HTML error page served with 200) is a DecodeError.
    """
    csv.field_size_limit(FIELD_SIZE_LIMIT)
    path = Path(path)
    if zipfile.is_zipfile(path):
        try:
            zf = zipfile.ZipFile(path)
        except (zipfile.BadZipFile, OSError) as e:
            raise DecodeError(f"{path.name}: corrupt archive: {e}") from e
        with zf:
            entry = _find_csv_entry(zf)
            if entry is None:
                raise DecodeError(f"{path.name}: no .csv entry in archive ({len(zf.infolist())} entries)")
            logger.info("reading %s from archive (%d bytes uncompressed)", entry.filename, entry.file_size)
            try:
                binary = zf.open(entry)
            except (zipfile.BadZipFile, NotImplementedError, RuntimeError) as e:
                raise DecodeError(f"{path.name}: cannot open {entry.filename}: {e}") from e
            with binary:
                yield from _iter_csv(binary, entry.filename)
        return

    if expect_zip:
        raise DecodeError(f"{path.name}: expected a ZIP archive")

    try:
        binary = open(path, "rb")
    except OSError as e:
        raise DecodeError(f"{path.name}: unreadable: {e}") from e
    with binary:
        yield from _iter_csv(binary, path.name)
