from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from pydantic import ValidationError
from tqdm import tqdm

from .records import RawRecord, parse_record

logger = logging.getLogger(__name__)

REPORTED_ERRORS = 10


@dataclass
class ReadStats:
    lines: int = 0
    blank: int = 0
    records: int = 0
    malformed: int = 0


class RecordSource:
    """Lazy, restartable stream of records from a JSONL extraction file.

    Every iteration reopens the file, so two-pass consumers (count, then
    ingest) can iterate twice. Malformed lines are counted and skipped;
    the first few are logged as warnings.
    """

    def __init__(self, path: Path | str, *, progress: bool = False) -> None:
        self.path = Path(path)
        self.progress = progress
        self.stats = ReadStats()
        self.extraction_date: Optional[str] = None

    def __iter__(self) -> Iterator[RawRecord]:
        if not self.path.is_file():
            raise FileNotFoundError(f"Record file '{self.path}' does not exist or is not a file")

        self.stats = ReadStats()
        with self.path.open("r", encoding="utf-8", errors="replace") as handle:
            lines = tqdm(
                handle,
                desc=f"Reading {self.path.name}",
                unit="line",
                disable=not self.progress,
            )
            for line_number, line in enumerate(lines, start=1):
                self.stats.lines += 1
                line = line.strip()
                if not line:
                    self.stats.blank += 1
                    continue
                try:
                    record = parse_record(line)
                except (json.JSONDecodeError, ValidationError, ValueError) as exc:
                    self._report(line_number, exc)
                    continue
                self.stats.records += 1
                if self.extraction_date is None:
                    self.extraction_date = record.extraction_date()
                yield record

        if self.stats.malformed:
            logger.warning(
                "Skipped %d malformed lines out of %d",
                self.stats.malformed,
                self.stats.lines,
                extra={"path": str(self.path)},
            )

    def _report(self, line_number: int, exc: Exception) -> None:
        self.stats.malformed += 1
        message = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
        if self.stats.malformed <= REPORTED_ERRORS:
            logger.warning("Malformed record on line %d: %s", line_number, message)
        else:
            logger.debug("Malformed record on line %d: %s", line_number, message)


def read_extraction_date(path: Path | str) -> Optional[str]:
    """Return the extraction date stored in the first record's metadata."""
    path = Path(path)
    if not path.is_file():
        return None
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        first = handle.readline().strip()
    if not first:
        return None
    try:
        return parse_record(first).extraction_date()
    except (json.JSONDecodeError, ValidationError, ValueError):
        return None
