"""TSV-backed series storage - the archive's only durable interface.

File format (one file per asset, consumed by downstream tools as-is)::

    id\toutput
    "2025-02-01"\t100.0
    "2025-02-02"\t101.25

Tab-delimited, quoted ISO date, bare decimal value, ascending unique dates,
rows joined by ``\\n`` with no trailing newline.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from price_archive.core.exceptions import MalformedRowError, StorageError
from price_archive.core.models import (
    MergePolicy,
    MergeScope,
    Observation,
    SeriesReadResult,
)
from price_archive.storage.merge import dedupe_series, merge_series

logger = logging.getLogger(__name__)

HEADER = "id\toutput"
QUOTE_CURRENCY = "USD"


def parse_row(line: str, line_number: int = 0) -> Observation:
    """Parse one ``"<date>"\\t<value>`` row.

    Raises:
        MalformedRowError: Wrong column count, bad date, or non-numeric value.
    """
    fields = line.strip().split("\t")
    if len(fields) != 2:
        raise MalformedRowError(
            f"Expected 2 tab-separated fields, got {len(fields)}",
            context={"line_number": line_number, "row": line},
        )
    raw_date, raw_value = fields
    try:
        day = date.fromisoformat(raw_date.strip().strip('"'))
    except ValueError as e:
        raise MalformedRowError(
            f"Invalid date {raw_date!r}",
            context={"line_number": line_number, "row": line},
        ) from e
    try:
        value = Decimal(raw_value.strip())
    except InvalidOperation as e:
        raise MalformedRowError(
            f"Non-numeric value {raw_value!r}",
            context={"line_number": line_number, "row": line},
        ) from e
    if not value.is_finite():
        raise MalformedRowError(
            f"Non-finite value {raw_value!r}",
            context={"line_number": line_number, "row": line},
        )
    return Observation(date=day, value=value)


def format_row(obs: Observation) -> str:
    return f'"{obs.date.isoformat()}"\t{obs.value:f}'


def render(series: Iterable[Observation]) -> str:
    """Render a series in the archive file format."""
    return "\n".join([HEADER, *(format_row(obs) for obs in series)])


def _file_mode(path: Path) -> int:
    """Permission bits a rewrite of ``path`` should carry."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


@dataclass(frozen=True)
class StoreUpdate:
    """What a read-merge-write cycle did to one series file."""

    path: Path
    changed_count: int
    malformed_rows: int = 0


class TsvSeriesStore:
    """Per-asset series files in one directory.

    Parameters
    ----------
    directory : str | Path
        Directory holding ``<ASSET>_USD.tsv`` files. Created on first write.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, asset: str) -> Path:
        return self._directory / f"{asset}_{QUOTE_CURRENCY}.tsv"

    def read(self, path: Path) -> SeriesReadResult:
        """Read a series file. A missing file is an empty series.

        Rows that fail to parse are logged, counted and skipped.
        """
        if not path.exists():
            return SeriesReadResult()

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}", context={"path": str(path)}) from e

        lines = content.strip().splitlines()
        if not lines:
            return SeriesReadResult()
        first = 1
        if lines[0].strip() != HEADER:
            # Headerless file: line 1 is data like any other
            logger.warning("Missing header in %s, reading line 1 as a row", path)
            first = 0

        observations: list[Observation] = []
        malformed = 0
        for line_number, line in enumerate(lines[first:], start=first + 1):
            if not line.strip():
                continue
            try:
                observations.append(parse_row(line, line_number))
            except MalformedRowError as e:
                malformed += 1
                logger.warning("Skipping line %d of %s: %s", line_number, path, e)

        return SeriesReadResult(observations=observations, malformed_rows=malformed)

    def write(self, path: Path, series: Iterable[Observation]) -> None:
        """Atomically replace ``path`` with ``series``.

        Content goes to a temp file in the same directory which is then
        renamed over the target, so readers see the old file or the new one.
        The target keeps its permission bits; a new file gets 0666 minus umask.
        """
        content = render(dedupe_series(series))
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.chmod(tmp_name, _file_mode(path))
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write {path}: {e}", context={"path": str(path)}) from e

    def update(
        self,
        asset: str,
        new: list[Observation],
        scope: MergeScope,
        policy: MergePolicy = MergePolicy.OVERWRITE,
    ) -> StoreUpdate:
        """Merge ``new`` into the asset's file; write only if something changed."""
        path = self.path_for(asset)
        existing = self.read(path)

        if not new:
            return StoreUpdate(path=path, changed_count=0, malformed_rows=existing.malformed_rows)

        result = merge_series(existing.observations, new, scope, policy)
        if result.changed_count == 0:
            logger.info("%s: no changes in %s", asset, scope)
            return StoreUpdate(path=path, changed_count=0, malformed_rows=existing.malformed_rows)

        self.write(path, result.series)
        logger.info("%s: %d entries changed in %s, wrote %s", asset, result.changed_count, scope, path)
        return StoreUpdate(
            path=path,
            changed_count=result.changed_count,
            malformed_rows=existing.malformed_rows,
        )
