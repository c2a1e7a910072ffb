"""Series persistence: the merge engine and the TSV file store."""

from price_archive.storage.merge import dedupe_series, merge_series
from price_archive.storage.tsv import (
    HEADER,
    StoreUpdate,
    TsvSeriesStore,
    format_row,
    parse_row,
    render,
)

__all__ = [
    "HEADER",
    "StoreUpdate",
    "TsvSeriesStore",
    "dedupe_series",
    "format_row",
    "merge_series",
    "parse_row",
    "render",
]
