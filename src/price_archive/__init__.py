"""price_archive - daily crypto and forex price series kept in per-asset TSV files."""

__version__ = "0.1.0"
