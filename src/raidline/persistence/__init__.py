from .duckdb_store import AnalyticsStore
from .etl import run_match_etl
from .migrations import MigrationRunner
from .sqlite_store import MatchStore

__all__ = [
    "AnalyticsStore",
    "MatchStore",
    "MigrationRunner",
    "run_match_etl",
]
