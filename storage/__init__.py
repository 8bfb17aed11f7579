from .schema import ATTEMPTS_DTYPES, TROPHIES_DTYPES, FINALIZED_DTYPES, AttemptRow, identity_key
from .store import (
    ParquetAttemptSink,
    init_store,
    insert_attempt,
    load_attempts,
    load_week,
    has_attempt,
    load_trophies,
    save_trophies,
    load_finalized,
    mark_finalized,
    export_ndjson,
)

__all__ = [
    "ATTEMPTS_DTYPES",
    "TROPHIES_DTYPES",
    "FINALIZED_DTYPES",
    "AttemptRow",
    "identity_key",
    "ParquetAttemptSink",
    "init_store",
    "insert_attempt",
    "load_attempts",
    "load_week",
    "has_attempt",
    "load_trophies",
    "save_trophies",
    "load_finalized",
    "mark_finalized",
    "export_ndjson",
]
