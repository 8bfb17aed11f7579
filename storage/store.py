from __future__ import annotations

"""Parquet store for weekly attempts and trophy counts using pandas + pyarrow.

Unit of data: one row per completed weekly session. At most one row per
(day_date, identity); a second insert raises PersistenceConflict.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pandas as pd

from bioq.errors import PersistenceConflict, PersistenceFailure
from bioq.results.schema import AttemptSummary

from .schema import ATTEMPTS_DTYPES, FINALIZED_DTYPES, TROPHIES_DTYPES, AttemptRow, identity_key


ATTEMPTS_FILE = "weekly_attempts.parquet"
TROPHIES_FILE = "trophies.parquet"
FINALIZED_FILE = "finalized_weeks.parquet"


def _empty_df(dtypes: dict) -> pd.DataFrame:
    return pd.DataFrame({k: pd.Series(dtype=v) for k, v in dtypes.items()})


def _fix_dtypes(df: pd.DataFrame, dtypes: dict) -> pd.DataFrame:
    for col, dt in dtypes.items():
        if col not in df.columns:
            df[col] = pd.Series(pd.NA, index=df.index)
        df[col] = df[col].astype(dt)
    return df[list(dtypes.keys())]


def _read(path: Path, dtypes: dict) -> pd.DataFrame:
    if not path.exists():
        return _empty_df(dtypes)
    return _fix_dtypes(pd.read_parquet(path, engine="pyarrow"), dtypes)


def _write(df: pd.DataFrame, path: Path) -> None:
    df.to_parquet(path, engine="pyarrow", compression="zstd", index=False)


def init_store(data_dir: Path) -> None:
    """Ensure data directory and empty Parquet files with correct schema exist."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    for name, dtypes in ((ATTEMPTS_FILE, ATTEMPTS_DTYPES), (TROPHIES_FILE, TROPHIES_DTYPES), (FINALIZED_FILE, FINALIZED_DTYPES)):
        f = data_dir / name
        if not f.exists():
            _write(_empty_df(dtypes), f)


def _identities(df: pd.DataFrame) -> pd.Series:
    return pd.Series(
        [identity_key(u, d) for u, d in zip(df["user_id"], df["device_id"])], index=df.index, dtype="string"
    )


def insert_attempt(row: AttemptRow, data_dir: Path) -> None:
    """Append one attempt, enforcing one row per identity per day."""
    f = Path(data_dir) / ATTEMPTS_FILE
    df_old = _read(f, ATTEMPTS_DTYPES)
    if not df_old.empty:
        same_day = df_old[df_old["day_date"] == row.day_date]
        if not same_day.empty and (_identities(same_day) == row.identity).any():
            raise PersistenceConflict(f"one_per_day: {row.identity} already has an attempt on {row.day_date}")
    df_new = _fix_dtypes(pd.DataFrame([row.model_dump()]), ATTEMPTS_DTYPES)
    combined = df_new if df_old.empty else pd.concat([df_old, df_new], ignore_index=True)
    _write(_fix_dtypes(combined, ATTEMPTS_DTYPES), f)


def load_attempts(data_dir: Path) -> pd.DataFrame:
    return _read(Path(data_dir) / ATTEMPTS_FILE, ATTEMPTS_DTYPES)


def load_week(data_dir: Path, week_id: str) -> pd.DataFrame:
    """All attempts of one ISO week, oldest first."""
    df = load_attempts(data_dir)
    dff = df[df["week_id"] == week_id]
    return dff.sort_values("created_at", kind="stable").reset_index(drop=True)


def has_attempt(data_dir: Path, day_date: str, *, user_id: Optional[str] = None, device_id: Optional[str] = None) -> bool:
    """True if this user or this device already has an attempt on `day_date`."""
    df = load_attempts(data_dir)
    dff = df[df["day_date"] == day_date]
    if dff.empty:
        return False
    if user_id and (dff["user_id"] == user_id).fillna(False).any():
        return True
    if device_id and (dff["device_id"] == device_id).fillna(False).any():
        return True
    return False


def load_trophies(data_dir: Path) -> pd.DataFrame:
    return _read(Path(data_dir) / TROPHIES_FILE, TROPHIES_DTYPES)


def save_trophies(df: pd.DataFrame, data_dir: Path) -> None:
    _write(_fix_dtypes(df.copy(), TROPHIES_DTYPES), Path(data_dir) / TROPHIES_FILE)


def load_finalized(data_dir: Path) -> pd.DataFrame:
    return _read(Path(data_dir) / FINALIZED_FILE, FINALIZED_DTYPES)


def mark_finalized(week_id: str, data_dir: Path) -> None:
    df = load_finalized(data_dir)
    df_new = _fix_dtypes(
        pd.DataFrame([{"week_id": week_id, "finalized_at": datetime.now(timezone.utc)}]), FINALIZED_DTYPES
    )
    combined = df_new if df.empty else pd.concat([df, df_new], ignore_index=True)
    _write(combined.drop_duplicates(subset=["week_id"], keep="first"), Path(data_dir) / FINALIZED_FILE)


def export_ndjson(df: pd.DataFrame, out_path: Path) -> None:
    """Export a DataFrame to line-delimited JSON (NDJSON) for quick inspection."""
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    df.to_json(out_path, orient="records", lines=True, date_format="iso")


class ParquetAttemptSink:
    """AttemptSink backed by the weekly_attempts table."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def save(self, summary: AttemptSummary) -> None:
        row = AttemptRow(
            day_date=summary.date,
            week_id=summary.week_id,
            points=summary.score,
            total_ms=summary.total_elapsed_ms,
            question_count=summary.question_count,
            t_per_q=max(1, summary.time_budget_ms // 1000),
            device_id=summary.device_id,
            user_id=summary.user_id,
        )
        try:
            init_store(self.data_dir)
            insert_attempt(row, self.data_dir)
        except PersistenceConflict:
            raise
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Save failed: {e}") from e
