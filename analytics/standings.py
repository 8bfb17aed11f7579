from __future__ import annotations

"""Weekly finalization: settle a week's podium into per-identity trophy counts."""

from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from bioq.app.explain import trace as xtrace
from bioq.util.calendar import previous_week_id
from storage.store import load_finalized, load_trophies, load_week, mark_finalized, save_trophies

from .leaderboard import aggregate_week, rank_rows

PODIUM_COLUMNS = ["wins_1st", "wins_2nd", "wins_3rd"]


def podium(attempts: pd.DataFrame) -> List[str]:
    """Identity keys of ranks 1..3 (fewer if fewer players)."""
    ranked = rank_rows(aggregate_week(attempts))
    return [str(k) for k in ranked["key"].head(len(PODIUM_COLUMNS))]


def finalize_week(data_dir: Path, week_id: str) -> Dict[str, object]:
    """Award trophies for `week_id`. A week is settled at most once."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    done = load_finalized(data_dir)
    if (done["week_id"] == week_id).any():
        return {"ok": True, "week_id": week_id, "already_finalized": True, "podium": []}

    keys = podium(load_week(data_dir, week_id))
    trophies = load_trophies(data_dir)
    counts = trophies.set_index("identity")[PODIUM_COLUMNS].astype("int64") if not trophies.empty else None
    rows: Dict[str, Dict[str, int]] = {}
    if counts is not None:
        for ident, rec in counts.iterrows():
            rows[str(ident)] = {c: int(rec[c]) for c in PODIUM_COLUMNS}
    for place, key in enumerate(keys):
        entry = rows.setdefault(key, {c: 0 for c in PODIUM_COLUMNS})
        entry[PODIUM_COLUMNS[place]] += 1
    out = pd.DataFrame([{"identity": k, **v} for k, v in rows.items()])
    if not out.empty:
        save_trophies(out, data_dir)
    mark_finalized(week_id, data_dir)
    xtrace("week_finalized", {"week_id": week_id, "podium": keys})
    return {"ok": True, "week_id": week_id, "already_finalized": False, "podium": keys}


def finalize_last_week(data_dir: Path, today: Optional[date | str] = None) -> Dict[str, object]:
    """Scheduled entry point: settle the ISO week before `today`."""
    return finalize_week(data_dir, previous_week_id(today))


def trophies_for(data_dir: Path, identity: str) -> Dict[str, int]:
    df = load_trophies(Path(data_dir))
    hit = df[df["identity"] == identity]
    if hit.empty:
        return {c: 0 for c in PODIUM_COLUMNS}
    rec = hit.iloc[0]
    return {c: int(rec[c]) for c in PODIUM_COLUMNS}
