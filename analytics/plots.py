from __future__ import annotations

"""Matplotlib plots for the weekly leaderboard."""

from typing import Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt


def plot_leaderboard(
    board: pd.DataFrame,
    *,
    top_n: int = 10,
    title: str = "Weekly leaderboard",
    save_path: Optional[str] = None,
) -> None:
    """Horizontal bars of points for the top N, annotated with total time."""
    g = board.head(top_n)
    if g.empty:
        return
    y = np.arange(len(g))
    plt.figure(figsize=(7, 0.45 * len(g) + 1.2))
    plt.barh(y, g["points"].astype(float), color="#3fb68b")
    plt.yticks(y, [f"{r}. {n}" for r, n in zip(g["rank"], g["name"])])
    plt.gca().invert_yaxis()
    for yi, pts, ms in zip(y, g["points"], g["total_ms"]):
        s = int(ms) // 1000
        plt.text(float(pts) + 0.1, yi, f"{s // 60}:{s % 60:02d}", va="center", fontsize=8)
    plt.xlabel("Points")
    plt.title(title)
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()
