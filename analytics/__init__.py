from .config import LeaderboardConfig
from .leaderboard import aggregate_week, avatar_for, build_leaderboard, leaderboard_view, rank_rows
from .standings import finalize_last_week, finalize_week, podium, trophies_for
from .plots import plot_leaderboard

__all__ = [
    "LeaderboardConfig",
    "aggregate_week",
    "avatar_for",
    "build_leaderboard",
    "leaderboard_view",
    "rank_rows",
    "finalize_last_week",
    "finalize_week",
    "podium",
    "trophies_for",
    "plot_leaderboard",
]
