from __future__ import annotations

"""Configuration loading and validation for BioQ.

This module loads YAML configuration, applies defaults, and validates
that enumerations and numeric ranges are sane for the CLI.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import sys

import yaml


ALLOWED_DIFFICULTIES = {"easy", "medium", "hard"}
MIN_SECONDS_PER_QUESTION = 5
MAX_SECONDS_PER_QUESTION = 120

DEFAULT_CATEGORIES = {
    "cell": "Cell Biology",
    "genetics": "Genetics",
    "anatomy": "Anatomy",
    "physiology": "Physiology",
    "microbio": "Microbiology",
    "biochem": "Biochemistry",
}


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        cfg = _load_yaml(Path(path))
    else:
        default_path = Path(__file__).with_name("defaults.yml")
        cfg = _load_yaml(default_path)
    return cfg


def clamp_seconds(value: Any, fallback: int) -> int:
    try:
        s = int(value)
    except (TypeError, ValueError):
        s = fallback
    return max(MIN_SECONDS_PER_QUESTION, min(MAX_SECONDS_PER_QUESTION, s))


def _positive_int(value: Any, fallback: int) -> int:
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return fallback


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    for section in ("bank", "data", "weekly", "practice", "leaderboard"):
        if not isinstance(cfg.get(section), dict):
            cfg[section] = {}
    if not isinstance(cfg.get("categories"), dict) or not cfg["categories"]:
        cfg["categories"] = dict(DEFAULT_CATEGORIES)

    bank = cfg["bank"]
    data = cfg["data"]
    weekly = cfg["weekly"]
    practice = cfg["practice"]
    board = cfg["leaderboard"]

    bank.setdefault("path", "./questions.json")
    data.setdefault("dir", "./bioq_data")

    weekly.setdefault("questions", 15)
    weekly.setdefault("seconds_per_question", 12)
    weekly.setdefault("hard_ratio", 0.8)
    weekly.setdefault("require_sign_in", True)

    practice.setdefault("questions", 10)
    practice.setdefault("seconds_per_question", 20)
    practice.setdefault("category", None)
    practice.setdefault("difficulty", None)

    board.setdefault("top_n", 10)

    # Numeric ranges
    weekly["questions"] = _positive_int(weekly["questions"], 15)
    practice["questions"] = _positive_int(practice["questions"], 10)
    board["top_n"] = _positive_int(board["top_n"], 10)
    for section, fallback in ((weekly, 12), (practice, 20)):
        raw = section["seconds_per_question"]
        clamped = clamp_seconds(raw, fallback)
        if str(clamped) != str(raw):
            print(
                f"WARNING: seconds_per_question {raw!r} outside "
                f"{MIN_SECONDS_PER_QUESTION}..{MAX_SECONDS_PER_QUESTION}, using {clamped}."
            )
        section["seconds_per_question"] = clamped

    try:
        ratio = float(weekly["hard_ratio"])
    except (TypeError, ValueError):
        ratio = -1.0
    if not (0.0 <= ratio <= 1.0):
        print(f"WARNING: Unsupported hard_ratio '{weekly['hard_ratio']}', using 0.8.")
        ratio = 0.8
    weekly["hard_ratio"] = ratio
    weekly["require_sign_in"] = bool(weekly["require_sign_in"])

    # Enum validations
    difficulty = practice.get("difficulty")
    if difficulty is not None and difficulty not in ALLOWED_DIFFICULTIES:
        print(f"WARNING: Unsupported difficulty '{difficulty}', using no difficulty filter.")
        practice["difficulty"] = None

    category = practice.get("category")
    if category is not None and category not in cfg["categories"]:
        print(f"WARNING: Unknown category '{category}', using all categories.")
        practice["category"] = None

    return cfg
