from __future__ import annotations

"""CLI for BioQ using SessionManager and the Parquet attempt store."""

import argparse
import sys
from pathlib import Path
from typing import Any

from ..config.config import clamp_seconds, load_config, validate_config
from ..errors import LoadFailure
from ..quiz.models import load_bank
from ..storage.local import device_id
from ..storage.session_store import SessionStore
from ..util.calendar import format_hhmmss, format_mmss, local_date_key, ms_until_next_midnight, week_id_for
from ..util.randomness import seed_if_needed
from .gate import check_weekly_gate, played_today
from .identity import StaticIdentity
from .session_manager import SessionManager, open_local_store


def _build_ui() -> dict[str, Any]:
    def ask(prompt: str) -> str:
        return input(prompt)

    def inform(msg: str) -> None:
        print(msg)

    return {"ask": ask, "inform": inform}


def _load_bank_or_exit(cfg: dict[str, Any]):
    try:
        return load_bank(cfg["bank"]["path"])
    except LoadFailure as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return None


def _print_summary(summary: dict[str, Any]) -> None:
    print("\nSession Summary:")
    print(summary["text"])
    print(summary["message"])


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="bioq")
    p.add_argument("--config", default=None)
    p.add_argument("--explain", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("categories")

    pp = sub.add_parser("practice")
    pp.add_argument("--category", default=None)
    pp.add_argument("--difficulty", choices=["easy", "medium", "hard"], default=None)
    pp.add_argument("--questions", "-n", type=int, default=None)
    pp.add_argument("--seconds", "-t", type=int, default=None, help="Seconds per question (5..120)")

    wp = sub.add_parser("weekly")
    wp.add_argument("--user", default=None, help="Signed-in user id")

    lp = sub.add_parser("leaderboard")
    lp.add_argument("--week-id", default=None)
    lp.add_argument("--user", default=None)
    lp.add_argument("--plot", default=None, help="Save a bar chart to this path")
    lp.add_argument("--export", default=None, help="Write the week's attempts as NDJSON to this path")

    fp = sub.add_parser("finalize-week")
    fp.add_argument("--week-id", default=None, help="Defaults to the week before today")

    stp = sub.add_parser("status")
    stp.add_argument("--user", default=None)

    args = p.parse_args(argv)

    seed_if_needed()
    if args.explain:
        from .explain import enable as explain_enable
        explain_enable(True)
    cfg = validate_config(load_config(args.config))
    data_dir = Path(cfg["data"]["dir"])

    if args.cmd == "categories":
        for cid, label in cfg["categories"].items():
            print(f"{cid}: {label}")
        return 0

    if args.cmd == "practice":
        bank = _load_bank_or_exit(cfg)
        if bank is None:
            return 1
        overrides = {
            "category": args.category,
            "difficulty": args.difficulty,
            "questions": args.questions,
            "seconds_per_question": clamp_seconds(args.seconds, 20) if args.seconds is not None else None,
        }
        sm = SessionManager(cfg, bank)
        ui = _build_ui()
        while True:
            if not sm.start_session("practice", overrides):
                print("No questions match this category and difficulty.")
                return 0
            summary = sm.run(ui)
            if summary is None:
                return 0
            _print_summary(summary)
            again = input("Play again? [y/N] ").strip().lower()
            if again not in ("y", "yes"):
                return 0

    if args.cmd == "weekly":
        bank = _load_bank_or_exit(cfg)
        if bank is None:
            return 1
        from storage.store import ParquetAttemptSink

        identity = StaticIdentity(args.user)
        kv = open_local_store(cfg)
        today = local_date_key()
        gate = check_weekly_gate(
            SessionStore(kv),
            today,
            identity=identity,
            require_sign_in=cfg["weekly"]["require_sign_in"],
            data_dir=data_dir,
            device_id=device_id(kv),
        )
        if not gate.allowed:
            print(gate.reason)
            return 0
        sm = SessionManager(cfg, bank, kv=kv, sink=ParquetAttemptSink(data_dir), identity=identity)
        if not sm.start_session("weekly"):
            print("No questions available for today's challenge.")
            return 0
        summary = sm.run(_build_ui())
        if summary is None:
            print("Progress saved. Come back before midnight to finish today's challenge.")
            return 0
        _print_summary(summary)
        save = summary.get("save", {})
        while not save.get("saved"):
            print(f"Couldn't save: {save.get('error') or 'no result store'}")
            if input("Retry? [y/N] ").strip().lower() not in ("y", "yes"):
                break
            state = sm.retry_save()
            save = {"saved": state.saved, "error": state.error}
        if save.get("saved"):
            print("Result saved.")
        return 0

    if args.cmd == "leaderboard":
        from analytics.config import LeaderboardConfig
        from analytics.leaderboard import build_leaderboard, leaderboard_view
        from storage.store import export_ndjson, load_week

        week_id = args.week_id or week_id_for()
        kv = open_local_store(cfg)
        me_key = f"u:{args.user}" if args.user else f"d:{device_id(kv)}"
        lcfg = LeaderboardConfig(top_n=cfg["leaderboard"]["top_n"])
        try:
            attempts = load_week(data_dir, week_id)
            board = build_leaderboard(attempts, me_key=me_key, cfg=lcfg)
        except Exception as e:
            print(f"ERROR: Failed to load leaderboard: {e}", file=sys.stderr)
            return 1
        view = leaderboard_view(board, me_key=me_key, top_n=lcfg.top_n)
        print(f"Leaderboard {week_id}")
        if view.top.empty:
            print("No attempts yet this week.")
        for _, row in view.top.iterrows():
            print(f"{int(row['rank']):>3} {row['medal']:<6} {row['name']:<24} {int(row['points']):>4} {format_mmss(int(row['total_ms'])):>6}")
        if view.me is not None and not view.me_in_top:
            me = view.me
            print("...")
            print(f"{int(me['rank']):>3} {'':<6} {me['name']:<24} {int(me['points']):>4} {format_mmss(int(me['total_ms'])):>6}")
        print("Tie-breaker: among equal points, the fastest total time wins. Top 3 earn badges.")
        if args.export:
            export_ndjson(attempts, Path(args.export))
            print(f"Exported {len(attempts)} attempts to {args.export}")
        if args.plot:
            from analytics.plots import plot_leaderboard

            plot_leaderboard(board, top_n=lcfg.top_n, title=f"Leaderboard {week_id}", save_path=args.plot)
        return 0

    if args.cmd == "finalize-week":
        from analytics.standings import finalize_last_week, finalize_week

        try:
            result = finalize_week(data_dir, args.week_id) if args.week_id else finalize_last_week(data_dir)
        except Exception as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        print(result)
        return 0

    if args.cmd == "status":
        kv = open_local_store(cfg)
        today = local_date_key()
        done = played_today(SessionStore(kv), today, data_dir=data_dir, user_id=args.user, device_id=device_id(kv))
        if done:
            print(f"Already played today. Next challenge in {format_hhmmss(ms_until_next_midnight())}.")
        else:
            print("Today's challenge is open.")
        return 0

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
