"""
Utility script to run a full six-round derby from the command line.

Usage:
    python scripts/run_race.py --seed 7
    python scripts/run_race.py --instant --dump replays/derby.json

By default frames run in real time on an asyncio loop (DERBY_FRAME_RATE
frames per second, 1.5s between rounds). --instant drives the same engine on
a virtual clock and finishes immediately.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Optional

# Ensure repo root is on sys.path when script is executed from anywhere
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.append(REPO_ROOT)

from derby_race.app import DerbyApp  # noqa: E402
from derby_race.engine import AsyncioFrameHost, ManualFrameHost, TelemetryCollector  # noqa: E402
from derby_race.lib import make_rng  # noqa: E402
from derby_race.logging_setup import configure_logging  # noqa: E402


def _print_results(app: DerbyApp) -> None:
    for round_results in app.results:
        race_round = app.schedule[round_results.round - 1]
        print(f"\n{race_round.label}")
        for entry in round_results.results:
            horse = entry.horse
            print(f"  {entry.position:>2}. {horse.name} (ID {horse.horse_id}, condition {horse.condition})")


def _run_instant(seed: Optional[int], telemetry: Optional[TelemetryCollector]) -> DerbyApp:
    host = ManualFrameHost()
    app = DerbyApp(host=host, rng=make_rng(seed), telemetry=telemetry)
    if app.generate_program() is None:
        return app
    app.start()
    if not host.run_until(lambda: app.is_complete):
        print("Race did not finish within the virtual time limit.")
    return app


async def _run_live(seed: Optional[int], telemetry: Optional[TelemetryCollector]) -> DerbyApp:
    app = DerbyApp(host=AsyncioFrameHost(), rng=make_rng(seed), telemetry=telemetry)
    if app.generate_program() is None:
        return app
    app.start()
    last_round = 0
    while not app.is_complete:
        if app.race.current_round != last_round:
            last_round = app.race.current_round
            print(f"Round {last_round} finished.")
        await asyncio.sleep(0.1)
    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a six-round derby simulation.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random generator.")
    parser.add_argument("--instant", action="store_true", help="Use a virtual clock instead of real time.")
    parser.add_argument("--dump", type=Path, default=None, help="Write per-tick telemetry JSON to this path.")
    parser.add_argument("--log-level", default=None, help="Override DERBY_LOG_LEVEL.")
    args = parser.parse_args()

    configure_logging(args.log_level)
    telemetry = TelemetryCollector() if args.dump else None

    try:
        if args.instant:
            app = _run_instant(args.seed, telemetry)
        else:
            app = asyncio.run(_run_live(args.seed, telemetry))
    except KeyboardInterrupt:
        print("Race stopped by user.")
        return

    for notification in app.notifications.all_notifications():
        print(f"[{notification.kind.value}] {notification.message}")

    print("\nFinish Order:")
    _print_results(app)

    if telemetry is not None:
        args.dump.parent.mkdir(parents=True, exist_ok=True)
        with open(args.dump, "w", encoding="utf-8") as f:
            json.dump(telemetry.to_dicts(), f)
        print(f"\nSaved {len(telemetry.frames)} telemetry frames to {args.dump}")


if __name__ == "__main__":
    main()
