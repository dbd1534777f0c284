from __future__ import annotations

import argparse
import logging
from pathlib import Path

from raidline.contracts import EngineEvent, EventType
from raidline.core import EventBus
from raidline.runtime import LoggingAudioNotifier, ReplayHarness


def _trace(event: EngineEvent) -> None:
    payload = event.payload
    if event.event_type == EventType.PERSIST_RAID:
        raid = payload["raid_event"]
        print(f". raid {raid.raid_number} {raid.raider_id} {raid.raiding_points}-{raid.defending_points} [{raid.outcome_code}]")
    elif event.event_type == EventType.DELETE_RAID:
        print(f". undo {payload['event_id']}")
    elif event.event_type == EventType.ADVANCE_WINNER:
        print(f". advance {payload['winning_team_id']} to {payload['next_match_id']} ({payload['slot']})")


def _print_scoreboard(board: dict) -> None:
    a, b = board["team_a"], board["team_b"]
    print(f"{a['team_id']} {a['score']} - {b['score']} {b['team_id']}  [{board['phase']}, half {board['half']}]")
    print(f"clock {board['match_clock']}  raiding: {board['raiding_team']}")
    for team in (a, b):
        stats = team["stats"]
        print(
            f"- {team['team_id']}: raid={stats['raid_points']} tackle={stats['tackle_points']} "
            f"bonus={stats['bonus_points']} all_out={stats['all_out_points']} "
            f"last5={''.join(team['last_raids']) or '-'} dod={'yes' if team['do_or_die'] else 'no'} "
            f"timeouts_left={team['timeouts_remaining']}"
        )
    if board["winner"]:
        print(f"Winner: {board['winner']}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Raidline: kabaddi live scoring engine")
    parser.add_argument("--script", type=Path, required=True, help="JSON match script to replay")
    parser.add_argument("--root", type=Path, default=Path.cwd(), help="runtime root directory")
    parser.add_argument("--seed", type=int, default=None, help="override the script's seed")
    parser.add_argument("--export", action="store_true", help="export analytics datasets after the replay")
    parser.add_argument("--mute", action="store_true", help="suppress audio cues")
    parser.add_argument("--verbose", action="store_true", help="log engine activity")
    parser.add_argument("--trace", action="store_true", help="print raids, undos and advancement as they happen")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    harness = ReplayHarness.load(args.script)
    if args.seed is not None:
        harness.seed = args.seed
    bus = EventBus()
    if args.trace:
        bus.subscribe(_trace, EventType.PERSIST_RAID, EventType.DELETE_RAID, EventType.ADVANCE_WINNER)
    runtime = harness.build_runtime(args.root, audio=LoggingAudioNotifier(muted=args.mute), event_bus=bus)

    for action, result in zip(harness.actions, harness.run(runtime)):
        if not result.success:
            print(f"! {action.action_type}: {result.message}")
        for warning in result.warnings:
            print(f"~ {action.action_type}: {warning}")
        if runtime.halted:
            break

    _print_scoreboard(runtime.scoreboard())
    if runtime.pending:
        print(f"{len(runtime.pending)} writes still pending")
    print("events: " + ", ".join(f"{name}={count}" for name, count in bus.summary().items()))

    if args.export:
        outputs = runtime.export()
        print("Exported datasets:")
        for p in outputs:
            print(f"- {p}")


if __name__ == "__main__":
    main()
