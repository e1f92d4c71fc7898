#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from incursion_tracker.app import watch_incursions
from incursion_tracker.config import ConfigurationError, configure_logging, get_tracker_config
from incursion_tracker.domain.model import NOT_AVAILABLE
from incursion_tracker.domain.timeline import estimate_despawn

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from incursion_tracker.app import PollCycleResult
    from incursion_tracker.domain.model import EnrichedIncursion


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track active EVE Online incursions")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle and exit",
    )
    parser.add_argument(
        "--cycles",
        type=int,
        help="Number of poll cycles to run before exiting (default: run forever)",
    )
    parser.add_argument(
        "--high-sec-only",
        action="store_true",
        default=None,
        help="Only report incursions staged in high-security space",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    args = parser.parse_args(list(argv))
    if args.once and args.cycles is not None:
        parser.error("--once and --cycles are mutually exclusive")
    if args.cycles is not None and args.cycles <= 0:
        parser.error("--cycles must be positive")
    return args


def format_record(record: EnrichedIncursion) -> str:
    distance = NOT_AVAILABLE
    if record.jumps_from_previous != NOT_AVAILABLE:
        distance = f"{record.jumps_from_previous} jumps from {record.previous_headquarters}"
    despawn = estimate_despawn(record)
    lines = [
        f"{record.constellation_name} ({record.state}) since {record.state_updated_at}",
        f"  influence: {round(record.influence * 100)}%  island: {record.is_island}",
        f"  headquarters: {record.headquarters}  staging: {record.staging}",
        f"  vanguards: {', '.join(record.vanguards)}",
        f"  assaults: {', '.join(record.assaults)}",
        f"  distance from last incursion: {distance}",
    ]
    if despawn is not None:
        lines.append(f"  despawns by: {despawn.isoformat()}")
    return "\n".join(lines)


def _print_cycle(result: PollCycleResult) -> None:
    if result.records is None:
        print(f"Incursion list unavailable; retrying at {result.next_poll_at.isoformat()}")
        return
    if not result.records:
        print("No active incursions")
    for record in result.records:
        print(format_record(record))
    print(f"Next update at {result.next_poll_at.isoformat()}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    try:
        parsed_args = _parse_args(argv if argv is not None else sys.argv[1:])
        configure_logging(level=parsed_args.log_level)
        tracker_config = get_tracker_config(high_sec_only=parsed_args.high_sec_only)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    max_cycles = 1 if parsed_args.once else parsed_args.cycles
    try:
        watch_incursions(
            max_cycles=max_cycles,
            on_cycle=_print_cycle,
            tracker_config=tracker_config,
        )
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
