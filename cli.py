"""CLI for the push_swap solver with text-mode playback."""

from __future__ import annotations

import argparse
import random
from pathlib import Path
from typing import List, Optional, Sequence

from pushswap_engine import format_ops, pretty_print, validate_values
from pushswap_playback import DEFAULT_RATE, PlaybackEngine, SchedTickScheduler
from pushswap_solver import (
    LARGE_BUCKET_RANGE,
    LARGE_SIZE_THRESHOLD,
    SMALL_BUCKET_RANGE,
    SolverConfig,
    check_solution,
    solve,
)
from pushswap_telemetry import JsonLinesTelemetrySink, TelemetrySink

DEFAULT_SIZE = 100
FRAME_SIZE_LIMIT = 20


def shuffled_values(size: int, seed: Optional[int]) -> List[int]:
    values = list(range(1, size + 1))
    random.Random(seed).shuffle(values)
    return values


def parse_values(tokens: Sequence[str]) -> List[int]:
    parsed: List[object] = []
    for tok in tokens:
        try:
            parsed.append(int(tok))
        except ValueError:
            try:
                parsed.append(float(tok))
            except ValueError:
                raise ValueError(f"not a number: {tok!r}") from None
    return validate_values(parsed)


def print_frame(engine: PlaybackEngine, show_board: bool) -> None:
    cursor = engine.cursor
    last_op = engine.ops[cursor - 1].value if cursor > 0 else "-"
    print(f"[{cursor}/{engine.total}] {last_op}")
    if show_board:
        print(pretty_print(engine.snapshot()))
        print()


def run_playback(values: Sequence[int], ops, rate: float, show_board: bool) -> int:
    scheduler = SchedTickScheduler()
    engine = PlaybackEngine(values, ops, scheduler=scheduler, rate=rate)
    if show_board:
        print(pretty_print(engine.snapshot()))
        print()
    engine.add_listener(lambda eng: print_frame(eng, show_board))
    if not engine.play():
        print("Nothing to play.")
        return 0
    try:
        scheduler.run()
    except KeyboardInterrupt:
        engine.pause()
        print()
        print(f"Interrupted at {engine.cursor}/{engine.total}.")
        return 130
    print("Sorted!")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="push_swap solver and playback")
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--size",
        type=int,
        default=None,
        help=f"sort a shuffled permutation of 1..N (default: {DEFAULT_SIZE})",
    )
    source.add_argument("--values", nargs="+", help="explicit values to sort")
    parser.add_argument("--seed", type=int, default=None, help="shuffle seed for --size")
    parser.add_argument("--show-ops", action="store_true", help="print the operation log")
    parser.add_argument("--counts", action="store_true", help="print per-operation counts")
    parser.add_argument("--check", action="store_true", help="replay the log and verify it sorts")
    parser.add_argument("--play", action="store_true", help="animate the log in the terminal")
    parser.add_argument(
        "--rate",
        type=float,
        default=DEFAULT_RATE,
        help=f"playback speed in operations per second (default: {DEFAULT_RATE:g})",
    )
    parser.add_argument(
        "--small-range",
        type=int,
        default=SMALL_BUCKET_RANGE,
        help=f"bucket width up to --large-threshold values (default: {SMALL_BUCKET_RANGE})",
    )
    parser.add_argument(
        "--large-range",
        type=int,
        default=LARGE_BUCKET_RANGE,
        help=f"bucket width above --large-threshold values (default: {LARGE_BUCKET_RANGE})",
    )
    parser.add_argument(
        "--large-threshold",
        type=int,
        default=LARGE_SIZE_THRESHOLD,
        help=f"largest size that uses --small-range (default: {LARGE_SIZE_THRESHOLD})",
    )
    parser.add_argument("--telemetry-file", type=Path, default=None, help="append JSONL telemetry here")
    args = parser.parse_args(argv)

    if args.size is not None and args.size <= 0:
        print("--size must be > 0")
        return 2
    if args.rate <= 0:
        print("--rate must be > 0")
        return 2

    try:
        config = SolverConfig(
            small_range=args.small_range,
            large_range=args.large_range,
            large_threshold=args.large_threshold,
        )
    except ValueError as exc:
        print(str(exc))
        return 2

    if args.values:
        try:
            values = parse_values(args.values)
        except ValueError as exc:
            print(f"invalid input: {exc}")
            return 2
    else:
        values = shuffled_values(args.size or DEFAULT_SIZE, args.seed)

    sink: Optional[TelemetrySink] = None
    if args.telemetry_file is not None:
        sink = JsonLinesTelemetrySink.open(args.telemetry_file)

    try:
        result = solve(values, config=config, telemetry_sink=sink)
    finally:
        if sink is not None:
            sink.close()

    print(f"Input ({len(values)}): {' '.join(str(v) for v in values)}")
    range_note = f", range {result.bucket_range}" if result.bucket_range is not None else ""
    print(
        f"Strategy: {result.strategy.value}{range_note} "
        f"ops={len(result.ops)} elapsed_ms={result.elapsed_ms}"
    )
    if args.counts:
        counts = ", ".join(f"{name}:{n}" for name, n in result.op_counts().items())
        print(f"Counts: {counts}")
    if args.show_ops and result.ops:
        print(format_ops(result.ops))

    if args.check:
        if not check_solution(values, result.ops):
            print("Check: FAILED")
            return 1
        print("Check: OK")

    if args.play:
        return run_playback(values, result.ops, args.rate, len(values) <= FRAME_SIZE_LIMIT)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
