"""Deterministic operation-count benchmark for the push_swap solver."""

from __future__ import annotations

import argparse
import gc
import math
import platform
import random
import statistics
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pushswap_engine import validate_values
from pushswap_solver import (
    LARGE_BUCKET_RANGE,
    LARGE_SIZE_THRESHOLD,
    SMALL_BUCKET_RANGE,
    SolverConfig,
    check_solution,
    solve,
)

DEFAULT_SIZES = (3, 5, 10, 100, 500)


def _generate_permutations(*, size: int, count: int, seed: int) -> List[List[int]]:
    rng = random.Random(f"{seed}:{size}")
    out: List[List[int]] = []
    for _ in range(count):
        values = list(range(1, size + 1))
        rng.shuffle(values)
        out.append(values)
    return out


def _load_permutations(path: Path, limit: int) -> List[List[int]]:
    perms: List[List[int]] = []
    with path.open("r", encoding="utf-8") as handle:
        for line_no, raw in enumerate(handle, start=1):
            line = raw.strip()
            if not line:
                continue
            try:
                values = validate_values([int(tok) for tok in line.split()])
            except ValueError as exc:
                raise ValueError(f"invalid permutation at line {line_no}: {exc}") from None
            perms.append(values)
            if len(perms) >= limit:
                break
    return perms


def _save_permutations(path: Path, perms: Sequence[Sequence[int]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        for values in perms:
            handle.write(" ".join(str(v) for v in values) + "\n")


def _percentile(values: Sequence[float], percentile: float) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    if len(ordered) == 1:
        return float(ordered[0])
    rank = (len(ordered) - 1) * percentile
    lo = math.floor(rank)
    hi = math.ceil(rank)
    if lo == hi:
        return float(ordered[lo])
    frac = rank - lo
    return float(ordered[lo] * (1.0 - frac) + ordered[hi] * frac)


def run_batch(perms: Sequence[Sequence[int]], config: SolverConfig, verify: bool = True) -> Dict[str, float]:
    op_counts: List[int] = []
    total_solver_ms = 0
    failures = 0
    wall_start_ns = time.perf_counter_ns()
    for values in perms:
        result = solve(values, config=config)
        op_counts.append(len(result.ops))
        total_solver_ms += result.elapsed_ms
        if verify and not check_solution(values, result.ops):
            failures += 1
    wall_ms = (time.perf_counter_ns() - wall_start_ns) // 1_000_000
    if not op_counts:
        op_counts = [0]
    return {
        "runs": float(len(perms)),
        "min": float(min(op_counts)),
        "mean": statistics.fmean(op_counts),
        "p50": _percentile(op_counts, 0.50),
        "p90": _percentile(op_counts, 0.90),
        "max": float(max(op_counts)),
        "solver_ms": float(total_solver_ms),
        "wall_ms": float(wall_ms),
        "failures": float(failures),
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Deterministic push_swap operation-count benchmark")
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=list(DEFAULT_SIZES),
        help="permutation sizes (default: 3 5 10 100 500)",
    )
    parser.add_argument("--runs", type=int, default=20, help="permutations per size (default: 20)")
    parser.add_argument("--seed", type=int, default=12345, help="random seed for permutation generation")
    parser.add_argument("--small-range", type=int, default=SMALL_BUCKET_RANGE)
    parser.add_argument("--large-range", type=int, default=LARGE_BUCKET_RANGE)
    parser.add_argument("--large-threshold", type=int, default=LARGE_SIZE_THRESHOLD)
    parser.add_argument("--no-verify", action="store_true", help="skip replay verification")
    parser.add_argument("--no-gc", action="store_true", help="disable GC during benchmark loop")
    parser.add_argument(
        "--save-permutations",
        type=Path,
        default=None,
        help="write sampled permutations to file (one per line)",
    )
    parser.add_argument(
        "--load-permutations",
        type=Path,
        default=None,
        help="benchmark permutations from file instead of --sizes",
    )
    args = parser.parse_args(argv)

    if args.runs <= 0:
        print("--runs must be > 0")
        return 2
    if any(size <= 0 for size in args.sizes):
        print("--sizes must all be > 0")
        return 2
    if args.load_permutations is not None and not args.load_permutations.exists():
        print(f"--load-permutations not found: {args.load_permutations}")
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

    batches: Dict[int, List[List[int]]] = {}
    if args.load_permutations is not None:
        try:
            loaded = _load_permutations(args.load_permutations, args.runs * 1000)
        except ValueError as exc:
            print(f"failed to load permutations: {exc}")
            return 2
        for values in loaded:
            batches.setdefault(len(values), []).append(values)
    else:
        for size in args.sizes:
            batches[size] = _generate_permutations(size=size, count=args.runs, seed=args.seed)
    if args.save_permutations is not None:
        _save_permutations(args.save_permutations, [v for size in sorted(batches) for v in batches[size]])

    print(
        f"python={sys.version.split()[0]} platform={platform.platform()} "
        f"runs={args.runs} seed={args.seed} small_range={config.small_range} "
        f"large_range={config.large_range} large_threshold={config.large_threshold}"
    )
    print(f"{'size':>5} {'runs':>5} {'min':>6} {'mean':>8} {'p50':>7} {'p90':>7} {'max':>6} {'solver_ms':>9} fail")

    gc_was_enabled = gc.isenabled()
    if args.no_gc and gc_was_enabled:
        gc.disable()
    failed = False
    try:
        for size in sorted(batches):
            summary = run_batch(batches[size], config, verify=not args.no_verify)
            failed = failed or summary["failures"] > 0
            print(
                f"{size:>5d} {int(summary['runs']):>5d} {int(summary['min']):>6d} {summary['mean']:>8.1f} "
                f"{summary['p50']:>7.1f} {summary['p90']:>7.1f} {int(summary['max']):>6d} "
                f"{int(summary['solver_ms']):>9d} {int(summary['failures'])}"
            )
    finally:
        if args.no_gc and gc_was_enabled:
            gc.enable()

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
