"""Two-stack sorting solver with size-based strategy dispatch."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence
import time

from pushswap_engine import (
    Element,
    Op,
    OperationLog,
    Stack,
    apply_op,
    is_sorted,
    make_elements,
    replay,
)
from pushswap_telemetry import (
    PhaseDoneEvent,
    SolveEndEvent,
    SolveStartEvent,
    TelemetrySink,
    emit_dataclass_event,
)

SMALL_BUCKET_RANGE = 15
LARGE_BUCKET_RANGE = 35
LARGE_SIZE_THRESHOLD = 100
SMALL_SORT_MAX = 5


class Strategy(str, Enum):
    SORTED = "sorted"
    PAIR = "pair"
    THREE = "three"
    SMALL = "small"
    CHUNKED = "chunked"


@dataclass(frozen=True)
class SolverConfig:
    small_range: int = SMALL_BUCKET_RANGE
    large_range: int = LARGE_BUCKET_RANGE
    large_threshold: int = LARGE_SIZE_THRESHOLD

    def __post_init__(self) -> None:
        if self.small_range < 1 or self.large_range < 1:
            raise ValueError("bucket ranges must be >= 1")
        if self.large_threshold < 0:
            raise ValueError("large_threshold must be non-negative")

    def bucket_range(self, size: int) -> int:
        return self.small_range if size <= self.large_threshold else self.large_range


DEFAULT_CONFIG = SolverConfig()


@dataclass(frozen=True)
class SolveResult:
    ops: OperationLog
    strategy: Strategy
    size: int
    bucket_range: Optional[int]
    elapsed_ms: int

    def op_counts(self) -> Dict[str, int]:
        counts = Counter(op.value for op in self.ops)
        return {op.value: counts.get(op.value, 0) for op in Op}


class Workspace:
    """Live stacks plus the log of every operation that actually changed them."""

    def __init__(self, elements: Sequence[Element]) -> None:
        self.a = Stack(elements)
        self.b = Stack()
        self.ops: List[Op] = []

    def do(self, op: Op) -> bool:
        if not apply_op(self.a, self.b, op):
            return False
        self.ops.append(op)
        return True

    def log(self) -> OperationLog:
        return tuple(self.ops)


def select_strategy(elements: Sequence[Element]) -> Strategy:
    size = len(elements)
    if is_sorted(elements):
        return Strategy.SORTED
    if size == 2:
        return Strategy.PAIR
    if size == 3:
        return Strategy.THREE
    if size <= SMALL_SORT_MAX:
        return Strategy.SMALL
    return Strategy.CHUNKED


def sort_pair(ws: Workspace) -> None:
    # The unconditional swap is only right for a descending pair.
    if len(ws.a) != 2 or is_sorted(ws.a):
        raise ValueError("sort_pair requires an unsorted pair on stack A")
    ws.do(Op.SA)


def sort_three(ws: Workspace) -> None:
    a = ws.a[0].rank
    b = ws.a[1].rank
    c = ws.a[2].rank

    if a < b < c:
        return
    if a < c and b > c:
        ws.do(Op.SA)
        ws.do(Op.RA)
    elif a > b and a < c:
        ws.do(Op.SA)
    elif a > b and b > c:
        ws.do(Op.SA)
        ws.do(Op.RRA)
    elif a > b and a > c and b < c:
        ws.do(Op.RA)
    else:
        ws.do(Op.RRA)


def sort_small(ws: Workspace) -> None:
    """Park ranks 0 and 1 on B, order what is left on A, then bring them back."""
    while len(ws.b) < 2:
        if ws.a[0].rank <= 1:
            ws.do(Op.PB)
        else:
            ws.do(Op.RA)

    if len(ws.a) == 3:
        sort_three(ws)
    elif len(ws.a) >= 2 and ws.a[0].rank > ws.a[1].rank:
        ws.do(Op.SA)

    if len(ws.b) >= 2 and ws.b[0].rank < ws.b[1].rank:
        ws.do(Op.SB)

    ws.do(Op.PA)
    ws.do(Op.PA)


def sort_chunked(ws: Workspace, bucket_range: int) -> None:
    """
    Move everything from A to B in ascending bands of ``bucket_range`` ranks.

    Elements at or below the floor go straight onto B. Elements inside the
    current band are pushed and rotated under B, so B stays roughly ordered
    with small ranks at both ends and large ranks in the middle.
    """
    floor = 0
    while ws.a:
        top = ws.a[0].rank
        if top <= floor:
            ws.do(Op.PB)
            floor += 1
        elif top <= floor + bucket_range:
            ws.do(Op.PB)
            ws.do(Op.RB)
            floor += 1
        else:
            ws.do(Op.RA)


def finalize(ws: Workspace) -> None:
    while ws.b:
        pos = ws.b.position_of_max()
        size = len(ws.b)
        if pos <= size / 2:
            for _ in range(pos):
                ws.do(Op.RB)
        else:
            for _ in range(size - pos):
                ws.do(Op.RRB)
        ws.do(Op.PA)


def solve(
    values: Sequence[int],
    config: SolverConfig = DEFAULT_CONFIG,
    telemetry_sink: Optional[TelemetrySink] = None,
) -> SolveResult:
    start = time.perf_counter()
    elements = make_elements(values)
    strategy = select_strategy(elements)
    size = len(elements)
    bucket_range = config.bucket_range(size) if strategy is Strategy.CHUNKED else None

    emit_dataclass_event(
        telemetry_sink,
        "solve_start",
        SolveStartEvent(size=size, strategy=strategy.value, bucket_range=bucket_range),
    )

    def _elapsed_ms() -> int:
        return int((time.perf_counter() - start) * 1000)

    def _phase_done(phase: str) -> None:
        emit_dataclass_event(
            telemetry_sink,
            "phase_done",
            PhaseDoneEvent(phase=phase, ops=len(ws.ops), elapsed_ms=_elapsed_ms()),
        )

    ws = Workspace(elements)
    if strategy is Strategy.PAIR:
        sort_pair(ws)
    elif strategy is Strategy.THREE:
        sort_three(ws)
    elif strategy is Strategy.SMALL:
        sort_small(ws)
    elif strategy is Strategy.CHUNKED:
        sort_chunked(ws, bucket_range)
        _phase_done("chunk")
        finalize(ws)
    _phase_done("finalize" if strategy is Strategy.CHUNKED else strategy.value)

    result = SolveResult(
        ops=ws.log(),
        strategy=strategy,
        size=size,
        bucket_range=bucket_range,
        elapsed_ms=_elapsed_ms(),
    )
    emit_dataclass_event(
        telemetry_sink,
        "solve_end",
        SolveEndEvent(
            size=size,
            strategy=strategy.value,
            ops=len(result.ops),
            elapsed_ms=result.elapsed_ms,
            op_counts=result.op_counts(),
        ),
    )
    return result


def check_solution(values: Sequence[int], ops: Sequence[Op]) -> bool:
    """True when replaying ``ops`` leaves A fully sorted and B empty."""
    elements = make_elements(values)
    a, b = replay(elements, ops)
    return len(b) == 0 and len(a) == len(elements) and is_sorted(a)
