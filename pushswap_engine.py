"""Core stack model and operation rules for the push_swap visualizer."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
import math
from typing import Deque, Iterable, Iterator, List, Optional, Sequence, Tuple

STACK_A = "A"
STACK_B = "B"


class Op(str, Enum):
    SA = "sa"
    SB = "sb"
    PA = "pa"
    PB = "pb"
    RA = "ra"
    RB = "rb"
    RRA = "rra"
    RRB = "rrb"

    def __str__(self) -> str:
        return self.value


OperationLog = Tuple[Op, ...]


@dataclass(frozen=True)
class Element:
    value: int
    rank: int


@dataclass(frozen=True)
class Snapshot:
    stack_a: Tuple[Element, ...]
    stack_b: Tuple[Element, ...]

    @property
    def ranks_a(self) -> List[int]:
        return [el.rank for el in self.stack_a]

    @property
    def ranks_b(self) -> List[int]:
        return [el.rank for el in self.stack_b]

    @property
    def total(self) -> int:
        return len(self.stack_a) + len(self.stack_b)


class Stack:
    """Double-ended stack; index 0 is the top."""

    def __init__(self, elements: Iterable[Element] = ()) -> None:
        self._items: Deque[Element] = deque(elements)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Element]:
        return iter(self._items)

    def __getitem__(self, index: int) -> Element:
        return self._items[index]

    def __repr__(self) -> str:
        return f"Stack({self.ranks()!r})"

    def top(self) -> Optional[Element]:
        return self._items[0] if self._items else None

    def push(self, element: Element) -> None:
        self._items.appendleft(element)

    def pop(self) -> Element:
        if not self._items:
            raise IndexError("pop from empty stack")
        return self._items.popleft()

    def swap(self) -> bool:
        if len(self._items) < 2:
            return False
        first = self._items.popleft()
        second = self._items.popleft()
        self._items.appendleft(first)
        self._items.appendleft(second)
        return True

    def rotate(self) -> bool:
        if len(self._items) < 2:
            return False
        self._items.rotate(-1)
        return True

    def reverse_rotate(self) -> bool:
        if len(self._items) < 2:
            return False
        self._items.rotate(1)
        return True

    def ranks(self) -> List[int]:
        return [el.rank for el in self._items]

    def position_of_max(self) -> int:
        """Index of the highest-rank element, or -1 when empty."""
        best_pos = -1
        best_rank = -1
        for pos, el in enumerate(self._items):
            if el.rank > best_rank:
                best_rank = el.rank
                best_pos = pos
        return best_pos

    def snapshot(self) -> Tuple[Element, ...]:
        return tuple(self._items)


def validate_values(values: Sequence[object]) -> List[int]:
    """Return ``values`` as ints or raise ValueError for unusable input."""
    if len(values) == 0:
        raise ValueError("no values to sort")
    out: List[int] = []
    for raw in values:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"not a number: {raw!r}")
        if isinstance(raw, float):
            if not math.isfinite(raw):
                raise ValueError(f"non-finite value: {raw!r}")
            if not raw.is_integer():
                raise ValueError(f"not an integer: {raw!r}")
        out.append(int(raw))
    seen = set()
    for value in out:
        if value in seen:
            raise ValueError(f"duplicate value: {value}")
        seen.add(value)
    return out


def make_elements(values: Sequence[int]) -> List[Element]:
    order = sorted(range(len(values)), key=lambda i: values[i])
    ranks = [0] * len(values)
    for rank, i in enumerate(order):
        ranks[i] = rank
    return [Element(value, rank) for value, rank in zip(values, ranks)]


def is_sorted(stack: Iterable[Element]) -> bool:
    prev = -1
    for el in stack:
        if el.rank < prev:
            return False
        prev = el.rank
    return True


def apply_op(a: Stack, b: Stack, op: Op) -> bool:
    """Apply ``op`` in place; returns False (and changes nothing) when it cannot run."""
    if op is Op.SA:
        return a.swap()
    if op is Op.SB:
        return b.swap()
    if op is Op.PA:
        if not b:
            return False
        a.push(b.pop())
        return True
    if op is Op.PB:
        if not a:
            return False
        b.push(a.pop())
        return True
    if op is Op.RA:
        return a.rotate()
    if op is Op.RB:
        return b.rotate()
    if op is Op.RRA:
        return a.reverse_rotate()
    if op is Op.RRB:
        return b.reverse_rotate()
    raise ValueError(f"unknown operation: {op!r}")


def replay(
    elements: Sequence[Element],
    ops: Sequence[Op],
    upto: Optional[int] = None,
) -> Tuple[Stack, Stack]:
    if upto is None:
        upto = len(ops)
    upto = max(0, min(upto, len(ops)))
    a = Stack(elements)
    b = Stack()
    for i in range(upto):
        apply_op(a, b, ops[i])
    return a, b


def parse_op(token: str) -> Op:
    try:
        return Op(token.strip().lower())
    except ValueError:
        raise ValueError(f"unknown operation: {token!r}") from None


def parse_ops(text: str) -> OperationLog:
    return tuple(parse_op(tok) for tok in text.split())


def format_ops(ops: Iterable[Op]) -> str:
    return "\n".join(op.value for op in ops)


def pretty_print(snapshot: Snapshot, width: int = 24) -> str:
    """
    Two-column text rendering of a snapshot.

    Each row shows the element at that depth of A and of B as a bar whose
    length is proportional to its rank. Row 0 is the top of both stacks.
    """
    total = max(1, snapshot.total)
    bar_max = max(1, width)
    rank_digits = max(1, len(str(total - 1)))

    def cell(el: Optional[Element]) -> str:
        if el is None:
            return " " * (rank_digits + 1 + bar_max)
        length = max(1, round((el.rank + 1) / total * bar_max))
        return f"{el.rank:>{rank_digits}} " + ("#" * length).ljust(bar_max)

    rows = max(len(snapshot.stack_a), len(snapshot.stack_b))
    header = f"{STACK_A:<{rank_digits + 1 + bar_max}} | {STACK_B}"
    lines = [header, "-" * len(header)]
    for i in range(rows):
        left = snapshot.stack_a[i] if i < len(snapshot.stack_a) else None
        right = snapshot.stack_b[i] if i < len(snapshot.stack_b) else None
        lines.append(f"{cell(left)} | {cell(right)}".rstrip())
    return "\n".join(lines)
