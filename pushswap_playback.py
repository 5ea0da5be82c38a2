"""Cursor-based playback of a solved operation log."""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence, Tuple
import sched
import time

from pushswap_engine import (
    Element,
    Op,
    OperationLog,
    Snapshot,
    Stack,
    apply_op,
    make_elements,
    replay,
)
from pushswap_telemetry import PlaybackStateEvent, TelemetrySink, emit_dataclass_event

DEFAULT_RATE = 200.0
MIN_RATE = 1.0
MAX_RATE = 1000.0


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    STEPPING = "stepping"
    PLAYING = "playing"
    FINISHED = "finished"


class CancelToken:
    """Owned by one play session; ticks armed for a cancelled token do nothing."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class TickScheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> object:
        ...

    def cancel(self, handle: object) -> None:
        ...


class SchedTickScheduler:
    """TickScheduler on top of ``sched.scheduler``; drive it with ``run()``."""

    def __init__(
        self,
        timefunc: Callable[[], float] = time.monotonic,
        delayfunc: Callable[[float], object] = time.sleep,
    ) -> None:
        self._sched = sched.scheduler(timefunc, delayfunc)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> object:
        return self._sched.enter(max(0, delay_ms) / 1000.0, 0, callback)

    def cancel(self, handle: object) -> None:
        try:
            self._sched.cancel(handle)
        except ValueError:
            # Already fired or already cancelled.
            return

    def empty(self) -> bool:
        return self._sched.empty()

    def run(self) -> None:
        self._sched.run()


def clamp_rate(rate: float) -> float:
    return max(MIN_RATE, min(MAX_RATE, float(rate)))


def rate_to_delay_ms(rate: float) -> int:
    return max(1, int(round(1000.0 / clamp_rate(rate))))


Listener = Callable[["PlaybackEngine"], None]


class PlaybackEngine:
    def __init__(
        self,
        values: Sequence[int] = (),
        ops: Sequence[Op] = (),
        scheduler: Optional[TickScheduler] = None,
        telemetry_sink: Optional[TelemetrySink] = None,
        rate: float = DEFAULT_RATE,
    ) -> None:
        self._scheduler = scheduler
        self._telemetry_sink = telemetry_sink
        self._listeners: List[Listener] = []
        self._rate = clamp_rate(rate)
        self._token: Optional[CancelToken] = None
        self._handle: Optional[object] = None
        self._status = PlaybackStatus.IDLE
        self._values: Tuple[int, ...] = ()
        self._elements: Tuple[Element, ...] = ()
        self._ops: OperationLog = ()
        self._cursor = 0
        self._a = Stack()
        self._b = Stack()
        self._replace(values, ops)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def total(self) -> int:
        return len(self._ops)

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def ops(self) -> OperationLog:
        return self._ops

    @property
    def values(self) -> Tuple[int, ...]:
        return self._values

    @property
    def is_playing(self) -> bool:
        return self._status is PlaybackStatus.PLAYING

    @property
    def is_finished(self) -> bool:
        return self._status is PlaybackStatus.FINISHED

    def snapshot(self) -> Snapshot:
        return Snapshot(self._a.snapshot(), self._b.snapshot())

    def state_at(self, cursor: int) -> Snapshot:
        target = self._clamp(cursor)
        if target == self._cursor:
            return self.snapshot()
        a, b = replay(self._elements, self._ops, target)
        return Snapshot(a.snapshot(), b.snapshot())

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def step(self) -> bool:
        self._cancel_pending()
        if not self._advance():
            if self._set_status(PlaybackStatus.FINISHED):
                self._notify()
            return False
        self._set_status(self._resting_status())
        self._notify()
        return True

    def step_back(self) -> bool:
        cancelled = self._cancel_pending()
        if self._cursor <= 0:
            # nothing to undo; only stop a running session
            if cancelled and self._set_status(PlaybackStatus.IDLE):
                self._notify()
            return False
        self._rebuild(self._cursor - 1)
        self._set_status(PlaybackStatus.STEPPING)
        self._notify()
        return True

    def seek(self, cursor: int) -> int:
        self._cancel_pending()
        target = self._clamp(cursor)
        self._rebuild(target)
        self._set_status(self._resting_status())
        self._notify()
        return target

    def reset(self) -> None:
        self._cancel_pending()
        self._rebuild(0)
        self._set_status(PlaybackStatus.IDLE)
        self._notify()

    def stop(self) -> None:
        self.reset()

    def load(self, values: Sequence[int], ops: Sequence[Op]) -> None:
        self._cancel_pending()
        self._replace(values, ops)
        self._notify()

    def play(self, rate: Optional[float] = None) -> bool:
        if rate is not None:
            self._rate = clamp_rate(rate)
        if self._status is PlaybackStatus.PLAYING:
            return True
        if self._scheduler is None or self._cursor >= len(self._ops):
            return False
        token = CancelToken()
        self._token = token
        self._set_status(PlaybackStatus.PLAYING)
        self._arm(token)
        self._notify()
        return True

    def pause(self) -> None:
        if not self._cancel_pending():
            return
        self._set_status(PlaybackStatus.IDLE if self._cursor == 0 else PlaybackStatus.STEPPING)
        self._notify()

    def set_rate(self, rate: float) -> float:
        self._rate = clamp_rate(rate)
        return self._rate

    def _arm(self, token: CancelToken) -> None:
        scheduler = self._scheduler
        if scheduler is None:
            return
        delay_ms = rate_to_delay_ms(self._rate)
        self._handle = scheduler.call_later(delay_ms, lambda: self._on_tick(token))

    def _on_tick(self, token: CancelToken) -> None:
        if token.cancelled or token is not self._token:
            return
        self._handle = None
        self._advance()
        if self._cursor >= len(self._ops):
            token.cancel()
            self._token = None
            self._set_status(PlaybackStatus.FINISHED)
        else:
            self._arm(token)
        self._notify()

    def _cancel_pending(self) -> bool:
        token = self._token
        if token is None:
            return False
        token.cancel()
        self._token = None
        if self._handle is not None and self._scheduler is not None:
            self._scheduler.cancel(self._handle)
        self._handle = None
        return True

    def _advance(self) -> bool:
        if self._cursor >= len(self._ops):
            return False
        apply_op(self._a, self._b, self._ops[self._cursor])
        self._cursor += 1
        return True

    def _rebuild(self, target: int) -> None:
        self._a, self._b = replay(self._elements, self._ops, target)
        self._cursor = target

    def _replace(self, values: Sequence[int], ops: Sequence[Op]) -> None:
        self._values = tuple(values)
        self._elements = tuple(make_elements(self._values))
        self._ops = tuple(ops)
        self._rebuild(0)
        self._set_status(PlaybackStatus.IDLE)

    def _clamp(self, cursor: int) -> int:
        return max(0, min(int(cursor), len(self._ops)))

    def _resting_status(self) -> PlaybackStatus:
        if self._cursor >= len(self._ops):
            return PlaybackStatus.FINISHED
        return PlaybackStatus.STEPPING

    def _set_status(self, status: PlaybackStatus) -> bool:
        if status is self._status:
            return False
        self._status = status
        emit_dataclass_event(
            self._telemetry_sink,
            "playback_state",
            PlaybackStateEvent(
                status=status.value,
                cursor=self._cursor,
                total=len(self._ops),
                rate=self._rate,
            ),
        )
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
