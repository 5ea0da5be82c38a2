"""Telemetry schema and sinks for solver and playback instrumentation."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from queue import Queue
from typing import IO, Any, Callable, Dict, Mapping, Optional, Protocol
import json
import threading
import time


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TelemetryEnvelope:
    event: str
    ts_ms: int
    data: Dict[str, Any]


@dataclass(frozen=True)
class SolveStartEvent:
    size: int
    strategy: str
    bucket_range: Optional[int]


@dataclass(frozen=True)
class PhaseDoneEvent:
    phase: str
    ops: int
    elapsed_ms: int


@dataclass(frozen=True)
class SolveEndEvent:
    size: int
    strategy: str
    ops: int
    elapsed_ms: int
    op_counts: Dict[str, int]


@dataclass(frozen=True)
class PlaybackStateEvent:
    status: str
    cursor: int
    total: int
    rate: float


class TelemetrySink(Protocol):
    def emit(self, envelope: TelemetryEnvelope) -> None:
        ...

    def close(self) -> None:
        ...


class NullTelemetrySink:
    def emit(self, envelope: TelemetryEnvelope) -> None:
        _ = envelope

    def close(self) -> None:
        return


class CallbackTelemetrySink:
    def __init__(self, callback: Callable[[TelemetryEnvelope], None]) -> None:
        self._callback = callback

    def emit(self, envelope: TelemetryEnvelope) -> None:
        self._callback(envelope)

    def close(self) -> None:
        return


class QueueTelemetrySink:
    def __init__(self, queue: "Queue[TelemetryEnvelope]") -> None:
        self._queue = queue

    def emit(self, envelope: TelemetryEnvelope) -> None:
        self._queue.put(envelope)

    def close(self) -> None:
        return


class JsonLinesTelemetrySink:
    """Writes one compact JSON object per event."""

    def __init__(self, handle: IO[str], owns_handle: bool = False) -> None:
        self._handle = handle
        self._owns_handle = owns_handle
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def open(cls, path: Path) -> "JsonLinesTelemetrySink":
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(path.open("a", encoding="utf-8"), owns_handle=True)

    def emit(self, envelope: TelemetryEnvelope) -> None:
        payload = {
            "event": envelope.event,
            "ts_ms": envelope.ts_ms,
            "data": envelope.data,
        }
        line = json.dumps(payload, separators=(",", ":"))
        with self._lock:
            if self._closed:
                return
            self._handle.write(line + "\n")
            self._handle.flush()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._owns_handle:
                self._handle.close()


def emit_event(sink: Optional[TelemetrySink], event: str, payload: Mapping[str, Any]) -> None:
    if sink is None:
        return
    envelope = TelemetryEnvelope(event=event, ts_ms=now_ms(), data=dict(payload))
    try:
        sink.emit(envelope)
    except Exception:
        return


def emit_dataclass_event(sink: Optional[TelemetrySink], event: str, payload_obj: object) -> None:
    if sink is None:
        return
    emit_event(sink, event, asdict(payload_obj))
