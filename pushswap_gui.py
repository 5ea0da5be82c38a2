"""PySide6 visualizer for the push_swap solver."""

from __future__ import annotations

import os
import random
import sys
from pathlib import Path
from typing import Callable, Optional, Set

from PySide6.QtCore import QObject, QRectF, QSettings, Qt, QTimer
from PySide6.QtGui import QBrush, QColor, QFont, QLinearGradient, QPainter, QPen
from PySide6.QtWidgets import (
    QApplication,
    QFrame,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from pushswap_engine import Snapshot
from pushswap_playback import DEFAULT_RATE, MAX_RATE, MIN_RATE, PlaybackEngine, PlaybackStatus
from pushswap_solver import DEFAULT_CONFIG, SolveResult, SolverConfig, solve
from pushswap_telemetry import JsonLinesTelemetrySink, TelemetrySink

GENERATE_SIZES = (3, 5, 10, 100, 500)
DEFAULT_GENERATE_SIZE = 100
CANVAS_PADDING = 20
CANVAS_LABEL_SPACE = 30
MIN_BAR_HEIGHT = 2.0
SETTINGS_ORG = "pushswap"
SETTINGS_APP = "pushswap_visualizer"
TELEMETRY_ENV = "PUSHSWAP_TELEMETRY_FILE"


def bar_color(ratio: float) -> QColor:
    # cyan for small ranks, deeper turquoise for large ones
    ratio = max(0.0, min(1.0, ratio))
    hue = 190 - ratio * 30
    saturation = 85 + ratio * 15
    lightness = 60 - ratio * 15
    return QColor.fromHslF(hue / 360.0, saturation / 100.0, lightness / 100.0)


def format_progress(cursor: int, total: int) -> str:
    return f"{cursor} / {total} operations"


def format_status(engine: PlaybackEngine) -> str:
    if engine.total > 0 and engine.cursor == engine.total:
        return "Sorted!"
    if engine.status is PlaybackStatus.PLAYING:
        return "Playing"
    return ""


class QtTickScheduler(QObject):
    """TickScheduler backed by single-shot QTimers owned by this object."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._timers: Set[QTimer] = set()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> object:
        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.timeout.connect(lambda: self._fire(timer, callback))
        self._timers.add(timer)
        timer.start(max(0, int(delay_ms)))
        return timer

    def cancel(self, handle: object) -> None:
        if handle not in self._timers:
            return
        self._timers.discard(handle)
        handle.stop()
        handle.deleteLater()

    def cancel_all(self) -> None:
        for timer in list(self._timers):
            self.cancel(timer)

    def pending(self) -> int:
        return len(self._timers)

    def _fire(self, timer: QTimer, callback: Callable[[], None]) -> None:
        if timer not in self._timers:
            return
        self._timers.discard(timer)
        timer.deleteLater()
        callback()


class StackCanvas(QWidget):
    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("StackCanvas")
        self.setMinimumSize(480, 360)
        self.snapshot = Snapshot((), ())

    def set_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        self.update()

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        width = float(self.width())
        height = float(self.height())
        painter.fillRect(self.rect(), QColor(3, 3, 3, 204))

        total = self.snapshot.total
        if total == 0:
            painter.end()
            return

        half_width = width / 2
        bar_height = max(MIN_BAR_HEIGHT, (height - CANVAS_LABEL_SPACE) / total)
        gap = min(1.0, bar_height * 0.1)
        max_bar_width = half_width - CANVAS_PADDING * 2

        painter.setPen(Qt.NoPen)
        for x0, stack in (
            (CANVAS_PADDING, self.snapshot.stack_a),
            (half_width + CANVAS_PADDING, self.snapshot.stack_b),
        ):
            for i, el in enumerate(stack):
                bar_width = (el.rank + 1) / total * max_bar_width
                rect = QRectF(x0, i * bar_height, bar_width, bar_height - gap)
                self._draw_bar(painter, rect, el.rank / total)

        painter.setPen(QColor(255, 255, 255, 204))
        painter.setFont(QFont(self.font().family(), 10, QFont.Weight.Medium))
        painter.drawText(int(CANVAS_PADDING), int(height - 10), "Stack A")
        painter.drawText(int(half_width + CANVAS_PADDING), int(height - 10), "Stack B")

        gradient = QLinearGradient(half_width, 0, half_width, height)
        gradient.setColorAt(0.0, QColor(0, 200, 255, 0))
        gradient.setColorAt(0.1, QColor(0, 200, 255, 102))
        gradient.setColorAt(0.5, QColor(0, 200, 255, 153))
        gradient.setColorAt(0.9, QColor(0, 200, 255, 102))
        gradient.setColorAt(1.0, QColor(0, 200, 255, 0))
        painter.setPen(QPen(QBrush(gradient), 1))
        painter.drawLine(int(half_width), 0, int(half_width), int(height))
        painter.end()

    @staticmethod
    def _draw_bar(painter: QPainter, rect: QRectF, ratio: float) -> None:
        radius = min(3.0, rect.height() / 2)
        color = bar_color(ratio)

        painter.setBrush(QColor(0, 0, 0, 77))
        painter.drawRoundedRect(rect.translated(1, 1), radius, radius)

        gradient = QLinearGradient(rect.topLeft(), rect.bottomLeft())
        gradient.setColorAt(0.0, color.lighter(130))
        gradient.setColorAt(0.5, color)
        gradient.setColorAt(1.0, color.darker(115))
        painter.setBrush(QBrush(gradient))
        painter.drawRoundedRect(rect, radius, radius)

        if rect.height() > 4:
            highlight = QRectF(rect.x(), rect.y(), rect.width(), rect.height() * 0.4)
            painter.setBrush(QColor(255, 255, 255, 38))
            painter.drawRoundedRect(highlight, radius, radius)


class PushSwapWindow(QMainWindow):
    def __init__(self, config: SolverConfig = DEFAULT_CONFIG, rng: Optional[random.Random] = None) -> None:
        super().__init__()
        self.setWindowTitle("push_swap Visualizer")
        self.setMinimumSize(900, 640)

        self.settings = QSettings(SETTINGS_ORG, SETTINGS_APP)
        self.config = config
        self.rng = rng if rng is not None else random.Random()
        self.last_result: Optional[SolveResult] = None
        self.last_size = DEFAULT_GENERATE_SIZE

        self.telemetry_sink: Optional[TelemetrySink] = None
        telemetry_path = os.environ.get(TELEMETRY_ENV, "").strip()
        if telemetry_path:
            self.telemetry_sink = JsonLinesTelemetrySink.open(Path(telemetry_path))

        self.scheduler = QtTickScheduler(self)
        self.engine = PlaybackEngine(scheduler=self.scheduler, telemetry_sink=self.telemetry_sink)
        self.engine.add_listener(lambda _engine: self.refresh_ui())

        self._build_ui()
        self._apply_style()
        self._load_persistent_settings()

        self.generate(self.last_size)

    def _build_ui(self) -> None:
        root = QWidget(self)
        self.setCentralWidget(root)
        main_layout = QHBoxLayout(root)
        main_layout.setContentsMargins(18, 18, 18, 18)
        main_layout.setSpacing(16)

        self.canvas = StackCanvas()
        main_layout.addWidget(self.canvas, 3)

        side_widget = QFrame()
        side_widget.setObjectName("SidePanel")
        side_panel = QVBoxLayout(side_widget)
        side_panel.setContentsMargins(12, 12, 12, 12)
        side_panel.setSpacing(10)

        generate_label = QLabel("Generate")
        generate_label.setObjectName("SideHeader")
        side_panel.addWidget(generate_label)

        self.generate_buttons = {}
        generate_row = QHBoxLayout()
        for size in GENERATE_SIZES:
            button = QPushButton(str(size))
            button.clicked.connect(lambda _, n=size: self.generate(n))
            generate_row.addWidget(button)
            self.generate_buttons[size] = button
        side_panel.addLayout(generate_row)

        controls_label = QLabel("Playback")
        controls_label.setObjectName("SideHeader")
        side_panel.addWidget(controls_label)

        self.play_button = QPushButton("Play")
        self.play_button.clicked.connect(self.play)
        self.pause_button = QPushButton("Pause")
        self.pause_button.clicked.connect(self.engine.pause)
        self.step_button = QPushButton("Step")
        self.step_button.clicked.connect(self.engine.step)
        self.back_button = QPushButton("Back")
        self.back_button.clicked.connect(self.engine.step_back)
        self.stop_button = QPushButton("Stop")
        self.stop_button.clicked.connect(self.engine.stop)

        first_row = QHBoxLayout()
        first_row.addWidget(self.play_button)
        first_row.addWidget(self.pause_button)
        side_panel.addLayout(first_row)
        second_row = QHBoxLayout()
        second_row.addWidget(self.back_button)
        second_row.addWidget(self.step_button)
        second_row.addWidget(self.stop_button)
        side_panel.addLayout(second_row)

        self.speed_label = QLabel()
        side_panel.addWidget(self.speed_label)
        self.speed_slider = QSlider(Qt.Horizontal)
        self.speed_slider.setRange(int(MIN_RATE), int(MAX_RATE))
        self.speed_slider.setValue(int(DEFAULT_RATE))
        self.speed_slider.valueChanged.connect(self.set_speed)
        side_panel.addWidget(self.speed_slider)

        info_label = QLabel("Solver")
        info_label.setObjectName("SideHeader")
        side_panel.addWidget(info_label)

        self.strategy_label = QLabel("Strategy: -")
        self.strategy_label.setObjectName("Strategy")
        self.strategy_label.setWordWrap(True)
        side_panel.addWidget(self.strategy_label)

        self.op_count_label = QLabel(format_progress(0, 0))
        self.op_count_label.setObjectName("OpCount")
        side_panel.addWidget(self.op_count_label)

        self.status_label = QLabel("")
        self.status_label.setObjectName("Status")
        side_panel.addWidget(self.status_label)

        side_panel.addStretch(1)
        main_layout.addWidget(side_widget, 1)
        self.set_speed(self.speed_slider.value())

    def _apply_style(self) -> None:
        app = QApplication.instance()
        if app is not None:
            app.setStyle("Fusion")

        self.setStyleSheet(
            """
            QMainWindow { background: #050505; }
            QLabel { color: #e8f6fb; }
            QLabel#SideHeader { font-weight: 600; margin-top: 8px; color: #00c8ff; }
            QLabel#OpCount { font-family: monospace; }
            QLabel#Status { color: #4ee6a0; font-weight: 700; }
            QLabel#Strategy { color: #b7d4de; }
            QFrame#SidePanel {
                background: rgba(255, 255, 255, 0.04);
                border: 1px solid rgba(0, 200, 255, 0.25);
                border-radius: 14px;
            }
            QPushButton {
                background: rgba(0, 200, 255, 0.12);
                border: 1px solid rgba(0, 200, 255, 0.45);
                border-radius: 8px;
                color: #e8f6fb;
                padding: 6px 10px;
            }
            QPushButton:hover { background: rgba(0, 200, 255, 0.25); }
            QPushButton:disabled { color: #5b6b70; border-color: #2a3336; }
            """
        )

    def generate(self, count: int) -> None:
        self.engine.pause()
        self.last_size = count
        values = list(range(1, count + 1))
        self.rng.shuffle(values)
        self.load_values(values)

    def load_values(self, values) -> None:
        self.engine.pause()
        self.last_result = solve(values, config=self.config, telemetry_sink=self.telemetry_sink)
        self.engine.load(values, self.last_result.ops)

    def play(self) -> None:
        self.engine.play(self.speed_slider.value())

    def set_speed(self, value: int) -> None:
        rate = self.engine.set_rate(value)
        self.speed_label.setText(f"Speed: {rate:g} ops/s")

    def refresh_ui(self) -> None:
        self.canvas.set_snapshot(self.engine.snapshot())
        self.op_count_label.setText(format_progress(self.engine.cursor, self.engine.total))
        self.status_label.setText(format_status(self.engine))
        if self.last_result is not None:
            range_note = ""
            if self.last_result.bucket_range is not None:
                range_note = f" (range {self.last_result.bucket_range})"
            self.strategy_label.setText(f"Strategy: {self.last_result.strategy.value}{range_note}")
        self.update_controls()

    def update_controls(self) -> None:
        playing = self.engine.is_playing
        at_end = self.engine.cursor >= self.engine.total
        self.play_button.setEnabled(not playing and not at_end)
        self.pause_button.setEnabled(playing)
        self.step_button.setEnabled(not at_end)
        self.back_button.setEnabled(self.engine.cursor > 0)
        self.stop_button.setEnabled(self.engine.cursor > 0 or playing)

    def _load_persistent_settings(self) -> None:
        geometry = self.settings.value("window/geometry")
        if geometry is not None:
            self.restoreGeometry(geometry)

        speed = self.settings.value("playback/speed")
        try:
            if speed is not None:
                self.speed_slider.setValue(int(speed))
        except (TypeError, ValueError):
            pass

        size = self.settings.value("generate/size")
        try:
            if size is not None and int(size) in GENERATE_SIZES:
                self.last_size = int(size)
        except (TypeError, ValueError):
            pass

    def _save_persistent_settings(self) -> None:
        self.settings.setValue("window/geometry", self.saveGeometry())
        self.settings.setValue("playback/speed", self.speed_slider.value())
        self.settings.setValue("generate/size", self.last_size)
        self.settings.sync()

    def closeEvent(self, event) -> None:
        self.engine.pause()
        self.scheduler.cancel_all()
        self._save_persistent_settings()
        if self.telemetry_sink is not None:
            self.telemetry_sink.close()
        super().closeEvent(event)


def main() -> int:
    app = QApplication(sys.argv)
    window = PushSwapWindow()
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
