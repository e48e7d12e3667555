#!/usr/bin/env python3
"""Progress events for document conversion and a console bar that shows them."""

import sys
import threading
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

BAR_WIDTH = 50

STAGE_CLEAN = 'Limpieza JSON'
STAGE_PARSE = 'Parseo JSON'
STAGE_PREPARE = 'Preparación de datos'
STAGE_WRITE = 'Generación Excel'


@dataclass(frozen=True)
class ProgressEvent:
    file_name: str
    stage: str
    percent: int


ProgressCallback = Callable[[ProgressEvent], None]


def render_bar(percent: int, width: int = BAR_WIDTH) -> str:
    """Text bar such as ``[=====>    ] 50%``."""
    percent = max(0, min(100, int(percent)))
    pos = width * percent // 100
    cells = ''.join('=' if i < pos else '>' if i == pos else ' ' for i in range(width))
    return f"[{cells}] {percent}%"


class ConsoleProgress:
    """Thread-safe progress printer.

    Intermediate updates overwrite the current line; a stage reaching 100%
    ends the line so finished stages stay visible.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()
        self._last = {}

    def __call__(self, event: ProgressEvent) -> None:
        key = (event.file_name, event.stage)
        with self._lock:
            if self._last.get(key) == event.percent:
                return
            self._last[key] = event.percent
            line = f"{render_bar(event.percent)} Archivo: {event.file_name} | {event.stage}"
            end = '\n' if event.percent >= 100 else ''
            self.stream.write(f"\r{line}{end}")
            self.stream.flush()


def emit(callback: Optional[ProgressCallback], file_name: str, stage: str, percent: int) -> None:
    if callback is not None:
        callback(ProgressEvent(file_name, stage, percent))
