from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Callable

from nicegui import ui
from loguru import logger


# ---------- listener-thread -> UI messages ----------
@dataclass(frozen=True)
class Notify:
    """Show a NiceGUI notification."""
    message: str
    type: str = "info"  # "positive" | "negative" | "warning" | "info"


@dataclass(frozen=True)
class Call:
    """Run a function on the UI thread (snapshot delivery, profile switch, ...)."""
    fn: Callable[[], None]


UiMsg = Notify | Call


class UiBridge:
    """
    Per-client outbox between document-store listener threads and the NiceGUI UI thread.

    Any thread:
      - emit_call(fn)           # LiveQuery hands every snapshot delivery here
      - emit_notify(message)    # identical toasts still waiting are sent once

    UI thread:
      - flush()                 # driven by ui.timer in main.py

    After stop() (client disconnected) everything emitted is dropped.
    """

    def __init__(self) -> None:
        self._outbox: "queue.Queue[UiMsg]" = queue.Queue()
        self._dirty = threading.Event()
        self._stop = threading.Event()
        self._notify_lock = threading.Lock()
        self._pending_notices: set[Notify] = set()

    # ----- any thread -----
    def emit_notify(self, message: str, type: str = "info") -> None:
        if self._stop.is_set():
            return
        notice = Notify(message, type)
        with self._notify_lock:
            if notice in self._pending_notices:
                return
            self._pending_notices.add(notice)
        self._put(notice)

    def emit_call(self, fn: Callable[[], None]) -> None:
        if self._stop.is_set():
            return
        self._put(Call(fn))

    def _put(self, msg: UiMsg) -> None:
        self._outbox.put(msg)
        self._dirty.set()

    # ----- lifecycle -----
    def stop(self) -> None:
        self._stop.set()
        self._dirty.set()

    def stopped(self) -> bool:
        return self._stop.is_set()

    # ----- UI thread -----
    def flush(self, *, max_items: int = 200) -> int:
        """Apply up to `max_items` queued messages; returns how many were applied."""
        if not self._dirty.is_set():
            return 0
        self._dirty.clear()

        processed = 0
        while processed < max_items:
            try:
                msg = self._outbox.get_nowait()
            except queue.Empty:
                break
            processed += 1
            if self._stop.is_set():
                continue

            if isinstance(msg, Notify):
                with self._notify_lock:
                    self._pending_notices.discard(msg)
                ui.notify(msg.message, type=msg.type)
                continue

            try:
                msg.fn()
            except Exception as e:
                logger.exception(f"[flush] - ui_call_failed - error={e}")
                ui.notify(f"UI update failed: {e}", type="negative")

        if not self._outbox.empty():
            self._dirty.set()
        return processed
