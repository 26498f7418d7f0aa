"""Live terminal display for task trees."""

import os
import sys
import threading
import time
from typing import Callable, Optional, TextIO

from .config import LiveTreeConfig
from .core import TaskList, are_all_tasks_done
from .renderer import TreeRenderer


CI_ENV_VARS = ("CI", "CONTINUOUS_INTEGRATION", "BUILD_NUMBER")


def is_ci() -> bool:
    """Check whether the process runs under a CI system."""
    return any(os.environ.get(name) for name in CI_ENV_VARS)


class LiveDisplay:
    """Live updating terminal display for a task list.

    Uses ANSI escape codes to redraw the list in place without scrolling.
    Under CI the display is append-only: a frame is written only once
    every task has finished, and only if it differs from the last one.

    Example:
        >>> display = LiveDisplay(config=LiveTreeConfig())
        >>> display.start(tree.root)  # redraws on every change
        >>> ...
        >>> display.stop()
    """

    # ANSI escape codes
    CURSOR_UP = "\033[A"
    CLEAR_LINE = "\033[2K"
    CURSOR_TO_START = "\033[G"
    HIDE_CURSOR = "\033[?25l"
    SHOW_CURSOR = "\033[?25h"

    def __init__(
        self,
        renderer: Optional[TreeRenderer] = None,
        config: Optional[LiveTreeConfig] = None,
        output: Optional[TextIO] = None,
        ci: Optional[bool] = None,
    ):
        """Initialize the live display.

        Args:
            renderer: TreeRenderer instance. Created if not provided.
            config: Configuration. Used if renderer not provided.
            output: Output stream. Defaults to sys.stderr.
            ci: Force append-only mode on or off. Detected from the
                environment if not provided.
        """
        self.config = config or LiveTreeConfig()
        self.renderer = renderer or TreeRenderer(self.config)
        self.output = output or sys.stderr
        self.ci = is_ci() if ci is None else ci

        self.tasks: Optional[TaskList] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._lock = threading.Lock()
        self._last_line_count = 0
        self._last_update_time: Optional[float] = None
        self._last_frame: Optional[str] = None
        self._pending_redraw: Optional[threading.Timer] = None
        self._cursor_hidden = False

    @property
    def is_active(self) -> bool:
        """Check whether the display is observing a task list."""
        return self.tasks is not None

    def start(self, tasks: TaskList) -> None:
        """Start redrawing `tasks` whenever they change.

        Args:
            tasks: The task list to display.
        """
        self.tasks = tasks
        self._unsubscribe = tasks.subscribe(self.update)
        if not self.ci and self._is_tty():
            self.hide_cursor()

    def update(self, force: bool = False) -> None:
        """Redraw the display with the current task state.

        A change arriving within `refresh_interval` of the last redraw is
        not dropped: one trailing redraw is scheduled for when the
        interval expires.

        Args:
            force: Force update even if within refresh interval.
        """
        if self.tasks is None:
            return

        if not force and self._last_update_time is not None:
            wait = self.config.refresh_interval - (time.monotonic() - self._last_update_time)
            if wait > 0:
                self._schedule_redraw(wait)
                return

        self._cancel_redraw()
        with self._lock:
            if self.tasks is None:
                return
            self._last_update_time = time.monotonic()
            frame = self.renderer.render(self.tasks, max_visible=self.config.max_visible)

            if self.ci:
                if are_all_tasks_done(self.tasks) and frame and frame != self._last_frame:
                    self.output.write(frame + "\n")
                    self.output.flush()
                    self._last_frame = frame
                return

            self._erase()
            if frame:
                lines = frame.split("\n")
                for line in lines:
                    self.output.write(self.CURSOR_TO_START + line + "\n")
                self._last_line_count = len(lines)
            self.output.flush()
            self._last_frame = frame

    def _schedule_redraw(self, delay: float) -> None:
        with self._lock:
            if self._pending_redraw is not None:
                return
            timer = threading.Timer(delay, self._redraw_pending)
            timer.daemon = True
            self._pending_redraw = timer
        timer.start()

    def _redraw_pending(self) -> None:
        with self._lock:
            self._pending_redraw = None
        self.update(force=True)

    def _cancel_redraw(self) -> None:
        with self._lock:
            timer, self._pending_redraw = self._pending_redraw, None
        if timer is not None:
            timer.cancel()

    def flush(self) -> None:
        """Redraw immediately, ignoring the refresh interval."""
        self.update(force=True)

    def stop(self) -> None:
        """Draw a final frame and stop observing the task list.

        The final frame is not truncated to `max_visible`. A scheduled
        trailing redraw is cancelled.
        """
        if self.tasks is None:
            return

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_redraw()

        with self._lock:
            frame = self.renderer.render(self.tasks)
            if self.ci:
                if frame and frame != self._last_frame:
                    self.output.write(frame + "\n")
            else:
                self._erase()
                if frame:
                    self.output.write(self.CURSOR_TO_START + frame + "\n")
            self.output.flush()
            self._last_line_count = 0
            self._last_frame = None
            self.tasks = None

        self.show_cursor()

    def clear(self) -> None:
        """Clear the current display."""
        with self._lock:
            self._erase()
            self.output.flush()

    def _erase(self) -> None:
        """Erase the previously drawn frame. Caller holds the lock."""
        for _ in range(self._last_line_count):
            self.output.write(self.CURSOR_UP + self.CLEAR_LINE)
        self._last_line_count = 0

    def _is_tty(self) -> bool:
        isatty = getattr(self.output, "isatty", None)
        return bool(isatty and isatty())

    def hide_cursor(self) -> None:
        """Hide the terminal cursor."""
        self.output.write(self.HIDE_CURSOR)
        self.output.flush()
        self._cursor_hidden = True

    def show_cursor(self) -> None:
        """Show the terminal cursor if this display hid it."""
        if self._cursor_hidden:
            self.output.write(self.SHOW_CURSOR)
            self.output.flush()
            self._cursor_hidden = False

    def __enter__(self) -> "LiveDisplay":
        return self

    def __exit__(self, *args) -> None:
        self.stop()
