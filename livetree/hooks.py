"""Hook system for task lifecycle events."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from .core import TaskNode
    from .tree import TaskTree


logger = logging.getLogger(__name__)


class TaskHooks(Protocol):
    """Lifecycle events a task tree reports.

    Handlers may implement any subset of these methods. Events fire
    synchronously, in the order the tree changes.

    Example:
        >>> class MyHooks:
        ...     def on_task_start(self, node: TaskNode) -> None:
        ...         print(f"Starting {node.title}")
        ...
        ...     def on_task_complete(self, node: TaskNode) -> None:
        ...         print(f"Finished {node.title} in {node.elapsed:.2f}s")
        ...
        >>> hooks = HookDispatcher()
        >>> hooks.register(MyHooks())
    """

    def on_task_added(self, node: "TaskNode") -> None:
        """Called when a task node is appended to the tree (still pending)."""
        ...

    def on_task_start(self, node: "TaskNode") -> None:
        """Called when a task's function starts."""
        ...

    def on_task_complete(self, node: "TaskNode") -> None:
        """Called when a task's function returns (success or flagged state)."""
        ...

    def on_task_error(self, node: "TaskNode", error: Exception) -> None:
        """Called when a task's function raises, before the error propagates.

        Args:
            node: The failed node.
            error: The exception raised by the task function.
        """
        ...

    def on_task_removed(self, node: "TaskNode") -> None:
        """Called when a task node is cleared from the tree."""
        ...

    def on_display_attach(self, tree: "TaskTree") -> None:
        """Called when a display is attached to the tree."""
        ...

    def on_display_detach(self, tree: "TaskTree") -> None:
        """Called when the tree's root empties and its display is stopped."""
        ...


TASK_EVENTS = frozenset(name for name in vars(TaskHooks) if name.startswith("on_"))

HookCallback = Callable[..., None]


def _check_event(event: str) -> None:
    if event not in TASK_EVENTS:
        raise ValueError(
            f"Unknown hook event {event!r}, expected one of {sorted(TASK_EVENTS)}"
        )


@dataclass
class HookDispatcher:
    """Fans task events out to handler objects and plain callbacks.

    Handler objects implement any part of TaskHooks and are registered with
    `register`; single callbacks are attached to one event with `on`. For
    each event, handler methods run first, in registration order, then the
    event's callbacks. A failing listener is logged and skipped.

    Example:
        >>> hooks = HookDispatcher()
        >>> hooks.on("on_task_error", lambda node, err: alert(f"{node.title}: {err}"))
        >>>
        >>> class Metrics:
        ...     def on_task_complete(self, node):
        ...         metrics.timing("task_duration", node.elapsed)
        ...
        >>> hooks.register(Metrics())
        >>> tree = TaskTree(hooks=hooks)
    """

    handlers: list[Any] = field(default_factory=list)
    callbacks: dict[str, list[HookCallback]] = field(default_factory=dict)

    def register(self, handler: Any) -> "HookDispatcher":
        """Add a handler object implementing some TaskHooks methods.

        Returns:
            Self for chaining.
        """
        self.handlers.append(handler)
        return self

    def unregister(self, handler: Any) -> "HookDispatcher":
        self.handlers = [h for h in self.handlers if h is not handler]
        return self

    def on(self, event: str, callback: HookCallback) -> "HookDispatcher":
        """Attach a callback to one event.

        Args:
            event: One of the TaskHooks method names, e.g. "on_task_error".
            callback: Called with the event's arguments.

        Returns:
            Self for chaining.

        Raises:
            ValueError: If `event` is not a task event.
        """
        _check_event(event)
        self.callbacks.setdefault(event, []).append(callback)
        return self

    def off(self, event: str, callback: Optional[HookCallback] = None) -> "HookDispatcher":
        """Detach `callback` from `event`, or every callback when None."""
        _check_event(event)
        if callback is None:
            self.callbacks.pop(event, None)
        elif event in self.callbacks:
            self.callbacks[event] = [cb for cb in self.callbacks[event] if cb is not callback]
        return self

    def listeners(self, event: str) -> list[HookCallback]:
        """Everything `emit(event)` would call, in call order."""
        found = []
        for handler in self.handlers:
            method = getattr(handler, event, None)
            if callable(method):
                found.append(method)
        found.extend(self.callbacks.get(event, ()))
        return found

    def emit(self, event: str, *args: Any, **kwargs: Any) -> None:
        """Call every listener of `event` with the given arguments.

        Exceptions raised by listeners are logged and do not reach the
        task that triggered the event.
        """
        _check_event(event)
        for listener in self.listeners(event):
            try:
                listener(*args, **kwargs)
            except Exception:
                logger.exception("Hook %r failed in %s", listener, event)

    def clear(self) -> "HookDispatcher":
        """Remove all handlers and callbacks."""
        self.handlers.clear()
        self.callbacks.clear()
        return self


_DESCRIPTIONS: dict[str, Callable[..., str]] = {
    "on_task_added": lambda node: f"Task added: {node.title}",
    "on_task_start": lambda node: f"Task started: {node.title}",
    "on_task_complete": lambda node: f"Task completed: {node.title} state={node.state}",
    "on_task_error": lambda node, error: f"Error in {node.title}: {error}",
    "on_task_removed": lambda node: f"Task removed: {node.title}",
    "on_display_attach": lambda tree: "Display attached",
    "on_display_detach": lambda tree: "Display detached",
}


def create_logging_hooks(logger: Any) -> HookDispatcher:
    """Create a HookDispatcher that reports every event to `logger`.

    Errors go to `logger.error`, tasks finishing in a warning or error state
    to `logger.warning`, everything else to `logger.info`.

    Args:
        logger: Anything with info/warning/error methods taking a message.

    Returns:
        Configured HookDispatcher.
    """
    hooks = HookDispatcher()

    def log_event(event: str, describe: Callable[..., str]) -> HookCallback:
        def callback(*args: Any) -> None:
            if event == "on_task_error":
                log = logger.error
            elif event == "on_task_complete" and args[0].state != "success":
                log = logger.warning
            else:
                log = logger.info
            log(describe(*args))

        return callback

    for event, describe in _DESCRIPTIONS.items():
        hooks.on(event, log_event(event, describe))

    return hooks
