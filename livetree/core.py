"""Core data structures for livetree."""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Optional


class LiveTreeError(Exception):
    """Base class for errors raised by livetree itself."""


class InvalidStateTransition(LiveTreeError):
    """Raised when a task node is moved to a state it cannot reach."""

    def __init__(self, node: "TaskNode", new_state: str):
        self.node = node
        self.new_state = new_state
        super().__init__(
            f"Task {node.title!r} cannot move from {node.state!r} to {new_state!r}"
        )


class TaskState:
    """Lifecycle states of a task node."""

    PENDING = "pending"
    LOADING = "loading"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


ALL_STATES = (
    TaskState.PENDING,
    TaskState.LOADING,
    TaskState.SUCCESS,
    TaskState.WARNING,
    TaskState.ERROR,
)

TERMINAL_STATES = frozenset({TaskState.SUCCESS, TaskState.WARNING, TaskState.ERROR})

# warning/error may be re-applied at any point after the node started
_ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    TaskState.PENDING: frozenset({TaskState.LOADING}),
    TaskState.LOADING: frozenset(TERMINAL_STATES),
    TaskState.SUCCESS: frozenset({TaskState.WARNING, TaskState.ERROR}),
    TaskState.WARNING: frozenset({TaskState.WARNING, TaskState.ERROR}),
    TaskState.ERROR: frozenset({TaskState.WARNING, TaskState.ERROR}),
}


Listener = Callable[[], None]


class TaskList(list):
    """Observable ordered container of task nodes.

    Subscribers are called with no arguments whenever the list changes
    structurally or one of its nodes (or their descendants) reports a
    field change through `notify`. A child list forwards notifications to
    the list holding its owner, so subscribing to the root observes the
    whole tree.

    Example:
        >>> tasks = TaskList(is_root=True)
        >>> tasks.subscribe(lambda: print("changed"))
        >>> tasks.append(TaskNode(title="build"))
        changed
    """

    def __init__(self, nodes: Iterable["TaskNode"] = (), is_root: bool = False):
        super().__init__()
        self.is_root = is_root
        self._listeners: list[Listener] = []
        self._upstream: Optional["TaskList"] = None
        for node in nodes:
            self._attach(node)
            super().append(node)

    def _attach(self, node: "TaskNode") -> None:
        node.container = self
        node.children._upstream = self

    def append(self, node: "TaskNode") -> None:
        """Append a node and notify subscribers."""
        self._attach(node)
        super().append(node)
        self.notify()

    def remove(self, node: "TaskNode") -> bool:
        """Remove a node by identity.

        Returns:
            True if the node was present and removed.
        """
        for index, candidate in enumerate(self):
            if candidate is node:
                del self[index]
                node.container = None
                node.children._upstream = None
                self.notify()
                return True
        return False

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A function that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        """Notify subscribers of this list and of every list above it."""
        for listener in list(self._listeners):
            listener()
        if self._upstream is not None:
            self._upstream.notify()

    def walk(self) -> Iterator["TaskNode"]:
        """Iterate over every node in this list and their descendants."""
        for node in self:
            yield from node.walk()

    def __repr__(self) -> str:
        return f"TaskList({[node.title for node in self]!r})"


@dataclass(eq=False)
class TaskNode:
    """A node in the task tree.

    Attributes:
        title: Human-readable display label.
        state: Current lifecycle state (see TaskState).
        status: Short auxiliary label shown next to the title.
        output: Last progress, warning or error message.
        children: Nested tasks in creation order.
        show_time: Whether the display shows elapsed time for this node.
        started_at: Monotonic timestamp when the function started.
        finished_at: Monotonic timestamp when the function settled.
        container: The list currently holding this node.
    """

    title: str
    state: str = TaskState.PENDING
    status: Optional[str] = None
    output: Optional[str] = None
    children: TaskList = field(default_factory=TaskList)
    show_time: bool = False

    # Timing
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    container: Optional[TaskList] = field(default=None, repr=False)

    @property
    def elapsed(self) -> Optional[float]:
        """Get elapsed time in seconds.

        Returns:
            Elapsed time if started, None otherwise.
        """
        if self.started_at is None:
            return None
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    def transition(self, new_state: str) -> None:
        """Move to `new_state`, enforcing the lifecycle rules.

        Raises:
            InvalidStateTransition: If the state machine forbids the move.
        """
        if new_state not in _ALLOWED_TRANSITIONS.get(self.state, frozenset()):
            raise InvalidStateTransition(self, new_state)
        self.state = new_state
        if new_state == TaskState.LOADING:
            self.started_at = time.monotonic()

    def settle(self) -> None:
        """Record the end of the node's function."""
        if self.finished_at is None:
            self.finished_at = time.monotonic()

    def notify(self) -> None:
        """Report a field change to observers of the enclosing tree."""
        if self.container is not None:
            self.container.notify()

    def get_depth(self) -> int:
        """Get the depth of this node in the tree (root tasks = 0)."""
        depth = 0
        container = self.container
        while container is not None and container._upstream is not None:
            depth += 1
            container = container._upstream
        return depth

    def is_done(self) -> bool:
        """Check if this node reached a terminal state."""
        return self.state in TERMINAL_STATES

    def walk(self) -> Iterator["TaskNode"]:
        """Iterate over this node and all descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        """Plain snapshot of this node and its descendants."""
        return {
            "title": self.title,
            "state": self.state,
            "status": self.status,
            "output": self.output,
            "children": [child.to_dict() for child in self.children],
        }

    def __repr__(self) -> str:
        return f"TaskNode(title={self.title!r}, state={self.state!r})"


def are_all_tasks_done(tasks: Iterable[TaskNode]) -> bool:
    """Check that no task (at any depth) is pending or loading."""
    for node in tasks:
        if not node.is_done():
            return False
        if node.children and not are_all_tasks_done(node.children):
            return False
    return True


def snapshot(tasks: Iterable[TaskNode]) -> list[dict[str, Any]]:
    """Plain snapshot of a task list."""
    return [node.to_dict() for node in tasks]
