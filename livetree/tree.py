"""Task tree root and display lifecycle."""

import logging
from typing import Any, Callable, Iterator, Optional, Protocol

from .config import LiveTreeConfig
from .core import TaskList, TaskNode
from .display import LiveDisplay
from .executor import TaskFunction, TaskHandle, TaskGroupResults, TaskRunner
from .hooks import HookDispatcher
from .logging_integration import TaskLogger


logger = logging.getLogger(__name__)


class Display(Protocol):
    """Something that keeps a terminal view of a task list up to date."""

    def start(self, tasks: TaskList) -> None:
        """Begin observing `tasks`."""
        ...

    def flush(self) -> None:
        """Redraw immediately."""
        ...

    def stop(self) -> None:
        """Render a final frame and stop observing."""
        ...


DisplayFactory = Callable[[LiveTreeConfig], Display]


class TaskTree:
    """Root of a tree of tasks.

    Owns the root task list and the display drawing it. The display is
    created when the first task is appended to an empty root and stopped
    when the root becomes empty again; the next top-level task starts a
    fresh one.

    Example:
        >>> tree = TaskTree(LiveTreeConfig(show_output=False))
        >>>
        >>> async def build(api):
        ...     api.set_status("compiling")
        ...     return 42
        >>>
        >>> handle = await tree.task("build", build)
        >>> handle.clear()  # root is empty again, display stopped

    Attributes:
        config: Configuration settings.
        hooks: Dispatcher for task lifecycle events.
        root: Top-level task list.
        task: Runner creating top-level tasks.
    """

    def __init__(
        self,
        config: Optional[LiveTreeConfig] = None,
        hooks: Optional[HookDispatcher] = None,
        display_factory: Optional[DisplayFactory] = None,
    ):
        """Initialize the tree.

        Args:
            config: Configuration. Defaults to LiveTreeConfig().
            hooks: HookDispatcher for lifecycle events.
            display_factory: Builds the display from the config. Defaults to
                LiveDisplay when config.enable_display is set.
        """
        self.config = config or LiveTreeConfig()
        self.hooks = hooks or HookDispatcher()
        self.root = TaskList(is_root=True)
        self.display: Optional[Display] = None

        if display_factory is None and self.config.enable_display:
            display_factory = _live_display
        self.display_factory = display_factory

        if self.config.enable_logging:
            self.hooks.register(
                TaskLogger(logger_name=self.config.logger_name, level=self.config.log_level)
            )

        self.task = TaskRunner(self, self.root)

    @property
    def is_attached(self) -> bool:
        """Check whether a display is currently attached."""
        return self.display is not None

    def add_node(self, container: TaskList, node: TaskNode) -> None:
        """Append a node, attaching the display for the first root task."""
        if container is self.root and not self.root:
            self._attach_display()
        container.append(node)
        self.hooks.emit("on_task_added", node)

    def remove_node(self, container: TaskList, node: TaskNode) -> None:
        """Remove a node, detaching the display once the root is empty."""
        if container.remove(node):
            self.hooks.emit("on_task_removed", node)
        if container is self.root and not self.root:
            self._detach_display()

    def flush(self) -> None:
        """Redraw the attached display immediately."""
        if self.display is not None:
            self.display.flush()

    def _attach_display(self) -> None:
        if self.display is not None or self.display_factory is None:
            return
        self.display = self.display_factory(self.config)
        self.display.start(self.root)
        logger.debug("Display attached")
        self.hooks.emit("on_display_attach", self)

    def _detach_display(self) -> None:
        if self.display is None:
            return
        display, self.display = self.display, None
        display.stop()
        logger.debug("Display detached")
        self.hooks.emit("on_display_detach", self)

    def walk(self) -> Iterator[TaskNode]:
        """Iterate over every node in the tree."""
        return self.root.walk()

    def get_stats(self) -> dict[str, int]:
        """Get counts of nodes by state."""
        stats: dict[str, int] = {
            "pending": 0,
            "loading": 0,
            "success": 0,
            "warning": 0,
            "error": 0,
            "total": 0,
        }
        for node in self.walk():
            stats["total"] += 1
            stats[node.state] += 1
        return stats

    def __repr__(self) -> str:
        return f"TaskTree(tasks={len(self.root)}, attached={self.is_attached})"


def _live_display(config: LiveTreeConfig) -> Display:
    return LiveDisplay(config=config)


_default_tree: Optional[TaskTree] = None


def get_default_tree() -> TaskTree:
    """Get the process-wide tree behind `livetree.task`, creating it lazily."""
    global _default_tree
    if _default_tree is None:
        _default_tree = TaskTree()
    return _default_tree


def set_default_tree(tree: Optional[TaskTree]) -> None:
    """Replace the tree behind `livetree.task`. None resets it."""
    global _default_tree
    _default_tree = tree


class DefaultTaskRunner:
    """Runner bound to the default tree at call time."""

    async def __call__(
        self,
        title: str,
        task_fn: TaskFunction,
        *,
        show_time: bool = False,
    ) -> TaskHandle:
        return await get_default_tree().task(title, task_fn, show_time=show_time)

    async def group(self, build: Callable[..., Any], **options: Any) -> TaskGroupResults:
        return await get_default_tree().task.group(build, **options)

    def __repr__(self) -> str:
        return "DefaultTaskRunner()"


task = DefaultTaskRunner()
