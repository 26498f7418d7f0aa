"""
livetree - Nested async tasks with a live status tree in the terminal.

Wrap the steps of a CLI program in async task functions; livetree tracks
each one through pending, loading and success/warning/error, lets a running
task start child tasks one at a time or as a concurrency-bounded group, and
redraws the whole tree in place as it changes.

Features:
- Arbitrary nesting depth
- Sibling groups with a concurrency limit and build-order results
- Stop-on-first-error or collect-all-errors group policies
- Title, status, output, warning and error updates from inside a task
- Elapsed time per task
- Removing finished tasks from the display
- Hooks for observability
- Structured logging

Example usage:
    >>> import anyio
    >>> from livetree import task
    >>>
    >>> async def install(api):
    ...     api.set_status("resolving")
    ...     await anyio.sleep(1)
    ...     return 42
    >>>
    >>> async def main():
    ...     handle = await task("Install dependencies", install)
    ...     print(handle.result, handle.state)
    ...
    ...     await task.group(lambda task: [
    ...         task("Lint", lint),
    ...         task("Test", test),
    ...     ], concurrency=2)
    >>>
    >>> anyio.run(main)
"""

# Core classes
from .config import LiveTreeConfig
from .core import (
    InvalidStateTransition,
    LiveTreeError,
    TaskList,
    TaskNode,
    TaskState,
    are_all_tasks_done,
    snapshot,
)
from .api import TaskInnerAPI, resolve_output
from .executor import (
    RegisteredTask,
    TaskFunction,
    TaskGroupResults,
    TaskHandle,
    TaskRunner,
)
from .mapper import SKIP, bounded_map
from .tree import TaskTree, get_default_tree, set_default_tree, task

# Display
from .renderer import TreeRenderer
from .display import LiveDisplay

# Hooks and events
from .hooks import TASK_EVENTS, HookDispatcher, TaskHooks, create_logging_hooks

# Logging
from .logging_integration import (
    TaskLogger,
    StructuredFormatter,
    configure_livetree_logging,
)

# Timing utilities
from .timing import format_elapsed

__all__ = [
    # Core
    "LiveTreeConfig",
    "LiveTreeError",
    "InvalidStateTransition",
    "TaskState",
    "TaskNode",
    "TaskList",
    "are_all_tasks_done",
    "snapshot",
    "TaskInnerAPI",
    "resolve_output",
    "TaskFunction",
    "RegisteredTask",
    "TaskHandle",
    "TaskGroupResults",
    "TaskRunner",
    "TaskTree",
    "get_default_tree",
    "set_default_tree",
    "task",
    # Mapping
    "SKIP",
    "bounded_map",
    # Display
    "TreeRenderer",
    "LiveDisplay",
    # Hooks
    "HookDispatcher",
    "TaskHooks",
    "TASK_EVENTS",
    "create_logging_hooks",
    # Logging
    "TaskLogger",
    "StructuredFormatter",
    "configure_livetree_logging",
    # Timing
    "format_elapsed",
]

__version__ = "0.1.0"
