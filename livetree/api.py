"""API handed to a running task function."""

from typing import TYPE_CHECKING, Optional, Union

from .core import TaskNode, TaskState

if TYPE_CHECKING:
    from .executor import TaskRunner


# A task's output is either plain text or an exception whose message is shown.
Output = Union[str, BaseException]


def resolve_output(output: Output) -> str:
    """Resolve an output value to the text stored on a node.

    Args:
        output: A string, or an exception whose message is used.

    Returns:
        The text to display; empty for any other value.
    """
    if isinstance(output, str):
        return output
    if isinstance(output, BaseException):
        return str(output)
    return ""


class TaskInnerAPI:
    """Controls for the task whose function is currently running.

    Every setter updates the node in place and notifies the tree's
    observers. `set_warning` and `set_error` only change what is
    displayed; to fail a task, raise from its function.

    Example:
        >>> async def deploy(api):
        ...     api.set_status("uploading")
        ...     await api.task("upload assets", upload)
        ...     if low_disk():
        ...         api.set_warning("disk low")
    """

    def __init__(self, node: TaskNode, runner: "TaskRunner"):
        self.node = node
        self.task = runner

    def set_title(self, title: str) -> None:
        self.node.title = title
        self.node.notify()

    def set_status(self, status: Optional[str]) -> None:
        self.node.status = status
        self.node.notify()

    def set_output(self, output: Output) -> None:
        self.node.output = resolve_output(output)
        self.node.notify()

    def set_warning(self, output: Optional[Output] = None) -> None:
        """Flag the task as finished with a warning.

        Args:
            output: Optional message stored as the task's output.
        """
        self._flag(TaskState.WARNING, output)

    def set_error(self, output: Optional[Output] = None) -> None:
        """Flag the task as failed without raising.

        Args:
            output: Optional message stored as the task's output.
        """
        self._flag(TaskState.ERROR, output)

    def _flag(self, state: str, output: Optional[Output]) -> None:
        self.node.transition(state)
        if output is not None:
            self.node.output = resolve_output(output)
        self.node.notify()

    def __repr__(self) -> str:
        return f"TaskInnerAPI(node={self.node!r})"
