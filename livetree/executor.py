"""Task registration, execution and group scheduling."""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Optional

from .api import TaskInnerAPI, resolve_output
from .core import LiveTreeError, TaskList, TaskNode, TaskState
from .mapper import SKIP, bounded_map, validate_concurrency

if TYPE_CHECKING:
    from .tree import TaskTree


# Type alias for task functions
TaskFunction = Callable[[TaskInnerAPI], Awaitable[Any]]


class RegisteredTask:
    """A task whose node is in the tree but whose function may not have run.

    Registration appends the node to its container immediately, in the
    `pending` state. `run` drives the node through its lifecycle; `clear`
    removes the node from the container at any time.
    """

    def __init__(
        self,
        tree: "TaskTree",
        container: TaskList,
        title: str,
        task_fn: TaskFunction,
        show_time: bool = False,
    ):
        self.tree = tree
        self.container = container
        self.task_fn = task_fn
        self.node = TaskNode(title=title, show_time=show_time)
        self._started = False
        self._running = False
        tree.add_node(container, self.node)

    @property
    def state(self) -> str:
        return self.node.state

    @property
    def is_running(self) -> bool:
        """True while the task function has started and not yet settled."""
        return self._running

    async def run(self) -> Any:
        """Run the task function and track its state on the node.

        Returns:
            The value returned by the task function.

        Raises:
            LiveTreeError: If this task was already run.
            Exception: Whatever the task function raised, unchanged.
        """
        if self._started:
            raise LiveTreeError(f"Task {self.node.title!r} has already been run")
        self._started = True

        node = self.node
        node.transition(TaskState.LOADING)
        node.notify()
        self.tree.hooks.emit("on_task_start", node)

        api = TaskInnerAPI(node, TaskRunner(self.tree, node.children, owner=self))

        self._running = True
        try:
            result = await self.task_fn(api)
        except Exception as e:
            self._running = False
            node.transition(TaskState.ERROR)
            node.output = resolve_output(e)
            node.settle()
            node.notify()
            self.tree.hooks.emit("on_task_error", node, e)
            self.tree.flush()
            raise
        self._running = False

        # set_warning/set_error during the run take precedence over success
        if node.state == TaskState.LOADING:
            node.transition(TaskState.SUCCESS)
        node.settle()
        node.notify()
        self.tree.hooks.emit("on_task_complete", node)
        self.tree.flush()

        return result

    def clear(self) -> None:
        """Remove this task's node from the tree."""
        self.tree.remove_node(self.container, self.node)

    def __repr__(self) -> str:
        return f"RegisteredTask(node={self.node!r})"


class TaskHandle:
    """Result of a finished task.

    Attributes:
        result: Value returned by the task function.
        node: The task's node.
    """

    def __init__(self, registered: RegisteredTask, result: Any):
        self.result = result
        self._registered = registered

    @property
    def node(self) -> TaskNode:
        return self._registered.node

    @property
    def state(self) -> str:
        """Current state of the task's node."""
        return self._registered.node.state

    def clear(self) -> None:
        """Remove the task's node from the tree."""
        self._registered.clear()

    def __repr__(self) -> str:
        return f"TaskHandle(result={self.result!r}, state={self.state!r})"


class TaskGroupResults(list):
    """Handles of a task group in build order, plus a group-wide `clear`."""

    def __init__(self, handles: Iterable[TaskHandle], registrations: list[RegisteredTask]):
        super().__init__(handles)
        self._registrations = registrations

    def clear(self) -> None:
        """Remove every task of the group from the tree."""
        for registered in self._registrations:
            registered.clear()


class TaskRunner:
    """Creates tasks in one container of a task tree.

    Calling the runner registers and runs a single task; `group` runs a
    batch of sibling tasks under a concurrency limit.

    Example:
        >>> tree = TaskTree()
        >>> handle = await tree.task("build", build_fn)
        >>> handle.result, handle.state
        (42, 'success')
        >>> results = await tree.task.group(
        ...     lambda task: [task("lint", lint_fn), task("test", test_fn)],
        ...     concurrency=2,
        ... )
    """

    def __init__(
        self,
        tree: "TaskTree",
        container: TaskList,
        owner: Optional[RegisteredTask] = None,
    ):
        """Initialize the runner.

        Args:
            tree: The tree the tasks belong to.
            container: The list new task nodes are appended to.
            owner: The running task whose children this runner creates, or
                None for the root.
        """
        self.tree = tree
        self.container = container
        self.owner = owner

    def register(
        self,
        title: str,
        task_fn: TaskFunction,
        *,
        show_time: bool = False,
    ) -> RegisteredTask:
        """Append a pending task without running it.

        Raises:
            LiveTreeError: If the owning task's function has already settled.
        """
        if self.owner is not None and not self.owner.is_running:
            raise LiveTreeError(
                f"Cannot add subtask {title!r}: "
                f"{self.owner.node.title!r} is not running"
            )
        return RegisteredTask(self.tree, self.container, title, task_fn, show_time)

    async def __call__(
        self,
        title: str,
        task_fn: TaskFunction,
        *,
        show_time: bool = False,
    ) -> TaskHandle:
        """Register a task and run it to completion.

        Args:
            title: Display title.
            task_fn: Async function receiving a TaskInnerAPI.
            show_time: Whether to display the elapsed time.

        Returns:
            Handle with the function's result.
        """
        registered = self.register(title, task_fn, show_time=show_time)
        result = await registered.run()
        return TaskHandle(registered, result)

    async def group(
        self,
        build: Callable[[Callable[..., RegisteredTask]], Iterable[RegisteredTask]],
        *,
        concurrency: Optional[int] = 1,
        stop_on_error: bool = True,
    ) -> TaskGroupResults:
        """Run a batch of sibling tasks.

        `build` receives a registrar with the same signature as the runner
        and returns the registrations to run. Every node is in the tree
        before the first task starts, so display order is build order
        whatever order the tasks finish in.

        If `build` raises or returns something invalid, the tasks it
        registered are removed from the tree before the error propagates.

        Args:
            build: Function returning the group's registrations.
            concurrency: Maximum tasks running at once. None for unbounded.
            stop_on_error: Stop starting tasks after the first failure and
                raise it. Otherwise run all tasks and raise an
                ExceptionGroup of every failure.

        Returns:
            Task handles in build order. Tasks whose function returned
            SKIP are left out.

        Raises:
            ValueError: If concurrency is invalid.
            TypeError: If build returns anything but registrations created
                by its registrar.
        """
        validate_concurrency(concurrency)

        registrations: list[RegisteredTask] = []
        building = True

        def registrar(
            title: str,
            task_fn: TaskFunction,
            *,
            show_time: bool = False,
        ) -> RegisteredTask:
            if not building:
                raise LiveTreeError("Group registrar used outside of its build function")
            registered = self.register(title, task_fn, show_time=show_time)
            registrations.append(registered)
            return registered

        def discard() -> None:
            for registered in registrations:
                registered.clear()

        try:
            queue = list(build(registrar))
        except Exception:
            discard()
            raise
        finally:
            building = False

        seen: set[int] = set()
        for item in queue:
            if not any(item is registered for registered in registrations) or id(item) in seen:
                discard()
                raise TypeError(
                    f"Group build must return distinct tasks created by its registrar, got {item!r}"
                )
            seen.add(id(item))

        async def run_one(registered: RegisteredTask, index: int) -> Any:
            result = await registered.run()
            if result is SKIP:
                return SKIP
            return TaskHandle(registered, result)

        handles = await bounded_map(
            queue,
            run_one,
            concurrency=concurrency,
            stop_on_error=stop_on_error,
        )
        return TaskGroupResults(handles, queue)

    def __repr__(self) -> str:
        return f"TaskRunner(container={self.container!r})"
