"""Tests for TaskTree and the display lifecycle."""

import pytest
import livetree
from livetree.config import LiveTreeConfig
from livetree.hooks import HookDispatcher
from livetree.logging_integration import TaskLogger
from livetree.tree import TaskTree, get_default_tree, set_default_tree


class RecordingDisplay:
    """Display double that records lifecycle calls."""

    def __init__(self, config):
        self.config = config
        self.events = []
        self.tasks = None

    def start(self, tasks):
        self.tasks = tasks
        self.events.append("start")

    def flush(self):
        self.events.append("flush")

    def stop(self):
        self.events.append("stop")


class DisplayFactory:
    def __init__(self):
        self.created = []

    def __call__(self, config):
        display = RecordingDisplay(config)
        self.created.append(display)
        return display


async def answer(api):
    return 42


@pytest.mark.anyio
class TestDisplayLifecycle:
    async def test_no_display_until_first_task(self):
        factory = DisplayFactory()
        tree = TaskTree(display_factory=factory)

        assert tree.is_attached is False
        assert factory.created == []

        await tree.task("first", answer)

        assert tree.is_attached is True
        assert len(factory.created) == 1
        assert factory.created[0].tasks is tree.root

    async def test_flushed_when_task_settles(self):
        factory = DisplayFactory()
        tree = TaskTree(display_factory=factory)

        await tree.task("first", answer)

        assert factory.created[0].events == ["start", "flush"]

    async def test_one_display_for_many_tasks(self):
        factory = DisplayFactory()
        tree = TaskTree(display_factory=factory)

        await tree.task("first", answer)
        await tree.task("second", answer)

        assert len(factory.created) == 1

    async def test_clearing_last_root_task_stops_display(self):
        factory = DisplayFactory()
        tree = TaskTree(display_factory=factory)

        handle = await tree.task("only", answer)
        handle.clear()

        assert tree.is_attached is False
        assert len(tree.root) == 0
        assert factory.created[0].events[-1] == "stop"

    async def test_clearing_one_of_many_keeps_display(self):
        factory = DisplayFactory()
        tree = TaskTree(display_factory=factory)

        first = await tree.task("first", answer)
        await tree.task("second", answer)
        first.clear()

        assert tree.is_attached is True

    async def test_next_task_recreates_display(self):
        factory = DisplayFactory()
        tree = TaskTree(display_factory=factory)

        handle = await tree.task("first", answer)
        handle.clear()
        await tree.task("again", answer)

        assert len(factory.created) == 2
        assert tree.is_attached is True
        assert factory.created[1].events == ["start", "flush"]

    async def test_clearing_nested_task_keeps_display(self):
        factory = DisplayFactory()
        tree = TaskTree(display_factory=factory)

        async def parent(api):
            child = await api.task("child", answer)
            child.clear()

        await tree.task("parent", parent)

        assert tree.is_attached is True
        assert "stop" not in factory.created[0].events

    async def test_group_clear_stops_display(self):
        factory = DisplayFactory()
        tree = TaskTree(display_factory=factory)

        results = await tree.task.group(lambda task: [task("a", answer), task("b", answer)])
        results.clear()

        assert tree.is_attached is False

    async def test_failing_group_build_stops_display(self):
        factory = DisplayFactory()
        tree = TaskTree(display_factory=factory)

        def build(task):
            task("a", answer)
            raise RuntimeError("build failed")

        with pytest.raises(RuntimeError):
            await tree.task.group(build)

        assert tree.is_attached is False
        assert factory.created[0].events[-1] == "stop"

    async def test_display_disabled(self):
        tree = TaskTree(LiveTreeConfig(enable_display=False))

        await tree.task("first", answer)

        assert tree.is_attached is False
        assert tree.display_factory is None

    async def test_attach_and_detach_hooks(self):
        events = []
        hooks = HookDispatcher()
        hooks.on("on_display_attach", lambda tree: events.append("attach"))
        hooks.on("on_display_detach", lambda tree: events.append("detach"))
        tree = TaskTree(hooks=hooks, display_factory=DisplayFactory())

        handle = await tree.task("first", answer)
        handle.clear()

        assert events == ["attach", "detach"]


@pytest.mark.anyio
class TestTaskTree:
    async def test_task_hooks(self):
        events = []
        hooks = HookDispatcher()
        for name in ("on_task_added", "on_task_start", "on_task_complete", "on_task_removed"):
            hooks.on(name, lambda node, name=name: events.append((name, node.title)))
        hooks.on("on_task_error", lambda node, err: events.append(("on_task_error", str(err))))
        tree = TaskTree(LiveTreeConfig(enable_display=False), hooks=hooks)

        handle = await tree.task("ok", answer)
        handle.clear()

        async def failing(api):
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            await tree.task("bad", failing)

        assert events == [
            ("on_task_added", "ok"),
            ("on_task_start", "ok"),
            ("on_task_complete", "ok"),
            ("on_task_removed", "ok"),
            ("on_task_added", "bad"),
            ("on_task_start", "bad"),
            ("on_task_error", "nope"),
        ]

    async def test_get_stats(self):
        tree = TaskTree(LiveTreeConfig(enable_display=False))

        async def parent(api):
            await api.task("child", answer)
            api.set_warning()

        await tree.task("parent", parent)

        stats = tree.get_stats()
        assert stats["total"] == 2
        assert stats["success"] == 1
        assert stats["warning"] == 1

    async def test_enable_logging_registers_logger(self):
        tree = TaskTree(LiveTreeConfig(enable_display=False, enable_logging=True))

        assert any(isinstance(h, TaskLogger) for h in tree.hooks.handlers)

    def test_repr(self):
        tree = TaskTree(LiveTreeConfig(enable_display=False))
        assert "TaskTree" in repr(tree)


@pytest.mark.anyio
class TestDefaultTree:
    @pytest.fixture(autouse=True)
    def isolated_default_tree(self):
        set_default_tree(TaskTree(LiveTreeConfig(enable_display=False)))
        yield
        set_default_tree(None)

    async def test_module_task(self):
        handle = await livetree.task("build", answer)

        assert handle.result == 42
        assert get_default_tree().root[0] is handle.node

    async def test_module_group(self):
        results = await livetree.task.group(
            lambda task: [task("a", answer), task("b", answer)],
            concurrency=2,
        )

        assert [r.result for r in results] == [42, 42]

    async def test_default_tree_created_lazily(self):
        set_default_tree(None)
        tree = get_default_tree()

        assert isinstance(tree, TaskTree)
        assert get_default_tree() is tree
