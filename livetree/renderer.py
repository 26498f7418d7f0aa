"""Task list rendering for terminal display."""

from typing import Optional

from .config import LiveTreeConfig
from .core import TaskList, TaskNode, TaskState
from .timing import format_elapsed


# Root tasks are reordered by this priority only when some must be hidden
_STATE_PRIORITY = {
    TaskState.LOADING: 0,
    TaskState.PENDING: 1,
}


class TreeRenderer:
    """Renders task lists to formatted strings.

    Example:
        >>> renderer = TreeRenderer(LiveTreeConfig())
        >>> print(renderer.render(tree.root))
        ❯ Deploy [2/3]
          ✔ Build
          ❯ Upload
            → 12 files left
          ◼ Notify
    """

    def __init__(self, config: Optional[LiveTreeConfig] = None):
        """Initialize the renderer.

        Args:
            config: Configuration for icons and indentation.
        """
        self.config = config or LiveTreeConfig()

    def render(self, tasks: TaskList, max_visible: Optional[int] = None) -> str:
        """Render a task list to a string.

        Args:
            tasks: The task list to render.
            max_visible: Maximum number of lines. Tasks that do not fit are
                summarised on a final line. None for unlimited.

        Returns:
            Formatted string, one line per row, without a trailing newline.
        """
        blocks = [self._render_block(node) for node in tasks]
        total = sum(len(block) for block in blocks)

        if max_visible is None or total <= max_visible:
            return "\n".join(line for block in blocks for line in block)

        return "\n".join(self._render_truncated(list(tasks), max(1, max_visible)))

    def _render_truncated(self, tasks: list[TaskNode], max_lines: int) -> list[str]:
        """Render the most relevant root tasks that fit in `max_lines`.

        Args:
            tasks: Root tasks in insertion order.
            max_lines: Line budget, including the summary line.

        Returns:
            Rendered lines.
        """
        ordered = sorted(tasks, key=lambda node: _STATE_PRIORITY.get(node.state, 2))

        lines: list[str] = []
        shown = 0
        for i, node in enumerate(ordered):
            block = self._render_block(node)
            reserved = 1 if i < len(ordered) - 1 else 0
            # Always show at least one task
            if len(lines) + len(block) + reserved > max_lines and shown > 0:
                break
            lines.extend(block)
            shown += 1

        hidden = ordered[shown:]
        if hidden:
            lines.append(self._format_hidden(hidden))
        return lines

    def _format_hidden(self, hidden: list[TaskNode]) -> str:
        """Summarise tasks left out of the display."""
        loading = sum(1 for node in hidden if node.state == TaskState.LOADING)
        pending = sum(1 for node in hidden if node.state == TaskState.PENDING)
        completed = len(hidden) - loading - pending

        parts = []
        if loading:
            parts.append(f"{loading} loading")
        if pending:
            parts.append(f"{pending} queued")
        if completed:
            parts.append(f"{completed} completed")
        return f"(+ {', '.join(parts)})"

    def _render_block(self, node: TaskNode, depth: int = 0) -> list[str]:
        """Render a node, its output and its children.

        Args:
            node: The node to render.
            depth: Current depth in the tree.

        Returns:
            The node's lines.
        """
        indent = self.config.indent * depth
        lines = [f"{indent}{self.render_node_line(node)}"]

        if self.config.show_output and node.output:
            output_indent = indent + self.config.indent
            for i, output_line in enumerate(node.output.split("\n")):
                prefix = self.config.output_prefix if i == 0 else ""
                lines.append(f"{output_indent}{prefix}{output_line}")

        for child in node.children:
            lines.extend(self._render_block(child, depth + 1))

        return lines

    def render_node_line(self, node: TaskNode) -> str:
        """Render a single node without indentation or children.

        Args:
            node: The node to render.

        Returns:
            Single line representation.
        """
        line = f"{self._get_state_icon(node)} {node.title}"
        if node.status:
            line += f" [{node.status}]"
        if node.show_time:
            elapsed = node.elapsed
            if elapsed is not None and elapsed >= 1:
                line += f" {format_elapsed(elapsed)}"
        return line

    def _get_state_icon(self, node: TaskNode) -> str:
        return self.config.icons.get(node.state, "?")
