"""Structured logging for task lifecycle events."""

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Optional, TextIO, TYPE_CHECKING

if TYPE_CHECKING:
    from .core import TaskNode
    from .tree import TaskTree


DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Long task output and error messages are cut to keep log lines readable
MAX_OUTPUT_LENGTH = 200
MAX_ERROR_LENGTH = 500


@dataclass
class TaskLogger:
    """Logs task lifecycle events through the standard logging module.

    A TaskHooks handler: register it on a tree's HookDispatcher, or set
    `LiveTreeConfig(enable_logging=True)` to have the tree do it. Every
    record carries the task's title and depth as `extra` fields, which
    StructuredFormatter appends to the message.

    Example:
        >>> tree = TaskTree()
        >>> tree.hooks.register(TaskLogger(logger_name="my_cli", level="DEBUG"))
        >>>
        >>> # INFO my_cli: Task started [task_title=Build depth=0]
        >>> # INFO my_cli: Task completed [task_title=Build depth=0 state=success elapsed=2.34]
    """

    logger_name: str = "livetree"
    level: str = "INFO"
    logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(logging.getLevelName(self.level.upper()))

    def _fields(self, node: "TaskNode", **kwargs: Any) -> dict[str, Any]:
        fields = {"task_title": node.title, "depth": node.get_depth()}
        fields.update(kwargs)
        return {k: v for k, v in fields.items() if v is not None}

    def _elapsed(self, node: "TaskNode") -> Optional[float]:
        elapsed = node.elapsed
        return round(elapsed, 3) if elapsed is not None else None

    def on_task_added(self, node: "TaskNode") -> None:
        self.logger.debug("Task added", extra=self._fields(node))

    def on_task_start(self, node: "TaskNode") -> None:
        self.logger.info("Task started", extra=self._fields(node))

    def on_task_complete(self, node: "TaskNode") -> None:
        """Log the end of a task; WARNING when it was flagged, INFO otherwise."""
        extra = self._fields(
            node,
            state=node.state,
            elapsed=self._elapsed(node),
            output=node.output[:MAX_OUTPUT_LENGTH] if node.output else None,
        )
        log_level = logging.INFO if node.state == "success" else logging.WARNING
        self.logger.log(log_level, "Task completed", extra=extra)

    def on_task_error(self, node: "TaskNode", error: Exception) -> None:
        """Log a failed task with the exception's traceback."""
        self.logger.error(
            f"Task failed: {type(error).__name__}",
            extra=self._fields(
                node,
                error_type=type(error).__name__,
                error_message=str(error)[:MAX_ERROR_LENGTH],
                elapsed=self._elapsed(node),
            ),
            exc_info=error,
        )

    def on_task_removed(self, node: "TaskNode") -> None:
        self.logger.debug("Task removed", extra=self._fields(node, state=node.state))

    def on_display_attach(self, tree: "TaskTree") -> None:
        self.logger.debug("Display attached")

    def on_display_detach(self, tree: "TaskTree") -> None:
        self.logger.debug("Display detached")


class StructuredFormatter(logging.Formatter):
    """Formatter appending a record's extra fields as `key=value` pairs.

    Values containing spaces or quotes are double-quoted.

    Example output:
        2024-01-15 10:30:45 INFO livetree: Task failed: ValueError [task_title=Build depth=0 error_message="bad config"]
    """

    # Attributes every LogRecord has; anything else came from `extra`
    RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
        "message",
        "asctime",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        pairs = [
            f"{key}={self._quote(value)}"
            for key, value in record.__dict__.items()
            if key not in self.RECORD_ATTRS and not key.startswith("_")
        ]
        if not pairs:
            return message

        # Keep the fields on the first line when a traceback follows
        first, sep, rest = message.partition("\n")
        return f"{first} [{' '.join(pairs)}]{sep}{rest}"

    @staticmethod
    def _quote(value: Any) -> str:
        text = str(value)
        if " " in text or '"' in text or not text:
            return '"' + text.replace('"', '\\"') + '"'
        return text


def configure_livetree_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    structured: bool = True,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Send the "livetree" logger's records to a stream.

    Replaces any handlers previously installed on the logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format_string: Custom format string. Disables structured fields.
        structured: Whether to append extra fields to each message.
        stream: Destination. Defaults to sys.stderr.

    Returns:
        The configured logger.
    """
    numeric_level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(numeric_level)
    if format_string:
        handler.setFormatter(logging.Formatter(format_string))
    elif structured:
        handler.setFormatter(StructuredFormatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT))
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT))

    logger = logging.getLogger("livetree")
    logger.setLevel(numeric_level)
    logger.handlers.clear()
    logger.addHandler(handler)
    return logger
