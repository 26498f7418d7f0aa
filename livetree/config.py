"""Configuration for livetree."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class LiveTreeConfig:
    """Configuration for task tree execution and display.

    Attributes:
        icons: Status icons for each task state.
        indent: Indentation inserted per nesting level.
        output_prefix: Prefix for the first line of a task's output.
        refresh_interval: Minimum interval between display updates in seconds.
        max_visible: Maximum number of root lines shown during live updates
            (None = unlimited).
        show_output: Whether task output lines are rendered.
        enable_display: Whether a LiveDisplay is attached to the terminal.
        enable_logging: Whether to register a TaskLogger automatically.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        logger_name: Name for the logger.
    """

    # Display settings
    icons: dict[str, str] = field(
        default_factory=lambda: {
            "pending": "◼",
            "loading": "❯",
            "success": "✔",
            "warning": "⚠",
            "error": "✖",
        }
    )
    indent: str = "  "
    output_prefix: str = "→ "
    refresh_interval: float = 0.033
    max_visible: Optional[int] = None
    show_output: bool = True
    enable_display: bool = True

    # Logging settings
    enable_logging: bool = False
    log_level: str = "INFO"
    logger_name: str = "livetree"
