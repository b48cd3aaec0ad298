"""
Output - Console output formatting for the CLI.

Provides colored status lines, tables and hierarchy trees.
"""

import json
import sys
from collections.abc import Sequence
from typing import Any

from tracktree.core.domain import HierarchyNode, NodeKind, TimeEntry, User


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"


class Symbols:
    """Unicode symbols for terminal output."""

    CHECK = "✓"
    CROSS = "✗"
    ARROW = "→"
    DOT = "•"
    WARN = "⚠"
    INFO = "ℹ"

    # Tree drawing
    TREE_BRANCH = "├── "
    TREE_LAST = "└── "
    TREE_PIPE = "│   "
    TREE_SPACE = "    "


KIND_COLORS = {
    NodeKind.SPACE: Colors.MAGENTA,
    NodeKind.FOLDER: Colors.BLUE,
    NodeKind.LIST: Colors.CYAN,
    NodeKind.TASK: "",
    NodeKind.SUBTASK: Colors.DIM,
}


class Console:
    """
    Console output helper with colors and formatting.

    Attributes:
        color: Whether to use ANSI color codes.
        verbose: Whether to print debug messages.
        json_mode: Whether results are printed as JSON.
    """

    def __init__(self, color: bool = True, verbose: bool = False, json_mode: bool = False):
        """
        Args:
            color: Enable colored output. Disabled when stdout is not a TTY.
            verbose: Enable verbose debug output.
            json_mode: Print results as JSON and suppress status lines.
        """
        self.json_mode = json_mode
        self.color = color and sys.stdout.isatty() and not json_mode
        self.verbose = verbose and not json_mode

    def _c(self, text: str, *codes: str) -> str:
        codes = tuple(code for code in codes if code)
        if not self.color or not codes:
            return text
        return "".join(codes) + text + Colors.RESET

    def print(self, text: str = "") -> None:
        print(text)

    def section(self, text: str) -> None:
        if self.json_mode:
            return
        self.print()
        self.print(self._c(f"{Symbols.ARROW} {text}", Colors.BOLD, Colors.BLUE))

    def success(self, text: str) -> None:
        if self.json_mode:
            return
        self.print(self._c(f"  {Symbols.CHECK} {text}", Colors.GREEN))

    def error(self, text: str) -> None:
        """Print an error to stderr. Always printed."""
        print(self._c(f"  {Symbols.CROSS} {text}", Colors.RED), file=sys.stderr)

    def warning(self, text: str) -> None:
        if self.json_mode:
            return
        self.print(self._c(f"  {Symbols.WARN} {text}", Colors.YELLOW))

    def info(self, text: str) -> None:
        if self.json_mode:
            return
        self.print(self._c(f"  {Symbols.INFO} {text}", Colors.CYAN))

    def config_errors(self, errors: Sequence[str]) -> None:
        self.error("Configuration is incomplete:")
        for error in errors:
            print(f"    {Symbols.DOT} {error}", file=sys.stderr)
        print(
            "    Set CLICKUP_ACCESS_TOKEN and CLICKUP_TEAM_ID, or pass --config PATH",
            file=sys.stderr,
        )

    def json(self, data: Any) -> None:
        self.print(json.dumps(data, indent=2, default=str))

    def table(self, headers: list[str], rows: list[list[str]]) -> None:
        """Print a table with column widths fitted to the content."""
        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                if i < len(widths):
                    widths[i] = max(widths[i], len(str(cell)))

        self.print("  " + "  ".join(self._c(h.ljust(widths[i]), Colors.BOLD) for i, h in enumerate(headers)))
        self.print("  " + "  ".join("-" * w for w in widths))
        for row in rows:
            self.print("  " + "  ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(row)))

    # -------------------------------------------------------------------------
    # Domain Output
    # -------------------------------------------------------------------------

    def tree(self, nodes: Sequence[HierarchyNode]) -> None:
        """Print a forest with box-drawing guides."""
        if self.json_mode:
            self.json([node.to_dict() for node in nodes])
            return
        for line in render_tree(nodes, colorize=self._c):
            self.print(line)

    def colors(self, colors: dict[str, str | None]) -> None:
        if self.json_mode:
            self.json(colors)
            return
        self.table(["Space", "Color"], [[space_id, color or "-"] for space_id, color in colors.items()])

    def users(self, users: Sequence[User]) -> None:
        if self.json_mode:
            self.json([{"id": u.id, "username": u.username, "email": u.email} for u in users])
            return
        self.table(["Id", "Username", "Email"], [[u.id, u.username, u.email or "-"] for u in users])

    def entries(self, entries: Sequence[TimeEntry]) -> None:
        if self.json_mode:
            self.json(
                [
                    {
                        "id": e.id,
                        "start": e.start.isoformat(),
                        "end": e.end.isoformat(),
                        "task_id": e.task_id,
                        "description": e.description,
                    }
                    for e in entries
                ]
            )
            return
        rows = [
            [
                e.start.strftime("%Y-%m-%d %H:%M"),
                _format_duration(e.duration.total_seconds()),
                e.task_name or e.task_id or "-",
                e.description,
            ]
            for e in entries
        ]
        self.table(["Start", "Duration", "Task", "Description"], rows)


def render_tree(
    nodes: Sequence[HierarchyNode],
    colorize: Any = None,
    prefix: str = "",
) -> list[str]:
    """Render a forest as indented lines, one node per line."""
    lines: list[str] = []
    for index, node in enumerate(nodes):
        last = index == len(nodes) - 1
        connector = Symbols.TREE_LAST if last else Symbols.TREE_BRANCH
        label = node.label or node.id
        if node.custom_id:
            label = f"{label} [{node.custom_id}]"
        if colorize is not None:
            label = colorize(label, KIND_COLORS[node.kind])
        lines.append(f"{prefix}{connector}{label}")
        if node.children:
            child_prefix = prefix + (Symbols.TREE_SPACE if last else Symbols.TREE_PIPE)
            lines.extend(render_tree(node.children, colorize, child_prefix))
    return lines


def _format_duration(seconds: float) -> str:
    minutes = int(max(0.0, seconds)) // 60
    return f"{minutes // 60}:{minutes % 60:02d}"
