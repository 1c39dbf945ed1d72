"""
External Tool Runner for API Drift

Runs configured analysis processes (flake8 with the APD plugin, the apidrift
CLI itself, or any tool that prints drift messages) and keeps only the lines
that report drift.

Output Formats:
    json: a list of issue objects, a {file: [issues]} mapping, or a
          {"files": {file: {"messages": [issues]}}} document. Each issue's
          message is read from "message", "text" or "title".
    text: every output line is a candidate.

A candidate is kept when it contains one of DRIFT_MARKERS.

Design Decisions:
    - One tool failing (not found, timeout, unreadable output) is recorded
      on that tool's ToolRunResult; the remaining tools still run
    - Linters exit non-zero when they find issues, so exit codes listed in
      ExternalTool.ok_codes are not failures
"""

import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Sequence

from apidrift.adapters.messages import DRIFT_MARKERS
from apidrift.exceptions import ConfigError

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("json", "text")
DEFAULT_TIMEOUT = 300.0

_MESSAGE_KEYS = ("message", "text", "title")
_FILE_KEYS = ("file", "filename", "path", "file_name")
_LINE_KEYS = ("line", "line_number", "row", "line_from")


@dataclass(frozen=True)
class ExternalTool:
    """
    One external analysis process.

    Attributes:
        name: Display name
        command: Argument vector, run without a shell
        output_format: "json" or "text"
        ok_codes: Exit codes that mean the tool ran to completion
    """

    name: str
    command: tuple[str, ...]
    output_format: str = "text"
    ok_codes: tuple[int, ...] = (0, 1)

    @classmethod
    def from_config(cls, data: Any) -> "ExternalTool":
        """
        Build a tool from a ``[[tool.apidrift.tools]]`` entry.

        Raises:
            ConfigError: If the entry is malformed
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Tool entry must be a table, got {data!r}")

        name = data.get("name")
        command = data.get("command")
        output_format = data.get("format", "text")

        if not isinstance(name, str) or not name:
            raise ConfigError(f"Tool entry needs a name: {data!r}")
        if isinstance(command, str):
            command = command.split()
        if not isinstance(command, list) or not command or not all(
            isinstance(arg, str) for arg in command
        ):
            raise ConfigError(f"Tool '{name}' needs a non-empty command")
        if output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Tool '{name}' has unknown format {output_format!r}; "
                f"expected one of {', '.join(OUTPUT_FORMATS)}"
            )
        return cls(name=name, command=tuple(command), output_format=output_format)


@dataclass
class ToolRunResult:
    """
    Outcome of running one tool.

    Attributes:
        tool: Tool name
        drifts: Drift lines kept from the tool's output
        error: Why the run failed, or None
        exit_code: Process exit code, None if it never finished
    """

    tool: str
    drifts: list[str] = field(default_factory=list)
    error: Optional[str] = None
    exit_code: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def is_drift_message(text: str) -> bool:
    return any(marker in text for marker in DRIFT_MARKERS)


def _first(issue: dict, keys: Sequence[str]) -> Any:
    for key in keys:
        if issue.get(key) is not None:
            return issue[key]
    return None


def _iter_issues(data: Any, file_path: Optional[str] = None) -> Iterator[tuple[Optional[str], dict]]:
    if isinstance(data, list):
        for item in data:
            if isinstance(item, dict):
                yield file_path, item
        return
    if not isinstance(data, dict):
        return
    if isinstance(data.get("files"), dict):
        yield from _iter_issues(data["files"])
        return
    if isinstance(data.get("messages"), list):
        yield from _iter_issues(data["messages"], file_path)
        return
    for key, value in data.items():
        if isinstance(value, (list, dict)):
            yield from _iter_issues(value, str(key))


def _format_issue(file_path: Optional[str], issue: dict) -> Optional[str]:
    message = _first(issue, _MESSAGE_KEYS)
    if not isinstance(message, str) or not is_drift_message(message):
        return None

    file_path = _first(issue, _FILE_KEYS) or file_path
    line = _first(issue, _LINE_KEYS)
    if line is None and isinstance(issue.get("location"), dict):
        line = issue["location"].get("row")

    if not file_path:
        return message
    if line is None:
        return f"{file_path} - {message}"
    return f"{file_path}:{line} - {message}"


def filter_drifts(output: str, output_format: str = "text") -> list[str]:
    """
    Keep only the drift messages of a tool's output.

    Args:
        output: The tool's stdout
        output_format: "json" or "text"

    Returns:
        Drift lines in output order

    Raises:
        ValueError: If output_format is "json" and output is not valid JSON
    """
    if output_format == "json":
        if not output.strip():
            return []
        data = json.loads(output)
        drifts = []
        for file_path, issue in _iter_issues(data):
            line = _format_issue(file_path, issue)
            if line is not None:
                drifts.append(line)
        return drifts

    return [line.strip() for line in output.splitlines() if is_drift_message(line)]


def run_tool(
    tool: ExternalTool,
    cwd: Optional[Path] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> ToolRunResult:
    """
    Run one tool and filter its output.

    Never raises for tool failures; they are returned on the result.
    """
    logger.debug("Running %s: %s", tool.name, " ".join(tool.command))
    try:
        completed = subprocess.run(
            list(tool.command),
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        return _failed(tool, f"command not found: {tool.command[0]}")
    except subprocess.TimeoutExpired:
        return _failed(tool, f"timed out after {timeout:g}s")
    except OSError as e:
        return _failed(tool, str(e))

    if completed.returncode not in tool.ok_codes:
        detail = completed.stderr.strip() or completed.stdout.strip()
        return _failed(
            tool,
            f"exited with code {completed.returncode}" + (f": {detail}" if detail else ""),
            completed.returncode,
        )

    try:
        drifts = filter_drifts(completed.stdout, tool.output_format)
    except ValueError as e:
        return _failed(tool, f"output is not valid JSON: {e}", completed.returncode)

    return ToolRunResult(tool=tool.name, drifts=drifts, exit_code=completed.returncode)


def _failed(tool: ExternalTool, reason: str, exit_code: Optional[int] = None) -> ToolRunResult:
    logger.warning("Tool %s failed: %s", tool.name, reason)
    return ToolRunResult(tool=tool.name, error=reason, exit_code=exit_code)


def run_tools(
    tools: Iterable[ExternalTool],
    cwd: Optional[Path] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[ToolRunResult]:
    """Run every tool in order, one result per tool."""
    return [run_tool(tool, cwd, timeout) for tool in tools]
