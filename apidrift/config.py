"""
Project configuration for API Drift.

Settings live in the ``[tool.apidrift]`` table of the project's
pyproject.toml:

    [tool.apidrift]
    path = "app"
    baseline = "storage/app/code_baseline.json"
    source = "syntax"            # or "reflection"
    report_removed = true
    unknown_class = "ignore"     # or "all_new"
    exclude = ["migrations/*"]

    [[tool.apidrift.tools]]
    name = "flake8"
    command = ["flake8", "--select", "APD", "app"]
    format = "text"

Precedence, lowest first: defaults, pyproject.toml, the APIDRIFT_BASELINE
environment variable (baseline path only), command line options.
"""

import logging
import os
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from apidrift.adapters.external import ExternalTool
from apidrift.drift import DriftPolicy, UnknownClassPolicy
from apidrift.exceptions import ConfigError
from apidrift.extractor import IntrospectionSource, create_source
from apidrift.storage import DEFAULT_BASELINE_PATH

logger = logging.getLogger(__name__)

BASELINE_ENV_VAR = "APIDRIFT_BASELINE"
PYPROJECT_FILE = "pyproject.toml"
SOURCE_NAMES = ("syntax", "reflection")

_KNOWN_KEYS = frozenset(
    {"path", "baseline", "source", "report_removed", "unknown_class", "exclude", "tools"}
)


@dataclass
class DriftConfig:
    """
    Resolved settings for one project.

    Attributes:
        project_root: Directory relative paths are resolved against
        path: Source root to capture and check
        baseline: Baseline JSON file
        source: Introspection source name
        report_removed: Report baseline methods that no longer exist
        unknown_class: Policy for classes missing from the baseline
        exclude: Glob patterns, relative to the source root, to skip
        tools: External tools for ``apidrift tools``; empty means the defaults
    """

    project_root: Path = field(default_factory=Path.cwd)
    path: str = "app"
    baseline: str = DEFAULT_BASELINE_PATH
    source: str = "syntax"
    report_removed: bool = True
    unknown_class: UnknownClassPolicy = UnknownClassPolicy.IGNORE
    exclude: list[str] = field(default_factory=list)
    tools: list[ExternalTool] = field(default_factory=list)

    @property
    def source_root(self) -> Path:
        return self.project_root / self.path

    @property
    def baseline_path(self) -> Path:
        return self.project_root / self.baseline

    @property
    def policy(self) -> DriftPolicy:
        return DriftPolicy(report_removed=self.report_removed, unknown_class=self.unknown_class)

    def create_source(self) -> IntrospectionSource:
        """Introspection source for this project; reflection imports from the project root."""
        return create_source(self.source, [self.source_root.parent])

    def external_tools(self) -> list[ExternalTool]:
        """Configured tools, or flake8 with the APD plugin plus ``apidrift check``."""
        if self.tools:
            return list(self.tools)
        return [
            ExternalTool(
                name="flake8",
                command=(
                    "flake8",
                    "--select",
                    "APD",
                    f"--apidrift-baseline={self.baseline}",
                    f"--apidrift-root={self.path}",
                    self.path,
                ),
                output_format="text",
            ),
            ExternalTool(
                name="apidrift",
                command=(
                    sys.executable,
                    "-m",
                    "apidrift_cli",
                    "check",
                    "--format",
                    "json",
                    "--path",
                    self.path,
                    "--baseline",
                    self.baseline,
                ),
                output_format="json",
            ),
        ]


def _expect(value: Any, kind: type, key: str) -> Any:
    if not isinstance(value, kind):
        raise ConfigError(f"[tool.apidrift] {key} must be a {kind.__name__}, got {value!r}")
    return value


def config_from_table(table: dict[str, Any], project_root: Path) -> DriftConfig:
    """
    Build a DriftConfig from a parsed ``[tool.apidrift]`` table.

    Raises:
        ConfigError: If a value has the wrong type or an unknown choice
    """
    config = DriftConfig(project_root=project_root)

    for key in sorted(set(table) - _KNOWN_KEYS):
        logger.warning("Ignoring unknown [tool.apidrift] key: %s", key)

    if "path" in table:
        config.path = _expect(table["path"], str, "path")
    if "baseline" in table:
        config.baseline = _expect(table["baseline"], str, "baseline")
    if "source" in table:
        config.source = _expect(table["source"], str, "source")
        if config.source not in SOURCE_NAMES:
            raise ConfigError(
                f"[tool.apidrift] source must be one of {', '.join(SOURCE_NAMES)}, "
                f"got {config.source!r}"
            )
    if "report_removed" in table:
        config.report_removed = _expect(table["report_removed"], bool, "report_removed")
    if "unknown_class" in table:
        value = _expect(table["unknown_class"], str, "unknown_class")
        try:
            config.unknown_class = UnknownClassPolicy(value)
        except ValueError:
            choices = ", ".join(policy.value for policy in UnknownClassPolicy)
            raise ConfigError(
                f"[tool.apidrift] unknown_class must be one of {choices}, got {value!r}"
            ) from None
    if "exclude" in table:
        patterns = _expect(table["exclude"], list, "exclude")
        config.exclude = [_expect(pattern, str, "exclude") for pattern in patterns]
    if "tools" in table:
        entries = _expect(table["tools"], list, "tools")
        config.tools = [ExternalTool.from_config(entry) for entry in entries]

    return config


def load_config(
    project_root: Optional[Path] = None,
    pyproject: Optional[Path] = None,
) -> DriftConfig:
    """
    Load the configuration of a project.

    Args:
        project_root: Project directory (default: current directory)
        pyproject: Explicit pyproject.toml (default: PYPROJECT_FILE in the root)

    Returns:
        The resolved DriftConfig; defaults when there is no pyproject.toml or
        it has no ``[tool.apidrift]`` table

    Raises:
        ConfigError: If pyproject.toml is not valid TOML or a value is invalid
    """
    project_root = Path(project_root) if project_root is not None else Path.cwd()
    pyproject = pyproject if pyproject is not None else project_root / PYPROJECT_FILE

    table: dict[str, Any] = {}
    if pyproject.is_file():
        try:
            with pyproject.open("rb") as handle:
                document = tomllib.load(handle)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"{pyproject} is not valid TOML: {e}") from e
        table = document.get("tool", {}).get("apidrift", {})
        table = _expect(table, dict, "table")

    config = config_from_table(table, project_root)

    env_baseline = os.environ.get(BASELINE_ENV_VAR)
    if env_baseline:
        logger.debug("Baseline path from %s: %s", BASELINE_ENV_VAR, env_baseline)
        config.baseline = env_baseline

    return config
