"""
flake8 plugin reporting API drift.

Registered through the ``flake8.extension`` entry point under the ``APD``
prefix. For every checked file inside the configured source root, the class
the file declares is extracted with the syntax source and compared against
the baseline.

Codes:
    APD001  baseline file missing
    APD002  baseline file is not valid JSON
    APD100  new method
    APD200  changed method
    APD300  removed method

Options (command line or the [flake8] config section):
    --apidrift-baseline PATH     baseline JSON file
    --apidrift-root DIR          source root the baseline was captured from
    --apidrift-ignore-removed    do not report removed methods
    --apidrift-all-new           report every method of unknown classes
    --apidrift-suggest           append advice to each message
"""

import logging
from pathlib import Path
from typing import Any, Iterator, Optional

from apidrift import __version__
from apidrift.adapters.messages import (
    ISSUE_CODES,
    ReportingAdapter,
    format_finding,
    suggestion_for,
)
from apidrift.drift import DEFAULT_POLICY, DriftEngine, DriftPolicy, UnknownClassPolicy
from apidrift.exceptions import BaselineCorruptError, BaselineNotFoundError, ClassResolutionError
from apidrift.extractor import SyntaxSource, scan_file
from apidrift.models import ClassDrift, DriftFinding
from apidrift.storage import DEFAULT_BASELINE_PATH, BaselineStore

logger = logging.getLogger(__name__)

Flake8Result = tuple[int, int, str]


class Flake8Adapter(ReportingAdapter[Flake8Result]):
    """Renders findings as flake8 (line, column, "CODE message") triples."""

    def __init__(self, suggest: bool = False) -> None:
        self.suggest = suggest

    def render_finding(self, drift: ClassDrift, finding: DriftFinding) -> Flake8Result:
        suggestion = suggestion_for(drift, finding) if self.suggest else ""
        message = format_finding(drift.class_name, finding, suggestion)
        return drift.line_of(finding.method_name), 0, f"{ISSUE_CODES[finding.kind]} {message}"


class ApiDriftChecker:
    """
    flake8 AST plugin.

    flake8 calls parse_options once per run; that is where the baseline
    store is built. Every checker instance of the run shares that store, so
    the baseline is read at most once.

    The store, root and policy are class attributes: parse_options is a
    classmethod and flake8 builds one checker per file, so class state is the
    only place plugin-wide configuration can live. Everything else in the
    package receives its BaselineStore explicitly; tests rebind it with
    configure().
    """

    name = "apidrift"
    version = __version__

    store: Optional[BaselineStore] = None
    root: Path = Path("app")
    policy: DriftPolicy = DEFAULT_POLICY
    suggest: bool = False

    def __init__(self, tree: Any, filename: str) -> None:
        self.tree = tree
        self.filename = filename

    @classmethod
    def add_options(cls, option_manager: Any) -> None:
        option_manager.add_option(
            "--apidrift-baseline",
            default=DEFAULT_BASELINE_PATH,
            parse_from_config=True,
            help="Baseline JSON file to compare against (default: %(default)s)",
        )
        option_manager.add_option(
            "--apidrift-root",
            default="app",
            parse_from_config=True,
            help="Source root the baseline was captured from (default: %(default)s)",
        )
        option_manager.add_option(
            "--apidrift-ignore-removed",
            action="store_true",
            default=False,
            parse_from_config=True,
            help="Do not report methods that no longer exist",
        )
        option_manager.add_option(
            "--apidrift-all-new",
            action="store_true",
            default=False,
            parse_from_config=True,
            help="Report every method of a class missing from the baseline",
        )
        option_manager.add_option(
            "--apidrift-suggest",
            action="store_true",
            default=False,
            parse_from_config=True,
            help="Append advice on how to handle each finding",
        )

    @classmethod
    def parse_options(cls, options: Any) -> None:
        policy = DriftPolicy(
            report_removed=not options.apidrift_ignore_removed,
            unknown_class=(
                UnknownClassPolicy.ALL_NEW if options.apidrift_all_new else UnknownClassPolicy.IGNORE
            ),
        )
        cls.configure(
            BaselineStore(options.apidrift_baseline),
            Path(options.apidrift_root),
            policy,
            suggest=options.apidrift_suggest,
        )

    @classmethod
    def configure(
        cls,
        store: Optional[BaselineStore],
        root: Path,
        policy: DriftPolicy = DEFAULT_POLICY,
        suggest: bool = False,
    ) -> None:
        """Bind the checker to a baseline store and source root."""
        cls.store = store
        cls.root = root
        cls.policy = policy
        cls.suggest = suggest

    def run(self) -> Iterator[tuple[int, int, str, type]]:
        if self.store is None:
            return

        try:
            current = scan_file(Path(self.filename), self.root, SyntaxSource())
        except ClassResolutionError as e:
            logger.debug("Not checking %s: %s", self.filename, e)
            return

        try:
            snapshot = self.store.snapshot()
        except BaselineNotFoundError as e:
            yield 1, 0, f"APD001 {e}; run 'apidrift capture' first", type(self)
            return
        except BaselineCorruptError as e:
            yield 1, 0, f"APD002 {e}", type(self)
            return

        drift = DriftEngine(snapshot, self.policy).check(current, self.filename)
        for line, col, message in Flake8Adapter(self.suggest).render(drift):
            yield line, col, message, type(self)
