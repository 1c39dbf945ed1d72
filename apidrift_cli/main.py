"""
API Drift CLI

Command-line interface for capturing class API baselines and reporting
drift against them.

Commands:
    apidrift capture            Capture every class under the source root
    apidrift check              Report new, changed and removed methods
    apidrift explain <class>    Compare one class with its baseline entry
    apidrift tools              Run external analysers and keep drift lines

Exit Codes:
    0   no drift
    1   drift found
    2   baseline missing or corrupt, invalid configuration, failed tool run
    130 capture interrupted; the previous baseline is left unchanged

Usage:
    $ apidrift capture --path app
    $ apidrift check --format json
    $ apidrift check --suggest
    $ apidrift explain app.models.user.User
"""

import contextlib
import json
import logging
import signal
import threading
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from apidrift import __version__
from apidrift.adapters import (
    JsonAdapter,
    MessageAdapter,
    format_finding,
    run_tools,
    suggestion_for,
)
from apidrift.config import DriftConfig, load_config
from apidrift.drift import DriftEngine
from apidrift.exceptions import (
    BaselineCorruptError,
    BaselineNotFoundError,
    CaptureCancelledError,
    ClassResolutionError,
    ConfigError,
)
from apidrift.extractor import capture_tree, iter_source_files, scan_file
from apidrift.graph import ClassHierarchy
from apidrift.models import (
    BaselineSnapshot,
    CaptureResult,
    ClassSignature,
    DriftReport,
    FindingKind,
    MethodSignature,
)
from apidrift.storage import BaselineStore

logger = logging.getLogger(__name__)

# Initialize Typer app and Rich consoles
app = typer.Typer(
    name="apidrift",
    help="API Drift: detect changes to the public surface of Python classes",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

EXIT_DRIFT = 1
EXIT_ERROR = 2
EXIT_INTERRUPTED = 130


class SourceName(str, Enum):
    SYNTAX = "syntax"
    REFLECTION = "reflection"


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"apidrift {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """
    Capture class API baselines and report drift against them.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(message: str, code: int = EXIT_ERROR) -> typer.Exit:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    return typer.Exit(code)


def _resolve_config(
    path: Optional[Path],
    baseline: Optional[Path],
    source: Optional[SourceName],
    removed: Optional[bool] = None,
) -> DriftConfig:
    """Load [tool.apidrift] from the current directory and apply command line overrides."""
    try:
        config = load_config()
    except ConfigError as e:
        raise _fail(str(e))

    if path is not None:
        config.path = str(path)
    if baseline is not None:
        config.baseline = str(baseline)
    if source is not None:
        config.source = source.value
    if removed is not None:
        config.report_removed = removed
    return config


def _load_snapshot(store: BaselineStore) -> BaselineSnapshot:
    try:
        return store.snapshot()
    except BaselineNotFoundError as e:
        err_console.print(
            f"[yellow]{escape(str(e))}.[/yellow] Run [bold]apidrift capture[/bold] first."
        )
        raise typer.Exit(EXIT_ERROR)
    except BaselineCorruptError as e:
        raise _fail(str(e))


def _scan_current(config: DriftConfig) -> tuple[list[ClassSignature], dict[str, str]]:
    """Extract the current signature of every class under the source root."""
    root = config.source_root
    if not root.is_dir():
        raise _fail(f"Source root not found: {root}")

    source = config.create_source()
    classes: list[ClassSignature] = []
    file_paths: dict[str, str] = {}

    for file_path in iter_source_files(root, exclude_patterns=config.exclude):
        try:
            signature = scan_file(file_path, root, source)
        except ClassResolutionError as e:
            logger.info("Skipping %s: %s", file_path, e)
            continue
        classes.append(signature)
        file_paths[signature.name] = str(file_path)

    return classes, file_paths


@contextlib.contextmanager
def _cancel_on_interrupt(cancel: threading.Event) -> Iterator[None]:
    """Turn Ctrl-C into a cancellation request checked between files."""
    try:
        previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    except ValueError:
        # Not the main thread; KeyboardInterrupt still applies
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


@app.command()
def capture(
    path: Optional[Path] = typer.Option(
        None,
        "--path",
        "-p",
        help="Source root to capture (default: app)",
    ),
    baseline: Optional[Path] = typer.Option(
        None,
        "--baseline",
        "-b",
        help="Baseline file to write (default: storage/app/code_baseline.json)",
    ),
    source: Optional[SourceName] = typer.Option(
        None,
        "--source",
        "-s",
        help="Introspection source (default: syntax)",
    ),
) -> None:
    """
    Capture a baseline of every class under the source root.

    This command:
    1. Recursively finds all .py files under the source root
    2. Identifies the class each file declares
    3. Extracts its methods, properties and bases
    4. Replaces the baseline file with the new snapshot
    """
    config = _resolve_config(path, baseline, source)
    root = config.source_root
    if not root.is_dir():
        raise _fail(f"Source root not found: {root}")

    console.print(f"\n[bold blue]Capturing:[/bold blue] {escape(str(root))}\n")

    cancel = threading.Event()
    try:
        with _cancel_on_interrupt(cancel), Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Extracting class signatures...", total=None)
            result = capture_tree(
                root,
                config.create_source(),
                exclude_patterns=config.exclude,
                cancel=cancel,
            )

            progress.update(task, description="Writing baseline...")
            written = BaselineStore(config.baseline_path).replace(result.snapshot)

            progress.update(task, description="Done!")
    except (CaptureCancelledError, KeyboardInterrupt):
        err_console.print("[yellow]Capture interrupted; the baseline was not changed.[/yellow]")
        raise typer.Exit(EXIT_INTERRUPTED)

    console.print()
    _print_capture_summary(result, written)
    console.print(f"Baseline saved to {escape(str(written))}", soft_wrap=True)

    if result.duplicates:
        console.print(
            f"\n[yellow]{len(result.duplicates)} class name(s) declared more than once; "
            f"the last declaration was kept:[/yellow]"
        )
        for name in result.duplicates[:5]:
            console.print(f"   • {escape(name)}", soft_wrap=True)

    if result.skipped:
        console.print(f"\n[yellow]{result.skip_count} file(s) were skipped:[/yellow]")
        for file_path, reason in result.skipped[:5]:
            console.print(f"   • {escape(file_path)}: {escape(reason)}", soft_wrap=True)
        if result.skip_count > 5:
            console.print(f"   ... and {result.skip_count - 5} more")


@app.command()
def check(
    path: Optional[Path] = typer.Option(
        None,
        "--path",
        "-p",
        help="Source root to check (default: app)",
    ),
    baseline: Optional[Path] = typer.Option(
        None,
        "--baseline",
        "-b",
        help="Baseline file to compare against",
    ),
    source: Optional[SourceName] = typer.Option(
        None,
        "--source",
        "-s",
        help="Introspection source (default: syntax)",
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.TEXT,
        "--format",
        "-f",
        help="Output format",
    ),
    removed: Optional[bool] = typer.Option(
        None,
        "--removed/--no-removed",
        help="Report methods that no longer exist (default: on)",
    ),
    suggest: bool = typer.Option(
        False,
        "--suggest",
        help="Show advice on how to handle each finding",
    ),
) -> None:
    """
    Report methods that are new, changed or removed since the baseline.

    Exits with 1 when drift is found.
    """
    config = _resolve_config(path, baseline, source, removed)
    snapshot = _load_snapshot(BaselineStore(config.baseline_path))

    classes, file_paths = _scan_current(config)
    report = DriftEngine(snapshot, config.policy).check_all(classes, file_paths)

    drifted = [drift.class_name for drift in report.drifts if drift.known]
    hierarchy = ClassHierarchy.from_snapshot(snapshot)
    affected = sorted(hierarchy.get_affected_by_change(drifted) - set(drifted))

    if output_format is OutputFormat.JSON:
        _print_json_report(report, affected)
    else:
        _print_text_report(report, affected, suggest)

    if report.has_drift:
        raise typer.Exit(EXIT_DRIFT)


@app.command()
def explain(
    class_name: str = typer.Argument(
        ...,
        help="Class to explain (e.g., app.models.user.User or User)",
    ),
    path: Optional[Path] = typer.Option(
        None,
        "--path",
        "-p",
        help="Source root (default: app)",
    ),
    baseline: Optional[Path] = typer.Option(
        None,
        "--baseline",
        "-b",
        help="Baseline file to compare against",
    ),
    source: Optional[SourceName] = typer.Option(
        None,
        "--source",
        "-s",
        help="Introspection source (default: syntax)",
    ),
) -> None:
    """
    Show one class's baseline and current methods side by side.

    Provides:
    - Every method with its baseline and current signature
    - The change reasons of each drifted method
    - Subclasses that inherit the drift
    - Advice on how to handle each finding
    """
    config = _resolve_config(path, baseline, source)
    snapshot = _load_snapshot(BaselineStore(config.baseline_path))
    classes, file_paths = _scan_current(config)

    hierarchy = ClassHierarchy.from_snapshot(snapshot)
    resolved = hierarchy.resolve(class_name)
    current = _find_class(classes, resolved)
    if resolved not in snapshot and current is None:
        same_short_name = [c for c in classes if c.short_name == class_name]
        if len(same_short_name) == 1:
            current = same_short_name[0]
            resolved = current.name
    if resolved not in snapshot and current is None:
        matches = sorted(
            name for name in set(snapshot) | {c.name for c in classes} if class_name in name
        )
        if matches:
            console.print(f"[yellow]Class '{escape(class_name)}' not found. Did you mean:[/yellow]")
            for match in matches[:5]:
                console.print(f"   • {escape(match)}", soft_wrap=True)
        else:
            console.print(f"[red]Class '{escape(class_name)}' not found.[/red]")
        raise typer.Exit(1)

    engine = DriftEngine(snapshot, config.policy)
    drift = engine.check(current, file_paths.get(resolved)) if current is not None else None
    _print_explanation(resolved, snapshot.get(resolved), current, drift)

    subclasses = sorted(hierarchy.subclasses_of(resolved))
    if subclasses and drift is not None and drift.has_drift:
        console.print(f"\n[dim]Subclasses inheriting this drift: {len(subclasses)}[/dim]")
        for name in subclasses:
            console.print(f"   • {escape(name)}", soft_wrap=True)


@app.command()
def tools(
    timeout: float = typer.Option(
        300.0,
        "--timeout",
        "-t",
        help="Seconds each tool may run",
    ),
) -> None:
    """
    Run the configured external analysers and keep only drift messages.

    A failing tool is reported and the remaining tools still run.
    """
    config = _resolve_config(None, None, None)
    external = config.external_tools()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Running {len(external)} tool(s)...", total=None)
        results = run_tools(external, cwd=config.project_root, timeout=timeout)
        progress.update(task, description="Done!")

    total = 0
    failed = 0
    for result in results:
        if not result.succeeded:
            failed += 1
            console.print(
                f"[bold red]✗ {escape(result.tool)}[/bold red] {escape(result.error or '')}",
                soft_wrap=True,
            )
            continue
        console.print(
            f"[bold green]✓ {escape(result.tool)}[/bold green] "
            f"{len(result.drifts)} drift message(s)"
        )
        for line in result.drifts:
            console.print(f"   {escape(line)}", soft_wrap=True)
        total += len(result.drifts)

    if total:
        raise typer.Exit(EXIT_DRIFT)
    if failed:
        raise typer.Exit(EXIT_ERROR)


# Helper functions for output formatting

def _find_class(classes: list[ClassSignature], name: str) -> Optional[ClassSignature]:
    for signature in classes:
        if signature.name == name:
            return signature
    return None


def _print_capture_summary(result: CaptureResult, baseline_path: Path) -> None:
    """Print a summary panel after capturing."""
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Label", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Files scanned", str(result.files_scanned))
    table.add_row("Classes captured", str(result.class_count))
    table.add_row("Skipped files", str(result.skip_count))
    table.add_row("Duplicate names", str(len(result.duplicates)))
    table.add_row("Capture time", f"{result.scan_time_seconds:.2f}s")
    table.add_row("Baseline", escape(str(baseline_path)))

    panel = Panel(table, title="[bold green]✓ Capture Complete[/bold green]", border_style="green")
    console.print(panel)


def _print_text_report(report: DriftReport, affected: list[str], suggest: bool = False) -> None:
    adapter = MessageAdapter()
    for drift in report.drifts:
        for issue in adapter.render(drift):
            console.print(
                f"{escape(issue.file_path)}:{issue.line}: "
                f"[bold]{issue.code}[/bold] {escape(issue.message)}",
                soft_wrap=True,
            )
            if suggest and issue.suggestion:
                console.print(f"    [dim]→ {escape(issue.suggestion)}[/dim]", soft_wrap=True)

    if report.drifts:
        console.print()

    table = Table(box=box.ROUNDED)
    table.add_column("Finding", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("[green]+ New[/green]", str(report.new_count))
    table.add_row("[yellow]~ Changed[/yellow]", str(report.changed_count))
    table.add_row("[red]- Removed[/red]", str(report.removed_count))
    console.print(table)

    console.print(
        f"{report.classes_checked} class(es) checked, "
        f"{len(report.unknown_classes)} not in the baseline"
    )
    if affected:
        console.print(
            f"[dim]{len(affected)} subclass(es) inherit drifted methods: "
            f"{escape(', '.join(affected))}[/dim]",
            soft_wrap=True,
        )
    if not report.has_drift:
        console.print("[bold green]✓ No API drift[/bold green]")


def _print_json_report(report: DriftReport, affected: list[str]) -> None:
    adapter = JsonAdapter()
    payload = {
        "classes_checked": report.classes_checked,
        "unknown_classes": report.unknown_classes,
        "summary": {
            "new": report.new_count,
            "changed": report.changed_count,
            "removed": report.removed_count,
            "total": report.total_findings,
        },
        "findings": [item for drift in report.drifts for item in adapter.render(drift)],
        "affected_subclasses": affected,
    }
    typer.echo(json.dumps(payload, indent=2))


def _format_method(method: Optional[MethodSignature]) -> str:
    """Render a method signature on one line."""
    if method is None:
        return "-"
    params = []
    for param in method.parameters:
        text = param.name
        if param.annotation:
            text += f": {param.annotation}"
        if param.default not in (None, "none"):
            text += f" = {param.default}"
        params.append(text)
    prefix = method.visibility.value if method.visibility else "?"
    if method.is_static:
        prefix += " static"
    signature = f"{prefix} {method.name}({', '.join(params)})"
    if method.return_type:
        signature += f" -> {method.return_type}"
    return signature


def _print_explanation(
    class_name: str,
    baseline: Optional[ClassSignature],
    current: Optional[ClassSignature],
    drift,
) -> None:
    """Print the side-by-side comparison of one class."""
    if baseline is None:
        status = "[yellow]not in baseline[/yellow]"
    elif current is None:
        status = "[red]not found in source tree[/red]"
    elif drift is not None and drift.has_drift:
        status = f"[yellow]{len(drift.findings)} finding(s)[/yellow]"
    else:
        status = "[green]unchanged[/green]"

    console.print(Panel(f"[bold]{escape(class_name)}[/bold]\nStatus: {status}", box=box.ROUNDED))

    findings = {finding.method_name: finding for finding in (drift.findings if drift else [])}
    names = list(current.methods) if current is not None else []
    if baseline is not None:
        names += [name for name in baseline.methods if name not in names]

    table = Table(box=box.ROUNDED)
    table.add_column("Method", style="cyan")
    table.add_column("Baseline")
    table.add_column("Current")
    table.add_column("Status", style="bold")

    for name in names:
        finding = findings.get(name)
        if finding is None:
            label = "[green]same[/green]"
        elif finding.kind is FindingKind.NEW_METHOD:
            label = "[green]NEW[/green]"
        elif finding.kind is FindingKind.REMOVED_METHOD:
            label = "[red]REMOVED[/red]"
        else:
            label = "[yellow]CHANGED[/yellow]"
        table.add_row(
            escape(name),
            escape(_format_method(baseline.methods.get(name) if baseline else None)),
            escape(_format_method(current.methods.get(name) if current else None)),
            label,
        )

    console.print(table)

    for finding in findings.values():
        if finding.kind is FindingKind.CHANGED_METHOD:
            console.print(f"• {escape(format_finding(class_name, finding))}", soft_wrap=True)

    advice = [
        (finding.method_name, suggestion_for(drift, finding)) for finding in findings.values()
    ]
    advice = [(name, text) for name, text in advice if text]
    if advice:
        console.print("\n[bold]Suggestions[/bold]")
        for name, text in advice:
            console.print(f"• [cyan]{escape(name)}[/cyan]: {escape(text)}", soft_wrap=True)
