"""
Drift Engine for API Drift

This module implements the structural comparison between a baseline class
signature and a freshly extracted one. Every host adapter goes through these
functions; none carries its own copy of the comparison.

Finding Order (diff_class):
    1. For each current method, in declaration order:
         - not in baseline       -> NewMethod
         - in baseline, differs  -> ChangedMethod with every reason
    2. If the policy reports removals: for each baseline method missing
       now, in baseline order -> RemovedMethod

Reason Order (diff_method):
    1. visibility
    2. static modifier
    3. return type
    4. parameter count (comparison then continues by name)
    5. per current parameter, in order:
         - not in baseline         -> ParameterAdded
         - type differs            -> ParameterTypeChanged
         - else, default differs   -> ParameterDefaultChanged
       (type wins over default: one reason per parameter)
    6. per baseline parameter missing now -> ParameterRemoved

Unknown Classes:
    A class with no baseline entry produces no findings by default.
    UnknownClassPolicy.ALL_NEW reports every method as new instead.

Design Decisions:
    - Pure: same inputs always produce the same findings
    - Never raises: an absent baseline field (None) is unequal to any
      extracted value, so a damaged baseline reports more drift
    - Compares canonical strings only
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Optional

from apidrift.models import (
    BaselineSnapshot,
    ChangedMethod,
    ChangeReason,
    ClassDrift,
    ClassSignature,
    DriftFinding,
    DriftReport,
    MethodSignature,
    NewMethod,
    ParameterAdded,
    ParameterCountChanged,
    ParameterDefaultChanged,
    ParameterRemoved,
    ParameterTypeChanged,
    RemovedMethod,
    ReturnTypeChanged,
    StaticModifierChanged,
    VisibilityChanged,
)


class UnknownClassPolicy(Enum):
    """What to report for a class that has no baseline entry."""

    IGNORE = "ignore"
    ALL_NEW = "all_new"


@dataclass(frozen=True)
class DriftPolicy:
    """
    Knobs of the comparison.

    Attributes:
        report_removed: Report baseline methods that no longer exist
        unknown_class: Policy for classes missing from the baseline
    """

    report_removed: bool = True
    unknown_class: UnknownClassPolicy = UnknownClassPolicy.IGNORE


DEFAULT_POLICY = DriftPolicy()


def diff_method(baseline: MethodSignature, current: MethodSignature) -> list[ChangeReason]:
    """
    Compare two signatures of the same method.

    Args:
        baseline: The method as captured in the baseline
        current: The method as it is now

    Returns:
        Every change reason, in report order; empty if unchanged

    Example:
        >>> old = MethodSignature("bar", parameters=(ParameterSignature("x", "int", "1"),))
        >>> new = MethodSignature("bar", return_type="str", parameters=old.parameters)
        >>> diff_method(old, new)
        [ReturnTypeChanged(old='', new='str')]
    """
    reasons: list[ChangeReason] = []

    if baseline.visibility != current.visibility:
        reasons.append(VisibilityChanged(baseline.visibility, current.visibility))

    if baseline.is_static != current.is_static:
        reasons.append(StaticModifierChanged(current.is_static))

    if baseline.return_type != current.return_type:
        reasons.append(ReturnTypeChanged(baseline.return_type, current.return_type))

    if len(baseline.parameters) != len(current.parameters):
        reasons.append(
            ParameterCountChanged(len(baseline.parameters), len(current.parameters))
        )

    for param in current.parameters:
        previous = baseline.parameter(param.name)
        if previous is None:
            reasons.append(ParameterAdded(param.name))
        elif previous.annotation != param.annotation:
            reasons.append(
                ParameterTypeChanged(param.name, previous.annotation, param.annotation)
            )
        elif previous.default != param.default:
            reasons.append(ParameterDefaultChanged(param.name, previous.default, param.default))

    current_names = set(current.parameter_names)
    for previous in baseline.parameters:
        if previous.name not in current_names:
            reasons.append(ParameterRemoved(previous.name))

    return reasons


def diff_class(
    baseline: Optional[ClassSignature],
    current: ClassSignature,
    policy: DriftPolicy = DEFAULT_POLICY,
) -> list[DriftFinding]:
    """
    Compare a baseline class signature against the current one.

    This is a pure function implementing the finding rules in the module
    docstring.

    Args:
        baseline: The baseline entry, or None if the class was never captured
        current: The freshly extracted signature
        policy: Comparison policy

    Returns:
        Findings in report order; empty when there is no drift
    """
    if baseline is None:
        if policy.unknown_class is UnknownClassPolicy.ALL_NEW:
            return [NewMethod(name) for name in current.methods]
        return []

    findings: list[DriftFinding] = []

    for name, method in current.methods.items():
        previous = baseline.methods.get(name)
        if previous is None:
            findings.append(NewMethod(name))
            continue
        reasons = diff_method(previous, method)
        if reasons:
            findings.append(ChangedMethod(name, tuple(reasons)))

    if policy.report_removed:
        for name in baseline.methods:
            if name not in current.methods:
                findings.append(RemovedMethod(name))

    return findings


class DriftEngine:
    """
    Checks current classes against one loaded baseline snapshot.

    Usage:
        engine = DriftEngine(store.snapshot())
        drift = engine.check(current_signature, file_path="app/models/user.py")
        report = engine.check_all(signatures)
    """

    def __init__(
        self,
        snapshot: Optional[BaselineSnapshot] = None,
        policy: DriftPolicy = DEFAULT_POLICY,
    ) -> None:
        """
        Initialize the engine.

        Args:
            snapshot: The baseline. If None, every class is unknown.
            policy: Comparison policy
        """
        self._snapshot = snapshot if snapshot is not None else BaselineSnapshot()
        self._policy = policy

    @property
    def policy(self) -> DriftPolicy:
        return self._policy

    def baseline_for(self, class_name: str) -> Optional[ClassSignature]:
        return self._snapshot.get(class_name)

    def check(self, current: ClassSignature, file_path: Optional[str] = None) -> ClassDrift:
        """
        Check one class.

        Args:
            current: The freshly extracted class signature
            file_path: Source file of the class, for reporting

        Returns:
            ClassDrift with findings in report order
        """
        baseline = self.baseline_for(current.name)
        return ClassDrift(
            class_name=current.name,
            findings=diff_class(baseline, current, self._policy),
            file_path=file_path,
            known=baseline is not None,
            locations=current.locations,
            methods=current.methods,
        )

    def check_all(
        self,
        classes: Iterable[ClassSignature],
        file_paths: Optional[Mapping[str, str]] = None,
    ) -> DriftReport:
        """
        Check many classes and summarise the result.

        Args:
            classes: Current class signatures
            file_paths: Class name -> source file, for reporting

        Returns:
            DriftReport listing only the classes that drifted
        """
        return analyze_drift(classes, self._snapshot, self._policy, file_paths)


def analyze_drift(
    classes: Iterable[ClassSignature],
    snapshot: BaselineSnapshot,
    policy: DriftPolicy = DEFAULT_POLICY,
    file_paths: Optional[Mapping[str, str]] = None,
) -> DriftReport:
    """
    Analyze drift across a set of current classes.

    Args:
        classes: Current class signatures
        snapshot: The baseline
        policy: Comparison policy
        file_paths: Class name -> source file, for reporting

    Returns:
        DriftReport with per-class findings and totals

    Example:
        >>> report = analyze_drift(current_classes, load_baseline(path))
        >>> print(f"New: {report.new_count}, Changed: {report.changed_count}")
    """
    file_paths = file_paths or {}
    report = DriftReport()

    for current in classes:
        baseline = snapshot.get(current.name)
        report.classes_checked += 1
        if baseline is None:
            report.unknown_classes.append(current.name)

        findings = diff_class(baseline, current, policy)
        if findings:
            report.drifts.append(
                ClassDrift(
                    class_name=current.name,
                    findings=findings,
                    file_path=file_paths.get(current.name),
                    known=baseline is not None,
                    locations=current.locations,
                    methods=current.methods,
                )
            )

    return report
