"""
Tests for the drift engine.

Tests finding rules, reason order and report generation.
"""

from apidrift.drift import (
    DriftEngine,
    DriftPolicy,
    UnknownClassPolicy,
    analyze_drift,
    diff_class,
    diff_method,
)
from apidrift.extractor import ClassIdentity, build_class_signature, inspect_class_source
from apidrift.models import (
    BaselineSnapshot,
    ChangedMethod,
    ClassSignature,
    MethodSignature,
    NewMethod,
    ParameterAdded,
    ParameterCountChanged,
    ParameterDefaultChanged,
    ParameterRemoved,
    ParameterSignature,
    ParameterTypeChanged,
    ReasonKind,
    RemovedMethod,
    ReturnTypeChanged,
    StaticModifierChanged,
    Visibility,
    VisibilityChanged,
)

from tests.fixtures import BAR_CLASS, FOO_BASELINE, FOO_CURRENT, SERVICE_CLASS


def signature_of(source: str, class_name: str, namespace: str = "app") -> ClassSignature:
    identity = ClassIdentity(namespace, class_name)
    return build_class_signature(identity.qualified_name, inspect_class_source(source, identity))


def method(name="bar", *params, **kwargs) -> MethodSignature:
    return MethodSignature(name=name, parameters=tuple(params), **kwargs)


class TestDiffMethod:
    """Tests for per-method change reasons."""

    def test_identical(self):
        """Test that a method does not drift against itself."""
        m = method("bar", ParameterSignature("x", "int", "1"), return_type="None")
        assert diff_method(m, m) == []

    def test_appended_parameter(self):
        """Test that appending a parameter adds exactly one parameter-level reason."""
        old = method("bar", ParameterSignature("x", "int", "1"))
        new = method("bar", ParameterSignature("x", "int", "1"), ParameterSignature("y", "str", "'z'"))

        reasons = diff_method(old, new)

        assert reasons == [ParameterCountChanged(1, 2), ParameterAdded("y")]
        parameter_reasons = [r for r in reasons if r.kind is not ReasonKind.PARAMETER_COUNT_CHANGED]
        assert parameter_reasons == [ParameterAdded("y")]

    def test_visibility_before_static(self):
        """Test that visibility and static changes are both reported, in order."""
        old = method("run", visibility=Visibility.PUBLIC, is_static=False)
        new = method("run", visibility=Visibility.PROTECTED, is_static=True)

        assert diff_method(old, new) == [
            VisibilityChanged(Visibility.PUBLIC, Visibility.PROTECTED),
            StaticModifierChanged(True),
        ]

    def test_removed_parameter(self):
        """Test that a dropped parameter is reported after the count change."""
        old = method("bar", ParameterSignature("x"), ParameterSignature("y"))
        new = method("bar", ParameterSignature("x"))

        assert diff_method(old, new) == [ParameterCountChanged(2, 1), ParameterRemoved("y")]

    def test_type_wins_over_default(self):
        """Test one reason per parameter: a type change hides a default change."""
        old = method("bar", ParameterSignature("x", "int", "1"))
        new = method("bar", ParameterSignature("x", "str", "'1'"))

        assert diff_method(old, new) == [ParameterTypeChanged("x", "int", "str")]

    def test_default_changed(self):
        """Test that a changed default is reported with both forms."""
        old = method("bar", ParameterSignature("x", "int", "1"))
        new = method("bar", ParameterSignature("x", "int", "2"))

        assert diff_method(old, new) == [ParameterDefaultChanged("x", "1", "2")]

    def test_renamed_parameter(self):
        """Test that parameters are compared by name, not position."""
        old = method("bar", ParameterSignature("x"))
        new = method("bar", ParameterSignature("y"))

        assert diff_method(old, new) == [ParameterAdded("y"), ParameterRemoved("x")]

    def test_reordered_parameters(self):
        """Test that reordering alone is not drift."""
        old = method("bar", ParameterSignature("x"), ParameterSignature("y"))
        new = method("bar", ParameterSignature("y"), ParameterSignature("x"))

        assert diff_method(old, new) == []

    def test_absent_baseline_fields(self):
        """Test that absent baseline fields report drift instead of raising."""
        old = MethodSignature.from_dict("bar", {"parameters": {"x": {}}})
        new = method("bar", ParameterSignature("x", "int"))

        kinds = [reason.kind for reason in diff_method(old, new)]

        assert kinds == [
            ReasonKind.VISIBILITY_CHANGED,
            ReasonKind.STATIC_MODIFIER_CHANGED,
            ReasonKind.RETURN_TYPE_CHANGED,
            ReasonKind.PARAMETER_TYPE_CHANGED,
        ]

    def test_uncanonicalized_default_not_drift(self):
        """Test that two spellings of one default are not a change."""
        old = signature_of("class A:\n    def f(self, x='z', n=1_000, c=(1,)): ...\n", "A")
        new = signature_of('class A:\n    def f(self, x="z", n=1000, c=[2, 3]): ...\n', "A")

        assert diff_method(old.methods["f"], new.methods["f"]) == []


class TestDiffClass:
    """Tests for per-class findings."""

    def test_no_drift_against_itself(self):
        """Test that a class never drifts against itself."""
        signature = signature_of(SERVICE_CLASS, "UserService")
        assert diff_class(signature, signature) == []

    def test_bar_scenario(self):
        """Test a return type change plus an appended parameter."""
        baseline = signature_of(FOO_BASELINE, "Foo")
        current = signature_of(FOO_CURRENT, "Foo")

        findings = diff_class(baseline, current)

        assert findings == [
            ChangedMethod(
                "bar",
                (
                    ReturnTypeChanged("None", "str"),
                    ParameterCountChanged(1, 2),
                    ParameterAdded("y"),
                ),
            )
        ]

    def test_unknown_class_ignored(self):
        """Test that a class missing from the baseline has no findings."""
        current = signature_of(BAR_CLASS, "Bar")
        assert diff_class(None, current) == []

    def test_unknown_class_all_new(self):
        """Test the policy reporting every method of an unknown class."""
        current = signature_of(BAR_CLASS, "Bar")
        policy = DriftPolicy(unknown_class=UnknownClassPolicy.ALL_NEW)

        assert diff_class(None, current, policy) == [NewMethod("baz")]

    def test_new_and_removed_methods(self):
        """Test new methods in declaration order, then removed ones."""
        baseline = ClassSignature("app.A", methods={"old": method("old"), "keep": method("keep")})
        current = ClassSignature(
            "app.A", methods={"keep": method("keep"), "b": method("b"), "a": method("a")}
        )

        assert diff_class(baseline, current) == [
            NewMethod("b"),
            NewMethod("a"),
            RemovedMethod("old"),
        ]

    def test_removed_toggle(self):
        """Test that removed methods can be switched off."""
        baseline = ClassSignature("app.A", methods={"old": method("old")})
        current = ClassSignature("app.A")

        assert diff_class(baseline, current, DriftPolicy(report_removed=False)) == []

    def test_empty_baseline_entry(self):
        """Test that a damaged class record reports every method as new."""
        baseline = BaselineSnapshot.from_dict({"app.Bar": "garbage"})["app.Bar"]
        current = signature_of(BAR_CLASS, "Bar")

        assert diff_class(baseline, current) == [NewMethod("baz")]


class TestDriftEngine:
    """Tests for the engine bound to one snapshot."""

    def test_check(self):
        """Test a single-class check with locations."""
        snapshot = BaselineSnapshot.from_classes([signature_of(FOO_BASELINE, "Foo")])
        engine = DriftEngine(snapshot)

        drift = engine.check(signature_of(FOO_CURRENT, "Foo"), file_path="app/foo.py")

        assert drift.known
        assert drift.has_drift
        assert drift.file_path == "app/foo.py"
        assert drift.line_of("bar") == 5
        assert drift.line_of("missing") == 1

    def test_engine_without_snapshot(self):
        """Test that every class is unknown without a baseline."""
        drift = DriftEngine().check(signature_of(BAR_CLASS, "Bar"))

        assert not drift.known
        assert drift.findings == []

    def test_analyze_drift_report(self):
        """Test report totals across classes."""
        snapshot = BaselineSnapshot.from_classes(
            [
                signature_of(FOO_BASELINE, "Foo"),
                ClassSignature("app.Gone", methods={"x": method("x")}),
            ]
        )
        current = [
            signature_of(FOO_CURRENT, "Foo"),
            signature_of(BAR_CLASS, "Bar"),
            ClassSignature("app.Gone", methods={"y": method("y")}),
        ]

        report = analyze_drift(current, snapshot, file_paths={"app.Foo": "app/foo.py"})

        assert report.classes_checked == 3
        assert report.unknown_classes == ["app.Bar"]
        assert [d.class_name for d in report.drifts] == ["app.Foo", "app.Gone"]
        assert report.drifts[0].file_path == "app/foo.py"
        assert report.changed_count == 1
        assert report.new_count == 1
        assert report.removed_count == 1
        assert report.total_findings == 3
        assert report.has_drift

    def test_check_all_matches_analyze(self):
        """Test that check_all uses the engine's snapshot and policy."""
        snapshot = BaselineSnapshot.from_classes([ClassSignature("app.A", methods={"x": method("x")})])
        engine = DriftEngine(snapshot, DriftPolicy(report_removed=False))

        report = engine.check_all([ClassSignature("app.A")])

        assert not report.has_drift
