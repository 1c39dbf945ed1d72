"""
Tests for finding suggestions.

Tests class kind detection and the advice attached to each kind of change.
"""

import pytest

from apidrift.adapters.suggestions import (
    ClassKind,
    determine_class_kind,
    suggest_for,
    suggest_parameter_type,
    suggest_return_type,
    suggest_visibility,
)
from apidrift.models import (
    ChangedMethod,
    MethodSignature,
    NewMethod,
    ParameterAdded,
    ParameterCountChanged,
    ParameterDefaultChanged,
    ParameterRemoved,
    ParameterSignature,
    ParameterTypeChanged,
    RemovedMethod,
    ReturnTypeChanged,
    StaticModifierChanged,
    Visibility,
    VisibilityChanged,
)


def method(name: str, *params: str, **kwargs) -> MethodSignature:
    return MethodSignature(
        name=name,
        parameters=tuple(ParameterSignature(name=p) for p in params),
        **kwargs,
    )


class TestDetermineClassKind:
    """Tests for guessing a class's role from its module path."""

    @pytest.mark.parametrize(
        "class_name,expected",
        [
            ("app.views.orders.OrderView", ClassKind.VIEW),
            ("app.api.controllers.UserController", ClassKind.VIEW),
            ("app.models.user.User", ClassKind.MODEL),
            ("app.management.commands.sync.Command", ClassKind.COMMAND),
            ("app.tasks.email.SendEmail", ClassKind.TASK),
            ("app.listeners.audit.AuditListener", ClassKind.HANDLER),
            ("app.services.billing.BillingService", ClassKind.SERVICE),
            ("app.repositories.users.UserRepository", ClassKind.REPOSITORY),
            ("app.actions.checkout.Checkout", ClassKind.ACTION),
            ("app.utils.Helper", ClassKind.GENERIC),
            ("Models", ClassKind.GENERIC),
        ],
    )
    def test_kinds(self, class_name, expected):
        """Test that the first known namespace segment decides the kind."""
        assert determine_class_kind(class_name) is expected

    def test_class_name_is_not_a_segment(self):
        """Test that only the namespace is looked at, not the class name."""
        assert determine_class_kind("app.utils.views") is ClassKind.GENERIC


class TestChangeSuggestions:
    """Tests for advice on changed methods."""

    def test_visibility(self):
        """Test widening and narrowing advice."""
        assert "keep it private" in suggest_visibility(Visibility.PRIVATE, Visibility.PROTECTED)
        assert "encapsulation" in suggest_visibility(Visibility.PROTECTED, Visibility.PUBLIC)
        assert "public API" in suggest_visibility(Visibility.PUBLIC, Visibility.PRIVATE)
        assert suggest_visibility(None, Visibility.PUBLIC) == ""

    @pytest.mark.parametrize(
        "old,new,expected",
        [
            ("", "int", "Adding a return type"),
            ("int", "", "keeping the return type"),
            ("None", "int", "now returns a value"),
            ("int", "None", "no longer returns a value"),
            ("int", "str", "compatible with all calling code"),
        ],
    )
    def test_return_type(self, old, new, expected):
        """Test each return type transition."""
        assert expected in suggest_return_type(old, new)

    def test_parameter_type(self):
        """Test parameter type advice."""
        assert "Adding a type" in suggest_parameter_type("", "int")
        assert "keeping the type" in suggest_parameter_type("int", "")
        assert "union type" in suggest_parameter_type("int", "str")
        assert suggest_parameter_type("int", "int") == ""

    def test_reasons_combined_in_order(self):
        """Test that each reason contributes its advice once, in reason order."""
        finding = ChangedMethod(
            "bar",
            (
                VisibilityChanged(Visibility.PUBLIC, Visibility.PROTECTED),
                ParameterCountChanged(1, 3),
                ParameterAdded("y"),
                ParameterTypeChanged("x", "int", "str"),
                ParameterRemoved("z"),
            ),
        )

        text = suggest_for(finding, "app.Foo")

        assert text.index("public API") < text.index("'y' a default") < text.index("union type")
        assert text.endswith("Callers passing 'z' will break; consider deprecating it first.")

    def test_added_parameter_with_default(self):
        """Test that a new parameter with a default needs no advice."""
        current = MethodSignature(
            name="bar", parameters=(ParameterSignature(name="y", default="'z'"),)
        )
        finding = ChangedMethod("bar", (ParameterCountChanged(0, 1), ParameterAdded("y")))

        assert suggest_for(finding, "app.Foo", current) == ""

    def test_static_and_default(self):
        """Test advice for static modifier and default value changes."""
        to_instance = ChangedMethod("make", (StaticModifierChanged(False),))
        default = ChangedMethod("run", (ParameterDefaultChanged("retries", "3", "5"),))

        assert "Class.method(...)" in suggest_for(to_instance, "app.Foo")
        assert "old default of 'retries'" in suggest_for(default, "app.Foo")

    def test_removed_method(self):
        """Test that removing a method suggests deprecating it."""
        assert "deprecating" in suggest_for(RemovedMethod("gone"), "app.Foo")


class TestNewMethodSuggestions:
    """Tests for advice on new methods."""

    def test_private_static_and_none(self):
        """Test advice that depends on the method's own signature."""
        current = method(
            "__tidy", visibility=Visibility.PRIVATE, is_static=True, return_type="None"
        )

        text = suggest_for(NewMethod("__tidy"), "app.utils.Helper", current)

        assert "private method" in text
        assert "static method" in text
        assert "returns None" in text

    def test_generic_class_without_signature(self):
        """Test that a plain public method on an unknown kind of class gets no advice."""
        assert suggest_for(NewMethod("run"), "app.utils.Helper") == ""

    def test_view_methods(self):
        """Test standard and custom view methods."""
        standard = suggest_for(NewMethod("get"), "app.views.Orders", method("get", "request"))
        custom = suggest_for(
            NewMethod("export"),
            "app.views.Orders",
            method("export", "request", "fmt", "since", "until"),
        )

        assert "standard request handler" in standard
        assert "custom view method" in custom
        assert "many parameters" in custom

    def test_model_hooks(self):
        """Test lifecycle and query helper advice on models."""
        assert "lifecycle hook" in suggest_for(NewMethod("save"), "app.models.User")
        assert "query helper" in suggest_for(NewMethod("for_owner"), "app.models.User")

    def test_service_methods(self):
        """Test that every new service method is reminded of its responsibility."""
        assert "service method" in suggest_for(NewMethod("charge"), "app.services.Billing")

    def test_action_methods(self):
        """Test entry point and helper advice on actions."""
        entry = suggest_for(NewMethod("handle"), "app.actions.Checkout", method("handle"))
        helper = suggest_for(NewMethod("total"), "app.actions.Checkout", method("total"))

        assert "single, well-defined operation" in entry
        assert "return type" in entry
        assert "leading underscore" in helper
