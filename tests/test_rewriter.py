"""Tests for call-site rewriting."""

import logging
from pathlib import Path

import pytest

from redeye_compiler.compiler import build_registry
from redeye_compiler.config import CompilerConfig
from redeye_compiler.extractor import extract_bodies
from redeye_compiler.parser import find_declarations
from redeye_compiler.rewriter import LocalScope, forward_arguments, rewrite_body


@pytest.fixture
def fixtures_path():
    """Path to test fixtures."""
    return Path(__file__).parent / "fixtures" / "go_sources"


def registry_from(lines):
    signatures = find_declarations(lines)
    return build_registry(signatures, extract_bodies(lines, signatures))


class TestRewriteBody:
    def given_source(self, *lines):
        self.registry = registry_from(list(lines))

    def given_fixture(self, fixtures_path, name):
        lines = (fixtures_path / name).read_text().splitlines()
        self.registry = registry_from(lines)

    def when_body_is_rewritten(self, name, **options):
        self.lines, self.sites = rewrite_body(
            self.registry[name], self.registry, CompilerConfig(**options)
        )

    def then_line_is(self, index, expected):
        assert self.lines[index] == expected

    def then_body_is_unchanged(self, name):
        assert self.lines == self.registry[name].body.lines
        assert self.sites == []

    def test_pass_through_forwards_callee_parameter_names(self):
        """Bare parameter arguments forward the callee's declared names."""
        self.given_source(
            "func g(x, y int) (int, error) { return x + y, nil }",
            "func f(a, b int) (int, error) {",
            "\ts := g(a, b)",
            "\treturn s, nil",
            "}",
        )
        self.when_body_is_rewritten("f")
        self.then_line_is(
            0,
            '\ts, err := g(__router, "f", __args, x, y); '
            "if err != nil { return __zv, err }",
        )
        assert self.sites[0].pass_through
        assert self.sites[0].arguments == ["a", "b"]
        assert self.sites[0].forwarded == ["x", "y"]

    def test_expressions_are_forwarded_unchanged(self, fixtures_path):
        """Arguments that are not bare parameter names keep their text."""
        self.given_fixture(fixtures_path, "fib.go")
        self.when_body_is_rewritten("fib")
        self.then_line_is(
            3,
            '\tf1, err := fib(__router, "fib", __args, n - 1); '
            "if err != nil { return __zv, err }",
        )
        self.then_line_is(
            4,
            '\tf2, err := fib(__router, "fib", __args, n - 2); '
            "if err != nil { return __zv, err }",
        )
        assert [site.pass_through for site in self.sites] == [False, False]

    def test_argument_count_mismatch_is_not_pass_through(self):
        """Pass-through needs one argument per callee parameter."""
        self.given_source(
            "func g(x, y int) (int, error) { return x + y, nil }",
            "func f(a int) (int, error) { return g(a, a, a) }",
        )
        self.when_body_is_rewritten("f")
        self.then_line_is(0, '\treturn g(__router, "f", __args, a, a, a)')

    def test_statement_after_call_on_same_line(self, fixtures_path):
        """Error propagation works when a statement follows the call."""
        self.given_fixture(fixtures_path, "double_quad.go")
        self.when_body_is_rewritten("quad")
        self.then_line_is(
            0,
            '\tv, err := double(__router, "quad", __args, n); '
            "if err != nil { return __zv, err }; return v * 2, nil",
        )
        assert self.sites[0].propagates_error

    def test_propagation_disabled(self, fixtures_path):
        """Without propagation the call is replaced in place."""
        self.given_fixture(fixtures_path, "double_quad.go")
        self.when_body_is_rewritten("quad", propagate_errors=False)
        self.then_line_is(
            0, '\tv := double(__router, "quad", __args, n); return v * 2, nil'
        )
        assert not self.sites[0].propagates_error

    def test_call_inside_expression_does_not_propagate(self):
        """Only a call forming the whole right-hand side is propagated."""
        self.given_source(
            "func double(n int) (int, error) { return n * 2, nil }",
            "func f(n int) (int, error) {",
            "\tv := double(n) + 1",
            "\treturn v, nil",
            "}",
        )
        self.when_body_is_rewritten("f")
        self.then_line_is(0, '\tv := double(__router, "f", __args, n) + 1')

    def test_return_of_call(self):
        """A returned call keeps its two results."""
        self.given_source(
            "func double(n int) (int, error) { return n * 2, nil }",
            "func f(n int) (int, error) { return double(n) }",
        )
        self.when_body_is_rewritten("f")
        self.then_line_is(0, '\treturn double(__router, "f", __args, n)')

    def test_strings_and_comments_are_left_alone(self):
        """Calls inside literals and comments are not rewritten."""
        self.given_source(
            "func double(n int) (int, error) { return n * 2, nil }",
            "func f(n int) (int, error) {",
            '\tfmt.Println("double(n)") // double(n)',
            "\treturn n, nil",
            "}",
        )
        self.when_body_is_rewritten("f")
        self.then_body_is_unchanged("f")

    def test_unregistered_calls_are_left_alone(self):
        """Only registered names are routed."""
        self.given_source(
            "func f(n int) (int, error) {",
            "\tv := triple(n)",
            "\treturn v, nil",
            "}",
        )
        self.when_body_is_rewritten("f")
        self.then_body_is_unchanged("f")

    def test_nested_call_is_not_rewritten(self):
        """Calls inside a rewritten call's arguments are left as written."""
        self.given_source(
            "func double(n int) (int, error) { return n * 2, nil }",
            "func f(n int) (int, error) { return double(double(n)) }",
        )
        self.when_body_is_rewritten("f")
        self.then_line_is(0, '\treturn double(__router, "f", __args, double(n))')
        assert len(self.sites) == 1

    def test_two_calls_on_one_line(self):
        """Each call on a line is rewritten, left to right."""
        self.given_source(
            "func double(n int) (int, error) { return n * 2, nil }",
            "func f(n int) (bool, error) {",
            "\t_, e1 := double(n)",
            "\treturn e1 == nil && compare(double(1), double(2)), nil",
            "}",
        )
        self.when_body_is_rewritten("f")
        self.then_line_is(
            1,
            '\treturn e1 == nil && compare(double(__router, "f", __args, 1), '
            'double(__router, "f", __args, 2)), nil',
        )

    def test_multi_line_call_is_skipped(self):
        """A call whose arguments continue on the next line is not rewritten."""
        self.given_source(
            "func add(a, b int) (int, error) { return a + b, nil }",
            "func f(n int) (int, error) {",
            "\tv := add(n,",
            "\t\t1)",
            "\treturn v, nil",
            "}",
        )
        self.when_body_is_rewritten("f")
        self.then_body_is_unchanged("f")


class TestShadowing:
    def given_source(self, *lines):
        self.registry = registry_from(list(lines))

    def when_body_is_rewritten(self, name, scope_check=True):
        self.lines, self.sites = rewrite_body(
            self.registry[name],
            self.registry,
            CompilerConfig(scope_check=scope_check),
        )

    def given_local_function_value(self):
        self.given_source(
            "func double(n int) (int, error) { return n * 2, nil }",
            "func f(n int) (int, error) {",
            "\tdouble := func(n int) (int, error) { return n, nil }",
            "\treturn double(n)",
            "}",
        )

    def test_local_binding_shadows_registered_name(self):
        """A locally bound name is not routed."""
        self.given_local_function_value()
        self.when_body_is_rewritten("f")
        assert self.lines[1] == "\treturn double(n)"
        assert self.sites == []

    def test_scope_check_disabled(self):
        """Without the scope check every matching name is routed."""
        self.given_local_function_value()
        self.when_body_is_rewritten("f", scope_check=False)
        assert self.lines[1] == '\treturn double(__router, "f", __args, n)'

    def test_parameter_shadows_registered_name(self):
        """A parameter with a registered name is not routed."""
        self.given_source(
            "func double(n int) (int, error) { return n * 2, nil }",
            "func apply(double Doubler, n int) (int, error) {",
            "\treturn double(n)",
            "}",
        )
        self.when_body_is_rewritten("apply")
        assert self.sites == []

    def test_method_call_is_not_routed(self):
        """x.name( is a selector, not the registered function."""
        self.given_source(
            "func double(n int) (int, error) { return n * 2, nil }",
            "func f(n int) (int, error) {",
            "\treturn calc.double(n)",
            "}",
        )
        self.when_body_is_rewritten("f")
        assert self.lines == ["\treturn calc.double(n)"]

    def test_block_binding_ends_with_its_block(self):
        """A binding inside a block stops shadowing once the block closes."""
        self.given_source(
            "func double(n int) (int, error) { return n * 2, nil }",
            "func f(n int) (int, error) {",
            "\tif n > 10 {",
            "\t\tdouble := 3",
            "\t\treturn double, nil",
            "\t}",
            "\treturn double(n)",
            "}",
        )
        self.when_body_is_rewritten("f")
        assert self.lines[4] == '\treturn double(__router, "f", __args, n)'


class TestLocalScope:
    def test_parameters_are_bound(self):
        """Parameters are in scope from the start."""
        scope = LocalScope(["a", "b"])

        assert "a" in scope
        assert "c" not in scope

    def test_short_declarations_and_vars(self):
        """Short declarations and var statements bind names."""
        scope = LocalScope([])

        scope.bind_line("\tx, y := 1, 2")
        scope.bind_line("\tvar z int")

        assert "x" in scope
        assert "y" in scope
        assert "z" in scope

    def test_header_binding_is_block_scoped(self):
        """A name bound in an if header is dropped when the block closes."""
        scope = LocalScope([])

        scope.bind_line("\tif v := 1; v > 0 {")
        assert "v" in scope
        scope.bind_line("\t}")

        assert "v" not in scope

    def test_blank_identifier_is_not_bound(self):
        """The blank identifier never shadows anything."""
        scope = LocalScope([])

        scope.bind_line("\t_, err := 1, 2")

        assert "_" not in scope
        assert "err" in scope


class TestForwardArguments:
    def test_caller_parameters_forward_callee_names(self):
        """The callee's declared names are forwarded, in order."""
        registry = registry_from(
            [
                "func g(x, y int) (int, error) { return x + y, nil }",
                "func f(a, b int) (int, error) { return g(b, a) }",
            ]
        )

        forwarded, pass_through = forward_arguments(
            ["b", "a"], registry["f"], registry["g"]
        )

        assert forwarded == ["x", "y"]
        assert pass_through

    def test_forwarded_names_missing_from_caller(self, caplog):
        """Forwarding callee names the caller lacks is allowed but logged."""
        registry = registry_from(
            [
                "func add(a, b int) (int, error) { return a + b, nil }",
                "func dbl(n int) (int, error) { return add(n, n) }",
            ]
        )

        with caplog.at_level(logging.WARNING, logger="redeye_compiler.rewriter"):
            forwarded, pass_through = forward_arguments(
                ["n", "n"], registry["dbl"], registry["add"]
            )

        assert forwarded == ["a", "b"]
        assert pass_through
        assert "dbl forwards a, b to add but does not declare them" in caplog.text

    def test_shared_names_are_not_logged(self, caplog):
        """Names the caller also declares forward without a warning."""
        registry = registry_from(
            [
                "func g(x, y int) (int, error) { return x + y, nil }",
                "func f(x, y int) (int, error) { return g(y, x) }",
            ]
        )

        with caplog.at_level(logging.WARNING, logger="redeye_compiler.rewriter"):
            forward_arguments(["y", "x"], registry["f"], registry["g"])

        assert caplog.records == []

    def test_no_arguments(self):
        """A call without arguments forwards nothing."""
        registry = registry_from(
            [
                "func g() (int, error) { return 1, nil }",
                "func f() (int, error) { return g() }",
            ]
        )

        forwarded, pass_through = forward_arguments([], registry["f"], registry["g"])

        assert forwarded == []
        assert not pass_through
