"""
Tests for the monkey evaluator.
"""

import pytest
import textwrap

from monkey import tokenize, parse, run, ExecutionResult
from monkey.runtime import (
    Evaluator, evaluate, Error, Function, Integer, String,
    TRUE, FALSE, NULL, INT64_MAX, INT64_MIN,
    new_environment, new_enclosed_environment,
)
from monkey.ast import Expression, Block, UnaryOp
from monkey.tokens import SourceLocation, SourceSpan, TokenType


def eval_code(source: str):
    """Helper to tokenize, parse and evaluate source in a fresh environment."""
    program = parse(tokenize(source), source=source)
    return evaluate(program, new_environment())


def assert_integer(obj, expected: int):
    assert isinstance(obj, Integer), f"expected Integer, got {obj!r}"
    assert obj.value == expected


def assert_error(obj, message: str):
    assert isinstance(obj, Error), f"expected Error, got {obj!r}"
    assert obj.message == message


# --- Expressions ---

class TestIntegerExpressions:
    """Test integer arithmetic."""

    @pytest.mark.parametrize("source,expected", [
        ("5", 5),
        ("10", 10),
        ("-5", -5),
        ("-10", -10),
        ("5 + 5 + 5 + 5 - 10", 10),
        ("2 * 2 * 2 * 2 * 2", 32),
        ("-50 + 100 + -50", 0),
        ("5 * 2 + 10", 20),
        ("5 + 2 * 10", 25),
        ("20 + 2 * -10", 0),
        ("50 / 2 * 2 + 10", 60),
        ("2 * (5 + 10)", 30),
        ("3 * 3 * 3 + 10", 37),
        ("3 * (3 * 3) + 10", 37),
        ("(5 + 10 * 2 + 15 / 3) * 2 + -10", 50),
    ])
    def test_integer_expression(self, source, expected):
        assert_integer(eval_code(source), expected)

    @pytest.mark.parametrize("source,expected", [
        ("7 / 2", 3),
        ("-7 / 2", -3),
        ("7 / -2", -3),
        ("-7 / -2", 3),
    ])
    def test_division_truncates_toward_zero(self, source, expected):
        assert_integer(eval_code(source), expected)

    def test_division_by_zero(self):
        result = eval_code("10 / 0")
        assert_error(result, "division by zero")
        assert result.code == "E205"

    def test_overflow_wraps(self):
        """Arithmetic wraps around at 64 bits."""
        assert_integer(eval_code("9223372036854775807 + 1"), INT64_MIN)
        assert_integer(eval_code("-9223372036854775807 - 2"), INT64_MAX)


class TestBooleanExpressions:
    """Test comparison and boolean operators."""

    @pytest.mark.parametrize("source,expected", [
        ("true", True),
        ("false", False),
        ("1 < 2", True),
        ("1 > 2", False),
        ("1 < 1", False),
        ("1 > 1", False),
        ("1 == 1", True),
        ("1 != 1", False),
        ("1 == 2", False),
        ("1 != 2", True),
        ("true == true", True),
        ("false == false", True),
        ("true == false", False),
        ("true != false", True),
        ("false != true", True),
        ("(1 < 2) == true", True),
        ("(1 < 2) == false", False),
        ("(1 > 2) == true", False),
        ("(1 > 2) == false", True),
    ])
    def test_boolean_expression(self, source, expected):
        result = eval_code(source)
        assert result is (TRUE if expected else FALSE)

    @pytest.mark.parametrize("source,expected", [
        ("!true", False),
        ("!false", True),
        ("!5", False),
        ("!!true", True),
        ("!!false", False),
        ("!!5", True),
    ])
    def test_bang_operator(self, source, expected):
        result = eval_code(source)
        assert result is (TRUE if expected else FALSE)

    def test_bang_null(self):
        """NULL is falsy."""
        assert eval_code("!if (false) { 1 }") is TRUE


class TestStringExpressions:
    """Test string literals and operators."""

    def test_string_literal(self):
        result = eval_code('"Hello World!"')
        assert isinstance(result, String)
        assert result.value == "Hello World!"

    def test_escaped_string(self):
        result = eval_code('"I\'m \\"escaped\\""')
        assert result.value == 'I\'m "escaped"'

    def test_concatenation(self):
        result = eval_code('"Hello" + " " + "World!"')
        assert isinstance(result, String)
        assert result.value == "Hello World!"

    def test_string_equality(self):
        assert eval_code('"a" == "a"') is TRUE
        assert eval_code('"a" != "b"') is TRUE
        assert eval_code('"a" == "b"') is FALSE

    def test_string_subtraction_fails(self):
        assert_error(eval_code('"Hello" - "World"'), "unknown operator: STRING - STRING")


class TestIfElseExpressions:
    """Test conditionals."""

    @pytest.mark.parametrize("source,expected", [
        ("if (true) { 10 }", 10),
        ("if (1) { 10 }", 10),
        ("if (1 < 2) { 10 }", 10),
        ("if (1 > 2) { 10 } else { 20 }", 20),
        ("if (1 < 2) { 10 } else { 20 }", 10),
        ("if (0) { 10 } else { 20 }", 10),
    ])
    def test_if_taken(self, source, expected):
        assert_integer(eval_code(source), expected)

    @pytest.mark.parametrize("source", [
        "if (false) { 10 }",
        "if (1 > 2) { 10 }",
        "if (true) { }",
    ])
    def test_if_yields_null(self, source):
        assert eval_code(source) is NULL

    def test_if_shares_scope(self):
        """Bindings made inside an if body are visible afterwards."""
        assert_integer(eval_code("if (true) { let x = 3 }; x"), 3)


# --- Statements ---

class TestReturnStatements:
    """Test return handling."""

    @pytest.mark.parametrize("source,expected", [
        ("return 10;", 10),
        ("return 10; 9;", 10),
        ("return 2 * 5; 9;", 10),
        ("9; return 2 * 5; 9;", 10),
        ("if (10 > 1) { return 10; }", 10),
    ])
    def test_return(self, source, expected):
        assert_integer(eval_code(source), expected)

    def test_nested_return(self):
        """An inner return unwinds all enclosing blocks."""
        source = textwrap.dedent("""
            if (10 > 1) {
              if (10 > 1) {
                return 10;
              }
              return 1;
            }
        """)
        assert_integer(eval_code(source), 10)

    def test_return_from_function(self):
        source = textwrap.dedent("""
            let f = fn(x) {
              return x;
              x + 10;
            };
            f(10);
        """)
        assert_integer(eval_code(source), 10)

    def test_return_unwraps_only_once(self):
        """Returning from an inner call does not end the outer function."""
        source = textwrap.dedent("""
            let inner = fn() { return 1; };
            let outer = fn() { inner(); 2 };
            outer();
        """)
        assert_integer(eval_code(source), 2)

    def test_bare_return(self):
        assert eval_code("let f = fn() { return; 5 }; f()") is NULL

    def test_top_level_result_unwrapped(self):
        """Evaluating a program never yields a ReturnValue."""
        result = eval_code("return true;")
        assert result is TRUE


class TestLetStatements:
    """Test declarations."""

    @pytest.mark.parametrize("source,expected", [
        ("let a = 5; a;", 5),
        ("let a = 5 * 5; a;", 25),
        ("let a = 5; let b = a; b;", 5),
        ("let a = 5; let b = a; let c = a + b + 5; c;", 15),
    ])
    def test_let(self, source, expected):
        assert_integer(eval_code(source), expected)

    def test_let_returns_value(self):
        assert_integer(eval_code("let a = 7;"), 7)

    def test_redeclaration_fails(self):
        result = eval_code("let a = 1; let a = 2;")
        assert_error(result, "Identifier 'a' has already been declared")

    def test_redeclaration_stops_program(self):
        env = new_environment()
        program = parse(tokenize("let a = 1; let a = 2; let b = 3;"))
        evaluate(program, env)
        assert env.get("a") == Integer(1)
        assert env.get("b") is None


class TestAssignmentStatements:
    """Test rebinding."""

    def test_assignment(self):
        assert_integer(eval_code("let a = 5; a = a * 5;"), 25)

    def test_assignment_updates_binding(self):
        assert_integer(eval_code("let a = 5; a = 6; a"), 6)

    def test_assignment_undeclared(self):
        result = eval_code("a = 1;")
        assert_error(result, "a is not defined")
        assert result.code == "E302"

    def test_assignment_to_outer_name_fails(self):
        """Assignment inside a function cannot rebind an outer name."""
        result = eval_code("let a = 1; let f = fn() { a = 2 }; f()")
        assert_error(result, "a is not defined")


class TestIncrementDecrement:
    """Test ++ and --."""

    def test_increment(self):
        assert_integer(eval_code("let a = 1; ++a"), 2)
        assert_integer(eval_code("let a = 1; ++a; a"), 2)

    def test_decrement(self):
        assert_integer(eval_code("let a = 1; --a; --a; a"), -1)

    def test_increment_undeclared(self):
        assert_error(eval_code("++a"), "identifier not found: a")

    def test_increment_non_integer(self):
        assert_error(eval_code("let b = true; ++b"), "unknown operator: ++BOOLEAN")
        assert_error(eval_code('let s = "x"; --s'), "unknown operator: --STRING")

    def test_increment_in_function_shadows(self):
        """++ rebinds in the current scope; the outer binding is untouched."""
        source = "let a = 1; let f = fn() { ++a }; let r = f(); a + r * 10"
        assert_integer(eval_code(source), 21)

    def test_increment_of_non_name(self):
        """A hand-built ++ on a literal has nothing to rebind."""
        five = parse(tokenize("5")).statements[0].expression
        node = UnaryOp(span=five.span, operator=TokenType.INCREMENT, operand=five)
        assert_error(evaluate(node, new_environment()), "unknown operator: ++INTEGER")


class TestWhileStatements:
    """Test loops."""

    def test_simple_loop(self):
        assert_integer(eval_code("let a = 0; while (a < 4) {++a};a;"), 4)

    def test_loop_accumulates(self):
        source = "let a = 0; let b = 0; while (a < 4) {++a; b = b + 4}; b;"
        assert_integer(eval_code(source), 16)

    def test_nested_loops(self):
        source = textwrap.dedent("""
            let a = 0;
            let b = 0;
            let c = 0;
            while (a < 10) {
              ++a;
              c = 0;
              while (c < 10) {
                ++c;
                ++b;
              }
            };
            b;
        """)
        assert_integer(eval_code(source), 100)

    def test_while_yields_null(self):
        assert eval_code("let a = 0; while (a < 2) { ++a }") is NULL

    def test_loop_never_runs(self):
        assert_integer(eval_code("let a = 5; while (false) { a = 0 }; a"), 5)

    def test_return_halts_loop(self):
        source = textwrap.dedent("""
            let f = fn() {
              let a = 0;
              while (a < 10) {
                ++a;
                if (a == 4) { return a; }
              }
              a;
            };
            f();
        """)
        assert_integer(eval_code(source), 4)

    def test_top_level_return_halts_loop(self):
        source = "let a = 0; while (a < 10) { ++a; if (a == 4) { return 4; } }; a;"
        assert_integer(eval_code(source), 4)

    def test_let_in_body_redeclared(self):
        """Loop bodies share the enclosing scope, so a let repeats."""
        source = "let a = 0; while (a < 2) { ++a; let t = a }"
        assert_error(eval_code(source), "Identifier 't' has already been declared")

    def test_error_in_condition(self):
        assert_error(eval_code("while (x) { 1 }"), "identifier not found: x")

    def test_error_in_body_ends_loop(self):
        assert_error(eval_code("while (true) { 1 + true }"), "type mismatch: INTEGER + BOOLEAN")

    def test_error_in_body_stops_program(self):
        """The failing iteration is the last one and later statements never run."""
        env = new_environment()
        source = "let a = 0; while (a < 5) { ++a; if (a == 3) { -true } }; let after = 1;"
        result = evaluate(parse(tokenize(source)), env)
        assert_error(result, "unknown operator: -BOOLEAN")
        assert env.get("a") == Integer(3)
        assert env.get("after") is None


# --- Functions ---

class TestFunctions:
    """Test function objects and application."""

    def test_function_object(self):
        result = eval_code("fn(x) { x + 2; };")
        assert isinstance(result, Function)
        assert [p.name for p in result.parameters] == ["x"]
        assert str(result.body) == "(x + 2)"

    def test_function_object_two_params(self):
        result = eval_code("fn(x, y) { x + y; };")
        assert str(result.body) == "(x + y)"
        assert result.inspect() == "fn(x, y) {\n(x + y)\n}"

    @pytest.mark.parametrize("source,expected", [
        ("let identity = fn(x) { x; }; identity(5);", 5),
        ("let identity = fn(x) { return x; }; identity(5);", 5),
        ("let double = fn(x) { x * 2; }; double(5);", 10),
        ("let add = fn(x, y) { x + y; }; add(5, 5);", 10),
        ("let add = fn(x, y) { x + y; }; add(5 + 5, add(5, 5));", 20),
        ("fn(x) { x; }(5)", 5),
        ("fn(x, y) { x; }(5, 6, 7)", 5),
    ])
    def test_function_application(self, source, expected):
        assert_integer(eval_code(source), expected)

    @pytest.mark.parametrize("source", [
        "fn(x) { x; }()",
        "fn(x, y) { y; }(5)",
        "fn() { }()",
    ])
    def test_missing_arguments_are_null(self, source):
        assert eval_code(source) is NULL

    def test_missing_argument_in_arithmetic(self):
        assert_error(eval_code("fn(x, y){x + y}(2)"), "type mismatch: INTEGER + NULL")

    def test_closures(self):
        source = textwrap.dedent("""
            let newAdder = fn(x) {
              fn(y) { x + y };
            };
            let addTwo = newAdder(2);
            addTwo(2);
        """)
        assert_integer(eval_code(source), 4)

    def test_closure_sees_later_changes(self):
        """Captured scopes are shared, not copied."""
        source = "let a = 1; let f = fn() { a }; a = 5; f()"
        assert_integer(eval_code(source), 5)

    def test_closure_sees_later_declarations(self):
        source = "let f = fn() { b }; let b = 9; f()"
        assert_integer(eval_code(source), 9)

    def test_recursion(self):
        source = textwrap.dedent("""
            let fib = fn(n) {
              if (n < 2) { return n; }
              fib(n - 1) + fib(n - 2);
            };
            fib(15);
        """)
        assert_integer(eval_code(source), 610)

    @pytest.mark.parametrize("depth", [150, 500, 1000])
    def test_deep_recursion(self, depth):
        source = textwrap.dedent(f"""
            let count = fn(n) {{
              if (n == 0) {{ return 0; }}
              1 + count(n - 1);
            }};
            count({depth});
        """)
        assert_integer(eval_code(source), depth)

    def test_unbounded_recursion_is_error(self):
        """Runaway recursion comes back as an Error, not an exception."""
        result = eval_code("let f = fn(n) { f(n + 1) }; f(0)")
        assert_error(result, "maximum recursion depth exceeded")
        assert result.code == "E299"

    def test_shadowing_does_not_leak(self):
        source = "let x = 1; let f = fn(x) { let y = x * 10; y }; f(5) + x"
        assert_integer(eval_code(source), 51)

    def test_locals_not_visible_outside(self):
        source = "let f = fn() { let inner = 1; inner }; f(); inner"
        assert_error(eval_code(source), "identifier not found: inner")

    def test_duplicate_parameters(self):
        result = eval_code("fn(x, x) { x }(1, 2)")
        assert_error(result, "Identifier 'x' has already been declared")

    def test_not_callable(self):
        result = eval_code("let a = 5; a(1)")
        assert_error(result, "not a function: INTEGER")
        assert result.code == "E204"

    def test_callee_checked_before_arguments(self):
        """Arguments are not evaluated when the callee is not a function."""
        assert_error(eval_code("5(undefinedName)"), "not a function: INTEGER")

    def test_higher_order(self):
        source = textwrap.dedent("""
            let apply = fn(f, v) { f(v) };
            let inc = fn(n) { n + 1 };
            apply(inc, 41);
        """)
        assert_integer(eval_code(source), 42)


# --- Errors ---

class TestErrorHandling:
    """Test runtime error production and propagation."""

    @pytest.mark.parametrize("source,message", [
        ("5 + true;", "type mismatch: INTEGER + BOOLEAN"),
        ("5 + true; 5;", "type mismatch: INTEGER + BOOLEAN"),
        ("-true", "unknown operator: -BOOLEAN"),
        ('-"a"', "unknown operator: -STRING"),
        ("true + false;", "unknown operator: BOOLEAN + BOOLEAN"),
        ("true < false;", "unknown operator: BOOLEAN < BOOLEAN"),
        ("5; true + false; 5", "unknown operator: BOOLEAN + BOOLEAN"),
        ("if (10 > 1) { true + false; }", "unknown operator: BOOLEAN + BOOLEAN"),
        ("if (10 > 1) { if (10 > 1) { return true + false; } return 1; }",
         "unknown operator: BOOLEAN + BOOLEAN"),
        ("foobar", "identifier not found: foobar"),
        ('"Hello" - "World"', "unknown operator: STRING - STRING"),
        ('"a" * 2', "type mismatch: STRING * INTEGER"),
        ("1 == true", "type mismatch: INTEGER == BOOLEAN"),
    ])
    def test_error_messages(self, source, message):
        assert_error(eval_code(source), message)

    def test_error_short_circuits(self):
        """Nothing after an erroring statement is evaluated."""
        env = new_environment()
        program = parse(tokenize("let a = 1; a + true; let b = 2;"))
        result = evaluate(program, env)
        assert_error(result, "type mismatch: INTEGER + BOOLEAN")
        assert env.get("b") is None

    def test_error_in_argument_stops_call(self):
        source = "let f = fn(x) { 1 }; f(-true)"
        assert_error(eval_code(source), "unknown operator: -BOOLEAN")

    def test_left_operand_error_first(self):
        assert_error(eval_code("a + b"), "identifier not found: a")

    def test_error_carries_span(self):
        source = "let a = 1;\nlet b = a + true;"
        result = eval_code(source)
        assert result.span is not None
        assert result.span.start.line == 2
        assert result.span.start.column == 9

    def test_unknown_node_raises(self):
        """Nodes outside the closed AST set are a host fault."""
        class Unknown(Expression):
            pass

        loc = SourceLocation(1, 1, 0)
        with pytest.raises(RuntimeError):
            evaluate(Unknown(span=SourceSpan(loc, loc)), new_environment())


class TestEvaluatorAPI:
    """Test evaluator entry points and environments."""

    def test_evaluator_instance(self):
        program = parse(tokenize("1 + 2"))
        assert_integer(Evaluator().evaluate(program, new_environment()), 3)

    def test_environment_persists_between_runs(self):
        """A host can reuse one environment across programs."""
        env = new_environment()
        evaluate(parse(tokenize("let x = 10;")), env)
        assert_integer(evaluate(parse(tokenize("x * 2")), env), 20)

    def test_empty_program_is_null(self):
        assert eval_code("") is NULL

    def test_block_node_evaluates_directly(self):
        env = new_environment()
        env.set("a", Integer(3))
        program = parse(tokenize("a"))
        block = Block(span=program.span, statements=program.statements)
        assert_integer(evaluate(block, env), 3)

    def test_enclosed_environment_host_binding(self):
        root = new_environment()
        root.set("base", Integer(100))
        env = new_enclosed_environment(root, name="session")
        assert_integer(evaluate(parse(tokenize("base + 1")), env), 101)


class TestRun:
    """Test the high-level run() API."""

    def test_success(self):
        result = run("let newAdder = fn(x) { fn(y) { x + y } }; newAdder(2)(2);")
        assert isinstance(result, ExecutionResult)
        assert result.success
        assert_integer(result.value, 4)
        assert result.error_message is None
        assert result.diagnostic is None

    def test_runtime_error(self):
        result = run("let x = 1;\nx + true;")
        assert not result.success
        assert result.error_message == "type mismatch: INTEGER + BOOLEAN"
        assert result.diagnostic.code == "E201"
        assert result.diagnostic.source_line == "x + true;"
        assert "^" in result.diagnostic.format()

    def test_lexer_error(self):
        result = run("let x = @;")
        assert not result.success
        assert result.value is None
        assert result.diagnostic.code == "E001"

    def test_parser_error(self):
        result = run("let = 1;")
        assert not result.success
        assert result.diagnostic.code == "E101"
        assert result.diagnostics.has_errors

    def test_recursion_limit(self):
        result = run("let f = fn(n) { f(n + 1) }; f(0)")
        assert not result.success
        assert result.error_message == "maximum recursion depth exceeded"
        assert result.diagnostic.code == "E299"
        assert result.diagnostic.format() == "error[E299]: maximum recursion depth exceeded"

    def test_deeply_nested_source(self):
        """Nesting too deep for the parser is reported, not raised."""
        result = run("(" * 5000 + "1" + ")" * 5000)
        assert not result.success
        assert result.value is None
        assert result.diagnostic.code == "E299"
        assert result.diagnostics.has_errors

    def test_moderately_nested_source(self):
        result = run("(" * 400 + "1" + ")" * 400)
        assert result.success
        assert_integer(result.value, 1)

    def test_success_has_no_errors(self):
        result = run("1")
        assert not result.diagnostics.has_errors
        assert result.diagnostics.diagnostics == []

    def test_shared_environment(self):
        env = new_environment()
        run("let counter = 0;", env)
        run("++counter; ++counter;", env)
        result = run("counter", env)
        assert_integer(result.value, 2)

    def test_filename_in_diagnostic(self):
        result = run("undefinedName", filename="script.mk")
        assert result.diagnostic.span.start.filename == "script.mk"
        assert result.diagnostic.format().startswith("script.mk:1:1")
