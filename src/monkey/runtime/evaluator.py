"""
Tree-walking evaluator.

Evaluates AST nodes against an Environment to produce Objects. Control flow
is carried by sentinel objects rather than exceptions: every recursive call
is checked, an Error or ReturnValue stops the current node immediately and
becomes its result. ReturnValue is unwrapped once, at the function call
boundary or at the top of the program.
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union

from .values import (
    Object, ObjectType, Integer, Function, ReturnValue, Error,
    TRUE, FALSE, NULL,
    int_val, bool_val, string_val, is_error,
    error_type_mismatch, error_unknown_prefix_operator,
    error_unknown_infix_operator, error_identifier_not_found,
    error_not_callable, error_division_by_zero, error_recursion_depth,
)
from .environment import Environment, new_environment, new_enclosed_environment

from ..ast import (
    AstNode, Program, Statement, Block,
    LetStatement, AssignmentStatement, ReturnStatement,
    WhileStatement, ExpressionStatement,
    Expression, Literal, Identifier, UnaryOp, BinaryOp,
    IfExpr, FunctionLiteral, FunctionCall,
)
from ..tokens import TokenType, operator_symbol
from ..errors import Diagnostic, DiagnosticCollector, MonkeyError


# Python frame budget while evaluating; roughly eight frames per monkey call
DEFAULT_MAX_DEPTH = 10000


def _is_sentinel(obj: Object) -> bool:
    return obj.type in (ObjectType.RETURN_VALUE, ObjectType.ERROR)


@contextmanager
def recursion_limit(limit: int) -> Iterator[None]:
    """Temporarily raise the interpreter recursion limit to at least `limit`."""
    previous = sys.getrecursionlimit()
    if limit > previous:
        sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


class Evaluator:
    """
    Tree-walking evaluator.

    Evaluates AST nodes by dispatching to type-specific methods. Holds no
    state between calls; the Environment passed in carries all bindings.

    Each monkey call costs several Python frames, so evaluation runs with
    the interpreter recursion limit raised to `max_depth`. Nesting beyond
    that yields an E299 Error rather than an exception.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth

    def evaluate(self, node: AstNode, env: Environment) -> Object:
        """Evaluate any node to an Object."""
        with recursion_limit(self.max_depth):
            try:
                return self._evaluate(node, env)
            except RecursionError:
                return error_recursion_depth()

    def _evaluate(self, node: AstNode, env: Environment) -> Object:
        if isinstance(node, Program):
            return self._eval_program(node, env)
        elif isinstance(node, Statement):
            return self._eval_statement(node, env)
        elif isinstance(node, Expression):
            return self._eval_expression(node, env)
        else:
            raise RuntimeError(f"Unknown node type: {type(node).__name__}")

    # =========================================================================
    # Statements
    # =========================================================================

    def _eval_program(self, program: Program, env: Environment) -> Object:
        """Evaluate top-level statements; a return ends the program."""
        result: Object = NULL
        for stmt in program.statements:
            result = self._eval_statement(stmt, env)
            if isinstance(result, ReturnValue):
                return result.value
            if is_error(result):
                return result
        return result

    def _eval_statement(self, stmt: Statement, env: Environment) -> Object:
        """Evaluate a statement."""
        if isinstance(stmt, ExpressionStatement):
            return self._eval_expression(stmt.expression, env)
        elif isinstance(stmt, LetStatement):
            return self._eval_let(stmt, env)
        elif isinstance(stmt, AssignmentStatement):
            return self._eval_assignment(stmt, env)
        elif isinstance(stmt, ReturnStatement):
            return self._eval_return(stmt, env)
        elif isinstance(stmt, WhileStatement):
            return self._eval_while(stmt, env)
        elif isinstance(stmt, Block):
            return self._eval_block(stmt, env)
        else:
            raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")

    def _eval_block(self, block: Block, env: Environment) -> Object:
        """Evaluate statements in order; sentinels pass through unchanged."""
        result: Object = NULL
        for stmt in block.statements:
            result = self._eval_statement(stmt, env)
            if _is_sentinel(result):
                return result
        return result

    def _eval_let(self, stmt: LetStatement, env: Environment) -> Object:
        """Declare a new binding in the current scope."""
        value = self._eval_expression(stmt.value, env)
        if is_error(value):
            return value
        result = env.set(stmt.name.name, value)
        if is_error(result):
            return result.at(stmt.span)
        return result

    def _eval_assignment(self, stmt: AssignmentStatement, env: Environment) -> Object:
        """Rebind an existing name in the current scope."""
        value = self._eval_expression(stmt.value, env)
        if is_error(value):
            return value
        result = env.update(stmt.target.name, value)
        if is_error(result):
            return result.at(stmt.span)
        return result

    def _eval_return(self, stmt: ReturnStatement, env: Environment) -> Object:
        """Wrap the operand (or NULL) as a ReturnValue."""
        if stmt.value is None:
            return ReturnValue(NULL)
        value = self._eval_expression(stmt.value, env)
        if is_error(value):
            return value
        return ReturnValue(value)

    def _eval_while(self, stmt: WhileStatement, env: Environment) -> Object:
        """Run the body in the enclosing scope while the condition holds."""
        while True:
            condition = self._eval_expression(stmt.condition, env)
            if is_error(condition):
                return condition
            if not condition.is_truthy():
                return NULL
            result = self._eval_block(stmt.body, env)
            if _is_sentinel(result):
                return result

    # =========================================================================
    # Expressions
    # =========================================================================

    def _eval_expression(self, expr: Expression, env: Environment) -> Object:
        """Evaluate an expression to produce an Object."""
        if isinstance(expr, Literal):
            return self._eval_literal(expr)
        elif isinstance(expr, Identifier):
            return self._eval_identifier(expr, env)
        elif isinstance(expr, UnaryOp):
            return self._eval_unary_op(expr, env)
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr, env)
        elif isinstance(expr, IfExpr):
            return self._eval_if_expr(expr, env)
        elif isinstance(expr, FunctionLiteral):
            return Function(expr.parameters, expr.body, env)
        elif isinstance(expr, FunctionCall):
            return self._eval_function_call(expr, env)
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_literal(self, lit: Literal) -> Object:
        """Evaluate a literal value."""
        if lit.literal_type == TokenType.INT_LITERAL:
            return int_val(lit.value)
        elif lit.literal_type == TokenType.BOOL_LITERAL:
            return bool_val(lit.value)
        elif lit.literal_type == TokenType.STRING_LITERAL:
            return string_val(lit.value)
        else:
            raise RuntimeError(f"Unknown literal type: {lit.literal_type}")

    def _eval_identifier(self, ident: Identifier, env: Environment) -> Object:
        """Evaluate an identifier (variable lookup)."""
        value = env.get(ident.name)
        if value is None:
            return error_identifier_not_found(ident.name).at(ident.span)
        return value

    def _eval_unary_op(self, op: UnaryOp, env: Environment) -> Object:
        """Evaluate a prefix operation."""
        if op.operator in (TokenType.INCREMENT, TokenType.DECREMENT):
            return self._eval_increment(op, env)

        operand = self._eval_expression(op.operand, env)
        if is_error(operand):
            return operand

        if op.operator == TokenType.BANG:
            return FALSE if operand.is_truthy() else TRUE
        elif op.operator == TokenType.MINUS:
            if not isinstance(operand, Integer):
                return error_unknown_prefix_operator("-", operand.type).at(op.span)
            return int_val(-operand.value)
        else:
            return error_unknown_prefix_operator(
                operator_symbol(op.operator), operand.type
            ).at(op.span)

    def _eval_increment(self, op: UnaryOp, env: Environment) -> Object:
        """Evaluate ++name / --name, rebinding the name in the current scope."""
        if not isinstance(op.operand, Identifier):
            # Nothing to rebind; the parser rejects this, hand-built trees may not
            operand = self._eval_expression(op.operand, env)
            if is_error(operand):
                return operand
            return error_unknown_prefix_operator(
                operator_symbol(op.operator), operand.type
            ).at(op.span)

        name = op.operand.name
        current = env.get(name)
        if current is None:
            return error_identifier_not_found(name).at(op.operand.span)
        if not isinstance(current, Integer):
            return error_unknown_prefix_operator(
                operator_symbol(op.operator), current.type
            ).at(op.span)
        step = 1 if op.operator == TokenType.INCREMENT else -1
        return env.upsert(name, int_val(current.value + step))

    def _eval_binary_op(self, op: BinaryOp, env: Environment) -> Object:
        """Evaluate an infix operation, left operand first."""
        left = self._eval_expression(op.left, env)
        if is_error(left):
            return left
        right = self._eval_expression(op.right, env)
        if is_error(right):
            return right

        symbol = operator_symbol(op.operator)

        if left.type != right.type:
            return error_type_mismatch(left.type, symbol, right.type).at(op.span)

        if left.type == ObjectType.INTEGER:
            result = self._eval_integer_infix(op.operator, left.value, right.value)
        elif left.type == ObjectType.STRING:
            result = self._eval_string_infix(op.operator, left.value, right.value)
        elif op.operator == TokenType.EQ:
            result = bool_val(left is right)
        elif op.operator == TokenType.NE:
            result = bool_val(left is not right)
        else:
            result = None

        if result is None:
            return error_unknown_infix_operator(left.type, symbol, right.type).at(op.span)
        if is_error(result):
            return result.at(op.span)
        return result

    def _eval_integer_infix(self, operator: TokenType, left: int, right: int) -> Optional[Object]:
        """Integer arithmetic and comparison. None means unsupported."""
        if operator == TokenType.PLUS:
            return int_val(left + right)
        elif operator == TokenType.MINUS:
            return int_val(left - right)
        elif operator == TokenType.STAR:
            return int_val(left * right)
        elif operator == TokenType.SLASH:
            if right == 0:
                return error_division_by_zero()
            # Truncate toward zero
            quotient = abs(left) // abs(right)
            if (left < 0) != (right < 0):
                quotient = -quotient
            return int_val(quotient)
        elif operator == TokenType.LT:
            return bool_val(left < right)
        elif operator == TokenType.GT:
            return bool_val(left > right)
        elif operator == TokenType.EQ:
            return bool_val(left == right)
        elif operator == TokenType.NE:
            return bool_val(left != right)
        return None

    def _eval_string_infix(self, operator: TokenType, left: str, right: str) -> Optional[Object]:
        """String concatenation and equality. None means unsupported."""
        if operator == TokenType.PLUS:
            return string_val(left + right)
        elif operator == TokenType.EQ:
            return bool_val(left == right)
        elif operator == TokenType.NE:
            return bool_val(left != right)
        return None

    def _eval_if_expr(self, if_expr: IfExpr, env: Environment) -> Object:
        """Evaluate an if expression; branches share the enclosing scope."""
        condition = self._eval_expression(if_expr.condition, env)
        if is_error(condition):
            return condition
        if condition.is_truthy():
            return self._eval_block(if_expr.then_branch, env)
        elif if_expr.else_branch is not None:
            return self._eval_block(if_expr.else_branch, env)
        else:
            return NULL

    def _eval_function_call(self, call: FunctionCall, env: Environment) -> Object:
        """Evaluate a call: callee, then arguments, then the body."""
        callee = self._eval_expression(call.callee, env)
        if is_error(callee):
            return callee
        if not isinstance(callee, Function):
            return error_not_callable(callee.type).at(call.span)

        args = self._eval_arguments(call.arguments, env)
        if isinstance(args, Error):
            return args

        return self._apply_function(callee, args, call)

    def _eval_arguments(self, arguments: List[Expression], env: Environment) -> Union[List[Object], Error]:
        """Evaluate arguments left to right, stopping at the first error."""
        values = []
        for arg in arguments:
            value = self._eval_expression(arg, env)
            if is_error(value):
                return value
            values.append(value)
        return values

    def _apply_function(self, function: Function, args: List[Object], call: FunctionCall) -> Object:
        """Run a function body in a fresh scope enclosing its closure."""
        name = call.callee.name if isinstance(call.callee, Identifier) else "<fn>"
        frame = new_enclosed_environment(function.env, name=f"call:{name}")

        # Missing arguments bind to NULL; extra arguments are ignored
        for i, param in enumerate(function.parameters):
            value = args[i] if i < len(args) else NULL
            bound = frame.set(param.name, value)
            if is_error(bound):
                return bound.at(param.span)

        result = self._eval_block(function.body, frame)
        if isinstance(result, ReturnValue):
            return result.value
        return result


def evaluate(node: AstNode, env: Environment) -> Object:
    """
    Evaluate a node in an environment.

    This is a convenience wrapper around Evaluator().evaluate(). Language
    errors come back as Error objects; nothing is raised for them.
    """
    return Evaluator().evaluate(node, env)


# =============================================================================
# High-level API
# =============================================================================

@dataclass
class ExecutionResult:
    """Result of running a source text."""
    success: bool
    value: Optional[Object] = None
    error_message: Optional[str] = None
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)

    @property
    def diagnostic(self) -> Optional[Diagnostic]:
        """The first diagnostic recorded, if any."""
        if self.diagnostics.diagnostics:
            return self.diagnostics.diagnostics[0]
        return None


def error_to_diagnostic(error: Error, source: str = "") -> Diagnostic:
    """Convert a runtime Error object into a Diagnostic for display."""
    source_line = None
    if error.span is not None and source:
        lines = source.splitlines()
        line_num = error.span.start.line
        if 1 <= line_num <= len(lines):
            source_line = lines[line_num - 1]
    return Diagnostic(
        code=error.code,
        message=error.message,
        span=error.span,
        source_line=source_line,
    )


def run(
    source: str,
    env: Optional[Environment] = None,
    filename: Optional[str] = None,
) -> ExecutionResult:
    """
    High-level API to lex, parse and evaluate source text in one call.

        from monkey import run

        result = run('''
            let newAdder = fn(x) { fn(y) { x + y } };
            let addTwo = newAdder(2);
            addTwo(2);
        ''')

        if result.success:
            print(result.value.inspect())
        else:
            print(f"Error: {result.error_message}")

    Args:
        source: monkey source code
        env: Environment to evaluate in; a fresh root is created if omitted
        filename: Optional filename for diagnostics

    Returns:
        ExecutionResult with the final value or the failure
    """
    from ..lexer import tokenize
    from ..parser import parse

    result = ExecutionResult(success=False)

    try:
        with recursion_limit(DEFAULT_MAX_DEPTH):
            program = parse(tokenize(source, filename), filename, source)
    except MonkeyError as e:
        result.diagnostics.add_error(e)
        result.error_message = e.diagnostic.message
        return result
    except RecursionError:
        # Source nested too deeply for the recursive descent parser
        result.diagnostics.add(error_to_diagnostic(error_recursion_depth()))
        result.error_message = result.diagnostic.message
        return result

    if env is None:
        env = new_environment()

    value = evaluate(program, env)

    result.value = value
    if isinstance(value, Error):
        result.error_message = value.message
        result.diagnostics.add(error_to_diagnostic(value, source))
        return result

    result.success = True
    return result
