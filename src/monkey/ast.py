"""
Abstract Syntax Tree (AST) node definitions for the monkey language.

The AST represents the structure of a parsed program, which is then
evaluated by monkey.runtime. The node set is closed: the evaluator handles
exactly the classes defined here.

Every node renders itself with str() in a canonical, fully parenthesized
form, e.g. ``(x + 2)`` for an infix expression and ``let a = 5;`` for a let
statement. Function objects use this to print their bodies.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Union, Any
from abc import ABC
from .tokens import SourceSpan, TokenType, operator_symbol


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class Literal(Expression):
    """A literal value (integer, string, bool)."""
    value: Union[int, str, bool]
    literal_type: TokenType  # INT_LITERAL, STRING_LITERAL, BOOL_LITERAL

    def __str__(self) -> str:
        if self.literal_type == TokenType.BOOL_LITERAL:
            return "true" if self.value else "false"
        return str(self.value)


@dataclass
class Identifier(Expression):
    """A variable or function name reference."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class UnaryOp(Expression):
    """A prefix operation (e.g., -n, !ok, ++i)."""
    operator: TokenType  # MINUS, BANG, INCREMENT, DECREMENT
    operand: Expression

    def __str__(self) -> str:
        return f"({operator_symbol(self.operator)}{self.operand})"


@dataclass
class BinaryOp(Expression):
    """An infix operation (e.g., a + b, x == y)."""
    left: Expression
    operator: TokenType
    right: Expression

    def __str__(self) -> str:
        return f"({self.left} {operator_symbol(self.operator)} {self.right})"


@dataclass
class IfExpr(Expression):
    """An if-else expression (produces the value of the branch taken)."""
    condition: Expression
    then_branch: "Block"
    else_branch: Optional["Block"] = None

    def __str__(self) -> str:
        text = f"if{self.condition} {self.then_branch}"
        if self.else_branch is not None:
            text += f"else {self.else_branch}"
        return text


@dataclass
class FunctionLiteral(Expression):
    """A function literal (e.g., fn(x, y) { x + y })."""
    parameters: List[Identifier]
    body: "Block"

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        return f"fn({params}) {self.body}"


@dataclass
class FunctionCall(Expression):
    """A call (e.g., add(1, 2) or fn(x) { x }(5))."""
    callee: Expression  # Identifier, FunctionLiteral or another call
    arguments: List[Expression] = field(default_factory=list)

    def __str__(self) -> str:
        args = ", ".join(str(a) for a in self.arguments)
        return f"{self.callee}({args})"


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class LetStatement(Statement):
    """A declaration in the current scope (e.g., let x = 42;)."""
    name: Identifier
    value: Expression

    def __str__(self) -> str:
        return f"let {self.name} = {self.value};"


@dataclass
class AssignmentStatement(Statement):
    """An assignment to an existing variable (e.g., x = 5;)."""
    target: Identifier
    value: Expression

    def __str__(self) -> str:
        return f"{self.target} = {self.value};"


@dataclass
class ReturnStatement(Statement):
    """A return statement."""
    value: Optional[Expression] = None

    def __str__(self) -> str:
        if self.value is None:
            return "return;"
        return f"return {self.value};"


@dataclass
class WhileStatement(Statement):
    """A while loop (e.g., while (i < 10) { ++i })."""
    condition: Expression
    body: "Block"

    def __str__(self) -> str:
        return f"while{self.condition} {self.body}"


@dataclass
class ExpressionStatement(Statement):
    """An expression used as a statement."""
    expression: Expression

    def __str__(self) -> str:
        return str(self.expression)


@dataclass
class Block(Statement):
    """A brace-delimited sequence of statements.

    The value of a block is the value of its last evaluated statement.
    """
    statements: List[Statement] = field(default_factory=list)

    def __str__(self) -> str:
        return "".join(str(s) for s in self.statements)


@dataclass
class Program(AstNode):
    """The root of a parsed source text."""
    statements: List[Statement] = field(default_factory=list)

    def __str__(self) -> str:
        return "".join(str(s) for s in self.statements)


# =============================================================================
# Visitor Helpers
# =============================================================================

class PrintVisitor(AstVisitor):
    """Debug visitor that prints the AST structure."""

    def __init__(self, indent: int = 0):
        self.indent = indent

    def _print(self, text: str) -> None:
        print("  " * self.indent + text)

    def generic_visit(self, node: AstNode) -> None:
        self._print(f"{node.__class__.__name__}")
        for name, value in node.__dict__.items():
            if name == "span":
                continue
            if isinstance(value, AstNode):
                self._print(f"  {name}:")
                PrintVisitor(self.indent + 2).generic_visit(value)
            elif isinstance(value, list):
                self._print(f"  {name}: [")
                for item in value:
                    if isinstance(item, AstNode):
                        PrintVisitor(self.indent + 2).generic_visit(item)
                    else:
                        self._print(f"    {item!r}")
                self._print("  ]")
            else:
                self._print(f"  {name}: {value!r}")


def print_ast(node: AstNode) -> None:
    """Print an AST node for debugging."""
    node.accept(PrintVisitor())
