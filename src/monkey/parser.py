"""
Recursive descent parser for the monkey language.

Converts a token stream into an Abstract Syntax Tree (AST).
Blocks are brace-delimited; semicolons after statements are optional.
"""

from typing import List, Optional
from .tokens import Token, TokenType, SourceSpan, operator_symbol
from .ast import (
    # Expressions
    Expression, Literal, Identifier, BinaryOp, UnaryOp,
    FunctionCall, FunctionLiteral, IfExpr,
    # Statements
    Statement, LetStatement, AssignmentStatement, ReturnStatement,
    WhileStatement, ExpressionStatement, Block, Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_expression,
    error_invalid_increment_target,
)


class Parser:
    """
    Recursive descent parser for monkey source.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    The parser implements standard precedence climbing for expressions:
        Lowest:  == !=
                 < >
                 + -
                 * /
                 unary (- ! ++ --)
        Highest: call
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 4,
        TokenType.GT: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.STAR: 6,
        TokenType.SLASH: 6,
    }

    UNARY_OPERATORS = (
        TokenType.MINUS, TokenType.BANG,
        TokenType.INCREMENT, TokenType.DECREMENT,
    )

    def __init__(self, tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source  # Original source code for error messages
        self.pos = 0

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _check_ahead(self, token_type: TokenType, offset: int = 1) -> bool:
        """Check if token at current position + offset is of given type."""
        return self._peek(offset).type == token_type

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _source_line(self, line_num: int) -> Optional[str]:
        """Get a line of the original source (1-indexed), if available."""
        if self.source is None:
            return None
        lines = self.source.splitlines()
        if 1 <= line_num <= len(lines):
            return lines[line_num - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(
            expected, token.type.name, token.span,
            self._source_line(token.span.start.line)
        )

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to current position."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression."""
        return self._parse_binary_expr(0)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator

            # All binary operators are left-associative
            right = self._parse_binary_expr(precedence + 1)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse prefix expressions (- ! ++ --)."""
        if self._check_any(*self.UNARY_OPERATORS):
            op = self._advance()
            operand = self._parse_unary_expr()
            if op.type in (TokenType.INCREMENT, TokenType.DECREMENT) and not isinstance(operand, Identifier):
                raise error_invalid_increment_target(
                    operator_symbol(op.type), operand.span,
                    self._source_line(operand.span.start.line)
                )
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        return self._parse_postfix_expr()

    def _parse_postfix_expr(self) -> Expression:
        """Parse call expressions."""
        expr = self._parse_primary_expr()

        while self._check(TokenType.LPAREN):
            expr = self._parse_call(expr)

        return expr

    def _parse_call(self, callee: Expression) -> FunctionCall:
        """Parse a call's argument list."""
        self._advance()  # consume '('
        arguments = []
        if not self._check(TokenType.RPAREN):
            arguments.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                arguments.append(self._parse_expression())
        end = self._consume(TokenType.RPAREN, "')'")
        return FunctionCall(
            span=SourceSpan(callee.span.start, end.span.end),
            callee=callee,
            arguments=arguments
        )

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, identifiers, groups, fn, if)."""
        token = self._current()

        if self._check_any(TokenType.INT_LITERAL, TokenType.STRING_LITERAL,
                           TokenType.BOOL_LITERAL):
            self._advance()
            return Literal(span=token.span, value=token.value, literal_type=token.type)

        if self._check(TokenType.IDENTIFIER):
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if self._check(TokenType.LPAREN):
            self._advance()  # consume '('
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if self._check(TokenType.FN):
            return self._parse_function_literal()

        if self._check(TokenType.IF):
            return self._parse_if_expr()

        if token.type == TokenType.EOF:
            raise error_unexpected_eof("expression", token.span)
        raise error_invalid_expression(
            token.type.name, token.span, self._source_line(token.span.start.line)
        )

    def _parse_function_literal(self) -> FunctionLiteral:
        """Parse a function literal: fn(a, b) { ... }"""
        start = self._advance()  # consume 'fn'
        self._consume(TokenType.LPAREN, "'('")
        parameters = []
        if not self._check(TokenType.RPAREN):
            parameters.append(self._parse_parameter())
            while self._match(TokenType.COMMA):
                parameters.append(self._parse_parameter())
        self._consume(TokenType.RPAREN, "')'")
        body = self._parse_block()
        return FunctionLiteral(
            span=self._span_from(start),
            parameters=parameters,
            body=body
        )

    def _parse_parameter(self) -> Identifier:
        """Parse a function parameter."""
        token = self._consume(TokenType.IDENTIFIER, "parameter name")
        return Identifier(span=token.span, name=token.value)

    def _parse_condition(self) -> Expression:
        """Parse a parenthesized condition of an if or while."""
        self._consume(TokenType.LPAREN, "'('")
        condition = self._parse_expression()
        self._consume(TokenType.RPAREN, "')'")
        return condition

    def _parse_if_expr(self) -> IfExpr:
        """Parse an if expression: if (cond) { ... } else { ... }"""
        start = self._advance()  # consume 'if'
        condition = self._parse_condition()
        then_branch = self._parse_block()

        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_block()

        return IfExpr(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch
        )

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a single statement, including an optional trailing ';'."""
        if self._check(TokenType.LET):
            stmt = self._parse_let_statement()
        elif self._check(TokenType.RETURN):
            stmt = self._parse_return_statement()
        elif self._check(TokenType.WHILE):
            stmt = self._parse_while_statement()
        elif self._check(TokenType.IDENTIFIER) and self._check_ahead(TokenType.ASSIGN):
            stmt = self._parse_assignment_statement()
        else:
            start = self._current()
            expr = self._parse_expression()
            stmt = ExpressionStatement(span=self._span_from(start), expression=expr)

        self._match(TokenType.SEMICOLON)
        return stmt

    def _parse_let_statement(self) -> LetStatement:
        """Parse a let statement: let name = value"""
        start = self._advance()  # consume 'let'
        name_token = self._consume(TokenType.IDENTIFIER, "identifier")
        self._consume(TokenType.ASSIGN, "'='")
        value = self._parse_expression()
        return LetStatement(
            span=self._span_from(start),
            name=Identifier(span=name_token.span, name=name_token.value),
            value=value
        )

    def _parse_assignment_statement(self) -> AssignmentStatement:
        """Parse an assignment statement: name = value"""
        start = self._advance()  # consume identifier
        self._advance()  # consume '='
        value = self._parse_expression()
        return AssignmentStatement(
            span=self._span_from(start),
            target=Identifier(span=start.span, name=start.value),
            value=value
        )

    def _parse_return_statement(self) -> ReturnStatement:
        """Parse a return statement; the value is optional."""
        start = self._advance()  # consume 'return'

        value = None
        if not self._check_any(TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF):
            value = self._parse_expression()

        return ReturnStatement(span=self._span_from(start), value=value)

    def _parse_while_statement(self) -> WhileStatement:
        """Parse a while loop: while (cond) { ... }"""
        start = self._advance()  # consume 'while'
        condition = self._parse_condition()
        body = self._parse_block()
        return WhileStatement(
            span=self._span_from(start),
            condition=condition,
            body=body
        )

    def _parse_block(self) -> Block:
        """Parse a brace-delimited block."""
        start = self._consume(TokenType.LBRACE, "'{'")
        statements = []

        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            if self._match(TokenType.SEMICOLON):
                continue
            statements.append(self._parse_statement())

        self._consume(TokenType.RBRACE, "'}'")

        return Block(span=self._span_from(start), statements=statements)

    def parse_program(self) -> Program:
        """Parse the whole token stream into a Program."""
        start = self._current()
        statements = []

        while not self._is_at_end():
            if self._match(TokenType.SEMICOLON):
                continue
            statements.append(self._parse_statement())

        return Program(span=self._span_from(start), statements=statements)


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None) -> Program:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional filename for error messages
        source: Optional original source code for error messages

    Returns:
        Parsed Program AST

    Raises:
        ParserError: If parsing fails
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_program()


def parse_source(source: str, filename: Optional[str] = None) -> Program:
    """Tokenize and parse source text in one step."""
    from .lexer import tokenize
    return parse(tokenize(source, filename), filename, source)
