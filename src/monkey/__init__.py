"""
monkey - a small expression language with closures.

This module provides:
- Lexer: Tokenizes monkey source code
- Parser: Builds an AST from tokens
- Evaluator: Walks the AST against an Environment to produce Objects

Usage:
    from monkey import tokenize, parse, evaluate, new_environment

    source = '''
    let counter = 0;
    while (counter < 3) { ++counter };
    counter;
    '''
    program = parse(tokenize(source))
    result = evaluate(program, new_environment())
    print(result.inspect())   # 3

    # Or let run() report failures instead of raising
    from monkey import run
    result = run('5 + true;')
    if not result.success:
        print(result.diagnostic.format())
"""

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    parse_source,
)

from .ast import (
    # Base
    AstNode,
    AstVisitor,
    # Expressions
    Expression,
    Literal,
    Identifier,
    UnaryOp,
    BinaryOp,
    IfExpr,
    FunctionLiteral,
    FunctionCall,
    # Statements
    Statement,
    LetStatement,
    AssignmentStatement,
    ReturnStatement,
    WhileStatement,
    ExpressionStatement,
    Block,
    Program,
    # Helpers
    PrintVisitor,
    print_ast,
)

from .errors import (
    MonkeyError,
    LexerError,
    ParserError,
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
)

from .runtime import (
    # Values
    ObjectType,
    Object,
    Integer,
    Boolean,
    String,
    Null,
    Function,
    ReturnValue,
    Error,
    TRUE,
    FALSE,
    NULL,
    # Environment
    Environment,
    new_environment,
    new_enclosed_environment,
    # Evaluator
    Evaluator,
    ExecutionResult,
    evaluate,
    run,
)

__version__ = "0.1.0"

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',

    # Lexer
    'Lexer',
    'tokenize',

    # Parser
    'Parser',
    'parse',
    'parse_source',

    # AST
    'AstNode',
    'AstVisitor',
    'Expression',
    'Literal',
    'Identifier',
    'UnaryOp',
    'BinaryOp',
    'IfExpr',
    'FunctionLiteral',
    'FunctionCall',
    'Statement',
    'LetStatement',
    'AssignmentStatement',
    'ReturnStatement',
    'WhileStatement',
    'ExpressionStatement',
    'Block',
    'Program',
    'PrintVisitor',
    'print_ast',

    # Errors
    'MonkeyError',
    'LexerError',
    'ParserError',
    'Diagnostic',
    'DiagnosticCollector',
    'ErrorSeverity',

    # Runtime
    'ObjectType',
    'Object',
    'Integer',
    'Boolean',
    'String',
    'Null',
    'Function',
    'ReturnValue',
    'Error',
    'TRUE',
    'FALSE',
    'NULL',
    'Environment',
    'new_environment',
    'new_enclosed_environment',
    'Evaluator',
    'ExecutionResult',
    'evaluate',
    'run',
]
