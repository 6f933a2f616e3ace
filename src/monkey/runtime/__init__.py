"""
monkey runtime - Tree-walking evaluator for monkey programs.

This module provides:
- Object and its subclasses: runtime values and control-flow sentinels
- Environment: chained lexical scopes
- Evaluator: evaluates AST nodes to Objects
- run: lex, parse and evaluate a source string in one call
"""

from .values import (
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
    INT64_MIN,
    INT64_MAX,
    wrap_int64,
    int_val,
    bool_val,
    string_val,
    is_error,
)

from .environment import (
    Environment,
    new_environment,
    new_enclosed_environment,
)

from .evaluator import (
    Evaluator,
    ExecutionResult,
    evaluate,
    error_to_diagnostic,
    run,
)

__all__ = [
    # Values
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
    'INT64_MIN',
    'INT64_MAX',
    'wrap_int64',
    'int_val',
    'bool_val',
    'string_val',
    'is_error',

    # Environment
    'Environment',
    'new_environment',
    'new_enclosed_environment',

    # Evaluator
    'Evaluator',
    'ExecutionResult',
    'evaluate',
    'error_to_diagnostic',
    'run',
]
