"""
Runtime objects produced by the evaluator.

Every value the evaluator handles is an Object. Objects are immutable once
constructed; variable rebinding happens in the Environment, never inside an
Object. Booleans and Null only ever exist as the TRUE / FALSE / NULL
singletons so they can be compared by identity.

ReturnValue and Error are control-flow sentinels: the evaluator threads
them through ordinary return paths and stops evaluating as soon as one
appears.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from ..ast import Block, Identifier
from ..tokens import SourceSpan

if TYPE_CHECKING:
    from .environment import Environment


class ObjectType(Enum):
    """Kind tags; the value is the spelling used in diagnostics."""
    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    STRING = "STRING"
    NULL = "NULL"
    FUNCTION = "FUNCTION"
    RETURN_VALUE = "RETURN_VALUE"
    ERROR = "ERROR"

    def __str__(self) -> str:
        return self.value


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def wrap_int64(n: int) -> int:
    """Wrap an arbitrary int to the signed 64-bit range (two's complement)."""
    n &= 0xFFFFFFFFFFFFFFFF
    if n > INT64_MAX:
        n -= 1 << 64
    return n


class Object:
    """Base class for all runtime objects."""

    @property
    def type(self) -> ObjectType:
        raise NotImplementedError

    def inspect(self) -> str:
        """Textual representation of the value."""
        raise NotImplementedError

    def is_truthy(self) -> bool:
        """Everything is truthy except FALSE and NULL."""
        return True

    def __str__(self) -> str:
        return self.inspect()


@dataclass(frozen=True)
class Integer(Object):
    value: int

    @property
    def type(self) -> ObjectType:
        return ObjectType.INTEGER

    def inspect(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Boolean(Object):
    value: bool

    @property
    def type(self) -> ObjectType:
        return ObjectType.BOOLEAN

    def inspect(self) -> str:
        return "true" if self.value else "false"

    def is_truthy(self) -> bool:
        return self.value


@dataclass(frozen=True)
class String(Object):
    value: str

    @property
    def type(self) -> ObjectType:
        return ObjectType.STRING

    def inspect(self) -> str:
        return self.value


class Null(Object):
    """The absence of a meaningful value. Every Null() is the NULL singleton."""

    _instance: Optional["Null"] = None

    def __new__(cls) -> "Null":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def type(self) -> ObjectType:
        return ObjectType.NULL

    def inspect(self) -> str:
        return "null"

    def is_truthy(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NULL"


@dataclass(frozen=True, eq=False)
class Function(Object):
    """A closure: parameters and body plus the environment it was created in.

    The environment is held by reference, so the function observes later
    changes to the scope it captured.
    """
    parameters: List[Identifier]
    body: Block
    env: "Environment" = field(repr=False)

    @property
    def type(self) -> ObjectType:
        return ObjectType.FUNCTION

    def inspect(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        return f"fn({params}) {{\n{self.body}\n}}"


@dataclass(frozen=True)
class ReturnValue(Object):
    """Wraps the operand of a return statement until the call boundary."""
    value: Object

    @property
    def type(self) -> ObjectType:
        return ObjectType.RETURN_VALUE

    def inspect(self) -> str:
        return self.value.inspect()


@dataclass(frozen=True, eq=False)
class Error(Object):
    """A runtime failure. Errors are returned, never raised."""
    message: str
    code: str = "E200"
    span: Optional[SourceSpan] = None

    @property
    def type(self) -> ObjectType:
        return ObjectType.ERROR

    def inspect(self) -> str:
        return f"ERROR: {self.message}"

    def at(self, span: Optional[SourceSpan]) -> "Error":
        """Attach a source span unless one is already set."""
        if self.span is not None or span is None:
            return self
        return replace(self, span=span)


TRUE = Boolean(True)
FALSE = Boolean(False)
NULL = Null()


# Convenience constructors

def int_val(n: int) -> Integer:
    """Create an integer object, wrapped to 64 bits."""
    return Integer(wrap_int64(int(n)))


def bool_val(b: bool) -> Boolean:
    """Return the TRUE or FALSE singleton."""
    return TRUE if b else FALSE


def string_val(s: str) -> String:
    """Create a string object."""
    return String(str(s))


def is_error(obj: Optional[Object]) -> bool:
    return obj is not None and obj.type == ObjectType.ERROR


# --- Runtime error constructors ---

def error_type_mismatch(left: ObjectType, operator: str, right: ObjectType) -> Error:
    """E201: Operand kinds differ."""
    return Error(f"type mismatch: {left} {operator} {right}", code="E201")


def error_unknown_prefix_operator(operator: str, operand: ObjectType) -> Error:
    """E202: Prefix operator not defined for the operand kind."""
    return Error(f"unknown operator: {operator}{operand}", code="E202")


def error_unknown_infix_operator(left: ObjectType, operator: str, right: ObjectType) -> Error:
    """E202: Infix operator not defined for the operand kinds."""
    return Error(f"unknown operator: {left} {operator} {right}", code="E202")


def error_identifier_not_found(name: str) -> Error:
    """E203: Name not bound anywhere in the scope chain."""
    return Error(f"identifier not found: {name}", code="E203")


def error_not_callable(callee: ObjectType) -> Error:
    """E204: Call target is not a function."""
    return Error(f"not a function: {callee}", code="E204")


def error_division_by_zero() -> Error:
    """E205: Integer division by zero."""
    return Error("division by zero", code="E205")


def error_already_declared(name: str) -> Error:
    """E301: let of a name already bound in the same scope."""
    return Error(f"Identifier '{name}' has already been declared", code="E301")


def error_not_defined(name: str) -> Error:
    """E302: Assignment to a name with no local binding."""
    return Error(f"{name} is not defined", code="E302")


def error_recursion_depth() -> Error:
    """E299: Evaluation nested deeper than the interpreter allows."""
    return Error("maximum recursion depth exceeded", code="E299")
