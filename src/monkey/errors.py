"""
Front-end exceptions and diagnostics.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Runtime type/operator errors (reported as Error objects)
- E3xx: Runtime binding errors (reported as Error objects)

Lexer and parser failures are raised as exceptions carrying a Diagnostic.
Runtime failures are ordinary Error objects (see monkey.runtime.values);
they are converted to Diagnostics only for presentation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceLocation, SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """One reportable problem, tied to a source span when one is known."""
    code: str                       # E001, E101, E203, ...
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # Text of the line the span starts on
    hints: List[str] = field(default_factory=list)

    def _header(self) -> str:
        prefix = f"{self.span.start}: " if self.span is not None else ""
        return f"{prefix}{self.severity.value}[{self.code}]: {self.message}"

    def _snippet(self) -> List[str]:
        """Gutter, source line and caret underline for the span."""
        start, end = self.span.start, self.span.end
        if end.line == start.line:
            width = end.column - start.column
        else:
            width = len(self.source_line) + 1 - start.column
        carets = "^" * max(1, width)
        return [
            "  |",
            f"{start.line:>3} | {self.source_line}",
            f"    | {' ' * (start.column - 1)}{carets}",
        ]

    def format(self, show_source: bool = True) -> str:
        """Render as `line:col: error[CODE]: message` plus source context."""
        lines = [self._header()]
        if show_source and self.span is not None and self.source_line is not None:
            lines.extend(self._snippet())
        lines.extend(f"    = hint: {hint}" for hint in self.hints)
        return "\n".join(lines)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": _span_json(self.span),
            "hints": list(self.hints),
        }


def _location_json(loc: SourceLocation) -> dict:
    return {"line": loc.line, "column": loc.column, "offset": loc.offset}


def _span_json(span: Optional[SourceSpan]) -> Optional[dict]:
    if span is None:
        return None
    return {"start": _location_json(span.start), "end": _location_json(span.end)}


class MonkeyError(Exception):
    """Base exception for front-end errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(MonkeyError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(MonkeyError):
    """Error during parsing (E1xx)."""
    pass


def _diagnostic(code: str, message: str, span: SourceSpan,
                source_line: Optional[str] = None, *hints: str) -> Diagnostic:
    return Diagnostic(code=code, message=message, span=span,
                      source_line=source_line, hints=list(hints))


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    return LexerError(_diagnostic("E001", f"unexpected character '{char}'", span, source_line))


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    return LexerError(_diagnostic(
        "E002", "unterminated string literal", span, source_line,
        "string literals must be closed with a matching '\"'",
    ))


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    return LexerError(_diagnostic(
        "E005", f"invalid escape sequence '\\{seq}'", span, source_line,
        "valid escape sequences: \\n, \\t, \\r, \\\", \\\\",
    ))


def error_integer_out_of_range(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006: Integer literal does not fit in 64 bits."""
    return LexerError(_diagnostic(
        "E006", f"could not parse '{text}' as integer", span, source_line,
        "integer literals must fit in a signed 64-bit integer",
    ))


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    return ParserError(_diagnostic("E101", f"expected {expected}, found {found}", span, source_line))


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of input."""
    return ParserError(_diagnostic("E102", f"unexpected end of input, expected {expected}", span))


def error_invalid_expression(found: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Invalid expression."""
    return ParserError(_diagnostic("E103", f"invalid expression starting at {found}", span, source_line))


def error_invalid_increment_target(operator: str, span: SourceSpan,
                                   source_line: str = None) -> ParserError:
    """E104: ++ / -- applied to something other than a name."""
    return ParserError(_diagnostic(
        "E104", f"invalid operand for '{operator}'", span, source_line,
        f"'{operator}' can only be applied to a variable name",
    ))


class DiagnosticCollector:
    """Diagnostics gathered while running one source text."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def add_error(self, error: MonkeyError) -> None:
        """Record the diagnostic carried by a front-end exception."""
        self.add(error.diagnostic)

    @property
    def has_errors(self) -> bool:
        return any(d.severity == ErrorSeverity.ERROR for d in self.diagnostics)
