"""
Condition expressions - a small, closed boolean grammar for Branch nodes.

Supported:
    literals     12, -3.5, "text", 'text', true, false, null, undefined,
                 [1, 2], {"key": "value"}
    equality     ==  ===  !=  !==   (strict: a boolean never equals a number)
    comparison   <  <=  >  >=       (numbers with numbers, strings with strings)
    logic        &&  ||  !          (also: and, or, not)
    grouping     ( ... )

There are no names, attribute access or calls, so nothing outside the
expression text can be reached. Precedence follows JavaScript:
``!`` > comparison > equality > ``&&`` > ``||``.
"""

from __future__ import annotations

import ast
import json
import operator
import re
from typing import Any, Callable, Dict, List, Optional, Tuple


class ExpressionError(ValueError):
    """Expression could not be parsed or evaluated."""

    def __init__(self, message: str, expression: str = "", position: int = 0):
        super().__init__(message)
        self.expression = expression
        self.position = position


_TOKEN_PATTERN = re.compile(
    r"""
    (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<name>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>!(){}\[\],:+-])
    """,
    re.VERBOSE,
)

_LITERAL_NAMES: Dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}

_WORD_OPERATORS = {"and": "&&", "or": "||", "not": "!"}

_EQUALITY_OPS = {"==": True, "===": True, "!=": False, "!==": False}

_COMPARISONS: Dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

Token = Tuple[str, Any, int]


def _tokenize(expression: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    length = len(expression)
    while pos < length:
        if expression[pos].isspace():
            pos += 1
            continue
        match = _TOKEN_PATTERN.match(expression, pos)
        if not match:
            raise ExpressionError(
                f"Unexpected character {expression[pos]!r} at position {pos}",
                expression,
                pos,
            )
        kind = match.lastgroup
        text = match.group()
        if kind == "number":
            value: Any = float(text) if any(c in text for c in ".eE") else int(text)
            tokens.append(("literal", value, pos))
        elif kind == "string":
            tokens.append(("literal", _decode_string(text, expression, pos), pos))
        elif kind == "name":
            if text in _LITERAL_NAMES:
                tokens.append(("literal", _LITERAL_NAMES[text], pos))
            elif text in _WORD_OPERATORS:
                tokens.append(("op", _WORD_OPERATORS[text], pos))
            else:
                raise ExpressionError(f"Unknown identifier '{text}' at position {pos}", expression, pos)
        else:
            tokens.append(("op", text, pos))
        pos = match.end()
    return tokens


def _decode_string(text: str, expression: str, pos: int) -> str:
    try:
        if text.startswith('"'):
            return json.loads(text)
        # literal_eval only ever builds a str from a quoted literal
        return ast.literal_eval(text)
    except (ValueError, SyntaxError) as e:
        raise ExpressionError(f"Invalid string literal at position {pos}: {e}", expression, pos)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _truthy(value: Any) -> bool:
    # Empty arrays and objects are truthy, as in JavaScript
    if isinstance(value, (list, dict)):
        return True
    return bool(value)


def _strict_equals(left: Any, right: Any) -> bool:
    if _is_number(left) and _is_number(right):
        return left == right
    return type(left) is type(right) and left == right


class _Parser:
    """Recursive-descent evaluator over a token list."""

    def __init__(self, expression: str, tokens: List[Token]):
        self.expression = expression
        self.tokens = tokens
        self.index = 0
        # >0 while walking an operand that short-circuiting leaves unevaluated
        self._skip = 0

    # ==== token helpers ====

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _peek_op(self) -> Optional[str]:
        token = self._peek()
        if token is not None and token[0] == "op":
            return token[1]
        return None

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _expect(self, op: str) -> None:
        if self._peek_op() != op:
            self._error(f"Expected '{op}'")
        self._advance()

    def _error(self, message: str) -> None:
        token = self._peek()
        position = token[2] if token else len(self.expression)
        found = repr(token[1]) if token else "end of expression"
        raise ExpressionError(f"{message}, found {found} at position {position}", self.expression, position)

    # ==== grammar ====

    def parse(self) -> Any:
        if not self.tokens:
            raise ExpressionError("Empty expression", self.expression)
        value = self._or()
        if self._peek() is not None:
            self._error("Unexpected token")
        return value

    def _or(self) -> Any:
        left = self._and()
        while self._peek_op() == "||":
            self._advance()
            if _truthy(left):
                self._skipped(self._and)
            else:
                left = self._and()
        return left

    def _and(self) -> Any:
        left = self._equality()
        while self._peek_op() == "&&":
            self._advance()
            if _truthy(left):
                left = self._equality()
            else:
                self._skipped(self._equality)
        return left

    def _skipped(self, parse: Callable[[], Any]) -> None:
        """Parse an operand for syntax only; its value is never used."""
        self._skip += 1
        try:
            parse()
        finally:
            self._skip -= 1

    def _equality(self) -> Any:
        left = self._comparison()
        while self._peek_op() in _EQUALITY_OPS:
            expect_equal = _EQUALITY_OPS[self._advance()[1]]
            right = self._comparison()
            left = _strict_equals(left, right) == expect_equal
        return left

    def _comparison(self) -> Any:
        left = self._unary()
        while self._peek_op() in _COMPARISONS:
            op = self._advance()[1]
            right = self._unary()
            comparable = (_is_number(left) and _is_number(right)) or (
                isinstance(left, str) and isinstance(right, str)
            )
            if not comparable:
                if self._skip:
                    left = False
                    continue
                raise ExpressionError(
                    f"Cannot compare {type(left).__name__} and {type(right).__name__} with '{op}'",
                    self.expression,
                )
            left = _COMPARISONS[op](left, right)
        return left

    def _unary(self) -> Any:
        op = self._peek_op()
        if op == "!":
            self._advance()
            return not _truthy(self._unary())
        if op in ("-", "+"):
            self._advance()
            operand = self._unary()
            if not _is_number(operand):
                if self._skip:
                    return operand
                raise ExpressionError(f"Unary '{op}' needs a number", self.expression)
            return -operand if op == "-" else operand
        return self._primary()

    def _primary(self) -> Any:
        token = self._peek()
        if token is None:
            self._error("Unexpected end of expression")
        kind, value, _ = token
        if kind == "literal":
            self._advance()
            return value
        if value == "(":
            self._advance()
            inner = self._or()
            self._expect(")")
            return inner
        if value == "[":
            return self._array()
        if value == "{":
            return self._object()
        self._error("Expected a value")

    def _array(self) -> List[Any]:
        self._expect("[")
        items: List[Any] = []
        if self._peek_op() != "]":
            items.append(self._or())
            while self._peek_op() == ",":
                self._advance()
                items.append(self._or())
        self._expect("]")
        return items

    def _object(self) -> Dict[str, Any]:
        self._expect("{")
        result: Dict[str, Any] = {}
        if self._peek_op() != "}":
            while True:
                token = self._peek()
                if token is None or token[0] != "literal" or not isinstance(token[1], str):
                    self._error("Expected a string key")
                key = self._advance()[1]
                self._expect(":")
                result[key] = self._or()
                if self._peek_op() != ",":
                    break
                self._advance()
        self._expect("}")
        return result


def evaluate_expression(expression: str) -> Any:
    """
    Evaluate an expression and return its value.

    Raises:
        ExpressionError: On syntax errors, unsupported operations or
            nesting too deep to evaluate
    """
    try:
        return _Parser(expression, _tokenize(expression)).parse()
    except RecursionError as e:
        raise ExpressionError("Expression is nested too deeply", expression) from e


def evaluate_condition(expression: str) -> bool:
    """Evaluate an expression and reduce the result to a boolean."""
    return _truthy(evaluate_expression(expression))


__all__ = [
    "ExpressionError",
    "evaluate_expression",
    "evaluate_condition",
]
