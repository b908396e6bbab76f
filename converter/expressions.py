"""Grammar for the expression forms recognized inside parameter strings.

Two forms are recognized::

    template   := (braced | env_token | literal)*
    braced     := "{{" expr "}}"
    env_token  := "$env" ("." IDENT | "[" QUOTE NAME QUOTE "]")

A leading ``=`` (n8n's "expression mode" prefix) is dropped when the rest of
the string contains an expression. Braced expressions that are simple paths
follow::

    path       := "$" IDENT accessor*
    accessor   := "." IDENT | "[" (QUOTE NAME QUOTE | INT) "]"
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"

_ENV_TOKEN = re.compile(
    r"\$env(?:\.(?P<attr>" + _IDENT + r")|\[\s*(?P<quote>['\"])(?P<key>[^'\"\]]+)(?P=quote)\s*\])"
)
_PATH_ROOT = re.compile(r"\$(?P<root>" + _IDENT + r")")
_PATH_ACCESSOR = re.compile(
    r"\.(?P<attr>" + _IDENT + r")"
    r"|\[\s*(?:(?P<quote>['\"])(?P<key>[^'\"\]]*)(?P=quote)|(?P<index>\d+))\s*\]"
)

BRACE_OPEN = "{{"
BRACE_CLOSE = "}}"
EXPRESSION_PREFIX = "="


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class BracedExpression:
    expression: str


@dataclass(frozen=True)
class EnvToken:
    name: str


Segment = Union[Literal, BracedExpression, EnvToken]


@dataclass(frozen=True)
class EnvReference:
    """Marker for a value read from an environment variable at runtime."""
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"$env": self.name}


@dataclass(frozen=True)
class ExpressionReference:
    """Marker for a value computed from workflow data at runtime."""
    expression: str

    @property
    def path(self) -> Optional[Tuple[str, ...]]:
        return parse_path(self.expression)

    def to_dict(self) -> Dict[str, Any]:
        return {"$expression": self.expression}


@dataclass(frozen=True)
class TemplateString:
    """Marker for text interleaving literals with runtime references."""
    parts: Tuple[Union[str, EnvReference, ExpressionReference], ...]

    @property
    def is_static(self) -> bool:
        """True when every runtime part can be read from the environment alone."""
        return all(not isinstance(part, ExpressionReference) for part in self.parts)

    def to_dict(self) -> Dict[str, Any]:
        return {"$template": [part if isinstance(part, str) else part.to_dict() for part in self.parts]}


Marker = Union[EnvReference, ExpressionReference, TemplateString]
MARKER_TYPES = (EnvReference, ExpressionReference, TemplateString)


def _strip_prefix(text: str) -> str:
    if text.startswith(EXPRESSION_PREFIX):
        rest = text[len(EXPRESSION_PREFIX):]
        if BRACE_OPEN in rest or "$env" in rest:
            return rest
    return text


def parse_template(text: str) -> List[Segment]:
    """Split a parameter string into literal, braced and env-token segments."""
    text = _strip_prefix(text)
    segments: List[Segment] = []
    buffer: List[str] = []
    pos = 0
    length = len(text)

    def flush():
        if buffer:
            segments.append(Literal("".join(buffer)))
            buffer.clear()

    while pos < length:
        if text.startswith(BRACE_OPEN, pos):
            end = text.find(BRACE_CLOSE, pos + len(BRACE_OPEN))
            inner = text[pos + len(BRACE_OPEN):end].strip() if end != -1 else ""
            if end != -1 and inner:
                flush()
                segments.append(BracedExpression(inner))
                pos = end + len(BRACE_CLOSE)
                continue
        elif text.startswith("$env", pos):
            match = _ENV_TOKEN.match(text, pos)
            if match:
                flush()
                segments.append(EnvToken(match.group("attr") or match.group("key").strip()))
                pos = match.end()
                continue
        buffer.append(text[pos])
        pos += 1

    flush()
    return segments


def has_expression(text: str) -> bool:
    return any(not isinstance(segment, Literal) for segment in parse_template(text))


def match_env_reference(expression: str) -> Optional[str]:
    """Return the variable name if ``expression`` is exactly one env reference."""
    match = _ENV_TOKEN.fullmatch(expression.strip())
    if not match:
        return None
    return match.group("attr") or match.group("key").strip()


def find_env_references(text: str) -> List[str]:
    """Variable names referenced anywhere in ``text``, in first-occurrence order."""
    names: List[str] = []
    for segment in parse_template(text):
        if isinstance(segment, EnvToken):
            found = [segment.name]
        elif isinstance(segment, BracedExpression):
            found = [m.group("attr") or m.group("key").strip() for m in _ENV_TOKEN.finditer(segment.expression)]
        else:
            continue
        for name in found:
            if name not in names:
                names.append(name)
    return names


def parse_path(expression: str) -> Optional[Tuple[str, ...]]:
    """Parse a simple data path such as ``$json.items[0]["id"]``.

    Returns ``("$json", "items", "0", "id")`` or None when the expression is
    not a plain path (calls, operators, literals).
    """
    expression = expression.strip()
    match = _PATH_ROOT.match(expression)
    if not match:
        return None

    parts = ["$" + match.group("root")]
    pos = match.end()
    while pos < len(expression):
        accessor = _PATH_ACCESSOR.match(expression, pos)
        if not accessor:
            return None
        if accessor.group("attr") is not None:
            parts.append(accessor.group("attr"))
        elif accessor.group("index") is not None:
            parts.append(accessor.group("index"))
        else:
            parts.append(accessor.group("key"))
        pos = accessor.end()
    return tuple(parts)


def build_marker(text: str) -> Union[str, Marker]:
    """Rewrite a parameter string into a runtime marker, or return it unchanged."""
    segments = parse_template(text)
    if all(isinstance(segment, Literal) for segment in segments):
        return text

    parts: List[Union[str, EnvReference, ExpressionReference]] = []
    for segment in segments:
        if isinstance(segment, Literal):
            parts.append(segment.text)
        elif isinstance(segment, EnvToken):
            parts.append(EnvReference(segment.name))
        else:
            env_name = match_env_reference(segment.expression)
            parts.append(EnvReference(env_name) if env_name else ExpressionReference(segment.expression))

    if len(parts) == 1:
        return parts[0]
    return TemplateString(tuple(parts))
