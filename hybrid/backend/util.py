"""Shared utilities for backend code emitters."""

from __future__ import annotations

import re
import textwrap

# Go reserved words that need renaming
GO_RESERVED = frozenset(
    {
        "break",
        "case",
        "chan",
        "const",
        "continue",
        "default",
        "defer",
        "else",
        "fallthrough",
        "for",
        "func",
        "go",
        "goto",
        "if",
        "import",
        "interface",
        "map",
        "package",
        "range",
        "return",
        "select",
        "struct",
        "switch",
        "type",
        "var",
    }
)

RUST_RESERVED = frozenset(
    {
        "as",
        "async",
        "await",
        "break",
        "const",
        "continue",
        "crate",
        "dyn",
        "else",
        "enum",
        "extern",
        "false",
        "fn",
        "for",
        "if",
        "impl",
        "in",
        "let",
        "loop",
        "match",
        "mod",
        "move",
        "mut",
        "pub",
        "ref",
        "return",
        "self",
        "Self",
        "static",
        "struct",
        "super",
        "trait",
        "true",
        "type",
        "union",
        "unsafe",
        "use",
        "where",
        "while",
        "abstract",
        "become",
        "box",
        "do",
        "final",
        "macro",
        "override",
        "priv",
        "try",
        "typeof",
        "unsized",
        "virtual",
        "yield",
    }
)

# C++ operator tokens -> method names both targets accept.
OPERATOR_NAMES: dict[str, str] = {
    "==": "eq",
    "!=": "ne",
    "<": "lt",
    "<=": "le",
    ">": "gt",
    ">=": "ge",
    "<=>": "cmp",
    "+": "add",
    "-": "sub",
    "*": "mul",
    "/": "div",
    "%": "rem",
    "&": "bitand",
    "|": "bitor",
    "^": "bitxor",
    "~": "not",
    "!": "logical_not",
    "<<": "shl",
    ">>": "shr",
    "=": "assign",
    "+=": "add_assign",
    "-=": "sub_assign",
    "*=": "mul_assign",
    "/=": "div_assign",
    "%=": "rem_assign",
    "&&": "and",
    "||": "or",
    "++": "inc",
    "--": "dec",
    "[]": "index",
    "()": "call",
    "->": "deref",
}


def _upper_first(s: str) -> str:
    """Uppercase the first character of a string."""
    return (s[0].upper() + s[1:]) if s else ""


def go_to_pascal(name: str) -> str:
    """Convert snake_case to PascalCase for Go. Private names (underscore prefix) become unexported."""
    is_private = name.startswith("_")
    if is_private:
        name = name[1:]
    parts = name.split("_")
    # Use upper on first char only (not capitalize which lowercases rest)
    result = "".join(_upper_first(p) for p in parts)
    # All-caps names (constants) stay all-caps even if originally private
    if name.isupper():
        return result
    if is_private:
        return result[0].lower() + result[1:] if result else result
    return result


def go_to_camel(name: str) -> str:
    """Convert snake_case to camelCase for Go."""
    if name.startswith("_"):
        name = name[1:]
    parts = name.split("_")
    if not parts:
        return name
    # All-caps names (constants) should use PascalCase in Go
    if name.isupper():
        return "".join(_upper_first(p) for p in parts)
    result = parts[0] + "".join(_upper_first(p) for p in parts[1:])
    result = result[0].lower() + result[1:] if result else result
    if result in GO_RESERVED:
        return result + "_"
    return result


def to_snake(name: str) -> str:
    """Convert camelCase/PascalCase to snake_case."""
    if name.startswith("_"):
        name = name[1:]
    if "_" in name or name.islower():
        return name.lower()
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def to_screaming_snake(name: str) -> str:
    """Convert to SCREAMING_SNAKE_CASE."""
    return to_snake(name).upper()


def escape_string(value: str) -> str:
    """Escape a string for use in a string literal (without quotes)."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )


def method_name(name: str) -> str:
    """Identifier-safe snake_case name for a C++ function or operator."""
    if name.startswith("operator"):
        token = name[len("operator") :].replace(" ", "")
        if token in OPERATOR_NAMES:
            return OPERATOR_NAMES[token]
        # conversion operator: operator bool -> to_bool
        return "to_" + re.sub(r"\W+", "_", token).strip("_").lower()
    return to_snake(name)


def short_name(name: str) -> str:
    """Last component of a qualified name: 'ns::Point' -> 'Point'."""
    return name.rsplit("::", 1)[-1]


def source_lines(text: str) -> list[str]:
    """Dedented non-blank lines of a source fragment."""
    lines = textwrap.dedent(text.strip("\n")).splitlines()
    return [line.rstrip() for line in lines if line.strip()]


def simple_expr(text: str) -> str:
    """Strip C++-only spellings from a short expression: this->, std::move."""
    text = " ".join(text.split())
    text = re.sub(r"\bthis\s*->\s*", "", text)
    m = re.fullmatch(r"std::move\s*\((.*)\)", text)
    if m is not None:
        text = m.group(1).strip()
    return text


def rename_identifiers(text: str, names: dict[str, str]) -> str:
    """Replace whole-word identifiers outside string literals."""
    if not names:
        return text
    parts = re.split(r'("(?:[^"\\]|\\.)*")', text)
    for i in range(0, len(parts), 2):
        parts[i] = re.sub(
            r"(?<![\w.])([A-Za-z_]\w*)\b",
            lambda m: names.get(m.group(1), m.group(1)),
            parts[i],
        )
    return "".join(parts)


class Emitter:
    """Base class for code emitters with indentation tracking."""

    def __init__(self, indent_str: str = "    ") -> None:
        self.indent: int = 0
        self.lines: list[str] = []
        self._indent_str = indent_str

    def line(self, text: str = "") -> None:
        """Emit a line with current indentation."""
        if text:
            self.lines.append(self._indent_str * self.indent + text)
        else:
            self.lines.append("")

    def comment_lines(self, prefix: str, text: str) -> None:
        """Emit each line of a source fragment behind a comment prefix."""
        for line in source_lines(text):
            self.line(prefix + " " + line)

    def output(self) -> str:
        """Return the accumulated output as a string."""
        return "\n".join(self.lines)
