"""Frontend package - converts C++ source to IR declarations."""

from ..diagnostics import Diagnostics
from ..ir import IR
from .parse import DeclParser, ParseError, parse
from .types import (
    is_container_type,
    map_builtin_type,
    map_container_type,
    map_type,
    split_template_args,
)


def compile(source: str, unit: str = "<input>", diags: Diagnostics | None = None) -> IR:
    """Frontend pipeline: source -> IR with every declared type mapped.

    Raises ParseError when the unit's brace or literal structure is broken.
    """
    return DeclParser(source, unit, diags).parse()


__all__ = [
    "DeclParser",
    "ParseError",
    "compile",
    "is_container_type",
    "map_builtin_type",
    "map_container_type",
    "map_type",
    "parse",
    "split_template_args",
]
