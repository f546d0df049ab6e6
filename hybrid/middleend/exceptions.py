"""Exception idiom scan and conversion strategy selection.

The scan is lexical: try/catch blocks are matched with flat brace bodies,
so a try or catch body holding nested braces is a detection miss, not an
error. A miss yields an emptier profile and never raises.

Annotations added:
    Function.exception_profile: ExceptionProfile
"""

from __future__ import annotations

import re

from ..ir import (
    IR,
    CatchClause,
    ExceptionProfile,
    ExceptionSpec,
    Function,
    Strategy,
    Target,
    TryCatchBlock,
)

TRY_CATCH_RE = re.compile(r"\btry\s*\{([^}]*)\}\s*catch\s*\(([^)]+)\)\s*\{([^}]*)\}")
CATCH_RE = re.compile(r"\s*catch\s*\(([^)]+)\)\s*\{([^}]*)\}")
THROW_RE = re.compile(r"\bthrow\s+")
THROWN_TYPE_RE = re.compile(r"\bthrow\s+(?:std::)?([A-Za-z_][\w:]*)\s*[({]")

ERROR_DESCRIPTIONS: dict[str, str] = {
    "exception": "Standard exception",
    "runtime_error": "Runtime error",
    "logic_error": "Logic error",
    "invalid_argument": "Invalid argument",
    "out_of_range": "Out of range",
    "overflow_error": "Overflow error",
    "underflow_error": "Underflow error",
    "range_error": "Range error",
    "bad_alloc": "Memory allocation failed",
    "bad_cast": "Bad cast",
    "bad_typeid": "Bad typeid",
    "ios_base::failure": "I/O error",
    "...": "Unknown error",
}


def _strip_std(name: str) -> str:
    if name.startswith("std::"):
        return name[5:]
    return name


def parse_catch_parameter(param: str) -> tuple[str, str]:
    """Split a catch parameter into (exception type, variable name).

    `...` -> ("...", ""); a bare type gets the variable name "e".
    """
    param = param.strip()
    if param == "...":
        return ("...", "")
    cleaned = re.sub(r"\b(const|volatile)\b", " ", param)
    cleaned = cleaned.replace("&", " ")
    cleaned = " ".join(cleaned.split())
    pos = cleaned.rfind(" ")
    if pos < 0:
        typ, var = cleaned, "e"
    else:
        typ, var = cleaned[:pos], cleaned[pos + 1 :]
    while var.startswith("*"):
        typ += "*"
        var = var[1:]
    if var == "":
        var = "e"
    typ = typ.replace(" ", "")
    return (_strip_std(typ), var)


def find_try_catch_blocks(body: str) -> list[TryCatchBlock]:
    """All try blocks, left to right and non-overlapping, with every catch."""
    blocks: list[TryCatchBlock] = []
    pos = 0
    while True:
        m = TRY_CATCH_RE.search(body, pos)
        if m is None:
            return blocks
        exc_type, exc_var = parse_catch_parameter(m.group(2))
        block = TryCatchBlock(m.group(1), [CatchClause(exc_type, exc_var, m.group(3))])
        pos = m.end()
        while True:
            more = CATCH_RE.match(body, pos)
            if more is None:
                break
            exc_type, exc_var = parse_catch_parameter(more.group(1))
            block.catch_clauses.append(CatchClause(exc_type, exc_var, more.group(2)))
            pos = more.end()
        blocks.append(block)


def thrown_types(body: str) -> list[str]:
    """Types constructed by throw expressions, deduplicated in source order."""
    seen: list[str] = []
    for m in THROWN_TYPE_RE.finditer(body):
        name = m.group(1)
        if name not in seen:
            seen.append(name)
    return seen


def analyze_function_exceptions(func: Function) -> ExceptionProfile:
    """Build the exception profile of one function from its body and flags."""
    blocks = find_try_catch_blocks(func.body)
    has_throw = THROW_RE.search(func.body) is not None
    spec = ExceptionSpec(is_noexcept=func.is_noexcept, can_throw=has_throw and not func.is_noexcept)
    return ExceptionProfile(
        exception_spec=spec,
        try_catch_blocks=blocks,
        thrown_types=thrown_types(func.body),
        may_throw=spec.can_throw or len(blocks) > 0 or has_throw,
    )


def strategy_for(may_throw: bool, has_blocks: bool, target: Target) -> Strategy:
    """Strategy table keyed on (may_throw, has try/catch, target)."""
    if not may_throw and not has_blocks:
        return "ignore"
    if target == "rust":
        return "result_type"
    return "error_return"


def select_strategy(func: Function, target: Target) -> Strategy:
    """Conversion strategy for a function.

    A noexcept function with try/catch blocks still gets the throwing
    strategy: its internal handling has to be re-expressed.
    """
    profile = func.exception_profile
    if profile is None:
        profile = analyze_function_exceptions(func)
    may_throw = profile.may_throw or profile.override_throws
    return strategy_for(may_throw, len(profile.try_catch_blocks) > 0, target)


def error_description(exception_type: str) -> str:
    """Human-readable description of a caught exception type."""
    name = _strip_std(exception_type)
    if name in ERROR_DESCRIPTIONS:
        return ERROR_DESCRIPTIONS[name]
    return "Error: " + exception_type


def is_standard_exception(exception_type: str) -> bool:
    return _strip_std(exception_type) in ERROR_DESCRIPTIONS


def analyze_exceptions(ir: IR) -> None:
    """Attach an exception profile to every function and method."""
    for func in ir.functions:
        func.exception_profile = analyze_function_exceptions(func)
    for cls in ir.classes:
        for method in cls.methods:
            method.exception_profile = analyze_function_exceptions(method)
    _unify_overrides(ir)


def _unify_overrides(ir: IR) -> None:
    """Give every member of a throwing override set the error signature."""
    for members in ir.override_sets():
        profiles = [m.exception_profile for m in members if m.exception_profile is not None]
        if any(p.may_throw or p.try_catch_blocks for p in profiles):
            for profile in profiles:
                profile.override_throws = True
