"""Ownership classification of pointer and reference types.

Every pointer or reference occurrence falls into one OwnershipPattern
(see ir.py). Classification reads only the Type: the frontend maps all
smart pointers to the pointer kind, so the spelling tells them apart.

Annotations added:
    Function.moved_params: list[str] - params whose value the callee takes over
    Function.borrowed_params: list[str] - params the callee only reads or
        mutates in place: references, plus by-value strings and vectors that
        are neither std::move'd nor stored by a member initializer

Members of one override set agree on every parameter position: a position
moved by any member is moved in all of them.
"""

from __future__ import annotations

import re

from ..ir import IR, Function, OwnershipPattern, Target, Type

UNIQUE_IDIOMS = ("unique_ptr", "auto_ptr")
SHARED_IDIOMS = ("shared_ptr",)

# Kinds whose by-value passing moves a heap-backed value.
MOVABLE_KINDS = frozenset(
    {
        "aggregate",
        "list",
        "deque",
        "map",
        "unordered_map",
        "set",
        "unordered_set",
        "optional",
        "function",
    }
)

# By-value kinds a callee that keeps no copy can borrow as a slice.
BORROWABLE_KINDS = frozenset({"string", "vector"})


def classify(typ: Type) -> OwnershipPattern:
    """Classify a type; first matching rule wins."""
    if typ.kind == "pointer":
        for idiom in UNIQUE_IDIOMS:
            if idiom in typ.name:
                return "unique_ownership"
        for idiom in SHARED_IDIOMS:
            if idiom in typ.name:
                return "shared_ownership"
        return "raw_pointer"
    if typ.kind == "reference":
        if typ.is_const:
            return "borrowed_reference"
        return "mutable_borrow"
    return "value_semantics"


def render_ownership(
    pattern: OwnershipPattern,
    inner: str,
    target: Target,
    pointee_const: bool = False,
    lifetime: str = "",
) -> str:
    """Wrap an already-rendered inner type in the pattern's target idiom.

    lifetime (e.g. "'a") is only used for Rust borrows held in struct fields.
    """
    if pattern == "value_semantics":
        return inner
    if target == "go":
        return "*" + inner
    ref = "&" + (lifetime + " " if lifetime else "")
    if pattern == "unique_ownership":
        return "Box<" + inner + ">"
    if pattern == "shared_ownership":
        return "Rc<RefCell<" + inner + ">>"
    if pattern == "borrowed_reference":
        return ref + inner
    if pattern == "mutable_borrow":
        return ref + "mut " + inner
    if pointee_const:
        return "*const " + inner
    return "*mut " + inner


def analyze_ownership(ir: IR) -> None:
    """Fill moved_params and borrowed_params on every function and method."""
    for func in ir.functions:
        _analyze_function(func)
    for cls in ir.classes:
        for method in cls.methods:
            _analyze_function(method)
    for members in ir.override_sets():
        _unify_moves(members)


def _analyze_function(func: Function) -> None:
    moved: list[str] = []
    borrowed: list[str] = []
    for param in func.parameters:
        pattern = classify(param.typ)
        if pattern == "unique_ownership" or pattern == "shared_ownership":
            moved.append(param.name)
        elif pattern == "borrowed_reference" or pattern == "mutable_borrow":
            borrowed.append(param.name)
        elif pattern == "value_semantics":
            kind = param.typ.kind
            if _moved_in_body(func.body, param.name) or _stored(func, param.name):
                moved.append(param.name)
            elif kind in BORROWABLE_KINDS:
                borrowed.append(param.name)
            elif kind in MOVABLE_KINDS:
                moved.append(param.name)
    func.moved_params = moved
    func.borrowed_params = borrowed


def _moved_in_body(body: str, name: str) -> bool:
    return re.search(r"\bstd::move\s*\(\s*" + re.escape(name) + r"\s*\)", body) is not None


def _stored(func: Function, name: str) -> bool:
    """Whether a member initializer keeps the parameter's value."""
    pattern = re.compile(r"\b" + re.escape(name) + r"\b")
    return any(pattern.search(value) for _, value in func.initializers)


def _unify_moves(members: list[Function]) -> None:
    positions: set[int] = set()
    for func in members:
        for i, param in enumerate(func.parameters):
            if param.name in func.moved_params:
                positions.add(i)
    for func in members:
        for i, param in enumerate(func.parameters):
            if i not in positions or param.name not in func.borrowed_params:
                continue
            if classify(param.typ) == "value_semantics":
                func.borrowed_params.remove(param.name)
                func.moved_params.append(param.name)
        func.moved_params = [p.name for p in func.parameters if p.name in func.moved_params]
