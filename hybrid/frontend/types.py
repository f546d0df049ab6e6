"""Type and container mapper: C++ type spellings -> IR Type trees.

Every declared type in the unit passes through map_type(). The mapper is
total: unknown spellings become aggregate types, never errors.
"""

from __future__ import annotations

import re
from dataclasses import replace

from ..ir import CONTAINER_ARITY, PRIMITIVES, Type, TypeKind

# Family names matched by substring; bare spellings cover std:: ones.
CONTAINER_NAMES: list[str] = [
    "vector",
    "list",
    "deque",
    "map",
    "unordered_map",
    "set",
    "unordered_set",
    "string",
    "pair",
    "optional",
]

CONTAINER_KINDS: dict[str, TypeKind] = {
    "vector": "vector",
    "list": "list",
    "forward_list": "list",
    "deque": "deque",
    "map": "map",
    "unordered_map": "unordered_map",
    "set": "set",
    "unordered_set": "unordered_set",
    "string": "string",
    "wstring": "string",
    "string_view": "string",
    "pair": "pair",
    "optional": "optional",
}

SMART_POINTERS: set[str] = {"unique_ptr", "shared_ptr", "weak_ptr", "auto_ptr"}

THREADING_NAMES: dict[str, TypeKind] = {
    "thread": "thread",
    "jthread": "thread",
    "mutex": "mutex",
    "timed_mutex": "mutex",
    "recursive_mutex": "recursive_mutex",
    "recursive_timed_mutex": "recursive_mutex",
    "shared_mutex": "shared_mutex",
    "shared_timed_mutex": "shared_mutex",
    "condition_variable": "condition_variable",
    "condition_variable_any": "condition_variable",
    "lock_guard": "lock_guard",
    "scoped_lock": "lock_guard",
    "unique_lock": "unique_lock",
    "shared_lock": "shared_lock",
}

ATOMIC_ALIASES: dict[str, str] = {
    "atomic_bool": "bool",
    "atomic_char": "char",
    "atomic_int": "int",
    "atomic_uint": "unsigned int",
    "atomic_long": "long",
    "atomic_ulong": "unsigned long",
    "atomic_llong": "long long",
    "atomic_ullong": "unsigned long long",
    "atomic_size_t": "size_t",
    "atomic_int32_t": "int32_t",
    "atomic_int64_t": "int64_t",
    "atomic_uint32_t": "uint32_t",
    "atomic_uint64_t": "uint64_t",
}

LEADING_QUALIFIERS: set[str] = {
    "const",
    "constexpr",
    "volatile",
    "mutable",
    "static",
    "inline",
    "extern",
    "typename",
    "struct",
    "class",
    "enum",
    "thread_local",
    "register",
}

POINTER_SIZE = 8


def normalize_spelling(spelling: str) -> str:
    """Collapse whitespace and drop it around punctuation."""
    text = re.sub(r"\s+", " ", spelling).strip()
    return re.sub(r"\s*([*&<>,()\[\]])\s*", r"\1", text)


def _strip_std(name: str) -> str:
    if name.startswith("::"):
        name = name[2:]
    if name.startswith("std::"):
        return name[5:]
    return name


def split_template_args(text: str) -> list[str]:
    """Split on commas at nesting depth 0, tracking <> and ()."""
    args: list[str] = []
    depth = 0
    start = 0
    for i, c in enumerate(text):
        if c in "<(":
            depth += 1
        elif c in ">)":
            depth -= 1
        elif c == "," and depth == 0:
            arg = text[start:i].strip()
            if arg:
                args.append(arg)
            start = i + 1
    arg = text[start:].strip()
    if arg:
        args.append(arg)
    return args


def _outer_name(spelling: str) -> str:
    pos = spelling.find("<")
    if pos >= 0:
        return _strip_std(spelling[:pos].strip())
    return _strip_std(spelling.strip())


def _template_body(spelling: str) -> str:
    start = spelling.find("<")
    end = spelling.rfind(">")
    if start < 0 or end < 0 or start >= end:
        return ""
    return spelling[start + 1 : end]


def is_container_type(name: str) -> bool:
    """Permissive family check; map_container_type() has the final word."""
    for container in CONTAINER_NAMES:
        if container in name:
            return True
    return False


def map_builtin_type(name: str) -> Type | None:
    """Map a primitive spelling with its authoritative size, else None."""
    key = " ".join(name.split())
    key = _strip_std(key)
    entry = PRIMITIVES.get(key)
    if entry is None:
        return None
    kind, _, size = entry
    return Type(kind, key, size_bytes=size, alignment=size)


def map_container_type(spelling: str, registry: dict[str, Type] | None = None) -> Type | None:
    """Map a standard container spelling, None for unknown outer names.

    Arguments beyond the family's arity (allocators, comparators, hashers)
    are dropped; missing ones stay missing and render as placeholders.
    """
    text = normalize_spelling(spelling)
    kind = CONTAINER_KINDS.get(_outer_name(text))
    if kind is None:
        return None
    typ = Type(kind, text)
    arity = CONTAINER_ARITY[kind]
    for arg in split_template_args(_template_body(text))[:arity]:
        typ.template_args.append(_map_argument(arg, registry))
    return typ


def _map_argument(arg: str, registry: dict[str, Type] | None) -> Type:
    if is_container_type(arg):
        nested = map_container_type(arg, registry)
        if nested is not None:
            return nested
    builtin = map_builtin_type(arg)
    if builtin is not None:
        return builtin
    return map_type(arg, registry)


def map_type(spelling: str, registry: dict[str, Type] | None = None) -> Type:
    """Map any C++ type spelling to a Type tree. Never raises."""
    text = normalize_spelling(spelling)
    if text == "":
        return Type("void", "void")
    is_const = False
    is_mutable = False
    words = text.split(" ")
    while len(words) > 1 and words[0] in LEADING_QUALIFIERS:
        if words[0] in ("const", "constexpr"):
            is_const = True
        elif words[0] == "mutable":
            is_mutable = True
        words = words[1:]
    text = " ".join(words)
    typ = _map_declarator(text, registry)
    if is_const:
        elem = typ.element_type
        if elem is not None and typ.kind in ("pointer", "reference", "array") and text.endswith(("*", "&", "]")):
            # a leading const qualifies the pointee, referent, or element
            elem.is_const = True
            elem.is_mutable = False
        if typ.kind != "pointer" or not text.endswith("*"):
            typ.is_const = True
            typ.is_mutable = False
    if is_mutable:
        typ.is_mutable = True
    return typ


def _map_declarator(text: str, registry: dict[str, Type] | None) -> Type:
    if len(text) > 5 and text.endswith("const") and text[-6] in " *&>":
        inner = map_type(text[:-5], registry)
        inner.is_const = True
        inner.is_mutable = False
        return inner
    if text.endswith("&&"):
        # rvalue references move the value in
        return map_type(text[:-2], registry)
    if text.endswith("&"):
        referent = map_type(text[:-1], registry)
        return Type(
            "reference",
            text,
            is_const=referent.is_const,
            element_type=referent,
            size_bytes=POINTER_SIZE,
            alignment=POINTER_SIZE,
        )
    if text.endswith("*"):
        pointee = map_type(text[:-1], registry)
        return Type(
            "pointer",
            text,
            element_type=pointee,
            size_bytes=POINTER_SIZE,
            alignment=POINTER_SIZE,
        )
    if text.endswith("]"):
        open_pos = text.rfind("[")
        if open_pos > 0:
            element = map_type(text[:open_pos], registry)
            count = text[open_pos + 1 : -1].strip()
            if count == "":
                return Type(
                    "pointer",
                    text,
                    element_type=element,
                    size_bytes=POINTER_SIZE,
                    alignment=POINTER_SIZE,
                )
            return _array_type(text, element, count)
    return _map_named(text, registry)


def _array_type(text: str, element: Type, count: str) -> Type:
    size = 0
    if count.isdigit():
        size = element.size_bytes * int(count)
    return Type(
        "array",
        text,
        element_type=element,
        size_bytes=size,
        alignment=element.alignment,
    )


def _map_named(text: str, registry: dict[str, Type] | None) -> Type:
    outer = _outer_name(text)
    args = split_template_args(_template_body(text))
    if outer in SMART_POINTERS:
        element = map_type(args[0], registry) if args else None
        size = POINTER_SIZE * 2 if outer in ("shared_ptr", "weak_ptr") else POINTER_SIZE
        return Type("pointer", text, element_type=element, size_bytes=size, alignment=POINTER_SIZE)
    if outer == "function":
        return _function_type(text, registry)
    if outer == "atomic":
        element = map_type(args[0], registry) if args else None
        return _atomic_type(text, element)
    if outer in ATOMIC_ALIASES:
        return _atomic_type(text, map_builtin_type(ATOMIC_ALIASES[outer]))
    if outer in THREADING_NAMES:
        return Type(THREADING_NAMES[outer], text)
    if outer == "array" and text.startswith(("std::", "array<")) and args:
        element = map_type(args[0], registry)
        count = args[1] if len(args) > 1 else ""
        return _array_type(text, element, count)
    if is_container_type(text):
        container = map_container_type(text, registry)
        if container is not None:
            return container
    builtin = map_builtin_type(text)
    if builtin is not None:
        return builtin
    if registry is not None:
        found = _lookup(text, registry)
        if found is not None:
            return found
    if args:
        base = text[: text.find("<")]
        return Type(
            "aggregate",
            text,
            template_args=[map_type(a, registry) for a in args],
        ) if base else Type("aggregate", text)
    return Type("aggregate", text)


def _lookup(text: str, registry: dict[str, Type]) -> Type | None:
    found = registry.get(text)
    if found is None and "::" in text and "<" not in text:
        found = registry.get(text.rsplit("::", 1)[1])
    if found is None:
        return None
    # Callers may flag constness; the registry slot itself stays untouched.
    return replace(found)


def _atomic_type(text: str, element: Type | None) -> Type:
    size = element.size_bytes if element is not None else 0
    return Type("atomic", text, element_type=element, size_bytes=size, alignment=size)


def _function_type(text: str, registry: dict[str, Type] | None) -> Type:
    """std::function<R(A, B)> -> function(element=R, template_args=[A, B])."""
    body = _template_body(text)
    depth = 0
    paren = -1
    for i, c in enumerate(body):
        if c == "<":
            depth += 1
        elif c == ">":
            depth -= 1
        elif c == "(" and depth == 0:
            paren = i
            break
    if paren < 0:
        return Type("function", text)
    ret = map_type(body[:paren], registry)
    params_text = body[paren + 1 : body.rfind(")")]
    params = [
        map_type(p, registry) for p in split_template_args(params_text) if p != "void"
    ]
    return Type("function", text, element_type=ret, template_args=params)
