"""Hybrid IR - target-neutral model of C++ declarations.

This module defines the IR data model and the records the analyzers attach
to it. Each node's docstring documents its semantics and invariants.

Architecture:
    C++ source -> Frontend (declarations + type mapping) -> [IR]
        -> Middleend (ownership, exceptions, concurrency) -> Backend -> Rust | Go

Frontend produces typed declarations. Middleend annotates IR in place.
Backend emits code and never mutates the IR.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


Target = Literal["rust", "go"]

TARGETS: list[str] = ["rust", "go"]


# ============================================================
# TYPES
# ============================================================

TypeKind = Literal[
    "void",
    "bool",
    "integer",
    "float",
    "pointer",
    "reference",
    "array",
    "aggregate",
    "function",
    # container families
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
    # threading families
    "thread",
    "mutex",
    "recursive_mutex",
    "shared_mutex",
    "condition_variable",
    "atomic",
    "lock_guard",
    "unique_lock",
    "shared_lock",
]
"""Closed taxonomy of type kinds.

| Family     | Kinds                                                      |
|------------|------------------------------------------------------------|
| primitive  | void, bool, integer, float                                 |
| composite  | pointer, reference, array, aggregate, function             |
| container  | vector, list, deque, map, unordered_map, set,              |
|            | unordered_set, string, pair, optional                      |
| threading  | thread, mutex, recursive_mutex, shared_mutex,              |
|            | condition_variable, atomic, lock_guard, unique_lock,       |
|            | shared_lock                                                |
"""

# Primitive spellings: (kind, width class, size in bytes, LP64).
#
# | Width | Rust  | Go      |
# |-------|-------|---------|
# | i8    | i8    | int8    |
# | u8    | u8    | uint8   |
# | i16   | i16   | int16   |
# | u16   | u16   | uint16  |
# | i32   | i32   | int32   |
# | u32   | u32   | uint32  |
# | i64   | i64   | int64   |
# | u64   | u64   | uint64  |
# | isize | isize | int     |
# | usize | usize | uint    |
# | f32   | f32   | float32 |
# | f64   | f64   | float64 |
PRIMITIVES: dict[str, tuple[TypeKind, str, int]] = {
    "void": ("void", "void", 0),
    "bool": ("bool", "bool", 1),
    "char": ("integer", "i8", 1),
    "signed char": ("integer", "i8", 1),
    "unsigned char": ("integer", "u8", 1),
    "char8_t": ("integer", "u8", 1),
    "char16_t": ("integer", "u16", 2),
    "char32_t": ("integer", "u32", 4),
    "wchar_t": ("integer", "i32", 4),
    "short": ("integer", "i16", 2),
    "short int": ("integer", "i16", 2),
    "signed short": ("integer", "i16", 2),
    "signed short int": ("integer", "i16", 2),
    "unsigned short": ("integer", "u16", 2),
    "unsigned short int": ("integer", "u16", 2),
    "int": ("integer", "i32", 4),
    "signed": ("integer", "i32", 4),
    "signed int": ("integer", "i32", 4),
    "unsigned": ("integer", "u32", 4),
    "unsigned int": ("integer", "u32", 4),
    "long": ("integer", "i64", 8),
    "long int": ("integer", "i64", 8),
    "signed long": ("integer", "i64", 8),
    "signed long int": ("integer", "i64", 8),
    "unsigned long": ("integer", "u64", 8),
    "unsigned long int": ("integer", "u64", 8),
    "long long": ("integer", "i64", 8),
    "long long int": ("integer", "i64", 8),
    "signed long long": ("integer", "i64", 8),
    "signed long long int": ("integer", "i64", 8),
    "unsigned long long": ("integer", "u64", 8),
    "unsigned long long int": ("integer", "u64", 8),
    "int8_t": ("integer", "i8", 1),
    "int16_t": ("integer", "i16", 2),
    "int32_t": ("integer", "i32", 4),
    "int64_t": ("integer", "i64", 8),
    "uint8_t": ("integer", "u8", 1),
    "uint16_t": ("integer", "u16", 2),
    "uint32_t": ("integer", "u32", 4),
    "uint64_t": ("integer", "u64", 8),
    "intptr_t": ("integer", "isize", 8),
    "uintptr_t": ("integer", "usize", 8),
    "ptrdiff_t": ("integer", "isize", 8),
    "ssize_t": ("integer", "isize", 8),
    "size_t": ("integer", "usize", 8),
    "float": ("float", "f32", 4),
    "double": ("float", "f64", 8),
    "long double": ("float", "f64", 16),
}


def primitive_width(name: str) -> str | None:
    """Width class of a primitive spelling, None if not in PRIMITIVES."""
    key = " ".join(name.split())
    if key.startswith("std::"):
        key = key[5:]
    entry = PRIMITIVES.get(key)
    if entry is None:
        return None
    return entry[1]


# Number of template arguments each container family carries.
CONTAINER_ARITY: dict[str, int] = {
    "vector": 1,
    "list": 1,
    "deque": 1,
    "map": 2,
    "unordered_map": 2,
    "set": 1,
    "unordered_set": 1,
    "string": 0,
    "pair": 2,
    "optional": 1,
}

MUTEX_KINDS: frozenset[str] = frozenset({"mutex", "recursive_mutex", "shared_mutex"})

THREADING_KINDS: frozenset[str] = frozenset(
    {
        "thread",
        "mutex",
        "recursive_mutex",
        "shared_mutex",
        "condition_variable",
        "atomic",
        "lock_guard",
        "unique_lock",
        "shared_lock",
    }
)


@dataclass
class Type:
    """One node of a type tree.

    | Kind      | element_type        | template_args           |
    |-----------|---------------------|-------------------------|
    | pointer   | pointee             | -                       |
    | reference | referent            | -                       |
    | array     | element             | -                       |
    | atomic    | value type          | -                       |
    | function  | return type         | parameter types         |
    | container | -                   | k args (CONTAINER_ARITY)|
    | aggregate | -                   | template instantiation  |

    Invariants (well-formed input):
    - pointer/reference/array/atomic have exactly one element_type
    - a container of arity k has exactly k template_args
    - primitive kinds have neither
    - the tree is acyclic

    size_bytes and alignment are best effort (0 = unknown) and
    authoritative only for primitives.
    """

    kind: TypeKind
    name: str = ""
    is_const: bool = False
    is_mutable: bool = True
    element_type: Type | None = None
    template_args: list[Type] = field(default_factory=list)
    size_bytes: int = 0
    alignment: int = 0

    def is_container(self) -> bool:
        return self.kind in CONTAINER_ARITY

    def is_threading(self) -> bool:
        return self.kind in THREADING_KINDS


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class Variable:
    """Field or global variable. initializer is opaque source text."""

    name: str
    typ: Type
    is_static: bool = False
    is_const: bool = False
    initializer: str | None = None
    line: int = 0


@dataclass
class Parameter:
    """Function parameter. default is opaque source text."""

    name: str
    typ: Type
    default: str | None = None


# ============================================================
# OWNERSHIP (middleend/ownership.py)
# ============================================================

OwnershipPattern = Literal[
    "unique_ownership",
    "shared_ownership",
    "borrowed_reference",
    "mutable_borrow",
    "raw_pointer",
    "value_semantics",
]
"""How a reference-like type's lifetime and exclusivity are meant to behave.

| Pattern            | C++ shape         | Rust              | Go |
|--------------------|-------------------|-------------------|----|
| unique_ownership   | unique_ptr<T>     | Box<T>            | *T |
| shared_ownership   | shared_ptr<T>     | Rc<RefCell<T>>    | *T |
| borrowed_reference | const T&          | &T                | *T |
| mutable_borrow     | T&                | &mut T            | *T |
| raw_pointer        | T*, weak_ptr<T>   | *mut T / *const T | *T |
| value_semantics    | T                 | T                 | T  |

Go has no ownership distinction, so all five reference patterns collapse
to *T there.
"""


# ============================================================
# EXCEPTION PROFILE (middleend/exceptions.py)
# ============================================================

Strategy = Literal["result_type", "error_return", "panic", "ignore"]
"""Conversion strategy for a function's error handling.

| Strategy     | Rust                  | Go                      |
|--------------|-----------------------|-------------------------|
| result_type  | -> Result<T, E>       | -                       |
| error_return | -                     | (T, error)              |
| panic        | panic!(...)           | panic(...)              |
| ignore       | signature unchanged   | signature unchanged     |
"""


@dataclass
class ExceptionSpec:
    """Declared throwing behavior of a function."""

    is_noexcept: bool = False
    can_throw: bool = False


@dataclass
class CatchClause:
    """One catch handler. exception_type is "..." for catch-all."""

    exception_type: str
    exception_var: str
    handler_body: str


@dataclass
class TryCatchBlock:
    """A try body and the catch clauses that directly follow it."""

    try_body: str
    catch_clauses: list[CatchClause] = field(default_factory=list)


@dataclass
class ExceptionProfile:
    """Per-function exception facts.

    override_throws marks a virtual method whose override set (the base
    declaration and every override of it) holds a member that may throw;
    all members of the set then share one error-carrying signature.

    Invariants:
    - may_throw is False implies try_catch_blocks is empty and the body
      has no throw idiom
    """

    exception_spec: ExceptionSpec = field(default_factory=ExceptionSpec)
    try_catch_blocks: list[TryCatchBlock] = field(default_factory=list)
    thrown_types: list[str] = field(default_factory=list)
    may_throw: bool = False
    override_throws: bool = False


# ============================================================
# CONCURRENCY PROFILE (middleend/concurrency.py)
# ============================================================

LockKind = Literal["lock_guard", "unique_lock", "shared_lock"]
MutexKind = Literal["mutex", "recursive_mutex", "shared_mutex"]


@dataclass
class ThreadInfo:
    """A std::thread construction. detached threads are never joinable."""

    thread_var_name: str
    function_name: str
    arguments: list[str] = field(default_factory=list)
    detached: bool = False
    joinable: bool = True


@dataclass
class LockInfo:
    """A scoped lock binding lock_var_name to mutex_name."""

    kind: LockKind
    lock_var_name: str
    mutex_name: str


@dataclass
class AtomicInfo:
    """An atomic variable and the operations applied to it, in source order.

    value_type is None when only operations were seen (implied member).
    """

    atomic_var_name: str
    value_type: Type | None = None
    operations: list[str] = field(default_factory=list)


@dataclass
class ConditionVariableInfo:
    """A condition variable and its wait/notify calls, in source order."""

    cv_var_name: str
    wait_conditions: list[str] = field(default_factory=list)


@dataclass
class MutexInfo:
    """A mutex member of a class."""

    kind: MutexKind
    mutex_var_name: str


@dataclass
class ConcurrencyProfile:
    """Per-function threading facts."""

    threads_created: list[ThreadInfo] = field(default_factory=list)
    lock_scopes: list[LockInfo] = field(default_factory=list)
    atomic_operations: list[AtomicInfo] = field(default_factory=list)
    condition_variables: list[ConditionVariableInfo] = field(default_factory=list)
    uses_threading: bool = False


# ============================================================
# FUNCTIONS AND CLASSES
# ============================================================


@dataclass
class Function:
    """Free function or method.

    body is the raw text between the outer braces; it is the only input
    the analyzers read. return_type is None for constructors and
    destructors.

    Middleend annotations:
    - exception_profile: set by analyze_exceptions
    - concurrency: set by analyze_concurrency
    - moved_params / borrowed_params: set by analyze_ownership
    """

    name: str
    return_type: Type | None = None
    parameters: list[Parameter] = field(default_factory=list)
    body: str = ""
    is_const: bool = False
    is_static: bool = False
    is_virtual: bool = False
    is_pure_virtual: bool = False
    is_constructor: bool = False
    is_destructor: bool = False
    is_noexcept: bool = False
    has_body: bool = False
    initializers: list[tuple[str, str]] = field(default_factory=list)
    doc: str | None = None
    line: int = 0
    # Middleend annotations
    exception_profile: ExceptionProfile | None = None
    concurrency: ConcurrencyProfile | None = None
    moved_params: list[str] = field(default_factory=list)
    borrowed_params: list[str] = field(default_factory=list)


AccessLevel = Literal["public", "protected", "private"]


@dataclass
class AccessSection:
    """A run of members under one access specifier."""

    level: AccessLevel
    members: list[str] = field(default_factory=list)


@dataclass
class ClassDecl:
    """Class or struct definition.

    base_classes are name references only; no dispatch table is modeled.

    Middleend annotations:
    - thread_safe, mutexes, atomic_fields: set by analyze_concurrency
    """

    name: str
    is_struct: bool = False
    fields: list[Variable] = field(default_factory=list)
    methods: list[Function] = field(default_factory=list)
    base_classes: list[str] = field(default_factory=list)
    is_template: bool = False
    template_params: list[str] = field(default_factory=list)
    access_sections: list[AccessSection] = field(default_factory=list)
    doc: str | None = None
    line: int = 0
    # Middleend annotations
    thread_safe: bool = False
    mutexes: list[MutexInfo] = field(default_factory=list)
    atomic_fields: list[AtomicInfo] = field(default_factory=list)

    def is_abstract(self) -> bool:
        return any(m.is_pure_virtual for m in self.methods)

    def access_of(self, member: str) -> AccessLevel:
        """Access level of a member; unlisted members get the default."""
        for section in self.access_sections:
            if member in section.members:
                return section.level
        return "public" if self.is_struct else "private"

    def find_method(self, name: str) -> Function | None:
        for method in self.methods:
            if method.name == name:
                return method
        return None


# ============================================================
# IR AGGREGATE
# ============================================================


@dataclass
class IR:
    """A complete transpilation unit.

    Owns classes, functions, and globals in declaration order, plus a
    name-keyed type registry. The registry slot is the canonical Type for
    a name; fields and parameters that mention a registered name hold a
    copy of that node, so qualifiers on one use never reach the slot.

    Invariants (post-frontend):
    - class names are unique
    - every class name has an aggregate entry in the registry
    """

    name: str = ""
    classes: list[ClassDecl] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    global_vars: list[Variable] = field(default_factory=list)
    type_registry: dict[str, Type] = field(default_factory=dict)

    def add_class(self, cls: ClassDecl) -> None:
        self.classes.append(cls)
        self.register_type(cls.name, Type("aggregate", cls.name))

    def add_function(self, func: Function) -> None:
        self.functions.append(func)

    def add_global_variable(self, var: Variable) -> None:
        self.global_vars.append(var)

    def find_type(self, name: str) -> Type | None:
        return self.type_registry.get(name)

    def register_type(self, name: str, typ: Type) -> None:
        self.type_registry[name] = typ

    def find_class(self, name: str) -> ClassDecl | None:
        for cls in self.classes:
            if cls.name == name:
                return cls
        return None

    def override_sets(self) -> list[list[Function]]:
        """Virtual methods grouped with their overrides, in declaration order.

        A set is keyed by the most distant ancestor declaring the method
        virtual; sets of one member are left out.
        """
        by_name = {cls.name: cls for cls in self.classes}
        groups: dict[tuple[str, str], list[Function]] = {}
        for cls in self.classes:
            for method in cls.methods:
                if method.is_constructor or method.is_destructor or method.is_static:
                    continue
                root = _virtual_root(cls, method.name, by_name)
                if root is not None:
                    groups.setdefault((root, method.name), []).append(method)
        return [members for members in groups.values() if len(members) > 1]


def _virtual_root(cls: ClassDecl, name: str, by_name: dict[str, ClassDecl]) -> str | None:
    root: str | None = None
    seen: set[str] = set()
    pending = [cls]
    while pending:
        current = pending.pop()
        if current.name in seen:
            continue
        seen.add(current.name)
        for m in current.methods:
            if m.name == name and (m.is_virtual or m.is_pure_virtual):
                root = current.name
        for base in current.base_classes:
            parent = by_name.get(base.split("<", 1)[0].split("::")[-1].strip())
            if parent is not None:
                pending.append(parent)
    return root
