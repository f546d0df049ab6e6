"""Per-target rendering of IR types.

render_for_target is total: every Type tree renders to some text, and a
missing element or template argument renders as an explicit placeholder.
TypeRenderer is the stateful form used by the generators; it also records
the imports a rendering needs and the diagnostics for unmapped shapes.

Rust imports are collected as full paths ("std::sync::Mutex") and grouped
into `use` lines by rust_use_lines. Go imports are package paths ("sync").
"""

from __future__ import annotations

import re

from ..diagnostics import Diagnostics
from ..ir import CONTAINER_ARITY, Target, Type, TypeKind, primitive_width
from ..middleend.exceptions import is_standard_exception
from ..middleend.ownership import classify, render_ownership
from .util import short_name

RUST_UNKNOWN = "/* unknown */ ()"
GO_UNKNOWN = "any /* unknown */"

# Width class -> rendered primitive name.
PRIMITIVE_NAMES: dict[str, dict[str, str]] = {
    "rust": {
        "i8": "i8",
        "u8": "u8",
        "i16": "i16",
        "u16": "u16",
        "i32": "i32",
        "u32": "u32",
        "i64": "i64",
        "u64": "u64",
        "isize": "isize",
        "usize": "usize",
        "f32": "f32",
        "f64": "f64",
    },
    "go": {
        "i8": "int8",
        "u8": "uint8",
        "i16": "int16",
        "u16": "uint16",
        "i32": "int32",
        "u32": "uint32",
        "i64": "int64",
        "u64": "uint64",
        "isize": "int",
        "usize": "uint",
        "f32": "float32",
        "f64": "float64",
    },
}

VOID_NAMES: dict[str, str] = {"rust": "()", "go": "struct{}"}

# Integer width by byte size, for integer types whose spelling is not a builtin.
SIZE_WIDTHS: dict[int, str] = {1: "i8", 2: "i16", 4: "i32", 8: "i64"}

# Container kind -> (rendering template, import). {0} {1} are the arguments.
CONTAINER_TYPES: dict[str, dict[str, tuple[str, str]]] = {
    "rust": {
        "vector": ("Vec<{0}>", ""),
        "list": ("LinkedList<{0}>", "std::collections::LinkedList"),
        "deque": ("VecDeque<{0}>", "std::collections::VecDeque"),
        "map": ("BTreeMap<{0}, {1}>", "std::collections::BTreeMap"),
        "unordered_map": ("HashMap<{0}, {1}>", "std::collections::HashMap"),
        "set": ("BTreeSet<{0}>", "std::collections::BTreeSet"),
        "unordered_set": ("HashSet<{0}>", "std::collections::HashSet"),
        "string": ("String", ""),
        "pair": ("({0}, {1})", ""),
        "optional": ("Option<{0}>", ""),
    },
    "go": {
        "vector": ("[]{0}", ""),
        "list": ("[]{0}", ""),
        "deque": ("[]{0}", ""),
        "map": ("map[{0}]{1}", ""),
        "unordered_map": ("map[{0}]{1}", ""),
        "set": ("map[{0}]bool", ""),
        "unordered_set": ("map[{0}]bool", ""),
        "string": ("string", ""),
        "pair": ("struct{{ First {0}; Second {1} }}", ""),
        "optional": ("*{0}", ""),
    },
}

# Threading kind -> (rendered type, import).
#
# | Kind               | Rust                        | Go             |
# |--------------------|-----------------------------|----------------|
# | thread             | JoinHandle<()>              | chan struct{}  |
# | mutex              | Mutex<()>                   | sync.Mutex     |
# | recursive_mutex    | ReentrantMutex<()>          | sync.Mutex     |
# | shared_mutex       | RwLock<()>                  | sync.RWMutex   |
# | condition_variable | Condvar                     | *sync.Cond     |
# | lock_guard         | MutexGuard<'_, ()>          | func()         |
# | unique_lock        | MutexGuard<'_, ()>          | func()         |
# | shared_lock        | RwLockReadGuard<'_, ()>     | func()         |
#
# A Go thread is a goroutine plus a done channel; a Go lock guard is the
# deferred unlock function.
THREADING_TYPES: dict[str, dict[str, tuple[str, str]]] = {
    "rust": {
        "thread": ("JoinHandle<()>", "std::thread::JoinHandle"),
        "mutex": ("Mutex<()>", "std::sync::Mutex"),
        "recursive_mutex": ("ReentrantMutex<()>", "parking_lot::ReentrantMutex"),
        "shared_mutex": ("RwLock<()>", "std::sync::RwLock"),
        "condition_variable": ("Condvar", "std::sync::Condvar"),
        "lock_guard": ("MutexGuard<'_, ()>", "std::sync::MutexGuard"),
        "unique_lock": ("MutexGuard<'_, ()>", "std::sync::MutexGuard"),
        "shared_lock": ("RwLockReadGuard<'_, ()>", "std::sync::RwLockReadGuard"),
    },
    "go": {
        "thread": ("chan struct{}", ""),
        "mutex": ("sync.Mutex", "sync"),
        "recursive_mutex": ("sync.Mutex", "sync"),
        "shared_mutex": ("sync.RWMutex", "sync"),
        "condition_variable": ("*sync.Cond", "sync"),
        "lock_guard": ("func()", ""),
        "unique_lock": ("func()", ""),
        "shared_lock": ("func()", ""),
    },
}

# Atomic value width -> sized atomic type. Unrecognized values fall back
# to the pointer-sized atomic.
ATOMIC_TYPES: dict[str, dict[str, str]] = {
    "rust": {
        "bool": "AtomicBool",
        "i8": "AtomicI8",
        "u8": "AtomicU8",
        "i16": "AtomicI16",
        "u16": "AtomicU16",
        "i32": "AtomicI32",
        "u32": "AtomicU32",
        "i64": "AtomicI64",
        "u64": "AtomicU64",
        "isize": "AtomicIsize",
        "usize": "AtomicUsize",
    },
    "go": {
        "bool": "atomic.Bool",
        "i8": "atomic.Int32",
        "u8": "atomic.Uint32",
        "i16": "atomic.Int32",
        "u16": "atomic.Uint32",
        "i32": "atomic.Int32",
        "u32": "atomic.Uint32",
        "i64": "atomic.Int64",
        "u64": "atomic.Uint64",
        "isize": "atomic.Int64",
        "usize": "atomic.Uint64",
    },
}
ATOMIC_DEFAULT: dict[str, str] = {"rust": "AtomicUsize", "go": "atomic.Uintptr"}

# C++ atomic member function -> target method name.
ATOMIC_OPS: dict[str, dict[str, str]] = {
    "rust": {
        "load": "load",
        "store": "store",
        "fetch_add": "fetch_add",
        "fetch_sub": "fetch_sub",
        "exchange": "swap",
        "compare_exchange_weak": "compare_exchange_weak",
        "compare_exchange_strong": "compare_exchange",
    },
    "go": {
        "load": "Load",
        "store": "Store",
        "fetch_add": "Add",
        "fetch_sub": "Add",
        "exchange": "Swap",
        "compare_exchange_weak": "CompareAndSwap",
        "compare_exchange_strong": "CompareAndSwap",
    },
}

# C++ condition-variable member function -> target method name.
CONDVAR_OPS: dict[str, dict[str, str]] = {
    "rust": {
        "wait": "wait",
        "wait_for": "wait_timeout",
        "wait_until": "wait_timeout",
        "notify_one": "notify_one",
        "notify_all": "notify_all",
    },
    "go": {
        "wait": "Wait",
        "wait_for": "Wait",
        "wait_until": "Wait",
        "notify_one": "Signal",
        "notify_all": "Broadcast",
    },
}

RUST_BOXED_ERROR = "Box<dyn std::error::Error>"

ARRAY_COUNT_RE = re.compile(r"\[([^\[\]]*)\]\s*$")


def atomic_type_for_target(value_type: Type | None, target: Target) -> str:
    """Sized atomic type for a value type, pointer-sized when unrecognized."""
    if value_type is not None:
        if value_type.kind == "pointer" and target == "go":
            inner = render_for_target(value_type.element_type or Type("void"), target)
            return "atomic.Pointer[" + inner + "]"
        if value_type.kind == "pointer":
            inner = render_for_target(value_type.element_type or Type("void"), target)
            return "AtomicPtr<" + inner + ">"
        width = _width(value_type)
        if width is not None and width in ATOMIC_TYPES[target]:
            return ATOMIC_TYPES[target][width]
    return ATOMIC_DEFAULT[target]


def error_type_for_target(exception_type: str, target: Target) -> str:
    """Error type a translated signature carries for a thrown type."""
    if target == "go":
        return "error"
    if is_standard_exception(exception_type):
        return RUST_BOXED_ERROR
    return "String"


def reverse_primitive(rendered: str, target: Target) -> TypeKind | None:
    """Kind of a rendered primitive name, None for anything else."""
    if rendered == VOID_NAMES[target]:
        return "void"
    if rendered == "bool":
        return "bool"
    for width, name in PRIMITIVE_NAMES[target].items():
        if name == rendered:
            return "float" if width.startswith("f") else "integer"
    return None


def rust_use_lines(paths: set[str]) -> list[str]:
    """Group import paths by module: {'a::B', 'a::C'} -> ['use a::{B, C};']."""
    groups: dict[str, list[str]] = {}
    for path in paths:
        module, _, item = path.rpartition("::")
        groups.setdefault(module, []).append(item)
    lines: list[str] = []
    for module in sorted(groups):
        items = sorted(groups[module])
        if len(items) == 1:
            lines.append("use " + module + "::" + items[0] + ";")
        else:
            lines.append("use " + module + "::{" + ", ".join(items) + "};")
    return lines


def _width(typ: Type) -> str | None:
    if typ.kind == "bool":
        return "bool"
    if typ.kind not in ("integer", "float"):
        return None
    width = primitive_width(typ.name)
    if width is not None:
        return width
    if typ.kind == "float":
        return "f64" if typ.size_bytes >= 8 else "f32"
    return SIZE_WIDTHS.get(typ.size_bytes, "i32")


class TypeRenderer:
    """Render types for one target, collecting imports and diagnostics.

    lifetime names the lifetime borrowed references get in Rust struct
    fields; used_lifetime records whether any rendering needed it.
    """

    def __init__(
        self,
        target: Target,
        diags: Diagnostics | None = None,
        safety_checks: bool = False,
    ) -> None:
        self.target: Target = target
        self.diags: Diagnostics = diags if diags is not None else Diagnostics()
        self.safety_checks = safety_checks
        self.imports: set[str] = set()
        self.lifetime: str = ""
        self.used_lifetime = False
        self.line = 0

    def render(self, typ: Type | None) -> str:
        if typ is None:
            return self._unknown("missing element type")
        kind = typ.kind
        if kind == "void":
            return VOID_NAMES[self.target]
        if kind == "bool":
            return "bool"
        if kind in ("integer", "float"):
            return PRIMITIVE_NAMES[self.target][_width(typ) or "i32"]
        if kind == "pointer" or kind == "reference":
            return self._pointer(typ)
        if kind == "array":
            return self._array(typ)
        if kind == "function":
            return self._function(typ)
        if kind == "atomic":
            return self._atomic(typ)
        if typ.is_container():
            return self._container(typ)
        if typ.is_threading():
            return self._threading(typ)
        return self._aggregate(typ)

    # ── helpers ──────────────────────────────────────────────

    def _unknown(self, reason: str) -> str:
        self.diags.add_warning("unmapped", reason + ", rendered as a placeholder", self.line)
        if self.target == "rust":
            return RUST_UNKNOWN
        return GO_UNKNOWN

    def _import(self, path: str) -> None:
        if path:
            self.imports.add(path)

    def _pointer(self, typ: Type) -> str:
        pattern = classify(typ)
        elem = typ.element_type
        if elem is None:
            return self._unknown("pointer without a pointee type")
        if elem.kind == "void" and pattern == "raw_pointer":
            self._safety("untyped pointer '" + typ.name + "'")
            if self.target == "go":
                self._import("unsafe")
                return "unsafe.Pointer"
            qualifier = "*const " if elem.is_const else "*mut "
            return qualifier + "std::ffi::c_void"
        inner = self.render(elem)
        if self.target == "rust" and pattern == "shared_ownership":
            self._import("std::rc::Rc")
            self._import("std::cell::RefCell")
        if pattern == "raw_pointer":
            self._safety("raw pointer '" + typ.name + "'")
        lifetime = ""
        if pattern in ("borrowed_reference", "mutable_borrow") and self.lifetime:
            lifetime = self.lifetime
            self.used_lifetime = True
        return render_ownership(pattern, inner, self.target, elem.is_const, lifetime)

    def _safety(self, what: str) -> None:
        if self.safety_checks:
            self.diags.add_warning("safety", what + " has no ownership guarantees", self.line)

    def _array(self, typ: Type) -> str:
        inner = self.render(typ.element_type)
        m = ARRAY_COUNT_RE.search(typ.name)
        count = m.group(1).strip() if m is not None else ""
        if count == "":
            if self.target == "rust":
                return "Vec<" + inner + ">"
            return "[]" + inner
        if self.target == "rust":
            return "[" + inner + "; " + count + "]"
        return "[" + count + "]" + inner

    def _function(self, typ: Type) -> str:
        params = ", ".join(self.render(arg) for arg in typ.template_args)
        ret = typ.element_type
        if self.target == "rust":
            text = "Box<dyn Fn(" + params + ")"
            if ret is not None and ret.kind != "void":
                text += " -> " + self.render(ret)
            return text + ">"
        text = "func(" + params + ")"
        if ret is not None and ret.kind != "void":
            text += " " + self.render(ret)
        return text

    def _atomic(self, typ: Type) -> str:
        rendered = atomic_type_for_target(typ.element_type, self.target)
        if self.target == "go":
            self._import("sync/atomic")
        else:
            self._import("std::sync::atomic::" + rendered.split("<", 1)[0])
        return rendered

    def _container(self, typ: Type) -> str:
        template, path = CONTAINER_TYPES[self.target][typ.kind]
        self._import(path)
        arity = CONTAINER_ARITY[typ.kind]
        args: list[str] = []
        for i in range(arity):
            if i < len(typ.template_args):
                args.append(self.render(typ.template_args[i]))
            else:
                args.append(self._unknown("missing template argument for '" + typ.kind + "'"))
        return template.format(*args)

    def _threading(self, typ: Type) -> str:
        rendered, path = THREADING_TYPES[self.target][typ.kind]
        self._import(path)
        if self.target == "go" and typ.kind == "recursive_mutex":
            self.diags.add_warning(
                "unmapped", "recursive mutex rendered as sync.Mutex, which is not reentrant", self.line
            )
        return rendered

    def _aggregate(self, typ: Type) -> str:
        base = typ.name.split("<", 1)[0].strip()
        name = short_name(base) if base else ""
        if name == "":
            return self._unknown("unnamed type")
        if not typ.template_args:
            return name
        args = ", ".join(self.render(arg) for arg in typ.template_args)
        if self.target == "rust":
            return name + "<" + args + ">"
        return name + "[" + args + "]"


def render_for_target(typ: Type, target: Target) -> str:
    """Render a type for a target; total over every kind."""
    return TypeRenderer(target).render(typ)
