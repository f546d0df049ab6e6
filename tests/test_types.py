"""Tests for the type mapper and per-target type rendering."""

from hybrid.backend.types import (
    GO_UNKNOWN,
    RUST_BOXED_ERROR,
    RUST_UNKNOWN,
    TypeRenderer,
    atomic_type_for_target,
    error_type_for_target,
    render_for_target,
    reverse_primitive,
    rust_use_lines,
)
from hybrid.diagnostics import Diagnostics
from hybrid.frontend import map_builtin_type, map_type, split_template_args
from hybrid.ir import PRIMITIVES, Type


def _both(spelling: str) -> tuple[str, str]:
    typ = map_type(spelling)
    return (render_for_target(typ, "rust"), render_for_target(typ, "go"))


# ============================================================
# map_type
# ============================================================


def test_builtin_sizes():
    assert map_type("int").kind == "integer"
    assert map_type("int").size_bytes == 4
    assert map_type("unsigned long long").size_bytes == 8
    assert map_type("double").kind == "float"
    assert map_type("bool").kind == "bool"
    assert map_type("").kind == "void"


def test_nested_containers():
    typ = map_type("std::map<std::string, std::vector<double>>")
    assert typ.kind == "map"
    assert [a.kind for a in typ.template_args] == ["string", "vector"]
    assert typ.template_args[1].template_args[0].kind == "float"


def test_extra_container_arguments_dropped():
    typ = map_type("std::unordered_map<int, int, MyHash>")
    assert typ.kind == "unordered_map"
    assert len(typ.template_args) == 2


def test_const_placement():
    pointee_const = map_type("const char*")
    assert pointee_const.kind == "pointer"
    assert pointee_const.element_type.is_const
    assert not pointee_const.is_const
    pointer_const = map_type("char* const")
    assert pointer_const.kind == "pointer"
    assert pointer_const.is_const
    assert not pointer_const.element_type.is_const


def test_const_reference():
    typ = map_type("const std::string&")
    assert typ.kind == "reference"
    assert typ.is_const
    assert typ.element_type.kind == "string"


def test_rvalue_reference_is_the_value():
    assert map_type("std::string&&").kind == "string"


def test_smart_pointers_are_pointers():
    unique = map_type("std::unique_ptr<Widget>")
    assert unique.kind == "pointer"
    assert unique.element_type.kind == "aggregate"
    assert unique.element_type.name == "Widget"
    assert map_type("std::shared_ptr<Widget>").size_bytes == 16


def test_arrays():
    typ = map_type("int[4]")
    assert typ.kind == "array"
    assert typ.size_bytes == 16
    assert map_type("std::array<double, 3>").kind == "array"


def test_threading_and_atomics():
    assert map_type("std::mutex").kind == "mutex"
    assert map_type("std::recursive_timed_mutex").kind == "recursive_mutex"
    assert map_type("std::condition_variable_any").kind == "condition_variable"
    atomic = map_type("std::atomic<bool>")
    assert atomic.kind == "atomic"
    assert atomic.element_type.kind == "bool"
    alias = map_type("std::atomic_int")
    assert alias.kind == "atomic"
    assert alias.element_type.name == "int"


def test_function_type():
    typ = map_type("std::function<int(double, char)>")
    assert typ.kind == "function"
    assert typ.element_type.kind == "integer"
    assert [a.name for a in typ.template_args] == ["double", "char"]


def test_unknown_spelling_is_aggregate():
    typ = map_type("Frobnicator")
    assert typ.kind == "aggregate"
    assert typ.name == "Frobnicator"


def test_split_template_args_respects_nesting():
    assert split_template_args("int, std::pair<int, int>, F(a, b)") == [
        "int",
        "std::pair<int, int>",
        "F(a, b)",
    ]


# ============================================================
# render_for_target
# ============================================================


def test_render_primitives():
    assert _both("int") == ("i32", "int32")
    assert _both("size_t") == ("usize", "uint")
    assert _both("unsigned char") == ("u8", "uint8")
    assert _both("long double") == ("f64", "float64")


def test_render_containers():
    assert _both("std::vector<std::string>") == ("Vec<String>", "[]string")
    assert _both("std::map<std::string, int>") == ("BTreeMap<String, i32>", "map[string]int32")
    assert _both("std::unordered_set<int>") == ("HashSet<i32>", "map[int32]bool")
    assert _both("std::optional<int>") == ("Option<i32>", "*int32")
    assert _both("std::pair<int, double>") == (
        "(i32, f64)",
        "struct{ First int32; Second float64 }",
    )


def test_render_ownership():
    assert _both("std::unique_ptr<Widget>") == ("Box<Widget>", "*Widget")
    assert _both("std::shared_ptr<Widget>") == ("Rc<RefCell<Widget>>", "*Widget")
    assert _both("std::weak_ptr<Widget>") == ("*mut Widget", "*Widget")
    assert _both("const char*") == ("*const i8", "*int8")
    assert _both("void*") == ("*mut std::ffi::c_void", "unsafe.Pointer")
    assert _both("int&") == ("&mut i32", "*int32")


def test_render_atomics():
    assert _both("std::atomic<int>") == ("AtomicI32", "atomic.Int32")
    assert _both("std::atomic<char>") == ("AtomicI8", "atomic.Int32")
    assert _both("std::atomic<int*>") == ("AtomicPtr<i32>", "atomic.Pointer[int32]")
    assert _both("std::atomic<Widget>") == ("AtomicUsize", "atomic.Uintptr")


def test_render_composites():
    assert _both("int[4]") == ("[i32; 4]", "[4]int32")
    assert _both("std::function<int(double)>") == ("Box<dyn Fn(f64) -> i32>", "func(float64) int32")
    assert _both("std::function<void()>") == ("Box<dyn Fn()>", "func()")
    assert _both("Holder<int>") == ("Holder<i32>", "Holder[int32]")
    assert _both("std::shared_mutex") == ("RwLock<()>", "sync.RWMutex")


def test_render_is_total():
    assert render_for_target(Type("vector"), "rust") == "Vec<" + RUST_UNKNOWN + ">"
    assert render_for_target(Type("vector"), "go") == "[]" + GO_UNKNOWN
    assert render_for_target(Type("pointer"), "rust") == RUST_UNKNOWN
    assert render_for_target(Type("aggregate"), "go") == GO_UNKNOWN


def test_placeholder_warns():
    diags = Diagnostics()
    TypeRenderer("rust", diags).render(Type("map", template_args=[Type("integer", "int")]))
    assert len(diags.warnings()) == 1
    assert diags.warnings()[0].category == "unmapped"
    assert "missing template argument for 'map'" in diags.warnings()[0].message


# ============================================================
# TypeRenderer state
# ============================================================


def test_rust_imports_collected():
    renderer = TypeRenderer("rust")
    renderer.render(map_type("std::map<int, std::shared_ptr<Node>>"))
    assert renderer.imports == {"std::collections::BTreeMap", "std::rc::Rc", "std::cell::RefCell"}


def test_go_imports_collected():
    renderer = TypeRenderer("go")
    renderer.render(map_type("std::mutex"))
    renderer.render(map_type("std::atomic<long>"))
    assert renderer.imports == {"sync", "sync/atomic"}


def test_safety_warnings_follow_flag():
    diags = Diagnostics()
    TypeRenderer("rust", diags, safety_checks=True).render(map_type("int*"))
    assert [d.category for d in diags.items] == ["safety"]
    quiet = Diagnostics()
    TypeRenderer("rust", quiet, safety_checks=False).render(map_type("int*"))
    assert quiet.items == []


def test_go_recursive_mutex_warns():
    diags = Diagnostics()
    rendered = TypeRenderer("go", diags).render(map_type("std::recursive_mutex"))
    assert rendered == "sync.Mutex"
    assert "not reentrant" in diags.warnings()[0].message


def test_lifetime_on_borrowed_fields():
    renderer = TypeRenderer("rust")
    renderer.lifetime = "'a"
    assert renderer.render(map_type("const std::string&")) == "&'a String"
    assert renderer.used_lifetime


def test_rust_use_lines_grouped():
    paths = {"std::sync::Mutex", "std::sync::Condvar", "std::rc::Rc"}
    assert rust_use_lines(paths) == ["use std::rc::Rc;", "use std::sync::{Condvar, Mutex};"]


# ============================================================
# helpers
# ============================================================


def test_reverse_primitive():
    for target in ("rust", "go"):
        for spelling, (kind, _, _) in PRIMITIVES.items():
            rendered = render_for_target(map_builtin_type(spelling), target)
            assert reverse_primitive(rendered, target) == kind, (spelling, target, rendered)
    assert reverse_primitive("String", "rust") is None
    assert reverse_primitive("string", "go") is None
    assert reverse_primitive("struct{}", "rust") is None


def test_atomic_default():
    assert atomic_type_for_target(None, "rust") == "AtomicUsize"
    assert atomic_type_for_target(None, "go") == "atomic.Uintptr"


def test_error_types():
    assert error_type_for_target("runtime_error", "rust") == RUST_BOXED_ERROR
    assert error_type_for_target("std::out_of_range", "rust") == RUST_BOXED_ERROR
    assert error_type_for_target("ParseFailure", "rust") == "String"
    assert error_type_for_target("ParseFailure", "go") == "error"
