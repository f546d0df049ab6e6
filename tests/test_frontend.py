"""Tests for the declaration parser."""

import pytest

from hybrid.diagnostics import Diagnostics
from hybrid.frontend import ParseError, compile
from hybrid.ir import IR, ClassDecl, Function


def _parse(source: str) -> tuple[IR, Diagnostics]:
    diags = Diagnostics()
    return compile(source, "<input>", diags), diags


def _find_fn(ir: IR, name: str) -> Function:
    for f in ir.functions:
        if f.name == name:
            return f
    raise ValueError(f"no fn {name}")


def _find_class(ir: IR, name: str) -> ClassDecl:
    cls = ir.find_class(name)
    if cls is None:
        raise ValueError(f"no class {name}")
    return cls


def _messages(diags: Diagnostics) -> list[str]:
    return [d.message for d in diags.items]


# ============================================================
# classes
# ============================================================


def test_access_sections():
    ir, _ = _parse("""
class A {
    int hidden;
public:
    void f();
protected:
    int p;
};
struct B { int open; };
""")
    a = _find_class(ir, "A")
    assert a.access_of("hidden") == "private"
    assert a.access_of("f") == "public"
    assert a.access_of("p") == "protected"
    assert [s.level for s in a.access_sections] == ["private", "public", "protected"]
    assert _find_class(ir, "B").access_of("open") == "public"


def test_template_parameters():
    ir, _ = _parse("template <typename K, typename V = int> class Table {};")
    table = _find_class(ir, "Table")
    assert table.is_template
    assert table.template_params == ["K", "V"]


def test_base_classes():
    ir, _ = _parse("class D : public B, private C {};")
    assert _find_class(ir, "D").base_classes == ["B", "C"]


def test_constructor_initializers():
    ir, _ = _parse("""
class P {
public:
    P(int x, int y) : x_(x), y_{y} {}
private:
    int x_;
    int y_;
};
""")
    ctor = _find_class(ir, "P").methods[0]
    assert ctor.is_constructor
    assert ctor.return_type is None
    assert ctor.initializers == [("x_", "x"), ("y_", "y")]
    assert ctor.has_body


def test_method_flags():
    ir, _ = _parse("""
class Shape {
public:
    virtual double area() const = 0;
    static Shape* make();
    void draw() override;
};
""")
    shape = _find_class(ir, "Shape")
    area = shape.find_method("area")
    assert area.is_pure_virtual
    assert area.is_virtual
    assert area.is_const
    assert shape.find_method("make").is_static
    assert shape.find_method("draw").is_virtual
    assert shape.is_abstract()


def test_out_of_line_definition_merges():
    ir, diags = _parse("""
class C {
public:
    int get(int) const;
};
int C::get(int index) const { return index; }
""")
    cls = _find_class(ir, "C")
    assert len(cls.methods) == 1
    get = cls.methods[0]
    assert get.has_body
    assert get.body.strip() == "return index;"
    assert get.parameters[0].name == "index"
    assert diags.items == []


def test_definition_without_declaration_warns():
    ir, diags = _parse("class C {};\nvoid C::run() {}")
    assert _find_class(ir, "C").find_method("run") is not None
    assert "definition of 'C::run' has no declaration in the class" in _messages(diags)


def test_deleted_members_dropped():
    ir, _ = _parse("class N { public: N(const N&) = delete; };")
    assert _find_class(ir, "N").methods == []


def test_duplicate_class_warns():
    ir, diags = _parse("struct S {};\nstruct S {};")
    assert len(ir.classes) == 1
    assert "duplicate definition of 'S' ignored" in _messages(diags)


def test_union_not_modeled():
    ir, diags = _parse("union U { int i; float f; };")
    assert ir.classes == []
    assert ir.find_type("U").kind == "aggregate"
    assert "union 'U' is not modeled" in _messages(diags)


# ============================================================
# functions
# ============================================================


def test_parameters():
    ir, _ = _parse("void f(int a, int b = 2, int);\nvoid g(void);")
    params = _find_fn(ir, "f").parameters
    assert [p.name for p in params] == ["a", "b", "arg2"]
    assert params[1].default == "2"
    assert _find_fn(ir, "g").parameters == []


def test_noexcept_forms():
    ir, _ = _parse("void f() noexcept;\nvoid g() throw();\nvoid h() noexcept(false);")
    assert _find_fn(ir, "f").is_noexcept
    assert _find_fn(ir, "g").is_noexcept
    assert not _find_fn(ir, "h").is_noexcept


def test_trailing_return_type():
    ir, _ = _parse("auto sum(int a) -> long { return a; }")
    ret = _find_fn(ir, "sum").return_type
    assert ret.kind == "integer"
    assert ret.size_bytes == 8


def test_body_is_raw_text():
    ir, _ = _parse("int add(int a, int b) { return a + b; }")
    fn = _find_fn(ir, "add")
    assert fn.body == " return a + b; "
    assert fn.line == 1


def test_namespaces_are_flattened():
    ir, diags = _parse("namespace app { struct S {}; void g() {} }")
    assert ir.find_class("S") is not None
    assert _find_fn(ir, "g").has_body
    assert diags.items == []


# ============================================================
# variables and type aliases
# ============================================================


def test_global_variables():
    ir, _ = _parse("static const int N = 3;\nint a = 1, b;")
    n, a, b = ir.global_vars
    assert n.name == "N"
    assert n.is_static
    assert n.is_const
    assert n.initializer == "3"
    assert (a.name, a.initializer) == ("a", "1")
    assert (b.name, b.initializer) == ("b", None)


def test_enum_maps_to_underlying_integer():
    ir, diags = _parse("enum class Color : uint8_t { Red, Green };\nstruct Pixel { Color c; };")
    field = _find_class(ir, "Pixel").fields[0]
    assert field.typ.kind == "integer"
    assert field.typ.name == "uint8_t"
    assert "enum 'Color' mapped to its underlying integer type" in _messages(diags)


def test_using_and_typedef_aliases():
    ir, _ = _parse("""
using Ids = std::vector<int>;
typedef unsigned long Handle;
struct Bag { Ids ids; Handle h; };
""")
    ids, handle = _find_class(ir, "Bag").fields
    assert ids.typ.kind == "vector"
    assert handle.typ.kind == "integer"
    assert handle.typ.size_bytes == 8


def test_registry_copies_are_independent():
    ir, _ = _parse("struct Node {};\nstruct Holder { const Node n; };")
    field = _find_class(ir, "Holder").fields[0]
    assert field.typ.is_const
    assert not ir.find_type("Node").is_const


# ============================================================
# comments and errors
# ============================================================


def test_doc_comments():
    ir, _ = _parse("/// Hi there\nstruct S {};\n/**\n * Multi\n * line\n */\nvoid f();")
    assert _find_class(ir, "S").doc == "Hi there"
    assert _find_fn(ir, "f").doc == "Multi\nline"


def test_macro_warns():
    _, diags = _parse("#define MAX 10\nint x;")
    assert [d.category for d in diags.items] == ["preprocessor"]
    assert diags.items[0].message == "macro 'MAX' is not expanded"
    assert diags.items[0].line == 1


def test_unbalanced_brace_raises():
    with pytest.raises(ParseError) as info:
        compile("int ok;\nclass A {")
    assert info.value.lineno == 2


def test_unterminated_comment_raises():
    with pytest.raises(ParseError) as info:
        compile("int x; /* open")
    assert info.value.msg == "unterminated comment"


def test_stray_close_brace_raises():
    with pytest.raises(ParseError):
        compile("int x; }")
