"""RustBackend: analyzed IR -> Rust source.

Declarations are translated structurally; function bodies are carried as
comments, followed by scaffolding for the idioms the analyzers found and
a todo!() placeholder. Abstract classes become traits, concrete bases
become a `base` field.
"""

from __future__ import annotations

import re

from ..diagnostics import Diagnostics
from ..ir import IR, ClassDecl, Function, Parameter, Strategy, TryCatchBlock, Type, Variable
from ..middleend.concurrency import split_arguments
from ..middleend.exceptions import error_description, select_strategy
from .types import (
    ATOMIC_OPS,
    CONDVAR_OPS,
    RUST_BOXED_ERROR,
    TypeRenderer,
    atomic_type_for_target,
    error_type_for_target,
    rust_use_lines,
)
from .util import (
    RUST_RESERVED,
    Emitter,
    escape_string,
    method_name,
    rename_identifiers,
    short_name,
    simple_expr,
    to_screaming_snake,
    to_snake,
)

# Value-argument shapes for atomic and condvar hints.
_ATOMIC_ARGS: dict[str, str] = {
    "load": "Ordering::SeqCst",
    "store": "value, Ordering::SeqCst",
    "fetch_add": "value, Ordering::SeqCst",
    "fetch_sub": "value, Ordering::SeqCst",
    "exchange": "value, Ordering::SeqCst",
    "compare_exchange_weak": "current, new, Ordering::SeqCst, Ordering::SeqCst",
    "compare_exchange_strong": "current, new, Ordering::SeqCst, Ordering::SeqCst",
}
_CONDVAR_ARGS: dict[str, str] = {
    "wait": "guard",
    "wait_for": "guard, timeout",
    "wait_until": "guard, timeout",
    "notify_one": "",
    "notify_all": "",
}

_THREAD_WRAPPERS_RE = re.compile(r"^std::c?ref\s*\((.*)\)$")


def _is_text(typ: Type) -> bool:
    """std::string or const char*."""
    if typ.kind == "string":
        return True
    elem = typ.element_type
    return typ.kind == "pointer" and elem is not None and elem.kind == "integer" and elem.name == "char"


class RustBackend(Emitter):
    """Emit Rust code from an analyzed IR."""

    def __init__(
        self,
        preserve_comments: bool = True,
        generate_tests: bool = False,
        safety_checks: bool = True,
        diags: Diagnostics | None = None,
    ) -> None:
        super().__init__()
        self.preserve_comments = preserve_comments
        self.generate_tests = generate_tests
        self.safety_checks = safety_checks
        self.diags: Diagnostics = diags if diags is not None else Diagnostics()
        self.types = TypeRenderer("rust", self.diags, safety_checks)
        self._traits: dict[str, ClassDecl] = {}
        self._trait_structs: set[str] = set()
        self._names: dict[str, str] = {}

    def emit(self, ir: IR) -> str:
        self.lines = []
        self.indent = 0
        self.types = TypeRenderer("rust", self.diags, self.safety_checks)
        self._traits = {cls.name: cls for cls in ir.classes if cls.is_abstract()}
        self._trait_structs = set()
        for cls in self._traits.values():
            fields, plain = self._base_members(cls)
            if fields or plain:
                self._trait_structs.add(cls.name)
        self._emit_globals(ir.global_vars)
        for cls in ir.classes:
            if cls.name in self._traits:
                self._emit_trait(cls)
            else:
                self._emit_class(cls)
        free_names = self._method_names("", ir.functions)
        for func in ir.functions:
            self._emit_free_function(func, free_names[id(func)])
        if self.generate_tests:
            self._emit_tests(ir)
        body = self.lines
        self.lines = []
        uses = rust_use_lines(self.types.imports)
        for use in uses:
            self.line(use)
        if uses:
            self.line("")
        self.lines.extend(body)
        while self.lines and self.lines[-1] == "":
            self.lines.pop()
        return self.output() + "\n"

    # ── helpers ──────────────────────────────────────────────

    def _safe(self, name: str) -> str:
        if name in RUST_RESERVED:
            return name + "_"
        return name

    def _field_name(self, name: str) -> str:
        # count_ -> count
        return self._safe(to_snake(name.rstrip("_") or name))

    def _doc(self, doc: str | None) -> None:
        if doc and self.preserve_comments:
            self.comment_lines("///", doc)

    def _pub(self, cls: ClassDecl | None, member: str) -> str:
        if cls is None or cls.access_of(member) == "public":
            return "pub "
        return ""

    def _generics(self, cls: ClassDecl, lifetime: bool) -> str:
        params = list(cls.template_params)
        if lifetime:
            params.insert(0, "'a")
        if not params:
            return ""
        return "<" + ", ".join(params) + ">"

    def _strategy(self, func: Function) -> Strategy:
        strategy = select_strategy(func, "rust")
        if func.is_destructor and strategy == "result_type":
            # Drop::drop cannot return a Result
            return "panic"
        return strategy

    def _error_type(self, func: Function) -> str:
        profile = func.exception_profile
        # override sets share one signature whatever each member throws
        if profile is not None and profile.thrown_types and not profile.override_throws:
            return error_type_for_target(profile.thrown_types[0], "rust")
        return RUST_BOXED_ERROR

    def _ret(self, func: Function, strategy: Strategy) -> str:
        typ = func.return_type
        ret = "" if typ is None or typ.kind == "void" else self.types.render(typ)
        if strategy == "result_type":
            return " -> Result<" + (ret or "()") + ", " + self._error_type(func) + ">"
        if ret:
            return " -> " + ret
        return ""

    def _param(self, p: Parameter, func: Function) -> str:
        """Borrowed strings and vectors take slices; moved params stay owned."""
        typ = p.typ
        name = self._names.get(p.name, p.name)
        shown: Type | None = typ
        if typ.kind == "reference":
            shown = typ.element_type if typ.is_const else None
        if p.name in func.borrowed_params and shown is not None:
            if shown.kind == "string":
                return name + ": &str"
            if shown.kind == "vector":
                item = shown.template_args[0] if shown.template_args else None
                return name + ": &[" + self.types.render(item) + "]"
        return name + ": " + self.types.render(typ)

    def _bind_params(self, func: Function) -> None:
        self._names = {p.name: self._safe(to_snake(p.name)) for p in func.parameters}

    def _expr(self, text: str) -> str:
        text = rename_identifiers(simple_expr(text), self._names)
        if text in ("nullptr", "NULL"):
            return "std::ptr::null_mut()"
        return text

    def _value(self, init: str | None, typ: Type) -> str:
        if init is None:
            return self._zero(typ)
        text = init.strip()
        braced = text.startswith("{") and text.endswith("}")
        if braced or (text.startswith("(") and text.endswith(")")):
            text = text[1:-1].strip()
        if text == "":
            return self._zero(typ)
        if typ.kind == "atomic":
            return self._atomic_new(typ, self._expr(text))
        if braced and typ.kind in ("vector", "array"):
            return ("vec![" if typ.kind == "vector" else "[") + self._expr(text) + "]"
        value = self._expr(text)
        if typ.kind == "string" and value.startswith('"'):
            return "String::from(" + value + ")"
        if typ.kind == "vector" and not braced:
            args = split_arguments(value)
            if len(args) == 2:
                return "vec![" + args[1] + "; " + args[0] + "]"
        return value

    def _atomic_new(self, typ: Type, value: str) -> str:
        atomic = atomic_type_for_target(typ.element_type, "rust").split("<", 1)[0]
        return atomic + "::new(" + value + ")"

    def _zero(self, typ: Type) -> str:
        kind = typ.kind
        if kind == "bool":
            return "false"
        if kind == "integer":
            return "0"
        if kind == "float":
            return "0.0"
        if kind == "string":
            return "String::new()"
        if kind == "vector":
            return "Vec::new()"
        if kind == "optional":
            return "None"
        if kind == "mutex":
            return "Mutex::new(())"
        if kind == "recursive_mutex":
            return "ReentrantMutex::new(())"
        if kind == "shared_mutex":
            return "RwLock::new(())"
        if kind == "condition_variable":
            return "Condvar::new()"
        if kind == "atomic":
            elem = typ.element_type
            return self._atomic_new(typ, self._zero(elem) if elem is not None else "0")
        if kind == "pointer" and "_ptr" not in typ.name:
            elem = typ.element_type
            if elem is not None and elem.is_const:
                return "std::ptr::null()"
            return "std::ptr::null_mut()"
        return "Default::default()"

    def _member(self, name: str, cls: ClassDecl | None, func: Function) -> str:
        """Receiver expression for a name the body uses."""
        if cls is not None and not func.is_static:
            for field in cls.fields:
                if field.name == name and not field.is_static:
                    return "self." + self._field_name(name)
        return self._names.get(name, self._safe(to_snake(name)))

    def _field_kind(self, name: str, cls: ClassDecl | None) -> str:
        if cls is not None:
            for field in cls.fields:
                if field.name == name:
                    return field.typ.kind
        return "mutex"

    def _is_local(self, name: str, cls: ClassDecl | None, func: Function) -> bool:
        if any(p.name == name for p in func.parameters):
            return False
        return cls is None or all(field.name != name for field in cls.fields)

    def _base_members(self, cls: ClassDecl) -> tuple[list[Variable], list[Function]]:
        """Fields and non-virtual methods of an abstract class."""
        fields = [f for f in cls.fields if not f.is_static]
        methods = [
            m
            for m in cls.methods
            if not m.is_virtual and not m.is_pure_virtual and not m.is_destructor
        ]
        return (fields, methods)

    def _method_names(self, cls_name: str, methods: list[Function]) -> dict[int, str]:
        """Rust name per method; constructors become new, new_<params>."""
        names: dict[int, str] = {}
        used: set[str] = set()
        for func in methods:
            if func.is_destructor:
                continue
            if func.is_constructor:
                base = "new"
                if "new" in used:
                    suffix = "_".join(to_snake(p.name) for p in func.parameters)
                    base = "new_" + (suffix or "default")
            else:
                base = self._safe(method_name(func.name))
            name = base
            k = 2
            while name in used:
                name = base + "_" + str(k)
                k += 1
            if name != base and not func.is_constructor:
                qualified = cls_name + "::" + func.name if cls_name else func.name
                self.diags.add_warning(
                    "unmapped",
                    "overloaded function '" + qualified + "' renamed to '" + name + "'",
                    func.line,
                )
            used.add(name)
            names[id(func)] = name
        return names

    # ── globals ──────────────────────────────────────────────

    def _emit_globals(self, variables: list[Variable]) -> None:
        for var in variables:
            self._emit_static(to_screaming_snake(var.name), var)
        if variables:
            self.line("")

    def _emit_static(self, name: str, var: Variable) -> None:
        self.types.line = var.line
        self._names = {}
        keyword = "pub const" if var.is_const or var.typ.is_const else "pub static"
        literal = (var.initializer or "").strip("(){} ")
        if _is_text(var.typ) and literal.startswith('"'):
            typ = "&str"
            value = literal
        else:
            typ = self.types.render(var.typ)
            value = self._value(var.initializer, var.typ)
        self.line(f"{keyword} {name}: {typ} = {value};")

    # ── classes ──────────────────────────────────────────────

    def _emit_struct(self, name: str, cls: ClassDecl, fields: list[Variable]) -> bool:
        """Emit a struct; returns whether it needed the 'a lifetime."""
        self.types.lifetime = "'a"
        self.types.used_lifetime = False
        rendered: list[str] = []
        for field in fields:
            self.types.line = field.line
            typ = self.types.render(field.typ)
            rendered.append(f"{self._pub(cls, field.name)}{self._field_name(field.name)}: {typ},")
        composed = [f"{field_name}: {typ}," for field_name, typ, _ in self._composed_bases(cls)]
        rendered = composed + rendered
        lifetime = self.types.used_lifetime
        self.types.lifetime = ""
        self._doc(cls.doc)
        header = f"pub struct {name}{self._generics(cls, lifetime)}"
        if not rendered:
            self.line(header + " {}")
        else:
            self.line(header + " {")
            self.indent += 1
            for text in rendered:
                self.line(text)
            self.indent -= 1
            self.line("}")
        self.line("")
        return lifetime

    def _composed_bases(self, cls: ClassDecl) -> list[tuple[str, str, str]]:
        """(field name, field type, C++ base name) per base held by value."""
        out: list[tuple[str, str, str]] = []
        for base in cls.base_classes:
            base_name = short_name(base.split("<", 1)[0])
            if base_name in self._traits:
                if base_name not in self._trait_structs:
                    continue
                typ = base_name + "Base"
            else:
                typ = base_name
                self.diags.add_warning(
                    "unmapped",
                    "inheritance from '" + base_name + "' emitted as composition in '" + cls.name + "'",
                    cls.line,
                )
            field_name = "base" if not out else to_snake(base_name) + "_base"
            out.append((field_name, typ, base_name))
        return out

    def _emit_class_statics(self, cls: ClassDecl) -> None:
        statics = [f for f in cls.fields if f.is_static]
        for field in statics:
            self._emit_static(to_screaming_snake(cls.name) + "_" + to_screaming_snake(field.name), field)
        if statics:
            self.line("")

    def _emit_class(self, cls: ClassDecl) -> None:
        self._emit_class_statics(cls)
        fields = [f for f in cls.fields if not f.is_static]
        lifetime = self._emit_struct(cls.name, cls, fields)
        trait_methods: dict[str, list[Function]] = {}
        inherent: list[Function] = []
        for method in cls.methods:
            if method.is_destructor:
                continue
            owner = self._trait_of(cls, method)
            if owner is not None:
                trait_methods.setdefault(owner, []).append(method)
            else:
                inherent.append(method)
        generics = self._generics(cls, lifetime)
        self._emit_impl(cls, f"impl{generics} {cls.name}{generics}", inherent, fields, cls.name)
        for trait, methods in trait_methods.items():
            self._emit_impl(cls, f"impl{generics} {trait} for {cls.name}{generics}", methods, fields, "")
        dtor = next((m for m in cls.methods if m.is_destructor), None)
        if dtor is not None:
            self._emit_drop(cls, dtor, generics)

    def _trait_of(self, cls: ClassDecl, method: Function) -> str | None:
        if method.is_constructor or method.is_static:
            return None
        for base in cls.base_classes:
            trait = self._traits.get(short_name(base.split("<", 1)[0]))
            if trait is None:
                continue
            for decl in trait.methods:
                if decl.name == method.name and (decl.is_virtual or decl.is_pure_virtual):
                    return trait.name
        return None

    def _emit_impl(
        self,
        cls: ClassDecl,
        header: str,
        methods: list[Function],
        fields: list[Variable],
        struct_name: str,
    ) -> None:
        if not methods:
            return
        names = self._method_names(cls.name, methods)
        in_trait = struct_name == ""
        self.line(header + " {")
        self.indent += 1
        for i, method in enumerate(methods):
            if i > 0:
                self.line("")
            if method.is_constructor:
                self._emit_constructor(cls, method, names[id(method)], fields)
            else:
                self._emit_method(cls, method, names[id(method)], in_trait)
        self.indent -= 1
        self.line("}")
        self.line("")

    def _emit_trait(self, cls: ClassDecl) -> None:
        fields, plain = self._base_members(cls)
        if cls.name in self._trait_structs:
            base_cls = ClassDecl(
                cls.name + "Base",
                is_struct=cls.is_struct,
                fields=fields,
                methods=plain,
                template_params=cls.template_params,
                access_sections=cls.access_sections,
                line=cls.line,
            )
            self._emit_class(base_cls)
        virtuals = [
            m
            for m in cls.methods
            if (m.is_virtual or m.is_pure_virtual) and not m.is_destructor and not m.is_constructor
        ]
        self._doc(cls.doc)
        self.line(f"pub trait {cls.name}{self._generics(cls, False)} {{")
        self.indent += 1
        names = self._method_names(cls.name, virtuals)
        for i, method in enumerate(virtuals):
            if i > 0:
                self.line("")
            if method.is_pure_virtual:
                self._bind_params(method)
                self._doc(method.doc)
                self.line(f"fn {names[id(method)]}{self._signature(method, cls)};")
            else:
                self._emit_method(cls, method, names[id(method)], True)
        self.indent -= 1
        self.line("}")
        self.line("")

    # ── functions ────────────────────────────────────────────

    def _signature(self, func: Function, cls: ClassDecl | None) -> str:
        params = [self._param(p, func) for p in func.parameters]
        if cls is not None and not func.is_static:
            params.insert(0, "&self" if func.is_const else "&mut self")
        return "(" + ", ".join(params) + ")" + self._ret(func, self._strategy(func))

    def _emit_method(self, cls: ClassDecl, func: Function, name: str, in_trait: bool) -> None:
        self._bind_params(func)
        self.types.line = func.line
        self._doc(func.doc)
        pub = "" if in_trait else self._pub(cls, func.name)
        self.line(f"{pub}fn {name}{self._signature(func, cls)} {{")
        self.indent += 1
        self._emit_body(func, cls)
        self.indent -= 1
        self.line("}")

    def _emit_constructor(
        self, cls: ClassDecl, func: Function, name: str, fields: list[Variable]
    ) -> None:
        self._bind_params(func)
        self.types.line = func.line
        self._doc(func.doc)
        strategy = self._strategy(func)
        params = ", ".join(self._param(p, func) for p in func.parameters)
        ret = " -> Self"
        if strategy == "result_type":
            ret = " -> Result<Self, " + self._error_type(func) + ">"
        self.line(f"{self._pub(cls, func.name)}fn {name}({params}){ret} {{")
        self.indent += 1
        self._emit_comments(func)
        self._emit_scaffolding(func, cls, strategy)
        inits = dict(func.initializers)
        self.line("Ok(Self {" if strategy == "result_type" else "Self {")
        self.indent += 1
        for field_name, typ, base in self._composed_bases(cls):
            if base in inits:
                self.line(f"{field_name}: {typ}::new({self._expr(inits[base])}),")
            else:
                self.line(f"{field_name}: Default::default(),")
        for field in fields:
            rust_name = self._field_name(field.name)
            if field.name in inits:
                value = self._value(inits[field.name], field.typ)
            else:
                value = self._value(field.initializer, field.typ)
            if value == rust_name:
                self.line(f"{rust_name},")
            else:
                self.line(f"{rust_name}: {value},")
        self.indent -= 1
        self.line("})" if strategy == "result_type" else "}")
        self.indent -= 1
        self.line("}")

    def _emit_drop(self, cls: ClassDecl, func: Function, generics: str) -> None:
        self._bind_params(func)
        self.line(f"impl{generics} Drop for {cls.name}{generics} {{")
        self.indent += 1
        self.line("fn drop(&mut self) {")
        self.indent += 1
        self._emit_comments(func)
        self._emit_scaffolding(func, cls, self._strategy(func))
        self.indent -= 1
        self.line("}")
        self.indent -= 1
        self.line("}")
        self.line("")

    def _emit_free_function(self, func: Function, name: str) -> None:
        self._bind_params(func)
        self.types.line = func.line
        self._doc(func.doc)
        if func.name == "main":
            self.line("fn main() {")
        else:
            self.line(f"pub fn {name}{self._signature(func, None)} {{")
        self.indent += 1
        self._emit_body(func, None)
        self.indent -= 1
        self.line("}")
        self.line("")

    def _emit_body(self, func: Function, cls: ClassDecl | None) -> None:
        strategy = self._strategy(func)
        self._emit_comments(func)
        self._emit_scaffolding(func, cls, strategy)
        returns_void = func.return_type is None or func.return_type.kind == "void"
        if func.body.strip() or not returns_void or strategy != "ignore":
            self.line("todo!()")

    def _emit_comments(self, func: Function) -> None:
        if self.preserve_comments:
            self.comment_lines("//", func.body)

    # ── scaffolding ──────────────────────────────────────────

    def _emit_scaffolding(self, func: Function, cls: ClassDecl | None, strategy: Strategy) -> None:
        profile = func.concurrency
        if profile is not None:
            for lock in profile.lock_scopes:
                self._emit_lock(lock.kind, lock.lock_var_name, lock.mutex_name, cls, func)
            joinable: list[str] = []
            for thread in profile.threads_created:
                call = self._thread_call(thread.function_name, thread.arguments, cls, func)
                spawn = "std::thread::spawn(move || " + call + ")"
                if thread.detached:
                    self.line(spawn + ";")
                else:
                    var = self._safe(to_snake(thread.thread_var_name))
                    self.line(f"let {var} = {spawn};")
                    joinable.append(var)
            for var in joinable:
                self.line(f"{var}.join().unwrap();")
            for atomic in profile.atomic_operations:
                recv = self._member(atomic.atomic_var_name, cls, func)
                if atomic.value_type is not None and self._is_local(atomic.atomic_var_name, cls, func):
                    typ = self.types.render(Type("atomic", element_type=atomic.value_type))
                    self.line(f"let {recv} = {typ.split('<', 1)[0]}::new({self._zero(atomic.value_type)});")
                for op in dict.fromkeys(atomic.operations):
                    hint = f"{recv}.{ATOMIC_OPS['rust'][op]}({_ATOMIC_ARGS[op]})"
                    self.line(f"// {atomic.atomic_var_name}.{op}(...) -> {hint}")
            for cv in profile.condition_variables:
                recv = self._member(cv.cv_var_name, cls, func)
                if self._is_local(cv.cv_var_name, cls, func):
                    self.types.render(Type("condition_variable", "std::condition_variable"))
                    self.line(f"let {recv} = Condvar::new();")
                for op in dict.fromkeys(cv.wait_conditions):
                    hint = f"{recv}.{CONDVAR_OPS['rust'][op]}({_CONDVAR_ARGS[op]})"
                    self.line(f"// {cv.cv_var_name}.{op}(...) -> {hint}")
        exc = func.exception_profile
        if exc is None:
            return
        for i, block in enumerate(exc.try_catch_blocks):
            self._emit_try(block, "attempt" if i == 0 else "attempt_" + str(i + 1))
        for thrown in exc.thrown_types:
            desc = escape_string(error_description(thrown))
            if strategy == "panic":
                self.line(f'// throw {thrown} -> panic!("{desc}")')
            elif strategy == "result_type":
                if self._error_type(func) == "String":
                    self.line(f'// throw {thrown} -> return Err(String::from("{desc}"))')
                else:
                    self.line(f'// throw {thrown} -> return Err("{desc}".into())')

    def _emit_lock(
        self, kind: str, var: str, mutex: str, cls: ClassDecl | None, func: Function
    ) -> None:
        recv = self._member(mutex, cls, func)
        mutex_kind = self._field_kind(mutex, cls)
        if mutex_kind == "shared_mutex":
            call = ".read().unwrap()" if kind == "shared_lock" else ".write().unwrap()"
        elif mutex_kind == "recursive_mutex":
            call = ".lock()"
        else:
            call = ".lock().unwrap()"
        name = self._safe(to_snake(var))
        binding = "mut " + name if kind == "unique_lock" else "_" + name
        self.line(f"let {binding} = {recv}{call};")

    def _thread_call(
        self, function: str, arguments: list[str], cls: ClassDecl | None, func: Function
    ) -> str:
        if function == "<lambda>":
            return "todo!()"
        args = [self._thread_arg(a, cls, func) for a in arguments]
        if "::" in function and args and args[0] in ("self", "&self"):
            callee = "self." + self._safe(method_name(short_name(function)))
            return callee + "(" + ", ".join(args[1:]) + ")"
        if "::" in function:
            owner, _, last = function.rpartition("::")
            callee = owner + "::" + self._safe(method_name(last))
        else:
            callee = self._safe(method_name(function))
        return callee + "(" + ", ".join(args) + ")"

    def _thread_arg(self, arg: str, cls: ClassDecl | None, func: Function) -> str:
        text = simple_expr(arg)
        m = _THREAD_WRAPPERS_RE.match(text)
        if m is not None:
            text = m.group(1).strip()
        if text == "this":
            return "self"
        if re.fullmatch(r"\w+", text):
            return self._member(text, cls, func)
        return self._expr(text)

    def _emit_try(self, block: TryCatchBlock, result: str) -> None:
        self.line(f"let {result}: Result<(), {RUST_BOXED_ERROR}> = (|| {{")
        self.indent += 1
        if self.preserve_comments:
            self.comment_lines("//", block.try_body)
        self.line("Ok(())")
        self.indent -= 1
        self.line("})();")
        var = "e"
        for clause in block.catch_clauses:
            if clause.exception_var:
                var = self._safe(to_snake(clause.exception_var))
                break
        self.line(f"if let Err({var}) = {result} {{")
        self.indent += 1
        for clause in block.catch_clauses:
            desc = error_description(clause.exception_type)
            self.line(f"// catch {clause.exception_type}: {desc}")
            if self.preserve_comments:
                self.comment_lines("//", clause.handler_body)
        self.indent -= 1
        self.line("}")

    # ── tests ────────────────────────────────────────────────

    def _emit_tests(self, ir: IR) -> None:
        names = [to_snake(cls.name) for cls in ir.classes if cls.name not in self._traits]
        names += [method_name(f.name) for f in ir.functions if f.name != "main"]
        self.line("#[cfg(test)]")
        self.line("mod tests {")
        self.indent += 1
        self.line("use super::*;")
        for name in names:
            self.line("")
            self.line("#[test]")
            self.line(f"fn test_{name}() {{")
            self.indent += 1
            self.line("todo!()")
            self.indent -= 1
            self.line("}")
        self.indent -= 1
        self.line("}")
        self.line("")
