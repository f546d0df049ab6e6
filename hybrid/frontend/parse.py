"""Lexical C++ declaration extractor: source text -> IR declarations.

Declarations are recognized by brace and parenthesis structure only.
Statements inside function bodies are never parsed; each body is kept as
raw text for the middleend scans. Comments and preprocessor lines are
blanked out first, so offsets and line numbers survive cleaning.
"""

from __future__ import annotations

import bisect
import re

from ..diagnostics import Diagnostics
from ..ir import IR, AccessLevel, AccessSection, ClassDecl, Function, Parameter, Type, Variable
from .types import map_builtin_type, map_type, normalize_spelling


class ParseError(Exception):
    """Parse error with location info."""

    def __init__(self, msg: str, lineno: int, col: int):
        self.msg: str = msg
        self.lineno: int = lineno
        self.col: int = col
        super().__init__(msg)


class Comment:
    """A source comment and the lines it spans."""

    def __init__(self, start_line: int, end_line: int, text: str, own_line: bool):
        self.start_line: int = start_line
        self.end_line: int = end_line
        self.text: str = text
        self.own_line: bool = own_line


RAW_PREFIXES = {"R", "u8R", "uR", "UR", "LR"}
CHAR_PREFIXES = {"", "L", "u", "U", "u8"}
PAIRS = {"(": ")", "[": "]", "{": "}"}

ACCESS_RE = re.compile(r"(public|protected|private)\s*:(?!:)")
TEMPLATE_RE = re.compile(r"template\s*<")
ATTRIBUTE_RE = re.compile(r"\[\[.*?\]\]|\balignas\s*\([^)]*\)", re.S)
EXTERN_C_RE = re.compile(r'extern\s*"C(?:\+\+)?"')
NAMESPACE_RE = re.compile(r"(?:inline\s+)?namespace\b")
FORWARD_RE = re.compile(r"(?:class|struct|union)\s+[\w:]+$")
ENUM_RE = re.compile(
    r"enum\s*(?:class\s+|struct\s+)?([A-Za-z_]\w*)?\s*(?::\s*(.+))?$", re.S
)
USING_ALIAS_RE = re.compile(r"using\s+([A-Za-z_]\w*)\s*=\s*(.+)$", re.S)
COLON_RE = re.compile(r"(?<!:):(?!:)")
BITFIELD_RE = re.compile(r"(?<!:):(?!:)\s*\w+\s*$")
DEFINE_RE = re.compile(r"#\s*define\s+(\w+)(\([^)]*\))?[ \t]+\S")
IDENT_RE = re.compile(r"[A-Za-z_]\w*")
FUNC_NAME_RE = re.compile(
    r"((?:[A-Za-z_]\w*(?:<[^()]*?>)?\s*::\s*)*(?:~\s*[A-Za-z_]\w*|operator\b.*|[A-Za-z_]\w*))\s*$",
    re.S,
)
FUNC_PTR_RE = re.compile(r"\(\s*[*&]\s*([A-Za-z_]\w*)?\s*\)\s*\((.*)\)\s*$", re.S)
DECLARATOR_RE = re.compile(
    r"^(.*?[\s*&>])\s*([A-Za-z_](?:\w|::)*)\s*((?:\[[^\]]*\]\s*)*)$", re.S
)
INIT_NAME_RE = re.compile(r"[A-Za-z_][\w:]*(?:<[^(){};]*>)?(?=\s*[({])")
SPECIFIER_RE = re.compile(
    r"\b(virtual|static|inline|explicit|constexpr|consteval|friend|extern|__forceinline)\b"
)
STORAGE_RE = re.compile(r"(static|extern|inline|thread_local|register)\s+")
TRAILING_RETURN_RE = re.compile(r"->\s*(.+?)\s*(?:\boverride\b|\bfinal\b|=|$)", re.S)
NOEXCEPT_RE = re.compile(r"\bnoexcept\b(?!\s*\(\s*false\s*\))|\bthrow\s*\(\s*\)")
CALL_ARG_RE = re.compile(r"""^(?:[-+.\d"']|(?:true|false|nullptr)$)""")

# Words that complete a type and are never a declarator name.
TYPE_WORDS = {
    "int",
    "char",
    "short",
    "long",
    "double",
    "float",
    "bool",
    "void",
    "unsigned",
    "signed",
    "const",
    "volatile",
    "auto",
    "wchar_t",
    "char8_t",
    "char16_t",
    "char32_t",
}


def _is_ident_char(c: str) -> bool:
    return c.isalnum() or c == "_"


def _ident_before(text: str, i: int) -> str:
    k = i
    while k > 0 and _is_ident_char(text[k - 1]):
        k -= 1
    return text[k:i]


def location(text: str, pos: int) -> tuple[int, int]:
    """1-based (line, col) of an offset."""
    line = text.count("\n", 0, pos) + 1
    col = pos - (text.rfind("\n", 0, pos) + 1) + 1
    return (line, col)


def literal_end(text: str, i: int) -> int:
    """End offset of the string or char literal starting at i, -1 if none does.

    A quote after a digit run is a digit separator (1'000), not a literal.
    """
    c = text[i]
    if c != '"' and c != "'":
        return -1
    prefix = _ident_before(text, i)
    if c == "'" and prefix not in CHAR_PREFIXES:
        return -1
    if c == '"' and prefix in RAW_PREFIXES:
        open_paren = text.find("(", i + 1)
        if open_paren >= 0:
            delim = text[i + 1 : open_paren]
            close = text.find(")" + delim + '"', open_paren)
            if close >= 0:
                return close + len(delim) + 2
        raise ParseError("unterminated raw string literal", *location(text, i))
    j = i + 1
    n = len(text)
    while j < n:
        d = text[j]
        if d == "\\":
            j += 2
            continue
        if d == c:
            return j + 1
        if d == "\n":
            break
        j += 1
    kind = "string" if c == '"' else "character"
    raise ParseError("unterminated " + kind + " literal", *location(text, i))


def _blank(text: str) -> str:
    return "".join("\n" if ch == "\n" else " " for ch in text)


def _blank_attributes(text: str) -> str:
    return ATTRIBUTE_RE.sub(lambda m: _blank(m.group(0)), text)


def clean_source(source: str) -> tuple[str, list[Comment], list[tuple[int, str]]]:
    """Blank out comments and preprocessor lines, keeping every offset.

    Returns (cleaned text, comments, directives as (line, text)).
    """
    out: list[str] = []
    comments: list[Comment] = []
    directives: list[tuple[int, str]] = []
    n = len(source)
    i = 0
    line = 1
    line_start = True
    while i < n:
        c = source[i]
        if c == "\n":
            out.append(c)
            line += 1
            line_start = True
            i += 1
            continue
        if line_start and c == "#":
            j = i
            while j < n and source[j] != "\n":
                if source[j] == "\\" and j + 1 < n and source[j + 1] == "\n":
                    j += 2
                    continue
                j += 1
            directive = source[i:j]
            directives.append((line, directive))
            out.append(_blank(directive))
            line += directive.count("\n")
            i = j
            continue
        if c == "/" and i + 1 < n and source[i + 1] == "/":
            j = source.find("\n", i)
            if j < 0:
                j = n
            comments.append(Comment(line, line, source[i:j], line_start))
            out.append(" " * (j - i))
            i = j
            continue
        if c == "/" and i + 1 < n and source[i + 1] == "*":
            j = source.find("*/", i + 2)
            if j < 0:
                raise ParseError("unterminated comment", *location(source, i))
            text = source[i : j + 2]
            end_line = line + text.count("\n")
            comments.append(Comment(line, end_line, text, line_start))
            out.append(_blank(text))
            line = end_line
            i = j + 2
            continue
        end = literal_end(source, i)
        if end >= 0:
            literal = source[i:end]
            out.append(literal)
            line += literal.count("\n")
            line_start = False
            i = end
            continue
        if not c.isspace():
            line_start = False
        out.append(c)
        i += 1
    return ("".join(out), comments, directives)


def match_close(text: str, pos: int) -> int:
    """Offset of the bracket closing the one at pos, skipping literals."""
    open_c = text[pos]
    close_c = PAIRS[open_c]
    depth = 0
    i = pos
    n = len(text)
    while i < n:
        end = literal_end(text, i)
        if end >= 0:
            i = end
            continue
        c = text[i]
        if c == open_c:
            depth += 1
        elif c == close_c:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    raise ParseError("unbalanced '" + open_c + "'", *location(text, pos))


def _split_top(text: str, sep: str = ",") -> list[str]:
    """Split on sep at nesting depth 0 over (), [], {} and <>."""
    parts: list[str] = []
    depth = 0
    start = 0
    for i, c in enumerate(text):
        if c in "([{<":
            depth += 1
        elif c in ")]}>":
            if depth > 0:
                depth -= 1
        elif c == sep and depth == 0:
            parts.append(text[start:i].strip())
            start = i + 1
    parts.append(text[start:].strip())
    return [p for p in parts if p]


def _top_level_eq(text: str) -> int:
    """Offset of the first assignment '=' at depth 0, -1 if none."""
    depth = 0
    n = len(text)
    for i, c in enumerate(text):
        if c in "([{<":
            depth += 1
        elif c in ")]}>":
            if depth > 0:
                depth -= 1
        elif c == "=" and depth == 0:
            prev = text[i - 1] if i > 0 else ""
            nxt = text[i + 1] if i + 1 < n else ""
            if nxt == "=" or (prev != "" and prev in "=!<>"):
                continue
            return i
    return -1


def _call_paren(head: str) -> int:
    """Offset of the parameter list's '(' in a declaration head, -1 if none."""
    depth = 0
    n = len(head)
    i = 0
    while i < n:
        c = head[i]
        if (
            c == "o"
            and head.startswith("operator", i)
            and (i == 0 or not _is_ident_char(head[i - 1]))
            and (i + 8 >= n or not _is_ident_char(head[i + 8]))
        ):
            j = i + 8
            while j < n and head[j].isspace():
                j += 1
            if head.startswith("()", j):
                j += 2
            while j < n and head[j] != "(":
                j += 1
            return j if j < n else -1
        if c == "<":
            depth += 1
        elif c == ">" and depth > 0:
            depth -= 1
        elif c == "(" and depth == 0:
            return i
        i += 1
    return -1


def _strip_template_args(name: str) -> str:
    out: list[str] = []
    depth = 0
    for c in name:
        if c == "<":
            depth += 1
        elif c == ">":
            depth -= 1
        elif depth == 0:
            out.append(c)
    return "".join(out).strip()


def _split_qualified(name: str) -> tuple[str, str]:
    """'Stack<T>::push' -> ('Stack', 'push'); owner is '' when unqualified."""
    op = name.find("operator")
    scope_part = name if op < 0 else name[:op]
    depth = 0
    last = -1
    for i, c in enumerate(scope_part):
        if c == "<":
            depth += 1
        elif c == ">":
            depth -= 1
        elif depth == 0 and scope_part.startswith("::", i):
            last = i
    if last < 0:
        return ("", name)
    return (_strip_template_args(name[:last]), name[last + 2 :])


def _template_param_name(text: str) -> str:
    eq = _top_level_eq(text)
    if eq >= 0:
        text = text[:eq]
    names = IDENT_RE.findall(text)
    return names[-1] if names else text.strip()


def declarator_name(text: str) -> tuple[str | None, str]:
    """Split 'const char* name[4]' into ('name', 'const char*[4]').

    The name is None when the text is a bare type.
    """
    text = text.strip()
    m = DECLARATOR_RE.match(text)
    if m is None:
        return (None, text)
    type_part = m.group(1)
    name = m.group(2)
    if name in TYPE_WORDS or map_builtin_type(text) is not None:
        return (None, text)
    bare = re.sub(r"\b(const|volatile|struct|class|typename|enum|register)\b", "", type_part)
    if bare.strip() == "":
        return (None, text)
    return (name, type_part.strip() + m.group(3).replace(" ", ""))


def _comment_text(text: str) -> str:
    if text.startswith("//"):
        return text.lstrip("/").lstrip("!").strip()
    lines: list[str] = []
    for raw in text[2:-2].split("\n"):
        s = raw.strip()
        if s.startswith("*") or s.startswith("!"):
            s = s[1:].strip()
        lines.append(s)
    return "\n".join(lines).strip()


def _literal_type(init: str) -> str | None:
    """C++ spelling of a literal initializer's type, for auto declarations."""
    init = init.strip()
    if init in ("true", "false"):
        return "bool"
    if re.fullmatch(r"-?\d+", init):
        return "int"
    if re.fullmatch(r"-?\d+[uU]", init):
        return "unsigned int"
    if re.fullmatch(r"-?\d+[uU]?[lL]{1,2}", init):
        return "long"
    if re.fullmatch(r"-?(\d+\.\d*|\.\d+)([eE][-+]?\d+)?[fF]", init):
        return "float"
    if re.fullmatch(r"-?(\d+\.\d*|\.\d+)([eE][-+]?\d+)?", init):
        return "double"
    if init.startswith('"'):
        return "const char*"
    if init.startswith("'"):
        return "char"
    return None


def _merge_definition(decl: Function, defn: Function) -> None:
    """Fold an out-of-line definition into its in-class declaration."""
    params: list[Parameter] = []
    for d, p in zip(decl.parameters, defn.parameters):
        name = p.name
        if re.fullmatch(r"arg\d+", name) is not None:
            name = d.name
        default = d.default if d.default is not None else p.default
        params.append(Parameter(name, p.typ, default))
    decl.parameters = params
    decl.body = defn.body
    decl.has_body = True
    decl.initializers = defn.initializers
    decl.is_noexcept = decl.is_noexcept or defn.is_noexcept
    if decl.doc is None:
        decl.doc = defn.doc


class _ClassScope:
    """Member bookkeeping while walking one class body."""

    def __init__(self, cls: ClassDecl) -> None:
        self.cls: ClassDecl = cls
        self.level: AccessLevel = "public" if cls.is_struct else "private"
        self.section: AccessSection | None = None

    def set_access(self, level: AccessLevel) -> None:
        self.level = level
        self.section = None

    def add_member(self, name: str) -> None:
        if self.section is None:
            self.section = AccessSection(self.level)
            self.cls.access_sections.append(self.section)
        self.section.members.append(name)


class DeclParser:
    """Walks cleaned source text and records declarations into an IR."""

    def __init__(self, source: str, unit: str = "<input>", diags: Diagnostics | None = None):
        self.unit: str = unit
        self.diags: Diagnostics = diags if diags is not None else Diagnostics(unit)
        self.text, comments, self._directives = clean_source(source)
        self.docs: dict[int, Comment] = {}
        for c in comments:
            if c.own_line:
                self.docs[c.end_line] = c
        self._line_starts: list[int] = [0]
        for i, ch in enumerate(self.text):
            if ch == "\n":
                self._line_starts.append(i + 1)
        self.ir: IR = IR(name=unit)
        self._namespaces: set[str] = {"std"}

    def parse(self) -> IR:
        for line, directive in self._directives:
            m = DEFINE_RE.match(directive)
            if m is not None:
                self.diags.add_warning(
                    "preprocessor", "macro '" + m.group(1) + "' is not expanded", line
                )
        self._parse_scope(0, len(self.text), None)
        return self.ir

    # ── positions ────────────────────────────────────────────

    def _line(self, pos: int) -> int:
        return bisect.bisect_right(self._line_starts, pos)

    def _where(self, pos: int) -> tuple[int, int]:
        line = self._line(pos)
        return (line, pos - self._line_starts[line - 1] + 1)

    def _skip_space(self, pos: int, end: int) -> int:
        while pos < end and self.text[pos].isspace():
            pos += 1
        return pos

    def _match_close(self, pos: int) -> int:
        return match_close(self.text, pos)

    def _match_angle(self, pos: int, end: int) -> int:
        depth = 0
        i = pos
        while i < end:
            c = self.text[i]
            if c == "<":
                depth += 1
            elif c == ">":
                depth -= 1
                if depth == 0:
                    return i
            elif c == "(":
                i = self._match_close(i)
            i += 1
        raise ParseError("unbalanced template parameter list", *self._where(pos))

    def _scan_head(self, pos: int, end: int) -> tuple[int, str]:
        """Find the ';' or '{' ending a declaration head at depth 0."""
        text = self.text
        depth = 0
        i = pos
        while i < end:
            lit = literal_end(text, i)
            if lit >= 0:
                i = lit
                continue
            c = text[i]
            if c == "(" or c == "[":
                depth += 1
            elif c == ")" or c == "]":
                depth -= 1
            elif depth == 0 and (c == ";" or c == "{"):
                return (i, c)
            elif c == "}":
                raise ParseError("unbalanced '}'", *self._where(i))
            i += 1
        return (end, "")

    def _statement_end(self, pos: int, end: int) -> tuple[int, int]:
        """Skip brace groups up to the terminating ';'. Returns (stmt_end, next)."""
        while True:
            head_end, term = self._scan_head(pos, end)
            if term == ";":
                return (head_end, head_end + 1)
            if term == "":
                return (end, end)
            pos = self._match_close(head_end) + 1

    def _doc_before(self, line: int) -> str | None:
        parts: list[str] = []
        current = line - 1
        while current in self.docs:
            comment = self.docs[current]
            parts.append(_comment_text(comment.text))
            if not comment.text.startswith("//"):
                break
            current = comment.start_line - 1
        parts.reverse()
        doc = "\n".join(p for p in parts if p)
        return doc if doc else None

    # ── scopes ───────────────────────────────────────────────

    def _parse_scope(self, start: int, end: int, scope: _ClassScope | None) -> None:
        pos = start
        while True:
            pos = self._skip_space(pos, end)
            if pos >= end:
                return
            c = self.text[pos]
            if c == ";":
                pos += 1
                continue
            if c == "}":
                raise ParseError("unbalanced '}'", *self._where(pos))
            if scope is not None:
                m = ACCESS_RE.match(self.text, pos, end)
                if m is not None:
                    scope.set_access(m.group(1))
                    pos = m.end()
                    continue
            head_end, term = self._scan_head(pos, end)
            if term == "":
                self.diags.add_warning(
                    "syntax", "unterminated declaration ignored", self._line(pos)
                )
                return
            pos = self._declaration(pos, head_end, term, end, scope)

    def _declaration(
        self, start: int, head_end: int, term: str, end: int, scope: _ClassScope | None
    ) -> int:
        """Record one declaration; returns the offset after it."""
        text = self.text
        line = self._line(start)
        doc = self._doc_before(line)
        hs = start
        template_params: list[str] | None = None
        while True:
            m = TEMPLATE_RE.match(text, hs, head_end)
            if m is None:
                break
            close = self._match_angle(m.end() - 1, head_end)
            params = _split_top(text[m.end() : close])
            template_params = (template_params or []) + [_template_param_name(p) for p in params]
            hs = self._skip_space(close + 1, head_end)
        m = EXTERN_C_RE.match(text, hs, head_end)
        if m is not None:
            if term == "{" and text[m.end() : head_end].strip() == "":
                close = self._match_close(head_end)
                self._parse_scope(head_end + 1, close, scope)
                return close + 1
            hs = self._skip_space(m.end(), head_end)
        head = _blank_attributes(text[hs:head_end]).rstrip()
        lead = len(head) - len(head.lstrip())
        hs += lead
        head = head[lead:]
        if term == "{" and NAMESPACE_RE.match(head):
            m = re.match(r"(?:inline\s+)?namespace\s+([\w:]+)", head)
            if m is not None:
                self._namespaces.update(m.group(1).split("::"))
            close = self._match_close(head_end)
            self._parse_scope(head_end + 1, close, None)
            return close + 1
        words = head.split()
        first = words[0] if words else ""
        if first in ("class", "struct", "union"):
            if term == "{":
                return self._class_definition(
                    head, head_end, end, template_params, line, doc, scope
                )
            if FORWARD_RE.match(head):
                return head_end + 1
        if first == "enum":
            return self._enum(head, head_end, term, end, line, scope)
        if first == "typedef":
            return self._typedef(head, head_end, term, end, line, doc, scope)
        if first == "using":
            self._using(head, line)
            return self._skip_statement(head_end, term, end)
        if first in ("friend", "static_assert", "template", "namespace"):
            if term == "{" and first == "friend":
                return self._match_close(head_end) + 1
            return self._skip_statement(head_end, term, end)
        paren = _call_paren(head)
        eq = _top_level_eq(head)
        if paren >= 0 and (eq < 0 or eq > paren or "operator" in head[:paren]):
            close = match_close(head, paren)
            if term == "{" or not self._is_constructor_call(
                head[paren + 1 : close], head[close + 1 :]
            ):
                return self._function(
                    hs, head, head_end, term, end, paren, template_params, line, doc, scope
                )
        if term == "{":
            stmt_end, next_pos = self._statement_end(head_end, end)
        else:
            stmt_end, next_pos = (head_end, head_end + 1)
        self._variables(text[hs:stmt_end], line, doc, scope)
        return next_pos

    def _skip_statement(self, head_end: int, term: str, end: int) -> int:
        if term == ";":
            return head_end + 1
        return self._statement_end(head_end, end)[1]

    def _is_constructor_call(self, args_text: str, suffix: str) -> bool:
        """True for `Foo g(1, "x");`-style variable definitions."""
        if suffix.strip() != "":
            return False
        args = _split_top(args_text)
        return any(CALL_ARG_RE.match(a) is not None for a in args)

    # ── classes and type declarations ────────────────────────

    def _class_definition(
        self,
        head: str,
        head_end: int,
        end: int,
        template_params: list[str] | None,
        line: int,
        doc: str | None,
        scope: _ClassScope | None,
    ) -> int:
        kind_word = head.split()[0]
        rest = head[len(kind_word) :]
        bases_text = ""
        m = COLON_RE.search(rest)
        if m is not None:
            bases_text = rest[m.end() :]
            rest = rest[: m.start()]
        words = [w for w in rest.split() if w != "final"]
        raw_name = words[-1] if words else ""
        close = self._match_close(head_end)
        name = _split_qualified(raw_name)[1] if raw_name else ""
        next_pos = self._after_type_body(close, end, name or "int", line, scope)
        if kind_word == "union":
            if name:
                self.ir.register_type(name, Type("aggregate", name))
            self.diags.add_warning(
                "unmapped", "union '" + (name or "<anonymous>") + "' is not modeled", line
            )
            return next_pos
        if name == "":
            self.diags.add_warning("unmapped", "anonymous " + kind_word + " is not modeled", line)
            return next_pos
        if "<" in name:
            self.diags.add_warning(
                "unmapped", "template specialization '" + name + "' is not modeled", line
            )
            return next_pos
        if self.ir.find_class(name) is not None:
            self.diags.add_warning("syntax", "duplicate definition of '" + name + "' ignored", line)
            return next_pos
        bases: list[str] = []
        for base in _split_top(bases_text):
            base = re.sub(r"\b(public|protected|private|virtual)\b", "", base)
            bases.append(normalize_spelling(base))
        cls = ClassDecl(
            name,
            is_struct=kind_word == "struct",
            base_classes=bases,
            is_template=template_params is not None,
            template_params=template_params or [],
            doc=doc,
            line=line,
        )
        self.ir.add_class(cls)
        self._parse_scope(head_end + 1, close, _ClassScope(cls))
        return next_pos

    def _after_type_body(
        self, close: int, end: int, type_name: str, line: int, scope: _ClassScope | None
    ) -> int:
        """Handle `} a, b;` declarators after a type body."""
        pos = self._skip_space(close + 1, end)
        if pos < end and self.text[pos] == ";":
            return pos + 1
        stmt_end, next_pos = self._statement_end(pos, end)
        declarators = self.text[pos:stmt_end].strip()
        if declarators:
            self._variables(type_name + " " + declarators, line, None, scope)
        return next_pos

    def _register_enum(self, name: str, underlying: str | None, line: int) -> None:
        typ = map_builtin_type(underlying) if underlying else None
        if typ is None or typ.kind != "integer":
            typ = Type("integer", "int", size_bytes=4, alignment=4)
        self.ir.register_type(name, typ)
        self.diags.add_warning(
            "unmapped", "enum '" + name + "' mapped to its underlying integer type", line
        )

    def _enum(
        self, head: str, head_end: int, term: str, end: int, line: int, scope: _ClassScope | None
    ) -> int:
        m = ENUM_RE.match(head)
        name = m.group(1) if m is not None else None
        underlying = m.group(2) if m is not None else None
        if name is not None:
            self._register_enum(name, underlying, line)
        if term == ";":
            return head_end + 1
        close = self._match_close(head_end)
        return self._after_type_body(close, end, name or "int", line, scope)

    def _typedef(
        self,
        head: str,
        head_end: int,
        term: str,
        end: int,
        line: int,
        doc: str | None,
        scope: _ClassScope | None,
    ) -> int:
        rest = head[len("typedef") :].strip()
        if term == "{":
            m = re.match(r"(struct|class|union|enum)\b\s*([A-Za-z_]\w*)?", rest)
            close = self._match_close(head_end)
            stmt_end, next_pos = self._statement_end(close + 1, end)
            aliases = [a for a in _split_top(self.text[close + 1 : stmt_end]) if IDENT_RE.fullmatch(a)]
            if m is None:
                self.diags.add_warning("syntax", "unrecognized typedef ignored", line)
                return next_pos
            kind_word = m.group(1)
            name = m.group(2) or (aliases[0] if aliases else "")
            if name == "":
                self.diags.add_warning("unmapped", "anonymous " + kind_word + " is not modeled", line)
                return next_pos
            if kind_word == "enum":
                for alias in [name] + aliases:
                    self._register_enum(alias, None, line)
                return next_pos
            if kind_word == "union":
                self.ir.register_type(name, Type("aggregate", name))
                self.diags.add_warning("unmapped", "union '" + name + "' is not modeled", line)
                return next_pos
            if self.ir.find_class(name) is None:
                cls = ClassDecl(name, is_struct=kind_word == "struct", doc=doc, line=line)
                self.ir.add_class(cls)
                self._parse_scope(head_end + 1, close, _ClassScope(cls))
            for alias in aliases:
                if alias != name:
                    self.ir.register_type(alias, Type("aggregate", name))
            return next_pos
        if term == ";":
            fp = FUNC_PTR_RE.search(rest)
            if fp is not None and fp.group(1):
                self.ir.register_type(fp.group(1), self._declared_type(rest))
                return head_end + 1
            name, type_text = declarator_name(rest)
            if name is None:
                self.diags.add_warning("syntax", "unrecognized typedef ignored", line)
            else:
                self.ir.register_type(name, map_type(type_text, self.ir.type_registry))
            return head_end + 1
        return self._skip_statement(head_end, term, end)

    def _using(self, head: str, line: int) -> None:
        m = USING_ALIAS_RE.match(head)
        if m is not None:
            self.ir.register_type(m.group(1), self._declared_type(m.group(2)))

    def _declared_type(self, text: str) -> Type:
        """Map a type spelling; function pointer shapes become std::function."""
        fp = FUNC_PTR_RE.search(text)
        if fp is not None:
            ret = text[: fp.start()].strip()
            if ret.startswith("typedef"):
                ret = ret[len("typedef") :]
            text = "std::function<" + ret + "(" + fp.group(2) + ")>"
        return map_type(text, self.ir.type_registry)

    # ── functions ────────────────────────────────────────────

    def _function(
        self,
        hs: int,
        head: str,
        head_end: int,
        term: str,
        end: int,
        paren: int,
        template_params: list[str] | None,
        line: int,
        doc: str | None,
        scope: _ClassScope | None,
    ) -> int:
        text = self.text
        close = match_close(head, paren)
        prefix = head[:paren]
        params_text = head[paren + 1 : close]
        suffix = head[close + 1 :]
        m = FUNC_NAME_RE.search(prefix)
        if m is None:
            self.diags.add_warning("syntax", "unrecognized declaration ignored", line)
            if term == "{":
                return self._match_close(head_end) + 1
            return head_end + 1
        name = normalize_spelling(m.group(1)).replace("~ ", "~").replace(" ::", "::").replace(":: ", "::")
        ret_text = prefix[: m.start()]
        specifiers = set(SPECIFIER_RE.findall(ret_text))
        ret_text = SPECIFIER_RE.sub("", ret_text).strip()
        owner, short = _split_qualified(name)
        cls = scope.cls if scope is not None else None
        out_of_line = False
        if owner:
            owner_cls = self.ir.find_class(owner.rsplit("::", 1)[-1])
            if owner_cls is not None:
                cls = owner_cls
                out_of_line = scope is None or scope.cls is not owner_cls
        is_dtor = short.startswith("~")
        is_ctor = cls is not None and short == cls.name and ret_text == ""
        trailing = TRAILING_RETURN_RE.search(suffix)
        flags_text = suffix[: trailing.start()] if trailing is not None else suffix
        if re.search(r"=\s*delete\s*$", suffix):
            if term == "{":
                return self._match_close(head_end) + 1
            return head_end + 1
        registry = self.ir.type_registry
        ret_type: Type | None = None
        if not is_ctor and not is_dtor:
            if trailing is not None and ret_text in ("", "auto"):
                ret_text = trailing.group(1)
            if ret_text == "" and short.startswith("operator"):
                ret_text = short[len("operator") :]
            if ret_text == "":
                self.diags.add_warning(
                    "syntax", "missing return type for '" + short + "', assuming void", line
                )
                ret_text = "void"
            ret_type = map_type(ret_text, registry)
        initializers: list[tuple[str, str]] = []
        body_open = -1
        colon = COLON_RE.search(flags_text)
        qualifiers = flags_text
        decl_suffix = suffix
        if term == "{" and colon is not None:
            qualifiers = flags_text[: colon.start()]
            decl_suffix = qualifiers
            colon_pos = hs + close + 1 + colon.start()
            initializers, body_open = self._initializer_list(colon_pos + 1, end)
        elif term == "{":
            body_open = head_end
        is_default = re.search(r"=\s*default\s*$", suffix) is not None
        func = Function(
            short,
            return_type=ret_type,
            parameters=self._parameters(params_text, line),
            is_const=re.search(r"\bconst\b", qualifiers) is not None,
            is_static="static" in specifiers,
            is_virtual="virtual" in specifiers
            or re.search(r"\b(override|final)\b", decl_suffix) is not None,
            is_pure_virtual=re.search(r"=\s*0\s*$", suffix) is not None,
            is_constructor=is_ctor,
            is_destructor=is_dtor,
            is_noexcept=NOEXCEPT_RE.search(qualifiers) is not None
            or (is_dtor and "noexcept(false)" not in qualifiers.replace(" ", "")),
            has_body=is_default,
            initializers=initializers,
            doc=doc,
            line=line,
        )
        if body_open >= 0:
            body_close = self._match_close(body_open)
            func.body = text[body_open + 1 : body_close]
            func.has_body = True
            next_pos = body_close + 1
        else:
            next_pos = head_end + 1
        if template_params is not None and cls is None:
            self.diags.add_warning(
                "unmapped", "function template '" + short + "' emitted with its parameter names", line
            )
        if cls is None:
            if owner and owner.rsplit("::", 1)[-1] not in self._namespaces:
                self.diags.add_warning(
                    "syntax", "definition of '" + name + "' for unknown class '" + owner + "'", line
                )
            self._add_function(func)
        elif out_of_line:
            self._define_method(cls, func)
        else:
            cls.methods.append(func)
            if scope is not None:
                scope.add_member(short)
        return next_pos

    def _initializer_list(self, pos: int, end: int) -> tuple[list[tuple[str, str]], int]:
        """Parse `a(x), b{y}` up to the constructor body; returns (items, body_open)."""
        text = self.text
        items: list[tuple[str, str]] = []
        while True:
            pos = self._skip_space(pos, end)
            m = INIT_NAME_RE.match(text, pos, end)
            if m is None:
                break
            pos = self._skip_space(m.end(), end)
            close = self._match_close(pos)
            items.append((m.group(0), text[pos + 1 : close].strip()))
            pos = self._skip_space(close + 1, end)
            if text.startswith("...", pos):
                pos = self._skip_space(pos + 3, end)
            if pos < end and text[pos] == ",":
                pos += 1
                continue
            break
        if pos >= end or text[pos] != "{":
            raise ParseError("expected constructor body", *self._where(pos))
        return (items, pos)

    def _parameters(self, text: str, line: int) -> list[Parameter]:
        parts = _split_top(text.strip())
        if len(parts) == 1 and parts[0] == "void":
            return []
        params: list[Parameter] = []
        for i, part in enumerate(parts):
            if "..." in part:
                self.diags.add_warning("unmapped", "variadic parameter list is not modeled", line)
                continue
            default: str | None = None
            eq = _top_level_eq(part)
            if eq >= 0:
                default = part[eq + 1 :].strip()
                part = part[:eq].strip()
            part = ATTRIBUTE_RE.sub(" ", part).strip()
            fp = FUNC_PTR_RE.search(part)
            if fp is not None:
                name = fp.group(1) or "arg" + str(i)
                typ = self._declared_type(part)
            else:
                found, type_text = declarator_name(part)
                name = found if found is not None else "arg" + str(i)
                typ = map_type(type_text, self.ir.type_registry)
            params.append(Parameter(name, typ, default))
        return params

    def _add_function(self, func: Function) -> None:
        for existing in self.ir.functions:
            if (
                existing.name == func.name
                and len(existing.parameters) == len(func.parameters)
                and not existing.has_body
                and func.has_body
            ):
                _merge_definition(existing, func)
                return
        self.ir.add_function(func)

    def _define_method(self, cls: ClassDecl, func: Function) -> None:
        for method in cls.methods:
            if (
                method.name == func.name
                and len(method.parameters) == len(func.parameters)
                and not method.has_body
            ):
                _merge_definition(method, func)
                return
        self.diags.add_warning(
            "syntax",
            "definition of '" + cls.name + "::" + func.name + "' has no declaration in the class",
            func.line,
        )
        cls.methods.append(func)

    # ── variables ────────────────────────────────────────────

    def _variables(self, decl: str, line: int, doc: str | None, scope: _ClassScope | None) -> None:
        decl = ATTRIBUTE_RE.sub(" ", decl).strip()
        storage: set[str] = set()
        while True:
            m = STORAGE_RE.match(decl)
            if m is None:
                break
            storage.add(m.group(1))
            decl = decl[m.end() :]
        parts = _split_top(decl)
        if not parts:
            return
        name, init, type_text = self._declarator(parts[0])
        if name is None:
            self.diags.add_warning("syntax", "unrecognized declaration ignored", line)
            return
        base = re.sub(r"(\[[^\]]*\])+$", "", type_text).rstrip("*& ")
        entries = [(name, type_text, init)]
        for extra in parts[1:]:
            extra_name, extra_init, extra_type = self._declarator(base + " " + extra)
            if extra_name is not None:
                entries.append((extra_name, extra_type, extra_init))
        for var_name, var_type, var_init in entries:
            if var_type.strip() in ("auto", "const auto", "constexpr auto"):
                guessed = _literal_type(var_init) if var_init else None
                if guessed is not None:
                    var_type = var_type.replace("auto", guessed)
                else:
                    self.diags.add_warning(
                        "unmapped", "type of '" + var_name + "' is not inferred", line
                    )
            typ = self._declared_type(var_type)
            var = Variable(
                var_name,
                typ,
                is_static="static" in storage or "thread_local" in storage,
                is_const=typ.is_const,
                initializer=var_init,
                line=line,
            )
            self._record_variable(var, scope)

    def _declarator(self, text: str) -> tuple[str | None, str | None, str]:
        """Split one declarator into (name, initializer, type text)."""
        text = text.strip()
        init: str | None = None
        eq = _top_level_eq(text)
        if eq >= 0:
            init = text[eq + 1 :].strip()
            text = text[:eq].strip()
        fp = FUNC_PTR_RE.search(text)
        if fp is not None:
            return (fp.group(1), init, text)
        if init is None and text.endswith("}") and "{" in text:
            brace = text.index("{")
            init = text[brace:].strip()
            text = text[:brace].strip()
        elif init is None and text.endswith(")"):
            paren = _call_paren(text)
            if paren > 0:
                init = text[paren:].strip()
                text = text[:paren].strip()
        text = BITFIELD_RE.sub("", text)
        name, type_text = declarator_name(text)
        return (name, init, type_text)

    def _record_variable(self, var: Variable, scope: _ClassScope | None) -> None:
        if scope is not None:
            scope.cls.fields.append(var)
            scope.add_member(var.name)
            return
        owner, short = _split_qualified(var.name)
        if owner:
            cls = self.ir.find_class(owner.rsplit("::", 1)[-1])
            if cls is not None:
                for field in cls.fields:
                    if field.name == short:
                        field.initializer = var.initializer
                        return
            var.name = short
        self.ir.add_global_variable(var)


def parse(source: str, unit: str = "<input>", diags: Diagnostics | None = None) -> IR:
    """Extract declarations from C++ source. Raises ParseError."""
    return DeclParser(source, unit, diags).parse()
