"""Threading idiom scan over function bodies and class fields.

Each sub-scan collects (offset, record) pairs and the profile is built
from them in source order, so the result does not depend on which
sub-scan runs first. Variable identity is purely textual: two variables
with the same name in nested scopes are treated as one.

Annotations added:
    Function.concurrency: ConcurrencyProfile
    ClassDecl.mutexes, ClassDecl.atomic_fields, ClassDecl.thread_safe
"""

from __future__ import annotations

import re

from ..frontend.types import map_type
from ..ir import (
    IR,
    MUTEX_KINDS,
    AtomicInfo,
    ClassDecl,
    ConcurrencyProfile,
    ConditionVariableInfo,
    LockInfo,
    LockKind,
    MutexInfo,
    ThreadInfo,
)

THREAD_DECL_RE = re.compile(r"\b(?:std::)?j?thread\s+(\w+)\s*([({])")
THREAD_ASSIGN_RE = re.compile(
    r"\b(?:auto|(?:std::)?j?thread)\s+(\w+)\s*=\s*(?:std::)?j?thread\s*([({])"
)
DETACH_RE = re.compile(r"\b(\w+)\s*(?:\.|->)\s*detach\s*\(\s*\)")
LOCK_RE = re.compile(
    r"\b(?:std::)?(lock_guard|unique_lock|shared_lock|scoped_lock)\s*(?:<[^;{}()]*>)?\s+(\w+)\s*[({]"
)
ATOMIC_DECL_RE = re.compile(r"\b(?:std::)?atomic\s*<([^;{}]+?)>\s+(\w+)")
ATOMIC_ALIAS_DECL_RE = re.compile(
    r"\b(?:std::)?(atomic_(?:bool|char|int|uint|long|ulong|llong|ullong|size_t|int32_t|int64_t|uint32_t|uint64_t))\s+(\w+)"
)
ATOMIC_OP_RE = re.compile(
    r"\b(\w+)\s*(?:\.|->)\s*(load|store|fetch_add|fetch_sub|exchange|compare_exchange_weak|compare_exchange_strong)\s*\("
)
CV_DECL_RE = re.compile(r"\b(?:std::)?condition_variable(?:_any)?\s+(\w+)")
CV_OP_RE = re.compile(r"\b(\w+)\s*(?:\.|->)\s*(wait|notify_one|notify_all|wait_for|wait_until)\s*\(")

LOCK_KINDS: dict[str, LockKind] = {
    "lock_guard": "lock_guard",
    "scoped_lock": "lock_guard",
    "unique_lock": "unique_lock",
    "shared_lock": "shared_lock",
}

CLOSERS = {"(": ")", "{": "}", "[": "]"}


def _closing(text: str, pos: int) -> int:
    """Offset of the bracket closing text[pos], -1 when unbalanced."""
    open_c = text[pos]
    close_c = CLOSERS[open_c]
    depth = 0
    i = pos
    n = len(text)
    while i < n:
        c = text[i]
        if c == '"' or c == "'":
            j = i + 1
            while j < n and text[j] != c:
                j += 2 if text[j] == "\\" else 1
            i = j + 1
            continue
        if c == open_c:
            depth += 1
        elif c == close_c:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def split_arguments(text: str) -> list[str]:
    """Split a call's argument text on commas outside (), {} and []."""
    args: list[str] = []
    depth = 0
    current: list[str] = []
    for c in text:
        if c in "({[":
            depth += 1
        elif c in ")}]":
            depth -= 1
        elif c == "," and depth == 0:
            arg = "".join(current).strip()
            if arg:
                args.append(arg)
            current = []
            continue
        current.append(c)
    arg = "".join(current).strip()
    if arg:
        args.append(arg)
    return args


def _thread_function(arg: str) -> str:
    arg = arg.strip()
    if arg.startswith("["):
        return "<lambda>"
    if arg.startswith("&"):
        arg = arg[1:].strip()
    return arg


def _scan_threads(body: str) -> list[tuple[int, ThreadInfo]]:
    found: list[tuple[int, ThreadInfo]] = []
    for pattern in (THREAD_DECL_RE, THREAD_ASSIGN_RE):
        for m in pattern.finditer(body):
            close = _closing(body, m.start(2))
            if close < 0:
                continue
            args = split_arguments(body[m.start(2) + 1 : close])
            if not args:
                continue
            info = ThreadInfo(m.group(1), _thread_function(args[0]), args[1:])
            found.append((m.start(), info))
    found.sort(key=lambda pair: pair[0])
    for m in DETACH_RE.finditer(body):
        latest: ThreadInfo | None = None
        for pos, info in found:
            if pos < m.start() and info.thread_var_name == m.group(1):
                latest = info
        if latest is not None:
            latest.detached = True
            latest.joinable = False
    return found


def _mutex_name(arg: str) -> str:
    arg = arg.strip()
    if arg.startswith("*"):
        arg = arg[1:].strip()
    if arg.startswith("this->"):
        arg = arg[len("this->") :].strip()
    return arg


def _scan_locks(body: str) -> list[tuple[int, LockInfo]]:
    found: list[tuple[int, LockInfo]] = []
    for m in LOCK_RE.finditer(body):
        open_pos = m.end() - 1
        close = _closing(body, open_pos)
        if close < 0:
            continue
        args = split_arguments(body[open_pos + 1 : close])
        if not args:
            continue
        kind = LOCK_KINDS[m.group(1)]
        mutexes = args if m.group(1) == "scoped_lock" else args[:1]
        for arg in mutexes:
            found.append((m.start(), LockInfo(kind, m.group(2), _mutex_name(arg))))
    return found


def _scan_atomics(body: str) -> list[AtomicInfo]:
    events: list[tuple[int, str, str, str]] = []
    for m in ATOMIC_DECL_RE.finditer(body):
        events.append((m.start(), "decl", m.group(2), m.group(1)))
    for m in ATOMIC_ALIAS_DECL_RE.finditer(body):
        events.append((m.start(), "decl", m.group(2), m.group(1)))
    for m in ATOMIC_OP_RE.finditer(body):
        events.append((m.start(), "op", m.group(1), m.group(2)))
    events.sort(key=lambda event: event[0])
    infos: list[AtomicInfo] = []
    for _, what, name, detail in events:
        existing = _latest_atomic(infos, name)
        if what == "decl":
            value_type = map_type(detail)
            if value_type.kind == "atomic":
                value_type = value_type.element_type
            if existing is not None and existing.value_type is None:
                existing.value_type = value_type
            else:
                infos.append(AtomicInfo(name, value_type))
        elif existing is not None:
            existing.operations.append(detail)
        else:
            infos.append(AtomicInfo(name, None, [detail]))
    return infos


def _latest_atomic(infos: list[AtomicInfo], name: str) -> AtomicInfo | None:
    for info in reversed(infos):
        if info.atomic_var_name == name:
            return info
    return None


def _scan_condition_variables(body: str) -> list[ConditionVariableInfo]:
    events: list[tuple[int, str, str]] = []
    for m in CV_DECL_RE.finditer(body):
        events.append((m.start(), m.group(1), ""))
    for m in CV_OP_RE.finditer(body):
        events.append((m.start(), m.group(1), m.group(2)))
    events.sort(key=lambda event: event[0])
    infos: list[ConditionVariableInfo] = []
    for _, name, operation in events:
        existing: ConditionVariableInfo | None = None
        for info in infos:
            if info.cv_var_name == name:
                existing = info
        if existing is None:
            existing = ConditionVariableInfo(name)
            infos.append(existing)
        if operation:
            existing.wait_conditions.append(operation)
    return infos


def analyze_function_concurrency(body: str) -> ConcurrencyProfile:
    """Build the concurrency profile of one function body."""
    threads = [info for _, info in _scan_threads(body)]
    locks = [info for _, info in _scan_locks(body)]
    atomics = _scan_atomics(body)
    cvs = _scan_condition_variables(body)
    return ConcurrencyProfile(
        threads_created=threads,
        lock_scopes=locks,
        atomic_operations=atomics,
        condition_variables=cvs,
        uses_threading=bool(threads or locks or atomics or cvs),
    )


def analyze_class_concurrency(cls: ClassDecl) -> None:
    """Record mutex and atomic members; merge member-atomic ops from methods."""
    cls.mutexes = []
    cls.atomic_fields = []
    for field in cls.fields:
        kind = field.typ.kind
        if kind in MUTEX_KINDS:
            cls.mutexes.append(MutexInfo(kind, field.name))
        elif kind == "atomic":
            cls.atomic_fields.append(AtomicInfo(field.name, field.typ.element_type))
    for method in cls.methods:
        if method.concurrency is None:
            continue
        for info in method.concurrency.atomic_operations:
            if info.value_type is not None:
                continue
            member = _latest_atomic(cls.atomic_fields, info.atomic_var_name)
            if member is None:
                continue
            for op in info.operations:
                if op not in member.operations:
                    member.operations.append(op)
    cls.thread_safe = len(cls.mutexes) > 0 or len(cls.atomic_fields) > 0


def analyze_concurrency(ir: IR) -> None:
    """Attach concurrency profiles to functions, then analyze classes."""
    for func in ir.functions:
        func.concurrency = analyze_function_concurrency(func.body)
    for cls in ir.classes:
        for method in cls.methods:
            method.concurrency = analyze_function_concurrency(method.body)
        analyze_class_concurrency(cls)
