"""Pipeline: source text -> IR -> analyses -> target text.

Every entry point returns a result value. Parse failures, unreadable
inputs and unwritable outputs become error diagnostics on the unit's
result; a batch stops at the first failed unit.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .backend import BACKENDS, EXTENSIONS
from .diagnostics import Diagnostics
from .frontend import ParseError, compile
from .ir import IR
from .middleend import analyze
from .serialize import ir_to_json

TARGETS: list[str] = ["rust", "go"]

PHASES: list[str] = ["parse", "analyze"]


@dataclass
class Options:
    """Per-run configuration shared by every unit of a batch.

    opt_level is validated and carried, but no emitter varies on it.
    """

    target: str = "rust"
    opt_level: int = 0
    safety_checks: bool = True
    preserve_comments: bool = True
    generate_tests: bool = False
    verbose: bool = False
    quiet: bool = False

    def validate(self) -> str | None:
        """Return an error message for an invalid configuration, else None."""
        if self.target not in TARGETS:
            return "unknown target '" + self.target + "'"
        if self.opt_level < 0 or self.opt_level > 3:
            return "optimization level must be 0-3, got " + str(self.opt_level)
        return None

    @property
    def extension(self) -> str:
        return EXTENSIONS[self.target]


@dataclass
class UnitResult:
    """Outcome of transpiling one unit."""

    unit: str
    ok: bool
    diagnostics: Diagnostics
    output: str = ""
    output_path: str | None = None
    ir: IR | None = None

    def errors(self) -> list[str]:
        return [str(d) for d in self.diagnostics.errors()]

    def warnings(self) -> list[str]:
        return [str(d) for d in self.diagnostics.warnings()]


@dataclass
class BatchResult:
    """Outcome of a batch; units after the first failure are never attempted."""

    units: list[UnitResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(u.ok for u in self.units)

    @property
    def failed(self) -> UnitResult | None:
        for u in self.units:
            if not u.ok:
                return u
        return None


def _failure(unit: str, diags: Diagnostics, category: str, message: str, line: int = 0) -> UnitResult:
    diags.add_error(category, message, line)
    return UnitResult(unit, False, diags)


def transpile_source(
    source: str,
    unit: str = "<input>",
    options: Options | None = None,
    stop_at: str | None = None,
) -> UnitResult:
    """Run the pipeline over one unit of source text."""
    if options is None:
        options = Options()
    diags = Diagnostics(unit)
    problem = options.validate()
    if problem is not None:
        return _failure(unit, diags, "config", problem)
    if stop_at is not None and stop_at not in PHASES:
        return _failure(unit, diags, "config", "unknown phase '" + stop_at + "'")
    try:
        ir = compile(source, unit, diags)
    except ParseError as e:
        return _failure(unit, diags, "parse", e.msg, e.lineno)
    if stop_at == "parse":
        return UnitResult(unit, True, diags, ir_to_json(ir), ir=ir)
    try:
        return _lower(unit, ir, diags, options, stop_at)
    except Exception as e:
        # a failing pass fails only its own unit
        return _failure(unit, diags, "internal", type(e).__name__ + ": " + str(e))


def _lower(unit: str, ir: IR, diags: Diagnostics, options: Options, stop_at: str | None) -> UnitResult:
    """Analyze the IR and, unless stopped early, emit target source."""
    analyze(ir)
    if stop_at == "analyze":
        return UnitResult(unit, True, diags, ir_to_json(ir), ir=ir)
    backend = BACKENDS[options.target](
        preserve_comments=options.preserve_comments,
        generate_tests=options.generate_tests,
        safety_checks=options.safety_checks,
        diags=diags,
    )
    output = backend.emit(ir)
    return UnitResult(unit, diags.ok(), diags, output, ir=ir)


def read_unit(path: str) -> tuple[str | None, str]:
    """Read a unit as UTF-8. Returns (source, "") or (None, error message)."""
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError:
        return (None, "cannot open '" + path + "'")
    try:
        return (raw.decode("utf-8"), "")
    except UnicodeDecodeError:
        return (None, "invalid utf-8 in '" + path + "'")


def write_unit(output: str, path: str) -> str:
    """Write generated text. Returns "" on success, else an error message."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(output)
    except OSError:
        return "cannot write '" + path + "'"
    return ""


def transpile_file(
    path: str,
    options: Options | None = None,
    output_path: str | None = None,
    stop_at: str | None = None,
) -> UnitResult:
    """Transpile one file; with output_path the result is also written there."""
    source, problem = read_unit(path)
    if source is None:
        return _failure(path, Diagnostics(path), "io", problem)
    result = transpile_source(source, path, options, stop_at)
    if not result.ok or output_path is None:
        return result
    problem = write_unit(result.output, output_path)
    if problem:
        result.diagnostics.add_error("io", problem)
        result.ok = False
        return result
    result.output_path = output_path
    return result


def output_path_for(path: str, output_dir: str, options: Options, stop_at: str | None = None) -> str:
    """DIR/<stem>.rs|.go for an input path; IR dumps get .json."""
    stem = os.path.splitext(os.path.basename(path))[0]
    extension = ".json" if stop_at is not None else options.extension
    return os.path.join(output_dir, stem + extension)


def transpile_batch(
    paths: list[str],
    options: Options | None = None,
    output_dir: str | None = None,
    stop_at: str | None = None,
) -> BatchResult:
    """Transpile units in order, halting at the first failure."""
    if options is None:
        options = Options()
    batch = BatchResult()
    for path in paths:
        output_path = None
        if output_dir is not None:
            output_path = output_path_for(path, output_dir, options, stop_at)
        result = transpile_file(path, options, output_path, stop_at)
        batch.units.append(result)
        if not result.ok:
            break
    return batch
