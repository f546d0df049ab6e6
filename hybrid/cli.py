"""Command-line entry point."""

from __future__ import annotations

import os
import sys

from . import __version__
from .transpiler import (
    PHASES,
    TARGETS,
    BatchResult,
    Options,
    UnitResult,
    transpile_batch,
    transpile_file,
    transpile_source,
    write_unit,
)

USAGE: str = """\
hybrid [OPTIONS] INPUT... [-o OUTPUT]

Options:
  -t, --target TARGET     Output language: rust, go (default: rust)
  -i, --input FILE        Input C++ source file (may be repeated)
  -o, --output PATH       Write output to PATH; a directory for several inputs
  -O, --opt-level N       Optimization level 0-3 (default: 0)
  --stop-at PHASE         Stop after phase and dump the IR as JSON: parse, analyze
  --no-safety-checks      Do not warn about raw pointers
  --no-comments           Do not carry original bodies and docs as comments
  --gen-tests             Append test stubs
  -q, --quiet             Suppress warnings
  -v, --verbose           Report each unit as it is transpiled
  --version               Show version information
  -h, --help              Show this help message

With no INPUT, source is read from stdin.
"""


class Args:
    """Parsed command line."""

    def __init__(self) -> None:
        self.options: Options = Options()
        self.inputs: list[str] = []
        self.output: str | None = None
        self.stop_at: str | None = None


def _usage_error(msg: str) -> None:
    print("error: " + msg, file=sys.stderr)
    sys.exit(2)


def _opt_level(value: str) -> int:
    if not value.isdigit() or int(value) > 3:
        _usage_error("optimization level must be 0-3, got '" + value + "'")
    return int(value)


def parse_args(argv: list[str] | None = None) -> Args:
    """Parse command-line arguments. Exits with status 2 on misuse."""
    args = sys.argv[1:] if argv is None else argv
    parsed = Args()
    options = parsed.options
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            sys.exit(0)
        elif arg == "--version":
            print("hybrid " + __version__)
            sys.exit(0)
        elif arg in ("-t", "--target", "-o", "--output", "-i", "--input", "-O", "--opt-level", "--stop-at"):
            if i + 1 >= len(args):
                _usage_error(arg + " requires an argument")
            value = args[i + 1]
            if arg in ("-t", "--target"):
                options.target = value
            elif arg in ("-o", "--output"):
                parsed.output = value
            elif arg in ("-i", "--input"):
                parsed.inputs.append(value)
            elif arg == "--stop-at":
                parsed.stop_at = value
            else:
                options.opt_level = _opt_level(value)
            i += 2
        elif arg.startswith("-O") and len(arg) > 2:
            options.opt_level = _opt_level(arg[2:])
            i += 1
        elif arg == "--no-safety-checks":
            options.safety_checks = False
            i += 1
        elif arg == "--no-comments":
            options.preserve_comments = False
            i += 1
        elif arg == "--gen-tests":
            options.generate_tests = True
            i += 1
        elif arg == "-q" or arg == "--quiet":
            options.quiet = True
            i += 1
        elif arg == "-v" or arg == "--verbose":
            options.verbose = True
            i += 1
        elif arg.startswith("-") and arg != "-":
            _usage_error("unknown flag '" + arg + "'")
        else:
            parsed.inputs.append(arg)
            i += 1
    if options.target not in TARGETS:
        _usage_error("unknown target '" + options.target + "'")
    if parsed.stop_at is not None and parsed.stop_at not in PHASES:
        _usage_error("unknown phase '" + parsed.stop_at + "'")
    if len(parsed.inputs) > 1 and parsed.output is None:
        _usage_error("several inputs need -o DIR")
    return parsed


def report(result: UnitResult, options: Options) -> None:
    """Print a unit's diagnostics to stderr; warnings unless quiet."""
    for d in result.diagnostics.items:
        if d.is_warning and options.quiet:
            continue
        print(str(d), file=sys.stderr)
    if options.verbose:
        if result.ok:
            dest = result.output_path if result.output_path is not None else "<stdout>"
            print("transpiled " + result.unit + " -> " + dest, file=sys.stderr)
        else:
            print("failed " + result.unit, file=sys.stderr)


def _from_stdin(args: Args) -> int:
    raw = sys.stdin.buffer.read()
    try:
        source = raw.decode("utf-8")
    except UnicodeDecodeError:
        print("error: invalid utf-8 in input", file=sys.stderr)
        return 1
    if len(source) == 0:
        print("error: no input provided", file=sys.stderr)
        return 2
    result = transpile_source(source, "<stdin>", args.options, args.stop_at)
    if result.ok and args.output is not None:
        problem = write_unit(result.output, args.output)
        if problem:
            result.diagnostics.add_error("io", problem)
            result.ok = False
        else:
            result.output_path = args.output
    report(result, args.options)
    if not result.ok:
        return 1
    if args.output is None:
        print(result.output, end="")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    if not args.inputs or args.inputs == ["-"]:
        return _from_stdin(args)
    output_dir: str | None = None
    if args.output is not None and (len(args.inputs) > 1 or os.path.isdir(args.output)):
        output_dir = args.output
        try:
            os.makedirs(output_dir, exist_ok=True)
        except OSError:
            print("error: cannot create directory '" + output_dir + "'", file=sys.stderr)
            return 1
    if output_dir is not None or args.output is None:
        batch = transpile_batch(args.inputs, args.options, output_dir, args.stop_at)
    else:
        # single input written to an explicit file path
        batch = BatchResult([transpile_file(args.inputs[0], args.options, args.output, args.stop_at)])
    for result in batch.units:
        report(result, args.options)
    if not batch.ok:
        return 1
    if output_dir is None and args.output is None:
        print(batch.units[0].output, end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
