"""CLI tests for the hybrid entry point.

Test cases live in cli/*.tests files. Format:

    === test name
    args: --target go --stop-at parse
    source code here
    (stdin for the transpiler)
    ---
    exit: 0
    stderr: error: some message
    stdout-contains: "keyword"
    stdout-empty: true
    stderr-empty: true
    exit-not: 2
    ---

Special directives in the input section:
    args:           CLI arguments (first line, required)
    stdin-bytes:    hex-encoded raw bytes instead of text (e.g. "ff fe")

Assertion directives in the expected section:
    exit:             exact exit code
    exit-not:         exit code must NOT equal this
    stderr:           exact stderr content (trailing newline added)
    stderr-contains:  stderr must contain substring
    stderr-empty:     stderr must be empty
    stdout-contains:  stdout must contain substring
    stdout-empty:     stdout must be empty
"""

import subprocess
import sys
from pathlib import Path

import pytest

CLI_DIR = Path(__file__).parent / "cli"
ROOT_DIR = Path(__file__).parent.parent


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, spec) tuples.

    Each spec dict has keys: args, stdin, stdin_bytes, assertions.
    """
    lines = path.read_text().split("\n")
    result: list[tuple[str, dict]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            spec = _parse_spec(input_lines, expected_lines)
            result.append((test_name, spec))
        else:
            i += 1
    return result


def _parse_spec(input_lines: list[str], expected_lines: list[str]) -> dict:
    """Parse input + expected lines into a test spec dict."""
    spec: dict = {
        "args": [],
        "stdin": None,
        "stdin_bytes": None,
        "assertions": [],
    }
    body_start = 0
    if input_lines and input_lines[0].startswith("args:"):
        args_str = input_lines[0][5:].strip()
        spec["args"] = args_str.split() if args_str else []
        body_start = 1

    remaining = input_lines[body_start:]
    if remaining and remaining[0].startswith("stdin-bytes:"):
        hex_str = remaining[0][len("stdin-bytes:") :].strip()
        spec["stdin_bytes"] = bytes.fromhex(hex_str)
    else:
        spec["stdin"] = "\n".join(remaining)

    for line in expected_lines:
        line = line.strip()
        if not line:
            continue
        if line.startswith("exit:"):
            spec["assertions"].append(("exit", int(line[5:].strip())))
        elif line.startswith("exit-not:"):
            spec["assertions"].append(("exit-not", int(line[9:].strip())))
        elif line.startswith("stderr:"):
            spec["assertions"].append(("stderr", line[7:].strip()))
        elif line.startswith("stderr-contains:"):
            spec["assertions"].append(("stderr-contains", line[16:].strip()))
        elif line.startswith("stderr-empty:"):
            spec["assertions"].append(("stderr-empty", None))
        elif line.startswith("stdout-contains:"):
            spec["assertions"].append(("stdout-contains", line[16:].strip()))
        elif line.startswith("stdout-empty:"):
            spec["assertions"].append(("stdout-empty", None))
    return spec


def discover_cli_tests() -> list[tuple[str, dict]]:
    """Find all CLI tests across .tests files."""
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        for name, spec in parse_cli_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", spec))
    return results


def run_cli(args: list[str], stdin_data: bytes = b"") -> subprocess.CompletedProcess[bytes]:
    """Run the hybrid CLI as a subprocess from the repo root."""
    cmd = [sys.executable, "-m", "hybrid.cli", *args]
    return subprocess.run(cmd, input=stdin_data, capture_output=True, cwd=ROOT_DIR)


def run_spec(spec: dict) -> subprocess.CompletedProcess[bytes]:
    if spec["stdin_bytes"] is not None:
        stdin_data = spec["stdin_bytes"]
    elif spec["stdin"] is not None:
        stdin_data = spec["stdin"].encode()
    else:
        stdin_data = b""
    return run_cli(spec["args"], stdin_data)


def check_assertions(
    result: subprocess.CompletedProcess[bytes], assertions: list[tuple]
) -> None:
    """Check all assertions against a CLI result."""
    for kind, value in assertions:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}"
                f"\nstderr: {result.stderr.decode(errors='replace')}"
            )
        elif kind == "exit-not":
            assert result.returncode != value, (
                f"expected exit != {value}, got {result.returncode}"
            )
        elif kind == "stderr":
            actual = result.stderr.decode(errors="replace").rstrip("\n")
            assert actual == value, f"expected stderr {value!r}, got {actual!r}"
        elif kind == "stderr-contains":
            actual = result.stderr.decode(errors="replace")
            assert value in actual, (
                f"expected stderr to contain {value!r}, got {actual!r}"
            )
        elif kind == "stderr-empty":
            assert result.stderr == b"", f"expected empty stderr, got {result.stderr!r}"
        elif kind == "stdout-contains":
            actual = result.stdout.decode(errors="replace")
            assert value in actual, (
                f"expected stdout to contain {value!r}, got {actual!r}"
            )
        elif kind == "stdout-empty":
            assert result.stdout == b"", (
                f"expected empty stdout, got {result.stdout[:200]!r}"
            )


def pytest_generate_tests(metafunc):
    """Parametrize test_cli over all .tests files."""
    if "cli_spec" in metafunc.fixturenames:
        tests = discover_cli_tests()
        params = [pytest.param(spec, id=test_id) for test_id, spec in tests]
        metafunc.parametrize("cli_spec", params)


def test_cli(cli_spec: dict) -> None:
    """Run a single CLI test case from .tests file."""
    result = run_spec(cli_spec)
    check_assertions(result, cli_spec["assertions"])


def test_output_file(tmp_path: Path) -> None:
    src = tmp_path / "point.cpp"
    src.write_text("struct Point { int x; };\n")
    out = tmp_path / "point.go"
    result = run_cli(["-t", "go", str(src), "-o", str(out)])
    assert result.returncode == 0, result.stderr.decode()
    assert result.stdout == b""
    text = out.read_text()
    assert text.startswith("package point\n")
    assert "type Point struct {" in text


def test_output_directory(tmp_path: Path) -> None:
    (tmp_path / "a.cpp").write_text("int one() { return 1; }\n")
    (tmp_path / "b.cpp").write_text("int two() { return 2; }\n")
    out = tmp_path / "out"
    result = run_cli(["-i", str(tmp_path / "a.cpp"), "-i", str(tmp_path / "b.cpp"), "-o", str(out)])
    assert result.returncode == 0, result.stderr.decode()
    assert "pub fn one() -> i32 {" in (out / "a.rs").read_text()
    assert "pub fn two() -> i32 {" in (out / "b.rs").read_text()


def test_batch_stops_at_first_failure(tmp_path: Path) -> None:
    (tmp_path / "a.cpp").write_text("class Broken {\n")
    (tmp_path / "b.cpp").write_text("int two() { return 2; }\n")
    out = tmp_path / "out"
    result = run_cli([str(tmp_path / "a.cpp"), str(tmp_path / "b.cpp"), "-o", str(out)])
    assert result.returncode == 1
    assert "[parse]" in result.stderr.decode()
    assert not (out / "b.rs").exists()


def test_unwritable_output(tmp_path: Path) -> None:
    src = tmp_path / "a.cpp"
    src.write_text("struct A {};\n")
    result = run_cli([str(src), "-o", str(tmp_path / "missing" / "a.rs")])
    assert result.returncode == 1
    assert "cannot write" in result.stderr.decode()


def test_stop_at_writes_json(tmp_path: Path) -> None:
    (tmp_path / "a.cpp").write_text("struct A {};\n")
    (tmp_path / "b.cpp").write_text("struct B {};\n")
    out = tmp_path / "out"
    result = run_cli([str(tmp_path / "a.cpp"), str(tmp_path / "b.cpp"), "-o", str(out), "--stop-at", "parse"])
    assert result.returncode == 0, result.stderr.decode()
    assert '"_type": "IR"' in (out / "a.json").read_text()
