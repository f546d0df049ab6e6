"""Codegen tests: C++ snippets against expected Rust and Go fragments.

Test cases live in codegen/*.tests files. Format:

    === test name
    C++ source
    --- rust
    expected Rust fragment
    --- go
    expected Go fragment
    ---

A fragment matches when its lines appear consecutively in the output,
compared line by line with surrounding whitespace stripped.
"""

from pathlib import Path

import pytest

from hybrid.transpiler import Options, transpile_source

CODEGEN_DIR = Path(__file__).parent / "codegen"


def parse_codegen_file(path: Path) -> list[tuple[str, str, dict[str, str]]]:
    """Parse .tests file into (name, input, {lang: expected}) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, dict[str, str]]] = []
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
            expected_by_lang: dict[str, str] = {}
            while i < len(lines) and lines[i].startswith("--- "):
                lang = lines[i][4:].strip()
                i += 1
                expected_lines: list[str] = []
                while i < len(lines) and not lines[i].startswith("---"):
                    expected_lines.append(lines[i])
                    i += 1
                expected_by_lang[lang] = "\n".join(expected_lines)
            if i < len(lines) and lines[i] == "---":
                i += 1
            result.append((test_name, "\n".join(input_lines), expected_by_lang))
        else:
            i += 1
    return result


def discover_codegen_tests() -> list[tuple[str, str, str, str]]:
    """Find all codegen tests, returns (test_id, input, lang, expected)."""
    results = []
    for test_file in sorted(CODEGEN_DIR.glob("*.tests")):
        for name, input_code, expected_by_lang in parse_codegen_file(test_file):
            for lang, expected in expected_by_lang.items():
                test_id = f"{test_file.stem}/{name}[{lang}]"
                results.append((test_id, input_code, lang, expected))
    return results


def contains_normalized(haystack: str, needle: str) -> bool:
    """Check if needle appears in haystack, normalizing line-by-line whitespace."""
    needle_lines = [line.strip() for line in needle.strip().split("\n") if line.strip()]
    haystack_lines = [line.strip() for line in haystack.split("\n") if line.strip()]
    if not needle_lines:
        return True
    for i in range(len(haystack_lines)):
        if haystack_lines[i] == needle_lines[0]:
            match = True
            for j in range(1, len(needle_lines)):
                if (
                    i + j >= len(haystack_lines)
                    or haystack_lines[i + j] != needle_lines[j]
                ):
                    match = False
                    break
            if match:
                return True
    return False


def pytest_generate_tests(metafunc):
    """Parametrize test_codegen over all .tests files."""
    if "codegen_input" in metafunc.fixturenames:
        params = [
            pytest.param(inp, lang, exp, id=tid)
            for tid, inp, lang, exp in discover_codegen_tests()
        ]
        metafunc.parametrize("codegen_input,codegen_lang,codegen_expected", params)


def test_codegen(codegen_input: str, codegen_lang: str, codegen_expected: str):
    """Verify transpiler output contains the expected fragment."""
    result = transpile_source(codegen_input, "<input>", Options(target=codegen_lang))
    assert result.ok, "\n".join(result.errors())
    if not contains_normalized(result.output, codegen_expected):
        pytest.fail(
            f"Expected not found in output:\n--- expected ---\n{codegen_expected}\n--- got ---\n{result.output}"
        )


def test_contains_normalized_requires_consecutive_lines():
    haystack = "fn a() {\n    x\n}\nfn b() {\n    y\n}\n"
    assert contains_normalized(haystack, "fn a() {\nx")
    assert not contains_normalized(haystack, "fn a() {\ny")
