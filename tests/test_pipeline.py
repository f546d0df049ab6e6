"""Tests for the transpilation pipeline and IR serialization."""

import json
from pathlib import Path

from hybrid.ir import Type
from hybrid.serialize import ir_to_json, serialize
from hybrid.frontend import compile
from hybrid.transpiler import (
    Options,
    output_path_for,
    read_unit,
    transpile_batch,
    transpile_file,
    transpile_source,
)


# ============================================================
# Options
# ============================================================


def test_options_defaults():
    options = Options()
    assert options.target == "rust"
    assert options.opt_level == 0
    assert options.safety_checks
    assert options.preserve_comments
    assert not options.generate_tests
    assert options.validate() is None
    assert options.extension == ".rs"
    assert Options(target="go").extension == ".go"


def test_options_validation():
    assert Options(target="zig").validate() == "unknown target 'zig'"
    assert Options(opt_level=4).validate() == "optimization level must be 0-3, got 4"
    assert Options(opt_level=3).validate() is None


# ============================================================
# transpile_source
# ============================================================


def test_invalid_options_fail_the_unit():
    result = transpile_source("struct A {};", "a.cpp", Options(target="zig"))
    assert not result.ok
    assert result.output == ""
    assert result.errors() == ["error: a.cpp: [config] unknown target 'zig'"]


def test_parse_error_is_a_diagnostic():
    result = transpile_source("int x;\nclass A {", "a.cpp")
    assert not result.ok
    assert result.ir is None
    assert result.errors()[0].startswith("error: a.cpp:2: [parse] unbalanced")


def test_warnings_keep_the_unit_ok():
    result = transpile_source("struct A { int* p; };", "a.cpp")
    assert result.ok
    assert result.errors() == []
    assert result.warnings()
    assert all("[safety]" in w for w in result.warnings())


def test_no_safety_checks():
    result = transpile_source("struct A { int* p; };", "a.cpp", Options(safety_checks=False))
    assert result.warnings() == []


def test_preserve_comments_off():
    source = "/// Adds.\nint add(int a, int b) { return a + b; }"
    with_comments = transpile_source(source).output
    without = transpile_source(source, options=Options(preserve_comments=False)).output
    assert "// return a + b;" in with_comments
    assert "/// Adds." in with_comments
    assert "//" not in without
    assert "todo!()" in without


def test_stop_at_parse_skips_analysis():
    result = transpile_source("void f() { throw std::runtime_error(\"x\"); }", stop_at="parse")
    assert result.ok
    data = json.loads(result.output)
    assert data["_type"] == "IR"
    assert data["functions"][0]["exception_profile"] is None


def test_stop_at_analyze_includes_profiles():
    result = transpile_source("void f() { throw std::runtime_error(\"x\"); }", stop_at="analyze")
    data = json.loads(result.output)
    profile = data["functions"][0]["exception_profile"]
    assert profile["_type"] == "ExceptionProfile"
    assert profile["thrown_types"] == ["runtime_error"]
    assert profile["may_throw"] is True


def test_unknown_phase():
    result = transpile_source("struct A {};", stop_at="emit")
    assert not result.ok
    assert "unknown phase 'emit'" in result.errors()[0]


def test_unexpected_pass_failure_is_a_diagnostic(monkeypatch):
    def broken(ir):
        raise KeyError("registry")

    monkeypatch.setattr("hybrid.transpiler.analyze", broken)
    result = transpile_source("struct A {};", "a.cpp")
    assert not result.ok
    assert result.output == ""
    assert result.errors() == ["error: a.cpp: [internal] KeyError: 'registry'"]


def test_unexpected_failure_stops_the_batch(monkeypatch, tmp_path: Path):
    def broken(ir):
        raise RuntimeError("boom")

    monkeypatch.setattr("hybrid.transpiler.analyze", broken)
    src = tmp_path / "a.cpp"
    src.write_text("struct A {};\n")
    batch = transpile_batch([str(src), str(src)], Options())
    assert not batch.ok
    assert len(batch.units) == 1
    assert "[internal] RuntimeError: boom" in batch.failed.errors()[0]


def test_output_ends_with_newline():
    for target in ("rust", "go"):
        output = transpile_source("struct A {};", options=Options(target=target)).output
        assert output.endswith("}\n")
        assert not output.endswith("\n\n")


# ============================================================
# files and batches
# ============================================================


def test_read_unit_errors(tmp_path: Path):
    assert read_unit(str(tmp_path / "missing.cpp")) == (None, "cannot open '" + str(tmp_path / "missing.cpp") + "'")
    bad = tmp_path / "bad.cpp"
    bad.write_bytes(b"\xff\xfe")
    source, problem = read_unit(str(bad))
    assert source is None
    assert problem.startswith("invalid utf-8")


def test_transpile_file_writes_output(tmp_path: Path):
    src = tmp_path / "point.cpp"
    src.write_text("struct Point { int x; };\n")
    out = tmp_path / "point.rs"
    result = transpile_file(str(src), Options(), str(out))
    assert result.ok
    assert result.output_path == str(out)
    assert out.read_text() == result.output


def test_transpile_file_unwritable(tmp_path: Path):
    src = tmp_path / "a.cpp"
    src.write_text("struct A {};\n")
    result = transpile_file(str(src), Options(), str(tmp_path / "no" / "a.rs"))
    assert not result.ok
    assert "[io] cannot write" in result.errors()[0]


def test_output_path_for():
    assert output_path_for("src/net/socket.cpp", "out", Options()) == str(Path("out") / "socket.rs")
    assert output_path_for("a.cc", "out", Options(target="go")) == str(Path("out") / "a.go")
    assert output_path_for("a.cc", "out", Options(), "parse") == str(Path("out") / "a.json")


def test_batch_halts_at_first_failure(tmp_path: Path):
    good = tmp_path / "good.cpp"
    good.write_text("struct A {};\n")
    bad = tmp_path / "bad.cpp"
    bad.write_text("class B {\n")
    never = tmp_path / "never.cpp"
    never.write_text("struct C {};\n")
    out = tmp_path / "out"
    out.mkdir()
    batch = transpile_batch([str(good), str(bad), str(never)], Options(), str(out))
    assert not batch.ok
    assert len(batch.units) == 2
    assert batch.failed is batch.units[1]
    assert (out / "good.rs").exists()
    assert not (out / "never.rs").exists()


def test_batch_without_output_dir(tmp_path: Path):
    src = tmp_path / "a.cpp"
    src.write_text("int one() { return 1; }\n")
    batch = transpile_batch([str(src)], Options(target="go"))
    assert batch.ok
    assert batch.failed is None
    assert "func One() int32 {" in batch.units[0].output


# ============================================================
# serialization
# ============================================================


def test_serialize_type_drops_empty_slots():
    assert serialize(Type("integer", "int", size_bytes=4, alignment=4)) == {
        "_type": "Type",
        "kind": "integer",
        "name": "int",
        "size_bytes": 4,
        "alignment": 4,
    }
    assert serialize(Type("void")) == {"_type": "Type", "kind": "void", "name": ""}


def test_serialize_nested_types():
    data = serialize(Type("pointer", "const int*", element_type=Type("integer", "int", is_const=True, is_mutable=False)))
    assert data["element_type"]["is_const"] is True
    assert data["element_type"]["is_mutable"] is False
    assert "is_const" not in data


def test_serialize_plain_values():
    assert serialize([1, "a", None, True]) == [1, "a", None, True]
    assert serialize({"k": (1, 2)}) == {"k": [1, 2]}
    assert serialize({"b", "a"}) == ["a", "b"]


def test_ir_to_json_round_trips_through_json():
    ir = compile("struct P { int x; };", "p.cpp")
    data = json.loads(ir_to_json(ir))
    assert data["name"] == "p.cpp"
    cls = data["classes"][0]
    assert cls["_type"] == "ClassDecl"
    assert cls["fields"][0]["typ"]["kind"] == "integer"
    assert data["type_registry"]["P"]["kind"] == "aggregate"
