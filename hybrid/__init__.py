"""hybrid: C++ to Rust and Go transpiler."""

__version__ = "0.1.0"
