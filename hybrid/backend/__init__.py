"""Backend code emitters: analyzed IR -> target source text."""

from .go import GoBackend
from .rust import RustBackend

BACKENDS: dict[str, type[RustBackend] | type[GoBackend]] = {
    "rust": RustBackend,
    "go": GoBackend,
}

EXTENSIONS: dict[str, str] = {
    "rust": ".rs",
    "go": ".go",
}

__all__ = ["BACKENDS", "EXTENSIONS", "GoBackend", "RustBackend"]
