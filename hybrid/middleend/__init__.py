"""IR analysis passes (annotate in place, no transformations)."""

from ..ir import IR

from .concurrency import analyze_concurrency
from .exceptions import analyze_exceptions
from .ownership import analyze_ownership


def analyze(ir: IR) -> None:
    """Run all analysis passes, annotating IR nodes in place."""
    analyze_exceptions(ir)
    analyze_concurrency(ir)
    analyze_ownership(ir)
