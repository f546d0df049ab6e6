"""Diagnostics collected while transpiling one unit."""

from __future__ import annotations


class Diagnostic:
    """A finding with location and category.

    Errors are fatal for the unit; warnings mark unmapped constructs whose
    output carries a placeholder.
    """

    def __init__(
        self,
        unit: str,
        line: int,
        category: str,
        message: str,
        is_warning: bool,
    ):
        self.unit: str = unit
        self.line: int = line
        self.category: str = category
        self.message: str = message
        self.is_warning: bool = is_warning

    def __str__(self) -> str:
        prefix = "warning" if self.is_warning else "error"
        where = self.unit
        if self.line > 0:
            where += ":" + str(self.line)
        return prefix + ": " + where + ": [" + self.category + "] " + self.message

    def __repr__(self) -> str:
        return str(self)


class Diagnostics:
    """Ordered collection of diagnostics for one unit."""

    def __init__(self, unit: str = "<input>") -> None:
        self.unit: str = unit
        self.items: list[Diagnostic] = []

    def add_error(self, category: str, message: str, line: int = 0) -> None:
        self.items.append(Diagnostic(self.unit, line, category, message, False))

    def add_warning(self, category: str, message: str, line: int = 0) -> None:
        if self.has(category, message):
            return
        self.items.append(Diagnostic(self.unit, line, category, message, True))

    def has(self, category: str, message: str) -> bool:
        for d in self.items:
            if d.category == category and d.message == message:
                return True
        return False

    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if not d.is_warning]

    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.items if d.is_warning]

    def ok(self) -> bool:
        return len(self.errors()) == 0

    def extend(self, other: Diagnostics) -> None:
        for d in other.items:
            self.items.append(d)
