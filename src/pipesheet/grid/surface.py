"""A 2-D cell matrix with notes, validation lists and cell formats.

Rows and columns are 0-based; row 0 is the header row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

EditListener = Callable[[int, int], None]


@dataclass(frozen=True)
class CellFormat:
    background: str | None = None
    font_color: str | None = None
    bold: bool = False
    border_color: str | None = None


class GridSurface(Protocol):
    """What the sync engine needs from a spreadsheet."""

    @property
    def row_count(self) -> int: ...

    @property
    def column_count(self) -> int: ...

    def get_values(self) -> list[list[Any]]: ...

    def set_values(self, rows: list[list[Any]]) -> None: ...

    def clear(self) -> None: ...

    def get_cell(self, row: int, col: int) -> Any: ...

    def set_cell(self, row: int, col: int, value: Any) -> None: ...

    def get_note(self, row: int, col: int) -> str | None: ...

    def set_note(self, row: int, col: int, note: str | None) -> None: ...

    def set_validation(self, row: int, col: int, allowed: list[str] | None) -> None: ...

    def set_format(self, row: int, col: int, fmt: CellFormat | None) -> None: ...


@dataclass
class MemoryGrid:
    """In-memory grid used by the CLI (via CSV) and by tests.

    ``edit()`` behaves like a person typing into a cell: it writes the value
    and then notifies edit listeners. ``set_cell()`` is a programmatic write
    and notifies nobody.
    """

    rows: list[list[Any]] = field(default_factory=list)
    notes: dict[tuple[int, int], str] = field(default_factory=dict)
    validations: dict[tuple[int, int], list[str]] = field(default_factory=dict)
    formats: dict[tuple[int, int], CellFormat] = field(default_factory=dict)
    listeners: list[EditListener] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    def get_values(self) -> list[list[Any]]:
        width = self.column_count
        return [list(r) + [""] * (width - len(r)) for r in self.rows]

    def set_values(self, rows: list[list[Any]]) -> None:
        self.rows = [list(r) for r in rows]

    def clear(self) -> None:
        self.rows = []
        self.notes.clear()
        self.validations.clear()
        self.formats.clear()

    def get_cell(self, row: int, col: int) -> Any:
        if row >= len(self.rows) or col >= len(self.rows[row]):
            return ""
        return self.rows[row][col]

    def set_cell(self, row: int, col: int, value: Any) -> None:
        while len(self.rows) <= row:
            self.rows.append([])
        line = self.rows[row]
        while len(line) <= col:
            line.append("")
        line[col] = value

    def get_note(self, row: int, col: int) -> str | None:
        return self.notes.get((row, col))

    def set_note(self, row: int, col: int, note: str | None) -> None:
        if note:
            self.notes[(row, col)] = note
        else:
            self.notes.pop((row, col), None)

    def set_validation(self, row: int, col: int, allowed: list[str] | None) -> None:
        if allowed:
            self.validations[(row, col)] = list(allowed)
        else:
            self.validations.pop((row, col), None)

    def set_format(self, row: int, col: int, fmt: CellFormat | None) -> None:
        if fmt:
            self.formats[(row, col)] = fmt
        else:
            self.formats.pop((row, col), None)

    def insert_column(self, col: int, header: str = "") -> None:
        """Insert an empty column, shifting cells (and their chrome) right."""
        for i, line in enumerate(self.rows):
            while len(line) < col:
                line.append("")
            line.insert(col, header if i == 0 else "")
        for mapping in (self.notes, self.validations, self.formats):
            shifted = {(r, c + 1 if c >= col else c): v for (r, c), v in mapping.items()}
            mapping.clear()
            mapping.update(shifted)

    # -- edit observation ---------------------------------------------

    def on_edit(self, listener: EditListener) -> None:
        self.listeners.append(listener)

    def edit(self, row: int, col: int, value: Any) -> None:
        self.set_cell(row, col, value)
        for listener in self.listeners:
            listener(row, col)


def column_letter(index: int) -> str:
    """0 -> ``A``, 25 -> ``Z``, 26 -> ``AA``."""
    letters = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def column_index(letter: str) -> int:
    """``A`` -> 0, ``AA`` -> 26. Raises ValueError for non-letters."""
    letter = letter.strip().upper()
    if not letter or not letter.isalpha():
        raise ValueError(f"not a column letter: {letter!r}")
    index = 0
    for char in letter:
        index = index * 26 + (ord(char) - 64)
    return index - 1
