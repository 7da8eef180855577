"""Load and save grids as CSV files for the command line."""

from __future__ import annotations

import csv
from pathlib import Path

from .surface import MemoryGrid


def load_grid(path: Path) -> MemoryGrid:
    with path.open(newline="", encoding="utf-8") as fh:
        return MemoryGrid(rows=[list(row) for row in csv.reader(fh)])


def save_grid(grid: MemoryGrid, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        for row in grid.get_values():
            writer.writerow(["" if v is None else v for v in row])
