"""Grid surface abstraction and helpers."""

from .surface import CellFormat, GridSurface, MemoryGrid, column_index, column_letter

__all__ = ["CellFormat", "GridSurface", "MemoryGrid", "column_index", "column_letter"]
