"""Trace tables - per-table layouts, trace generation and constraints."""

from olastark.tables.base import (
    MIN_ROWS,
    Row,
    Table,
    TableStark,
    check_constraints,
    join_rows,
    pad_rows,
    padded_height,
    validate_shape,
)

__all__ = [
    "MIN_ROWS",
    "Row",
    "Table",
    "TableStark",
    "check_constraints",
    "join_rows",
    "pad_rows",
    "padded_height",
    "validate_shape",
]
