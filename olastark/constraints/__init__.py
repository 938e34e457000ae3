"""Constraint consumers: one constraint description, several arithmetics."""

from olastark.constraints.base import (
    ConstraintConsumer,
    EvaluationFrame,
    FieldConstraintConsumer,
    NativeConstraintConsumer,
    row_frame,
)
from olastark.constraints.circuit import CircuitConstraintConsumer, Expr, circuit_frame, var

__all__ = [
    "ConstraintConsumer",
    "EvaluationFrame",
    "FieldConstraintConsumer",
    "NativeConstraintConsumer",
    "row_frame",
    "CircuitConstraintConsumer",
    "Expr",
    "circuit_frame",
    "var",
]
